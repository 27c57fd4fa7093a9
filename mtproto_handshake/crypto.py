"""Temporary AES keys, AES-CFB decryption and raw RSA for the handshake."""

from __future__ import annotations

import hashlib
import logging

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .tl import Buffer

log = logging.getLogger(__name__)

_BLOCK_SIZE = 16
_RSA_SIZE = 256


def aes_decrypt(key: bytes, iv: bytes, data: bytes) -> bytes:
    """Decrypt AES-CFB data whose first block carries the IV.

    The `iv` argument is not used: the IV is read from the data itself.
    """
    algorithm = algorithms.AES(bytes(key))
    if len(data) < _BLOCK_SIZE:
        raise ValueError("encrypted data is shorter than one AES block")
    inline_iv, body = bytes(data[:_BLOCK_SIZE]), bytes(data[_BLOCK_SIZE:])
    decryptor = Cipher(algorithm, modes.CFB(inline_iv)).decryptor()
    plain = decryptor.update(body) + decryptor.finalize()
    log.debug("decrypted data length: %d", len(plain))
    return plain


def gen_tmp_keys(new_nonce: bytes, server_nonce: bytes) -> tuple[bytes, bytes]:
    """Derive the temporary AES key and IV from the new and server nonces."""
    if len(new_nonce) < 4:
        raise ValueError("new nonce must be at least 4 bytes")
    new_server = hashlib.sha1(new_nonce + server_nonce).digest()
    server_new = hashlib.sha1(server_nonce + new_nonce).digest()
    new_new = hashlib.sha1(new_nonce + new_nonce).digest()

    key = new_server + server_new[:12]
    iv = server_new[12:20] + new_new + new_nonce[:4]
    log.debug("tmp_aes_key: %s", key.hex())
    log.debug("tmp_aes_iv: %s", iv.hex())
    return key, iv


def rsa_encrypt(data: bytes, key: rsa.RSAPublicKey) -> bytes:
    """Raise data to the public exponent modulo n into a 256-byte field.

    The result bytes are placed at the start of the field.
    """
    numbers = key.public_numbers()
    value = pow(int.from_bytes(data, "big"), numbers.e, numbers.n)
    raw = value.to_bytes((value.bit_length() + 7) // 8, "big")
    return raw[:_RSA_SIZE].ljust(_RSA_SIZE, b"\0")


def rsa_fingerprint(key: rsa.RSAPublicKey) -> bytes:
    """Return the low 8 bytes of the SHA-1 of the TL-serialised key."""
    numbers = key.public_numbers()
    buf = Buffer()
    buf.write_message(numbers.n.to_bytes((numbers.n.bit_length() + 7) // 8, "big"))
    buf.write_message(numbers.e.to_bytes((numbers.e.bit_length() + 7) // 8, "big"))
    return hashlib.sha1(buf).digest()[12:]


def load_public_key(pem_data: bytes | str) -> rsa.RSAPublicKey:
    """Load an RSA public key from PEM text."""
    if isinstance(pem_data, str):
        pem_data = pem_data.encode("ascii")
    key = serialization.load_pem_public_key(pem_data)
    if not isinstance(key, rsa.RSAPublicKey):
        raise ValueError("PEM data does not hold an RSA public key")
    return key