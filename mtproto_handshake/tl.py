"""Little-endian TL primitives and nonce generation for the key exchange."""

from __future__ import annotations

import secrets

_NONCE_BOUND = 26**26
_NEW_NONCE_BOUND = 46**46
_U64_MASK = (1 << 64) - 1
_U32_MASK = (1 << 32) - 1
_SHORT_LIMIT = 0xFE


def _minimal_bytes(value: int) -> bytes:
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def nonce() -> bytes:
    """Return a random client nonce as minimal big-endian bytes of a value below 26**26."""
    return _minimal_bytes(secrets.randbelow(_NONCE_BOUND))


def new_nonce() -> bytes:
    """Return a random new nonce as minimal big-endian bytes of a value below 46**46."""
    return _minimal_bytes(secrets.randbelow(_NEW_NONCE_BOUND))


class Buffer(bytearray):
    """A growable byte buffer with TL serialisation helpers."""

    def put_long(self, value: int) -> None:
        """Append a signed 64-bit integer, little endian, two's complement."""
        self.extend((value & _U64_MASK).to_bytes(8, "little"))

    def put_uint64(self, value: int) -> None:
        """Append an unsigned 64-bit integer, little endian."""
        self.extend((value & _U64_MASK).to_bytes(8, "little"))

    def put_int128(self, value: int) -> None:
        """Append a 64-bit value widened with zero bytes to a 128-bit field."""
        self.extend((value & _U64_MASK).to_bytes(8, "little"))
        self.extend(bytes(8))

    def put_int(self, value: int) -> None:
        """Append an unsigned 32-bit integer, little endian."""
        self.extend((value & _U32_MASK).to_bytes(4, "little"))

    def write_message(self, message: bytes) -> None:
        """Append a TL byte string, length-prefixed and zero padded.

        The field occupies (len // 4 + 1) * 4 bytes. Strings longer than 254
        bytes get the 0xfe marker and a 3-byte length; whatever does not fit
        in the field is cut off.
        """
        length = len(message)
        total = (length // 4 + 1) * 4
        if length > _SHORT_LIMIT:
            header = bytes((_SHORT_LIMIT,)) + (length & 0xFFFFFF).to_bytes(3, "little")
        else:
            header = bytes((length,))
        frame = (header + bytes(message))[:total]
        self.extend(frame.ljust(total, b"\0"))