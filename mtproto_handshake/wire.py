"""Transport framing and the client side of the auth key exchange."""

from __future__ import annotations

import enum
import hashlib
import logging
import queue
import threading
from typing import Callable, Optional

from .crypto import aes_decrypt, gen_tmp_keys, rsa_encrypt, rsa_fingerprint
from .debouncer import register
from .payload import Constructor, inner_data_payload, req_dh_payload, req_pq_payload
from .pq import brent
from .tl import new_nonce, nonce

log = logging.getLogger(__name__)

_RESPONSE_QUEUE_SIZE = 5
_READ_SIZE = 1024
_MAX_SKIP = 5
_RETRY_STREAM_LEN = 5
_HASHED_SIZE = 255
_ABRIDGED_LONG = 0x7F
_DEFAULT_DEBOUNCE = 0.1
_BRENT_START = 30
_BRENT_C = 1


class Mode(enum.Enum):
    """Transport mode announced to the server when the connection opens."""

    ABRIDGED = "abridged"
    INTERMEDIATE = "intermediate"

    @property
    def marker(self) -> bytes:
        """Bytes sent first on the connection to select this mode."""
        return b"\xef" if self is Mode.ABRIDGED else b"\xee\xee\xee\xee"

    @property
    def pad(self) -> int:
        """Size of the length prefix in this mode."""
        return 1 if self is Mode.ABRIDGED else 4


def _constructor(message: bytes) -> Optional[int]:
    if len(message) < 24:
        return None
    return int.from_bytes(message[20:24], "little")


def _minimal_bytes(value: int) -> bytes:
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


class Wire:
    """One connection to the server and the state of the key exchange on it."""

    def __init__(self, conn, key, intermediate=False, debounce: Optional[Callable] = None) -> None:
        self.conn = conn
        self.key = key
        self.intermediate = intermediate
        self.debounce = debounce if debounce is not None else register(_DEFAULT_DEBOUNCE)
        self.mode = Mode.INTERMEDIATE if intermediate else Mode.ABRIDGED
        self.pad = self.mode.pad
        self.client_nonce = b""
        self.server_nonce = b""
        self.new_nonce = b""
        self.res_pq_stream = b""
        self.responses: queue.Queue[bytes] = queue.Queue(maxsize=_RESPONSE_QUEUE_SIZE)

    def define_mode(self) -> None:
        """Announce the transport mode to the server."""
        self.mode = Mode.INTERMEDIATE if self.intermediate else Mode.ABRIDGED
        self.pad = self.mode.pad
        self.conn.sendall(self.mode.marker)

    def make_auth_key(self) -> None:
        """Start the exchange with a fresh client nonce and req_pq_multi."""
        self.client_nonce = nonce()
        self.send(req_pq_payload(self.client_nonce))

    def start_processor(self) -> threading.Thread:
        """Start a daemon thread that handles every queued response."""

        def run() -> None:
            while True:
                data = self.responses.get()
                try:
                    self.process_response(data)
                except Exception:
                    log.exception("failed to process response")

        thread = threading.Thread(target=run, name="wire-processor", daemon=True)
        thread.start()
        return thread

    def try_decode(self, stream: bytes, skip: int) -> bool:
        """Handle the stream as a message after skipping `skip` prefix bytes."""
        padded = stream[skip:]
        constructor = _constructor(padded)
        if constructor == Constructor.SERVER_DH_PARAMS_OK:
            log.info("[*] server_DH_params_ok")
            self.process_server_dh_params_ok(padded, self.new_nonce, self.res_pq_stream[40:56])
            return True
        if constructor == Constructor.RES_PQ:
            log.info("RES_PQ")
            self.process_res_pq(padded, self.client_nonce)
            return True
        if len(stream) == _RETRY_STREAM_LEN:

            def retry() -> None:
                log.info(
                    "no matches found. data is %d len, tried to skip %d bytes",
                    len(stream),
                    skip,
                )
                log.info("retrying: making auth key again")
                self.make_auth_key()

            self.debounce(retry)
        return False

    def process_response(self, data: bytes) -> bool:
        """Try every prefix length from the largest down; report whether one matched."""
        return any(self.try_decode(data, skip) for skip in range(_MAX_SKIP, 0, -1))

    def process_server_dh_params_ok(self, data: bytes, new_nonce: bytes, server_nonce: bytes) -> bytes:
        """Decrypt the encrypted answer of server_DH_params_ok and return it."""
        encrypted_answer = data[56:]
        key, iv = gen_tmp_keys(new_nonce, server_nonce)
        decrypted = aes_decrypt(key, iv, encrypted_answer)
        log.info("%s", decrypted[4:8].hex())
        return decrypted

    def process_res_pq(self, data: bytes, nonce: bytes) -> None:
        """Factor pq from resPQ and answer with req_DH_params."""
        pq = int.from_bytes(data[57:65], "big")
        factors = brent(pq, _BRENT_START, _BRENT_C)
        if len(factors) < 2:
            raise ValueError(f"could not split pq {pq} into two factors")
        p, q = (_minimal_bytes(factor) for factor in factors[:2])

        fresh = new_nonce()
        self.new_nonce = fresh
        server_nonce = bytes(data[40:56])
        self.server_nonce = server_nonce
        self.res_pq_stream = bytes(data)

        inner = inner_data_payload(_minimal_bytes(pq), p, q, nonce, server_nonce, fresh)
        hashed = (hashlib.sha1(inner).digest() + inner)[:_HASHED_SIZE].ljust(_HASHED_SIZE, b"\0")
        encrypted = rsa_encrypt(hashed, self.key)
        log.info("encrypted data length: %d", len(encrypted))

        fingerprint = int.from_bytes(rsa_fingerprint(self.key), "little", signed=True)
        self.send(req_dh_payload(nonce, server_nonce, p, q, fingerprint, encrypted))

    def frame(self, data: bytes) -> bytes:
        """Prefix data with the transport length header of the current mode."""
        if self.intermediate:
            return len(data).to_bytes(4, "little") + bytes(data)
        words = len(data) // 4
        if words < _ABRIDGED_LONG:
            header = bytes((words,))
        else:
            header = bytes((_ABRIDGED_LONG,)) + (words & 0xFFFFFF).to_bytes(3, "little")
        return header + bytes(data)

    def send(self, data: bytes) -> bool:
        """Send a framed message and queue one read of the reply."""
        framed = self.frame(data)
        try:
            self.conn.sendall(framed)
        except OSError as exc:
            log.error("could not send payload: %s", exc)
            return False
        reply = self.conn.recv(_READ_SIZE)
        self.responses.put(bytes(reply))
        log.info("[m:%s][l:%d] payload sent", self.mode.value, len(framed))
        return True