import hashlib
import time

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from mtproto_handshake.crypto import gen_tmp_keys, rsa_encrypt, rsa_fingerprint
from mtproto_handshake.payload import Constructor, inner_data_payload
from mtproto_handshake.wire import Mode, Wire

PQ = 378221
P, Q = 613, 617
CLIENT_NONCE = bytes(range(100, 116))
SERVER_NONCE = bytes(range(200, 216))


class FakeConn:
    def __init__(self, replies=()):
        self.sent = []
        self.replies = list(replies)

    def sendall(self, data):
        self.sent.append(bytes(data))

    def recv(self, size):
        return self.replies.pop(0)[:size] if self.replies else b""


class BrokenConn(FakeConn):
    def sendall(self, data):
        raise OSError("connection reset")


@pytest.fixture(scope="module")
def key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048).public_key()


def res_pq_message(pq=PQ):
    header = bytes(8) + (1234).to_bytes(8, "little") + (60).to_bytes(4, "little")
    pq_field = bytes((8,)) + pq.to_bytes(8, "big") + bytes(3)
    return header + Constructor.RES_PQ.to_bytes(4, "little") + CLIENT_NONCE + SERVER_NONCE + pq_field


@pytest.mark.parametrize(
    "intermediate, marker, mode, pad",
    [(False, b"\xef", Mode.ABRIDGED, 1), (True, b"\xee\xee\xee\xee", Mode.INTERMEDIATE, 4)],
)
def test_define_mode(key, intermediate, marker, mode, pad):
    conn = FakeConn()
    wire = Wire(conn, key, intermediate, lambda f: None)
    wire.define_mode()
    assert conn.sent == [marker]
    assert wire.mode is mode
    assert wire.pad == pad


def test_frame_abridged_short(key):
    wire = Wire(FakeConn(), key, False, lambda f: None)
    data = bytes(8)
    assert wire.frame(data) == b"\x02" + data


def test_frame_abridged_long(key):
    wire = Wire(FakeConn(), key, False, lambda f: None)
    data = bytes(0x7F * 4)
    framed = wire.frame(data)
    assert framed[:4] == b"\x7f\x7f\x00\x00"
    assert framed[4:] == data


def test_frame_intermediate(key):
    wire = Wire(FakeConn(), key, True, lambda f: None)
    data = b"abcdefgh"
    framed = wire.frame(data)
    assert int.from_bytes(framed[:4], "little") == len(data)
    assert framed[4:] == data


def test_make_auth_key_sends_req_pq(key):
    conn = FakeConn([b"reply"])
    wire = Wire(conn, key, False, lambda f: None)
    wire.make_auth_key()
    assert len(conn.sent) == 1
    framed = conn.sent[0]
    body = framed[1:]
    assert framed[0] == len(body) // 4
    assert body[:8] == bytes(8)
    assert int.from_bytes(body[16:20], "little") == len(body) - 20
    assert int.from_bytes(body[20:24], "little") == Constructor.REQ_PQ
    assert body[24:] == wire.client_nonce
    assert wire.responses.get_nowait() == b"reply"


def test_send_failure_queues_nothing(key):
    wire = Wire(BrokenConn([b"reply"]), key, False, lambda f: None)
    assert wire.send(b"data") is False
    assert wire.responses.empty()


def test_res_pq_answers_with_req_dh(key):
    conn = FakeConn()
    wire = Wire(conn, key, False, lambda f: None)
    wire.client_nonce = CLIENT_NONCE
    message = res_pq_message()
    assert wire.try_decode(b"\x00" + message, 1) is True

    assert wire.server_nonce == SERVER_NONCE
    assert wire.res_pq_stream == message
    assert len(conn.sent) == 1
    body = conn.sent[0][1:][20:]
    assert int.from_bytes(body[:4], "little") == Constructor.REQ_DH
    assert body[4:20] == CLIENT_NONCE
    assert body[20:36] == SERVER_NONCE
    assert body[36] == 2 and body[44] == 2
    factors = {int.from_bytes(body[37:39], "big"), int.from_bytes(body[45:47], "big")}
    assert factors == {P, Q}
    assert body[52:60] == rsa_fingerprint(key)
    assert body[60] == 0xFE
    assert int.from_bytes(body[61:64], "little") == 256
    assert len(body) == 64 + 256

    p = body[37:39]
    q = body[45:47]
    inner = inner_data_payload(PQ.to_bytes(3, "big"), p, q, CLIENT_NONCE, SERVER_NONCE, wire.new_nonce)
    hashed = (hashlib.sha1(inner).digest() + inner).ljust(255, b"\0")
    assert body[64:] == rsa_encrypt(hashed, key)


def test_res_pq_with_prime_pq_raises(key):
    wire = Wire(FakeConn(), key, False, lambda f: None)
    wire.client_nonce = CLIENT_NONCE
    with pytest.raises(ValueError):
        wire.process_res_pq(res_pq_message(P), CLIENT_NONCE)


def test_server_dh_params_ok_decrypts(key):
    conn = FakeConn()
    wire = Wire(conn, key, False, lambda f: None)
    wire.new_nonce = bytes(range(32))
    wire.res_pq_stream = bytes(40) + SERVER_NONCE + bytes(20)
    aes_key, _ = gen_tmp_keys(wire.new_nonce, SERVER_NONCE)
    iv = bytes(range(16))
    plain = b"\xba\x0d\x89\xb5" + b"answer body bytes"
    encryptor = Cipher(algorithms.AES(aes_key), modes.CFB(iv)).encryptor()
    encrypted = iv + encryptor.update(plain) + encryptor.finalize()
    message = (
        bytes(20)
        + Constructor.SERVER_DH_PARAMS_OK.to_bytes(4, "little")
        + CLIENT_NONCE
        + SERVER_NONCE
        + encrypted
    )
    assert wire.process_server_dh_params_ok(message, wire.new_nonce, SERVER_NONCE) == plain
    assert wire.try_decode(b"\x00" + message, 1) is True
    assert conn.sent == []


def test_unknown_five_byte_stream_schedules_retry(key):
    conn = FakeConn()
    scheduled = []
    wire = Wire(conn, key, False, scheduled.append)
    assert wire.process_response(bytes(5)) is False
    assert len(scheduled) == 5
    scheduled[-1]()
    assert len(conn.sent) == 1
    assert int.from_bytes(conn.sent[0][21:25], "little") == Constructor.REQ_PQ


def test_unknown_longer_stream_does_not_retry(key):
    scheduled = []
    wire = Wire(FakeConn(), key, False, scheduled.append)
    assert wire.process_response(bytes(40)) is False
    assert scheduled == []


def test_process_response_finds_res_pq(key):
    conn = FakeConn()
    wire = Wire(conn, key, False, lambda f: None)
    wire.client_nonce = CLIENT_NONCE
    assert wire.process_response(b"\x00" + res_pq_message()) is True
    assert len(conn.sent) == 1


def test_processor_thread_handles_queued_response(key):
    conn = FakeConn()
    wire = Wire(conn, key, False, lambda f: None)
    wire.client_nonce = CLIENT_NONCE
    thread = wire.start_processor()
    wire.responses.put(b"\x00" + res_pq_message())
    deadline = time.monotonic() + 10
    while not conn.sent and time.monotonic() < deadline:
        time.sleep(0.01)
    assert thread.daemon is True
    assert len(conn.sent) == 1
    assert int.from_bytes(conn.sent[0][21:25], "little") == Constructor.REQ_DH