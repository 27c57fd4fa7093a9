"""Unencrypted handshake messages: req_pq_multi, p_q_inner_data, req_DH_params."""

from __future__ import annotations

import enum
import logging
import time

from .tl import Buffer

log = logging.getLogger(__name__)


class Constructor(enum.IntEnum):
    """TL constructor identifiers used during the key exchange."""

    SEND_CODE = 0xA677244F
    REQ_PQ = 0xBE7E8EF1
    REQ_DH = 0xD712E4BE
    RES_PQ = 0x05162463
    P_Q_INNER_DATA = 0x83C95AEC
    SERVER_DH_PARAMS_OK = 0xD0E8075C
    SERVER_DH_INNER_DATA = 0xB5890DBA


def build(body: bytes) -> bytes:
    """Wrap a body in the plain-text envelope: auth key id 0, message id, length."""
    message_id = (time.time_ns() * 2) ^ 2
    envelope = Buffer()
    envelope.put_long(0)
    envelope.put_long(message_id)
    envelope.put_int(len(body))
    envelope.extend(body)
    return bytes(envelope)


def req_dh_payload(
    nonce: bytes,
    server_nonce: bytes,
    p: bytes,
    q: bytes,
    fingerprint: int,
    encrypted: bytes,
) -> bytes:
    """Build an enveloped req_DH_params message."""
    log.info("building req_DH_params payload")
    body = Buffer()
    body.put_int(Constructor.REQ_DH)
    body.extend(nonce)
    body.extend(server_nonce)
    body.write_message(p)
    body.write_message(q)
    body.put_long(fingerprint)
    body.write_message(encrypted)
    return build(body)


def inner_data_payload(
    pq: bytes,
    p: bytes,
    q: bytes,
    nonce: bytes,
    server_nonce: bytes,
    new_nonce: bytes,
) -> bytes:
    """Build the p_q_inner_data body that gets RSA encrypted."""
    body = Buffer()
    body.put_int(Constructor.P_Q_INNER_DATA)
    body.write_message(pq)
    body.write_message(p)
    body.write_message(q)
    body.extend(nonce)
    body.extend(server_nonce)
    body.extend(new_nonce)
    return bytes(body)


def req_pq_payload(nonce: bytes) -> bytes:
    """Build an enveloped req_pq_multi message."""
    log.info("building req_pq_multi payload")
    body = Buffer()
    body.put_int(Constructor.REQ_PQ)
    body.extend(nonce)
    return build(body)