"""Command line entry point: connect and run the key exchange."""

from __future__ import annotations

import argparse
import logging
import socket
import sys
from pathlib import Path

from .crypto import load_public_key
from .debouncer import register
from .wire import Wire

log = logging.getLogger(__name__)

DEFAULT_SERVER = "149.154.167.50:443"
DEFAULT_KEY_FILE = "tg_pk.pem"
DEBOUNCE_DELAY = 0.1


def load_key(path):
    """Read the server's RSA public key from a PEM file."""
    return load_public_key(Path(path).read_bytes())


def _parse_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"invalid server address: {address!r}")
    return host, int(port)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the auth key exchange with a server.")
    parser.add_argument("--server", default=DEFAULT_SERVER, help="host:port to connect to")
    parser.add_argument("--key", default=DEFAULT_KEY_FILE, help="PEM file with the server key")
    parser.add_argument(
        "--intermediate", action="store_true", help="use the intermediate transport"
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    try:
        host, port = _parse_address(args.server)
        key = load_key(args.key)
    except (OSError, ValueError) as exc:
        log.error("%s", exc)
        return 1

    debounce = register(DEBOUNCE_DELAY)
    try:
        conn = socket.create_connection((host, port))
    except OSError as exc:
        log.error("err %s", exc)
        return 1

    with conn:
        wire = Wire(conn, key, args.intermediate, debounce)
        processor = wire.start_processor()
        wire.define_mode()
        wire.make_auth_key()
        processor.join()
    return 0


if __name__ == "__main__":
    sys.exit(main())