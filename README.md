# mtproto-handshake

A small client for the first steps of the MTProto authorization-key
exchange. It opens a TCP connection to a server, announces the transport
mode, sends `req_pq_multi`, factorizes the server's `pq` value, answers with
an RSA-encrypted `req_DH_params`, and decrypts the encrypted answer of the
`server_DH_params_ok` reply.

## Installation

```
pip install .
```

The only runtime dependency is `cryptography`.

## Running the handshake

Put the server's RSA public key, as a PEM file, in `tg_pk.pem` in the
current directory, then run:

```
mtproto-handshake
```

Options:

- `--server HOST:PORT` – server to connect to (default `149.154.167.50:443`).
- `--key PATH` – PEM file with the server's RSA public key (default `tg_pk.pem`).
- `--intermediate` – use the intermediate transport instead of the abridged one.

Progress is written to the log at INFO level. If the server address is
malformed, the key file cannot be read or holds no RSA public key, or the
connection fails, the error is logged and the command exits with status 1.
Otherwise it keeps running, handling replies on a background thread, until
it is interrupted.

## What it does not do

The exchange stops after the `server_DH_params_ok` answer has been decrypted
and a few of its bytes logged. The package does not complete the
Diffie–Hellman step, does not compute or store an authorization key, and does
not send or receive encrypted messages or make any API calls.

## Using the pieces

- `mtproto_handshake.tl` – `Buffer`, a `bytearray` with `put_int`,
  `put_long`, `put_uint64`, `put_int128` (a 64-bit value widened with zero
  bytes) and `write_message` (TL byte-string encoding); plus `nonce()` and
  `new_nonce()`, which return the minimal big-endian bytes of a random value
  below `26**26` and `46**46` respectively.
- `mtproto_handshake.pq` – `brent(n, start, c)` splits a number into prime
  factors with Pollard–Brent, returning `[n]` for a prime and `[]` if no
  factor is found within its budget; `is_probable_prime(n, rounds)` is the
  Miller–Rabin check it relies on.

  ```python
  from mtproto_handshake.pq import brent

  brent(378221, 10, 10)   # [613, 617]
  ```

- `mtproto_handshake.crypto` – `gen_tmp_keys(new_nonce, server_nonce)`
  derives the temporary AES key and IV; `aes_decrypt(key, iv, data)`
  decrypts AES-CFB data whose first 16 bytes carry the IV (the `iv`
  argument is not used); `rsa_encrypt(data, key)` performs raw RSA into a
  256-byte field; `rsa_fingerprint(key)` returns the low 8 bytes of the
  SHA-1 of the TL-serialized key; `load_public_key(pem_data)` loads an RSA
  public key from PEM text.
- `mtproto_handshake.payload` – `req_pq_payload`, `inner_data_payload`,
  `req_dh_payload`, and `build`, which wraps a body in the unencrypted
  envelope (auth key id 0, message id, length). `Constructor` holds the TL
  constructor numbers.
- `mtproto_handshake.debouncer` – `Debouncer` (`add`, calling it directly,
  `cancel`) and `register(delay)`: run only the last of a burst of callbacks
  once `delay` seconds have passed.
- `mtproto_handshake.wire` – `Wire`, the connection and exchange state
  (`define_mode`, `make_auth_key`, `start_processor`, `process_response`,
  `try_decode`, `process_res_pq`, `process_server_dh_params_ok`, `frame`,
  `send`), and `Mode`, the abridged or intermediate transport with its
  `marker` and `pad`.
- `mtproto_handshake.cli` – `main(argv=None)` and `load_key(path)`.

## Tests

```
pip install ".[test]"
pytest
```