"""Factorisation of the server's pq value with Brent's variant of Pollard's rho."""

from __future__ import annotations

import math
import secrets

_SMALL_PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41)
_MAX_TERMS = 1 << 16
_WARMUP = 1000
_GCD_EVERY = 16
_PRIME_ROUNDS = 10


def _passes(base: int, d: int, s: int, n: int) -> bool:
    x = pow(base, d, n)
    if x in (1, n - 1):
        return True
    for _ in range(s - 1):
        x = pow(x, 2, n)
        if x == n - 1:
            return True
    return False


def is_probable_prime(n: int, rounds: int) -> bool:
    """Miller-Rabin test with fixed small bases plus `rounds` random bases."""
    if rounds < 0:
        raise ValueError(f"negative number of rounds: {rounds}")
    if n < 2:
        return False
    for prime in _SMALL_PRIMES:
        if n % prime == 0:
            return n == prime
    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1
    bases = [*_SMALL_PRIMES, *(secrets.randbelow(n - 3) + 2 for _ in range(rounds))]
    return all(_passes(base, d, s, n) for base in bases)


def brent(n: int, start: int, c: int) -> list[int]:
    """Split n into prime factors, returning them in discovery order.

    Returns an empty list if no factor is found within the term budget and
    n is not prime.
    """
    if is_probable_prime(n, _PRIME_ROUNDS):
        return [n]

    x1 = start
    x2 = start * start + c
    for _ in range(_WARMUP):
        x2 = pow(x2, 2, n) + c

    limit = 1
    product = 1
    terms = 0
    while terms < _MAX_TERMS:
        for _ in range(limit):
            x2 = pow(x2, 2, n) + c
            if x1 == x2:
                break
            product *= x1 - x2
            terms += 1
            if terms % _GCD_EVERY == 0:
                divisor = math.gcd(n, product)
                if divisor not in (n, 1):
                    return brent(n // divisor, start, c) + brent(divisor, start, c)
                product = 1
        x1 = x2
        limit *= 2
        for _ in range(limit):
            x2 = pow(x2, 2, n) + c

    if n != 1 and is_probable_prime(n, _PRIME_ROUNDS):
        return [n]
    return []