"""Client side of the first steps of the MTProto authorization-key exchange."""

__version__ = "0.1.0"