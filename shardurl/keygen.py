"""Short identifier generation.

Keys are drawn independently at random from the 64-symbol URL-safe alphabet
with nanoid. There is no sequence counter and no uniqueness check against
the shards: with the default length of 8 there are 64^8 = 2^48 possible
keys, and a collision overwrites the earlier mapping at its shard.
"""

from nanoid import generate

__all__ = ["ALPHABET", "DEFAULT_CODE_LENGTH", "generate_short_code"]

ALPHABET = "_-0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
DEFAULT_CODE_LENGTH = 8


def generate_short_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return generate(ALPHABET, length)
