"""
Base62 conversion between 32-bit fingerprints and short codes.

The alphabet order is part of the public contract: every short code ever
issued depends on it, so it must never be permuted.
"""

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
BASE = len(ALPHABET)
MAX_VALUE = 2**32 - 1

_INDEX = {char: i for i, char in enumerate(ALPHABET)}


def encode(n: int) -> str:
    """
    Converts an unsigned 32-bit integer into its shortest base62 string.
    Zero is the single character "0".
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError("Input must be an integer")
    if not 0 <= n <= MAX_VALUE:
        raise ValueError("Input must be an unsigned 32-bit integer")
    if n == 0:
        return ALPHABET[0]

    result = []
    while n > 0:
        n, remainder = divmod(n, BASE)
        result.append(ALPHABET[remainder])
    return "".join(reversed(result))


def decode(code: str) -> int:
    """Converts a base62 short code back to its integer value."""
    if not code:
        raise ValueError("Short code cannot be empty")
    n = 0
    for char in code:
        try:
            n = n * BASE + _INDEX[char]
        except KeyError:
            raise ValueError(f"Invalid short code character: {char!r}") from None
    return n
