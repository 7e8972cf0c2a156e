"""
CRC-32 fingerprint of a URL's raw bytes.

Distinct URLs can share a fingerprint; detecting that is the resolver's job.
"""
import zlib

MASK = 0xFFFFFFFF


def fingerprint(data: bytes) -> int:
    """Returns the IEEE CRC-32 checksum of `data` as an unsigned 32-bit int."""
    return zlib.crc32(data) & MASK

