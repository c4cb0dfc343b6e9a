"""
Masked Signature Matching

Header signatures are stored as (pattern, mask) byte pairs. A buffer byte
matches when (byte & mask) == pattern, so a mask byte of 0x00 turns the
corresponding position into a wildcard.
"""

from typing import Optional


FULL_MASK = 0xFF


class Signature:
    """A fixed-length header pattern with a per-byte mask."""

    def __init__(self, pattern: bytes, mask: Optional[bytes] = None):
        """
        Initialize a signature.

        Args:
            pattern: Expected header bytes (wildcard positions should be 0x00)
            mask: Mask bytes, same length as pattern. Defaults to all 0xFF
                  (an exact match).
        """
        pattern = bytes(pattern)
        mask = bytes(mask) if mask is not None else bytes([FULL_MASK]) * len(pattern)

        if not pattern:
            raise ValueError("Signature pattern must not be empty")
        if len(mask) != len(pattern):
            raise ValueError(
                f"Signature mask length {len(mask)} does not match "
                f"pattern length {len(pattern)}"
            )

        self.pattern = pattern
        self.mask = mask
        self.length = len(pattern)
        self.prefix = self._fixed_prefix()

    def __len__(self) -> int:
        return self.length

    def __repr__(self) -> str:
        return f"Signature(pattern={self.pattern.hex()}, mask={self.mask.hex()})"

    def _fixed_prefix(self) -> bytes:
        """Leading bytes that must match exactly (mask 0xFF)."""
        n = 0
        while n < self.length and self.mask[n] == FULL_MASK:
            n += 1
        return self.pattern[:n]

    def matches(self, buffer, position: int, end: Optional[int] = None) -> bool:
        """
        Check the signature against the buffer at position.

        Matching stops at the first mismatching byte. If the buffer ends
        before the whole signature could be compared, the result is False;
        no byte at or past ``end`` is read.

        Args:
            buffer: Bytes-like object (bytes, bytearray, mmap)
            position: Offset of the first byte to compare
            end: One past the last readable byte (default: len(buffer))

        Returns:
            True if every byte satisfies (buffer[i] & mask[i]) == pattern[i]
        """
        if end is None:
            end = len(buffer)

        i = 0
        pos = position
        while i < self.length and pos < end and (buffer[pos] & self.mask[i]) == self.pattern[i]:
            i += 1
            pos += 1

        return i == self.length

    def find_candidate(self, buffer, position: int, end: int) -> int:
        """
        Return the first offset >= position where this signature could match.

        Uses the fixed prefix as a search needle, so the result is a
        candidate only; callers still confirm with matches(). Returns ``end``
        when no candidate exists.
        """
        if not self.prefix:
            return position
        found = buffer.find(self.prefix, position, end)
        return end if found == -1 else found


def matches(buffer, position: int, signature: Signature, end: Optional[int] = None) -> bool:
    """Module-level shortcut for ``signature.matches(buffer, position, end)``."""
    return signature.matches(buffer, position, end)
