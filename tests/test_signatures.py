import random
import unittest

from carving.detectors import EXIF_HEADER, JFIF_HEADER
from carving.signatures import Signature, matches
from tests.samples import EXIF_PREFIX, JFIF_PREFIX


class GuardedBuffer:
    """Bytes wrapper that fails the test on any read at or past ``limit``."""

    def __init__(self, data, limit):
        self.data = data
        self.limit = limit

    def __len__(self):
        return len(self.data)

    def __getitem__(self, index):
        if index >= self.limit:
            raise AssertionError(f"read past end bound at {index}")
        return self.data[index]


class TestSignature(unittest.TestCase):
    def test_exact_match(self):
        sig = Signature(b'%PDF-')
        self.assertTrue(sig.matches(b'xx%PDF-1.4', 2))
        self.assertFalse(sig.matches(b'xx%PDF-1.4', 1))

    def test_wildcard_bytes_accept_any_value(self):
        for value in range(256):
            data = bytearray(JFIF_PREFIX)
            data[4] = value
            data[5] = 255 - value
            self.assertTrue(JFIF_HEADER.matches(bytes(data), 0))

    def test_mismatch_in_last_byte(self):
        data = bytearray(JFIF_PREFIX)
        data[-1] = 0x02
        self.assertFalse(JFIF_HEADER.matches(bytes(data), 0))

    def test_variants_are_distinct(self):
        self.assertTrue(EXIF_HEADER.matches(EXIF_PREFIX, 0))
        self.assertFalse(JFIF_HEADER.matches(EXIF_PREFIX, 0))
        self.assertFalse(EXIF_HEADER.matches(JFIF_PREFIX, 0))

    def test_short_window_is_false(self):
        self.assertFalse(JFIF_HEADER.matches(JFIF_PREFIX[:-1], 0))
        self.assertFalse(JFIF_HEADER.matches(b'', 0))

    def test_end_bound_is_respected(self):
        data = JFIF_PREFIX + b'\x00' * 8
        limit = len(JFIF_PREFIX) - 1
        guarded = GuardedBuffer(data, limit)
        self.assertFalse(JFIF_HEADER.matches(guarded, 0, limit))

    def test_full_window_inside_bound_reads_only_inside(self):
        guarded = GuardedBuffer(JFIF_PREFIX + b'\xFF', len(JFIF_PREFIX))
        self.assertTrue(JFIF_HEADER.matches(guarded, 0, len(JFIF_PREFIX)))

    def test_matches_agrees_with_masked_equality(self):
        rng = random.Random(1234)
        for _ in range(500):
            length = rng.randint(1, 8)
            mask = bytes(rng.choice([0x00, 0xFF, 0xF0, 0x0F]) for _ in range(length))
            pattern = bytes(rng.randrange(256) & m for m in mask)
            window = bytes(rng.randrange(256) for _ in range(length))
            if rng.random() < 0.5:
                # force a match on half the cases
                window = bytes((w & ~m) | p for w, m, p in zip(window, mask, pattern))
            expected = all((w & m) == p for w, m, p in zip(window, mask, pattern))
            self.assertEqual(Signature(pattern, mask).matches(window, 0), expected)

    def test_module_level_matches(self):
        self.assertTrue(matches(b'GIF89a', 0, Signature(b'GIF89a')))

    def test_invalid_signatures(self):
        with self.assertRaises(ValueError):
            Signature(b'')
        with self.assertRaises(ValueError):
            Signature(b'abc', b'\xFF\xFF')

    def test_prefix_and_candidate_search(self):
        self.assertEqual(JFIF_HEADER.prefix, b'\xFF\xD8\xFF\xE0')
        data = b'\x00' * 10 + JFIF_PREFIX
        self.assertEqual(JFIF_HEADER.find_candidate(data, 0, len(data)), 10)
        self.assertEqual(JFIF_HEADER.find_candidate(data, 11, len(data)), len(data))

    def test_prefix_empty_when_first_byte_is_wildcard(self):
        sig = Signature(b'\x00A', b'\x00\xFF')
        self.assertEqual(sig.prefix, b'')
        self.assertEqual(sig.find_candidate(b'zzzz', 2, 4), 2)


if __name__ == '__main__':
    unittest.main()
