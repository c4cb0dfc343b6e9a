import mmap
import tempfile
import unittest
from pathlib import Path

from carving.detectors import FOOTER_MISSING, get_detectors_by_types
from carving.scanner import ScanDriver
from tests.samples import JFIF_PREFIX, jpeg_block, noise, text_block


class SearchCountingBuffer(bytes):
    """Bytes that tally how many bytes find() walked over."""

    searched = 0

    def find(self, sub, start=0, end=None):
        found = super().find(sub, start, end)
        stop = len(self) if end is None else end
        self.searched += (stop if found == -1 else found) - start
        return found


def mixed_image():
    """Text runs (long and short), JPEGs (one multi-part, one behind an orphan header)."""
    multipart = (JFIF_PREFIX + b'\x00' * 10 + b'\xFF\xD9\xFF\xE1'
                 + b'\x00' * 10 + b'\xFF\xD9')
    return (
        noise(33)
        + text_block(1500, b'x')
        + noise(5)
        + jpeg_block(200)
        + text_block(300)
        + noise(7)
        + multipart
        + noise(11)
        + JFIF_PREFIX + noise(40)
        + text_block(1024, b'q')
        + jpeg_block(90, exif=True)
        + noise(3)
    )


class TestScanDriver(unittest.TestCase):
    def setUp(self):
        self.fragments = []
        self.events = []

    def driver(self, types=('jpg', 'txt'), **kwargs):
        return ScanDriver(
            get_detectors_by_types(list(types)),
            sink=self.fragments.append,
            events=self.events.append,
            **kwargs
        )

    def test_text_then_jpeg_end_to_end(self):
        data = text_block(2000) + jpeg_block(100)
        result = self.driver().scan(data)

        self.assertEqual(len(self.fragments), 2)
        text, jpeg = self.fragments
        self.assertEqual((text.extension, text.offset, text.end), ('txt', 0, 2000))
        self.assertGreaterEqual(text.size, 1024)
        self.assertEqual((jpeg.extension, jpeg.offset, jpeg.end), ('jpg', 2000, 2100))
        self.assertEqual(jpeg.data, data[2000:2100])
        self.assertEqual(result.fragments_emitted, 2)
        self.assertFalse(result.cancelled)

    def test_end_to_end_with_all_detectors(self):
        data = text_block(2000) + jpeg_block(100)
        self.driver(types=()).scan(data)
        self.assertEqual([f.extension for f in self.fragments], ['txt', 'jpg'])

    def test_fragment_ids_are_sequential(self):
        result = self.driver().scan(mixed_image())
        ids = [f.fragment_id for f in self.fragments]
        self.assertEqual(ids, list(range(1, len(ids) + 1)))
        self.assertEqual(result.last_fragment_id, len(ids))
        self.assertEqual(len(ids), 6)

    def test_ids_continue_across_scans(self):
        driver = self.driver()
        driver.scan(mixed_image())
        first = len(self.fragments)
        driver.scan(mixed_image())
        ids = [f.fragment_id for f in self.fragments]
        self.assertEqual(ids, list(range(1, 2 * first + 1)))

    def test_fast_forward_matches_unit_stepping(self):
        data = mixed_image()
        self.driver(skip_idle=False).scan(data)
        unit = [(f.extension, f.offset, f.end) for f in self.fragments]

        self.fragments.clear()
        result = self.driver(skip_idle=True).scan(data)
        fast = [(f.extension, f.offset, f.end) for f in self.fragments]

        self.assertEqual(fast, unit)
        self.assertLess(result.positions_visited, len(data))

    def test_fast_forward_on_short_runs_searches_linearly(self):
        size = 20000
        data = SearchCountingBuffer(b'A\x00' * (size // 2))

        unit = self.driver(types=(), skip_idle=False).scan(data)
        unit_fragments = len(self.fragments)
        data.searched = 0
        fast = self.driver(types=(), skip_idle=True).scan(data)

        self.assertEqual(len(self.fragments), 2 * unit_fragments)
        self.assertLessEqual(fast.positions_visited, unit.positions_visited)
        # 7 header variants, each searched once over the buffer
        self.assertLessEqual(data.searched, 8 * size)

    def test_candidate_memo_cleared_between_scans(self):
        driver = self.driver(types=['jpg'])
        driver.scan(noise(40) + jpeg_block(60))
        driver.scan(jpeg_block(60) + noise(40))
        self.assertEqual([(f.offset, f.end) for f in self.fragments], [(40, 100), (0, 60)])

    def test_unit_stepping_visits_every_position(self):
        data = noise(64)
        result = self.driver(skip_idle=False).scan(data)
        self.assertEqual(result.positions_visited, 64)
        self.assertEqual(result.stopped_at, 64)

    def test_multipart_jpeg_kept_whole(self):
        self.driver(types=['jpg']).scan(mixed_image())
        sizes = sorted(f.size for f in self.fragments)
        self.assertIn(12 + 10 + 4 + 10 + 2, sizes)

    def test_headless_footer_reported(self):
        self.driver().scan(mixed_image())
        self.assertEqual(sum(1 for e in self.events if e.kind == FOOTER_MISSING), 0)

        self.events.clear()
        self.driver().scan(JFIF_PREFIX + noise(40))
        self.assertEqual([e.kind for e in self.events if e.kind == FOOTER_MISSING], [FOOTER_MISSING])

    def test_nested_header_is_reported_again(self):
        # A thumbnail inside a JPEG is a separate candidate
        inner = jpeg_block(40)
        outer = JFIF_PREFIX + b'\x00' * 8 + inner + b'\x00' * 8 + b'\xFF\xD9'
        self.driver(types=['jpg']).scan(outer)
        spans = [(f.offset, f.end) for f in self.fragments]
        self.assertEqual(spans, [(0, 20 + 40), (20, 60)])

    def test_sub_range(self):
        data = text_block(2000) + jpeg_block(100)
        self.driver().scan(data, start=500, end=2050)
        self.assertEqual([(f.offset, f.end) for f in self.fragments], [(500, 2000)])

    def test_buffer_not_modified(self):
        data = bytearray(mixed_image())
        copy = bytes(data)
        self.driver(types=()).scan(data)
        self.assertEqual(bytes(data), copy)

    def test_invalid_buffers(self):
        driver = self.driver()
        for bad in (None, b'', bytearray()):
            with self.assertRaises(ValueError):
                driver.scan(bad)
        with self.assertRaises(ValueError):
            driver.scan(b'abc', start=2, end=2)
        with self.assertRaises(ValueError):
            driver.scan(b'abc', end=4)

    def test_requires_detectors(self):
        with self.assertRaises(ValueError):
            ScanDriver([], sink=self.fragments.append)

    def test_cancellation(self):
        calls = []

        def should_stop():
            calls.append(1)
            return len(calls) > 10

        result = self.driver(skip_idle=False).scan(noise(1000), should_stop=should_stop)
        self.assertTrue(result.cancelled)
        self.assertEqual(result.positions_visited, 10)
        self.assertEqual(result.stopped_at, 10)

    def test_progress_reports(self):
        reports = []
        self.driver(progress_interval=100).scan(noise(1000), progress_callback=lambda p, e: reports.append((p, e)))
        self.assertEqual(reports[-1], (1000, 1000))
        self.assertTrue(all(e == 1000 for _, e in reports))
        self.assertEqual([p for p, _ in reports], sorted(p for p, _ in reports))

    def test_mmap_buffer(self):
        data = noise(100) + text_block(1200) + jpeg_block(64) + noise(10)
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'image.dd'
            path.write_bytes(data)
            with open(path, 'rb') as f:
                with mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ) as mm:
                    self.driver().scan(mm)
        self.assertEqual([(f.extension, f.offset, f.end) for f in self.fragments],
                         [('txt', 100, 1300), ('jpg', 1300, 1364)])
        self.assertIsInstance(self.fragments[1].data, bytes)

    def test_fragment_file_name(self):
        self.driver().scan(text_block(2000) + jpeg_block(100))
        self.assertEqual([f.file_name for f in self.fragments],
                         ['txt-fragment-1.txt', 'jpg-fragment-2.jpg'])


if __name__ == '__main__':
    unittest.main()
