import csv
import tempfile
import unittest
from pathlib import Path

from carving.logger import AUDIT_LOG_NAME, RecoveryLogger
from carving.reports import (
    export_summary_to_csv,
    generate_recovery_summary,
    load_recovery_results,
)


class TestRecoveryLogger(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.TemporaryDirectory()
        self.log_path = Path(self.test_dir.name) / AUDIT_LOG_NAME

    def tearDown(self):
        self.test_dir.cleanup()

    def test_creates_header(self):
        RecoveryLogger(str(self.log_path))
        with open(self.log_path, newline='', encoding='utf-8') as f:
            self.assertEqual(next(csv.reader(f)), RecoveryLogger.CSV_COLUMNS)

    def test_appends_to_existing_log(self):
        RecoveryLogger(str(self.log_path)).log_recovery(1, 'jpg', 0, 10, 'a' * 64, 'images/jpg-fragment-1.jpg')
        RecoveryLogger(str(self.log_path)).log_recovery(2, 'txt', 255, 2000, 'b' * 64, 'text/txt-fragment-2.txt')

        with open(self.log_path, newline='', encoding='utf-8') as f:
            rows = list(csv.DictReader(f))
        self.assertEqual([r['fragment_id'] for r in rows], ['1', '2'])
        self.assertEqual(rows[1]['offset_hex'], '0xFF')

    def test_rejects_foreign_csv(self):
        self.log_path.write_text('name,size\nfoo,1\n', encoding='utf-8')
        with self.assertRaises(ValueError):
            RecoveryLogger(str(self.log_path))

    def test_log_stats(self):
        logger = RecoveryLogger(str(self.log_path))
        logger.log_recovery(1, 'jpg', 0, 10, 'a' * 64, 'x')
        logger.log_recovery(2, 'jpg', 10, 10, 'a' * 64, 'y', is_duplicate=True)
        logger.log_recovery(3, 'txt', 20, 1024, 'c' * 64, 'z')
        self.assertEqual(logger.get_log_stats(), {'jpg': 2, 'txt': 1})


class TestReports(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.test_dir.name)
        self.log_path = self.root / AUDIT_LOG_NAME

        images = self.root / 'images'
        images.mkdir()
        (images / 'jpg-fragment-1.jpg').write_bytes(b'\xFF' * 100)

        logger = RecoveryLogger(str(self.log_path))
        logger.log_recovery(1, 'jpg', 0x200, 100, 'a' * 64, str(Path('images') / 'jpg-fragment-1.jpg'))
        logger.log_recovery(2, 'jpg', 0x400, 100, 'a' * 64, str(Path('images') / 'jpg-fragment-2.jpg'),
                            is_duplicate=True)
        logger.log_recovery(3, 'txt', 0x800, 4096, 'b' * 64, str(Path('text') / 'txt-fragment-3.txt'))

    def tearDown(self):
        self.test_dir.cleanup()

    def test_summary(self):
        summary = generate_recovery_summary(str(self.log_path))
        self.assertEqual(summary['total_files'], 3)
        self.assertEqual(summary['unique_files'], 2)
        self.assertEqual(summary['duplicate_count'], 1)
        self.assertEqual(summary['total_size'], 4296)
        self.assertEqual(summary['largest_fragment'], 4096)
        self.assertEqual(summary['by_type'], {'jpg': 2, 'txt': 1})

    def test_summary_of_missing_log(self):
        summary = generate_recovery_summary(str(self.root / 'missing.csv'))
        self.assertEqual(summary['total_files'], 0)
        self.assertEqual(summary['by_type'], {})

    def test_export(self):
        out = self.root / 'summary.csv'
        export_summary_to_csv(generate_recovery_summary(str(self.log_path)), str(out))
        with open(out, newline='', encoding='utf-8') as f:
            rows = [r for r in csv.reader(f) if r]
        self.assertEqual(rows[0], ['Metric', 'Value'])
        self.assertIn(['Total Fragments Recovered', '3'], rows)
        self.assertIn(['jpg', '2'], rows)
        self.assertIn(['txt', '1'], rows)

    def test_load_results(self):
        results = load_recovery_results(str(self.log_path))
        self.assertEqual([r['fragment_id'] for r in results], [1, 2, 3])

        first = results[0]
        self.assertEqual(first['file_name'], 'jpg-fragment-1.jpg')
        self.assertEqual(first['offset'], '0x200')
        self.assertEqual(first['size'], 100)
        self.assertFalse(first['duplicate'])
        self.assertTrue(first['file_path'].endswith('jpg-fragment-1.jpg'))

        self.assertTrue(results[1]['duplicate'])
        # Fragments 2 and 3 were never written in this fixture
        self.assertEqual(results[1]['file_path'], '')
        self.assertEqual(results[2]['file_path'], '')

    def test_load_results_missing_log(self):
        self.assertEqual(load_recovery_results(str(self.root / 'missing.csv')), [])


if __name__ == '__main__':
    unittest.main()
