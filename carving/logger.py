"""
Audit Logging for Recovered Fragments

Append-only CSV log recording every fragment written during a scan, so a
recovery run can be audited and reproduced.
"""

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict


AUDIT_LOG_NAME = 'recovery_audit_log.csv'


class RecoveryLogger:
    """
    Audit logger for recovery operations.

    Each log entry records:
    - Timestamp of recovery
    - Fragment id
    - File type (fragment extension)
    - Byte offset in the source image
    - Fragment size
    - SHA-256 hash
    - Output file name
    - Whether the content duplicates an earlier fragment
    """

    CSV_COLUMNS = [
        'timestamp',
        'fragment_id',
        'file_type',
        'offset_hex',
        'file_size',
        'sha256',
        'file_name',
        'is_duplicate',
    ]

    def __init__(self, log_file_path: str):
        """
        Initialize recovery logger.

        Args:
            log_file_path: Path to CSV log file (will be created if it doesn't exist)

        Raises:
            ValueError: If the file exists but is not a fragment audit log
        """
        self.log_file_path = Path(log_file_path)
        self._ensure_log_file()

    def _ensure_log_file(self):
        """Create log file with headers if it doesn't exist."""
        if not self.log_file_path.exists() or self.log_file_path.stat().st_size == 0:
            self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file_path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=self.CSV_COLUMNS)
                writer.writeheader()
            return

        with open(self.log_file_path, 'r', newline='', encoding='utf-8') as f:
            header = next(csv.reader(f), [])
        if header != self.CSV_COLUMNS:
            raise ValueError(f"Not a fragment audit log: {self.log_file_path}")

    def log_recovery(self,
                     fragment_id: int,
                     file_type: str,
                     offset: int,
                     file_size: int,
                     sha256: str,
                     file_name: str,
                     is_duplicate: bool = False) -> None:
        """
        Append one recovered fragment to the audit log.

        Args:
            fragment_id: Sequence number assigned by the scan driver
            file_type: Fragment extension (e.g., 'jpg', 'txt')
            offset: Byte offset of the fragment in the source image
            file_size: Size of the fragment in bytes
            sha256: SHA-256 hash of the fragment
            file_name: Name of the written file, relative to the output directory
            is_duplicate: Whether identical content was already recovered
        """
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'fragment_id': fragment_id,
            'file_type': file_type,
            'offset_hex': f'0x{offset:X}',
            'file_size': file_size,
            'sha256': sha256,
            'file_name': file_name,
            'is_duplicate': 'Yes' if is_duplicate else 'No',
        }

        with open(self.log_file_path, 'a', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=self.CSV_COLUMNS)
            writer.writerow(log_entry)

    def get_log_stats(self) -> Dict[str, int]:
        """
        Get statistics from the log file.

        Returns:
            Dictionary with counts by file type
        """
        stats: Dict[str, int] = {}
        try:
            with open(self.log_file_path, 'r', encoding='utf-8') as f:
                reader = csv.DictReader(f)
                for row in reader:
                    file_type = row['file_type']
                    stats[file_type] = stats.get(file_type, 0) + 1
        except (IOError, OSError):
            pass
        return stats
