"""
File Carving Host

Maps a disk image into memory, runs the scan driver over it and persists
every fragment the detectors accept. Each fragment is hashed, written to a
per-category subdirectory and recorded in the audit log.
"""

import hashlib
import mmap
import os
import sys
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Set, TextIO

from .detectors import FOOTER_MISSING, Detector, ScanEvent
from .logger import RecoveryLogger
from .scanner import Fragment, ScanDriver


SUBDIRS = {
    'jpg': 'images',
    'png': 'images',
    'gif': 'images',
    'txt': 'text',
    'pdf': 'documents',
    'zip': 'archives',
}


class FileCarver:
    """
    Signature-based file carving host.

    Supplies the image buffer to a ScanDriver and acts as its fragment sink.
    Write failures are counted and reported; they never stop the scan.
    """

    def __init__(self,
                 detectors: Sequence[Detector],
                 output_dir: str,
                 logger: RecoveryLogger,
                 skip_idle: bool = True,
                 gzip_commands: bool = False,
                 command_stream: Optional[TextIO] = None,
                 event_callback: Optional[Callable[[ScanEvent], None]] = None,
                 saved_callback: Optional[Callable[[Fragment, Path], None]] = None):
        """
        Initialize file carver.

        Args:
            detectors: Detectors to run, in invocation order
            output_dir: Base output directory for recovered fragments
            logger: RecoveryLogger instance for audit logging
            skip_idle: Let the driver jump over positions no detector can use
            gzip_commands: Print a ``gzip <path>`` line per written fragment
            command_stream: Where gzip commands go (default: stdout)
            event_callback: Optional receiver for detector diagnostics
            saved_callback: Optional callback(fragment, path) after each
                            successful write
        """
        self.detectors = list(detectors)
        self.output_dir = Path(output_dir)
        self.logger = logger
        self.skip_idle = skip_idle
        self.gzip_commands = gzip_commands
        self.command_stream = command_stream
        self.event_callback = event_callback
        self.saved_callback = saved_callback
        self._reset_counters()

    def _reset_counters(self):
        self.recovered_count = 0
        self.unique_count = 0
        self.duplicate_count = 0
        self.write_errors = 0
        self.headers_without_footer = 0
        self.processed_bytes = 0
        self.seen_hashes: Set[str] = set()

    def _get_output_subdir(self, extension: str) -> Path:
        """Get (and create) the output subdirectory for an extension."""
        subdir = self.output_dir / SUBDIRS.get(extension.lower(), 'misc')
        subdir.mkdir(parents=True, exist_ok=True)
        return subdir

    def _save_fragment(self, fragment: Fragment) -> Path:
        """
        Write fragment bytes to disk.

        Files are named ``<ext>-fragment-<id>.<ext>``; if a file of that name
        is left over from an earlier run, a counter is appended.

        Returns:
            Path to the written file
        """
        subdir = self._get_output_subdir(fragment.extension)
        file_path = subdir / fragment.file_name

        counter = 1
        while file_path.exists():
            file_path = subdir / f"{Path(fragment.file_name).stem}_{counter}.{fragment.extension}"
            counter += 1

        with open(file_path, 'wb') as f:
            f.write(fragment.data)

        return file_path

    def _handle_fragment(self, fragment: Fragment) -> None:
        """Fragment sink for the scan driver."""
        sha256_hash = hashlib.sha256(fragment.data).hexdigest()

        is_duplicate = sha256_hash in self.seen_hashes

        try:
            saved_path = self._save_fragment(fragment)
        except OSError as e:
            self.write_errors += 1
            print(f"[-] Could not write fragment {fragment.fragment_id}: {e}", file=sys.stderr)
            return

        # seen_hashes only holds content that is on disk
        if is_duplicate:
            self.duplicate_count += 1
        else:
            self.seen_hashes.add(sha256_hash)
            self.unique_count += 1

        self.logger.log_recovery(
            fragment_id=fragment.fragment_id,
            file_type=fragment.extension,
            offset=fragment.offset,
            file_size=fragment.size,
            sha256=sha256_hash,
            file_name=str(saved_path.relative_to(self.output_dir)),
            is_duplicate=is_duplicate,
        )
        self.recovered_count += 1

        if self.saved_callback:
            self.saved_callback(fragment, saved_path)

        if self.gzip_commands:
            print(f"gzip {saved_path}", file=self.command_stream or sys.stdout, flush=True)

    def _handle_event(self, event: ScanEvent) -> None:
        if event.kind == FOOTER_MISSING:
            self.headers_without_footer += 1
        if self.event_callback:
            self.event_callback(event)

    def _stats(self, cancelled: bool) -> Dict[str, int]:
        return {
            'total_recovered': self.recovered_count,
            'unique_files': self.unique_count,
            'duplicate_files': self.duplicate_count,
            'bytes_processed': self.processed_bytes,
            'headers_without_footer': self.headers_without_footer,
            'write_errors': self.write_errors,
            'cancelled': cancelled,
        }

    def carve_buffer(self,
                     buffer,
                     progress_callback=None,
                     should_stop: Optional[Callable[[], bool]] = None) -> Dict[str, int]:
        """
        Carve fragments out of an in-memory buffer.

        Args:
            buffer: Bytes-like object holding the raw image
            progress_callback: Optional callback function(bytes_processed, total_size)
            should_stop: Optional cancellation check

        Returns:
            Dictionary with recovery statistics
        """
        self._reset_counters()

        def on_progress(position, end):
            self.processed_bytes = position
            if progress_callback:
                progress_callback(position, end)

        driver = ScanDriver(
            self.detectors,
            sink=self._handle_fragment,
            events=self._handle_event,
            skip_idle=self.skip_idle,
        )
        result = driver.scan(buffer, progress_callback=on_progress, should_stop=should_stop)
        self.processed_bytes = result.stopped_at
        return self._stats(result.cancelled)

    def carve(self,
              image_path: str,
              progress_callback=None,
              should_stop: Optional[Callable[[], bool]] = None) -> Dict[str, int]:
        """
        Perform file carving on disk image.

        The image is memory-mapped read-only; it is never modified.

        Args:
            image_path: Path to disk image file
            progress_callback: Optional callback function(current_offset, total_size)
            should_stop: Optional callable checked between scan steps

        Returns:
            Dictionary with recovery statistics

        Raises:
            FileNotFoundError: If the image does not exist
            ValueError: If the image is empty
        """
        if not os.path.exists(image_path):
            raise FileNotFoundError(f"Disk image not found: {image_path}")

        if os.path.getsize(image_path) == 0:
            raise ValueError(f"Disk image is empty: {image_path}")

        with open(image_path, 'rb') as image_file:
            with mmap.mmap(image_file.fileno(), 0, access=mmap.ACCESS_READ) as image_data:
                return self.carve_buffer(
                    image_data,
                    progress_callback=progress_callback,
                    should_stop=should_stop,
                )
