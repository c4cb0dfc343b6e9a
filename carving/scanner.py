"""
Scan Driver

Walks a buffer one position at a time and offers every position to every
registered detector, in a fixed order. Accepted spans are numbered with a
per-driver fragment id and handed to the host's sink.

With skip_idle enabled the driver asks each detector for its next candidate
position and jumps straight there. Every skipped position is one where no
detector could emit anything, so the fragments produced are the same as with
plain unit stepping.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .detectors import Detector, ScanEvent


DEFAULT_PROGRESS_INTERVAL = 1024 * 1024


@dataclass(frozen=True)
class Fragment:
    """A span accepted by a detector, numbered and sliced out of the buffer."""
    fragment_id: int
    offset: int
    end: int
    extension: str
    detector: str
    data: bytes

    @property
    def size(self) -> int:
        return self.end - self.offset

    @property
    def file_name(self) -> str:
        return f"{self.extension}-fragment-{self.fragment_id}.{self.extension}"


@dataclass
class ScanResult:
    start: int
    end: int
    positions_visited: int = 0
    fragments_emitted: int = 0
    last_fragment_id: int = 0
    cancelled: bool = False
    stopped_at: int = 0


class ScanDriver:
    """
    Byte-by-byte scan over a read-only buffer.

    The driver owns the fragment id counter. Ids are never reset, so calling
    scan() again on the same driver continues the sequence.
    """

    def __init__(self,
                 detectors: Sequence[Detector],
                 sink: Callable[[Fragment], None],
                 events: Optional[Callable[[ScanEvent], None]] = None,
                 skip_idle: bool = True,
                 progress_interval: int = DEFAULT_PROGRESS_INTERVAL):
        """
        Args:
            detectors: Detectors in invocation order
            sink: Called once per accepted span with the numbered Fragment
            events: Optional receiver for advisory detector events
            skip_idle: Jump over positions where no detector can fire
            progress_interval: Minimum number of bytes between progress
                               callbacks
        """
        if not detectors:
            raise ValueError("At least one detector is required")
        self.detectors: List[Detector] = list(detectors)
        self.sink = sink
        self.events = events
        self.skip_idle = skip_idle
        self.progress_interval = max(1, progress_interval)
        self.fragment_id = 0

    @staticmethod
    def _check_bounds(buffer, start: int, end: Optional[int]) -> int:
        if buffer is None:
            raise ValueError("Cannot scan: buffer is None")
        length = len(buffer)
        if length == 0:
            raise ValueError("Cannot scan: buffer is empty")
        if end is None:
            end = length
        if not 0 <= start < end <= length:
            raise ValueError(
                f"Cannot scan: invalid bounds start={start} end={end} (buffer length {length})"
            )
        return end

    def _emit(self, buffer, span, detector: Detector) -> Fragment:
        self.fragment_id += 1
        fragment = Fragment(
            fragment_id=self.fragment_id,
            offset=span.start,
            end=span.end,
            extension=span.extension,
            detector=detector.name,
            data=bytes(buffer[span.start:span.end]),
        )
        self.sink(fragment)
        return fragment

    def step(self, buffer, position: int, end: int) -> int:
        """
        Offer one position to every detector.

        Returns:
            Number of fragments emitted at this position
        """
        emitted = 0
        for detector in self.detectors:
            span = detector.detect(buffer, position, end, self.events)
            if span is not None:
                self._emit(buffer, span, detector)
                emitted += 1
        return emitted

    def _next_position(self, buffer, position: int, end: int) -> int:
        if not self.skip_idle:
            return position
        return min(d.next_candidate(buffer, position, end) for d in self.detectors)

    def scan(self,
             buffer,
             start: int = 0,
             end: Optional[int] = None,
             progress_callback: Optional[Callable[[int, int], None]] = None,
             should_stop: Optional[Callable[[], bool]] = None) -> ScanResult:
        """
        Scan buffer[start:end].

        Args:
            buffer: Read-only bytes-like object (bytes, bytearray, mmap)
            start: First position to examine
            end: One past the last position (default: len(buffer))
            progress_callback: Optional callback(position, end)
            should_stop: Optional callable checked between steps; returning
                         True cancels the scan

        Returns:
            ScanResult describing the run

        Raises:
            ValueError: If the buffer is None/empty or the bounds are invalid
        """
        end = self._check_bounds(buffer, start, end)

        for detector in self.detectors:
            detector.reset(start)

        result = ScanResult(start=start, end=end)
        next_report = start + self.progress_interval
        position = start

        while True:
            if should_stop is not None and should_stop():
                result.cancelled = True
                break

            position = self._next_position(buffer, position, end)
            if position >= end:
                position = end
                break

            result.fragments_emitted += self.step(buffer, position, end)
            result.positions_visited += 1
            position += 1

            if progress_callback is not None and position >= next_report:
                progress_callback(position, end)
                next_report = position + self.progress_interval

        result.stopped_at = position
        result.last_fragment_id = self.fragment_id
        if progress_callback is not None and not result.cancelled:
            progress_callback(end, end)
        return result
