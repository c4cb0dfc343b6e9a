"""
Format Detectors

Each detector decides, for a single buffer position, whether a recoverable
file starts there and where it ends. Two families are provided:

  * FooterDetector   -- header signature, then forward search for a footer
                        marker bounded by a maximum length (JPEG, PNG, ...)
  * TextRunDetector  -- no header; a maximal run of bytes in a character
                        class, accepted when long enough (plain text)

Detectors are registered by name in DETECTORS. The registry order is the
order in which the scan driver invokes them.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from .signatures import Signature


MIB = 1024 * 1024

# JPEGs are assumed never to exceed 40 MB
DEFAULT_MAX_LENGTH = 40 * MIB
DEFAULT_MIN_TEXT_LENGTH = 1024

PRINTABLE_LOW = 0x20
PRINTABLE_HIGH = 0x7E

# Diagnostic event kinds
HEADER_FOUND = 'header_found'
FOOTER_FOUND = 'footer_found'
FOOTER_MISSING = 'footer_missing'
RUN_ACCEPTED = 'run_accepted'
RUN_REJECTED = 'run_rejected'


@dataclass(frozen=True)
class Span:
    """A candidate file: [start, end) in the buffer plus its extension."""
    start: int
    end: int
    extension: str

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class ScanEvent:
    """Advisory notification emitted by a detector."""
    kind: str
    detector: str
    offset: int
    length: int = 0


def _notify(notify: Optional[Callable[[ScanEvent], None]], kind: str,
            detector: str, offset: int, length: int = 0) -> None:
    if notify is not None:
        notify(ScanEvent(kind, detector, offset, length))


class DedupCursor:
    """
    Watermark of the last byte already claimed by one detector.

    The cursor only moves forward. Positions before it have been classified
    and must not be reported again.
    """

    def __init__(self, start: int = 0):
        self.position = start

    def reset(self, start: int = 0) -> None:
        self.position = start

    def covers(self, position: int) -> bool:
        return position < self.position

    def advance(self, run_end: int) -> None:
        if run_end > self.position:
            self.position = run_end


class CandidateMemo:
    """
    Last candidate found per search key during one scan.

    A cached candidate stays valid while the scan has not moved past it, so
    every stretch of the buffer is searched at most once per key.
    """

    def __init__(self):
        self.clear()

    def clear(self) -> None:
        self._buffer = None
        self._end = None
        self._found: Dict[object, int] = {}

    def lookup(self, key, buffer, position: int, end: int,
               search: Callable[[int], int]) -> int:
        if buffer is not self._buffer or end != self._end:
            self._buffer = buffer
            self._end = end
            self._found = {}

        found = self._found.get(key)
        if found is None or found < position:
            found = search(position)
            self._found[key] = found
        return found


class Detector:
    """
    Base class for format detectors.

    Subclasses implement detect(); next_candidate() lets the scan driver
    skip positions where the detector cannot produce output.
    """

    name = 'detector'
    extension = 'bin'
    options: tuple = ()

    def reset(self, start: int = 0) -> None:
        """Clear per-scan state before a new scan starting at ``start``."""

    def configure(self, **options) -> 'Detector':
        """Override tunable attributes; unknown or None options are ignored."""
        for key, value in options.items():
            if key in self.options and value is not None:
                setattr(self, key, value)
        return self

    def detect(self, buffer, position: int, end: int,
               notify: Optional[Callable[[ScanEvent], None]] = None) -> Optional[Span]:
        raise NotImplementedError

    def next_candidate(self, buffer, position: int, end: int) -> int:
        return position

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class FooterDetector(Detector):
    """
    Header signature followed by a footer marker.

    The footer search starts at the header and is bounded by max_length.
    A footer immediately followed by the continuation marker belongs to a
    multi-part stream and is skipped. No dedup cursor is kept: headers are
    rare and each match is self-terminating.
    """

    options = ('max_length',)

    def __init__(self,
                 name: str,
                 extension: str,
                 headers: Iterable[Signature],
                 footer: bytes,
                 continuation: Optional[bytes] = None,
                 footer_tail: int = 0,
                 max_length: int = DEFAULT_MAX_LENGTH,
                 description: str = ''):
        """
        Args:
            name: Registry name (e.g. 'jpg')
            extension: Extension used for recovered fragments
            headers: Header variants; any one matching starts a candidate
            footer: End-of-stream marker
            continuation: Marker that, directly after the footer, means the
                          stream continues
            footer_tail: Fixed number of bytes that follow the footer and
                         still belong to the file
            max_length: Maximum distance from header to footer
            description: Human-readable format name
        """
        self.name = name
        self.extension = extension
        self.headers = list(headers)
        self.footer = bytes(footer)
        self.continuation = bytes(continuation) if continuation else None
        self.footer_tail = footer_tail
        self.max_length = max_length
        self.description = description or name.upper()
        self._candidates = CandidateMemo()

        if not self.headers:
            raise ValueError(f"{name}: at least one header signature is required")
        if not self.footer:
            raise ValueError(f"{name}: footer marker must not be empty")
        if footer_tail < 0:
            raise ValueError(f"{name}: footer_tail must be >= 0")
        self._check_max_length()

    def _check_max_length(self) -> None:
        if self.max_length < 1:
            raise ValueError(f"{self.name}: max_length must be at least 1, got {self.max_length}")

    def configure(self, **options):
        super().configure(**options)
        self._check_max_length()
        return self

    def reset(self, start=0):
        self._candidates.clear()

    def is_header(self, buffer, position: int, end: int) -> bool:
        return any(sig.matches(buffer, position, end) for sig in self.headers)

    def find_footer(self, buffer, header: int, end: int) -> Optional[int]:
        """
        Returns one byte past the end of the file starting at header, or None.

        Args:
            buffer: Buffer being scanned
            header: Offset of the matched header
            end: One byte past the end of the buffer
        """
        footer_len = len(self.footer)
        limit = min(end, header + self.max_length + footer_len)
        cont = self.continuation
        pos = header

        while True:
            found = buffer.find(self.footer, pos, limit)
            if found == -1:
                return None

            after = found + footer_len
            if cont and after + len(cont) <= end and buffer[after:after + len(cont)] == cont:
                pos = found + 1
                continue

            return min(after + self.footer_tail, end)

    def detect(self, buffer, position, end, notify=None):
        if not self.is_header(buffer, position, end):
            return None

        _notify(notify, HEADER_FOUND, self.name, position)

        stop = self.find_footer(buffer, position, end)
        if stop is None:
            _notify(notify, FOOTER_MISSING, self.name, position)
            return None

        _notify(notify, FOOTER_FOUND, self.name, position, stop - position)
        return Span(position, stop, self.extension)

    def next_candidate(self, buffer, position, end):
        return min(
            self._candidates.lookup(
                index, buffer, position, end,
                lambda start, sig=sig: sig.find_candidate(buffer, start, end),
            )
            for index, sig in enumerate(self.headers)
        )


class TextRunDetector(Detector):
    """
    Maximal run of bytes inside a character class.

    Every byte is classified at most once per scan: the dedup cursor is moved
    past each run whether it was long enough or not.
    """

    options = ('min_length', 'allow_whitespace')

    def __init__(self,
                 name: str = 'txt',
                 extension: str = 'txt',
                 min_length: int = DEFAULT_MIN_TEXT_LENGTH,
                 low: int = PRINTABLE_LOW,
                 high: int = PRINTABLE_HIGH,
                 allow_whitespace: bool = False,
                 description: str = 'ASCII text'):
        self.name = name
        self.extension = extension
        self.min_length = min_length
        self.low = low
        self.high = high
        self.allow_whitespace = allow_whitespace
        self.description = description
        self.cursor = DedupCursor()
        self._candidates = CandidateMemo()
        self._compile()

    def _compile(self) -> None:
        if self.min_length < 1:
            raise ValueError(f"{self.name}: min_length must be at least 1")
        if not 0 <= self.low <= self.high <= 0xFF:
            raise ValueError(f"{self.name}: invalid byte range {self.low:#x}-{self.high:#x}")

        char_class = f'\\x{self.low:02x}-\\x{self.high:02x}'
        if self.allow_whitespace:
            char_class += '\\t\\n\\r'
        self._run = re.compile(f'[{char_class}]*'.encode('ascii'))
        self._first = re.compile(f'[{char_class}]'.encode('ascii'))

    def configure(self, **options):
        super().configure(**options)
        self._compile()
        self._candidates.clear()
        return self

    def reset(self, start=0):
        self.cursor.reset(start)
        self._candidates.clear()

    def run_end(self, buffer, position: int, end: int) -> int:
        """One past the last byte of the qualifying run starting at position."""
        return self._run.match(buffer, position, end).end()

    def detect(self, buffer, position, end, notify=None):
        # Already classified as part of an earlier run
        if self.cursor.covers(position):
            return None

        stop = self.run_end(buffer, position, end)
        self.cursor.advance(stop)
        length = stop - position

        if length >= self.min_length:
            _notify(notify, RUN_ACCEPTED, self.name, position, length)
            return Span(position, stop, self.extension)

        if length:
            _notify(notify, RUN_REJECTED, self.name, position, length)
        return None

    def next_candidate(self, buffer, position, end):
        start = max(position, self.cursor.position)
        if start >= end:
            return end
        return self._candidates.lookup('run', buffer, start, end,
                                       lambda pos: self._search_first(buffer, pos, end))

    def _search_first(self, buffer, position: int, end: int) -> int:
        found = self._first.search(buffer, position, end)
        return found.start() if found else end


# ─────────────────────────────────────────────────────────────
#  Registry
# ─────────────────────────────────────────────────────────────

JPEG_MASK = bytes([
    0xFF, 0xFF, 0xFF, 0xFF,
    0x00, 0x00, 0xFF, 0xFF,
    0xFF, 0xFF, 0xFF, 0xFF,
])

JFIF_HEADER = Signature(bytes([
    0xFF, 0xD8, 0xFF, 0xE0,
    0x00, 0x00, 0x4A, 0x46,    # segment length is a wildcard
    0x49, 0x46, 0x00, 0x01,
]), JPEG_MASK)

EXIF_HEADER = Signature(bytes([
    0xFF, 0xD8, 0xFF, 0xE1,
    0x00, 0x00, 0x45, 0x78,
    0x69, 0x66, 0x00, 0x00,
]), JPEG_MASK)


def _jpeg() -> FooterDetector:
    # FF D9 followed by FF E1 usually means more parts remain
    return FooterDetector(
        name='jpg', extension='jpg',
        headers=[JFIF_HEADER, EXIF_HEADER],
        footer=b'\xFF\xD9',
        continuation=b'\xFF\xE1',
        max_length=DEFAULT_MAX_LENGTH,
        description='JPEG image (JFIF/EXIF)',
    )


def _png() -> FooterDetector:
    return FooterDetector(
        name='png', extension='png',
        headers=[Signature(bytes.fromhex('89504E470D0A1A0A'))],
        footer=bytes.fromhex('49454E44AE426082'),    # IEND chunk + CRC
        max_length=30 * MIB,
        description='PNG image',
    )


def _gif() -> FooterDetector:
    # GIF87a / GIF89a differ only in the version digit
    return FooterDetector(
        name='gif', extension='gif',
        headers=[Signature(b'GIF87a'), Signature(b'GIF89a')],
        footer=b'\x00\x3B',
        max_length=30 * MIB,
        description='GIF image',
    )


def _pdf() -> FooterDetector:
    return FooterDetector(
        name='pdf', extension='pdf',
        headers=[Signature(b'%PDF-')],
        footer=b'%%EOF',
        max_length=100 * MIB,
        description='PDF document',
    )


def _zip() -> FooterDetector:
    # End-of-central-directory record: 4 byte marker + 18 fixed bytes
    return FooterDetector(
        name='zip', extension='zip',
        headers=[Signature(bytes.fromhex('504B0304'))],
        footer=bytes.fromhex('504B0506'),
        footer_tail=18,
        max_length=100 * MIB,
        description='ZIP archive (incl. DOCX/XLSX)',
    )


def _text() -> TextRunDetector:
    return TextRunDetector()


DETECTORS: Dict[str, Callable[[], Detector]] = {
    'jpg': _jpeg,
    'png': _png,
    'gif': _gif,
    'pdf': _pdf,
    'zip': _zip,
    'txt': _text,
}


def register_detector(name: str, factory: Callable[[], Detector]) -> None:
    """Add a detector factory; new names run after the existing ones."""
    DETECTORS[name.lower()] = factory


def get_detector(name: str, **options) -> Detector:
    """
    Build a fresh detector instance by name.

    Raises:
        KeyError: If no detector is registered under ``name``
    """
    return DETECTORS[name.lower()]().configure(**options)


def get_detectors_by_types(requested_types: Optional[List[str]] = None, **options) -> List[Detector]:
    """
    Build detectors for the requested types, in registry order.

    Unknown names are ignored. An empty request means every registered type.

    Args:
        requested_types: List of detector names (e.g., ['jpg', 'txt'])
        **options: Overrides applied to every detector that supports them
                   (max_length, min_length, allow_whitespace)
    """
    wanted = [t.lower() for t in requested_types] if requested_types else list(DETECTORS)
    return [factory().configure(**options)
            for name, factory in DETECTORS.items() if name in wanted]


def list_available_types() -> List[str]:
    """Return list of all registered detector names."""
    return list(DETECTORS.keys())
