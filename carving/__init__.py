"""
carving -- signature matching and boundary detection for raw images.

  signatures  -- masked header patterns
  detectors   -- footer-search and text-run detectors, registry
  scanner     -- byte-by-byte scan driver, fragment numbering
  carver      -- host: mmap input, fragment files, audit trail
  logger      -- append-only CSV audit log
  reports     -- summaries built from the audit log
"""

from .signatures import Signature, matches
from .detectors import (
    DedupCursor,
    Detector,
    FooterDetector,
    ScanEvent,
    Span,
    TextRunDetector,
    get_detector,
    get_detectors_by_types,
    list_available_types,
    register_detector,
)
from .scanner import Fragment, ScanDriver, ScanResult
from .carver import FileCarver
from .logger import AUDIT_LOG_NAME, RecoveryLogger

__all__ = [
    "Signature",
    "matches",
    "DedupCursor",
    "Detector",
    "FooterDetector",
    "ScanEvent",
    "Span",
    "TextRunDetector",
    "get_detector",
    "get_detectors_by_types",
    "list_available_types",
    "register_detector",
    "Fragment",
    "ScanDriver",
    "ScanResult",
    "FileCarver",
    "AUDIT_LOG_NAME",
    "RecoveryLogger",
]
