"""
Helper Utilities

Formatting, validation and console output shared by the CLI and GUI.
"""

import os
import sys
from pathlib import Path
from typing import List

from carving.detectors import (
    FOOTER_FOUND,
    FOOTER_MISSING,
    HEADER_FOUND,
    RUN_ACCEPTED,
    RUN_REJECTED,
    ScanEvent,
)


def print_banner():
    """Print ASCII banner for the tool."""
    banner = """
+--------------------------------------------------------------+
|                 Fragment Rescue - File Carver                |
|        Signature and text-run recovery from raw images       |
+--------------------------------------------------------------+
"""
    print(banner, file=sys.stderr)


def format_bytes(size: int) -> str:
    """
    Format bytes to human-readable string.

    Args:
        size: Size in bytes

    Returns:
        Formatted string (e.g., "1.50 MB")
    """
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"


def format_event(event: ScanEvent) -> str:
    """Render a detector diagnostic as a single console line."""
    name = event.detector.upper()
    if event.kind == HEADER_FOUND:
        return f"{name}: found header at byte {event.offset}"
    if event.kind == FOOTER_FOUND:
        return f"{name}: footer found ({event.length} bytes from byte {event.offset})"
    if event.kind == FOOTER_MISSING:
        return f"{name}: footer not found for header at byte {event.offset}"
    if event.kind == RUN_ACCEPTED:
        return f"{name}: {event.length} bytes of text found at byte {event.offset}"
    if event.kind == RUN_REJECTED:
        return f"{name}: {event.length} byte run at byte {event.offset} too short"
    return f"{name}: {event.kind} at byte {event.offset}"


def validate_image_file(image_path: str) -> bool:
    """
    Validate that image file exists, is readable and is not empty.

    Args:
        image_path: Path to disk image

    Returns:
        True if valid, False otherwise
    """
    path = Path(image_path)
    if not path.exists():
        print(f"[-] Error: Image file not found: {image_path}", file=sys.stderr)
        return False

    if not path.is_file():
        print(f"[-] Error: Path is not a file: {image_path}", file=sys.stderr)
        return False

    if not os.access(image_path, os.R_OK):
        print(f"[-] Error: Cannot read image file: {image_path}", file=sys.stderr)
        return False

    if path.stat().st_size == 0:
        print(f"[-] Error: Image file is empty: {image_path}", file=sys.stderr)
        return False

    return True


def parse_file_types(types_string: str) -> List[str]:
    """
    Parse comma-separated file types string.

    Args:
        types_string: Comma-separated list (e.g., "jpg,txt")

    Returns:
        List of file type strings
    """
    if not types_string:
        return []

    return [t.strip().lower() for t in types_string.split(',') if t.strip()]


def ensure_output_directory(output_dir: str) -> bool:
    """
    Ensure output directory exists and is writable.

    Args:
        output_dir: Path to output directory

    Returns:
        True if successful, False otherwise
    """
    try:
        path = Path(output_dir)
        path.mkdir(parents=True, exist_ok=True)

        test_file = path / '.write_test'
        test_file.touch()
        test_file.unlink()

        return True
    except (OSError, PermissionError) as e:
        print(f"[-] Error: Cannot create output directory: {output_dir}", file=sys.stderr)
        print(f"[-] {str(e)}", file=sys.stderr)
        return False
