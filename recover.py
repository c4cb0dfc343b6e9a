#!/usr/bin/env python3
"""
Fragment Rescue - Main CLI Entry Point

Recovers files embedded in raw disk images by scanning every byte offset for
known headers and long runs of text. Status output goes to stderr; with
--gzip-commands, stdout carries one ``gzip <fragment>`` line per written
fragment so it can be piped to a shell.
"""

import argparse
import sys
from pathlib import Path

from carving.carver import FileCarver
from carving.detectors import (
    DEFAULT_MIN_TEXT_LENGTH,
    FOOTER_MISSING,
    MIB,
    RUN_REJECTED,
    get_detectors_by_types,
    list_available_types,
)
from carving.logger import AUDIT_LOG_NAME, RecoveryLogger
from carving.reports import export_summary_to_csv, generate_recovery_summary
from utils.helpers import (
    ensure_output_directory,
    format_bytes,
    format_event,
    parse_file_types,
    print_banner,
    validate_image_file,
)
from utils.progress import ProgressTracker


def _err(message: str) -> None:
    print(message, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fragment-rescue',
        description='Fragment Rescue - recover files from raw disk images by signature and text-run carving',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  # Recover JPEGs and text from a disk image
  python recover.py scan --image disk.dd --output recovered --types jpg,txt

  # All formats, progress bar and diagnostics
  python recover.py scan --image disk.dd --output recovered --verbose

  # Compress fragments as they are found
  python recover.py scan --image disk.dd --output recovered --gzip-commands | sh

  # Summarize an earlier run
  python recover.py report --log recovered/{AUDIT_LOG_NAME}

Supported file types: {', '.join(list_available_types())}
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    scan_parser = subparsers.add_parser('scan', help='Scan a disk image for recoverable fragments')
    scan_parser.add_argument(
        '--image',
        required=True,
        help='Path to disk image file (e.g., disk.dd, image.img)'
    )
    scan_parser.add_argument(
        '--output',
        required=True,
        help='Output directory for recovered fragments'
    )
    scan_parser.add_argument(
        '--types',
        type=str,
        default='',
        help='Comma-separated list of file types to scan for (default: all types). '
             f'Available: {", ".join(list_available_types())}'
    )
    scan_parser.add_argument(
        '--max-size',
        type=int,
        default=None,
        metavar='MIB',
        help='Maximum header-to-footer distance in MiB for binary formats '
             '(default: per format, 40 for jpg)'
    )
    scan_parser.add_argument(
        '--min-text',
        type=int,
        default=DEFAULT_MIN_TEXT_LENGTH,
        metavar='BYTES',
        help=f'Minimum length of a text run (default: {DEFAULT_MIN_TEXT_LENGTH})'
    )
    scan_parser.add_argument(
        '--text-whitespace',
        action='store_true',
        help='Treat tab, newline and carriage return as text characters'
    )
    scan_parser.add_argument(
        '--no-fast-forward',
        action='store_true',
        help='Offer every byte offset to every detector instead of jumping to candidates'
    )
    scan_parser.add_argument(
        '--gzip-commands',
        action='store_true',
        help='Print "gzip <fragment>" to stdout for every fragment written'
    )
    scan_parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable progress bar and detector diagnostics'
    )

    report_parser = subparsers.add_parser('report', help='Summarize a recovery audit log')
    report_parser.add_argument(
        '--log',
        required=True,
        help=f'Path to {AUDIT_LOG_NAME} from an earlier scan'
    )
    report_parser.add_argument(
        '--output',
        type=str,
        help='Export the summary to this CSV file (optional)'
    )

    subparsers.add_parser('types', help='List supported file types')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == 'scan':
        run_scan(args)
    elif args.command == 'report':
        run_report(args)
    elif args.command == 'types':
        run_types(args)


def run_scan(args):
    """Execute scan operation."""
    print_banner()

    if not validate_image_file(args.image):
        sys.exit(1)

    if not ensure_output_directory(args.output):
        sys.exit(1)

    if args.max_size is not None and args.max_size <= 0:
        _err("[-] Error: --max-size must be a positive number of MiB")
        sys.exit(1)
    if args.min_text < 1:
        _err("[-] Error: --min-text must be at least 1")
        sys.exit(1)

    requested_types = parse_file_types(args.types)
    unknown = sorted(set(requested_types) - set(list_available_types()))
    if unknown:
        _err(f"[!] Ignoring unknown file types: {', '.join(unknown)}")

    detectors = get_detectors_by_types(
        requested_types,
        max_length=args.max_size * MIB if args.max_size else None,
        min_length=args.min_text,
        allow_whitespace=args.text_whitespace,
    )
    if not detectors:
        _err("[-] Error: No valid file types specified or available")
        sys.exit(1)

    image_size = Path(args.image).stat().st_size
    _err(f"[+] Scanning disk image: {args.image} ({format_bytes(image_size)})")
    _err(f"[+] Output directory: {args.output}")
    _err(f"[+] File types: {', '.join(d.name for d in detectors)}")
    if args.no_fast_forward:
        _err("[+] Fast-forward disabled")
    _err("")

    log_file = Path(args.output) / AUDIT_LOG_NAME
    try:
        logger = RecoveryLogger(str(log_file))
    except ValueError as e:
        _err(f"[-] Error: {e}")
        sys.exit(1)

    progress = ProgressTracker(image_size, verbose=args.verbose)

    def on_event(event):
        # Rejected runs are far too frequent to be useful
        if args.verbose and event.kind != RUN_REJECTED:
            progress.write(f"[*] {format_event(event)}")

    def on_saved(fragment, path):
        if args.verbose:
            progress.write(f"[+] Wrote {path} ({fragment.size} bytes)")

    carver = FileCarver(
        detectors=detectors,
        output_dir=args.output,
        logger=logger,
        skip_idle=not args.no_fast_forward,
        gzip_commands=args.gzip_commands,
        event_callback=on_event,
        saved_callback=on_saved,
    )

    def progress_callback(bytes_processed, total_size):
        progress.update(bytes_processed, carver.recovered_count)

    try:
        stats = carver.carve(args.image, progress_callback=progress_callback)
        progress.close()

        _err("")
        _err("=" * 60)
        _err("RECOVERY SUMMARY")
        _err("=" * 60)
        _err("[+] Recovery complete!")
        _err(f"[+] Fragments written: {stats['total_recovered']}")
        _err(f"[+] Unique fragments: {stats['unique_files']}")
        if stats['duplicate_files'] > 0:
            _err(f"[+] Duplicate fragments: {stats['duplicate_files']}")
        if stats['headers_without_footer'] > 0:
            _err(f"[!] Headers without footer: {stats['headers_without_footer']}")
        if stats['write_errors'] > 0:
            _err(f"[-] Write errors: {stats['write_errors']}")
        _err(f"[+] Bytes processed: {format_bytes(stats['bytes_processed'])}")
        _err(f"[+] Audit log: {log_file}")

        log_stats = logger.get_log_stats()
        if log_stats:
            _err("")
            _err("Fragments by type:")
            for file_type, count in sorted(log_stats.items()):
                _err(f"  {file_type}: {count}")

        _err("=" * 60)

    except KeyboardInterrupt:
        progress.close()
        _err("\n[!] Scan interrupted by user")
        sys.exit(130)
    except Exception as e:
        progress.close()
        _err(f"\n[-] Error during recovery: {str(e)}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


def run_report(args):
    """Summarize an audit log."""
    if not Path(args.log).is_file():
        _err(f"[-] Error: Audit log not found: {args.log}")
        sys.exit(1)

    summary = generate_recovery_summary(args.log)

    print("=" * 60)
    print("RECOVERY REPORT")
    print("=" * 60)
    print(f"Total fragments: {summary['total_files']}")
    print(f"Unique fragments: {summary['unique_files']}")
    print(f"Duplicates: {summary['duplicate_count']}")
    print(f"Total size: {format_bytes(summary['total_size'])}")
    print(f"Largest fragment: {format_bytes(summary['largest_fragment'])}")
    if summary['by_type']:
        print("\nFragments by type:")
        for file_type, count in sorted(summary['by_type'].items()):
            print(f"  {file_type}: {count}")
    print("=" * 60)

    if args.output:
        try:
            export_summary_to_csv(summary, args.output)
        except OSError as e:
            _err(f"[-] Error: Cannot write report: {e}")
            sys.exit(1)
        print(f"[+] Summary exported to: {args.output}")


def run_types(args):
    """List registered detectors."""
    for detector in get_detectors_by_types():
        print(f"{detector.name:6} {detector.description}")


if __name__ == '__main__':
    main()
