"""
Reporting Module

Builds recovery summaries from the fragment audit log and exports them to CSV.
"""

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List


def generate_recovery_summary(audit_log_path: str) -> Dict:
    """
    Generate summary from recovery audit log.

    Args:
        audit_log_path: Path to recovery_audit_log.csv

    Returns:
        Summary dict with total_files, unique_files, duplicate_count,
        total_size, largest_fragment and by_type
    """
    summary = {
        'total_files': 0,
        'unique_files': 0,
        'duplicate_count': 0,
        'total_size': 0,
        'largest_fragment': 0,
        'by_type': {},
        'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
    }

    log_path = Path(audit_log_path)
    if not log_path.exists():
        return summary

    try:
        with open(log_path, 'r', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            for row in reader:
                summary['total_files'] += 1
                if row.get('is_duplicate', 'No').lower() == 'yes':
                    summary['duplicate_count'] += 1
                else:
                    summary['unique_files'] += 1

                try:
                    size = int(row.get('file_size', 0))
                except (ValueError, TypeError):
                    size = 0
                summary['total_size'] += size
                summary['largest_fragment'] = max(summary['largest_fragment'], size)

                ft = row.get('file_type') or 'unknown'
                summary['by_type'][ft] = summary['by_type'].get(ft, 0) + 1
    except (IOError, csv.Error):
        pass

    return summary


def export_summary_to_csv(summary: Dict, output_path: str) -> None:
    """
    Export recovery summary to CSV.

    Args:
        summary: Result from generate_recovery_summary
        output_path: Path to save CSV
    """
    with open(output_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['Metric', 'Value'])
        writer.writerow(['Timestamp', summary.get('timestamp', '')])
        writer.writerow(['Total Fragments Recovered', summary.get('total_files', 0)])
        writer.writerow(['Unique Fragments', summary.get('unique_files', 0)])
        writer.writerow(['Duplicate Count', summary.get('duplicate_count', 0)])
        writer.writerow(['Total Recovered Size (bytes)', summary.get('total_size', 0)])
        writer.writerow(['Largest Fragment (bytes)', summary.get('largest_fragment', 0)])
        writer.writerow([])
        writer.writerow(['Fragments by Type', 'Count'])
        for ft, count in sorted(summary.get('by_type', {}).items()):
            writer.writerow([ft, count])


def load_recovery_results(audit_log_path: str) -> List[Dict]:
    """
    Load recovery results from audit log for display in the Results viewer.

    File names in the log are relative to the log's directory.

    Returns:
        List of dicts with fragment_id, file_name, type, offset, size,
        sha256, duplicate and file_path ('' if the file is gone)
    """
    results = []
    log_path = Path(audit_log_path)
    if not log_path.exists():
        return results

    output_dir = log_path.parent

    try:
        with open(log_path, 'r', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            for row in reader:
                relative = row.get('file_name', '')
                candidate = output_dir / relative if relative else None
                resolved_path = str(candidate.resolve()) if candidate and candidate.exists() else ''

                try:
                    fragment_id = int(row.get('fragment_id', 0))
                    size = int(row.get('file_size', 0))
                except (ValueError, TypeError):
                    fragment_id, size = 0, 0

                results.append({
                    'fragment_id': fragment_id,
                    'file_name': Path(relative).name,
                    'type': row.get('file_type', ''),
                    'offset': row.get('offset_hex', ''),
                    'size': size,
                    'sha256': row.get('sha256', ''),
                    'duplicate': row.get('is_duplicate', 'No').lower() == 'yes',
                    'file_path': resolved_path,
                })
    except (IOError, csv.Error):
        pass

    return results
