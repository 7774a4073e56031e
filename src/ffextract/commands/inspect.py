from pathlib import Path
from typing import TextIO

from ..report.store import ExtractionRecord, ReportStore


def format_record(record: ExtractionRecord) -> str:
    line = f"{record.kind:<16} {record.size:>12} {record.path}"
    if record.reference is not None:
        line += f" <- {record.reference}"
        if record.kind == 'partial-recovery':
            line += f" ({record.equal_bytes} bytes reused)"
    return line


def do_inspect(report_dir: Path, paths: list[str], output: TextIO) -> bool:
    """Print the manifest and records of an extraction report.

    Args:
        report_dir: Report directory written by an extract run
        paths: Archive paths to show; all records are shown when empty
        output: Destination of the listing

    Returns:
        True if every requested path was found in the report

    Raises:
        FileNotFoundError: The directory does not contain a report
    """
    store = ReportStore(report_dir)
    manifest = store.read_manifest()

    print(f"Archive: {manifest.archive}", file=output)
    print(f"Reference directory: {manifest.reference_directory or '(none)'}", file=output)
    print(f"Strip levels: {manifest.strip_levels}", file=output)
    print(f"Timestamp: {manifest.timestamp}", file=output)
    print(f"Completed: {'yes' if manifest.completed else 'no'}", file=output)
    print(f"Linked: {manifest.linked_file_count} files, {manifest.saved_write_bytes} of "
          f"{manifest.total_bytes_seen} bytes", file=output)
    print(file=output)

    found_all = True
    with store:
        if not paths:
            for record in store.list_records():
                print(format_record(record), file=output)
        else:
            for path in paths:
                record = store.read_record(path)
                if record is None:
                    print(f"{path}: not in report", file=output)
                    found_all = False
                else:
                    print(format_record(record), file=output)
    return found_all
