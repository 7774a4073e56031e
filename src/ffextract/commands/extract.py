import datetime
import logging
import os
import stat
from enum import StrEnum
from pathlib import Path
from typing import Callable, Iterable, NamedTuple, TextIO

from .materialize import ExtractionKind, ExtractionOutcome, Materializer
from ..archive.entry import ArchiveEntry, EntryType
from ..errors import ContainerDecodeError, ExtractionError, FilesystemError
from ..reference.comparator import ReferenceCandidate, StreamComparator, DEFAULT_CHUNK_SIZE
from ..reference.path import check_contained, destination_path, resolve_candidate, strip_prefix
from ..report.stats import RunStats
from ..utils.attributes import apply_attributes
from ..utils.fileops import ensure_parent, remove_existing

logger = logging.getLogger(__name__)


class FailurePolicy(StrEnum):
    ABORT = 'abort'
    CONTINUE = 'continue'


class ExtractArgs(NamedTuple):
    """Arguments for the extract operation."""
    destination: Path  # Root below which entries are materialized
    reference_directory: Path | None = None  # None disables linking, every regular entry is copied
    strip_levels: int = 0  # Leading segments removed from entry paths before the reference lookup
    preserve_attributes: bool = False  # Restore permissions, ownership and flags in addition to mtime
    chunk_size: int = DEFAULT_CHUNK_SIZE
    failure_policy: FailurePolicy = FailurePolicy.ABORT


class EntryDispatcher:
    """Routes each entry either to verbatim pass-through or to the compare-and-link pipeline."""

    def __init__(self, args: ExtractArgs, stats: RunStats):
        self._args = args
        self._stats = stats
        self._comparator = StreamComparator(args.chunk_size)
        self._materializer = Materializer(stats, args.preserve_attributes, args.chunk_size)
        self._deferred_directories: list[tuple[Path, ArchiveEntry]] = []

    def process(self, entry: ArchiveEntry) -> ExtractionOutcome:
        """Extract one entry.

        Raises:
            ExtractionError: The entry could not be extracted; its path is attached to the error
        """
        self._stats.record_seen(entry.size)
        try:
            destination = destination_path(self._args.destination, entry.path)
            check_contained(self._args.destination, destination, entry.path)
            if not entry.is_regular():
                return self._pass_through(entry, destination)
            return self._deduplicate(entry, destination)
        except ExtractionError as e:
            if e.path is None:
                e.path = entry.path
            raise

    def finish(self):
        """Apply directory metadata, deepest directories first."""
        self._deferred_directories.sort(key=lambda item: len(item[0].parts), reverse=True)
        for directory, entry in self._deferred_directories:
            apply_attributes(directory, entry, self._args.preserve_attributes)
        self._deferred_directories.clear()

    def _deduplicate(self, entry: ArchiveEntry, destination: Path) -> ExtractionOutcome:
        if self._args.reference_directory is None:
            ensure_parent(destination)
            return self._materializer.full_copy(entry, destination)

        candidate_path = resolve_candidate(
            strip_prefix(entry.path, self._args.strip_levels), self._args.reference_directory)
        if self._args.strip_levels:
            logger.debug(f"Reference lookup: {entry.path} -> {candidate_path}")

        with ReferenceCandidate(candidate_path) as candidate:
            outcome = self._comparator.compare(entry, candidate, entry.size)
            return self._materializer.materialize(entry, destination, candidate, outcome)

    def _pass_through(self, entry: ArchiveEntry, destination: Path) -> ExtractionOutcome:
        if entry.type == EntryType.DIRECTORY:
            self._make_directory(destination, entry)
            self._deferred_directories.append((destination, entry))
            logger.info(f"Directory: {entry.path}")
            return ExtractionOutcome(ExtractionKind.PASS_THROUGH)

        if entry.type == EntryType.HARDLINK:
            target = destination_path(self._args.destination, entry.linkname)
            check_contained(self._args.destination, target, entry.path)

        ensure_parent(destination)
        remove_existing(destination)
        try:
            if entry.type == EntryType.SYMLINK:
                os.symlink(entry.linkname, destination)
            elif entry.type == EntryType.HARDLINK:
                os.link(target, destination)
            elif entry.type == EntryType.FIFO:
                os.mkfifo(destination, entry.mode)
            elif entry.type == EntryType.CHARACTER_DEVICE:
                os.mknod(destination, entry.mode | stat.S_IFCHR, os.makedev(entry.devmajor, entry.devminor))
            elif entry.type == EntryType.BLOCK_DEVICE:
                os.mknod(destination, entry.mode | stat.S_IFBLK, os.makedev(entry.devmajor, entry.devminor))
        except OSError as e:
            raise FilesystemError(f"cannot create {entry.type.value} {destination}", entry.path, e) from e

        # Hardlinks share metadata with their target, which already has it
        if entry.type != EntryType.HARDLINK:
            apply_attributes(destination, entry, self._args.preserve_attributes)
        logger.info(f"Extracted {entry.type.value}: {entry.path}")
        return ExtractionOutcome(ExtractionKind.PASS_THROUGH)

    @staticmethod
    def _make_directory(destination: Path, entry: ArchiveEntry):
        if destination.is_symlink() or (destination.exists() and not destination.is_dir()):
            remove_existing(destination)
        try:
            # Owner bits are forced so that children can be created; the final mode is applied by finish()
            destination.mkdir(mode=entry.mode | 0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"cannot create directory {destination}", entry.path, e) from e


def do_extract(
        entries: Iterable[ArchiveEntry],
        args: ExtractArgs,
        stats: RunStats,
        record: Callable[[ArchiveEntry, ExtractionOutcome], None] | None = None,
        output: TextIO | None = None) -> list[ExtractionError]:
    """Process entries in stream order.

    Under FailurePolicy.ABORT the first failing entry ends the run; under CONTINUE failures are
    collected and extraction goes on. A ContainerDecodeError always propagates, since the stream
    cannot be resumed.

    Args:
        entries: Forward-only entry sequence
        args: Extraction arguments
        stats: Run counters updated for every entry
        record: Called with every successfully extracted entry and its outcome
        output: Stream receiving one progress line per entry, or None

    Returns:
        Failures encountered, in order (at most one under ABORT)
    """
    dispatcher = EntryDispatcher(args, stats)
    failures: list[ExtractionError] = []

    for entry in entries:
        try:
            outcome = dispatcher.process(entry)
        except ContainerDecodeError:
            raise
        except ExtractionError as e:
            logger.error(f"Failed to extract {entry.path}: {e}")
            failures.append(e)
            if args.failure_policy == FailurePolicy.ABORT:
                break
            continue

        if record is not None:
            record(entry, outcome)
        if output is not None:
            print(f"{outcome.kind.value}: {entry.path}", file=output)

    try:
        dispatcher.finish()
    except ExtractionError as e:
        logger.error(f"Failed to finalize directories: {e}")
        failures.append(e)

    return failures


def do_list(entries: Iterable[ArchiveEntry], stats: RunStats, output: TextIO, verbose: bool = False):
    """Print entry paths without writing anything to disk."""
    for entry in entries:
        stats.record_seen(entry.size)
        if verbose:
            print(format_listing(entry), file=output)
        else:
            print(entry.path, file=output)


_TYPE_CHARS = {
    EntryType.REGULAR: '-',
    EntryType.DIRECTORY: 'd',
    EntryType.SYMLINK: 'l',
    EntryType.HARDLINK: 'h',
    EntryType.FIFO: 'p',
    EntryType.CHARACTER_DEVICE: 'c',
    EntryType.BLOCK_DEVICE: 'b',
}


def format_listing(entry: ArchiveEntry) -> str:
    permissions = stat.filemode(entry.mode)[1:]
    timestamp = datetime.datetime.fromtimestamp(entry.mtime, tz=datetime.UTC).strftime('%Y-%m-%d %H:%M')
    line = f"{_TYPE_CHARS[entry.type]}{permissions} {entry.uid}/{entry.gid} {entry.size:>10} {timestamp} {entry.path}"
    if entry.type == EntryType.SYMLINK:
        line += f" -> {entry.linkname}"
    elif entry.type == EntryType.HARDLINK:
        line += f" link to {entry.linkname}"
    return line
