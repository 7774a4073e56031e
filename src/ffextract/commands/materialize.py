import logging
import os
from enum import StrEnum
from pathlib import Path
from typing import NamedTuple

from ..archive.entry import ArchiveEntry
from ..errors import FilesystemError
from ..reference.comparator import ComparisonOutcome, ComparisonResult, ReferenceCandidate, DEFAULT_CHUNK_SIZE
from ..report.stats import RunStats
from ..utils.attributes import apply_attributes
from ..utils.fileops import copy_range, ensure_parent, flush, open_destination, remove_existing, write_all

logger = logging.getLogger(__name__)


class ExtractionKind(StrEnum):
    LINKED = 'linked'
    FULL_COPY = 'full-copy'
    PARTIAL_RECOVERY = 'partial-recovery'
    PASS_THROUGH = 'pass-through'


class ExtractionOutcome(NamedTuple):
    """What happened to one entry.

    Attributes:
        kind: How the destination was produced
        bytes_saved: Bytes not written thanks to linking (the declared size when LINKED, 0 otherwise)
        equal_bytes: Prefix length reused from the reference file
        reference: Reference file consulted, if any
    """
    kind: ExtractionKind
    bytes_saved: int = 0
    equal_bytes: int = 0
    reference: Path | None = None


class Materializer:
    """Turns a comparison outcome into the on-disk destination for a regular entry."""

    def __init__(self, stats: RunStats, preserve_attributes: bool = False, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._stats = stats
        self._preserve_attributes = preserve_attributes
        self._chunk_size = chunk_size

    def materialize(
            self,
            entry: ArchiveEntry,
            destination: Path,
            candidate: ReferenceCandidate | None,
            outcome: ComparisonOutcome) -> ExtractionOutcome:
        if candidate is None and outcome.result in (ComparisonResult.FULL_MATCH, ComparisonResult.DIVERGED):
            raise ValueError(f"a {outcome.result.value} outcome requires a reference candidate: {entry.path}")
        ensure_parent(destination)

        if outcome.result == ComparisonResult.FULL_MATCH:
            return self.link(entry, destination, candidate)
        elif outcome.result == ComparisonResult.DIVERGED:
            return self.partial_recovery(entry, destination, candidate, outcome)
        else:
            return self.full_copy(entry, destination)

    def link(self, entry: ArchiveEntry, destination: Path, candidate: ReferenceCandidate) -> ExtractionOutcome:
        """Hardlink the reference file to the destination.

        A destination that reappears between removal and linking is removed once more and the
        link retried exactly once.
        """
        if self._is_same_file(destination, candidate):
            logger.info(f"Already linked: {entry.path} -> {candidate.path}")
        else:
            remove_existing(destination)
            try:
                os.link(candidate.path, destination)
            except FileExistsError:
                remove_existing(destination)
                try:
                    os.link(candidate.path, destination)
                except OSError as e:
                    raise FilesystemError(f"cannot link {candidate.path} after removing {destination}",
                                          entry.path, e) from e
            except OSError as e:
                raise FilesystemError(f"cannot link {candidate.path}", entry.path, e) from e
            logger.info(f"Linked: {entry.path} -> {candidate.path}")

        # The destination shares its inode with the reference tree, which is left untouched
        self._stats.record_linked(entry.size)
        return ExtractionOutcome(ExtractionKind.LINKED, entry.size, entry.size, candidate.path)

    def full_copy(self, entry: ArchiveEntry, destination: Path) -> ExtractionOutcome:
        with open_destination(destination, entry.mode) as output:
            self._drain(entry, output, destination)
            flush(output, destination)
        apply_attributes(destination, entry, self._preserve_attributes)
        logger.info(f"Copied: {entry.path} ({entry.size} bytes)")
        return ExtractionOutcome(ExtractionKind.FULL_COPY)

    def partial_recovery(
            self,
            entry: ArchiveEntry,
            destination: Path,
            candidate: ReferenceCandidate,
            outcome: ComparisonOutcome) -> ExtractionOutcome:
        """Rebuild the destination from the verified prefix of the reference file, the pending
        chunk, and the rest of the entry stream."""
        with open_destination(destination, entry.mode) as output:
            try:
                candidate.file.seek(0)
            except OSError as e:
                raise FilesystemError(f"cannot rewind reference file {candidate.path}", entry.path, e) from e
            copy_range(candidate.file, output, outcome.equal_bytes, self._chunk_size, destination)
            write_all(output, outcome.pending, destination)
            self._drain(entry, output, destination)
            flush(output, destination)
        apply_attributes(destination, entry, self._preserve_attributes)
        logger.info(f"Recovered: {entry.path} ({outcome.equal_bytes} of {entry.size} bytes reused from "
                    f"{candidate.path})")
        return ExtractionOutcome(ExtractionKind.PARTIAL_RECOVERY, 0, outcome.equal_bytes, candidate.path)

    def _drain(self, entry: ArchiveEntry, output, destination: Path):
        while True:
            data = entry.read(self._chunk_size)
            if not data:
                break
            write_all(output, data, destination)

    @staticmethod
    def _is_same_file(destination: Path, candidate: ReferenceCandidate) -> bool:
        try:
            st = os.lstat(destination)
        except OSError:
            return False
        return os.path.samestat(st, candidate.stat())
