import logging
import os
from enum import StrEnum
from pathlib import Path
from typing import IO, NamedTuple, Protocol

from ..errors import FilesystemError, StreamIOError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536


class EntryStream(Protocol):
    def read(self, size: int, /) -> bytes: ...


class ComparisonResult(StrEnum):
    NO_CANDIDATE = 'no-candidate'
    SIZE_MISMATCH = 'size-mismatch'
    DIVERGED = 'diverged'
    FULL_MATCH = 'full-match'


class ComparisonOutcome(NamedTuple):
    """Result of comparing an entry stream against its reference candidate.

    Attributes:
        result: Which branch of the comparison was taken
        equal_bytes: Length of the prefix confirmed identical from offset 0
        pending: Entry bytes already drained from the stream that were not matched and still have to be
                 written to the destination (only non-empty for DIVERGED)
    """
    result: ComparisonResult
    equal_bytes: int = 0
    pending: bytes = b''


class ReferenceCandidate:
    """Reference file that may hold the same content as an entry.

    The file is opened lazily by the comparator and stays open until close(), so the
    materializer can reuse the verified prefix from the same handle.
    """

    def __init__(self, path: Path):
        self.path = path
        self._file: IO[bytes] | None = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def open(self) -> bool:
        """Try to open the reference file for reading.

        Returns:
            True if the file is open, False if it cannot be opened for any reason
        """
        if self._file is None:
            try:
                self._file = open(self.path, 'rb')
            except OSError as e:
                logger.debug(f"No usable reference file {self.path}: {e}")
                return False
        return True

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None

    @property
    def file(self) -> IO[bytes]:
        if self._file is None:
            raise RuntimeError(f"Reference file not opened: {self.path}")
        return self._file

    def stat(self) -> os.stat_result:
        try:
            return os.fstat(self.file.fileno())
        except OSError as e:
            raise FilesystemError(f"cannot stat reference file {self.path}", cause=e) from e


class StreamComparator:
    """Compares a forward-only entry stream against a reference file chunk by chunk."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError(f"chunk size must be positive: {chunk_size}")
        self._chunk_size = chunk_size

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def compare(self, stream: EntryStream, candidate: ReferenceCandidate, declared_size: int) -> ComparisonOutcome:
        """Drain the stream while it keeps matching the candidate.

        Nothing is read from the stream for NO_CANDIDATE and SIZE_MISMATCH. For DIVERGED the
        mismatching chunk is returned in `pending` because it cannot be read again. A stream that
        ends before `declared_size` is reported as DIVERGED with nothing pending.
        """
        if not candidate.open():
            return ComparisonOutcome(ComparisonResult.NO_CANDIDATE)

        if candidate.stat().st_size != declared_size:
            return ComparisonOutcome(ComparisonResult.SIZE_MISMATCH)

        equal_bytes = 0
        while True:
            chunk = stream.read(self._chunk_size)
            if not chunk:
                break

            try:
                reference = candidate.file.read(len(chunk))
            except OSError as e:
                raise StreamIOError(f"error reading reference file {candidate.path}", cause=e) from e

            # A short read from the reference also lands here
            if reference != chunk:
                return ComparisonOutcome(ComparisonResult.DIVERGED, equal_bytes, chunk)

            equal_bytes += len(chunk)

        if equal_bytes != declared_size:
            return ComparisonOutcome(ComparisonResult.DIVERGED, equal_bytes)

        return ComparisonOutcome(ComparisonResult.FULL_MATCH, equal_bytes)
