"""Persistent extraction reports.

A report directory holds manifest.json with the run parameters and final counters, and a
LevelDB database with one record per extracted entry.
"""

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Iterator

import mmh3
import msgpack
import plyvel


class ExtractionRecord:
    """Outcome of one archive entry as stored in a report.

    Attributes:
        path: Archive path of the entry
        kind: Extraction kind ('linked', 'full-copy', 'partial-recovery' or 'pass-through')
        size: Declared size of the entry in bytes
        bytes_saved: Bytes whose write was avoided by linking
        equal_bytes: Length of the prefix reused from the reference file
        reference: Reference file consulted for the entry, or None
    """

    def __init__(
            self,
            path: str,
            kind: str,
            size: int = 0,
            bytes_saved: int = 0,
            equal_bytes: int = 0,
            reference: str | None = None):
        self.path = path
        self.kind = kind
        self.size = size
        self.bytes_saved = bytes_saved
        self.equal_bytes = equal_bytes
        self.reference = reference

    def __eq__(self, other):
        if not isinstance(other, ExtractionRecord):
            return NotImplemented
        return self.to_list() == other.to_list()

    def __repr__(self):
        return f"ExtractionRecord({self.path!r}, {self.kind!r}, size={self.size}, bytes_saved={self.bytes_saved})"

    def to_list(self) -> list[Any]:
        return [self.path, self.kind, self.size, self.bytes_saved, self.equal_bytes, self.reference]

    def to_msgpack(self) -> bytes:
        """Serialize as msgpack([path, kind, size, bytes_saved, equal_bytes, reference])."""
        result = msgpack.dumps(self.to_list())
        assert isinstance(result, bytes)
        return result

    @classmethod
    def from_msgpack(cls, data: bytes) -> "ExtractionRecord":
        decoded = msgpack.loads(data)
        if not isinstance(decoded, list) or len(decoded) != 6:
            raise ValueError(f"malformed extraction record: {decoded!r}")
        path, kind, size, bytes_saved, equal_bytes, reference = decoded
        return cls(path, kind, size, bytes_saved, equal_bytes, reference)


@dataclass
class ReportManifest:
    """Run metadata, persisted as manifest.json in the report directory."""
    version: str = "1.0"
    """Report format version"""

    archive: str = ""
    """Archive file name, '-' for standard input"""

    reference_directory: str | None = None
    """Absolute path of the reference directory, None when linking was disabled"""

    strip_levels: int = 0

    timestamp: str = ""
    """ISO format timestamp of the start of the run"""

    total_bytes_seen: int = 0
    saved_write_bytes: int = 0
    linked_file_count: int = 0

    completed: bool = False
    """Whether every entry of the archive was extracted successfully"""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportManifest":
        return cls(**data)


class ReportStore:
    """Reads and writes extraction reports.

    Database layout:
    - b'r' + <8-byte big-endian sequence number> -> msgpack record, giving archive order
    - b'p' + <16-byte Murmur3 hash of the path> + <path bytes> -> sequence number, for lookup by path
    """

    _RECORD_PREFIX = b'r'
    _PATH_PREFIX = b'p'

    def __init__(self, report_dir: Path) -> None:
        self.report_dir: Path = report_dir
        self.manifest_path: Path = report_dir / 'manifest.json'
        self.database_path: Path = report_dir / 'database'
        self._database: plyvel.DB | None = None
        self._next_sequence = 0

    def create_report_directory(self) -> None:
        self.report_dir.mkdir(parents=True, exist_ok=True)

    def open_database(self, *, create_if_missing: bool = False) -> None:
        """Open the LevelDB database.

        Args:
            create_if_missing: If True, create the database if it doesn't exist.
                              If False, raise FileNotFoundError if database doesn't exist.
        """
        if create_if_missing:
            self.database_path.mkdir(parents=True, exist_ok=True)
        elif not self.database_path.exists():
            raise FileNotFoundError(f"Database directory not found: {self.database_path}")
        self._database = plyvel.DB(str(self.database_path), create_if_missing=create_if_missing)
        self._next_sequence = self._find_next_sequence()

    def close_database(self) -> None:
        if self._database is not None:
            self._database.close()
            self._database = None

    def __enter__(self) -> "ReportStore":
        self.open_database()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close_database()

    def truncate(self) -> None:
        """Remove every record from the database."""
        database = self._require_database()
        with database.write_batch() as batch:
            for key in database.iterator(include_value=False):
                batch.delete(key)
        self._next_sequence = 0

    def write_record(self, record: ExtractionRecord) -> None:
        """Append a record, or replace the record already stored for the same path."""
        database = self._require_database()
        path_key = self._path_key(record.path)
        existing = database.get(path_key)
        if existing is not None:
            sequence_key = existing
        else:
            sequence_key = self._next_sequence.to_bytes(8, byteorder='big')
            self._next_sequence += 1

        with database.write_batch() as batch:
            batch.put(self._RECORD_PREFIX + sequence_key, record.to_msgpack())
            batch.put(path_key, sequence_key)

    def read_record(self, path: str) -> ExtractionRecord | None:
        database = self._require_database()
        sequence_key = database.get(self._path_key(path))
        if sequence_key is None:
            return None
        data = database.get(self._RECORD_PREFIX + sequence_key)
        return None if data is None else ExtractionRecord.from_msgpack(data)

    def list_records(self) -> Iterator[ExtractionRecord]:
        """Yield records in archive order."""
        database = self._require_database()
        for _, value in database.prefixed_db(self._RECORD_PREFIX).iterator():
            yield ExtractionRecord.from_msgpack(value)

    def write_manifest(self, manifest: ReportManifest) -> None:
        with open(self.manifest_path, 'w') as f:
            json.dump(manifest.to_dict(), f, indent=2)

    def read_manifest(self) -> ReportManifest:
        """Read manifest.json.

        Raises:
            FileNotFoundError: If manifest.json doesn't exist
        """
        with open(self.manifest_path, 'r') as f:
            data = json.load(f)
        return ReportManifest.from_dict(data)

    def _require_database(self) -> plyvel.DB:
        if self._database is None:
            raise RuntimeError("Database not opened. Use context manager or call open_database().")
        return self._database

    def _find_next_sequence(self) -> int:
        database = self._require_database()
        for key in database.prefixed_db(self._RECORD_PREFIX).iterator(reverse=True, include_value=False):
            return int.from_bytes(key, byteorder='big') + 1
        return 0

    @classmethod
    def _path_key(cls, path: str) -> bytes:
        """Compute the lookup key: a 128-bit Murmur3 hash of the path followed by the path itself."""
        encoded = path.encode('utf-8', errors='surrogateescape')
        path_hash = mmh3.hash128(encoded, signed=False).to_bytes(16, byteorder='big')
        return cls._PATH_PREFIX + path_hash + encoded
