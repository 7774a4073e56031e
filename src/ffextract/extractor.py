import datetime
import logging
import os
from pathlib import Path
from typing import IO, NamedTuple, TextIO

from .archive.entry import ArchiveEntry
from .archive.reader import ArchiveReader
from .commands.extract import ExtractArgs, FailurePolicy, do_extract, do_list
from .commands.materialize import ExtractionOutcome
from .errors import ExtractionError
from .reference.comparator import DEFAULT_CHUNK_SIZE
from .report.stats import RunStats, StatsSnapshot
from .report.store import ExtractionRecord, ReportManifest, ReportStore
from .settings import (
    ExtractSettings, SETTING_CHUNK_SIZE, SETTING_KEEP_GOING, SETTING_LOGGING_LEVEL, SETTING_LOGGING_PATH,
    SETTING_PRESERVE_ATTRIBUTES, SETTING_REFERENCE_DIRECTORY, SETTING_STRIP_LEVELS)

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ExtractOptions(NamedTuple):
    """Options controlling one run.

    Attributes:
        reference_directory: Root searched for identical files; None copies every entry
        strip_levels: Leading path segments removed from entry paths before the reference lookup
        preserve_attributes: Restore permissions, ownership and file flags in addition to mtime
        verbose: Print one progress line per entry
        chunk_size: Bytes compared or copied per step
        keep_going: Continue after a failing entry instead of aborting the run
        destination: Extraction root; None means the current working directory
        report_directory: Where to write an extraction report, or None
    """
    reference_directory: Path | None = None
    strip_levels: int = 0
    preserve_attributes: bool = False
    verbose: bool = False
    chunk_size: int = DEFAULT_CHUNK_SIZE
    keep_going: bool = False
    destination: Path | None = None
    report_directory: Path | None = None

    @classmethod
    def from_settings(cls, settings: ExtractSettings, **overrides) -> 'ExtractOptions':
        """Combine settings file values with overrides; overrides that are None are ignored.

        Raises:
            ValueError: A value is out of range
        """
        reference_directory = settings.get(SETTING_REFERENCE_DIRECTORY)
        values = {
            'reference_directory': None if reference_directory is None else Path(reference_directory),
            'strip_levels': settings.get(SETTING_STRIP_LEVELS, 0),
            'preserve_attributes': settings.get(SETTING_PRESERVE_ATTRIBUTES, False),
            'chunk_size': settings.get(SETTING_CHUNK_SIZE, DEFAULT_CHUNK_SIZE),
            'keep_going': settings.get(SETTING_KEEP_GOING, False),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})

        options = cls(**values)
        if not isinstance(options.strip_levels, int) or options.strip_levels < 0:
            raise ValueError(f"strip levels must be a non-negative integer: {options.strip_levels!r}")
        if not isinstance(options.chunk_size, int) or options.chunk_size <= 0:
            raise ValueError(f"chunk size must be a positive integer: {options.chunk_size!r}")
        return options


class RunResult(NamedTuple):
    stats: StatsSnapshot
    failures: list[ExtractionError]

    @property
    def succeeded(self) -> bool:
        return not self.failures


class Extractor:
    """Run-level orchestration: opens the archive, drives the entry pipeline, and reports.

    The per-entry work lives in commands.extract; this class wires the archive reader, the run
    counters and the optional report store together and turns failures into a RunResult.
    """

    def __init__(self, options: ExtractOptions, settings: ExtractSettings | None = None):
        self._options = options
        self._settings = settings if settings is not None else ExtractSettings()

    @property
    def options(self) -> ExtractOptions:
        return self._options

    def configure_logging_from_settings(self) -> bool:
        """Configure logging from the settings file if a log path is specified.

        Returns:
            True if logging was configured, False otherwise
        """
        log_path_setting = self._settings.get(SETTING_LOGGING_PATH)
        if log_path_setting:
            level = self._settings.get(SETTING_LOGGING_LEVEL, 'INFO')

            for handler in logging.root.handlers[:]:
                logging.root.removeHandler(handler)

            logging.basicConfig(
                filename=str(log_path_setting),
                level=getattr(logging, str(level).upper(), logging.INFO),
                format=LOG_FORMAT
            )
            return True
        return False

    def extract(self, source: str | os.PathLike | IO[bytes] | None, output: TextIO | None = None) -> RunResult:
        """Extract an archive, linking entries whose content already exists in the reference directory.

        Args:
            source: Archive path, '-' or None for standard input, or a binary stream
            output: Receives per-entry progress lines when verbose is enabled

        Returns:
            Counters and failures of the run
        """
        options = self._options
        destination = options.destination if options.destination is not None else Path.cwd()
        reference_directory = None if options.reference_directory is None else options.reference_directory.absolute()
        if reference_directory is not None and not reference_directory.is_dir():
            logger.warning(f"Reference directory not found, every file will be copied: {reference_directory}")

        args = ExtractArgs(
            destination=destination,
            reference_directory=reference_directory,
            strip_levels=options.strip_levels,
            preserve_attributes=options.preserve_attributes,
            chunk_size=options.chunk_size,
            failure_policy=FailurePolicy.CONTINUE if options.keep_going else FailurePolicy.ABORT)

        stats = RunStats()
        failures: list[ExtractionError] = []
        manifest = ReportManifest(
            archive=self._source_name(source),
            reference_directory=None if reference_directory is None else str(reference_directory),
            strip_levels=options.strip_levels,
            timestamp=datetime.datetime.now(datetime.UTC).isoformat())

        report = self._open_report()
        try:
            record = None if report is None else self._recorder(report)
            progress = output if options.verbose else None
            with ArchiveReader(source) as reader:
                failures.extend(do_extract(reader.entries(), args, stats, record, progress))
        except ExtractionError as e:
            logger.error(f"Extraction aborted: {e}")
            failures.append(e)
        finally:
            snapshot = stats.snapshot()
            if report is not None:
                manifest.total_bytes_seen = snapshot.total_bytes_seen
                manifest.saved_write_bytes = snapshot.saved_write_bytes
                manifest.linked_file_count = snapshot.linked_file_count
                manifest.completed = not failures
                report.write_manifest(manifest)
                report.close_database()

        logger.info(snapshot.summary())
        return RunResult(snapshot, failures)

    def list(self, source: str | os.PathLike | IO[bytes] | None, output: TextIO) -> RunResult:
        """Print the entries of an archive without writing anything."""
        stats = RunStats()
        failures: list[ExtractionError] = []
        try:
            with ArchiveReader(source) as reader:
                do_list(reader.entries(), stats, output, self._options.verbose)
        except ExtractionError as e:
            logger.error(f"Listing aborted: {e}")
            failures.append(e)
        return RunResult(stats.snapshot(), failures)

    def _open_report(self) -> ReportStore | None:
        if self._options.report_directory is None:
            return None
        report = ReportStore(self._options.report_directory)
        report.create_report_directory()
        report.open_database(create_if_missing=True)
        report.truncate()
        return report

    @staticmethod
    def _recorder(report: ReportStore):
        def record(entry: ArchiveEntry, outcome: ExtractionOutcome):
            report.write_record(ExtractionRecord(
                entry.path,
                outcome.kind.value,
                entry.size,
                outcome.bytes_saved,
                outcome.equal_bytes,
                None if outcome.reference is None else str(outcome.reference)))
        return record

    @staticmethod
    def _source_name(source) -> str:
        if source is None or source == '-':
            return '-'
        if isinstance(source, (str, os.PathLike)):
            return os.fspath(source)
        return str(getattr(source, 'name', '<stream>'))
