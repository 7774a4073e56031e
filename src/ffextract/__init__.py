from .extractor import Extractor, ExtractOptions, RunResult
from .settings import ExtractSettings
from .errors import ExtractionError, ContainerDecodeError, StreamIOError, FilesystemError
from .archive.entry import ArchiveEntry, EntryType
from .archive.reader import ArchiveReader
from .report.stats import RunStats, StatsSnapshot
