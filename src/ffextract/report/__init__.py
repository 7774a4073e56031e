from .stats import RunStats, StatsSnapshot
from .store import ExtractionRecord, ReportManifest, ReportStore
