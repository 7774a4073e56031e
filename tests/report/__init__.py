"""Tests for report module.

Test Files and Coverage:
========================

| Test File                  | Test Classes                 | Tested Constructs                          | Tested Functionalities              |
|----------------------------|------------------------------|--------------------------------------------|-------------------------------------|
| test_stats.py              | RunStatsTest                 | RunStats, StatsSnapshot                    | Counters, savings percent, summary  |
| test_report_store.py       | ExtractionRecordTest         | ExtractionRecord                           | msgpack serialization               |
|                            | ReportStoreTest              | ReportStore, ReportManifest                | DB write, ordering, lookup, manifest|
"""
