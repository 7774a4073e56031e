"""Tests for command implementation modules.

Test Files and Coverage:
========================

| Test File                  | Test Classes                 | Tested Constructs                          | Tested Functionalities                        |
|----------------------------|------------------------------|--------------------------------------------|-----------------------------------------------|
| test_materialize.py        | MaterializerTest             | Materializer                               | Link, link retry, full copy, partial recovery |
| test_extract.py            | ExtractScenarioTest          | do_extract(), Extractor.extract()          | Linking, recovery, fallbacks, zero-length     |
|                            | PassThroughTest              | EntryDispatcher                            | Directories, symlinks, hardlinks, FIFOs       |
|                            | FailurePolicyTest            | do_extract(), Extractor.extract()          | Abort, keep going, decode errors              |
|                            | ListTest                     | Extractor.list()                           | Listing without writes                        |
| test_inspect.py            | InspectTest                  | do_inspect()                               | Report listing, path lookup                   |
"""
