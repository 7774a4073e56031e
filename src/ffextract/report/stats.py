from typing import NamedTuple


class StatsSnapshot(NamedTuple):
    """Point-in-time copy of the run counters.

    Attributes:
        total_bytes_seen: Sum of the declared sizes of every entry processed
        saved_write_bytes: Bytes that were not written because the destination was hardlinked
        linked_file_count: Number of destinations created as hardlinks
        savings_percent: saved_write_bytes as a percentage of total_bytes_seen (0 when nothing was seen)
    """
    total_bytes_seen: int
    saved_write_bytes: int
    linked_file_count: int
    savings_percent: float

    def summary(self) -> str:
        return (f"Finished. Savings: {self.saved_write_bytes} written bytes in {self.linked_file_count} files "
                f"({self.savings_percent:.2f}% of {self.total_bytes_seen} bytes)")


class RunStats:
    """Additive counters for one extraction run.

    A single instance is created per run and handed to every component that reports outcomes.
    Recordings are never removed or corrected.
    """

    def __init__(self):
        self.total_bytes_seen = 0
        self.saved_write_bytes = 0
        self.linked_file_count = 0

    def record_seen(self, size: int):
        self.total_bytes_seen += size

    def record_linked(self, size: int):
        self.saved_write_bytes += size
        self.linked_file_count += 1

    def snapshot(self) -> StatsSnapshot:
        if self.total_bytes_seen == 0:
            percent = 0.0
        else:
            percent = self.saved_write_bytes * 100 / self.total_bytes_seen
        return StatsSnapshot(self.total_bytes_seen, self.saved_write_bytes, self.linked_file_count, percent)
