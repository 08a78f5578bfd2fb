"""
Run statistics for a batch.

The accumulator is owned by the orchestrator, which records exactly one outcome
per completed file. Each update swaps in a new frozen RunStatistics value, so a
snapshot taken at any moment (including from the interrupt path) is consistent.
"""
import time
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from hevc.utils import logger
from hevc.utils.format_util import duration_h, size_h
from .policy import Outcome

SEPARATOR = "========================================="


@dataclass(frozen=True)
class RunStatistics:
    processed: int = 0
    compressed: int = 0
    moved: int = 0
    failed: int = 0
    original_size: int = 0
    final_size: int = 0

    @property
    def space_saved(self) -> int:
        return self.original_size - self.final_size

    @property
    def compression_ratio(self) -> Optional[float]:
        """Final size as a percentage of the original, or None with no original bytes."""
        if self.original_size <= 0:
            return None
        return self.final_size / self.original_size * 100


class StatsAccumulator:
    """Counts outcomes and byte totals for one run."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._stats = RunStatistics()
        self.start_time = clock()

    def record_outcome(self, outcome: Outcome, original_size: int = 0, final_size: int = 0) -> RunStatistics:
        """
        Count a completed file.

        Sizes only contribute for files that were published; a failed file adds
        to the failure count alone.
        """
        if original_size < 0 or final_size < 0:
            raise ValueError("sizes must not be negative")

        s = self._stats
        if outcome is Outcome.FAILED:
            s = replace(s, processed=s.processed + 1, failed=s.failed + 1)
        else:
            s = replace(
                s,
                processed=s.processed + 1,
                compressed=s.compressed + (outcome is Outcome.COMPRESSED),
                moved=s.moved + (outcome is Outcome.MOVED),
                original_size=s.original_size + original_size,
                final_size=s.final_size + final_size,
            )
        self._stats = s
        return s

    def snapshot(self) -> RunStatistics:
        return self._stats

    def elapsed(self) -> float:
        return self._clock() - self.start_time

    def _items(self, duration: float, cancelled: bool) -> List[Tuple[str, str]]:
        s = self.snapshot()
        items = [
            ("status", "Transcoding cancelled by user" if cancelled else "Transcoding completed"),
            ("separator", SEPARATOR),
            ("processed", f"Processed: {s.processed}"),
            ("compressed", f"Compressed: {s.compressed}"),
            ("moved", f"Moved: {s.moved}"),
            ("failed", f"Failed: {s.failed}"),
            ("original_size", f"Original Size: {size_h(s.original_size)}"),
            ("final_size", f"Final Size: {size_h(s.final_size)}"),
        ]
        ratio = s.compression_ratio
        if ratio is not None:
            items.append(("space_saved", f"Space Saved: {size_h(s.space_saved)}"))
            items.append(("compression_ratio", f"Compression Ratio: {ratio:.2f}%"))
        items.append(("duration", f"Duration: {duration_h(duration)}"))
        items.append(("separator", SEPARATOR))
        return items

    def render(self, duration: float, cancelled: bool = False) -> List[str]:
        """Build the final report lines."""
        return [line for _, line in self._items(duration, cancelled)]

    def report(self, cancelled: bool = False) -> List[str]:
        """
        Log the final report and return its lines.

        The report is written whatever the log threshold, so the failure count
        is always visible.
        """
        items = self._items(self.elapsed(), cancelled)
        for key, line in items:
            logger.always(f"summary.{key}", msg=line)
        return [line for _, line in items]
