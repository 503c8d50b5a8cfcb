# plotlog_reporter/core/concurrency.py
from __future__ import annotations
from typing import Sequence
import logging

from .model import PlotRecord

_LOG = logging.getLogger(__name__)


def sort_by_end(records) -> list[PlotRecord]:
    return sorted(records, key=lambda r: r.end_time)


def overlap_counts(records: Sequence[PlotRecord]) -> list[int]:
    """
    For every record (already sorted by end_time) count the records whose
    closed [start_time, end_time] interval touches its own, itself included.

    overlap(r) = #{start <= r.end} - #{end < r.start}; the second set is a
    subset of the first, so the difference is exactly the touching records.

    hi walks the records in start order. Its bound r.end_time never decreases
    along the end-sorted iteration, so hi only ever moves forward.
    lo is the first end-sorted position whose end_time >= r.start_time. Start
    times are not monotonic in end order (a long run that began early can end
    late), so the lo queries are answered in a separate pass over the records
    in start order, where lo only ever moves forward too.
    """
    n = len(records)
    for i in range(1, n):
        if records[i].end_time < records[i - 1].end_time:
            raise ValueError(f"records must be sorted by end_time (index {i} ends before index {i - 1})")

    start_order = sorted(range(n), key=lambda i: records[i].start_time)
    ended_before = [0] * n   # #{end < start_time of record i}
    lo = 0
    for i in start_order:
        while lo < n and records[lo].end_time < records[i].start_time:
            lo += 1
        ended_before[i] = lo

    counts: list[int] = []
    hi = -1
    for i, r in enumerate(records):
        while hi + 1 < n and records[start_order[hi + 1]].start_time <= r.end_time:
            hi += 1
        counts.append(hi - ended_before[i] + 1)

    _LOG.debug("classified %d record(s), max overlap %d", n, max(counts, default=0))
    return counts


def classify(records) -> list[tuple[PlotRecord, int]]:
    """Sort by end time and tag each record with its overlap count."""
    ordered = sort_by_end(records)
    return list(zip(ordered, overlap_counts(ordered)))
