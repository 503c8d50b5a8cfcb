from __future__ import annotations
from dataclasses import dataclass, field

from .model import ConfigKey, PlotRecord

SERIES: tuple[str, ...] = ("phase1_s", "phase2_s", "phase3_s", "phase4_s", "copy_s", "total_s")


@dataclass
class RunningMean:
    count: int = 0
    mean: float = 0.0

    def add(self, value: float) -> None:
        self.count += 1
        self.mean += (value - self.mean) / self.count


@dataclass
class GroupStats:
    count: int = 0
    series: dict[str, RunningMean] = field(default_factory=lambda: {s: RunningMean() for s in SERIES})

    def add(self, record: PlotRecord) -> None:
        values = (*record.phases_s, record.total_s)
        for name, value in zip(SERIES, values):
            if value < 0:
                raise ValueError(f"{name} is negative ({value}) for {record.source_path}")
        self.count += 1
        for name, value in zip(SERIES, values):
            self.series[name].add(value)

    def means(self) -> dict[str, float]:
        return {name: m.mean for name, m in self.series.items()}


def group_by_config(records) -> dict[ConfigKey, GroupStats]:
    """One group per distinct (k_size, buffer_MiB, threads, stripe_size)."""
    groups: dict[ConfigKey, GroupStats] = {}
    for r in records:
        groups.setdefault(r.config_key, GroupStats()).add(r)
    return groups


def group_by_concurrency(classified: list[tuple[PlotRecord, int]]) -> dict[int, GroupStats]:
    """
    classified: [(record, overlap_count), ...] as produced by concurrency.classify
    """
    groups: dict[int, GroupStats] = {}
    for r, overlap in classified:
        groups.setdefault(overlap, GroupStats()).add(r)
    return groups
