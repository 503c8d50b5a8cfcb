# plotlog_reporter/core/pipeline.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path

from .concurrency import classify
from .grouping import GroupStats, group_by_concurrency, group_by_config
from .model import ConfigKey, ParseFailure, PlotRecord
from .plotting import save_phase_plot, save_timeline_plot
from .reports import write_reports

@dataclass
class PipelineResult:
    classified: list[tuple[PlotRecord, int]]
    config_groups: dict[ConfigKey, GroupStats]
    concurrency_groups: dict[int, GroupStats]
    written: list[Path] = field(default_factory=list)

def run_pipeline(records: list[PlotRecord], failures: list[ParseFailure],
                 cfg: dict, out_root: Path) -> PipelineResult:
    """
    Sort + classify + group the parsed records, then hand everything to the
    report writers. Records must all be valid; failures are only reported.
    """
    classified = classify(records)
    config_groups = group_by_config(r for r, _ in classified)
    concurrency_groups = group_by_concurrency(classified)

    rep = cfg.get("reports", {}) or {}
    fmt = str(rep.get("format", "text")).lower()
    written = write_reports(
        classified,
        config_groups,
        concurrency_groups,
        failures,
        out_root,
        fmt=fmt,
        mat_variable=str(rep.get("mat_variable", "plots")),
        show_failures=bool(rep.get("show_failures", True)),
    )

    if bool((cfg.get("plots", {}) or {}).get("enabled", True)):
        for path in (save_timeline_plot(classified, out_root), save_phase_plot(config_groups, out_root)):
            if path is not None:
                written.append(path)

    return PipelineResult(
        classified=classified,
        config_groups=config_groups,
        concurrency_groups=concurrency_groups,
        written=written,
    )
