# plotlog_reporter/core/metrics.py
from __future__ import annotations
import numpy as np

from .grouping import SERIES, GroupStats
from .model import PlotRecord

def human_time(seconds: float) -> str:
    minutes = seconds / 60.0
    hours = int(minutes // 60)
    minutes -= hours * 60
    return f"{hours}h {int(np.round(minutes))}m"

PLOT_COLUMNS: list[str] = [
    "k_size", "buffer_MiB", "threads", "stripe_size", *SERIES,
    "start_time", "end_time", "overlap", "tmp_dir_1", "tmp_dir_2", "dest_path", "source",
]

def record_row(record: PlotRecord, overlap: int | None = None) -> dict:
    row = {
        "k_size": record.k_size,
        "buffer_MiB": record.buffer_MiB,
        "threads": record.threads,
        "stripe_size": record.stripe_size,
    }
    for name, value in zip(SERIES, (*record.phases_s, record.total_s)):
        row[name] = round(value, 3)
    row.update({
        "start_time": record.start_time.strftime("%Y-%m-%d %H:%M:%S"),
        "end_time":   record.end_time.strftime("%Y-%m-%d %H:%M:%S"),
        "overlap": overlap if overlap is not None else "",
        "tmp_dir_1": record.tmp_dirs[0],
        "tmp_dir_2": record.tmp_dirs[1],
        "dest_path": record.dest_path,
        "source": "" if record.source_path is None else str(record.source_path),
    })
    return row

def group_row(key_columns: dict, stats: GroupStats) -> dict:
    row = dict(key_columns)
    row["n_plots"] = stats.count
    for name, mean in stats.means().items():
        row[name] = round(mean, 3)
    return row
