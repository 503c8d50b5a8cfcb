# plotlog_reporter/core/plotting.py
from __future__ import annotations
from pathlib import Path
from typing import Sequence
import matplotlib.pyplot as plt
import matplotlib.dates as mdates
import numpy as np

from .grouping import SERIES, GroupStats
from .model import ConfigKey, PlotRecord

def save_timeline_plot(classified: Sequence[tuple[PlotRecord, int]], out_dir: Path,
                       file_name: str = "timeline.png") -> Path | None:
    """One horizontal bar per plot from start to end, colored by overlap count."""
    if not classified:
        print("[INFO] no plots parsed; skipping timeline plot.")
        return None
    out_dir.mkdir(parents=True, exist_ok=True)

    overlaps = [n for _, n in classified]
    cmap = plt.get_cmap("viridis", max(overlaps))
    height = max(3.0, 0.25 * len(classified) + 1.5)
    fig, ax = plt.subplots(figsize=(11, height))
    for row, (r, n) in enumerate(classified):
        start = mdates.date2num(r.start_time)
        width = mdates.date2num(r.end_time) - start
        ax.barh(row, width, left=start, height=0.8, color=cmap(n - 1))
    ax.xaxis_date()
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%m-%d %H:%M"))
    ax.set_yticks(range(len(classified)))
    ax.set_yticklabels([f"k{r.k_size} #{i + 1}" for i, (r, _) in enumerate(classified)], fontsize=7)
    ax.invert_yaxis()
    ax.set_xlabel("Time")
    ax.set_title("Plot timeline (color = plots running in parallel)")
    sm = plt.cm.ScalarMappable(cmap=cmap, norm=plt.Normalize(vmin=0.5, vmax=max(overlaps) + 0.5))
    fig.colorbar(sm, ax=ax, label="parallel plots", ticks=range(1, max(overlaps) + 1))
    ax.grid(True, axis="x", alpha=0.3)
    fig.autofmt_xdate()
    fig.tight_layout()
    out_path = out_dir / file_name
    fig.savefig(out_path, dpi=160)
    plt.close(fig)
    print(f"[OK] timeline: {len(classified)} plots → {out_path}")
    return out_path

def save_phase_plot(config_groups: dict[ConfigKey, GroupStats], out_dir: Path,
                    file_name: str = "phases_by_config.png") -> Path | None:
    """Stacked mean phase durations (hours) per configuration."""
    if not config_groups:
        print("[INFO] no configurations to plot; skipping phase plot.")
        return None
    out_dir.mkdir(parents=True, exist_ok=True)

    keys = sorted(config_groups)
    labels = [f"k{k.k_size}/{k.buffer_MiB}MiB/{k.threads}t/{k.stripe_size}" for k in keys]
    x = np.arange(len(keys))
    bottom = np.zeros(len(keys))
    fig, ax = plt.subplots(figsize=(max(6.0, 1.2 * len(keys) + 3), 6))
    for name in SERIES[:-1]:  # total is the wall clock span, not a stacked part
        hours = np.array([config_groups[k].means()[name] / 3600.0 for k in keys])
        ax.bar(x, hours, bottom=bottom, label=name.replace("_s", ""))
        bottom += hours
    totals = np.array([config_groups[k].means()["total_s"] / 3600.0 for k in keys])
    ax.scatter(x, totals, color="black", marker="_", s=400, label="total (wall clock)", zorder=3)
    ax.set_xticks(x)
    ax.set_xticklabels(labels, rotation=30, ha="right", fontsize=8)
    ax.set_ylabel("Mean duration [h]")
    ax.set_title("Mean phase durations by configuration")
    ax.grid(True, axis="y", alpha=0.3)
    ax.legend(fontsize=8, frameon=False)
    fig.tight_layout()
    out_path = out_dir / file_name
    fig.savefig(out_path, dpi=160)
    plt.close(fig)
    print(f"[OK] phase plot: {len(keys)} configurations → {out_path}")
    return out_path
