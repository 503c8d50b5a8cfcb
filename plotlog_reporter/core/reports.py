# plotlog_reporter/core/reports.py
from __future__ import annotations
from itertools import groupby
from pathlib import Path
from typing import Literal, Sequence
import numpy as np
import pandas as pd
from scipy.io import savemat

from .grouping import SERIES, GroupStats
from .extractors import LOG_FORMAT_VERSION
from .metrics import PLOT_COLUMNS, group_row, human_time, record_row
from .model import ConfigKey, ParseFailure, PlotRecord

ReportFormat = Literal["text", "csv", "mat", "both"]
REPORT_FORMATS: tuple[str, ...] = ("text", "csv", "mat", "both")

_PLOT_HEADER = ("KSize    RAM(MiB)    Threads    Stripe    Phase 1    Phase 2    Phase 3    "
                "Phase 4    Copy      Total      Start End")
_GROUP_HEADER = "Phase 1    Phase 2    Phase 3    Phase 4    Copy      Total      Plots"

FAILURE_COLUMNS = ["source", "kind", "reason", "fields_obtained"]

# ---------- tables ----------
def build_tables(classified: Sequence[tuple[PlotRecord, int]],
                 config_groups: dict[ConfigKey, GroupStats],
                 concurrency_groups: dict[int, GroupStats],
                 failures: Sequence[ParseFailure] = ()) -> dict[str, pd.DataFrame]:
    """Build the four report tables: plots, config averages, parallel averages, failures."""
    plots = pd.DataFrame([record_row(r, n) for r, n in classified], columns=PLOT_COLUMNS)

    config_rows = [group_row(key._asdict(), stats) for key, stats in sorted(config_groups.items())]
    config_df = pd.DataFrame(config_rows, columns=[*ConfigKey._fields, "n_plots", *SERIES])

    parallel_rows = [group_row({"overlap": n}, stats) for n, stats in sorted(concurrency_groups.items())]
    parallel_df = pd.DataFrame(parallel_rows, columns=["overlap", "n_plots", *SERIES])

    failure_rows = [{
        "source": str(f.source),
        "kind": f.kind,
        "reason": f.reason,
        "fields_obtained": " ".join(f.fields_obtained()),
    } for f in failures]
    failures_df = pd.DataFrame(failure_rows, columns=FAILURE_COLUMNS)

    return {
        "plots": plots,
        "config_averages": config_df,
        "parallel_averages": parallel_df,
        "failures": failures_df,
    }

# ---------- text ----------
def _phase_cells(values) -> str:
    return "".join(f"{human_time(v):<10} " for v in values)

def render_text(classified: Sequence[tuple[PlotRecord, int]],
                config_groups: dict[ConfigKey, GroupStats],
                concurrency_groups: dict[int, GroupStats],
                failures: Sequence[ParseFailure] = (),
                show_failures: bool = True) -> str:
    lines: list[str] = [f"Log format: {LOG_FORMAT_VERSION}"]

    # one section per calendar day the plots finished on
    for day, day_plots in groupby(classified, key=lambda item: item[0].end_time.date()):
        lines.append("")
        lines.append(f"{day:%B} {day.day}, {day.year}")
        lines.append(_PLOT_HEADER)
        for r, _ in day_plots:
            lines.append(
                f"{r.k_size:<8} {r.buffer_MiB:<11} {r.threads:<10} {r.stripe_size:<9} "
                + _phase_cells((*r.phases_s, r.total_s))
                + f"{r.start_time:%H:%M} {r.end_time:%H:%M}"
            )

    if config_groups:
        lines.append("")
        lines.append("Averages by configuration")
        lines.append("KSize    RAM(MiB)    Threads    Stripe    " + _GROUP_HEADER)
        for key, stats in sorted(config_groups.items()):
            lines.append(
                f"{key.k_size:<8} {key.buffer_MiB:<11} {key.threads:<10} {key.stripe_size:<9} "
                + _phase_cells(stats.means().values())
                + f"{stats.count}"
            )

    if concurrency_groups:
        lines.append("")
        lines.append("Averages by parallel plots")
        lines.append("Parallel  " + _GROUP_HEADER)
        for n, stats in sorted(concurrency_groups.items()):
            lines.append(f"{n:<9} " + _phase_cells(stats.means().values()) + f"{stats.count}")

    if show_failures and failures:
        lines.append("")
        lines.append("Failed to parse the following plots")
        for f in failures:
            lines.append(f"{f.source} {f.reason}")

    return "\n".join(lines) + "\n"

# ---------- writers ----------
def _write_csv(df_out: pd.DataFrame, out_csv: Path, title: str) -> None:
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df_out.to_csv(out_csv, index=False, encoding="utf-8")
    print(f"[OK] wrote report: {title} → {out_csv}")

def _to_mat_cellstr(seq: list[str]) -> np.ndarray:
    """Make a MATLAB column cell array from a list of strings."""
    seq2 = [("" if s is None else str(s)) for s in seq]
    arr = np.empty((len(seq2), 1), dtype=object)
    arr[:, 0] = seq2
    return arr

def _mat_struct(df: pd.DataFrame) -> dict:
    """Numeric columns become double (Nx1), everything else a cell array (Nx1)."""
    out = {}
    for col in df.columns:
        if pd.api.types.is_numeric_dtype(df[col]):
            out[col] = df[col].to_numpy(dtype=float).reshape(-1, 1)
        else:
            out[col] = _to_mat_cellstr(df[col].astype(str).replace("nan", "", regex=False).tolist())
    return out

def _write_mat(tables: dict[str, pd.DataFrame], out_mat: Path, varname: str, title: str) -> None:
    out_mat.parent.mkdir(parents=True, exist_ok=True)
    struct = {name: _mat_struct(df) for name, df in tables.items()}
    struct["log_format"] = LOG_FORMAT_VERSION
    savemat(out_mat, {varname: struct})
    print(f"[OK] wrote report: {title} → {out_mat}")

def write_reports(classified: Sequence[tuple[PlotRecord, int]],
                  config_groups: dict[ConfigKey, GroupStats],
                  concurrency_groups: dict[int, GroupStats],
                  failures: Sequence[ParseFailure],
                  out_root: Path,
                  fmt: ReportFormat = "text",
                  mat_variable: str = "plots",
                  show_failures: bool = True) -> list[Path]:
    """
    Write the report in the requested format and return the files written.
    - fmt: "text" (also printed) | "csv" | "mat" | "both" (csv + mat)
    - failures are listed in every format unless show_failures is off
    """
    if fmt not in REPORT_FORMATS:
        raise ValueError(f"unknown report format {fmt!r} (expected one of {', '.join(REPORT_FORMATS)})")
    written: list[Path] = []
    if not show_failures:
        failures = ()

    if fmt == "text":
        text = render_text(classified, config_groups, concurrency_groups, failures, show_failures)
        print(text, end="")
        out_txt = out_root / "report.txt"
        out_txt.parent.mkdir(parents=True, exist_ok=True)
        out_txt.write_text(text, encoding="utf-8")
        print(f"[OK] wrote report: text → {out_txt}")
        return [out_txt]

    tables = build_tables(classified, config_groups, concurrency_groups, failures)
    if fmt in ("csv", "both"):
        for name, df in tables.items():
            if name == "failures" and df.empty:
                continue
            out_csv = out_root / f"{name}.csv"
            _write_csv(df, out_csv, name.replace("_", " "))
            written.append(out_csv)
    if fmt in ("mat", "both"):
        out_mat = out_root / "report.mat"
        _write_mat({k: v for k, v in tables.items() if not v.empty}, out_mat, mat_variable, "mat")
        written.append(out_mat)
    return written
