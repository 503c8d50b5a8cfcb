# plotlog_reporter/main.py
from __future__ import annotations
from pathlib import Path
import argparse
import logging
import sys
import yaml

from .core.pipeline import run_pipeline
from .loaders.log_loader import load_all
from .utils.detect import DEFAULT_SUFFIXES, discover_inputs

DEFAULT_CONFIG = Path(__file__).resolve().parent / "config.yaml"
DEFAULT_LOG_DIR = Path.home() / ".chia" / "mainnet" / "plotter"

def load_config(cfg_path: Path) -> dict:
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

def _parse_args(argv):
    ap = argparse.ArgumentParser(prog="plotlog-report",
                                 description="Summarize plotter logs: per-plot timings, averages by configuration and by plots run in parallel.")
    ap.add_argument("paths", nargs="*", type=Path, help="log files or directories (default: from config, else ~/.chia/mainnet/plotter)")
    ap.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="YAML config file")
    ap.add_argument("--format", choices=["text", "csv", "mat", "both"], help="override reports.format")
    ap.add_argument("--out", type=Path, help="override output.root")
    return ap.parse_args(argv)

def main(argv=None) -> int:
    args = _parse_args(argv)

    # ---------- config ----------
    cfg = load_config(args.config)
    log_cfg = cfg.get("logging", {}) or {}
    logging.basicConfig(level=str(log_cfg.get("level", "WARNING")).upper(),
                        format="%(levelname)s %(name)s: %(message)s")
    verbose = bool(log_cfg.get("verbose", True))

    inp = cfg.get("input", {}) or {}
    if args.paths:
        in_paths = [p.expanduser().resolve() for p in args.paths]
    else:
        in_paths = [Path(p).expanduser().resolve() for p in (inp.get("paths") or [DEFAULT_LOG_DIR])]
    recurse = bool(inp.get("recurse", False))
    suffixes = tuple(inp.get("suffixes") or DEFAULT_SUFFIXES)

    out_root = (args.out or Path(str((cfg.get("output", {}) or {}).get("root", "plotlog_out")))).expanduser().resolve()
    out_root.mkdir(parents=True, exist_ok=True)
    if args.format:
        cfg.setdefault("reports", {})
        cfg["reports"] = dict(cfg["reports"] or {}, format=args.format)

    if verbose:
        print(f"[cfg] input={', '.join(map(str, in_paths))} (recurse={recurse})")
        print(f"[cfg] output={out_root}")

    # ---------- discover ----------
    detected = []
    for root in in_paths:
        if not root.exists():
            print(f"[WARN] input path does not exist: {root}")
            continue
        detected.extend(discover_inputs(root, recurse=recurse, suffixes=suffixes))
    if not detected:
        print(f"[INFO] No plotter logs found under: {', '.join(map(str, in_paths))}")
        return 0
    if verbose:
        print(f"[detector] found {len(detected)} log file(s)")

    # ---------- parse ----------
    records, failures = load_all((d.path for d in detected), verbose=verbose)
    skipped = len(detected) - len(records) - len(failures)
    if verbose:
        print(f"[parse] {len(records)} finished plot(s), {skipped} in progress, {len(failures)} failed")

    result = run_pipeline(records, failures, cfg, out_root)

    if verbose:
        print(f"[summary] {len(result.config_groups)} configuration(s), "
              f"max {max(result.concurrency_groups, default=0)} plot(s) in parallel")
    return 0

if __name__ == "__main__":
    sys.exit(main())
