# plotlog_reporter/loaders/log_loader.py
from __future__ import annotations
from pathlib import Path
from typing import Iterable, Sequence
import logging

from ..core.errors import IncompleteLogError, PlotLogError
from ..core.extractors import DEFAULT_JOBS
from ..core.model import ParseFailure, PlotRecord
from ..core.scanner import FieldJob, scan_file

_LOG = logging.getLogger(__name__)

def load(path: Path, jobs: Sequence[FieldJob] = DEFAULT_JOBS) -> PlotRecord:
    """Parse one plotter log; scanner errors propagate unchanged."""
    return scan_file(path, jobs)

def load_all(paths: Iterable[Path], jobs: Sequence[FieldJob] = DEFAULT_JOBS,
             verbose: bool = False) -> tuple[list[PlotRecord], list[ParseFailure]]:
    """
    Parse every log independently. Logs of plots still in progress are
    skipped, every other failure is collected and the rest carry on.
    """
    records: list[PlotRecord] = []
    failures: list[ParseFailure] = []
    for path in paths:
        if verbose:
            print(f"  [load] {path.name}")
        try:
            records.append(load(path, jobs))
        except IncompleteLogError as e:
            _LOG.debug("skipping in-progress log %s: %s", path.name, e)
        except PlotLogError as e:
            _LOG.info("failed to parse %s: %s", path.name, e)
            failures.append(ParseFailure(source=path, kind=e.kind, reason=e.reason(), draft=e.draft))
        except OSError as e:
            print(f"[WARN] cannot read {path.name}: {e}")
            failures.append(ParseFailure(source=path, kind="io", reason=str(e)))
    return records, failures
