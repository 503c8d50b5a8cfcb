# plotlog_reporter/utils/detect.py
from __future__ import annotations
from pathlib import Path
from dataclasses import dataclass
from typing import Iterable, Literal

DetectedKind = Literal["log", "unknown"]

DEFAULT_SUFFIXES: tuple[str, ...] = (".txt", ".log")

@dataclass(frozen=True)
class DetectedItem:
    path: Path        # actual path on disk
    kind: DetectedKind

def detect_kind(p: Path, suffixes: Iterable[str] = DEFAULT_SUFFIXES) -> DetectedKind:
    """
    Classify a single path: plotter logs are plain text files with one of the
    configured suffixes, anything else is 'unknown'.
    """
    wanted = {s.lower() for s in suffixes}
    if p.suffix.lower() in wanted:
        return "log"
    return "unknown"

def discover_inputs(root: Path, recurse: bool = True,
                    suffixes: Iterable[str] = DEFAULT_SUFFIXES) -> list[DetectedItem]:
    """
    If 'root' is a file -> return it as a log, whatever its suffix.
    If 'root' is a folder -> walk (optionally recursively) and collect log files.
    """
    suffixes = tuple(suffixes)
    items: list[DetectedItem] = []
    if root.is_file():
        return [DetectedItem(root.resolve(), "log")]
    if not root.is_dir():
        return items

    it = root.rglob("*") if recurse else root.glob("*")
    for p in it:
        if not p.is_file():
            continue
        if detect_kind(p, suffixes) != "unknown":
            items.append(DetectedItem(p.resolve(), "log"))

    # deterministic ordering
    items.sort(key=lambda x: str(x.path))
    return items
