# plotlog_reporter/core/scanner.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Sequence
import logging

from .errors import IncompleteLogError, LogValueError, PlotLogError
from .model import PlotRecord, RecordDraft, RecordInvariantError

_LOG = logging.getLogger(__name__)

Extractor = Callable[[str, RecordDraft], dict]


class MatchKind(Enum):
    PREFIX = "^"
    SUFFIX = "$"
    CONTAINS = ""


@dataclass(frozen=True)
class Predicate:
    kind: MatchKind
    text: str

    @classmethod
    def from_match(cls, match: str) -> "Predicate":
        """
        '^Plot size is: ' -> prefix, '$MiB' -> suffix, anything else -> contains.
        """
        if match[:1] == MatchKind.PREFIX.value:
            return cls(MatchKind.PREFIX, match[1:])
        if match[:1] == MatchKind.SUFFIX.value:
            return cls(MatchKind.SUFFIX, match[1:])
        return cls(MatchKind.CONTAINS, match)

    def __call__(self, line: str) -> bool:
        if self.kind is MatchKind.PREFIX:
            return line.startswith(self.text)
        if self.kind is MatchKind.SUFFIX:
            return line.endswith(self.text)
        return self.text in line


@dataclass(frozen=True)
class FieldJob:
    name: str
    match: str                 # sentinel-prefixed match text
    extract: Extractor
    predicate: Predicate = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.match or self.match in (MatchKind.PREFIX.value, MatchKind.SUFFIX.value):
            raise ValueError(f"field job {self.name!r} has an empty match text")
        object.__setattr__(self, "predicate", Predicate.from_match(self.match))


def scan_lines(lines: Iterable[str], jobs: Sequence[FieldJob],
               source: Path | str | None = None) -> PlotRecord:
    """
    Walk the line stream once, waiting for one job at a time.

    Only the current job's predicate is tried; lines that do not match it are
    dropped, which is how preambles and interleaved warnings get skipped. A
    match hands the line to the job's extractor and moves on to the next job.
    Jobs can never match out of order and the scan never backtracks.

    Raises IncompleteLogError when the lines run out first, LogFormatError /
    LogValueError when an extractor rejects its line. Every error carries the
    partially filled draft.
    """
    if not jobs:
        raise ValueError("at least one field job is required")

    draft = RecordDraft()
    cursor = 0
    job = jobs[0]
    for lineno, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if not job.predicate(line):
            continue

        _LOG.debug("%s: job %d (%s) matched line %d", source, cursor, job.name, lineno)
        try:
            draft.update(**job.extract(line, draft))
        except PlotLogError as e:
            _tag(e, draft, source, cursor)
            raise

        cursor += 1
        if cursor == len(jobs):
            try:
                return draft.finish(Path(source) if source is not None else None)
            except RecordInvariantError as e:
                err = LogValueError(e.field, str(getattr(draft, e.field, "")), f"invariant violated ({e})")
                _tag(err, draft, source, cursor - 1)
                raise err from e
        job = jobs[cursor]

    err = IncompleteLogError(cursor, job.name)
    _tag(err, draft, source, cursor)
    raise err


def scan_file(path: Path, jobs: Sequence[FieldJob] | None = None,
              encoding: str = "utf-8") -> PlotRecord:
    if jobs is None:
        from .extractors import DEFAULT_JOBS
        jobs = DEFAULT_JOBS
    with Path(path).open("r", encoding=encoding, errors="replace") as f:
        return scan_lines(f, jobs, source=path)


def _tag(err: PlotLogError, draft: RecordDraft, source, job_index: int) -> None:
    err.draft = draft
    err.source = source
    if err.job_index is None:
        err.job_index = job_index
