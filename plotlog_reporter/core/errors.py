# plotlog_reporter/core/errors.py
from __future__ import annotations
from pathlib import Path


class PlotLogError(Exception):
    """
    Base for everything that can go wrong while turning one log into a record.

    ``draft`` holds the partially filled record (or None), ``source`` the log
    it came from and ``job_index`` the field job that was running; the
    scanner fills these in as the error passes through it.
    """
    kind = "error"

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field
        self.draft = None
        self.source: Path | str | None = None
        self.job_index: int | None = None

    def reason(self) -> str:
        where = f"job {self.job_index}" if self.job_index is not None else "scan"
        return f"{self.kind} error at {where}: {self}"


class IncompleteLogError(PlotLogError):
    """Line stream ended before every field job matched (plot still running)."""
    kind = "incomplete"

    def __init__(self, job_index: int, job_name: str):
        super().__init__(f"input ended while waiting for {job_name!r}")
        self.job_index = job_index
        self.job_name = job_name


class LogFormatError(PlotLogError):
    """A marker line is too short, or lacks the delimiter a field needs."""
    kind = "format"

    def __init__(self, field: str, line: str, message: str):
        super().__init__(f"{field}: {message} in line {snippet(line)!r}", field=field)
        self.snippet = snippet(line)


class LogValueError(PlotLogError):
    """A token could not be parsed as a number or a timestamp."""
    kind = "value"

    def __init__(self, field: str, token: str, message: str = "cannot parse"):
        super().__init__(f"{field}: {message} {token!r}", field=field)
        self.token = token


def snippet(line: str, width: int = 80) -> str:
    return line if len(line) <= width else line[:width] + "..."
