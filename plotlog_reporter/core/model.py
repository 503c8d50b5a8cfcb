# plotlog_reporter/core/model.py
from __future__ import annotations
from dataclasses import dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

N_PHASES = 5  # phase 1..4 + final copy


class RecordInvariantError(ValueError):
    """A finished record would violate one of its invariants."""

    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field = field_name


class ConfigKey(NamedTuple):
    k_size: int
    buffer_MiB: int
    threads: int
    stripe_size: int


@dataclass(frozen=True)
class PlotRecord:
    k_size: int                    # plot size parameter (k32, k33, ...)
    buffer_MiB: int                # memory budget as logged
    threads: int
    stripe_size: int
    phases_s: tuple[float, ...]    # phase 1-4 + copy, seconds
    total_s: float                 # wall clock, end - start (not the sum of phases)
    start_time: datetime
    end_time: datetime
    tmp_dirs: tuple[str, str]
    dest_path: str
    source_path: Path | None = None

    @property
    def config_key(self) -> ConfigKey:
        return ConfigKey(self.k_size, self.buffer_MiB, self.threads, self.stripe_size)


@dataclass
class RecordDraft:
    """
    Mutable record under construction. The scanner merges extractor output
    into it job by job; a draft left behind by a failed parse is kept for
    diagnostics only and never finished.
    """
    k_size: int | None = None
    buffer_MiB: int | None = None
    threads: int | None = None
    stripe_size: int | None = None
    phases_s: list = field(default_factory=lambda: [None] * N_PHASES)
    total_s: float | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    tmp_dirs: tuple[str, str] | None = None
    dest_path: str | None = None

    def update(self, **values) -> None:
        for name, value in values.items():
            if name.startswith("phase") and name.endswith("_s") and name[5:-2].isdigit():
                self.phases_s[int(name[5:-2]) - 1] = value
            elif name in self.__dataclass_fields__:
                setattr(self, name, value)
            else:
                raise AttributeError(f"unknown record field {name!r}")

    def filled_fields(self) -> list[str]:
        out = []
        for f in fields(self):
            if f.name == "phases_s":
                out.extend(f"phase{i + 1}_s" for i, v in enumerate(self.phases_s) if v is not None)
            elif getattr(self, f.name) is not None:
                out.append(f.name)
        return out

    def missing_fields(self) -> list[str]:
        have = set(self.filled_fields())
        names = []
        for f in fields(self):
            if f.name == "phases_s":
                names.extend(f"phase{i + 1}_s" for i in range(N_PHASES))
            else:
                names.append(f.name)
        return [n for n in names if n not in have]

    def finish(self, source_path: Path | None = None) -> PlotRecord:
        missing = self.missing_fields()
        if missing:
            raise RecordInvariantError(missing[0], "never extracted")
        if self.k_size <= 0:
            raise RecordInvariantError("k_size", f"must be > 0, got {self.k_size}")
        for i, v in enumerate(self.phases_s):
            if v < 0:
                raise RecordInvariantError(f"phase{i + 1}_s", f"must be >= 0, got {v}")
        if self.end_time < self.start_time:
            raise RecordInvariantError(
                "end_time", f"{self.end_time:%Y-%m-%d %H:%M:%S} is before start {self.start_time:%Y-%m-%d %H:%M:%S}"
            )
        span = (self.end_time - self.start_time).total_seconds()
        if self.total_s != span:
            raise RecordInvariantError("total_s", f"{self.total_s} does not match wall clock span {span}")
        if not all(self.tmp_dirs):
            raise RecordInvariantError("tmp_dirs", "empty temporary directory")
        if not self.dest_path:
            raise RecordInvariantError("dest_path", "empty destination path")

        return PlotRecord(
            k_size=self.k_size,
            buffer_MiB=self.buffer_MiB,
            threads=self.threads,
            stripe_size=self.stripe_size,
            phases_s=tuple(float(v) for v in self.phases_s),
            total_s=self.total_s,
            start_time=self.start_time,
            end_time=self.end_time,
            tmp_dirs=tuple(self.tmp_dirs),
            dest_path=self.dest_path,
            source_path=source_path,
        )


@dataclass(frozen=True)
class ParseFailure:
    source: Path
    kind: str                      # "format" | "value" | "io"
    reason: str
    draft: RecordDraft | None = None   # fields obtained before the failure, diagnostics only

    def fields_obtained(self) -> list[str]:
        return [] if self.draft is None else self.draft.filled_fields()
