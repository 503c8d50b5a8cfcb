# plotlog_reporter/core/extractors.py
from __future__ import annotations
from datetime import datetime

from .errors import LogFormatError, LogValueError
from .model import RecordDraft
from .scanner import FieldJob

# ----- log format constants (version together with DEFAULT_JOBS) -----
LOG_FORMAT_VERSION = "chiapos-1"

TMP_DIRS_MARKER = "Starting plotting progress into temporary dirs: "
TMP_DIRS_OFFSET = 48
TMP_DIRS_SEP = " and "
K_SIZE_OFFSET = 14          # "Plot size is: "
BUFFER_OFFSET = 16          # "Buffer size is: "
BUFFER_UNIT = "MiB"
THREADS_WORD = 2            # 1-based words of "Using 4 threads of stripe size 65536"
STRIPE_WORD = 7
START_TIME_DELIM = "..."
PHASE_OFFSET = 19           # "Time for phase 1 = "
COPY_OFFSET = 12            # "Copy time = "
END_TIME_DELIM = ")"
DEST_QUOTE = '"'
DEST_TOKEN = 3              # Copied final file from "<tmp>" to "<dest>"
TIMESTAMP_FORMAT = "%a %b %d %H:%M:%S %Y"


# ---------- primitives ----------
def slice_from(line: str, offset: int, field: str) -> str:
    if len(line) < offset:
        raise LogFormatError(field, line, f"line shorter than offset {offset}")
    return line[offset:]


def first_word(text: str) -> str:
    parts = text.split(None, 1)
    return parts[0] if parts else ""


def word_at(line: str, position: int, field: str) -> str:
    """1-based whitespace-delimited word."""
    words = line.split()
    if len(words) < position:
        raise LogFormatError(field, line, f"expected at least {position} words, found {len(words)}")
    return words[position - 1]


def split_token(text: str, delim: str, index: int, field: str) -> str:
    parts = text.split(delim)
    if len(parts) <= index:
        raise LogFormatError(field, text, f"expected token {index} after splitting on {delim!r}")
    return parts[index]


def after_last(line: str, delim: str, field: str) -> str:
    i = line.rfind(delim)
    if i < 0:
        raise LogFormatError(field, line, f"missing delimiter {delim!r}")
    return line[i + len(delim):].strip()


def parse_int(token: str, field: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise LogValueError(field, token, "not an integer") from None


def parse_seconds(token: str, field: str) -> float:
    try:
        return float(token)
    except ValueError:
        raise LogValueError(field, token, "not a number of seconds") from None


def parse_timestamp(token: str, field: str) -> datetime:
    try:
        return datetime.strptime(token, TIMESTAMP_FORMAT)
    except ValueError:
        raise LogValueError(field, token, "not a timestamp") from None


# ---------- extractors ----------
def extract_tmp_dirs(line: str, draft: RecordDraft) -> dict:
    rest = slice_from(line, TMP_DIRS_OFFSET, "tmp_dirs").strip()
    if TMP_DIRS_SEP not in rest:
        raise LogFormatError("tmp_dirs", line, f"missing separator {TMP_DIRS_SEP!r}")
    tmp1, tmp2 = rest.split(TMP_DIRS_SEP, 1)
    return {"tmp_dirs": (tmp1.strip(), tmp2.strip())}


def extract_k_size(line: str, draft: RecordDraft) -> dict:
    return {"k_size": parse_int(slice_from(line, K_SIZE_OFFSET, "k_size").strip(), "k_size")}


def extract_buffer_size(line: str, draft: RecordDraft) -> dict:
    rest = slice_from(line, BUFFER_OFFSET, "buffer_MiB").strip()
    if not rest.endswith(BUFFER_UNIT):
        raise LogFormatError("buffer_MiB", line, f"missing unit {BUFFER_UNIT!r}")
    return {"buffer_MiB": parse_int(rest[: -len(BUFFER_UNIT)], "buffer_MiB")}


def extract_threads(line: str, draft: RecordDraft) -> dict:
    return {
        "threads": parse_int(word_at(line, THREADS_WORD, "threads"), "threads"),
        "stripe_size": parse_int(word_at(line, STRIPE_WORD, "stripe_size"), "stripe_size"),
    }


def extract_start_time(line: str, draft: RecordDraft) -> dict:
    return {"start_time": parse_timestamp(after_last(line, START_TIME_DELIM, "start_time"), "start_time")}


def phase_extractor(n: int):
    """Extractor for the "Time for phase n = ..." line."""
    name = f"phase{n}_s"

    def extract(line: str, draft: RecordDraft) -> dict:
        token = first_word(slice_from(line, PHASE_OFFSET, name))
        return {name: parse_seconds(token, name)}

    extract.__name__ = f"extract_phase{n}"
    return extract


def extract_dest_path(line: str, draft: RecordDraft) -> dict:
    dest = split_token(line, DEST_QUOTE, DEST_TOKEN, "dest_path").strip()
    if not dest:
        raise LogFormatError("dest_path", line, "empty destination path")
    return {"dest_path": dest}


def extract_copy_and_end(line: str, draft: RecordDraft) -> dict:
    """
    Copy time and end timestamp share one line:
    'Copy time = 250.125 seconds. CPU (5.000%) Sat May  1 15:27:42 2021'.
    """
    copy_s = parse_seconds(first_word(slice_from(line, COPY_OFFSET, "phase5_s")), "phase5_s")
    end = parse_timestamp(after_last(line, END_TIME_DELIM, "end_time"), "end_time")
    if draft.start_time is None:
        raise LogFormatError("total_s", line, "end time seen before start time")
    return {
        "phase5_s": copy_s,
        "end_time": end,
        "total_s": (end - draft.start_time).total_seconds(),
    }


DEFAULT_JOBS: tuple[FieldJob, ...] = (
    FieldJob("tmp_dirs",    "^" + TMP_DIRS_MARKER,      extract_tmp_dirs),
    FieldJob("k_size",      "^Plot size is: ",          extract_k_size),
    FieldJob("buffer_MiB",  "^Buffer size is: ",        extract_buffer_size),
    FieldJob("threads",     "threads of stripe size",   extract_threads),
    FieldJob("start_time",  "^Starting phase 1/4",      extract_start_time),
    FieldJob("phase1_s",    "^Time for phase 1 = ",     phase_extractor(1)),
    FieldJob("phase2_s",    "^Time for phase 2 = ",     phase_extractor(2)),
    FieldJob("phase3_s",    "^Time for phase 3 = ",     phase_extractor(3)),
    FieldJob("phase4_s",    "^Time for phase 4 = ",     phase_extractor(4)),
    FieldJob("dest_path",   "^Copied final file from ", extract_dest_path),
    FieldJob("copy_end",    "^Copy time = ",            extract_copy_and_end),
)
