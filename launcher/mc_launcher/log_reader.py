"""Tail / incremental reads of the server console log for the API."""

from __future__ import annotations
import base64
import binascii
import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

# the console log is written as Latin-1, see console_parser
ENCODING = "latin-1"

@dataclass
class LogChunk:
    entries: List[str]
    cursor: str
    truncated: bool

def encode_cursor(pos: int) -> str:
    return base64.urlsafe_b64encode(json.dumps({"pos": pos}).encode("utf-8")).decode("ascii")

def decode_cursor(cursor: str) -> Optional[int]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        return int(json.loads(raw)["pos"])
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError):
        return None

def read_tail(path: Path, tail_lines: int = 200, max_bytes: int = 256_000) -> LogChunk:
    size = path.stat().st_size
    with path.open("rb") as f:
        f.seek(max(0, size - max_bytes))
        data = f.read()
    lines = data.decode(ENCODING).splitlines()
    chunk = lines[-tail_lines:] if tail_lines > 0 else []
    return LogChunk(entries=chunk, cursor=encode_cursor(size), truncated=len(lines) > len(chunk))

def read_from_cursor(path: Path, cursor: str, max_lines: int = 200, max_bytes: int = 256_000) -> LogChunk:
    size = path.stat().st_size
    pos = decode_cursor(cursor) or 0
    # rotated / truncated since the last read
    if pos > size:
        pos = 0

    with path.open("rb") as f:
        f.seek(pos)
        data = f.read(max_bytes)

    # only hand out complete lines; the partial tail is read again next time
    end = data.rfind(b"\n") + 1
    if end == 0 and len(data) == max_bytes:
        # a single line longer than max_bytes: hand it out as is
        return LogChunk(entries=[data.decode(ENCODING)], cursor=encode_cursor(pos + len(data)), truncated=True)
    complete = data[:end]
    lines = complete.decode(ENCODING).split("\n")[:-1]
    out = lines[:max_lines]
    truncated = len(lines) > len(out)
    if truncated:
        consumed = sum(len(l) + 1 for l in out)
    else:
        consumed = len(complete)
    return LogChunk(entries=out, cursor=encode_cursor(pos + consumed), truncated=truncated)
