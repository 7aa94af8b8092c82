"""
console_parser.py — turns raw server console output into events
---------------------------------------------------------------
Grammar of one console unit (after control sequences are removed)::

    unit    := [prefix] message
    prefix  := "[" time "] [" source "]: "        e.g. "[12:00:00] [Server thread/INFO]: "
    tag     := "[" tagchar+ "]"                   anywhere in the unit
    tagchar := letter | digit | "_" | whitespace | "/" | "\\" | ":" | "."

Every unit yields the ordered list of tags plus the message (the unit minus
every prefix, CR and LF; a prompt or CR left in front of the first prefix
goes too). A message containing ``Done (<seconds>s)!`` marks the
end of server startup.

Chunk policy: the PTY delivers arbitrary chunks, so by default bytes are
buffered until a newline and every complete line is one unit. With
``line_buffered=False`` every chunk is parsed as one unit and the prefix of
each line in it is removed, the way the console used to be parsed (lines
split across chunks come out garbled, several lines run together).

Bytes are decoded as Latin-1; multi-byte UTF-8 output is mis-decoded.
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# console prompt redrawn by the server after each line
_PROMPT = "\x1b[m>"
_ANSI = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
_PREFIX = re.compile(r"\[[0-9:]+\] \[[\w\s\[\]/\\.]+\]: ")
# carriage returns and prompt leftovers in front of a prefixed line
_LEAD = re.compile(r"^[\s>]+(?=\[[0-9:]+\] \[)")
_READY = re.compile(r"Done \(([0-9.]+)s\)!", re.IGNORECASE)

_TAG_EXTRA = frozenset("_/\\:.")

# a line longer than this without a newline is parsed as-is
MAX_PENDING = 64 * 1024


@dataclass
class ConsoleEvent:
    tags: List[str] = field(default_factory=list)
    message: str = ""

    @property
    def head(self) -> str:
        return self.tags[0] if self.tags else self.message

    def to_dict(self) -> Dict[str, Any]:
        return {"tags": list(self.tags), "message": self.message}


@dataclass
class ParsedLine:
    raw: str
    event: Optional[ConsoleEvent]
    ready_after: Optional[float] = None

    @property
    def ready(self) -> bool:
        return self.ready_after is not None


def _is_tag_char(c: str) -> bool:
    return c.isalnum() or c.isspace() or c in _TAG_EXTRA


def scan_tags(text: str) -> List[str]:
    tags: List[str] = []
    i, n = 0, len(text)
    while i < n:
        if text[i] == "[":
            j = i + 1
            while j < n and _is_tag_char(text[j]):
                j += 1
            if j < n and text[j] == "]" and j > i + 1:
                tags.append(text[i + 1:j])
                i = j + 1
                continue
        i += 1
    return tags


def strip_control(text: str) -> str:
    return _ANSI.sub("", text.replace(_PROMPT, ""))


def extract_message(text: str) -> str:
    """Remove every "[time] [source]: " prefix, then CR and LF."""
    text = _LEAD.sub("", text)
    return _PREFIX.sub("", text).replace("\r", "").replace("\n", "")


def ready_time(message: str) -> Optional[float]:
    m = _READY.search(message)
    if m is None:
        return None
    try:
        return float(m.group(1))
    except ValueError:
        # "Done (..s)!" still counts
        return 0.0


def parse_unit(text: str) -> ParsedLine:
    clean = strip_control(text)
    tags = scan_tags(clean)
    message = extract_message(clean)
    event: Optional[ConsoleEvent] = ConsoleEvent(tags=tags, message=message)
    if event.head in ("", " "):
        event = None
    return ParsedLine(raw=text.rstrip("\r"), event=event, ready_after=ready_time(message))


class ConsoleParser:
    def __init__(self, line_buffered: bool = True, encoding: str = "latin-1"):
        self.line_buffered = line_buffered
        self.encoding = encoding
        self._pending = ""

    def feed(self, data: bytes) -> List[ParsedLine]:
        text = data.decode(self.encoding, errors="replace")
        if not self.line_buffered:
            return [parse_unit(text)]

        self._pending += text
        *lines, self._pending = self._pending.split("\n")
        out = [parse_unit(line) for line in lines]
        if len(self._pending) > MAX_PENDING:
            out.append(parse_unit(self._pending))
            self._pending = ""
        return out

    def flush(self) -> List[ParsedLine]:
        """Parse whatever is left of an unterminated last line."""
        if not self._pending:
            return []
        rest, self._pending = self._pending, ""
        return [parse_unit(rest)]
