"""Parser for the ``desc`` files found in pacman's sync and local databases."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from models import PackageRecord


NAME_MARKER = "%NAME%"
VERSION_MARKER = "%VERSION%"
DESC_MARKER = "%DESC%"

OK = "ok"
SKIPPED = "skipped"
FATAL = "fatal"


class MalformedRecordError(RuntimeError):
    """Raised when a package descriptor cannot be read and parsing is strict."""

    def __init__(self, path: str | Path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = str(path)
        self.reason = reason


@dataclass(frozen=True)
class ParseResult:
    status: str                  # OK | SKIPPED | FATAL
    path: str
    record: Optional[PackageRecord] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == OK


def _normalize_space(line: str) -> str:
    return " ".join(line.split())


def parse_desc(lines: Iterable[str]) -> PackageRecord:
    """Build a record from the lines of a ``desc`` file.

    A marker line switches its field on, or back off if it was already on.
    The next non-marker line is taken as the value of the first active field
    (name, then version, then description) and switches that field off.
    Fields that never receive a value stay empty.
    """
    values = {"name": "", "repo_version": "", "description": ""}
    name = version = desc = False

    for raw in lines:
        line = _normalize_space(raw)
        if line == NAME_MARKER:
            name = not name
        elif line == VERSION_MARKER:
            version = not version
        elif line == DESC_MARKER:
            desc = not desc
        elif name:
            values["name"] = line
            name = False
        elif version:
            values["repo_version"] = line
            version = False
        elif desc:
            values["description"] = line
            desc = False

    return PackageRecord(**values)


def read_desc_file(path: str | Path, strict: bool = False) -> ParseResult:
    """Read and parse one ``desc`` file.

    Undecodable bytes are replaced. I/O failures, including a failure while
    closing the file, yield a SKIPPED result, or FATAL when ``strict`` is set.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            record = parse_desc(f)
    except OSError as exc:
        return ParseResult(FATAL if strict else SKIPPED, str(path), reason=str(exc))
    return ParseResult(OK, str(path), record=record)
