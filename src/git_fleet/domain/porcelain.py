"""Porcelain status parsing and working-tree classification."""

import re
from typing import NamedTuple

from .models import RepoStatus


# XY code, one space, path. Anything else (warnings, hints) is skipped.
PORCELAIN_LINE_PATTERN = re.compile(r"^([ MTADRCU?!])([ MTADRCU?!]) \S")

CREATED_CODES = frozenset("A?")
DELETED_CODES = frozenset("D")
MODIFIED_CODES = frozenset("MRCTU")


class ChangeCounts(NamedTuple):
    created: int = 0
    modified: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        return self.created + self.modified + self.deleted


def classify_line(line: str) -> str:
    """Map one porcelain line to ``created``/``modified``/``deleted`` or ``""``."""
    match = PORCELAIN_LINE_PATTERN.match(line)
    if not match:
        return ""

    codes = set(match.groups())
    if codes == {"!"}:
        return ""
    if codes & CREATED_CODES:
        return "created"
    if codes & DELETED_CODES:
        return "deleted"
    if codes & MODIFIED_CODES:
        return "modified"
    return ""


def parse_porcelain(text: str) -> ChangeCounts:
    """Count changes in ``git status --porcelain`` output."""
    created = modified = deleted = 0
    for line in (text or "").splitlines():
        bucket = classify_line(line)
        if bucket == "created":
            created += 1
        elif bucket == "modified":
            modified += 1
        elif bucket == "deleted":
            deleted += 1
    return ChangeCounts(created, modified, deleted)


def classify(is_valid: bool, command_ok: bool, counts: ChangeCounts) -> RepoStatus:
    if not is_valid or not command_ok:
        return RepoStatus.ERROR
    if counts.total == 0:
        return RepoStatus.CLEAN
    return RepoStatus.MODIFIED


__all__ = [
    "PORCELAIN_LINE_PATTERN",
    "ChangeCounts",
    "classify_line",
    "parse_porcelain",
    "classify",
]
