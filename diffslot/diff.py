"""
Unified diff parsing for stored storefront customizations.

Line numbers on change lines are a running approximation: an addition is
numbered from the hunk's new start plus every non-deletion line recorded so
far, a deletion from the old start plus every non-addition line. They are
meant for display and debugging, not for re-applying the diff.
"""

from __future__ import annotations

import re

from diffslot.types import ChangeLine, DiffAnalysis, DiffHunk, DiffSummary, Modification

_HUNK_RE = re.compile(
    r"@@\s*-(?P<old_start>\d+)(?:,(?P<old_count>\d+))?\s*"
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))?\s*@@(?P<context>.*)$"
)

_FILE_HEADER_PREFIXES = ("---", "+++", "diff ")

_MARKERS = {"+": "addition", "-": "deletion", " ": "context"}


def _close_hunk(header: dict, changes: list[ChangeLine]) -> DiffHunk:
    return DiffHunk(changes=tuple(changes), **header)


def _line_number(header: dict, changes: list[ChangeLine], change_type: str) -> int | None:
    if change_type == "addition":
        return header["new_start"] + sum(1 for c in changes if c.type != "deletion")
    if change_type == "deletion":
        return header["old_start"] + sum(1 for c in changes if c.type != "addition")
    return None


def parse_diff(unified_diff: str) -> DiffAnalysis:
    """Parse unified diff text into hunks of typed change lines.

    Malformed hunk headers and stray lines are skipped; a diff with no
    hunk headers yields an empty analysis.
    """
    hunks: list[DiffHunk] = []
    header: dict | None = None
    changes: list[ChangeLine] = []

    for raw_line in unified_diff.split("\n"):
        line = raw_line.rstrip("\r")

        if line.startswith("@@"):
            match = _HUNK_RE.match(line)
            if match:
                if header is not None:
                    hunks.append(_close_hunk(header, changes))
                header = {
                    "old_start": int(match.group("old_start")),
                    "old_lines": int(match.group("old_count") or 1),
                    "new_start": int(match.group("new_start")),
                    "new_lines": int(match.group("new_count") or 1),
                    "context": match.group("context").strip(),
                }
                changes = []
            continue

        if line.startswith(_FILE_HEADER_PREFIXES):
            continue

        if header is None or not line:
            continue

        change_type = _MARKERS.get(line[0])
        if change_type is None:
            continue

        changes.append(
            ChangeLine(
                type=change_type,
                content=line[1:],
                line_number=_line_number(header, changes, change_type),
            )
        )

    if header is not None:
        hunks.append(_close_hunk(header, changes))

    summary = DiffSummary(
        total_hunks=len(hunks),
        total_additions=sum(
            1 for hunk in hunks for c in hunk.changes if c.type == "addition"
        ),
        total_deletions=sum(
            1 for hunk in hunks for c in hunk.changes if c.type == "deletion"
        ),
    )
    return DiffAnalysis(hunks=hunks, summary=summary)


def _split(changes: tuple[ChangeLine, ...] | list[ChangeLine]) -> tuple[list[ChangeLine], list[ChangeLine]]:
    deletions = [c for c in changes if c.type == "deletion"]
    additions = [c for c in changes if c.type == "addition"]
    return deletions, additions


def pair_modifications(changes: tuple[ChangeLine, ...] | list[ChangeLine]) -> list[Modification]:
    """Pair deletions with additions index by index within one hunk."""
    deletions, additions = _split(changes)
    return [
        Modification(
            type="modification",
            old=deleted.content,
            new=added.content,
            old_line=deleted.line_number,
            new_line=added.line_number,
        )
        for deleted, added in zip(deletions, additions)
    ]


def unpaired_additions(changes: tuple[ChangeLine, ...] | list[ChangeLine]) -> list[Modification]:
    """Additions past the paired prefix, as addition-only events."""
    deletions, additions = _split(changes)
    return [
        Modification(type="addition", old="", new=added.content, new_line=added.line_number)
        for added in additions[len(deletions):]
    ]


def dropped_deletions(changes: tuple[ChangeLine, ...] | list[ChangeLine]) -> int:
    """Number of trailing deletions that have no addition to pair with."""
    deletions, additions = _split(changes)
    return max(0, len(deletions) - len(additions))
