from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import Any

WILDCARD = "*"

CHANGE_TYPES = ("addition", "deletion", "context")
RULE_TYPES = ("props", "style", "content", "visibility")
MATCH_SOURCES = ("new", "old")

SCHEMA_VERSION = "1.0"


@dataclass(frozen=True)
class ChangeLine:
    type: str
    content: str
    line_number: int | None = None


@dataclass(frozen=True)
class DiffHunk:
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    context: str
    changes: tuple[ChangeLine, ...] = ()


@dataclass
class DiffSummary:
    total_hunks: int = 0
    total_additions: int = 0
    total_deletions: int = 0


@dataclass
class DiffAnalysis:
    hunks: list[DiffHunk] = field(default_factory=list)
    summary: DiffSummary = field(default_factory=DiffSummary)

    def contents(self) -> list[str]:
        return [change.content for hunk in self.hunks for change in hunk.changes]


@dataclass(frozen=True)
class Modification:
    """A paired deletion/addition, or an addition with no deleted counterpart."""

    type: str
    old: str
    new: str
    old_line: int | None = None
    new_line: int | None = None

    @property
    def content(self) -> str:
        return self.new or self.old or ""

    @property
    def is_true_modification(self) -> bool:
        return self.type == "modification" and bool(self.old) and bool(self.new)


Transform = Callable[..., dict[str, Any]]


@dataclass
class TranslationRule:
    pattern: re.Pattern[str]
    component: str
    slot_id: str
    type: str
    transform: Transform
    multiple: bool = True  # False stops after the first match
    match_on: str = "new"
    description: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str):
            self.pattern = re.compile(self.pattern)
        if self.type not in RULE_TYPES:
            raise ValueError(f"Unknown rule type: {self.type}")
        if self.match_on not in MATCH_SOURCES:
            raise ValueError(f"Unknown match source: {self.match_on}")

    @property
    def is_wildcard(self) -> bool:
        return self.component == WILDCARD or self.slot_id == WILDCARD

    def applies_to(self, component: str) -> bool:
        return self.component == WILDCARD or self.component == component


@dataclass
class SlotChange:
    rule_id: str
    slot_id: str
    type: str
    props: dict[str, Any]
    confidence: float
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SlotConfig:
    enabled: bool = True
    order: int = 10
    props: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SlotConfiguration:
    version: str = SCHEMA_VERSION
    slots: dict[str, SlotConfig] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "slots": {slot_id: slot.to_dict() for slot_id, slot in self.slots.items()},
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SlotConfiguration":
        return cls(
            version=str(data.get("version") or SCHEMA_VERSION),
            slots={
                slot_id: SlotConfig(
                    enabled=bool(slot.get("enabled", True)),
                    order=int(slot.get("order", 10)),
                    props=dict(slot.get("props") or {}),
                )
                for slot_id, slot in (data.get("slots") or {}).items()
            },
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class TranslationResult:
    success: bool
    config: SlotConfiguration | None = None
    analysis: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def rules_matched(self) -> int:
        return int(self.analysis.get("rules_matched", 0))

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error or ""}
        return {
            "success": True,
            "config": self.config.to_dict() if self.config else None,
            "analysis": dict(self.analysis),
        }
