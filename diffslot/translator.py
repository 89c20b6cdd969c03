"""
Diff-to-slot translator.

Takes a merchant's historical unified diff against a storefront component and
re-expresses it as a declarative slot configuration:

    parse -> identify component -> pair changes -> match rules -> synthesize

Translation never raises; failures come back as an unsuccessful
TranslationResult so a batch caller can keep the original diff as legacy.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from diffslot.components import DEFAULT_COMPONENT_SIGNATURES, identify_component
from diffslot.diff import dropped_deletions, pair_modifications, parse_diff, unpaired_additions
from diffslot.rules import RuleRegistry, default_rules
from diffslot.slots import synthesize
from diffslot.types import DiffAnalysis, SlotChange, TranslationResult, TranslationRule

LOGGER = logging.getLogger(__name__)


class SlotTranslator:
    def __init__(
        self,
        rules: dict[str, TranslationRule] | None = None,
        component_signatures: Iterable[tuple[str, Iterable[str]]] | None = None,
        generator: str = "SlotTranslator",
    ) -> None:
        self.registry = RuleRegistry(default_rules() if rules is None else rules)
        signatures = (
            DEFAULT_COMPONENT_SIGNATURES if component_signatures is None else component_signatures
        )
        self.component_signatures: list[tuple[str, tuple[str, ...]]] = [
            (name, tuple(keywords)) for name, keywords in signatures
        ]
        self.generator = generator

    def add_translation_rule(self, rule_id: str, rule: TranslationRule) -> None:
        self.registry.register(rule_id, rule)

    def add_component_mapping(self, component: str, *keywords: str) -> None:
        """Teach the identifier another component signature (lowest priority)."""
        self.component_signatures.append((component, tuple(keywords) or (component,)))

    def translate_diff(self, unified_diff: str, file_path: str = "") -> TranslationResult:
        try:
            analysis = parse_diff(unified_diff)
            target_component = identify_component(
                file_path, analysis, self.component_signatures
            )
            slot_changes = self.extract_slot_changes(analysis, target_component)
            config = synthesize(slot_changes, generator=self.generator)
        except Exception as exc:
            LOGGER.exception("Error translating diff for %s", file_path or "<unknown>")
            return TranslationResult(success=False, error=str(exc))

        LOGGER.debug(
            "Translated %s: component=%s hunks=%d matches=%d",
            file_path or "<unknown>",
            target_component,
            analysis.summary.total_hunks,
            len(slot_changes),
        )
        return TranslationResult(
            success=True,
            config=config,
            analysis={
                "target_component": target_component,
                "changes_detected": analysis.summary.total_hunks,
                "additions": analysis.summary.total_additions,
                "deletions": analysis.summary.total_deletions,
                "rules_matched": len(slot_changes),
                "dropped_deletions": sum(
                    dropped_deletions(hunk.changes) for hunk in analysis.hunks
                ),
                "min_confidence": min(
                    (change.confidence for change in slot_changes), default=None
                ),
            },
        )

    def extract_slot_changes(self, analysis: DiffAnalysis, target_component: str) -> list[SlotChange]:
        slot_changes: list[SlotChange] = []
        for hunk in analysis.hunks:
            events = pair_modifications(hunk.changes) + unpaired_additions(hunk.changes)
            for event in events:
                slot_changes.extend(self.registry.match(event, target_component))
        return slot_changes

    def export_state(self) -> dict[str, Any]:
        return {
            "rules": self.registry.describe(),
            "component_mappings": {
                name: list(keywords) for name, keywords in self.component_signatures
            },
        }
