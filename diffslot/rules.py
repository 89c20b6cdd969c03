"""
Translation rules - map patterns found in customization diffs to slot changes.

Each rule pairs a regex with a target component and slot. When the pattern
matches a modification's content, the rule's transform turns the match into a
partial slot props object. Patterns are compiled once and every scan starts a
fresh iterator, so rules can be reused across any number of diffs.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from typing import Any

from diffslot.slots import resolve_slot_id
from diffslot.types import WILDCARD, Modification, SlotChange, TranslationRule

LOGGER = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.5
SPECIFIC_PATTERN_LENGTH = 10


def _button_text(match: str, replacement: str) -> dict[str, Any]:
    return {"text": replacement}


def _button_color(match: str, color: str) -> dict[str, Any]:
    return {"style": {"backgroundColor": color}}


def _currency_symbol(match: str, amount: str, symbol: str = "€") -> dict[str, Any]:
    return {"currencySymbol": symbol}


def _image_class(match: str, class_name: str) -> dict[str, Any]:
    return {"className": class_name}


def _hide_element(match: str) -> dict[str, Any]:
    return {"enabled": False}


def _text_content(match: str, new_text: str) -> dict[str, Any]:
    return {"text": new_text}


def default_rules() -> dict[str, TranslationRule]:
    """The built-in rule set, in matching order."""
    return {
        "product_card_button_text": TranslationRule(
            pattern=re.compile(r"Add to Cart"),
            component="ProductCard",
            slot_id="product.card.add_to_cart",
            type="props",
            transform=_button_text,
            match_on="old",
            description="Add to Cart label replaced with new button text",
        ),
        "product_card_button_color": TranslationRule(
            pattern=re.compile(r"backgroundColor:\s*['\"]([^'\"]+)['\"]"),
            component="ProductCard",
            slot_id="product.card.add_to_cart",
            type="style",
            transform=_button_color,
            description="Inline background color on the cart button",
        ),
        "pricing_currency": TranslationRule(
            pattern=re.compile(r"\$(\d+)"),
            component="ProductCard",
            slot_id="product.card.pricing",
            type="props",
            transform=_currency_symbol,
            description="Hardcoded currency next to a price",
        ),
        "product_image_styling": TranslationRule(
            pattern=re.compile(r'className="([^"]*w-full h-48[^"]*)"'),
            component="ProductCard",
            slot_id="product.card.image",
            type="props",
            transform=_image_class,
            description="Product image class list",
        ),
        "element_hiding": TranslationRule(
            pattern=re.compile(r"display:\s*none"),
            component=WILDCARD,
            slot_id=WILDCARD,
            type="visibility",
            transform=_hide_element,
            description="Element hidden with display: none",
        ),
        "text_content": TranslationRule(
            pattern=re.compile(r"textContent\s*=\s*['\"]([^'\"]+)['\"]"),
            component=WILDCARD,
            slot_id=WILDCARD,
            type="content",
            transform=_text_content,
            description="Text assigned through textContent",
        ),
    }


def calculate_confidence(rule: TranslationRule, modification: Modification) -> float:
    confidence = BASE_CONFIDENCE

    if len(rule.pattern.pattern) > SPECIFIC_PATTERN_LENGTH:
        confidence += 0.2

    if modification.is_true_modification:
        confidence += 0.2

    if rule.is_wildcard:
        confidence -= 0.1

    return round(max(0.0, min(1.0, confidence)), 2)


def _format_template(value: Any, args: tuple[str, ...]) -> Any:
    if isinstance(value, str):
        return value.format(*args)
    if isinstance(value, dict):
        return {key: _format_template(item, args) for key, item in value.items()}
    if isinstance(value, list):
        return [_format_template(item, args) for item in value]
    return value


def rule_from_dict(data: dict[str, Any]) -> TranslationRule:
    """Build a rule from serializable parameters (e.g. a YAML config entry).

    String values in ``props`` are templates: ``{0}`` is the full match,
    ``{1}``... the captured groups, followed by the replacement text for
    rules that match on the old content.
    """
    template = dict(data.get("props") or {})

    def transform(*args: str) -> dict[str, Any]:
        return _format_template(template, tuple(a or "" for a in args))

    transform.__name__ = "template"

    return TranslationRule(
        pattern=re.compile(str(data["pattern"])),
        component=str(data.get("component", WILDCARD)),
        slot_id=str(data.get("slot_id", WILDCARD)),
        type=str(data.get("type", "props")),
        transform=transform,
        multiple=bool(data.get("multiple", True)),
        match_on=str(data.get("match_on", "new")),
        description=str(data.get("description", "")),
    )


class RuleRegistry:
    """Ordered collection of translation rules keyed by rule id."""

    def __init__(self, rules: dict[str, TranslationRule] | None = None) -> None:
        self._rules: dict[str, TranslationRule] = {}
        for rule_id, rule in (rules or {}).items():
            self.register(rule_id, rule)

    def register(self, rule_id: str, rule: TranslationRule) -> None:
        # Re-registering an id keeps its original position in the order.
        self._rules[rule_id] = rule

    def unregister(self, rule_id: str) -> None:
        self._rules.pop(rule_id, None)

    def get(self, rule_id: str) -> TranslationRule | None:
        return self._rules.get(rule_id)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[tuple[str, TranslationRule]]:
        return iter(list(self._rules.items()))

    def match(self, modification: Modification, target_component: str) -> list[SlotChange]:
        """Run every applicable rule against one modification or addition."""
        matches: list[SlotChange] = []

        for rule_id, rule in self:
            if not rule.applies_to(target_component):
                continue

            if rule.match_on == "old":
                if not modification.is_true_modification:
                    continue
                content = modification.old
                extra: tuple[str, ...] = (modification.new.strip(),)
            else:
                content = modification.content
                extra = ()

            for match in rule.pattern.finditer(content):
                matched_text = match.group(0)
                if rule.match_on == "old" and matched_text in modification.new:
                    # Text survived the edit, nothing was replaced.
                    continue
                try:
                    groups = tuple(g if g is not None else "" for g in match.groups())
                    props = rule.transform(matched_text, *groups, *extra)
                    if not isinstance(props, Mapping):
                        raise TypeError(f"transform returned {type(props).__name__}, expected a mapping")
                    slot_id = resolve_slot_id(rule.slot_id, modification, target_component)
                    matches.append(
                        SlotChange(
                            rule_id=rule_id,
                            slot_id=slot_id,
                            type=rule.type,
                            props=dict(props),
                            confidence=calculate_confidence(rule, modification),
                            context={
                                "original_content": modification.old,
                                "new_content": modification.new,
                                "matched_text": matched_text,
                            },
                        )
                    )
                except Exception as exc:
                    LOGGER.warning("Error applying rule %s: %s", rule_id, exc)

                if not rule.multiple:
                    break

        return matches

    def describe(self) -> dict[str, dict[str, Any]]:
        """Serializable view of the registered rules."""
        return {
            rule_id: {
                "pattern": rule.pattern.pattern,
                "component": rule.component,
                "slot_id": rule.slot_id,
                "type": rule.type,
                "multiple": rule.multiple,
                "match_on": rule.match_on,
                "transform": getattr(rule.transform, "__name__", repr(rule.transform)),
                "description": rule.description,
            }
            for rule_id, rule in self
        }
