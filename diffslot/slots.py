from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from diffslot.types import (
    SCHEMA_VERSION,
    WILDCARD,
    Modification,
    SlotChange,
    SlotConfig,
    SlotConfiguration,
)

ADD_TO_CART_SLOT = "product.card.add_to_cart"
PRICING_SLOT = "product.card.pricing"
IMAGE_SLOT = "product.card.image"

# Slot inferred from content when a rule targets any slot; first hit wins.
SLOT_HINTS: list[tuple[tuple[str, ...], str]] = [
    (("Add to Cart", "ShoppingCart"), ADD_TO_CART_SLOT),
    (("price", "$", "€"), PRICING_SLOT),
    (("img", "image"), IMAGE_SLOT),
]

SLOT_ORDER = {
    "image": 1,
    "name": 2,
    "pricing": 3,
    "add_to_cart": 4,
    "actions": 5,
}
DEFAULT_SLOT_ORDER = 10


def resolve_slot_id(rule_slot_id: str, modification: Modification, target_component: str) -> str:
    if rule_slot_id != WILDCARD:
        return rule_slot_id

    content = modification.content
    for keywords, slot_id in SLOT_HINTS:
        if any(keyword in content for keyword in keywords):
            return slot_id

    return f"{target_component.lower()}.unknown"


def infer_slot_order(slot_id: str) -> int:
    return SLOT_ORDER.get(slot_id.split(".")[-1], DEFAULT_SLOT_ORDER)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def apply_change(slot: SlotConfig, change: SlotChange) -> None:
    """Fold one matched change into a slot config."""
    if change.type in ("props", "content"):
        for key, value in change.props.items():
            slot.props[key] = dict(value) if isinstance(value, dict) else value
    elif change.type == "style":
        style = slot.props.setdefault("style", {})
        style.update(change.props.get("style") or {})
    elif change.type == "visibility":
        slot.enabled = bool(change.props.get("enabled", slot.enabled))


def synthesize(changes: Iterable[SlotChange], generator: str = "SlotTranslator") -> SlotConfiguration:
    """Group slot changes by slot id and merge them into one configuration."""
    changes = list(changes)
    slots: dict[str, SlotConfig] = {}

    for change in changes:
        slot = slots.get(change.slot_id)
        if slot is None:
            slot = SlotConfig(enabled=True, order=infer_slot_order(change.slot_id), props={})
            slots[change.slot_id] = slot
        apply_change(slot, change)

    return SlotConfiguration(
        version=SCHEMA_VERSION,
        slots=slots,
        metadata={
            "generated_at": _now_iso(),
            "generator": generator,
            "total_changes": len(changes),
        },
    )


def merge_configurations(
    configs: Iterable[SlotConfiguration], generator: str = "SlotTranslator"
) -> SlotConfiguration:
    """Combine per-diff configurations of one merchant into a single document.

    Later documents win on conflicting prop keys and on ``enabled``; ``order``
    comes from the first document that defined the slot.
    """
    merged: dict[str, SlotConfig] = {}
    total = 0

    for config in configs:
        total += int(config.metadata.get("total_changes", 0))
        for slot_id, slot in config.slots.items():
            target = merged.get(slot_id)
            if target is None:
                merged[slot_id] = SlotConfig(
                    enabled=slot.enabled,
                    order=slot.order,
                    props={
                        key: dict(value) if key == "style" and isinstance(value, dict) else value
                        for key, value in slot.props.items()
                    },
                )
                continue
            for key, value in slot.props.items():
                if key == "style" and isinstance(value, dict):
                    target.props.setdefault("style", {}).update(value)
                else:
                    target.props[key] = value
            target.enabled = slot.enabled

    return SlotConfiguration(
        version=SCHEMA_VERSION,
        slots=merged,
        metadata={
            "generated_at": _now_iso(),
            "generator": generator,
            "total_changes": total,
        },
    )
