from __future__ import annotations

import re

import pytest

from diffslot.rules import RuleRegistry, calculate_confidence, default_rules, rule_from_dict
from diffslot.types import Modification, TranslationRule


def _mod(old: str, new: str) -> Modification:
    return Modification(type="modification", old=old, new=new)


def _addition(new: str) -> Modification:
    return Modification(type="addition", old="", new=new)


def test_button_text_rule_uses_replacement_text() -> None:
    registry = RuleRegistry(default_rules())
    changes = registry.match(_mod("      Add to Cart", "      Buy Now"), "ProductCard")

    assert len(changes) == 1
    change = changes[0]
    assert change.rule_id == "product_card_button_text"
    assert change.slot_id == "product.card.add_to_cart"
    assert change.props == {"text": "Buy Now"}
    assert change.context["matched_text"] == "Add to Cart"
    assert change.confidence == 0.9


def test_button_text_rule_skips_unchanged_label() -> None:
    registry = RuleRegistry(default_rules())
    changes = registry.match(
        _mod("<Button>Add to Cart</Button>", "<Button size=\"lg\">Add to Cart</Button>"),
        "ProductCard",
    )
    assert [c.rule_id for c in changes] == []


def test_component_filter() -> None:
    registry = RuleRegistry(default_rules())
    mod = _mod("style={{ backgroundColor: 'red' }}", "style={{ backgroundColor: 'blue' }}")

    assert [c.rule_id for c in registry.match(mod, "ProductCard")] == ["product_card_button_color"]
    assert registry.match(mod, "MiniCart") == []


def test_style_rule_output() -> None:
    registry = RuleRegistry(default_rules())
    changes = registry.match(_addition("backgroundColor: \"#ff0000\""), "ProductCard")
    assert changes[0].type == "style"
    assert changes[0].props == {"style": {"backgroundColor": "#ff0000"}}


def test_global_pattern_yields_every_match() -> None:
    registry = RuleRegistry(default_rules())
    changes = registry.match(_addition("was $10 now $8"), "ProductCard")
    assert [c.context["matched_text"] for c in changes] == ["$10", "$8"]
    assert all(c.props == {"currencySymbol": "€"} for c in changes)


def test_single_match_rule_stops_after_first() -> None:
    rule = TranslationRule(
        pattern=re.compile(r"\$(\d+)"),
        component="*",
        slot_id="product.card.pricing",
        type="props",
        transform=lambda match, amount: {"amount": amount},
        multiple=False,
    )
    registry = RuleRegistry({"first_price": rule})
    changes = registry.match(_addition("$10 then $8"), "ProductCard")
    assert [c.props for c in changes] == [{"amount": "10"}]


def test_rules_are_reusable_across_calls() -> None:
    registry = RuleRegistry(default_rules())
    mod = _addition("el.textContent = 'Hello'")
    first = registry.match(mod, "MiniCart")
    second = registry.match(mod, "MiniCart")
    assert len(first) == len(second) == 1
    assert first[0].props == second[0].props == {"text": "Hello"}
    assert first[0].slot_id == "minicart.unknown"


def test_wildcard_slot_is_resolved_from_content() -> None:
    registry = RuleRegistry(default_rules())
    changes = registry.match(_addition("<img style=\"display: none\" />"), "ProductCard")
    assert [(c.rule_id, c.slot_id, c.props) for c in changes] == [
        ("element_hiding", "product.card.image", {"enabled": False})
    ]


def test_failing_transform_does_not_stop_other_rules(caplog) -> None:
    def broken(match: str) -> dict:
        raise KeyError("boom")

    rules = {
        "broken": TranslationRule(
            pattern=re.compile(r"Buy"), component="*", slot_id="a.b.c", type="props", transform=broken
        ),
        "working": TranslationRule(
            pattern=re.compile(r"Buy"),
            component="*",
            slot_id="a.b.c",
            type="props",
            transform=lambda match: {"text": match},
        ),
    }
    registry = RuleRegistry(rules)

    with caplog.at_level("WARNING"):
        changes = registry.match(_addition("Buy Now"), "ProductCard")

    assert [c.rule_id for c in changes] == ["working"]
    assert "Error applying rule broken" in caplog.text


def test_reregistering_same_rule_is_idempotent() -> None:
    rules = default_rules()
    once = RuleRegistry(rules)
    twice = RuleRegistry(rules)
    twice.register("element_hiding", rules["element_hiding"])
    twice.register("element_hiding", rules["element_hiding"])

    mod = _mod("<div>", "<div style=\"display:none\">")
    assert len(once) == len(twice)
    assert [c.to_dict() for c in once.match(mod, "X")] == [c.to_dict() for c in twice.match(mod, "X")]


def test_reregistering_keeps_position() -> None:
    registry = RuleRegistry(default_rules())
    order = [rule_id for rule_id, _ in registry]
    registry.register("pricing_currency", default_rules()["pricing_currency"])
    assert [rule_id for rule_id, _ in registry] == order


def test_confidence_named_beats_wildcard() -> None:
    pattern = re.compile(r"backgroundColor")
    named = TranslationRule(pattern=pattern, component="ProductCard", slot_id="a.b.c", type="props", transform=dict)
    wildcard = TranslationRule(pattern=pattern, component="*", slot_id="a.b.c", type="props", transform=dict)
    mod = _mod("backgroundColor: 'red'", "backgroundColor: 'blue'")

    assert calculate_confidence(named, mod) == 0.9
    assert calculate_confidence(wildcard, mod) == 0.8
    assert calculate_confidence(named, mod) > calculate_confidence(wildcard, mod)


def test_confidence_short_pattern_and_addition() -> None:
    rule = TranslationRule(pattern=re.compile(r"\$(\d+)"), component="*", slot_id="*", type="props", transform=dict)
    assert calculate_confidence(rule, _addition("$5")) == 0.4


def test_unknown_rule_type_rejected() -> None:
    with pytest.raises(ValueError):
        TranslationRule(pattern=re.compile("x"), component="*", slot_id="*", type="layout", transform=dict)


def test_rule_from_dict_templates() -> None:
    rule = rule_from_dict(
        {
            "pattern": r'title="([^"]+)"',
            "component": "MiniCart",
            "slot_id": "mini.cart.title",
            "type": "props",
            "props": {"text": "{1}", "source": "{0}"},
        }
    )
    registry = RuleRegistry({"mini_cart_title": rule})
    changes = registry.match(_addition('<h2 title="Your bag">'), "MiniCart")

    assert changes[0].props == {"text": "Your bag", "source": 'title="Your bag"'}
    assert changes[0].slot_id == "mini.cart.title"


def test_describe_is_serializable() -> None:
    described = RuleRegistry(default_rules()).describe()
    assert described["product_card_button_text"]["match_on"] == "old"
    assert described["element_hiding"]["component"] == "*"
    assert described["pricing_currency"]["transform"] == "_currency_symbol"


def test_non_mapping_transform_result_is_skipped(caplog) -> None:
    rules = default_rules()
    rules["returns_none"] = TranslationRule(
        pattern=re.compile(r"Buy"), component="*", slot_id="a.b.c", type="props", transform=lambda match: None
    )
    registry = RuleRegistry(rules)

    with caplog.at_level("WARNING"):
        changes = registry.match(_mod("      Add to Cart", "      Buy Now"), "ProductCard")

    assert [c.rule_id for c in changes] == ["product_card_button_text"]
    assert "Error applying rule returns_none" in caplog.text


def test_slot_change_props_are_copied_from_transform() -> None:
    shared = {"text": "fixed"}
    rule = TranslationRule(
        pattern=re.compile(r"Buy"), component="*", slot_id="a.b.c", type="props", transform=lambda match: shared
    )
    change = RuleRegistry({"fixed": rule}).match(_addition("Buy"), "X")[0]
    change.props["text"] = "changed"
    assert shared == {"text": "fixed"}
