from diffslot.components import identify_component
from diffslot.diff import pair_modifications, parse_diff, unpaired_additions
from diffslot.rules import RuleRegistry, calculate_confidence, default_rules, rule_from_dict
from diffslot.slots import infer_slot_order, merge_configurations, resolve_slot_id, synthesize
from diffslot.translator import SlotTranslator
from diffslot.types import (
    ChangeLine,
    DiffAnalysis,
    DiffHunk,
    Modification,
    SlotChange,
    SlotConfig,
    SlotConfiguration,
    TranslationResult,
    TranslationRule,
)

__all__ = [
    "ChangeLine",
    "DiffAnalysis",
    "DiffHunk",
    "Modification",
    "RuleRegistry",
    "SlotChange",
    "SlotConfig",
    "SlotConfiguration",
    "SlotTranslator",
    "TranslationResult",
    "TranslationRule",
    "calculate_confidence",
    "default_rules",
    "identify_component",
    "infer_slot_order",
    "merge_configurations",
    "pair_modifications",
    "parse_diff",
    "resolve_slot_id",
    "rule_from_dict",
    "synthesize",
    "unpaired_additions",
]
