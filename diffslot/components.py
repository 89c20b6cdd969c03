from __future__ import annotations

import re
from collections.abc import Sequence

from diffslot.types import DiffAnalysis

UNKNOWN_COMPONENT = "Unknown"

# Checked in order; the first component whose keyword appears wins.
DEFAULT_COMPONENT_SIGNATURES: list[tuple[str, tuple[str, ...]]] = [
    ("ProductCard", ("ProductCard", "product-card")),
    ("MiniCart", ("MiniCart", "mini-cart")),
    ("Checkout", ("Checkout", "checkout")),
]

_COMPONENT_FILE_RE = re.compile(r"^([A-Z][a-zA-Z]*)")


def component_from_path(file_path: str) -> str | None:
    """PascalCase file name -> component name, e.g. ProductCard.jsx -> ProductCard."""
    file_name = file_path.split("/")[-1] if file_path else ""
    match = _COMPONENT_FILE_RE.match(file_name)
    return match.group(1) if match else None


def identify_component(
    file_path: str,
    analysis: DiffAnalysis,
    signatures: Sequence[tuple[str, Sequence[str]]] = DEFAULT_COMPONENT_SIGNATURES,
) -> str:
    component = component_from_path(file_path)
    if component:
        return component

    all_content = " ".join(analysis.contents())
    for name, keywords in signatures:
        if any(keyword in all_content for keyword in keywords):
            return name

    return UNKNOWN_COMPONENT
