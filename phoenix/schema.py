from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
from pydantic import BaseModel, ConfigDict, Field, ValidationError

MIN_SLOT_ID_SEGMENTS = 3


class SlotRecord(BaseModel):
    model_config = ConfigDict(extra="allow", strict=True)

    enabled: bool = True
    order: int = 10
    props: dict[str, Any] = Field(default_factory=dict)


class SlotConfigDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str
    slots: dict[str, SlotRecord]
    metadata: dict[str, Any] = Field(default_factory=dict)


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def is_valid_slot_id(slot_id: str) -> bool:
    parts = slot_id.split(".")
    return len(parts) >= MIN_SLOT_ID_SEGMENTS and all(parts)


def _format_pydantic_error(slot_id: str, exc: ValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        messages.append(f"Invalid {loc or 'value'} for slot {slot_id}: {err.get('msg')}")
    return messages


def validate_slot_config(config: Any, schema: dict[str, Any] | None = None) -> ValidationResult:
    """Check a slot configuration document before it is persisted or applied."""
    errors: list[str] = []
    warnings: list[str] = []

    if not isinstance(config, dict):
        return ValidationResult(valid=False, errors=["Configuration must be a JSON object"])

    if not config.get("version"):
        warnings.append("Missing version field")

    slots = config.get("slots")
    if not isinstance(slots, dict):
        errors.append("Missing or invalid slots configuration")
    else:
        if not slots:
            warnings.append("Configuration has no slots")
        for slot_id, slot_config in slots.items():
            if not is_valid_slot_id(str(slot_id)):
                errors.append(f"Invalid slot ID: {slot_id}")

            if not isinstance(slot_config, dict):
                errors.append(f"Invalid configuration for slot {slot_id}")
                continue

            try:
                SlotRecord.model_validate(slot_config)
            except ValidationError as exc:
                errors.extend(_format_pydantic_error(str(slot_id), exc))

    if schema is not None:
        validator_cls = jsonschema.validators.validator_for(schema)
        validator = validator_cls(schema)
        for err in sorted(validator.iter_errors(config), key=lambda e: list(e.path)):
            where = "/".join(str(p) for p in err.path) or "<root>"
            errors.append(f"Schema violation at {where}: {err.message}")

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def load_schema(path: Path) -> dict[str, Any]:
    schema = json.loads(path.read_text(encoding="utf-8"))
    jsonschema.validators.validator_for(schema).check_schema(schema)
    return schema


def export_schema_json(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    schema = SlotConfigDocument.model_json_schema()
    path.write_text(json.dumps(schema, indent=2, sort_keys=True), encoding="utf-8")
