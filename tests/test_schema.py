import json
from pathlib import Path

from phoenix.schema import export_schema_json, is_valid_slot_id, load_schema, validate_slot_config


def _document(**slots) -> dict:
    return {"version": "1.0", "slots": slots, "metadata": {}}


def test_slot_id_format() -> None:
    assert is_valid_slot_id("product.card.add_to_cart")
    assert is_valid_slot_id("a.b.c.d")
    assert not is_valid_slot_id("productcard.unknown")
    assert not is_valid_slot_id("product..add_to_cart")
    assert not is_valid_slot_id("")


def test_valid_document() -> None:
    result = validate_slot_config(
        _document(**{"product.card.add_to_cart": {"enabled": True, "order": 4, "props": {"text": "Buy"}}})
    )
    assert result.valid
    assert result.errors == []
    assert result.warnings == []


def test_missing_version_is_warning() -> None:
    result = validate_slot_config({"slots": {"a.b.c": {"enabled": True, "order": 1, "props": {}}}})
    assert result.valid
    assert "Missing version field" in result.warnings


def test_missing_slots_is_error() -> None:
    result = validate_slot_config({"version": "1.0"})
    assert not result.valid
    assert result.errors == ["Missing or invalid slots configuration"]


def test_bad_slot_id_and_record() -> None:
    result = validate_slot_config(
        _document(**{"productcard.unknown": {"enabled": True, "order": 10, "props": {}}, "x.y.z": "nope"})
    )
    assert not result.valid
    assert "Invalid slot ID: productcard.unknown" in result.errors
    assert "Invalid configuration for slot x.y.z" in result.errors


def test_slot_record_types_checked() -> None:
    result = validate_slot_config(_document(**{"a.b.c": {"enabled": "yes", "order": 1, "props": {}}}))
    assert not result.valid
    assert any("enabled" in error for error in result.errors)


def test_empty_slots_warns() -> None:
    result = validate_slot_config(_document())
    assert result.valid
    assert "Configuration has no slots" in result.warnings


def test_non_object_document() -> None:
    result = validate_slot_config(["not", "a", "dict"])
    assert not result.valid


def test_custom_json_schema(tmp_path: Path) -> None:
    schema_path = tmp_path / "schema.json"
    schema_path.write_text(
        json.dumps({"type": "object", "required": ["version", "slots", "owner"]}),
        encoding="utf-8",
    )
    schema = load_schema(schema_path)

    result = validate_slot_config(_document(**{"a.b.c": {"enabled": True, "order": 1, "props": {}}}), schema)
    assert not result.valid
    assert any("owner" in error for error in result.errors)


def test_export_schema_json(tmp_path: Path) -> None:
    out = tmp_path / "schemas" / "slot_config.json"
    export_schema_json(out)
    schema = json.loads(out.read_text(encoding="utf-8"))
    assert set(schema["required"]) == {"version", "slots"}
