"""
File-backed collaborators of the migration driver.

- DiffStore: per-merchant customization diffs (<root>/users/<user_id>.json)
- ConfigStore: generated slot configurations (<root>/user-<user_id>-slots.json)
- MigrationLedger: last migration outcome per merchant (one JSON file)
"""

from __future__ import annotations

import json
import re
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from phoenix.exceptions import DiffStoreError

_SAFE_USER_ID = re.compile(r"^[A-Za-z0-9_.@-]+$")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_user_id(user_id: str) -> str:
    user_id = str(user_id).strip()
    if not user_id or not _SAFE_USER_ID.match(user_id) or user_id in (".", ".."):
        raise DiffStoreError(f"Invalid user id: {user_id!r}")
    return user_id


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise DiffStoreError(f"Cannot read {path}: {exc}", path) from exc


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
    tmp.replace(path)


@dataclass
class StoredDiff:
    id: int
    file_path: str
    diff: str
    migrated: bool = False
    migrated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class DiffStore:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.users_dir = self.root / "users"

    def _user_path(self, user_id: str) -> Path:
        return self.users_dir / f"{_check_user_id(user_id)}.json"

    def _load(self, user_id: str) -> list[StoredDiff]:
        path = self._user_path(user_id)
        if not path.exists():
            return []
        data = _read_json(path)
        try:
            return [
                StoredDiff(
                    id=int(item["id"]),
                    file_path=str(item.get("file_path", "")),
                    diff=str(item.get("diff", "")),
                    migrated=bool(item.get("migrated", False)),
                    migrated_at=item.get("migrated_at"),
                )
                for item in data.get("diffs", [])
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise DiffStoreError(f"Malformed diff record in {path}: {exc}", path) from exc

    def _save(self, user_id: str, diffs: list[StoredDiff]) -> None:
        _write_json(
            self._user_path(user_id),
            {"user_id": str(user_id), "diffs": [d.to_dict() for d in diffs]},
        )

    def list_users(self) -> list[str]:
        if not self.users_dir.exists():
            return []
        return sorted(p.stem for p in self.users_dir.glob("*.json"))

    def fetch_user_diffs(self, user_id: str, include_migrated: bool = False) -> list[StoredDiff]:
        diffs = self._load(user_id)
        if include_migrated:
            return diffs
        return [d for d in diffs if not d.migrated]

    def add_diff(self, user_id: str, file_path: str, diff: str) -> StoredDiff:
        diffs = self._load(user_id)
        stored = StoredDiff(id=max((d.id for d in diffs), default=0) + 1, file_path=file_path, diff=diff)
        diffs.append(stored)
        self._save(user_id, diffs)
        return stored

    def mark_migrated(self, user_id: str, diff_ids: list[int]) -> int:
        wanted = set(diff_ids)
        diffs = self._load(user_id)
        stamp = _now_iso()
        marked = 0
        for stored in diffs:
            if stored.id in wanted and not stored.migrated:
                stored.migrated = True
                stored.migrated_at = stamp
                marked += 1
        if marked:
            self._save(user_id, diffs)
        return marked


class ConfigStore:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, user_id: str) -> Path:
        return self.root / f"user-{_check_user_id(user_id)}-slots.json"

    def save(self, user_id: str, config: dict[str, Any]) -> Path:
        path = self.path_for(user_id)
        _write_json(path, config)
        return path

    def load(self, user_id: str) -> dict[str, Any] | None:
        path = self.path_for(user_id)
        if not path.exists():
            return None
        return _read_json(path)

    def exists(self, user_id: str) -> bool:
        return self.path_for(user_id).exists()


class MigrationLedger:
    """Last migration outcome per merchant, shared by concurrent batch workers."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def entries(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        data = _read_json(self.path)
        return data if isinstance(data, dict) else {}

    def record(self, user_id: str, status: str, **details: Any) -> None:
        with self._lock:
            entries = self.entries()
            entries[str(user_id)] = {"status": status, "updated_at": _now_iso(), **details}
            _write_json(self.path, entries)

    def status(self, user_id: str) -> str | None:
        entry = self.entries().get(str(user_id))
        return entry.get("status") if entry else None
