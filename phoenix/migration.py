"""
Migration driver: translate each merchant's stored diffs into one slot
configuration, validate it, persist it and mark the translated diffs.

Diffs that fail to translate, or that no rule matches, stay behind as legacy
customizations. Batches run one task per merchant and a failing merchant never
affects the others in its batch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from diffslot.slots import merge_configurations
from diffslot.translator import SlotTranslator
from diffslot.types import SlotConfiguration
from phoenix.exceptions import DiffStoreError
from phoenix.schema import validate_slot_config
from phoenix.store import ConfigStore, DiffStore, MigrationLedger, StoredDiff

LOGGER = logging.getLogger(__name__)

GENERATOR = "phoenix-migrate"


@dataclass
class DiffOutcome:
    diff_id: int
    file_path: str
    status: str  # "translated", "legacy" or "failed"
    component: str | None = None
    rules_matched: int = 0
    min_confidence: float | None = None
    error: str | None = None


@dataclass
class UserMigration:
    user_id: str
    status: str  # "migrated", "legacy", "skipped" or "failed"
    config: dict[str, Any] | None = None
    diffs: list[DiffOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    config_path: str | None = None

    @property
    def translated_ids(self) -> list[int]:
        return [d.diff_id for d in self.diffs if d.status == "translated"]


@dataclass
class MigrationResults:
    success: int = 0
    errors: int = 0
    warnings: int = 0
    legacy: int = 0
    skipped: int = 0

    def record(self, outcome: UserMigration) -> None:
        if outcome.status == "migrated":
            self.success += 1
        elif outcome.status == "failed":
            self.errors += 1
        elif outcome.status == "legacy":
            self.legacy += 1
        else:
            self.skipped += 1
        self.warnings += len(outcome.warnings)


def read_user_ids(path: Path) -> list[str]:
    """One user id per line; blank lines are ignored."""
    text = Path(path).read_text(encoding="utf-8")
    return [line.strip() for line in text.splitlines() if line.strip()]


def _chunks(items: list[str], size: int) -> list[list[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class MigrationRunner:
    def __init__(
        self,
        translator: SlotTranslator,
        diff_store: DiffStore,
        config_store: ConfigStore,
        ledger: MigrationLedger,
        min_confidence: float = 0.6,
        max_diff_bytes: int | None = None,
    ) -> None:
        self.translator = translator
        self.diff_store = diff_store
        self.config_store = config_store
        self.ledger = ledger
        self.min_confidence = min_confidence
        self.max_diff_bytes = max_diff_bytes
        self.results = MigrationResults()

    def _translate_one(
        self, stored: StoredDiff, warnings: list[str]
    ) -> tuple[DiffOutcome, SlotConfiguration | None]:
        if self.max_diff_bytes and len(stored.diff.encode("utf-8")) > self.max_diff_bytes:
            warnings.append(
                f"{stored.file_path}: diff larger than {self.max_diff_bytes} bytes, kept as legacy"
            )
            return DiffOutcome(stored.id, stored.file_path, "legacy"), None

        result = self.translator.translate_diff(stored.diff, stored.file_path)
        if not result.success:
            warnings.append(f"{stored.file_path}: translation failed ({result.error})")
            return DiffOutcome(stored.id, stored.file_path, "failed", error=result.error), None

        outcome = DiffOutcome(
            diff_id=stored.id,
            file_path=stored.file_path,
            status="translated" if result.rules_matched else "legacy",
            component=result.analysis.get("target_component"),
            rules_matched=result.rules_matched,
            min_confidence=result.analysis.get("min_confidence"),
        )
        if not result.rules_matched:
            warnings.append(f"{stored.file_path}: no translation rule matched, kept as legacy")
            return outcome, None

        if outcome.min_confidence is not None and outcome.min_confidence < self.min_confidence:
            warnings.append(
                f"{stored.file_path}: low-confidence match "
                f"({outcome.min_confidence:.2f} < {self.min_confidence:.2f})"
            )
        return outcome, result.config

    def migrate_user(self, user_id: str, dry_run: bool = False) -> UserMigration:
        """Migrate one merchant. Raises only on storage errors."""
        diffs = self.diff_store.fetch_user_diffs(user_id)
        if not diffs:
            LOGGER.info("No pending diffs for user %s", user_id)
            return UserMigration(user_id=user_id, status="skipped")

        outcome = UserMigration(user_id=user_id, status="legacy")
        configs: list[SlotConfiguration] = []
        for stored in diffs:
            diff_outcome, config = self._translate_one(stored, outcome.warnings)
            outcome.diffs.append(diff_outcome)
            if config is not None:
                configs.append(config)

        if not configs:
            if not dry_run:
                self._record(outcome)
            return outcome

        # Diffs migrated in an earlier run are no longer pending; keep their slots.
        previous_diffs: list[int] = []
        if self.config_store.exists(user_id):
            previous = self.config_store.load(user_id) or {}
            previous_diffs = list((previous.get("metadata") or {}).get("source_diffs") or [])
            configs.insert(0, SlotConfiguration.from_dict(previous))

        merged = merge_configurations(configs, generator=GENERATOR)
        document = merged.to_dict()
        document["metadata"]["user_id"] = str(user_id)
        document["metadata"]["source_diffs"] = previous_diffs + outcome.translated_ids
        outcome.config = document

        validation = validate_slot_config(document)
        outcome.warnings.extend(validation.warnings)
        if not validation.valid:
            outcome.status = "failed"
            outcome.errors.extend(validation.errors)
            LOGGER.error("Generated configuration for user %s is invalid: %s", user_id, validation.errors)
            if not dry_run:
                self._record(outcome)
            return outcome

        outcome.status = "migrated"
        if not dry_run:
            # Fails on an unreadable ledger before anything is written.
            self.ledger.entries()
            outcome.config_path = str(self.config_store.save(user_id, document))
            self.diff_store.mark_migrated(user_id, outcome.translated_ids)
            try:
                self._record(outcome)
            except (DiffStoreError, OSError) as exc:
                LOGGER.warning("Migrated user %s but could not update the ledger: %s", user_id, exc)
                outcome.warnings.append(f"ledger not updated: {exc}")
        return outcome

    def _record(self, outcome: UserMigration) -> None:
        self.ledger.record(
            outcome.user_id,
            outcome.status,
            diffs=len(outcome.diffs),
            translated=len(outcome.translated_ids),
            components=sorted({d.component for d in outcome.diffs if d.component}),
            errors=outcome.errors,
        )

    def run_user(self, user_id: str, dry_run: bool = False) -> UserMigration:
        """migrate_user with failure isolation and result counting."""
        try:
            outcome = self.migrate_user(user_id, dry_run=dry_run)
        except Exception as exc:
            LOGGER.error("Migration failed for user %s: %s", user_id, exc)
            outcome = UserMigration(user_id=user_id, status="failed", errors=[str(exc)])
            if not dry_run:
                self._record_failure(outcome)
        self.results.record(outcome)
        return outcome

    def _record_failure(self, outcome: UserMigration) -> None:
        try:
            self._record(outcome)
        except Exception as exc:
            LOGGER.error("Could not record failure for user %s: %s", outcome.user_id, exc)

    async def _run_user_async(self, user_id: str, dry_run: bool) -> UserMigration:
        try:
            return await asyncio.to_thread(self.migrate_user, user_id, dry_run)
        except Exception as exc:
            LOGGER.error("Error migrating user %s: %s", user_id, exc)
            outcome = UserMigration(user_id=user_id, status="failed", errors=[str(exc)])
            if not dry_run:
                self._record_failure(outcome)
            return outcome

    async def migrate_batch(
        self,
        user_ids: list[str],
        concurrency: int = 5,
        dry_run: bool = False,
        on_batch: Callable[[int, int, list[str]], None] | None = None,
    ) -> list[UserMigration]:
        """Migrate users in batches of ``concurrency``; each batch is joined before the next."""
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        # A user listed twice would race on its own files.
        unique_ids = list(dict.fromkeys(user_ids))
        if len(unique_ids) < len(user_ids):
            LOGGER.warning("Ignoring %d duplicate user id(s)", len(user_ids) - len(unique_ids))
        batches = _chunks(unique_ids, concurrency)
        outcomes: list[UserMigration] = []
        for index, batch in enumerate(batches, 1):
            if on_batch:
                on_batch(index, len(batches), batch)
            batch_outcomes = await asyncio.gather(
                *(self._run_user_async(user_id, dry_run) for user_id in batch)
            )
            for outcome in batch_outcomes:
                self.results.record(outcome)
            outcomes.extend(batch_outcomes)
        return outcomes
