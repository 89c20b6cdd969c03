from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from diffslot.components import DEFAULT_COMPONENT_SIGNATURES, identify_component
from diffslot.diff import parse_diff
from phoenix.store import DiffStore, MigrationLedger


@dataclass
class MigrationStatistics:
    total_users: int = 0
    migrated_users: int = 0
    pending_migrations: int = 0
    failed_migrations: int = 0
    legacy_users: int = 0
    total_diffs: int = 0
    component_breakdown: list[tuple[str, int]] = field(default_factory=list)

    @property
    def migrated_percentage(self) -> float:
        if not self.total_users:
            return 0.0
        return self.migrated_users / self.total_users * 100

    @property
    def average_diffs_per_user(self) -> float:
        if not self.total_users:
            return 0.0
        return self.total_diffs / self.total_users

    @property
    def most_customized_component(self) -> str | None:
        return self.component_breakdown[0][0] if self.component_breakdown else None


def gather_statistics(
    diff_store: DiffStore,
    ledger: MigrationLedger,
    signatures=DEFAULT_COMPONENT_SIGNATURES,
) -> MigrationStatistics:
    """Summarize migration progress from the diff store and the ledger."""
    stats = MigrationStatistics()
    entries = ledger.entries()
    components: Counter[str] = Counter()

    for user_id in diff_store.list_users():
        stats.total_users += 1
        diffs = diff_store.fetch_user_diffs(user_id, include_migrated=True)
        stats.total_diffs += len(diffs)
        for stored in diffs:
            components[identify_component(stored.file_path, parse_diff(stored.diff), signatures)] += 1

        status = entries.get(user_id, {}).get("status")
        pending = any(not d.migrated for d in diffs)
        if status == "failed":
            stats.failed_migrations += 1
        elif status == "legacy":
            stats.legacy_users += 1
        elif diffs and not pending:
            stats.migrated_users += 1
        else:
            stats.pending_migrations += 1

    stats.component_breakdown = components.most_common()
    return stats
