from pathlib import Path

from phoenix.stats import MigrationStatistics, gather_statistics
from phoenix.store import DiffStore, MigrationLedger

FIXTURES = Path(__file__).parent / "fixtures"


def test_gather_statistics(tmp_path: Path) -> None:
    store = DiffStore(tmp_path / "store")
    ledger = MigrationLedger(tmp_path / "ledger.json")
    button = (FIXTURES / "product_card_button.diff").read_text(encoding="utf-8")
    comment = (FIXTURES / "comment_only.diff").read_text(encoding="utf-8")

    store.add_diff("a", "src/ProductCard.jsx", button)
    store.mark_migrated("a", [1])
    ledger.record("a", "migrated")

    store.add_diff("b", "src/ProductCard.jsx", button)
    store.add_diff("b", "src/MiniCart.jsx", comment)

    store.add_diff("c", "src/checkout/index.js", comment)
    ledger.record("c", "legacy")

    store.add_diff("d", "src/ProductCard.jsx", button)
    ledger.record("d", "failed")

    stats = gather_statistics(store, ledger)

    assert stats.total_users == 4
    assert stats.migrated_users == 1
    assert stats.pending_migrations == 1
    assert stats.legacy_users == 1
    assert stats.failed_migrations == 1
    assert stats.total_diffs == 5
    assert stats.migrated_percentage == 25.0
    assert stats.average_diffs_per_user == 1.25
    assert stats.most_customized_component == "ProductCard"
    assert dict(stats.component_breakdown) == {"ProductCard": 3, "MiniCart": 1, "Unknown": 1}


def test_empty_store() -> None:
    stats = MigrationStatistics()
    assert stats.migrated_percentage == 0.0
    assert stats.average_diffs_per_user == 0.0
    assert stats.most_customized_component is None
