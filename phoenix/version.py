"""Phoenix migration tool version and constants."""

__version__ = "1.0.0"
__app_name__ = "Phoenix Migrate"
__description__ = "Migrate diff-based storefront customizations to slot configurations"

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURES = 1
EXIT_ERROR = 2
EXIT_CONFIG_ERROR = 3
EXIT_INTERRUPTED = 130

# Default configuration
DEFAULT_CONFIG = {
    "store_dir": "data/customizations",  # per-user diff files live under <store_dir>/users
    "output_dir": "temp",  # user-<id>-slots.json documents
    "ledger_path": "data/migrations.json",
    "rollout_state_path": "data/rollout.json",
    "concurrency": 5,
    "min_confidence": 0.6,
    "max_diff_bytes": 1024 * 1024,
    "rules": [],  # extra translation rules, see diffslot.rules.rule_from_dict
    "disabled_rules": [],  # built-in rule ids to switch off
    "verbose": False,
}

# Rollout phases: share of merchants and who is included
ROLLOUT_PHASES = {
    "pilot": {"percentage": 5, "criteria": "internal_users"},
    "beta": {"percentage": 25, "criteria": "beta_users"},
    "production": {"percentage": 100, "criteria": "all_users"},
}

STATUS_COLORS = {
    "migrated": "green",
    "legacy": "yellow",
    "skipped": "dim",
    "failed": "red",
}
