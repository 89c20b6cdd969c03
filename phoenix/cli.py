#!/usr/bin/env python3
"""
Phoenix Migrate CLI

Moves merchants from diff-based storefront customizations to declarative
slot configurations.

Usage:
    phoenix migrate-user --user-id 123
    phoenix migrate-batch --file users.txt --concurrency 10
    phoenix validate --config-file temp/user-123-slots.json
    phoenix rollout --phase pilot
    phoenix rollout --check-user 123
    phoenix schema --output schemas/slot_config.json
    phoenix stats --detailed
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from diffslot.translator import SlotTranslator
from diffslot.types import SCHEMA_VERSION
from phoenix.config import Config
from phoenix.exceptions import ConfigError, PhoenixError
from phoenix.migration import MigrationRunner, UserMigration, read_user_ids
from phoenix.rollout import RolloutManager
from phoenix.schema import export_schema_json, load_schema, validate_slot_config
from phoenix.stats import gather_statistics
from phoenix.store import ConfigStore, DiffStore, MigrationLedger
from phoenix.version import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_FAILURES,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    ROLLOUT_PHASES,
    STATUS_COLORS,
    __app_name__,
    __description__,
    __version__,
)

# Initialize Rich console
console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="phoenix",
    help=f"{__app_name__} - {__description__}",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(
            f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]"
        )
        raise typer.Exit()


def _config(ctx: typer.Context) -> Config:
    if isinstance(ctx.obj, Config):
        return ctx.obj
    return Config().load()


def _build_translator(cfg: Config) -> SlotTranslator:
    translator = SlotTranslator(generator="SlotTranslator")
    for rule_id, rule in cfg.extra_rules().items():
        translator.add_translation_rule(rule_id, rule)
    for rule_id in cfg.get("disabled_rules") or []:
        if translator.registry.get(rule_id) is None:
            raise ConfigError(f"Cannot disable unknown rule: {rule_id}")
        translator.registry.unregister(rule_id)
    return translator


def _build_runner(cfg: Config) -> MigrationRunner:
    return MigrationRunner(
        translator=_build_translator(cfg),
        diff_store=DiffStore(cfg.path("store_dir")),
        config_store=ConfigStore(cfg.path("output_dir")),
        ledger=MigrationLedger(cfg.path("ledger_path")),
        min_confidence=float(cfg.get("min_confidence", 0.6)),
        max_diff_bytes=cfg.get("max_diff_bytes"),
    )


def _fail(exc: Exception, verbose: bool = False) -> None:
    if isinstance(exc, PhoenixError):
        err_console.print(f"[red]Error:[/red] {exc.message}")
        code = exc.exit_code
    else:
        err_console.print(f"[red]Error:[/red] {exc}")
        code = EXIT_ERROR
    if verbose:
        import traceback

        traceback.print_exc()
    sys.exit(code)


def _print_user_outcome(outcome: UserMigration, verbose: bool = False) -> None:
    color = STATUS_COLORS.get(outcome.status, "white")
    console.print(
        f"  [cyan]{outcome.user_id}[/cyan]: [{color}]{outcome.status}[/{color}] "
        f"({len(outcome.translated_ids)}/{len(outcome.diffs)} diffs translated)"
    )
    if verbose:
        for diff in outcome.diffs:
            console.print(
                f"    [dim]{diff.file_path}[/dim] -> {diff.status} "
                f"({diff.component or '?'}, {diff.rules_matched} matches)"
            )
    for warning in outcome.warnings:
        console.print(f"    [yellow]![/yellow] {warning}")
    for error in outcome.errors:
        err_console.print(f"    [red]✗[/red] {error}")


def _print_summary(runner: MigrationRunner, started: float) -> None:
    results = runner.results
    table = Table(title="Migration Summary", show_header=True, header_style="bold cyan")
    table.add_column("Outcome", style="dim")
    table.add_column("Count", justify="right")
    table.add_row("Duration", f"{time.monotonic() - started:.1f}s")
    table.add_row("Successful", f"[green]{results.success}[/green]")
    table.add_row("Legacy (no rule matched)", f"[yellow]{results.legacy}[/yellow]")
    table.add_row("Skipped (nothing pending)", str(results.skipped))
    table.add_row("Errors", f"[red]{results.errors}[/red]" if results.errors else "0")
    table.add_row("Warnings", str(results.warnings))
    console.print(table)


@app.command("migrate-user")
def migrate_user(
    ctx: typer.Context,
    user_id: Annotated[
        str,
        typer.Option("--user-id", "-u", help="User ID to migrate"),
    ],
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-d", help="Perform dry run without saving changes"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output"),
    ] = False,
) -> None:
    """Migrate a single user's diffs to a slot configuration."""
    try:
        runner = _build_runner(_config(ctx))
        console.print(f"[bold]Starting migration for user {user_id}[/bold]")

        outcome = runner.run_user(user_id, dry_run=dry_run)
        _print_user_outcome(outcome, verbose=verbose)

        if outcome.status == "skipped":
            console.print("[dim]No pending diffs found for user[/dim]")
        elif outcome.status == "failed":
            err_console.print("[red]✗ Migration failed[/red]")
            sys.exit(EXIT_FAILURES)
        elif dry_run and outcome.config is not None:
            console.print("[bold]DRY RUN[/bold] - configuration would be:")
            console.print_json(json.dumps(outcome.config))
        elif outcome.status == "migrated":
            console.print(f"[green]✓[/green] Configuration saved to {outcome.config_path}")
        sys.exit(EXIT_SUCCESS)

    except KeyboardInterrupt:
        err_console.print("\n[yellow]Migration cancelled by user[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as e:
        _fail(e, verbose)


@app.command("migrate-batch")
def migrate_batch(
    ctx: typer.Context,
    file: Annotated[
        Path,
        typer.Option("--file", "-f", help="File containing user IDs (one per line)"),
    ],
    concurrency: Annotated[
        Optional[int],
        typer.Option("--concurrency", "-c", help="Number of concurrent migrations"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-d", help="Perform dry run without saving changes"),
    ] = False,
) -> None:
    """Migrate multiple users in batches."""
    started = time.monotonic()
    try:
        cfg = _config(ctx)
        runner = _build_runner(cfg)
        user_ids = read_user_ids(file)
        if concurrency is None:
            concurrency = int(cfg.get("concurrency", 5))
        console.print(f"Found {len(user_ids)} users to migrate")

        def on_batch(index: int, total: int, batch: list[str]) -> None:
            console.print(f"Processing batch {index}/{total} ({len(batch)} users)")

        outcomes = asyncio.run(
            runner.migrate_batch(user_ids, concurrency=concurrency, dry_run=dry_run, on_batch=on_batch)
        )
        for outcome in outcomes:
            _print_user_outcome(outcome)

        console.print()
        _print_summary(runner, started)

        if runner.results.errors:
            err_console.print("[red]✗ Some migrations failed. Check logs above.[/red]")
            sys.exit(EXIT_FAILURES)
        console.print("[green]✓ All migrations completed[/green]")
        sys.exit(EXIT_SUCCESS)

    except KeyboardInterrupt:
        err_console.print("\n[yellow]Batch migration cancelled by user[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as e:
        _fail(e)


@app.command()
def validate(
    config_file: Annotated[
        Path,
        typer.Option("--config-file", "-c", help="Configuration file to validate"),
    ],
    schema: Annotated[
        Optional[Path],
        typer.Option("--schema", "-s", help="Custom JSON Schema file"),
    ] = None,
) -> None:
    """Validate a slot configuration file."""
    try:
        document = json.loads(config_file.read_text(encoding="utf-8"))
        custom_schema = load_schema(schema) if schema else None
        validation = validate_slot_config(document, schema=custom_schema)
    except Exception as e:
        err_console.print(f"[red]✗ Validation failed:[/red] {e}")
        sys.exit(EXIT_FAILURES)

    for warning in validation.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")

    if not validation.valid:
        err_console.print("[red]✗ Configuration is invalid:[/red]")
        for error in validation.errors:
            err_console.print(f"  - {error}")
        sys.exit(EXIT_FAILURES)

    console.print("[green]✓ Configuration is valid[/green]")


@app.command()
def rollout(
    ctx: typer.Context,
    phase: Annotated[
        Optional[str],
        typer.Option("--phase", "-p", help=f"Rollout phase: {'|'.join(ROLLOUT_PHASES)}"),
    ] = None,
    rollback: Annotated[
        bool,
        typer.Option("--rollback", "-r", help="Rollback to previous phase"),
    ] = False,
    check_user: Annotated[
        Optional[str],
        typer.Option("--check-user", help="Report whether a user is in the active rollout"),
    ] = None,
) -> None:
    """Manage the phased rollout of slot configurations."""
    if phase is None and check_user is None:
        err_console.print("[red]Error:[/red] Provide --phase or --check-user")
        sys.exit(EXIT_FAILURES)

    try:
        manager = RolloutManager(_config(ctx).path("rollout_state_path"))
        if phase is not None:
            if rollback:
                state = manager.rollback(phase)
                console.print(f"[green]✓[/green] Rolled back phase {phase}")
            else:
                state = manager.rollout(phase)
                console.print(
                    f"[green]✓[/green] Rolling out to {state.percentage}% of users ({state.criteria})"
                )
        else:
            state = manager.status()
        console.print(f"Active phase: [bold]{state.phase or 'none'}[/bold] ({state.percentage}%)")

        if check_user is not None:
            if manager.includes(check_user):
                console.print(f"User {check_user}: [green]slot configuration active[/green]")
            else:
                console.print(f"User {check_user}: [yellow]legacy customizations[/yellow]")
    except Exception as e:
        _fail(e)


@app.command()
def stats(
    ctx: typer.Context,
    detailed: Annotated[
        bool,
        typer.Option("--detailed", "-d", help="Show detailed statistics"),
    ] = False,
) -> None:
    """Show migration statistics."""
    try:
        cfg = _config(ctx)
        result = gather_statistics(
            DiffStore(cfg.path("store_dir")), MigrationLedger(cfg.path("ledger_path"))
        )
    except Exception as e:
        _fail(e)
        return

    table = Table(title="Migration Statistics", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")
    table.add_row("Total users", str(result.total_users))
    table.add_row(
        "Migrated users", f"{result.migrated_users} ({result.migrated_percentage:.1f}%)"
    )
    table.add_row("Pending migrations", str(result.pending_migrations))
    table.add_row("Legacy users", str(result.legacy_users))
    table.add_row("Failed migrations", str(result.failed_migrations))
    table.add_row("Average diffs per user", f"{result.average_diffs_per_user:.1f}")
    table.add_row("Most customized component", result.most_customized_component or "-")
    console.print(table)

    if detailed and result.component_breakdown:
        breakdown = Table(title="Customizations by Component", header_style="bold cyan")
        breakdown.add_column("Component")
        breakdown.add_column("Customizations", justify="right")
        for component, count in result.component_breakdown:
            breakdown.add_row(component, str(count))
        console.print(breakdown)


@app.command()
def translate(
    ctx: typer.Context,
    diff_file: Annotated[
        Path,
        typer.Option("--diff-file", "-d", help="Unified diff to translate"),
    ],
    file_path: Annotated[
        str,
        typer.Option("--file-path", "-p", help="Path of the customized component file"),
    ] = "",
) -> None:
    """Translate one diff and print the result as JSON."""
    try:
        translator = _build_translator(_config(ctx))
        diff_text = diff_file.read_text(encoding="utf-8")
    except Exception as e:
        _fail(e)
        return

    result = translator.translate_diff(diff_text, file_path)
    print(json.dumps(result.to_dict(), indent=2))
    sys.exit(EXIT_SUCCESS if result.success else EXIT_FAILURES)


@app.command()
def rules(ctx: typer.Context) -> None:
    """List the registered translation rules."""
    try:
        state = _build_translator(_config(ctx)).export_state()
    except Exception as e:
        _fail(e)
        return

    table = Table(title="Translation Rules", show_header=True, header_style="bold cyan")
    table.add_column("Rule")
    table.add_column("Component")
    table.add_column("Slot")
    table.add_column("Type")
    table.add_column("Pattern", style="dim")
    for rule_id, rule in state["rules"].items():
        table.add_row(rule_id, rule["component"], rule["slot_id"], rule["type"], rule["pattern"])
    console.print(table)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing configuration"),
    ] = False,
) -> None:
    """
    Initialize Phoenix configuration in the current directory.

    Creates a .phoenix.yaml file with default settings.
    """
    config_path = Path.cwd() / ".phoenix.yaml"

    if config_path.exists() and not force:
        console.print(
            f"[yellow]Configuration file already exists:[/yellow] {config_path}\n"
            "Use --force to overwrite."
        )
        raise typer.Exit(EXIT_CONFIG_ERROR)

    config_content = """\
# Phoenix Migrate Configuration

# Stored customization diffs (<store_dir>/users/<user_id>.json)
store_dir: data/customizations

# Where generated slot configurations are written
output_dir: temp

# Migration outcome per user, used by `phoenix stats`
ledger_path: data/migrations.json

# Active rollout phase and history
rollout_state_path: data/rollout.json

# Users migrated concurrently by migrate-batch
concurrency: 5

# Warn about rule matches below this confidence
min_confidence: 0.6

# Diffs larger than this stay as legacy customizations
max_diff_bytes: 1048576

# Extra translation rules, e.g.
# rules:
#   - id: mini_cart_title
#     pattern: 'title="([^"]+)"'
#     component: MiniCart
#     slot_id: mini.cart.title
#     type: props
#     props:
#       text: "{1}"
rules: []

# Built-in rules to switch off, e.g. [pricing_currency]
disabled_rules: []
"""

    config_path.write_text(config_content, encoding="utf-8")
    console.print(f"[green]✓[/green] Created configuration file: {config_path}")


@app.command(name="version")
def show_version(ctx: typer.Context) -> None:
    """Show tool, document format and rule set versions."""
    try:
        rule_count = len(_build_translator(_config(ctx)).registry)
    except Exception as e:
        _fail(e)
        return

    table = Table(title=__app_name__, show_header=False, box=None)
    table.add_column("Item", style="dim")
    table.add_column("Value")
    table.add_row("Version", f"[green]{__version__}[/green]")
    table.add_row("Slot config format", SCHEMA_VERSION)
    table.add_row("Active rules", str(rule_count))
    table.add_row("Rollout phases", ", ".join(ROLLOUT_PHASES))
    console.print(table)


@app.command()
def schema(
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Where to write the JSON Schema"),
    ] = Path("schemas/slot_config.json"),
) -> None:
    """Export the JSON Schema of slot configuration documents."""
    try:
        export_schema_json(output)
    except Exception as e:
        _fail(e)
        return
    console.print(f"[green]✓[/green] Wrote schema to {output}")


@app.command()
def config(ctx: typer.Context) -> None:
    """Show current configuration."""
    cfg = _config(ctx)

    table = Table(
        title="Current Configuration", show_header=True, header_style="bold cyan"
    )
    table.add_column("Setting", style="dim")
    table.add_column("Value")

    for key, value in cfg.to_dict().items():
        if key == "rules":
            value = f"{len(value or [])} custom rule(s)"
        table.add_row(key, str(value))

    console.print(table)
    console.print(f"[dim]Source: {cfg.config_path or 'defaults'}[/dim]")


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", help="Path to a phoenix YAML config file"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """
    Phoenix Migrate - move diff-based customizations to slot configurations.

    Quick start:

        phoenix migrate-user --user-id 123 --dry-run
    """
    try:
        cfg = Config().load(config_file)
    except PhoenixError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(e.exit_code)

    logging.basicConfig(
        level=logging.DEBUG if verbose or cfg.get("verbose") else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = cfg


if __name__ == "__main__":
    app()
