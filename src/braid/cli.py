"""CLI for the braid work-item sequencer.

Convention-based: discovers braid.json by walking up from cwd.

Usage:
    braid init                                   # Write a default braid.json in cwd
    braid validate plan.json                     # Check ids, references and cycles
    braid ready plan.json                        # Items that can start immediately
    braid order plan.json                        # Execution waves
    braid critical-path plan.json                # Longest blocker chain
    braid run plan.json --command "make {id}"    # Execute every item in order
"""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from braid import __version__
from braid.config import CONFIG_FILENAME, default_config, find_config, read_config, write_config
from braid.executors import CommandExecutor
from braid.loader import load_plan
from braid.logging import setup_logging
from braid.sequencer import Sequencer
from braid.types.core import BraidConfig

_PLAN_ARG = click.argument("plan", type=click.Path(exists=True, dir_okay=False, path_type=Path))


def _fail(message: str, as_json: bool) -> NoReturn:
    if as_json:
        click.echo(json_mod.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _open_plan(ctx: click.Context, plan: Path, *, as_json: bool, max_attempts: int | None = None) -> Sequencer:
    """Load a plan into a fresh Sequencer, exiting with status 1 on bad input.

    Retry limit precedence: command-line flag, then the plan file, then braid.json.
    """
    config: BraidConfig = ctx.obj["config"]
    try:
        plan_file = load_plan(plan)
        attempts = max_attempts or plan_file["max_attempts"] or config.get("max_attempts", 3)
        # CycleError, UnknownReferenceError and DuplicateItemError are ValueErrors
        return Sequencer.from_records(plan_file["records"], max_attempts=attempts)
    except (ValueError, OSError) as e:
        _fail(str(e), as_json)


def _dump(data: Any) -> None:
    click.echo(json_mod.dumps(data, indent=2, default=str))


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="braid")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help=f"Path to {CONFIG_FILENAME} (default: search upward from cwd)",
)
@click.option(
    "--log-dir",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Write JSONL logs to this directory",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_dir: Path | None) -> None:
    """Braid: run work items in dependency order."""
    ctx.ensure_object(dict)
    if config_path is None:
        config_path = find_config()
    elif not config_path.exists():
        click.echo(f"Config file not found: {config_path}", err=True)
        sys.exit(1)
    config = read_config(config_path)
    ctx.obj["config"] = config

    if log_dir is None and config.get("log_dir"):
        log_dir = Path(str(config["log_dir"]))
    if log_dir is not None:
        setup_logging(log_dir)


@cli.command()
@click.option("--force", is_flag=True, help=f"Overwrite an existing {CONFIG_FILENAME}")
def init(force: bool) -> None:
    """Write a default braid.json in the current directory."""
    config_path = Path.cwd() / CONFIG_FILENAME
    if config_path.exists() and not force:
        click.echo(f"{CONFIG_FILENAME} already exists in {config_path.parent}")
        return
    write_config(config_path, default_config())
    click.echo(f"Wrote {config_path}")


@cli.command()
@_PLAN_ARG
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def validate(ctx: click.Context, plan: Path, as_json: bool) -> None:
    """Check a plan: ids, references, duplicates and cycles."""
    seq = _open_plan(ctx, plan, as_json=as_json)
    item_count = len(seq.store)
    edge_count = len(seq.store.edges())
    if as_json:
        _dump({"valid": True, "items": item_count, "edges": edge_count})
        return
    click.echo(f"OK: {item_count} items, {edge_count} edges")


@cli.command()
@_PLAN_ARG
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def ready(ctx: click.Context, plan: Path, as_json: bool) -> None:
    """Show items that can start immediately (no blockers)."""
    seq = _open_plan(ctx, plan, as_json=as_json)
    items = seq.ready_items()

    if as_json:
        _dump([i.to_dict() for i in items])
        return

    for item in items:
        title = f' "{item.title}"' if item.title else ""
        click.echo(f"{item.id}{title}")
    click.echo(f"\n{len(items)} ready")


@cli.command()
@_PLAN_ARG
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def order(ctx: click.Context, plan: Path, as_json: bool) -> None:
    """Show execution waves; each wave only depends on earlier ones."""
    seq = _open_plan(ctx, plan, as_json=as_json)
    waves = seq.store.execution_waves()

    if as_json:
        _dump({"waves": waves, "order": seq.store.topological_order()})
        return

    for n, wave in enumerate(waves, start=1):
        click.echo(f"Wave {n}: {', '.join(wave)}")


@cli.command("critical-path")
@_PLAN_ARG
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def critical_path(ctx: click.Context, plan: Path, as_json: bool) -> None:
    """Show the longest blocker chain."""
    seq = _open_plan(ctx, plan, as_json=as_json)
    path = seq.store.critical_path()

    if as_json:
        _dump({"path": path, "length": len(path)})
        return

    if not path:
        click.echo("No dependency chains found.")
        return

    click.echo(f"Critical path ({len(path)} items):")
    for i, node in enumerate(path):
        prefix = "  -> " if i > 0 else "  "
        title = f' "{node["title"]}"' if node["title"] else ""
        click.echo(f"{prefix}{node['id']}{title}")


@cli.command()
@_PLAN_ARG
@click.option("--command", "-c", "command", required=True, help="Command per item; {id}, {title}, {attempt} are substituted")
@click.option("--max-attempts", type=click.IntRange(min=1), default=None, help="Attempts per item before it fails")
@click.option("--workers", "-w", type=click.IntRange(min=1), default=None, help="Items to run in parallel")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds per attempt")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def run(
    ctx: click.Context,
    plan: Path,
    command: str,
    max_attempts: int | None,
    workers: int | None,
    timeout: float | None,
    as_json: bool,
) -> None:
    """Run every item in dependency order. Exits 1 unless all items finish."""
    config: BraidConfig = ctx.obj["config"]
    seq = _open_plan(ctx, plan, as_json=as_json, max_attempts=max_attempts)
    try:
        executor = CommandExecutor(command, timeout=timeout or config.get("timeout"), cwd=plan.parent)
    except ValueError as e:
        _fail(str(e), as_json)

    report = seq.run(executor, max_workers=workers or config.get("max_workers", 1))

    if as_json:
        _dump(report)
    else:
        for item_id in report["completed"]:
            click.echo(f"[x] {item_id}")
        for failed in report["failed"]:
            click.echo(f"[!] {failed['id']} failed after {failed['attempts']} attempt(s): {failed['last_error']}")
        for stuck in report["deadlocked"]:
            click.echo(f"[-] {stuck['id']} never started: blocked by failed {', '.join(stuck['failed_blockers'])}")
        click.echo(f"\n{report['status']}: {len(report['completed'])}/{len(seq.store)} done")

    if report["status"] != "completed":
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
