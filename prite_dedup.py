#!/usr/bin/env python3
"""
PRITE Question Import - duplicate check and merge

Usage:
    python prite_dedup.py scan NEW.json EXISTING.json
        Show which new questions duplicate existing ones

    python prite_dedup.py import NEW.json EXISTING.json [options]
        Resolve duplicates and write the batch to persist
        --strategy S     newer | metadata | manual | keepBoth | skip
                         (default: each duplicate's suggested strategy)
        --interactive    Choose a strategy for each duplicate; keepBoth
                         imports the new question alongside the existing one
        --out FILE       Write the final batch here (default: stdout)

    python prite_dedup.py help

Common options:
    --config FILE    YAML config (default: config.yaml next to this script)

JSON files hold a list of questions, or an object with a "questions" list.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import yaml
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.prompt import Prompt
from rich.table import Table

from shared.logging import configure_logging, get_logger
from shared.question_dedup import (
    DedupConfig,
    DedupError,
    DuplicateScanner,
    MergeFailure,
    ResolutionWorkflow,
    WorkflowFinalizeError,
    WorkflowState,
    generate_bulk_resolution,
    assemble_final_batch,
    record_to_dict,
)

PRITE_ROOT = Path(__file__).resolve().parent

console = Console(stderr=True)
log = get_logger("question_dedup", "cli")

# No "skip" here: dropping a candidate is a batch-only strategy (--strategy skip).
INTERACTIVE_CHOICES = ["newer", "metadata", "manual", "keepBoth", "all", "cancel"]


def load_config(path: Optional[str] = None) -> dict:
    """Load the whole config file."""
    config_path = Path(path) if path else PRITE_ROOT / "config.yaml"
    if not config_path.exists():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        console.print(f"[yellow]Ignoring unreadable config {config_path}: {e}[/yellow]")
        return {}
    return data if isinstance(data, dict) else {}


def load_questions(path: str) -> list:
    """Read a question list from a JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("questions", [])
    return data


def _option(args: list[str], name: str) -> Optional[str]:
    """Value following --name in args, if present."""
    if name in args:
        index = args.index(name)
        if index + 1 < len(args):
            return args[index + 1]
    return None


def _positional(args: list[str]) -> list[str]:
    """Arguments that are not --options or their values."""
    valued = {"--strategy", "--out", "--config"}
    result = []
    skip = False
    for arg in args:
        if skip:
            skip = False
            continue
        if arg in valued:
            skip = True
            continue
        if arg.startswith("--"):
            continue
        result.append(arg)
    return result


async def run_scan(scanner: DuplicateScanner, candidates: list, existing: list):
    """Scan with a progress bar."""
    with Progress(
        TextColumn("[bold]Checking for duplicate questions..."),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("scan", total=100)
        return await scanner.scan(
            candidates,
            existing,
            on_progress=lambda pct: progress.update(task, completed=pct),
        )


def print_scan_summary(scan) -> None:
    console.print(Panel(
        f"[bold]Total Questions:[/bold] {scan.total}\n"
        f"[bold]Potential Duplicates:[/bold] {scan.duplicate_count}\n"
        f"[bold]Skipped (no text / malformed):[/bold] {scan.skipped}"
    ))
    if not scan.clusters:
        console.print("[green]No duplicates found.[/green]")
        return

    table = Table(title="Duplicates")
    table.add_column("#", justify="right")
    table.add_column("New question")
    table.add_column("Best match")
    table.add_column("Score", justify="right")
    table.add_column("Signals", justify="right")
    table.add_column("Suggested")
    for index, cluster in enumerate(scan.clusters, 1):
        best = cluster.best_match
        table.add_row(
            str(index),
            cluster.candidate.excerpt(50),
            best.existing.excerpt(50),
            f"{best.score:.2f}",
            str(best.similarity.match_count),
            cluster.suggested_strategy.value,
        )
    console.print(table)


def review_interactively(workflow: ResolutionWorkflow) -> None:
    """Prompt for a strategy per duplicate until everything is resolved."""
    workflow.start()
    while workflow.state is WorkflowState.REVIEWING:
        cluster = workflow.current
        best = cluster.best_match
        console.print(Panel(
            f"[bold]New:[/bold] {cluster.candidate.text}\n\n"
            f"[bold]Existing:[/bold] {best.existing.text}\n\n"
            + "\n".join(f"  • {reason}" for reason in cluster.reasons),
            title=f"Duplicate {workflow.current_index + 1} of {len(workflow.clusters)}",
        ))
        choice = Prompt.ask(
            "Strategy",
            choices=INTERACTIVE_CHOICES,
            default=workflow.current_decision.strategy.value,
            console=console,
        )
        if choice == "cancel":
            workflow.cancel()
            return
        if choice == "keepBoth":
            workflow.skip_current()
            continue
        if choice == "all":
            workflow.apply_strategy_to_all_remaining()
            continue

        workflow.set_strategy_for_current(choice)
        if choice == "manual":
            while True:
                fields = Prompt.ask(
                    "Fields to take from the new question (e.g. text,optionA,correctAnswer)",
                    default="",
                    console=console,
                )
                selected = [f.strip() for f in fields.split(",") if f.strip()]
                try:
                    workflow.set_manual_selections({name: True for name in selected})
                    break
                except MergeFailure as e:
                    console.print(f"[red]{e}[/red]")
        workflow.resolve_current_and_advance()


def cmd_scan(args: list[str], config: DedupConfig) -> int:
    """Show duplicates without resolving them."""
    paths = _positional(args)
    if len(paths) < 2:
        console.print("[red]scan needs NEW.json and EXISTING.json[/red]")
        return 2

    scanner = DuplicateScanner(config)
    scan = asyncio.run(run_scan(scanner, load_questions(paths[0]), load_questions(paths[1])))
    print_scan_summary(scan)
    return 0


def cmd_import(args: list[str], config: DedupConfig) -> int:
    """Resolve duplicates and write the final batch."""
    paths = _positional(args)
    if len(paths) < 2:
        console.print("[red]import needs NEW.json and EXISTING.json[/red]")
        return 2

    scanner = DuplicateScanner(config)
    scan = asyncio.run(run_scan(scanner, load_questions(paths[0]), load_questions(paths[1])))
    print_scan_summary(scan)

    if "--interactive" in args:
        workflow = ResolutionWorkflow(scan, config)
        review_interactively(workflow)
        if workflow.state is WorkflowState.CANCELLED:
            console.print("[yellow]Import cancelled. Nothing written.[/yellow]")
            return 1
        try:
            final, stats = workflow.finalize()
        except WorkflowFinalizeError as e:
            console.print(f"[red]{e}[/red]")
            return 1
    else:
        decisions = generate_bulk_resolution(scan.clusters, _option(args, "--strategy"))
        final, stats = assemble_final_batch(scan.non_duplicates, scan.clusters, decisions)

    output = json.dumps([record_to_dict(q) for q in final], indent=2, ensure_ascii=False)
    out_path = _option(args, "--out")
    if out_path:
        Path(out_path).write_text(output, encoding="utf-8")
        console.print(f"[green]✓ Wrote {len(final)} questions to {out_path}[/green]")
    else:
        print(output)

    console.print(Panel(
        f"[bold]Imported:[/bold] {stats.imported}\n"
        f"[bold]Merged:[/bold] {stats.merged}\n"
        f"[bold]Kept both:[/bold] {stats.kept}\n"
        f"[bold]Skipped:[/bold] {stats.skipped}"
    ))
    return 0


def cmd_help(args: list[str] = None, config: DedupConfig = None) -> int:
    """Show help."""
    console.print(__doc__)
    return 0


COMMANDS = {
    "scan": cmd_scan,
    "import": cmd_import,
    "help": cmd_help,
    "--help": cmd_help,
    "-h": cmd_help,
}


def main() -> int:
    args = sys.argv[1:]
    if not args:
        return cmd_help()

    full_config = load_config(_option(args, "--config"))
    logging_config = full_config.get("logging", {})
    configure_logging(
        level=logging_config.get("level", "INFO"),
        json_format=logging_config.get("json", False),
    )

    cmd = args[0].lower()
    if cmd not in COMMANDS:
        console.print(f"[red]Unknown command: {cmd}[/red]")
        cmd_help()
        return 2

    try:
        config = DedupConfig.from_dict(full_config)
        return COMMANDS[cmd](args[1:], config)
    except (DedupError, OSError, ValueError) as e:
        log.error("question_dedup.cli.failed", command=cmd, error=str(e))
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
