"""CLI entry point for specwright."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from specwright.models.config import ExecutionConfig
from specwright.models.intent import AcceptanceCriteria
from specwright.orchestrator import Orchestrator
from specwright.publisher.workflow_template import render_workflow

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> ExecutionConfig:
    try:
        return ExecutionConfig.load(path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {path}[/red]")
        console.print("Run 'specwright init' to create a default config.")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid config {path}:[/red] {e}")
        sys.exit(1)


def _read_criteria(criteria: str | None, criteria_file: str | None) -> str:
    if criteria_file:
        return Path(criteria_file).read_text(encoding="utf-8")
    if criteria:
        return criteria
    console.print("[red]Provide --criteria or --criteria-file[/red]")
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Generate Playwright end-to-end tests from acceptance criteria."""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default="specwright.json", help="Config file path")
@click.option("--criteria", help="Acceptance criteria text")
@click.option("--criteria-file", type=click.Path(exists=True), help="File with acceptance criteria")
@click.option("--ticket-id", help="Ticket identifier, e.g. QA-123")
@click.option("--ticket-title", help="Ticket title")
@click.option("--no-publish", is_flag=True, help="Generate only; do not open a pull request")
@click.option("--dry-run", is_flag=True, help="Run the duplicate check but write nothing")
def generate(config: str, criteria: str | None, criteria_file: str | None, ticket_id: str | None,
             ticket_title: str | None, no_publish: bool, dry_run: bool) -> None:
    """Run the full pipeline: interpret, observe, synthesize and publish."""
    cfg = _load_config(config)
    ac = AcceptanceCriteria(
        text=_read_criteria(criteria, criteria_file),
        ticket_id=ticket_id,
        ticket_title=ticket_title,
    )
    result = Orchestrator(cfg).run(ac, publish=not no_publish, dry_run=dry_run)

    if result["status"] != "completed":
        error = result.get("error", {})
        console.print(f"\n[bold red]Run failed:[/bold red] {error.get('message')}")
        for key, value in error.get("diagnostics", {}).items():
            console.print(f"  {key}: {value}")
        sys.exit(1)

    test = result["test"]
    console.print("\n[bold green]Test generated[/bold green]")
    console.print(Syntax(test["code"], "typescript", theme="ansi_dark"))

    table = Table(title="Step resolution")
    table.add_column("#", style="bold")
    table.add_column("Kind")
    table.add_column("Element")
    table.add_column("Resolved by")
    table.add_column("Method")
    for i, step in enumerate(result["interactions"], 1):
        color = "red" if step["found_by"] == "not-found" else "green"
        table.add_row(str(i), step["kind"], step["step"]["element"],
                      f"[{color}]{step['found_by']}[/{color}]", step["method_name"])
    console.print(table)

    publish = result.get("publish")
    if publish:
        console.print(f"Publish: [bold]{publish['status']}[/bold] {publish['file_path']}")
        if publish.get("pull_request_url"):
            console.print(f"  Pull request: [blue]{publish['pull_request_url']}[/blue]")
        if publish.get("reason"):
            console.print(f"  Reason: {publish['reason']}")
        if publish.get("manual_commands"):
            console.print("\n[yellow]Run these commands to publish manually:[/yellow]")
            for command in publish["manual_commands"]:
                console.print(command, markup=False)


@cli.command()
@click.option("--config", "-c", default="specwright.json", help="Config file path")
@click.option("--criteria", help="Acceptance criteria text")
@click.option("--criteria-file", type=click.Path(exists=True), help="File with acceptance criteria")
def interpret(config: str, criteria: str | None, criteria_file: str | None) -> None:
    """Print the structured intent for some acceptance criteria."""
    cfg = _load_config(config)
    intent = Orchestrator(cfg).interpret_only(
        AcceptanceCriteria(text=_read_criteria(criteria, criteria_file))
    )
    console.print_json(json.dumps(intent.model_dump()))


@cli.command()
@click.option("--config", "-c", default="specwright.json", help="Config file path")
@click.option("--json", "as_json", is_flag=True,
              help="Print the test ids each method touches, per namespace, as JSON")
def mine(config: str, as_json: bool) -> None:
    """Show the page-object methods mined from the repository."""
    cfg = _load_config(config)
    kb = Orchestrator(cfg).mine_only()
    if as_json:
        console.print_json(json.dumps(kb.methods_with_test_ids_by_namespace()))
        return
    console.print(f"[green]Source:[/green] {kb.source}")
    for namespace, methods in kb.methods_by_namespace.items():
        table = Table(title=namespace)
        table.add_column("Method", style="bold")
        table.add_column("Test ids")
        for m in methods:
            table.add_row(m.name, ", ".join(m.test_ids) or "-")
        console.print(table)


@cli.command()
@click.option("--config", "-c", default="specwright.json", help="Config file path")
def workflow(config: str) -> None:
    """Print the CI workflow that runs generated tests."""
    cfg = _load_config(config)
    click.echo(render_workflow(cfg.hosting.spec_dir))


@cli.command()
@click.option("--base-url", "-u", prompt="Application base URL", help="Application under test")
@click.option("--repository", "-r", default="", help="owner/name of the test repository")
def init(base_url: str, repository: str) -> None:
    """Create a default configuration file."""
    config_path = Path("specwright.json")
    if config_path.exists():
        if not click.confirm("specwright.json already exists. Overwrite?"):
            return

    cfg = ExecutionConfig(base_url=base_url)
    cfg.hosting.repository = repository
    cfg.hosting.token = "env:GITHUB_TOKEN"
    cfg.credentials.email = "env:E2E_USER_EMAIL"
    cfg.credentials.password = "env:E2E_USER_PASSWORD"
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nSet GITHUB_TOKEN, E2E_USER_EMAIL, E2E_USER_PASSWORD and ANTHROPIC_API_KEY, then run:")
    console.print('  [blue]specwright generate --ticket-id QA-123 --criteria "..."[/blue]')


if __name__ == "__main__":
    cli()
