"""
CLI interface for AZ Cost Guard.

Entry point of the GitHub Action and a local tool for estimating IaC files.
"""

import logging
import sys
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

import requests
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from az_costguard.config.loader import (
    ConfigError,
    RunConfig,
    load_run_config,
    positive_decimal,
)
from az_costguard.core.estimator import CostEstimator
from az_costguard.core.iac_files import filter_iac_files, iac_file_type
from az_costguard.core.parser import ParseError, SchemaVariant, parse_estimate
from az_costguard.core.records import EstimationReport
from az_costguard.github.pull_request import (
    GitHubContext,
    list_changed_files,
    read_pull_request_number,
)
from az_costguard.report.writer import summarize, write_report
from az_costguard.utils import setup_logger

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

TOP_RESOURCES = 5


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging")
):
    """AZ Cost Guard CLI."""
    setup_logger(logging.DEBUG if debug else logging.INFO)
    if ctx.invoked_subcommand is None:
        console.print("AZ Cost Guard - Use --help to see available commands")


@app.command()
def run(
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML settings file"
    )
):
    """
    Estimate the IaC files changed by the current pull request.

    Reads GITHUB_REPOSITORY, GITHUB_TOKEN and GITHUB_EVENT_PATH plus the
    action inputs, and writes the cost report.
    """
    try:
        config = load_run_config(config_path=config_file)
        context = GitHubContext.from_env()
        console.print(f"Mode: {config.mode_description}")
        console.print(f"Repository: {context.owner}/{context.repo}")

        number = read_pull_request_number(context.event_path)
        console.print(f"Pull Request Number: {number}")

        changed = list_changed_files(context, number)
        console.print(f"Found {len(changed)} changed files")
        iac_files = filter_iac_files(f.filename for f in changed)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)
    except requests.RequestException as e:
        console.print(f"[red]GitHub API error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    _estimate_and_report(iac_files, config)


@app.command()
def estimate(
    files: List[str] = typer.Argument(..., help="IaC files to estimate"),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Report path (default: cost.json)"
    ),
    subscription_id: Optional[str] = typer.Option(
        None,
        "--subscription-id",
        "-s",
        help="Azure subscription to estimate against"
    ),
    location: Optional[str] = typer.Option(
        None,
        "--location",
        "-l",
        help="Azure region"
    ),
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML settings file"
    ),
    all_files: bool = typer.Option(
        False,
        "--all-files",
        help="Estimate every given file, not only recognized IaC files"
    )
):
    """Estimate the given files and write the cost report."""
    try:
        config = load_run_config(config_path=config_file)
        overrides = {}
        if output:
            overrides["output_path"] = output
        if subscription_id:
            overrides["subscription_id"] = subscription_id
        if location:
            overrides["location"] = location
        if overrides:
            config = replace(config, **overrides)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    selected = list(files) if all_files else filter_iac_files(files)
    _estimate_and_report(selected, config)


@app.command()
def parse(
    path: str = typer.Argument(..., help="File holding raw estimator output"),
    schema: Optional[SchemaVariant] = typer.Option(
        None,
        "--schema",
        help="Only accept this schema variant"
    ),
    rate: Optional[str] = typer.Option(
        None,
        "--usd-to-eur",
        help="Override the USD to EUR conversion rate"
    )
):
    """Parse saved estimator output and show the normalized records."""
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        console.print(f"[red]Error reading {escape(path)}:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    kwargs = {"schema_hint": schema}
    if rate is not None:
        try:
            kwargs["usd_to_eur"] = positive_decimal(rate, "--usd-to-eur")
        except ConfigError as e:
            console.print(f"[red]Invalid option:[/] {escape(str(e))}")
            sys.exit(EXIT_CODE_FAIL)

    try:
        parsed = parse_estimate(raw, **kwargs)
    except ParseError as e:
        console.print(f"[red]{e.reason.value}:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"Schema: {parsed.schema.name}")
    _display_records(parsed.records, title="Parsed resources")
    sys.exit(EXIT_CODE_PASS)


def _estimate_and_report(files: List[str], config: RunConfig) -> None:
    if files:
        console.print(f"\nIaC files ({len(files)}):")
        for path in files:
            console.print(f"- {path} ({iac_file_type(path) or 'unknown'})")
        console.print("\n[bold]=== Starting Azure Cost Estimation ===[/bold]")
        report = CostEstimator(config).estimate(files)
    else:
        console.print("No IaC files found. Skipping cost estimation.")
        report = EstimationReport()

    try:
        report_path = write_report(report.records, config.output_path)
    except OSError as e:
        console.print(f"[red]Error writing cost report:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    if files:
        _display_report(report)
    console.print(f"\nReport written to {report_path}")
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount: Decimal) -> str:
    """Format a EUR amount with thousands separators."""
    return f"€{amount:,.2f}"


def _display_records(records, title: str) -> None:
    table = Table(title=title)
    table.add_column("Service")
    table.add_column("SKU")
    table.add_column("Resource")
    table.add_column("Monthly cost", justify="right")
    for record in records:
        table.add_row(
            record.service,
            record.sku,
            record.resource_id,
            _format_currency(record.monthly_cost),
        )
    console.print(table)


def _display_report(report: EstimationReport) -> None:
    """Display the run summary in a clean, financial format."""
    console.print("\n[bold]=== Cost Estimation Complete ===[/bold]")

    for outcome in report.outcomes:
        if outcome.failed:
            console.print(
                f"[red]No estimate[/] for {escape(outcome.file)} ({outcome.reason.value}: {escape(outcome.detail)})"
            )
        elif outcome.reason is not None:
            console.print(
                f"[yellow]Fallback estimate[/] for {escape(outcome.file)} ({outcome.reason.value})"
            )

    summary = summarize(report.records, top=TOP_RESOURCES)
    console.print(f"Estimated cost for {summary.resource_count} resources")
    if not summary.resource_count:
        console.print("[dim]No resources found for cost estimation.[/]")
        return

    console.print(
        f"Total estimated monthly cost: {_format_currency(summary.total_monthly_cost)}"
    )
    _display_records(summary.most_expensive, title=f"Top {TOP_RESOURCES} most expensive resources")


if __name__ == "__main__":
    app()
