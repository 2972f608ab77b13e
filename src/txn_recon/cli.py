"""
Command-line interface for the internal vs. provider reconciliation tool.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import apply_matching_overrides, load_config, generate_default_config
from .models.transaction import ReconciliationResult
from .parsers.file_parser import TransactionFileParser
from .matching.engine import ReconciliationEngine
from .reports.csv_export import export_all
from .reports.excel_generator import ExcelReportGenerator
from .utils.exceptions import ReconciliationError
from .utils.logging_config import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__)
def main():
    """Internal ledger vs. provider statement reconciliation tool."""
    pass


@main.command()
@click.argument("internal_file", type=click.Path(exists=True, path_type=Path))
@click.argument("provider_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option(
    "--export-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Also write per-category CSV exports to this directory",
)
@click.option(
    "--pairing",
    type=click.Choice(["positional", "best_amount"]),
    default=None,
    help="Override how records sharing a reference are paired",
)
@click.option(
    "--timestamp-tolerance",
    type=click.FloatRange(min=0),
    default=None,
    help="Override timestamp tolerance in minutes",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--dry-run", is_flag=True, help="Parse and reconcile without writing any files"
)
def reconcile(
    internal_file: Path,
    provider_file: Path,
    config: Optional[Path],
    output: Optional[Path],
    export_dir: Optional[Path],
    pairing: Optional[str],
    timestamp_tolerance: Optional[float],
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile an internal transaction export with a provider statement.

    INTERNAL_FILE: Path to the internal export (CSV, XLSX, XLS or ODS)
    PROVIDER_FILE: Path to the provider statement (CSV, XLSX, XLS or ODS)
    """
    try:
        recon_config = load_config(config)

        log_file = Path(recon_config.logging.file) if recon_config.logging.file else None
        setup_logging(
            logging.DEBUG if verbose else recon_config.logging.level,
            log_file=log_file,
            log_format=recon_config.logging.format,
        )
        logger.info(f"Reconciling {internal_file.name} against {provider_file.name}")

        apply_matching_overrides(
            recon_config,
            pairing_strategy=pairing,
            timestamp_tolerance_minutes=timestamp_tolerance,
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            parser = TransactionFileParser(recon_config)

            task = progress.add_task("Parsing internal file...", total=None)
            internal_transactions = parser.parse_file(internal_file)
            progress.update(task, completed=True)

            task = progress.add_task("Parsing provider file...", total=None)
            provider_transactions = parser.parse_file(provider_file)
            progress.update(task, completed=True)

            task = progress.add_task("Running reconciliation...", total=None)
            engine = ReconciliationEngine(recon_config)
            result = engine.reconcile(internal_transactions, provider_transactions)
            progress.update(task, completed=True)

        _display_summary(result)
        _display_duplicates(result)

        if dry_run:
            console.print("\n[yellow]Dry run - no report generated[/yellow]")
            return

        now = datetime.now()
        if output is None:
            template = recon_config.output.excel.filename_template
            output = Path(template.format(date=now.strftime("%Y%m%d"), time=now.strftime("%H%M%S")))

        report_generator = ExcelReportGenerator(recon_config)
        report_path = report_generator.generate_report(
            result,
            output_path=output,
            internal_filename=internal_file.name,
            provider_filename=provider_file.name,
        )
        console.print(f"\n[green]Report generated: {report_path}[/green]")

        if export_dir is not None:
            written = export_all(
                result,
                export_dir,
                now=now,
                delimiter=recon_config.output.csv.delimiter,
                encoding=recon_config.output.csv.encoding,
            )
            console.print(f"[green]Exported {len(written)} CSV files to {export_dir}[/green]")

    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command("parse")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def parse(file: Path, config: Optional[Path]):
    """
    Parse a transaction file and display a preview.

    FILE: Path to a CSV, XLSX, XLS or ODS transaction file
    """
    try:
        parser = TransactionFileParser(load_config(config))
        transactions = parser.parse_file(file)
    except ReconciliationError as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"Transactions: {file.name}")
    table.add_column("Reference")
    table.add_column("Amount", justify="right")
    table.add_column("Currency")
    table.add_column("Status")
    table.add_column("Timestamp")
    table.add_column("Description")

    for txn in transactions[:20]:  # Show first 20
        description = txn.description or ""
        table.add_row(
            txn.reference or "-",
            str(txn.amount),
            txn.currency,
            txn.status,
            txn.timestamp.isoformat() if txn.timestamp else "-",
            description[:40] + "..." if len(description) > 40 else description,
        )

    console.print(table)

    if len(transactions) > 20:
        console.print(f"\n... and {len(transactions) - 20} more transactions")

    console.print(f"\nTotal transactions: {len(transactions)}")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _display_summary(result: ReconciliationResult) -> None:
    """Display reconciliation summary in console."""
    summary = result.summary
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total Internal Transactions", str(summary.total_internal))
    table.add_row("Total Provider Transactions", str(summary.total_provider))
    table.add_row("Internal Total Amount", f"{summary.total_internal_amount:,.2f}")
    table.add_row("Provider Total Amount", f"{summary.total_provider_amount:,.2f}")
    table.add_row("Matched", str(summary.matched_count))
    for name, count in summary.match_type_counts:
        table.add_row(f"  {name.capitalize()}", str(count))
    table.add_row("Internal Only", str(summary.internal_only_count))
    table.add_row("Provider Only", str(summary.provider_only_count))
    table.add_row("Total Discrepancies", str(summary.total_discrepancies))
    table.add_row("Duplicate Transactions", str(summary.total_duplicates))
    table.add_row("Match Rate", f"{summary.match_rate:.1f}%")

    console.print(table)


def _display_duplicates(result: ReconciliationResult) -> None:
    """Display duplicate groups per bucket, if any."""
    buckets = [
        ("Internal Only", result.duplicates.internal_only),
        ("Provider Only", result.duplicates.provider_only),
        ("Matched", result.duplicates.matched),
    ]
    if not any(analysis.has_duplicates for _, analysis in buckets):
        return

    table = Table(title="Duplicate References")
    table.add_column("Bucket")
    table.add_column("Reference")
    table.add_column("Count", justify="right")
    table.add_column("Total Amount", justify="right")
    table.add_column("Risk")
    table.add_column("Consistent")

    for bucket_name, analysis in buckets:
        for group in analysis.duplicate_groups:
            table.add_row(
                bucket_name,
                group.normalized_reference,
                str(group.count),
                f"{group.total_amount:,.2f}",
                group.risk_level.value,
                "yes" if group.consistent else "no",
            )

    console.print(table)


if __name__ == "__main__":
    main()
