"""CLI interface for tier price reconciliation."""

import json
import logging
from pathlib import Path
from typing import Callable, List, Optional

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import get_config
from .exceptions import ContractError
from .models import PriceRecord, RejectedRecord
from .repositories.memory import (
    CatalogSnapshot,
    RecordingPriceIndexer,
    build_in_memory_catalog,
    dump_in_memory_catalog,
)
from .storage import TierPriceStorage
from .validator import TierPriceValidator

app = typer.Typer(
    name="tierprice",
    help="""
    [bold]Tier Price Reconciliation CLI[/bold]

    Apply tier price batches to a catalog snapshot and report rejected prices.

    [cyan]Examples:[/cyan]
      tierprice get catalog.json --sku 24-MB01
      tierprice update catalog.json prices.json
      tierprice replace catalog.json prices.json --dry-run
      tierprice delete catalog.json prices.json --verbose
    """,
    no_args_is_help=True,
)

console = Console()
logger = logging.getLogger(__name__)

_PRICE_LIST = TypeAdapter(List[PriceRecord])

SnapshotArg = typer.Argument(..., help="Catalog snapshot JSON file", exists=True)
PricesArg = typer.Argument(..., help="JSON array of tier price records", exists=True)
DryRunOpt = typer.Option(False, "--dry-run", help="Do not write the snapshot back")
VerboseOpt = typer.Option(False, "--verbose", "-v", help="Show detailed processing information")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_prices(path: Path) -> List[PriceRecord]:
    try:
        return _PRICE_LIST.validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"[bold red]✗ Invalid price file:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2)


def _print_rejected(rejected: List[RejectedRecord]) -> None:
    if not rejected:
        console.print("[bold green]✓ All prices accepted[/bold green]")
        return

    table = Table(title=f"Rejected prices ({len(rejected)})")
    table.add_column("SKU", no_wrap=True)
    table.add_column("Qty", justify="right", no_wrap=True)
    table.add_column("Reason", no_wrap=True)
    table.add_column("Message")
    for item in rejected:
        table.add_row(item.record.sku, str(item.record.qty), item.reason_code, item.message)
    console.print(table)


def _run_write(
    operation: Callable[[TierPriceStorage, List[PriceRecord]], List[RejectedRecord]],
    snapshot_file: Path,
    prices_file: Path,
    dry_run: bool,
    verbose: bool,
) -> None:
    _configure_logging(verbose)
    config = get_config()
    snapshot = CatalogSnapshot.load(snapshot_file)
    locator, repository = build_in_memory_catalog(snapshot)
    indexer = RecordingPriceIndexer()
    storage = TierPriceStorage(
        repository=repository,
        validator=TierPriceValidator(config),
        locator=locator,
        indexer=indexer,
    )
    prices = _load_prices(prices_file)

    try:
        rejected = operation(storage, prices)
    except ContractError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e.code}: {escape(e.message)}")
        raise typer.Exit(code=1)

    _print_rejected(rejected)
    if verbose:
        console.print(f"[dim]Reindexed products: {sorted(indexer.reindexed_ids)}[/dim]")

    if dry_run:
        console.print("[yellow]Dry run - snapshot not written[/yellow]")
        return
    dump_in_memory_catalog(locator, repository).save(snapshot_file)
    console.print(f"[dim]Saved snapshot to {snapshot_file}[/dim]")


@app.command()
def get(
    snapshot_file: Path = SnapshotArg,
    skus: List[str] = typer.Option(..., "--sku", "-s", help="SKU to look up (repeatable)"),
    output_file: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output JSON file (default: stdout)",
        resolve_path=True,
    ),
    verbose: bool = VerboseOpt,
):
    """Print persisted tier prices for SKUs as JSON."""
    _configure_logging(verbose)
    config = get_config()
    locator, repository = build_in_memory_catalog(CatalogSnapshot.load(snapshot_file))
    storage = TierPriceStorage(
        repository=repository,
        validator=TierPriceValidator(config),
        locator=locator,
        indexer=RecordingPriceIndexer(),
    )

    try:
        prices = storage.fetch(skus)
    except ContractError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e.code}: {escape(e.message)}")
        raise typer.Exit(code=1)

    payload = json.dumps([p.model_dump(mode="json") for p in prices], indent=2)
    if output_file:
        output_file.write_text(payload, encoding="utf-8")
        console.print(f"[dim]Saved output to {output_file}[/dim]")
    else:
        print(payload)


@app.command()
def update(
    snapshot_file: Path = SnapshotArg,
    prices_file: Path = PricesArg,
    dry_run: bool = DryRunOpt,
    verbose: bool = VerboseOpt,
):
    """Update existing tier prices."""
    _run_write(TierPriceStorage.update, snapshot_file, prices_file, dry_run, verbose)


@app.command()
def replace(
    snapshot_file: Path = SnapshotArg,
    prices_file: Path = PricesArg,
    dry_run: bool = DryRunOpt,
    verbose: bool = VerboseOpt,
):
    """Replace all tier prices of the products in the batch."""
    _run_write(TierPriceStorage.replace, snapshot_file, prices_file, dry_run, verbose)


@app.command()
def delete(
    snapshot_file: Path = SnapshotArg,
    prices_file: Path = PricesArg,
    dry_run: bool = DryRunOpt,
    verbose: bool = VerboseOpt,
):
    """Delete tier prices matching the batch."""
    _run_write(TierPriceStorage.delete, snapshot_file, prices_file, dry_run, verbose)


@app.command()
def version():
    """Show version information."""
    console.print("tierprice version 0.1.0")


if __name__ == "__main__":
    app()
