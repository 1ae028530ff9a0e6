#!/usr/bin/env python3
"""
CLI entry point using Typer for table-catalog.

Commands:
- template:  print the sample catalog CSV
- convert:   CSV -> catalog JSON, with validation and statistics
- stats:     statistics of a catalog JSON
- validate:  structural check of a catalog JSON
- reconcile: merge a field-list workbook into a catalog JSON
- filter:    filter or search the tables of a catalog JSON
"""

from pathlib import Path
from types import SimpleNamespace
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config_loader import load_config
from .conversion import (
    convert_rows_to_catalog,
    generate_csv_template,
    generate_statistics,
    validate_catalog_structure,
    validate_csv_rows,
)
from .filtering import (
    SORTABLE_FIELDS,
    ChangeSearch,
    FilterEngine,
    SelectAspect,
    SelectMarket,
    SetClasses,
    SetSamples,
    paginate,
    sort_tables,
)
from .logging_config import get_logger, setup_logging
from .models import FilterState
from .parsers import (
    ParseError,
    load_catalog,
    parse_csv,
    parse_field_workbook,
    read_csv_text,
    read_field_workbook,
)
from .reconciliation import CatalogReconciler, auto_select, merge_fields, select_match
from .reporting import (
    render_match_results,
    render_merge_summary,
    render_statistics,
    render_tables,
    render_validation,
    write_catalog_json,
)
from .schema import ValidationError

# Initialize logger for this module
logger = get_logger(__name__)

app = typer.Typer(
    name="table-catalog",
    help="Table Catalog - CSV import, field reconciliation and filtering",
    add_completion=False,
)
console = Console()


def _fail(error: Exception) -> None:
    logger.debug(f"Command failed: {error!r}")
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    details = getattr(error, "details", None)
    for detail in details or []:
        console.print(f"  {escape(str(detail))}")
    raise typer.Exit(1)


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING or ERROR (default: LOG_LEVEL or INFO)"
    ),
):
    """Table Catalog - CSV import, field reconciliation and filtering."""
    setup_logging(log_level)


@app.command()
def version():
    """Show the version."""
    console.print(f"table-catalog {__version__}")


@app.command()
def template(
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write to file"),
):
    """Print (or write) the sample catalog CSV."""
    content = generate_csv_template()
    if output is None:
        typer.echo(content)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content + "\n", encoding="utf-8")
    console.print(f"[green]✓[/green] template written to {escape(str(output))}")


@app.command()
def convert(
    csv_path: Path = typer.Argument(..., help="Catalog CSV file"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Catalog JSON path"),
    show_stats: bool = typer.Option(True, "--stats/--no-stats", help="Print statistics"),
):
    """Convert a catalog CSV into a catalog JSON snapshot."""
    config = load_config()
    try:
        rows = parse_csv(read_csv_text(csv_path))
    except (ParseError, OSError, ValueError) as e:
        _fail(e)

    result = validate_csv_rows(rows, config.valid_markets, config.valid_aspects)
    render_validation(result, console)
    if not result.is_valid:
        raise typer.Exit(1)

    catalog = convert_rows_to_catalog(rows)
    output = output or config.get_output_path("table_data.json")
    written = write_catalog_json(catalog, output)
    logger.info(f"Wrote catalog with {len(catalog.table_list)} tables to {written}")
    console.print(f"[green]✓[/green] {len(catalog.table_list)} tables → {escape(str(written))}")

    if show_stats:
        render_statistics(generate_statistics(catalog), console)


@app.command()
def stats(catalog_path: Path = typer.Argument(..., help="Catalog JSON file")):
    """Show distribution and data-quality statistics of a catalog."""
    try:
        catalog = load_catalog(catalog_path)
    except (ValidationError, OSError, ValueError) as e:
        _fail(e)
    render_statistics(generate_statistics(catalog), console)


@app.command()
def validate(catalog_path: Path = typer.Argument(..., help="Catalog JSON file")):
    """Check the structure of a catalog JSON file."""
    import json

    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        _fail(e)

    if not isinstance(data, dict):
        console.print("[red]✗[/red] catalog must be a JSON object")
        raise typer.Exit(1)

    result = validate_catalog_structure(data)
    render_validation(result, console)
    if not result.is_valid:
        raise typer.Exit(1)


def _parse_selection(value: str):
    index, _, record_id = value.partition("=")
    try:
        return int(index), record_id.strip()
    except ValueError:
        raise typer.BadParameter(f"expected INDEX=TABLE_ID, got '{value}'")


@app.command()
def reconcile(
    catalog_path: Path = typer.Argument(..., help="Catalog JSON file"),
    workbook_path: Path = typer.Argument(..., help="Field-list workbook (.xlsx)"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Merged catalog path"),
    fuzzy_threshold: Optional[float] = typer.Option(
        None, "--fuzzy-threshold", help="Minimum similarity for candidates (default: 0.5)"
    ),
    max_candidates: Optional[int] = typer.Option(
        None, "--max-candidates", help="Candidates kept per table (default: 3)"
    ),
    auto_accept: Optional[float] = typer.Option(
        None, "--auto-accept", help="Accept the best candidate at or above this similarity"
    ),
    selections: Optional[List[str]] = typer.Option(
        None, "--select", help="INDEX=TABLE_ID to choose a match (INDEX= clears it)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show matches without merging"),
):
    """Match a field-list workbook against a catalog and merge the fields."""
    config = load_config()
    config.merge_with_cli_args(
        SimpleNamespace(
            fuzzy_threshold=fuzzy_threshold,
            max_candidates=max_candidates,
            auto_accept=auto_accept,
        )
    )

    try:
        catalog = load_catalog(catalog_path)
        parsed = parse_field_workbook(
            read_field_workbook(workbook_path), file_name=workbook_path.name
        )
    except (ParseError, ValidationError, OSError, ValueError) as e:
        _fail(e)

    console.print(
        f"workbook: {parsed.sheets} sheets, {len(parsed.tables)} tables, "
        f"{parsed.total_fields} fields"
    )

    reconciler = CatalogReconciler(config.fuzzy_config())
    results = reconciler.match(parsed.tables, catalog.table_list)

    if config.auto_accept_threshold is not None:
        auto_select(results, config.auto_accept_threshold)

    for value in selections or []:
        index, record_id = _parse_selection(value)
        record = catalog.find_record(record_id) if record_id else None
        if record_id and record is None:
            _fail(ValueError(f"Unknown table id: {record_id}"))
        try:
            select_match(results, index, record)
        except IndexError as e:
            _fail(e)

    render_match_results(results, console)
    if dry_run:
        return

    merged = merge_fields(results, catalog)
    output = output or config.get_output_path(merged.export_file_name)
    written = write_catalog_json(merged.merged_catalog, output)
    render_merge_summary(merged.summary, console)
    console.print(f"  out: {escape(str(written))}")


@app.command(name="filter")
def filter_tables_command(
    catalog_path: Path = typer.Argument(..., help="Catalog JSON file"),
    market: Optional[str] = typer.Option(None, "--market", help="Market"),
    aspect: Optional[str] = typer.Option(None, "--aspect", help="Aspect"),
    classes: Optional[List[str]] = typer.Option(None, "--class", help="Class (repeatable, AND)"),
    samples: Optional[List[str]] = typer.Option(None, "--sample", help="Sample (repeatable, AND)"),
    search: Optional[str] = typer.Option(None, "--search", help="Free-text search"),
    sort_by: str = typer.Option("name", "--sort-by", help=f"One of: {', '.join(SORTABLE_FIELDS)}"),
    descending: bool = typer.Option(False, "--desc", help="Sort descending"),
    page: int = typer.Option(1, "--page", min=1),
    page_size: int = typer.Option(20, "--page-size", min=1),
):
    """Filter (or search) the tables of a catalog."""
    if sort_by not in SORTABLE_FIELDS:
        raise typer.BadParameter(
            f"choose one of: {', '.join(SORTABLE_FIELDS)}", param_hint="--sort-by"
        )
    config = load_config()
    try:
        catalog = load_catalog(catalog_path)
    except (ValidationError, OSError, ValueError) as e:
        _fail(e)

    engine = FilterEngine(
        catalog, config.default_market, config.default_aspect, state=FilterState()
    )
    if market:
        engine.dispatch(SelectMarket(market))
    if aspect:
        engine.dispatch(SelectAspect(aspect))
    if classes:
        engine.dispatch(SetClasses(tuple(classes)))
    if samples:
        engine.dispatch(SetSamples(tuple(samples)))
    if search:
        engine.dispatch(ChangeSearch(search))

    if not engine.is_search_mode:
        console.print(f"classes: {escape(', '.join(engine.available_classes)) or '-'}")
        console.print(f"samples: {escape(', '.join(engine.available_samples)) or '-'}")

    ordered = sort_tables(
        engine.filtered_tables, sort_by, "desc" if descending else "asc"
    )
    current = paginate(ordered, page, page_size)
    render_tables(current.items, engine.summary, console)
    if current.total_pages > 1:
        console.print(f"  page {current.current_page}/{current.total_pages}")


def main():
    """Main entry point for the table-catalog command."""
    app()


if __name__ == "__main__":
    main()
