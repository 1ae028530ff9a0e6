#!/usr/bin/env python3
"""
Export and console reporting for table-catalog.

Contains:
- JSON export of catalog snapshots and suggested export file names
- Rich console rendering of validation results, statistics, match results,
  merge summaries and filtered table lists
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .logging_config import get_logger

# Initialize logger for this module
logger = get_logger(__name__)


def ensure_json_serializable(obj: Any) -> Any:
    """
    Ensure an object is JSON serializable by converting non-serializable types.

    Args:
        obj: Object to make JSON serializable

    Returns:
        JSON-serializable version of the object
    """
    if hasattr(obj, "to_dict"):
        return ensure_json_serializable(obj.to_dict())
    if isinstance(obj, dict):
        return {str(k): ensure_json_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [ensure_json_serializable(item) for item in obj]
    if isinstance(obj, Path):
        return obj.as_posix()
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return obj
    return str(obj)


def suggest_export_filename(prefix: str, now: Optional[datetime] = None) -> str:
    """``<prefix>_<YYYY-MM-DD>_<epoch-ms>.json``"""
    now = now or datetime.now()
    return f"{prefix}_{now.date().isoformat()}_{int(now.timestamp() * 1000)}.json"


def to_json(obj: Any) -> str:
    """Pretty-printed JSON, UTF-8 characters kept as-is."""
    return json.dumps(ensure_json_serializable(obj), ensure_ascii=False, indent=2)


def write_catalog_json(obj: Any, output_path: Path) -> Path:
    """Write a catalog (or any exportable object) as pretty-printed JSON."""
    output_path = Path(output_path)
    if output_path.suffix != ".json":
        output_path = output_path.with_name(output_path.name + ".json")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    content = to_json(obj)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(content)

    logger.info(f"Wrote {output_path} ({len(content)} characters)")
    return output_path


def render_validation(result, console: Optional[Console] = None) -> None:
    console = console or Console()
    if result.is_valid:
        color = "yellow" if result.warnings else "green"
        mark = "⚠" if result.warnings else "✓"
        console.print(f"[{color}]{mark}[/{color}] validation passed")
    else:
        console.print("[red]✗[/red] validation failed")

    if result.row_count is not None:
        console.print(f"  rows: {result.row_count}")
    if result.column_count is not None:
        console.print(f"  columns: {result.column_count}")
    if result.unique_table_names is not None:
        console.print(f"  unique table names: {result.unique_table_names}")
    for error in result.errors:
        console.print(f"  [red]error:[/red] {escape(error)}")
    for warning in result.warnings:
        console.print(f"  [yellow]warning:[/yellow] {escape(warning)}")


def _distribution_table(title: str, rows: List[Dict[str, Any]]) -> Table:
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Count", justify="right")
    with_percentage = bool(rows) and "percentage" in rows[0]
    if with_percentage:
        table.add_column("%", justify="right")
    for row in rows:
        cells = [escape(str(row["name"])), str(row["count"])]
        if with_percentage:
            cells.append(f"{row['percentage']:.1f}")
        table.add_row(*cells)
    return table


def render_statistics(stats: Dict[str, Any], console: Optional[Console] = None) -> None:
    console = console or Console()
    overview = stats["overview"]
    quality = stats["dataQuality"]

    console.print(
        f"tables={overview['totalTables']}  markets={overview['totalMarkets']}  "
        f"aspects={overview['totalAspects']}  classes={overview['totalClasses']}  "
        f"samples={overview['totalSamples']}"
    )
    console.print(_distribution_table("Markets", stats["distribution"]["byMarket"]))
    console.print(_distribution_table("Aspects", stats["distribution"]["byAspect"]))
    console.print(_distribution_table("Classes", stats["distribution"]["byClass"]))
    console.print(_distribution_table("Samples", stats["distribution"]["bySample"]))
    console.print(
        f"complete={quality['completeTables']}  incomplete={quality['incompleteTables']}  "
        f"duplicate names={quality['duplicateNames']}  "
        f"multi-class={quality['multiClassTables']}"
    )


def render_match_results(results: Sequence[Any], console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title="Reconciliation")
    table.add_column("#", justify="right")
    table.add_column("Workbook table", style="cyan")
    table.add_column("Fields", justify="right")
    table.add_column("Match")
    table.add_column("Selected")
    table.add_column("Candidates")

    for index, result in enumerate(results):
        candidates = ", ".join(
            f"{escape(c.table.name)} ({c.similarity:.2f})" for c in result.fuzzy_matches
        )
        color = "green" if result.status == "matched" else "yellow"
        table.add_row(
            str(index),
            escape(result.excel_table.original_table_name),
            str(result.excel_table.field_count),
            result.match_type,
            f"[{color}]{escape(result.selected_match.name) if result.selected_match else '-'}[/{color}]",
            candidates or "-",
        )
    console.print(table)


def render_merge_summary(summary: Any, console: Optional[Console] = None) -> None:
    console = console or Console()
    data = summary.to_dict()
    color = "yellow" if data["unmatchedTables"] else "green"
    console.print(
        f"[{color}]✓[/{color}] merged  matched={data['matchedTables']}  "
        f"unmatched={data['unmatchedTables']}  fields={data['totalFieldsAdded']}  "
        f"tables with fields={data['tablesWithFields']}/{data['totalTables']}"
    )


def render_tables(records: Sequence[Any], summary: Any, console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title=f"Tables ({summary.filtered_count}/{summary.total_count})")
    table.add_column("ID")
    table.add_column("Name", style="cyan")
    table.add_column("Market")
    table.add_column("Aspect")
    table.add_column("Classes")
    table.add_column("Samples")
    table.add_column("Fields", justify="right")
    for record in records:
        table.add_row(
            escape(record.id),
            escape(record.name),
            escape(record.market),
            escape(record.aspect),
            escape(", ".join(record.classes)),
            escape(", ".join(record.samples)),
            str(len(record.fields)) if record.fields is not None else "-",
        )
    console.print(table)
    if summary.active_filters:
        console.print("  " + escape("  ".join(summary.active_filters)))
    console.print(f"  mode: {summary.mode}  rate: {summary.filter_rate:.1f}%")
