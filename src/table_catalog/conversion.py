#!/usr/bin/env python3
"""
CSV catalog conversion for table-catalog.

Turns parsed CSV rows into a catalog snapshot:
- Validation of columns and value domains (errors vs. warnings)
- Conversion into records plus taxonomy caches
- Distribution and data-quality statistics
- CSV template and CSV export
- Validation of single records and loaded catalog structures
"""

import csv
import io
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .constants import (
    COL_ASPECT,
    COL_CLASS,
    COL_DESCRIPTION,
    COL_MARKET,
    COL_NAME_FALLBACK,
    COL_SAMPLE,
    COL_TABLE_NAME,
    CSV_IMPORT_SOURCE,
    EXPORT_HEADERS,
    INITIAL_DATA_VERSION,
    MAX_TABLE_NAME_LENGTH,
    REQUIRED_COLUMNS,
    VALID_ASPECTS,
    VALID_MARKETS,
)
from .logging_config import get_logger
from .models import (
    Catalog,
    CatalogMetadata,
    CatalogRecord,
    ValidationResult,
    split_tags,
)
from .taxonomy import derive_taxonomy

# Initialize logger for this module
logger = get_logger(__name__)

CSV_TEMPLATE = """Table名稱,市場,面向,類別,樣本,描述
台股資產負債表分析,台灣,基本面,001,RSI,分析台股上市櫃公司的資產負債狀況
美股季度財報分析,美國,基本面,002,季度財報,美股標普500公司季度財務表現分析
A股技術指標分析,中國,技術面,"001, 003",資金流向,A股市場技術分析和資金流向追蹤（多類別範例）
港股南向資金分析,香港,技術面,004,"資金流向, 成交量",港股通南向資金流入流出分析（多樣本範例）
台股外資持股分析,台灣,籌碼面,"001, 002, 005","外資持股, 持股變化",外資在台股市場的持股變化追蹤（多類別多樣本範例）
美股機構持股分析,美國,籌碼面,006,投資銀行,美股機構投資者持股分析
A股政策影響分析,中國,消息面,007,貨幣政策,央行政策對A股市場的影響評估
港股IPO分析,香港,消息面,008,新股上市,港股新股上市表現和投資機會分析"""


def validate_csv_rows(
    rows: Sequence[Dict[str, str]],
    valid_markets: Sequence[str] = VALID_MARKETS,
    valid_aspects: Sequence[str] = VALID_ASPECTS,
) -> ValidationResult:
    """
    Validate parsed CSV rows.

    Missing required columns is the only hard error; empty cells, duplicate
    names and unknown markets/aspects are reported as warnings.

    Args:
        rows: Rows returned by ``parse_csv``
        valid_markets: Closed market enumeration
        valid_aspects: Closed aspect enumeration

    Returns:
        ValidationResult with counts filled in
    """
    result = ValidationResult(row_count=len(rows))
    if not rows:
        result.errors.append("Data is empty")
        result.column_count = 0
        result.unique_table_names = 0
        return result

    columns = list(rows[0].keys())
    result.column_count = len(columns)

    missing = [col for col in REQUIRED_COLUMNS if col not in columns]
    if missing:
        result.errors.append(f"Missing required columns: {', '.join(missing)}")
        result.unique_table_names = 0
        return result

    table_names = set()
    for index, row in enumerate(rows):
        line_number = index + 2

        for col in REQUIRED_COLUMNS:
            if not (row.get(col) or "").strip():
                result.warnings.append(f"Row {line_number}: missing value for {col}")

        table_name = row.get(COL_TABLE_NAME)
        if table_name:
            if table_name in table_names:
                result.warnings.append(f"Duplicate table name: {table_name}")
            else:
                table_names.add(table_name)

        market = row.get(COL_MARKET)
        if market and market not in valid_markets:
            result.warnings.append(f"Row {line_number}: invalid market value: {market}")

        aspect = row.get(COL_ASPECT)
        if aspect and aspect not in valid_aspects:
            result.warnings.append(f"Row {line_number}: invalid aspect value: {aspect}")

    result.warnings.extend(getattr(rows, "field_count_mismatches", []))
    result.unique_table_names = len(table_names)

    logger.info(
        f"Validated {len(rows)} rows: {len(result.errors)} errors, "
        f"{len(result.warnings)} warnings"
    )
    return result


def row_to_record(row: Dict[str, str], index: int, today: str) -> CatalogRecord:
    """Project one CSV row onto a record with a sequential ``table-N`` id."""
    return CatalogRecord(
        id=f"table-{index + 1}",
        name=row.get(COL_TABLE_NAME) or row.get(COL_NAME_FALLBACK) or f"表格{index + 1}",
        market=row.get(COL_MARKET) or "",
        aspect=row.get(COL_ASPECT) or "",
        classes=split_tags(row.get(COL_CLASS)),
        samples=split_tags(row.get(COL_SAMPLE)),
        description=row.get(COL_DESCRIPTION) or "",
        created_at=today,
        updated_at=today,
    )


def convert_rows_to_catalog(
    rows: Sequence[Dict[str, str]], now: Optional[datetime] = None
) -> Catalog:
    """
    Convert parsed CSV rows into a new catalog snapshot.

    Args:
        rows: Rows returned by ``parse_csv``
        now: Timestamp to stamp records and metadata with (defaults to now)

    Returns:
        Catalog whose caches are derived from its table list
    """
    now = now or datetime.now()
    today = now.date().isoformat()

    records = [row_to_record(row, index, today) for index, row in enumerate(rows)]
    markets, aspects, class_options, sample_options = derive_taxonomy(records)

    logger.info(
        f"Converted {len(records)} records across {len(markets)} markets "
        f"and {len(aspects)} aspects"
    )
    return Catalog(
        markets=markets,
        aspects=aspects,
        class_options=class_options,
        sample_options=sample_options,
        table_list=records,
        metadata=CatalogMetadata(
            total_tables=len(records),
            last_updated=today,
            data_version=INITIAL_DATA_VERSION,
            source=CSV_IMPORT_SOURCE,
            import_timestamp=now.isoformat(),
        ),
    )


def _percentage(count: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(count / total * 100, 1)


def _is_complete(record: CatalogRecord) -> bool:
    return bool(
        record.name
        and record.market
        and record.aspect
        and record.classes
        and record.samples
    )


def generate_statistics(catalog: Catalog) -> Dict[str, Any]:
    """
    Build the distribution and data-quality report of a catalog.

    A record with N classes (or samples) counts once in each of N buckets.
    """
    records = catalog.table_list
    total = len(records)

    by_market = []
    for market in catalog.markets:
        count = sum(1 for r in records if r.market == market)
        by_market.append(
            {"name": market, "count": count, "percentage": _percentage(count, total)}
        )

    by_aspect = []
    for aspect in catalog.aspects:
        count = sum(1 for r in records if r.aspect == aspect)
        by_aspect.append(
            {"name": aspect, "count": count, "percentage": _percentage(count, total)}
        )

    class_counts: Dict[str, int] = {}
    sample_counts: Dict[str, int] = {}
    for record in records:
        for cls in record.classes:
            class_counts[cls] = class_counts.get(cls, 0) + 1
        for sample in record.samples:
            sample_counts[sample] = sample_counts.get(sample, 0) + 1

    complete = sum(1 for r in records if _is_complete(r))

    return {
        "overview": {
            "totalTables": total,
            "totalMarkets": len(catalog.markets),
            "totalAspects": len(catalog.aspects),
            "totalClasses": len(class_counts),
            "totalSamples": len(sample_counts),
        },
        "distribution": {
            "byMarket": by_market,
            "byAspect": by_aspect,
            "byClass": [{"name": k, "count": v} for k, v in class_counts.items()],
            "bySample": [{"name": k, "count": v} for k, v in sample_counts.items()],
        },
        "dataQuality": {
            "completeTables": complete,
            "incompleteTables": total - complete,
            "duplicateNames": total - len({r.name for r in records}),
            "multiClassTables": sum(1 for r in records if len(r.classes) > 1),
        },
        "coverage": {
            "marketCoverage": _percentage(
                sum(1 for m in by_market if m["count"] > 0), len(by_market)
            ),
            "aspectCoverage": _percentage(
                sum(1 for a in by_aspect if a["count"] > 0), len(by_aspect)
            ),
        },
    }


def generate_csv_template() -> str:
    """Sample CSV showing single and multi-valued class/sample cells."""
    return CSV_TEMPLATE


def export_table_list_to_csv(records: Sequence[CatalogRecord]) -> str:
    """Serialize records back to catalog CSV; multi-value cells are quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for record in records:
        writer.writerow(
            [
                record.name,
                record.market,
                record.aspect,
                ", ".join(record.classes),
                ", ".join(record.samples),
                # one record per line
                record.description.replace("\r", " ").replace("\n", " "),
                record.created_at,
                record.updated_at,
            ]
        )
    return buffer.getvalue().rstrip("\n")


def validate_table_record(
    record: CatalogRecord,
    valid_markets: Sequence[str] = VALID_MARKETS,
    valid_aspects: Sequence[str] = VALID_ASPECTS,
) -> ValidationResult:
    """Validate a single record before it is added to a catalog."""
    result = ValidationResult()

    required = {
        "name": record.name.strip(),
        "market": record.market.strip(),
        "aspect": record.aspect.strip(),
        "classes": record.classes,
        "samples": record.samples,
    }
    for name, value in required.items():
        if not value:
            result.errors.append(f"Missing required field: {name}")

    if record.market and record.market not in valid_markets:
        result.warnings.append(f"Market value may be invalid: {record.market}")
    if record.aspect and record.aspect not in valid_aspects:
        result.warnings.append(f"Aspect value may be invalid: {record.aspect}")
    if len(record.name) > MAX_TABLE_NAME_LENGTH:
        result.warnings.append(
            f"Table name is longer than {MAX_TABLE_NAME_LENGTH} characters"
        )
    return result


def validate_catalog_structure(data: Dict[str, Any]) -> ValidationResult:
    """
    Check the JSON shape of a catalog before loading it.

    Legacy records carrying ``class``/``sample`` instead of
    ``classes``/``samples`` are accepted.
    """
    result = ValidationResult()

    required_keys = [
        "markets",
        "aspects",
        "classOptions",
        "sampleOptions",
        "tableList",
        "metadata",
    ]
    for key in required_keys:
        if key not in data or data[key] is None:
            result.errors.append(f"Missing required key: {key}")
    if result.errors:
        return result

    for key in ("markets", "aspects", "tableList"):
        if not isinstance(data[key], list):
            result.errors.append(f"{key} must be a list")
    for key in ("classOptions", "sampleOptions", "metadata"):
        if not isinstance(data[key], dict):
            result.errors.append(f"{key} must be an object")
    if result.errors:
        return result

    table_list = data["tableList"]
    total_tables = data["metadata"].get("totalTables")
    if total_tables is not None and total_tables != len(table_list):
        result.warnings.append("tableList length does not match metadata.totalTables")

    for index, record in enumerate(table_list, start=1):
        if not isinstance(record, dict):
            result.errors.append(f"Table {index} is not an object")
            continue
        for key in ("id", "name", "market", "aspect"):
            if not record.get(key):
                result.warnings.append(f"Table {index} is missing {key}")
        if not (record.get("classes") or record.get("class")):
            result.warnings.append(f"Table {index} is missing classes")
        if not (record.get("samples") or record.get("sample")):
            result.warnings.append(f"Table {index} is missing samples")

    result.row_count = len(table_list)
    return result
