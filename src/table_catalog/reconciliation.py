#!/usr/bin/env python3
"""
Catalog reconciliation for table-catalog.

Matches field groups from a field-list workbook against catalog records and
merges the matched fields into a new catalog snapshot:
- Exact matching on normalized and raw table names
- Fuzzy candidates ranked by normalized Levenshtein similarity
- Human or threshold-based selection of a match per group
- Field merge with version bump and a reconciliation summary
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .fields import normalize_table_name
from .fuzzy import FuzzyConfig, FuzzyMatcher
from .logging_config import get_logger
from .models import (
    Catalog,
    CatalogMetadata,
    CatalogRecord,
    ExcelFieldGroup,
    FuzzyCandidate,
    MatchResult,
)
from .reporting import suggest_export_filename

# Initialize logger for this module
logger = get_logger(__name__)

MATCH_EXACT = "exact"
MATCH_FUZZY = "fuzzy"
MATCH_NONE = "none"

STATUS_MATCHED = "matched"
STATUS_PENDING = "pending"


@dataclass
class MergeSummary:
    total_tables: int
    matched_tables: int
    unmatched_tables: int
    total_fields_added: int
    tables_with_fields: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalTables": self.total_tables,
            "matchedTables": self.matched_tables,
            "unmatchedTables": self.unmatched_tables,
            "totalFieldsAdded": self.total_fields_added,
            "tablesWithFields": self.tables_with_fields,
        }


@dataclass
class MergeResult:
    merged_catalog: Catalog
    summary: MergeSummary
    export_file_name: str


class CatalogReconciler:
    """Matches field groups to catalog records by table name."""

    def __init__(self, fuzzy_config: Optional[FuzzyConfig] = None):
        self.fuzzy_config = fuzzy_config or FuzzyConfig()
        self.fuzzy_matcher = FuzzyMatcher()

    def find_exact_match(
        self, group: ExcelFieldGroup, records: Sequence[CatalogRecord]
    ) -> Optional[CatalogRecord]:
        """First record whose name equals the group's name, raw or normalized."""
        group_norm = normalize_table_name(group.table_name)
        for record in records:
            if (
                normalize_table_name(record.name) == group_norm
                or record.name == group.table_name
                or record.name == group.original_table_name
            ):
                return record
        return None

    def similarity(self, group: ExcelFieldGroup, record: CatalogRecord) -> float:
        """Best of normalized-vs-normalized, raw-vs-original and raw-vs-normalized."""
        return max(
            self.fuzzy_matcher.levenshtein_similarity(
                normalize_table_name(record.name),
                normalize_table_name(group.table_name),
            ),
            self.fuzzy_matcher.levenshtein_similarity(
                record.name, group.original_table_name
            ),
            self.fuzzy_matcher.levenshtein_similarity(record.name, group.table_name),
        )

    def rank_candidates(
        self, group: ExcelFieldGroup, records: Sequence[CatalogRecord]
    ) -> List[FuzzyCandidate]:
        """Candidates above the threshold, best first, capped."""
        scored = [
            FuzzyCandidate(table=record, similarity=self.similarity(group, record))
            for record in records
        ]
        scored = [c for c in scored if c.similarity > self.fuzzy_config.threshold]
        scored.sort(key=lambda c: c.similarity, reverse=True)
        return scored[: self.fuzzy_config.max_candidates]

    def match_group(
        self, group: ExcelFieldGroup, records: Sequence[CatalogRecord]
    ) -> MatchResult:
        exact = self.find_exact_match(group, records)
        if exact is not None:
            return MatchResult(
                excel_table=group,
                exact_match=exact,
                fuzzy_matches=[],
                match_type=MATCH_EXACT,
                selected_match=exact,
                status=STATUS_MATCHED,
            )

        candidates = []
        if self.fuzzy_config.enabled:
            candidates = self.rank_candidates(group, records)

        return MatchResult(
            excel_table=group,
            exact_match=None,
            fuzzy_matches=candidates,
            match_type=MATCH_FUZZY if candidates else MATCH_NONE,
            selected_match=None,
            status=STATUS_PENDING,
        )

    def match(
        self, groups: Sequence[ExcelFieldGroup], records: Sequence[CatalogRecord]
    ) -> List[MatchResult]:
        """
        Match every field group against the catalog records.

        Args:
            groups: Field groups from ``parse_field_workbook``
            records: Catalog table list

        Returns:
            One MatchResult per group, in input order
        """
        results = [self.match_group(group, records) for group in groups]

        counts = {MATCH_EXACT: 0, MATCH_FUZZY: 0, MATCH_NONE: 0}
        for result in results:
            counts[result.match_type] += 1
        logger.info(
            f"Matched {len(results)} tables: exact={counts[MATCH_EXACT]} "
            f"fuzzy={counts[MATCH_FUZZY]} none={counts[MATCH_NONE]}"
        )
        return results


def match_tables(
    groups: Sequence[ExcelFieldGroup],
    records: Sequence[CatalogRecord],
    fuzzy_config: Optional[FuzzyConfig] = None,
) -> List[MatchResult]:
    return CatalogReconciler(fuzzy_config).match(groups, records)


def select_match(
    results: List[MatchResult], index: int, record: Optional[CatalogRecord]
) -> List[MatchResult]:
    """
    Set (or clear, with None) the chosen record of one result.

    Only ``results[index]`` changes; the same list is returned.

    Raises:
        IndexError: If ``index`` is out of range
    """
    if not 0 <= index < len(results):
        raise IndexError(f"Match result index out of range: {index}")

    result = results[index]
    result.selected_match = record
    result.status = STATUS_MATCHED if record is not None else STATUS_PENDING
    return results


def auto_select(results: List[MatchResult], min_similarity: float) -> int:
    """
    Accept the best fuzzy candidate of each pending result scoring at least
    ``min_similarity``.

    Returns:
        Number of results that were selected
    """
    selected = 0
    for index, result in enumerate(results):
        if result.status != STATUS_PENDING or not result.fuzzy_matches:
            continue
        best = result.fuzzy_matches[0]
        if best.similarity >= min_similarity:
            select_match(results, index, best.table)
            selected += 1
            logger.debug(
                f"Auto-selected '{best.table.name}' for "
                f"'{result.excel_table.original_table_name}' ({best.similarity:.2f})"
            )
    logger.info(f"Auto-selected {selected} fuzzy matches at >= {min_similarity:.2f}")
    return selected


def next_data_version(version: Any) -> str:
    """Bump a decimal version string by 0.1 (base 1.0 when absent)."""
    try:
        base = float(version) if version not in (None, "") else 1.0
    except (TypeError, ValueError):
        logger.warning(f"Unparsable dataVersion '{version}', using 1.0 as base")
        base = 1.0
    return f"{base + 0.1:.1f}"


def merge_fields(
    results: Sequence[MatchResult], catalog: Catalog, now: Optional[datetime] = None
) -> MergeResult:
    """
    Merge the fields of matched groups into a new catalog snapshot.

    Matched records get their ``fields`` replaced by the group's fields; every
    other record passes through untouched. Record order and the taxonomy
    caches are preserved.

    Args:
        results: Match results, possibly with pending entries
        catalog: Catalog snapshot to merge into
        now: Timestamp for metadata (defaults to now)

    Returns:
        MergeResult with the new snapshot, summary and a suggested file name
    """
    now = now or datetime.now()

    merged_records = []
    for record in catalog.table_list:
        matched = next(
            (
                r
                for r in results
                if r.selected_match is not None and r.selected_match.id == record.id
            ),
            None,
        )
        if matched is None:
            merged_records.append(record)
            continue
        logger.debug(
            f"Adding {matched.excel_table.field_count} fields to table {record.name}"
        )
        merged_records.append(replace(record, fields=list(matched.excel_table.fields)))

    metadata: CatalogMetadata = replace(
        catalog.metadata,
        last_updated=now.isoformat(),
        data_version=next_data_version(catalog.metadata.data_version),
        fields_added=True,
        fields_added_timestamp=now.isoformat(),
    )
    merged_catalog = replace(catalog, table_list=merged_records, metadata=metadata)

    matched_results = [r for r in results if r.status == STATUS_MATCHED]
    summary = MergeSummary(
        total_tables=len(catalog.table_list),
        matched_tables=len(matched_results),
        unmatched_tables=sum(1 for r in results if r.status == STATUS_PENDING),
        total_fields_added=sum(r.excel_table.field_count for r in matched_results),
        tables_with_fields=sum(1 for r in merged_records if r.fields),
    )
    logger.info(
        f"Merged fields into {summary.matched_tables} tables "
        f"({summary.total_fields_added} fields), version {metadata.data_version}"
    )
    return MergeResult(
        merged_catalog=merged_catalog,
        summary=summary,
        export_file_name=suggest_export_filename("updated_table_data", now),
    )
