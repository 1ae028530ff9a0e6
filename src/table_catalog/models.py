#!/usr/bin/env python3
"""
Core data classes for table-catalog.

Contains the in-memory shapes shared by every pipeline:
- Catalog records, metadata and the catalog snapshot itself
- Field groups produced by the field-list ingest
- Match results produced by the reconciliation engine
- Structured validation results
- Filter/search state

Catalog snapshots are frozen; pipelines produce new snapshots with
``dataclasses.replace`` instead of mutating them. The JSON export shape uses
the camelCase keys produced by ``to_dict``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple


def split_tags(value: Any) -> List[str]:
    """Split a comma separated tag cell ("001, 002") into trimmed tags."""
    if not value or not isinstance(value, str):
        return []
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def unique_tags(values: Iterable[Any]) -> List[str]:
    """De-duplicate tags preserving first-seen order, dropping empty strings."""
    seen = []
    for value in values:
        if value is None:
            continue
        tag = str(value).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _coerce_tags(data: Dict[str, Any], plural: str, singular: str) -> List[str]:
    """Read a tag list, migrating the legacy single-valued key once."""
    values = data.get(plural)
    if values is None:
        return split_tags(data.get(singular))
    if isinstance(values, str):
        return split_tags(values)
    return unique_tags(values)


@dataclass(frozen=True)
class FieldSpec:
    """A single column of a data table, attached by reconciliation."""

    name: str
    type: str = "string"
    description: str = ""
    searchable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "searchable": self.searchable,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldSpec":
        return cls(
            name=str(data.get("name", "")),
            type=str(data.get("type") or "string"),
            description=str(data.get("description") or ""),
            searchable=bool(data.get("searchable", True)),
        )


@dataclass(frozen=True)
class CatalogRecord:
    """One data table of the catalog."""

    id: str
    name: str
    market: str = ""
    aspect: str = ""
    classes: List[str] = field(default_factory=list)
    samples: List[str] = field(default_factory=list)
    description: str = ""
    fields: Optional[List[FieldSpec]] = None
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        object.__setattr__(self, "classes", unique_tags(self.classes))
        object.__setattr__(self, "samples", unique_tags(self.samples))

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "market": self.market,
            "aspect": self.aspect,
            "classes": list(self.classes),
            "samples": list(self.samples),
            "description": self.description,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.fields is not None:
            data["fields"] = [f.to_dict() for f in self.fields]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogRecord":
        """Build a record, accepting legacy ``class``/``sample`` keys."""
        raw_fields = data.get("fields")
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            market=str(data.get("market") or ""),
            aspect=str(data.get("aspect") or ""),
            classes=_coerce_tags(data, "classes", "class"),
            samples=_coerce_tags(data, "samples", "sample"),
            description=str(data.get("description") or ""),
            fields=(
                [FieldSpec.from_dict(f) for f in raw_fields]
                if raw_fields is not None
                else None
            ),
            created_at=str(data.get("createdAt") or ""),
            updated_at=str(data.get("updatedAt") or ""),
        )


@dataclass(frozen=True)
class CatalogMetadata:
    """Bookkeeping stored alongside the table list."""

    total_tables: int = 0
    last_updated: str = ""
    data_version: str = "1.0"
    source: str = ""
    import_timestamp: Optional[str] = None
    fields_added: Optional[bool] = None
    fields_added_timestamp: Optional[str] = None

    _KEYS = {
        "total_tables": "totalTables",
        "last_updated": "lastUpdated",
        "data_version": "dataVersion",
        "source": "source",
        "import_timestamp": "importTimestamp",
        "fields_added": "fieldsAdded",
        "fields_added_timestamp": "fieldsAddedTimestamp",
    }

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for attr, key in self._KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CatalogMetadata":
        data = data or {}
        kwargs = {}
        for attr, key in cls._KEYS.items():
            if key in data and data[key] is not None:
                kwargs[attr] = data[key]
        if "total_tables" in kwargs:
            kwargs["total_tables"] = int(kwargs["total_tables"])
        if "data_version" in kwargs:
            kwargs["data_version"] = str(kwargs["data_version"])
        return cls(**kwargs)


@dataclass(frozen=True)
class Catalog:
    """A complete, immutable catalog snapshot."""

    markets: List[str] = field(default_factory=list)
    aspects: List[str] = field(default_factory=list)
    class_options: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    sample_options: Dict[str, List[str]] = field(default_factory=dict)
    table_list: List[CatalogRecord] = field(default_factory=list)
    metadata: CatalogMetadata = field(default_factory=CatalogMetadata)

    def find_record(self, record_id: str) -> Optional[CatalogRecord]:
        for record in self.table_list:
            if record.id == record_id:
                return record
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "markets": list(self.markets),
            "aspects": list(self.aspects),
            "classOptions": {
                market: {aspect: list(classes) for aspect, classes in by_aspect.items()}
                for market, by_aspect in self.class_options.items()
            },
            "sampleOptions": {
                cls: list(samples) for cls, samples in self.sample_options.items()
            },
            "tableList": [record.to_dict() for record in self.table_list],
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Catalog":
        return cls(
            markets=list(data.get("markets") or []),
            aspects=list(data.get("aspects") or []),
            class_options={
                market: {aspect: list(classes) for aspect, classes in by_aspect.items()}
                for market, by_aspect in (data.get("classOptions") or {}).items()
            },
            sample_options={
                cls_name: list(samples)
                for cls_name, samples in (data.get("sampleOptions") or {}).items()
            },
            table_list=[
                CatalogRecord.from_dict(record) for record in data.get("tableList") or []
            ],
            metadata=CatalogMetadata.from_dict(data.get("metadata")),
        )


@dataclass
class ExcelFieldGroup:
    """The fields of one (tableId, tableName) group from a field-list workbook."""

    sheet_name: str
    table_id: str
    table_name: str
    original_table_name: str
    fields: List[FieldSpec] = field(default_factory=list)

    @property
    def field_count(self) -> int:
        return len(self.fields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sheetName": self.sheet_name,
            "tableId": self.table_id,
            "tableName": self.table_name,
            "originalTableName": self.original_table_name,
            "fields": [f.to_dict() for f in self.fields],
            "fieldCount": self.field_count,
        }


@dataclass
class FieldListParseResult:
    """Output of the field-list ingest."""

    tables: List[ExcelFieldGroup]
    total_fields: int
    sheets: int
    processing_details: Dict[str, int]
    file_name: str = "uploaded_file.xlsx"


@dataclass(frozen=True)
class FuzzyCandidate:
    table: CatalogRecord
    similarity: float


@dataclass
class MatchResult:
    """Reconciliation outcome for one field group."""

    excel_table: ExcelFieldGroup
    exact_match: Optional[CatalogRecord]
    fuzzy_matches: List[FuzzyCandidate]
    match_type: str  # "exact", "fuzzy", "none"
    selected_match: Optional[CatalogRecord]
    status: str  # "matched", "pending"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "excelTable": self.excel_table.to_dict(),
            "exactMatch": self.exact_match.to_dict() if self.exact_match else None,
            "fuzzyMatches": [
                {"table": c.table.to_dict(), "similarity": c.similarity}
                for c in self.fuzzy_matches
            ],
            "matchType": self.match_type,
            "selectedMatch": (
                self.selected_match.to_dict() if self.selected_match else None
            ),
            "status": self.status,
        }


@dataclass
class ValidationResult:
    """Structured validation outcome; warnings never make it invalid."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    row_count: Optional[int] = None
    column_count: Optional[int] = None
    unique_table_names: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
        if self.row_count is not None:
            data["rowCount"] = self.row_count
        if self.column_count is not None:
            data["columnCount"] = self.column_count
        if self.unique_table_names is not None:
            data["uniqueTableNames"] = self.unique_table_names
        return data


@dataclass(frozen=True)
class SavedFilters:
    """Filter selections captured when entering search mode."""

    market: str
    aspect: str
    classes: Tuple[str, ...]
    samples: Tuple[str, ...]


@dataclass(frozen=True)
class FilterState:
    """Filter/search selections for one session."""

    selected_market: str = ""
    selected_aspect: str = ""
    selected_classes: Tuple[str, ...] = ()
    selected_samples: Tuple[str, ...] = ()
    search_term: str = ""
    is_search_mode: bool = False
    saved_filters: Optional[SavedFilters] = None
