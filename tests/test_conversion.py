#!/usr/bin/env python3
"""
Tests for CSV validation, conversion, statistics and CSV export.
"""

from datetime import datetime

from table_catalog.conversion import (
    convert_rows_to_catalog,
    export_table_list_to_csv,
    generate_csv_template,
    generate_statistics,
    validate_catalog_structure,
    validate_csv_rows,
    validate_table_record,
)
from table_catalog.models import Catalog, CatalogRecord
from table_catalog.parsers import parse_csv

MULTI_TAG_CSV = (
    "Table名稱,市場,面向,類別,樣本\n"
    "A表,台灣,基本面,001,RSI\n"
    'B表,美國,技術面,"002, 003","RSI, MACD"'
)


def tuples(records):
    return {
        (r.name, r.market, r.aspect, frozenset(r.classes), frozenset(r.samples))
        for r in records
    }


class TestValidateCsvRows:
    """Tests for validate_csv_rows."""

    def test_clean_rows(self):
        """Test that well-formed rows pass without warnings."""
        result = validate_csv_rows(parse_csv(MULTI_TAG_CSV))

        assert result.is_valid
        assert result.warnings == []
        assert result.row_count == 2
        assert result.column_count == 5
        assert result.unique_table_names == 2

    def test_missing_required_columns_is_an_error(self):
        """Test that missing columns stop validation with one error."""
        result = validate_csv_rows(parse_csv("Table名稱,市場\nA,日本"))

        assert not result.is_valid
        assert result.errors == ["Missing required columns: 面向, 類別, 樣本"]
        assert result.warnings == []

    def test_empty_rows(self):
        """Test that no rows at all is an error."""
        result = validate_csv_rows([])
        assert result.errors == ["Data is empty"]

    def test_data_quality_issues_are_warnings(self):
        """Test empty cells, duplicates and unknown enum values."""
        text = (
            "Table名稱,市場,面向,類別,樣本\n"
            "A表,台灣,基本面,001,\n"
            "A表,日本,長線面,002,RSI\n"
            "C表,美國,技術面\n"
        )
        result = validate_csv_rows(parse_csv(text))

        assert result.is_valid
        assert "Row 2: missing value for 樣本" in result.warnings
        assert "Duplicate table name: A表" in result.warnings
        assert "Row 3: invalid market value: 日本" in result.warnings
        assert "Row 3: invalid aspect value: 長線面" in result.warnings
        assert "Row 4: missing value for 類別" in result.warnings
        assert any(w.startswith("Line 4: expected 5 fields") for w in result.warnings)
        assert result.unique_table_names == 2

    def test_custom_enumerations(self):
        """Test that the valid markets can be replaced."""
        rows = parse_csv("Table名稱,市場,面向,類別,樣本\nA表,日本,基本面,001,RSI")
        result = validate_csv_rows(rows, valid_markets=["日本"])
        assert result.warnings == []


class TestConvert:
    """Tests for convert_rows_to_catalog."""

    def test_multi_value_cells(self):
        """Test that tag cells are split and the caches derived."""
        now = datetime(2024, 5, 1, 9, 30)
        catalog = convert_rows_to_catalog(parse_csv(MULTI_TAG_CSV), now=now)

        assert len(catalog.table_list) == 2
        record_b = catalog.table_list[1]
        assert record_b.classes == ["002", "003"]
        assert record_b.samples == ["RSI", "MACD"]
        assert catalog.class_options["美國"]["技術面"] == ["002", "003"]
        assert catalog.sample_options["002"] == ["RSI", "MACD"]
        assert catalog.markets == ["台灣", "美國"]

        ids = [r.id for r in catalog.table_list]
        assert ids == ["table-1", "table-2"]
        assert record_b.created_at == "2024-05-01"

        metadata = catalog.metadata
        assert metadata.total_tables == 2
        assert metadata.data_version == "1.0"
        assert metadata.source == "csv_import"
        assert metadata.import_timestamp == now.isoformat()

    def test_name_fallback(self):
        """Test the 名稱 column and generated names."""
        rows = [{"名稱": "備用名", "市場": "台灣"}, {"市場": "台灣"}]
        catalog = convert_rows_to_catalog(rows)
        assert [r.name for r in catalog.table_list] == ["備用名", "表格2"]

    def test_template_converts(self):
        """Test that the bundled template is valid and converts."""
        rows = parse_csv(generate_csv_template())
        assert validate_csv_rows(rows).warnings == []

        catalog = convert_rows_to_catalog(rows)
        assert len(catalog.table_list) == 8
        assert catalog.table_list[4].classes == ["001", "002", "005"]
        assert catalog.table_list[4].samples == ["外資持股", "持股變化"]


class TestStatistics:
    """Tests for generate_statistics."""

    def test_template_statistics(self):
        """Test counts over the template catalog."""
        catalog = convert_rows_to_catalog(parse_csv(generate_csv_template()))
        stats = generate_statistics(catalog)

        assert stats["overview"] == {
            "totalTables": 8,
            "totalMarkets": 4,
            "totalAspects": 4,
            "totalClasses": 8,
            "totalSamples": 9,
        }
        assert all(m["percentage"] == 25.0 for m in stats["distribution"]["byMarket"])
        by_class = {c["name"]: c["count"] for c in stats["distribution"]["byClass"]}
        assert by_class["001"] == 3
        assert by_class["002"] == 2
        by_sample = {s["name"]: s["count"] for s in stats["distribution"]["bySample"]}
        assert by_sample["資金流向"] == 2
        assert stats["dataQuality"] == {
            "completeTables": 8,
            "incompleteTables": 0,
            "duplicateNames": 0,
            "multiClassTables": 2,
        }
        assert stats["coverage"] == {"marketCoverage": 100.0, "aspectCoverage": 100.0}

    def test_percentages_one_decimal(self, catalog):
        """Test rounding of distribution percentages."""
        stats = generate_statistics(catalog)
        by_market = {m["name"]: m["percentage"] for m in stats["distribution"]["byMarket"]}
        assert by_market == {"台灣": 75.0, "美國": 25.0}

        by_aspect = {a["name"]: a["percentage"] for a in stats["distribution"]["byAspect"]}
        assert by_aspect == {"基本面": 75.0, "技術面": 25.0}

    def test_duplicates_and_incomplete(self):
        """Test data-quality counters."""
        records = [
            CatalogRecord(id="1", name="X", market="台灣", aspect="基本面", classes=["001"], samples=["RSI"]),
            CatalogRecord(id="2", name="X", market="台灣", aspect="基本面", classes=["001"]),
            CatalogRecord(id="3", name="Y", market="台灣", aspect="技術面"),
        ]
        catalog = Catalog(markets=["台灣"], aspects=["基本面", "技術面"], table_list=records)
        quality = generate_statistics(catalog)["dataQuality"]

        assert quality["completeTables"] == 1
        assert quality["incompleteTables"] == 2
        assert quality["duplicateNames"] == 1
        percentages = [
            a["percentage"]
            for a in generate_statistics(catalog)["distribution"]["byAspect"]
        ]
        assert percentages == [66.7, 33.3]

    def test_empty_catalog(self):
        """Test that an empty catalog reports zeros instead of dividing by zero."""
        stats = generate_statistics(Catalog())
        assert stats["overview"]["totalTables"] == 0
        assert stats["coverage"] == {"marketCoverage": 0.0, "aspectCoverage": 0.0}


class TestCsvExport:
    """Tests for export_table_list_to_csv."""

    def test_round_trip(self):
        """Test that exported CSV re-parses to the same records."""
        catalog = convert_rows_to_catalog(parse_csv(generate_csv_template()))
        exported = export_table_list_to_csv(catalog.table_list)

        reparsed = convert_rows_to_catalog(parse_csv(exported))
        assert tuples(reparsed.table_list) == tuples(catalog.table_list)

    def test_multi_value_cells_quoted(self):
        """Test header and quoting of multi-value cells."""
        record = CatalogRecord(
            id="t1",
            name="A表",
            market="台灣",
            aspect="基本面",
            classes=["001", "003"],
            samples=["RSI"],
            description="line one\nline two",
        )
        lines = export_table_list_to_csv([record]).split("\n")

        assert lines[0] == "Table名稱,市場,面向,類別,樣本,描述,建立時間,更新時間"
        assert lines[1] == 'A表,台灣,基本面,"001, 003",RSI,line one line two,,'


class TestRecordValidation:
    """Tests for single-record and catalog structure validation."""

    def test_missing_required_fields(self):
        """Test that an empty record reports every missing field."""
        result = validate_table_record(CatalogRecord(id="t1", name=" "))
        assert not result.is_valid
        assert result.errors == [
            "Missing required field: name",
            "Missing required field: market",
            "Missing required field: aspect",
            "Missing required field: classes",
            "Missing required field: samples",
        ]

    def test_warnings(self):
        """Test unknown enum values and long names."""
        record = CatalogRecord(
            id="t1",
            name="長" * 101,
            market="日本",
            aspect="基本面",
            classes=["001"],
            samples=["RSI"],
        )
        result = validate_table_record(record)
        assert result.is_valid
        assert result.warnings == [
            "Market value may be invalid: 日本",
            "Table name is longer than 100 characters",
        ]

    def test_structure_missing_keys(self):
        """Test that every missing top-level key is listed."""
        result = validate_catalog_structure({"markets": []})
        assert not result.is_valid
        assert "Missing required key: tableList" in result.errors
        assert len(result.errors) == 5

    def test_structure_wrong_types(self):
        """Test container type checks."""
        result = validate_catalog_structure(
            {
                "markets": {},
                "aspects": [],
                "classOptions": [],
                "sampleOptions": {},
                "tableList": [],
                "metadata": {},
            }
        )
        assert result.errors == ["markets must be a list", "classOptions must be an object"]

    def test_structure_accepts_legacy_records(self, catalog):
        """Test legacy keys and the totalTables cross-check."""
        data = catalog.to_dict()
        legacy = data["tableList"][0]
        legacy["class"] = ", ".join(legacy.pop("classes"))
        legacy["sample"] = ", ".join(legacy.pop("samples"))
        data["metadata"]["totalTables"] = 5

        result = validate_catalog_structure(data)
        assert result.is_valid
        assert result.warnings == ["tableList length does not match metadata.totalTables"]
        assert result.row_count == 4
