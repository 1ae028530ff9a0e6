#!/usr/bin/env python3
"""
Tests for the CSV and field-list parsers and the file-reading helpers.
"""

import json

import pandas as pd
import pytest

from table_catalog.parsers import (
    ParseError,
    load_catalog,
    parse_csv,
    parse_field_workbook,
    read_csv_text,
    read_field_workbook,
)
from table_catalog.schema import ValidationError

MULTI_TAG_CSV = (
    "Table名稱,市場,面向,類別,樣本\n"
    "A表,台灣,基本面,001,RSI\n"
    'B表,美國,技術面,"002, 003","RSI, MACD"'
)


class TestParseCsv:
    """Tests for parse_csv."""

    def test_quoted_fields_keep_commas(self):
        """Test that quoted multi-value cells are kept whole."""
        rows = parse_csv(MULTI_TAG_CSV)

        assert len(rows) == 2
        assert rows[0] == {
            "Table名稱": "A表",
            "市場": "台灣",
            "面向": "基本面",
            "類別": "001",
            "樣本": "RSI",
        }
        assert rows[1]["類別"] == "002, 003"
        assert rows[1]["樣本"] == "RSI, MACD"
        assert rows.field_count_mismatches == []

    def test_blank_lines_skipped(self):
        """Test that empty and all-blank lines produce no rows."""
        rows = parse_csv("Table名稱,市場\nA,台灣\n\n , \nB,美國\n")
        assert [r["Table名稱"] for r in rows] == ["A", "B"]

    def test_short_lines_padded_and_flagged(self):
        """Test that missing trailing fields default to empty strings."""
        rows = parse_csv("a,b,c\n1,2\n")

        assert rows == [{"a": "1", "b": "2", "c": ""}]
        assert len(rows.field_count_mismatches) == 1
        assert rows.field_count_mismatches[0].startswith("Line 2")

    def test_bom_and_quoted_headers(self):
        """Test that a BOM and quotes around headers are dropped."""
        rows = parse_csv('\ufeff"Table名稱","市場"\nA,台灣')
        assert rows[0] == {"Table名稱": "A", "市場": "台灣"}

    def test_long_description_cell(self):
        """Test that a cell larger than the csv module default limit is kept."""
        description = "x" * 200_000
        rows = parse_csv(
            "Table名稱,市場,面向,類別,樣本,描述\n"
            f"A表,台灣,基本面,001,RSI,{description}"
        )

        assert len(rows) == 1
        assert rows[0]["描述"] == description
        assert rows.field_count_mismatches == []

    @pytest.mark.parametrize("text", ["", "Table名稱,市場", "\n\nTable名稱,市場\n\n"])
    def test_header_only_raises(self, text):
        """Test that a header without data lines is a parse error."""
        with pytest.raises(ParseError) as exc_info:
            parse_csv(text)
        assert "at least one data line" in exc_info.value.to_dict()["message"]


class TestParseFieldWorkbook:
    """Tests for parse_field_workbook."""

    def test_single_group_sorted_and_typed(self):
        """Test grouping, bracket stripping, ordering and type inference."""
        result = parse_field_workbook(
            {"Sheet1": [["M001", "日表", "[日期]"], ["M001", "日表", "[收盤價]"]]}
        )

        assert len(result.tables) == 1
        group = result.tables[0]
        assert group.table_id == "M001"
        assert [f.name for f in group.fields] == ["收盤價", "日期"]
        assert [f.type for f in group.fields] == ["number", "date"]
        assert result.total_fields == 2
        assert result.sheets == 1
        assert result.file_name == "uploaded_file.xlsx"

    def test_header_and_incomplete_rows_skipped(self):
        """Test that header rows, short rows and empty cells are ignored."""
        rows = [
            ["ID", "資料表", "欄位名稱"],
            ["M001", "日表", "收盤價"],
            ["M001", "", "開盤價"],
            ["M001", "日表"],
            ["", "日表", "成交量"],
            ["ID", "資料表", "欄位名稱"],
            ["M001", "日表", "[]"],
            ["M001", "日表", "最高價", "extra"],
        ]
        result = parse_field_workbook({"Sheet1": rows})

        assert [f.name for f in result.tables[0].fields] == ["收盤價", "最高價"]
        assert result.processing_details == {
            "totalRowsProcessed": 2,
            "sheetsProcessed": 1,
            "tablesFound": 1,
        }

    def test_groups_by_id_and_name(self):
        """Test that the composite key separates same-named tables."""
        result = parse_field_workbook(
            {
                "A": [["M001", "日 表", "收盤價"], ["M002", "日 表", "收盤價"]],
                "B": [["M003", "週表", "收盤價"], ["M001", "日 表", "開盤價"]],
            },
            file_name="fields.xlsx",
        )

        assert [(t.sheet_name, t.table_id) for t in result.tables] == [
            ("A", "M001"),
            ("A", "M002"),
            ("B", "M003"),
            ("B", "M001"),
        ]
        assert result.tables[0].table_name == "日表"
        assert result.tables[0].original_table_name == "日 表"
        assert result.sheets == 2
        assert result.total_fields == 4
        assert result.file_name == "fields.xlsx"

    def test_no_groups_raises(self):
        """Test that a workbook without field rows is a parse error."""
        with pytest.raises(ParseError) as exc_info:
            parse_field_workbook({"Empty": [["ID", "資料表", "欄位名稱"]], "Other": []})
        assert exc_info.value.details == ["sheets: Empty, Other"]


class TestFileReaders:
    """Tests for reading files from disk."""

    def test_read_csv_text_drops_bom(self, tmp_path):
        """Test that UTF-8 BOM files read cleanly."""
        path = tmp_path / "catalog.csv"
        path.write_text(MULTI_TAG_CSV, encoding="utf-8-sig")

        text = read_csv_text(path)
        assert not text.startswith("\ufeff")
        assert len(parse_csv(text)) == 2

    def test_read_field_workbook(self, tmp_path):
        """Test that every sheet is read as rows of strings."""
        path = tmp_path / "fields.xlsx"
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame(
                [["ID", "資料表", "欄位名稱"], ["M001", "日表", "[日期]"], ["M001", "日表", "[收盤價]"]]
            ).to_excel(writer, sheet_name="日資料", header=False, index=False)
            pd.DataFrame([["M002", "月表", "營收"], ["M002", "月表", None]]).to_excel(
                writer, sheet_name="月資料", header=False, index=False
            )

        workbook = read_field_workbook(path)
        assert list(workbook) == ["日資料", "月資料"]
        assert workbook["月資料"][1] == ["M002", "月表", ""]

        result = parse_field_workbook(workbook)
        assert [t.table_id for t in result.tables] == ["M001", "M002"]
        assert result.total_fields == 3


class TestLoadCatalog:
    """Tests for loading catalog JSON snapshots."""

    def _write(self, tmp_path, data):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        return path

    def test_legacy_keys_and_stale_caches(self, tmp_path):
        """Test that legacy records are migrated and caches rebuilt."""
        path = self._write(
            tmp_path,
            {
                "markets": ["台灣"],
                "aspects": ["基本面"],
                "classOptions": {},
                "sampleOptions": {},
                "tableList": [
                    {
                        "id": "t1",
                        "name": "A表",
                        "market": "台灣",
                        "aspect": "基本面",
                        "class": "001, 002",
                        "sample": "RSI",
                    }
                ],
                "metadata": {"totalTables": 1, "dataVersion": "1.0"},
            },
        )

        catalog = load_catalog(path)
        assert catalog.table_list[0].classes == ["001", "002"]
        assert catalog.class_options == {"台灣": {"基本面": ["001", "002"]}}
        assert catalog.sample_options == {"001": ["RSI"], "002": ["RSI"]}

    def test_missing_keys_rejected(self, tmp_path):
        """Test that a file without tableList fails validation."""
        path = self._write(tmp_path, {"markets": [], "aspects": []})
        with pytest.raises(ValidationError):
            load_catalog(path)

    def test_duplicate_ids_rejected(self, tmp_path, catalog):
        """Test that record ids must be unique."""
        data = catalog.to_dict()
        data["tableList"][1]["id"] = data["tableList"][0]["id"]
        path = self._write(tmp_path, data)
        with pytest.raises(ValidationError, match="duplicate record ids"):
            load_catalog(path)
