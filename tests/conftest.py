"""Shared fixtures for table-catalog tests."""

import pytest

from table_catalog.models import Catalog, CatalogRecord, FieldSpec
from table_catalog.taxonomy import rebuild_catalog


def make_catalog(records):
    """Build a catalog snapshot whose caches are derived from ``records``."""
    return rebuild_catalog(Catalog(), records)


@pytest.fixture
def records():
    return [
        CatalogRecord(
            id="t1",
            name="台股財報分析",
            market="台灣",
            aspect="基本面",
            classes=["001", "002"],
            samples=["RSI", "MACD"],
            created_at="2024-01-03",
        ),
        CatalogRecord(
            id="t2",
            name="台股月營收",
            market="台灣",
            aspect="基本面",
            classes=["001"],
            samples=["RSI"],
            created_at="2024-01-01",
        ),
        CatalogRecord(
            id="t3",
            name="台股技術指標",
            market="台灣",
            aspect="技術面",
            classes=["003"],
            samples=["KD"],
            created_at="2024-01-02",
        ),
        CatalogRecord(
            id="t4",
            name="美股季度財報",
            market="美國",
            aspect="基本面",
            classes=["002"],
            samples=["季度財報"],
            fields=[FieldSpec(name="收盤價", type="number", description="daily close")],
            created_at="2024-01-04",
        ),
    ]


@pytest.fixture
def catalog(records):
    return make_catalog(records)
