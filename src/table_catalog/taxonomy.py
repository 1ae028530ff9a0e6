#!/usr/bin/env python3
"""
Taxonomy derivation for table-catalog.

``classOptions`` and ``sampleOptions`` are co-occurrence caches over the
table list. Any operation that changes ``tableList`` rebuilds them here.
"""

from dataclasses import replace
from typing import Dict, List, Sequence, Tuple

from .models import Catalog, CatalogRecord


def collect_markets(records: Sequence[CatalogRecord]) -> List[str]:
    """Distinct non-empty markets in first-seen order."""
    return list(dict.fromkeys(r.market for r in records if r.market))


def collect_aspects(records: Sequence[CatalogRecord]) -> List[str]:
    """Distinct non-empty aspects in first-seen order."""
    return list(dict.fromkeys(r.aspect for r in records if r.aspect))


def build_class_options(
    records: Sequence[CatalogRecord],
) -> Dict[str, Dict[str, List[str]]]:
    """
    Map market -> aspect -> classes seen together with that pair.

    Every market gets an entry; aspects without any class are omitted.
    """
    markets = collect_markets(records)
    aspects = collect_aspects(records)

    class_options: Dict[str, Dict[str, List[str]]] = {}
    for market in markets:
        class_options[market] = {}
        for aspect in aspects:
            classes: Dict[str, None] = {}
            for record in records:
                if record.market == market and record.aspect == aspect:
                    for cls in record.classes:
                        classes[cls] = None
            if classes:
                class_options[market][aspect] = list(classes)
    return class_options


def build_sample_options(records: Sequence[CatalogRecord]) -> Dict[str, List[str]]:
    """Map class -> samples of every record that carries the class."""
    sample_options: Dict[str, Dict[str, None]] = {}
    for record in records:
        for cls in record.classes:
            bucket = sample_options.setdefault(cls, {})
            for sample in record.samples:
                bucket[sample] = None
    return {cls: list(samples) for cls, samples in sample_options.items() if samples}


def derive_taxonomy(
    records: Sequence[CatalogRecord],
) -> Tuple[List[str], List[str], Dict[str, Dict[str, List[str]]], Dict[str, List[str]]]:
    return (
        collect_markets(records),
        collect_aspects(records),
        build_class_options(records),
        build_sample_options(records),
    )


def rebuild_catalog(catalog: Catalog, records: Sequence[CatalogRecord]) -> Catalog:
    """Return a new snapshot with ``records`` and freshly derived caches."""
    markets, aspects, class_options, sample_options = derive_taxonomy(records)
    return replace(
        catalog,
        markets=markets,
        aspects=aspects,
        class_options=class_options,
        sample_options=sample_options,
        table_list=list(records),
        metadata=replace(catalog.metadata, total_tables=len(records)),
    )


def _as_sets(options: Dict) -> Dict:
    return {
        key: _as_sets(value) if isinstance(value, dict) else set(value)
        for key, value in options.items()
        if value
    }


def is_taxonomy_consistent(catalog: Catalog) -> bool:
    """True when the cached options hold what the table list implies (order ignored)."""
    return _as_sets(catalog.class_options) == _as_sets(
        build_class_options(catalog.table_list)
    ) and _as_sets(catalog.sample_options) == _as_sets(
        build_sample_options(catalog.table_list)
    )
