#!/usr/bin/env python3
"""
Filter and search engine for table-catalog.

Two mutually exclusive modes:
- Filter mode: market/aspect single-select, classes/samples multi-select
  with AND (subset) semantics
- Search mode: free-text substring search across names, taxonomy tags and
  merged fields

State changes go through ``reduce_filter_state`` (or ``FilterEngine.dispatch``);
everything else here is a pure derivation computed on read.
"""

import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .constants import DEFAULT_ASPECT, DEFAULT_MARKET
from .logging_config import get_logger
from .models import Catalog, CatalogRecord, FilterState, SavedFilters

# Initialize logger for this module
logger = get_logger(__name__)

MODE_FILTER = "filter"
MODE_SEARCH = "search"


# Events
@dataclass(frozen=True)
class SelectMarket:
    market: str


@dataclass(frozen=True)
class SelectAspect:
    aspect: str


@dataclass(frozen=True)
class ToggleClass:
    cls: str


@dataclass(frozen=True)
class ToggleSample:
    sample: str


@dataclass(frozen=True)
class SetClasses:
    classes: Tuple[str, ...]


@dataclass(frozen=True)
class SetSamples:
    samples: Tuple[str, ...]


@dataclass(frozen=True)
class SelectAllClasses:
    pass


@dataclass(frozen=True)
class ClearClasses:
    pass


@dataclass(frozen=True)
class SelectAllSamples:
    pass


@dataclass(frozen=True)
class ClearSamples:
    pass


@dataclass(frozen=True)
class ChangeSearch:
    term: str


@dataclass(frozen=True)
class ResetFilters:
    pass


FilterEvent = Union[
    SelectMarket,
    SelectAspect,
    ToggleClass,
    ToggleSample,
    SetClasses,
    SetSamples,
    SelectAllClasses,
    ClearClasses,
    SelectAllSamples,
    ClearSamples,
    ChangeSearch,
    ResetFilters,
]

# Events that touch the four filter dimensions; ignored in search mode
_FILTER_EVENTS = (
    SelectMarket,
    SelectAspect,
    ToggleClass,
    ToggleSample,
    SetClasses,
    SetSamples,
    SelectAllClasses,
    ClearClasses,
    SelectAllSamples,
    ClearSamples,
)


@dataclass
class FilterSummary:
    active_filters: List[str]
    total_count: int
    filtered_count: int
    filter_rate: float
    mode: str

    @property
    def active_count(self) -> int:
        return len(self.active_filters)

    def to_dict(self):
        return {
            "activeFilters": list(self.active_filters),
            "activeCount": self.active_count,
            "totalCount": self.total_count,
            "filteredCount": self.filtered_count,
            "filterRate": self.filter_rate,
            "mode": self.mode,
        }


@dataclass
class Page:
    items: List[CatalogRecord]
    current_page: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1


def available_classes(catalog: Catalog, market: str, aspect: str) -> List[str]:
    """Classes co-occurring with (market, aspect), or empty."""
    if not market or not aspect:
        return []
    return list(catalog.class_options.get(market, {}).get(aspect, []))


def _has_all(values: Sequence[str], required: Iterable[str]) -> bool:
    return all(item in values for item in required)


def matches_filters(
    record: CatalogRecord,
    market: str = "",
    aspect: str = "",
    classes: Iterable[str] = (),
    samples: Iterable[str] = (),
) -> bool:
    """AND across dimensions; every selected class and sample must be present."""
    if market and record.market != market:
        return False
    if aspect and record.aspect != aspect:
        return False
    if not _has_all(record.classes, classes):
        return False
    if not _has_all(record.samples, samples):
        return False
    return True


def available_samples(
    catalog: Catalog, market: str, aspect: str, selected_classes: Iterable[str]
) -> List[str]:
    """
    Samples of the records already narrowed by market, aspect and classes.

    Unlike class options this is computed from the table list so that samples
    impossible under the current class selection are never offered.
    """
    selected_classes = list(selected_classes)
    samples = set()
    for record in catalog.table_list:
        if matches_filters(record, market, aspect, selected_classes):
            samples.update(record.samples)
    return sorted(samples)


def filter_tables(
    records: Sequence[CatalogRecord],
    market: str = "",
    aspect: str = "",
    classes: Iterable[str] = (),
    samples: Iterable[str] = (),
) -> List[CatalogRecord]:
    classes = list(classes)
    samples = list(samples)
    return [r for r in records if matches_filters(r, market, aspect, classes, samples)]


def matches_search(record: CatalogRecord, term: str) -> bool:
    """Case-insensitive substring match on any searchable attribute."""
    if not term.strip():
        return True
    needle = term.lower()

    haystack = [record.name, record.market, record.aspect]
    haystack.extend(record.classes)
    haystack.extend(record.samples)
    for f in record.fields or []:
        haystack.append(f.name)
        haystack.append(f.description)

    return any(needle in value.lower() for value in haystack if value)


def search_tables(records: Sequence[CatalogRecord], term: str) -> List[CatalogRecord]:
    """Free-text search; a blank term returns every record."""
    if not term or not term.strip():
        return list(records)
    return [r for r in records if matches_search(r, term)]


def filtered_set(records: Sequence[CatalogRecord], state: FilterState) -> List[CatalogRecord]:
    if state.is_search_mode:
        return search_tables(records, state.search_term)
    return filter_tables(
        records,
        state.selected_market,
        state.selected_aspect,
        state.selected_classes,
        state.selected_samples,
    )


def filter_summary(
    state: FilterState, total_count: int, filtered_count: int
) -> FilterSummary:
    """Human-readable fragments for the active mode only."""
    active_filters = []
    if state.is_search_mode:
        if state.search_term.strip():
            active_filters.append(f'搜尋: "{state.search_term}"')
    else:
        if state.selected_market:
            active_filters.append(f"市場: {state.selected_market}")
        if state.selected_aspect:
            active_filters.append(f"面向: {state.selected_aspect}")
        if state.selected_classes:
            active_filters.append(f"類別: {len(state.selected_classes)} 項")
        if state.selected_samples:
            active_filters.append(f"樣本: {len(state.selected_samples)} 項")

    filter_rate = round(filtered_count / total_count * 100, 1) if total_count else 0.0
    return FilterSummary(
        active_filters=active_filters,
        total_count=total_count,
        filtered_count=filtered_count,
        filter_rate=filter_rate,
        mode=MODE_SEARCH if state.is_search_mode else MODE_FILTER,
    )


def validate_filter_dependencies(state: FilterState, catalog: Catalog) -> FilterState:
    """Drop selected classes/samples the catalog no longer offers."""
    if state.is_search_mode:
        return state

    classes = state.selected_classes
    if state.selected_market and state.selected_aspect and classes:
        offered = available_classes(catalog, state.selected_market, state.selected_aspect)
        classes = tuple(c for c in classes if c in offered)

    samples = state.selected_samples
    if samples:
        offered = available_samples(
            catalog, state.selected_market, state.selected_aspect, classes
        )
        samples = tuple(s for s in samples if s in offered)

    if classes == state.selected_classes and samples == state.selected_samples:
        return state
    return replace(state, selected_classes=classes, selected_samples=samples)


def _toggle(values: Tuple[str, ...], value: str) -> Tuple[str, ...]:
    if value in values:
        return tuple(v for v in values if v != value)
    return values + (value,)


def initial_state(
    default_market: str = DEFAULT_MARKET, default_aspect: str = DEFAULT_ASPECT
) -> FilterState:
    return FilterState(selected_market=default_market, selected_aspect=default_aspect)


def reduce_filter_state(
    state: FilterState,
    event: FilterEvent,
    catalog: Catalog,
    default_market: str = DEFAULT_MARKET,
    default_aspect: str = DEFAULT_ASPECT,
) -> FilterState:
    """
    Apply one event and return the next state.

    Market/aspect changes clear classes and samples; class changes clear
    samples. Filter events are ignored while in search mode.
    """
    if state.is_search_mode and isinstance(event, _FILTER_EVENTS):
        logger.debug(f"Ignoring {type(event).__name__} in search mode")
        return state

    if isinstance(event, SelectMarket):
        return replace(
            state,
            selected_market=event.market,
            selected_aspect=catalog.aspects[0] if catalog.aspects else "",
            selected_classes=(),
            selected_samples=(),
        )

    if isinstance(event, SelectAspect):
        return replace(
            state, selected_aspect=event.aspect, selected_classes=(), selected_samples=()
        )

    if isinstance(event, ToggleClass):
        return replace(
            state,
            selected_classes=_toggle(state.selected_classes, event.cls),
            selected_samples=(),
        )

    if isinstance(event, SetClasses):
        return replace(
            state, selected_classes=tuple(dict.fromkeys(event.classes)), selected_samples=()
        )

    if isinstance(event, SelectAllClasses):
        offered = available_classes(catalog, state.selected_market, state.selected_aspect)
        return replace(state, selected_classes=tuple(offered), selected_samples=())

    if isinstance(event, ClearClasses):
        return replace(state, selected_classes=(), selected_samples=())

    if isinstance(event, ToggleSample):
        return replace(
            state, selected_samples=_toggle(state.selected_samples, event.sample)
        )

    if isinstance(event, SetSamples):
        return replace(state, selected_samples=tuple(dict.fromkeys(event.samples)))

    if isinstance(event, SelectAllSamples):
        offered = available_samples(
            catalog, state.selected_market, state.selected_aspect, state.selected_classes
        )
        return replace(state, selected_samples=tuple(offered))

    if isinstance(event, ClearSamples):
        return replace(state, selected_samples=())

    if isinstance(event, ChangeSearch):
        return _change_search(state, event.term, default_market, default_aspect)

    if isinstance(event, ResetFilters):
        return initial_state(default_market, default_aspect)

    raise TypeError(f"Unknown filter event: {event!r}")


def _change_search(
    state: FilterState, term: str, default_market: str, default_aspect: str
) -> FilterState:
    if term.strip():
        if state.is_search_mode:
            return replace(state, search_term=term)
        # Entering search mode: remember the filters, then clear them
        return replace(
            state,
            search_term=term,
            is_search_mode=True,
            saved_filters=SavedFilters(
                market=state.selected_market,
                aspect=state.selected_aspect,
                classes=state.selected_classes,
                samples=state.selected_samples,
            ),
            selected_market="",
            selected_aspect="",
            selected_classes=(),
            selected_samples=(),
        )

    if not state.is_search_mode:
        return replace(state, search_term=term)

    saved = state.saved_filters
    if saved is None:
        return replace(
            state,
            search_term=term,
            is_search_mode=False,
            selected_market=default_market,
            selected_aspect=default_aspect,
            selected_classes=(),
            selected_samples=(),
        )
    return replace(
        state,
        search_term=term,
        is_search_mode=False,
        saved_filters=None,
        selected_market=saved.market,
        selected_aspect=saved.aspect,
        selected_classes=saved.classes,
        selected_samples=saved.samples,
    )


class FilterEngine:
    """Holds a catalog snapshot and the current filter state."""

    def __init__(
        self,
        catalog: Catalog,
        default_market: str = DEFAULT_MARKET,
        default_aspect: str = DEFAULT_ASPECT,
        state: Optional[FilterState] = None,
    ):
        self.catalog = catalog
        self.default_market = default_market
        self.default_aspect = default_aspect
        self.state = state or initial_state(default_market, default_aspect)

    def dispatch(self, event: FilterEvent) -> FilterState:
        self.state = reduce_filter_state(
            self.state, event, self.catalog, self.default_market, self.default_aspect
        )
        return self.state

    def replace_catalog(self, catalog: Catalog) -> FilterState:
        """Swap in a new snapshot and prune selections it no longer offers."""
        self.catalog = catalog
        self.state = validate_filter_dependencies(self.state, catalog)
        return self.state

    @property
    def is_search_mode(self) -> bool:
        return self.state.is_search_mode

    @property
    def available_classes(self) -> List[str]:
        if self.state.is_search_mode:
            return []
        return available_classes(
            self.catalog, self.state.selected_market, self.state.selected_aspect
        )

    @property
    def available_samples(self) -> List[str]:
        if self.state.is_search_mode:
            return []
        return available_samples(
            self.catalog,
            self.state.selected_market,
            self.state.selected_aspect,
            self.state.selected_classes,
        )

    @property
    def filtered_tables(self) -> List[CatalogRecord]:
        return filtered_set(self.catalog.table_list, self.state)

    @property
    def summary(self) -> FilterSummary:
        return filter_summary(
            self.state, len(self.catalog.table_list), len(self.filtered_tables)
        )

    @property
    def has_active_filters(self) -> bool:
        state = self.state
        return (
            state.is_search_mode
            or state.selected_market != self.default_market
            or state.selected_aspect != self.default_aspect
            or bool(state.selected_classes)
            or bool(state.selected_samples)
            or bool(state.search_term.strip())
        )


SORTABLE_FIELDS = (
    "id",
    "name",
    "market",
    "aspect",
    "description",
    "created_at",
    "updated_at",
)


def _sort_value(record: CatalogRecord, sort_by: str):
    value = getattr(record, sort_by)
    if sort_by.endswith("_at"):
        try:
            return datetime.fromisoformat(value) if value else datetime.min
        except ValueError:
            return datetime.min
    if isinstance(value, str):
        return value.lower()
    return value


def sort_tables(
    records: Sequence[CatalogRecord], sort_by: str = "name", order: str = "asc"
) -> List[CatalogRecord]:
    """Stable sort; strings compare case-insensitively, ``*_at`` as dates."""
    if sort_by not in SORTABLE_FIELDS:
        raise ValueError(
            f"Cannot sort by {sort_by!r}; choose one of: {', '.join(SORTABLE_FIELDS)}"
        )
    return sorted(
        records, key=lambda r: _sort_value(r, sort_by), reverse=(order == "desc")
    )


def paginate(
    records: Sequence[CatalogRecord], current_page: int = 1, page_size: int = 10
) -> Page:
    total_items = len(records)
    total_pages = -(-total_items // page_size)
    start = (current_page - 1) * page_size
    return Page(
        items=list(records[start : start + page_size]),
        current_page=current_page,
        page_size=page_size,
        total_items=total_items,
        total_pages=total_pages,
    )


def highlight_search_term(text: str, term: str) -> str:
    """Wrap case-insensitive occurrences of ``term`` in ``<mark>`` tags."""
    if not term or not term.strip():
        return text
    pattern = re.compile(f"({re.escape(term)})", re.IGNORECASE)
    return pattern.sub(r"<mark>\1</mark>", text)
