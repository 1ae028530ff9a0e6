#!/usr/bin/env python3
"""
Field classification for the field-list ingest.

Contains:
- Table name normalization
- Field name bracket stripping
- Name-based data type inference
- Priority ordering of fields
"""

import re
from typing import List, Optional, Sequence

from .constants import (
    BOOLEAN_KEYWORDS,
    DATE_KEYWORDS,
    NUMBER_KEYWORDS,
    PRIORITY_FIELDS_TO_END,
)
from .models import FieldSpec

# Anything outside ASCII word characters and CJK unified ideographs
_NON_NAME_CHARS = re.compile(r"[^0-9A-Za-z_\u4e00-\u9fff]")


def normalize_table_name(name: str) -> str:
    """
    Normalize a table name for comparison:
    - Remove whitespace and punctuation (CJK ideographs are kept)
    - Convert to lowercase
    """
    if not name:
        return ""
    return _NON_NAME_CHARS.sub("", name).lower()


def strip_field_brackets(name: str) -> str:
    """Remove a leading ``[`` and a trailing ``]`` from a field name."""
    name = name.strip()
    if name.startswith("["):
        name = name[1:]
    if name.endswith("]"):
        name = name[:-1]
    return name.strip()


def infer_field_type(name: str) -> str:
    """Infer ``date``, ``number``, ``boolean`` or ``string`` from a field name."""
    lower_name = name.lower()

    if lower_name == "rtime" or any(k in lower_name for k in DATE_KEYWORDS):
        return "date"
    if any(k in lower_name for k in NUMBER_KEYWORDS):
        return "number"
    if any(k in lower_name for k in BOOLEAN_KEYWORDS):
        return "boolean"
    return "string"


def priority_index(
    name: str, priorities: Sequence[str] = PRIORITY_FIELDS_TO_END
) -> Optional[int]:
    """Index of the first priority term contained in ``name``, else None."""
    for index, priority in enumerate(priorities):
        if priority in name:
            return index
    return None


def sort_fields(
    fields: Sequence[FieldSpec], priorities: Sequence[str] = PRIORITY_FIELDS_TO_END
) -> List[FieldSpec]:
    """
    Move identifier/date-like fields to the end.

    Fields matching a priority term follow all other fields, ordered by the
    first term they match; ties and regular fields keep their input order.
    """
    normal_fields = []
    end_fields = []
    for f in fields:
        index = priority_index(f.name, priorities)
        if index is None:
            normal_fields.append(f)
        else:
            end_fields.append((index, f))

    # sorted() is stable, so equal indices keep relative order
    end_fields = sorted(end_fields, key=lambda item: item[0])
    return normal_fields + [f for _, f in end_fields]


def build_field(name: str) -> FieldSpec:
    return FieldSpec(name=name, type=infer_field_type(name))
