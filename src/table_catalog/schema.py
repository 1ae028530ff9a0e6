#!/usr/bin/env python3
"""
Schema validation for config and catalog files.

This module provides Pydantic models for validating:
- config.yaml: Main configuration file
- catalog JSON snapshots (including legacy single-valued class/sample keys)
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import DEFAULT_ASPECT, DEFAULT_MARKET, VALID_ASPECTS, VALID_MARKETS


class ValidationError(Exception):
    """Custom validation error for clearer error messages."""

    pass


# Config.yaml schema
class ConfigSchema(BaseModel):
    """Schema for config.yaml."""

    fuzzy_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    max_candidates: int = Field(default=3, ge=1)
    disable_fuzzy: bool = False
    auto_accept_threshold: float | None = None
    default_market: str = DEFAULT_MARKET
    default_aspect: str = DEFAULT_ASPECT
    valid_markets: list[str] = Field(default_factory=lambda: list(VALID_MARKETS))
    valid_aspects: list[str] = Field(default_factory=lambda: list(VALID_ASPECTS))
    output_dir: str = "output"

    @field_validator("auto_accept_threshold")
    @classmethod
    def validate_auto_accept_threshold(cls, v: float | None) -> float | None:
        """Validate auto_accept_threshold is between 0 and 1."""
        if v is not None and not 0.0 <= v <= 1.0:
            raise ValueError("auto_accept_threshold must be between 0.0 and 1.0")
        return v


# Catalog schemas
class FieldSchema(BaseModel):
    """Schema for a merged field of a table."""

    name: str
    type: str = "string"
    description: str = ""
    searchable: bool = True


class RecordSchema(BaseModel):
    """Schema for one entry of tableList."""

    id: str
    name: str
    market: str = ""
    aspect: str = ""
    classes: list[str] = Field(default_factory=list)
    samples: list[str] = Field(default_factory=list)
    description: str | None = None
    fields: list[FieldSchema] | None = None
    createdAt: str | None = None
    updatedAt: str | None = None

    @model_validator(mode="before")
    @classmethod
    def migrate_legacy_tags(cls, data: Any) -> Any:
        """Turn legacy ``class``/``sample`` strings into lists."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for plural, singular in (("classes", "class"), ("samples", "sample")):
            if plural not in data and singular in data:
                value = data.pop(singular)
                data[plural] = [
                    tag.strip() for tag in str(value or "").split(",") if tag.strip()
                ]
        return data

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate that name is not empty."""
        if not v.strip():
            raise ValueError("name cannot be empty")
        return v


class MetadataSchema(BaseModel):
    """Schema for the catalog metadata section."""

    totalTables: int | None = None
    lastUpdated: str | None = None
    dataVersion: str | float | None = None
    source: str | None = None
    importTimestamp: str | None = None
    fieldsAdded: bool | None = None
    fieldsAddedTimestamp: str | None = None


class CatalogSchema(BaseModel):
    """Schema for an exported catalog snapshot."""

    markets: list[str]
    aspects: list[str]
    classOptions: dict[str, dict[str, list[str]]]
    sampleOptions: dict[str, list[str]]
    tableList: list[RecordSchema]
    metadata: MetadataSchema

    @field_validator("tableList")
    @classmethod
    def validate_unique_ids(cls, v: list[RecordSchema]) -> list[RecordSchema]:
        """Validate that record ids are unique."""
        ids = [record.id for record in v]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"duplicate record ids: {', '.join(duplicates)}")
        return v


def validate_config(data: dict[str, Any]) -> ConfigSchema:
    """
    Validate config.yaml data.

    Args:
        data: Dictionary containing config data

    Returns:
        Validated ConfigSchema instance

    Raises:
        ValidationError: If validation fails
    """
    try:
        return ConfigSchema(**data)
    except Exception as e:
        raise ValidationError(f"Config validation failed: {e}") from e


def validate_catalog(data: dict[str, Any]) -> CatalogSchema:
    """
    Validate catalog JSON data.

    Args:
        data: Dictionary containing a catalog snapshot

    Returns:
        Validated CatalogSchema instance

    Raises:
        ValidationError: If validation fails
    """
    try:
        return CatalogSchema(**data)
    except Exception as e:
        raise ValidationError(f"Catalog validation failed: {e}") from e
