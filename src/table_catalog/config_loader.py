#!/usr/bin/env python3
"""
Configuration loading and management for table-catalog.

Handles loading configuration from config.yaml and merging with CLI arguments.
CLI arguments take precedence over config.yaml values.
"""

from pathlib import Path
from typing import Optional

import yaml

from .constants import DEFAULT_ASPECT, DEFAULT_MARKET, VALID_ASPECTS, VALID_MARKETS
from .fuzzy import FuzzyConfig
from .logging_config import get_logger
from .schema import ValidationError, validate_config

# Initialize logger for this module
logger = get_logger(__name__)


class Config:
    """Configuration management class for table-catalog."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration with defaults and load from file if available."""
        self.fuzzy_threshold = 0.5
        self.max_candidates = 3
        self.disable_fuzzy = False
        self.auto_accept_threshold: Optional[float] = None
        self.default_market = DEFAULT_MARKET
        self.default_aspect = DEFAULT_ASPECT
        self.valid_markets = list(VALID_MARKETS)
        self.valid_aspects = list(VALID_ASPECTS)
        self.output_dir = "output"

        if config_path is None:
            # Look in config directory first, then configs/, then the working directory
            config_path = Path.cwd() / "config" / "config.yaml"
            if not config_path.exists():
                config_path = Path.cwd() / "configs" / "config.yaml"
                if not config_path.exists():
                    config_path = Path.cwd() / "config.yaml"

        config_path = Path(config_path)
        if config_path.exists():
            self._load_from_file(config_path)

    def _load_from_file(self, config_path: Path) -> None:
        """Load configuration from YAML file."""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)

            if config_data:
                validated = validate_config(config_data)
                self.fuzzy_threshold = validated.fuzzy_threshold
                self.max_candidates = validated.max_candidates
                self.disable_fuzzy = validated.disable_fuzzy
                self.auto_accept_threshold = validated.auto_accept_threshold
                self.default_market = validated.default_market
                self.default_aspect = validated.default_aspect
                self.valid_markets = list(validated.valid_markets)
                self.valid_aspects = list(validated.valid_aspects)
                self.output_dir = validated.output_dir
                logger.debug(f"Loaded configuration from {config_path}")

        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.warning(f"Could not load {config_path}: {e}")
            logger.info("Using default values")

    def merge_with_cli_args(self, args) -> None:
        """Merge CLI arguments with config values. CLI args take precedence."""
        if getattr(args, "fuzzy_threshold", None) is not None:
            self.fuzzy_threshold = args.fuzzy_threshold
        if getattr(args, "max_candidates", None) is not None:
            self.max_candidates = args.max_candidates
        if getattr(args, "disable_fuzzy", None) is not None:
            self.disable_fuzzy = args.disable_fuzzy
        if getattr(args, "auto_accept", None) is not None:
            self.auto_accept_threshold = args.auto_accept
        if getattr(args, "output_dir", None) is not None:
            self.output_dir = args.output_dir

    def fuzzy_config(self) -> FuzzyConfig:
        return FuzzyConfig(
            enabled=not self.disable_fuzzy,
            threshold=self.fuzzy_threshold,
            max_candidates=self.max_candidates,
            auto_accept_threshold=self.auto_accept_threshold,
        )

    def get_output_path(self, file_name: str) -> Path:
        """Get the full output path for an exported file."""
        return Path.cwd() / self.output_dir / file_name


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or use defaults."""
    return Config(config_path)
