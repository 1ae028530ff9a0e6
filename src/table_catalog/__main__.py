#!/usr/bin/env python3
"""
Entry point for running table_catalog as a module.

This allows running the package with: python -m table_catalog
"""

from .cli import main

if __name__ == "__main__":
    main()
