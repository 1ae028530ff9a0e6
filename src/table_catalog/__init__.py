#!/usr/bin/env python3
"""
Table Catalog - CSV Import, Field Reconciliation and Filtering

Main package for table-catalog providing CSV-to-catalog conversion, field-list
workbook reconciliation with fuzzy matching, and a filter/search engine over
financial data tables.

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Table Catalog Team"
__description__ = "CSV import, field reconciliation and filtering for table catalogs"
