"""Spreadsheet importer for despachante service records.

Decodes CSV/XLSX exports, locates the header row, maps localized column names onto
canonical service records and bulk inserts them into PostgreSQL in batches.
"""

__version__ = "0.1.0"
