# ============================================================================
# src/table_ingestion/__init__.py
# ============================================================================
"""
PDF Table Ingestion Engine

Turns scanned or digital PDF documents into spreadsheet-ready tables:
positioned-token layout analysis first, delimiter heuristics on plain text
second, and a single-column fallback so every document yields output.
"""

__version__ = "1.0.0"
