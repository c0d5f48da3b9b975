"""Spreadsheet-backed form intake.

Stores uploaded files in Drive, appends one row per submitted entry to a per-entity
worksheet and to a consolidated worksheet under a process-wide lock, and emails the
submitter an optional confirmation copy.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
