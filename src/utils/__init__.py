"""
Utility helpers used by the migration tool.

This subpackage exposes the error types, convenience functions for
structured event logging and the final report builder.
"""

from .errors import ERRORS, MigrationError, report_error, report_ok
from .report import build_migration_report, write_report

__all__ = ["ERRORS", "MigrationError", "report_error", "report_ok", "build_migration_report", "write_report"]
