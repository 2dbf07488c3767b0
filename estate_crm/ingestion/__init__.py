"""Spreadsheet lead import: parsing, validation, reporting and committing."""
from __future__ import annotations

from .exporters import contacts_to_csv, export_import_report, report_to_dataframe
from .loaders import LeadImportError, UnsupportedFileTypeError, parse_leads_from_file
from .models import CommitResult, ImportedLead, ImportReport, ImportRow, ValidationResult
from .service import LeadImportService
from .validation import build_import_report, validate_imported_lead

__all__ = [
    "CommitResult",
    "ImportReport",
    "ImportRow",
    "ImportedLead",
    "LeadImportError",
    "LeadImportService",
    "UnsupportedFileTypeError",
    "ValidationResult",
    "build_import_report",
    "contacts_to_csv",
    "export_import_report",
    "parse_leads_from_file",
    "report_to_dataframe",
    "validate_imported_lead",
]
