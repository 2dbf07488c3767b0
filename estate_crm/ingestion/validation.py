"""Validation of imported leads; reports problems without blocking the import."""
from __future__ import annotations

import re
from typing import Iterable, List

from .models import ImportedLead, ImportReport, ImportRow, ValidationResult

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_imported_lead(lead: ImportedLead) -> ValidationResult:
    errors: List[str] = []

    if not lead.name or len(lead.name.strip()) < 2:
        errors.append("Name is required and must be at least 2 characters")

    if lead.email and not _EMAIL.match(lead.email):
        errors.append("Invalid email format")

    if lead.phone and len(re.sub(r"\D", "", lead.phone)) < 10:
        errors.append("Phone number must have at least 10 digits")

    if not lead.email and not lead.phone:
        errors.append("Either email or phone is required")

    return ValidationResult(valid=not errors, errors=errors)


def build_import_report(leads: Iterable[ImportedLead]) -> ImportReport:
    return ImportReport(rows=[ImportRow(lead=lead, validation=validate_imported_lead(lead)) for lead in leads])


__all__ = ["build_import_report", "validate_imported_lead"]
