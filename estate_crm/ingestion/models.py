"""Data models used by the lead importer."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

PRIORITIES = ("low", "medium", "high")


@dataclass(slots=True)
class ImportedLead:
    """A lead parsed from a spreadsheet row; transient until committed."""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    contact_status: Optional[str] = None
    source: Optional[str] = None
    category: Optional[str] = None
    segment: Optional[str] = None
    subtype: Optional[str] = None
    interest_tags: List[str] = field(default_factory=list)
    bedrooms: Optional[str] = None
    budget_sale_band: Optional[str] = None
    budget_rent_band: Optional[str] = None
    size_band: Optional[str] = None
    location_address: Optional[str] = None
    contact_pref: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    row_number: Optional[int] = None

    def as_row(self) -> Dict[str, Any]:
        """Columns for the ``leads`` relation; unset optional values are omitted."""

        row: Dict[str, Any] = {}
        for name in self.__slots__:
            if name == "row_number":
                continue
            value = getattr(self, name)
            if value in (None, "", []):
                continue
            row[name] = value
        return row


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating one imported lead."""

    valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ImportRow:
    """An imported lead paired with its validation result."""

    lead: ImportedLead
    validation: ValidationResult

    @property
    def valid(self) -> bool:
        return self.validation.valid


@dataclass
class ImportReport:
    """Per-record validation results for one imported file."""

    rows: List[ImportRow] = field(default_factory=list)

    @property
    def valid_leads(self) -> List[ImportedLead]:
        return [row.lead for row in self.rows if row.valid]

    @property
    def invalid_rows(self) -> List[ImportRow]:
        return [row for row in self.rows if not row.valid]

    def summary(self) -> Dict[str, int]:
        valid = len(self.valid_leads)
        return {"total": len(self.rows), "valid": valid, "invalid": len(self.rows) - valid}


@dataclass
class CommitResult:
    """What happened when imported leads were written to the backend."""

    inserted: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[ImportRow] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)

    def counts(self) -> Dict[str, int]:
        return {"inserted": len(self.inserted), "skipped": len(self.skipped), "failed": len(self.failed)}


__all__ = ["CommitResult", "ImportReport", "ImportRow", "ImportedLead", "PRIORITIES", "ValidationResult"]
