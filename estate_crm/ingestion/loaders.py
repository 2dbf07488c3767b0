"""Parse lead spreadsheets (CSV or Excel) into :class:`ImportedLead` records."""
from __future__ import annotations

import io
import logging
import re
import warnings
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Union

import pandas as pd

from .models import PRIORITIES, ImportedLead

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]
Source = Union[PathLike, bytes, bytearray]

HEADER_MAP: Mapping[str, str] = {
    "name": "name",
    "full_name": "name",
    "contact_name": "name",
    "email": "email",
    "email_address": "email",
    "phone": "phone",
    "phone_number": "phone",
    "mobile": "phone",
    "status": "status",
    "lead_status": "status",
    "priority": "priority",
    "contact_status": "contact_status",
    "source": "source",
    "lead_source": "source",
    "category": "category",
    "segment": "segment",
    "subtype": "subtype",
    "property_type": "subtype",
    "interest_tags": "interest_tags",
    "interests": "interest_tags",
    "tags": "interest_tags",
    "bedrooms": "bedrooms",
    "budget_sale_band": "budget_sale_band",
    "sale_budget": "budget_sale_band",
    "budget_rent_band": "budget_rent_band",
    "rent_budget": "budget_rent_band",
    "size_band": "size_band",
    "location": "location_address",
    "location_address": "location_address",
    "address": "location_address",
    "contact_pref": "contact_pref",
    "contact_preferences": "contact_pref",
    "notes": "notes",
    "comments": "notes",
}

LIST_FIELDS = frozenset({"interest_tags", "contact_pref"})

_CSV_SUFFIXES = {".csv", ".tsv", ".txt"}
_EXCEL_SUFFIXES = {".xls", ".xlsx", ".xlsm", ".xlsb"}
_WHITESPACE = re.compile(r"\s+")
_LIST_SEPARATORS = re.compile(r"[|,]")


class LeadImportError(ValueError):
    """Raised when a lead file cannot be parsed."""


class UnsupportedFileTypeError(LeadImportError):
    """Raised when an unsupported file format is passed to the loader."""


def parse_leads_from_file(
    source: Source,
    *,
    filename: Optional[str] = None,
    sheet_name: Union[str, int] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[ImportedLead]:
    """Parse the first sheet of a spreadsheet into normalised leads.

    ``source`` is either a path or the raw bytes of an uploaded file; for
    bytes, ``filename`` (if given) decides the format, otherwise the content is
    sniffed. Rows without a name are dropped.
    """

    grid = read_sheet(source, filename=filename, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    try:
        if len(grid) < 2:
            raise LeadImportError("File must contain headers and at least one data row")
        headers = [normalize_header(cell) for cell in grid[0]]
        leads: List[ImportedLead] = []
        for index, row in enumerate(grid[1:], start=2):
            lead = _row_to_lead(headers, row, row_number=index)
            if lead is not None:
                leads.append(lead)
    except LeadImportError as exc:
        raise LeadImportError(f"Failed to parse file: {exc}") from exc

    LOGGER.info("Parsed %d leads from %d data rows", len(leads), len(grid) - 1)
    return leads


def read_sheet(
    source: Source,
    *,
    filename: Optional[str] = None,
    sheet_name: Union[str, int] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[List[Any]]:
    """Decode a spreadsheet into a 2-D list of cell values, header row included."""

    loader_kwargs = dict(loader_kwargs or {})
    kind, handle = _open_source(source, filename)

    try:
        if kind == "csv":
            if _display_name(source, filename).endswith(".tsv"):
                loader_kwargs.setdefault("sep", "\t")
            loader_kwargs.setdefault("engine", "python")
            if loader_kwargs["engine"] == "python":
                loader_kwargs.setdefault("on_bad_lines", _keep_row)
            with warnings.catch_warnings():
                # rows wider than the header lose their unnamed trailing cells
                warnings.simplefilter("ignore", pd.errors.ParserWarning)
                frame = pd.read_csv(
                    handle, header=None, dtype=str, keep_default_na=False, skip_blank_lines=True, **loader_kwargs
                )
        else:
            engine = loader_kwargs.pop("engine", None)
            frame = pd.read_excel(handle, sheet_name=sheet_name, header=None, dtype=object, engine=engine, **loader_kwargs)
    except pd.errors.EmptyDataError:
        return []
    except (ValueError, OSError, KeyError, zipfile.BadZipFile) as exc:
        raise LeadImportError(f"Failed to parse file: {exc}") from exc

    return frame.values.tolist()


def _keep_row(cells: List[str]) -> List[str]:
    return cells


def _open_source(source: Source, filename: Optional[str]) -> tuple[str, Any]:
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
        suffix = Path(filename).suffix.lower() if filename else ""
        if suffix:
            return _kind_for_suffix(suffix), io.BytesIO(data)
        # xlsx is a zip archive, legacy xls an OLE2 compound document
        if data[:4] == b"PK\x03\x04" or data[:8] == b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1":
            return "excel", io.BytesIO(data)
        return "csv", io.BytesIO(data)

    path = Path(source)
    return _kind_for_suffix(path.suffix.lower()), path


def _display_name(source: Source, filename: Optional[str]) -> str:
    if filename:
        return filename.lower()
    if isinstance(source, (bytes, bytearray)):
        return ""
    return str(source).lower()


def _kind_for_suffix(suffix: str) -> str:
    if suffix in _CSV_SUFFIXES:
        return "csv"
    if suffix in _EXCEL_SUFFIXES:
        return "excel"
    raise UnsupportedFileTypeError(f"Unsupported file extension: {suffix or '(none)'}")


def normalize_header(value: Any) -> str:
    if _is_blank(value):
        return ""
    return _WHITESPACE.sub("_", str(value).strip().lower())


def _row_to_lead(headers: List[str], row: List[Any], *, row_number: int) -> Optional[ImportedLead]:
    fields: Dict[str, Any] = {}
    for index, header in enumerate(headers):
        if index >= len(row) or _is_blank(row[index]):
            continue
        mapped = HEADER_MAP.get(header)
        if not mapped:
            continue
        text = _cell_text(row[index])
        if mapped in LIST_FIELDS:
            fields[mapped] = split_list(text)
        else:
            fields[mapped] = text

    if not fields.get("name"):
        return None

    lead = ImportedLead(row_number=row_number, **fields)
    if not lead.status:
        lead.status = determine_lead_status(lead)
    if lead.priority:
        lead.priority = normalize_priority(lead.priority)
    return lead


def split_list(value: str) -> List[str]:
    return [part.strip() for part in _LIST_SEPARATORS.split(value) if part.strip()]


def determine_lead_status(lead: ImportedLead) -> str:
    """Infer a pipeline status for a lead imported without one."""

    if lead.contact_status:
        contact_status = lead.contact_status.lower()
        if "active" in contact_status or "client" in contact_status:
            return "contacted"
        if "past" in contact_status:
            return "lost"

    if lead.notes and len(lead.notes) > 20:
        return "contacted"

    return "new"


def normalize_priority(value: str) -> str:
    lowered = value.strip().lower()
    return lowered if lowered in PRIORITIES else "medium"


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _cell_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


__all__ = [
    "HEADER_MAP",
    "LeadImportError",
    "UnsupportedFileTypeError",
    "determine_lead_status",
    "normalize_header",
    "normalize_priority",
    "parse_leads_from_file",
    "read_sheet",
    "split_list",
]
