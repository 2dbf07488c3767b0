"""Export utilities for import reports and contact lists."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

from .models import ImportReport

PathLike = Union[str, Path]

CONTACT_EXPORT_HEADERS = ("name", "email", "phone", "contact_status", "tags", "status", "source", "notes")


def export_import_report(
    report: ImportReport,
    path: PathLike,
    *,
    sheet_name: str = "Import",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write one row per imported lead, with its validation outcome, to CSV or Excel."""

    dataframe = report_to_dataframe(report)
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def report_to_dataframe(report: ImportReport) -> pd.DataFrame:
    records = []
    for row in report.rows:
        lead = row.lead
        records.append(
            {
                "row": lead.row_number,
                "name": lead.name,
                "email": lead.email,
                "phone": lead.phone,
                "status": lead.status,
                "priority": lead.priority,
                "source": lead.source,
                "interest_tags": _join_list(lead.interest_tags),
                "contact_pref": _join_list(lead.contact_pref),
                "valid": row.valid,
                "errors": _join_list(row.validation.errors),
            }
        )
    return pd.DataFrame(records, columns=[
        "row", "name", "email", "phone", "status", "priority", "source",
        "interest_tags", "contact_pref", "valid", "errors",
    ])


def contacts_to_csv(rows: Iterable[Mapping[str, Any]]) -> str:
    """Render contacts in the CRM's export format: every value quoted, tags ``|``-joined."""

    lines: List[str] = [",".join(CONTACT_EXPORT_HEADERS)]
    for row in rows:
        values = [
            row.get("name") or "",
            row.get("email") or "",
            row.get("phone") or "",
            row.get("contact_status") or "lead",
            "|".join(row.get("tags") or []),
            row.get("status") or "",
            row.get("source") or "",
            str(row.get("notes") or "").replace("\n", " ").replace(",", ";"),
        ]
        lines.append(",".join(_quote(value) for value in values))
    return "\n".join(lines)


def _quote(value: Any) -> str:
    return '"' + str(value).replace('"', '""') + '"'


def _join_list(values: Sequence[Optional[str]]) -> str:
    return "; ".join(str(value).strip() for value in values if value and str(value).strip())


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = ["CONTACT_EXPORT_HEADERS", "contacts_to_csv", "export_import_report", "report_to_dataframe"]
