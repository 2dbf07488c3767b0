"""Command line interface for lead imports, contact lookups and SLA sweeps."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, Optional

from .config import ConfigurationError, Settings, load_settings
from .contacts import ContactStatusEngine, TimelineAggregator, resolve_related_contact_ids
from .errors import CrmError, format_error_for_user
from .factory import build_context
from .ingestion import (
    LeadImportError,
    LeadImportService,
    build_import_report,
    export_import_report,
    parse_leads_from_file,
)
from .session import CrmContext
from .sla import run_sla_sweep
from .timezone import format_local

LOGGER = logging.getLogger(__name__)

ContextFactory = Callable[[Settings], CrmContext]


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description="Real-estate CRM client tools")
    parser.add_argument("--config", default=None, help="Path to a settings file (YAML or JSON)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (e.g. DEBUG, INFO, WARNING)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    importer = subparsers.add_parser("import", help="Parse and validate a lead spreadsheet")
    importer.add_argument("file", help="CSV or Excel file with a header row")
    importer.add_argument("--report", default=None, help="Write a per-row validation report (CSV or XLSX)")
    importer.add_argument("--commit", action="store_true", help="Insert the valid leads into the CRM")
    importer.add_argument(
        "--include-invalid",
        action="store_true",
        help="Also insert rows that failed validation when committing",
    )

    resolve = subparsers.add_parser("resolve", help="List every id that refers to the same contact")
    resolve.add_argument("contact_id")

    timeline = subparsers.add_parser("timeline", help="Print a contact's merged history, newest first")
    timeline.add_argument("contact_id")
    timeline.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    timeline.add_argument("--aliases", action="store_true", help="Include history recorded under related ids")
    timeline.add_argument("--concurrent", action="store_true", help="Query the sources concurrently")

    status = subparsers.add_parser("status", help="Change how a contact's status is determined")
    status.add_argument("contact_id")
    mode = status.add_mutually_exclusive_group(required=True)
    mode.add_argument("--auto", action="store_true", help="Let the backend derive the status")
    mode.add_argument("--manual", choices=["active", "past"], help="Pin the status")

    sweep = subparsers.add_parser("sla-sweep", help="Reassign leads that missed their first-response SLA")
    sweep.add_argument("--minutes", type=int, default=None, help="SLA window (defaults to the configured value)")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None, *, context_factory: Optional[ContextFactory] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    factory = context_factory or build_context
    try:
        settings = load_settings(args.config)
        return _COMMANDS[args.command](args, settings, factory)
    except CrmError as exc:
        print(f"Error: {format_error_for_user(exc, args.command)}", file=sys.stderr)
        return 1
    except (ConfigurationError, LeadImportError, ValueError) as exc:
        # Local input problems; nothing from the backend to hide.
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def _run_import(args: argparse.Namespace, settings: Settings, factory: ContextFactory) -> int:
    leads = parse_leads_from_file(args.file)
    report = build_import_report(leads)
    summary = report.summary()
    print(f"Parsed {summary['total']} leads: {summary['valid']} valid, {summary['invalid']} invalid")
    for row in report.invalid_rows:
        print(f"  row {row.lead.row_number} ({row.lead.name}): {'; '.join(row.validation.errors)}")

    if args.report:
        path = export_import_report(report, args.report)
        LOGGER.info("Import report written to %s", Path(path).resolve())

    if args.commit:
        context = factory(settings)
        importer = LeadImportService(context.service, context.session, context.events)
        result = importer.commit(leads, skip_invalid=not args.include_invalid)
        counts = result.counts()
        print(f"Inserted {counts['inserted']}, skipped {counts['skipped']}, failed {counts['failed']}")
        return 1 if result.failed else 0
    return 0


def _run_resolve(args: argparse.Namespace, settings: Settings, factory: ContextFactory) -> int:
    context = factory(settings)
    for contact_id in sorted(resolve_related_contact_ids(context.service, args.contact_id)):
        print(contact_id)
    return 0


def _run_timeline(args: argparse.Namespace, settings: Settings, factory: ContextFactory) -> int:
    context = factory(settings)
    aggregator = TimelineAggregator(context.service, concurrent=args.concurrent, resolve_aliases=args.aliases)
    timeline = aggregator.build(args.contact_id)

    if args.json:
        payload = {
            "contact_id": timeline.contact_id,
            "items": [item.as_row() for item in timeline.items],
            "failures": timeline.failures,
            "skipped": timeline.skipped,
        }
        print(json.dumps(payload, indent=2))
    else:
        for item in timeline.items:
            line = f"{format_local(item.timestamp, tz=settings.timezone)}  {item.title}"
            print(f"{line}  ({item.subtitle})" if item.subtitle else line)
        for source, message in timeline.failures.items():
            LOGGER.warning("Timeline source %s unavailable: %s", source, message)
        for source, count in timeline.skipped.items():
            LOGGER.warning("Timeline source %s: %d items without a readable date", source, count)
    return 0


def _run_status(args: argparse.Namespace, settings: Settings, factory: ContextFactory) -> int:
    context = factory(settings)
    engine = ContactStatusEngine(context.service, context.session, context.events)
    if args.auto:
        outcome = engine.set_status_mode(args.contact_id, "auto")
        print(f"{outcome.contact.display_name()}: status is now automatic")
        if not outcome.recomputed:
            LOGGER.warning("Status mode changed but the status could not be recomputed yet")
        return 0

    result = engine.set_manual_status(args.contact_id, args.manual)
    print(f"{result.contact.display_name()}: {result.old_status or 'unset'} -> {result.new_status}")
    if not result.audit_recorded:
        LOGGER.warning("Status changed but the change could not be recorded in the audit trail")
    return 0


def _run_sla_sweep(args: argparse.Namespace, settings: Settings, factory: ContextFactory) -> int:
    context = factory(settings)
    minutes = args.minutes if args.minutes is not None else settings.sla_minutes
    count = run_sla_sweep(context.service, minutes)
    print(f"Reassigned {count} overdue leads")
    return 0


_COMMANDS: Dict[str, Callable[[argparse.Namespace, Settings, ContextFactory], int]] = {
    "import": _run_import,
    "resolve": _run_resolve,
    "timeline": _run_timeline,
    "status": _run_status,
    "sla-sweep": _run_sla_sweep,
}


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
