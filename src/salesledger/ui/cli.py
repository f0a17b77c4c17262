# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from datetime import date
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from salesledger.app import load_gst_tax_report, load_sales_register
from salesledger.config import ReportConfig, configure_logging, get_report_config
from salesledger.domain.aggregation import GROUPING_MODES, SALES_DOCUMENT_ITEM
from salesledger.domain.errors import FilterValidationError
from salesledger.domain.filters import DocumentRange, LedgerFilters, SalesRegisterFilters
from salesledger.domain.taxonomy import SALES_REGISTER_TAXONOMY

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from salesledger.app import GstTaxReport, SalesRegisterReport
    from salesledger.domain.pagination import Progress
    from salesledger.domain.types import AggregatedGroup, ReconciledDocument

log = logging.getLogger(__name__)


def _add_paging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help="Records to request per page (defaults to config)",
    )
    parser.add_argument(
        "--all",
        dest="load_all",
        action="store_true",
        help="Keep loading pages until the feed is exhausted",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        help="Maximum number of pages to load with --all",
    )
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Dump the finalized rows to stdout as JSON",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Load sales register and GST tax reports")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sales = subparsers.add_parser("sales-register", help="Aggregated sales register")
    sales.add_argument("--sales-order", type=str, help="Sales document number")
    sales.add_argument("--billing-document", type=str, help="Billing document number")
    sales.add_argument("--billing-document-type", type=str, help="Billing document type")
    sales.add_argument("--material", type=str, help="Product contains")
    sales.add_argument("--customer", type=str, help="Customer name contains")
    sales.add_argument(
        "--region",
        dest="regions",
        action="append",
        default=[],
        help="Region code (repeatable)",
    )
    sales.add_argument("--from-date", type=str, help="ISO date, inclusive")
    sales.add_argument("--to-date", type=str, help="ISO date, inclusive")
    sales.add_argument(
        "--group-by",
        choices=sorted(GROUPING_MODES),
        default=SALES_DOCUMENT_ITEM.name,
        help="Grouping key (default: %(default)s)",
    )
    sales.add_argument(
        "--no-texts",
        dest="with_texts",
        action="store_false",
        help="Skip sales order item text enrichment",
    )
    _add_paging_arguments(sales)

    gst = subparsers.add_parser("gst-tax", help="Ledger lines reconciled with GST tax items")
    gst.add_argument("--company-code", type=str, required=True, help="4-digit company code")
    gst.add_argument("--fiscal-year", type=str, required=True, help="4-digit fiscal year")
    gst.add_argument("--from-date", type=str, help="Posting date from (ISO date)")
    gst.add_argument("--to-date", type=str, help="Posting date to (ISO date)")
    gst.add_argument("--from-document", type=str, help="Accounting document range start")
    gst.add_argument("--to-document", type=str, help="Accounting document range end")
    _add_paging_arguments(gst)

    return parser.parse_args(list(argv))


def _parse_iso_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid ISO date: {value}") from exc


def _sales_register_filters(args: argparse.Namespace) -> SalesRegisterFilters:
    return SalesRegisterFilters(
        sales_order=args.sales_order,
        billing_document=args.billing_document,
        billing_document_type=args.billing_document_type,
        material=args.material,
        customer=args.customer,
        regions=tuple(args.regions),
        from_date=_parse_iso_date(args.from_date),
        to_date=_parse_iso_date(args.to_date),
    )


def _ledger_filters(args: argparse.Namespace) -> LedgerFilters:
    return LedgerFilters(
        company_code=args.company_code,
        fiscal_year=args.fiscal_year,
        from_date=_parse_iso_date(args.from_date),
        to_date=_parse_iso_date(args.to_date),
        document_range=DocumentRange(start=args.from_document, end=args.to_document),
    )


def _log_progress(progress: Progress) -> None:
    log.debug(
        "%s (%d/%d, %d%%)",
        progress.operation,
        progress.current_step,
        progress.total_steps,
        progress.percent,
    )


def group_row(group: AggregatedGroup) -> dict[str, object]:
    return {
        "key": group.key,
        **group.attributes,
        **{code: str(amount) for code, amount in group.conditions.items()},
        "quantity": str(group.quantity),
        "net_amount": str(group.net_amount),
        "invoice_amount": str(group.invoice_amount),
        "record_count": group.record_count,
    }


def document_row(document: ReconciledDocument) -> dict[str, object]:
    return {
        "company_code": document.key.company_code,
        "accounting_document": document.key.accounting_document,
        "fiscal_year": document.key.fiscal_year,
        **document.attributes,
        "taxable_amount": str(document.taxable_amount),
        "total_tax_amount": str(document.total_tax_amount),
        "total_tax_base_amount": str(document.total_tax_base_amount),
        "grand_total": str(document.grand_total),
        "tax_codes": document.tax_codes,
        "tax_item_count": document.tax_item_count,
        "has_gst_data": document.has_secondary_data,
        "document_status": str(document.document_status),
        "compliance_status": document.compliance_status,
        "record_count": document.record_count,
    }


def _print_sales_register(report: SalesRegisterReport, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps([group_row(group) for group in report.result.groups], indent=2))
        return
    summary = report.summary
    print(f"Groups:           {summary.total_groups}")
    print(f"Net amount:       {summary.total_net_amount}")
    print(f"Invoice amount:   {summary.total_invoice_amount}")
    print(f"Discounts:        {summary.total_discount}")
    print(f"Taxes:            {summary.total_tax}")
    print(f"Sales documents:  {summary.sales_documents}")
    print(f"Billing docs:     {summary.billing_documents}")
    print(f"Customers:        {summary.customers}")
    print(f"More available:   {report.snapshot.has_more}")
    for group in report.result.groups[:20]:
        breakdown = ", ".join(
            f"{description} {amount}"
            for _code, description, amount in group.condition_breakdown(SALES_REGISTER_TAXONOMY)
        )
        print(f"  {group.key}: {group.invoice_amount} ({breakdown})")


def _print_gst_report(report: GstTaxReport, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps([document_row(doc) for doc in report.result.documents], indent=2))
        return
    summary = report.summary
    print(f"Documents:        {summary.documents}")
    print(f"Taxable amount:   {summary.total_taxable_amount}")
    print(f"Tax amount:       {summary.total_tax_amount}")
    print(f"Grand total:      {summary.grand_total}")
    print(f"Reversed:         {summary.reversed_documents}")
    print(f"Non-compliant:    {summary.non_compliant_documents}")
    print(f"More available:   {report.snapshot.has_more}")


async def _run_command(args: argparse.Namespace) -> None:
    if args.command == "sales-register":
        filters = _sales_register_filters(args)
        report = await load_sales_register(
            filters,
            config=_report_config(args),
            with_texts=args.with_texts,
            mode=GROUPING_MODES[args.group_by],
            load_all=args.load_all,
            max_pages=args.max_pages,
            observer=_log_progress,
        )
        _print_sales_register(report, as_json=args.as_json)
    elif args.command == "gst-tax":
        filters = _ledger_filters(args)
        report = await load_gst_tax_report(
            filters,
            config=_report_config(args),
            load_all=args.load_all,
            max_pages=args.max_pages,
            observer=_log_progress,
        )
        _print_gst_report(report, as_json=args.as_json)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def _report_config(args: argparse.Namespace) -> ReportConfig:
    config = get_report_config()
    if args.page_size is not None:
        config = replace(config, page_size=args.page_size)
    return config


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "sales-register":
            _sales_register_filters(parsed_args).validate()
        else:
            _ledger_filters(parsed_args).validate()
        if parsed_args.page_size is not None and parsed_args.page_size < 1:
            raise ValueError("--page-size must be at least 1")  # noqa: TRY301
    except (ValueError, FilterValidationError):
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        asyncio.run(_run_command(parsed_args))
    except Exception:
        log.exception("Fatal error while loading report")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
