#!/usr/bin/env python3
"""Export invoices from the billing backend.

Lists invoices, applies the same status/search filters as the invoices
page, prints a dashboard summary and optionally downloads every matching
invoice PDF.

Usage:
    BILLING_API_TOKEN=... python scripts/export_invoices.py --status Paid --download
    python scripts/export_invoices.py --email billing@acme.io --password ... --search acme

Requirements:
    - Billing backend reachable at BILLING_API_BASE_URL
    - Either BILLING_API_TOKEN or --email/--password
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

from billing.backend.metrics import get_metrics
from billing.dashboard.stats import DashboardStats
from billing.factory import create_billing_services
from billing.filters.engine import ALL, apply_filters
from billing.invoices.totals import format_amount
from billing.shared.config import get_settings
from billing.shared.errors import BillingError

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def export_invoices(
    status: str,
    search: str,
    download: bool,
    out_dir: Path | None,
    email: str | None,
    password: str | None,
) -> int:
    """Run the export; returns a process exit code."""
    settings = get_settings()
    services = create_billing_services(settings)
    symbol = settings.currency_symbol

    try:
        if email:
            await services.auth.login(email, password or "")
        elif not services.session.is_authenticated:
            logger.error("No credentials: set BILLING_API_TOKEN or pass --email/--password")
            return 2

        invoices = await services.invoices.list_all()
        selected = apply_filters(invoices, status, search)
        stats = DashboardStats.from_invoices(invoices)

        print("=" * 80)
        print("INVOICE EXPORT")
        print("=" * 80)
        print(f"Backend: {settings.api_base_url}")
        print(f"Filter: status={status} search={search!r}")
        print("-" * 80)
        for invoice in selected:
            due = invoice.due_date.isoformat() if invoice.due_date else "-"
            print(
                f"{invoice.invoice_number:<14} {invoice.client_name[:28]:<28} "
                f"{invoice.status.value:<8} {due:<10} {format_amount(invoice.total, symbol):>14}"
            )
        if not selected:
            print("(no matching invoices)")

        print("\n" + "=" * 80)
        print("SUMMARY")
        print("=" * 80)
        print(f"Total invoices:   {stats.total_invoices}")
        print(f"Paid:             {stats.paid_invoices}")
        print(f"Pending:          {stats.pending_invoices}")
        print(f"Overdue:          {stats.overdue_invoices}")
        print(f"Revenue (paid):   {format_amount(stats.total_revenue, symbol)}")
        print(f"Matching filter:  {len(selected)}")

        if download:
            print("\n" + "-" * 80)
            failures = 0
            for invoice in selected:
                try:
                    result = await services.documents.download_pdf(invoice, out_dir)
                except BillingError as e:
                    failures += 1
                    print(f"✗ {invoice.invoice_number}: {e.message}")
                    continue
                print(f"✓ {result.path} ({result.size} bytes)")
            if failures:
                return 1

        return 0

    except BillingError as e:
        logger.error(f"Export failed: {e}")
        return 1
    finally:
        await services.aclose()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Export invoices from the billing backend")
    parser.add_argument(
        "--status",
        default=ALL,
        help="Status filter: All, Pending, Paid or Overdue (default: All)",
    )
    parser.add_argument(
        "--search",
        default="",
        help="Substring of invoice number or client name",
    )
    parser.add_argument(
        "--download",
        action="store_true",
        help="Download the PDF of every matching invoice",
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=None,
        help="PDF directory (default: BILLING_PDF_DOWNLOAD_DIR)",
    )
    parser.add_argument("--email", default=None, help="Sign in with this email")
    parser.add_argument(
        "--password",
        default=os.environ.get("BILLING_PASSWORD"),
        help="Password for --email (default: BILLING_PASSWORD)",
    )
    parser.add_argument(
        "--metrics-file",
        type=Path,
        default=None,
        help="Write Prometheus metrics for this run to a file",
    )

    args = parser.parse_args()

    exit_code = asyncio.run(
        export_invoices(
            status=args.status,
            search=args.search,
            download=args.download,
            out_dir=args.out_dir,
            email=args.email,
            password=args.password,
        )
    )

    if args.metrics_file:
        payload, _ = get_metrics()
        args.metrics_file.write_bytes(payload)
        logger.info(f"Metrics written to {args.metrics_file}")

    sys.exit(exit_code)
