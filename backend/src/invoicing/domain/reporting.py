"""
Dashboard figures over a set of invoices.

Counts and amounts are computed from domain objects, so overdue uses the
same rule as status.is_overdue(). Amounts are plain sums of invoice totals
and are not converted between currencies.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from .models import Invoice
from .status import is_overdue
from .values import ZERO, InvoiceStatus, round2


@dataclass(frozen=True)
class MonthlyStatistics:
    month: str  # YYYY-MM
    count: int
    amount: Decimal


@dataclass
class InvoiceStatistics:
    """
    Totals for the invoice dashboard.

    Cancelled invoices count towards total_invoices only; their amounts
    are left out of every sum.
    """
    total_invoices: int = 0
    paid_invoices: int = 0
    unpaid_invoices: int = 0
    overdue_invoices: int = 0
    draft_invoices: int = 0
    total_amount: Decimal = ZERO
    paid_amount: Decimal = ZERO
    unpaid_amount: Decimal = ZERO
    overdue_amount: Decimal = ZERO
    monthly: list[MonthlyStatistics] = field(default_factory=list)


def summarize(invoices: Iterable[Invoice], today: date | None = None) -> InvoiceStatistics:
    """
    Aggregate non-deleted invoices into dashboard statistics.

    Unpaid means ISSUED and not paid; overdue is the unpaid subset past its
    due date. Monthly rows are keyed by issue month, oldest first.
    """
    today = today or date.today()
    stats = InvoiceStatistics()
    months: dict[str, list] = {}

    for invoice in invoices:
        if invoice.is_deleted:
            continue

        stats.total_invoices += 1
        if invoice.status is InvoiceStatus.CANCELLED:
            continue

        stats.total_amount = round2(stats.total_amount + invoice.total)
        month = months.setdefault(invoice.issue_date.strftime("%Y-%m"), [0, ZERO])
        month[0] += 1
        month[1] = round2(month[1] + invoice.total)

        if invoice.status is InvoiceStatus.DRAFT:
            stats.draft_invoices += 1

        if invoice.is_paid:
            stats.paid_invoices += 1
            stats.paid_amount = round2(stats.paid_amount + invoice.total)
        elif invoice.status is InvoiceStatus.ISSUED:
            stats.unpaid_invoices += 1
            stats.unpaid_amount = round2(stats.unpaid_amount + invoice.total)

        if is_overdue(invoice, today):
            stats.overdue_invoices += 1
            stats.overdue_amount = round2(stats.overdue_amount + invoice.total)

    stats.monthly = [
        MonthlyStatistics(month=key, count=count, amount=amount)
        for key, (count, amount) in sorted(months.items())
    ]
    return stats
