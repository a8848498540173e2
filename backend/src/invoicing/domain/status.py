"""
Invoice status state machine.

The legal transitions are held in a single adjacency table; every action
(issue, pay, cancel) is a lookup in that table followed by the state
change. Rule violations raise typed errors naming the action and the
current status. They are permanent rejections and are never retried.

    DRAFT  --issue-->  ISSUED  --cancel-->  CANCELLED
      |                  |
      +------pay------>  PAID  <----pay-----+

PAID and CANCELLED are terminal.
"""

import logging
from datetime import date, datetime, timezone

from .errors import AlreadyPaid, InvalidTransition, NotDeletable, NotEditable
from .models import Invoice
from .values import InvoiceStatus

logger = logging.getLogger(__name__)


TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.ISSUED, InvoiceStatus.PAID}),
    InvoiceStatus.ISSUED: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
}

EDITABLE_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.ISSUED})
DELETABLE_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED})


def can_transition(source: InvoiceStatus, target: InvoiceStatus) -> bool:
    return target in TRANSITIONS[source]


def is_editable(status: InvoiceStatus) -> bool:
    return status in EDITABLE_STATUSES


def is_deletable(status: InvoiceStatus) -> bool:
    return status in DELETABLE_STATUSES


def transition(invoice: Invoice, target: InvoiceStatus, action: str | None = None) -> None:
    """
    Move the invoice to `target` if the table allows it.

    Raises:
        InvalidTransition: If target is not reachable from the current status
    """
    source = invoice.status
    if not can_transition(source, target):
        raise InvalidTransition(source, target, action)

    invoice.status = target
    invoice.touch()
    logger.info(f"Invoice {invoice.number}: {source.value} -> {target.value}")


def issue(invoice: Invoice) -> Invoice:
    """DRAFT -> ISSUED."""
    transition(invoice, InvoiceStatus.ISSUED, "issue")
    return invoice


def mark_as_paid(invoice: Invoice, paid_at: datetime | None = None) -> Invoice:
    """
    Mark the invoice as paid (from DRAFT or ISSUED).

    The paid flag is checked before the transition table so that an
    already-paid invoice reports AlreadyPaid rather than a generic
    InvalidTransition.

    Args:
        invoice: Invoice to update
        paid_at: Payment timestamp; defaults to now (UTC)
    """
    if invoice.is_paid:
        raise AlreadyPaid(invoice.status)

    transition(invoice, InvoiceStatus.PAID, "mark_as_paid")
    invoice.is_paid = True
    invoice.paid_at = paid_at or datetime.now(timezone.utc)
    return invoice


def cancel(invoice: Invoice) -> Invoice:
    """ISSUED -> CANCELLED. Drafts cannot be cancelled, only deleted."""
    transition(invoice, InvoiceStatus.CANCELLED, "cancel")
    return invoice


def soft_delete(invoice: Invoice, deleted_at: datetime | None = None) -> Invoice:
    """
    Flag the invoice as deleted without changing its status.

    Raises:
        NotDeletable: Unless the status is DRAFT or CANCELLED
    """
    if not is_deletable(invoice.status):
        raise NotDeletable(invoice.status)

    invoice.deleted_at = deleted_at or datetime.now(timezone.utc)
    invoice.touch()
    logger.info(f"Invoice {invoice.number} soft-deleted ({invoice.status.value})")
    return invoice


def restore(invoice: Invoice) -> Invoice:
    invoice.deleted_at = None
    invoice.touch()
    return invoice


def can_be_edited(invoice: Invoice) -> bool:
    return is_editable(invoice.status) and not invoice.is_deleted


def can_be_deleted(invoice: Invoice) -> bool:
    return is_deletable(invoice.status) and not invoice.is_deleted


def ensure_editable(invoice: Invoice) -> None:
    """Raise NotEditable unless the invoice may still be changed."""
    if not can_be_edited(invoice):
        raise NotEditable(invoice.status, deleted=invoice.is_deleted)


def is_overdue(invoice: Invoice, today: date | None = None) -> bool:
    """Issued, unpaid, and past its due date."""
    if invoice.status is not InvoiceStatus.ISSUED or invoice.is_paid or invoice.due_date is None:
        return False
    return invoice.due_date < (today or date.today())
