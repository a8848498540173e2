"""
Invoice application service.

Coordinates the invoicing core with persistence for each use case:
1. Create: assign a number, build items, compute totals, store
2. Update: check editability, replace items wholesale, recompute totals
3. Status actions: issue, pay, cancel, soft delete
4. Audit: reconcile stored totals with items

Each public method is one unit of work and commits its session.
"""

import dataclasses
import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from invoicing.config import Settings, get_settings
from invoicing.domain import status as workflow
from invoicing.domain.calculation import TotalsValidation, validate_totals
from invoicing.domain.errors import InvoiceNotFound, InvoiceValidationError
from invoicing.domain.models import Invoice, InvoiceItem
from invoicing.domain.numbering import InvoiceNumberGenerator
from invoicing.domain.reporting import InvoiceStatistics, summarize
from invoicing.domain.values import Currency, InvoiceStatus, PaymentMethod
from invoicing.infrastructure.repositories import InvoiceRepository, PreferenceRepository

logger = logging.getLogger(__name__)

# Header fields a caller may change on an editable invoice
UPDATABLE_FIELDS = frozenset({
    "issue_date",
    "sale_date",
    "due_date",
    "currency",
    "payment_method",
    "notes",
    "customer_id",
})


class InvoiceService:
    """
    Use cases over persisted invoices.

    Example:
        with get_session() as session:
            service = InvoiceService(session)
            invoice = service.create_invoice(
                issue_date=date(2024, 10, 15),
                sale_date=date(2024, 10, 15),
                customer_id=7,
                items=[InvoiceItem("Consulting", "2", "godz.", "150.00", "23")],
            )
    """

    def __init__(self, session: Session, settings: Settings | None = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.invoices = InvoiceRepository(session)
        self.preferences = PreferenceRepository(session, self.settings.invoice_number_format)
        self.numbers = InvoiceNumberGenerator(
            sequences=self.invoices,
            uniqueness=self.invoices,
            preferences=self.preferences,
            max_retries=self.settings.number_max_retries,
            backoff_ms=self.settings.retry_backoff_ms,
        )

    # -- queries -------------------------------------------------------------

    def next_number(self, issue_date: date) -> str:
        """Preview the number the next invoice issued on this date would get."""
        return self.numbers.generate(issue_date)

    def get_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.invoices.get(invoice_id)
        if invoice is None:
            raise InvoiceNotFound(invoice_id)
        return invoice

    def check_totals(self, invoice_id: int) -> TotalsValidation:
        invoice = self.get_invoice(invoice_id)
        result = validate_totals(invoice)
        if not result.is_valid:
            logger.warning(f"Invoice {invoice.number} totals mismatch: {'; '.join(result.errors)}")
        return result

    def overdue_invoices(self, today: date | None = None) -> list[Invoice]:
        today = today or date.today()
        invoices = [i for i in self.invoices.find_overdue(today) if workflow.is_overdue(i, today)]
        logger.debug(f"{len(invoices)} overdue invoices as of {today}")
        return invoices

    def statistics(self, today: date | None = None) -> InvoiceStatistics:
        return summarize(self.invoices.list_active(), today)

    # -- commands ------------------------------------------------------------

    def create_invoice(
        self,
        *,
        issue_date: date,
        sale_date: date,
        customer_id: int,
        items: Iterable[InvoiceItem],
        due_date: date | None = None,
        currency: Currency | str = Currency.PLN,
        payment_method: PaymentMethod | str | None = None,
        notes: str | None = None,
        status: InvoiceStatus = InvoiceStatus.ISSUED,
    ) -> Invoice:
        """
        Create and store a new invoice.

        Invoices start ISSUED unless a DRAFT is explicitly requested.
        """
        if status not in (InvoiceStatus.DRAFT, InvoiceStatus.ISSUED):
            raise InvoiceValidationError(
                f"New invoices must be draft or issued, got {status.value}"
            )

        number = self.numbers.generate_with_retry(issue_date)
        invoice = Invoice(
            number=number,
            issue_date=issue_date,
            sale_date=sale_date,
            customer_id=customer_id,
            due_date=due_date,
            currency=currency,
            payment_method=payment_method,
            notes=notes,
            status=status,
        )
        invoice.replace_items(items)

        self.invoices.add(invoice)
        self.session.commit()
        logger.info(f"Created invoice {invoice.number}: total {invoice.total} {invoice.currency.value}")
        return invoice

    def update_invoice(
        self,
        invoice_id: int,
        *,
        items: Iterable[InvoiceItem] | None = None,
        **changes: Any,
    ) -> Invoice:
        """
        Update header fields and/or replace the item list.

        Raises:
            NotEditable: For PAID or CANCELLED invoices
            InvoiceValidationError: For unknown fields or invalid values
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvoiceValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        invoice = self.get_invoice(invoice_id)
        workflow.ensure_editable(invoice)

        # replace() re-runs the model validation on the new header values
        invoice = dataclasses.replace(invoice, **changes)
        if items is not None:
            invoice.replace_items(items)
        else:
            invoice.touch()

        self.invoices.save(invoice)
        self.session.commit()
        return invoice

    def issue(self, invoice_id: int) -> Invoice:
        return self._apply(invoice_id, workflow.issue)

    def pay(self, invoice_id: int, paid_at: datetime | None = None) -> Invoice:
        return self._apply(invoice_id, lambda invoice: workflow.mark_as_paid(invoice, paid_at))

    def cancel(self, invoice_id: int) -> Invoice:
        return self._apply(invoice_id, workflow.cancel)

    def delete(self, invoice_id: int) -> Invoice:
        return self._apply(invoice_id, workflow.soft_delete)

    def restore(self, invoice_id: int) -> Invoice:
        """Undo a soft delete. Restoring a live invoice changes nothing."""
        invoice = self.invoices.get(invoice_id, include_deleted=True)
        if invoice is None:
            raise InvoiceNotFound(invoice_id)
        if invoice.is_deleted:
            workflow.restore(invoice)
            self.invoices.save(invoice)
            self.session.commit()
            logger.info(f"Invoice {invoice.number} restored")
        return invoice

    def _apply(self, invoice_id: int, action: Callable[[Invoice], Invoice]) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        action(invoice)
        self.invoices.save(invoice)
        self.session.commit()
        return invoice
