"""
SQLAlchemy-backed collaborators for the invoicing core.

InvoiceRepository doubles as the numbering SequenceSource and
NumberUniquenessCheck; PreferenceRepository is the FormatPreferenceSource.
Both operate inside a session owned by the caller, which also owns the
transaction boundary.
"""

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from invoicing.domain.models import Invoice, InvoiceItem
from invoicing.domain.values import Currency, InvoiceStatus, PaymentMethod, Unit, VatRate

from .database import InvoiceItemRecord, InvoiceRecord, SystemPreferenceRecord

logger = logging.getLogger(__name__)

INVOICE_NUMBER_FORMAT_KEY = "invoice_number_format"


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


class InvoiceRepository:
    """Maps invoices between domain objects and database rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # -- numbering collaborators ---------------------------------------------

    def next_sequence_number(self, year: int, month: int) -> int:
        """Count non-deleted invoices issued in year/month, plus one."""
        start, end = _month_bounds(year, month)
        count = self.session.scalar(
            select(func.count(InvoiceRecord.id)).where(
                InvoiceRecord.deleted_at.is_(None),
                InvoiceRecord.issue_date >= start,
                InvoiceRecord.issue_date < end,
            )
        )
        return (count or 0) + 1

    def exists_by_number(self, number: str) -> bool:
        """
        True if any stored invoice, deleted or not, carries this number.

        Soft-deleted rows still hold their number under the unique index.
        """
        found = self.session.scalar(
            select(InvoiceRecord.id).where(InvoiceRecord.number == number).limit(1)
        )
        return found is not None

    # -- persistence ---------------------------------------------------------

    def get(self, invoice_id: int, include_deleted: bool = False) -> Invoice | None:
        record = self._load(invoice_id)
        if record is None or (record.deleted_at is not None and not include_deleted):
            return None
        return self._to_domain(record)

    def find_overdue(self, today: date) -> list[Invoice]:
        """Issued, unpaid, non-deleted invoices due before today, oldest due first."""
        records = self.session.scalars(
            select(InvoiceRecord)
            .options(selectinload(InvoiceRecord.items))
            .where(
                InvoiceRecord.deleted_at.is_(None),
                InvoiceRecord.status == InvoiceStatus.ISSUED.value,
                InvoiceRecord.is_paid.is_(False),
                InvoiceRecord.due_date.is_not(None),
                InvoiceRecord.due_date < today,
            )
            .order_by(InvoiceRecord.due_date, InvoiceRecord.id)
        )
        return [self._to_domain(record) for record in records]

    def list_active(self) -> list[Invoice]:
        """All non-deleted invoices, in issue order."""
        records = self.session.scalars(
            select(InvoiceRecord)
            .options(selectinload(InvoiceRecord.items))
            .where(InvoiceRecord.deleted_at.is_(None))
            .order_by(InvoiceRecord.issue_date, InvoiceRecord.id)
        )
        return [self._to_domain(record) for record in records]

    def add(self, invoice: Invoice) -> Invoice:
        record = InvoiceRecord()
        self._apply(record, invoice)
        self.session.add(record)
        self.session.flush()
        invoice.id = record.id
        logger.info(f"Stored invoice {invoice.number} (id={record.id})")
        return invoice

    def save(self, invoice: Invoice) -> Invoice:
        """Write back an invoice loaded from this repository."""
        if invoice.id is None:
            raise ValueError("Cannot save an invoice that was never added")
        record = self._load(invoice.id)
        if record is None:
            raise ValueError(f"Invoice {invoice.id} no longer exists")
        self._apply(record, invoice)
        self.session.flush()
        return invoice

    def _load(self, invoice_id: int) -> InvoiceRecord | None:
        return self.session.scalar(
            select(InvoiceRecord)
            .options(selectinload(InvoiceRecord.items))
            .where(InvoiceRecord.id == invoice_id)
        )

    @staticmethod
    def _apply(record: InvoiceRecord, invoice: Invoice) -> None:
        record.number = invoice.number
        record.issue_date = invoice.issue_date
        record.sale_date = invoice.sale_date
        record.due_date = invoice.due_date
        record.currency = invoice.currency.value
        record.payment_method = invoice.payment_method.value if invoice.payment_method else None
        record.status = invoice.status.value
        record.is_paid = invoice.is_paid
        record.paid_at = invoice.paid_at
        record.notes = invoice.notes
        record.customer_id = invoice.customer_id
        record.subtotal = invoice.subtotal
        record.vat_amount = invoice.vat_amount
        record.total = invoice.total
        record.deleted_at = invoice.deleted_at
        record.created_at = invoice.created_at
        record.updated_at = invoice.updated_at

        # Items are replaced wholesale; delete-orphan removes the old rows
        record.items = [
            InvoiceItemRecord(
                description=item.description,
                quantity=item.quantity,
                unit=item.unit.value,
                unit_price=item.unit_price,
                vat_rate=item.vat_rate.value,
                net_amount=item.net_amount,
                vat_amount=item.vat_amount,
                gross_amount=item.gross_amount,
                sort_order=item.sort_order,
            )
            for item in invoice.items
        ]

    @staticmethod
    def _to_domain(record: InvoiceRecord) -> Invoice:
        return Invoice(
            id=record.id,
            number=record.number,
            issue_date=record.issue_date,
            sale_date=record.sale_date,
            due_date=record.due_date,
            currency=Currency(record.currency),
            payment_method=PaymentMethod(record.payment_method) if record.payment_method else None,
            status=InvoiceStatus(record.status),
            is_paid=record.is_paid,
            paid_at=record.paid_at,
            notes=record.notes,
            customer_id=record.customer_id,
            items=[
                InvoiceItem(
                    description=row.description,
                    quantity=row.quantity,
                    unit=Unit(row.unit),
                    unit_price=row.unit_price,
                    vat_rate=VatRate(row.vat_rate),
                    sort_order=row.sort_order,
                )
                for row in record.items
            ],
            subtotal=record.subtotal,
            vat_amount=record.vat_amount,
            total=record.total,
            deleted_at=record.deleted_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class PreferenceRepository:
    """Key/value system preferences with a configured fallback template."""

    def __init__(self, session: Session, default_template: str) -> None:
        self.session = session
        self.default_template = default_template

    def get(self, key: str) -> str | None:
        record = self.session.get(SystemPreferenceRecord, key)
        return record.value if record else None

    def set(self, key: str, value: str) -> None:
        record = self.session.get(SystemPreferenceRecord, key)
        if record is None:
            self.session.add(SystemPreferenceRecord(key=key, value=value))
        else:
            record.value = value
        self.session.flush()
        logger.info(f"Preference {key} set to {value!r}")

    def get_template(self) -> str:
        return self.get(INVOICE_NUMBER_FORMAT_KEY) or self.default_template
