"""
Domain models for invoices and their line items.

Design Decisions:
- InvoiceItem is a frozen dataclass; its net/VAT/gross amounts are derived
  in __post_init__ and cannot be assigned. Changing quantity, price or rate
  means building a new item (dataclasses.replace), which recomputes them.
- Invoice is mutable because its status, payment and deletion fields change
  over its lifecycle. Items are swapped wholesale via replace_items(), which
  always recomputes the invoice totals.
- Totals passed to the constructor are kept verbatim so that rows loaded
  from storage can be audited with validate_totals().
- Default status is ISSUED, not DRAFT: invoices are created issued unless
  the caller explicitly asks for a draft.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from .calculation import InvoiceTotals, compute_invoice_totals, compute_item
from .errors import InvoiceValidationError
from .values import (
    MONEY_SCALE,
    QUANTITY_SCALE,
    ZERO,
    Currency,
    InvoiceStatus,
    PaymentMethod,
    Unit,
    VatRate,
    to_scaled,
)

MAX_DESCRIPTION_LENGTH = 255
MAX_NUMBER_LENGTH = 50
MAX_NOTES_LENGTH = 1000

# Largest value the Numeric(15, 2) amount columns hold
MAX_AMOUNT = Decimal("9999999999999.99")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class InvoiceItem:
    """
    A single line of an invoice.

    Accepts strings for quantity, unit price, unit and VAT rate and
    normalizes them; invalid values raise InvoiceValidationError.
    """
    description: str
    quantity: Decimal
    unit: Unit
    unit_price: Decimal
    vat_rate: VatRate
    sort_order: int = 0

    net_amount: Decimal = field(init=False, default=ZERO)
    vat_amount: Decimal = field(init=False, default=ZERO)
    gross_amount: Decimal = field(init=False, default=ZERO)

    def __post_init__(self) -> None:
        description = (self.description or "").strip()
        if not description:
            raise InvoiceValidationError("Item description must not be empty")
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise InvoiceValidationError(
                f"Item description must be at most {MAX_DESCRIPTION_LENGTH} characters"
            )

        quantity = to_scaled(self.quantity, QUANTITY_SCALE, "quantity")
        if quantity <= 0:
            raise InvoiceValidationError(f"Quantity must be positive, got {quantity}")

        unit_price = to_scaled(self.unit_price, MONEY_SCALE, "unit_price")
        if unit_price < 0:
            raise InvoiceValidationError(f"Unit price must not be negative, got {unit_price}")

        if self.sort_order < 0:
            raise InvoiceValidationError(f"Sort order must not be negative, got {self.sort_order}")

        vat_rate = VatRate.parse(self.vat_rate)
        totals = compute_item(quantity, unit_price, vat_rate)
        if totals.gross > MAX_AMOUNT:
            raise InvoiceValidationError(f"Item amount exceeds {MAX_AMOUNT}")

        values = {
            "description": description,
            "quantity": quantity,
            "unit": Unit.parse(self.unit),
            "unit_price": unit_price,
            "vat_rate": vat_rate,
            "net_amount": totals.net,
            "vat_amount": totals.vat,
            "gross_amount": totals.gross,
        }
        for name, value in values.items():
            object.__setattr__(self, name, value)

    @property
    def display(self) -> str:
        """e.g. 'Consulting (2.000 godz. x 150.00, VAT 23.00%)'"""
        return (
            f"{self.description} ({self.quantity} {self.unit.value} x {self.unit_price}, "
            f"VAT {self.vat_rate.value}%)"
        )


@dataclass
class Invoice:
    """
    A sales invoice issued to a customer.

    Totals are derived from the items; use replace_items() or
    recalculate_totals() rather than assigning them.
    """
    number: str
    issue_date: date
    sale_date: date
    customer_id: int
    due_date: date | None = None
    currency: Currency = Currency.PLN
    payment_method: PaymentMethod | None = None
    status: InvoiceStatus = InvoiceStatus.ISSUED
    is_paid: bool = False
    paid_at: datetime | None = None
    notes: str | None = None
    items: list[InvoiceItem] = field(default_factory=list)

    subtotal: Decimal = ZERO
    vat_amount: Decimal = ZERO
    total: Decimal = ZERO

    deleted_at: datetime | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    id: int | None = None

    def __post_init__(self) -> None:
        for name in ("number", "issue_date", "sale_date", "customer_id"):
            if getattr(self, name) is None:
                raise InvoiceValidationError(f"{name} is required", details={"field": name})
        if len(self.number) > MAX_NUMBER_LENGTH:
            raise InvoiceValidationError(
                f"Invoice number must be at most {MAX_NUMBER_LENGTH} characters"
            )
        if self.notes is not None and len(self.notes) > MAX_NOTES_LENGTH:
            raise InvoiceValidationError(
                f"Notes must be at most {MAX_NOTES_LENGTH} characters"
            )
        self.currency = Currency.parse(self.currency)
        if not isinstance(self.status, InvoiceStatus):
            try:
                self.status = InvoiceStatus(self.status)
            except ValueError:
                raise InvoiceValidationError(f"Invalid status: {self.status}") from None
        if isinstance(self.payment_method, str):
            try:
                self.payment_method = PaymentMethod(self.payment_method)
            except ValueError:
                raise InvoiceValidationError(
                    f"Invalid payment method: {self.payment_method}"
                ) from None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def replace_items(self, items: Iterable[InvoiceItem]) -> InvoiceTotals:
        """
        Replace the whole item list and recompute totals.

        Items are kept ordered by sort_order (stable for equal values).
        """
        self.items = sorted(items, key=lambda item: item.sort_order)
        return self.recalculate_totals()

    def recalculate_totals(self) -> InvoiceTotals:
        totals = compute_invoice_totals(self.items)
        self.subtotal = totals.subtotal
        self.vat_amount = totals.vat_amount
        self.total = totals.total
        self.touch()
        return totals
