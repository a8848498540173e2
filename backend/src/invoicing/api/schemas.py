"""
Pydantic schemas for API request/response validation.

These schemas define the contract between frontend and backend.
All monetary values use strings to avoid floating point issues.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from invoicing.domain import status as workflow
from invoicing.domain.calculation import InvoiceTotals, TotalsValidation, format_amount
from invoicing.domain.models import Invoice, InvoiceItem
from invoicing.domain.reporting import InvoiceStatistics
from invoicing.domain.values import Currency, InvoiceStatus, PaymentMethod


# =============================================================================
# Request Schemas
# =============================================================================

class InvoiceItemRequest(BaseModel):
    """One invoice line as submitted by the client."""
    description: str = Field(..., min_length=1, max_length=255)
    quantity: Decimal = Field(..., gt=0, max_digits=10, decimal_places=3)
    unit: str = Field(..., description="Unit of measure, e.g. 'szt.' or 'godz.'")
    unit_price: Decimal = Field(..., ge=0, max_digits=15, decimal_places=2)
    vat_rate: str = Field(..., description="One of 0.00, 5.00, 8.00, 23.00")
    sort_order: int = Field(default=0, ge=0)

    def to_domain(self) -> InvoiceItem:
        return InvoiceItem(
            description=self.description,
            quantity=self.quantity,
            unit=self.unit,
            unit_price=self.unit_price,
            vat_rate=self.vat_rate,
            sort_order=self.sort_order,
        )


class CreateInvoiceRequest(BaseModel):
    """Request to create an invoice. The number is assigned by the server."""
    issue_date: date
    sale_date: date
    due_date: date | None = None
    customer_id: int = Field(..., gt=0)
    currency: Currency = Currency.PLN
    payment_method: PaymentMethod | None = None
    notes: str | None = Field(default=None, max_length=1000)
    draft: bool = Field(default=False, description="Create as DRAFT instead of ISSUED")
    items: list[InvoiceItemRequest] = Field(default_factory=list)


class UpdateInvoiceRequest(BaseModel):
    """Partial update; a given item list replaces all existing items."""
    issue_date: date | None = None
    sale_date: date | None = None
    due_date: date | None = None
    customer_id: int | None = Field(default=None, gt=0)
    currency: Currency | None = None
    payment_method: PaymentMethod | None = None
    notes: str | None = Field(default=None, max_length=1000)
    items: list[InvoiceItemRequest] | None = None


class PayInvoiceRequest(BaseModel):
    paid_at: datetime | None = Field(
        default=None,
        description="Payment timestamp (defaults to now)",
    )


class CalculateRequest(BaseModel):
    """Items to price without storing anything."""
    items: list[InvoiceItemRequest] = Field(default_factory=list)


class NumberFormatRequest(BaseModel):
    template: str = Field(..., min_length=1, max_length=100)


# =============================================================================
# Response Schemas
# =============================================================================

class InvoiceItemResponse(BaseModel):
    description: str
    quantity: str
    unit: str
    unit_price: str
    vat_rate: str
    net_amount: str
    vat_amount: str
    gross_amount: str
    sort_order: int

    @classmethod
    def from_domain(cls, item: InvoiceItem) -> "InvoiceItemResponse":
        return cls(
            description=item.description,
            quantity=str(item.quantity),
            unit=item.unit.value,
            unit_price=str(item.unit_price),
            vat_rate=item.vat_rate.value,
            net_amount=str(item.net_amount),
            vat_amount=str(item.vat_amount),
            gross_amount=str(item.gross_amount),
            sort_order=item.sort_order,
        )


class VatBreakdownResponse(BaseModel):
    rate: str
    net_amount: str
    vat_amount: str
    gross_amount: str


class TotalsResponse(BaseModel):
    """Invoice totals with the per-rate VAT breakdown."""
    subtotal: str
    vat_amount: str
    total: str
    breakdown: list[VatBreakdownResponse] = []

    @classmethod
    def from_domain(cls, totals: InvoiceTotals) -> "TotalsResponse":
        return cls(
            subtotal=str(totals.subtotal),
            vat_amount=str(totals.vat_amount),
            total=str(totals.total),
            breakdown=[
                VatBreakdownResponse(
                    rate=line.rate.value,
                    net_amount=str(line.net),
                    vat_amount=str(line.vat),
                    gross_amount=str(line.gross),
                )
                for line in totals.breakdown
            ],
        )


class InvoiceResponse(BaseModel):
    id: int
    number: str
    issue_date: date
    sale_date: date
    due_date: date | None = None
    customer_id: int
    currency: str
    payment_method: str | None = None
    status: InvoiceStatus
    is_paid: bool
    paid_at: datetime | None = None
    notes: str | None = None
    items: list[InvoiceItemResponse]
    subtotal: str
    vat_amount: str
    total: str
    formatted_total: str
    can_be_edited: bool
    can_be_deleted: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None


class TotalsCheckResponse(BaseModel):
    """Stored totals reconciled against the items."""
    invoice_id: int
    is_valid: bool
    errors: list[str] = []
    calculated: TotalsResponse

    @classmethod
    def from_domain(cls, invoice_id: int, result: TotalsValidation) -> "TotalsCheckResponse":
        return cls(
            invoice_id=invoice_id,
            is_valid=result.is_valid,
            errors=result.errors,
            calculated=TotalsResponse.from_domain(result.calculated),
        )


class InvoiceListResponse(BaseModel):
    invoices: list[InvoiceResponse]
    total: int


class MonthlyStatisticsResponse(BaseModel):
    month: str
    count: int
    amount: str


class StatisticsResponse(BaseModel):
    """Dashboard counts and amounts; cancelled invoices are excluded from sums."""
    total_invoices: int
    paid_invoices: int
    unpaid_invoices: int
    overdue_invoices: int
    draft_invoices: int
    total_amount: str
    paid_amount: str
    unpaid_amount: str
    overdue_amount: str
    monthly: list[MonthlyStatisticsResponse] = []

    @classmethod
    def from_domain(cls, stats: InvoiceStatistics) -> "StatisticsResponse":
        return cls(
            total_invoices=stats.total_invoices,
            paid_invoices=stats.paid_invoices,
            unpaid_invoices=stats.unpaid_invoices,
            overdue_invoices=stats.overdue_invoices,
            draft_invoices=stats.draft_invoices,
            total_amount=str(stats.total_amount),
            paid_amount=str(stats.paid_amount),
            unpaid_amount=str(stats.unpaid_amount),
            overdue_amount=str(stats.overdue_amount),
            monthly=[
                MonthlyStatisticsResponse(month=m.month, count=m.count, amount=str(m.amount))
                for m in stats.monthly
            ],
        )


class NextNumberResponse(BaseModel):
    invoice_number: str
    issue_date: date
    format: str


class NumberFormatResponse(BaseModel):
    template: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    database: str = "connected"


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: str | None = None
    code: str | None = None
    details: dict[str, Any] | None = None


def invoice_response(invoice: Invoice) -> InvoiceResponse:
    """Build the API view of an invoice."""
    return InvoiceResponse(
        id=invoice.id,
        number=invoice.number,
        issue_date=invoice.issue_date,
        sale_date=invoice.sale_date,
        due_date=invoice.due_date,
        customer_id=invoice.customer_id,
        currency=invoice.currency.value,
        payment_method=invoice.payment_method.value if invoice.payment_method else None,
        status=invoice.status,
        is_paid=invoice.is_paid,
        paid_at=invoice.paid_at,
        notes=invoice.notes,
        items=[InvoiceItemResponse.from_domain(item) for item in invoice.items],
        subtotal=str(invoice.subtotal),
        vat_amount=str(invoice.vat_amount),
        total=str(invoice.total),
        formatted_total=format_amount(invoice.total, invoice.currency),
        can_be_edited=workflow.can_be_edited(invoice),
        can_be_deleted=workflow.can_be_deleted(invoice),
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
        deleted_at=invoice.deleted_at,
    )
