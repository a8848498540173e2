"""
Invoice endpoints.

Create, read, update, soft-delete and restore invoices, drive their status
workflow, preview numbers and totals, audit stored totals, and list
overdue invoices and dashboard statistics.

Domain errors are not caught here; the handlers registered in main.py
turn them into 404/409/422 responses.
"""

import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from invoicing.api.dependencies import get_db
from invoicing.api.schemas import (
    CalculateRequest,
    CreateInvoiceRequest,
    ErrorResponse,
    InvoiceListResponse,
    InvoiceResponse,
    NextNumberResponse,
    PayInvoiceRequest,
    StatisticsResponse,
    TotalsCheckResponse,
    TotalsResponse,
    UpdateInvoiceRequest,
    invoice_response,
)
from invoicing.domain.calculation import compute_invoice_totals
from invoicing.domain.values import InvoiceStatus
from invoicing.services import InvoiceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["invoices"])

RULE_VIOLATION = {409: {"model": ErrorResponse, "description": "Not allowed in the current status"}}
NOT_FOUND = {404: {"model": ErrorResponse, "description": "Invoice not found"}}


def get_invoice_service(session: Annotated[Session, Depends(get_db)]) -> InvoiceService:
    return InvoiceService(session)


Service = Annotated[InvoiceService, Depends(get_invoice_service)]


@router.get("/next-number", response_model=NextNumberResponse)
def next_invoice_number(
    service: Service,
    issue_date: Annotated[date, Query(alias="date", description="Issue date (YYYY-MM-DD)")],
) -> NextNumberResponse:
    """
    Preview the number the next invoice issued on `date` would receive.

    Nothing is reserved: a concurrent create may still take this number.
    """
    return NextNumberResponse(
        invoice_number=service.next_number(issue_date),
        issue_date=issue_date,
        format=service.numbers.template,
    )


@router.post("/calculate", response_model=TotalsResponse)
def calculate_totals(request: CalculateRequest) -> TotalsResponse:
    """Price a list of items without creating an invoice."""
    items = [item.to_domain() for item in request.items]
    return TotalsResponse.from_domain(compute_invoice_totals(items))


@router.get("/overdue", response_model=InvoiceListResponse)
def list_overdue_invoices(
    service: Service,
    as_of: Annotated[date | None, Query(description="Reference date (defaults to today)")] = None,
) -> InvoiceListResponse:
    """Issued, unpaid invoices past their due date, oldest due date first."""
    invoices = service.overdue_invoices(as_of)
    return InvoiceListResponse(
        invoices=[invoice_response(invoice) for invoice in invoices],
        total=len(invoices),
    )


@router.get("/statistics", response_model=StatisticsResponse)
def invoice_statistics(
    service: Service,
    as_of: Annotated[date | None, Query(description="Reference date for overdue (defaults to today)")] = None,
) -> StatisticsResponse:
    return StatisticsResponse.from_domain(service.statistics(as_of))


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse, "description": "Invalid invoice data"}},
)
def create_invoice(request: CreateInvoiceRequest, service: Service) -> InvoiceResponse:
    """
    Create an invoice.

    The number is generated from the configured template; totals are
    computed from the items. New invoices are ISSUED unless `draft` is set.
    """
    invoice = service.create_invoice(
        issue_date=request.issue_date,
        sale_date=request.sale_date,
        due_date=request.due_date,
        customer_id=request.customer_id,
        currency=request.currency,
        payment_method=request.payment_method,
        notes=request.notes,
        status=InvoiceStatus.DRAFT if request.draft else InvoiceStatus.ISSUED,
        items=[item.to_domain() for item in request.items],
    )
    return invoice_response(invoice)


@router.get("/{invoice_id}", response_model=InvoiceResponse, responses=NOT_FOUND)
def get_invoice(invoice_id: int, service: Service) -> InvoiceResponse:
    return invoice_response(service.get_invoice(invoice_id))


@router.put(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    responses={**NOT_FOUND, **RULE_VIOLATION},
)
def update_invoice(
    invoice_id: int,
    request: UpdateInvoiceRequest,
    service: Service,
) -> InvoiceResponse:
    """
    Update an editable (DRAFT or ISSUED) invoice.

    Only fields present in the body change. A provided `items` list
    replaces all existing items and totals are recomputed.
    """
    changes = request.model_dump(exclude_unset=True, exclude={"items"})
    items = None
    if request.items is not None:
        items = [item.to_domain() for item in request.items]

    invoice = service.update_invoice(invoice_id, items=items, **changes)
    return invoice_response(invoice)


@router.delete(
    "/{invoice_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**NOT_FOUND, **RULE_VIOLATION},
)
def delete_invoice(invoice_id: int, service: Service) -> None:
    """Soft-delete a DRAFT or CANCELLED invoice."""
    service.delete(invoice_id)


@router.post(
    "/{invoice_id}/issue",
    response_model=InvoiceResponse,
    responses={**NOT_FOUND, **RULE_VIOLATION},
)
def issue_invoice(invoice_id: int, service: Service) -> InvoiceResponse:
    return invoice_response(service.issue(invoice_id))


@router.post(
    "/{invoice_id}/pay",
    response_model=InvoiceResponse,
    responses={**NOT_FOUND, **RULE_VIOLATION},
)
def pay_invoice(
    invoice_id: int,
    service: Service,
    request: PayInvoiceRequest | None = None,
) -> InvoiceResponse:
    paid_at = request.paid_at if request else None
    return invoice_response(service.pay(invoice_id, paid_at))


@router.post(
    "/{invoice_id}/cancel",
    response_model=InvoiceResponse,
    responses={**NOT_FOUND, **RULE_VIOLATION},
)
def cancel_invoice(invoice_id: int, service: Service) -> InvoiceResponse:
    return invoice_response(service.cancel(invoice_id))


@router.post("/{invoice_id}/restore", response_model=InvoiceResponse, responses=NOT_FOUND)
def restore_invoice(invoice_id: int, service: Service) -> InvoiceResponse:
    """Undo a soft delete."""
    return invoice_response(service.restore(invoice_id))


@router.get(
    "/{invoice_id}/totals-check",
    response_model=TotalsCheckResponse,
    responses=NOT_FOUND,
)
def check_invoice_totals(invoice_id: int, service: Service) -> TotalsCheckResponse:
    """Reconcile the stored totals against the invoice items."""
    return TotalsCheckResponse.from_domain(invoice_id, service.check_totals(invoice_id))
