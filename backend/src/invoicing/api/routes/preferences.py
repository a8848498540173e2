"""
System preference endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from invoicing.api.dependencies import get_db
from invoicing.api.schemas import ErrorResponse, NumberFormatRequest, NumberFormatResponse
from invoicing.services import PreferenceService

router = APIRouter(prefix="/preferences", tags=["preferences"])


def get_preference_service(session: Annotated[Session, Depends(get_db)]) -> PreferenceService:
    return PreferenceService(session)


@router.get("/invoice-number-format", response_model=NumberFormatResponse)
def get_number_format(
    service: Annotated[PreferenceService, Depends(get_preference_service)],
) -> NumberFormatResponse:
    return NumberFormatResponse(template=service.get_number_format())


@router.put(
    "/invoice-number-format",
    response_model=NumberFormatResponse,
    responses={422: {"model": ErrorResponse, "description": "Template lacks a placeholder"}},
)
def set_number_format(
    request: NumberFormatRequest,
    service: Annotated[PreferenceService, Depends(get_preference_service)],
) -> NumberFormatResponse:
    """
    Change the invoice number template.

    The template must contain {year}, {month} and {number} (or {number:N}).
    """
    return NumberFormatResponse(template=service.set_number_format(request.template))
