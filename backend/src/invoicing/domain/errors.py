"""
Domain exception types for the invoicing core.

Three families of errors are raised here:
- Rule violations: permanent, user-caused rejections of a status action.
- Invalid input: values outside a closed set or malformed templates.
- Lookup failures: the requested invoice does not exist (or was deleted).

Number collisions and totals mismatches are never raised; they are
recovered locally or reported as data.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .values import InvoiceStatus


class InvoiceError(Exception):
    """Base exception for invoicing domain errors."""

    code = "invoice_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# =============================================================================
# Rule violations
# =============================================================================

class InvoiceRuleViolation(InvoiceError):
    """An action is not permitted for the invoice in its current status."""

    code = "rule_violation"

    def __init__(self, action: str, status: "InvoiceStatus", message: str) -> None:
        super().__init__(message, details={"action": action, "status": status.value})
        self.action = action
        self.status = status


class InvalidTransition(InvoiceRuleViolation):
    """Requested status change is not in the transition table."""

    code = "invalid_transition"

    def __init__(
        self,
        source: "InvoiceStatus",
        target: "InvoiceStatus",
        action: str | None = None,
    ) -> None:
        self.source = source
        self.target = target
        super().__init__(
            action or f"transition to {target.value}",
            source,
            f"Cannot transition invoice from {source.value} to {target.value}",
        )
        self.details["target"] = target.value


class NotEditable(InvoiceRuleViolation):
    code = "not_editable"

    def __init__(self, status: "InvoiceStatus", deleted: bool = False) -> None:
        reason = "it is deleted" if deleted else f"its status is {status.value}"
        super().__init__("edit", status, f"Invoice cannot be edited because {reason}")


class NotDeletable(InvoiceRuleViolation):
    code = "not_deletable"

    def __init__(self, status: "InvoiceStatus") -> None:
        super().__init__(
            "delete", status, f"Cannot delete invoice with status {status.value}"
        )


class AlreadyPaid(InvoiceRuleViolation):
    code = "already_paid"

    def __init__(self, status: "InvoiceStatus") -> None:
        super().__init__(
            "mark_as_paid", status, f"Invoice is already paid (status {status.value})"
        )


# =============================================================================
# Invalid input
# =============================================================================

class InvoiceValidationError(InvoiceError, ValueError):
    """A value does not satisfy the invoice data model constraints."""

    code = "validation_error"


class InvalidVatRate(InvoiceValidationError):
    code = "invalid_vat_rate"

    def __init__(self, value: Any, allowed: list[str]) -> None:
        super().__init__(
            f"Invalid VAT rate: {value}. Allowed rates: {', '.join(allowed)}",
            details={"value": str(value), "allowed": allowed},
        )


class InvalidUnit(InvoiceValidationError):
    code = "invalid_unit"

    def __init__(self, value: Any, allowed: list[str]) -> None:
        super().__init__(
            f"Invalid unit: {value}. Allowed units: {', '.join(allowed)}",
            details={"value": str(value), "allowed": allowed},
        )


class InvalidCurrency(InvoiceValidationError):
    code = "invalid_currency"

    def __init__(self, value: Any, allowed: list[str]) -> None:
        super().__init__(
            f"Invalid currency: {value}. Allowed currencies: {', '.join(allowed)}",
            details={"value": str(value), "allowed": allowed},
        )


class InvalidTemplate(InvoiceValidationError):
    """Invoice number template lacks one or more required placeholders."""

    code = "invalid_template"

    def __init__(self, template: str, missing: list[str]) -> None:
        super().__init__(
            f"Invoice number format must contain {', '.join(missing)} placeholder"
            + ("s" if len(missing) > 1 else ""),
            details={"template": template, "missing": missing},
        )
        self.template = template
        self.missing = missing


# =============================================================================
# Lookup
# =============================================================================

class InvoiceNotFound(InvoiceError):
    code = "not_found"

    def __init__(self, invoice_id: int) -> None:
        super().__init__(f"Invoice {invoice_id} not found", details={"id": invoice_id})
        self.invoice_id = invoice_id
