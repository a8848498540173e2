"""
Value types shared by the invoicing components.

Money, quantities and rates are plain `Decimal` values held at a fixed
scale. Every arithmetic result is brought back to its scale immediately
after the operation, never at the end of a chain: the cent-level results
depend on it.

Design Decisions:
- Decimal for all amounts; binary floats are rejected outright
- Truncation toward zero (ROUND_DOWN) is the rounding mode for every step,
  so 3.33 x 33.33 = 110.9889 gives 110.98
- Closed value sets (VAT rate, unit, currency, status) are Enums whose
  `parse` classmethod turns bad input into a typed error at construction
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from enum import Enum

from .errors import InvalidCurrency, InvalidUnit, InvalidVatRate, InvoiceValidationError

MONEY_SCALE = 2
RATE_SCALE = 4
QUANTITY_SCALE = 3

ROUNDING = ROUND_DOWN

ZERO = Decimal("0.00")

_QUANTUM = {scale: Decimal(1).scaleb(-scale) for scale in (MONEY_SCALE, QUANTITY_SCALE, RATE_SCALE)}


def to_decimal(value: Decimal | str | int) -> Decimal:
    """
    Convert a user-supplied value to Decimal.

    Raises:
        TypeError: For floats (and anything else that is not str/int/Decimal)
        InvoiceValidationError: For strings that are not numbers
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Amounts must not be {type(value).__name__}, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value.strip() if isinstance(value, str) else value)
        except InvalidOperation:
            raise InvoiceValidationError(f"Not a decimal number: {value!r}") from None
    else:
        raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")
    if not result.is_finite():
        raise InvoiceValidationError(f"Not a finite number: {value!r}")
    return result


def quantize(value: Decimal, scale: int) -> Decimal:
    """
    Bring a value to exactly `scale` decimal places.

    Raises:
        InvoiceValidationError: If the value has too many digits to be
            represented at that scale
    """
    try:
        return value.quantize(_QUANTUM[scale], rounding=ROUNDING)
    except InvalidOperation:
        raise InvoiceValidationError(
            f"Value is too large: {value}", details={"value": str(value)}
        ) from None


def round2(value: Decimal) -> Decimal:
    """Round to the monetary scale (2 places)."""
    return quantize(value, MONEY_SCALE)


def round4(value: Decimal) -> Decimal:
    """Round to the rate scale (4 places)."""
    return quantize(value, RATE_SCALE)


def to_scaled(value: Decimal | str | int, scale: int, name: str = "value") -> Decimal:
    """
    Parse a value that must already fit within `scale` decimal places.

    Unlike `quantize`, excess precision is an error rather than silently
    dropped: 1.005 is not a valid unit price.
    """
    result = to_decimal(value)
    scaled = quantize(result, scale)
    if scaled != result:
        raise InvoiceValidationError(
            f"{name} must have at most {scale} decimal places, got {value}"
        )
    return scaled


class InvoiceStatus(Enum):
    """Lifecycle status of an invoice."""
    DRAFT = "draft"
    ISSUED = "issued"
    PAID = "paid"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class VatRate(Enum):
    """Polish VAT rates accepted on invoice lines (percent, 2 decimals)."""
    ZERO = "0.00"
    REDUCED_5 = "5.00"
    REDUCED_8 = "8.00"
    STANDARD = "23.00"

    @property
    def percentage(self) -> Decimal:
        return Decimal(self.value)

    @property
    def fraction(self) -> Decimal:
        """Rate as a fraction at 4 decimal places (23.00 -> 0.2300)."""
        return round4(self.percentage / 100)

    @classmethod
    def allowed(cls) -> list[str]:
        return [rate.value for rate in cls]

    @classmethod
    def parse(cls, value: "VatRate | Decimal | str | int") -> "VatRate":
        """
        Resolve a VAT rate from any numerically equal representation.

        "23", "23.00" and Decimal("23.0") all resolve to STANDARD;
        15.00 or 23.001 raise InvalidVatRate.
        """
        if isinstance(value, cls):
            return value
        try:
            number = to_decimal(value)
        except (TypeError, InvoiceValidationError):
            raise InvalidVatRate(value, cls.allowed()) from None
        for rate in cls:
            if rate.percentage == number:
                return rate
        raise InvalidVatRate(value, cls.allowed())


class Unit(Enum):
    """Units of measure accepted on invoice lines."""
    PIECE = "szt."
    KILOGRAM = "kg"
    METRE = "m"
    SQUARE_METRE = "m2"
    CUBIC_METRE = "m3"
    HOUR = "godz."
    DAY = "dzień"
    LITRE = "l"
    TONNE = "t"
    KILOMETRE = "km"
    KILOWATT_HOUR = "kWh"
    SERVICE = "usł."
    SET = "kpl."
    PACKAGE = "op."
    RUNNING_METRE = "m.b."

    @classmethod
    def allowed(cls) -> list[str]:
        return [unit.value for unit in cls]

    @classmethod
    def parse(cls, value: "Unit | str") -> "Unit":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidUnit(value, cls.allowed()) from None


class Currency(Enum):
    """ISO 4217 currencies an invoice may be issued in. Never converted."""
    PLN = "PLN"
    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"
    CHF = "CHF"
    CZK = "CZK"
    SEK = "SEK"
    NOK = "NOK"
    DKK = "DKK"

    @classmethod
    def allowed(cls) -> list[str]:
        return [currency.value for currency in cls]

    @classmethod
    def parse(cls, value: "Currency | str") -> "Currency":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidCurrency(value, cls.allowed()) from None


class PaymentMethod(Enum):
    """How the customer settles the invoice."""
    DIGITAL_WALLETS = "digital_wallets"
    CASH = "cash"
    WIRE_TRANSFERS = "wire_transfers"
    AUTOMATIC_PAYMENTS = "automatic_payments"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()
