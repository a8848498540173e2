"""
Tests for the shared value types.
"""

from decimal import Decimal

import pytest

from invoicing.domain.errors import (
    InvalidCurrency,
    InvalidUnit,
    InvalidVatRate,
    InvoiceValidationError,
)
from invoicing.domain.values import (
    Currency,
    InvoiceStatus,
    PaymentMethod,
    Unit,
    VatRate,
    round2,
    round4,
    to_decimal,
    to_scaled,
)


class TestToDecimal:
    """Tests for converting user input to Decimal."""

    def test_accepts_str_int_and_decimal(self):
        assert to_decimal("12.50") == Decimal("12.50")
        assert to_decimal(" 3 ") == Decimal("3")
        assert to_decimal(7) == Decimal("7")
        assert to_decimal(Decimal("1.1")) == Decimal("1.1")

    def test_rejects_float(self):
        with pytest.raises(TypeError):
            to_decimal(0.1)

    def test_rejects_bool(self):
        with pytest.raises(TypeError):
            to_decimal(True)

    @pytest.mark.parametrize("value", ["abc", "", "1,5"])
    def test_rejects_non_numeric_strings(self, value):
        with pytest.raises(InvoiceValidationError):
            to_decimal(value)

    @pytest.mark.parametrize("value", ["NaN", "Infinity"])
    def test_rejects_non_finite(self, value):
        with pytest.raises(InvoiceValidationError):
            to_decimal(value)


class TestRounding:
    """Every step truncates toward zero."""

    def test_round2_truncates(self):
        assert round2(Decimal("110.9889")) == Decimal("110.98")
        assert round2(Decimal("0.999")) == Decimal("0.99")

    def test_round2_pads_scale(self):
        assert str(round2(Decimal("5"))) == "5.00"

    def test_round4(self):
        assert round4(Decimal("0.23")) == Decimal("0.2300")
        assert round4(Decimal("0.123456")) == Decimal("0.1234")

    def test_to_scaled_rejects_excess_precision(self):
        with pytest.raises(InvoiceValidationError, match="at most 2 decimal places"):
            to_scaled("1.005", 2, "unit_price")

    def test_to_scaled_normalizes(self):
        assert str(to_scaled("2", 3)) == "2.000"


class TestVatRate:
    """Tests for the closed set of VAT rates."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("23", VatRate.STANDARD),
            ("23.00", VatRate.STANDARD),
            (Decimal("8.0"), VatRate.REDUCED_8),
            (5, VatRate.REDUCED_5),
            ("0", VatRate.ZERO),
        ],
    )
    def test_parse_numerically_equal_values(self, value, expected):
        assert VatRate.parse(value) is expected

    @pytest.mark.parametrize("value", ["15.00", "23.001", "-5", "abc", 23.0])
    def test_parse_rejects_other_values(self, value):
        with pytest.raises(InvalidVatRate) as exc_info:
            VatRate.parse(value)
        assert exc_info.value.details["allowed"] == ["0.00", "5.00", "8.00", "23.00"]

    def test_fraction_has_four_places(self):
        assert VatRate.STANDARD.fraction == Decimal("0.2300")
        assert str(VatRate.REDUCED_5.fraction) == "0.0500"

    def test_invalid_rate_is_a_value_error(self):
        with pytest.raises(ValueError):
            VatRate.parse("7")


class TestUnitAndCurrency:
    def test_unit_parse(self):
        assert Unit.parse("szt.") is Unit.PIECE
        assert Unit.parse(Unit.HOUR) is Unit.HOUR

    def test_unit_parse_rejects_unknown(self):
        with pytest.raises(InvalidUnit):
            Unit.parse("pcs")

    def test_currency_parse(self):
        assert Currency.parse("EUR") is Currency.EUR

    def test_currency_parse_is_case_sensitive(self):
        with pytest.raises(InvalidCurrency):
            Currency.parse("eur")


class TestLabels:
    def test_status_label(self):
        assert InvoiceStatus.CANCELLED.label == "Cancelled"

    def test_payment_method_label(self):
        assert PaymentMethod.WIRE_TRANSFERS.label == "Wire Transfers"


class TestOversizedValues:
    """Values too large for their scale fail with a typed error."""

    def test_quantize_overflow(self):
        with pytest.raises(InvoiceValidationError, match="too large"):
            round2(Decimal("1" + "0" * 27))

    def test_to_scaled_overflow(self):
        with pytest.raises(InvoiceValidationError):
            to_scaled("1" + "0" * 27, 3, "quantity")
