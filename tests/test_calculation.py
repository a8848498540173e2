"""
Tests for VAT and totals calculation.
"""

from decimal import Decimal

import pytest

from invoicing.domain.calculation import (
    apply_discount,
    available_vat_rates,
    compute_invoice_totals,
    compute_item,
    format_amount,
    fraction_to_percentage,
    is_valid_vat_rate,
    ksef_summary,
    percentage_to_fraction,
    round_amount,
    validate_totals,
)
from invoicing.domain.errors import InvalidVatRate, InvoiceValidationError
from invoicing.domain.values import Currency, VatRate

from conftest import make_invoice, make_item


class TestComputeItem:
    """Tests for single line amounts."""

    def test_standard_rate(self):
        totals = compute_item("2.000", "100.00", "23.00")

        assert totals.net == Decimal("200.00")
        assert totals.vat == Decimal("46.00")
        assert totals.gross == Decimal("246.00")

    def test_product_is_truncated_not_rounded(self):
        totals = compute_item("3.33", "33.33", "0.00")

        assert totals.net == Decimal("110.98")
        assert totals.vat == Decimal("0.00")
        assert totals.gross == Decimal("110.98")

    def test_vat_is_truncated(self):
        # 10.99 * 0.23 = 2.5277
        totals = compute_item("1", "10.99", "23")
        assert totals.vat == Decimal("2.52")

    def test_gross_is_net_plus_vat(self):
        for quantity, price, rate in [
            ("0.333", "19.99", "8"),
            ("12.5", "3.07", "5"),
            ("7", "1234.56", "23"),
        ]:
            totals = compute_item(quantity, price, rate)
            assert totals.gross == totals.net + totals.vat

    def test_invalid_rate(self):
        with pytest.raises(InvalidVatRate):
            compute_item("1", "10.00", "15")

    def test_oversized_quantity(self):
        with pytest.raises(InvoiceValidationError):
            compute_item("1000000000000000000000000000", "1.00", "23")


class TestComputeInvoiceTotals:
    """Tests for invoice level aggregation."""

    def test_two_rates(self):
        first = make_item("2.000", "100.00", "23.00")
        second = make_item("1.000", "50.00", "8.00")

        assert (first.net_amount, first.vat_amount) == (Decimal("200.00"), Decimal("46.00"))
        assert (second.net_amount, second.vat_amount) == (Decimal("50.00"), Decimal("4.00"))

        totals = compute_invoice_totals([first, second])

        assert totals.subtotal == Decimal("250.00")
        assert totals.vat_amount == Decimal("50.00")
        assert totals.total == Decimal("300.00")

    def test_empty_items(self):
        totals = compute_invoice_totals([])

        assert str(totals.subtotal) == "0.00"
        assert str(totals.vat_amount) == "0.00"
        assert str(totals.total) == "0.00"
        assert totals.breakdown == ()

    def test_breakdown_groups_by_rate_highest_first(self):
        items = [
            make_item("1", "10.00", "8"),
            make_item("1", "100.00", "23"),
            make_item("2", "10.00", "8"),
            make_item("1", "5.00", "0"),
        ]

        totals = compute_invoice_totals(items)

        assert [line.rate for line in totals.breakdown] == [
            VatRate.STANDARD,
            VatRate.REDUCED_8,
            VatRate.ZERO,
        ]
        reduced = totals.breakdown[1]
        assert reduced.net == Decimal("30.00")
        assert reduced.vat == Decimal("2.40")
        assert reduced.gross == Decimal("32.40")

    def test_breakdown_sums_match_totals(self):
        items = [make_item("1.5", "19.99", "23"), make_item("3", "7.77", "5")]
        totals = compute_invoice_totals(items)

        assert sum(line.net for line in totals.breakdown) == totals.subtotal
        assert sum(line.vat for line in totals.breakdown) == totals.vat_amount

    def test_idempotent(self):
        items = [make_item("1.333", "9.99", "23"), make_item("2", "0.01", "8")]
        assert compute_invoice_totals(items) == compute_invoice_totals(items)


class TestValidateTotals:
    """Tests for reconciling stored totals."""

    def test_consistent_invoice_is_valid(self):
        invoice = make_invoice(items=[make_item("2", "100.00", "23")])

        result = validate_totals(invoice)

        assert result.is_valid
        assert result.errors == []
        assert result.calculated.total == Decimal("246.00")

    def test_corrupted_subtotal_reported(self):
        invoice = make_invoice(items=[make_item("2", "100.00", "23"), make_item("1", "50.00", "8")])
        invoice.subtotal = invoice.subtotal + Decimal("0.01")

        result = validate_totals(invoice)

        assert not result.is_valid
        assert len(result.mismatches) == 1
        mismatch = result.mismatches[0]
        assert mismatch.field == "subtotal"
        assert mismatch.stored == Decimal("250.01")
        assert mismatch.calculated == Decimal("250.00")
        assert result.errors == ["Subtotal mismatch: stored 250.01, calculated 250.00"]

    def test_all_fields_checked(self):
        invoice = make_invoice(items=[make_item("1", "10.00", "23")])
        invoice.vat_amount = Decimal("0.00")
        invoice.total = Decimal("10.00")

        result = validate_totals(invoice)

        assert [m.field for m in result.mismatches] == ["vat_amount", "total"]
        assert result.errors[0].startswith("VAT amount mismatch")

    def test_does_not_modify_invoice(self):
        invoice = make_invoice(items=[make_item("1", "10.00", "23")])
        invoice.total = Decimal("1.00")

        validate_totals(invoice)

        assert invoice.total == Decimal("1.00")


class TestHelpers:
    def test_percentage_fraction_conversion(self):
        assert percentage_to_fraction("23.00") == Decimal("0.2300")
        assert fraction_to_percentage("0.23") == Decimal("23.00")

    def test_round_amount(self):
        assert round_amount("10.129") == Decimal("10.12")

    def test_format_amount(self):
        assert format_amount("1234.56", Currency.EUR) == "1 234,56 EUR"
        assert format_amount(Decimal("1234567.8")) == "1 234 567,80 PLN"
        assert format_amount("0") == "0,00 PLN"

    def test_apply_discount(self):
        result = apply_discount("199.99", "15")

        assert result.discount_amount == Decimal("29.99")
        assert result.final_amount == Decimal("170.00")
        assert result.original_amount == Decimal("199.99")

    def test_available_rates(self):
        assert available_vat_rates() == ["0.00", "5.00", "8.00", "23.00"]

    def test_is_valid_vat_rate(self):
        assert is_valid_vat_rate("8")
        assert not is_valid_vat_rate("7")


class TestKsefSummary:
    def test_maps_rates_to_field_codes(self):
        totals = compute_invoice_totals([
            make_item("1", "100.00", "23"),
            make_item("1", "100.00", "8"),
            make_item("1", "100.00", "0"),
        ])

        summary = ksef_summary(totals)

        assert summary == {
            "P_13_1": Decimal("100.00"),
            "P_14_1": Decimal("23.00"),
            "P_13_2": Decimal("100.00"),
            "P_14_2": Decimal("8.00"),
            "P_13_4": Decimal("100.00"),
            "P_15": Decimal("331.00"),
        }

    def test_empty_invoice_has_only_total(self):
        assert ksef_summary(compute_invoice_totals([])) == {"P_15": Decimal("0.00")}
