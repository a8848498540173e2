"""
VAT and money calculation rules for invoices.

This module contains pure functions that compute line item amounts,
invoice totals and the per-rate VAT breakdown.
No side effects, no I/O - applying the results to an invoice is the
caller's job.

Every product and quotient is rounded to its target scale as soon as it
is produced (money: 2 places, rates: 4 places). Summing or multiplying
unrounded intermediates gives different cents and is treated as a bug.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Protocol

from .values import (
    ZERO,
    Currency,
    VatRate,
    round2,
    round4,
    to_decimal,
)

if TYPE_CHECKING:
    from .models import Invoice


class PricedLine(Protocol):
    """Anything carrying the derived amounts of an invoice line."""
    vat_rate: VatRate
    net_amount: Decimal
    vat_amount: Decimal
    gross_amount: Decimal


@dataclass(frozen=True)
class ItemTotals:
    """Net, VAT and gross amounts of a single line."""
    net: Decimal
    vat: Decimal
    gross: Decimal


@dataclass(frozen=True)
class VatBreakdownLine:
    """Sum of all lines sharing one VAT rate."""
    rate: VatRate
    net: Decimal
    vat: Decimal
    gross: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice-level totals plus the breakdown by VAT rate (highest rate first)."""
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    breakdown: tuple[VatBreakdownLine, ...] = ()


@dataclass(frozen=True)
class TotalsMismatch:
    """A stored invoice total that disagrees with the recomputed one."""
    field: str
    stored: Decimal
    calculated: Decimal

    _LABELS = {"subtotal": "Subtotal", "vat_amount": "VAT amount", "total": "Total"}

    @property
    def message(self) -> str:
        label = self._LABELS.get(self.field, self.field)
        return f"{label} mismatch: stored {self.stored}, calculated {self.calculated}"


@dataclass
class TotalsValidation:
    """
    Result of reconciling stored invoice totals against its items.

    Reported as data: the caller decides whether a mismatch is fatal.
    """
    calculated: InvoiceTotals
    mismatches: list[TotalsMismatch] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.mismatches

    @property
    def errors(self) -> list[str]:
        return [m.message for m in self.mismatches]


@dataclass(frozen=True)
class DiscountResult:
    original_amount: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    final_amount: Decimal


def compute_item(
    quantity: Decimal | str | int,
    unit_price: Decimal | str | int,
    vat_rate: VatRate | Decimal | str | int,
) -> ItemTotals:
    """
    Compute net, VAT and gross amounts for one invoice line.

    net   = round2(quantity * unit_price)
    vat   = round2(net * round4(rate / 100))
    gross = round2(net + vat)

    Raises:
        InvalidVatRate: If the rate is not 0, 5, 8 or 23 percent
    """
    rate = VatRate.parse(vat_rate)
    net = round2(to_decimal(quantity) * to_decimal(unit_price))
    vat = round2(net * rate.fraction)
    gross = round2(net + vat)
    return ItemTotals(net=net, vat=vat, gross=gross)


def compute_invoice_totals(items: Iterable[PricedLine]) -> InvoiceTotals:
    """
    Aggregate line amounts into invoice totals and a VAT-rate breakdown.

    An empty item list yields 0.00 everywhere and no breakdown lines.
    """
    subtotal = ZERO
    vat_amount = ZERO
    groups: dict[VatRate, list[Decimal]] = {}

    for item in items:
        subtotal = round2(subtotal + item.net_amount)
        vat_amount = round2(vat_amount + item.vat_amount)

        sums = groups.setdefault(item.vat_rate, [ZERO, ZERO, ZERO])
        sums[0] = round2(sums[0] + item.net_amount)
        sums[1] = round2(sums[1] + item.vat_amount)
        sums[2] = round2(sums[2] + item.gross_amount)

    breakdown = tuple(
        VatBreakdownLine(rate=rate, net=net, vat=vat, gross=gross)
        for rate, (net, vat, gross) in sorted(
            groups.items(), key=lambda entry: entry[0].percentage, reverse=True
        )
    )

    return InvoiceTotals(
        subtotal=subtotal,
        vat_amount=vat_amount,
        total=round2(subtotal + vat_amount),
        breakdown=breakdown,
    )


def validate_totals(invoice: "Invoice") -> TotalsValidation:
    """
    Recompute totals from the invoice items and compare to the stored ones.

    Comparison is exact at 2 decimal places. Used for reconciliation and
    auditing; nothing on the invoice is corrected.
    """
    calculated = compute_invoice_totals(invoice.items)
    result = TotalsValidation(calculated=calculated)

    for name in ("subtotal", "vat_amount", "total"):
        stored = round2(to_decimal(getattr(invoice, name)))
        expected = getattr(calculated, name)
        if stored != expected:
            result.mismatches.append(
                TotalsMismatch(field=name, stored=stored, calculated=expected)
            )

    return result


def percentage_to_fraction(percentage: Decimal | str | int) -> Decimal:
    """23.00 -> 0.2300"""
    return round4(to_decimal(percentage) / 100)


def fraction_to_percentage(fraction: Decimal | str | int) -> Decimal:
    """0.23 -> 23.00"""
    return round2(to_decimal(fraction) * 100)


def round_amount(amount: Decimal | str | int) -> Decimal:
    """Bring an amount to currency precision."""
    return round2(to_decimal(amount))


def format_amount(amount: Decimal | str | int, currency: Currency | str = Currency.PLN) -> str:
    """
    Format an amount for display, Polish style.

    Example:
        >>> format_amount("1234.56", "EUR")
        '1 234,56 EUR'
    """
    code = currency.value if isinstance(currency, Currency) else currency
    value = to_decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{value:,.2f}".translate(str.maketrans({",": " ", ".": ","}))
    return f"{text} {code}"


def apply_discount(
    original_amount: Decimal | str | int,
    discount_percentage: Decimal | str | int,
) -> DiscountResult:
    """
    Apply a percentage discount to an amount.

    discount = round2(original * round4(percentage / 100))
    final    = round2(original - discount)
    """
    original = to_decimal(original_amount)
    percentage = to_decimal(discount_percentage)
    discount = round2(original * percentage_to_fraction(percentage))
    return DiscountResult(
        original_amount=original,
        discount_percentage=percentage,
        discount_amount=discount,
        final_amount=round2(original - discount),
    )


def available_vat_rates() -> list[str]:
    return VatRate.allowed()


def is_valid_vat_rate(value: Decimal | str | int) -> bool:
    try:
        VatRate.parse(value)
    except ValueError:
        return False
    return True


# Field codes of the Polish structured e-invoice (KSeF) summary section
_KSEF_RATE_FIELDS: dict[VatRate, tuple[str, str | None]] = {
    VatRate.STANDARD: ("P_13_1", "P_14_1"),
    VatRate.REDUCED_8: ("P_13_2", "P_14_2"),
    VatRate.REDUCED_5: ("P_13_3", "P_14_3"),
    VatRate.ZERO: ("P_13_4", None),
}


def ksef_summary(totals: InvoiceTotals) -> dict[str, Decimal]:
    """
    Map invoice totals onto KSeF summary field codes.

    Only rates present on the invoice appear; P_15 (gross total) always does.
    Producing the actual XML is left to the downstream generator.
    """
    summary: dict[str, Decimal] = {}
    for line in totals.breakdown:
        net_field, vat_field = _KSEF_RATE_FIELDS[line.rate]
        summary[net_field] = line.net
        if vat_field is not None:
            summary[vat_field] = line.vat
    summary["P_15"] = totals.total
    return summary

