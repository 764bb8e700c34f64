"""
Purchase order money arithmetic.

All amounts are Decimal and rounded ROUND_HALF_UP to two places. Tax is
rounded per line, line totals are rounded per line, and the document total
is the rounded sum of the rounded line totals, so the stored total can always
be recomputed from the stored lines.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, NamedTuple

TWO_PLACES = Decimal('0.01')
HUNDRED = Decimal('100')


class LineAmounts(NamedTuple):
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


class DocumentTotals(NamedTuple):
    lines: List[LineAmounts]
    subtotal: Decimal
    tax_total: Decimal
    total_amount: Decimal


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Any) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def calculate_line(quantity: Any, unit_price: Any, tax_percentage: Any = 0) -> LineAmounts:
    """subtotal = qty x price; tax = subtotal x pct / 100; total = subtotal + tax"""
    subtotal = to_decimal(quantity) * to_decimal(unit_price)
    tax_amount = round2(subtotal * to_decimal(tax_percentage or 0) / HUNDRED)
    return LineAmounts(
        subtotal=round2(subtotal),
        tax_amount=tax_amount,
        total=round2(subtotal + tax_amount),
    )


def calculate_totals(items: Iterable[Any]) -> DocumentTotals:
    """Totals for objects exposing quantity, unit_price and tax_percentage"""
    lines = [
        calculate_line(item.quantity, item.unit_price, item.tax_percentage)
        for item in items
    ]
    return DocumentTotals(
        lines=lines,
        subtotal=round2(sum((line.subtotal for line in lines), Decimal('0'))),
        tax_total=round2(sum((line.tax_amount for line in lines), Decimal('0'))),
        total_amount=round2(sum((line.total for line in lines), Decimal('0'))),
    )
