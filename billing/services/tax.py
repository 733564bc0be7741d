"""
GST tax calculator.

Two pricing conventions meet on a hospital bill:

* tax-inclusive prices (pharmacy MRP): the sticker price already contains
  GST, so the taxable base is recovered as ``mrp / (1 + rate)``;
* tax-exclusive prices (consultation, lab tests): GST is added on top as
  ``price * rate``.

Everything here is pure and stateless.  Amounts and rates are
:class:`~decimal.Decimal`; inputs are converted through ``str`` so that a
float such as ``0.12`` becomes exactly ``Decimal("0.12")``.  Every rounding
point quantizes to paise with ``ROUND_HALF_UP``.

Rounding points are independent on purpose: an exclusive ``total`` may be
one paisa away from ``base_amount + tax_amount``, and a CGST/SGST split may
be one paisa away from the tax it splits.  Printed bills depend on these
exact figures, so they must not be "reconciled" here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List

from billing.exceptions import InvalidInput

CENT = Decimal("0.01")
ZERO = Decimal("0")
ONE = Decimal("1")

STANDARD_GST_RATES = {
    'ESSENTIAL_MEDICINE': Decimal("0.05"),
    'MEDICINE': Decimal("0.12"),
    'SERVICE': Decimal("0.18"),
}
DEFAULT_GST_RATE = STANDARD_GST_RATES['SERVICE']


@dataclass(frozen=True)
class TaxBreakdown:
    base_amount: Decimal
    tax_amount: Decimal
    total: Decimal
    is_tax_inclusive: bool
    tax_rate: Decimal


@dataclass(frozen=True)
class BillableItem:
    """One line to be billed.

    ``unit_price`` is the MRP per unit when ``is_tax_inclusive`` is true and
    the pre-tax price per unit otherwise.
    """
    description: str
    quantity: int
    unit_price: Decimal
    tax_rate: Decimal
    is_tax_inclusive: bool


@dataclass(frozen=True)
class LineBreakdown:
    description: str
    quantity: int
    unit_price: Decimal
    tax_rate: Decimal
    is_tax_inclusive: bool
    amount: Decimal
    base_amount: Decimal
    tax_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class BillBreakdown:
    items: List[LineBreakdown] = field(default_factory=list)
    subtotal: Decimal = ZERO
    total_tax: Decimal = ZERO
    grand_total: Decimal = ZERO


@dataclass(frozen=True)
class GSTSplit:
    cgst: Decimal
    sgst: Decimal
    igst: Decimal


def to_decimal(value) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInput(f'Not a number: {value!r}')
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidInput(f'Not a number: {value!r}')
    if not value.is_finite():
        raise InvalidInput(f'Not a number: {value!r}')
    return value


def round_money(value) -> Decimal:
    """Round to two decimal places, halves away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _validate(amount, tax_rate) -> tuple[Decimal, Decimal]:
    amount = to_decimal(amount)
    tax_rate = to_decimal(tax_rate)
    if amount < 0:
        raise InvalidInput('Amount cannot be negative')
    if tax_rate < 0 or tax_rate > 1:
        raise InvalidInput('Tax rate must be between 0 and 1')
    return amount, tax_rate


def calculate_inclusive_tax(mrp, tax_rate) -> TaxBreakdown:
    """Split a tax-inclusive price into base and tax.

    ``total`` is the MRP itself, unrounded: inclusive tax never adds to the
    sticker price.

    >>> calculate_inclusive_tax(100, "0.12").base_amount
    Decimal('89.29')
    """
    mrp, tax_rate = _validate(mrp, tax_rate)
    if tax_rate == 0:
        return TaxBreakdown(base_amount=mrp, tax_amount=ZERO, total=mrp,
                            is_tax_inclusive=True, tax_rate=tax_rate)

    base_amount = mrp / (ONE + tax_rate)
    tax_amount = mrp - base_amount
    return TaxBreakdown(
        base_amount=round_money(base_amount),
        tax_amount=round_money(tax_amount),
        total=mrp,
        is_tax_inclusive=True,
        tax_rate=tax_rate,
    )


def calculate_exclusive_tax(base_price, tax_rate) -> TaxBreakdown:
    """Add tax on top of a pre-tax price.

    ``tax_amount`` and ``total`` are both rounded from the unrounded
    intermediate; ``base_amount`` is passed through untouched.
    """
    base_price, tax_rate = _validate(base_price, tax_rate)
    tax_amount = base_price * tax_rate
    total = base_price + tax_amount
    return TaxBreakdown(
        base_amount=base_price,
        tax_amount=round_money(tax_amount),
        total=round_money(total),
        is_tax_inclusive=False,
        tax_rate=tax_rate,
    )


def _validate_item(item) -> None:
    quantity = item.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidInput(f'Quantity must be a positive integer: {item.description}')
    _validate(item.unit_price, item.tax_rate)


def generate_tax_breakdown(items: Iterable[BillableItem]) -> BillBreakdown:
    """Compute per-line and whole-bill tax figures.

    Each line is computed on the unit price, scaled by quantity and rounded;
    the bill totals are sums of the rounded lines, so the grand total always
    equals the sum of the printed line totals.  Output order follows input
    order.  Any item accepting the ``quantity``/``unit_price``/``tax_rate``/
    ``is_tax_inclusive``/``description`` attributes may be passed.
    """
    items = list(items)
    for item in items:
        _validate_item(item)

    lines: list[LineBreakdown] = []
    subtotal = ZERO
    total_tax = ZERO
    grand_total = ZERO

    for item in items:
        unit_price = to_decimal(item.unit_price)
        amount = item.quantity * unit_price
        if item.is_tax_inclusive:
            unit = calculate_inclusive_tax(unit_price, item.tax_rate)
        else:
            unit = calculate_exclusive_tax(unit_price, item.tax_rate)

        base_amount = round_money(unit.base_amount * item.quantity)
        tax_amount = round_money(unit.tax_amount * item.quantity)
        if item.is_tax_inclusive:
            line_total = round_money(amount)
        else:
            line_total = round_money(base_amount + tax_amount)

        lines.append(LineBreakdown(
            description=item.description,
            quantity=item.quantity,
            unit_price=unit_price,
            tax_rate=unit.tax_rate,
            is_tax_inclusive=item.is_tax_inclusive,
            amount=amount,
            base_amount=base_amount,
            tax_amount=tax_amount,
            line_total=line_total,
        ))
        subtotal += base_amount
        total_tax += tax_amount
        grand_total += line_total

    return BillBreakdown(
        items=lines,
        subtotal=round_money(subtotal),
        total_tax=round_money(total_tax),
        grand_total=round_money(grand_total),
    )


def split_gst(tax_amount, is_inter_state: bool) -> GSTSplit:
    """Split GST into CGST + SGST (intra-state) or IGST (inter-state).

    The inter-state amount is passed through as given; intra-state halves
    are rounded independently.
    """
    tax_amount = to_decimal(tax_amount)
    if tax_amount < 0:
        raise InvalidInput('Amount cannot be negative')
    if is_inter_state:
        return GSTSplit(cgst=ZERO, sgst=ZERO, igst=tax_amount)
    half = tax_amount / 2
    return GSTSplit(cgst=round_money(half), sgst=round_money(half), igst=ZERO)


def get_standard_gst_rate(item_type) -> Decimal:
    """GST rate for an item class; unknown classes are taxed as services."""
    return STANDARD_GST_RATES.get(item_type, DEFAULT_GST_RATE)


def format_inr(amount) -> str:
    """Format an amount as Indian Rupees, e.g. ``₹1,23,456.78``."""
    value = round_money(amount)
    sign = '-' if value < 0 else ''
    whole, _, fraction = f"{abs(value):.2f}".partition('.')
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ','.join(groups + [tail])
    return f"{sign}₹{whole}.{fraction}"
