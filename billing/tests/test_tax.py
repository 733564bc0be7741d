import random
from decimal import Decimal

import pytest

from billing.exceptions import InvalidInput
from billing.services.tax import (
    BillableItem,
    calculate_exclusive_tax,
    calculate_inclusive_tax,
    format_inr,
    generate_tax_breakdown,
    get_standard_gst_rate,
    round_money,
    split_gst,
)


def item(qty, price, rate, inclusive, description='item'):
    return BillableItem(description=description, quantity=qty, unit_price=Decimal(price),
                        tax_rate=Decimal(rate), is_tax_inclusive=inclusive)


def test_inclusive_tax_recovers_base_from_mrp():
    r = calculate_inclusive_tax(100, '0.12')
    assert r.base_amount == Decimal('89.29')
    assert r.tax_amount == Decimal('10.71')
    assert r.total == Decimal('100')
    assert r.is_tax_inclusive is True


def test_inclusive_tax_zero_rate_returns_mrp_as_base():
    r = calculate_inclusive_tax(Decimal('45.50'), 0)
    assert r.base_amount == Decimal('45.50')
    assert r.tax_amount == 0
    assert r.total == Decimal('45.50')


def test_exclusive_tax_adds_on_top():
    r = calculate_exclusive_tax(500, '0.18')
    assert r.base_amount == Decimal('500')
    assert r.tax_amount == Decimal('90.00')
    assert r.total == Decimal('590.00')
    assert r.is_tax_inclusive is False


def test_exclusive_tax_rounds_half_up():
    # 10.25 * 0.18 = 1.845
    r = calculate_exclusive_tax('10.25', '0.18')
    assert r.tax_amount == Decimal('1.85')
    assert r.total == Decimal('12.10')


def test_exclusive_total_may_drift_one_paisa_from_parts():
    r = calculate_exclusive_tax('10.005', '0.18')
    assert r.base_amount == Decimal('10.005')
    assert r.tax_amount == Decimal('1.80')
    assert r.total == Decimal('11.81')
    # total is rounded on its own, not rebuilt from the rounded tax
    assert r.base_amount + r.tax_amount == Decimal('11.805')
    assert r.base_amount + r.tax_amount != r.total


def test_float_rates_are_taken_at_face_value():
    assert calculate_exclusive_tax(100, 0.12).tax_amount == Decimal('12.00')


@pytest.mark.parametrize('fn', [calculate_inclusive_tax, calculate_exclusive_tax])
def test_negative_amount_rejected(fn):
    with pytest.raises(InvalidInput) as exc:
        fn(-1, '0.12')
    assert 'negative' in str(exc.value.detail)


@pytest.mark.parametrize('rate', ['-0.01', '1.01'])
def test_out_of_range_rate_rejected(rate):
    with pytest.raises(InvalidInput) as exc:
        calculate_exclusive_tax(100, rate)
    assert 'between 0 and 1' in str(exc.value.detail)


def test_non_numeric_amount_rejected():
    with pytest.raises(InvalidInput):
        calculate_inclusive_tax('abc', '0.12')
    with pytest.raises(InvalidInput):
        calculate_inclusive_tax(True, '0.12')


def test_mixed_bill_breakdown():
    b = generate_tax_breakdown([
        item(15, '100', '0.12', True),
        item(1, '500', '0.18', False),
        item(1, '300', '0.18', False),
    ])
    assert b.subtotal == Decimal('2139.35')
    assert b.total_tax == Decimal('304.65')
    assert b.grand_total == Decimal('2444.00')
    assert [line.line_total for line in b.items] == [Decimal('1500.00'), Decimal('590.00'), Decimal('354.00')]


def test_breakdown_totals_are_sums_of_lines():
    b = generate_tax_breakdown([
        item(3, '33.33', '0.05', True),
        item(7, '12.99', '0.12', True),
        item(2, '149.50', '0.18', False),
    ])
    assert b.subtotal == sum(line.base_amount for line in b.items)
    assert b.total_tax == sum(line.tax_amount for line in b.items)
    assert b.grand_total == sum(line.line_total for line in b.items)


def test_breakdown_preserves_input_order():
    names = ['c', 'a', 'b']
    b = generate_tax_breakdown([item(1, '10', '0.18', False, d) for d in names])
    assert [line.description for line in b.items] == names


def test_empty_breakdown_is_zero():
    b = generate_tax_breakdown([])
    assert b.items == []
    assert b.subtotal == 0 and b.total_tax == 0 and b.grand_total == 0


@pytest.mark.parametrize('qty', [0, -1, 1.5])
def test_breakdown_rejects_bad_quantity(qty):
    with pytest.raises(InvalidInput):
        generate_tax_breakdown([item(1, '10', '0.18', False), item(qty, '10', '0.18', False)])


def test_intra_state_split_halves_independently():
    s = split_gst(Decimal('10.71'), False)
    assert s.cgst == Decimal('5.36')
    assert s.sgst == Decimal('5.36')
    assert s.igst == 0


def test_inter_state_split_passes_through():
    s = split_gst(Decimal('304.65'), True)
    assert (s.cgst, s.sgst, s.igst) == (0, 0, Decimal('304.65'))


def test_split_rejects_negative_tax():
    with pytest.raises(InvalidInput):
        split_gst(-1, False)


def test_standard_rates():
    assert get_standard_gst_rate('ESSENTIAL_MEDICINE') == Decimal('0.05')
    assert get_standard_gst_rate('MEDICINE') == Decimal('0.12')
    assert get_standard_gst_rate('SERVICE') == Decimal('0.18')
    assert get_standard_gst_rate('SOMETHING_ELSE') == Decimal('0.18')


def test_round_money_half_up():
    assert round_money('2.345') == Decimal('2.35')
    assert round_money('-2.345') == Decimal('-2.35')


@pytest.mark.parametrize('amount,expected', [
    ('0', '₹0.00'),
    ('354', '₹354.00'),
    ('2444', '₹2,444.00'),
    ('123456.789', '₹1,23,456.79'),
    ('12345678', '₹1,23,45,678.00'),
])
def test_format_inr(amount, expected):
    assert format_inr(Decimal(amount)) == expected


@pytest.mark.parametrize('amount', ['0', '45.50', '1000'])
def test_zero_rate_leaves_amount_untouched(amount):
    for fn in (calculate_inclusive_tax, calculate_exclusive_tax):
        r = fn(Decimal(amount), 0)
        assert (r.base_amount, r.tax_amount, r.total) == (Decimal(amount), 0, Decimal(amount))


def test_inclusive_base_round_trips_to_mrp():
    rng = random.Random(20240401)
    rates = [Decimal('0.05'), Decimal('0.12'), Decimal('0.18'), Decimal('0.28'), Decimal('1')]
    for _ in range(2000):
        mrp = Decimal(rng.randint(0, 10_000_000)) / 100
        rate = rng.choice(rates)
        r = calculate_inclusive_tax(mrp, rate)
        assert abs(r.base_amount * (1 + rate) - mrp) <= Decimal('0.01')


def test_intra_state_halves_stay_within_one_paisa():
    rng = random.Random(7)
    for _ in range(2000):
        tax = Decimal(rng.randint(0, 1_000_000)) / 100
        s = split_gst(tax, False)
        assert abs(s.cgst + s.sgst - tax) <= Decimal('0.01')
