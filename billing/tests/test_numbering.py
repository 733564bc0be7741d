from decimal import Decimal

import pytest

from billing.models import Bill
from billing.services.numbering import current_year, format_bill_number, issued_for_year, next_bill_number

pytestmark = pytest.mark.django_db


def make_bill(visit, number, sequence):
    return Bill.objects.create(visit=visit, bill_number=number, sequence=sequence,
                               total=Decimal('100.00'), balance=Decimal('100.00'))


def test_format_pads_sequence():
    assert format_bill_number(2024, 7) == 'HMS/2024/0007'
    assert format_bill_number(2024, 12345) == 'HMS/2024/12345'


def test_first_number_of_year():
    assert next_bill_number(2024) == ('HMS/2024/0001', 1)


def test_next_number_follows_highest_sequence(make_visit):
    make_bill(make_visit(), 'HMS/2024/0002', 2)
    make_bill(make_visit(), 'HMS/2024/0005', 5)
    assert next_bill_number(2024) == ('HMS/2024/0006', 6)


def test_sequence_restarts_each_year(make_visit):
    make_bill(make_visit(), 'HMS/2023/0042', 42)
    assert next_bill_number(2024) == ('HMS/2024/0001', 1)


def test_custom_prefix_is_scoped(make_visit):
    make_bill(make_visit(), 'HMS/2024/0009', 9)
    assert next_bill_number(2024, prefix='OPD') == ('OPD/2024/0001', 1)


def test_defaults_to_local_year():
    number, _ = next_bill_number()
    assert number == f'HMS/{current_year()}/0001'


def test_prefix_from_settings(settings):
    settings.BILL_NUMBER_PREFIX = 'CITY'
    assert next_bill_number(2024) == ('CITY/2024/0001', 1)


def test_locking_read_allocates_the_same_number(make_visit):
    make_bill(make_visit(), 'HMS/2024/0005', 5)
    assert next_bill_number(2024, for_update=True) == ('HMS/2024/0006', 6)


def test_locking_read_takes_row_locks():
    assert issued_for_year(2024, for_update=True).query.select_for_update
    assert not issued_for_year(2024).query.select_for_update
