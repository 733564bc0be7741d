"""
Year-scoped bill numbers: ``{PREFIX}/{year}/{sequence:04d}``.

Allocation reads the highest sequence already issued for the year and adds
one.  On its own that read is racy; callers must insert inside a savepoint
and retry on ``IntegrityError`` (``Bill.bill_number`` is unique), which is
what :func:`billing.services.bills.generate_bill` does.

Retries must pass ``for_update=True``.  A plain read inside a REPEATABLE READ
transaction (the MySQL default) keeps returning the snapshot taken before
the competing bill committed, so the same number would be handed out again
on every attempt.  A locking read always sees the latest committed rows.
"""
from __future__ import annotations

from typing import Optional

from django.conf import settings
from django.utils import timezone

from billing.models import Bill


def current_year() -> int:
    return timezone.localdate().year


def year_prefix(year: int, prefix: Optional[str] = None) -> str:
    return f"{prefix or settings.BILL_NUMBER_PREFIX}/{year}/"


def format_bill_number(year: int, sequence: int, prefix: Optional[str] = None) -> str:
    return f"{year_prefix(year, prefix)}{sequence:04d}"


def issued_for_year(year: int, prefix: Optional[str] = None, *, for_update: bool = False):
    qs = Bill.objects.filter(bill_number__startswith=year_prefix(year, prefix))
    if for_update:
        qs = qs.select_for_update()
    return qs


def next_bill_number(year: Optional[int] = None, prefix: Optional[str] = None, *,
                     for_update: bool = False) -> tuple[str, int]:
    """Return ``(bill_number, sequence)`` for the next bill of ``year``."""
    year = year or current_year()
    # ordered LIMIT 1 instead of Max(): aggregates cannot take FOR UPDATE
    latest = (
        issued_for_year(year, prefix, for_update=for_update)
        .order_by('-sequence')
        .values_list('sequence', flat=True)
        .first()
    )
    sequence = (latest or 0) + 1
    return format_bill_number(year, sequence, prefix), sequence
