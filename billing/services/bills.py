"""
Bill assembly.

A visit's billable events are gathered from the clinical records, priced
through :mod:`billing.services.tax` and persisted as one :class:`Bill`
with its lines.  The flow is strictly sequential:

    visit -> unbilled items -> tax breakdown -> bill number -> bill + lines

Generation runs in a single transaction.  The unique constraints on
``Bill.visit`` and ``Bill.bill_number`` are the real guards against
concurrent generation; the checks made here before inserting only give
callers an early, specific error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from billing.exceptions import AlreadyExists, BillNumberConflict, NotFound, NothingToBill
from billing.models import Bill, BillItem, LabOrder, PrescriptionItem, Visit
from billing.services.audit import log_action
from billing.services.numbering import current_year, next_bill_number, year_prefix
from billing.services.tax import (
    ZERO,
    BillBreakdown,
    GSTSplit,
    LineBreakdown,
    generate_tax_breakdown,
    get_standard_gst_rate,
    split_gst,
)

logger = logging.getLogger(__name__)

User = get_user_model()

BILLING_GROUP = "billing"
CONSULTATION_DESCRIPTION = 'Doctor Consultation Fee'


@dataclass(frozen=True)
class UnbilledItem:
    """A billable event not yet on a bill, tagged with where it came from."""
    item_type: str
    description: str
    quantity: int
    unit_price: Decimal
    tax_rate: Decimal
    is_tax_inclusive: bool
    item_id: Optional[str] = None


def _get_visit(visit_id) -> Visit:
    visit = Visit.objects.select_related('patient').filter(id=visit_id).first()
    if not visit:
        raise NotFound(f'Visit with ID {visit_id} not found')
    return visit


def _resolve_user(user) -> Optional[User]:
    if user is None or isinstance(user, User):
        return user
    found = User.objects.filter(id=user).first()
    if not found:
        raise NotFound(f'User with ID {user} not found')
    return found


def aggregate_unbilled_items(visit: Visit) -> list[UnbilledItem]:
    """Collect the visit's billable events in bill order.

    1. Consultation fee, only when the visit produced a prescription or a
       lab order.
    2. One line per dispensed prescription item (MRP, tax inclusive).
    3. One line per completed lab order (test price, tax exclusive).
    """
    items: list[UnbilledItem] = []
    service_rate = get_standard_gst_rate('SERVICE')

    if visit.prescriptions.exists() or visit.lab_orders.exists():
        items.append(UnbilledItem(
            item_type=BillItem.TYPE_CONSULTATION,
            description=CONSULTATION_DESCRIPTION,
            quantity=1,
            unit_price=settings.BILLING_CONSULTATION_FEE,
            tax_rate=service_rate,
            is_tax_inclusive=False,
        ))

    dispensed = (
        PrescriptionItem.objects.filter(prescription__visit=visit, dispensed=True)
        .select_related('medicine')
        .order_by('prescription_id', 'id')
    )
    for rx_item in dispensed:
        medicine = rx_item.medicine
        items.append(UnbilledItem(
            item_type=BillItem.TYPE_MEDICINE,
            item_id=str(rx_item.id),
            description=str(medicine),
            quantity=rx_item.quantity,
            unit_price=medicine.mrp,
            tax_rate=get_standard_gst_rate(medicine.gst_category),
            is_tax_inclusive=True,
        ))

    completed = (
        LabOrder.objects.filter(visit=visit, status=LabOrder.STATUS_COMPLETED)
        .select_related('test')
        .order_by('id')
    )
    for order in completed:
        items.append(UnbilledItem(
            item_type=BillItem.TYPE_LAB_TEST,
            item_id=str(order.id),
            description=order.test.name,
            quantity=1,
            unit_price=order.test.price,
            tax_rate=service_rate,
            is_tax_inclusive=False,
        ))

    return items


def preview_bill(visit_id) -> dict:
    """Estimate the bill for a visit without numbering or saving anything.

    A visit with nothing to bill yields a zero-valued preview.
    """
    visit = _get_visit(visit_id)
    unbilled = aggregate_unbilled_items(visit)
    breakdown = generate_tax_breakdown(unbilled)
    return format_preview(visit, unbilled, breakdown)


@transaction.atomic
def generate_bill(visit_id, generated_by=None) -> Bill:
    """Create the bill for a visit.

    Raises ``NotFound`` for an unknown visit, ``AlreadyExists`` when the
    visit is already billed, ``NothingToBill`` when it has no billable
    events and ``BillNumberConflict`` when no free number could be taken.
    """
    visit = _get_visit(visit_id)
    generated_by = _resolve_user(generated_by)

    existing = Bill.objects.filter(visit=visit).only('bill_number').first()
    if existing:
        raise AlreadyExists(
            f'Bill already exists for visit {visit.id}: {existing.bill_number}',
            bill_number=existing.bill_number,
        )

    unbilled = aggregate_unbilled_items(visit)
    if not unbilled:
        raise NothingToBill(f'No unbilled items found for visit {visit.id}')

    breakdown = generate_tax_breakdown(unbilled)
    bill = _create_bill(visit, unbilled, breakdown, generated_by)

    log_action(user=generated_by, action='bill_generate', object_type='bill', object_id=bill.id,
               detail={'billNumber': bill.bill_number, 'visitId': visit.id, 'total': str(bill.total)})
    logger.info('generated bill %s for visit %s (total %s)', bill.bill_number, visit.id, bill.total)

    payload = {'billId': bill.id, 'billNumber': bill.bill_number, 'visitId': visit.id,
               'total': str(bill.total), 'status': bill.status}
    transaction.on_commit(lambda: notify_billing_event('billing.generated', payload))
    return bill


def _create_bill(visit: Visit, unbilled: list[UnbilledItem], breakdown: BillBreakdown, generated_by) -> Bill:
    year = current_year()
    attempts = settings.BILL_NUMBER_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        bill_number, sequence = next_bill_number(year, for_update=True)
        try:
            with transaction.atomic():
                bill = Bill.objects.create(
                    visit=visit,
                    bill_number=bill_number,
                    sequence=sequence,
                    subtotal=breakdown.subtotal,
                    tax_amount=breakdown.total_tax,
                    discount=ZERO,
                    total=breakdown.grand_total,
                    balance=breakdown.grand_total,
                    status=Bill.STATUS_PENDING,
                    generated_by=generated_by,
                )
        except IntegrityError:
            # either a concurrent call billed this visit or took the number;
            # locking read: sees rows committed after this transaction began
            winner = Bill.objects.select_for_update().filter(visit=visit).only('bill_number').first()
            if winner:
                raise AlreadyExists(
                    f'Bill already exists for visit {visit.id}: {winner.bill_number}',
                    bill_number=winner.bill_number,
                )
            logger.warning('bill number %s already taken, retrying (%d/%d)', bill_number, attempt, attempts)
            continue

        BillItem.objects.bulk_create([
            BillItem(
                bill=bill,
                position=position,
                item_type=source.item_type,
                item_id=source.item_id or '',
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                amount=line.amount,
                is_tax_inclusive=line.is_tax_inclusive,
                tax_rate=line.tax_rate,
                base_amount=line.base_amount,
                tax_amount=line.tax_amount,
                total=line.line_total,
            )
            for position, (source, line) in enumerate(zip(unbilled, breakdown.items))
        ])
        return bill

    raise BillNumberConflict(
        f'Could not allocate a bill number under {year_prefix(year)} after {attempts} attempts'
    )


def get_bill(bill_id) -> Bill:
    bill = Bill.objects.select_related('visit__patient').prefetch_related('items').filter(id=bill_id).first()
    if not bill:
        raise NotFound(f'Bill with ID {bill_id} not found')
    return bill


def get_bill_by_number(bill_number: str) -> Bill:
    bill = (
        Bill.objects.select_related('visit__patient').prefetch_related('items')
        .filter(bill_number=bill_number).first()
    )
    if not bill:
        raise NotFound(f'Bill with number {bill_number} not found')
    return bill


def get_bills_for_visit(visit_id) -> list[Bill]:
    visit = _get_visit(visit_id)
    return list(
        Bill.objects.filter(visit=visit).select_related('visit__patient')
        .prefetch_related('items').order_by('-generated_at')
    )


def gst_split_for_bill(bill: Bill, is_inter_state: Optional[bool] = None) -> GSTSplit:
    if is_inter_state is None:
        is_inter_state = settings.BILLING_INTER_STATE
    return split_gst(bill.tax_amount, is_inter_state)


def notify_billing_event(event_type: str, payload: dict) -> None:
    """Fan a billing event out to WebSocket listeners; never raises."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(BILLING_GROUP, {"type": event_type, **payload})
    except Exception:
        logger.exception('failed to broadcast %s', event_type)


# ---------------------------------------------------------------------------
# Response shaping
# ---------------------------------------------------------------------------

def _format_line(source: UnbilledItem, line: LineBreakdown) -> dict:
    return {
        'itemType': source.item_type,
        'itemId': source.item_id,
        'description': line.description,
        'quantity': line.quantity,
        'unitPrice': line.unit_price,
        'amount': line.amount,
        'isTaxInclusive': line.is_tax_inclusive,
        'taxRate': line.tax_rate,
        'baseAmount': line.base_amount,
        'taxAmount': line.tax_amount,
        'total': line.line_total,
    }


def format_preview(visit: Visit, unbilled: list[UnbilledItem], breakdown: BillBreakdown) -> dict:
    return {
        'visitId': visit.id,
        'items': [_format_line(source, line) for source, line in zip(unbilled, breakdown.items)],
        'subtotal': breakdown.subtotal,
        'taxAmount': breakdown.total_tax,
        'total': breakdown.grand_total,
    }


def format_bill(bill: Bill) -> dict:
    patient = bill.visit.patient
    return {
        'id': bill.id,
        'visitId': bill.visit_id,
        'patientId': patient.id,
        'patientName': patient.name,
        'billNumber': bill.bill_number,
        'subtotal': bill.subtotal,
        'taxAmount': bill.tax_amount,
        'discount': bill.discount,
        'total': bill.total,
        'balance': bill.balance,
        'status': bill.status,
        'generatedBy': bill.generated_by_id,
        'generatedAt': bill.generated_at.isoformat(),
        'paidAt': bill.paid_at.isoformat() if bill.paid_at else None,
        'items': [{
            'id': item.id,
            'itemType': item.item_type,
            'itemId': item.item_id or None,
            'description': item.description,
            'quantity': item.quantity,
            'unitPrice': item.unit_price,
            'amount': item.amount,
            'isTaxInclusive': item.is_tax_inclusive,
            'taxRate': item.tax_rate,
            'baseAmount': item.base_amount,
            'taxAmount': item.tax_amount,
            'total': item.total,
        } for item in bill.items.all()],
    }


def format_gst_split(bill: Bill, split: GSTSplit, is_inter_state: bool) -> dict:
    return {
        'billNumber': bill.bill_number,
        'taxAmount': bill.tax_amount,
        'interState': is_inter_state,
        'cgst': split.cgst,
        'sgst': split.sgst,
        'igst': split.igst,
    }
