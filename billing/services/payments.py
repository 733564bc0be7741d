"""
Payment recording against generated bills.

A bill's ``balance``, ``status`` and ``paid_at`` are only ever changed
here.  Each recording locks the bill row for its read-modify-write so two
desks collecting on the same bill cannot both spend the same balance.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import bleach
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from billing.exceptions import InvalidInput, NotFound
from billing.models import Bill, Payment
from billing.services.audit import log_action
from billing.services.bills import notify_billing_event
from billing.services.tax import ZERO, format_inr, round_money, to_decimal

logger = logging.getLogger(__name__)

MODES_REQUIRING_REFERENCE = {Payment.MODE_CARD, Payment.MODE_UPI}


def _bill_status(bill: Bill) -> dict:
    return {
        'billNumber': bill.bill_number,
        'total': bill.total,
        'paidAmount': bill.total - bill.balance,
        'balance': bill.balance,
        'status': bill.status,
    }


def format_payment(payment: Payment) -> dict:
    return {
        'id': payment.id,
        'billId': payment.bill_id,
        'amount': payment.amount,
        'mode': payment.mode,
        'status': payment.status,
        'transactionId': payment.transaction_id or None,
        'upiId': payment.upi_id or None,
        'cardLast4': payment.card_last4 or None,
        'recordedBy': payment.recorded_by_id,
        'recordedAt': payment.recorded_at.isoformat(),
        'remarks': payment.remarks,
    }


@transaction.atomic
def record_payment(bill_id, amount, mode: str, *, transaction_id: Optional[str] = None,
                   upi_id: Optional[str] = None, card_last4: Optional[str] = None,
                   recorded_by=None, remarks: Optional[str] = None) -> dict:
    amount = round_money(to_decimal(amount))
    if amount <= 0:
        raise InvalidInput('Payment amount must be greater than 0')
    if mode not in dict(Payment.MODE_CHOICES):
        raise InvalidInput(f'Unsupported payment mode: {mode}')
    if mode in MODES_REQUIRING_REFERENCE and not transaction_id:
        raise InvalidInput(f'Transaction ID is required for {mode} payments')

    bill = Bill.objects.select_for_update().filter(id=bill_id).first()
    if not bill:
        raise NotFound(f'Bill with ID {bill_id} not found')
    if amount > bill.balance:
        raise InvalidInput(
            f'Payment amount {format_inr(amount)} exceeds outstanding balance {format_inr(bill.balance)}'
        )

    payment = Payment.objects.create(
        bill=bill,
        amount=amount,
        mode=mode,
        status=Payment.STATUS_SUCCESS,
        transaction_id=transaction_id or '',
        upi_id=upi_id or '',
        card_last4=card_last4 or '',
        recorded_by=recorded_by,
        remarks=bleach.clean((remarks or '').strip(), strip=True),
    )

    bill.balance = bill.balance - amount
    if bill.balance == 0:
        bill.status = Bill.STATUS_PAID
        bill.paid_at = timezone.now()
    elif bill.balance < bill.total:
        bill.status = Bill.STATUS_PARTIAL
    else:
        bill.status = Bill.STATUS_PENDING
    bill.save(update_fields=['balance', 'status', 'paid_at'])

    log_action(user=recorded_by, action='payment_record', object_type='bill', object_id=bill.id,
               detail={'paymentId': payment.id, 'amount': str(amount), 'mode': mode})
    logger.info('recorded %s payment of %s on bill %s, balance %s',
                mode, amount, bill.bill_number, bill.balance)

    status = _bill_status(bill)
    event = {'billId': bill.id, 'paymentId': payment.id, 'amount': str(amount),
             'billNumber': bill.bill_number, 'balance': str(bill.balance), 'status': bill.status}
    transaction.on_commit(lambda: notify_billing_event('billing.payment', event))
    return {'payment': format_payment(payment), 'billStatus': status}


def get_payment_summary(bill_id) -> dict:
    bill = Bill.objects.filter(id=bill_id).first()
    if not bill:
        raise NotFound(f'Bill with ID {bill_id} not found')
    successful = bill.payments.filter(status=Payment.STATUS_SUCCESS)
    total_paid = successful.aggregate(total=Sum('amount'))['total'] or ZERO
    payments = successful.order_by('-recorded_at', '-id')
    return {
        'billId': bill.id,
        'billNumber': bill.bill_number,
        'billTotal': bill.total,
        'totalPaid': round_money(total_paid),
        'balance': bill.balance,
        'status': bill.status,
        'paymentCount': len(payments),
        'payments': [format_payment(p) for p in payments],
    }


def get_payment(payment_id) -> dict:
    payment = Payment.objects.filter(id=payment_id).first()
    if not payment:
        raise NotFound(f'Payment with ID {payment_id} not found')
    return format_payment(payment)


def get_payments_for_bill(bill_id) -> list[dict]:
    if not Bill.objects.filter(id=bill_id).exists():
        raise NotFound(f'Bill with ID {bill_id} not found')
    payments = Payment.objects.filter(bill_id=bill_id).order_by('-recorded_at', '-id')
    return [format_payment(p) for p in payments]


def get_outstanding_bills() -> list[dict]:
    """Bills with money still owed, newest first."""
    bills = (
        Bill.objects.filter(balance__gt=Decimal('0'))
        .select_related('visit__patient')
        .order_by('-generated_at', '-id')
    )
    return [{
        'id': bill.id,
        'billNumber': bill.bill_number,
        'visitId': bill.visit_id,
        'patientName': bill.visit.patient.name,
        'patientMobile': bill.visit.patient.mobile,
        'total': bill.total,
        'balance': bill.balance,
        'status': bill.status,
        'generatedAt': bill.generated_at.isoformat(),
    } for bill in bills]
