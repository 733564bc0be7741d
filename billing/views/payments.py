from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.response import Response
from rest_framework import status

from billing.permissions import CanRecordPayments, CanViewOutstanding
from billing.serializers.payments import RecordPaymentSerializer
from billing.services.payments import (
    get_outstanding_bills,
    get_payment,
    get_payment_summary,
    get_payments_for_bill,
    record_payment,
)
from billing.views.bills import BillingWriteThrottle


@api_view(['POST'])
@permission_classes([CanRecordPayments])
@throttle_classes([BillingWriteThrottle])
def payment_record(request):
    s = RecordPaymentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    d = s.validated_data
    result = record_payment(
        d['billingId'],
        d['amount'],
        d['mode'],
        transaction_id=d.get('transactionId'),
        upi_id=d.get('upiId'),
        card_last4=d.get('cardLast4'),
        recorded_by=request.user,
        remarks=d.get('remarks'),
    )
    return Response({'ok': True, 'data': result}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([CanRecordPayments])
def payment_summary(request, bill_id: int):
    return Response({'ok': True, 'data': get_payment_summary(bill_id)})


@api_view(['GET'])
@permission_classes([CanRecordPayments])
def payment_detail(request, payment_id: int):
    return Response({'ok': True, 'data': get_payment(payment_id)})


@api_view(['GET'])
@permission_classes([CanRecordPayments])
def payments_for_bill(request, bill_id: int):
    return Response({'ok': True, 'data': get_payments_for_bill(bill_id)})


@api_view(['GET'])
@permission_classes([CanViewOutstanding])
def outstanding_bills(request):
    bills = get_outstanding_bills()
    return Response({'ok': True, 'data': bills, 'total': len(bills)})
