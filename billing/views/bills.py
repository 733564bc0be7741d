from django.conf import settings
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle
from rest_framework import status

from billing.permissions import CanGenerateBills, CanPreviewBills, CanViewBills, CanViewVisitBills
from billing.serializers.bills import GenerateBillSerializer, GstSplitQuerySerializer
from billing.services.bills import (
    format_bill,
    format_gst_split,
    generate_bill,
    get_bill,
    get_bill_by_number,
    get_bills_for_visit,
    gst_split_for_bill,
    preview_bill,
)


class BillingWriteThrottle(UserRateThrottle):
    scope = 'billing_write'


@api_view(['POST'])
@permission_classes([CanGenerateBills])
@throttle_classes([BillingWriteThrottle])
def bill_generate(request):
    s = GenerateBillSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    generated_by = s.validated_data.get('generatedBy') or request.user
    bill = generate_bill(s.validated_data['visitId'], generated_by=generated_by)
    bill = get_bill(bill.id)
    return Response({'ok': True, 'data': format_bill(bill)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([CanPreviewBills])
def bill_preview(request, visit_id: int):
    return Response({'ok': True, 'data': preview_bill(visit_id)})


@api_view(['GET'])
@permission_classes([CanViewBills])
def bill_detail(request, bill_id: int):
    return Response({'ok': True, 'data': format_bill(get_bill(bill_id))})


@api_view(['GET'])
@permission_classes([CanViewBills])
def bill_by_number(request, bill_number: str):
    return Response({'ok': True, 'data': format_bill(get_bill_by_number(bill_number))})


@api_view(['GET'])
@permission_classes([CanViewVisitBills])
def bills_for_visit(request, visit_id: int):
    bills = get_bills_for_visit(visit_id)
    return Response({'ok': True, 'data': [format_bill(b) for b in bills]})


@api_view(['GET'])
@permission_classes([CanViewBills])
def bill_gst_split(request, bill_id: int):
    q = GstSplitQuerySerializer(data=request.query_params.dict())
    q.is_valid(raise_exception=True)
    bill = get_bill(bill_id)
    inter_state = q.validated_data.get('interState')
    if inter_state is None:
        inter_state = settings.BILLING_INTER_STATE
    split = gst_split_for_bill(bill, inter_state)
    return Response({'ok': True, 'data': format_gst_split(bill, split, inter_state)})
