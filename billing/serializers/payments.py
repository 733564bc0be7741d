from decimal import Decimal

import bleach
from rest_framework import serializers

from billing.models import Payment


class RecordPaymentSerializer(serializers.Serializer):
    billingId = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    mode = serializers.ChoiceField(choices=[m for m, _ in Payment.MODE_CHOICES])
    transactionId = serializers.CharField(max_length=64, required=False, allow_blank=True)
    upiId = serializers.CharField(max_length=64, required=False, allow_blank=True)
    cardLast4 = serializers.RegexField(r'^\d{4}$', required=False, allow_blank=True)
    remarks = serializers.CharField(max_length=500, required=False, allow_blank=True)

    def validate_transactionId(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate(self, attrs):
        if attrs['mode'] in (Payment.MODE_CARD, Payment.MODE_UPI) and not attrs.get('transactionId'):
            raise serializers.ValidationError({'transactionId': f"Required for {attrs['mode']} payments"})
        return attrs
