from rest_framework import serializers


class GenerateBillSerializer(serializers.Serializer):
    visitId = serializers.IntegerField(min_value=1)
    generatedBy = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class GstSplitQuerySerializer(serializers.Serializer):
    interState = serializers.BooleanField(allow_null=True, default=None)
