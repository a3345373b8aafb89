from rest_framework import serializers


class AnalyticsQuerySerializer(serializers.Serializer):
    timeRange = serializers.ChoiceField(
        choices=['30days', '3months', '6months', '1year', 'all'], required=False, default='1year'
    )
    branchId = serializers.IntegerField(min_value=1, required=False)
    hospitalId = serializers.IntegerField(min_value=1, required=False)
    refresh = serializers.BooleanField(required=False, default=False)
