from rest_framework import serializers

from core.models import Assessment, Referral


class AnalyticsQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start, end = attrs.get('start_date'), attrs.get('end_date')
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': ['Must not be before start_date.']})
        return attrs


class AssessmentQueueQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Assessment.STATUS_CHOICES, required=False,
                                     default=Assessment.STATUS_PENDING)
    risk_level = serializers.ChoiceField(choices=Assessment.RISK_LEVEL_CHOICES, required=False)
    priority = serializers.ChoiceField(choices=Referral.PRIORITY_CHOICES, required=False)
