from django.utils import timezone
from rest_framework import serializers

from core.models import Assessment, AssessmentComment
from core.serializers.common import CleanCharField, ExistingIdField, PageQuerySerializer
from core.services.risk import MOBILE_SCALE_MAX


class AssessmentListQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=Assessment.STATUS_CHOICES, required=False)
    risk_level = serializers.ChoiceField(choices=Assessment.RISK_LEVEL_CHOICES, required=False)
    urgency = serializers.CharField(max_length=30, required=False)
    search = serializers.CharField(max_length=100, required=False)
    region = serializers.CharField(max_length=100, required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start, end = attrs.get('start_date'), attrs.get('end_date')
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': ['Must not be before start_date.']})
        return attrs


class AssessmentValidateSerializer(serializers.Serializer):
    validated_risk_score = serializers.IntegerField(min_value=0, max_value=100)
    validation_agrees_with_ml = serializers.BooleanField()
    validation_notes = CleanCharField(required=False, allow_blank=True, max_length=5000, default='')


class AssessmentRejectSerializer(serializers.Serializer):
    reason = CleanCharField(max_length=1000)
    notes = CleanCharField(required=False, allow_blank=True, max_length=5000, default='')


class MobileAssessmentSerializer(serializers.Serializer):
    """One assessment as posted by the mobile app (1-25 risk scale)."""
    assessment_external_id = serializers.CharField(max_length=100, required=False, allow_null=True)
    mobile_user_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    session_id = serializers.CharField(max_length=100, required=False, allow_blank=True)

    patient_first_name = CleanCharField(max_length=100, required=False, allow_blank=True)
    patient_last_name = CleanCharField(max_length=100, required=False, allow_blank=True)
    patient_date_of_birth = serializers.DateField(required=False, allow_null=True)
    patient_sex = serializers.CharField(max_length=10, required=False, allow_blank=True)
    patient_email = serializers.EmailField(required=False, allow_blank=True)
    patient_phone = serializers.CharField(max_length=30, required=False, allow_blank=True)

    assessment_date = serializers.DateTimeField(required=False, default=timezone.now)
    version = serializers.CharField(max_length=20, required=False, allow_blank=True)
    region = serializers.CharField(max_length=100, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    latitude = serializers.DecimalField(max_digits=10, decimal_places=7, required=False, allow_null=True,
                                        min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=10, decimal_places=7, required=False, allow_null=True,
                                         min_value=-180, max_value=180)

    final_risk_score = serializers.IntegerField(min_value=1, max_value=MOBILE_SCALE_MAX)
    final_risk_level = serializers.CharField(max_length=20, required=False, allow_blank=True)
    urgency = serializers.CharField(max_length=30, required=False, allow_blank=True)
    recommended_action = CleanCharField(required=False, allow_blank=True)

    vital_signs = serializers.JSONField(required=False)
    symptoms = serializers.JSONField(required=False)
    medical_history = serializers.JSONField(required=False)
    medications = serializers.JSONField(required=False)
    lifestyle = serializers.JSONField(required=False)
    recommendations = serializers.JSONField(required=False)

    device_platform = serializers.CharField(max_length=20, required=False, allow_blank=True)
    device_version = serializers.CharField(max_length=50, required=False, allow_blank=True)
    app_version = serializers.CharField(max_length=20, required=False, allow_blank=True)
    mobile_created_at = serializers.DateTimeField(required=False, allow_null=True)


class AssessmentUpdateSerializer(MobileAssessmentSerializer):
    """Partial edit; the caller must echo the ``version_counter`` it last read."""
    version_counter = serializers.IntegerField(min_value=1)
    final_risk_score = serializers.IntegerField(min_value=1, max_value=MOBILE_SCALE_MAX, required=False)
    assessment_date = serializers.DateTimeField(required=False)
    assessment_external_id = None
    mobile_created_at = None


class MobileBulkSerializer(serializers.Serializer):
    assessments = serializers.ListField(
        child=serializers.DictField(), min_length=1, max_length=100,
    )


class MobileSyncQuerySerializer(serializers.Serializer):
    mobile_user_id = serializers.CharField(max_length=100, required=False)


class ClinicalNoteSerializer(serializers.Serializer):
    content = CleanCharField(max_length=5000)
    visibility = serializers.ChoiceField(choices=AssessmentComment.VISIBILITY_CHOICES)
    mobile_visible = serializers.BooleanField(required=False, default=False)
    parent_note_id = ExistingIdField(AssessmentComment.objects.all(), required=False, allow_null=True)


class RiskAdjustmentSerializer(serializers.Serializer):
    new_risk_score = serializers.IntegerField(min_value=0, max_value=100)
    justification = CleanCharField(min_length=10, max_length=2000)
