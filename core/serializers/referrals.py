from django.utils import timezone
from rest_framework import serializers

from core.models import Assessment, HealthcareFacility, Referral, User
from core.serializers.common import CleanCharField, ExistingIdField, PageQuerySerializer


class ReferralListQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=Referral.STATUS_CHOICES, required=False)
    priority = serializers.ChoiceField(choices=Referral.PRIORITY_CHOICES, required=False)
    urgency = serializers.ChoiceField(choices=Referral.URGENCY_CHOICES, required=False)
    target_facility_id = serializers.IntegerField(min_value=1, required=False)
    source_facility_id = serializers.IntegerField(min_value=1, required=False)
    assigned_doctor_id = serializers.IntegerField(min_value=1, required=False)
    search = serializers.CharField(max_length=100, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    sort_by = serializers.ChoiceField(
        choices=['created_at', 'updated_at', 'priority', 'urgency', 'status', 'patient_last_name'],
        required=False, default='created_at',
    )
    sort_order = serializers.ChoiceField(choices=['asc', 'desc'], required=False, default='desc')


class ReferralCreateSerializer(serializers.Serializer):
    assessment_id = ExistingIdField(Assessment.objects.all())
    target_facility_id = ExistingIdField(HealthcareFacility.objects.all(), required=False, allow_null=True)
    source_facility_id = ExistingIdField(HealthcareFacility.objects.all(), required=False, allow_null=True)
    assigned_doctor_id = ExistingIdField(User.objects.all(), required=False, allow_null=True)
    patient_first_name = CleanCharField(max_length=100, required=False, allow_blank=True)
    patient_last_name = CleanCharField(max_length=100, required=False, allow_blank=True)
    priority = serializers.ChoiceField(choices=Referral.PRIORITY_CHOICES, required=False)
    urgency = serializers.ChoiceField(choices=Referral.URGENCY_CHOICES, required=False)
    referral_type = CleanCharField(max_length=100, required=False, allow_blank=True)
    chief_complaint = CleanCharField(required=False, allow_blank=True, max_length=2000, default='')
    clinical_notes = CleanCharField(required=False, allow_blank=True, max_length=5000, default='')
    required_services = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    transport_method = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    estimated_travel_time_minutes = serializers.IntegerField(min_value=0, required=False, allow_null=True)


class ReferralAcceptSerializer(serializers.Serializer):
    notes = CleanCharField(required=False, allow_blank=True, max_length=2000, default='')
    assigned_doctor_id = ExistingIdField(User.objects.all(), required=False, allow_null=True)
    scheduled_appointment = serializers.DateTimeField(required=False, allow_null=True)
    appointment_notes = CleanCharField(required=False, allow_blank=True, max_length=2000, default='')

    def validate_scheduled_appointment(self, v):
        if v and v <= timezone.now():
            raise serializers.ValidationError('Appointment must be in the future.')
        return v


class ReferralRejectSerializer(serializers.Serializer):
    reason = CleanCharField(max_length=2000)
    suggested_facilities = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)


class ReferralStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Referral.STATUS_CHOICES)
    notes = CleanCharField(required=False, allow_blank=True, max_length=2000, default='')


class ReferralScheduleSerializer(serializers.Serializer):
    scheduled_appointment = serializers.DateTimeField()
    notes = CleanCharField(required=False, allow_blank=True, max_length=2000, default='')


class ReferralCompleteSerializer(serializers.Serializer):
    treatment_summary = CleanCharField(required=False, allow_blank=True, max_length=5000)
    diagnosis = CleanCharField(required=False, allow_blank=True, max_length=5000)
    recommendations = CleanCharField(required=False, allow_blank=True, max_length=5000)
    outcome = serializers.ChoiceField(choices=Referral.OUTCOME_CHOICES, required=False)
    requires_follow_up = serializers.BooleanField(required=False)
    follow_up_date = serializers.DateField(required=False, allow_null=True)
    follow_up_notes = CleanCharField(required=False, allow_blank=True, max_length=2000)

    def validate(self, attrs):
        if attrs.get('requires_follow_up') and not attrs.get('follow_up_date'):
            raise serializers.ValidationError({'follow_up_date': ['Required when follow-up is needed.']})
        return attrs


class ReferralEscalateSerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=['Medium', 'High', 'Critical'])
    reason = CleanCharField(max_length=2000)


class ReferralCancelSerializer(serializers.Serializer):
    reason = CleanCharField(max_length=2000)
