from rest_framework import serializers

from core.models import Appointment, Assessment, HealthcareFacility, Referral, User
from core.serializers.common import CleanCharField, ExistingIdField, PageQuerySerializer


class AppointmentListQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES, required=False)
    facility_id = serializers.IntegerField(min_value=1, required=False)
    doctor_id = serializers.IntegerField(min_value=1, required=False)
    appointment_type = serializers.ChoiceField(choices=Appointment.TYPE_CHOICES, required=False)
    date = serializers.DateField(required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)


class AvailabilitySerializer(serializers.Serializer):
    appointment_datetime = serializers.DateTimeField()
    duration_minutes = serializers.IntegerField(min_value=5, max_value=480, required=False, default=30)
    doctor_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    facility_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs.get('doctor_id') and not attrs.get('facility_id'):
            raise serializers.ValidationError({'doctor_id': ['Provide doctor_id or facility_id.']})
        return attrs


class AppointmentCreateSerializer(serializers.Serializer):
    mobile_appointment_id = serializers.CharField(max_length=100, required=False, allow_null=True)
    mobile_user_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    referral_id = ExistingIdField(Referral.objects.filter(deleted_at__isnull=True), required=False, allow_null=True)
    assessment_id = ExistingIdField(Assessment.objects.all(), required=False, allow_null=True)
    patient_first_name = CleanCharField(max_length=100)
    patient_last_name = CleanCharField(max_length=100)
    patient_date_of_birth = serializers.DateField(required=False, allow_null=True)
    patient_sex = serializers.CharField(max_length=10, required=False, allow_blank=True)
    patient_phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    patient_email = serializers.EmailField(required=False, allow_blank=True)
    facility_id = ExistingIdField(HealthcareFacility.objects.all(), required=False, allow_null=True)
    doctor_id = ExistingIdField(User.objects.all(), required=False, allow_null=True)
    appointment_datetime = serializers.DateTimeField()
    duration_minutes = serializers.IntegerField(min_value=5, max_value=480, required=False, default=30)
    appointment_type = serializers.ChoiceField(choices=Appointment.TYPE_CHOICES, required=False, default='consultation')
    department = CleanCharField(max_length=100, required=False, allow_blank=True)
    reason_for_visit = CleanCharField(required=False, allow_blank=True, max_length=2000)
    special_requirements = CleanCharField(required=False, allow_blank=True, max_length=2000)
    booking_source = serializers.ChoiceField(choices=Appointment.SOURCE_CHOICES, required=False, default='web')


class MobileAppointmentSerializer(AppointmentCreateSerializer):
    mobile_user_id = serializers.CharField(max_length=100)
    booking_source = None


class AppointmentConfirmSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=['web', 'phone', 'sms', 'email', 'in_person'], required=False, default='web')


class AppointmentCompleteSerializer(serializers.Serializer):
    visit_summary = CleanCharField(required=False, allow_blank=True, max_length=5000, default='')
    next_steps = CleanCharField(required=False, allow_blank=True, max_length=5000, default='')


class AppointmentCancelSerializer(serializers.Serializer):
    reason = CleanCharField(max_length=2000)


class MobileCancelSerializer(AppointmentCancelSerializer):
    mobile_user_id = serializers.CharField(max_length=100)


class AppointmentRescheduleSerializer(serializers.Serializer):
    new_datetime = serializers.DateTimeField()
    reason = CleanCharField(required=False, allow_blank=True, max_length=2000, default='')
