"""
Django admin registrations for the core models.

Referral history and audit events are shown read-only; they are
append-only records.
"""

from django.contrib import admin

from .models import (
    Appointment,
    Assessment,
    AssessmentComment,
    AssessmentRiskAdjustment,
    AuditEvent,
    ClinicalValidation,
    EducationalContent,
    HealthcareFacility,
    Notification,
    NotificationPreference,
    PushNotificationLog,
    Referral,
    ReferralHistory,
    SmsLog,
    User,
)


@admin.register(HealthcareFacility)
class HealthcareFacilityAdmin(admin.ModelAdmin):
    list_display = ('id', 'code', 'name', 'type', 'level', 'region', 'is_active', 'accepts_referrals')
    list_filter = ('level', 'type', 'region', 'is_active', 'has_emergency')
    search_fields = ('code', 'name', 'city', 'province')


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'status', 'facility', 'is_staff', 'is_superuser')
    list_filter = ('role', 'status', 'facility')
    search_fields = ('username', 'first_name', 'last_name', 'email', 'license_no')


class ClinicalValidationInline(admin.TabularInline):
    model = ClinicalValidation
    extra = 0
    readonly_fields = ('validator', 'original_ml_score', 'validated_score', 'agreement_level', 'created_at')


class RiskAdjustmentInline(admin.TabularInline):
    model = AssessmentRiskAdjustment
    extra = 0
    can_delete = False
    readonly_fields = ('adjusted_by', 'old_score', 'new_score', 'difference', 'alert_triggered', 'created_at')


@admin.register(Assessment)
class AssessmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'assessment_external_id', 'patient_name', 'final_risk_level', 'urgency', 'status',
                    'assessment_date')
    list_filter = ('status', 'final_risk_level', 'urgency', 'region')
    search_fields = ('assessment_external_id', 'mobile_user_id', 'patient_first_name', 'patient_last_name')
    inlines = [ClinicalValidationInline, RiskAdjustmentInline]


@admin.register(AssessmentComment)
class AssessmentCommentAdmin(admin.ModelAdmin):
    list_display = ('id', 'assessment', 'user', 'comment_type', 'visibility', 'parent', 'created_at')
    list_filter = ('comment_type', 'visibility', 'is_resolved')
    search_fields = ('comment',)


class ReferralHistoryInline(admin.TabularInline):
    model = ReferralHistory
    extra = 0
    can_delete = False
    readonly_fields = ('action', 'previous_status', 'new_status', 'user', 'notes', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Referral)
class ReferralAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient_name', 'priority', 'urgency', 'status', 'target_facility', 'created_at')
    list_filter = ('status', 'priority', 'urgency')
    search_fields = ('id', 'patient_first_name', 'patient_last_name', 'chief_complaint')
    inlines = [ReferralHistoryInline]


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient_name', 'appointment_datetime', 'facility', 'doctor', 'status', 'booking_source')
    list_filter = ('status', 'appointment_type', 'booking_source')
    search_fields = ('id', 'patient_first_name', 'patient_last_name', 'mobile_user_id', 'mobile_appointment_id')


@admin.register(EducationalContent)
class EducationalContentAdmin(admin.ModelAdmin):
    list_display = ('id', 'title_en', 'category', 'published', 'views', 'updated_at')
    list_filter = ('category', 'published')
    search_fields = ('title_en', 'title_fil')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'type', 'title', 'priority', 'read_at', 'created_at')
    list_filter = ('type', 'priority')
    search_fields = ('title', 'user__username')


@admin.register(NotificationPreference)
class NotificationPreferenceAdmin(admin.ModelAdmin):
    list_display = ('user', 'notification_type', 'channel', 'is_enabled')
    list_filter = ('channel', 'notification_type', 'is_enabled')


@admin.register(SmsLog)
class SmsLogAdmin(admin.ModelAdmin):
    list_display = ('id', 'phone', 'driver', 'status', 'external_id', 'sent_at')
    list_filter = ('driver', 'status')


@admin.register(PushNotificationLog)
class PushNotificationLogAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'platform', 'driver', 'status', 'sent_at')
    list_filter = ('driver', 'status', 'platform')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
