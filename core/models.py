"""
Database models for the Juan Heart clinical API.

The records here mirror what the mobile app and the clinical dashboard
exchange: CVD risk assessments with their clinician validations,
referrals between healthcare facilities with an append-only history,
appointments, bilingual educational content and the notification
records written by the delivery drivers.
"""
from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class HealthcareFacility(models.Model):
    """A facility in the Philippine referral network.

    Facilities are a read-heavy directory maintained by administrators.
    ``services`` is a list of service names used for referral matching
    and mobile filtering.
    """
    TYPE_CHOICES = [
        ('barangay_health_station', 'Barangay Health Station'),
        ('rural_health_unit', 'Rural Health Unit'),
        ('city_health_office', 'City Health Office'),
        ('provincial_hospital', 'Provincial Hospital'),
        ('district_hospital', 'District Hospital'),
        ('private_hospital', 'Private Hospital'),
        ('medical_center', 'Medical Center'),
        ('specialty_center', 'Specialty Center'),
        ('clinic', 'Clinic'),
        ('emergency_facility', 'Emergency Facility'),
    ]
    LEVEL_PRIMARY = 'primary'
    LEVEL_SECONDARY = 'secondary'
    LEVEL_TERTIARY = 'tertiary'
    LEVEL_CHOICES = [
        (LEVEL_PRIMARY, 'Primary'),
        (LEVEL_SECONDARY, 'Secondary'),
        (LEVEL_TERTIARY, 'Tertiary'),
    ]
    # Simplified types the mobile app understands
    MOBILE_TYPES = {
        'barangay_health_station': 'health_center',
        'rural_health_unit': 'health_center',
        'city_health_office': 'health_center',
        'clinic': 'clinic',
        'provincial_hospital': 'hospital',
        'district_hospital': 'hospital',
        'private_hospital': 'hospital',
        'medical_center': 'medical_center',
        'specialty_center': 'specialty_center',
        'emergency_facility': 'emergency',
    }

    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, unique=True)
    type = models.CharField(max_length=40, choices=TYPE_CHOICES, db_index=True)
    level = models.CharField(max_length=20, choices=LEVEL_CHOICES, default=LEVEL_PRIMARY, db_index=True)

    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    province = models.CharField(max_length=100, blank=True)
    region = models.CharField(max_length=100, blank=True, db_index=True)
    postal_code = models.CharField(max_length=10, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    email = models.EmailField(blank=True)
    website = models.URLField(blank=True)
    latitude = models.DecimalField(max_digits=10, decimal_places=7, null=True, blank=True)
    longitude = models.DecimalField(max_digits=10, decimal_places=7, null=True, blank=True)

    operating_hours = models.JSONField(default=dict, blank=True)
    is_24_7 = models.BooleanField(default=False)
    has_emergency = models.BooleanField(default=False)
    services = models.JSONField(default=list, blank=True)

    bed_capacity = models.PositiveIntegerField(default=0)
    icu_capacity = models.PositiveIntegerField(default=0)
    current_bed_availability = models.PositiveIntegerField(default=0)

    is_public = models.BooleanField(default=True)
    is_doh_accredited = models.BooleanField(default=False)
    is_philhealth_accredited = models.BooleanField(default=False)
    accreditations = models.JSONField(default=list, blank=True)

    accepts_referrals = models.BooleanField(default=True)
    average_response_time_hours = models.PositiveIntegerField(null=True, blank=True)
    preferred_referral_types = models.JSONField(default=list, blank=True)

    is_active = models.BooleanField(default=True, db_index=True)
    is_verified = models.BooleanField(default=False)
    created_from_mobile = models.BooleanField(default=False)
    status_notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        verbose_name_plural = 'healthcare facilities'
        indexes = [
            models.Index(fields=['region', 'city'], name='facility_region_city_idx'),
            models.Index(fields=['is_active', 'accepts_referrals'], name='facility_active_referral_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"

    @property
    def mobile_type(self) -> str:
        return self.MOBILE_TYPES.get(self.type, 'clinic')

    @property
    def bed_occupancy_percentage(self) -> float | None:
        if not self.bed_capacity:
            return None
        occupied = max(self.bed_capacity - self.current_bed_availability, 0)
        return round(occupied / self.bed_capacity * 100, 2)


class User(AbstractUser):
    """Staff account.

    Roles: 'super' (national administrator), 'admin' (facility
    administrator), 'doctor', 'nurse' and 'analyst'.  A user may belong
    to one facility; referral notifications go to the clinical staff of
    the target facility.
    """
    ROLE_CHOICES = [
        ('super', 'Super Administrator'),
        ('admin', 'Facility Administrator'),
        ('doctor', 'Doctor'),
        ('nurse', 'Nurse'),
        ('analyst', 'Data Analyst'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('suspended', 'Suspended'),
        ('pending', 'Pending'),
    ]
    LANGUAGE_CHOICES = [('en', 'English'), ('fil', 'Filipino')]

    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='nurse')
    middle_name = models.CharField(max_length=150, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    license_no = models.CharField(max_length=50, blank=True, db_index=True)
    specialization = models.CharField(max_length=100, blank=True)
    position = models.CharField(max_length=100, blank=True)
    department = models.CharField(max_length=100, blank=True)
    facility = models.ForeignKey(
        HealthcareFacility, null=True, blank=True, on_delete=models.SET_NULL, related_name='staff'
    )
    language_preference = models.CharField(max_length=3, choices=LANGUAGE_CHOICES, default='en')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active', db_index=True)
    last_login_ip = models.GenericIPAddressField(null=True, blank=True)
    mfa_enabled = models.BooleanField(default=False)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Assessment(models.Model):
    """A CVD risk assessment captured by the mobile app.

    ``ml_risk_score`` is the model output on a 0-100 scale and is never
    overwritten.  ``final_risk_*`` starts as a copy of the ML values and
    is replaced when a clinician validates the assessment.
    """
    STATUS_PENDING = 'pending'
    STATUS_IN_REVIEW = 'in_review'
    STATUS_VALIDATED = 'validated'
    STATUS_REQUIRES_REFERRAL = 'requires_referral'
    STATUS_COMPLETED = 'completed'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_REVIEW, 'In review'),
        (STATUS_VALIDATED, 'Validated'),
        (STATUS_REQUIRES_REFERRAL, 'Requires referral'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REJECTED, 'Rejected'),
    ]
    RISK_LEVEL_CHOICES = [('Low', 'Low'), ('Moderate', 'Moderate'), ('High', 'High')]

    mobile_user_id = models.CharField(max_length=100, blank=True, db_index=True)
    session_id = models.CharField(max_length=100, blank=True)
    assessment_external_id = models.CharField(max_length=100, unique=True, null=True, blank=True)

    patient_first_name = models.CharField(max_length=100, blank=True)
    patient_last_name = models.CharField(max_length=100, blank=True)
    patient_date_of_birth = models.DateField(null=True, blank=True)
    patient_sex = models.CharField(max_length=10, blank=True)
    patient_email = models.EmailField(blank=True)
    patient_phone = models.CharField(max_length=30, blank=True)

    assessment_date = models.DateTimeField(default=timezone.now)
    version = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, default='Philippines')
    region = models.CharField(max_length=100, blank=True, db_index=True)
    city = models.CharField(max_length=100, blank=True)
    latitude = models.DecimalField(max_digits=10, decimal_places=7, null=True, blank=True)
    longitude = models.DecimalField(max_digits=10, decimal_places=7, null=True, blank=True)

    mobile_risk_score = models.PositiveSmallIntegerField(null=True, blank=True)
    ml_risk_score = models.PositiveSmallIntegerField(null=True, blank=True)
    ml_risk_level = models.CharField(max_length=20, blank=True)
    final_risk_score = models.PositiveSmallIntegerField(null=True, blank=True)
    final_risk_level = models.CharField(max_length=20, choices=RISK_LEVEL_CHOICES, blank=True, db_index=True)
    urgency = models.CharField(max_length=30, blank=True, db_index=True)
    recommended_action = models.TextField(blank=True)

    vital_signs = models.JSONField(default=dict, blank=True)
    symptoms = models.JSONField(default=list, blank=True)
    medical_history = models.JSONField(default=dict, blank=True)
    medications = models.JSONField(default=list, blank=True)
    lifestyle = models.JSONField(default=dict, blank=True)
    recommendations = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    validated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='validated_assessments'
    )
    validated_at = models.DateTimeField(null=True, blank=True)
    validation_notes = models.TextField(blank=True)
    validation_agrees_with_ml = models.BooleanField(null=True, blank=True)

    device_platform = models.CharField(max_length=20, blank=True)
    device_version = models.CharField(max_length=50, blank=True)
    app_version = models.CharField(max_length=20, blank=True)
    mobile_created_at = models.DateTimeField(null=True, blank=True)
    synced_at = models.DateTimeField(null=True, blank=True)
    version_counter = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'final_risk_level'], name='assessment_status_risk_idx'),
            models.Index(fields=['mobile_user_id', 'updated_at'], name='assessment_mobile_sync_idx'),
        ]

    def __str__(self) -> str:
        return f"Assessment #{self.pk} {self.patient_name} ({self.final_risk_level or 'unscored'})"

    @property
    def patient_name(self) -> str:
        return f"{self.patient_first_name} {self.patient_last_name}".strip()


class ClinicalValidation(models.Model):
    """One clinician decision on an assessment, kept for accuracy reporting."""
    AGREEMENT_CHOICES = [
        ('complete_agreement', 'Complete agreement'),
        ('partial_agreement', 'Partial agreement'),
        ('significant_difference', 'Significant difference'),
        ('complete_disagreement', 'Complete disagreement'),
    ]
    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name='validations')
    validator = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='clinical_validations'
    )
    original_ml_score = models.PositiveSmallIntegerField(null=True, blank=True)
    original_ml_level = models.CharField(max_length=20, blank=True)
    validated_score = models.PositiveSmallIntegerField(null=True, blank=True)
    validated_level = models.CharField(max_length=20, blank=True)
    score_difference = models.IntegerField(null=True, blank=True)
    agreement_level = models.CharField(max_length=30, choices=AGREEMENT_CHOICES)
    clinical_notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Validation of #{self.assessment_id}: {self.agreement_level}"


class AssessmentComment(models.Model):
    """Clinician note on an assessment.

    Replies point at the root note and are read as its later versions.
    """
    VISIBILITY_CHOICES = [
        ('private', 'Private'),
        ('internal', 'Internal'),
        ('shared', 'Shared with patient'),
    ]
    TYPE_CHOICES = [
        ('clinical_note', 'Clinical note'),
        ('comment', 'Comment'),
    ]
    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name='comments')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='assessment_comments'
    )
    comment = models.TextField()
    comment_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='clinical_note')
    visibility = models.CharField(max_length=10, choices=VISIBILITY_CHOICES, default='internal')
    parent = models.ForeignKey('self', null=True, blank=True, on_delete=models.CASCADE, related_name='replies')
    is_resolved = models.BooleanField(default=False)
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Note #{self.pk} on assessment #{self.assessment_id}"


class AssessmentRiskAdjustment(models.Model):
    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name='risk_adjustments')
    adjusted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='risk_adjustments'
    )
    old_score = models.PositiveSmallIntegerField(null=True, blank=True)
    old_level = models.CharField(max_length=20, blank=True)
    new_score = models.PositiveSmallIntegerField()
    new_level = models.CharField(max_length=20)
    difference = models.IntegerField(null=True, blank=True)
    justification = models.TextField()
    alert_triggered = models.BooleanField(default=False)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Risk adjustment of #{self.assessment_id}: {self.old_score} -> {self.new_score}"


class Referral(models.Model):
    """Transfer of a patient's care to a target facility.

    Status moves are governed by ``core.services.transitions``; every
    move stamps its ``<status>_at`` column and appends a
    :class:`ReferralHistory` row.  Referrals are soft deleted.
    """
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_IN_TRANSIT = 'in_transit'
    STATUS_ARRIVED = 'arrived'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_REJECTED = 'rejected'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_IN_TRANSIT, 'In transit'),
        (STATUS_ARRIVED, 'Arrived'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    PRIORITY_CHOICES = [
        ('Low', 'Low'),
        ('Medium', 'Medium'),
        ('High', 'High'),
        ('Critical', 'Critical'),
    ]
    URGENCY_CHOICES = [
        ('Routine', 'Routine'),
        ('Urgent', 'Urgent'),
        ('Emergency', 'Emergency'),
    ]
    OUTCOME_CHOICES = [
        ('Improved', 'Improved'),
        ('Stable', 'Stable'),
        ('Deteriorated', 'Deteriorated'),
        ('Deceased', 'Deceased'),
        ('Unknown', 'Unknown'),
    ]
    SEX_CHOICES = [('Male', 'Male'), ('Female', 'Female'), ('Other', 'Other')]

    patient_first_name = models.CharField(max_length=100)
    patient_last_name = models.CharField(max_length=100)
    patient_date_of_birth = models.DateField(null=True, blank=True)
    patient_sex = models.CharField(max_length=10, choices=SEX_CHOICES, blank=True)
    patient_phone = models.CharField(max_length=30, blank=True)

    assessment = models.ForeignKey(Assessment, on_delete=models.PROTECT, related_name='referrals')
    source_facility = models.ForeignKey(
        HealthcareFacility, null=True, blank=True, on_delete=models.SET_NULL, related_name='outgoing_referrals'
    )
    target_facility = models.ForeignKey(
        HealthcareFacility, on_delete=models.PROTECT, related_name='incoming_referrals'
    )
    referring_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='referrals_made'
    )
    assigned_doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='referrals_assigned'
    )

    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='Medium', db_index=True)
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='Routine', db_index=True)
    referral_type = models.CharField(max_length=100, blank=True)
    chief_complaint = models.TextField(blank=True)
    clinical_notes = models.TextField(blank=True)
    required_services = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    status_notes = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)

    accepted_at = models.DateTimeField(null=True, blank=True)
    in_transit_at = models.DateTimeField(null=True, blank=True)
    arrived_at = models.DateTimeField(null=True, blank=True)
    in_progress_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    scheduled_appointment = models.DateTimeField(null=True, blank=True)
    appointment_notes = models.TextField(blank=True)
    transport_method = models.CharField(max_length=50, blank=True)
    transport_notes = models.TextField(blank=True)
    estimated_travel_time_minutes = models.PositiveIntegerField(null=True, blank=True)

    requires_follow_up = models.BooleanField(default=False)
    follow_up_date = models.DateField(null=True, blank=True)
    follow_up_notes = models.TextField(blank=True)
    treatment_summary = models.TextField(blank=True)
    diagnosis = models.TextField(blank=True)
    recommendations = models.TextField(blank=True)
    outcome = models.CharField(max_length=15, choices=OUTCOME_CHOICES, blank=True)

    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['target_facility', 'status'], name='referral_target_status_idx'),
            models.Index(fields=['status', 'priority', 'created_at'], name='referral_status_prio_idx'),
        ]

    def __str__(self) -> str:
        return f"Referral #{self.pk} {self.patient_name} [{self.status}]"

    @property
    def patient_name(self) -> str:
        return f"{self.patient_first_name} {self.patient_last_name}".strip()

    @property
    def is_overdue(self) -> bool:
        if self.status != self.STATUS_PENDING or not self.created_at:
            return False
        hours = getattr(settings, 'REFERRAL_OVERDUE_HOURS', 24)
        return timezone.now() - self.created_at > timedelta(hours=hours)

    @property
    def response_time_hours(self) -> float | None:
        if not self.accepted_at or not self.created_at:
            return None
        return round((self.accepted_at - self.created_at).total_seconds() / 3600, 2)

    @property
    def processing_days(self) -> int | None:
        if not self.completed_at or not self.created_at:
            return None
        return (self.completed_at - self.created_at).days


class ReferralHistory(models.Model):
    """Append-only record of an action taken on a referral."""
    ACTION_CHOICES = [
        ('created', 'Created'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
        ('status_changed', 'Status changed'),
        ('scheduled', 'Scheduled'),
        ('completed', 'Completed'),
        ('escalated', 'Escalated'),
        ('cancelled', 'Cancelled'),
    ]
    referral = models.ForeignKey(Referral, on_delete=models.CASCADE, related_name='history')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='referral_actions'
    )
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    action_description = models.CharField(max_length=255, blank=True)
    previous_status = models.CharField(max_length=20, blank=True)
    new_status = models.CharField(max_length=20, blank=True)
    notes = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = 'referral history'
        ordering = ['created_at', 'id']
        indexes = [models.Index(fields=['referral', 'created_at'], name='refhistory_referral_idx')]

    def __str__(self) -> str:
        return f"{self.referral_id}: {self.action} {self.previous_status} → {self.new_status}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Referral history rows are immutable")
        super().save(*args, **kwargs)


class Appointment(models.Model):
    STATUS_SCHEDULED = 'scheduled'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_CHECKED_IN = 'checked_in'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_NO_SHOW = 'no_show'
    STATUS_RESCHEDULED = 'rescheduled'
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_CHECKED_IN, 'Checked in'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_NO_SHOW, 'No show'),
        (STATUS_RESCHEDULED, 'Rescheduled'),
    ]
    # Statuses that occupy a slot for availability checks
    ACTIVE_STATUSES = (STATUS_SCHEDULED, STATUS_CONFIRMED, STATUS_CHECKED_IN, STATUS_IN_PROGRESS)
    TYPE_CHOICES = [
        ('consultation', 'Consultation'),
        ('follow_up', 'Follow-up'),
        ('procedure', 'Procedure'),
        ('emergency', 'Emergency'),
        ('telemedicine', 'Telemedicine'),
        ('screening', 'Screening'),
        ('other', 'Other'),
    ]
    SOURCE_CHOICES = [
        ('web', 'Web'),
        ('mobile', 'Mobile'),
        ('phone', 'Phone'),
        ('walk_in', 'Walk-in'),
    ]

    mobile_appointment_id = models.CharField(max_length=100, unique=True, null=True, blank=True)
    mobile_user_id = models.CharField(max_length=100, blank=True, db_index=True)
    referral = models.ForeignKey(
        Referral, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    assessment = models.ForeignKey(
        Assessment, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )

    patient_first_name = models.CharField(max_length=100)
    patient_last_name = models.CharField(max_length=100)
    patient_date_of_birth = models.DateField(null=True, blank=True)
    patient_sex = models.CharField(max_length=10, blank=True)
    patient_phone = models.CharField(max_length=30, blank=True)
    patient_email = models.EmailField(blank=True)

    facility = models.ForeignKey(
        HealthcareFacility, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    appointment_datetime = models.DateTimeField(db_index=True)
    duration_minutes = models.PositiveIntegerField(default=30)
    appointment_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='consultation')
    department = models.CharField(max_length=100, blank=True)
    reason_for_visit = models.TextField(blank=True)
    special_requirements = models.TextField(blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_SCHEDULED, db_index=True)
    status_notes = models.TextField(blank=True)

    is_confirmed = models.BooleanField(default=False)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    confirmation_method = models.CharField(max_length=20, blank=True)
    confirmation_token = models.CharField(max_length=64, unique=True, null=True, blank=True)
    token_expires_at = models.DateTimeField(null=True, blank=True)

    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_in_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    visit_summary = models.TextField(blank=True)
    next_steps = models.TextField(blank=True)

    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    cancellation_reason = models.TextField(blank=True)

    rescheduled_from = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='rescheduled_to'
    )
    rescheduled_at = models.DateTimeField(null=True, blank=True)

    booked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    booking_source = models.CharField(max_length=10, choices=SOURCE_CHOICES, default='web')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        indexes = [
            models.Index(fields=['facility', 'appointment_datetime'], name='appt_facility_dt_idx'),
            models.Index(fields=['doctor', 'appointment_datetime'], name='appt_doctor_dt_idx'),
            models.Index(fields=['status', 'appointment_datetime'], name='appt_status_dt_idx'),
        ]

    def __str__(self) -> str:
        return f"Appointment #{self.pk} {self.patient_name} @ {self.appointment_datetime:%F %H:%M}"

    @property
    def patient_name(self) -> str:
        return f"{self.patient_first_name} {self.patient_last_name}".strip()

    @property
    def end_datetime(self):
        return self.appointment_datetime + timedelta(minutes=self.duration_minutes)


class EducationalContent(models.Model):
    """Bilingual (English / Filipino) patient education article."""
    CATEGORY_CHOICES = [
        ('cvd_prevention', 'CVD prevention'),
        ('symptom_recognition', 'Symptom recognition'),
        ('lifestyle_modification', 'Lifestyle modification'),
        ('medication_compliance', 'Medication compliance'),
        ('emergency_response', 'Emergency response'),
        ('risk_factors', 'Risk factors'),
        ('nutrition', 'Nutrition'),
        ('exercise', 'Exercise'),
    ]
    LANGUAGES = ('en', 'fil')

    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, db_index=True)
    title_en = models.CharField(max_length=255)
    title_fil = models.CharField(max_length=255)
    description_en = models.TextField(blank=True)
    description_fil = models.TextField(blank=True)
    content_en = models.TextField()
    content_fil = models.TextField()
    reading_time_minutes = models.PositiveSmallIntegerField(default=5)
    image_url = models.URLField(blank=True)
    author = models.CharField(max_length=150, blank=True)
    published = models.BooleanField(default=True, db_index=True)
    views = models.PositiveIntegerField(default=0)
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        verbose_name_plural = 'educational content'

    def __str__(self) -> str:
        return self.title_en


class Notification(models.Model):
    """In-app notification; the channel drivers deliver copies elsewhere."""
    TYPE_CHOICES = [
        ('message', 'Message'),
        ('referral', 'Referral'),
        ('assessment', 'Assessment'),
        ('appointment', 'Appointment'),
        ('alert', 'Alert'),
        ('system', 'System'),
        ('reminder', 'Reminder'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('normal', 'Normal'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255)
    body = models.TextField()
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    data = models.JSONField(default=dict, blank=True)
    action_url = models.CharField(max_length=255, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)
    related_referral = models.ForeignKey(
        Referral, null=True, blank=True, on_delete=models.CASCADE, related_name='notifications'
    )
    related_assessment = models.ForeignKey(
        Assessment, null=True, blank=True, on_delete=models.CASCADE, related_name='notifications'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['user', 'read_at', 'created_at'], name='notification_user_read_idx')]

    def __str__(self) -> str:
        return f"{self.type}:{self.title} -> {self.user_id}"


class NotificationPreference(models.Model):
    CHANNEL_CHOICES = [
        ('email', 'Email'),
        ('sms', 'SMS'),
        ('push', 'Push'),
        ('in_app', 'In-app'),
    ]
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notification_preferences'
    )
    channel = models.CharField(max_length=10, choices=CHANNEL_CHOICES, default='in_app')
    notification_type = models.CharField(max_length=20, choices=Notification.TYPE_CHOICES)
    is_enabled = models.BooleanField(default=True)
    options = models.JSONField(default=dict, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('user', 'channel', 'notification_type')]

    def __str__(self) -> str:
        state = 'on' if self.is_enabled else 'off'
        return f"{self.user_id} {self.notification_type}/{self.channel}: {state}"


class SmsLog(models.Model):
    STATUS_CHOICES = [('queued', 'Queued'), ('sent', 'Sent'), ('delivered', 'Delivered'), ('failed', 'Failed')]
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sms_logs')
    phone = models.CharField(max_length=30)
    subject = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    driver = models.CharField(max_length=20, default='mock')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='sent')
    external_id = models.CharField(max_length=100, blank=True, db_index=True)
    error_message = models.TextField(blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"sms {self.external_id} -> {self.phone} [{self.status}]"


class PushNotificationLog(models.Model):
    PLATFORM_CHOICES = [('web', 'Web'), ('ios', 'iOS'), ('android', 'Android')]
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='push_logs')
    title = models.CharField(max_length=255)
    body = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    driver = models.CharField(max_length=20, default='mock')
    status = models.CharField(max_length=10, choices=SmsLog.STATUS_CHOICES, default='sent')
    platform = models.CharField(max_length=10, choices=PLATFORM_CHOICES, default='web')
    device_token = models.CharField(max_length=255, blank=True)
    external_id = models.CharField(max_length=100, blank=True, db_index=True)
    error_message = models.TextField(blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"push {self.external_id} -> {self.user_id} [{self.status}]"


class AuditEvent(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.object_type}#{self.object_id} by {self.user_id}"
