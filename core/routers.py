"""
URL mappings for the Juan Heart API.

Every REST endpoint lives under ``api/v1``.  Trailing slashes are
omitted (``APPEND_SLASH`` is off).  The ``mobile`` group is public and
serves the offline-first app.
"""
from django.urls import include, path

from .auth_views import jwt_refresh_view, login_view, logout_view, me_view
from .views import (
    analytics, appointments, assessments, education, facilities, health, mobile, notifications, referrals,
)

API = 'api/v1/'


def v1(route, view, name=None):
    return path(API + route, view, name=name)


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    v1('auth/login', login_view, 'auth-login'),
    v1('auth/jwt/refresh', jwt_refresh_view, 'auth-jwt-refresh'),
    v1('auth/logout', logout_view, 'auth-logout'),
    v1('auth/me', me_view, 'auth-me'),
    # Assessments
    v1('assessments', assessments.assessment_list, 'assessment-list'),
    v1('assessments/statistics', assessments.assessment_statistics, 'assessment-statistics'),
    v1('assessments/<int:pk>', assessments.assessment_detail, 'assessment-detail'),
    v1('assessments/<int:pk>/validate', assessments.assessment_validate, 'assessment-validate'),
    v1('assessments/<int:pk>/reject', assessments.assessment_reject, 'assessment-reject'),
    v1('assessments/<int:pk>/clinical-notes', assessments.assessment_clinical_notes, 'assessment-clinical-notes'),
    v1('assessments/<int:pk>/risk-adjustments', assessments.assessment_risk_adjustments,
       'assessment-risk-adjustments'),
    v1('assessments/<int:pk>/adjust-risk', assessments.assessment_adjust_risk, 'assessment-adjust-risk'),
    # Referrals
    v1('referrals', referrals.referral_collection, 'referral-list'),
    v1('referrals/statistics', referrals.referral_statistics, 'referral-statistics'),
    v1('referrals/<int:pk>', referrals.referral_detail, 'referral-detail'),
    v1('referrals/<int:pk>/accept', referrals.referral_accept, 'referral-accept'),
    v1('referrals/<int:pk>/reject', referrals.referral_reject, 'referral-reject'),
    v1('referrals/<int:pk>/status', referrals.referral_status, 'referral-status'),
    v1('referrals/<int:pk>/schedule', referrals.referral_schedule, 'referral-schedule'),
    v1('referrals/<int:pk>/complete', referrals.referral_complete, 'referral-complete'),
    v1('referrals/<int:pk>/escalate', referrals.referral_escalate, 'referral-escalate'),
    v1('referrals/<int:pk>/cancel', referrals.referral_cancel, 'referral-cancel'),
    # Facilities
    v1('facilities', facilities.facility_collection, 'facility-list'),
    v1('facilities/regions', facilities.facility_regions, 'facility-regions'),
    v1('facilities/types', facilities.facility_types, 'facility-types'),
    v1('facilities/count', facilities.facility_count, 'facility-count'),
    v1('facilities/nearby', facilities.facility_nearby, 'facility-nearby'),
    v1('facilities/<int:pk>', facilities.facility_detail, 'facility-detail'),
    v1('facilities/<int:pk>/nearby', facilities.facility_nearby_of, 'facility-nearby-of'),
    v1('facilities/<int:pk>/capacity', facilities.facility_capacity, 'facility-capacity'),
    v1('facilities/<int:pk>/dashboard', analytics.facility_dashboard, 'facility-dashboard'),
    v1('facilities/<int:pk>/summary', analytics.facility_summary, 'facility-summary'),
    v1('facilities/<int:pk>/patient-flow', analytics.facility_patient_flow, 'facility-patient-flow'),
    v1('facilities/<int:pk>/referral-metrics', analytics.facility_referral_metrics, 'facility-referral-metrics'),
    v1('facilities/<int:pk>/capacity-metrics', analytics.facility_capacity_metrics, 'facility-capacity-metrics'),
    v1('facilities/<int:pk>/staff-productivity', analytics.facility_staff_productivity,
       'facility-staff-productivity'),
    v1('facilities/<int:pk>/performance-comparison', analytics.facility_performance_comparison,
       'facility-performance-comparison'),
    # Appointments
    v1('appointments', appointments.appointment_collection, 'appointment-list'),
    v1('appointments/check-availability', appointments.appointment_check_availability,
       'appointment-check-availability'),
    v1('appointments/statistics', appointments.appointment_statistics, 'appointment-statistics'),
    v1('appointments/confirm/<str:token>', appointments.appointment_confirm_by_token, 'appointment-confirm-token'),
    v1('appointments/<int:pk>', appointments.appointment_detail, 'appointment-detail'),
    v1('appointments/<int:pk>/confirm', appointments.appointment_confirm, 'appointment-confirm'),
    v1('appointments/<int:pk>/check-in', appointments.appointment_check_in, 'appointment-check-in'),
    v1('appointments/<int:pk>/start', appointments.appointment_start, 'appointment-start'),
    v1('appointments/<int:pk>/complete', appointments.appointment_complete, 'appointment-complete'),
    v1('appointments/<int:pk>/cancel', appointments.appointment_cancel, 'appointment-cancel'),
    v1('appointments/<int:pk>/reschedule', appointments.appointment_reschedule, 'appointment-reschedule'),
    # Education
    v1('education', education.education_list, 'education-list'),
    v1('education/categories', education.education_categories, 'education-categories'),
    v1('education/stats', education.education_stats, 'education-stats'),
    v1('education/sync', education.education_sync, 'education-sync'),
    v1('education/<int:pk>', education.education_detail, 'education-detail'),
    # Analytics
    v1('analytics/national-overview', analytics.national_overview, 'analytics-national-overview'),
    v1('analytics/real-time-metrics', analytics.real_time_metrics, 'analytics-real-time-metrics'),
    v1('analytics/geographic-distribution', analytics.geographic_distribution, 'analytics-geographic'),
    v1('analytics/trend-analysis', analytics.trend_analysis, 'analytics-trends'),
    v1('analytics/demographics-analysis', analytics.demographics_analysis, 'analytics-demographics'),
    # Clinical dashboard
    v1('clinical/dashboard', analytics.clinical_dashboard, 'clinical-dashboard'),
    v1('clinical/assessment-queue', analytics.clinical_assessment_queue, 'clinical-assessment-queue'),
    v1('clinical/risk-stratification', analytics.clinical_risk_stratification, 'clinical-risk-stratification'),
    v1('clinical/alerts', analytics.clinical_alerts, 'clinical-alerts'),
    v1('clinical/workload', analytics.clinical_workload, 'clinical-workload'),
    v1('clinical/validation-metrics', analytics.clinical_validation_metrics, 'clinical-validation-metrics'),
    v1('clinical/treatment-outcomes', analytics.clinical_treatment_outcomes, 'clinical-treatment-outcomes'),
    # Notifications
    v1('notifications', notifications.notification_list, 'notification-list'),
    v1('notifications/preferences', notifications.notification_preferences, 'notification-preferences'),
    v1('notifications/<int:pk>/read', notifications.notification_read, 'notification-read'),
    # Mobile
    v1('mobile/assessments', mobile.mobile_assessment_store, 'mobile-assessment-store'),
    v1('mobile/assessments/bulk', mobile.mobile_assessment_bulk, 'mobile-assessment-bulk'),
    v1('mobile/assessments/sync', mobile.mobile_assessment_sync, 'mobile-assessment-sync'),
    v1('mobile/facilities', mobile.mobile_facility_list, 'mobile-facility-list'),
    v1('mobile/facilities/sync', mobile.mobile_facility_sync, 'mobile-facility-sync'),
    v1('mobile/facilities/nearby', mobile.mobile_facility_nearby, 'mobile-facility-nearby'),
    v1('mobile/appointments', mobile.mobile_appointments, 'mobile-appointments'),
    v1('mobile/appointments/sync', mobile.mobile_appointment_sync, 'mobile-appointment-sync'),
    v1('mobile/appointments/<int:pk>/cancel', mobile.mobile_appointment_cancel, 'mobile-appointment-cancel'),
    v1('mobile/education', mobile.mobile_education_list, 'mobile-education-list'),
    v1('mobile/education/sync', mobile.mobile_education_sync, 'mobile-education-sync'),
]
