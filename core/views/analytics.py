"""
Dashboard endpoints: national analytics, the clinician dashboard and
per-facility reports.

Date ranges come from ``start_date``/``end_date`` query parameters; when
omitted the national and facility views cover the last 90 days and the
clinical views the last 30.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from core.permissions import IsClinicalRole, IsStaff
from core.responses import ok
from core.serializers.analytics import AnalyticsQuerySerializer, AssessmentQueueQuerySerializer
from core.services import analytics as svc


def _window(request, days=svc.NATIONAL_WINDOW_DAYS):
    s = AnalyticsQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    return svc.window(s.validated_data.get('start_date'), s.validated_data.get('end_date'), days)


def _clinical_window(request):
    return _window(request, svc.CLINICAL_WINDOW_DAYS)


# National

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def national_overview(request):
    return ok(svc.national_overview(*_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def real_time_metrics(request):
    return ok(svc.real_time_metrics())


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def geographic_distribution(request):
    return ok(svc.geographic_distribution(*_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def trend_analysis(request):
    return ok(svc.trend_analysis(*_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def demographics_analysis(request):
    return ok(svc.demographics(*_window(request)))


# Clinical

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def clinical_dashboard(request):
    return ok(svc.clinical_dashboard(request.user, *_clinical_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def clinical_assessment_queue(request):
    s = AssessmentQueueQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    return ok(svc.assessment_queue(request.user, **s.validated_data))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def clinical_risk_stratification(request):
    return ok(svc.risk_stratification(request.user, *_clinical_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def clinical_alerts(request):
    return ok(svc.clinical_alerts(request.user))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def clinical_workload(request):
    return ok(svc.workload(request.user, *_clinical_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def clinical_validation_metrics(request):
    return ok(svc.validation_metrics(request.user, *_clinical_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def clinical_treatment_outcomes(request):
    return ok(svc.treatment_outcomes(request.user, *_clinical_window(request)))


# Facility

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_dashboard(request, pk: int):
    return ok(svc.facility_dashboard(pk, *_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_summary(request, pk: int):
    return ok(svc.facility_summary(pk, *_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_patient_flow(request, pk: int):
    return ok(svc.patient_flow(pk, *_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_referral_metrics(request, pk: int):
    return ok(svc.referral_metrics(pk, *_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_capacity_metrics(request, pk: int):
    return ok(svc.capacity_metrics(pk, *_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_staff_productivity(request, pk: int):
    return ok(svc.staff_productivity(pk, *_window(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_performance_comparison(request, pk: int):
    return ok(svc.performance_comparison(pk, *_window(request)))
