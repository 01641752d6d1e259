"""
Public endpoints used by the Juan Heart mobile app.

The app is offline-first: it pushes assessments when it has a
connection and pulls directory and education changes with ``since``.
Patient-owned data (assessments, appointments) is scoped by the
``mobile_user_id`` the app generated for the device user.
"""
from __future__ import annotations

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny

from core.models import Assessment, HealthcareFacility
from core.responses import created, ok
from core.serializers.appointments import MobileAppointmentSerializer, MobileCancelSerializer
from core.serializers.assessments import MobileAssessmentSerializer, MobileBulkSerializer
from core.serializers.facilities import FacilityListQuerySerializer, NearbyQuerySerializer
from core.services import appointments as appointment_svc
from core.services import assessments as assessment_svc
from core.services import facilities as facility_svc
from core.services.sync import changed_since, parse_since, sync_meta
from core.throttling import MobileSyncRateThrottle
from core.views.education import list_content, sync_content
from core.views.facilities import _nearby_response


def _mobile_user_id(request) -> str:
    value = (request.query_params.get('mobile_user_id') or '').strip()
    if not value:
        raise ValidationError({'mobile_user_id': ['This parameter is required.']})
    return value


def _assessment_receipt(a: Assessment) -> dict:
    return {
        'id': a.id,
        'assessment_external_id': a.assessment_external_id,
        'mobile_risk_score': a.mobile_risk_score,
        'ml_risk_score': a.ml_risk_score,
        'final_risk_level': a.final_risk_level,
        'status': a.status,
        'synced_at': a.synced_at.isoformat() if a.synced_at else None,
    }


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_assessment_store(request):
    s = MobileAssessmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    existing = assessment_svc.find_existing(s.validated_data.get('assessment_external_id'))
    if existing is not None:
        return ok(_assessment_receipt(existing), 'Assessment already synced')
    a = assessment_svc.ingest_mobile(s.validated_data)
    return created(_assessment_receipt(a), 'Assessment synced successfully')


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_assessment_bulk(request):
    s = MobileBulkSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    items, errors = [], {}
    for index, raw in enumerate(s.validated_data['assessments']):
        item = MobileAssessmentSerializer(data=raw)
        if item.is_valid():
            items.append(item.validated_data)
        else:
            items.append(raw)
            errors[index] = item.errors
    summary = assessment_svc.bulk_ingest(items, errors)
    return ok(summary, f"{summary['successful']} of {summary['total']} assessments synced")


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_assessment_sync(request):
    since = parse_since(request.query_params.get('since'))
    qs = Assessment.objects.filter(mobile_user_id=_mobile_user_id(request))
    server_time = timezone.now()
    items = list(changed_since(qs, since))
    return ok([assessment_svc.format_assessment(a) for a in items], meta=sync_meta(items, since, server_time))


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_facility_list(request):
    s = FacilityListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    items = facility_svc.filter_facilities(with_coordinates=True, **s.validated_data)
    return ok([facility_svc.format_facility(f, mobile=True) for f in items],
              meta={'total': len(items), 'last_updated': facility_svc.last_updated(), 'version': '1.0'})


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_facility_sync(request):
    since = parse_since(request.query_params.get('since'))
    qs = HealthcareFacility.objects.filter(is_active=True, latitude__isnull=False, longitude__isnull=False)
    server_time = timezone.now()
    items = list(changed_since(qs, since))
    return ok([facility_svc.format_facility(f, mobile=True) for f in items],
              meta=sync_meta(items, since, server_time))


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_facility_nearby(request):
    s = NearbyQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    found = facility_svc.nearby(vd['latitude'], vd['longitude'], vd['radius'])
    return _nearby_response(found, vd['latitude'], vd['longitude'], vd['radius'], mobile=True)


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_appointments(request):
    if request.method == 'POST':
        s = MobileAppointmentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        a, is_new = appointment_svc.book(dict(s.validated_data), source='mobile')
        data = appointment_svc.format_appointment(appointment_svc.appointments().get(pk=a.pk))
        data['confirmation_token'] = a.confirmation_token
        if not is_new:
            return ok(data, 'Appointment already booked')
        return created(data, 'Appointment booked successfully')

    qs = appointment_svc.filter_appointments(mobile_user_id=_mobile_user_id(request))
    items = list(qs)
    return ok([appointment_svc.format_appointment(a) for a in items], meta={'total': len(items)})


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_appointment_cancel(request, pk: int):
    s = MobileCancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    a = appointment_svc.cancel_for_mobile(pk, s.validated_data['mobile_user_id'], reason=s.validated_data['reason'])
    return ok(appointment_svc.format_appointment(a), 'Appointment cancelled')


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_appointment_sync(request):
    since = parse_since(request.query_params.get('since'))
    qs = appointment_svc.appointments().filter(mobile_user_id=_mobile_user_id(request))
    server_time = timezone.now()
    items = list(changed_since(qs, since))
    return ok([appointment_svc.format_appointment(a) for a in items], meta=sync_meta(items, since, server_time))


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_education_list(request):
    return list_content(request)


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([MobileSyncRateThrottle])
def mobile_education_sync(request):
    return sync_content(request)
