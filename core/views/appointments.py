"""
Appointment endpoints for staff, plus the public confirmation link.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated

from core.permissions import IsStaff
from core.responses import created, ok, paginate
from core.serializers.appointments import (
    AppointmentCancelSerializer, AppointmentCompleteSerializer, AppointmentConfirmSerializer,
    AppointmentCreateSerializer, AppointmentListQuerySerializer, AppointmentRescheduleSerializer,
    AvailabilitySerializer,
)
from core.services import appointments as svc


def _detail(a, message=None, status=200):
    a = svc.appointments().get(pk=a.pk)
    return ok(svc.format_appointment(a, detail=True), message, status=status)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_collection(request):
    if request.method == 'POST':
        s = AppointmentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = dict(s.validated_data)
        source = vd.pop('booking_source', 'web')
        a, is_new = svc.book(vd, user=request.user, source=source)
        if not is_new:
            return _detail(a, 'Appointment already booked')
        return _detail(a, 'Appointment booked successfully', status=201)

    s = AppointmentListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    page, per_page = vd.pop('page'), vd.pop('per_page')
    items, meta = paginate(svc.filter_appointments(**vd), page, per_page)
    return ok([svc.format_appointment(a) for a in items], meta=meta)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_detail(request, pk: int):
    return ok(svc.format_appointment(svc.appointments().get(pk=pk), detail=True))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_check_availability(request):
    s = AvailabilitySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    return ok(svc.check_availability(
        start=vd['appointment_datetime'], duration_minutes=vd['duration_minutes'],
        doctor_id=vd.get('doctor_id'), facility_id=vd.get('facility_id'),
    ))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_statistics(request):
    return ok(svc.statistics())


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_confirm(request, pk: int):
    s = AppointmentConfirmSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _detail(svc.confirm(pk, request.user, method=s.validated_data['method']), 'Appointment confirmed')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_check_in(request, pk: int):
    return _detail(svc.check_in(pk, request.user), 'Patient checked in')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_start(request, pk: int):
    return _detail(svc.start(pk, request.user), 'Appointment started')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_complete(request, pk: int):
    s = AppointmentCompleteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _detail(svc.complete(pk, request.user, **s.validated_data), 'Appointment completed')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_cancel(request, pk: int):
    s = AppointmentCancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _detail(svc.cancel(pk, request.user, reason=s.validated_data['reason']), 'Appointment cancelled')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
def appointment_reschedule(request, pk: int):
    s = AppointmentRescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    new = svc.reschedule(pk, request.user, **s.validated_data)
    return _detail(new, 'Appointment rescheduled', status=201)


@api_view(['GET'])
@permission_classes([AllowAny])
def appointment_confirm_by_token(request, token: str):
    a = svc.confirm_by_token(token)
    return ok({
        'id': a.id,
        'status': a.status,
        'is_confirmed': a.is_confirmed,
        'appointment_datetime': a.appointment_datetime.isoformat(),
        'facility_name': a.facility.name if a.facility_id else None,
    }, 'Appointment confirmed')
