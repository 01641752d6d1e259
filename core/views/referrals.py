"""
Referral endpoints.

Each action maps onto one function of :mod:`core.services.referrals`;
illegal status moves surface as 409 through the exception handler.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from core.permissions import IsClinicalRole, IsStaff
from core.responses import created, ok, paginate
from core.serializers.referrals import (
    ReferralAcceptSerializer, ReferralCancelSerializer, ReferralCompleteSerializer, ReferralCreateSerializer,
    ReferralEscalateSerializer, ReferralListQuerySerializer, ReferralRejectSerializer, ReferralScheduleSerializer,
    ReferralStatusSerializer,
)
from core.services import referrals as svc


def _require_clinical(request, message: str) -> None:
    if not IsClinicalRole().has_permission(request, None):
        raise PermissionDenied(message)


def _detail(r, message=None):
    return ok(svc.format_referral(svc.get_referral(r.pk), detail=True), message)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def referral_collection(request):
    if request.method == 'POST':
        _require_clinical(request, 'Only clinical staff can create referrals.')
        s = ReferralCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        r = svc.create_referral(request.user, s.validated_data, request=request)
        return created(svc.format_referral(svc.get_referral(r.pk), detail=True), 'Referral created successfully')

    s = ReferralListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    page, per_page = vd.pop('page'), vd.pop('per_page')
    items, meta = paginate(svc.filter_referrals(**vd), page, per_page)
    return ok([svc.format_referral(r) for r in items], meta=meta)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaff])
def referral_detail(request, pk: int):
    if request.method == 'DELETE':
        _require_clinical(request, 'Only clinical staff can delete referrals.')
        svc.delete_referral(pk, request.user)
        return ok(None, 'Referral deleted')
    return ok(svc.format_referral(svc.get_referral(pk), detail=True))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def referral_statistics(request):
    return ok(svc.statistics())


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def referral_accept(request, pk: int):
    s = ReferralAcceptSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r = svc.accept_referral(pk, request.user, request=request, **s.validated_data)
    return _detail(r, 'Referral accepted successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def referral_reject(request, pk: int):
    s = ReferralRejectSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r = svc.reject_referral(pk, request.user, request=request, **s.validated_data)
    return _detail(r, 'Referral rejected')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def referral_status(request, pk: int):
    s = ReferralStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r = svc.update_status(pk, request.user, request=request, **s.validated_data)
    return _detail(r, 'Referral status updated')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def referral_schedule(request, pk: int):
    s = ReferralScheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r = svc.schedule_referral(pk, request.user, request=request, **s.validated_data)
    return _detail(r, 'Appointment scheduled')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def referral_complete(request, pk: int):
    s = ReferralCompleteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r = svc.complete_referral(pk, request.user, s.validated_data, request=request)
    return _detail(r, 'Referral completed')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def referral_escalate(request, pk: int):
    s = ReferralEscalateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r = svc.escalate_referral(pk, request.user, request=request, **s.validated_data)
    return _detail(r, 'Referral escalated')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def referral_cancel(request, pk: int):
    s = ReferralCancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r = svc.cancel_referral(pk, request.user, request=request, **s.validated_data)
    return _detail(r, 'Referral cancelled')
