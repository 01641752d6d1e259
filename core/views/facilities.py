"""
Healthcare facility directory endpoints.

Reads are open to staff; creating, editing and capacity updates need an
administrator role.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from core.models import HealthcareFacility
from core.permissions import IsAdminRole, IsStaff
from core.responses import created, ok
from core.serializers.facilities import (
    CapacitySerializer, FacilityListQuerySerializer, FacilitySerializer, NearbyQuerySerializer, RadiusQuerySerializer,
)
from core.services import facilities as svc


def _require_admin(request) -> None:
    if not IsAdminRole().has_permission(request, None):
        raise PermissionDenied('Only administrators can change facilities.')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_collection(request):
    if request.method == 'POST':
        _require_admin(request)
        s = FacilitySerializer(data=request.data)
        s.is_valid(raise_exception=True)
        f = svc.save_facility(request.user, s.validated_data)
        return created(svc.format_facility(f), 'Facility created successfully')

    s = FacilityListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    items = svc.filter_facilities(**s.validated_data)
    return ok([svc.format_facility(f) for f in items],
              meta={'total': len(items), 'last_updated': svc.last_updated()})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_detail(request, pk: int):
    f = HealthcareFacility.objects.get(pk=pk)
    if request.method == 'PUT':
        _require_admin(request)
        s = FacilitySerializer(f, data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        f = svc.save_facility(request.user, s.validated_data, instance=f)
        return ok(svc.format_facility(f), 'Facility updated successfully')
    return ok(svc.format_facility(f))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_regions(request):
    data = svc.regions()
    return ok(data, meta={'total': len(data)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_types(request):
    data = svc.types()
    return ok(data, meta={'total': len(data)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_count(request):
    return ok(svc.counts())


def _nearby_response(found, latitude, longitude, radius, *, mobile=False):
    return ok(
        [svc.format_facility(f, mobile=mobile, distance=d) for f, d in found],
        meta={'total': len(found), 'center': {'latitude': latitude, 'longitude': longitude}, 'radius_km': radius},
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_nearby(request):
    s = NearbyQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    found = svc.nearby(vd['latitude'], vd['longitude'], vd['radius'])
    return _nearby_response(found, vd['latitude'], vd['longitude'], vd['radius'])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def facility_nearby_of(request, pk: int):
    s = RadiusQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    radius = s.validated_data['radius']
    origin, found = svc.nearby_facility(pk, radius)
    return _nearby_response(found, float(origin.latitude), float(origin.longitude), radius)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def facility_capacity(request, pk: int):
    s = CapacitySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    f = svc.update_capacity(pk, request.user, **s.validated_data)
    return ok(svc.format_facility(f), 'Capacity updated')
