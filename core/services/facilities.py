"""
Healthcare facility directory: filtering, distance search and capacity.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Optional

from django.db import transaction
from django.db.models import Count, Max, Q
from rest_framework.exceptions import ValidationError

from core.models import HealthcareFacility
from core.services.audit import log_action
from core.services.realtime import broadcast

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
DEFAULT_RADIUS_KM = 50
MAX_RADIUS_KM = 100


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dp = p2 - p1
    dl = math.radians(lng2 - lng1)
    a = math.sin(dp / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def describe(f: HealthcareFacility) -> str:
    parts = []
    if f.level:
        parts.append(f'{f.level.capitalize()} care')
    parts.append(f.get_type_display())
    features = []
    if f.has_emergency:
        features.append('Emergency services')
    if f.is_24_7:
        features.append('24/7 operations')
    if f.is_philhealth_accredited:
        features.append('PhilHealth accredited')
    if features:
        parts.append(', '.join(features))
    if f.city:
        parts.append(f'Located in {f.city}')
        if f.region:
            parts.append(f.region)
    return '. '.join(parts) + '.'


def format_facility(f: HealthcareFacility, *, mobile: bool = False, distance: Optional[float] = None) -> dict[str, Any]:
    data: dict[str, Any] = {
        'id': f.id,
        'code': f.code,
        'name': f.name,
        'type': f.mobile_type if mobile else f.type,
        'level': f.level,
        'latitude': float(f.latitude) if f.latitude is not None else None,
        'longitude': float(f.longitude) if f.longitude is not None else None,
        'address': f.address,
        'city': f.city,
        'province': f.province,
        'region': f.region,
        'postal_code': f.postal_code,
        'phone': f.phone,
        'email': f.email,
        'website': f.website,
        'services': f.services or [],
        'has_emergency': f.has_emergency,
        'is_24_7': f.is_24_7,
        'operating_hours': f.operating_hours,
        'bed_capacity': f.bed_capacity,
        'icu_capacity': f.icu_capacity,
        'current_bed_availability': f.current_bed_availability,
        'bed_occupancy_percentage': f.bed_occupancy_percentage,
        'is_public': f.is_public,
        'is_doh_accredited': f.is_doh_accredited,
        'is_philhealth_accredited': f.is_philhealth_accredited,
        'accreditations': f.accreditations or [],
        'accepts_referrals': f.accepts_referrals,
        'average_response_time_hours': f.average_response_time_hours,
        'preferred_referral_types': f.preferred_referral_types or [],
        'is_active': f.is_active,
        'status_notes': f.status_notes,
        'created_at': _iso(f.created_at),
        'updated_at': _iso(f.updated_at),
    }
    if mobile:
        # Field names the mobile app has shipped with
        data.update({
            'municipality': f.city,
            'contact_number': f.phone or f.email,
            'emergency_services': f.has_emergency,
            'open_24_hours': f.is_24_7,
            'accepts_philhealth': f.is_philhealth_accredited,
            'capacity': f.bed_capacity,
            'description': describe(f),
        })
    else:
        data.update({'is_verified': f.is_verified, 'created_from_mobile': f.created_from_mobile})
    if distance is not None:
        data['distance'] = round(distance, 2)
    return data


def _split(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(',')
    return [v.strip() for v in value if v and v.strip()]


def filter_facilities(*, region=None, type=None, level=None, city=None, services=None, emergency_only=False,
                      philhealth_only=False, accepts_referrals=None, search=None, with_coordinates=False):
    """Active facilities matching the filters, ordered by region, city and name.

    ``services`` matches facilities offering any of the listed services.
    JSON containment is not portable across databases, so that filter
    runs in Python and the result is a list.
    """
    qs = HealthcareFacility.objects.filter(is_active=True)
    if with_coordinates:
        qs = qs.filter(latitude__isnull=False, longitude__isnull=False)
    if region:
        qs = qs.filter(region=region)
    if type:
        qs = qs.filter(type=type)
    if level:
        qs = qs.filter(level=level)
    if city:
        qs = qs.filter(city__iexact=city)
    if emergency_only:
        qs = qs.filter(has_emergency=True)
    if philhealth_only:
        qs = qs.filter(is_philhealth_accredited=True)
    if accepts_referrals is not None:
        qs = qs.filter(accepts_referrals=accepts_referrals)
    if search:
        qs = qs.filter(
            Q(name__icontains=search) | Q(code__icontains=search)
            | Q(city__icontains=search) | Q(province__icontains=search)
        )
    qs = qs.order_by('region', 'city', 'name')
    wanted = {s.lower() for s in _split(services)}
    if not wanted:
        return list(qs)
    return [f for f in qs if wanted & {str(s).lower() for s in (f.services or [])}]


def last_updated() -> Optional[str]:
    return _iso(HealthcareFacility.objects.filter(is_active=True).aggregate(m=Max('updated_at'))['m'])


def nearby(latitude: float, longitude: float, radius_km: float = DEFAULT_RADIUS_KM, *,
           exclude_id: Optional[int] = None, candidates: Optional[Iterable[HealthcareFacility]] = None
           ) -> list[tuple[HealthcareFacility, float]]:
    """Facilities within ``radius_km`` of a point, nearest first."""
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise ValidationError({'latitude': ['Coordinates are out of range.']})
    if not 1 <= radius_km <= MAX_RADIUS_KM:
        raise ValidationError({'radius': [f'Radius must be between 1 and {MAX_RADIUS_KM} km.']})
    if candidates is None:
        candidates = HealthcareFacility.objects.filter(
            is_active=True, latitude__isnull=False, longitude__isnull=False
        )
    found = []
    for f in candidates:
        if f.pk == exclude_id or f.latitude is None or f.longitude is None:
            continue
        d = haversine_km(latitude, longitude, float(f.latitude), float(f.longitude))
        if d <= radius_km:
            found.append((f, d))
    found.sort(key=lambda pair: (pair[1], pair[0].pk))
    return found


def nearby_facility(facility_id: int, radius_km: float = DEFAULT_RADIUS_KM):
    origin = HealthcareFacility.objects.get(pk=facility_id)
    if origin.latitude is None or origin.longitude is None:
        raise ValidationError({'facility': ['Facility has no coordinates.']})
    return origin, nearby(float(origin.latitude), float(origin.longitude), radius_km, exclude_id=origin.pk)


def regions() -> list[str]:
    return sorted(
        r for r in HealthcareFacility.objects.filter(is_active=True).values_list('region', flat=True).distinct() if r
    )


def types() -> list[str]:
    return sorted(set(HealthcareFacility.objects.filter(is_active=True).values_list('type', flat=True)))


def counts() -> dict[str, Any]:
    active = HealthcareFacility.objects.filter(is_active=True)
    return {
        'total': active.count(),
        'by_type': dict(active.values_list('type').annotate(n=Count('id')).order_by()),
        'by_region': dict(active.values_list('region').annotate(n=Count('id')).order_by()),
        'by_level': dict(active.values_list('level').annotate(n=Count('id')).order_by()),
        'with_emergency': active.filter(has_emergency=True).count(),
        'philhealth_accredited': active.filter(is_philhealth_accredited=True).count(),
        'open_24_hours': active.filter(is_24_7=True).count(),
        'accepting_referrals': active.filter(accepts_referrals=True).count(),
    }


def save_facility(user, data: dict[str, Any], instance: Optional[HealthcareFacility] = None) -> HealthcareFacility:
    with transaction.atomic():
        if instance is None:
            f = HealthcareFacility.objects.create(**data)
            action = 'facility_create'
        else:
            f = HealthcareFacility.objects.select_for_update().get(pk=instance.pk)
            for field, value in data.items():
                setattr(f, field, value)
            f.save()
            action = 'facility_update'
        log_action(user=user, action=action, object_type='facility', object_id=f.id,
                   detail={'fields': sorted(data)})
    transaction.on_commit(lambda: broadcast('facility.updated', facility_id=f.id))
    return f


def update_capacity(facility_id: int, user, *, current_bed_availability: int,
                    bed_capacity: Optional[int] = None, icu_capacity: Optional[int] = None) -> HealthcareFacility:
    with transaction.atomic():
        f = HealthcareFacility.objects.select_for_update().get(pk=facility_id)
        if bed_capacity is not None:
            f.bed_capacity = bed_capacity
        if icu_capacity is not None:
            f.icu_capacity = icu_capacity
        if current_bed_availability > f.bed_capacity:
            raise ValidationError({'current_bed_availability': ['Cannot exceed bed capacity.']})
        f.current_bed_availability = current_bed_availability
        f.save()
        log_action(user=user, action='facility_capacity', object_type='facility', object_id=f.id,
                   detail={'available': current_bed_availability, 'beds': f.bed_capacity})
    logger.info('facility %s capacity %s/%s', f.id, f.current_bed_availability, f.bed_capacity)
    transaction.on_commit(lambda: broadcast('facility.capacity', facility_id=f.id))
    return f
