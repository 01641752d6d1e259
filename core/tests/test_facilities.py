from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework.exceptions import ValidationError

from core.models import AuditEvent
from core.services.facilities import haversine_km, nearby

pytestmark = pytest.mark.django_db


def test_region_filter_returns_only_active_matches(client_for, nurse, facility, make_facility):
    make_facility(name='Inactive NCR', region='NCR', is_active=False)
    make_facility(name='Cebu Center', region='Region VII')
    r = client_for(nurse).get(reverse('facility-list'), {'region': 'NCR'})
    assert r.status_code == 200
    names = [f['name'] for f in r.data['data']]
    assert names == ['Philippine Heart Center']
    assert all(f['region'] == 'NCR' and f['is_active'] for f in r.data['data'])
    assert r.data['meta']['total'] == 1


def test_services_filter_matches_any(client_for, nurse, make_facility):
    make_facility(name='A', services=['cardiology', 'icu'])
    make_facility(name='B', services=['laboratory'])
    make_facility(name='C', services=['Emergency'])
    r = client_for(nurse).get(reverse('facility-list'), {'services': 'icu,emergency'})
    assert sorted(f['name'] for f in r.data['data']) == ['A', 'C']


def test_accepts_referrals_filter_is_tri_state(client_for, make_user, make_facility):
    analyst = make_user('analyst1', role='analyst')
    make_facility(name='Open', accepts_referrals=True)
    make_facility(name='Closed', accepts_referrals=False)
    client = client_for(analyst)
    assert len(client.get(reverse('facility-list')).data['data']) == 2
    r = client.get(reverse('facility-list'), {'accepts_referrals': 'false'})
    assert [f['name'] for f in r.data['data']] == ['Closed']


def test_haversine_known_distance():
    # Manila to Cebu City is roughly 570 km
    d = haversine_km(14.5995, 120.9842, 10.3157, 123.8854)
    assert 560 < d < 580
    assert haversine_km(14.6, 121.0, 14.6, 121.0) == 0


def test_nearby_orders_by_distance(client_for, make_user, make_facility):
    analyst = make_user('analyst1', role='analyst')
    far = make_facility(name='Far', latitude=Decimal('14.9000'), longitude=Decimal('121.0000'))
    near = make_facility(name='Near', latitude=Decimal('14.6010'), longitude=Decimal('121.0010'))
    mid = make_facility(name='Mid', latitude=Decimal('14.7000'), longitude=Decimal('121.0000'))
    make_facility(name='Cebu', latitude=Decimal('10.3157'), longitude=Decimal('123.8854'))
    r = client_for(analyst).get(reverse('facility-nearby'), {'latitude': 14.6, 'longitude': 121.0, 'radius': 50})
    assert r.status_code == 200
    assert [f['id'] for f in r.data['data']] == [near.id, mid.id, far.id]
    distances = [f['distance'] for f in r.data['data']]
    assert distances == sorted(distances)
    assert r.data['meta']['radius_km'] == 50


def test_nearby_rejects_bad_radius():
    with pytest.raises(ValidationError):
        nearby(14.6, 121.0, 500)


def test_nearby_of_facility_excludes_origin(client_for, nurse, facility, make_facility):
    other = make_facility(name='Neighbour', latitude=Decimal('14.6800'), longitude=Decimal('121.0400'))
    r = client_for(nurse).get(reverse('facility-nearby-of', args=[facility.id]))
    assert [f['id'] for f in r.data['data']] == [other.id]


def test_only_admin_can_create(client_for, nurse, admin_user):
    body = {'code': 'NEW-1', 'name': 'New Clinic', 'type': 'clinic', 'region': 'NCR'}
    assert client_for(nurse).post(reverse('facility-list'), body, format='json').status_code == 403
    r = client_for(admin_user).post(reverse('facility-list'), body, format='json')
    assert r.status_code == 201
    assert r.data['data']['code'] == 'NEW-1'
    assert AuditEvent.objects.filter(action='facility_create').exists()


def test_capacity_update_validates_beds(client_for, admin_user, facility):
    url = reverse('facility-capacity', args=[facility.id])
    client = client_for(admin_user)
    r = client.post(url, {'current_bed_availability': 5, 'bed_capacity': 10}, format='json')
    assert r.status_code == 200
    assert r.data['data']['current_bed_availability'] == 5
    assert r.data['data']['bed_occupancy_percentage'] == 50.0
    r = client.post(url, {'current_bed_availability': 11}, format='json')
    assert r.status_code == 422


def test_regions_types_count(client_for, nurse, facility, make_facility):
    make_facility(region='Region VII', type='clinic', has_emergency=False)
    client = client_for(nurse)
    assert client.get(reverse('facility-regions')).data['data'] == ['NCR', 'Region VII']
    assert client.get(reverse('facility-types')).data['data'] == ['clinic', 'specialty_center']
    counts = client.get(reverse('facility-count')).data['data']
    assert counts['total'] == 2
    assert counts['with_emergency'] == 1
