from datetime import timedelta
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from core.models import Appointment, Assessment, EducationalContent, HealthcareFacility
from core.services import sync
from core.services.sync import parse_since

pytestmark = pytest.mark.django_db


def payload(**kwargs):
    data = {
        'assessment_external_id': 'mob-0001',
        'mobile_user_id': 'device-user-1',
        'patient_first_name': 'Maria',
        'patient_last_name': 'Clara',
        'final_risk_score': 20,
        'final_risk_level': 'High',
        'urgency': 'Urgent',
        'symptoms': ['palpitations'],
        'vital_signs': {'systolic_bp': 150, 'diastolic_bp': 95},
        'device_platform': 'android',
    }
    data.update(kwargs)
    return data


def stamp(model, obj, when):
    model.objects.filter(pk=obj.pk).update(updated_at=when)


def test_store_scales_score_and_keeps_mobile_value():
    client = APIClient()
    r = client.post(reverse('mobile-assessment-store'), payload(), format='json')
    assert r.status_code == 201
    assert r['X-Mobile-API-Version'] == '1.0'
    data = r.data['data']
    assert data['mobile_risk_score'] == 20
    assert data['ml_risk_score'] == 80
    assert data['final_risk_level'] == 'High'
    assert data['status'] == 'pending'
    assert data['synced_at']


def test_store_is_idempotent_on_external_id():
    client = APIClient()
    first = client.post(reverse('mobile-assessment-store'), payload(), format='json')
    again = client.post(reverse('mobile-assessment-store'), payload(final_risk_score=5), format='json')
    assert again.status_code == 200
    assert again.data['data']['id'] == first.data['data']['id']
    assert Assessment.objects.count() == 1


def test_store_rejects_score_outside_mobile_scale():
    r = APIClient().post(reverse('mobile-assessment-store'), payload(final_risk_score=30), format='json')
    assert r.status_code == 422
    assert 'final_risk_score' in r.data['errors']


def test_bulk_reports_each_item():
    client = APIClient()
    client.post(reverse('mobile-assessment-store'), payload(assessment_external_id='dup'), format='json')
    items = [
        payload(assessment_external_id='b-1', final_risk_score=8),
        payload(assessment_external_id='b-2', final_risk_score=99),
        payload(assessment_external_id='dup'),
    ]
    r = client.post(reverse('mobile-assessment-bulk'), {'assessments': items}, format='json')
    assert r.status_code == 200
    summary = r.data['data']
    assert (summary['total'], summary['successful'], summary['failed']) == (3, 1, 2)
    ok, bad, dup = summary['results']
    assert ok['success'] and ok['assessment_external_id'] == 'b-1'
    assert not bad['success'] and 'final_risk_score' in bad['errors']
    assert dup['message'] == 'Assessment already exists'
    assert Assessment.objects.get(assessment_external_id='b-1').ml_risk_score == 32


def test_sync_requires_valid_since():
    client = APIClient()
    r = client.get(reverse('mobile-facility-sync'))
    assert r.status_code == 422
    assert 'since' in r.data['errors']
    r = client.get(reverse('mobile-facility-sync'), {'since': 'yesterday'})
    assert r.status_code == 422


def test_parse_since_accepts_unencoded_offset_and_dates():
    value = parse_since('2025-01-01T08:00:00 08:00')
    assert value.utcoffset() == timedelta(hours=8)
    assert parse_since('2025-01-01').hour == 0
    with pytest.raises(ValidationError):
        parse_since('')


def test_facility_sync_returns_changes_after_since_in_order(make_facility):
    base = timezone.now() - timedelta(days=10)
    old = make_facility(name='Old')
    newer = make_facility(name='Newer')
    newest = make_facility(name='Newest')
    no_coords = make_facility(name='No coordinates', latitude=None, longitude=None)
    stamp(HealthcareFacility, old, base)
    stamp(HealthcareFacility, newest, base + timedelta(days=3))
    stamp(HealthcareFacility, newer, base + timedelta(days=2))
    stamp(HealthcareFacility, no_coords, base + timedelta(days=4))

    since = (base + timedelta(days=1)).isoformat()
    r = APIClient().get(reverse('mobile-facility-sync'), {'since': since})
    assert r.status_code == 200
    assert [f['id'] for f in r.data['data']] == [newer.id, newest.id]
    assert r.data['meta']['count'] == 2
    assert r.data['meta']['server_time']
    assert r.data['data'][0]['type'] == 'hospital'
    assert 'emergency_services' in r.data['data'][0]


def test_assessment_sync_is_scoped_to_mobile_user(make_assessment):
    base = timezone.now() - timedelta(days=5)
    mine = make_assessment(mobile_user_id='u-1')
    theirs = make_assessment(mobile_user_id='u-2')
    stale = make_assessment(mobile_user_id='u-1')
    stamp(Assessment, stale, base)
    client = APIClient()
    url = reverse('mobile-assessment-sync')
    assert client.get(url, {'since': base.isoformat()}).status_code == 422
    r = client.get(url, {'since': (base + timedelta(days=1)).isoformat(), 'mobile_user_id': 'u-1'})
    assert [a['id'] for a in r.data['data']] == [mine.id]
    assert theirs.id not in [a['id'] for a in r.data['data']]


def test_mobile_facility_list_and_nearby(make_facility):
    near = make_facility(name='Near', latitude=Decimal('14.6010'), longitude=Decimal('121.0010'))
    make_facility(name='Hidden', latitude=None, longitude=None)
    client = APIClient()
    r = client.get(reverse('mobile-facility-list'))
    assert [f['name'] for f in r.data['data']] == ['Near']
    assert r.data['meta']['total'] == 1
    r = client.get(reverse('mobile-facility-nearby'), {'latitude': 14.6, 'longitude': 121.0, 'radius': 5})
    assert [f['id'] for f in r.data['data']] == [near.id]
    assert r.data['data'][0]['distance'] < 1


def test_mobile_appointment_booking_and_cancel(facility):
    client = APIClient()
    when = (timezone.now() + timedelta(days=3)).isoformat()
    body = {'mobile_appointment_id': 'appt-1', 'mobile_user_id': 'u-1', 'patient_first_name': 'Juan',
            'patient_last_name': 'Dela Cruz', 'facility_id': facility.id, 'appointment_datetime': when}
    r = client.post(reverse('mobile-appointments'), body, format='json')
    assert r.status_code == 201
    appt_id = r.data['data']['id']
    assert r.data['data']['booking_source'] == 'mobile'
    assert r.data['data']['confirmation_token']

    again = client.post(reverse('mobile-appointments'), body, format='json')
    assert again.status_code == 200
    assert again.data['data']['id'] == appt_id

    r = client.get(reverse('mobile-appointments'), {'mobile_user_id': 'u-1'})
    assert [a['id'] for a in r.data['data']] == [appt_id]
    assert client.get(reverse('mobile-appointments')).status_code == 422

    url = reverse('mobile-appointment-cancel', args=[appt_id])
    r = client.post(url, {'mobile_user_id': 'someone-else', 'reason': 'Travel'}, format='json')
    assert r.status_code == 404
    r = client.post(url, {'mobile_user_id': 'u-1', 'reason': 'Travel'}, format='json')
    assert r.status_code == 200
    assert Appointment.objects.get(pk=appt_id).status == 'cancelled'


def test_mobile_education_sync_skips_unpublished():
    base = timezone.now() - timedelta(days=2)
    shown = EducationalContent.objects.create(category='nutrition', title_en='Eat well', title_fil='Kumain nang tama',
                                              content_en='...', content_fil='...')
    EducationalContent.objects.create(category='nutrition', title_en='Draft', title_fil='Draft',
                                      content_en='...', content_fil='...', published=False)
    r = APIClient().get(reverse('mobile-education-sync'), {'since': base.isoformat(), 'language': 'fil'})
    assert r.status_code == 200
    assert [c['id'] for c in r.data['data']] == [shown.id]
    assert r.data['data'][0]['title'] == 'Kumain nang tama'


def book(facility, mobile_user_id, days):
    return Appointment.objects.create(
        mobile_user_id=mobile_user_id, patient_first_name='Juan', patient_last_name='Dela Cruz',
        facility=facility, appointment_datetime=timezone.now() + timedelta(days=days),
    )


def test_appointment_sync_is_scoped_and_ordered(facility):
    base = timezone.now() - timedelta(days=5)
    later = book(facility, 'u-1', 1)
    earlier = book(facility, 'u-1', 2)
    stale = book(facility, 'u-1', 3)
    theirs = book(facility, 'u-2', 4)
    stamp(Appointment, stale, base)
    stamp(Appointment, earlier, base + timedelta(days=2))
    stamp(Appointment, later, base + timedelta(days=3))
    stamp(Appointment, theirs, base + timedelta(days=2))

    url = reverse('mobile-appointment-sync')
    client = APIClient()
    since = (base + timedelta(days=1)).isoformat()
    assert client.get(url, {'since': since}).status_code == 422
    r = client.get(url, {'since': since, 'mobile_user_id': 'u-1'})
    assert r.status_code == 200
    assert [a['id'] for a in r.data['data']] == [earlier.id, later.id]
    assert r.data['meta']['count'] == 2


def test_server_time_is_taken_before_the_query(monkeypatch, facility):
    written = []

    def racing(qs, since):
        # a booking lands while the pull is running
        written.append(book(facility, 'u-1', 1))
        return sync.changed_since(qs, since)

    monkeypatch.setattr('core.views.mobile.changed_since', racing)
    client = APIClient()
    r = client.get(reverse('mobile-appointment-sync'),
                   {'since': (timezone.now() - timedelta(days=1)).isoformat(), 'mobile_user_id': 'u-1'})
    server_time = parse_since(r.data['meta']['server_time'])
    written[0].refresh_from_db()
    assert server_time < written[0].updated_at

    monkeypatch.undo()
    r = client.get(reverse('mobile-appointment-sync'),
                   {'since': server_time.isoformat(), 'mobile_user_id': 'u-1'})
    assert [a['id'] for a in r.data['data']] == [written[0].id]
