from datetime import timedelta

import pytest
from django.core.management import call_command
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from core.models import Appointment, Notification
from core.services import appointments as svc

pytestmark = pytest.mark.django_db


def future(hours=24):
    return timezone.now() + timedelta(hours=hours)


@pytest.fixture
def booking(facility, doctor):
    def make(**kwargs):
        data = {
            'patient_first_name': 'Juan',
            'patient_last_name': 'Dela Cruz',
            'facility_id': facility.id,
            'doctor_id': doctor.id,
            'appointment_datetime': future(),
            'duration_minutes': 30,
        }
        data.update(kwargs)
        appt, _ = svc.book(data)
        return appt
    return make


def test_book_via_api_notifies_doctor(client_for, nurse, doctor, facility):
    body = {'patient_first_name': 'Juan', 'patient_last_name': 'Dela Cruz', 'facility_id': facility.id,
            'doctor_id': doctor.id, 'appointment_datetime': future().isoformat(), 'appointment_type': 'follow_up'}
    r = client_for(nurse).post(reverse('appointment-list'), body, format='json')
    assert r.status_code == 201
    assert r.data['data']['status'] == 'scheduled'
    assert r.data['data']['doctor_id'] == doctor.id
    assert Notification.objects.filter(user=doctor, type='appointment').count() == 1
    appt = Appointment.objects.get(pk=r.data['data']['id'])
    assert appt.booked_by == nurse
    assert appt.confirmation_token and appt.token_expires_at > timezone.now()


def test_book_refuses_past_and_overlapping_slots(client_for, nurse, doctor, facility, booking):
    existing = booking()
    client = client_for(nurse)
    body = {'patient_first_name': 'Ana', 'patient_last_name': 'Reyes', 'doctor_id': doctor.id,
            'facility_id': facility.id}
    overlap = dict(body, appointment_datetime=(existing.appointment_datetime + timedelta(minutes=15)).isoformat())
    r = client.post(reverse('appointment-list'), overlap, format='json')
    assert r.status_code == 422
    assert 'appointment_datetime' in r.data['errors']

    past = dict(body, appointment_datetime=(timezone.now() - timedelta(hours=1)).isoformat())
    assert client.post(reverse('appointment-list'), past, format='json').status_code == 422

    after = dict(body, appointment_datetime=existing.end_datetime.isoformat())
    assert client.post(reverse('appointment-list'), after, format='json').status_code == 201


def test_check_availability(client_for, nurse, doctor, booking):
    existing = booking()
    r = client_for(nurse).post(reverse('appointment-check-availability'), {
        'appointment_datetime': existing.appointment_datetime.isoformat(), 'doctor_id': doctor.id,
    }, format='json')
    assert r.status_code == 200
    assert r.data['data']['available'] is False
    assert [c['id'] for c in r.data['data']['conflicts']] == [existing.id]


def test_visit_workflow(client_for, nurse, booking):
    appt = booking()
    client = client_for(nurse)
    for name, expected in (('appointment-confirm', 'confirmed'), ('appointment-check-in', 'checked_in'),
                           ('appointment-start', 'in_progress')):
        r = client.post(reverse(name, args=[appt.id]), {}, format='json')
        assert r.status_code == 200, r.data
        assert r.data['data']['status'] == expected
    r = client.post(reverse('appointment-complete', args=[appt.id]), {'visit_summary': 'BP controlled'},
                    format='json')
    assert r.data['data']['status'] == 'completed'
    assert r.data['data']['visit_summary'] == 'BP controlled'
    r = client.post(reverse('appointment-cancel', args=[appt.id]), {'reason': 'late'}, format='json')
    assert r.status_code == 409


def test_reschedule_links_new_appointment(client_for, nurse, booking):
    appt = booking()
    new_time = future(72)
    r = client_for(nurse).post(reverse('appointment-reschedule', args=[appt.id]),
                               {'new_datetime': new_time.isoformat(), 'reason': 'Doctor on leave'}, format='json')
    assert r.status_code == 201
    assert r.data['data']['rescheduled_from'] == appt.id
    assert r.data['data']['status'] == 'scheduled'
    appt.refresh_from_db()
    assert appt.status == 'rescheduled'
    assert appt.rescheduled_at is not None
    new = Appointment.objects.get(pk=r.data['data']['id'])
    assert new.patient_last_name == appt.patient_last_name
    assert new.confirmation_token != appt.confirmation_token


def test_no_show_sweep(booking, settings):
    settings.NO_SHOW_GRACE_MINUTES = 60
    late = booking()
    recent = booking(appointment_datetime=future(48))
    Appointment.objects.filter(pk=late.pk).update(appointment_datetime=timezone.now() - timedelta(hours=3))
    Appointment.objects.filter(pk=recent.pk).update(appointment_datetime=timezone.now() - timedelta(minutes=10))

    call_command('mark_no_shows')

    late.refresh_from_db()
    recent.refresh_from_db()
    assert late.status == 'no_show'
    assert recent.status == 'scheduled'
    assert svc.mark_no_shows() == 0


def test_confirm_by_token(booking):
    appt = booking()
    client = APIClient()
    url = reverse('appointment-confirm-token', args=[appt.confirmation_token])
    r = client.get(url)
    assert r.status_code == 200
    assert r.data['data']['is_confirmed'] is True
    appt.refresh_from_db()
    assert appt.status == 'confirmed'
    assert appt.confirmation_method == 'link'
    # a second click changes nothing
    assert client.get(url).status_code == 200


def test_confirm_by_token_unknown_and_expired(booking):
    client = APIClient()
    assert client.get(reverse('appointment-confirm-token', args=['nope'])).status_code == 404
    appt = booking()
    Appointment.objects.filter(pk=appt.pk).update(token_expires_at=timezone.now() - timedelta(minutes=1))
    r = client.get(reverse('appointment-confirm-token', args=[appt.confirmation_token]))
    assert r.status_code == 410
    assert r.data['success'] is False


def test_statistics(client_for, nurse, booking):
    booking()
    r = client_for(nurse).get(reverse('appointment-statistics'))
    assert r.status_code == 200
    assert r.data['data']['upcoming'] == 1


@pytest.mark.parametrize('field', ['doctor_id', 'facility_id', 'referral_id', 'assessment_id'])
def test_book_with_unknown_id_is_422(client_for, nurse, doctor, facility, field):
    body = {'patient_first_name': 'Juan', 'patient_last_name': 'Dela Cruz', 'facility_id': facility.id,
            'doctor_id': doctor.id, 'appointment_datetime': future().isoformat(), field: 99999}
    r = client_for(nurse).post(reverse('appointment-list'), body, format='json')
    assert r.status_code == 422
    assert field in r.data['errors']
    assert not Appointment.objects.exists()
