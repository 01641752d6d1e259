"""
Integration tests for the referral workflow.

Exercise creation from an assessment, every status move through the
REST API, the refusals the transition table imposes, and the side
effects on history, statistics and notifications.
"""
import smtplib
from datetime import timedelta
from unittest import mock

from django.core.cache import cache
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from ..models import Appointment, Assessment, HealthcareFacility, Notification, Referral, User
from ..services import referrals as referral_svc


class ReferralAPITests(APITestCase):
    def setUp(self) -> None:
        cache.clear()
        self.source = HealthcareFacility.objects.create(
            code='RHU-001', name='Calamba RHU', type='rural_health_unit', level='primary', region='Region IV-A',
        )
        self.target = HealthcareFacility.objects.create(
            code='PHC-001', name='Philippine Heart Center', type='specialty_center', level='tertiary',
            region='NCR', has_emergency=True,
        )
        self.nurse = User.objects.create_user(username='nurse1', password='P@ssw0rd1', role='nurse',
                                              facility=self.source)
        self.referrer = User.objects.create_user(username='doc_rhu', password='P@ssw0rd1', role='doctor',
                                                 facility=self.source)
        self.doctor = User.objects.create_user(username='doc_phc', password='P@ssw0rd1', role='doctor',
                                               facility=self.target, email='phc@example.com')
        self.assessment = Assessment.objects.create(
            assessment_external_id='ext-1', patient_first_name='Juan', patient_last_name='Dela Cruz',
            patient_sex='male', ml_risk_score=80, ml_risk_level='High', final_risk_score=80,
            final_risk_level='High', symptoms=['chest_pain'],
        )
        self.client.force_authenticate(self.referrer)

    def _create(self, **extra):
        body = {'assessment_id': self.assessment.id, 'target_facility_id': self.target.id,
                'chief_complaint': 'Chest pain on exertion'}
        body.update(extra)
        return self.client.post(reverse('referral-list'), body, format='json')

    def _as(self, user):
        self.client.force_authenticate(user)

    def test_create_derives_fields_from_assessment(self):
        resp = self._create()
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        data = resp.data['data']
        self.assertTrue(resp.data['success'])
        self.assertEqual(data['status'], 'pending')
        self.assertEqual(data['priority'], 'Critical')
        self.assertEqual(data['urgency'], 'Emergency')
        self.assertEqual(data['patient_sex'], 'Male')
        self.assertEqual(data['source_facility']['id'], self.source.id)
        self.assertEqual([h['action'] for h in data['history']], ['created'])
        self.assessment.refresh_from_db()
        self.assertEqual(self.assessment.status, Assessment.STATUS_REQUIRES_REFERRAL)
        # clinical staff of the target facility are told
        self.assertTrue(Notification.objects.filter(user=self.doctor, type='referral').exists())

    def test_create_picks_facility_by_level_when_not_given(self):
        resp = self._create(target_facility_id=None)
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['data']['target_facility']['id'], self.target.id)

    def test_create_refuses_facility_not_accepting(self):
        self.target.accepts_referrals = False
        self.target.save()
        resp = self._create()
        self.assertEqual(resp.status_code, 422)
        self.assertIn('target_facility_id', resp.data['errors'])

    def test_nurse_cannot_create_or_accept(self):
        self._as(self.nurse)
        self.assertEqual(self._create().status_code, status.HTTP_403_FORBIDDEN)
        r = referral_svc.create_referral(self.referrer, {'assessment_id': self.assessment.id,
                                                         'target_facility_id': self.target.id})
        resp = self.client.post(reverse('referral-accept', args=[r.id]), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_reject_without_reason_is_422(self):
        r_id = self._create().data['data']['id']
        self._as(self.doctor)
        resp = self.client.post(reverse('referral-reject', args=[r_id]), {}, format='json')
        self.assertEqual(resp.status_code, 422)
        self.assertFalse(resp.data['success'])
        self.assertEqual(resp.data['message'], 'Validation failed')
        self.assertIn('reason', resp.data['errors'])
        self.assertEqual(Referral.objects.get(pk=r_id).status, 'pending')

    def test_reject_records_reason(self):
        r_id = self._create().data['data']['id']
        self._as(self.doctor)
        resp = self.client.post(reverse('referral-reject', args=[r_id]),
                                {'reason': 'No cardiac ICU bed', 'suggested_facilities': [self.source.id]},
                                format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['status'], 'rejected')
        self.assertEqual(resp.data['data']['rejection_reason'], 'No cardiac ICU bed')
        self.assertIsNotNone(resp.data['data']['rejected_at'])

    def test_accept_on_completed_referral_is_refused(self):
        r_id = self._create().data['data']['id']
        Referral.objects.filter(pk=r_id).update(status='completed')
        self._as(self.doctor)
        resp = self.client.post(reverse('referral-accept', args=[r_id]), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(resp.data['success'])
        self.assertEqual(Referral.objects.get(pk=r_id).status, 'completed')

    def test_full_lifecycle(self):
        r_id = self._create().data['data']['id']
        self._as(self.doctor)
        when = (timezone.now() + timedelta(days=2)).isoformat()
        resp = self.client.post(reverse('referral-accept', args=[r_id]),
                                {'notes': 'Bed reserved', 'scheduled_appointment': when}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['status'], 'accepted')
        self.assertEqual(resp.data['data']['assigned_doctor']['id'], self.doctor.id)
        self.assertEqual(Appointment.objects.filter(referral_id=r_id).count(), 1)

        for new_status in ('in_transit', 'arrived', 'in_progress'):
            resp = self.client.put(reverse('referral-status', args=[r_id]), {'status': new_status}, format='json')
            self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
            self.assertEqual(resp.data['data']['status'], new_status)

        resp = self.client.post(reverse('referral-complete', args=[r_id]),
                                {'outcome': 'Improved', 'diagnosis': 'Stable angina'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        data = resp.data['data']
        self.assertEqual(data['status'], 'completed')
        self.assertEqual(data['outcome'], 'Improved')
        self.assertEqual([h['action'] for h in data['history']],
                         ['created', 'accepted', 'status_changed', 'status_changed', 'status_changed', 'completed'])
        self.assessment.refresh_from_db()
        self.assertEqual(self.assessment.status, Assessment.STATUS_COMPLETED)
        # the referrer hears about acceptance and completion
        self.assertEqual(Notification.objects.filter(user=self.referrer, type='referral').count(), 2)

    def test_status_skip_is_refused(self):
        r_id = self._create().data['data']['id']
        self._as(self.doctor)
        resp = self.client.put(reverse('referral-status', args=[r_id]), {'status': 'completed'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_escalate_requires_higher_priority(self):
        r_id = self._create(priority='Medium').data['data']['id']
        self._as(self.doctor)
        url = reverse('referral-escalate', args=[r_id])
        resp = self.client.post(url, {'priority': 'Medium', 'reason': 'Worsening'}, format='json')
        self.assertEqual(resp.status_code, 422)
        resp = self.client.post(url, {'priority': 'Critical', 'reason': 'Worsening'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['priority'], 'Critical')

    def test_schedule_rejects_past_time(self):
        r_id = self._create().data['data']['id']
        self._as(self.doctor)
        past = (timezone.now() - timedelta(hours=1)).isoformat()
        resp = self.client.post(reverse('referral-schedule', args=[r_id]),
                                {'scheduled_appointment': past}, format='json')
        self.assertEqual(resp.status_code, 422)

    def test_cancel_then_accept_is_refused(self):
        r_id = self._create().data['data']['id']
        resp = self.client.post(reverse('referral-cancel', args=[r_id]), {'reason': 'Patient declined'},
                                format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['status'], 'cancelled')
        resp = self.client.post(reverse('referral-accept', args=[r_id]), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_soft_delete_hides_referral(self):
        r_id = self._create().data['data']['id']
        resp = self.client.delete(reverse('referral-detail', args=[r_id]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get(reverse('referral-detail', args=[r_id])).status_code, 404)
        self.assertIsNotNone(Referral.objects.get(pk=r_id).deleted_at)

    def test_statistics_are_invalidated_on_change(self):
        resp = self.client.get(reverse('referral-statistics'))
        self.assertEqual(resp.data['data']['total'], 0)
        self._create()
        resp = self.client.get(reverse('referral-statistics'))
        self.assertEqual(resp.data['data']['total'], 1)
        self.assertEqual(resp.data['data']['pending'], 1)
        self.assertEqual(resp.data['data']['critical_pending'], 1)

    def test_list_filters_and_paginates(self):
        self._create(priority='High')
        self._create(priority='Low')
        resp = self.client.get(reverse('referral-list'), {'priority': 'High'})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['meta']['total'], 1)
        self.assertEqual(resp.data['data'][0]['priority'], 'High')
        resp = self.client.get(reverse('referral-list'), {'per_page': 1, 'sort_by': 'priority', 'sort_order': 'asc'})
        self.assertEqual(resp.data['meta']['last_page'], 2)
        self.assertEqual(len(resp.data['data']), 1)

    def test_create_with_unknown_ids_is_422(self):
        for field in ('assessment_id', 'target_facility_id', 'source_facility_id', 'assigned_doctor_id'):
            resp = self._create(**{field: 99999})
            self.assertEqual(resp.status_code, 422, field)
            self.assertIn(field, resp.data['errors'])
        self.assertEqual(Referral.objects.count(), 0)

    def test_accept_with_unknown_doctor_is_422(self):
        r_id = self._create().data['data']['id']
        self._as(self.doctor)
        resp = self.client.post(reverse('referral-accept', args=[r_id]), {'assigned_doctor_id': 99999},
                                format='json')
        self.assertEqual(resp.status_code, 422)
        self.assertIn('assigned_doctor_id', resp.data['errors'])
        self.assertEqual(Referral.objects.get(pk=r_id).status, 'pending')

    @mock.patch('core.services.notifications.drivers.send_mail', side_effect=smtplib.SMTPException('smtp down'))
    def test_create_survives_mail_failure(self, send_mail):
        resp = self._create()
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertTrue(send_mail.called)
        self.assertEqual(Referral.objects.count(), 1)
        # the in-app copy is still recorded
        self.assertEqual(Notification.objects.filter(user=self.doctor).count(), 1)

    def test_schedule_into_booked_slot_is_refused(self):
        r_id = self._create(assigned_doctor_id=self.doctor.id).data['data']['id']
        when = timezone.now() + timedelta(days=3)
        Appointment.objects.create(patient_first_name='Maria', patient_last_name='Santos', facility=self.target,
                                   doctor=self.doctor, appointment_datetime=when)
        self._as(self.doctor)
        resp = self.client.post(reverse('referral-schedule', args=[r_id]),
                                {'scheduled_appointment': (when + timedelta(minutes=10)).isoformat()},
                                format='json')
        self.assertEqual(resp.status_code, 422)
        self.assertIn('scheduled_appointment', resp.data['errors'])
        self.assertFalse(Appointment.objects.filter(referral_id=r_id).exists())

        resp = self.client.post(reverse('referral-accept', args=[r_id]),
                                {'scheduled_appointment': when.isoformat()}, format='json')
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(Referral.objects.get(pk=r_id).status, 'pending')

    def test_reschedule_own_appointment_is_allowed(self):
        r_id = self._create(assigned_doctor_id=self.doctor.id).data['data']['id']
        self._as(self.doctor)
        when = timezone.now() + timedelta(days=3)
        url = reverse('referral-schedule', args=[r_id])
        self.assertEqual(self.client.post(url, {'scheduled_appointment': when.isoformat()},
                                          format='json').status_code, status.HTTP_200_OK)
        resp = self.client.post(url, {'scheduled_appointment': (when + timedelta(minutes=15)).isoformat()},
                                format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(Appointment.objects.filter(referral_id=r_id).count(), 1)
