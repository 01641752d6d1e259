from datetime import date, timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from core.models import Appointment, Assessment, ClinicalValidation, HealthcareFacility, Referral
from core.services import analytics

pytestmark = pytest.mark.django_db


def refer(assessment, target, **kwargs):
    return Referral.objects.create(patient_first_name='Juan', patient_last_name='Dela Cruz',
                                   assessment=assessment, target_facility=target, **kwargs)


def backdate(referral, hours):
    Referral.objects.filter(pk=referral.pk).update(created_at=timezone.now() - timedelta(hours=hours))


@pytest.mark.parametrize('totals,direction', [
    ([], 'stable'),
    ([5], 'stable'),
    ([1, 1, 4, 4], 'increasing'),
    ([4, 4, 1, 1], 'decreasing'),
    ([3, 3, 3], 'stable'),
])
def test_trend_direction(totals, direction):
    assert analytics.trend_direction(totals) == direction


@pytest.mark.parametrize('age,bucket', [(18, '< 30'), (30, '30-39'), (49, '40-49'), (59, '50-59'), (80, '60+')])
def test_age_bucket(age, bucket):
    assert analytics.age_bucket(age) == bucket


def test_productivity_score():
    assert analytics.productivity_score(0, None) == 0
    assert analytics.productivity_score(10, 48) == 45
    assert analytics.productivity_score(40, 2) == 100


def test_window_covers_whole_days():
    start, end = analytics.window(date(2026, 3, 1), date(2026, 3, 31))
    assert timezone.localtime(start).date() == date(2026, 3, 1)
    assert timezone.localtime(end).date() == date(2026, 4, 1)
    assert (end - start).days == 31


def test_national_overview_compares_with_previous_period(client_for, nurse, make_assessment):
    make_assessment()
    make_assessment(final_risk_score=20, final_risk_level='Low', ml_risk_score=20)
    make_assessment(assessment_date=timezone.now() - timedelta(days=100))
    client = client_for(nurse)
    r = client.get(reverse('analytics-national-overview'))
    assert r.status_code == 200
    summary = r.data['data']['summary']
    assert summary['total_assessments'] == 2
    assert summary['assessments_change'] == 100.0
    assert summary['high_risk_cases'] == 1
    assert summary['high_risk_percentage'] == 50.0
    assert summary['average_risk_score'] == 50.0
    assert r.data['data']['risk_distribution']['data'] == {'High': 1, 'Low': 1}

    # served from cache until it expires
    make_assessment()
    again = client.get(reverse('analytics-national-overview')).data['data']
    assert again['summary']['total_assessments'] == 2


def test_geographic_distribution_orders_regions(client_for, nurse, make_assessment):
    make_assessment(city='Quezon City')
    make_assessment(city='Manila', final_risk_level='Low')
    make_assessment(region='Region VII', city='Cebu City')
    r = client_for(nurse).get(reverse('analytics-geographic'))
    regions = r.data['data']
    assert [g['region'] for g in regions] == ['NCR', 'Region VII']
    assert regions[0]['total_assessments'] == 2
    assert regions[0]['high_risk_percentage'] == 50.0
    assert {c['city'] for c in regions[0]['cities']} == {'Quezon City', 'Manila'}


def test_trend_analysis_respects_dates(client_for, nurse, make_assessment):
    today = timezone.localdate()
    make_assessment()
    make_assessment()
    make_assessment(assessment_date=timezone.now() - timedelta(days=3))
    make_assessment(assessment_date=timezone.now() - timedelta(days=40))
    r = client_for(nurse).get(reverse('analytics-trends'),
                              {'start_date': (today - timedelta(days=7)).isoformat(), 'end_date': today.isoformat()})
    data = r.data['data']
    assert sum(d['total'] for d in data['daily_assessments']) == 3
    assert data['peak_day']['total'] == 2


def test_end_before_start_is_422(client_for, nurse):
    r = client_for(nurse).get(reverse('analytics-trends'), {'start_date': '2026-05-02', 'end_date': '2026-05-01'})
    assert r.status_code == 422
    assert 'end_date' in r.data['errors']


def test_demographics_buckets_ages(client_for, nurse, make_assessment):
    year = timezone.localdate().year
    make_assessment(patient_date_of_birth=date(year - 45, 1, 1))
    make_assessment(patient_date_of_birth=date(year - 70, 1, 1), final_risk_level='Low', patient_sex='female')
    make_assessment()
    data = client_for(nurse).get(reverse('analytics-demographics')).data['data']
    assert data['age_distribution']['40-49'] == 1
    assert data['age_distribution']['60+'] == 1
    assert data['high_risk_by_age'] == {'< 30': 0, '30-39': 0, '40-49': 1, '50-59': 0, '60+': 0}
    assert data['sex_distribution'] == {'male': 2, 'female': 1}


def test_real_time_metrics(client_for, nurse, make_assessment):
    make_assessment()
    make_assessment(status=Assessment.STATUS_VALIDATED, assessment_date=timezone.now() - timedelta(days=400))
    data = client_for(nurse).get(reverse('analytics-real-time-metrics')).data['data']
    assert data['total'] == 2
    assert data['today'] == 1
    assert data['pending_validation'] == 1


def test_clinical_views_need_clinical_role(client_for, nurse):
    assert client_for(nurse).get(reverse('clinical-dashboard')).status_code == 403
    assert client_for().get(reverse('analytics-national-overview')).status_code == 401


def test_queue_is_scoped_to_facility_and_ranked_by_risk(client_for, doctor, facility, make_facility,
                                                        make_assessment):
    moderate = make_assessment(final_risk_score=50, final_risk_level='Moderate')
    high = make_assessment()
    elsewhere = make_assessment()
    refer(moderate, facility, priority='High')
    refer(high, facility, urgency='Emergency')
    refer(elsewhere, make_facility())
    r = client_for(doctor).get(reverse('clinical-assessment-queue'))
    assert r.status_code == 200
    data = r.data['data']
    assert [a['id'] for a in data['assessments']] == [high.id, moderate.id]
    assert data['assessments'][1]['priority'] == 'High'
    assert data['summary']['total_pending'] == 2
    assert data['summary']['high_risk_pending'] == 1
    assert data['summary']['urgent_count'] == 1

    r = client_for(doctor).get(reverse('clinical-assessment-queue'), {'priority': 'High'})
    assert [a['id'] for a in r.data['data']['assessments']] == [moderate.id]


def test_clinical_alerts(client_for, doctor, facility, make_assessment):
    stale = make_assessment(synced_at=timezone.now() - timedelta(hours=30))
    backdate(refer(stale, facility, urgency='Emergency'), 30)
    refer(make_assessment(), facility, status='completed', requires_follow_up=True,
          follow_up_date=timezone.localdate() - timedelta(days=1))
    alerts = client_for(doctor).get(reverse('clinical-alerts')).data['data']
    assert {a['type']: a['count'] for a in alerts} == {'critical': 1, 'urgent': 1, 'warning': 1, 'info': 1}


def test_workload_and_validation_metrics(client_for, doctor, make_assessment):
    a = make_assessment(synced_at=timezone.now() - timedelta(hours=2))
    client = client_for(doctor)
    client.post(reverse('assessment-validate', args=[a.id]),
                {'validated_risk_score': 80, 'validation_agrees_with_ml': True}, format='json')
    work = client.get(reverse('clinical-workload')).data['data']
    assert work['total_validated'] == 1
    assert work['today_validated'] == 1
    assert work['avg_validation_time_hours'] == pytest.approx(2.0, abs=0.1)
    assert work['productivity_score'] == 52

    ClinicalValidation.objects.create(assessment=make_assessment(), validator=doctor, original_ml_score=80,
                                      validated_score=60, score_difference=-20,
                                      agreement_level='significant_difference')
    metrics = client.get(reverse('clinical-validation-metrics')).data['data']
    assert metrics['total_validations'] == 2
    assert metrics['ml_agreement_rate'] == 50.0
    assert metrics['avg_score_adjustment'] == -10.0
    assert metrics['adjustment_range'] == {'min': -20, 'max': 0}


def test_treatment_outcomes_follow_up_compliance(client_for, doctor, facility, make_assessment):
    now = timezone.now()
    r = refer(make_assessment(), facility, status='completed', outcome='Improved', requires_follow_up=True,
              follow_up_date=timezone.localdate(), accepted_at=now - timedelta(days=3),
              completed_at=now - timedelta(days=1))
    refer(make_assessment(), facility, status='completed', outcome='Stable', accepted_at=now - timedelta(days=2),
          completed_at=now - timedelta(days=1))
    Appointment.objects.create(referral=r, facility=facility, patient_first_name='Juan',
                               patient_last_name='Dela Cruz', appointment_datetime=now - timedelta(hours=2),
                               status='completed', completed_at=now - timedelta(hours=1))
    data = client_for(doctor).get(reverse('clinical-treatment-outcomes')).data['data']
    assert data['completed_referrals'] == 2
    assert data['avg_treatment_time_days'] == 1.5
    assert data['outcome_distribution'] == {'Improved': 1, 'Stable': 1}
    assert data['follow_up_required'] == 1
    assert data['follow_up_compliance_rate'] == 100.0


def test_clinical_dashboard_sections(client_for, doctor):
    data = client_for(doctor).get(reverse('clinical-dashboard')).data['data']
    assert set(data) == {'assessment_queue', 'patient_risk_stratification', 'clinical_alerts', 'workload_metrics',
                         'validation_metrics', 'treatment_outcomes'}


@pytest.fixture
def referral_traffic(facility, make_facility, make_assessment):
    """Two referrals into ``facility`` from one RHU and one into a peer specialty center."""
    source = make_facility(name='Calamba RHU', type='rural_health_unit', level='primary')
    peer = make_facility(name='Cebu Heart Institute', type='specialty_center')
    now = timezone.now()
    accepted = refer(make_assessment(), facility, source_facility=source, status='accepted',
                     accepted_at=now - timedelta(hours=2))
    backdate(accepted, 4)
    refer(make_assessment(), facility, source_facility=source, status='rejected', rejected_at=now)
    refer(make_assessment(), peer, source_facility=source)
    return {'source': source, 'peer': peer, 'accepted': accepted}


def test_referral_metrics(client_for, nurse, facility, referral_traffic):
    data = client_for(nurse).get(reverse('facility-referral-metrics', args=[facility.id])).data['data']
    assert data['total_referrals'] == 2
    assert data['acceptance_rate'] == 50.0
    assert data['rejection_rate'] == 50.0
    assert data['response_time_by_priority'] == [{'priority': 'Medium', 'avg_response_hours': 2.0, 'count': 1}]
    assert data['top_referral_sources'] == [
        {'facility_id': referral_traffic['source'].id, 'name': 'Calamba RHU', 'count': 2},
    ]


def test_patient_flow(client_for, nurse, facility, referral_traffic):
    data = client_for(nurse).get(reverse('facility-patient-flow', args=[facility.id])).data['data']
    assert data['total_referrals_received'] == 2
    assert data['admitted_patients'] == 1
    assert data['admission_rate'] == 50.0
    assert sum(d['total_referrals'] for d in data['daily_flow']) == 2


def test_capacity_metrics(client_for, doctor, nurse, facility, referral_traffic):
    HealthcareFacility.objects.filter(pk=facility.pk).update(bed_capacity=100, current_bed_availability=25)
    data = client_for(nurse).get(reverse('facility-capacity-metrics', args=[facility.id])).data['data']
    assert data['occupied_beds'] == 75
    assert data['occupancy_percentage'] == 75.0
    assert data['staff_count'] == 2
    assert data['active_patients'] == 1
    assert data['patients_per_staff'] == 0.5


def test_performance_comparison_ranks_peers(client_for, nurse, facility, referral_traffic):
    data = client_for(nurse).get(reverse('facility-performance-comparison', args=[facility.id])).data['data']
    assert data['acceptance_rate'] == {'this_facility': 50.0, 'average_for_type': 25.0, 'rank': 1,
                                       'total_facilities': 2}
    assert data['avg_response_time'] == {'this_facility': 2.0, 'average_for_type': 2.0}


def test_staff_productivity(client_for, doctor, nurse, facility, make_assessment):
    now = timezone.now()
    a = make_assessment(status=Assessment.STATUS_VALIDATED, validated_by=doctor, validated_at=now,
                        synced_at=now - timedelta(hours=3))
    refer(a, facility)
    data = client_for(nurse).get(reverse('facility-staff-productivity', args=[facility.id])).data['data']
    assert data['total_validations'] == 1
    assert data['top_performer']['doctor_name'] == 'dr_cruz'
    assert data['top_performer']['avg_validation_hours'] == 3.0


def test_facility_summary_and_dashboard(client_for, nurse, facility, referral_traffic):
    client = client_for(nurse)
    summary = client.get(reverse('facility-summary', args=[facility.id])).data['data']
    assert summary['facility_name'] == 'Philippine Heart Center'
    assert summary['assessments_processed'] == 2
    assert summary['active_patients'] == 1
    assert summary['avg_response_time_hours'] == 2.0

    r = client.get(reverse('facility-dashboard', args=[facility.id]))
    assert r.status_code == 200
    assert r.data['data']['summary'] == summary


def test_unknown_facility_is_404(client_for, nurse):
    for name in ('facility-dashboard', 'facility-summary', 'facility-performance-comparison'):
        r = client_for(nurse).get(reverse(name, args=[9999]))
        assert r.status_code == 404
