import pytest
from django.urls import reverse

from core.models import Assessment, AssessmentRiskAdjustment, ClinicalValidation, Notification

pytestmark = pytest.mark.django_db


def validate(client, assessment, score, agrees=False, notes='Reviewed ECG'):
    return client.post(
        reverse('assessment-validate', args=[assessment.id]),
        {'validated_risk_score': score, 'validation_agrees_with_ml': agrees, 'validation_notes': notes},
        format='json',
    )


def test_validate_score_85_is_high(client_for, doctor, make_assessment):
    a = make_assessment(ml_risk_score=40, ml_risk_level='Moderate', final_risk_score=40, final_risk_level='Moderate')
    r = validate(client_for(doctor), a, 85)
    assert r.status_code == 200
    data = r.data['data']
    assert data['final_risk_score'] == 85
    assert data['final_risk_level'] == 'High'
    assert data['ml_risk_score'] == 40
    assert data['status'] == 'validated'
    assert data['validated_by'] == doctor.id

    v = ClinicalValidation.objects.get(assessment=a)
    assert v.score_difference == 45
    assert v.agreement_level == 'significant_difference'
    assert Notification.objects.filter(user=doctor, related_assessment=a).exists()


@pytest.mark.parametrize('score,level', [(10, 'Low'), (40, 'Moderate'), (69, 'Moderate'), (70, 'High')])
def test_validate_uses_canonical_buckets(client_for, doctor, make_assessment, score, level):
    a = make_assessment()
    r = validate(client_for(doctor), a, score, agrees=True)
    assert r.data['data']['final_risk_level'] == level
    assert ClinicalValidation.objects.get(assessment=a).agreement_level == 'complete_agreement'


def test_revalidation_keeps_history(client_for, doctor, make_assessment):
    a = make_assessment()
    client = client_for(doctor)
    validate(client, a, 75, agrees=True)
    r = validate(client, a, 70, notes='Second look')
    assert r.status_code == 200
    assert [v['validated_score'] for v in r.data['data']['validations']] == [75, 70]
    assert r.data['data']['validations'][1]['agreement_level'] == 'partial_agreement'


def test_validate_out_of_range_is_422(client_for, doctor, make_assessment):
    r = validate(client_for(doctor), make_assessment(), 101)
    assert r.status_code == 422
    assert 'validated_risk_score' in r.data['errors']


def test_nurse_cannot_validate(client_for, nurse, make_assessment):
    r = validate(client_for(nurse), make_assessment(), 50)
    assert r.status_code == 403


def test_reject_requires_reason_and_blocks_validation(client_for, doctor, make_assessment):
    a = make_assessment()
    client = client_for(doctor)
    url = reverse('assessment-reject', args=[a.id])
    assert client.post(url, {}, format='json').status_code == 422

    r = client.post(url, {'reason': 'Duplicate submission'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'rejected'
    assert validate(client, a, 50).status_code == 409
    assert client.post(url, {'reason': 'again'}, format='json').status_code == 409


def test_list_filters_by_risk_and_search(client_for, nurse, make_assessment):
    make_assessment(final_risk_level='High', patient_first_name='Andres')
    make_assessment(final_risk_level='Low', final_risk_score=20, patient_first_name='Gabriela')
    client = client_for(nurse)
    r = client.get(reverse('assessment-list'), {'risk_level': 'High'})
    assert r.status_code == 200
    assert r.data['meta']['total'] == 1
    assert r.data['data'][0]['final_risk_level'] == 'High'
    r = client.get(reverse('assessment-list'), {'search': 'gabri'})
    assert [a['patient_name'] for a in r.data['data']] == ['Gabriela Dela Cruz']


def test_detail_404_uses_envelope(client_for, nurse):
    r = client_for(nurse).get(reverse('assessment-detail', args=[9999]))
    assert r.status_code == 404
    assert r.data['success'] is False
    assert 'timestamp' in r.data


def test_statistics(client_for, doctor, make_assessment):
    a = make_assessment()
    make_assessment(final_risk_level='Low', final_risk_score=10)
    client = client_for(doctor)
    validate(client, a, 80, agrees=True)
    r = client.get(reverse('assessment-statistics'))
    data = r.data['data']
    assert data['total'] == 2
    assert data['by_status']['validated'] == 1
    assert data['by_status']['pending'] == 1
    assert data['risk_distribution']['High'] == 1
    assert data['validated_today'] == 1
    assert data['ml_agreement_rate'] == 100.0
    assert Assessment.objects.count() == 2


def update(client, assessment, **body):
    return client.put(reverse('assessment-detail', args=[assessment.id]), body, format='json')


def test_update_bumps_version_and_refuses_stale_writes(client_for, nurse, make_assessment):
    a = make_assessment()
    client = client_for(nurse)
    r = update(client, a, version_counter=1, city='Makati', final_risk_score=10)
    assert r.status_code == 200
    assert r.data['data']['version_counter'] == 2
    a.refresh_from_db()
    assert a.city == 'Makati'
    assert (a.mobile_risk_score, a.ml_risk_score) == (10, 40)
    # still pending review, so the final score follows the new reading
    assert (a.final_risk_score, a.final_risk_level) == (40, 'Moderate')

    r = update(client, a, version_counter=1, city='Pasig')
    assert r.status_code == 409
    assert r.data['success'] is False
    assert r.data['data'] == {'current_version_counter': 2, 'submitted_version_counter': 1}
    a.refresh_from_db()
    assert a.city == 'Makati'


def test_update_after_validation_keeps_clinician_score(client_for, doctor, make_assessment):
    a = make_assessment()
    client = client_for(doctor)
    validate(client, a, 75, agrees=True)
    r = update(client, a, version_counter=1, final_risk_score=5)
    assert r.status_code == 200
    a.refresh_from_db()
    assert a.ml_risk_score == 20
    assert (a.final_risk_score, a.final_risk_level) == (75, 'High')


def test_update_requires_version_counter(client_for, nurse, make_assessment):
    r = update(client_for(nurse), make_assessment(), city='Makati')
    assert r.status_code == 422
    assert 'version_counter' in r.data['errors']


def add_note(client, assessment, content='BP elevated, repeat ECG', **extra):
    body = {'content': content, 'visibility': 'internal'}
    body.update(extra)
    return client.post(reverse('assessment-clinical-notes', args=[assessment.id]), body, format='json')


def test_clinical_note_versions_hang_off_the_root(client_for, doctor, make_assessment):
    a = make_assessment()
    client = client_for(doctor)
    r = add_note(client, a)
    assert r.status_code == 201
    root = r.data['data']
    assert root['current_version'] == 1
    assert root['author']['id'] == doctor.id

    r = add_note(client, a, content='ECG normal, continue meds', parent_note_id=root['id'])
    assert r.status_code == 201
    note = r.data['data']
    assert note['id'] == root['id']
    assert note['current_version'] == 2
    assert note['latest_content'] == 'ECG normal, continue meds'
    assert [v['version'] for v in note['versions']] == [1, 2]

    # replying to a version still extends the root
    r = add_note(client, a, content='Third pass', parent_note_id=note['versions'][1]['id'])
    assert r.data['data']['current_version'] == 3

    listing = client.get(reverse('assessment-clinical-notes', args=[a.id])).data['data']
    assert [n['id'] for n in listing] == [root['id']]


def test_mobile_visible_note_is_shared(client_for, doctor, make_assessment):
    r = add_note(client_for(doctor), make_assessment(), mobile_visible=True)
    assert r.data['data']['visibility'] == 'shared'
    assert r.data['data']['mobile_visible'] is True


def test_note_parent_from_another_assessment_is_422(client_for, doctor, make_assessment):
    client = client_for(doctor)
    other = add_note(client, make_assessment()).data['data']
    r = add_note(client, make_assessment(), parent_note_id=other['id'])
    assert r.status_code == 422
    assert 'parent_note_id' in r.data['errors']


def test_nurse_cannot_write_notes(client_for, nurse, make_assessment):
    assert add_note(client_for(nurse), make_assessment()).status_code == 403


def adjust(client, assessment, score, justification='Troponin result came back normal'):
    return client.post(reverse('assessment-adjust-risk', args=[assessment.id]),
                       {'new_risk_score': score, 'justification': justification}, format='json')


def test_adjust_risk_records_and_alerts(client_for, doctor, nurse, make_assessment):
    a = make_assessment()
    r = adjust(client_for(doctor), a, 50)
    assert r.status_code == 200
    data = r.data['data']
    assert data['assessment']['final_risk_score'] == 50
    assert data['assessment']['final_risk_level'] == 'Moderate'
    assert data['assessment']['status'] == 'validated'
    assert data['adjustment']['difference'] == -30
    assert data['adjustment']['alert_triggered'] is True

    r = client_for(nurse).get(reverse('assessment-risk-adjustments', args=[a.id]))
    assert r.status_code == 200
    assert [(x['old_score'], x['new_score']) for x in r.data['data']] == [(80, 50)]


def test_small_adjustment_does_not_alert(client_for, doctor, make_assessment):
    r = adjust(client_for(doctor), make_assessment(), 72)
    assert r.data['data']['adjustment']['alert_triggered'] is False


def test_adjust_risk_refusals(client_for, doctor, make_assessment):
    a = make_assessment()
    client = client_for(doctor)
    assert adjust(client, a, 80).status_code == 422
    assert adjust(client, a, 60, justification='short').status_code == 422
    client.post(reverse('assessment-reject', args=[a.id]), {'reason': 'Duplicate submission'}, format='json')
    assert adjust(client, a, 60).status_code == 409
    assert not AssessmentRiskAdjustment.objects.exists()
