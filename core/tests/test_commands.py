import pytest
from django.core.cache import cache
from django.core.management import call_command

from core.models import Assessment, EducationalContent, HealthcareFacility, Referral, User
from core.services import assessments, referrals

pytestmark = pytest.mark.django_db


def test_seed_demo_data_is_idempotent():
    call_command('seed_demo_data', seed=7)
    counts = (HealthcareFacility.objects.count(), User.objects.count(), Assessment.objects.count(),
              Referral.objects.count(), EducationalContent.objects.count())
    call_command('seed_demo_data', seed=7)
    assert counts == (HealthcareFacility.objects.count(), User.objects.count(), Assessment.objects.count(),
                      Referral.objects.count(), EducationalContent.objects.count())
    assert counts[0] == 5
    assert all(r.target_facility.code == 'PHC-NCR-001' for r in Referral.objects.all())
    for a in Assessment.objects.all():
        assert a.ml_risk_score == a.mobile_risk_score * 4


def test_ensure_test_users_resets_role_and_password():
    call_command('ensure_test_users', password='s3cret-pass')
    u = User.objects.get(username='doctor1')
    u.role = 'nurse'
    u.status = 'suspended'
    u.save()
    call_command('ensure_test_users', password='s3cret-pass')
    u.refresh_from_db()
    assert (u.role, u.status) == ('doctor', 'active')
    assert u.check_password('s3cret-pass')


def test_refresh_caches_warms_statistics(make_assessment):
    make_assessment()
    call_command('refresh_caches')
    assert cache.get(assessments.STATS_CACHE_KEY)['total'] == 1
    assert cache.get(referrals.STATS_CACHE_KEY) is not None
