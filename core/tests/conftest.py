from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from core.models import Assessment, HealthcareFacility, User


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttling and statistics share the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_facility(db):
    counter = {'n': 0}

    def make(**kwargs):
        counter['n'] += 1
        defaults = {
            'code': f'FAC-{counter["n"]:03d}',
            'name': f'Facility {counter["n"]}',
            'type': 'district_hospital',
            'level': 'secondary',
            'region': 'NCR',
            'city': 'Quezon City',
            'latitude': Decimal('14.6760'),
            'longitude': Decimal('121.0437'),
        }
        defaults.update(kwargs)
        return HealthcareFacility.objects.create(**defaults)
    return make


@pytest.fixture
def facility(make_facility):
    return make_facility(name='Philippine Heart Center', level='tertiary', type='specialty_center',
                         has_emergency=True)


@pytest.fixture
def make_user(db):
    def make(username, role='doctor', **kwargs):
        return User.objects.create_user(username=username, password='P@ssw0rd1', role=role, **kwargs)
    return make


@pytest.fixture
def doctor(make_user, facility):
    return make_user('dr_cruz', role='doctor', facility=facility, email='cruz@example.com')


@pytest.fixture
def nurse(make_user, facility):
    return make_user('nurse_lim', role='nurse', facility=facility)


@pytest.fixture
def admin_user(make_user, facility):
    return make_user('phc_admin', role='admin', facility=facility)


@pytest.fixture
def client_for():
    def make(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client
    return make


@pytest.fixture
def make_assessment(db):
    counter = {'n': 0}

    def make(**kwargs):
        counter['n'] += 1
        defaults = {
            'assessment_external_id': f'ext-{counter["n"]:04d}',
            'mobile_user_id': 'mobile-user-1',
            'patient_first_name': 'Juan',
            'patient_last_name': 'Dela Cruz',
            'patient_sex': 'male',
            'region': 'NCR',
            'mobile_risk_score': 20,
            'ml_risk_score': 80,
            'ml_risk_level': 'High',
            'final_risk_score': 80,
            'final_risk_level': 'High',
        }
        defaults.update(kwargs)
        return Assessment.objects.create(**defaults)
    return make
