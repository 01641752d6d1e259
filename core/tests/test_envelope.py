import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from core.exceptions import TransitionError, api_exception_handler
from core.models import EducationalContent
from core.responses import envelope, paginate

pytestmark = pytest.mark.django_db


def test_envelope_shape():
    body = envelope({'a': 1}, message='done', meta={'total': 1})
    assert body['success'] is True
    assert body['data'] == {'a': 1}
    assert body['message'] == 'done'
    assert body['meta'] == {'total': 1}
    assert 'T' in body['timestamp']
    assert 'errors' not in envelope([])


def test_failure_envelope_omits_data():
    body = envelope(success=False, message='nope', errors={'x': ['bad']})
    assert 'data' not in body
    assert body['errors'] == {'x': ['bad']}


def test_paginate_meta():
    for i in range(5):
        EducationalContent.objects.create(category='exercise', title_en=f't{i}', title_fil='t', content_en='c',
                                          content_fil='c')
    items, meta = paginate(EducationalContent.objects.order_by('id'), page=2, per_page=2)
    assert [c.title_en for c in items] == ['t2', 't3']
    assert meta == {'total': 5, 'page': 2, 'per_page': 2, 'last_page': 3}


def test_transition_error_maps_to_409():
    resp = api_exception_handler(TransitionError('completed', 'accepted', 'referral'), {})
    assert resp.status_code == 409
    assert resp.data['success'] is False
    assert 'completed' in resp.data['message']


def test_unexpected_error_maps_to_500():
    resp = api_exception_handler(RuntimeError('kaboom'), {})
    assert resp.status_code == 500
    assert resp.data['message'] == 'kaboom'


def test_unauthenticated_request_is_401_envelope():
    r = APIClient().get(reverse('referral-list'))
    assert r.status_code == 401
    assert r.data['success'] is False
    assert r.data['message']


def test_healthz():
    r = APIClient().get(reverse('healthz'))
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}
