import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from core.models import AuditEvent, User

pytestmark = pytest.mark.django_db


def login(client, username, password='P@ssw0rd1', **extra):
    return client.post(reverse('auth-login'), {'username': username, 'password': password, **extra}, format='json')


def test_login_returns_token_and_jwt_pair(make_user):
    make_user('dr_login', role='doctor')
    r = login(APIClient(), 'dr_login')
    assert r.status_code == 200
    data = r.data['data']
    assert data['token'] and data['jwt_access'] and data['jwt_refresh']
    assert data['user']['role'] == 'doctor'
    u = User.objects.get(username='dr_login')
    assert u.last_login_ip == '127.0.0.1'
    assert AuditEvent.objects.filter(action='login', user=u, detail__result='ok').exists()


def test_login_path_matches_api_prefix():
    assert reverse('auth-login') == '/api/v1/auth/login'


def test_role_in_body_is_ignored(make_user):
    u = make_user('n_role', role='nurse')
    assert login(APIClient(), 'n_role', role='super').status_code == 200
    u.refresh_from_db()
    assert u.role == 'nurse'


def test_bad_password_is_401_and_audited(make_user):
    make_user('dr_bad')
    r = login(APIClient(), 'dr_bad', password='wrong')
    assert r.status_code == 401
    assert r.data['success'] is False
    assert AuditEvent.objects.filter(action='login', user__isnull=True, detail__result='fail').exists()


def test_suspended_user_is_refused(make_user):
    make_user('dr_sus', status='suspended')
    r = login(APIClient(), 'dr_sus')
    assert r.status_code == 401
    assert 'suspended' in r.data['message']


def test_token_auth_refuses_suspended_user(make_user):
    u = make_user('dr_tok')
    client = APIClient()
    token = login(client, 'dr_tok').data['data']['token']
    client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
    assert client.get(reverse('auth-me')).status_code == 200
    User.objects.filter(pk=u.pk).update(status='suspended')
    assert client.get(reverse('auth-me')).status_code == 401


def test_jwt_bearer_and_refresh(make_user):
    make_user('dr_jwt')
    client = APIClient()
    data = login(client, 'dr_jwt').data['data']
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {data['jwt_access']}")
    assert client.get(reverse('auth-me')).data['data']['username'] == 'dr_jwt'
    r = APIClient().post(reverse('auth-jwt-refresh'), {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['data']['jwt_access']


def test_logout_blacklists_refresh_and_drops_token(make_user):
    make_user('dr_out')
    client = APIClient()
    data = login(client, 'dr_out').data['data']
    client.credentials(HTTP_AUTHORIZATION=f"Token {data['token']}")
    r = client.post(reverse('auth-logout'), {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['data']['blacklisted'] == 1
    assert client.get(reverse('auth-me')).status_code == 401
    r = APIClient().post(reverse('auth-jwt-refresh'), {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 401


def test_login_is_throttled(make_user):
    make_user('dr_many')
    client = APIClient()
    codes = [login(client, 'dr_many', password='wrong').status_code for _ in range(11)]
    assert codes[:10] == [401] * 10
    assert codes[10] == 429
