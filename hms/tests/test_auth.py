import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from hms.models import AuditEvent

from .utils import make_user

pytestmark = pytest.mark.django_db


def login(client, email, password='P@ssw0rd1'):
    return client.post(reverse('login_view'), {'email': email, 'password': password}, format='json')


def test_login_returns_token_jwt_and_user(admin_user, hospital):
    r = login(APIClient(), 'ADMIN@example.com')
    assert r.status_code == 200
    assert r.data['ok'] is True
    assert r.data['token'] and r.data['jwt_access'] and r.data['jwt_refresh']
    assert r.data['role'] == 'admin'
    assert r.data['user']['activeHospitalId'] == hospital.id
    assert AuditEvent.objects.filter(action='login', user=admin_user).exists()


def test_login_rejects_bad_password(admin_user):
    r = login(APIClient(), 'admin@example.com', 'wrong')
    assert r.status_code == 400
    assert r.data['ok'] is False
    assert r.data['error']['code'] == 'invalid_credentials'


def test_login_ignores_role_in_payload(hospital):
    u = make_user('p1@example.com', 'patient', hospital)
    r = APIClient().post(reverse('login_view'), {'email': 'p1@example.com', 'password': 'P@ssw0rd1', 'role': 'super_admin'},
                         format='json')
    assert r.status_code == 200
    u.refresh_from_db()
    assert u.role == 'patient'


def test_token_authenticates_and_me_lists_hospitals(admin_user, hospital):
    client = APIClient()
    token = login(client, 'admin@example.com').data['token']
    client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
    r = client.get(reverse('me_view'))
    assert r.status_code == 200
    assert r.data['data']['email'] == 'admin@example.com'
    assert [h['id'] for h in r.data['data']['hospitals']] == [hospital.id]


def test_token_refused_once_hospital_is_deactivated(admin_user, hospital):
    client = APIClient()
    token = login(client, 'admin@example.com').data['token']
    hospital.status = 'inactive'
    hospital.save()
    client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
    r = client.get(reverse('me_view'))
    assert r.status_code == 401
    assert r.data['ok'] is False


def test_switch_hospital_requires_membership(admin_user, hospital, other_hospital, client_for):
    client = client_for(admin_user)
    r = client.post(reverse('switch_hospital'), {'hospitalId': other_hospital.id}, format='json')
    assert r.status_code == 403

    admin_user.hospitals.add(other_hospital)
    r = client.post(reverse('switch_hospital'), {'hospitalId': other_hospital.id}, format='json')
    assert r.status_code == 200
    admin_user.refresh_from_db()
    assert admin_user.active_hospital_id == other_hospital.id


def test_logout_drops_api_token(admin_user):
    client = APIClient()
    token = login(client, 'admin@example.com').data['token']
    client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
    r = client.post(reverse('jwt_logout'), {}, format='json')
    assert r.status_code == 200
    assert r.data['blacklisted'] >= 1
    r = client.get(reverse('me_view'))
    assert r.status_code == 401
