import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from hms.models import Branch, Doctor, Hospital, Patient

from .utils import make_user


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttles and response caches live in the locmem cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def hospital(db):
    return Hospital.objects.create(name='Harmony Ahmedabad', code='HMS-AHD', phone='+917900000001')


@pytest.fixture
def other_hospital(db):
    return Hospital.objects.create(name='Harmony Surat', code='HMS-SRT')


@pytest.fixture
def super_admin(db):
    return make_user('root@example.com', 'super_admin')


@pytest.fixture
def admin_user(hospital):
    return make_user('admin@example.com', 'admin', hospital)


@pytest.fixture
def receptionist(hospital):
    return make_user('desk@example.com', 'receptionist', hospital)


@pytest.fixture
def doctor_user(hospital):
    return make_user('doc@example.com', 'doctor', hospital)


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client


@pytest.fixture
def branch(hospital):
    return Branch.objects.create(hospital=hospital, name='Main')


@pytest.fixture
def doctor(hospital):
    return Doctor.objects.create(hospital=hospital, first_name='Nikhil', last_name='Rao', specialization='ENT Specialist')


@pytest.fixture
def patient(hospital, branch):
    return Patient.objects.create(
        hospital=hospital, patient_id='100001', first_name='Aarav', last_name='Patel',
        email='aarav@example.com', phone='9876543210', gender='Male', default_branch=branch,
    )
