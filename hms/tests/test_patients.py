from datetime import date, timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from hms.models import Appointment, Branch, Patient
from hms.services.analytics import calculate_age

from .utils import make_user

pytestmark = pytest.mark.django_db


def test_calculate_age():
    today = date(2026, 6, 15)
    assert calculate_age(date(1990, 6, 15), today) == 36
    assert calculate_age(date(1990, 6, 16), today) == 35
    assert calculate_age('2000-01-01', today) == 26
    assert calculate_age('not a date', today) is None
    assert calculate_age(None, today) is None
    assert calculate_age(date(2027, 1, 1), today) is None


def test_list_enriches_appointment_details(receptionist, hospital, patient, doctor, client_for):
    today = timezone.localdate()
    Appointment.objects.create(hospital=hospital, patient=patient, doctor=doctor, status='confirmed',
                               appointment_date=today + timedelta(days=3), appointment_time='10:00')
    soon = Appointment.objects.create(hospital=hospital, patient=patient, doctor=doctor, status='pending',
                                      appointment_date=today + timedelta(days=1), appointment_time='09:00')
    Appointment.objects.create(hospital=hospital, patient=patient, doctor=doctor, status='completed',
                               appointment_date=today - timedelta(days=5), appointment_time='11:00')

    r = client_for(receptionist).get(reverse('patients'))
    assert r.status_code == 200
    assert r.data['pagination'] == {'total': 1, 'page': 1, 'pageSize': 20}
    details = r.data['data'][0]['appointmentDetails']
    assert details['total'] == 3
    assert details['upcoming'] == 2
    assert details['nextAppointment']['id'] == soon.id


def test_search_and_status_filter(admin_user, hospital, patient, client_for):
    Patient.objects.create(hospital=hospital, patient_id='200002', first_name='Diya', last_name='Shah', status='inactive')
    client = client_for(admin_user)

    r = client.get(reverse('patients'), {'q': 'aarav patel'})
    assert [p['id'] for p in r.data['data']] == [patient.id]
    r = client.get(reverse('patients'), {'q': '200002'})
    assert [p['firstName'] for p in r.data['data']] == ['Diya']
    r = client.get(reverse('patients'), {'status': 'inactive'})
    assert r.data['pagination']['total'] == 1
    r = client.get(reverse('patients'), {'sort': 'name', 'order': 'asc'})
    assert [p['firstName'] for p in r.data['data']] == ['Aarav', 'Diya']


def test_metrics(admin_user, hospital, client_for):
    today = timezone.localdate()
    Patient.objects.create(hospital=hospital, first_name='A', status='active', date_of_birth=date(today.year - 30, 1, 1))
    Patient.objects.create(hospital=hospital, first_name='B', status='inactive', date_of_birth=date(today.year - 40, 1, 1),
                           created_at=timezone.now() - timedelta(days=400))
    r = client_for(admin_user).get(reverse('patient_metrics'))
    data = r.data['data']
    assert data['total'] == 2
    assert data['active'] == 1
    assert data['inactive'] == 1
    assert data['newThisMonth'] == 1
    assert data['averageAge'] == 35


def test_create_generates_patient_id(receptionist, hospital, branch, client_for):
    payload = {'firstName': ' Kabir ', 'lastName': 'Joshi', 'phone': '9000000000', 'dateOfBirth': '1995-02-01',
               'defaultBranchId': branch.id}
    r = client_for(receptionist).post(reverse('patients'), payload, format='json')
    assert r.status_code == 201
    data = r.data['data']
    assert data['firstName'] == 'Kabir'
    assert len(data['patientId']) == 6 and data['patientId'].isdigit()
    assert data['status'] == 'active'
    assert Patient.objects.get(id=data['id']).hospital_id == hospital.id


def test_create_rejects_taken_patient_id(receptionist, patient, other_hospital, client_for):
    r = client_for(receptionist).post(reverse('patients'), {'firstName': 'Dup', 'patientId': '100001'}, format='json')
    assert r.status_code == 400
    assert r.data['error']['message'] == 'Patient ID already exists'
    assert Patient.objects.filter(patient_id='100001').count() == 1

    # ids only need to be unique within a hospital
    other_admin = make_user('other@example.com', 'admin', other_hospital)
    r = client_for(other_admin).post(reverse('patients'), {'firstName': 'Twin', 'patientId': '100001'}, format='json')
    assert r.status_code == 201
    assert r.data['data']['patientId'] == '100001'


def test_create_requires_first_name(receptionist, client_for):
    r = client_for(receptionist).post(reverse('patients'), {'firstName': '  '}, format='json')
    assert r.status_code == 400


def test_branch_must_belong_to_hospital(admin_user, other_hospital, client_for):
    foreign_branch = Branch.objects.create(hospital=other_hospital, name='Elsewhere')
    r = client_for(admin_user).post(reverse('patients'), {'firstName': 'X', 'defaultBranchId': foreign_branch.id},
                                    format='json')
    assert r.status_code == 400


def test_update_and_delete(admin_user, patient, client_for):
    client = client_for(admin_user)
    r = client.put(reverse('patient_detail', args=[patient.id]), {'status': 'inactive'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'inactive'
    assert r.data['data']['firstName'] == 'Aarav'

    assert client.delete(reverse('patient_detail', args=[patient.id])).status_code == 200
    assert not Patient.objects.filter(id=patient.id).exists()


def test_doctor_cannot_manage_patients(doctor_user, client_for):
    assert client_for(doctor_user).get(reverse('patients')).status_code == 403


def test_tenant_isolation(admin_user, super_admin, hospital, other_hospital, patient, client_for):
    client = client_for(admin_user)
    assert client.get(reverse('patients'), {'hospitalId': other_hospital.id}).status_code == 403

    foreign = Patient.objects.create(hospital=other_hospital, first_name='Other')
    assert client.get(reverse('patient_detail', args=[foreign.id])).status_code == 404

    r = client_for(super_admin).get(reverse('patients'), {'hospitalId': other_hospital.id})
    assert r.status_code == 200
    assert [p['id'] for p in r.data['data']] == [foreign.id]


def test_user_without_hospital_is_refused(hospital, client_for):
    stray = make_user('stray@example.com', 'receptionist')
    assert client_for(stray).get(reverse('patients')).status_code == 403
