from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from hms.models import Appointment, AuditEvent, Doctor, Patient
from hms.services import appointments as appointment_service

pytestmark = pytest.mark.django_db


def _day(days=1):
    return (timezone.localdate() + timedelta(days=days)).isoformat()


def _payload(patient, doctor, **extra):
    data = {'patientId': patient.id, 'doctorId': doctor.id, 'appointmentDate': _day(), 'appointmentTime': '10:30 AM'}
    data.update(extra)
    return data


def test_normalize_time():
    assert appointment_service.normalize_time('2:30 PM') == '14:30'
    assert appointment_service.normalize_time(' 12:05 am ') == '00:05'
    assert appointment_service.normalize_time('12:00 PM') == '12:00'
    assert appointment_service.normalize_time('0930AM') == '09:30'
    assert appointment_service.normalize_time('9-05') == '09:05'
    assert appointment_service.normalize_time('14:30') == '14:30'
    for bad in ('', '25:00', '13:00 PM', '10:60', 'noon'):
        with pytest.raises(ValueError):
            appointment_service.normalize_time(bad)


def test_book_appointment(receptionist, hospital, branch, patient, doctor, client_for):
    payload = _payload(patient, doctor, chiefComplaint='<b>Ear pain</b>')
    r = client_for(receptionist).post(reverse('appointments'), payload, format='json')
    assert r.status_code == 201
    data = r.data['data']
    assert data['appointmentTime'] == '10:30'
    assert data['status'] == 'confirmed'
    assert data['doctorName'] == 'Nikhil Rao'
    # falls back to the patient's default branch
    assert data['branchId'] == branch.id
    assert data['chiefComplaint'] == 'Ear pain'

    apt = Appointment.objects.get(id=data['id'])
    assert apt.hospital_id == hospital.id
    assert AuditEvent.objects.filter(action='appointment_booked', object_id=apt.id).exists()


def test_double_booking_is_a_conflict(receptionist, patient, doctor, client_for):
    client = client_for(receptionist)
    assert client.post(reverse('appointments'), _payload(patient, doctor), format='json').status_code == 201
    # same slot written another way
    r = client.post(reverse('appointments'), _payload(patient, doctor, appointmentTime='10:30'), format='json')
    assert r.status_code == 409
    assert r.data['error']['code'] == 'slot_taken'
    assert Appointment.objects.count() == 1


def test_freed_slots_can_be_rebooked(receptionist, hospital, patient, doctor, client_for):
    day = timezone.localdate() + timedelta(days=1)
    for status in ('cancelled', 'doctor_cancelled', 'not_attended'):
        Appointment.objects.create(hospital=hospital, patient=patient, doctor=doctor, status=status,
                                   appointment_date=day, appointment_time='10:30')
    r = client_for(receptionist).post(reverse('appointments'), _payload(patient, doctor), format='json')
    assert r.status_code == 201


def test_other_doctors_share_the_time(receptionist, hospital, patient, doctor, client_for):
    other = Doctor.objects.create(hospital=hospital, first_name='Meera', specialization='Audiologist')
    client = client_for(receptionist)
    assert client.post(reverse('appointments'), _payload(patient, doctor), format='json').status_code == 201
    assert client.post(reverse('appointments'), _payload(patient, other), format='json').status_code == 201


def test_booking_validation(receptionist, hospital, other_hospital, patient, doctor, client_for):
    client = client_for(receptionist)
    foreign_doctor = Doctor.objects.create(hospital=other_hospital, first_name='Elsewhere')
    inactive_doctor = Doctor.objects.create(hospital=hospital, first_name='Retired', status='inactive')
    cases = [
        _payload(patient, foreign_doctor),
        _payload(patient, inactive_doctor),
        _payload(patient, doctor, appointmentDate=_day(-1)),
        _payload(patient, doctor, appointmentTime='late'),
        _payload(patient, doctor, patientId=patient.id + 999),
    ]
    for payload in cases:
        assert client.post(reverse('appointments'), payload, format='json').status_code == 400
    assert Appointment.objects.count() == 0


def test_doctors_cannot_book(doctor_user, patient, doctor, client_for):
    r = client_for(doctor_user).post(reverse('appointments'), _payload(patient, doctor), format='json')
    assert r.status_code == 403


def test_check_slot(receptionist, hospital, patient, doctor, client_for):
    day = timezone.localdate() + timedelta(days=2)
    apt = Appointment.objects.create(hospital=hospital, patient=patient, doctor=doctor, status='confirmed',
                                     appointment_date=day, appointment_time='15:00')
    client = client_for(receptionist)
    query = {'doctorId': doctor.id, 'date': day.isoformat(), 'time': '3:00 PM'}

    r = client.get(reverse('check_slot'), query)
    assert r.status_code == 200
    assert r.data['data'] == {'doctorId': doctor.id, 'date': day.isoformat(), 'time': '15:00', 'available': False}
    assert client.get(reverse('check_slot'), {**query, 'time': '15:15'}).data['data']['available'] is True
    # the appointment being moved does not block itself
    assert client.get(reverse('check_slot'), {**query, 'excludeId': apt.id}).data['data']['available'] is True
    assert client.get(reverse('check_slot'), {'doctorId': doctor.id}).status_code == 400


def test_reschedule(receptionist, hospital, patient, doctor, client_for):
    apt = Appointment.objects.create(hospital=hospital, patient=patient, doctor=doctor, status='confirmed',
                                     appointment_date=timezone.localdate(), appointment_time='10:00')
    r = client_for(receptionist).post(reverse('reschedule_appointment', args=[apt.id]),
                                      {'appointmentDate': _day(3), 'appointmentTime': '4:45 PM'}, format='json')
    assert r.status_code == 200
    apt.refresh_from_db()
    assert (apt.appointment_date.isoformat(), apt.appointment_time, apt.status) == (_day(3), '16:45', 'rescheduled')
    log = AuditEvent.objects.get(action='appointment_rescheduled')
    assert log.detail['from']['time'] == '10:00'
    assert log.detail['to']['time'] == '16:45'


def test_reschedule_into_a_taken_slot(receptionist, hospital, patient, doctor, client_for):
    day = timezone.localdate() + timedelta(days=1)
    Appointment.objects.create(hospital=hospital, patient=patient, doctor=doctor, status='confirmed',
                               appointment_date=day, appointment_time='11:00')
    apt = Appointment.objects.create(hospital=hospital, patient=patient, doctor=doctor, status='confirmed',
                                     appointment_date=day, appointment_time='12:00')
    client = client_for(receptionist)
    url = reverse('reschedule_appointment', args=[apt.id])
    assert client.post(url, {'appointmentDate': day.isoformat(), 'appointmentTime': '11:00'},
                       format='json').status_code == 409
    # keeping its own slot is fine
    assert client.post(url, {'appointmentDate': day.isoformat(), 'appointmentTime': '12:00'},
                       format='json').status_code == 200


def test_closed_appointments_cannot_be_rescheduled(receptionist, hospital, patient, doctor, client_for):
    client = client_for(receptionist)
    for status in ('completed', 'cancelled', 'not_attended'):
        apt = Appointment.objects.create(hospital=hospital, patient=patient, doctor=doctor, status=status,
                                         appointment_date=timezone.localdate(), appointment_time='09:00')
        r = client.post(reverse('reschedule_appointment', args=[apt.id]),
                        {'appointmentDate': _day(2), 'appointmentTime': '09:00'}, format='json')
        assert r.status_code == 400
        apt.refresh_from_db()
        assert apt.status == status


def test_reschedule_is_hospital_scoped(admin_user, other_hospital, client_for):
    stranger = Patient.objects.create(hospital=other_hospital, first_name='Far')
    foreign_doctor = Doctor.objects.create(hospital=other_hospital, first_name='Away')
    apt = Appointment.objects.create(
        hospital=other_hospital, patient=stranger, doctor=foreign_doctor, status='confirmed',
        appointment_date=timezone.localdate(), appointment_time='09:00',
    )
    r = client_for(admin_user).post(reverse('reschedule_appointment', args=[apt.id]),
                                    {'appointmentDate': _day(2), 'appointmentTime': '09:00'}, format='json')
    assert r.status_code == 404
