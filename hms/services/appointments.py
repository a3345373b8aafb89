import logging
import re
from datetime import date, timedelta
from typing import Optional, Tuple, List
from django.db import transaction
from django.db.models import Q, Value
from django.db.models.functions import Concat, Lower
from django.utils import timezone

from hms.exceptions import SlotUnavailable
from hms.models import Appointment, Branch, Doctor, NotAttendedMessage, Patient
from hms.services import whatsapp
from hms.services.notifications import not_attended_message

logger = logging.getLogger(__name__)

# filter value -> statuses it matches
STATUS_GROUPS = {
    'confirmed': ('confirmed', 'whatsapp_pending'),
    'cancelled': ('cancelled', 'doctor_cancelled'),
}
CLOSED_STATUSES = ('completed', 'cancelled', 'doctor_cancelled', 'not_attended')
UPCOMING_STATUSES = ('confirmed', 'rescheduled')
# a doctor's slot is free again once the appointment ends up in one of these
FREED_STATUSES = ('cancelled', 'doctor_cancelled', 'not_attended')

TIME_12H = re.compile(r'^(\d{1,2})[:\-]?(\d{2})(AM|PM)$')
TIME_24H = re.compile(r'^(\d{1,2})[:\-](\d{2})$')

SORT_FIELDS = {
    'patientName': ('_patient_name',),
    'doctorName': ('_doctor_name',),
    'appointmentDate': ('appointment_date', 'appointment_time'),
    'status': ('status',),
    'createdAt': ('created_at',),
    'branch': ('branch__name',),
}


def format_appointment(a: Appointment) -> dict:
    patient, doctor = a.patient, a.doctor
    return {
        'id': a.id,
        'hospitalId': a.hospital_id,
        'patientId': patient.id,
        'patientDisplayId': patient.patient_id,
        'patientName': patient.full_name,
        'patientEmail': patient.email,
        'patientPhone': patient.phone,
        'doctorId': doctor.id if doctor else None,
        'doctorName': doctor.full_name if doctor else '',
        'doctorSpecialization': doctor.specialization if doctor else '',
        'branchId': a.branch_id,
        'branchName': a.branch.name if a.branch else None,
        'appointmentDate': a.appointment_date.isoformat(),
        'appointmentTime': a.appointment_time,
        'status': a.status,
        'chiefComplaint': a.chief_complaint,
        'finalDiagnosis': a.final_diagnosis or [],
        'customDiagnosis': a.custom_diagnosis,
        'notAttendedAt': a.not_attended_at.isoformat() if a.not_attended_at else None,
        'canMarkNotAttended': can_mark_not_attended(a),
        'createdAt': a.created_at.isoformat() if a.created_at else None,
        'updatedAt': a.updated_at.isoformat() if a.updated_at else None,
    }


def _time_range_q(time_range: str, today: date) -> Q:
    if time_range == 'today':
        return Q(appointment_date=today)
    if time_range == 'last10':
        return Q(appointment_date__gte=today - timedelta(days=10), appointment_date__lte=today)
    if time_range == 'month':
        return Q(appointment_date__year=today.year, appointment_date__month=today.month)
    if time_range == 'year':
        return Q(appointment_date__year=today.year)
    return Q()


def list_appointments(hospital, *, search: Optional[str]=None, doctor_id: Optional[int]=None,
                      branch_id: Optional[int]=None, time_range: str='all', status: str='all',
                      sort: str='createdAt', order: str='desc', page: int=1, page_size: int=20,
                      today: Optional[date]=None) -> Tuple[List[dict], int]:
    today = today or timezone.localdate()
    qs = Appointment.objects.filter(hospital=hospital).select_related('patient', 'doctor', 'branch')
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if branch_id:
        qs = qs.filter(branch_id=branch_id)
    qs = qs.filter(_time_range_q(time_range, today))
    if status and status != 'all':
        qs = qs.filter(status__in=STATUS_GROUPS.get(status, (status,)))

    qs = qs.annotate(
        _patient_name=Lower(Concat('patient__first_name', Value(' '), 'patient__last_name')),
        _doctor_name=Lower(Concat('doctor__first_name', Value(' '), 'doctor__last_name')),
    )
    if search:
        term = search.strip().lower()
        qs = qs.filter(
            Q(_patient_name__contains=term) | Q(_doctor_name__contains=term)
            | Q(patient__email__icontains=term) | Q(doctor__specialization__icontains=term)
            | Q(patient__patient_id__icontains=term)
        )

    fields = SORT_FIELDS.get(sort, SORT_FIELDS['createdAt'])
    prefix = '-' if order == 'desc' else ''
    qs = qs.order_by(*[prefix + f for f in fields], prefix + 'id')

    total = qs.count()
    start = (page - 1) * page_size
    return [format_appointment(a) for a in qs[start:start + page_size]], total


def status_counts(hospital, branch_id: Optional[int]=None) -> dict:
    qs = Appointment.objects.filter(hospital=hospital)
    if branch_id:
        qs = qs.filter(branch_id=branch_id)
    statuses = list(qs.values_list('status', flat=True))
    return {
        'all': len(statuses),
        'confirmed': sum(1 for s in statuses if s in STATUS_GROUPS['confirmed']),
        'completed': statuses.count('completed'),
        'notAttended': statuses.count('not_attended'),
        'cancelled': sum(1 for s in statuses if s in STATUS_GROUPS['cancelled']),
    }


def appointment_metrics(hospital, branch_id: Optional[int]=None, today: Optional[date]=None) -> dict:
    today = today or timezone.localdate()
    qs = Appointment.objects.filter(hospital=hospital)
    if branch_id:
        qs = qs.filter(branch_id=branch_id)
    return {
        'total': qs.count(),
        'upcoming': qs.filter(status__in=UPCOMING_STATUSES, appointment_date__gte=today).count(),
        'completedThisMonth': qs.filter(
            status='completed', appointment_date__year=today.year, appointment_date__month=today.month
        ).count(),
        'cancelled': qs.filter(status__in=STATUS_GROUPS['cancelled']).count(),
    }


def can_mark_not_attended(apt: Appointment, today: Optional[date]=None) -> bool:
    if apt.status in CLOSED_STATUSES:
        return False
    return apt.appointment_date <= (today or timezone.localdate())


def get_appointment(hospital, pk: int) -> Appointment:
    apt = Appointment.objects.select_related('patient', 'doctor', 'branch').filter(hospital=hospital, id=pk).first()
    if not apt:
        raise LookupError('Appointment not found')
    return apt


def mark_not_attended(apt: Appointment, user) -> Optional[NotAttendedMessage]:
    """Flag ``apt`` as missed and tell the patient over WhatsApp.

    The status change is committed before the message goes out; delivery
    problems are recorded on the returned message row and never raised.
    """
    if apt.status == 'completed':
        raise ValueError('Cannot mark completed appointment as not attended')
    if apt.status in STATUS_GROUPS['cancelled']:
        raise ValueError('Cannot mark cancelled appointment as not attended')
    if apt.status == 'not_attended':
        raise ValueError('Appointment is already marked as not attended')
    if not can_mark_not_attended(apt):
        raise ValueError('Cannot mark a future appointment as not attended')

    with transaction.atomic():
        apt.status = 'not_attended'
        apt.not_attended_at = timezone.now()
        apt.marked_not_attended_by = user
        apt.save(update_fields=['status', 'not_attended_at', 'marked_not_attended_by', 'updated_at'])

    phone = (apt.patient.phone or '').strip()
    if not phone:
        logger.warning('Appointment %s has no patient phone, skipping missed-appointment message', apt.id)
        return None

    body = not_attended_message(apt)
    result = whatsapp.send_text(phone, body)
    if result.success:
        logger.info('Missed-appointment message sent for appointment %s (%s)', apt.id, result.message_id)
    else:
        logger.warning('Missed-appointment message failed for appointment %s: %s', apt.id, result.error)
    return NotAttendedMessage.objects.create(
        hospital_id=apt.hospital_id,
        appointment=apt,
        patient_phone=phone,
        message=body,
        status='sent' if result.success else 'failed',
        message_id=result.message_id or '',
        error=result.error or '',
    )


def delete_appointment(apt: Appointment) -> None:
    apt.delete()


def normalize_time(value: str) -> str:
    """``'2:30 PM'``, ``'14-30'`` and ``'14:30'`` all become ``'14:30'``."""
    compact = re.sub(r'\s+', '', value or '').upper()
    m = TIME_12H.match(compact)
    if m:
        hour, minute = int(m.group(1)), int(m.group(2))
        if not 1 <= hour <= 12:
            raise ValueError('Invalid appointment time')
        hour = hour % 12 + (12 if m.group(3) == 'PM' else 0)
    else:
        m = TIME_24H.match(compact)
        if not m:
            raise ValueError('Invalid appointment time')
        hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        raise ValueError('Invalid appointment time')
    return f'{hour:02d}:{minute:02d}'


def slot_available(hospital, doctor_id: int, day: date, time: str, exclude_id: Optional[int]=None) -> bool:
    qs = (
        Appointment.objects.filter(hospital=hospital, doctor_id=doctor_id, appointment_date=day,
                                   appointment_time=normalize_time(time))
        .exclude(status__in=FREED_STATUSES)
    )
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    return not qs.exists()


def _active_doctor(hospital, doctor_id: int) -> Doctor:
    doctor = Doctor.objects.filter(hospital=hospital, id=doctor_id, status='active').first()
    if not doctor:
        raise ValueError('Doctor not found in this hospital')
    return doctor


def _claim_slot(hospital, doctor: Doctor, day: date, time: str, exclude_id: Optional[int]=None) -> None:
    """Must run inside a transaction; bookings for one doctor are serialized on the doctor row."""
    Doctor.objects.select_for_update().get(id=doctor.id)
    if not slot_available(hospital, doctor.id, day, time, exclude_id=exclude_id):
        raise SlotUnavailable('This time slot has already been booked. Please select another slot.')


def book_appointment(hospital, data: dict, user=None, today: Optional[date]=None) -> Appointment:
    today = today or timezone.localdate()
    patient = Patient.objects.filter(hospital=hospital, id=data['patientId']).first()
    if not patient:
        raise ValueError('Patient not found in this hospital')
    doctor = _active_doctor(hospital, data['doctorId'])

    branch_id = data.get('branchId')
    if branch_id:
        if not Branch.objects.filter(hospital=hospital, id=branch_id, status='active').exists():
            raise ValueError('Branch does not belong to this hospital')
    else:
        branch_id = patient.default_branch_id

    day = data['appointmentDate']
    if day < today:
        raise ValueError('Appointment date cannot be in the past')
    time = normalize_time(data['appointmentTime'])

    with transaction.atomic():
        _claim_slot(hospital, doctor, day, time)
        apt = Appointment.objects.create(
            hospital=hospital, patient=patient, doctor=doctor, branch_id=branch_id,
            appointment_date=day, appointment_time=time,
            status=data.get('status') or 'confirmed',
            chief_complaint=data.get('chiefComplaint') or '',
        )
    logger.info('Appointment %s booked for doctor %s on %s %s by %s', apt.id, doctor.id, day, time,
                getattr(user, 'id', None))
    return apt


def reschedule_appointment(apt: Appointment, data: dict, today: Optional[date]=None) -> Appointment:
    """Move ``apt`` to a new date and time, optionally with another doctor."""
    today = today or timezone.localdate()
    if apt.status in CLOSED_STATUSES:
        raise ValueError('Cannot reschedule a closed appointment')
    if data.get('doctorId'):
        doctor = _active_doctor(apt.hospital, data['doctorId'])
    elif apt.doctor_id:
        doctor = apt.doctor
    else:
        raise ValueError('doctorId is required')

    day = data['appointmentDate']
    if day < today:
        raise ValueError('Appointment date cannot be in the past')
    time = normalize_time(data['appointmentTime'])

    with transaction.atomic():
        _claim_slot(apt.hospital, doctor, day, time, exclude_id=apt.id)
        apt.doctor = doctor
        apt.appointment_date = day
        apt.appointment_time = time
        apt.status = 'rescheduled'
        apt.save(update_fields=['doctor', 'appointment_date', 'appointment_time', 'status', 'updated_at'])
    return apt
