import secrets
from datetime import date
from typing import Optional, Tuple, List
from django.db import transaction
from django.db.models import Q, Value
from django.db.models.functions import Concat
from django.utils import timezone

from hms.models import Appointment, Branch, Patient
from hms.services.analytics import calculate_age

UPCOMING_STATUSES = ('confirmed', 'pending', 'whatsapp_pending')

SORT_FIELDS = {
    'name': ('first_name', 'last_name'),
    'email': ('email',),
    'createdAt': ('created_at',),
    'status': ('status',),
}

# API field -> model field
FIELD_MAP = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'email': 'email',
    'phone': 'phone',
    'gender': 'gender',
    'bloodGroup': 'blood_group',
    'dateOfBirth': 'date_of_birth',
    'address': 'address',
    'status': 'status',
}


def generate_patient_id(hospital) -> str:
    """Six digit display id, unique within the hospital."""
    while True:
        candidate = f'{secrets.randbelow(900000) + 100000}'
        if not Patient.objects.filter(hospital=hospital, patient_id=candidate).exists():
            return candidate


def appointment_details(appointments, today: date) -> dict:
    upcoming = [a for a in appointments if a.appointment_date >= today and a.status in UPCOMING_STATUSES]
    nxt = min(upcoming, key=lambda a: (a.appointment_date, a.appointment_time or '')) if upcoming else None
    return {
        'total': len(appointments),
        'upcoming': len(upcoming),
        'nextAppointment': {
            'id': nxt.id,
            'date': nxt.appointment_date.isoformat(),
            'time': nxt.appointment_time,
            'status': nxt.status,
        } if nxt else None,
    }


def format_patient(p: Patient, details: Optional[dict]=None, today: Optional[date]=None) -> dict:
    data = {
        'id': p.id,
        'hospitalId': p.hospital_id,
        'patientId': p.patient_id,
        'firstName': p.first_name,
        'lastName': p.last_name,
        'fullName': p.full_name,
        'email': p.email,
        'phone': p.phone,
        'gender': p.gender,
        'bloodGroup': p.blood_group,
        'dateOfBirth': p.date_of_birth.isoformat() if p.date_of_birth else None,
        'age': calculate_age(p.date_of_birth, today),
        'address': p.address,
        'status': p.status,
        'defaultBranchId': p.default_branch_id,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
    }
    if details is not None:
        data['appointmentDetails'] = details
    return data


def list_patients(hospital, *, search: Optional[str]=None, status: Optional[str]=None,
                  branch_id: Optional[int]=None, sort: str='createdAt', order: str='desc',
                  page: int=1, page_size: int=20) -> Tuple[List[dict], int]:
    qs = Patient.objects.filter(hospital=hospital)
    if status and status != 'all':
        qs = qs.filter(status=status)
    if branch_id:
        qs = qs.filter(default_branch_id=branch_id)
    if search:
        search = search.strip()
        qs = qs.annotate(_full=Concat('first_name', Value(' '), 'last_name')).filter(
            Q(first_name__icontains=search) | Q(last_name__icontains=search) | Q(_full__icontains=search)
            | Q(email__icontains=search) | Q(phone__icontains=search) | Q(patient_id__icontains=search)
        )
    fields = SORT_FIELDS.get(sort, SORT_FIELDS['createdAt'])
    prefix = '-' if order == 'desc' else ''
    qs = qs.order_by(*[prefix + f for f in fields], prefix + 'id')

    total = qs.count()
    start = (page - 1) * page_size
    rows = list(qs[start:start + page_size])

    by_patient: dict[int, list] = {p.id: [] for p in rows}
    for apt in Appointment.objects.filter(patient_id__in=by_patient.keys()):
        by_patient[apt.patient_id].append(apt)
    today = timezone.localdate()
    return [format_patient(p, appointment_details(by_patient[p.id], today), today) for p in rows], total


def patient_metrics(hospital, today: Optional[date]=None) -> dict:
    today = today or timezone.localdate()
    patients = list(Patient.objects.filter(hospital=hospital).only('status', 'date_of_birth', 'created_at'))
    ages = [a for a in (calculate_age(p.date_of_birth, today) for p in patients) if a is not None]
    month_start = today.replace(day=1)
    created = [timezone.localdate(p.created_at) for p in patients if p.created_at]
    return {
        'total': len(patients),
        'active': sum(1 for p in patients if p.status == 'active'),
        'inactive': sum(1 for p in patients if p.status == 'inactive'),
        'newThisMonth': sum(1 for d in created if month_start <= d <= today),
        'averageAge': round(sum(ages) / len(ages)) if ages else 0,
    }


def get_patient(hospital, pk: int) -> Patient:
    p = Patient.objects.filter(hospital=hospital, id=pk).first()
    if not p:
        raise LookupError('Patient not found')
    return p


def _apply(patient: Patient, data: dict) -> None:
    for key, field in FIELD_MAP.items():
        if key in data:
            setattr(patient, field, data[key])
    if 'defaultBranchId' in data:
        branch_id = data['defaultBranchId']
        if branch_id and not Branch.objects.filter(id=branch_id, hospital_id=patient.hospital_id).exists():
            raise ValueError('Branch does not belong to this hospital')
        patient.default_branch_id = branch_id or None


@transaction.atomic
def create_patient(hospital, data: dict) -> Patient:
    patient = Patient(hospital=hospital, status='active')
    _apply(patient, data)
    if not patient.first_name:
        raise ValueError('firstName is required')
    patient_id = (data.get('patientId') or '').strip()
    if patient_id and Patient.objects.filter(hospital=hospital, patient_id=patient_id).exists():
        raise ValueError('Patient ID already exists')
    patient.patient_id = patient_id or generate_patient_id(hospital)
    patient.save()
    return patient


def update_patient(patient: Patient, data: dict) -> Patient:
    _apply(patient, data)
    patient.save()
    return patient


def delete_patient(patient: Patient) -> None:
    patient.delete()
