from typing import List, Optional

from hms.models import Doctor

# API field -> model field
FIELD_MAP = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'email': 'email',
    'phone': 'phone',
    'specialization': 'specialization',
    'status': 'status',
}


def format_doctor(d: Doctor) -> dict:
    return {
        'id': d.id,
        'hospitalId': d.hospital_id,
        'firstName': d.first_name,
        'lastName': d.last_name,
        'fullName': d.full_name,
        'email': d.email,
        'phone': d.phone,
        'specialization': d.specialization,
        'status': d.status,
        'userId': d.user_id,
        'createdAt': d.created_at.isoformat() if d.created_at else None,
    }


def list_doctors(hospital, status: Optional[str]='active') -> List[dict]:
    qs = Doctor.objects.filter(hospital=hospital)
    if status and status != 'all':
        qs = qs.filter(status=status)
    return [format_doctor(d) for d in qs.order_by('first_name', 'last_name', 'id')]


def get_doctor(hospital, pk: int) -> Doctor:
    d = Doctor.objects.filter(hospital=hospital, id=pk).first()
    if not d:
        raise LookupError('Doctor not found')
    return d


def _apply(doctor: Doctor, data: dict) -> None:
    for key, field in FIELD_MAP.items():
        if key in data:
            setattr(doctor, field, data[key])


def create_doctor(hospital, data: dict) -> Doctor:
    doctor = Doctor(hospital=hospital, status='active')
    _apply(doctor, data)
    doctor.save()
    return doctor


def update_doctor(doctor: Doctor, data: dict) -> Doctor:
    _apply(doctor, data)
    doctor.save()
    return doctor
