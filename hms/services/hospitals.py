from typing import Optional
from django.db import transaction
from hms.models import Hospital

HOSPITAL_FIELDS = ('name', 'code', 'address', 'phone', 'email')


def resolve_hospital(user, hospital_id: Optional[int]=None) -> Hospital:
    """Return the hospital a request operates on.

    Super admins pick any hospital with ``hospitalId`` (falling back to
    their active one); everybody else is pinned to ``active_hospital``.
    """
    if getattr(user, 'role', '') == 'super_admin':
        if hospital_id:
            hospital = Hospital.objects.filter(id=hospital_id).first()
            if not hospital:
                raise LookupError('Hospital not found')
            return hospital
        if user.active_hospital_id:
            return user.active_hospital
        raise ValueError('hospitalId is required')
    if not getattr(user, 'active_hospital_id', None):
        raise PermissionError('No active hospital assigned')
    if hospital_id and int(hospital_id) != user.active_hospital_id:
        raise PermissionError('Forbidden for this hospital')
    return user.active_hospital


def format_hospital(h: Hospital) -> dict:
    return {
        'id': h.id,
        'name': h.name,
        'code': h.code,
        'address': h.address,
        'phone': h.phone,
        'email': h.email,
        'status': h.status,
        'createdAt': h.created_at.isoformat() if h.created_at else None,
        'updatedAt': h.updated_at.isoformat() if h.updated_at else None,
    }


def list_hospitals(user, *, include_inactive: bool=False) -> list[Hospital]:
    qs = Hospital.objects.all()
    if not (include_inactive and getattr(user, 'role', '') == 'super_admin'):
        qs = qs.filter(status='active')
    return list(qs.order_by('name'))


def create_hospital(*, name, code, address, phone, email) -> Hospital:
    code = code.strip()
    if Hospital.objects.filter(code__iexact=code).exists():
        raise ValueError('Hospital code already exists')
    return Hospital.objects.create(
        name=name.strip(), code=code, address=address, phone=phone, email=email, status='active'
    )


@transaction.atomic
def update_hospital(hospital: Hospital, changes: dict) -> Hospital:
    code = changes.get('code')
    if code and code != hospital.code:
        if Hospital.objects.filter(code__iexact=code).exclude(id=hospital.id).exists():
            raise ValueError('Hospital code already exists')
    for field in HOSPITAL_FIELDS + ('status',):
        if field in changes:
            setattr(hospital, field, changes[field])
    hospital.save()
    return hospital


def deactivate_hospital(hospital: Hospital) -> Hospital:
    hospital.status = 'inactive'
    hospital.save(update_fields=['status', 'updated_at'])
    return hospital


def hospital_for_request(request) -> Hospital:
    """``resolve_hospital`` with ``hospitalId`` taken from the query string or body."""
    raw = request.query_params.get('hospitalId')
    if raw is None and hasattr(request.data, 'get'):
        raw = request.data.get('hospitalId')
    try:
        hospital_id = int(raw) if raw not in (None, '') else None
    except (TypeError, ValueError):
        raise ValueError('hospitalId must be an integer')
    return resolve_hospital(request.user, hospital_id)
