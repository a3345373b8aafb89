from typing import Optional
from django.contrib.auth import get_user_model
from django.db import transaction
from hms.models import Hospital

User = get_user_model()

MIN_PASSWORD_LENGTH = 6


def format_admin(u) -> dict:
    hospital = u.active_hospital
    return {
        'id': u.id,
        'email': u.email,
        'firstName': u.first_name,
        'lastName': u.last_name,
        'role': u.role,
        'isSuperAdmin': u.role == 'super_admin',
        'hospitalId': hospital.id if hospital else None,
        'hospitalName': hospital.name if hospital else 'Unknown',
        'createdAt': u.date_joined.isoformat() if u.date_joined else None,
    }


def list_admins() -> list:
    return list(
        User.objects.filter(role='admin').select_related('active_hospital').order_by('-date_joined', '-id')
    )


def get_admin(pk: int):
    u = User.objects.select_related('active_hospital').filter(id=pk, role__in=['admin', 'super_admin']).first()
    if not u:
        raise LookupError('Admin not found')
    return u


def _assignable_hospital(hospital_id) -> Hospital:
    hospital = Hospital.objects.filter(id=hospital_id).first()
    if not hospital:
        raise LookupError('Hospital not found')
    if not hospital.is_active:
        raise ValueError('Cannot assign admin to an inactive hospital')
    return hospital


def _email_taken(email: str, exclude_id: Optional[int]=None) -> bool:
    qs = User.objects.filter(email__iexact=email) | User.objects.filter(username__iexact=email)
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    return qs.exists()


@transaction.atomic
def create_admin(*, email: str, password: str, hospital_id: int, first_name: str, last_name: str):
    if len(password or '') < MIN_PASSWORD_LENGTH:
        raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    hospital = _assignable_hospital(hospital_id)
    email = email.strip().lower()
    if _email_taken(email):
        raise ValueError('An account with this email already exists')
    user = User.objects.create_user(
        username=email,
        email=email,
        password=password,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        role='admin',
        active_hospital=hospital,
    )
    user.hospitals.add(hospital)
    return user


@transaction.atomic
def update_admin(user, changes: dict):
    if user.role == 'super_admin':
        raise ValueError('Super admin accounts cannot be edited here')
    update_fields = []
    if 'firstName' in changes:
        user.first_name = changes['firstName'].strip()
        update_fields.append('first_name')
    if 'lastName' in changes:
        user.last_name = changes['lastName'].strip()
        update_fields.append('last_name')
    if changes.get('email'):
        email = changes['email'].strip().lower()
        if email != user.email and _email_taken(email, exclude_id=user.id):
            raise ValueError('An account with this email already exists')
        user.email = email
        user.username = email
        update_fields += ['email', 'username']
    if changes.get('password'):
        if len(changes['password']) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        user.set_password(changes['password'])
        update_fields.append('password')
    if changes.get('hospitalId'):
        hospital = _assignable_hospital(changes['hospitalId'])
        user.active_hospital = hospital
        user.hospitals.add(hospital)
        update_fields.append('active_hospital')
    if update_fields:
        user.save(update_fields=update_fields)
    return user


def delete_admin(user) -> None:
    if user.role == 'super_admin':
        raise ValueError('Cannot delete a super admin')
    user.delete()
