from typing import List, Optional

from hms.models import Branch

FIELDS = ('name', 'address', 'phone', 'status')


def format_branch(b: Branch) -> dict:
    return {
        'id': b.id,
        'hospitalId': b.hospital_id,
        'name': b.name,
        'address': b.address,
        'phone': b.phone,
        'status': b.status,
        'createdAt': b.created_at.isoformat() if b.created_at else None,
    }


def list_branches(hospital, status: Optional[str]='active') -> List[dict]:
    qs = Branch.objects.filter(hospital=hospital)
    if status and status != 'all':
        qs = qs.filter(status=status)
    return [format_branch(b) for b in qs.order_by('name', 'id')]


def get_branch(hospital, pk: int) -> Branch:
    b = Branch.objects.filter(hospital=hospital, id=pk).first()
    if not b:
        raise LookupError('Branch not found')
    return b


def _check_name(branch: Branch) -> None:
    clash = Branch.objects.filter(hospital_id=branch.hospital_id, name__iexact=branch.name)
    if branch.pk:
        clash = clash.exclude(pk=branch.pk)
    if clash.exists():
        raise ValueError('A branch with this name already exists')


def save_branch(branch: Branch, data: dict) -> Branch:
    """Create (unsaved ``branch``) or update a branch from validated API data."""
    for field in FIELDS:
        if field in data:
            setattr(branch, field, data[field])
    _check_name(branch)
    branch.save()
    return branch
