"""
Hospital (tenant) and hospital-admin management.

Only super admins may create, edit or retire hospitals and manage the admin
accounts assigned to them; any signed-in user may list active hospitals.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.permissions import IsSuperAdmin
from hms.serializers.hospital import (
    AdminCreateSerializer,
    AdminUpdateSerializer,
    HospitalCreateSerializer,
    HospitalUpdateSerializer,
)
from hms.services import admins as admin_service
from hms.services import hospitals as hospital_service
from hms.services.audit import log_action

from ..models import Hospital


def _get_hospital(pk: int) -> Hospital:
    hospital = Hospital.objects.filter(id=pk).first()
    if not hospital:
        raise LookupError('Hospital not found')
    return hospital


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def hospitals(request):
    if request.method == 'GET':
        include_inactive = request.query_params.get('all') in ('1', 'true')
        rows = hospital_service.list_hospitals(request.user, include_inactive=include_inactive)
        return Response({'ok': True, 'data': [hospital_service.format_hospital(h) for h in rows]})

    if not IsSuperAdmin().has_permission(request, None):
        return Response({'ok': False, 'error': {'code': 'forbidden', 'message': 'Super admin only'}}, status=403)
    s = HospitalCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    hospital = hospital_service.create_hospital(**s.validated_data)
    log_action(user=request.user, action='hospital_create', object_type='hospital', object_id=hospital.id,
               hospital_id=hospital.id, detail={'code': hospital.code})
    return Response({'ok': True, 'data': hospital_service.format_hospital(hospital)}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsSuperAdmin])
def hospital_detail(request, pk: int):
    hospital = _get_hospital(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': hospital_service.format_hospital(hospital)})
    if request.method == 'DELETE':
        hospital_service.deactivate_hospital(hospital)
        log_action(user=request.user, action='hospital_deactivate', object_type='hospital', object_id=hospital.id,
                   hospital_id=hospital.id)
        return Response({'ok': True, 'data': hospital_service.format_hospital(hospital)})

    s = HospitalUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    hospital = hospital_service.update_hospital(hospital, s.validated_data)
    log_action(user=request.user, action='hospital_update', object_type='hospital', object_id=hospital.id,
               hospital_id=hospital.id, detail={'fields': sorted(s.validated_data)})
    return Response({'ok': True, 'data': hospital_service.format_hospital(hospital)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsSuperAdmin])
def admins(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': [admin_service.format_admin(u) for u in admin_service.list_admins()]})

    s = AdminCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user = admin_service.create_admin(
        email=vd['email'],
        password=vd['password'],
        hospital_id=vd['hospitalId'],
        first_name=vd['firstName'],
        last_name=vd['lastName'],
    )
    log_action(user=request.user, action='admin_create', object_type='user', object_id=user.id,
               hospital_id=user.active_hospital_id)
    return Response({'ok': True, 'data': admin_service.format_admin(user)}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsSuperAdmin])
def admin_detail(request, pk: int):
    user = admin_service.get_admin(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': admin_service.format_admin(user)})
    if request.method == 'DELETE':
        admin_service.delete_admin(user)
        log_action(user=request.user, action='admin_delete', object_type='user', object_id=pk)
        return Response({'ok': True})

    s = AdminUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    user = admin_service.update_admin(user, s.validated_data)
    log_action(user=request.user, action='admin_update', object_type='user', object_id=user.id,
               hospital_id=user.active_hospital_id, detail={'fields': sorted(k for k in s.validated_data if k != 'password')})
    return Response({'ok': True, 'data': admin_service.format_admin(user)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsSuperAdmin])
def assignable_hospitals(request):
    rows = hospital_service.list_hospitals(request.user)
    return Response({'ok': True, 'data': [{'id': h.id, 'name': h.name, 'code': h.code} for h in rows]})
