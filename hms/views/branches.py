"""
Branches of the active hospital.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.models import Branch
from hms.permissions import IsAdminRole, IsFrontDesk
from hms.serializers.clinic import BranchWriteSerializer, DirectoryQuerySerializer
from hms.services import branches as branch_service
from hms.services.audit import log_action
from hms.services.hospitals import hospital_for_request
from hms.services.realtime import notify_hospital


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def branches(request):
    hospital = hospital_for_request(request)
    if request.method == 'GET':
        q = DirectoryQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        return Response({'ok': True, 'data': branch_service.list_branches(hospital, q.validated_data['status'])})

    if not IsAdminRole().has_permission(request, None):
        return Response({'ok': False, 'error': {'code': 'forbidden', 'message': 'Admin only'}}, status=403)
    s = BranchWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    branch = branch_service.save_branch(Branch(hospital=hospital), s.validated_data)
    log_action(user=request.user, action='branch_create', object_type='branch', object_id=branch.id,
               hospital_id=hospital.id)
    notify_hospital(hospital.id, 'branches', branchId=branch.id)
    return Response({'ok': True, 'data': branch_service.format_branch(branch)}, status=201)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def branch_detail(request, pk: int):
    hospital = hospital_for_request(request)
    branch = branch_service.get_branch(hospital, pk)
    s = BranchWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    branch = branch_service.save_branch(branch, s.validated_data)
    log_action(user=request.user, action='branch_update', object_type='branch', object_id=branch.id,
               hospital_id=hospital.id, detail={'fields': sorted(s.validated_data)})
    notify_hospital(hospital.id, 'branches', branchId=branch.id)
    return Response({'ok': True, 'data': branch_service.format_branch(branch)})
