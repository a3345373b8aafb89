"""
Doctor directory of the active hospital.

Front desk staff read it to book appointments; only admins add or edit
doctors.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.permissions import IsAdminRole, IsFrontDesk
from hms.serializers.clinic import DirectoryQuerySerializer, DoctorWriteSerializer
from hms.services import doctors as doctor_service
from hms.services.audit import log_action
from hms.services.hospitals import hospital_for_request
from hms.services.realtime import notify_hospital


def _forbidden():
    return Response({'ok': False, 'error': {'code': 'forbidden', 'message': 'Admin only'}}, status=403)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def doctors(request):
    hospital = hospital_for_request(request)
    if request.method == 'GET':
        q = DirectoryQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        return Response({'ok': True, 'data': doctor_service.list_doctors(hospital, q.validated_data['status'])})

    if not IsAdminRole().has_permission(request, None):
        return _forbidden()
    s = DoctorWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = doctor_service.create_doctor(hospital, s.validated_data)
    log_action(user=request.user, action='doctor_create', object_type='doctor', object_id=doctor.id,
               hospital_id=hospital.id)
    notify_hospital(hospital.id, 'doctors', doctorId=doctor.id)
    return Response({'ok': True, 'data': doctor_service.format_doctor(doctor)}, status=201)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def doctor_detail(request, pk: int):
    hospital = hospital_for_request(request)
    doctor = doctor_service.get_doctor(hospital, pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': doctor_service.format_doctor(doctor)})

    if not IsAdminRole().has_permission(request, None):
        return _forbidden()
    s = DoctorWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    doctor = doctor_service.update_doctor(doctor, s.validated_data)
    log_action(user=request.user, action='doctor_update', object_type='doctor', object_id=doctor.id,
               hospital_id=hospital.id, detail={'fields': sorted(s.validated_data)})
    notify_hospital(hospital.id, 'doctors', doctorId=doctor.id)
    return Response({'ok': True, 'data': doctor_service.format_doctor(doctor)})
