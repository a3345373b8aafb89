"""
Patient management views.

Front desk staff (admins and receptionists) list, create and edit the
patients of their active hospital.  Every write pushes a ``patients``
refresh to the hospital's dashboards.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.permissions import IsFrontDesk
from hms.serializers.patient import PatientListQuerySerializer, PatientWriteSerializer
from hms.services import patients as patient_service
from hms.services.audit import log_action
from hms.services.hospitals import hospital_for_request
from hms.services.realtime import notify_hospital


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def patients(request):
    hospital = hospital_for_request(request)
    if request.method == 'GET':
        q = PatientListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        data, total = patient_service.list_patients(
            hospital,
            search=vd.get('q'),
            status=vd['status'],
            branch_id=vd.get('branchId'),
            sort=vd['sort'],
            order=vd['order'],
            page=vd['page'],
            page_size=vd['pageSize'],
        )
        return Response({'ok': True, 'data': data, 'pagination': {'total': total, 'page': vd['page'], 'pageSize': vd['pageSize']}})

    s = PatientWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = patient_service.create_patient(hospital, s.validated_data)
    log_action(user=request.user, action='patient_create', object_type='patient', object_id=patient.id,
               hospital_id=hospital.id)
    notify_hospital(hospital.id, 'patients', patientId=patient.id)
    return Response({'ok': True, 'data': patient_service.format_patient(patient)}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def patient_metrics(request):
    hospital = hospital_for_request(request)
    return Response({'ok': True, 'data': patient_service.patient_metrics(hospital)})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def patient_detail(request, pk: int):
    hospital = hospital_for_request(request)
    patient = patient_service.get_patient(hospital, pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': patient_service.format_patient(patient)})
    if request.method == 'DELETE':
        patient_service.delete_patient(patient)
        log_action(user=request.user, action='patient_delete', object_type='patient', object_id=pk,
                   hospital_id=hospital.id)
        notify_hospital(hospital.id, 'patients', patientId=pk)
        return Response({'ok': True})

    s = PatientWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    patient = patient_service.update_patient(patient, s.validated_data)
    log_action(user=request.user, action='patient_update', object_type='patient', object_id=patient.id,
               hospital_id=hospital.id, detail={'fields': sorted(s.validated_data)})
    notify_hospital(hospital.id, 'patients', patientId=patient.id)
    return Response({'ok': True, 'data': patient_service.format_patient(patient)})
