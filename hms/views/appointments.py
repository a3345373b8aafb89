"""
Appointment management views.

Listing, booking and rescheduling for the front desk, status tabs and
headline metrics, the manual "not attended" action and admin-only deletion.
A doctor holds at most one live appointment per date and time; a clash is a 409.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.permissions import IsAdminRole, IsFrontDesk
from hms.serializers.appointment import (
    AppointmentCreateSerializer, AppointmentListQuerySerializer, RescheduleSerializer, SlotQuerySerializer,
)
from hms.services import appointments as appointment_service
from hms.services.audit import log_action
from hms.services.hospitals import hospital_for_request
from hms.services.realtime import notify_hospital


def _branch_id(request):
    raw = request.query_params.get('branchId')
    return int(raw) if raw and raw.isdigit() else None


def _book(request, hospital):
    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    apt = appointment_service.book_appointment(hospital, s.validated_data, request.user)
    log_action(user=request.user, action='appointment_booked', object_type='appointment', object_id=apt.id,
               hospital_id=hospital.id, detail={
                   'doctorId': apt.doctor_id, 'date': apt.appointment_date.isoformat(), 'time': apt.appointment_time,
               })
    notify_hospital(hospital.id, 'appointments', appointmentId=apt.id)
    return Response({'ok': True, 'data': appointment_service.format_appointment(apt)}, status=201)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def appointments(request):
    hospital = hospital_for_request(request)
    if request.method == 'POST':
        return _book(request, hospital)
    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    data, total = appointment_service.list_appointments(
        hospital,
        search=vd.get('q'),
        doctor_id=vd.get('doctorId'),
        branch_id=vd.get('branchId'),
        time_range=vd['timeRange'],
        status=vd['status'],
        sort=vd['sort'],
        order=vd['order'],
        page=vd['page'],
        page_size=vd['pageSize'],
    )
    return Response({
        'ok': True,
        'data': data,
        'counts': appointment_service.status_counts(hospital, vd.get('branchId')),
        'pagination': {'total': total, 'page': vd['page'], 'pageSize': vd['pageSize']},
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def appointment_metrics(request):
    hospital = hospital_for_request(request)
    return Response({'ok': True, 'data': appointment_service.appointment_metrics(hospital, _branch_id(request))})


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def appointment_detail(request, pk: int):
    hospital = hospital_for_request(request)
    apt = appointment_service.get_appointment(hospital, pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': appointment_service.format_appointment(apt)})

    if not IsAdminRole().has_permission(request, None):
        return Response({'ok': False, 'error': {'code': 'forbidden', 'message': 'Admin only'}}, status=403)
    appointment_service.delete_appointment(apt)
    log_action(user=request.user, action='appointment_delete', object_type='appointment', object_id=pk,
               hospital_id=hospital.id)
    notify_hospital(hospital.id, 'appointments', appointmentId=pk)
    return Response({'ok': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def mark_not_attended(request, pk: int):
    hospital = hospital_for_request(request)
    apt = appointment_service.get_appointment(hospital, pk)
    message = appointment_service.mark_not_attended(apt, request.user)
    log_action(user=request.user, action='appointment_not_attended', object_type='appointment', object_id=apt.id,
               hospital_id=hospital.id, detail={'whatsapp': message.status if message else 'skipped'})
    notify_hospital(hospital.id, 'appointments', appointmentId=apt.id)
    return Response({
        'ok': True,
        'message': 'Appointment marked as not attended',
        'appointmentId': apt.id,
        'status': apt.status,
        'whatsapp': {'status': message.status, 'messageId': message.message_id or None} if message else None,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def check_slot(request):
    hospital = hospital_for_request(request)
    q = SlotQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    time = appointment_service.normalize_time(vd['time'])
    available = appointment_service.slot_available(hospital, vd['doctorId'], vd['date'], time,
                                                   exclude_id=vd.get('excludeId'))
    return Response({'ok': True, 'data': {
        'doctorId': vd['doctorId'], 'date': vd['date'].isoformat(), 'time': time, 'available': available,
    }})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def reschedule(request, pk: int):
    hospital = hospital_for_request(request)
    apt = appointment_service.get_appointment(hospital, pk)
    previous = {'date': apt.appointment_date.isoformat(), 'time': apt.appointment_time, 'doctorId': apt.doctor_id}
    s = RescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    apt = appointment_service.reschedule_appointment(apt, s.validated_data)
    log_action(user=request.user, action='appointment_rescheduled', object_type='appointment', object_id=apt.id,
               hospital_id=hospital.id, detail={'from': previous, 'to': {
                   'date': apt.appointment_date.isoformat(), 'time': apt.appointment_time, 'doctorId': apt.doctor_id,
               }})
    notify_hospital(hospital.id, 'appointments', appointmentId=apt.id)
    return Response({'ok': True, 'data': appointment_service.format_appointment(apt)})
