"""
Appointment reminder endpoints.

``send`` is what the external scheduler calls every morning with the
``X-Cron-Secret`` header; admins may also trigger it by hand.  ``status``
backs the cron health card on the admin dashboard.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.permissions import IsAdminRole, IsCronOrAdmin, is_cron_request
from hms.serializers.appointment import TestReminderSerializer
from hms.services import appointments as appointment_service
from hms.services import reminders as reminder_service
from hms.services.audit import log_action
from hms.services.hospitals import hospital_for_request


@api_view(['GET', 'POST'])
@permission_classes([IsCronOrAdmin])
def send_reminders(request):
    cron = is_cron_request(request)
    result = reminder_service.send_appointment_reminders(triggered_by='cron' if cron else 'manual')
    if not cron:
        log_action(user=request.user, action='reminders_send', object_type='cron',
                   detail=result['summary'])
    return Response({'ok': True, 'triggeredBy': 'cron' if cron else 'manual', **result})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def reminder_status(request):
    hospital = None
    if request.user.role != 'super_admin' or request.query_params.get('hospitalId'):
        hospital = hospital_for_request(request)
    return Response({'ok': True, 'data': reminder_service.reminder_status(hospital)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def test_reminder(request):
    s = TestReminderSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    hospital = hospital_for_request(request)
    apt = appointment_service.get_appointment(hospital, s.validated_data['appointmentId'])
    reminder = reminder_service.send_test_reminder(apt)
    log_action(user=request.user, action='reminder_test', object_type='appointment', object_id=apt.id,
               hospital_id=hospital.id, detail={'status': reminder.status})
    return Response({'ok': reminder.status == 'sent', 'data': reminder_service.format_reminder(reminder)})
