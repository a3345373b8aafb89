"""
Daily 24 hour appointment reminders.

The scheduler fires once a day (06:00 UTC).  Every confirmed appointment
whose "24 hours before" moment falls within 90 minutes of the run gets one
WhatsApp reminder; an existing ``24_hour`` reminder row, sent or failed,
suppresses any further attempt.
"""
import logging
import time
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Optional
from django.utils import timezone

from hms.models import Appointment, AppointmentReminder, CronLog, Hospital
from hms.services import whatsapp
from hms.services.notifications import reminder_message

logger = logging.getLogger(__name__)

JOB = 'appointment_reminders'
REMINDER_TYPE = '24_hour'
WINDOW = timedelta(minutes=90)
LEAD_TIME = timedelta(hours=24)

CRON_SCHEDULE = '0 6 * * *'
CRON_HOUR_UTC = 6
CRON_DISPLAY = '11:30 AM IST (6:00 AM UTC)'


def appointment_datetime(apt: Appointment) -> Optional[datetime]:
    if not apt.appointment_date or not apt.appointment_time:
        return None
    try:
        t = datetime.strptime(apt.appointment_time[:5], '%H:%M').time()
    except ValueError:
        return None
    return timezone.make_aware(datetime.combine(apt.appointment_date, t))


def in_reminder_window(apt: Appointment, now: datetime) -> bool:
    when = appointment_datetime(apt)
    if when is None or when <= now:
        return False
    return abs((when - LEAD_TIME) - now) <= WINDOW


def _already_reminded(apt: Appointment) -> bool:
    return AppointmentReminder.objects.filter(appointment=apt, reminder_type=REMINDER_TYPE).exists()


def _candidates(hospitals):
    return (
        Appointment.objects.filter(hospital__in=hospitals, status='confirmed')
        .select_related('patient', 'doctor')
        .order_by('appointment_date', 'appointment_time')
    )


def send_reminder(apt: Appointment, reminder_type: str=REMINDER_TYPE) -> AppointmentReminder:
    phone = apt.patient.phone.strip()
    body = reminder_message(apt)
    result = whatsapp.send_text(phone, body)
    if not result.success:
        logger.warning('Reminder for appointment %s failed: %s', apt.id, result.error)
    return AppointmentReminder.objects.create(
        hospital_id=apt.hospital_id,
        appointment=apt,
        reminder_type=reminder_type,
        patient_phone=phone,
        message=body,
        status='sent' if result.success else 'failed',
        message_id=result.message_id or '',
        error=result.error or '',
    )


def send_appointment_reminders(now: Optional[datetime]=None, triggered_by: str='cron') -> dict:
    """Run one reminder pass over every active hospital and log it."""
    started = time.monotonic()
    now = now or timezone.now()
    hospitals = list(Hospital.objects.filter(status='active').order_by('id'))
    sent = skipped = errors = 0
    results = []

    for hospital in hospitals:
        h_sent = h_errors = 0
        for apt in _candidates([hospital]):
            if not in_reminder_window(apt, now):
                continue
            if _already_reminded(apt):
                skipped += 1
                continue
            if not (apt.patient.phone or '').strip():
                skipped += 1
                continue
            reminder = send_reminder(apt)
            if reminder.status == 'sent':
                h_sent += 1
            else:
                h_errors += 1
        results.append({
            'hospitalId': hospital.id,
            'hospitalName': hospital.name,
            'remindersSent': h_sent,
            'errors': h_errors,
        })
        sent += h_sent
        errors += h_errors

    summary = {
        'totalRemindersSent': sent,
        'totalRemindersSkipped': skipped,
        'totalErrors': errors,
        'hospitalsProcessed': len(hospitals),
    }
    elapsed = int((time.monotonic() - started) * 1000)
    CronLog.objects.create(
        job=JOB,
        executed_at=now,
        success=True,
        triggered_by=triggered_by,
        message='Appointment reminder check completed',
        summary={**summary, 'results': results},
        execution_time_ms=elapsed,
    )
    logger.info('Reminder run (%s): sent=%s skipped=%s errors=%s in %sms', triggered_by, sent, skipped, errors, elapsed)
    return {
        'message': 'Appointment reminder check completed',
        'summary': summary,
        'results': results,
        'timestamp': now.isoformat(),
    }


def next_execution(now: Optional[datetime]=None) -> datetime:
    now = (now or timezone.now()).astimezone(dt_timezone.utc)
    nxt = now.replace(hour=CRON_HOUR_UTC, minute=0, second=0, microsecond=0)
    if nxt <= now:
        nxt += timedelta(days=1)
    return nxt


def format_cron_log(log: CronLog) -> dict:
    return {
        'id': log.id,
        'executedAt': log.executed_at.isoformat(),
        'success': log.success,
        'triggeredBy': log.triggered_by,
        'message': log.message,
        'summary': log.summary,
        'executionTimeMs': log.execution_time_ms,
    }


def format_reminder(r: AppointmentReminder) -> dict:
    apt = r.appointment
    return {
        'id': r.id,
        'appointmentId': apt.id,
        'hospitalId': r.hospital_id,
        'patientName': apt.patient.full_name,
        'doctorName': apt.doctor.full_name if apt.doctor else '',
        'appointmentDate': apt.appointment_date.isoformat(),
        'appointmentTime': apt.appointment_time,
        'status': r.status,
        'error': r.error or None,
        'sentAt': r.sent_at.isoformat(),
    }


def reminder_status(hospital=None, now: Optional[datetime]=None) -> dict:
    """Cron health for the dashboard; ``hospital=None`` covers all active hospitals."""
    now = now or timezone.now()
    hospitals = [hospital] if hospital else list(Hospital.objects.filter(status='active'))

    logs = list(CronLog.objects.filter(job=JOB).order_by('-executed_at', '-id')[:10])
    last = logs[0] if logs else None

    upcoming = in_window = already_sent = without_phone = 0
    for apt in _candidates(hospitals):
        when = appointment_datetime(apt)
        if when is None or when <= now:
            continue
        upcoming += 1
        if in_reminder_window(apt, now):
            in_window += 1
            if _already_reminded(apt):
                already_sent += 1
            if not (apt.patient.phone or '').strip():
                without_phone += 1

    week = AppointmentReminder.objects.filter(hospital__in=hospitals, sent_at__gte=now - timedelta(days=7))
    recent = (
        week.select_related('appointment__patient', 'appointment__doctor')
        .order_by('-sent_at')[:20]
    )
    recent = [format_reminder(r) for r in recent]

    nxt = next_execution(now)
    if last is None:
        health = 'unknown'
    else:
        health = 'healthy' if last.success else 'error'
    return {
        'cron': {
            'configured': True,
            'schedule': CRON_SCHEDULE,
            'scheduleDisplay': CRON_DISPLAY,
            'nextExecution': nxt.isoformat(),
            'nextExecutionLocal': timezone.localtime(nxt).strftime('%A, %d %B %Y, %I:%M %p %Z'),
        },
        'lastExecution': format_cron_log(last) if last else None,
        'executionHistory': [format_cron_log(log) for log in logs],
        'recentReminders': recent,
        'statistics': {
            'upcomingAppointments': upcoming,
            'appointmentsInWindow': in_window,
            'remindersAlreadySent': already_sent,
            'appointmentsWithoutPhone': without_phone,
            'sentLast7Days': week.filter(status='sent').count(),
            'failedLast7Days': week.filter(status='failed').count(),
        },
        'status': health,
    }


def send_test_reminder(apt: Appointment) -> AppointmentReminder:
    """Send the reminder for ``apt`` right away, outside the daily window."""
    if not (apt.patient.phone or '').strip():
        raise ValueError('Patient has no phone number')
    return send_reminder(apt, reminder_type='test')
