"""WhatsApp message bodies sent to patients."""
from datetime import date
from django.conf import settings


def format_long_date(d: date) -> str:
    # "Monday, January 5, 2026"
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"


def format_time_12h(value: str) -> str:
    if not value:
        return value
    hours, _, minutes = value.partition(':')
    try:
        hour = int(hours)
    except ValueError:
        return value
    ampm = 'PM' if hour >= 12 else 'AM'
    return f"{hour % 12 or 12}:{minutes or '00'} {ampm}"


def _details(apt) -> str:
    doctor = apt.doctor.full_name if apt.doctor else 'Doctor'
    return (
        "📋 *Appointment Details:*\n"
        f"• 👨‍⚕️ Doctor: {doctor}\n"
        f"• 📅 Date: {format_long_date(apt.appointment_date)}\n"
        f"• 🕒 Time: {format_time_12h(apt.appointment_time)}\n\n"
    )


def reminder_message(apt) -> str:
    return (
        "📅 *Appointment Reminder*\n\n"
        f"Hello {apt.patient.full_name or 'Patient'},\n\n"
        "This is a friendly reminder about your upcoming appointment:\n\n"
        + _details(apt)
        + "⏰ Your appointment is scheduled for tomorrow (24 hours from now).\n\n"
        "Please make sure to:\n"
        "✅ Arrive 10-15 minutes early\n"
        "✅ Bring any previous medical reports or prescriptions\n"
        "✅ Carry a valid ID proof\n\n"
        "If you need to reschedule or cancel, please reply to this message or call us as soon as possible.\n\n"
        "We look forward to seeing you!\n\n"
        f"Thank you for choosing {settings.HOSPITAL_NAME}! 🏥"
    )


def not_attended_message(apt) -> str:
    return (
        "⚠️ *Appointment Missed*\n\n"
        f"Hello {apt.patient.full_name or 'Patient'},\n\n"
        "We noticed that you missed your appointment today.\n\n"
        + _details(apt)
        + "This appointment has been cancelled by our receptionist due to non-attendance.\n\n"
        "🔄 *Would you like to reschedule?*\n\n"
        "Please reply to this message or call us to book a new appointment. "
        "We're here to help you reschedule at your convenience.\n\n"
        f"Thank you for choosing {settings.HOSPITAL_NAME}! 🏥"
    )
