"""
Database models for the hospital administration backend.

Every hospital is a tenant.  Branches, doctors, patients, appointments,
campaigns and the WhatsApp delivery records hang off a hospital through a
``hospital`` foreign key so that each admin only ever sees the data of the
hospital they are assigned to.  Field names follow the JSON returned to the
front end (camelCase there, snake_case here).
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class Hospital(models.Model):
    """A tenant of the system."""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('suspended', 'Suspended'),
    ]
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, unique=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='active', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"

    @property
    def is_active(self) -> bool:
        return self.status == 'active'


class User(AbstractUser):
    """Custom user model with a role and hospital assignment.

    ``hospitals`` lists every hospital the user may work in while
    ``active_hospital`` is the one their requests are scoped to.  Super
    admins are not bound to a hospital.
    """
    ROLE_CHOICES = [
        ('super_admin', 'Super Administrator'),
        ('admin', 'Administrator'),
        ('receptionist', 'Receptionist'),
        ('doctor', 'Doctor'),
        ('patient', 'Patient'),
    ]
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default='patient', db_index=True)
    hospitals = models.ManyToManyField(Hospital, blank=True, related_name='members')
    active_hospital = models.ForeignKey(
        Hospital, null=True, blank=True, on_delete=models.SET_NULL, related_name='active_users'
    )

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"

    @property
    def is_super_admin(self) -> bool:
        return self.role == 'super_admin'


class Branch(models.Model):
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='branches')
    name = models.CharField(max_length=255)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    status = models.CharField(max_length=16, default='active')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} @ {self.hospital_id}"


class Doctor(models.Model):
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='doctors')
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctor_profile'
    )
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    specialization = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=16, default='active')
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"Dr. {self.full_name}"


class Patient(models.Model):
    """A patient record inside a hospital.

    ``patient_id`` is the human readable identifier printed on cards and
    searched from the reception desk.
    """
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='patients')
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patient_profile'
    )
    patient_id = models.CharField(max_length=50, blank=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    gender = models.CharField(max_length=20, blank=True)
    blood_group = models.CharField(max_length=8, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    address = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='active', db_index=True)
    default_branch = models.ForeignKey(
        Branch, null=True, blank=True, on_delete=models.SET_NULL, related_name='patients'
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        indexes = [
            models.Index(fields=['hospital', 'status']),
            models.Index(fields=['hospital', 'patient_id']),
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.full_name} ({self.patient_id or self.pk})"


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('whatsapp_pending', 'WhatsApp pending'),
        ('rescheduled', 'Rescheduled'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('doctor_cancelled', 'Cancelled by doctor'),
        ('not_attended', 'Not attended'),
    ]
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='appointments')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(
        Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    branch = models.ForeignKey(
        Branch, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    appointment_date = models.DateField(db_index=True)
    # "HH:MM", 24 hour clock
    appointment_time = models.CharField(max_length=8, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    chief_complaint = models.TextField(blank=True)
    final_diagnosis = models.JSONField(default=list, blank=True)
    custom_diagnosis = models.CharField(max_length=255, blank=True)
    not_attended_at = models.DateTimeField(null=True, blank=True)
    marked_not_attended_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['hospital', 'status', 'appointment_date']),
        ]

    def __str__(self) -> str:
        return f"{self.patient_id} on {self.appointment_date} {self.appointment_time} ({self.status})"


class Campaign(models.Model):
    """A promotional or announcement banner shown to patients/doctors."""
    AUDIENCE_CHOICES = [
        ('all', 'Everyone'),
        ('patients', 'Patients'),
        ('doctors', 'Doctors'),
    ]
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('published', 'Published'),
    ]
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='campaigns')
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, blank=True)
    content = models.TextField(blank=True)
    image_url = models.URLField(max_length=500, blank=True)
    cta_text = models.CharField(max_length=100, blank=True)
    cta_href = models.CharField(max_length=500, blank=True)
    audience = models.CharField(max_length=16, choices=AUDIENCE_CHOICES, default='all')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='draft', db_index=True)
    priority = models.IntegerField(default=0)
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)
    # awareness-day generation details (healthDayDate, autoGenerated, shortMessage, ...)
    metadata = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    updated_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.title} [{self.status}]"


class AppointmentReminder(models.Model):
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='reminders')
    appointment = models.ForeignKey(Appointment, on_delete=models.CASCADE, related_name='reminders')
    reminder_type = models.CharField(max_length=20, default='24_hour')
    patient_phone = models.CharField(max_length=32, blank=True)
    message = models.TextField(blank=True)
    status = models.CharField(max_length=10, default='sent', db_index=True)
    message_id = models.CharField(max_length=128, blank=True)
    error = models.TextField(blank=True)
    sent_at = models.DateTimeField(default=timezone.now, db_index=True)

    def __str__(self) -> str:
        return f"{self.reminder_type} reminder for {self.appointment_id} ({self.status})"


class NotAttendedMessage(models.Model):
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='not_attended_messages')
    appointment = models.ForeignKey(Appointment, on_delete=models.CASCADE, related_name='not_attended_messages')
    patient_phone = models.CharField(max_length=32, blank=True)
    message = models.TextField(blank=True)
    status = models.CharField(max_length=10, default='sent')
    message_id = models.CharField(max_length=128, blank=True)
    error = models.TextField(blank=True)
    sent_at = models.DateTimeField(default=timezone.now)


class CronLog(models.Model):
    """One execution of a scheduled job."""
    JOB_CHOICES = [
        ('appointment_reminders', 'Appointment reminders'),
        ('auto_campaigns', 'Awareness-day campaigns'),
    ]
    job = models.CharField(max_length=32, choices=JOB_CHOICES, db_index=True)
    executed_at = models.DateTimeField(default=timezone.now, db_index=True)
    success = models.BooleanField(default=True)
    triggered_by = models.CharField(max_length=10, default='cron')
    message = models.TextField(blank=True)
    summary = models.JSONField(default=dict, blank=True)
    execution_time_ms = models.PositiveIntegerField(default=0)

    def __str__(self) -> str:
        return f"{self.job} @ {self.executed_at:%Y-%m-%d %H:%M} ({'ok' if self.success else 'error'})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    hospital = models.ForeignKey(Hospital, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]
