"""Django admin registrations for inspecting tenants, records and job logs."""

from django.contrib import admin

from .models import (
    Appointment,
    AppointmentReminder,
    AuditEvent,
    Branch,
    Campaign,
    CronLog,
    Doctor,
    Hospital,
    NotAttendedMessage,
    Patient,
    User,
)


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'code', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('name', 'code', 'email')


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'role', 'active_hospital', 'is_active')
    list_filter = ('role', 'is_active')
    search_fields = ('username', 'email', 'first_name', 'last_name')


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'hospital', 'status')
    list_filter = ('hospital', 'status')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('id', 'first_name', 'last_name', 'specialization', 'hospital', 'status')
    list_filter = ('hospital', 'status')
    search_fields = ('first_name', 'last_name', 'email', 'specialization')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient_id', 'first_name', 'last_name', 'phone', 'hospital', 'status')
    list_filter = ('hospital', 'status', 'gender')
    search_fields = ('patient_id', 'first_name', 'last_name', 'email', 'phone')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'appointment_date', 'appointment_time', 'status', 'hospital')
    list_filter = ('hospital', 'status')
    search_fields = ('patient__first_name', 'patient__last_name', 'doctor__last_name', 'chief_complaint')
    date_hierarchy = 'appointment_date'


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'audience', 'status', 'priority', 'start_at', 'end_at', 'hospital')
    list_filter = ('hospital', 'status', 'audience')
    search_fields = ('title', 'slug')


@admin.register(AppointmentReminder)
class AppointmentReminderAdmin(admin.ModelAdmin):
    list_display = ('id', 'appointment', 'reminder_type', 'status', 'sent_at')
    list_filter = ('status', 'reminder_type')


@admin.register(NotAttendedMessage)
class NotAttendedMessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'appointment', 'status', 'sent_at')
    list_filter = ('status',)


@admin.register(CronLog)
class CronLogAdmin(admin.ModelAdmin):
    list_display = ('id', 'job', 'executed_at', 'success', 'triggered_by', 'execution_time_ms')
    list_filter = ('job', 'success', 'triggered_by')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'user', 'hospital', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('user__username', 'action')
