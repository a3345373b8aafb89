"""
URL mappings for the hospital administration API.

Trailing slashes are omitted throughout (``APPEND_SLASH = False``); the
dashboard front end calls these paths verbatim.
"""
from django.urls import path, include

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view, me_view, switch_hospital_view
from .views import (
    analytics, appointments, branches, campaigns, doctors, health, hospitals, knowledge, patients, reminders,
)


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/me', me_view, name='me_view'),
    path('api/auth/switch-hospital', switch_hospital_view, name='switch_hospital'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout'),

    # Hospitals and their admins (super admin)
    path('api/hospitals', hospitals.hospitals, name='hospitals'),
    path('api/hospitals/<int:pk>', hospitals.hospital_detail, name='hospital_detail'),
    path('api/admins', hospitals.admins, name='admins'),
    path('api/admins/assignable-hospitals', hospitals.assignable_hospitals, name='assignable_hospitals'),
    path('api/admins/<int:pk>', hospitals.admin_detail, name='admin_detail'),

    # Campaigns
    path('api/campaigns', campaigns.campaigns, name='campaigns'),
    path('api/campaigns/published', campaigns.published_campaigns, name='published_campaigns'),
    path('api/campaigns/<int:pk>', campaigns.campaign_detail, name='campaign_detail'),
    path('api/campaigns/<int:pk>/publish', campaigns.campaign_toggle_publish, name='campaign_publish'),
    path('api/auto-campaigns/generate', campaigns.generate_awareness_campaigns, name='auto_campaigns_generate'),
    path('api/auto-campaigns/check', campaigns.awareness_check, name='auto_campaigns_check'),
    path('api/auto-campaigns/days', campaigns.awareness_days, name='auto_campaigns_days'),

    # Patients
    path('api/patients', patients.patients, name='patients'),
    path('api/patients/metrics', patients.patient_metrics, name='patient_metrics'),
    path('api/patients/<int:pk>', patients.patient_detail, name='patient_detail'),

    # Appointments
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/appointments/metrics', appointments.appointment_metrics, name='appointment_metrics'),
    path('api/appointments/check-slot', appointments.check_slot, name='check_slot'),
    path('api/appointments/<int:pk>', appointments.appointment_detail, name='appointment_detail'),
    path('api/appointments/<int:pk>/not-attended', appointments.mark_not_attended, name='mark_not_attended'),
    path('api/appointments/<int:pk>/reschedule', appointments.reschedule, name='reschedule_appointment'),

    # Doctors and branches
    path('api/doctors', doctors.doctors, name='doctors'),
    path('api/doctors/<int:pk>', doctors.doctor_detail, name='doctor_detail'),
    path('api/branches', branches.branches, name='branches'),
    path('api/branches/<int:pk>', branches.branch_detail, name='branch_detail'),

    # Analytics
    path('api/analytics/patients', analytics.patient_analytics, name='patient_analytics'),

    # Reminders
    path('api/reminders/send', reminders.send_reminders, name='send_reminders'),
    path('api/reminders/status', reminders.reminder_status, name='reminder_status'),
    path('api/reminders/test', reminders.test_reminder, name='test_reminder'),

    # Anatomy / disease knowledge base
    path('api/knowledge/anatomy', knowledge.anatomy_types, name='anatomy_types'),
    path('api/knowledge/anatomy/<str:anatomy_type>', knowledge.anatomy_detail, name='anatomy_detail'),
    path('api/knowledge/anatomy/<str:anatomy_type>/parts/<str:part>', knowledge.anatomy_part, name='anatomy_part'),
    path('api/knowledge/anatomy/<str:anatomy_type>/diseases/<str:disease_id>', knowledge.disease_detail,
         name='disease_detail'),
    path('api/knowledge/diseases', knowledge.disease_search, name='disease_search'),
    path('api/knowledge/ent-diagnoses', knowledge.ent_diagnoses, name='ent_diagnoses'),
    path('api/knowledge/models', knowledge.anatomy_models, name='anatomy_models'),
]
