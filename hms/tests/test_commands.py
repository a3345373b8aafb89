import json
from io import StringIO

import pytest
from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError

from hms.models import Campaign, CronLog, Hospital, Patient, User
from hms.services import analytics, awareness

pytestmark = pytest.mark.django_db


def test_ensure_test_users_is_idempotent():
    call_command('ensure_test_users', stdout=StringIO())
    admin = User.objects.get(username='admin1')
    admin.set_password('changed')
    admin.role = 'doctor'
    admin.save()

    call_command('ensure_test_users', stdout=StringIO())
    admin.refresh_from_db()
    assert admin.role == 'admin'
    assert admin.check_password('123456')
    assert admin.active_hospital.code == 'DEMO'
    assert Hospital.objects.filter(code='DEMO').count() == 1
    assert User.objects.filter(username__in=['super', 'admin1', 'reception1', 'doctor1']).count() == 4


def test_populate_data():
    call_command('populate_data', patients=5, stdout=StringIO())
    assert Hospital.objects.count() == 2
    assert Patient.objects.count() == 10
    assert Campaign.objects.count() == 2

    # a second run tops up nothing
    call_command('populate_data', patients=5, stdout=StringIO())
    assert Patient.objects.count() == 10
    assert all(len(p) == 6 for p in Patient.objects.values_list('patient_id', flat=True))


def test_send_reminders_command(hospital):
    out = StringIO()
    call_command('send_reminders', '--manual', stdout=out)
    summary = json.loads(out.getvalue().splitlines()[0])
    assert summary['hospitalsProcessed'] == 1
    assert CronLog.objects.get().triggered_by == 'manual'


def test_generate_campaigns_command_wraps_errors(hospital, monkeypatch):
    monkeypatch.setattr(awareness, 'days_for', lambda d: awareness.awareness_days()[:1])

    def broken(day, hospital_name=None):
        raise awareness.GenerationError('quota exceeded')

    monkeypatch.setattr(awareness, 'generate_advertisement', broken)
    with pytest.raises(CommandError, match='quota exceeded'):
        call_command('generate_campaigns', stdout=StringIO())


def test_refresh_caches(hospital, patient):
    call_command('refresh_caches', '--range', '30days', stdout=StringIO())
    cached = cache.get(analytics.cache_key(hospital.id, None, '30days'))
    assert cached['ok'] is True
    assert cached['data']['totalPatients'] == 1


def test_healthz(client):
    r = client.get('/healthz')
    assert r.status_code == 200
    body = r.json()
    assert body['ok'] is True
    assert body['db'] is True and body['cache'] is True
