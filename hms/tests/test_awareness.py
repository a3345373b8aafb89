import json
from datetime import date, datetime, timezone as dt_timezone

import pytest
import requests
from django.urls import reverse
from rest_framework.test import APIClient

from hms.models import Campaign, CronLog, Patient
from hms.services import awareness, whatsapp

# 08:30 on World Cancer Day in Asia/Kolkata
CANCER_DAY = datetime(2026, 2, 4, 3, 0, tzinfo=dt_timezone.utc)
AD = {
    'title': 'Get Screened This World Cancer Day',
    'content': '<p>Early detection <strong>saves lives</strong>.</p><script>alert(1)</script>',
    'ctaText': 'Book Screening',
    'ctaHref': '/patient-dashboard/book-appointment',
    'shortMessage': 'Free cancer screening camp today.',
}


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = 'error'
        self._payload = payload
        self.text = json.dumps(payload) if payload is not None else ''

    def json(self):
        if self._payload is None:
            raise ValueError('no json')
        return self._payload


def _completion(content):
    return FakeResponse(200, {'choices': [{'message': {'content': content}}]})


@pytest.fixture
def groq(settings):
    settings.GROQ_API_KEY = 'gsk_test'
    settings.GROQ_MODEL = ''
    return settings


@pytest.fixture
def fake_ad(monkeypatch):
    calls = []

    def generate(day, hospital_name=None):
        calls.append(day['name'])
        return dict(AD)

    monkeypatch.setattr(awareness, 'generate_advertisement', generate)
    return calls


@pytest.fixture
def sent(monkeypatch):
    phones = []

    def fake_send(to, body):
        phones.append(to)
        return whatsapp.SendResult(True, message_id='wamid.1')

    monkeypatch.setattr(whatsapp, 'send_text', fake_send)
    return phones


def test_parse_advertisement_variants():
    assert awareness.parse_advertisement(json.dumps(AD))['title'] == AD['title']

    fenced = 'Here you go:\n```json\n' + json.dumps({'title': 'T', 'content': '<p>C</p>'}) + '\n```'
    ad = awareness.parse_advertisement(fenced)
    assert ad['ctaText'] == 'Book Appointment'
    assert ad['ctaHref'] == '/patient-dashboard/book-appointment'
    assert ad['shortMessage'] == 'T'

    with pytest.raises(awareness.GenerationError):
        awareness.parse_advertisement(json.dumps({'title': 'only a title'}))
    with pytest.raises(awareness.GenerationError):
        awareness.parse_advertisement('not json at all')


def test_days_catalogue():
    names = [d['name'] for d in awareness.days_for(date(2026, 2, 4))]
    assert names == ['World Cancer Day']
    assert awareness.days_for(date(2026, 1, 1)) == []
    assert awareness.target_date('tomorrow', CANCER_DAY) == date(2026, 2, 5)
    # 20:00 UTC is already the next day in India
    assert awareness.ist_today(datetime(2026, 2, 3, 20, 0, tzinfo=dt_timezone.utc)) == date(2026, 2, 4)


def test_generate_advertisement_falls_back_to_next_model(groq, monkeypatch):
    models = []

    def fake_post(url, json=None, headers=None, timeout=None):
        models.append(json['model'])
        if len(models) == 1:
            return FakeResponse(503, {'error': {'message': 'over capacity'}})
        return _completion('```json\n{"title": "Cancer Day", "content": "<p>Get checked</p>"}\n```')

    monkeypatch.setattr(awareness.requests, 'post', fake_post)
    ad = awareness.generate_advertisement(awareness.days_for(date(2026, 2, 4))[0])
    assert ad['title'] == 'Cancer Day'
    assert models == ['llama-3.1-8b-instant', 'llama-3.3-70b-versatile']


def test_generate_advertisement_prefers_configured_model(groq, monkeypatch):
    groq.GROQ_MODEL = 'llama-3.3-70b-versatile'
    assert awareness.models_to_try() == ['llama-3.3-70b-versatile', 'llama-3.1-8b-instant']


def test_generate_advertisement_stops_on_bad_key(groq, monkeypatch):
    calls = []

    def fake_post(url, **kwargs):
        calls.append(url)
        return FakeResponse(401, {'error': {'message': 'Invalid API Key'}})

    monkeypatch.setattr(awareness.requests, 'post', fake_post)
    with pytest.raises(awareness.GenerationError, match='401'):
        awareness.generate_advertisement(awareness.days_for(date(2026, 2, 4))[0])
    assert len(calls) == 1


def test_generate_advertisement_all_models_fail(groq, monkeypatch):
    def fake_post(url, **kwargs):
        raise requests.ConnectionError('connection refused')

    monkeypatch.setattr(awareness.requests, 'post', fake_post)
    with pytest.raises(awareness.GenerationError, match='All models failed'):
        awareness.generate_advertisement(awareness.days_for(date(2026, 2, 4))[0])


def test_generate_advertisement_requires_key(settings):
    settings.GROQ_API_KEY = ''
    with pytest.raises(awareness.GenerationError, match='GROQ_API_KEY'):
        awareness.generate_advertisement(awareness.days_for(date(2026, 2, 4))[0])


def test_booking_url(settings):
    settings.PUBLIC_BASE_URL = 'https://clinic.example.com'
    assert awareness.booking_url('/patient-dashboard/book-appointment') == \
        'https://clinic.example.com/patient-dashboard/book-appointment'
    assert awareness.booking_url('book//now') == 'https://clinic.example.com/book/now'
    assert awareness.booking_url('https://other.example.com/x') == 'https://other.example.com/x'
    assert awareness.booking_url('') == 'https://clinic.example.com/patient-dashboard/book-appointment'


@pytest.mark.django_db
def test_generate_campaigns_for_every_hospital(hospital, other_hospital, fake_ad):
    result = awareness.generate_campaigns(now=CANCER_DAY)

    assert result['campaignsGenerated'] == 2
    assert result['healthDaysChecked'] == ['World Cancer Day']
    assert fake_ad == ['World Cancer Day']
    assert {c['hospitalId'] for c in result['campaigns']} == {hospital.id, other_hospital.id}

    campaign = Campaign.objects.get(hospital=hospital)
    assert campaign.status == 'published'
    assert campaign.slug == 'world-cancer-day'
    assert '<script>' not in campaign.content
    assert campaign.priority == 5
    assert campaign.end_at is None
    assert awareness.ist_today(campaign.start_at) == date(2026, 2, 4)
    assert campaign.metadata['autoGenerated'] is True
    assert campaign.metadata['shortMessage'] == AD['shortMessage']

    # running again the same day creates nothing new
    again = awareness.generate_campaigns(now=CANCER_DAY)
    assert again['campaignsGenerated'] == 0
    assert Campaign.objects.count() == 2
    assert CronLog.objects.filter(job='auto_campaigns', success=True).count() == 2


@pytest.mark.django_db
def test_tomorrow_check_is_not_repeated_on_the_day(hospital, fake_ad):
    eve = datetime(2026, 2, 3, 6, 0, tzinfo=dt_timezone.utc)
    first = awareness.generate_campaigns(check='tomorrow', publish=False, now=eve)
    assert first['campaignsGenerated'] == 1
    assert Campaign.objects.get().status == 'draft'
    assert awareness.generate_campaigns(check='today', now=CANCER_DAY)['campaignsGenerated'] == 0


@pytest.mark.django_db
def test_no_awareness_day(hospital, fake_ad):
    result = awareness.generate_campaigns(now=datetime(2026, 1, 1, 6, 0, tzinfo=dt_timezone.utc))
    assert result['campaignsGenerated'] == 0
    assert result['message'] == 'No health awareness days found for today'
    assert fake_ad == []
    assert CronLog.objects.get(job='auto_campaigns').success


@pytest.mark.django_db
def test_failed_generation_is_logged(hospital, monkeypatch):
    def broken(day, hospital_name=None):
        raise awareness.GenerationError('quota exceeded')

    monkeypatch.setattr(awareness, 'generate_advertisement', broken)
    with pytest.raises(awareness.GenerationError, match='World Cancer Day: quota exceeded'):
        awareness.generate_campaigns(now=CANCER_DAY)
    log = CronLog.objects.get(job='auto_campaigns')
    assert not log.success
    assert Campaign.objects.count() == 0


@pytest.mark.django_db
def test_broadcast_reaches_active_patients_with_phones(hospital, patient, fake_ad, sent, settings):
    settings.PUBLIC_BASE_URL = 'https://clinic.example.com'
    Patient.objects.create(hospital=hospital, first_name='Gone', phone='9111111111', status='inactive')
    Patient.objects.create(hospital=hospital, first_name='Silent')

    result = awareness.generate_campaigns(now=CANCER_DAY, send_whatsapp=True)
    campaign = Campaign.objects.get()
    assert result['whatsapp'] == [{'campaignId': campaign.id, 'sent': 1, 'failed': 0}]
    assert sent == ['9876543210']

    body = awareness.broadcast_message(campaign.title, 'Short', campaign.cta_href)
    assert body.startswith('🏥 *Get Screened This World Cancer Day*')
    assert body.endswith('Book Appointment: https://clinic.example.com/patient-dashboard/book-appointment')


@pytest.mark.django_db
def test_generate_endpoint_for_cron(settings, hospital, patient, fake_ad, sent, monkeypatch):
    settings.CRON_SECRET = 'cron-s3cret'
    cancer_day = awareness.days_for(date(2026, 2, 4))
    monkeypatch.setattr(awareness, 'days_for', lambda d: cancer_day)

    r = APIClient().post(reverse('auto_campaigns_generate'), HTTP_X_CRON_SECRET='cron-s3cret')
    assert r.status_code == 200
    assert r.data['triggeredBy'] == 'cron'
    assert r.data['campaignsGenerated'] == 1
    # the scheduler broadcasts by default
    assert r.data['whatsapp'][0]['sent'] == 1
    assert CronLog.objects.get().triggered_by == 'cron'


@pytest.mark.django_db
def test_generate_endpoint_reports_failures(admin_user, client_for, hospital, monkeypatch):
    monkeypatch.setattr(awareness, 'days_for', lambda d: awareness.awareness_days()[:1])

    def broken(day, hospital_name=None):
        raise awareness.GenerationError('quota exceeded')

    monkeypatch.setattr(awareness, 'generate_advertisement', broken)
    r = client_for(admin_user).post(reverse('auto_campaigns_generate'), {'sendWhatsApp': False}, format='json')
    assert r.status_code == 502
    assert r.data['error']['code'] == 'generation_failed'


@pytest.mark.django_db
def test_days_and_check_endpoints(admin_user, receptionist, client_for, settings):
    settings.GROQ_API_KEY = ''
    r = client_for(receptionist).get(reverse('auto_campaigns_days'))
    assert r.status_code == 200
    assert len(r.data['data']) == len(awareness.awareness_days())

    assert client_for(receptionist).get(reverse('auto_campaigns_check')).status_code == 403
    check = client_for(admin_user).get(reverse('auto_campaigns_check')).data
    assert check['diagnostics']['database'] is True
    assert check['diagnostics']['groqApiKey'] is False
    assert check['diagnostics']['allOk'] is False
