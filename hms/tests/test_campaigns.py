from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from hms.models import Campaign
from hms.services import campaigns as campaign_service

from .utils import make_user


def test_slugify():
    assert campaign_service.slugify('Hello World!  Now') == 'hello-world-now'
    assert campaign_service.slugify('') == ''


def test_plain_text_and_truncation():
    assert campaign_service.get_plain_text('<p>Hi&nbsp;<b>there</b></p>\n<p>you</p>') == 'Hi there you'
    assert campaign_service.truncate_text('aaaa bbbb cccc dddd eeee', 20) == 'aaaa bbbb cccc dddd...'
    assert campaign_service.truncate_text('short', 20) == 'short'


def test_content_preview_uses_first_paragraph():
    html = '<p>First para.</p><p>Second para.</p>'
    assert campaign_service.get_content_preview(html) == '<p>First para.</p>'
    long_para = '<p>' + 'word ' * 60 + '</p>'
    preview = campaign_service.get_content_preview(long_para, 50)
    assert preview.startswith('<p>') and preview.endswith('...</p>')
    assert campaign_service.should_truncate(long_para, 50)
    assert not campaign_service.should_truncate(html)


def test_sanitize_content_strips_scripts():
    cleaned = campaign_service.sanitize_content('<p onclick="x()">Hi<script>alert(1)</script></p>')
    assert '<script' not in cleaned
    assert 'onclick' not in cleaned
    assert cleaned.startswith('<p>')


@pytest.mark.django_db
def test_admin_creates_campaign(admin_user, hospital, client_for):
    payload = {'title': 'ENT Screening Week', 'content': '<p>Free check-up<script>x</script></p>',
               'audience': 'patients', 'priority': 3}
    r = client_for(admin_user).post(reverse('campaigns'), payload, format='json')
    assert r.status_code == 201
    data = r.data['data']
    assert data['slug'] == 'ent-screening-week'
    assert data['status'] == 'draft'
    assert '<script' not in data['content']
    assert Campaign.objects.get(id=data['id']).hospital_id == hospital.id


@pytest.mark.django_db
def test_end_before_start_rejected(admin_user, client_for):
    now = timezone.now()
    payload = {'title': 'Bad window', 'startAt': now.isoformat(), 'endAt': (now - timedelta(days=1)).isoformat()}
    r = client_for(admin_user).post(reverse('campaigns'), payload, format='json')
    assert r.status_code == 400


@pytest.mark.django_db
def test_receptionist_can_list_but_not_create(receptionist, hospital, client_for):
    Campaign.objects.create(hospital=hospital, title='A', slug='a')
    client = client_for(receptionist)
    r = client.get(reverse('campaigns'))
    assert r.status_code == 200
    assert r.data['counts'] == {'total': 1, 'published': 0, 'drafts': 1}
    assert client.post(reverse('campaigns'), {'title': 'B'}, format='json').status_code == 403


@pytest.mark.django_db
def test_campaigns_are_hospital_scoped(admin_user, other_hospital, client_for):
    foreign = Campaign.objects.create(hospital=other_hospital, title='Other', slug='other')
    r = client_for(admin_user).get(reverse('campaign_detail', args=[foreign.id]))
    assert r.status_code == 404
    assert r.data['error']['code'] == 'not_found'


@pytest.mark.django_db
def test_toggle_publish(admin_user, hospital, client_for):
    c = Campaign.objects.create(hospital=hospital, title='A', slug='a')
    client = client_for(admin_user)
    r = client.post(reverse('campaign_publish', args=[c.id]))
    assert r.data['data']['status'] == 'published'
    r = client.post(reverse('campaign_publish', args=[c.id]))
    assert r.data['data']['status'] == 'draft'


@pytest.mark.django_db
def test_published_filters_audience_and_window(hospital, client_for):
    now = timezone.now()
    everyone = Campaign.objects.create(hospital=hospital, title='Everyone', status='published', audience='all', priority=1)
    for_patients = Campaign.objects.create(hospital=hospital, title='Patients', status='published', audience='patients',
                                           priority=5)
    Campaign.objects.create(hospital=hospital, title='Doctors', status='published', audience='doctors')
    Campaign.objects.create(hospital=hospital, title='Expired', status='published', audience='patients',
                            end_at=now - timedelta(hours=1))
    Campaign.objects.create(hospital=hospital, title='Future', status='published', audience='all',
                            start_at=now + timedelta(days=1))
    Campaign.objects.create(hospital=hospital, title='Draft', status='draft', audience='patients')

    patient_user = make_user('pat@example.com', 'patient', hospital)
    r = client_for(patient_user).get(reverse('published_campaigns'))
    assert r.status_code == 200
    assert [c['id'] for c in r.data['data']] == [for_patients.id, everyone.id]


@pytest.mark.django_db
def test_published_cache_invalidated_on_write(admin_user, hospital, client_for):
    c = Campaign.objects.create(hospital=hospital, title='A', slug='a')
    client = client_for(admin_user)
    assert client.get(reverse('published_campaigns')).data['data'] == []
    client.post(reverse('campaign_publish', args=[c.id]))
    assert [x['id'] for x in client.get(reverse('published_campaigns')).data['data']] == [c.id]
