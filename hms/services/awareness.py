"""
Awareness-day campaigns.

A static catalogue of health awareness days drives a daily job that asks the
Groq chat-completions API for an advertisement and stores it as a campaign in
every active hospital.  On the day itself the campaign can also be pushed to
the hospital's active patients over WhatsApp.
"""
import json
import logging
import re
import time
from datetime import date, datetime, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

import requests
from django.conf import settings
from django.db import connection, DatabaseError
from django.utils import timezone

from hms.models import Campaign, CronLog, Hospital, Patient
from hms.services import whatsapp
from hms.services.campaigns import get_plain_text, sanitize_content, slugify

logger = logging.getLogger(__name__)

IST = ZoneInfo('Asia/Kolkata')
JOB = 'auto_campaigns'
DATA_FILE = Path(__file__).resolve().parent.parent / 'data' / 'awareness_days.json'

GROQ_API_URL = 'https://api.groq.com/openai/v1/chat/completions'
GROQ_MODELS = ['llama-3.1-8b-instant', 'llama-3.3-70b-versatile']

DEFAULT_CTA_TEXT = 'Book Appointment'
DEFAULT_CTA_HREF = '/patient-dashboard/book-appointment'

SYSTEM_PROMPT = """You are a marketing expert for a healthcare organization in India. Your task is to create compelling, informative, and engaging advertisements for health awareness days.

Guidelines:
1. Keep the tone professional yet friendly and approachable
2. Use simple, clear language that is easy to understand
3. Focus on prevention, early detection, and available services
4. Include a clear call-to-action
5. Make it relevant to Indian patients and healthcare context
6. Emphasize the importance of the health issue and encourage action
7. Keep content concise but informative
8. Use appropriate medical terminology but explain when needed

Format your response as JSON with the following structure:
{
  "title": "Campaign title (max 60 characters, keep it concise and engaging)",
  "content": "Main advertisement content in HTML format (2-3 short paragraphs max, first paragraph should be the most important, can include <p>, <strong>, <em> tags but avoid long lists)",
  "ctaText": "Call-to-action button text (e.g., 'Book Appointment', 'Learn More', 'Get Checked Today')",
  "ctaHref": "URL path for the CTA (e.g., '/patient-dashboard/book-appointment')",
  "shortMessage": "Short WhatsApp message version (max 200 characters, plain text, no HTML)"
}

Keep the content concise and engaging. The first paragraph should summarize the key message."""


class GenerationError(Exception):
    """The advertisement generator could not produce a usable result."""


@lru_cache(maxsize=1)
def awareness_days() -> list[dict]:
    with open(DATA_FILE, encoding='utf-8') as fh:
        return json.load(fh)


def ist_today(now: Optional[datetime]=None) -> date:
    return (now or timezone.now()).astimezone(IST).date()


def days_for(d: date) -> list[dict]:
    key = f'{d.month:02d}-{d.day:02d}'
    return [day for day in awareness_days() if day['date'] == key]


def target_date(check: str, now: Optional[datetime]=None) -> date:
    today = ist_today(now)
    return today + timedelta(days=1) if check == 'tomorrow' else today


def _user_prompt(day: dict, hospital_name: str) -> str:
    lines = [
        f"Create an advertisement for {day['name']} ({day['description']}).",
        '',
        'Context:',
        f'- Hospital Name: {hospital_name}',
        f"- Date: {day['date']}",
        f"- Keywords: {', '.join(day.get('keywords') or [])}",
        f"- Target Audience: {day.get('targetAudience', 'all')}",
    ]
    if day.get('specialization'):
        lines.append(f"- Related Specializations: {', '.join(day['specialization'])}")
    lines += [
        '',
        'The advertisement should:',
        f"1. Raise awareness about {day['name']}",
        '2. Explain why this health issue is important',
        '3. Encourage patients to take preventive action or get checked',
        f'4. Highlight available services at {hospital_name}',
        '5. Include a clear call-to-action to book an appointment or learn more',
    ]
    return '\n'.join(lines)


def parse_advertisement(content: str) -> dict:
    """Parse the model reply, accepting bare JSON or a fenced ```json block."""
    try:
        ad = json.loads(content)
    except ValueError:
        m = re.search(r'```(?:json)?\s*([\s\S]*?)\s*```', content)
        if not m:
            raise GenerationError('Failed to parse JSON response from Groq API')
        try:
            ad = json.loads(m.group(1))
        except ValueError as e:
            raise GenerationError(f'Failed to parse JSON response from Groq API: {e}')
    if not isinstance(ad, dict) or not ad.get('title') or not ad.get('content'):
        raise GenerationError('Invalid advertisement format: missing required fields')
    ad['ctaText'] = ad.get('ctaText') or DEFAULT_CTA_TEXT
    ad['ctaHref'] = ad.get('ctaHref') or DEFAULT_CTA_HREF
    ad['shortMessage'] = ad.get('shortMessage') or ad['title']
    return ad


def models_to_try() -> list[str]:
    preferred = settings.GROQ_MODEL
    if preferred:
        return [preferred] + [m for m in GROQ_MODELS if m != preferred]
    return list(GROQ_MODELS)


def generate_advertisement(day: dict, hospital_name: Optional[str]=None) -> dict:
    if not settings.GROQ_API_KEY:
        raise GenerationError('GROQ_API_KEY is not set')
    hospital_name = hospital_name or settings.HOSPITAL_NAME
    headers = {'Authorization': f'Bearer {settings.GROQ_API_KEY}'}
    last_error = None
    for model in models_to_try():
        payload = {
            'model': model,
            'temperature': 0.7,
            'max_tokens': 1000,
            'messages': [
                {'role': 'system', 'content': SYSTEM_PROMPT},
                {'role': 'user', 'content': _user_prompt(day, hospital_name)},
            ],
            'response_format': {'type': 'json_object'},
        }
        try:
            r = requests.post(GROQ_API_URL, json=payload, headers=headers, timeout=settings.GROQ_TIMEOUT)
        except requests.RequestException as e:
            last_error = f'{model}: {e}'
            continue
        if r.status_code == 401:
            raise GenerationError('Groq API error (401): invalid API key')
        if not r.ok:
            try:
                message = (r.json().get('error') or {}).get('message') or r.reason
            except ValueError:
                message = r.text or r.reason
            last_error = f'{model} ({r.status_code}): {message}'
            logger.warning('Groq model %s failed: %s', model, last_error)
            continue
        try:
            content = r.json()['choices'][0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError):
            last_error = f'{model}: no content received from Groq API'
            continue
        try:
            return parse_advertisement(content or '')
        except GenerationError as e:
            last_error = f'{model}: {e}'
    raise GenerationError(f'All models failed ({", ".join(models_to_try())}); last error: {last_error}')


def _existing_campaign(hospital, day: dict, target: date) -> Optional[Campaign]:
    qs = Campaign.objects.filter(
        hospital=hospital,
        metadata__autoGenerated=True,
        metadata__healthDayDate=day['date'],
    ).exclude(start_at__isnull=True)
    for campaign in qs:
        if campaign.start_at.astimezone(IST).date() == target:
            return campaign
    return None


def booking_url(cta_href: str) -> str:
    href = cta_href or DEFAULT_CTA_HREF
    if href.startswith('http'):
        return href
    path = re.sub(r'/{2,}', '/', href if href.startswith('/') else f'/{href}')
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}{path}"


def broadcast_message(title: str, short_message: str, cta_href: str) -> str:
    return (
        f'🏥 *{title}*\n\n'
        f'{short_message}\n\n'
        'To book an appointment or learn more, please use the options below:\n\n'
        f'Book Appointment: {booking_url(cta_href)}'
    )


def broadcast_campaign(campaign: Campaign) -> dict:
    """WhatsApp the campaign's short message to the hospital's active patients."""
    meta = campaign.metadata or {}
    short = meta.get('shortMessage') or get_plain_text(campaign.content)[:200] or campaign.title
    body = broadcast_message(campaign.title, short, campaign.cta_href)
    sent = failed = 0
    phones = (
        Patient.objects.filter(hospital_id=campaign.hospital_id, status='active')
        .exclude(phone='')
        .values_list('phone', flat=True)
    )
    for phone in phones:
        if whatsapp.send_text(phone, body).success:
            sent += 1
        else:
            failed += 1
    logger.info('Campaign %s broadcast: %s sent, %s failed', campaign.id, sent, failed)
    return {'sent': sent, 'failed': failed}


def generate_campaigns(*, check: str='today', publish: bool=True, send_whatsapp: bool=False,
                       triggered_by: str='manual', now: Optional[datetime]=None, hospitals=None) -> dict:
    started = time.monotonic()
    now = now or timezone.now()
    target = target_date(check, now)
    days = days_for(target)
    hospitals = list(hospitals) if hospitals is not None else list(Hospital.objects.filter(status='active'))

    def _log(success: bool, message: str, summary: dict) -> None:
        CronLog.objects.create(
            job=JOB, executed_at=now, success=success, triggered_by=triggered_by, message=message,
            summary={'check': check, **summary},
            execution_time_ms=int((time.monotonic() - started) * 1000),
        )

    if not days:
        message = f'No health awareness days found for {check}'
        _log(True, message, {'campaignsGenerated': 0, 'healthDaysChecked': []})
        return {
            'message': message, 'campaignsGenerated': 0, 'campaigns': [], 'healthDaysChecked': [], 'whatsapp': [], 'errors': [],
        }

    ads, errors = {}, []
    for day in days:
        try:
            ads[day['name']] = generate_advertisement(day)
        except GenerationError as e:
            logger.error('Advertisement for %s failed: %s', day['name'], e)
            errors.append({'day': day['name'], 'error': str(e)})
    if not ads:
        message = 'Failed to generate any advertisements. Errors: ' + '; '.join(
            f"{e['day']}: {e['error']}" for e in errors
        )
        _log(False, message, {'campaignsGenerated': 0, 'errors': errors})
        raise GenerationError(message)

    start_at = datetime.combine(target, datetime.min.time(), tzinfo=IST)
    created, broadcasts = [], []
    for hospital in hospitals:
        for day in days:
            ad = ads.get(day['name'])
            if not ad:
                continue
            campaign = _existing_campaign(hospital, day, target)
            if campaign is None:
                campaign = Campaign.objects.create(
                    hospital=hospital,
                    title=ad['title'][:255],
                    slug=slugify(day['name']),
                    content=sanitize_content(ad['content']),
                    cta_text=ad['ctaText'][:100],
                    cta_href=ad['ctaHref'],
                    audience=day.get('targetAudience') or 'all',
                    status='published' if publish else 'draft',
                    priority=day.get('priority') or 0,
                    start_at=start_at,
                    end_at=None,
                    metadata={
                        'healthAwarenessDay': day['name'],
                        'healthDayDate': day['date'],
                        'autoGenerated': True,
                        'generatedAt': now.isoformat(),
                        'targetDate': target.isoformat(),
                        'shortMessage': ad['shortMessage'],
                    },
                )
                created.append({
                    'id': campaign.id,
                    'hospitalId': hospital.id,
                    'title': campaign.title,
                    'healthDay': day['name'],
                    'status': campaign.status,
                })
            elif not (send_whatsapp and check == 'today'):
                continue
            # patients hear about it on the day itself
            if send_whatsapp and check == 'today':
                broadcasts.append({'campaignId': campaign.id, **broadcast_campaign(campaign)})

    message = f'Generated {len(created)} campaigns for {check}'
    names = [d['name'] for d in days]
    _log(True, message, {
        'campaignsGenerated': len(created), 'campaigns': created, 'healthDaysChecked': names, 'errors': errors,
    })
    return {
        'message': message,
        'campaignsGenerated': len(created),
        'campaigns': created,
        'healthDaysChecked': names,
        'whatsapp': broadcasts,
        'errors': errors,
    }


def diagnostics() -> dict:
    result = {
        'groqApiKey': bool(settings.GROQ_API_KEY),
        'whatsappConfigured': whatsapp.is_configured(),
        'healthAwarenessDays': False,
        'database': False,
    }
    if not result['whatsappConfigured']:
        result['whatsappError'] = f"Missing: {', '.join(whatsapp.missing_settings())}"
    try:
        result['healthAwarenessDays'] = len(awareness_days()) > 0
    except (OSError, ValueError) as e:
        result['healthAwarenessDaysError'] = str(e)
    try:
        with connection.cursor() as c:
            c.execute('SELECT 1')
        result['database'] = True
    except DatabaseError as e:
        result['databaseError'] = str(e)
    result['allOk'] = all(result[k] for k in ('groqApiKey', 'whatsappConfigured', 'healthAwarenessDays', 'database'))

    hints = {
        'groqApiKey': '✓ GROQ_API_KEY is set' if result['groqApiKey'] else '✗ GROQ_API_KEY is missing',
        'whatsappConfigured': '✓ WhatsApp (Meta) is configured' if result['whatsappConfigured']
        else f"✗ WhatsApp not configured: {result.get('whatsappError')}",
        'healthAwarenessDays': '✓ Health awareness days are loaded' if result['healthAwarenessDays']
        else f"✗ Health awareness days failed: {result.get('healthAwarenessDaysError', 'catalogue is empty')}",
        'database': '✓ Database is reachable' if result['database']
        else f"✗ Database check failed: {result.get('databaseError')}",
    }
    return {
        'diagnostics': result,
        'message': 'All systems are ready! You can generate campaigns.' if result['allOk']
        else 'Some configuration is missing. Please check the diagnostics below.',
        'hints': hints,
    }
