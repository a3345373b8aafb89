import html
import re
from typing import Optional
import bleach
from django.db.models import Q
from django.utils import timezone
from hms.models import Campaign

ALLOWED_TAGS = frozenset({
    'p', 'br', 'strong', 'b', 'em', 'i', 'u', 'ul', 'ol', 'li', 'a', 'h1', 'h2', 'h3', 'h4', 'blockquote', 'span',
})
ALLOWED_ATTRIBUTES = {'a': ['href', 'title', 'target', 'rel'], 'span': ['class']}

# API field -> model field
FIELD_MAP = {
    'title': 'title',
    'slug': 'slug',
    'content': 'content',
    'imageUrl': 'image_url',
    'ctaText': 'cta_text',
    'ctaHref': 'cta_href',
    'audience': 'audience',
    'status': 'status',
    'priority': 'priority',
    'startAt': 'start_at',
    'endAt': 'end_at',
}


def slugify(value: str) -> str:
    value = (value or '').lower().strip()
    value = re.sub(r'[^a-z0-9\s-]', '', value)
    value = re.sub(r'\s+', '-', value)
    return re.sub(r'-+', '-', value)


def sanitize_content(content: str) -> str:
    return bleach.clean(content or '', tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES, strip=True)


def get_plain_text(content: str) -> str:
    if not content:
        return ''
    text = re.sub(r'<[^>]*>', '', content)
    text = html.unescape(text).replace('\xa0', ' ')
    return re.sub(r'\s+', ' ', text).strip()


def truncate_text(text: str, max_length: int=200) -> str:
    if not text or len(text) <= max_length:
        return text
    truncated = text[:max_length]
    last_space = truncated.rfind(' ')
    if last_space > max_length * 0.8:
        return truncated[:last_space] + '...'
    return truncated + '...'


def get_content_preview(content: str, max_length: int=150) -> str:
    """First paragraph (or sentence) of campaign HTML, wrapped in ``<p>``."""
    if not content:
        return ''
    m = re.search(r'<p[^>]*>([\s\S]*?)</p>', content, re.IGNORECASE)
    if m:
        first_para = m.group(1)
        plain = get_plain_text(first_para)
        if len(plain) <= max_length:
            return f'<p>{first_para}</p>'
        return f'<p>{truncate_text(plain, max_length)}</p>'

    plain = get_plain_text(content)
    if len(plain) <= max_length:
        sentence = re.match(r'^[^.!?]+[.!?]', plain)
        if sentence and len(sentence.group(0)) <= max_length:
            return f'<p>{sentence.group(0)}</p>'
        return content
    return f'<p>{truncate_text(plain, max_length)}</p>'


def should_truncate(content: str, max_length: int=150) -> bool:
    if not content:
        return False
    return len(get_plain_text(content)) > max_length


def format_campaign(c: Campaign) -> dict:
    return {
        'id': c.id,
        'hospitalId': c.hospital_id,
        'title': c.title,
        'slug': c.slug,
        'content': c.content,
        'preview': get_content_preview(c.content),
        'imageUrl': c.image_url,
        'ctaText': c.cta_text,
        'ctaHref': c.cta_href,
        'audience': c.audience,
        'status': c.status,
        'priority': c.priority,
        'startAt': c.start_at.isoformat() if c.start_at else None,
        'endAt': c.end_at.isoformat() if c.end_at else None,
        'autoGenerated': bool((c.metadata or {}).get('autoGenerated')),
        'createdBy': c.created_by_id,
        'updatedBy': c.updated_by_id,
        'createdAt': c.created_at.isoformat() if c.created_at else None,
        'updatedAt': c.updated_at.isoformat() if c.updated_at else None,
    }


def campaign_counts(hospital) -> dict:
    qs = Campaign.objects.filter(hospital=hospital)
    return {
        'total': qs.count(),
        'published': qs.filter(status='published').count(),
        'drafts': qs.filter(status='draft').count(),
    }


def list_campaigns(hospital, *, status: str='all', search: Optional[str]=None) -> list[Campaign]:
    qs = Campaign.objects.filter(hospital=hospital)
    if status and status != 'all':
        qs = qs.filter(status=status)
    if search:
        qs = qs.filter(Q(title__icontains=search) | Q(cta_text__icontains=search) | Q(audience__icontains=search))
    return list(qs.order_by('-updated_at', '-id'))


def get_campaign(hospital, pk: int) -> Campaign:
    c = Campaign.objects.filter(hospital=hospital, id=pk).first()
    if not c:
        raise LookupError('Campaign not found or already deleted')
    return c


def _apply(campaign: Campaign, data: dict) -> None:
    for key, field in FIELD_MAP.items():
        if key in data:
            value = data[key]
            if key == 'content':
                value = sanitize_content(value)
            elif key in ('title', 'ctaText'):
                value = bleach.clean(value or '', tags=set(), strip=True).strip()
            setattr(campaign, field, value)
    if campaign.start_at and campaign.end_at and campaign.end_at < campaign.start_at:
        raise ValueError('endAt must be after startAt')


def create_campaign(hospital, user, data: dict) -> Campaign:
    campaign = Campaign(hospital=hospital, created_by=user, updated_by=user)
    _apply(campaign, data)
    if not campaign.title:
        raise ValueError('title is required')
    campaign.slug = slugify(data.get('slug') or campaign.title)
    campaign.save()
    return campaign


def update_campaign(campaign: Campaign, user, data: dict) -> Campaign:
    old_title = campaign.title
    _apply(campaign, data)
    if 'slug' in data:
        campaign.slug = slugify(data['slug'] or campaign.title)
    elif campaign.title != old_title:
        campaign.slug = slugify(campaign.title)
    campaign.updated_by = user
    campaign.save()
    return campaign


def toggle_publish(campaign: Campaign, user) -> Campaign:
    campaign.status = 'draft' if campaign.status == 'published' else 'published'
    campaign.updated_by = user
    campaign.save(update_fields=['status', 'updated_by', 'updated_at'])
    return campaign


def published_for_audience(hospital, audience: str='all', now=None) -> list[Campaign]:
    """Published campaigns of ``hospital`` visible to ``audience`` right now."""
    now = now or timezone.now()
    audiences = ['all'] if audience == 'all' else ['all', audience]
    qs = Campaign.objects.filter(hospital=hospital, status='published', audience__in=audiences)
    qs = qs.filter(Q(start_at__isnull=True) | Q(start_at__lte=now))
    qs = qs.filter(Q(end_at__isnull=True) | Q(end_at__gte=now))
    return list(qs.order_by('-priority', '-updated_at', '-id'))
