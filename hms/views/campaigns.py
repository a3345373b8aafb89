"""
Campaign (announcement banner) endpoints.

Admins manage the campaigns of their hospital; receptionists may browse
them.  ``published`` is what patient and doctor dashboards poll, so it is
cached briefly per hospital and audience and invalidated on every write.
"""
from __future__ import annotations

from django.core.cache import cache
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.permissions import IsAdminRole, IsCronOrAdmin, IsFrontDesk, is_cron_request
from hms.serializers.campaign import (
    CampaignListQuerySerializer,
    CampaignWriteSerializer,
    GenerateCampaignsSerializer,
    PublishedQuerySerializer,
)
from hms.services import awareness
from hms.services import campaigns as campaign_service
from hms.services.audit import log_action
from hms.services.hospitals import hospital_for_request
from hms.services.realtime import notify_hospital

ROLE_AUDIENCE = {'patient': 'patients', 'doctor': 'doctors'}


def _published_key(hospital_id, audience: str) -> str:
    return f'campaigns:published:h={hospital_id}:a={audience}'


def _changed(request, hospital, campaign, action: str) -> None:
    for audience in ('all', 'patients', 'doctors'):
        cache.delete(_published_key(hospital.id, audience))
    log_action(user=request.user, action=action, object_type='campaign', object_id=campaign.id,
               hospital_id=hospital.id, detail={'title': campaign.title, 'status': campaign.status})
    notify_hospital(hospital.id, 'campaigns', campaignId=campaign.id)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFrontDesk])
def campaigns(request):
    hospital = hospital_for_request(request)
    if request.method == 'GET':
        q = CampaignListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        rows = campaign_service.list_campaigns(hospital, status=q.validated_data['status'], search=q.validated_data.get('q'))
        return Response({
            'ok': True,
            'data': [campaign_service.format_campaign(c) for c in rows],
            'counts': campaign_service.campaign_counts(hospital),
        })

    if not IsAdminRole().has_permission(request, None):
        return Response({'ok': False, 'error': {'code': 'forbidden', 'message': 'Admin only'}}, status=403)
    s = CampaignWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    campaign = campaign_service.create_campaign(hospital, request.user, s.validated_data)
    _changed(request, hospital, campaign, 'campaign_create')
    return Response({'ok': True, 'data': campaign_service.format_campaign(campaign)}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def campaign_detail(request, pk: int):
    hospital = hospital_for_request(request)
    campaign = campaign_service.get_campaign(hospital, pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': campaign_service.format_campaign(campaign)})
    if request.method == 'DELETE':
        _changed(request, hospital, campaign, 'campaign_delete')
        campaign.delete()
        return Response({'ok': True})

    s = CampaignWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    campaign = campaign_service.update_campaign(campaign, request.user, s.validated_data)
    _changed(request, hospital, campaign, 'campaign_update')
    return Response({'ok': True, 'data': campaign_service.format_campaign(campaign)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def campaign_toggle_publish(request, pk: int):
    hospital = hospital_for_request(request)
    campaign = campaign_service.toggle_publish(campaign_service.get_campaign(hospital, pk), request.user)
    _changed(request, hospital, campaign, 'campaign_publish' if campaign.status == 'published' else 'campaign_unpublish')
    return Response({'ok': True, 'data': campaign_service.format_campaign(campaign)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def published_campaigns(request):
    q = PublishedQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    hospital = hospital_for_request(request)
    audience = ROLE_AUDIENCE.get(request.user.role, q.validated_data['audience'])

    ck = _published_key(hospital.id, audience)
    cached = cache.get(ck)
    if cached:
        return Response(cached)
    rows = campaign_service.published_for_audience(hospital, audience)
    payload = {'ok': True, 'data': [campaign_service.format_campaign(c) for c in rows]}
    cache.set(ck, payload, 60)
    return Response(payload)


@api_view(['GET', 'POST'])
@permission_classes([IsCronOrAdmin])
def generate_awareness_campaigns(request):
    """Create today's (or tomorrow's) awareness-day campaigns for every active hospital."""
    source = request.query_params if request.method == 'GET' else request.data
    s = GenerateCampaignsSerializer(data=source)
    s.is_valid(raise_exception=True)
    cron = is_cron_request(request)
    vd = s.validated_data
    send = vd['sendWhatsApp'] if 'sendWhatsApp' in source else cron
    try:
        result = awareness.generate_campaigns(
            check=vd['check'],
            publish=vd['publish'],
            send_whatsapp=send,
            triggered_by='cron' if cron else 'manual',
        )
    except awareness.GenerationError as e:
        return Response({'ok': False, 'error': {'code': 'generation_failed', 'message': str(e)}}, status=502)
    for campaign in result['campaigns']:
        for audience in ('all', 'patients', 'doctors'):
            cache.delete(_published_key(campaign['hospitalId'], audience))
        notify_hospital(campaign['hospitalId'], 'campaigns', campaignId=campaign['id'])
    return Response({'ok': True, 'triggeredBy': 'cron' if cron else 'manual', **result})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def awareness_check(request):
    return Response({'ok': True, **awareness.diagnostics()})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def awareness_days(request):
    check = request.query_params.get('check')
    if check in ('today', 'tomorrow'):
        rows = awareness.days_for(awareness.target_date(check))
    else:
        rows = awareness.awareness_days()
    return Response({'ok': True, 'data': rows})
