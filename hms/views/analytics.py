"""
Patient analytics dashboard.

The aggregation is expensive on large hospitals, so results are cached per
hospital, branch and time range for ``ANALYTICS_CACHE_TTL`` seconds.  Pass
``refresh=true`` to rebuild.
"""
from __future__ import annotations

from django.conf import settings
from django.core.cache import cache
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.permissions import IsAdminRole
from hms.serializers.analytics import AnalyticsQuerySerializer
from hms.services import analytics as analytics_service
from hms.services.hospitals import hospital_for_request


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def patient_analytics(request):
    q = AnalyticsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    hospital = hospital_for_request(request)
    branch_id = vd.get('branchId')

    ck = analytics_service.cache_key(hospital.id, branch_id, vd['timeRange'])
    if not vd['refresh']:
        cached = cache.get(ck)
        if cached:
            return Response({**cached, 'cached': True})

    data = analytics_service.patient_analytics(hospital, branch_id=branch_id, time_range=vd['timeRange'])
    payload = {'ok': True, 'data': data}
    cache.set(ck, payload, settings.ANALYTICS_CACHE_TTL)
    return Response({**payload, 'cached': False})
