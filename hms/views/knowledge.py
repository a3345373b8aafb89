"""Read-only anatomy, disease and ENT diagnosis lookups for the doctor UI."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.services import knowledge


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def anatomy_types(request):
    return Response({'ok': True, 'data': knowledge.list_types()})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def anatomy_detail(request, anatomy_type: str):
    return Response({'ok': True, 'data': knowledge.anatomy(anatomy_type)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def anatomy_part(request, anatomy_type: str, part: str):
    return Response({'ok': True, 'data': knowledge.get_part(anatomy_type, part)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def disease_detail(request, anatomy_type: str, disease_id: str):
    return Response({'ok': True, 'data': knowledge.get_disease(anatomy_type, disease_id)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def disease_search(request):
    types = [t for t in (request.query_params.get('types') or '').split(',') if t] or None
    if types:
        unknown = [t for t in types if t not in knowledge.ANATOMY_TYPES]
        if unknown:
            raise ValueError(f"Unknown anatomy type: {', '.join(unknown)}")
    return Response({'ok': True, 'data': knowledge.search_diseases(request.query_params.get('q', ''), types)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ent_diagnoses(request):
    category = request.query_params.get('category') or None
    if category and category not in knowledge.ENT_CATEGORIES:
        raise ValueError(f'Unknown category: {category}')
    rows = knowledge.search_ent_diagnoses(request.query_params.get('q', ''), category)
    return Response({'ok': True, 'data': rows, 'customOption': knowledge.CUSTOM_DIAGNOSIS_OPTION})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def anatomy_models(request):
    specialization = request.query_params.get('specialization')
    return Response({'ok': True, 'data': knowledge.available_models(specialization)})
