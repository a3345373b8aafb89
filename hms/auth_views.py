"""
Authentication views.

Login hands out both a DRF token (``Authorization: Token <key>``) and a
simplejwt pair; the remaining views expose the current user, let a user
switch between the hospitals they belong to and manage JWT refresh/logout.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from hms.serializers.auth import LoginSerializer, SwitchHospitalSerializer
from hms.services.audit import log_action
from hms.services.hospitals import format_hospital

from .models import Hospital, User


def format_user(user: User) -> dict:
    hospital = user.active_hospital
    return {
        'id': user.id,
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'name': user.get_full_name() or user.email or user.username,
        'role': user.role,
        'activeHospitalId': hospital.id if hospital else None,
        'activeHospitalName': hospital.name if hospital else None,
        'hospitalIds': list(user.hospitals.values_list('id', flat=True)),
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """Email (or username) and password login."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    login = s.validated_data['login']
    password = s.validated_data['password']

    user = authenticate(request, username=login, password=password)
    if user is None:
        match = User.objects.filter(email__iexact=login).first()
        if match:
            user = authenticate(request, username=match.username, password=password)
    ip = request.META.get('REMOTE_ADDR')
    if not user:
        log_action(user=None, action='login', object_type='user', detail={'result': 'fail', 'login': login, 'ip': ip})
        return Response({'ok': False, 'error': {'code': 'invalid_credentials', 'message': 'Invalid email or password'}},
                        status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               hospital_id=user.active_hospital_id, detail={'result': 'ok', 'ip': ip})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': format_user(user),
    })

# ScopedRateThrottle reads throttle_scope from the wrapped APIView class
login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    user = request.user
    hospitals = Hospital.objects.all() if user.role == 'super_admin' else user.hospitals.all()
    return Response({
        'ok': True,
        'data': {
            **format_user(user),
            'hospitals': [format_hospital(h) for h in hospitals.filter(status='active').order_by('name')],
        },
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def switch_hospital_view(request):
    """Make one of the user's hospitals the active tenant."""
    s = SwitchHospitalSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = request.user
    hospital = Hospital.objects.filter(id=s.validated_data['hospitalId'], status='active').first()
    if not hospital:
        return Response({'ok': False, 'error': {'code': 'not_found', 'message': 'Hospital not found'}}, status=404)
    if user.role != 'super_admin' and not user.hospitals.filter(id=hospital.id).exists():
        return Response({'ok': False, 'error': {'code': 'forbidden', 'message': 'Not a member of this hospital'}},
                        status=403)
    user.active_hospital = hospital
    user.save(update_fields=['active_hospital'])
    log_action(user=user, action='switch_hospital', object_type='hospital', object_id=hospital.id,
               hospital_id=hospital.id)
    return Response({'ok': True, 'data': format_user(user)})


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    if isinstance(resp, Response):
        data = dict(resp.data)
        if 'access' in data and 'jwt_access' not in data:
            data['jwt_access'] = data.pop('access')
        return Response(data, status=resp.status_code)
    return resp


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist current user's refresh tokens (all or a given one)."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError as e:
            return Response({'ok': False, 'error': {'code': 'invalid_token', 'message': str(e)}}, status=400)
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    return Response({'ok': True, 'blacklisted': count})
