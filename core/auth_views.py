"""
Authentication endpoints.

Login hands out both a DRF token (``Authorization: Token ...``) and a
simplejwt pair (``Authorization: Bearer ...``).  Failed and successful
attempts are written to the audit log.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from django.utils import timezone
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from core.models import User
from core.responses import ok
from core.serializers.auth import LoginSerializer, LogoutSerializer
from core.services.audit import client_ip, log_action
from core.throttling import LoginRateThrottle

logger = logging.getLogger(__name__)


def format_user(user: User) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'name': user.get_full_name() or user.username,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'email': user.email,
        'role': user.role,
        'status': user.status,
        'facility_id': user.facility_id,
        'facility_name': user.facility.name if user.facility_id else None,
        'language_preference': user.language_preference,
        'specialization': user.specialization,
        'last_login': user.last_login.isoformat() if user.last_login else None,
    }


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    """Username/password login; suspended and inactive accounts are refused."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    ip = client_ip(request)

    user = authenticate(request, username=username, password=s.validated_data['password'])
    if user is None:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'ip': ip})
        raise AuthenticationFailed('Invalid username or password.')
    if user.status != 'active':
        log_action(user=user, action='login', object_type='user', object_id=user.id,
                   detail={'result': 'refused', 'status': user.status, 'ip': ip})
        raise AuthenticationFailed(f'Account is {user.status}.')

    user.last_login = timezone.now()
    user.last_login_ip = ip
    user.save(update_fields=['last_login', 'last_login_ip'])
    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': ip})
    logger.info('user %s logged in from %s', user.pk, ip)

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return ok({
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'user': format_user(user),
    }, 'Login successful')


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Exchange a refresh token for a new access token."""
    s = TokenRefreshSerializer(data=request.data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise AuthenticationFailed(str(e))
    data = dict(s.validated_data)
    data['jwt_access'] = data.pop('access')
    if 'refresh' in data:
        data['jwt_refresh'] = data.pop('refresh')
    return ok(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token (or all of the user's) and drop the DRF token."""
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    refresh = s.validated_data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError as e:
            raise AuthenticationFailed(str(e))
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return ok({'blacklisted': count}, 'Logged out')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return ok(format_user(request.user))
