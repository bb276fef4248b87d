"""
Authentication views.

Register, login, the caller's own profile, JWT refresh/logout and the
profile-completion wizard.  Every identity-returning endpoint answers with
the full Identity record (see :func:`clinic.services.identity.identity_payload`)
so the client can replace its cached copy in one write.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.models import update_last_login
from django.db import transaction
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.authentication import issue_tokens
from clinic.exceptions import ApiError
from clinic.navigation import landing_path
from clinic.roles import get_role_label
from clinic.serializers.auth import (
    CompleteProfileSerializer,
    LoginSerializer,
    ProfileUpdateSerializer,
    RegisterSerializer,
)
from clinic.services.audit import log_action
from clinic.services.identity import identity_payload, notify_identity_updated
from clinic.services.profile import complete_profile, profile_steps

User = get_user_model()
logger = logging.getLogger(__name__)


def _session_payload(user, refresh: RefreshToken) -> dict:
    return {
        'user': identity_payload(user),
        'token': str(refresh.access_token),
        'refresh': str(refresh),
    }


# ---------------------------------------------------------------------
# Register / login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def register_view(request):
    """Self-registration. SUPERADMIN can never be chosen here."""
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data

    if User.objects.filter(email__iexact=v['email']).exists():
        raise ApiError('email_exists', status_code=409)

    with transaction.atomic():
        user = User.objects.create_user(
            email=v['email'],
            password=v['password'],
            first_name=v['firstName'],
            last_name=v['lastName'],
            phone=v.get('phone', ''),
            role=v['role'],
            is_new=True,
        )
        log_action(user=user, action='REGISTER', module='AUTH', object_type='user', object_id=user.id,
                   detail={'role': user.role}, request=request)

    refresh = issue_tokens(user)
    return Response({'ok': True, 'data': _session_payload(user, refresh),
                     'message': 'Usuario registrado exitosamente'}, status=201)

# api_view() builds a class per function; the scope lives on that class
register_view.cls.throttle_scope = 'register'


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def login_view(request):
    """E-mail and password login.

    The role is always read from the database; anything else the client
    sends (``role`` included) is ignored.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']
    password = s.validated_data['password']

    user = authenticate(request, email=email, password=password)
    if user is None:
        # ModelBackend refuses inactive accounts; tell them apart only when the password is right
        candidate = User.objects.filter(email__iexact=email).first()
        if candidate is not None and not candidate.is_active and candidate.check_password(password):
            log_action(user=candidate, action='LOGIN', module='AUTH', object_type='user',
                       object_id=candidate.id, detail={'result': 'inactive'}, request=request)
            raise ApiError('account_inactive', status_code=401)
        logger.info('Failed login for %s', email)
        raise ApiError('invalid_credentials', status_code=401)

    update_last_login(None, user)
    log_action(user=user, action='LOGIN', module='AUTH', object_type='user', object_id=user.id,
               detail={'result': 'ok'}, request=request)

    refresh = issue_tokens(user)
    data = _session_payload(user, refresh)
    data['redirect'] = landing_path(user.role, user.is_new)
    return Response({'ok': True, 'data': data, 'message': 'Inicio de sesión exitoso'})

login_view.cls.throttle_scope = 'login'


# ---------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------
@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def me_view(request):
    user = request.user
    if request.method == 'GET':
        data = identity_payload(user)
        data['roleLabel'] = get_role_label(user.role)
        return Response({'ok': True, 'data': data})

    s = ProfileUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data

    if v.get('newPassword'):
        if not user.check_password(v['currentPassword']):
            raise ApiError('invalid_password', status_code=401)
        user.set_password(v['newPassword'])
    if 'firstName' in v:
        user.first_name = v['firstName']
    if 'lastName' in v:
        user.last_name = v['lastName']
    if 'phone' in v:
        user.phone = v['phone']
    user.save()

    log_action(user=user, action='UPDATE', module='AUTH', object_type='user', object_id=user.id,
               detail={'fields': sorted(k for k in v if k != 'currentPassword')}, request=request)
    transaction.on_commit(lambda: notify_identity_updated(user))
    return Response({'ok': True, 'data': identity_payload(user), 'message': 'Perfil actualizado'})


# ---------------------------------------------------------------------
# Profile completion
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def complete_profile_view(request):
    user = request.user
    if request.method == 'GET':
        return Response({'ok': True, 'data': {
            'isNew': user.is_new,
            'role': user.role,
            'steps': profile_steps(user.role),
        }})

    s = CompleteProfileSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = complete_profile(user, s.validated_data, request=request)
    data = identity_payload(user)
    data['redirect'] = landing_path(user.role, user.is_new)
    return Response({'ok': True, 'data': data, 'message': 'Perfil completado exitosamente'})


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    s = TokenRefreshSerializer(data=request.data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise InvalidToken(e.args[0]) from e
    data = {'token': s.validated_data['access']}
    if 'refresh' in s.validated_data:
        data['refresh'] = s.validated_data['refresh']
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or all of the caller's tokens."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError as e:
            raise ApiError('invalid_token', str(e)) from e
        if str(token.get('user_id')) != str(request.user.id):
            raise ApiError('invalid_token')
        try:
            token.blacklist()
        except TokenError as e:
            raise ApiError('invalid_token', str(e)) from e
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)

    log_action(user=request.user, action='LOGOUT', module='AUTH', object_type='user',
               object_id=request.user.id, detail={'blacklisted': count}, request=request)
    return Response({'ok': True, 'data': {'blacklisted': count}, 'message': 'Sesión cerrada'})
