"""
Error envelope for the API.

Every failure leaves the API as ``{"ok": false, "error": {"code",
"message", "details"?}}``.  Views raise DRF exceptions (or
:class:`ApiError` when a specific machine code is needed) and this
handler normalises them.
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)

ERROR_MESSAGES = {
    'unauthorized': 'No autorizado',
    'forbidden': 'No tiene permisos para realizar esta acción',
    'not_found': 'Registro no encontrado',
    'validation_error': 'Error de validación',
    'server_error': 'Error interno del servidor',
    'duplicate_entry': 'El registro ya existe',
    'invalid_credentials': 'Credenciales inválidas',
    'time_slot_not_available': 'El horario seleccionado no está disponible',
    'specialist_not_available': 'El especialista no está disponible',
    'email_exists': 'El correo electrónico ya está registrado',
    'account_inactive': 'La cuenta está desactivada',
    'invalid_password': 'La contraseña actual es incorrecta',
    'profile_already_completed': 'El perfil ya fue completado',
    'cannot_delete_self': 'No puede eliminar su propia cuenta',
    'invalid_studies': 'Uno o más estudios no son válidos',
    'invalid_transition': 'Cambio de estado no permitido',
    'invalid_token': 'Token inválido o expirado',
}

_CODES_BY_CLASS = (
    (exceptions.ValidationError, 'validation_error'),
    (exceptions.NotAuthenticated, 'unauthorized'),
    (exceptions.AuthenticationFailed, 'unauthorized'),
    (exceptions.PermissionDenied, 'forbidden'),
    (exceptions.NotFound, 'not_found'),
    (exceptions.MethodNotAllowed, 'method_not_allowed'),
    (exceptions.Throttled, 'throttled'),
)


class ApiError(exceptions.APIException):
    """An API failure with an explicit machine-readable code."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'api_error'
    default_detail = 'Solicitud inválida'

    def __init__(self, code: str, message: str | None = None, status_code: int | None = None, details=None):
        super().__init__(detail=message or ERROR_MESSAGES.get(code, self.default_detail), code=code)
        self.error_code = code
        self.details = details
        if status_code is not None:
            self.status_code = status_code


# Codes raised during authentication that clients act on, keyed by the
# code the raising library uses.  simplejwt wraps its codes in a dict.
PASSTHROUGH_CODES = {
    'role_changed': 'role_changed',
    'user_inactive': 'account_inactive',
    'token_not_valid': 'invalid_token',
}


def _code_for(exc) -> str:
    if isinstance(exc, ApiError):
        return exc.error_code
    codes = exc.get_codes() if isinstance(exc, exceptions.APIException) else None
    if isinstance(codes, dict):
        codes = codes.get('code')
    if isinstance(codes, str) and codes in PASSTHROUGH_CODES:
        return PASSTHROUGH_CODES[codes]
    for cls, code in _CODES_BY_CLASS:
        if isinstance(exc, cls):
            return code
    return getattr(exc, 'default_code', None) or 'api_error'


def api_exception_handler(exc, context):
    if isinstance(exc, Http404):
        exc = exceptions.NotFound(*exc.args)
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied(*exc.args)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('Unhandled error in %s', context.get('view'), exc_info=exc)
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': ERROR_MESSAGES['server_error']}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    code = _code_for(exc)
    error: dict[str, object] = {'code': code}
    if isinstance(exc, exceptions.ValidationError):
        error['message'] = ERROR_MESSAGES['validation_error']
        error['details'] = resp.data
    else:
        detail = resp.data.get('detail') if isinstance(resp.data, dict) else resp.data
        error['message'] = str(detail) if detail else ERROR_MESSAGES.get(code, code)
        if getattr(exc, 'details', None) is not None:
            error['details'] = exc.details
    if resp.status_code >= 500:
        logger.error('API error %s: %s', code, error['message'])
    return Response({'ok': False, 'error': error}, status=resp.status_code, headers=_auth_headers(resp))


def _auth_headers(resp):
    headers = {}
    for name in ('WWW-Authenticate', 'Retry-After'):
        if resp.has_header(name):
            headers[name] = resp[name]
    return headers
