from django.contrib.auth import get_user_model
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from clinic.permissions import IsSuperAdmin, require_permission
from clinic.roles import Permission as P, coerce_role
from clinic.serializers.users import UserCreateSerializer, UserUpdateSerializer
from clinic.services.users import create_user, delete_user, update_user, user_payload

User = get_user_model()

CanManageUsers = require_permission(P.MANAGE_USERS)


def _truthy(value: str) -> bool:
    return value in ('1', 'true', 'True')


@api_view(['GET', 'POST'])
@permission_classes([CanManageUsers])
def users_view(request):
    """List users (newest first) or create one with a temporary password.

    Query params for GET:
      - role: one of the five roles
      - isActive: 1|0
      - q: matches e-mail, first or last name
    """
    if request.method == 'POST':
        s = UserCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        v = s.validated_data
        user, password = create_user(
            request.user,
            email=v['email'],
            first_name=v['firstName'],
            last_name=v['lastName'],
            role=v['role'],
            phone=v.get('phone', ''),
            suffix=v.get('suffix', ''),
            temp_password=v.get('tempPassword'),
            request=request,
        )
        data = user_payload(user)
        data['tempPassword'] = password
        return Response({'ok': True, 'data': data, 'message': 'Usuario creado exitosamente'}, status=201)

    qs = User.objects.all().order_by('-created_at')
    # the list filter accepts any casing; permission checks do not
    role = coerce_role((request.query_params.get('role') or '').upper())
    if role is not None:
        qs = qs.filter(role=role)
    active = request.query_params.get('isActive')
    if active not in (None, ''):
        qs = qs.filter(is_active=_truthy(active))
    q = (request.query_params.get('q') or '').strip()
    if q:
        qs = qs.filter(Q(email__icontains=q) | Q(first_name__icontains=q) | Q(last_name__icontains=q))

    data = [user_payload(u) for u in qs]
    return Response({'ok': True, 'data': data, 'pagination': {'total': len(data)}})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([CanManageUsers])
def user_detail_view(request, pk: int):
    user = get_object_or_404(User, pk=pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': user_payload(user)})

    if request.method == 'DELETE':
        # Deleting accounts is reserved to the super administrator
        if not IsSuperAdmin().has_permission(request, None):
            raise PermissionDenied('Solo un super administrador puede eliminar usuarios')
        delete_user(request.user, user, request=request)
        return Response({'ok': True, 'message': 'Usuario eliminado'})

    s = UserUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    user = update_user(request.user, user, s.validated_data, request=request)
    return Response({'ok': True, 'data': user_payload(user), 'message': 'Usuario actualizado'})
