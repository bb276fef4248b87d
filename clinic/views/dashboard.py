"""
Dashboard endpoints.

``modules`` tells the front-end which sidebar entries the caller's role may
open (and which one a requested ``module`` id resolves to).  ``overview``
is the administrative summary card data.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db.models import Count
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, StudyRequest
from ..navigation import resolve_module, visible_modules
from ..permissions import IsAdminRole
from ..roles import get_role_color, get_role_label, get_role_permissions

User = get_user_model()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_modules(request):
    role = request.user.role
    return Response({'ok': True, 'data': {
        'role': role,
        'roleLabel': get_role_label(role),
        'roleColor': get_role_color(role),
        'permissions': sorted(get_role_permissions(role)),
        'modules': [m.as_dict() for m in visible_modules(role)],
        'active': resolve_module(role, request.query_params.get('module')),
    }})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_overview(request):
    """Headline numbers for the administrators' overview module."""
    today = timezone.localdate()
    by_role = dict(User.objects.order_by().values_list('role').annotate(n=Count('id')))
    return Response({'ok': True, 'data': {
        'users': {
            'total': sum(by_role.values()),
            'byRole': by_role,
            'pendingProfiles': User.objects.filter(is_new=True).count(),
        },
        'appointments': {
            'today': Appointment.objects.filter(scheduled_at__date=today).count(),
            'pending': Appointment.objects.filter(status=Appointment.STATUS_PENDING).count(),
        },
        'studyRequests': {
            'pendingPayment': StudyRequest.objects.filter(status=StudyRequest.STATUS_PENDING_PAYMENT).count(),
            'inProgress': StudyRequest.objects.filter(status=StudyRequest.STATUS_IN_PROGRESS).count(),
        },
    }})
