from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from clinic.models import StudyCatalogItem, StudyRequest
from clinic.permissions import owner_or_permission
from clinic.serializers.studies import StudyRequestCreateSerializer, StudyRequestStatusSerializer
from clinic.services.studies import (
    STAFF_PERMISSIONS,
    cancel_request,
    catalog_payload,
    change_status,
    create_request,
    request_payload,
    visible_requests,
)


@api_view(['GET'])
@permission_classes([AllowAny])
def study_catalog_view(request):
    """Active lab studies, optionally filtered by ``category``."""
    qs = StudyCatalogItem.objects.filter(is_active=True)
    category = request.query_params.get('category')
    if category:
        qs = qs.filter(category=category)
    return Response({'ok': True, 'data': [catalog_payload(i) for i in qs]})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def study_requests_view(request):
    if request.method == 'POST':
        s = StudyRequestCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        req = create_request(request.user, s.validated_data, request=request)
        return Response({'ok': True, 'data': request_payload(req), 'message': 'Solicitud creada'}, status=201)

    qs = visible_requests(request.user)
    st = request.query_params.get('status')
    if st:
        qs = qs.filter(status=st)
    return Response({'ok': True, 'data': [request_payload(r) for r in qs]})


def _get_visible(request, pk) -> StudyRequest:
    req = visible_requests(request.user).filter(pk=pk).first()
    if req is None:
        raise NotFound('Solicitud no encontrada')
    return req


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def study_request_detail_view(request, pk: int):
    return Response({'ok': True, 'data': request_payload(_get_visible(request, pk))})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def study_request_status_view(request, pk: int):
    req = _get_visible(request, pk)
    s = StudyRequestStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    req = change_status(request.user, req, s.validated_data, request=request)
    return Response({'ok': True, 'data': request_payload(req), 'message': 'Estado actualizado'})


CanCancelStudyRequest = owner_or_permission(*STAFF_PERMISSIONS)


@api_view(['POST'])
@permission_classes([CanCancelStudyRequest])
def study_request_cancel_view(request, pk: int):
    req = _get_visible(request, pk)
    if not CanCancelStudyRequest().has_object_permission(request, None, req):
        raise PermissionDenied()
    req = cancel_request(request.user, req, request=request)
    return Response({'ok': True, 'data': request_payload(req), 'message': 'Solicitud cancelada'})
