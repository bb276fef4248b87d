from django.contrib.auth import get_user_model
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from clinic.exceptions import ApiError
from clinic.models import Specialist
from clinic.permissions import read_or_permission
from clinic.roles import Permission as P, Role
from clinic.serializers.specialists import SPECIALTIES, SpecialistSerializer
from clinic.services.audit import log_action

User = get_user_model()

_FIELDS = {
    'fullName': 'full_name',
    'specialty': 'specialty',
    'licenseNumber': 'license_number',
    'assignedOffice': 'assigned_office',
    'biography': 'biography',
    'yearsOfExperience': 'years_of_experience',
    'consultationFee': 'consultation_fee',
    'photoUrl': 'photo_url',
    'isAvailable': 'is_available',
    'courses': 'courses',
    'certifications': 'certifications',
    'academicFormation': 'academic_formation',
    'trajectory': 'trajectory',
}


def specialist_payload(s: Specialist) -> dict:
    return {
        'id': s.id,
        'userId': s.user_id,
        'email': s.user.email,
        'fullName': s.full_name,
        'specialty': s.specialty,
        'licenseNumber': s.license_number,
        'assignedOffice': s.assigned_office,
        'biography': s.biography,
        'yearsOfExperience': s.years_of_experience,
        'consultationFee': str(s.consultation_fee),
        'photoUrl': s.photo_url or None,
        'isAvailable': s.is_available,
        'courses': s.courses,
        'certifications': s.certifications,
        'academicFormation': s.academic_formation,
        'trajectory': s.trajectory,
    }


def _apply(specialist: Specialist, data: dict) -> None:
    for src, dst in _FIELDS.items():
        if src in data:
            value = data[src]
            if isinstance(value, list):
                value = [dict(item) for item in value]
            setattr(specialist, dst, value)


ReadOrManageSpecialists = read_or_permission(P.MANAGE_SPECIALISTS)


@api_view(['GET', 'POST'])
@permission_classes([ReadOrManageSpecialists])
def specialists_view(request):
    """Public directory of available specialists; staff may create entries."""
    if request.method == 'POST':
        s = SpecialistSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        v = s.validated_data
        if not v.get('userId'):
            raise ValidationError({'userId': 'Debe indicar el usuario'})
        user = User.objects.filter(id=v['userId'], role=Role.SPECIALIST).first()
        if user is None:
            raise ValidationError({'userId': 'El usuario no existe o no es especialista'})
        if Specialist.objects.filter(user=user).exists():
            raise ApiError('duplicate_entry', status_code=409)
        specialist = Specialist(user=user)
        _apply(specialist, v)
        specialist.save()
        log_action(user=request.user, action='CREATE', module='SPECIALISTS', object_type='specialist',
                   object_id=specialist.id, detail={'userId': user.id}, request=request)
        return Response({'ok': True, 'data': specialist_payload(specialist)}, status=201)

    qs = Specialist.objects.select_related('user').filter(is_available=True, user__is_active=True)
    specialty = (request.query_params.get('specialty') or '').strip()
    if specialty:
        qs = qs.filter(specialty__iexact=specialty)
    q = (request.query_params.get('q') or '').strip()
    if q:
        qs = qs.filter(Q(full_name__icontains=q) | Q(specialty__icontains=q))
    return Response({'ok': True, 'data': [specialist_payload(s) for s in qs.order_by('full_name')]})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([ReadOrManageSpecialists])
def specialist_detail_view(request, pk: int):
    specialist = get_object_or_404(Specialist.objects.select_related('user'), pk=pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': specialist_payload(specialist)})

    if request.method == 'DELETE':
        specialist_id = specialist.id
        specialist.delete()
        log_action(user=request.user, action='DELETE', module='SPECIALISTS', object_type='specialist',
                   object_id=specialist_id, request=request)
        return Response({'ok': True, 'message': 'Especialista eliminado'})

    s = SpecialistSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    _apply(specialist, s.validated_data)
    specialist.save()
    log_action(user=request.user, action='UPDATE', module='SPECIALISTS', object_type='specialist',
               object_id=specialist.id, detail={'fields': sorted(s.validated_data)}, request=request)
    return Response({'ok': True, 'data': specialist_payload(specialist)})


@api_view(['GET'])
@permission_classes([ReadOrManageSpecialists])
def specialties_view(request):
    return Response({'ok': True, 'data': list(SPECIALTIES)})

