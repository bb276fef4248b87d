from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Appointment
from clinic.serializers.appointments import AppointmentCreateSerializer, AppointmentStatusSerializer
from clinic.services.appointments import (
    appointment_payload,
    book_appointment,
    change_status,
    visible_appointments,
)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments_view(request):
    """List the caller's appointments or book a new one.

    Query params for GET:
      - status: filter by status
      - from, to: ISO dates bounding ``scheduledAt``
    """
    if request.method == 'POST':
        s = AppointmentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        appt = book_appointment(request.user, s.validated_data, request=request)
        return Response({'ok': True, 'data': appointment_payload(appt), 'message': 'Cita agendada'}, status=201)

    qs = visible_appointments(request.user)
    st = request.query_params.get('status')
    if st:
        qs = qs.filter(status=st)
    start = request.query_params.get('from')
    if start:
        qs = qs.filter(scheduled_at__date__gte=start)
    end = request.query_params.get('to')
    if end:
        qs = qs.filter(scheduled_at__date__lte=end)
    return Response({'ok': True, 'data': [appointment_payload(a) for a in qs]})


def _get_visible(request, pk) -> Appointment:
    appt = visible_appointments(request.user).filter(pk=pk).first()
    if appt is None:
        raise NotFound('Cita no encontrada')
    return appt


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointment_detail_view(request, pk: int):
    return Response({'ok': True, 'data': appointment_payload(_get_visible(request, pk))})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def appointment_status_view(request, pk: int):
    appt = _get_visible(request, pk)
    s = AppointmentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = change_status(request.user, appt, s.validated_data['status'],
                         notes=s.validated_data.get('notes'), request=request)
    return Response({'ok': True, 'data': appointment_payload(appt), 'message': 'Estado actualizado'})
