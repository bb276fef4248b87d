"""
Appointment booking and status workflow.

A specialist's active appointments (pending, confirmed, in progress) never
overlap.  The check runs inside the booking transaction with the
specialist row locked, so two concurrent bookings of the same slot cannot
both succeed on databases that honour ``SELECT ... FOR UPDATE``.
"""
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic.exceptions import ApiError
from clinic.models import Appointment, Specialist
from clinic.roles import Permission as P, Role, coerce_role, has_permission
from clinic.services.audit import log_action

User = get_user_model()


def appointment_payload(a: Appointment) -> dict:
    return {
        'id': a.id,
        'patientId': a.patient_id,
        'patientName': a.patient.get_full_name() or a.patient.email,
        'specialistId': a.specialist_id,
        'specialistName': a.specialist.full_name,
        'specialty': a.specialist.specialty,
        'scheduledAt': a.scheduled_at.isoformat(),
        'durationMinutes': a.duration_minutes,
        'status': a.status,
        'reason': a.reason,
        'notes': a.notes,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
    }


def visible_appointments(user):
    qs = Appointment.objects.select_related('patient', 'specialist')
    if has_permission(user.role, P.MANAGE_APPOINTMENTS):
        return qs
    if coerce_role(user.role) == Role.SPECIALIST:
        return qs.filter(specialist__user=user)
    return qs.filter(patient=user)


def find_conflict(specialist_id, start, duration_minutes, *, exclude_id=None):
    """Return an active appointment overlapping ``[start, start + duration)``."""
    end = start + timedelta(minutes=duration_minutes)
    window_start = start - timedelta(minutes=settings.MAX_APPOINTMENT_DURATION)
    qs = Appointment.objects.filter(
        specialist_id=specialist_id,
        status__in=Appointment.ACTIVE_STATUSES,
        scheduled_at__lt=end,
        scheduled_at__gt=window_start,
    )
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    for other in qs:
        if other.scheduled_at + timedelta(minutes=other.duration_minutes) > start:
            return other
    return None


def _resolve_patient(actor, patient_id):
    if has_permission(actor.role, P.MANAGE_APPOINTMENTS):
        if patient_id is None:
            raise ValidationError({'patientId': 'Debe indicar el paciente'})
        patient = User.objects.filter(id=patient_id, is_active=True).first()
        if patient is None:
            raise NotFound('Paciente no encontrado')
        return patient
    if has_permission(actor.role, P.BOOK_APPOINTMENTS):
        return actor
    raise PermissionDenied()


@transaction.atomic
def book_appointment(actor, data: dict, *, request=None) -> Appointment:
    patient = _resolve_patient(actor, data.get('patientId'))
    specialist = Specialist.objects.select_for_update().filter(id=data['specialistId']).first()
    if specialist is None:
        raise NotFound('Especialista no encontrado')
    if not specialist.is_available:
        raise ApiError('specialist_not_available', status_code=409)

    start = data['scheduledAt']
    if start <= timezone.now():
        raise ValidationError({'scheduledAt': 'La fecha debe ser futura'})
    duration = data.get('durationMinutes') or 30
    if find_conflict(specialist.id, start, duration):
        raise ApiError('time_slot_not_available', status_code=409)

    appt = Appointment.objects.create(
        patient=patient,
        specialist=specialist,
        scheduled_at=start,
        duration_minutes=duration,
        reason=data.get('reason', ''),
        notes=data.get('notes', ''),
        created_by=actor,
    )
    log_action(user=actor, action='CREATE', module='APPOINTMENTS', object_type='appointment',
               object_id=appt.id, detail={'specialistId': specialist.id, 'patientId': patient.id},
               request=request)
    return appt


def _may_change(actor, appt: Appointment, new_status: str) -> bool:
    if has_permission(actor.role, P.MANAGE_APPOINTMENTS):
        return True
    if appt.specialist.user_id == actor.id and has_permission(actor.role, P.MANAGE_OWN_APPOINTMENTS):
        return True
    return appt.patient_id == actor.id and new_status == Appointment.STATUS_CANCELLED


@transaction.atomic
def change_status(actor, appt: Appointment, new_status: str, *, notes=None, request=None) -> Appointment:
    if not _may_change(actor, appt, new_status):
        raise PermissionDenied()
    allowed = Appointment.TRANSITIONS.get(appt.status, set())
    if new_status not in allowed:
        raise ApiError('invalid_transition', details={'from': appt.status, 'to': new_status,
                                                      'allowed': sorted(allowed)})
    previous = appt.status
    appt.status = new_status
    if notes:
        appt.notes = notes
    appt.save(update_fields=['status', 'notes', 'updated_at'])
    log_action(user=actor, action='STATUS_CHANGE', module='APPOINTMENTS', object_type='appointment',
               object_id=appt.id, detail={'from': previous, 'to': new_status}, request=request)
    return appt
