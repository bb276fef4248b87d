from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic.exceptions import ApiError
from clinic.models import Specialist, StudyCatalogItem, StudyRequest
from clinic.roles import Permission as P, has_any_permission, has_permission
from clinic.services.audit import log_action

User = get_user_model()

STAFF_PERMISSIONS = (P.MANAGE_STUDIES, P.MANAGE_STUDY_REQUESTS)
VIEW_ALL_PERMISSIONS = STAFF_PERMISSIONS + (P.VIEW_STUDY_REQUESTS,)


def catalog_payload(item: StudyCatalogItem) -> dict:
    return {
        'id': item.id,
        'name': item.name,
        'category': item.category,
        'categoryLabel': item.get_category_display(),
        'price': str(item.price),
        'isActive': item.is_active,
    }


def request_payload(r: StudyRequest) -> dict:
    return {
        'id': r.id,
        'patientId': r.patient_id,
        'patientName': r.patient.get_full_name() or r.patient.email,
        'referringDoctorId': r.referring_doctor_id,
        'studies': r.studies,
        'totalAmount': str(r.total_amount),
        'status': r.status,
        'paymentMethod': r.payment_method or None,
        'paymentDate': r.payment_date.isoformat() if r.payment_date else None,
        'scheduledDate': r.scheduled_date.isoformat() if r.scheduled_date else None,
        'notes': r.notes,
        'createdAt': r.created_at.isoformat() if r.created_at else None,
    }


def is_study_staff(user) -> bool:
    return has_any_permission(user.role, STAFF_PERMISSIONS)


def visible_requests(user):
    qs = StudyRequest.objects.select_related('patient')
    if has_any_permission(user.role, VIEW_ALL_PERMISSIONS):
        return qs
    return qs.filter(patient=user)


def price_items(items: list[dict]) -> tuple[list[dict], Decimal]:
    """Resolve ``[{studyId, quantity}]`` against the active catalogue.

    Prices are copied into the request so later catalogue changes do not
    alter it.  Any unknown or inactive study rejects the whole list.
    """
    ids = [i['studyId'] for i in items]
    catalog = {s.id: s for s in StudyCatalogItem.objects.filter(id__in=ids, is_active=True)}
    missing = sorted({i for i in ids if i not in catalog})
    if missing:
        raise ApiError('invalid_studies', details={'studyIds': missing})

    lines, total = [], Decimal('0')
    for item in items:
        study = catalog[item['studyId']]
        quantity = item.get('quantity') or 1
        lines.append({
            'studyId': study.id,
            'studyName': study.name,
            'price': str(study.price),
            'quantity': quantity,
        })
        total += study.price * quantity
    return lines, total


def _resolve_patient(actor, patient_id):
    if is_study_staff(actor):
        if patient_id is None:
            raise ValidationError({'patientId': 'Debe indicar el paciente'})
        patient = User.objects.filter(id=patient_id, is_active=True).first()
        if patient is None:
            raise NotFound('Paciente no encontrado')
        return patient
    if has_permission(actor.role, P.REQUEST_STUDIES):
        return actor
    raise PermissionDenied()


@transaction.atomic
def create_request(actor, data: dict, *, request=None) -> StudyRequest:
    patient = _resolve_patient(actor, data.get('patientId'))
    doctor = None
    if data.get('referringDoctorId'):
        doctor = Specialist.objects.filter(id=data['referringDoctorId']).first()
        if doctor is None:
            raise NotFound('Especialista no encontrado')

    lines, total = price_items(data['studies'])
    req = StudyRequest.objects.create(
        patient=patient,
        referring_doctor=doctor,
        studies=lines,
        total_amount=total,
        status=StudyRequest.STATUS_PENDING_PAYMENT,
        notes=data.get('notes', ''),
    )
    log_action(user=actor, action='CREATE', module='STUDIES', object_type='study_request', object_id=req.id,
               detail={'items': len(lines), 'total': str(total)}, request=request)
    return req


def _transition(req: StudyRequest, new_status: str) -> str:
    allowed = StudyRequest.TRANSITIONS.get(req.status, set())
    if new_status not in allowed:
        raise ApiError('invalid_transition', details={'from': req.status, 'to': new_status,
                                                      'allowed': sorted(allowed)})
    previous = req.status
    req.status = new_status
    return previous


@transaction.atomic
def change_status(actor, req: StudyRequest, data: dict, *, request=None) -> StudyRequest:
    if not is_study_staff(actor):
        raise PermissionDenied()
    new_status = data['status']
    previous = _transition(req, new_status)
    if new_status == StudyRequest.STATUS_PAID:
        req.payment_method = data['paymentMethod']
        req.payment_date = timezone.now()
    if data.get('scheduledDate') is not None:
        req.scheduled_date = data['scheduledDate']
    if data.get('notes'):
        req.notes = data['notes']
    req.save()
    log_action(user=actor, action='STATUS_CHANGE', module='STUDIES', object_type='study_request',
               object_id=req.id, detail={'from': previous, 'to': new_status}, request=request)
    return req


@transaction.atomic
def cancel_request(actor, req: StudyRequest, *, request=None) -> StudyRequest:
    if req.patient_id != actor.id and not is_study_staff(actor):
        raise PermissionDenied()
    if req.status == StudyRequest.STATUS_COMPLETED:
        raise ApiError('invalid_transition', 'No se puede cancelar una solicitud completada')
    previous = _transition(req, StudyRequest.STATUS_CANCELLED)
    req.save(update_fields=['status', 'updated_at'])
    log_action(user=actor, action='STATUS_CHANGE', module='STUDIES', object_type='study_request',
               object_id=req.id, detail={'from': previous, 'to': req.status}, request=request)
    return req
