from datetime import timedelta

import pytest
from django.utils import timezone

from clinic.models import Appointment
from clinic.roles import Role

from .conftest import make_user

pytestmark = pytest.mark.django_db


def slot(days=1, hour=10, minute=0):
    base = timezone.now() + timedelta(days=days)
    return base.replace(hour=hour, minute=minute, second=0, microsecond=0)


def book(client, specialist, at, duration=30, **extra):
    return client.post('/api/appointments', {
        'specialistId': specialist.id, 'scheduledAt': at.isoformat(), 'durationMinutes': duration, **extra,
    }, format='json')


def test_patient_books_for_self(client_for, patient, specialist):
    other = make_user(Role.PATIENT, 'other@example.com')
    r = book(client_for(patient), specialist, slot(), patientId=other.id, reason='Chequeo')
    assert r.status_code == 201, r.json()
    appt = Appointment.objects.get()
    assert appt.patient == patient
    assert appt.status == Appointment.STATUS_PENDING
    assert r.json()['data']['specialistName'] == specialist.full_name


def test_receptionist_books_for_patient(client_for, receptionist, patient, specialist):
    c = client_for(receptionist)
    r = book(c, specialist, slot())
    assert r.status_code == 400
    assert 'patientId' in r.json()['error']['details']
    r = book(c, specialist, slot(), patientId=patient.id)
    assert r.status_code == 201
    assert Appointment.objects.get().created_by == receptionist


def test_specialist_cannot_book(client_for, specialist):
    r = book(client_for(specialist.user), specialist, slot())
    assert r.status_code == 403


@pytest.mark.parametrize('duration', [10, 181])
def test_duration_bounds(client_for, patient, specialist, duration):
    r = book(client_for(patient), specialist, slot(), duration=duration)
    assert r.status_code == 400
    assert 'durationMinutes' in r.json()['error']['details']


def test_past_slot_rejected(client_for, patient, specialist):
    r = book(client_for(patient), specialist, timezone.now() - timedelta(hours=1))
    assert r.status_code == 400


def test_overlapping_slot_conflicts(client_for, patient, specialist):
    c = client_for(patient)
    assert book(c, specialist, slot(hour=10), duration=60).status_code == 201
    r = book(c, specialist, slot(hour=10, minute=30))
    assert r.status_code == 409
    assert r.json()['error']['code'] == 'time_slot_not_available'
    # back-to-back is fine
    assert book(c, specialist, slot(hour=11), duration=30).status_code == 201


def test_cancelled_slot_can_be_rebooked(client_for, patient, specialist):
    c = client_for(patient)
    appt_id = book(c, specialist, slot(hour=9)).json()['data']['id']
    r = c.patch(f'/api/appointments/{appt_id}/status', {'status': 'cancelled'}, format='json')
    assert r.status_code == 200
    assert book(c, specialist, slot(hour=9)).status_code == 201


def test_unavailable_specialist(client_for, patient, specialist):
    specialist.is_available = False
    specialist.save()
    r = book(client_for(patient), specialist, slot())
    assert r.status_code == 409
    assert r.json()['error']['code'] == 'specialist_not_available'


def test_visibility_by_role(client_for, patient, specialist, receptionist):
    other = make_user(Role.PATIENT, 'other@example.com')
    book(client_for(patient), specialist, slot(hour=8))
    book(client_for(other), specialist, slot(hour=12))

    assert len(client_for(patient).get('/api/appointments').json()['data']) == 1
    assert len(client_for(specialist.user).get('/api/appointments').json()['data']) == 2
    assert len(client_for(receptionist).get('/api/appointments').json()['data']) == 2

    other_id = Appointment.objects.get(patient=other).id
    assert client_for(patient).get(f'/api/appointments/{other_id}').status_code == 404


def test_status_workflow(client_for, patient, specialist):
    appt_id = book(client_for(patient), specialist, slot()).json()['data']['id']
    doc = client_for(specialist.user)
    url = f'/api/appointments/{appt_id}/status'

    r = doc.patch(url, {'status': 'completed'}, format='json')
    assert r.status_code == 400
    assert r.json()['error']['code'] == 'invalid_transition'

    for st in ('confirmed', 'in_progress', 'completed'):
        r = doc.patch(url, {'status': st}, format='json')
        assert r.status_code == 200, r.json()
    assert Appointment.objects.get().status == 'completed'


def test_patient_may_only_cancel(client_for, patient, specialist):
    appt_id = book(client_for(patient), specialist, slot()).json()['data']['id']
    r = client_for(patient).patch(f'/api/appointments/{appt_id}/status', {'status': 'confirmed'}, format='json')
    assert r.status_code == 403
