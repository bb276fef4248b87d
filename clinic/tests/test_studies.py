from decimal import Decimal

import pytest

from clinic.models import ContactMessage, StudyCatalogItem, StudyRequest

pytestmark = pytest.mark.django_db


@pytest.fixture
def catalog(db):
    return [
        StudyCatalogItem.objects.create(name='Biometría Hemática', category='hematologia', price=Decimal('250.00')),
        StudyCatalogItem.objects.create(name='Perfil Tiroideo', category='hormonas', price=Decimal('620.00')),
        StudyCatalogItem.objects.create(name='Retirado', category='otros', price=Decimal('99.00'), is_active=False),
    ]


def create(client, items, **extra):
    return client.post('/api/study-requests', {'studies': items, **extra}, format='json')


def test_catalog_is_public_and_hides_inactive(api, catalog):
    r = api.get('/api/study-catalog')
    assert r.status_code == 200
    names = [s['name'] for s in r.json()['data']]
    assert 'Retirado' not in names
    assert len(names) == 2


def test_patient_request_prices_and_status(client_for, patient, catalog):
    r = create(client_for(patient), [{'studyId': catalog[0].id, 'quantity': 2}, {'studyId': catalog[1].id}])
    assert r.status_code == 201, r.json()
    data = r.json()['data']
    assert data['status'] == 'pending_payment'
    assert data['totalAmount'] == '1120.00'
    assert data['studies'][0] == {'studyId': catalog[0].id, 'studyName': 'Biometría Hemática',
                                  'price': '250.00', 'quantity': 2}
    assert StudyRequest.objects.get().patient == patient


def test_inactive_or_unknown_study_rejects_request(client_for, patient, catalog):
    r = create(client_for(patient), [{'studyId': catalog[0].id}, {'studyId': catalog[2].id}, {'studyId': 9999}])
    assert r.status_code == 400
    err = r.json()['error']
    assert err['code'] == 'invalid_studies'
    assert err['details'] == {'studyIds': sorted([catalog[2].id, 9999])}
    assert not StudyRequest.objects.exists()


def test_request_size_limits(client_for, patient, catalog):
    c = client_for(patient)
    assert create(c, []).status_code == 400
    r = create(c, [{'studyId': catalog[0].id}] * 21)
    assert r.status_code == 400
    assert 'studies' in r.json()['error']['details']
    assert create(c, [{'studyId': catalog[0].id}] * 20).status_code == 201


def test_specialist_cannot_request(client_for, specialist_user, catalog):
    assert create(client_for(specialist_user), [{'studyId': catalog[0].id}]).status_code == 403


def test_staff_status_workflow(client_for, patient, receptionist, catalog):
    req_id = create(client_for(patient), [{'studyId': catalog[0].id}]).json()['data']['id']
    staff = client_for(receptionist)
    url = f'/api/study-requests/{req_id}/status'

    r = staff.patch(url, {'status': 'paid'}, format='json')
    assert r.status_code == 400
    assert 'paymentMethod' in r.json()['error']['details']

    r = staff.patch(url, {'status': 'completed'}, format='json')
    assert r.status_code == 400
    assert r.json()['error']['code'] == 'invalid_transition'

    r = staff.patch(url, {'status': 'paid', 'paymentMethod': 'cash'}, format='json')
    assert r.status_code == 200
    assert r.json()['data']['paymentDate']
    for st in ('in_progress', 'completed'):
        assert staff.patch(url, {'status': st}, format='json').status_code == 200

    r = client_for(patient).post(f'/api/study-requests/{req_id}/cancel')
    assert r.status_code == 400
    assert StudyRequest.objects.get().status == 'completed'


def test_patient_cannot_change_status_but_can_cancel(client_for, patient, catalog):
    c = client_for(patient)
    req_id = create(c, [{'studyId': catalog[0].id}]).json()['data']['id']
    r = c.patch(f'/api/study-requests/{req_id}/status', {'status': 'paid', 'paymentMethod': 'cash'}, format='json')
    assert r.status_code == 403
    r = c.post(f'/api/study-requests/{req_id}/cancel')
    assert r.status_code == 200
    assert r.json()['data']['status'] == 'cancelled'


def test_specialist_sees_all_requests(client_for, patient, specialist_user, catalog):
    create(client_for(patient), [{'studyId': catalog[0].id}])
    r = client_for(specialist_user).get('/api/study-requests')
    assert len(r.json()['data']) == 1


def test_contact_message_is_sanitised(api):
    r = api.post('/api/contact/send', {
        'name': 'María', 'email': 'maria@example.com', 'subject': 'Informes',
        'message': '<b>Hola</b>, quisiera informes de consultas.',
    }, format='json')
    assert r.status_code == 201
    msg = ContactMessage.objects.get()
    assert msg.message == 'Hola, quisiera informes de consultas.'


def test_only_owner_or_staff_may_cancel(client_for, patient, specialist_user, receptionist, catalog):
    req_id = create(client_for(patient), [{'studyId': catalog[0].id}]).json()['data']['id']
    url = f'/api/study-requests/{req_id}/cancel'
    assert client_for(specialist_user).post(url).status_code == 403
    assert client_for(receptionist).post(url).status_code == 200


def test_contact_subject_and_name_drop_markup(api):
    r = api.post('/api/contact/send', {
        'name': '<i>Luis</i>', 'email': 'luis@example.com', 'subject': '<a href="x">Citas</a>',
        'message': 'Necesito agendar una consulta.',
    }, format='json')
    assert r.status_code == 201
    msg = ContactMessage.objects.get()
    assert (msg.name, msg.subject) == ('Luis', 'Citas')
