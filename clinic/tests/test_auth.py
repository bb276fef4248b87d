import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken

from clinic.models import ActivityLog, Specialist, User
from clinic.roles import Role

from .conftest import PASSWORD, make_user

pytestmark = pytest.mark.django_db

STRONG = 'Nuev0Pass!'


def login(client, email, password=PASSWORD, **extra):
    return client.post('/api/auth/login', {'email': email, 'password': password, **extra}, format='json')


def bearer(token):
    c = APIClient()
    c.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    return c


# ---------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------
def test_register_creates_new_patient_by_default(api):
    r = api.post('/api/auth/register', {
        'email': 'Nuevo@Example.com', 'password': 'abc123', 'firstName': 'Nora', 'lastName': 'Nuñez',
    }, format='json')
    assert r.status_code == 201
    body = r.json()
    assert body['ok'] is True
    assert body['data']['user']['role'] == 'PATIENT'
    assert body['data']['user']['isNew'] is True
    assert body['data']['token'] and body['data']['refresh']
    assert User.objects.get(email='nuevo@example.com').role == Role.PATIENT
    assert ActivityLog.objects.filter(action='REGISTER').exists()


def test_register_duplicate_email_conflicts(api, patient):
    r = api.post('/api/auth/register', {
        'email': patient.email.upper(), 'password': 'abc123', 'firstName': 'Otro', 'lastName': 'Usuario',
    }, format='json')
    assert r.status_code == 409
    assert r.json()['error']['code'] == 'email_exists'


def test_register_cannot_pick_superadmin(api):
    r = api.post('/api/auth/register', {
        'email': 'x@example.com', 'password': 'abc123', 'firstName': 'Xavi', 'lastName': 'Xu',
        'role': 'SUPERADMIN',
    }, format='json')
    assert r.status_code == 400
    body = r.json()
    assert body['error']['code'] == 'validation_error'
    assert 'role' in body['error']['details']


def test_register_rejects_weak_password(api):
    r = api.post('/api/auth/register', {
        'email': 'y@example.com', 'password': 'abcdef', 'firstName': 'Yola', 'lastName': 'Yáñez',
    }, format='json')
    assert r.status_code == 400
    assert 'password' in r.json()['error']['details']


# ---------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------
def test_login_returns_tokens_and_redirect(api, specialist_user):
    r = login(api, specialist_user.email)
    assert r.status_code == 200
    data = r.json()['data']
    assert data['user']['email'] == specialist_user.email
    assert data['redirect'] == '/dashboard/especialista'
    assert bearer(data['token']).get('/api/auth/me').status_code == 200


def test_login_new_admin_goes_to_profile_completion(api):
    make_user(Role.ADMIN, 'nuevo.admin@example.com', is_new=True)
    r = login(api, 'nuevo.admin@example.com')
    assert r.json()['data']['redirect'] == '/completar-perfil/admin'


def test_login_ignores_role_sent_by_client(api, patient):
    r = login(api, patient.email, role='SUPERADMIN')
    assert r.status_code == 200
    assert r.json()['data']['user']['role'] == 'PATIENT'
    patient.refresh_from_db()
    assert patient.role == Role.PATIENT


def test_login_bad_password(api, patient):
    r = login(api, patient.email, 'wrong-pass1')
    assert r.status_code == 401
    assert r.json()['error']['code'] == 'invalid_credentials'


def test_login_inactive_account(api, patient):
    patient.is_active = False
    patient.save()
    r = login(api, patient.email)
    assert r.status_code == 401
    assert r.json()['error']['code'] == 'account_inactive'


# ---------------------------------------------------------------------
# Token checks
# ---------------------------------------------------------------------
def test_token_rejected_after_role_change(api, patient):
    token = login(api, patient.email).json()['data']['token']
    patient.role = Role.ADMIN
    patient.save()
    r = bearer(token).get('/api/auth/me')
    assert r.status_code == 401
    assert r.json()['error']['code'] == 'role_changed'


def test_token_of_deactivated_user_is_rejected(api, patient):
    token = login(api, patient.email).json()['data']['token']
    patient.is_active = False
    patient.save()
    r = bearer(token).get('/api/auth/me')
    assert r.status_code == 401
    assert r.json()['error']['code'] == 'account_inactive'


def test_refresh_with_garbage_token_is_unauthorized(api):
    r = api.post('/api/auth/refresh', {'refresh': 'not-a-token'}, format='json')
    assert r.status_code == 401
    assert r.json()['error']['code'] == 'invalid_token'


def test_missing_token_is_unauthorized(api):
    r = api.get('/api/auth/me')
    assert r.status_code == 401
    assert r.json() == {'ok': False, 'error': {'code': 'unauthorized', 'message': r.json()['error']['message']}}


def test_refresh_issues_new_access_token(api, patient):
    data = login(api, patient.email).json()['data']
    r = api.post('/api/auth/refresh', {'refresh': data['refresh']}, format='json')
    assert r.status_code == 200
    assert bearer(r.json()['data']['token']).get('/api/auth/me').status_code == 200


def test_logout_blacklists_refresh_token(api, patient):
    data = login(api, patient.email).json()['data']
    c = bearer(data['token'])
    r = c.post('/api/auth/logout', {'refresh': data['refresh']}, format='json')
    assert r.status_code == 200
    assert r.json()['data']['blacklisted'] == 1
    assert BlacklistedToken.objects.count() == 1
    r = api.post('/api/auth/refresh', {'refresh': data['refresh']}, format='json')
    assert r.status_code == 401
    assert r.json()['error']['code'] == 'invalid_token'
    assert ActivityLog.objects.filter(action='LOGOUT', user=patient).exists()


# ---------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------
def test_me_returns_identity(client_for, receptionist):
    r = client_for(receptionist).get('/api/auth/me')
    data = r.json()['data']
    assert set(data) >= {'id', 'email', 'firstName', 'lastName', 'role', 'phone', 'isActive', 'isNew', 'isAdmin'}
    assert data['roleLabel'] == 'Recepcionista'


def test_me_update_names_and_phone(client_for, patient):
    r = client_for(patient).put('/api/auth/me', {'firstName': 'Paula', 'phone': '+52 55 1234 5678'}, format='json')
    assert r.status_code == 200
    patient.refresh_from_db()
    assert patient.first_name == 'Paula'
    assert patient.phone == '+52 55 1234 5678'


def test_me_cannot_change_role_or_email(client_for, patient):
    client_for(patient).put('/api/auth/me', {'role': 'SUPERADMIN', 'email': 'evil@example.com'}, format='json')
    patient.refresh_from_db()
    assert patient.role == Role.PATIENT
    assert patient.email == 'patient@example.com'


def test_me_password_change_requires_current_password(client_for, patient):
    c = client_for(patient)
    r = c.put('/api/auth/me', {'newPassword': 'otra123'}, format='json')
    assert r.status_code == 400
    r = c.put('/api/auth/me', {'currentPassword': 'nope', 'newPassword': 'otra123'}, format='json')
    assert r.status_code == 401
    assert r.json()['error']['code'] == 'invalid_password'
    r = c.put('/api/auth/me', {'currentPassword': PASSWORD, 'newPassword': 'otra123'}, format='json')
    assert r.status_code == 200
    patient.refresh_from_db()
    assert patient.check_password('otra123')


# ---------------------------------------------------------------------
# Profile completion
# ---------------------------------------------------------------------
def test_profile_steps_depend_on_role(client_for):
    spec = make_user(Role.SPECIALIST, 'doc@example.com', is_new=True)
    adm = make_user(Role.ADMIN, 'adm@example.com', is_new=True)
    pat = make_user(Role.PATIENT, 'pat@example.com', is_new=True)
    sup = make_user(Role.SUPERADMIN, 'sup@example.com', is_new=True, can_admin=True)

    def steps(user):
        return [s['id'] for s in client_for(user).get('/api/auth/complete-profile').json()['data']['steps']]

    assert steps(spec) == ['welcome', 'commitment', 'personal', 'professional', 'training', 'photo']
    assert steps(adm) == ['personal', 'photo', 'confirmation', 'tutorial']
    assert steps(pat) == ['welcome', 'commitment', 'personal', 'contact']
    assert steps(sup) == steps(pat)


def test_complete_profile_for_specialist(client_for, django_capture_on_commit_callbacks):
    user = make_user(Role.SPECIALIST, 'doc@example.com', is_new=True)
    payload = {
        'suffix': 'Dr.', 'firstName': 'Luis', 'lastName': 'Mora', 'phone': '5512345678',
        'newPassword': STRONG, 'confirmPassword': STRONG,
        'specialty': 'Cardiología', 'licenseNumber': '12345678', 'assignedOffice': 'C-12',
        'biography': '<script>alert(1)</script>Cardiólogo con 10 años', 'yearsOfExperience': 10,
        'consultationFee': '850.00',
        'courses': [{'title': 'ACLS', 'institution': 'AHA', 'year': 2020}],
    }
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        r = client_for(user).post('/api/auth/complete-profile', payload, format='json')
    assert r.status_code == 200, r.json()
    data = r.json()['data']
    assert data['isNew'] is False
    assert data['redirect'] == '/dashboard/especialista'
    assert len(callbacks) == 1

    user.refresh_from_db()
    assert user.check_password(STRONG)
    spec = Specialist.objects.get(user=user)
    assert spec.full_name == 'Dr. Luis Mora'
    assert spec.license_number == '12345678'
    assert '<script>' not in spec.biography
    assert spec.courses == [{'title': 'ACLS', 'institution': 'AHA', 'year': 2020}]
    assert spec.is_available


def test_complete_profile_password_policy(client_for):
    user = make_user(Role.PATIENT, 'pat@example.com', is_new=True)
    c = client_for(user)
    r = c.post('/api/auth/complete-profile', {
        'firstName': 'Ana', 'lastName': 'Gil', 'newPassword': 'weakpass', 'confirmPassword': 'weakpass',
    }, format='json')
    assert r.status_code == 400
    assert 'newPassword' in r.json()['error']['details']
    r = c.post('/api/auth/complete-profile', {
        'firstName': 'Ana', 'lastName': 'Gil', 'newPassword': STRONG, 'confirmPassword': STRONG + 'x',
    }, format='json')
    assert r.status_code == 400
    assert 'confirmPassword' in r.json()['error']['details']


def test_complete_profile_only_once(client_for, patient):
    r = client_for(patient).post('/api/auth/complete-profile', {
        'firstName': 'Ana', 'lastName': 'Gil', 'newPassword': STRONG, 'confirmPassword': STRONG,
    }, format='json')
    assert r.status_code == 409
    assert r.json()['error']['code'] == 'profile_already_completed'


def test_dashboard_modules_for_admin(client_for, admin):
    r = client_for(admin).get('/api/dashboard/modules?module=database')
    data = r.json()['data']
    assert data['roleLabel'] == 'Administrador'
    assert data['roleColor'] == 'primary'
    assert 'database' not in [m['id'] for m in data['modules']]
    assert data['active'] == 'overview'
