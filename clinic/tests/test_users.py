"""
User administration tests.

Written against ``APITestCase`` with forced authentication; the JWT path
itself is covered in ``test_auth``.
"""
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from clinic.models import ActivityLog, Specialist, User
from clinic.roles import Role
from clinic.services.profile import PENDING_SPECIALTY

from .conftest import make_user


class UserAdministrationTests(APITestCase):
    def setUp(self) -> None:
        self.superadmin = make_user(Role.SUPERADMIN, can_admin=True)
        self.admin = make_user(Role.ADMIN, can_admin=True)
        self.receptionist = make_user(Role.RECEPTIONIST)
        self.patient = make_user(Role.PATIENT)

    def authenticate(self, user: User) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def test_admin_lists_users_with_filters(self):
        client = self.authenticate(self.admin)
        response = client.get('/api/users')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 4)

        response = client.get('/api/users', {'role': 'patient'})
        self.assertEqual([u['email'] for u in response.data['data']], [self.patient.email])

        response = client.get('/api/users', {'q': 'recep'})
        self.assertEqual([u['id'] for u in response.data['data']], [self.receptionist.id])

    def test_roles_without_manage_users_are_forbidden(self):
        for user in (self.receptionist, self.patient):
            response = self.authenticate(user).get('/api/users')
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
            self.assertEqual(response.data['error']['code'], 'forbidden')

    def test_create_patient_generates_temp_password(self):
        response = self.authenticate(self.admin).post('/api/users', {
            'email': 'Nuevo.Paciente@example.com', 'firstName': 'Nico', 'lastName': 'Paz', 'role': 'PATIENT',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        temp = response.data['data']['tempPassword']
        self.assertTrue(temp)
        user = User.objects.get(email='nuevo.paciente@example.com')
        self.assertTrue(user.is_new)
        self.assertTrue(user.check_password(temp))
        self.assertTrue(ActivityLog.objects.filter(action='CREATE', module='USERS', user=self.admin).exists())

    def test_create_specialist_gets_placeholder_profile(self):
        response = self.authenticate(self.admin).post('/api/users', {
            'email': 'doc@example.com', 'firstName': 'Diego', 'lastName': 'Luna', 'role': 'SPECIALIST',
            'tempPassword': 'temp123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        spec = Specialist.objects.get(user__email='doc@example.com')
        self.assertEqual(spec.specialty, PENDING_SPECIALTY)
        self.assertFalse(spec.is_available)

    def test_only_superadmin_creates_admins(self):
        payload = {'email': 'otro.admin@example.com', 'firstName': 'Olga', 'lastName': 'Ortiz', 'role': 'ADMIN'}
        response = self.authenticate(self.admin).post('/api/users', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.authenticate(self.superadmin).post('/api/users', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['data']['isAdmin'])

    def test_duplicate_email_conflicts(self):
        response = self.authenticate(self.admin).post('/api/users', {
            'email': self.patient.email, 'firstName': 'Pepe', 'lastName': 'Pérez', 'role': 'PATIENT',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'email_exists')

    def test_update_user_keeps_email(self):
        response = self.authenticate(self.admin).put(f'/api/users/{self.patient.id}', {
            'firstName': 'Pedro', 'email': 'changed@example.com', 'isActive': False,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.first_name, 'Pedro')
        self.assertEqual(self.patient.email, 'patient@example.com')
        self.assertFalse(self.patient.is_active)

    def test_admin_cannot_promote_to_admin(self):
        client = self.authenticate(self.admin)
        response = client.put(f'/api/users/{self.patient.id}', {'role': 'ADMIN'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = client.put(f'/api/users/{self.patient.id}', {'role': 'RECEPTIONIST'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.role, Role.RECEPTIONIST)

    def test_admin_cannot_demote_superadmin(self):
        response = self.authenticate(self.admin).put(
            f'/api/users/{self.superadmin.id}', {'role': 'PATIENT'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_is_superadmin_only(self):
        response = self.authenticate(self.admin).delete(f'/api/users/{self.patient.id}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(User.objects.filter(id=self.patient.id).exists())

        response = self.authenticate(self.superadmin).delete(f'/api/users/{self.patient.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(id=self.patient.id).exists())

    def test_cannot_delete_self(self):
        response = self.authenticate(self.superadmin).delete(f'/api/users/{self.superadmin.id}')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'cannot_delete_self')

    def test_unknown_user_is_not_found(self):
        response = self.authenticate(self.admin).get('/api/users/999999')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'not_found')
