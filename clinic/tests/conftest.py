import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from clinic.models import Specialist, User
from clinic.roles import Role

PASSWORD = 'Passw0rd1'


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    # Throttle history lives in the cache and would leak between tests
    cache.clear()
    yield
    cache.clear()


def make_user(role, email=None, *, is_new=False, password=PASSWORD, **extra):
    email = email or f"{str(role).lower()}@example.com"
    return User.objects.create_user(
        email=email, password=password, role=role, is_new=is_new,
        first_name=extra.pop('first_name', 'Test'), last_name=extra.pop('last_name', str(role).title()),
        **extra,
    )


@pytest.fixture
def superadmin(db):
    return make_user(Role.SUPERADMIN, can_admin=True)


@pytest.fixture
def admin(db):
    return make_user(Role.ADMIN, can_admin=True)


@pytest.fixture
def receptionist(db):
    return make_user(Role.RECEPTIONIST)


@pytest.fixture
def patient(db):
    return make_user(Role.PATIENT)


@pytest.fixture
def specialist_user(db):
    return make_user(Role.SPECIALIST)


@pytest.fixture
def specialist(specialist_user):
    return Specialist.objects.create(user=specialist_user, full_name='Dra. Sofía Ruiz', specialty='Cardiología')


@pytest.fixture
def api():
    return APIClient()


@pytest.fixture
def client_for():
    def _make(user):
        c = APIClient()
        c.force_authenticate(user=user)
        return c
    return _make
