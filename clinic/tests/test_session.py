import json
import logging

import pytest

from clinic.client import FileStorage, Identity, IdentityFormatError, MemoryStorage, SessionBinder, SessionContext
from clinic.client.session import SessionState
from clinic.client.storage import TOKEN_KEY, USER_KEY
from clinic.roles import Permission as P


def identity(role='ADMIN', **extra):
    data = {'id': 7, 'email': 'ana@example.com', 'firstName': 'Ana', 'lastName': 'Gil', 'role': role,
            'isActive': True, 'isNew': False}
    data.update(extra)
    return data


@pytest.fixture
def context():
    return SessionContext(MemoryStorage())


def test_starts_unloaded_then_unauthenticated_without_token(context):
    binder = SessionBinder(context)
    assert binder.state is SessionState.UNLOADED
    assert binder.load() is SessionState.UNAUTHENTICATED
    assert not binder.has_permission(P.MANAGE_USERS)


def test_identity_without_token_is_unauthenticated(context):
    context.storage.set(USER_KEY, json.dumps(identity()))
    assert SessionBinder(context).load() is SessionState.UNAUTHENTICATED


def test_authenticated_queries_use_stored_role(context):
    context.persist('tok', identity('ADMIN'))
    binder = SessionBinder(context)
    assert binder.load() is SessionState.AUTHENTICATED
    assert binder.has_permission(P.MANAGE_USERS)
    assert not binder.has_permission(P.MANAGE_DATABASE)
    assert binder.has_any_permission([P.MANAGE_DATABASE, P.MANAGE_USERS])
    assert binder.has_all_permissions([])
    assert binder.is_admin() and not binder.is_super_admin()


def test_corrupt_identity_clears_storage(context, caplog, monkeypatch):
    # the project logger does not propagate to the root handler caplog listens on
    monkeypatch.setattr(logging.getLogger('clinic'), 'propagate', True)
    context.storage.set(TOKEN_KEY, 'tok')
    context.storage.set(USER_KEY, 'not-json')
    binder = SessionBinder(context)
    with caplog.at_level(logging.WARNING, logger='clinic.client.session'):
        state = binder.load()
    assert state is SessionState.UNAUTHENTICATED
    assert context.storage.get(TOKEN_KEY) is None
    assert context.storage.get(USER_KEY) is None
    assert not binder.has_any_permission([P.MANAGE_USERS])
    assert not binder.has_all_permissions([])
    assert not binder.is_admin()
    assert 'corrupt' in caplog.text


def test_signal_refresh_reflects_new_role(context):
    context.persist('tok', identity('PATIENT'))
    binder = SessionBinder(context)
    binder.load()
    assert not binder.has_permission(P.MANAGE_USERS)

    context.replace_identity(identity('SUPERADMIN'))
    assert binder.role == 'SUPERADMIN'
    assert binder.has_permission('anything_at_all')


def test_signal_with_corrupt_record_logs_out(context):
    context.persist('tok', identity())
    binder = SessionBinder(context)
    binder.load()
    context.storage.set(USER_KEY, '{"id": "x"}')
    context.notify()
    assert binder.state is SessionState.UNAUTHENTICATED


def test_contexts_do_not_share_signals():
    a, b = SessionContext(), SessionContext()
    a.persist('tok', identity('PATIENT'))
    binder = SessionBinder(a)
    binder.load()
    b.persist('tok', identity('SUPERADMIN'))
    assert binder.role == 'PATIENT'


def test_close_unsubscribes(context):
    context.persist('tok', identity('PATIENT'))
    with SessionBinder(context) as binder:
        pass
    context.replace_identity(identity('ADMIN'))
    assert binder.role == 'PATIENT'


def test_logout_clears_and_navigates(context):
    context.persist('tok', identity(), refresh='ref')
    visited = []
    binder = SessionBinder(context, navigate=visited.append)
    binder.load()
    binder.logout()
    assert binder.state is SessionState.UNAUTHENTICATED
    assert context.token is None and context.refresh_token is None
    assert visited == ['/login']


def test_identity_accepts_numeric_flags():
    ident = Identity.from_dict(identity(isNew=1, isActive=0))
    assert ident.is_new is True
    assert ident.is_active is False
    with pytest.raises(IdentityFormatError):
        Identity.from_dict(identity(isNew='yes'))
    with pytest.raises(IdentityFormatError):
        Identity.from_json('[]')


def test_identity_keeps_unknown_fields():
    ident = Identity.from_dict(identity(avatar='a.png'))
    assert ident.to_dict()['avatar'] == 'a.png'
    assert Identity.from_json(ident.to_json()) == ident


def test_file_storage_survives_reopen(tmp_path):
    path = tmp_path / 'session.json'
    SessionContext(FileStorage(path)).persist('tok', identity('RECEPTIONIST'))
    binder = SessionBinder(SessionContext(FileStorage(path)))
    assert binder.load() is SessionState.AUTHENTICATED
    assert binder.has_permission(P.MANAGE_STUDY_REQUESTS)


def test_file_storage_ignores_garbage(tmp_path):
    path = tmp_path / 'session.json'
    path.write_text('{{{', encoding='utf-8')
    storage = FileStorage(path)
    assert storage.get(TOKEN_KEY) is None
    storage.set(TOKEN_KEY, 'tok')
    assert json.loads(path.read_text(encoding='utf-8')) == {TOKEN_KEY: 'tok'}


def test_identity_accepts_string_id(context):
    context.persist('tok', identity(id='665f1c2a9b'))
    binder = SessionBinder(context)
    assert binder.load() is SessionState.AUTHENTICATED
    assert binder.identity.id == '665f1c2a9b'
    with pytest.raises(IdentityFormatError):
        Identity.from_dict(identity(id=''))
    with pytest.raises(IdentityFormatError):
        Identity.from_dict(identity(id=True))
