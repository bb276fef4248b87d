"""
The Identity record as the client caches it.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Union


class IdentityFormatError(ValueError):
    """A persisted identity blob could not be decoded."""


def _flag(value: Any, name: str) -> bool:
    # Some databases hand booleans back as 0/1
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    raise IdentityFormatError(f"'{name}' must be a boolean, got {value!r}")


@dataclass
class Identity:
    id: Union[int, str]
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool = True
    is_new: bool = False
    phone: Optional[str] = None
    is_admin: bool = False
    extra: dict = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: Any) -> "Identity":
        """Build an Identity from the camelCase record the API returns.

        Raises :class:`IdentityFormatError` for anything that is not such a
        record.  Unknown keys are kept in ``extra``.
        """
        if not isinstance(data, dict):
            raise IdentityFormatError('identity must be an object')
        try:
            ident = data['id']
            email = data['email']
            role = data['role']
        except KeyError as e:
            raise IdentityFormatError(f'missing field {e.args[0]!r}') from e
        if isinstance(ident, bool) or not isinstance(ident, (int, str)) or ident == '':
            raise IdentityFormatError("'id' must be an integer or a non-empty string")
        if not isinstance(email, str) or not isinstance(role, str):
            raise IdentityFormatError("'email' and 'role' must be strings")

        known = {'id', 'email', 'firstName', 'lastName', 'role', 'phone', 'isActive', 'isNew', 'isAdmin'}
        return cls(
            id=ident,
            email=email,
            first_name=str(data.get('firstName') or ''),
            last_name=str(data.get('lastName') or ''),
            role=role,
            phone=data.get('phone') or None,
            is_active=_flag(data.get('isActive', True), 'isActive'),
            is_new=_flag(data.get('isNew', False), 'isNew'),
            is_admin=_flag(data.get('isAdmin', False), 'isAdmin'),
            extra={k: v for k, v in data.items() if k not in known},
        )

    @classmethod
    def from_json(cls, raw: str) -> "Identity":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise IdentityFormatError(f'identity is not valid JSON: {e}') from e
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        d = asdict(self)
        data = dict(d.pop('extra'))
        data.update({
            'id': d['id'],
            'email': d['email'],
            'firstName': d['first_name'],
            'lastName': d['last_name'],
            'role': d['role'],
            'phone': d['phone'],
            'isActive': d['is_active'],
            'isNew': d['is_new'],
            'isAdmin': d['is_admin'],
        })
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
