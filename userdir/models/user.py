from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union


FieldValues = Union[str, List[str], None]


@dataclass(frozen=True)
class NoLogin:
    """Password placeholder for users that must never be able to log in"""


@dataclass(frozen=True)
class PlainText:
    """A plaintext password, hashed before it reaches the store"""
    value: str = field(repr=False)


Password = Union[NoLogin, PlainText]

NO_LOGIN = NoLogin()


@dataclass
class User:
    """Directory user with its attributes"""
    id: str
    username: str
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    fields: Dict[str, List[str]] = field(default_factory=dict)
    password_hash: str = field(default="", repr=False, compare=False)

    @property
    def login_disabled(self) -> bool:
        return not self.password_hash

    @classmethod
    def from_row(cls, row: Dict[str, Any], fields: Optional[Dict[str, List[str]]] = None) -> "User":
        """Create instance from a users table row"""
        return cls(
            id=row["id"],
            username=row["username"],
            active=bool(row.get("active", 1)),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
            fields=fields if fields is not None else {},
            password_hash=row.get("password_hash") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary, without the password hash"""
        return {
            "id": self.id,
            "username": self.username,
            "active": self.active,
            "login_disabled": self.login_disabled,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "fields": {name: list(values) for name, values in self.fields.items()},
        }


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def normalize_values(values: FieldValues) -> List[str]:
    """Turn a field value into a list; no value still yields one empty string"""
    if values is None:
        return [""]
    if isinstance(values, str):
        return [values]
    values = ["" if v is None else str(v) for v in values]
    return values or [""]
