import uuid

from userdir.errors import InvalidArgumentError


def new_id() -> str:
    """Time-based unique identifier"""
    return str(uuid.uuid1())


def parse_id(value: str) -> str:
    """Return ``value`` as a canonical UUID string or raise InvalidArgumentError"""
    try:
        return str(uuid.UUID(str(value).strip()))
    except (ValueError, AttributeError, TypeError):
        raise InvalidArgumentError(f"Invalid identifier: \"{value}\"")
