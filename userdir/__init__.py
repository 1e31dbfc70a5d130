"""
userdir - user directory with free-form multi-valued fields and flexible search
"""

from .db import Database, run_migrations
from .errors import (
    ConflictError,
    DirectoryError,
    InvalidArgumentError,
    NotFoundError,
    TransientStoreError,
)
from .models import (
    NO_LOGIN,
    ActiveFilter,
    DateFieldMatch,
    NoLogin,
    PlainText,
    SearchCriteria,
    SearchResult,
    SortOrder,
    User,
)
from .services import DirectoryService

__version__ = "0.1.0"

__all__ = [
    "Database",
    "run_migrations",
    "DirectoryService",
    "User",
    "NoLogin",
    "PlainText",
    "NO_LOGIN",
    "ActiveFilter",
    "DateFieldMatch",
    "SearchCriteria",
    "SearchResult",
    "SortOrder",
    "DirectoryError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "TransientStoreError",
]
