from .database import Database
from .migrations import run_migrations
from .repositories import (
    AttributeCatalog,
    AttributeStore,
    UserStore,
)

__all__ = [
    "Database",
    "run_migrations",
    "AttributeCatalog",
    "AttributeStore",
    "UserStore",
]
