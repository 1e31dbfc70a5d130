from .attribute_catalog import AttributeCatalog
from .attribute_store import AttributeStore
from .user_store import UserStore

__all__ = [
    "AttributeCatalog",
    "AttributeStore",
    "UserStore",
]
