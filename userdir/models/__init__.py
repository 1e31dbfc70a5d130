from .user import NO_LOGIN, FieldValues, NoLogin, Password, PlainText, User
from .search import ActiveFilter, DateFieldMatch, SearchCriteria, SearchResult, SortOrder

__all__ = [
    "User",
    "Password",
    "NoLogin",
    "PlainText",
    "NO_LOGIN",
    "FieldValues",
    "ActiveFilter",
    "DateFieldMatch",
    "SearchCriteria",
    "SearchResult",
    "SortOrder",
]
