from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .user import User


class ActiveFilter(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ALL = "all"


class DateFieldMatch(BaseModel):
    """Compare stored attribute values against ``value``"""
    field: str
    value: Optional[str] = None
    operation: Literal["eq", "gt", "lt"] = "eq"


class SortOrder(BaseModel):
    by: str
    direction: Literal["asc", "desc"] = "asc"

    @field_validator("direction", mode="before")
    @classmethod
    def validate_direction(cls, v):
        return "desc" if isinstance(v, str) and v.strip().lower() == "desc" else "asc"


class SearchCriteria(BaseModel):
    """Optional, composable user search criteria"""
    active: ActiveFilter = Field(ActiveFilter.ACTIVE, description="Which active states to include")
    created_after: Optional[datetime] = None
    updated_after: Optional[datetime] = None
    match_date_fields: List[DateFieldMatch] = Field(default_factory=list)
    match_field_has_value: List[str] = Field(default_factory=list, description="Each must have a non-empty value")
    match_field_has_no_value: List[str] = Field(default_factory=list, description="Any may be missing or empty")
    match_existing_fields: List[str] = Field(default_factory=list, description="Any may exist, empty or not")
    match_all_fields: Dict[str, Union[str, List[str]]] = Field(default_factory=dict)
    match_all_fields_q: Dict[str, Union[str, List[str]]] = Field(default_factory=dict)
    q: Optional[str] = None
    ids: Optional[List[str]] = None
    order: Optional[SortOrder] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    return_fields: List[str] = Field(default_factory=list)

    @field_validator(
        "match_field_has_value",
        "match_field_has_no_value",
        "match_existing_fields",
        "return_fields",
        mode="before",
    )
    @classmethod
    def validate_listish(cls, v):
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("ids", mode="before")
    @classmethod
    def validate_ids(cls, v):
        # Entries are checked and dropped at compile time, never rejected here
        if v is None:
            return v
        if isinstance(v, (list, tuple, set)):
            return [str(item) for item in v]
        return [str(v)]

    @field_validator("limit", "offset", mode="before")
    @classmethod
    def validate_pagination(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            number = int(v)
        except (TypeError, ValueError):
            return None
        return number if number >= 0 else None

    @field_validator("created_after", "updated_after")
    @classmethod
    def validate_timestamp(cls, v):
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


@dataclass
class SearchResult:
    users: List[User] = field(default_factory=list)
    total_matching: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [user.to_dict() for user in self.users],
            "total_matching": self.total_matching,
        }
