from datetime import datetime, timedelta, timezone

import pytest

from userdir.core.ids import new_id, parse_id
from userdir.errors import InvalidArgumentError
from userdir.models.search import ActiveFilter, SearchCriteria
from userdir.models.user import PlainText, User, normalize_values


def test_search_criteria_defaults() -> None:
    criteria = SearchCriteria()

    assert criteria.active == ActiveFilter.ACTIVE
    assert criteria.ids is None
    assert criteria.limit is None
    assert criteria.order is None


def test_single_strings_become_lists() -> None:
    criteria = SearchCriteria(return_fields="email", match_field_has_value="phone", ids="x")

    assert criteria.return_fields == ["email"]
    assert criteria.match_field_has_value == ["phone"]
    assert criteria.ids == ["x"]


def test_ids_are_coerced_to_strings() -> None:
    assert SearchCriteria(ids=[42, None]).ids == ["42", "None"]
    assert SearchCriteria(ids=7).ids == ["7"]


@pytest.mark.parametrize("value, expected", [("10", 10), (0, 0), (-5, None), ("ten", None), (False, None)])
def test_pagination_coercion(value, expected) -> None:
    assert SearchCriteria(limit=value).limit == expected
    assert SearchCriteria(offset=value).offset == expected


def test_timestamps_are_normalised_to_utc() -> None:
    naive = SearchCriteria(created_after=datetime(2024, 1, 1, 12, 0))
    assert naive.created_after.tzinfo == timezone.utc

    oslo = timezone(timedelta(hours=1))
    shifted = SearchCriteria(updated_after=datetime(2024, 1, 1, 12, 0, tzinfo=oslo))
    assert shifted.updated_after == datetime(2024, 1, 1, 11, 0, tzinfo=timezone.utc)
    assert shifted.updated_after.tzinfo == timezone.utc


@pytest.mark.parametrize(
    "values, expected",
    [(None, [""]), ([], [""]), ("a", ["a"]), (["a", "b"], ["a", "b"]), ([None, "b"], ["", "b"])],
)
def test_normalize_values(values, expected) -> None:
    assert normalize_values(values) == expected


def test_user_dict_hides_password_hash() -> None:
    user = User(id=new_id(), username="alice", password_hash="$2b$hash")

    assert "password_hash" not in user.to_dict()
    assert "$2b$hash" not in repr(user)
    assert user.to_dict()["login_disabled"] is False


def test_plaintext_repr_hides_value() -> None:
    assert "hunter2" not in repr(PlainText("hunter2"))


def test_ids() -> None:
    user_id = new_id()

    assert parse_id(user_id.upper()) == user_id
    with pytest.raises(InvalidArgumentError):
        parse_id("nope")
    with pytest.raises(InvalidArgumentError):
        parse_id(None)
