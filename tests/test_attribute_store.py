import pytest

from userdir.core.ids import new_id
from userdir.db.repositories import AttributeStore, UserStore
from userdir.errors import InvalidArgumentError, NotFoundError


@pytest.fixture
async def user_id(user_store: UserStore) -> str:
    user_id = new_id()
    await user_store.create(user_id, "alice", "")
    return user_id


async def test_values_keep_insertion_order(attribute_store: AttributeStore, user_id: str) -> None:
    await attribute_store.add_values(user_id, "email", ["b@example.com", "a@example.com"])
    await attribute_store.add_values(user_id, "email", "c@example.com")

    assert await attribute_store.get_values(user_id, "email") == [
        "b@example.com",
        "a@example.com",
        "c@example.com",
    ]


async def test_duplicates_are_kept(attribute_store: AttributeStore, user_id: str) -> None:
    await attribute_store.add_fields(user_id, {"tag": ["x", "x"]})

    assert await attribute_store.get_values(user_id, "tag") == ["x", "x"]


@pytest.mark.parametrize("values", [None, [], ""])
async def test_no_value_stores_one_empty_string(
    attribute_store: AttributeStore, user_id: str, values
) -> None:
    await attribute_store.add_values(user_id, "nickname", values)

    assert await attribute_store.get_all(user_id) == {"nickname": [""]}


async def test_add_fields_for_missing_user(attribute_store: AttributeStore) -> None:
    with pytest.raises(NotFoundError):
        await attribute_store.add_fields(new_id(), {"email": "ghost@example.com"})


async def test_replace_all(attribute_store: AttributeStore, user_id: str) -> None:
    await attribute_store.add_fields(user_id, {"email": "old@example.com", "phone": "123"})

    await attribute_store.replace_all(user_id, {"email": ["new@example.com"], "city": "Oslo"})

    assert await attribute_store.get_all(user_id) == {
        "email": ["new@example.com"],
        "city": ["Oslo"],
    }


@pytest.mark.parametrize("fields", [{}, None])
async def test_replace_all_with_nothing_clears(
    attribute_store: AttributeStore, user_id: str, fields
) -> None:
    await attribute_store.add_fields(user_id, {"email": "old@example.com"})

    await attribute_store.replace_all(user_id, fields)

    assert await attribute_store.get_all(user_id) == {}


async def test_replace_all_for_missing_user_changes_nothing(
    attribute_store: AttributeStore, user_id: str
) -> None:
    await attribute_store.add_fields(user_id, {"email": "kept@example.com"})

    with pytest.raises(NotFoundError):
        await attribute_store.replace_all(new_id(), {"email": "x"})

    assert await attribute_store.get_all(user_id) == {"email": ["kept@example.com"]}


async def test_remove_attribute_is_idempotent(attribute_store: AttributeStore, user_id: str) -> None:
    await attribute_store.add_fields(user_id, {"email": "a@example.com", "phone": "1"})

    await attribute_store.remove_attribute(user_id, "email")
    await attribute_store.remove_attribute(user_id, "email")
    await attribute_store.remove_attribute(user_id, "never-defined")

    assert await attribute_store.get_all(user_id) == {"phone": ["1"]}


async def test_values_for_users_batches_and_filters(
    attribute_store: AttributeStore, user_store: UserStore
) -> None:
    ids = []
    for i in range(5):
        user_id = new_id()
        await user_store.create(user_id, f"user{i}", "")
        await attribute_store.add_fields(user_id, {"n": str(i), "secret": "s"})
        ids.append(user_id)

    fields = await attribute_store.values_for_users(ids, ["n"], batch_size=2)

    assert {user_id: f["n"] for user_id, f in fields.items()} == {
        user_id: [str(i)] for i, user_id in enumerate(ids)
    }
    assert all("secret" not in f for f in fields.values())


async def test_distinct_values(attribute_store: AttributeStore, user_store: UserStore) -> None:
    for name, city in [("a", "Oslo"), ("b", "Bergen"), ("c", "Oslo")]:
        user_id = new_id()
        await user_store.create(user_id, name, "")
        await attribute_store.add_values(user_id, "city", city)

    assert await attribute_store.distinct_values("city") == ["Bergen", "Oslo"]
    assert await attribute_store.distinct_values("unknown") == []


async def test_failed_replace_all_keeps_existing_rows(attribute_store: AttributeStore, user_id: str) -> None:
    await attribute_store.add_fields(user_id, {"email": ["a@example.com", "b@example.com"], "phone": "1"})

    with pytest.raises(InvalidArgumentError):
        await attribute_store.replace_all(user_id, {"city": "Oslo", "  ": "bad"})

    assert await attribute_store.get_all(user_id) == {
        "email": ["a@example.com", "b@example.com"],
        "phone": ["1"],
    }


async def test_add_no_fields_for_missing_user(attribute_store: AttributeStore) -> None:
    with pytest.raises(NotFoundError):
        await attribute_store.add_fields(new_id(), {})
