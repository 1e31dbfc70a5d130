"""
Query compiler for user searches.

Turns a SearchCriteria into one parameterised WHERE clause over ``users u``.
Every attribute predicate is a correlated EXISTS / NOT EXISTS over
attribute_values joined to attribute_types by name, so no attribute
identifier has to be known up front and no join multiplies user rows.
The same clause and parameters feed both the paginated select and the
count, so ``total_matching`` always describes the unpaginated match set.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Union

from userdir.db.database import Database
from userdir.db.repositories.attribute_store import AttributeStore
from userdir.errors import InvalidArgumentError
from userdir.models.search import ActiveFilter, SearchCriteria, SearchResult
from userdir.models.user import User
from userdir.core.ids import parse_id

logger = logging.getLogger(__name__)

IDENTITY_SORT_COLUMNS = ("id", "username", "created_at", "updated_at")

USER_COLUMNS = "u.id, u.username, u.password_hash, u.active, u.created_at, u.updated_at"

DEFAULT_ORDER = "u.created_at ASC, u.rowid ASC"

COMPARISONS = {"eq": "=", "gt": ">", "lt": "<"}

MATCH_NOTHING = "0 = 1"

LIKE_ESCAPE = "\\"


def attribute_exists(condition: str, negate: bool = False) -> str:
    """Correlated sub-filter: the user has an attribute row satisfying ``condition``"""
    return (
        f"{'NOT ' if negate else ''}EXISTS (SELECT 1 FROM attribute_values v"
        " JOIN attribute_types t ON t.id = v.attribute_type_id"
        f" WHERE v.user_id = u.id AND {condition})"
    )


def placeholders(count: int) -> str:
    return ", ".join(["?"] * count)


def quote_identifier(name: str) -> str:
    """SQLite identifier quoting; only applied to names already on an allow-list"""
    return '"' + name.replace('"', '""') + '"'


def like_pattern(text: str) -> str:
    """``%text%`` with LIKE wildcards in ``text`` matched literally"""
    escaped = (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def _as_list(value: Union[str, Sequence[str]]) -> List[str]:
    return [value] if isinstance(value, str) else list(value)


def _clean_names(names: Sequence[str]) -> List[str]:
    cleaned = []
    for name in names:
        name = name.strip()
        if name and name not in cleaned:
            cleaned.append(name)
    return cleaned


@dataclass
class CompiledSearch:
    """SQL and bound parameters for one search"""
    where: str
    params: List[Any]
    select_sql: str
    select_params: List[Any]
    count_sql: str
    return_fields: List[str] = field(default_factory=list)


class QueryCompiler:
    """Compiles and runs user searches"""

    def __init__(self, db: Database, attribute_store: AttributeStore, batch_size: int = 500):
        self.db = db
        self.attribute_store = attribute_store
        self.batch_size = batch_size

    def compile(self, criteria: SearchCriteria) -> CompiledSearch:
        return_fields = _clean_names(criteria.return_fields)

        # Validated first so a bad sort key never reaches the database
        order_sql, order_params, sort_select = self._compile_order(criteria, return_fields)

        clauses: List[str] = []
        params: List[Any] = []
        self._add_state_filters(criteria, clauses, params)
        self._add_attribute_filters(criteria, clauses, params)
        self._add_text_filter(criteria, clauses, params)
        self._add_id_filter(criteria, clauses, params)

        where = " AND ".join(f"({clause})" for clause in clauses) or "1 = 1"

        select_sql = f"SELECT {USER_COLUMNS}{sort_select} FROM users u WHERE {where} ORDER BY {order_sql}"
        select_params = order_params + params

        if criteria.limit is not None:
            select_sql += " LIMIT ?"
            select_params.append(criteria.limit)
            if criteria.offset is not None:
                select_sql += " OFFSET ?"
                select_params.append(criteria.offset)
        elif criteria.offset is not None:
            select_sql += " LIMIT -1 OFFSET ?"
            select_params.append(criteria.offset)

        count_sql = f"SELECT COUNT(*) AS total FROM users u WHERE {where}"

        return CompiledSearch(
            where=where,
            params=params,
            select_sql=select_sql,
            select_params=select_params,
            count_sql=count_sql,
            return_fields=return_fields,
        )

    async def search(self, criteria: SearchCriteria) -> SearchResult:
        """Run a search; ``total_matching`` ignores limit and offset"""
        compiled = self.compile(criteria)
        logger.debug(f"Search SQL: {compiled.select_sql} -- params: {compiled.select_params}")

        # One read transaction so the page and the count see the same snapshot
        async with self.db.transaction(readonly=True) as conn:
            rows = await self.db.fetch_all(compiled.select_sql, compiled.select_params, conn=conn)
            count_row = await self.db.fetch_one(compiled.count_sql, compiled.params, conn=conn)

        users = [User.from_row(row) for row in rows]

        if compiled.return_fields and users:
            fields = await self.attribute_store.values_for_users(
                [user.id for user in users],
                compiled.return_fields,
                batch_size=self.batch_size,
            )
            for user in users:
                user.fields = fields.get(user.id, {})

        total = count_row["total"] if count_row else 0
        return SearchResult(users=users, total_matching=total)

    def _compile_order(self, criteria: SearchCriteria, return_fields: List[str]):
        if criteria.order is None:
            return DEFAULT_ORDER, [], ""

        by = criteria.order.by.strip()
        direction = "DESC" if criteria.order.direction == "desc" else "ASC"

        if by in IDENTITY_SORT_COLUMNS:
            return f"u.{quote_identifier(by)} {direction}, u.rowid ASC", [], ""

        if by in return_fields:
            sort_select = (
                ", (SELECT v.value FROM attribute_values v"
                " JOIN attribute_types t ON t.id = v.attribute_type_id"
                " WHERE v.user_id = u.id AND t.name = ?"
                " ORDER BY v.rowid LIMIT 1) AS sort_value"
            )
            return f"sort_value {direction}, u.rowid ASC", [by], sort_select

        message = f"The sort column \"{by}\" is neither an identity column nor in return_fields"
        logger.warning(message)
        raise InvalidArgumentError(message)

    def _add_state_filters(self, criteria: SearchCriteria, clauses: List[str], params: List[Any]) -> None:
        if criteria.active == ActiveFilter.ACTIVE:
            clauses.append("u.active = 1")
        elif criteria.active == ActiveFilter.INACTIVE:
            clauses.append("u.active = 0")

        if criteria.created_after is not None:
            clauses.append("u.created_at > ?")
            params.append(criteria.created_after.isoformat())

        if criteria.updated_after is not None:
            clauses.append("u.updated_at > ?")
            params.append(criteria.updated_after.isoformat())

    def _add_attribute_filters(self, criteria: SearchCriteria, clauses: List[str], params: List[Any]) -> None:
        # Any of these attributes is stored, empty or not
        existing = _clean_names(criteria.match_existing_fields)
        if existing:
            clauses.append(attribute_exists(f"t.name IN ({placeholders(len(existing))})"))
            params.extend(existing)

        # Every one of these has at least one non-empty value
        for name in _clean_names(criteria.match_field_has_value):
            clauses.append(attribute_exists("t.name = ? AND v.value != ''"))
            params.append(name)

        # At least one of these is unset or only holds empty values
        missing = _clean_names(criteria.match_field_has_no_value)
        if missing:
            group = [attribute_exists("t.name = ? AND v.value != ''", negate=True) for _ in missing]
            clauses.append(" OR ".join(group))
            params.extend(missing)

        for name, value in criteria.match_all_fields.items():
            values = _as_list(value)
            if not values:
                clauses.append(MATCH_NOTHING)
                continue
            clauses.append(attribute_exists(f"t.name = ? AND v.value IN ({placeholders(len(values))})"))
            params.append(name.strip())
            params.extend(values)

        for name, value in criteria.match_all_fields_q.items():
            substrings = _as_list(value)
            if not substrings:
                clauses.append(MATCH_NOTHING)
                continue
            likes = " OR ".join([f"v.value LIKE ? ESCAPE '{LIKE_ESCAPE}'"] * len(substrings))
            clauses.append(attribute_exists(f"t.name = ? AND ({likes})"))
            params.append(name.strip())
            params.extend(like_pattern(s) for s in substrings)

        for match in criteria.match_date_fields:
            if not match.field or not match.value:
                continue
            operator = COMPARISONS[match.operation]
            clauses.append(attribute_exists(f"t.name = ? AND v.value {operator} ?"))
            params.extend([match.field.strip(), match.value])

    def _add_text_filter(self, criteria: SearchCriteria, clauses: List[str], params: List[Any]) -> None:
        if not criteria.q:
            return
        pattern = like_pattern(criteria.q)
        clauses.append(
            f"u.username LIKE ? ESCAPE '{LIKE_ESCAPE}'"
            " OR EXISTS (SELECT 1 FROM attribute_values v"
            f" WHERE v.user_id = u.id AND v.value LIKE ? ESCAPE '{LIKE_ESCAPE}')"
        )
        params.extend([pattern, pattern])

    def _add_id_filter(self, criteria: SearchCriteria, clauses: List[str], params: List[Any]) -> None:
        if criteria.ids is None:
            return

        ids: List[str] = []
        for raw in criteria.ids:
            try:
                user_id = parse_id(raw)
            except InvalidArgumentError:
                logger.warning(f"Invalid user id \"{raw}\", skipping")
                continue
            if user_id not in ids:
                ids.append(user_id)

        if not ids:
            clauses.append(MATCH_NOTHING)
            return
        clauses.append(f"u.id IN ({placeholders(len(ids))})")
        params.extend(ids)
