"""
Directory service

Entry point of the user directory: creates, loads, authenticates, mutates,
removes and searches users. Wraps UserStore, AttributeCatalog,
AttributeStore and QueryCompiler, adding input validation and composition.
The schema must already be migrated (see userdir.db.migrations).
"""
import asyncio
import logging
from typing import Callable, List, Mapping, Optional

from pydantic import ValidationError

from userdir.core.config import Settings, settings as default_settings
from userdir.db.database import Database
from userdir.db.repositories.attribute_catalog import AttributeCatalog
from userdir.db.repositories.attribute_store import AttributeStore
from userdir.db.repositories.user_store import UserStore
from userdir.errors import ConflictError, InvalidArgumentError, NotFoundError
from userdir.models.search import SearchCriteria, SearchResult
from userdir.models.user import NO_LOGIN, FieldValues, NoLogin, Password, PlainText, User
from userdir.core.ids import new_id, parse_id
from userdir.services.password_hasher import PasswordHasher
from userdir.services.query_compiler import QueryCompiler

logger = logging.getLogger(__name__)


class DirectoryService:
    """User directory: identity records plus free-form multi-valued fields"""

    def __init__(
        self,
        db: Database,
        hasher: Optional[PasswordHasher] = None,
        id_factory: Callable[[], str] = new_id,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.db = db
        self.hasher = hasher or PasswordHasher(rounds=self.settings.BCRYPT_ROUNDS)
        self.id_factory = id_factory
        self.users = UserStore(db)
        self.catalog = AttributeCatalog(db)
        self.attributes = AttributeStore(db, self.catalog)
        self.compiler = QueryCompiler(db, self.attributes, batch_size=self.settings.HYDRATION_BATCH_SIZE)

    # Passwords ----------------------------------------------------------

    async def hash_password(self, password: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.hasher.hash, password)

    async def check_password(self, password: str, hashed: str) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.hasher.verify, password, hashed)

    async def _hash_for(self, password: Password) -> str:
        if isinstance(password, NoLogin):
            return ""
        if isinstance(password, PlainText):
            return await self.hash_password(password.value)
        raise InvalidArgumentError("Password must be NoLogin or PlainText")

    # Creation -----------------------------------------------------------

    async def username_available(self, username: str) -> bool:
        """Whether no user, active or inactive, holds ``username``"""
        username = (username or "").strip()
        available = not await self.users.username_taken(username)
        logger.debug(f"Username \"{username}\" available: {available}")
        return available

    async def create(
        self,
        username: str,
        password: Password = NO_LOGIN,
        fields: Optional[Mapping[str, FieldValues]] = None,
        user_id: Optional[str] = None,
    ) -> User:
        """Create a user with its initial fields and return it fully loaded"""
        fields = fields or {}
        username = (username or "").strip()
        if not username:
            message = "Trying to create user with empty username"
            logger.warning(message)
            raise InvalidArgumentError(message)

        user_id = parse_id(user_id) if user_id is not None else self.id_factory()

        if not await self.username_available(username):
            message = f"Trying to create user with taken username: \"{username}\""
            logger.info(message)
            raise ConflictError(message)

        password_hash = await self._hash_for(password)

        # Attribute types are created before the write so the transaction stays short
        await self.catalog.resolve_many(fields.keys())

        async with self.db.transaction() as conn:
            await self.users.create(user_id, username, password_hash, conn=conn)
            await self.attributes.add_fields(user_id, fields, conn=conn)

        logger.info(f"Created user \"{username}\" ({user_id})")
        return await self.get_by_id(user_id)

    # Loading ------------------------------------------------------------

    async def _hydrate(self, user: User) -> User:
        user.fields = await self.attributes.get_all(user.id)
        return user

    async def get_by_id(self, user_id: str, include_inactive: bool = False) -> User:
        user_id = parse_id(user_id)
        return await self._hydrate(await self.users.find_by_id(user_id, include_inactive))

    async def get_by_username(self, username: str, include_inactive: bool = False) -> User:
        username = (username or "").strip()
        return await self._hydrate(await self.users.find_by_username(username, include_inactive))

    async def user_exists(self, user_id: str) -> bool:
        try:
            user_id = parse_id(user_id)
        except InvalidArgumentError:
            return False
        return await self.users.exists(user_id)

    async def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the active user matching the credentials, otherwise None.

        Unknown username, disabled login and wrong password all look the same.
        """
        username = (username or "").strip()
        try:
            user = await self.users.find_by_username(username)
        except NotFoundError:
            return None

        if user.login_disabled:
            return None

        if not await self.check_password(password or "", user.password_hash):
            return None

        return await self._hydrate(user)

    async def find_by_attributes(self, criteria: Mapping[str, str]) -> Optional[User]:
        """First active user whose fields equal every given value"""
        match = {name.strip(): (value or "").strip() for name, value in criteria.items()}
        result = await self.compiler.search(SearchCriteria(match_all_fields=match, limit=1))
        if not result.users:
            return None
        return await self._hydrate(result.users[0])

    async def find_by_attribute(self, name: str, value: str) -> Optional[User]:
        return await self.find_by_attributes({name: value})

    # Identity mutations -------------------------------------------------

    async def set_username(self, user_id: str, new_username: str) -> None:
        user_id = parse_id(user_id)
        new_username = (new_username or "").strip()
        if not new_username:
            message = "No new username supplied"
            logger.warning(message)
            raise InvalidArgumentError(message)

        if await self.users.username_taken(new_username, exclude_id=user_id):
            raise ConflictError(f"Username is already taken: \"{new_username}\"")

        await self.users.set_username(user_id, new_username)

    async def set_password(self, user_id: str, password: Password) -> None:
        user_id = parse_id(user_id)
        await self.users.set_password(user_id, await self._hash_for(password))

    async def set_active(self, user_id: str, active: bool) -> None:
        if active is None:
            raise InvalidArgumentError("No new active value supplied")
        await self.users.set_active(parse_id(user_id), active)

    async def remove(self, user_id: str) -> None:
        user_id = parse_id(user_id)
        await self.users.remove(user_id)
        logger.info(f"Removed user {user_id}")

    # Field mutations ----------------------------------------------------

    async def add_field(self, user_id: str, name: str, values: FieldValues) -> None:
        await self.add_fields(user_id, {name: values})

    async def add_fields(self, user_id: str, fields: Mapping[str, FieldValues]) -> None:
        """Append values; existing values are kept, duplicates allowed"""
        await self.attributes.add_fields(parse_id(user_id), fields)

    async def replace_fields(self, user_id: str, fields: Optional[Mapping[str, FieldValues]]) -> None:
        """Replace all fields of a user; anything not in ``fields`` is dropped"""
        await self.attributes.replace_all(parse_id(user_id), fields)

    async def remove_field(self, user_id: str, name: str) -> None:
        user_id = parse_id(user_id)
        if not await self.users.exists(user_id):
            raise NotFoundError(f"No user found for id: \"{user_id}\"")
        await self.attributes.remove_attribute(user_id, name)

    # Field reads --------------------------------------------------------

    async def get_field_values(self, user_id: str, name: str) -> List[str]:
        return await self.attributes.get_values(parse_id(user_id), name)

    async def distinct_field_values(self, name: str) -> List[str]:
        return await self.attributes.distinct_values(name)

    async def field_name(self, type_id: str) -> str:
        return await self.catalog.name_of(type_id)

    # Search -------------------------------------------------------------

    async def search(self, criteria: Optional[SearchCriteria] = None, **options) -> SearchResult:
        """Paginated multi-criteria search.

        Accepts a SearchCriteria or the same options as keyword arguments.
        """
        if criteria is None:
            try:
                criteria = SearchCriteria(**options)
            except ValidationError as e:
                raise InvalidArgumentError(f"Invalid search criteria: {e}") from e
        return await self.compiler.search(criteria)

