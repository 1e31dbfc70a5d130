import logging

import bcrypt

logger = logging.getLogger(__name__)


class PasswordHasher:
    """bcrypt hashing; plaintext is trimmed before hashing and before verifying"""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash password using bcrypt"""
        password = (password or "").strip()
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        """Verify password against hash"""
        if not hashed:
            return False
        password = (password or "").strip()
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Malformed hash in the store
            logger.warning("Stored password hash could not be parsed")
            return False
