"""
Exceptions raised by the user directory
"""


class DirectoryError(Exception):
    """Base exception for the user directory"""
    pass


class InvalidArgumentError(DirectoryError, ValueError):
    """Raised on malformed input: empty username, bad identifier, unknown sort column"""
    pass


class NotFoundError(DirectoryError, LookupError):
    """Raised when a referenced user or attribute type does not exist"""
    pass


class ConflictError(DirectoryError):
    """Raised on a uniqueness violation (username or primary identifier)"""
    pass


class TransientStoreError(DirectoryError):
    """Raised when the backing store or its connection fails"""
    pass
