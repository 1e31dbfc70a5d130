"""
Services package for the user directory
"""

from .directory_service import DirectoryService
from .password_hasher import PasswordHasher
from .query_compiler import CompiledSearch, QueryCompiler

__all__ = [
    "DirectoryService",
    "PasswordHasher",
    "QueryCompiler",
    "CompiledSearch",
]
