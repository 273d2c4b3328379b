"""
Persistence package for the Users Service.

``UserRepository`` is the contract the coordinator depends on; the
in-memory backend serves local runs and tests, the PostgreSQL backend
relies on a UNIQUE constraint on ``email`` for conflict detection.
"""

from .base import UserRepository
from .memory import InMemoryUserRepository
from .postgres import PostgresUserRepository

__all__ = ["UserRepository", "InMemoryUserRepository", "PostgresUserRepository"]
