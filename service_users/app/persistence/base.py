"""
Persistence contract for user records.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..users.models import UserRecord


class UserRepository(ABC):
    """
    Storage backend for user records.

    Implementations enforce email uniqueness themselves: ``create`` and
    ``update_by_id`` raise ``shared.errors.ConflictError`` on a unique
    violation, and ``update_by_id`` raises ``shared.errors.NotFoundError``
    for an unknown identifier. Any other exception is an infrastructure
    failure.
    """

    async def start(self):
        """Open connections. No-op by default."""

    async def stop(self):
        """Release connections. No-op by default."""

    async def health_check(self) -> bool:
        return True

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        """Return the record with the given identifier, if any."""

    @abstractmethod
    async def find_by_field(self, name: str, value: Any) -> Optional[UserRecord]:
        """Return the first record whose field ``name`` equals ``value``."""

    @abstractmethod
    async def find_all(self) -> List[UserRecord]:
        """Return every record, oldest first."""

    @abstractmethod
    async def create(self, data: Dict[str, Any]) -> UserRecord:
        """Persist a new record and return it with its assigned identifier."""

    @abstractmethod
    async def update_by_id(self, user_id: str, fields: Dict[str, Any]) -> UserRecord:
        """Merge ``fields`` onto an existing record and return the result."""

    @abstractmethod
    async def delete_by_id(self, user_id: str) -> bool:
        """Delete a record. Returns False when it did not exist."""
