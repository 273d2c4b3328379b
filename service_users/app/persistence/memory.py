"""
In-process persistence for user records.
"""

import uuid
from dataclasses import replace
from typing import Any, Dict, List, Optional

from shared.errors import ConflictError, NotFoundError
from shared.logging import get_logger

from ..users.models import UserRecord, USER_FIELDS, utcnow
from .base import UserRepository


class InMemoryUserRepository(UserRepository):
    """Dictionary-backed repository owned by a single service instance."""

    def __init__(self):
        self.logger = get_logger("users.persistence.memory")
        self._records: Dict[str, UserRecord] = {}

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        return self._records.get(user_id)

    async def find_by_field(self, name: str, value: Any) -> Optional[UserRecord]:
        if name != "id" and name not in USER_FIELDS:
            raise ValueError(f"Unknown user field: {name}")
        for record in self._records.values():
            if getattr(record, name) == value:
                return record
        return None

    async def find_all(self) -> List[UserRecord]:
        return sorted(self._records.values(), key=lambda record: record.created_at)

    def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        return any(
            record.email == email and record.id != exclude_id
            for record in self._records.values()
        )

    async def create(self, data: Dict[str, Any]) -> UserRecord:
        if self._email_taken(data["email"]):
            raise ConflictError("email")

        record = UserRecord(
            id=str(uuid.uuid4()),
            name=data["name"],
            email=data["email"],
            age=data["age"]
        )
        self._records[record.id] = record
        self.logger.debug("User stored", user_id=record.id)
        return record

    async def update_by_id(self, user_id: str, fields: Dict[str, Any]) -> UserRecord:
        existing = self._records.get(user_id)
        if existing is None:
            raise NotFoundError("User not found", {"id": user_id})

        if "email" in fields and self._email_taken(fields["email"], exclude_id=user_id):
            raise ConflictError("email")

        updates = {key: value for key, value in fields.items() if key in USER_FIELDS}
        record = replace(existing, updated_at=utcnow(), **updates)
        self._records[user_id] = record
        return record

    async def delete_by_id(self, user_id: str) -> bool:
        return self._records.pop(user_id, None) is not None
