"""
Create and update coordination for user records.
"""

import uuid
from contextlib import nullcontext
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from shared.errors import (
    ConflictError, InvalidIdentifierError, NotFoundError, ValidationFailedError
)
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..persistence.base import UserRepository
from .models import (
    BulkFailure, BulkOutcome, IssueCategory, UserRecord, ValidationIssue, USER_FIELDS
)
from .validator import normalize, validate


def duplicate_email_issue(message: str = "Email already in use") -> ValidationIssue:
    return ValidationIssue("email", message, IssueCategory.DUPLICATE)


class BulkMutationCoordinator:
    """
    Applies user creates and updates against a repository.

    A submission is processed one item at a time in input order. Failures
    are isolated to their item: every item ends up either in
    ``BulkOutcome.created`` or in ``BulkOutcome.failures`` and nothing
    already created is rolled back.
    """

    def __init__(self, repository: UserRepository, metrics: Optional[MetricsCollector] = None):
        self.repository = repository
        self.metrics = metrics
        self.logger = get_logger("users.coordinator")

    async def submit(self, items: Sequence[Any]) -> BulkOutcome:
        """Validate and create every item, collecting per-item failures."""
        outcome = BulkOutcome()
        committed_emails: Set[str] = set()

        timer = self.metrics.time_operation("bulk_submit_duration_seconds") if self.metrics else nullcontext()
        with timer:
            await self._submit_items(items, outcome, committed_emails)

        if self.metrics:
            self.metrics.increment_counter("bulk_items_total", len(outcome.created), outcome="created")
            self.metrics.increment_counter("bulk_items_total", len(outcome.failures), outcome="failed")

        self.logger.info(
            "Bulk submission processed",
            total=outcome.total,
            created=len(outcome.created),
            failed=len(outcome.failures)
        )
        return outcome

    async def _submit_items(self, items: Sequence[Any], outcome: BulkOutcome, committed_emails: Set[str]):
        for index, item in enumerate(items):
            issues = await self._create_one(item, outcome, committed_emails)
            if issues:
                outcome.failures.append(BulkFailure(index=index, issues=issues))

    async def _create_one(
        self,
        item: Any,
        outcome: BulkOutcome,
        committed_emails: Set[str]
    ) -> List[ValidationIssue]:
        """Create a single item, returning its issues on failure."""
        issues = validate(item)
        if issues:
            return issues

        data = normalize(item)
        email = data["email"]

        if email in committed_emails:
            return [duplicate_email_issue("Email is duplicated within the request")]

        try:
            if await self.repository.find_by_field("email", email) is not None:
                return [duplicate_email_issue()]
            record = await self.repository.create(data)
        except ConflictError:
            # Lost a race against a concurrent writer after the lookup above
            return [duplicate_email_issue()]
        except Exception as e:
            self.logger.error("Error creating user", error=str(e))
            return [ValidationIssue("body", str(e) or type(e).__name__, IssueCategory.ERROR)]

        committed_emails.add(email)
        outcome.created.append(record)
        return []

    async def update_partial(self, user_id: str, fields: Any) -> UserRecord:
        """
        Merge the supplied fields onto an existing user.

        Only ``name``, ``email`` and ``age`` are considered; keys that are
        absent keep their stored value. Raises ``InvalidIdentifierError``,
        ``ValidationFailedError`` or ``NotFoundError``.
        """
        user_id = self._check_id(user_id)
        if not isinstance(fields, Mapping):
            raise ValidationFailedError(validate(fields, partial=True))

        updates: Dict[str, Any] = {key: fields[key] for key in USER_FIELDS if key in fields}
        issues = validate(updates, partial=True)
        if issues:
            raise ValidationFailedError(issues)

        existing = await self.repository.find_by_id(user_id)
        if existing is None:
            raise NotFoundError("User not found", {"id": user_id})

        updates = normalize(updates)
        if updates.get("email", existing.email) != existing.email:
            other = await self.repository.find_by_field("email", updates["email"])
            if other is not None and other.id != existing.id:
                raise ValidationFailedError([duplicate_email_issue("Email already in use by another user")])

        if not updates:
            return existing

        try:
            record = await self.repository.update_by_id(user_id, updates)
        except ConflictError:
            raise ValidationFailedError([duplicate_email_issue("Email already in use by another user")])

        self.logger.info("User updated", user_id=user_id, fields=sorted(updates))
        return record

    async def get(self, user_id: str) -> UserRecord:
        user_id = self._check_id(user_id)
        record = await self.repository.find_by_id(user_id)
        if record is None:
            raise NotFoundError("User not found", {"id": user_id})
        return record

    async def list_users(self) -> List[UserRecord]:
        return await self.repository.find_all()

    async def delete(self, user_id: str) -> None:
        user_id = self._check_id(user_id)
        if not await self.repository.delete_by_id(user_id):
            raise NotFoundError("User not found", {"id": user_id})
        self.logger.info("User deleted", user_id=user_id)

    @staticmethod
    def _check_id(user_id: str) -> str:
        """Return the canonical lowercase, hyphenated form of ``user_id``."""
        try:
            return str(uuid.UUID(user_id))
        except (TypeError, ValueError):
            raise InvalidIdentifierError(user_id)
