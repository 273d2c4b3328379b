"""
User data models for the Users Service.
"""

from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


USER_FIELDS = ("name", "email", "age")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IssueCategory(str, Enum):
    """Validation issue categories."""
    MISSING = "missing"
    INVALID = "invalid"
    DUPLICATE = "duplicate"
    ERROR = "error"


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem with one field of a submitted record."""
    field: str
    message: str
    category: IssueCategory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "category": self.category.value
        }


@dataclass
class UserRecord:
    """Stored user record."""
    id: str
    name: str
    email: str
    age: int
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_response(self) -> "UserResponse":
        return UserResponse(
            id=self.id,
            name=self.name,
            email=self.email,
            age=self.age,
            created_at=self.created_at,
            updated_at=self.updated_at
        )


@dataclass
class BulkFailure:
    """Failed bulk item, keyed by its position in the submitted sequence."""
    index: int
    issues: List[ValidationIssue]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "errors": [issue.to_dict() for issue in self.issues]
        }


@dataclass
class BulkOutcome:
    """
    Aggregated result of a bulk submission.

    ``created`` keeps input order, so together with the indexes in
    ``failures`` every submitted item can be correlated back to its
    position in the request.
    """
    created: List[UserRecord] = field(default_factory=list)
    failures: List[BulkFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.failures)

    @property
    def all_created(self) -> bool:
        return not self.failures

    @property
    def none_created(self) -> bool:
        return not self.created

    def has_infrastructure_failure(self) -> bool:
        return any(
            issue.category is IssueCategory.ERROR
            for failure in self.failures
            for issue in failure.issues
        )


class UserResponse(BaseModel):
    """Response model for a user."""
    id: str = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Normalized email address")
    age: int = Field(..., description="Age in years")
    created_at: Optional[datetime] = Field(None, description="Creation time")
    updated_at: Optional[datetime] = Field(None, description="Last update time")


class BulkSummary(BaseModel):
    """Counts for a bulk submission."""
    total: int
    created: int
    failed: int


class BulkCreateResponse(BaseModel):
    """Response model for bulk user creation."""
    created: List[UserResponse] = Field(default_factory=list)
    failures: List[Dict[str, Any]] = Field(default_factory=list)
    summary: BulkSummary

    @classmethod
    def from_outcome(cls, outcome: BulkOutcome) -> "BulkCreateResponse":
        return cls(
            created=[record.to_response() for record in outcome.created],
            failures=[failure.to_dict() for failure in outcome.failures],
            summary=BulkSummary(
                total=outcome.total,
                created=len(outcome.created),
                failed=len(outcome.failures)
            )
        )
