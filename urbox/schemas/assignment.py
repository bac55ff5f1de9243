"""Assignment schemas — tasks handed to team members."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from urbox.schemas.common import ApiModel, OptionalTimestamp, Timestamp, utcnow


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def _missing_(cls, value: object) -> AssignmentStatus:
        return cls.PENDING

    @property
    def display(self) -> str:
        if self is AssignmentStatus.IN_PROGRESS:
            return "In Works"
        if self is AssignmentStatus.COMPLETED:
            return "Completed"
        return "Pending"


class Assignment(ApiModel):
    id: str = ""
    title: str = ""
    description: str = ""
    assigned_to: str = ""
    assigned_to_name: str = "Member"
    assigned_by: str = ""
    assigned_by_name: str = "Admin"
    company_id: str = ""
    status: AssignmentStatus = AssignmentStatus.PENDING
    target_date: OptionalTimestamp = None
    assigned_date: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)

    @property
    def is_completed(self) -> bool:
        return self.status == AssignmentStatus.COMPLETED


# ── Response envelopes ──


class AssignmentListResponse(ApiModel):
    assignments: list[Assignment] = Field(default_factory=list)


class AssignmentCreated(ApiModel):
    id: str
    message: str | None = None
