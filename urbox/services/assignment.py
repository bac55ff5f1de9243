"""Team assignments: tasks an admin hands to a member, tracked by status.

Usage::

    assignments = AssignmentService(api)
    new_id = await assignments.create_assignment(
        title="Answer the refund thread",
        assigned_to=member_id,
        assigned_by=admin_id,
        company_id=cid,
    )
    await assignments.update_status(new_id, AssignmentStatus.IN_PROGRESS)
"""

from __future__ import annotations

from datetime import datetime

from urbox.core.errors import ValidationError
from urbox.core.http import ApiClient, parse_model
from urbox.core.logging import get_logger
from urbox.schemas.assignment import (
    Assignment,
    AssignmentCreated,
    AssignmentListResponse,
    AssignmentStatus,
)

logger = get_logger(__name__)

BASE = "/api/assignments"

_STATUS_VALUES = {s.value for s in AssignmentStatus}


class AssignmentService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def get_assignments(
        self,
        company_id: str,
        *,
        assigned_to: str | None = None,
        status: AssignmentStatus | str | None = None,
    ) -> list[Assignment]:
        """Company assignments, newest first. Filter by assignee and/or status."""
        if not company_id:
            raise ValidationError("company_id is required", field="company_id")
        body = await self.api.get(
            BASE,
            params={
                "companyId": company_id,
                "assignedTo": assigned_to,
                "status": _status_value(status) if status is not None else None,
            },
        )
        return parse_model(AssignmentListResponse, body).assignments

    async def create_assignment(
        self,
        *,
        title: str,
        assigned_to: str,
        assigned_by: str,
        company_id: str,
        description: str = "",
        target_date: datetime | None = None,
    ) -> str:
        """Create an assignment and return its id. The backend checks both users belong to the company."""
        title = title.strip()
        if not title:
            raise ValidationError("Assignment title is required", field="title")
        if not assigned_to:
            raise ValidationError("Pick a team member to assign", field="assigned_to")
        if not assigned_by or not company_id:
            raise ValidationError("Creator and company are required", field="assigned_by")

        body = await self.api.post(
            BASE,
            json={
                "title": title,
                "description": description,
                "assignedTo": assigned_to,
                "assignedBy": assigned_by,
                "companyId": company_id,
                "targetDate": target_date.isoformat() if target_date else None,
            },
        )
        created = parse_model(AssignmentCreated, body)
        logger.info("assignment_created", assignment_id=created.id, company_id=company_id)
        return created.id

    async def update_status(
        self,
        assignment_id: str,
        status: AssignmentStatus | str,
        *,
        updated_by: str | None = None,
    ) -> None:
        value = _status_value(status)
        payload = {"status": value}
        if updated_by:
            payload["updatedBy"] = updated_by
        await self.api.patch(f"{BASE}/{assignment_id}/status", json=payload)
        logger.info("assignment_status_updated", assignment_id=assignment_id, status=value)

    async def delete_assignment(self, assignment_id: str) -> None:
        await self.api.delete(f"{BASE}/{assignment_id}")
        logger.info("assignment_deleted", assignment_id=assignment_id)


def _status_value(status: AssignmentStatus | str) -> str:
    # AssignmentStatus() maps unknown strings to PENDING, so check raw values first
    value = status.value if isinstance(status, AssignmentStatus) else status
    if value not in _STATUS_VALUES:
        raise ValidationError(f"Invalid assignment status: {status}", field="status")
    return value
