"""Completion domain models for task history."""

from datetime import date, datetime

from pydantic import Field

from src.domain.task import CamelModel


class Completion(CamelModel):
    """A recorded completion of a task by a family member."""

    id: str = Field(..., description="Unique completion ID from database")
    account_id: str = Field(..., description="Owning account")
    task_id: str = Field(..., description="Completed task; may no longer exist")
    family_member_id: str = Field(..., description="Member who completed the task")
    completed_at: datetime = Field(..., description="When the task was completed (UTC)")
    notes: str | None = Field(default=None, description="Free-form notes")


class CompletionInput(CamelModel):
    """Payload for recording a completion."""

    task_id: str = Field(..., min_length=1)
    family_member_id: str = Field(..., min_length=1)
    completed_at: datetime | None = None
    notes: str | None = None


class CompletionFilter(CamelModel):
    """Filters for listing completions; the date range is inclusive."""

    task_id: str | None = None
    family_member_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None
