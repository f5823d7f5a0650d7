"""Task domain models and enums (unified replacement for chore + routine)."""

from datetime import date, datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.core.config import constants


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecurrencePattern(StrEnum):
    """How often a task recurs."""

    DAILY = "DAILY"
    WEEKDAYS = "WEEKDAYS"
    WEEKENDS = "WEEKENDS"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    CUSTOM = "CUSTOM"
    ONCE = "ONCE"


class TaskKind(StrEnum):
    """Which child collection a task carries."""

    CHORE = "chore"  # Assignments to family members
    ROUTINE = "routine"  # Ordered steps


class Priority(StrEnum):
    """Chore priority."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class StatusKind(StrEnum):
    """Display status derived from recurrence and completion history."""

    INACTIVE = "INACTIVE"
    OVERDUE = "OVERDUE"
    DUE_TODAY = "DUE_TODAY"
    DUE_TOMORROW = "DUE_TOMORROW"
    UPCOMING = "UPCOMING"
    COMPLETED = "COMPLETED"


class TaskStatus(CamelModel):
    """Computed status of a task on a given day."""

    kind: StatusKind
    due_date: date | None = Field(default=None, description="Occurrence date the status refers to")


class Assignment(CamelModel):
    """A family member assigned to a chore."""

    id: str
    task_id: str
    family_member_id: str


class RoutineStep(CamelModel):
    """One ordered step of a routine."""

    id: str
    task_id: str
    order: int = Field(..., ge=0)
    description: str
    estimated_minutes: int


class RoutineStepInput(CamelModel):
    """Step as submitted by a caller; ``order`` is accepted but ignored on write."""

    id: str | None = Field(default=None, description="Existing step id to keep")
    description: str = Field(..., min_length=1)
    order: int | None = Field(default=None, ge=0)
    estimated_minutes: int = Field(default=constants.DEFAULT_STEP_MINUTES, gt=0)


class AssignmentSetInput(CamelModel):
    """Chore children: the family members responsible for it."""

    kind: Literal["chore"] = "chore"
    family_member_ids: list[str] = Field(default_factory=list)


class StepSequenceInput(CamelModel):
    """Routine children: the ordered steps."""

    kind: Literal["routine"] = "routine"
    steps: list[RoutineStepInput] = Field(default_factory=list)


TaskChildrenInput = Annotated[AssignmentSetInput | StepSequenceInput, Field(discriminator="kind")]


class TaskDefinition(CamelModel):
    """Caller-submitted definition used by create_task and update_task.

    Only shape and types are checked here; cross-field invariants are checked by
    the task service so that violations are reported per field.
    """

    account_id: str = Field(..., min_length=1)
    name: str
    description: str | None = None
    recurrence: RecurrencePattern
    custom_recurrence_expr: str | None = None
    start_date: date
    end_date: date | None = None
    estimated_minutes: int | None = None
    priority: Priority | None = None
    is_active: bool = True
    children: TaskChildrenInput

    @property
    def kind(self) -> TaskKind:
        return TaskKind(self.children.kind)


class Task(CamelModel):
    """Hydrated task with its child collection.

    ``assignments`` is populated for chores and ``steps`` for routines.
    """

    id: str
    account_id: str
    kind: TaskKind
    name: str
    description: str | None = None
    recurrence: RecurrencePattern
    custom_recurrence_expr: str | None = None
    start_date: date
    end_date: date | None = None
    estimated_minutes: int
    priority: Priority | None = None
    is_active: bool = True
    created: datetime | None = None
    updated: datetime | None = None
    assignments: list[Assignment] = Field(default_factory=list)
    steps: list[RoutineStep] = Field(default_factory=list)
    recurrence_text: str = Field(default="", description="Human-readable recurrence")
    status: TaskStatus | None = Field(default=None, description="Status at listing time")
