"""Builders for task definitions and completions used across unit tests."""

from datetime import date
from typing import Any

from src.domain.task import (
    AssignmentSetInput,
    RecurrencePattern,
    RoutineStepInput,
    StepSequenceInput,
    Task,
    TaskDefinition,
    TaskKind,
)


ACCOUNT_ID = "household-1"
OTHER_ACCOUNT_ID = "household-2"


def chore_definition(family_member_ids: list[str], **overrides: Any) -> TaskDefinition:
    """Daily chore starting 2024-01-01 assigned to the given members."""
    data: dict[str, Any] = {
        "account_id": ACCOUNT_ID,
        "name": "Wash Dishes",
        "recurrence": RecurrencePattern.DAILY,
        "start_date": date(2024, 1, 1),
        "children": AssignmentSetInput(family_member_ids=family_member_ids),
    }
    data.update(overrides)
    return TaskDefinition(**data)


def routine_definition(descriptions: list[str], **overrides: Any) -> TaskDefinition:
    """Daily routine starting 2024-01-01 with one step per description."""
    data: dict[str, Any] = {
        "account_id": ACCOUNT_ID,
        "name": "Morning Routine",
        "recurrence": RecurrencePattern.DAILY,
        "start_date": date(2024, 1, 1),
        "children": StepSequenceInput(steps=[RoutineStepInput(description=d) for d in descriptions]),
    }
    data.update(overrides)
    return TaskDefinition(**data)


def make_task(
    recurrence: RecurrencePattern = RecurrencePattern.DAILY,
    start_date: date = date(2024, 1, 1),
    **overrides: Any,
) -> Task:
    """In-memory task for pure status and calendar tests."""
    data: dict[str, Any] = {
        "id": "1",
        "account_id": ACCOUNT_ID,
        "kind": TaskKind.CHORE,
        "name": "Wash Dishes",
        "recurrence": recurrence,
        "start_date": start_date,
        "estimated_minutes": 15,
    }
    data.update(overrides)
    return Task(**data)
