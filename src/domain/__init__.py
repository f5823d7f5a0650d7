"""Domain models and DTOs."""

from src.domain.completion import Completion, CompletionFilter, CompletionInput
from src.domain.family_member import FamilyMember, FamilyMemberInput
from src.domain.task import (
    Assignment,
    AssignmentSetInput,
    Priority,
    RecurrencePattern,
    RoutineStep,
    RoutineStepInput,
    StatusKind,
    StepSequenceInput,
    Task,
    TaskDefinition,
    TaskKind,
    TaskStatus,
)


__all__ = [
    "Assignment",
    "AssignmentSetInput",
    "Completion",
    "CompletionFilter",
    "CompletionInput",
    "FamilyMember",
    "FamilyMemberInput",
    "Priority",
    "RecurrencePattern",
    "RoutineStep",
    "RoutineStepInput",
    "StatusKind",
    "StepSequenceInput",
    "Task",
    "TaskDefinition",
    "TaskKind",
    "TaskStatus",
]
