"""Task status derivation from recurrence and completion history.

Status is a pure function of (task, most recent completion, today); nothing is
stored, so any historical day can be replayed.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from src.core import recurrence_calendar
from src.core.config import settings
from src.domain.completion import Completion
from src.domain.task import RecurrencePattern, StatusKind, Task, TaskStatus


def _local_date(instant: datetime) -> date:
    """Calendar date of an instant in the household timezone."""
    if instant.tzinfo is None:
        return instant.date()
    return instant.astimezone(ZoneInfo(settings.timezone)).date()


def _classify(due: date, today: date) -> TaskStatus:
    """Map a due date to a status relative to today."""
    if due < today:
        return TaskStatus(kind=StatusKind.OVERDUE, due_date=due)
    if due == today:
        return TaskStatus(kind=StatusKind.DUE_TODAY, due_date=due)
    if due == today + timedelta(days=1):
        return TaskStatus(kind=StatusKind.DUE_TOMORROW, due_date=due)
    return TaskStatus(kind=StatusKind.UPCOMING, due_date=due)


def _custom_status(task: Task, completion: Completion | None, today: date) -> TaskStatus:
    """CUSTOM tasks are opaque: due every day between start and end, done once completed that day."""
    if today < task.start_date:
        return _classify(task.start_date, today)
    if task.end_date is not None and today > task.end_date:
        return TaskStatus(kind=StatusKind.INACTIVE)
    if completion is not None and _local_date(completion.completed_at) == today:
        return TaskStatus(kind=StatusKind.COMPLETED, due_date=today)
    return TaskStatus(kind=StatusKind.DUE_TODAY, due_date=today)


def compute_status(task: Task, most_recent_completion: Completion | None, today: date) -> TaskStatus:
    """Compute a task's display status on a given day.

    Every occurrence owns a window running up to, but not including, the next
    occurrence. The most recent completion satisfies the occurrence whose
    window contains it; the task is then due at the following occurrence. With
    no usable completion the task is due at its first occurrence, so missed
    occurrences stay overdue until someone completes the task.

    The task shows COMPLETED while the satisfied occurrence is today, and for
    good once no later occurrence exists.

    Args:
        task: Hydrated task
        most_recent_completion: Latest completion of the task, if any
        today: The household's current date

    Returns:
        TaskStatus with the occurrence date it refers to
    """
    if not task.is_active:
        return TaskStatus(kind=StatusKind.INACTIVE)

    if task.recurrence == RecurrencePattern.CUSTOM:
        return _custom_status(task, most_recent_completion, today)

    pattern = task.recurrence
    expr = task.custom_recurrence_expr
    start = task.start_date
    end = task.end_date

    satisfied = None
    if most_recent_completion is not None:
        completed_on = _local_date(most_recent_completion.completed_at)
        satisfied = recurrence_calendar.previous_occurrence_on_or_before(pattern, expr, start, end, completed_on)

    if satisfied is None:
        due = recurrence_calendar.next_occurrence_on_or_after(pattern, expr, start, end, start)
        if due is None:
            return TaskStatus(kind=StatusKind.INACTIVE)
        return _classify(due, today)

    due = recurrence_calendar.next_occurrence_on_or_after(pattern, expr, start, end, satisfied + timedelta(days=1))
    if satisfied == today or due is None:
        return TaskStatus(kind=StatusKind.COMPLETED, due_date=satisfied)

    return _classify(due, today)
