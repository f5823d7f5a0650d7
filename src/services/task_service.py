"""Task service: atomic create/update/delete of tasks with their child collections."""

import logging
from datetime import UTC, date, datetime
from typing import Any

import aiosqlite

from src.core import db_client
from src.core.clock import Clock, system_clock
from src.core.config import constants
from src.core.errors import NotFoundError, ValidationError
from src.core.logging import log_with_account_context, span
from src.core.recurrence_calendar import describe_recurrence
from src.domain.task import (
    AssignmentSetInput,
    Priority,
    RecurrencePattern,
    StepSequenceInput,
    Task,
    TaskDefinition,
    TaskKind,
)
from src.services import children_service, completion_service, status_service
from src.services.ownership_service import Ownership, database_ownership


logger = logging.getLogger(__name__)


def validate_definition(definition: TaskDefinition) -> dict[str, str]:
    """Check cross-field invariants of a task definition.

    Returns:
        Map of camelCase field name to violation message; empty when valid
    """
    errors: dict[str, str] = {}

    name = definition.name.strip()
    if not name:
        errors["name"] = "Name is required"
    elif len(name) > constants.MAX_NAME_LENGTH:
        errors["name"] = f"Name too long (max {constants.MAX_NAME_LENGTH} characters)"

    has_expr = bool(definition.custom_recurrence_expr and definition.custom_recurrence_expr.strip())
    if definition.recurrence == RecurrencePattern.CUSTOM and not has_expr:
        errors["customRecurrenceExpr"] = "Required when recurrence is CUSTOM"
    elif definition.recurrence != RecurrencePattern.CUSTOM and definition.custom_recurrence_expr is not None:
        errors["customRecurrenceExpr"] = "Only allowed when recurrence is CUSTOM"

    if definition.end_date is not None and definition.end_date < definition.start_date:
        errors["endDate"] = "End date must be on or after the start date"

    if definition.estimated_minutes is not None and definition.estimated_minutes <= 0:
        errors["estimatedMinutes"] = "Estimated minutes must be positive"

    if definition.kind == TaskKind.ROUTINE and definition.priority is not None:
        errors["priority"] = "Priority is only supported for chores"

    if isinstance(definition.children, AssignmentSetInput) and not definition.children.family_member_ids:
        errors["familyMemberIds"] = "Every chore must be assigned to at least one family member"

    return errors


def _task_row(definition: TaskDefinition) -> dict[str, Any]:
    """Column values for a task row, with kind-specific defaults applied."""
    is_chore = definition.kind == TaskKind.CHORE
    default_minutes = constants.DEFAULT_CHORE_MINUTES if is_chore else constants.DEFAULT_ROUTINE_MINUTES
    priority = (definition.priority or Priority.MEDIUM) if is_chore else None
    return {
        "account_id": definition.account_id,
        "kind": definition.kind,
        "name": definition.name.strip(),
        "description": definition.description,
        "recurrence": definition.recurrence,
        "custom_recurrence_expr": definition.custom_recurrence_expr,
        "start_date": definition.start_date,
        "end_date": definition.end_date,
        "estimated_minutes": definition.estimated_minutes or default_minutes,
        "priority": priority,
        "is_active": definition.is_active,
    }


async def _hydrate(record: dict[str, Any], *, conn: aiosqlite.Connection | None = None) -> Task:
    """Build a Task from its row plus its child collection."""
    task = Task.model_validate(record)
    if task.kind == TaskKind.CHORE:
        task.assignments = await children_service.get_assignments(task_id=task.id, conn=conn)
    else:
        task.steps = await children_service.get_steps(task_id=task.id, conn=conn)
    task.recurrence_text = describe_recurrence(task.recurrence, task.custom_recurrence_expr, task.start_date)
    return task


async def _replace_children(
    *,
    task_id: str,
    definition: TaskDefinition,
    conn: aiosqlite.Connection,
    ownership: Ownership,
) -> None:
    children = definition.children
    if isinstance(children, AssignmentSetInput):
        await children_service.replace_assignments(
            task_id=task_id, family_member_ids=children.family_member_ids, conn=conn, ownership=ownership
        )
    elif isinstance(children, StepSequenceInput):
        await children_service.replace_steps(task_id=task_id, steps=children.steps, conn=conn)


async def _get_owned_record(
    *,
    task_id: str,
    account_id: str,
    conn: aiosqlite.Connection | None = None,
) -> dict[str, Any]:
    """Fetch a task row, treating rows of other accounts as missing."""
    try:
        record = await db_client.get_record(collection="tasks", record_id=task_id, conn=conn)
    except KeyError as e:
        raise NotFoundError(f"Task not found: {task_id}") from e
    if record["account_id"] != account_id:
        raise NotFoundError(f"Task not found: {task_id}")
    return record


async def create_task(
    *,
    definition: TaskDefinition,
    ownership: Ownership = database_ownership,
) -> Task:
    """Create a task and its child collection in one atomic unit.

    Args:
        definition: Task definition including the owning account and children
        ownership: Account ownership check for referenced family members

    Returns:
        The hydrated task

    Raises:
        ValidationError: If the definition violates an invariant
        InvalidReferenceError: If an assigned member belongs to another account
    """
    with span("task_service.create_task"):
        errors = validate_definition(definition)
        if errors:
            raise ValidationError(errors)

        async with db_client.transaction() as tx:
            record = await db_client.create_record(collection="tasks", data=_task_row(definition), conn=tx)
            await _replace_children(task_id=record["id"], definition=definition, conn=tx, ownership=ownership)
            task = await _hydrate(record, conn=tx)

        log_with_account_context(
            logger, "info", "Created task", account_id=definition.account_id, task_id=task.id, kind=task.kind
        )
        return task


async def update_task(
    *,
    task_id: str,
    definition: TaskDefinition,
    ownership: Ownership = database_ownership,
) -> Task:
    """Replace a task's fields and its whole child collection in one atomic unit.

    Raises:
        NotFoundError: If the task is missing or belongs to another account
        ValidationError: If the definition violates an invariant or changes the task's kind
        InvalidReferenceError: If an assigned member belongs to another account
    """
    with span("task_service.update_task"):
        errors = validate_definition(definition)
        if errors:
            raise ValidationError(errors)

        async with db_client.transaction() as tx:
            existing = await _get_owned_record(task_id=task_id, account_id=definition.account_id, conn=tx)
            if existing["kind"] != definition.kind:
                raise ValidationError({"kind": f"Cannot change a {existing['kind']} into a {definition.kind}"})

            data = _task_row(definition)
            data["updated"] = datetime.now(UTC)
            record = await db_client.update_record(collection="tasks", record_id=task_id, data=data, conn=tx)
            await _replace_children(task_id=task_id, definition=definition, conn=tx, ownership=ownership)
            task = await _hydrate(record, conn=tx)

        log_with_account_context(logger, "info", "Updated task", account_id=definition.account_id, task_id=task_id)
        return task


async def delete_task(*, task_id: str, account_id: str) -> None:
    """Delete a task and its children; its completions are kept as history.

    Raises:
        NotFoundError: If the task is missing or belongs to another account
    """
    with span("task_service.delete_task"):
        async with db_client.transaction() as tx:
            await _get_owned_record(task_id=task_id, account_id=account_id, conn=tx)
            await db_client.delete_record(collection="tasks", record_id=task_id, conn=tx)

        log_with_account_context(logger, "info", "Deleted task", account_id=account_id, task_id=task_id)


async def get_task(*, task_id: str, account_id: str) -> Task:
    """Get a hydrated task by ID.

    Raises:
        NotFoundError: If the task is missing or belongs to another account
    """
    record = await _get_owned_record(task_id=task_id, account_id=account_id)
    return await _hydrate(record)


async def list_tasks(
    *,
    account_id: str,
    is_active: bool | None = None,
    family_member_id: str | None = None,
    today: date | None = None,
    clock: Clock = system_clock,
) -> list[Task]:
    """List an account's tasks, newest first, each annotated with its current status.

    Args:
        account_id: Owning account
        is_active: Keep only active (True) or inactive (False) tasks
        family_member_id: Keep only chores assigned to this member
        today: Day to compute status for; defaults to the clock's today
        clock: Source of "today"

    Returns:
        Hydrated tasks with ``status`` set
    """
    with span("task_service.list_tasks"):
        where: dict[str, Any] = {"account_id": account_id}
        if is_active is not None:
            where["is_active"] = is_active

        records = await db_client.list_all_records(
            collection="tasks",
            where=where,
            sort="-created, -id",
        )

        day = today or clock.today()
        tasks = []
        for record in records:
            task = await _hydrate(record)
            if family_member_id is not None and not any(
                a.family_member_id == family_member_id for a in task.assignments
            ):
                continue
            latest = await completion_service.most_recent_completion(task_id=task.id, on_or_before=day)
            task.status = status_service.compute_status(task, latest, day)
            tasks.append(task)

        logger.debug("Listed %d tasks for account %s", len(tasks), account_id)
        return tasks
