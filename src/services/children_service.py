"""Child collections of tasks: chore assignments and routine steps.

Both collections use replace-on-write semantics: the caller always submits the
complete collection and the stored one is made to match it inside one atomic
unit. When called with ``conn`` the replacement joins the caller's transaction,
otherwise it opens its own.
"""

import logging
from collections.abc import Iterable
from typing import Any

import aiosqlite

from src.core import db_client
from src.core.errors import InvalidReferenceError, NotFoundError, ValidationError
from src.core.logging import span
from src.domain.task import Assignment, RoutineStep, RoutineStepInput, TaskKind
from src.services.ownership_service import EntityKind, Ownership, database_ownership


logger = logging.getLogger(__name__)


def _assignment_from_record(record: dict[str, Any]) -> Assignment:
    return Assignment(id=record["id"], task_id=record["task_id"], family_member_id=record["family_member_id"])


def _step_from_record(record: dict[str, Any]) -> RoutineStep:
    return RoutineStep(
        id=record["id"],
        task_id=record["task_id"],
        order=record["step_order"],
        description=record["description"],
        estimated_minutes=record["estimated_minutes"],
    )


async def _load_task(*, task_id: str, expected_kind: TaskKind, conn: aiosqlite.Connection) -> dict[str, Any]:
    try:
        task = await db_client.get_record(collection="tasks", record_id=task_id, conn=conn)
    except KeyError as e:
        raise NotFoundError(f"Task not found: {task_id}") from e

    if task["kind"] != expected_kind:
        raise ValidationError({"kind": f"Task {task_id} is a {task['kind']}, not a {expected_kind}"})
    return task


async def get_assignments(*, task_id: str, conn: aiosqlite.Connection | None = None) -> list[Assignment]:
    """Return a chore's assignments in insertion order."""
    records = await db_client.list_all_records(
        collection="assignments",
        where={"task_id": task_id},
        sort="+id",
        conn=conn,
    )
    return [_assignment_from_record(r) for r in records]


async def get_steps(*, task_id: str, conn: aiosqlite.Connection | None = None) -> list[RoutineStep]:
    """Return a routine's steps sorted by order."""
    records = await db_client.list_all_records(
        collection="routine_steps",
        where={"task_id": task_id},
        sort="+step_order, +id",
        conn=conn,
    )
    return [_step_from_record(r) for r in records]


async def replace_assignments(
    *,
    task_id: str,
    family_member_ids: Iterable[str],
    conn: aiosqlite.Connection | None = None,
    ownership: Ownership = database_ownership,
) -> list[Assignment]:
    """Replace every assignment of a chore with one per unique family member.

    Args:
        task_id: Chore ID
        family_member_ids: Members to assign; duplicates are dropped, order is kept
        conn: Open transaction to join
        ownership: Account ownership check

    Returns:
        The stored assignments

    Raises:
        ValidationError: If no member is given or the task is not a chore
        InvalidReferenceError: If a member belongs to another account or does not exist
        NotFoundError: If the task does not exist
    """
    if conn is None:
        async with db_client.transaction() as tx:
            return await replace_assignments(
                task_id=task_id, family_member_ids=family_member_ids, conn=tx, ownership=ownership
            )

    with span("children_service.replace_assignments"):
        member_ids = list(dict.fromkeys(family_member_ids))
        if not member_ids:
            raise ValidationError({"familyMemberIds": "Every chore must be assigned to at least one family member"})

        task = await _load_task(task_id=task_id, expected_kind=TaskKind.CHORE, conn=conn)

        foreign = [
            member_id
            for member_id in member_ids
            if not await ownership.belongs_to_account(
                kind=EntityKind.FAMILY_MEMBER, entity_id=member_id, account_id=task["account_id"], conn=conn
            )
        ]
        if foreign:
            raise InvalidReferenceError(f"Family members do not belong to this account: {', '.join(foreign)}")

        await db_client.delete_records(
            collection="assignments",
            where={"task_id": task_id},
            conn=conn,
        )
        for member_id in member_ids:
            await db_client.create_record(
                collection="assignments",
                data={"task_id": int(task_id), "family_member_id": int(member_id)},
                conn=conn,
            )

        logger.info("Replaced assignments", extra={"task_id": task_id, "count": len(member_ids)})
        return await get_assignments(task_id=task_id, conn=conn)


async def replace_steps(
    *,
    task_id: str,
    steps: list[RoutineStepInput],
    conn: aiosqlite.Connection | None = None,
) -> list[RoutineStep]:
    """Replace a routine's steps, numbering them 0..n-1 in input order.

    Caller-supplied ``order`` values are ignored. A step whose id matches an
    existing step of this routine keeps that id; all other steps get fresh ids
    and stored steps missing from the input are deleted. An empty list leaves a
    draft routine without steps.

    Raises:
        ValidationError: If the task is not a routine
        NotFoundError: If the task does not exist
    """
    if conn is None:
        async with db_client.transaction() as tx:
            return await replace_steps(task_id=task_id, steps=steps, conn=tx)

    with span("children_service.replace_steps"):
        await _load_task(task_id=task_id, expected_kind=TaskKind.ROUTINE, conn=conn)

        existing_ids = {step.id for step in await get_steps(task_id=task_id, conn=conn)}
        kept_ids: set[str] = set()

        for order, step in enumerate(steps):
            data = {
                "step_order": order,
                "description": step.description,
                "estimated_minutes": step.estimated_minutes,
            }
            if step.id is not None and step.id in existing_ids and step.id not in kept_ids:
                await db_client.update_record(collection="routine_steps", record_id=step.id, data=data, conn=conn)
                kept_ids.add(step.id)
            else:
                await db_client.create_record(
                    collection="routine_steps",
                    data={"task_id": int(task_id), **data},
                    conn=conn,
                )

        for stale_id in existing_ids - kept_ids:
            await db_client.delete_record(collection="routine_steps", record_id=stale_id, conn=conn)

        logger.info(
            "Replaced steps",
            extra={"task_id": task_id, "count": len(steps), "kept": len(kept_ids)},
        )
        return await get_steps(task_id=task_id, conn=conn)
