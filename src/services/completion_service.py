"""Completion service for recording and querying task history."""

import logging
from datetime import UTC, date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from src.core import db_client
from src.core.clock import Clock, system_clock
from src.core.config import settings
from src.core.errors import InvalidReferenceError, NotFoundError
from src.core.logging import log_with_account_context, span
from src.domain.completion import Completion, CompletionFilter
from src.services.ownership_service import EntityKind, Ownership, database_ownership


logger = logging.getLogger(__name__)


def _completion_from_record(record: dict[str, Any]) -> Completion:
    return Completion.model_validate(record)


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def _day_start_utc(day: date) -> datetime:
    """First instant of a household-local day, expressed in UTC."""
    return datetime.combine(day, time.min, tzinfo=ZoneInfo(settings.timezone)).astimezone(UTC)


async def record_completion(
    *,
    account_id: str,
    task_id: str,
    family_member_id: str,
    completed_at: datetime | None = None,
    notes: str | None = None,
    ownership: Ownership = database_ownership,
    clock: Clock = system_clock,
) -> Completion:
    """Record that a family member completed a task.

    Recording is not idempotent: two calls produce two completions.

    Args:
        account_id: Owning account
        task_id: Completed task
        family_member_id: Member who completed it
        completed_at: Completion instant; naive values are taken as UTC, defaults to now
        notes: Free-form notes
        ownership: Account ownership check
        clock: Source of "now"

    Returns:
        The stored completion

    Raises:
        NotFoundError: If the task does not exist
        InvalidReferenceError: If the task or member belongs to another account
    """
    with span("completion_service.record_completion"):
        async with db_client.transaction() as tx:
            # Guard: task must exist
            try:
                await db_client.get_record(collection="tasks", record_id=task_id, conn=tx)
            except KeyError as e:
                raise NotFoundError(f"Task not found: {task_id}") from e

            # Guard: task and member must belong to the caller's account
            if not await ownership.belongs_to_account(
                kind=EntityKind.TASK, entity_id=task_id, account_id=account_id, conn=tx
            ):
                raise InvalidReferenceError(f"Task {task_id} does not belong to this account")
            if not await ownership.belongs_to_account(
                kind=EntityKind.FAMILY_MEMBER, entity_id=family_member_id, account_id=account_id, conn=tx
            ):
                raise InvalidReferenceError(f"Family member {family_member_id} does not belong to this account")

            instant = _as_utc(completed_at) if completed_at is not None else clock.now().astimezone(UTC)
            record = await db_client.create_record(
                collection="completions",
                data={
                    "account_id": account_id,
                    "task_id": int(task_id),
                    "family_member_id": int(family_member_id),
                    "completed_at": instant,
                    "notes": notes,
                },
                conn=tx,
            )

        log_with_account_context(
            logger,
            "info",
            "Recorded completion",
            account_id=account_id,
            task_id=task_id,
            family_member_id=family_member_id,
        )
        return _completion_from_record(record)


async def most_recent_completion(*, task_id: str, on_or_before: date | None = None) -> Completion | None:
    """Return the latest completion of a task, or None.

    With ``on_or_before``, completions recorded after that household-local day
    are ignored, so status for a past day only sees the history known then.
    """
    filter_query = ""
    if on_or_before is not None:
        next_day = _day_start_utc(on_or_before + timedelta(days=1))
        filter_query = f'completed_at < "{next_day.isoformat()}"'

    record = await db_client.get_first_record(
        collection="completions",
        where={"task_id": task_id},
        filter_query=filter_query,
        sort="-completed_at, -id",
    )
    return _completion_from_record(record) if record else None


async def list_completions(
    *,
    account_id: str,
    filters: CompletionFilter | None = None,
) -> list[Completion]:
    """List an account's completions, newest first.

    Args:
        account_id: Owning account
        filters: Optional task, member and inclusive household-local date range

    Returns:
        Matching completions
    """
    with span("completion_service.list_completions"):
        filters = filters or CompletionFilter()
        where: dict[str, Any] = {"account_id": account_id}
        clauses = []

        if filters.task_id:
            where["task_id"] = filters.task_id
        if filters.family_member_id:
            where["family_member_id"] = filters.family_member_id
        if filters.start_date:
            clauses.append(f'completed_at >= "{_day_start_utc(filters.start_date).isoformat()}"')
        if filters.end_date:
            next_day = _day_start_utc(filters.end_date + timedelta(days=1))
            clauses.append(f'completed_at < "{next_day.isoformat()}"')

        records = await db_client.list_all_records(
            collection="completions",
            where=where,
            filter_query=" && ".join(clauses),
            sort="-completed_at, -id",
        )
        return [_completion_from_record(r) for r in records]


async def delete_completion(*, completion_id: str, account_id: str) -> None:
    """Delete a completion (undo).

    Raises:
        NotFoundError: If the completion is missing or belongs to another account
    """
    with span("completion_service.delete_completion"):
        async with db_client.transaction() as tx:
            try:
                record = await db_client.get_record(collection="completions", record_id=completion_id, conn=tx)
            except KeyError as e:
                raise NotFoundError(f"Completion not found: {completion_id}") from e
            if record["account_id"] != account_id:
                raise NotFoundError(f"Completion not found: {completion_id}")

            await db_client.delete_record(collection="completions", record_id=completion_id, conn=tx)

        log_with_account_context(logger, "info", "Deleted completion", account_id=account_id, completion_id=completion_id)
