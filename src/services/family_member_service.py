"""Family member directory: the people chores are assigned to."""

import logging
from typing import Any

import aiosqlite

from src.core import db_client
from src.core.errors import NotFoundError, ValidationError
from src.core.logging import log_with_account_context, span
from src.domain.family_member import FamilyMember, FamilyMemberInput


logger = logging.getLogger(__name__)


def _member_from_record(record: dict[str, Any]) -> FamilyMember:
    return FamilyMember.model_validate(record)


def _account_where(account_id: str, **conditions: Any) -> dict[str, Any]:
    return {"account_id": account_id, **conditions}


async def _get_owned_record(
    *,
    member_id: str,
    account_id: str,
    conn: aiosqlite.Connection | None = None,
) -> dict[str, Any]:
    try:
        record = await db_client.get_record(collection="family_members", record_id=member_id, conn=conn)
    except KeyError as e:
        raise NotFoundError(f"Family member not found: {member_id}") from e
    if record["account_id"] != account_id:
        raise NotFoundError(f"Family member not found: {member_id}")
    return record


async def _clear_default(*, account_id: str, except_id: str, conn: aiosqlite.Connection) -> None:
    """Unset the default flag on every other member of the account."""
    others = await db_client.list_all_records(
        collection="family_members",
        where=_account_where(account_id, is_default=True),
        filter_query=f'id != "{except_id}"',
        conn=conn,
    )
    for other in others:
        await db_client.update_record(
            collection="family_members", record_id=other["id"], data={"is_default": False}, conn=conn
        )


async def create_family_member(*, account_id: str, member: FamilyMemberInput) -> FamilyMember:
    """Add a family member to an account.

    The account's first member always becomes the default one.
    """
    with span("family_member_service.create_family_member"):
        async with db_client.transaction() as tx:
            existing = await db_client.count_records(
                collection="family_members", where=_account_where(account_id), conn=tx
            )
            is_default = existing == 0 or bool(member.is_default)

            record = await db_client.create_record(
                collection="family_members",
                data={
                    "account_id": account_id,
                    "name": member.name,
                    "color_tag": member.color_tag,
                    "is_default": is_default,
                },
                conn=tx,
            )
            if is_default:
                await _clear_default(account_id=account_id, except_id=record["id"], conn=tx)

        log_with_account_context(
            logger, "info", "Created family member", account_id=account_id, member_id=record["id"]
        )
        return _member_from_record(record)


async def update_family_member(*, account_id: str, member_id: str, member: FamilyMemberInput) -> FamilyMember:
    """Rename or recolor a member; ``is_default=True`` moves the default flag to them.

    The flag cannot be removed directly, since an account always keeps one default
    member; make another member the default instead.

    Raises:
        NotFoundError: If the member is missing or belongs to another account
        ValidationError: If the update would leave the account without a default member
    """
    with span("family_member_service.update_family_member"):
        async with db_client.transaction() as tx:
            existing = await _get_owned_record(member_id=member_id, account_id=account_id, conn=tx)

            data: dict[str, Any] = {"name": member.name, "color_tag": member.color_tag}
            if member.is_default is True:
                data["is_default"] = True
            elif member.is_default is False and existing["is_default"]:
                raise ValidationError({"isDefault": "Make another member the default instead"})

            record = await db_client.update_record(
                collection="family_members", record_id=member_id, data=data, conn=tx
            )
            if member.is_default:
                await _clear_default(account_id=account_id, except_id=member_id, conn=tx)

        log_with_account_context(logger, "info", "Updated family member", account_id=account_id, member_id=member_id)
        return _member_from_record(record)


async def delete_family_member(*, account_id: str, member_id: str) -> None:
    """Remove a member together with their chore assignments.

    Their completions are kept as history. When the default member is removed
    the earliest-created remaining member becomes the default.

    Raises:
        NotFoundError: If the member is missing or belongs to another account
        ValidationError: If the member is the account's only one
    """
    with span("family_member_service.delete_family_member"):
        async with db_client.transaction() as tx:
            existing = await _get_owned_record(member_id=member_id, account_id=account_id, conn=tx)

            # Guard: an account always keeps at least one member
            count = await db_client.count_records(
                collection="family_members", where=_account_where(account_id), conn=tx
            )
            if count <= 1:
                raise ValidationError({"id": "Cannot delete the only family member"})

            await db_client.delete_record(collection="family_members", record_id=member_id, conn=tx)

            if existing["is_default"]:
                successor = await db_client.get_first_record(
                    collection="family_members",
                    where=_account_where(account_id),
                    sort="+created, +id",
                    conn=tx,
                )
                if successor:
                    await db_client.update_record(
                        collection="family_members", record_id=successor["id"], data={"is_default": True}, conn=tx
                    )
                    logger.info("Promoted default family member", extra={"member_id": successor["id"]})

        log_with_account_context(logger, "info", "Deleted family member", account_id=account_id, member_id=member_id)


async def get_family_member(*, account_id: str, member_id: str) -> FamilyMember:
    """Get a family member by ID.

    Raises:
        NotFoundError: If the member is missing or belongs to another account
    """
    record = await _get_owned_record(member_id=member_id, account_id=account_id)
    return _member_from_record(record)


async def list_family_members(*, account_id: str) -> list[FamilyMember]:
    """List an account's family members, default first, then by creation."""
    records = await db_client.list_all_records(
        collection="family_members",
        where=_account_where(account_id),
        sort="-is_default, +created, +id",
    )
    return [_member_from_record(r) for r in records]
