"""Account ownership checks for tasks and family members."""

import logging
from enum import StrEnum
from typing import Protocol

import aiosqlite

from src.core import db_client


logger = logging.getLogger(__name__)


class EntityKind(StrEnum):
    """Entities that are owned by an account."""

    TASK = "task"
    FAMILY_MEMBER = "family_member"


class Ownership(Protocol):
    """Answers whether an entity belongs to an account."""

    async def belongs_to_account(
        self,
        *,
        kind: EntityKind,
        entity_id: str,
        account_id: str,
        conn: aiosqlite.Connection | None = None,
    ) -> bool: ...


class DatabaseOwnership:
    """Ownership backed by the ``account_id`` column of the entity's table."""

    _COLLECTIONS = {
        EntityKind.TASK: "tasks",
        EntityKind.FAMILY_MEMBER: "family_members",
    }

    async def belongs_to_account(
        self,
        *,
        kind: EntityKind,
        entity_id: str,
        account_id: str,
        conn: aiosqlite.Connection | None = None,
    ) -> bool:
        try:
            record = await db_client.get_record(collection=self._COLLECTIONS[kind], record_id=entity_id, conn=conn)
        except KeyError:
            return False
        owned = record["account_id"] == account_id
        if not owned:
            logger.warning(
                "cross_account_reference",
                extra={"kind": str(kind), "entity_id": entity_id, "account_id": account_id},
            )
        return owned


database_ownership = DatabaseOwnership()
