"""Unit tests for the family member directory."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError as PydanticValidationError

from src.core.errors import NotFoundError, ValidationError
from src.domain.family_member import FamilyMemberInput
from src.services import completion_service, family_member_service, task_service
from tests.unit.factories import ACCOUNT_ID, OTHER_ACCOUNT_ID, chore_definition


def member_input(name: str, color: str = "#AABBCC", *, is_default: bool | None = None) -> FamilyMemberInput:
    return FamilyMemberInput(name=name, color_tag=color, is_default=is_default)


async def defaults(account_id: str = ACCOUNT_ID) -> list[str]:
    members = await family_member_service.list_family_members(account_id=account_id)
    return [m.name for m in members if m.is_default]


@pytest.mark.unit
class TestCreateFamilyMember:
    """Tests for create_family_member."""

    async def test_first_member_becomes_default(self, db):
        member = await family_member_service.create_family_member(account_id=ACCOUNT_ID, member=member_input("Alex"))

        assert member.is_default is True

    async def test_later_members_are_not_default(self, alex, sam):
        assert sam.is_default is False
        assert await defaults() == ["Alex"]

    async def test_new_default_replaces_old(self, alex):
        await family_member_service.create_family_member(
            account_id=ACCOUNT_ID, member=member_input("Jo", is_default=True)
        )

        assert await defaults() == ["Jo"]

    async def test_accounts_are_independent(self, alex, outsider):
        assert outsider.is_default is True
        assert await defaults() == ["Alex"]
        assert await defaults(OTHER_ACCOUNT_ID) == ["Riley"]

    def test_rejects_bad_color(self):
        with pytest.raises(PydanticValidationError, match="Invalid color format"):
            member_input("Alex", "orange")

    def test_rejects_blank_name(self):
        with pytest.raises(PydanticValidationError, match="Name cannot be empty"):
            member_input("   ")


@pytest.mark.unit
class TestUpdateFamilyMember:
    """Tests for update_family_member."""

    async def test_rename_and_recolor(self, alex):
        updated = await family_member_service.update_family_member(
            account_id=ACCOUNT_ID, member_id=alex.id, member=member_input("Alexandra", "#000")
        )

        assert updated.name == "Alexandra"
        assert updated.color_tag == "#000"
        assert updated.is_default is True

    async def test_move_default(self, alex, sam):
        await family_member_service.update_family_member(
            account_id=ACCOUNT_ID, member_id=sam.id, member=member_input("Sam", is_default=True)
        )

        assert await defaults() == ["Sam"]

    async def test_cannot_unset_only_default(self, alex):
        with pytest.raises(ValidationError) as exc_info:
            await family_member_service.update_family_member(
                account_id=ACCOUNT_ID, member_id=alex.id, member=member_input("Alex", is_default=False)
            )

        assert "isDefault" in exc_info.value.details

    async def test_foreign_member_is_not_found(self, outsider):
        with pytest.raises(NotFoundError):
            await family_member_service.update_family_member(
                account_id=ACCOUNT_ID, member_id=outsider.id, member=member_input("Hijack")
            )


@pytest.mark.unit
class TestDeleteFamilyMember:
    """Tests for delete_family_member."""

    async def test_cannot_delete_last_member(self, alex):
        with pytest.raises(ValidationError) as exc_info:
            await family_member_service.delete_family_member(account_id=ACCOUNT_ID, member_id=alex.id)

        assert "id" in exc_info.value.details
        assert await defaults() == ["Alex"]

    async def test_deleting_default_promotes_earliest_remaining(self, alex, sam):
        await family_member_service.create_family_member(account_id=ACCOUNT_ID, member=member_input("Jo"))

        await family_member_service.delete_family_member(account_id=ACCOUNT_ID, member_id=alex.id)

        assert await defaults() == ["Sam"]

    async def test_deleting_non_default_keeps_default(self, alex, sam):
        await family_member_service.delete_family_member(account_id=ACCOUNT_ID, member_id=sam.id)

        assert await defaults() == ["Alex"]

    async def test_removes_assignments_and_keeps_completions(self, alex, sam):
        task = await task_service.create_task(definition=chore_definition([alex.id, sam.id]))
        await completion_service.record_completion(
            account_id=ACCOUNT_ID,
            task_id=task.id,
            family_member_id=sam.id,
            completed_at=datetime(2024, 1, 1, tzinfo=UTC),
        )

        await family_member_service.delete_family_member(account_id=ACCOUNT_ID, member_id=sam.id)

        stored = await task_service.get_task(task_id=task.id, account_id=ACCOUNT_ID)
        assert [a.family_member_id for a in stored.assignments] == [alex.id]
        history = await completion_service.list_completions(account_id=ACCOUNT_ID)
        assert [c.family_member_id for c in history] == [sam.id]

    async def test_foreign_member_is_not_found(self, alex, outsider):
        with pytest.raises(NotFoundError):
            await family_member_service.delete_family_member(account_id=ACCOUNT_ID, member_id=outsider.id)

    async def test_get_after_delete(self, alex, sam):
        await family_member_service.delete_family_member(account_id=ACCOUNT_ID, member_id=sam.id)

        with pytest.raises(NotFoundError):
            await family_member_service.get_family_member(account_id=ACCOUNT_ID, member_id=sam.id)
