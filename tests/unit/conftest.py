"""Pytest configuration and fixtures for unit tests."""

from collections.abc import AsyncGenerator

import pytest

from src.core import db_client
from src.core.config import settings
from src.domain.family_member import FamilyMember, FamilyMemberInput
from src.services import family_member_service
from tests.unit.factories import ACCOUNT_ID, OTHER_ACCOUNT_ID


@pytest.fixture
def db_path(tmp_path, monkeypatch) -> str:
    """Point the settings at a fresh SQLite file for each test."""
    path = str(tmp_path / "hearthboard.db")
    monkeypatch.setattr(settings, "sqlite_db_path", path)
    return path


@pytest.fixture
async def db(db_path: str) -> AsyncGenerator[str]:
    """Provide an initialized database and close the cached connection afterwards."""
    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


@pytest.fixture
async def alex(db: str) -> FamilyMember:
    """First (default) member of the test household."""
    return await family_member_service.create_family_member(
        account_id=ACCOUNT_ID, member=FamilyMemberInput(name="Alex", color_tag="#FF8800")
    )


@pytest.fixture
async def sam(alex: FamilyMember) -> FamilyMember:
    """Second member of the test household."""
    return await family_member_service.create_family_member(
        account_id=ACCOUNT_ID, member=FamilyMemberInput(name="Sam", color_tag="#0088FF")
    )


@pytest.fixture
async def outsider(db: str) -> FamilyMember:
    """Member of a different household."""
    return await family_member_service.create_family_member(
        account_id=OTHER_ACCOUNT_ID, member=FamilyMemberInput(name="Riley", color_tag="#123")
    )
