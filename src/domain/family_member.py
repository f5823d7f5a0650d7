"""Family member domain models."""

import re

from pydantic import Field, field_validator

from src.core.config import constants
from src.domain.task import CamelModel


def _validate_color(v: str) -> str:
    if not re.match(constants.HEX_COLOR_PATTERN, v):
        msg = "Invalid color format (expected #RGB or #RRGGBB)"
        raise ValueError(msg)
    return v


def _validate_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name cannot be empty")
    if len(v) > constants.MAX_NAME_LENGTH:
        raise ValueError(f"Name too long (max {constants.MAX_NAME_LENGTH} characters)")
    return v


class FamilyMember(CamelModel):
    """Family member data transfer object."""

    id: str = Field(..., description="Unique member ID from database")
    account_id: str = Field(..., description="Owning account")
    name: str = Field(..., description="Display name")
    color_tag: str = Field(..., description="Hex color used for calendar and chore badges")
    is_default: bool = Field(default=False, description="Whether this is the account's default member")


class FamilyMemberInput(CamelModel):
    """Payload for creating or updating a family member."""

    name: str
    color_tag: str
    is_default: bool | None = Field(default=None, description="None keeps the current flag on update")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is non-blank and bounded."""
        return _validate_name(v)

    @field_validator("color_tag")
    @classmethod
    def validate_color_tag(cls, v: str) -> str:
        """Validate color is a hex color."""
        return _validate_color(v)
