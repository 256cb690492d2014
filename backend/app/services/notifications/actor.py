"""
Actor snapshot embedded in notification metadata under the 'actor' key.

Stored as {"id", "name", "profileImage"}. decode_actor validates the shape and returns None on
any mismatch (missing metadata, non-object actor, non-string id/name) instead of raising.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

ACTOR_KEY = "actor"


class NotificationActor(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: StrictStr
    name: StrictStr
    profile_image: str | None = Field(None, alias="profileImage")

    @field_validator("profile_image", mode="before")
    @classmethod
    def non_string_image_is_none(cls, v: Any) -> str | None:
        return v if isinstance(v, str) else None

    def to_metadata(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def decode_actor(metadata: Any) -> NotificationActor | None:
    if not isinstance(metadata, dict):
        return None
    raw = metadata.get(ACTOR_KEY)
    if not isinstance(raw, dict):
        return None
    try:
        return NotificationActor.model_validate(raw)
    except ValidationError:
        return None


def with_actor(metadata: Any, actor: NotificationActor) -> dict[str, Any]:
    """Copy of metadata (non-objects become {}) with only the 'actor' key overwritten."""
    merged = dict(metadata) if isinstance(metadata, dict) else {}
    merged[ACTOR_KEY] = actor.to_metadata()
    return merged
