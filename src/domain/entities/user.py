from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..value_objects.ids import UserId


class User(BaseModel):
    id: UserId = Field(..., description="Opaque identity issued by the identity provider")
    nickname: str | None = None
    avatar_key: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    model_config = ConfigDict(frozen=True)
