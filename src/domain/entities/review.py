from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..value_objects.ids import OrderId, ReviewId, UserId


class Review(BaseModel):
    id: ReviewId
    order_id: OrderId
    user_id: UserId
    rating: int | None = Field(default=None, ge=1, le=5)
    content: str | None = None
    images: str | None = None  # JSON array of storage keys
    created_at: str | None = None
    updated_at: str | None = None
    user_nickname: str | None = None
    user_avatar_key: str | None = None

    model_config = ConfigDict(frozen=True)
