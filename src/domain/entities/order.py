from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..value_objects.enums import OrderStatus
from ..value_objects.ids import OrderId, RecipeId, UserId


class Order(BaseModel):
    id: OrderId
    user_id: UserId
    order_no: str
    target_time: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    remark: str | None = None
    created_at: str | None = None
    user_nickname: str | None = None
    user_avatar_key: str | None = None

    model_config = ConfigDict(frozen=True)


class OrderLine(BaseModel):
    order_id: OrderId
    recipe_id: RecipeId
    quantity: int = Field(default=1, ge=1)
    recipe_name: str | None = None
    recipe_description: str | None = None
    recipe_cover_image_key: str | None = None
    recipe_step_type: str | None = None

    model_config = ConfigDict(frozen=True)


class OrderDetail(BaseModel):
    order: Order
    recipes: list[OrderLine]

    model_config = ConfigDict(frozen=True)
