from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from ..value_objects.enums import StepType
from ..value_objects.ids import RecipeId, UserId


class Recipe(BaseModel):
    id: RecipeId
    user_id: UserId
    name: str
    description: str | None = None
    cover_image_key: str | None = None
    step_type: StepType
    steps: str | None = None  # JSON array string
    links: str | None = None  # JSON array string
    is_public: bool = True
    view_count: int = 0
    like_count: int = 0
    created_at: str | None = None
    updated_at: str | None = None
    tags: list[str] = []

    model_config = ConfigDict(frozen=True)


class TagUsage(BaseModel):
    name: str
    recipe_count: int

    model_config = ConfigDict(frozen=True)
