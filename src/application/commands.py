"""Validated input structs for every service operation.

Raw request bodies are parsed into these before anything reaches the
gateway. :func:`parse` turns Pydantic validation failures into the domain
:class:`~src.domain.errors.ValidationError`.
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal, Mapping, Optional, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.domain.errors import ValidationError
from src.domain.value_objects.enums import (
    GroupType,
    MemberRole,
    OrderStatus,
    SortDirection,
    StepType,
)

C = TypeVar("C", bound="Command")

NonEmptyStr = Annotated[str, Field(min_length=1)]


class Command(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class EditCommand(Command):
    """Command whose optional fields count only when the caller sent them.

    A field explicitly sent as ``null`` is a change (it clears the column);
    an omitted field is not.
    """

    editable: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _require_change(self) -> "EditCommand":
        if not self.changes() and not self._has_other_changes():
            raise ValueError("no editable fields provided")
        return self

    def _has_other_changes(self) -> bool:
        return False

    def changes(self) -> dict[str, Any]:
        sent = set(self.editable) & self.model_fields_set
        return self.model_dump(include=sent, mode="json")


def parse(model: type[C], payload: Mapping[str, Any] | None) -> C:
    """Validate a raw body into ``model`` or raise :class:`ValidationError`."""
    try:
        return model.model_validate(dict(payload or {}))
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(problems) from exc


# ── Users ──────────────────────────────────────────────


class Login(Command):
    code: NonEmptyStr


class EditProfile(EditCommand):
    editable: ClassVar[tuple[str, ...]] = ("nickname", "avatar_key")

    nickname: Optional[str] = Field(default=None, max_length=64)
    avatar_key: Optional[str] = None


# ── Groups ─────────────────────────────────────────────


class CreateGroup(Command):
    name: Optional[str] = Field(default=None, max_length=64)
    avatar_key: Optional[str] = None
    group_type: GroupType = GroupType.FAMILY


class EditGroup(EditCommand):
    editable: ClassVar[tuple[str, ...]] = ("name", "avatar_key", "group_type")

    group_id: NonEmptyStr
    name: Optional[str] = Field(default=None, max_length=64)
    avatar_key: Optional[str] = None
    group_type: Optional[GroupType] = None


class AddMember(Command):
    group_id: NonEmptyStr
    target_user_id: NonEmptyStr
    role: MemberRole = MemberRole.MEMBER
    can_manage: bool = False


class RemoveMember(Command):
    group_id: NonEmptyStr
    target_user_id: NonEmptyStr


class UpdateMember(EditCommand):
    editable: ClassVar[tuple[str, ...]] = ("role", "can_manage")

    group_id: NonEmptyStr
    target_user_id: NonEmptyStr
    role: Optional[MemberRole] = None
    can_manage: Optional[bool] = None


# ── Recipes ────────────────────────────────────────────


class CreateRecipe(Command):
    name: str = Field(..., min_length=1, max_length=128)
    step_type: StepType
    description: Optional[str] = None
    cover_image_key: Optional[str] = None
    steps: Optional[str] = None
    links: Optional[str] = None
    is_public: bool = True
    tags: list[str] = Field(default_factory=list)


class EditRecipe(EditCommand):
    editable: ClassVar[tuple[str, ...]] = (
        "name",
        "description",
        "cover_image_key",
        "step_type",
        "steps",
        "links",
        "is_public",
    )

    id: NonEmptyStr
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = None
    cover_image_key: Optional[str] = None
    step_type: Optional[StepType] = None
    steps: Optional[str] = None
    links: Optional[str] = None
    is_public: Optional[bool] = None
    tags: Optional[list[str]] = None

    def _has_other_changes(self) -> bool:
        return self.tags is not None


class ListRecipes(Command):
    page: int = Field(default=1, ge=1)
    page_size: Optional[int] = Field(default=None, ge=1, alias="pageSize")
    name: Optional[str] = None
    order_by: Literal["created_at", "view_count", "like_count"] = "created_at"
    order: SortDirection = SortDirection.DESC


# ── Orders & reviews ───────────────────────────────────


class OrderRecipeItem(Command):
    recipe_id: NonEmptyStr
    quantity: int = Field(default=1, ge=1)


class CreateOrder(Command):
    target_time: Optional[str] = None
    remark: Optional[str] = Field(default=None, max_length=500)
    recipes: list[OrderRecipeItem] = Field(default_factory=list)


class EditOrderStatus(Command):
    id: NonEmptyStr
    status: OrderStatus


class ListOrders(Command):
    page: int = Field(default=1, ge=1)
    page_size: Optional[int] = Field(default=None, ge=1, alias="pageSize")
    status: Optional[OrderStatus] = None
    order_by: Literal["created_at", "target_time"] = "created_at"
    order: SortDirection = SortDirection.DESC


class CreateReview(Command):
    order_id: NonEmptyStr
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    content: Optional[str] = None
    images: Optional[str] = None
