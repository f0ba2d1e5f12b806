from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..value_objects.enums import GroupType, MemberRole
from ..value_objects.ids import GroupId, UserId


class Group(BaseModel):
    id: GroupId
    name: str | None = None
    avatar_key: str | None = None
    group_type: GroupType = GroupType.FAMILY
    created_at: str | None = None
    updated_at: str | None = None

    model_config = ConfigDict(frozen=True)


class Membership(BaseModel):
    """One (group, user) row. ``can_manage`` grants authority over non-owner members."""

    group_id: GroupId
    user_id: UserId
    role: MemberRole = MemberRole.MEMBER
    can_manage: bool = Field(default=False)
    joined_at: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_owner(self) -> bool:
        return self.role == MemberRole.OWNER


class GroupMember(Membership):
    nickname: str | None = None
    avatar_key: str | None = None


class MyGroup(Group):
    """A group as seen by one of its members."""

    role: MemberRole
    can_manage: bool
    joined_at: str | None = None


class GroupDetail(BaseModel):
    group: Group
    members: list[GroupMember]

    model_config = ConfigDict(frozen=True)
