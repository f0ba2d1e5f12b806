from __future__ import annotations

from typing import Optional

from src.application.commands import (
    AddMember,
    CreateGroup,
    EditGroup,
    RemoveMember,
    UpdateMember,
)
from src.application.context import RequestContext
from src.application.services.common import new_id, require_found, utc_timestamp
from src.domain.entities.group import Group, GroupDetail, GroupMember, Membership, MyGroup
from src.domain.errors import AuthorizationError, ConflictError, NotFoundError
from src.domain.value_objects.enums import MemberRole
from src.domain.value_objects.ids import GroupId
from src.logging_config import get_logger
from src.repositories.gateway import TableGateway
from src.repositories.groups import GroupReader
from src.repositories.store import RecordStore
from src.repositories.tables import GROUPS, MEMBERSHIPS, USERS

logger = get_logger("services.groups")


class GroupService:
    """Group and membership lifecycle.

    Rules:
    - the creator becomes the only ``owner`` (``can_manage=1``) in the same
      batch that creates the group row;
    - adding, removing and editing other members needs ``can_manage=1``;
    - an owner can never be removed, demoted or made to leave, and no
      operation creates a second owner;
    - only the owner deletes the group, which cascades to its memberships.

    Checks and writes are separate round-trips. Races are settled by the
    store: the (group_id, user_id) key rejects duplicate memberships, and
    writes touching existing rows are restricted to ``role = 'member'``.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._groups = TableGateway(store, GROUPS)
        self._members = TableGateway(store, MEMBERSHIPS)
        self._users = TableGateway(store, USERS)
        self._reader = GroupReader(store)

    # ── helpers ───────────────────────────────────────────

    def membership(self, group_id: str, user_id: str) -> Optional[Membership]:
        row = self._members.find_one({"group_id": group_id, "user_id": user_id})
        return Membership.model_validate(row) if row else None

    def _require_manager(self, group_id: str, user_id: str) -> Membership:
        member = self.membership(group_id, user_id)
        if member is None or not member.can_manage:
            raise AuthorizationError("No permission to manage this group")
        return member

    def _require_non_owner_target(self, group_id: str, user_id: str, action: str) -> Membership:
        target = self.membership(group_id, user_id)
        if target is None:
            raise NotFoundError("User is not a member of this group")
        if target.is_owner:
            raise AuthorizationError(f"Cannot {action} the group owner")
        return target

    # ── groups ────────────────────────────────────────────

    def create_group(self, ctx: RequestContext, cmd: CreateGroup) -> Group:
        user_id = ctx.require_user()
        group_id = new_id()
        self._store.execute_batch(
            [
                self._groups.insert_statement(
                    {
                        "id": group_id,
                        "name": cmd.name,
                        "avatar_key": cmd.avatar_key,
                        "group_type": cmd.group_type.value,
                    }
                ),
                self._members.insert_statement(
                    {
                        "group_id": group_id,
                        "user_id": user_id,
                        "role": MemberRole.OWNER.value,
                        "can_manage": True,
                    }
                ),
            ]
        )
        logger.info(
            "Group created",
            extra={"group_id": group_id, "user_id": user_id, "request_id": ctx.request_id},
        )
        return Group.model_validate(require_found(self._groups.find_by_id(group_id), "Group"))

    def edit_group(self, ctx: RequestContext, cmd: EditGroup) -> Group:
        user_id = ctx.require_user()
        self._require_manager(cmd.group_id, user_id)
        data = cmd.changes()
        data["updated_at"] = utc_timestamp()
        result = self._groups.update({"id": cmd.group_id}, data)
        if result.changed_count == 0:
            raise NotFoundError("Group not found")
        return Group.model_validate(require_found(self._groups.find_by_id(cmd.group_id), "Group"))

    def delete_group(self, ctx: RequestContext, group_id: str) -> int:
        user_id = ctx.require_user()
        member = self.membership(group_id, user_id)
        if member is None or not member.is_owner:
            raise AuthorizationError("Only the group owner can delete the group")
        result = self._groups.delete({"id": group_id})
        if result.changed_count == 0:
            raise NotFoundError("Group not found")
        logger.info(
            "Group deleted",
            extra={"group_id": group_id, "user_id": user_id, "request_id": ctx.request_id},
        )
        return result.changed_count

    def my_groups(self, ctx: RequestContext) -> list[MyGroup]:
        user_id = ctx.require_user()
        return [MyGroup.model_validate(row) for row in self._reader.groups_of(user_id)]

    def group_detail(self, ctx: RequestContext, group_id: str) -> GroupDetail:
        user_id = ctx.require_user()
        if self.membership(group_id, user_id) is None:
            raise AuthorizationError("No permission to view this group")
        group = Group.model_validate(require_found(self._groups.find_by_id(group_id), "Group"))
        members = [GroupMember.model_validate(row) for row in self._reader.members_of(group_id)]
        return GroupDetail(group=group, members=members)

    # ── members ───────────────────────────────────────────

    def add_member(self, ctx: RequestContext, cmd: AddMember) -> Membership:
        user_id = ctx.require_user()
        self._require_manager(cmd.group_id, user_id)
        if cmd.role == MemberRole.OWNER:
            raise AuthorizationError("A group has exactly one owner")
        if not self._users.exists({"id": cmd.target_user_id}):
            raise NotFoundError("Target user not found")
        if self.membership(cmd.group_id, cmd.target_user_id) is not None:
            raise ConflictError("User is already a member of this group")

        # A concurrent add for the same pair fails on the primary key with ConflictError.
        self._members.create(
            {
                "group_id": cmd.group_id,
                "user_id": cmd.target_user_id,
                "role": MemberRole.MEMBER.value,
                "can_manage": cmd.can_manage,
            }
        )
        logger.info(
            "Member added",
            extra={
                "group_id": cmd.group_id,
                "user_id": cmd.target_user_id,
                "actor": user_id,
                "request_id": ctx.request_id,
            },
        )
        return require_found(self.membership(cmd.group_id, cmd.target_user_id), "Membership")

    def remove_member(self, ctx: RequestContext, cmd: RemoveMember) -> int:
        user_id = ctx.require_user()
        if cmd.target_user_id == user_id:
            return self.leave_group(ctx, cmd.group_id)
        self._require_manager(cmd.group_id, user_id)
        self._require_non_owner_target(cmd.group_id, cmd.target_user_id, "remove")
        result = self._members.delete(
            {
                "group_id": cmd.group_id,
                "user_id": cmd.target_user_id,
                "role": MemberRole.MEMBER.value,
            }
        )
        if result.changed_count == 0:
            raise NotFoundError("User is not a member of this group")
        logger.info(
            "Member removed",
            extra={
                "group_id": cmd.group_id,
                "user_id": cmd.target_user_id,
                "actor": user_id,
                "request_id": ctx.request_id,
            },
        )
        return result.changed_count

    def update_member(self, ctx: RequestContext, cmd: UpdateMember) -> Membership:
        user_id = ctx.require_user()
        self._require_manager(cmd.group_id, user_id)
        self._require_non_owner_target(cmd.group_id, cmd.target_user_id, "change")
        data = cmd.changes()
        if data.get("role") == MemberRole.OWNER.value:
            raise AuthorizationError("A group has exactly one owner")
        result = self._members.update(
            {
                "group_id": cmd.group_id,
                "user_id": cmd.target_user_id,
                "role": MemberRole.MEMBER.value,
            },
            data,
        )
        if result.changed_count == 0:
            raise NotFoundError("User is not a member of this group")
        return require_found(self.membership(cmd.group_id, cmd.target_user_id), "Membership")

    def leave_group(self, ctx: RequestContext, group_id: str) -> int:
        user_id = ctx.require_user()
        member = self.membership(group_id, user_id)
        if member is None:
            raise NotFoundError("You are not a member of this group")
        if member.is_owner:
            raise AuthorizationError("The owner cannot leave; delete the group instead")
        result = self._members.delete(
            {"group_id": group_id, "user_id": user_id, "role": MemberRole.MEMBER.value}
        )
        if result.changed_count == 0:
            raise NotFoundError("You are not a member of this group")
        logger.info(
            "Member left",
            extra={"group_id": group_id, "user_id": user_id, "request_id": ctx.request_id},
        )
        return result.changed_count

    def owner_count(self, group_id: GroupId | str) -> int:
        return self._reader.owner_count(group_id)
