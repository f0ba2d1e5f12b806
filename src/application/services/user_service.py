from __future__ import annotations

from src.application.commands import EditProfile
from src.application.context import RequestContext
from src.application.services.common import require_found, utc_timestamp
from src.domain.entities.user import User
from src.domain.errors import NotFoundError
from src.logging_config import get_logger
from src.repositories.gateway import TableGateway
from src.repositories.store import RecordStore
from src.repositories.tables import USERS

logger = get_logger("services.users")


class UserService:
    """Profiles of verified identities. Users are created on first login."""

    def __init__(self, store: RecordStore) -> None:
        self._users = TableGateway(store, USERS)

    def get(self, user_id: str) -> User | None:
        row = self._users.find_by_id(user_id)
        return User.model_validate(row) if row else None

    def ensure_user(self, subject_id: str) -> User:
        """Return the user for ``subject_id``, creating the row if it is new.

        Concurrent first logins for the same subject both end with the same
        single row; the loser's insert is ignored.
        """
        existing = self.get(subject_id)
        if existing is not None:
            return existing
        result = self._users.create({"id": subject_id}, ignore_conflicts=True)
        if result.ok:
            logger.info("User created", extra={"user_id": result.generated_id})
        return User.model_validate(require_found(self._users.find_by_id(subject_id), "User"))

    def profile(self, ctx: RequestContext) -> User:
        user_id = ctx.require_user()
        return User.model_validate(require_found(self._users.find_by_id(user_id), "User"))

    def edit_profile(self, ctx: RequestContext, cmd: EditProfile) -> User:
        user_id = ctx.require_user()
        data = cmd.changes()
        data["updated_at"] = utc_timestamp()
        result = self._users.update({"id": user_id}, data)
        if result.changed_count == 0:
            raise NotFoundError("User not found")
        return self.profile(ctx)
