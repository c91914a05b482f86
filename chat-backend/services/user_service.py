import logging
from typing import List, Optional

from core import config
from core.backend import Backend
from core.exceptions import UserLookupError
from models.users import AuthPrincipal, UserDocument
from repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, backend: Backend, rollback: Optional[bool] = None):
        self.user_repo = UserRepository(backend.store)
        self.identity = backend.identity
        self.storage = backend.storage
        self.rollback = config.REGISTRATION_ROLLBACK if rollback is None else rollback

    async def authenticate_user(self, email: str, password: str) -> AuthPrincipal:
        # AuthError from the identity service goes straight to the caller
        return await self.identity.authenticate(email, password)

    async def register_user(
        self,
        username: str,
        email: str,
        password: str,
        profile_image: bytes,
        content_type: Optional[str] = None,
    ) -> AuthPrincipal:
        """
        Create the account, upload the profile picture (keyed by email),
        write the user document, then copy name and picture onto the account.

        If a step after account creation fails, the steps already done are
        undone in reverse order and the original error is re-raised. With
        rollback off, the account is left behind without a user document.
        """
        principal = await self.identity.create_account(email, password)
        logger.info("Created account %s for %s", principal.id, email)

        undo = [("account", lambda: self.identity.delete_account(principal.id))]
        try:
            await self.storage.upload(email, profile_image, content_type, config.PROFILE_IMAGE_CACHE_CONTROL)
            undo.append(("profile image", lambda: self.storage.delete(email)))
            photo_url = await self.storage.public_url(email)

            await self.user_repo.create_user(principal.id, username, email, photo_url)
            undo.append(("user document", lambda: self.user_repo.delete(principal.id)))

            return await self.identity.update_profile(principal.id, username, photo_url)
        except Exception:
            if not self.rollback:
                logger.warning("Registration of %s failed; rollback disabled, account %s kept", email, principal.id)
                raise
            await self._compensate(email, undo)
            raise

    async def _compensate(self, email: str, undo) -> None:
        for name, action in reversed(undo):
            try:
                await action()
                logger.warning("Registration of %s failed; removed %s", email, name)
            except Exception:
                logger.exception("Registration of %s failed; could not remove %s", email, name)

    async def get_user_by_id(self, user_id: str) -> Optional[UserDocument]:
        return await self.user_repo.get_by_id(user_id)

    async def find_users_by_username(self, caller_id: str, username: str) -> List[UserDocument]:
        """Exact username match, never including the caller."""
        try:
            users = await self.user_repo.find_by_username(username)
        except Exception as exc:
            logger.exception("Username lookup for %r failed", username)
            raise UserLookupError() from exc
        return [user for user in users if user.id != caller_id]
