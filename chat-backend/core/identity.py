"""
Identity service adapters.

Firebase Authentication via the Admin SDK for account management, plus the
Identity Toolkit REST endpoint for password sign-in (the Admin SDK cannot
check passwords). Both SDKs are blocking, so calls go through the threadpool.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Optional

import requests
from firebase_admin import auth
from firebase_admin.exceptions import FirebaseError
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from core.exceptions import AuthError
from models.users import AuthPrincipal

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


class IdentityService(ABC):
    @abstractmethod
    async def create_account(self, email: str, password: str) -> AuthPrincipal:
        ...

    @abstractmethod
    async def authenticate(self, email: str, password: str) -> AuthPrincipal:
        ...

    @abstractmethod
    async def update_profile(self, uid: str, display_name: str, photo_url: Optional[str]) -> AuthPrincipal:
        ...

    @abstractmethod
    async def delete_account(self, uid: str) -> None:
        ...


def _principal_from_record(record) -> AuthPrincipal:
    return AuthPrincipal(
        id=record.uid,
        email=record.email,
        display_name=record.display_name,
        photo_url=record.photo_url,
    )


class FirebaseIdentityService(IdentityService):
    def __init__(self, app, api_key: Optional[str], emulator_host: Optional[str] = None):
        self.app = app
        self.api_key = api_key
        if emulator_host:
            self.base_url = f"http://{emulator_host}/identitytoolkit.googleapis.com/v1"
        else:
            self.base_url = IDENTITY_TOOLKIT_URL

    async def create_account(self, email: str, password: str) -> AuthPrincipal:
        try:
            record = await run_in_threadpool(auth.create_user, email=email, password=password, app=self.app)
        except FirebaseError as exc:
            raise AuthError(str(exc), code=exc.code) from exc
        except ValueError as exc:
            raise AuthError(str(exc), code="INVALID_ARGUMENT") from exc
        return _principal_from_record(record)

    async def authenticate(self, email: str, password: str) -> AuthPrincipal:
        url = f"{self.base_url}/accounts:signInWithPassword"
        try:
            response = await run_in_threadpool(
                requests.post,
                url,
                params={"key": self.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=10,
            )
        except requests.RequestException as exc:
            raise AuthError(str(exc), code="NETWORK_ERROR") from exc

        payload = response.json() if response.content else {}
        if response.status_code != 200:
            # e.g. {"error": {"message": "INVALID_LOGIN_CREDENTIALS", ...}}
            message = payload.get("error", {}).get("message", f"HTTP {response.status_code}")
            raise AuthError(message, code=message.split(" ")[0])

        return AuthPrincipal(
            id=payload["localId"],
            email=payload.get("email"),
            display_name=payload.get("displayName") or None,
            photo_url=payload.get("profilePicture"),
            id_token=payload.get("idToken"),
        )

    async def update_profile(self, uid: str, display_name: str, photo_url: Optional[str]) -> AuthPrincipal:
        try:
            record = await run_in_threadpool(
                auth.update_user, uid, display_name=display_name, photo_url=photo_url, app=self.app
            )
        except FirebaseError as exc:
            raise AuthError(str(exc), code=exc.code) from exc
        return _principal_from_record(record)

    async def delete_account(self, uid: str) -> None:
        try:
            await run_in_threadpool(auth.delete_user, uid, app=self.app)
        except FirebaseError as exc:
            raise AuthError(str(exc), code=exc.code) from exc


class MemoryIdentityService(IdentityService):
    """Accounts kept in a dict; for local runs and tests."""

    def __init__(self):
        self.accounts: Dict[str, dict] = {}

    def _by_uid(self, uid: str) -> dict:
        for account in self.accounts.values():
            if account["uid"] == uid:
                return account
        raise AuthError(f"No user record found for uid {uid}", code="USER_NOT_FOUND")

    @staticmethod
    def _principal(account: dict, id_token: Optional[str] = None) -> AuthPrincipal:
        return AuthPrincipal(
            id=account["uid"],
            email=account["email"],
            display_name=account["display_name"],
            photo_url=account["photo_url"],
            id_token=id_token,
        )

    async def create_account(self, email: str, password: str) -> AuthPrincipal:
        if email in self.accounts:
            raise AuthError("EMAIL_EXISTS", code="EMAIL_EXISTS")
        if len(password) < 6:
            raise AuthError("WEAK_PASSWORD : Password should be at least 6 characters", code="WEAK_PASSWORD")
        account = {
            "uid": uuid.uuid4().hex,
            "email": email,
            "password_hash": get_password_hash(password),
            "display_name": None,
            "photo_url": None,
        }
        self.accounts[email] = account
        return self._principal(account)

    async def authenticate(self, email: str, password: str) -> AuthPrincipal:
        account = self.accounts.get(email)
        if account is None or not verify_password(password, account["password_hash"]):
            raise AuthError("INVALID_LOGIN_CREDENTIALS", code="INVALID_LOGIN_CREDENTIALS")
        return self._principal(account, id_token=uuid.uuid4().hex)

    async def update_profile(self, uid: str, display_name: str, photo_url: Optional[str]) -> AuthPrincipal:
        account = self._by_uid(uid)
        account["display_name"] = display_name
        account["photo_url"] = photo_url
        return self._principal(account)

    async def delete_account(self, uid: str) -> None:
        account = self._by_uid(uid)
        del self.accounts[account["email"]]
