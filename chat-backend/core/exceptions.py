"""
Error types raised by the data-access layer.

    ChatBackendError (base)
    ├── AuthError - identity service failures (code passed through)
    ├── UserLookupError - directory query failed, reason not exposed
    ├── ChatExistsError - the two-party chat is already there
    ├── TransactionConflictError - store gave up on a contended transaction
    ├── StorageError - object store failures
    └── DocumentNotFoundError - update or read of a missing document
"""
from typing import Optional


class ChatBackendError(Exception):
    """Base class for every error this backend raises on purpose."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class AuthError(ChatBackendError):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class UserLookupError(ChatBackendError, LookupError):
    def __init__(self, message: str = "User lookup failed"):
        super().__init__(message)


class ChatExistsError(ChatBackendError):
    """Raised from inside the create-chat transaction; callers treat it as success."""

    def __init__(self, chat_id: str):
        super().__init__(f"Chat {chat_id} already exists")
        self.chat_id = chat_id


class TransactionConflictError(ChatBackendError):
    pass


class StorageError(ChatBackendError):
    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class DocumentNotFoundError(ChatBackendError):
    def __init__(self, path: str):
        super().__init__(f"Document {path} does not exist")
        self.path = path
