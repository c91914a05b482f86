import logging
from dataclasses import dataclass
from typing import Optional

from core import config
from core.document_store import DocumentStore
from core.identity import IdentityService
from core.object_store import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class Backend:
    """The three hosted services every repository and service is built from."""
    store: DocumentStore
    identity: IdentityService
    storage: ObjectStore


def create_memory_backend() -> Backend:
    from core.identity import MemoryIdentityService
    from core.memory_store import MemoryDocumentStore
    from core.object_store import MemoryObjectStore

    return Backend(
        store=MemoryDocumentStore(),
        identity=MemoryIdentityService(),
        storage=MemoryObjectStore(),
    )


def _firebase_app():
    import firebase_admin
    from firebase_admin import credentials

    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    if config.FIREBASE_CREDENTIALS:
        cred = credentials.Certificate(config.FIREBASE_CREDENTIALS)
    else:
        cred = credentials.ApplicationDefault()
    options = {}
    if config.FIREBASE_PROJECT_ID:
        options["projectId"] = config.FIREBASE_PROJECT_ID
    if config.FIREBASE_STORAGE_BUCKET:
        options["storageBucket"] = config.FIREBASE_STORAGE_BUCKET
    return firebase_admin.initialize_app(cred, options)


def _object_store(app) -> ObjectStore:
    if config.OBJECT_STORE == "cloudinary":
        from core.object_store import CloudinaryObjectStore

        return CloudinaryObjectStore(
            config.CLOUDINARY_CLOUD_NAME,
            config.CLOUDINARY_API_KEY,
            config.CLOUDINARY_API_SECRET,
            config.CLOUDINARY_FOLDER,
        )
    if config.OBJECT_STORE == "memory":
        from core.object_store import MemoryObjectStore

        return MemoryObjectStore()

    from firebase_admin import storage
    from core.object_store import FirebaseObjectStore

    return FirebaseObjectStore(storage.bucket(app=app))


def create_firebase_backend() -> Backend:
    from firebase_admin import firestore_async
    from core.document_store import FirestoreDocumentStore
    from core.identity import FirebaseIdentityService

    if not config.FIREBASE_API_KEY:
        logger.warning("FIREBASE_API_KEY is not set; password sign-in will fail")
    app = _firebase_app()
    return Backend(
        store=FirestoreDocumentStore(firestore_async.client(app)),
        identity=FirebaseIdentityService(app, config.FIREBASE_API_KEY, config.FIREBASE_AUTH_EMULATOR_HOST),
        storage=_object_store(app),
    )


def create_backend() -> Backend:
    if config.CHAT_BACKEND == "memory":
        logger.info("Using in-memory backend")
        backend = create_memory_backend()
        if config.OBJECT_STORE == "cloudinary":
            backend.storage = _object_store(None)
        return backend
    if config.CHAT_BACKEND != "firebase":
        raise ValueError(f"Unknown CHAT_BACKEND: {config.CHAT_BACKEND}")
    logger.info("Using Firebase backend")
    return create_firebase_backend()


_backend: Optional[Backend] = None


def get_backend() -> Backend:
    """FastAPI dependency; builds the backend on first use."""
    global _backend
    if _backend is None:
        _backend = create_backend()
    return _backend
