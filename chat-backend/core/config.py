# File: core/config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Backend adapters: "firebase" for the hosted services, "memory" for local runs and tests
CHAT_BACKEND = os.getenv("CHAT_BACKEND", "firebase")
OBJECT_STORE = os.getenv("OBJECT_STORE", CHAT_BACKEND)

# Firebase project
FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS")
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
FIREBASE_STORAGE_BUCKET = os.getenv("FIREBASE_STORAGE_BUCKET")
FIREBASE_API_KEY = os.getenv("FIREBASE_API_KEY")
FIREBASE_AUTH_EMULATOR_HOST = os.getenv("FIREBASE_AUTH_EMULATOR_HOST")

# Cloudinary, when it stores profile pictures instead of Firebase Storage
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "chat_profiles")

# 12 hours
PROFILE_IMAGE_CACHE_CONTROL = os.getenv("PROFILE_IMAGE_CACHE_CONTROL", "public, max-age=43200")

MESSAGES_PAGE_SIZE = int(os.getenv("MESSAGES_PAGE_SIZE", 25))
# Old clients dropped the newest message of every page; keep that only when asked to
LEGACY_DROP_FIRST_MESSAGE = _flag("LEGACY_DROP_FIRST_MESSAGE", False)
REGISTRATION_ROLLBACK = _flag("REGISTRATION_ROLLBACK", True)

# Session tokens
SECRET_KEY = os.getenv("SECRET_KEY", "dev_secret_key_do_not_use_in_production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 30))

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",")]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
