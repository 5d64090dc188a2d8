"""
============================================================================
FILE: config.py
LOCATION: api/config.py
============================================================================

PURPOSE:
    Centralized configuration for the KeliLink API: environment variables,
    Firebase Admin initialization, and the Firestore/Auth client toggles.

ROLE IN PROJECT:
    Every router and service reads settings and obtains its Firestore and
    identity-provider clients from here, so the mock/real switch lives in
    one place.

KEY COMPONENTS:
    - get_db: Returns mock or real Firestore client
    - get_auth: Returns mock or real Firebase Auth client
    - get_jwt_secret: Returns the mandatory token signing secret
    - validate_settings: Startup check, fails fast on missing secrets
    - RATE_LIMITS: Per-endpoint-group rate limit configuration

DEPENDENCIES:
    - External: firebase_admin, python-dotenv
    - Internal: mock_firestore, errors

USAGE:
    from api.config import get_db, get_auth
============================================================================
"""

import os
from pathlib import Path

import dotenv
import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin import firestore

try:
    from errors import ConfigurationError
except ImportError:
    from api.errors import ConfigurationError


# Load environment variables from .env
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DOTENV_PATH = PROJECT_ROOT / ".env"
if DOTENV_PATH.exists():
    dotenv.load_dotenv(DOTENV_PATH)

# Test Mode (skips Gemini calls and other outbound traffic)
KELILINK_TEST_MODE = os.getenv("KELILINK_TEST_MODE", "false").lower() == "true"

# Token Configuration
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_DAYS = int(os.getenv("JWT_EXPIRES_DAYS", "7"))

# Redis Configuration
REDIS_ENABLED = os.getenv("REDIS_ENABLED", "true").lower() == "true"
REDIS_URL = os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0")

# Gemini Configuration
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

# Firebase Auth REST key, used to check email/password pairs on login
FIREBASE_WEB_API_KEY = os.getenv("FIREBASE_WEB_API_KEY", "")

# Cookies (anonymous reviewer id) are marked Secure behind HTTPS
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"

# Mock Database Configuration
USE_REAL_FIREBASE = os.getenv("USE_REAL_FIREBASE", "false").lower() == "true"
USE_MOCK_DB = not USE_REAL_FIREBASE

# Rate limit groups: limit requests per window_seconds
RATE_LIMITS = {
    "default": {"limit": 100, "window_seconds": 15 * 60},
    # Search is the most expensive read path
    "find": {"limit": 30, "window_seconds": 5 * 60},
    # Registration spam
    "register": {"limit": 10, "window_seconds": 60 * 60},
}

# Global client instances
_db_instance = None
_auth_instance = None


def get_jwt_secret() -> str:
    """Return the token signing secret.

    Raises:
        ConfigurationError: If JWT_SECRET is not set.
    """
    secret = os.getenv("JWT_SECRET", "").strip()
    if not secret:
        raise ConfigurationError(
            "JWT_SECRET is not set; refusing to sign or verify tokens",
        )
    return secret


def validate_settings() -> None:
    """Fail fast on configuration the API cannot run without.

    Raises:
        ConfigurationError: If a required setting is missing.
    """
    get_jwt_secret()
    if USE_REAL_FIREBASE and not _resolve_credentials_path().exists():
        raise ConfigurationError(
            f"Firebase credentials not found: {_resolve_credentials_path()}",
        )


def _resolve_credentials_path():
    """Resolve the Firebase credentials file path.

    Returns:
        Path: Absolute path to the service account JSON file.
    """
    env_path = os.getenv("FIREBASE_CREDENTIALS")
    if env_path:
        path = Path(env_path)
        if not path.is_absolute():
            path = PROJECT_ROOT / env_path
        return path
    return PROJECT_ROOT / "serviceAccountKey.json"


def init_firebase():
    """Initialize Firebase Admin SDK.

    Raises:
        FileNotFoundError: If real Firebase credentials are missing.
    """
    if not firebase_admin._apps:
        key_path = _resolve_credentials_path()
        if not key_path.exists():
            raise FileNotFoundError(
                f"Firebase credentials not found: {key_path}",
            )
        cred = credentials.Certificate(str(key_path))
        firebase_admin.initialize_app(cred)


def get_db():
    """Get Firestore database client (mock or real).

    Returns:
        object: Firestore client or MockFirestoreClient instance.
    """
    global _db_instance
    if _db_instance is None:
        if USE_MOCK_DB:
            try:
                from mock_firestore import get_mock_db
            except ImportError:
                from api.mock_firestore import get_mock_db

            _db_instance = get_mock_db()
        else:
            init_firebase()
            _db_instance = firestore.client()
    return _db_instance


def get_auth():
    """Get Firebase auth module or mock auth.

    Returns:
        object: MockAuth instance or firebase_admin.auth module.
    """
    global _auth_instance
    if _auth_instance is None:
        if USE_MOCK_DB:
            try:
                from mock_firestore import MockAuth
            except ImportError:
                from api.mock_firestore import MockAuth

            _auth_instance = MockAuth()
        else:
            init_firebase()
            _auth_instance = firebase_auth
    return _auth_instance


def reset_clients() -> None:
    """Drop cached clients so the next call builds fresh ones."""
    global _db_instance, _auth_instance
    _db_instance = None
    _auth_instance = None
