"""
============================================================================
FILE: identity.py
LOCATION: api/identity.py
============================================================================

PURPOSE:
    Thin wrapper over the identity provider (Firebase Auth) for the calls
    the account flows make: create, look up, rename, delete, check password.

ROLE IN PROJECT:
    Keeps Firebase-specific exception types and the REST password check out
    of the routers. Works against the real SDK or MockAuth via get_auth().

KEY COMPONENTS:
    - find_user_by_email(): UserRecord or None
    - create_identity(): Create user, mapping duplicates and bad input
    - check_password(): Email/password verification
    - set_display_name(), delete_identity()

DEPENDENCIES:
    - External: firebase_admin (via config.get_auth), requests
    - Internal: config.py, errors.py

USAGE:
    from api.identity import create_identity
============================================================================
"""

from typing import Optional

import requests

try:
    from config import FIREBASE_WEB_API_KEY, USE_MOCK_DB, get_auth
    from errors import BadRequestError, ConfigurationError, ConflictError
    from logging_config import get_logger
except ImportError:
    from api.config import FIREBASE_WEB_API_KEY, USE_MOCK_DB, get_auth
    from api.errors import BadRequestError, ConfigurationError, ConflictError
    from api.logging_config import get_logger


logger = get_logger("identity")

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
SIGN_IN_TIMEOUT_SECONDS = 10


def find_user_by_email(email: str):
    """Return the identity record for email, or None if there is none."""
    auth_client = get_auth()
    try:
        return auth_client.get_user_by_email(email)
    except auth_client.UserNotFoundError:
        return None


def create_identity(
    email: str,
    password: str,
    display_name: str,
    phone: Optional[str] = None,
):
    """
    Create an identity-provider user.

    Raises:
        ConflictError: If the email is already registered
        BadRequestError: If the provider rejects email, password or phone
    """
    auth_client = get_auth()
    try:
        return auth_client.create_user(
            email=email,
            password=password,
            display_name=display_name,
            phone_number=phone or None,
        )
    except auth_client.EmailAlreadyExistsError:
        raise ConflictError("User with this email already exists")
    except ValueError as exc:
        # The Admin SDK validates arguments client-side with ValueError
        raise BadRequestError(f"Invalid registration data: {exc}")


def set_display_name(uid: str, display_name: str) -> None:
    get_auth().update_user(uid, display_name=display_name)


def delete_identity(uid: str) -> None:
    auth_client = get_auth()
    try:
        auth_client.delete_user(uid)
    except auth_client.UserNotFoundError:
        logger.info(f"Identity {uid} already absent")


def check_password(email: str, password: str) -> bool:
    """
    Verify an email/password pair.

    The Admin SDK cannot check passwords, so real deployments go through
    the Identity Toolkit REST sign-in with FIREBASE_WEB_API_KEY.

    Raises:
        ConfigurationError: If real Firebase is used without a web API key
        requests.RequestException: If the provider cannot be reached
    """
    if USE_MOCK_DB:
        return get_auth().check_password(email, password)

    if not FIREBASE_WEB_API_KEY:
        raise ConfigurationError("FIREBASE_WEB_API_KEY is required for login")

    response = requests.post(
        SIGN_IN_URL,
        params={"key": FIREBASE_WEB_API_KEY},
        json={"email": email, "password": password, "returnSecureToken": False},
        timeout=SIGN_IN_TIMEOUT_SECONDS,
    )
    if response.status_code == 200:
        return True
    if response.status_code == 400:
        return False
    response.raise_for_status()
    return False
