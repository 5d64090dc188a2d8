"""
============================================================================
FILE: accounts.py
LOCATION: api/accounts.py
============================================================================

PURPOSE:
    Peddler (vendor) account endpoints: registration, login, profile and
    live location.

ROLE IN PROJECT:
    "Vendor" and "peddler" are the same mobile-seller account. One router
    implementation is mounted twice: /api/peddlers (current clients) and
    /api/vendors (older clients). Both read and write the `peddlers`
    collection; only the response key ("peddler" / "vendor") differs.

KEY COMPONENTS:
    - POST /register: Create identity + account document (rate group "register")
    - POST /login: Check password, issue bearer token
    - GET/PUT /profile: Read or overwrite profile fields
    - GET/POST /location: Read or publish current location and status
    - build_account_router(): Router factory per mount point

DEPENDENCIES:
    - External: fastapi
    - Internal: config, auth, identity, limiter, data_rights, models,
      validators, errors, cache

USAGE:
    from api.accounts import peddlers_router, vendors_router
    app.include_router(peddlers_router)
============================================================================
"""

from fastapi import APIRouter, Depends, status

try:
    from auth import create_access_token, require_peddler
    from cache import invalidate_search_cache
    from config import get_db
    from data_rights import DataProtection
    from errors import BadRequestError, NotFoundError, UnauthorizedError, failure_message
    from identity import check_password, create_identity, find_user_by_email, set_display_name
    from limiter import rate_limit
    from logging_config import get_logger
    from models import (
        AccountRegisterInput,
        LocationInput,
        LoginInput,
        PeddlerRecord,
        ProfileUpdateInput,
        TokenClaims,
        utc_now_iso,
    )
    from validators import parse_location, validate_registration
except ImportError:
    from api.auth import create_access_token, require_peddler
    from api.cache import invalidate_search_cache
    from api.config import get_db
    from api.data_rights import DataProtection
    from api.errors import BadRequestError, NotFoundError, UnauthorizedError, failure_message
    from api.identity import check_password, create_identity, find_user_by_email, set_display_name
    from api.limiter import rate_limit
    from api.logging_config import get_logger
    from api.models import (
        AccountRegisterInput,
        LocationInput,
        LoginInput,
        PeddlerRecord,
        ProfileUpdateInput,
        TokenClaims,
        utc_now_iso,
    )
    from api.validators import parse_location, validate_registration


logger = get_logger("accounts")

PEDDLERS_COLLECTION = "peddlers"


def _account_ref(uid: str):
    return get_db().collection(PEDDLERS_COLLECTION).document(uid)


def _load_account(uid: str, label: str) -> dict:
    doc = _account_ref(uid).get()
    if not doc.exists:
        raise NotFoundError(f"{label} profile not found")
    return doc.to_dict() or {}


def build_account_router(prefix: str, resource_key: str) -> APIRouter:
    """
    Build the account router for one mount point.

    Args:
        prefix: URL prefix, e.g. "/api/peddlers"
        resource_key: Response key for the account payload ("peddler"/"vendor")
    """
    label = resource_key.capitalize()
    router = APIRouter(prefix=prefix, tags=[f"{resource_key}s"])

    @router.post(
        "/register",
        status_code=status.HTTP_201_CREATED,
        dependencies=[Depends(rate_limit("register"))],
    )
    @failure_message(f"Failed to register {resource_key}")
    async def register(payload: AccountRegisterInput):
        """Register a new account. The identity provider hashes the password."""
        try:
            validate_registration(
                payload.name, payload.email, payload.password, payload.vendorType
            )
        except ValueError as exc:
            raise BadRequestError(str(exc))

        if find_user_by_email(payload.email) is not None:
            raise BadRequestError("User with this email already exists")

        user_record = create_identity(
            email=payload.email,
            password=payload.password,
            display_name=payload.name,
            phone=payload.phone,
        )

        record = PeddlerRecord(
            name=payload.name,
            email=payload.email,
            vendorType=payload.vendorType,
            description=payload.description or "",
            phone=payload.phone or "",
        )
        _account_ref(user_record.uid).set(record.to_firestore())
        logger.info(f"Registered {resource_key} account {user_record.uid}")

        return {
            "message": f"{label} registered successfully",
            resource_key: {
                "id": user_record.uid,
                "name": record.name,
                "email": record.email,
                "vendorType": record.vendorType,
            },
        }

    @router.post("/login", dependencies=[Depends(rate_limit("default"))])
    @failure_message("Login failed")
    async def login(payload: LoginInput):
        """Check credentials and issue a bearer token."""
        if not payload.email or not payload.password:
            raise BadRequestError("Email and password are required")

        user_record = find_user_by_email(payload.email)
        if user_record is None or not check_password(payload.email, payload.password):
            raise UnauthorizedError("Invalid email or password")

        doc = _account_ref(user_record.uid).get()
        if not doc.exists:
            raise NotFoundError(f"{label} account not found")
        data = doc.to_dict() or {}

        token = create_access_token(
            {
                "uid": user_record.uid,
                "email": user_record.email,
                "name": data.get("name"),
                "vendorType": data.get("vendorType"),
                "role": "peddler",
            }
        )

        return {
            "message": "Login successful",
            "token": token,
            resource_key: {
                "id": user_record.uid,
                "name": data.get("name"),
                "email": user_record.email,
                "vendorType": data.get("vendorType"),
                "isActive": data.get("isActive", False),
            },
        }

    @router.get("/profile")
    @failure_message(f"Failed to get {resource_key} profile")
    async def get_profile(principal: TokenClaims = Depends(require_peddler)):
        data = _load_account(principal.uid, label)
        return {resource_key: {"id": principal.uid, **data}}

    @router.put("/profile")
    @failure_message(f"Failed to update {resource_key} profile")
    async def update_profile(
        payload: ProfileUpdateInput,
        principal: TokenClaims = Depends(require_peddler),
    ):
        """
        Overwrite the given profile fields.

        A changed name is pushed to the identity provider afterwards; if that
        push fails the Firestore write stands and the failure is logged.
        """
        changes = payload.changes()
        if not changes:
            raise BadRequestError("No data provided for update")

        current = _load_account(principal.uid, label)

        update_data = {**changes, "updatedAt": utc_now_iso()}
        _account_ref(principal.uid).update(update_data)
        invalidate_search_cache()

        new_name = changes.get("name")
        if new_name and new_name != current.get("name"):
            try:
                set_display_name(principal.uid, new_name)
            except Exception as exc:
                logger.warning(
                    f"Display name sync failed for {principal.uid}: {exc}"
                )

        return {
            "message": "Profile updated successfully",
            resource_key: {"id": principal.uid, **current, **update_data},
        }

    @router.post("/location")
    @failure_message(f"Failed to update {resource_key} location")
    async def update_location(
        payload: LocationInput,
        principal: TokenClaims = Depends(require_peddler),
    ):
        """Publish the account's current position and, optionally, status."""
        location = parse_location(payload.location)
        if location is None:
            raise BadRequestError("Valid location coordinates are required")

        _load_account(principal.uid, label)

        now = utc_now_iso()
        update_data = {
            "location": location.model_dump(),
            "updatedAt": now,
            "last_active": now,
        }
        if isinstance(payload.is_active, bool):
            update_data["status"] = "active" if payload.is_active else "inactive"
            update_data["isActive"] = payload.is_active

        _account_ref(principal.uid).update(update_data)
        DataProtection.get_instance().record_location(principal.uid, location)
        invalidate_search_cache()

        return {
            "message": f"{label} location updated successfully",
            "location": update_data["location"],
            "status": update_data.get("status"),
        }

    @router.get("/location")
    @failure_message(f"Failed to get {resource_key} location")
    async def get_location(principal: TokenClaims = Depends(require_peddler)):
        doc = _account_ref(principal.uid).get()
        if not doc.exists:
            raise NotFoundError(f"{label} not found")
        data = doc.to_dict() or {}
        return {
            "location": data.get("location"),
            "status": data.get("status") or "inactive",
            "last_active": data.get("last_active"),
        }

    return router


peddlers_router = build_account_router("/api/peddlers", "peddler")
vendors_router = build_account_router("/api/vendors", "vendor")
