"""
============================================================================
FILE: users.py
LOCATION: api/users.py
============================================================================

PURPOSE:
    Customer account endpoints: registration and login.

ROLE IN PROJECT:
    Customers browse peddlers without an account; registering gives them a
    bearer token (role "user") for the data-rights endpoints.

KEY COMPONENTS:
    - POST /api/user/register: Create identity + `users` document
    - POST /api/user/login: Check password, issue bearer token

DEPENDENCIES:
    - External: fastapi
    - Internal: config.py, auth.py, identity.py, limiter.py, validators.py

USAGE:
    Include router in main.py:
    from users import router as users_router
    app.include_router(users_router)
============================================================================
"""

from fastapi import APIRouter, Depends, status

try:
    from auth import create_access_token
    from config import get_db
    from errors import BadRequestError, NotFoundError, UnauthorizedError, failure_message
    from identity import check_password, create_identity, find_user_by_email
    from limiter import rate_limit
    from logging_config import get_logger
    from models import LoginInput, UserRegisterInput, utc_now_iso
    from validators import validate_registration
except ImportError:
    from api.auth import create_access_token
    from api.config import get_db
    from api.errors import BadRequestError, NotFoundError, UnauthorizedError, failure_message
    from api.identity import check_password, create_identity, find_user_by_email
    from api.limiter import rate_limit
    from api.logging_config import get_logger
    from api.models import LoginInput, UserRegisterInput, utc_now_iso
    from api.validators import validate_registration


logger = get_logger("users")

router = APIRouter(prefix="/api/user", tags=["users"])

USERS_COLLECTION = "users"


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("register"))],
)
@failure_message("Registration failed")
async def register_user(payload: UserRegisterInput):
    """
    Register a customer account.

    Returns:
        {"message", "user": {id, name, email}}
    """
    try:
        validate_registration(payload.name, payload.email, payload.password)
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

    now = utc_now_iso()
    get_db().collection(USERS_COLLECTION).document(user_record.uid).set(
        {
            "name": payload.name,
            "email": payload.email,
            "phone": payload.phone or "",
            "createdAt": now,
            "updatedAt": now,
        }
    )
    logger.info(f"Registered user {user_record.uid}")

    return {
        "message": "User registered successfully",
        "user": {"id": user_record.uid, "name": payload.name, "email": payload.email},
    }


@router.post("/login", dependencies=[Depends(rate_limit("default"))])
@failure_message("Login failed")
async def login_user(payload: LoginInput):
    if not payload.email or not payload.password:
        raise BadRequestError("Email and password are required")

    user_record = find_user_by_email(payload.email)
    if user_record is None or not check_password(payload.email, payload.password):
        raise UnauthorizedError("Invalid email or password")

    user_doc = get_db().collection(USERS_COLLECTION).document(user_record.uid).get()
    if not user_doc.exists:
        raise NotFoundError("User account not found")
    user_data = user_doc.to_dict() or {}

    token = create_access_token(
        {
            "uid": user_record.uid,
            "email": user_record.email,
            "name": user_data.get("name"),
            "role": "user",
        }
    )

    return {
        "message": "Login successful",
        "token": token,
        "user": {
            "id": user_record.uid,
            "name": user_data.get("name"),
            "email": user_record.email,
        },
    }
