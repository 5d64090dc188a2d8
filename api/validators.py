"""
============================================================================
FILE: validators.py
LOCATION: api/validators.py
============================================================================

PURPOSE:
    Validation utilities for registration data and coordinates.

ROLE IN PROJECT:
    Shared by the account and user routers so the 400 messages clients see
    are identical on every registration path.

KEY COMPONENTS:
    - validate_registration: Required fields, email shape, password length
    - parse_location: Strictly numeric {lat, lon} mapping to GeoPoint

DEPENDENCIES:
    - External: None
    - Internal: models

USAGE:
    from api.validators import validate_registration
============================================================================
"""

import re
import typing

try:
    from models import GeoPoint
except ImportError:
    from api.models import GeoPoint


# Same lower bound Firebase Auth enforces
MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_registration(
    name: typing.Optional[str],
    email: typing.Optional[str],
    password: typing.Optional[str],
    *extra_required: typing.Optional[str],
) -> None:
    """Validate the fields every registration needs.

    Args:
        name: Display name.
        email: Login email.
        password: Plain password, forwarded to the identity provider.
        extra_required: Further values that must be non-empty.

    Raises:
        ValueError: With the client-facing message.
    """
    if not name or not email or not password or not all(extra_required):
        raise ValueError("Missing required fields")
    if not _EMAIL_RE.match(email):
        raise ValueError("Invalid email format")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError("Password is too weak")


def _is_number(value: typing.Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_location(raw: typing.Optional[dict]) -> typing.Optional[GeoPoint]:
    """Return a GeoPoint when raw holds numeric lat/lon, else None."""
    if not isinstance(raw, dict):
        return None
    lat = raw.get("lat", raw.get("latitude"))
    lon = raw.get("lon", raw.get("lng", raw.get("longitude")))
    if not (_is_number(lat) and _is_number(lon)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return GeoPoint(lat=lat, lon=lon)
