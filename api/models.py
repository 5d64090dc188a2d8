"""
============================================================================
FILE: models.py
LOCATION: api/models.py
============================================================================

PURPOSE:
    Pydantic models for Firestore documents, token claims and API inputs.

ROLE IN PROJECT:
    Centralizes request/response shapes so routers stay thin. Inputs keep
    presence checks lenient (Optional fields); routers raise the specific
    400 messages clients rely on.

KEY COMPONENTS:
    - TokenClaims: Decoded bearer token
    - PeddlerRecord: Canonical account document (vendor and peddler alike)
    - AccountRegisterInput / LoginInput / ProfileUpdateInput / LocationInput
    - UserRegisterInput: Customer registration
    - NearbyQuery / NearbySearchInput: Nearby peddler search
    - ReviewInput / ReviewUpdateInput, DescriptionInput, RouteAdviceInput

DEPENDENCIES:
    - External: pydantic
    - Internal: None

USAGE:
    from api.models import PeddlerRecord, TokenClaims
============================================================================
"""

import datetime
import typing

import pydantic


AccountStatus = typing.Literal["active", "inactive"]
PrincipalRole = typing.Literal["peddler", "user"]


def utc_now_iso() -> str:
    """ISO 8601 timestamp in UTC, the format stored in every document."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class GeoPoint(pydantic.BaseModel):
    lat: float
    lon: float


class TokenClaims(pydantic.BaseModel):
    """Claims carried by a KeliLink bearer token."""

    model_config = pydantic.ConfigDict(extra="allow")

    uid: str
    email: typing.Optional[str] = None
    name: typing.Optional[str] = None
    role: PrincipalRole = "peddler"
    vendorType: typing.Optional[str] = None


class PeddlerRecord(pydantic.BaseModel):
    """Represents a peddler (vendor) document in Firestore."""

    model_config = pydantic.ConfigDict(populate_by_name=True, extra="allow")

    name: str
    email: str
    vendorType: str = pydantic.Field(
        "",
        validation_alias=pydantic.AliasChoices("vendorType", "peddlerType", "type"),
    )
    description: str = ""
    phone: str = ""
    status: AccountStatus = "inactive"
    isActive: bool = False
    location: typing.Optional[GeoPoint] = None
    last_active: typing.Optional[str] = None
    rating: typing.Optional[float] = None
    reviewCount: int = 0
    createdAt: str = pydantic.Field(default_factory=utc_now_iso)
    updatedAt: str = pydantic.Field(default_factory=utc_now_iso)

    def to_firestore(self) -> dict:
        return self.model_dump(exclude_none=True)


class AccountRegisterInput(pydantic.BaseModel):
    """Input for registering a peddler/vendor account."""

    name: typing.Optional[str] = None
    email: typing.Optional[str] = None
    password: typing.Optional[str] = None
    vendorType: typing.Optional[str] = pydantic.Field(
        None,
        validation_alias=pydantic.AliasChoices("vendorType", "peddlerType", "type"),
    )
    description: typing.Optional[str] = None
    phone: typing.Optional[str] = None


class LoginInput(pydantic.BaseModel):
    email: typing.Optional[str] = None
    password: typing.Optional[str] = None


class ProfileUpdateInput(pydantic.BaseModel):
    """Input for updating a peddler profile. Empty strings count as absent."""

    name: typing.Optional[str] = None
    vendorType: typing.Optional[str] = pydantic.Field(
        None,
        validation_alias=pydantic.AliasChoices("vendorType", "peddlerType", "type"),
    )
    description: typing.Optional[str] = None
    phone: typing.Optional[str] = None

    def changes(self) -> dict:
        return {
            key: value
            for key, value in self.model_dump().items()
            if value
        }


class LocationInput(pydantic.BaseModel):
    # Raw mapping so non-numeric coordinates get the 400 message, not a 422
    location: typing.Optional[typing.Dict[str, typing.Any]] = None
    is_active: typing.Optional[typing.Any] = None


class UserRegisterInput(pydantic.BaseModel):
    """Input for registering a customer account."""

    name: typing.Optional[str] = None
    email: typing.Optional[str] = None
    password: typing.Optional[str] = None
    phone: typing.Optional[str] = None


class NearbyQuery(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(populate_by_name=True)

    peddler_type: typing.Optional[str] = pydantic.Field(
        None,
        validation_alias=pydantic.AliasChoices("peddler_type", "vendor_type"),
    )
    keywords: typing.List[str] = pydantic.Field(default_factory=list)
    max_distance: float = pydantic.Field(5000, gt=0)
    limit: int = pydantic.Field(20, ge=1, le=100)
    city: typing.Optional[str] = None
    kecamatan: typing.Optional[str] = None
    kelurahan: typing.Optional[str] = None
    last_peddler_id: typing.Optional[str] = None


class NearbySearchInput(pydantic.BaseModel):
    location: typing.Optional[typing.Dict[str, typing.Any]] = None
    query_details: typing.Optional[NearbyQuery] = None


class FindInput(pydantic.BaseModel):
    """Free-text customer search for POST /api/find."""

    message: typing.Optional[str] = None
    location: typing.Optional[typing.Dict[str, typing.Any]] = None
    lastVendorId: typing.Optional[str] = None
    limit: int = pydantic.Field(10, ge=1, le=100)


class ReviewInput(pydantic.BaseModel):
    vendorId: typing.Optional[str] = pydantic.Field(
        None,
        validation_alias=pydantic.AliasChoices("vendorId", "peddlerId"),
    )
    rating: typing.Optional[float] = None
    comment: str = ""


class DescriptionInput(pydantic.BaseModel):
    peddlerName: typing.Optional[str] = None
    peddlerType: typing.Optional[str] = None


class RouteAdviceInput(pydantic.BaseModel):
    peddler_type: typing.Optional[str] = None
    planned_areas: typing.List[str] = pydantic.Field(default_factory=list)
    city: typing.Optional[str] = None
    time_of_day: typing.Optional[str] = None


class ReviewUpdateInput(pydantic.BaseModel):
    reviewId: typing.Optional[str] = None
    rating: typing.Optional[float] = None
    comment: typing.Optional[str] = None
