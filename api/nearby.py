"""
============================================================================
FILE: nearby.py
LOCATION: api/nearby.py
============================================================================

PURPOSE:
    Find active peddlers near a customer, with optional type, keyword and
    administrative-area filters and cursor pagination.

ROLE IN PROJECT:
    Backs the customer map. Firestore narrows by status and area; type,
    keyword and distance filtering happen in memory on an over-fetched
    page (limit * 3). Results are cached in Redis for five minutes; any
    write that changes what a search returns drops the whole search cache.

KEY COMPONENTS:
    - find_nearby_peddlers(): Search service
    - build_nearby_router(): POST /findNearby for one mount point

DEPENDENCIES:
    - External: fastapi
    - Internal: config, cache, geo, limiter, data_rights, models, validators

USAGE:
    from api.nearby import find_nearby_peddlers
    result = find_nearby_peddlers(GeoPoint(lat=-6.38, lon=106.82))
============================================================================
"""

import hashlib
import json
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request

try:
    from cache import SEARCH_CACHE_PREFIX, redis_client
    from config import get_db
    from data_rights import DataProtection
    from errors import BadRequestError, failure_message
    from geo import format_distance, haversine_distance
    from limiter import rate_limit
    from logging_config import get_logger
    from models import GeoPoint, NearbyQuery, NearbySearchInput, utc_now_iso
    from validators import parse_location
except ImportError:
    from api.cache import SEARCH_CACHE_PREFIX, redis_client
    from api.config import get_db
    from api.data_rights import DataProtection
    from api.errors import BadRequestError, failure_message
    from api.geo import format_distance, haversine_distance
    from api.limiter import rate_limit
    from api.logging_config import get_logger
    from api.models import GeoPoint, NearbyQuery, NearbySearchInput, utc_now_iso
    from api.validators import parse_location


logger = get_logger("nearby")

PEDDLERS_COLLECTION = "peddlers"
CACHE_PREFIX = SEARCH_CACHE_PREFIX + "nearby:"
CACHE_TTL_SECONDS = 5 * 60
OVERFETCH_FACTOR = 3

CONSENT_COOKIE = "privacy-consent"


def _cache_key(location: GeoPoint, query: NearbyQuery) -> str:
    raw = json.dumps(
        {"location": location.model_dump(), "query": query.model_dump()},
        sort_keys=True,
    )
    return CACHE_PREFIX + hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _to_peddler(doc_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Shape a Firestore document for the search result, None if unlocated."""
    location = parse_location(data.get("location"))
    if location is None:
        return None

    return {
        "id": doc_id,
        "name": data.get("name") or "Unknown Peddler",
        "vendorType": data.get("vendorType") or "Unknown Type",
        "description": data.get("description") or "",
        "location": location.model_dump(),
        "status": data.get("status"),
        "last_active": data.get("last_active") or utc_now_iso(),
        "rating": data.get("rating"),
    }


def _matches_keywords(peddler: Dict[str, Any], keywords: List[str]) -> bool:
    text = f"{peddler['name']} {peddler['vendorType']} {peddler['description']}".lower()
    return any(keyword.lower() in text for keyword in keywords)


def find_nearby_peddlers(
    location: GeoPoint,
    query: Optional[NearbyQuery] = None,
) -> Dict[str, Any]:
    """
    Search active peddlers around location.

    Args:
        location: Customer position
        query: Filters and paging; defaults to 5 km and 20 results

    Returns:
        {"peddlers": [...], "hasMore": bool}, nearest first, each with a
        formatted "distance"

    Note:
        last_peddler_id is a Firestore document-order cursor, while each
        page is sorted by distance. Peddlers fetched for a page but cut by
        the limit and ordered before the cursor document in Firestore are
        not returned on later pages, so paging can skip in-range peddlers.
    """
    query = query or NearbyQuery()

    cache_key = _cache_key(location, query)
    cached = redis_client.get(cache_key)
    if cached is not None:
        logger.debug("Nearby search served from cache")
        return cached

    db = get_db()
    firestore_query = db.collection(PEDDLERS_COLLECTION).where("status", "==", "active")

    for area_field in ("city", "kecamatan", "kelurahan"):
        value = (getattr(query, area_field) or "").strip()
        if value:
            firestore_query = firestore_query.where(area_field, "==", value)

    if query.last_peddler_id:
        last_doc = db.collection(PEDDLERS_COLLECTION).document(query.last_peddler_id).get()
        if last_doc.exists:
            firestore_query = firestore_query.start_after(last_doc)

    docs = firestore_query.limit(query.limit * OVERFETCH_FACTOR).stream()

    peddlers = []
    for doc in docs:
        peddler = _to_peddler(doc.id, doc.to_dict() or {})
        if peddler is not None:
            peddlers.append(peddler)

    peddler_type = (query.peddler_type or "").strip().lower()
    if peddler_type:
        peddlers = [p for p in peddlers if peddler_type in p["vendorType"].lower()]

    if query.keywords:
        peddlers = [p for p in peddlers if _matches_keywords(p, query.keywords)]

    in_range = []
    for peddler in peddlers:
        meters = haversine_distance(
            location.lat,
            location.lon,
            peddler["location"]["lat"],
            peddler["location"]["lon"],
        )
        if meters <= query.max_distance:
            in_range.append((meters, peddler))
    in_range.sort(key=lambda pair: pair[0])

    result = {
        "peddlers": [
            {**peddler, "distance": format_distance(meters)}
            for meters, peddler in in_range[: query.limit]
        ],
        "hasMore": len(in_range) > query.limit,
    }

    redis_client.set(cache_key, result, ttl=CACHE_TTL_SECONDS)
    return result


def _describe_query(query: NearbyQuery) -> str:
    parts = [query.peddler_type or "", *query.keywords]
    return " ".join(part for part in parts if part).strip() or "nearby"


def build_nearby_router(prefix: str) -> APIRouter:
    """Build POST {prefix}/findNearby."""
    label = "vendors" if prefix.endswith("/vendors") else "peddlers"
    router = APIRouter(prefix=prefix, tags=["nearby"])

    @router.post("/findNearby", dependencies=[Depends(rate_limit("find"))])
    @failure_message(f"Failed to find nearby {label}")
    async def find_nearby(payload: NearbySearchInput, request: Request):
        location = parse_location(payload.location)
        if location is None:
            raise BadRequestError("Location is required")

        query = payload.query_details or NearbyQuery()
        result = find_nearby_peddlers(location, query)

        has_consent = request.cookies.get(CONSENT_COOKIE) == "true"
        DataProtection.get_instance().store_user_query(
            _describe_query(query), location, has_consent
        )

        return result

    return router


peddlers_nearby_router = build_nearby_router("/api/peddlers")
vendors_nearby_router = build_nearby_router("/api/vendors")
