"""
============================================================================
FILE: find.py
LOCATION: api/find.py
============================================================================

PURPOSE:
    Free-text customer search: "ada bakso dekat sini?" goes in, a reply
    text and the nearest matching peddlers come out.

ROLE IN PROJECT:
    The customer search box posts here. Gemini decides whether the message
    is a vendor search (services/query_analysis.py); searches run through
    nearby.find_nearby_peddlers() with a 5 km radius, so result pages share
    its five-minute Redis cache. Every message is logged through
    DataProtection.store_user_query(), consent-aware.

KEY COMPONENTS:
    - POST /api/find: Rate group "find"
    - search_reply(): Response text for a result page

DEPENDENCIES:
    - External: fastapi
    - Internal: nearby, data_rights, limiter, models, validators,
      services.query_analysis

USAGE:
    POST /api/find
    {"message": "bakso", "location": {"lat": -6.38, "lng": 106.82}}
============================================================================
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request

from services.query_analysis import analyze_user_query

try:
    from data_rights import DataProtection
    from errors import BadRequestError
    from limiter import rate_limit
    from logging_config import get_logger
    from models import FindInput, NearbyQuery
    from nearby import CONSENT_COOKIE, find_nearby_peddlers
    from validators import parse_location
except ImportError:
    from api.data_rights import DataProtection
    from api.errors import BadRequestError
    from api.limiter import rate_limit
    from api.logging_config import get_logger
    from api.models import FindInput, NearbyQuery
    from api.nearby import CONSENT_COOKIE, find_nearby_peddlers
    from api.validators import parse_location


logger = get_logger("find")

FIND_MAX_DISTANCE_METERS = 5000

router = APIRouter(tags=["find"])


def search_reply(vendor_type: str, vendors: List[Dict[str, Any]]) -> str:
    kind = vendor_type or "food"
    if not vendors:
        return (
            f"I couldn't find any {kind} vendors near your location. "
            "Please try a different search or check back later."
        )
    return f"Here are some {kind} vendors near you:"


@router.post("/api/find", dependencies=[Depends(rate_limit("find"))])
async def find(payload: FindInput, request: Request):
    message = (payload.message or "").strip()
    if not message:
        raise BadRequestError("Message is required")

    location = parse_location(payload.location)
    if location is None:
        raise BadRequestError("Location data is required")

    analysis = analyze_user_query(message)

    has_consent = request.cookies.get(CONSENT_COOKIE) == "true"
    DataProtection.get_instance().store_user_query(message, location, has_consent)

    if not analysis.is_looking_for_vendors:
        return {
            "response": {
                "text": analysis.direct_response,
                "vendors": [],
                "hasMore": False,
            }
        }

    query = NearbyQuery(
        peddler_type=analysis.vendor_type or None,
        keywords=analysis.keywords,
        max_distance=FIND_MAX_DISTANCE_METERS,
        limit=payload.limit,
        last_peddler_id=payload.lastVendorId,
    )
    result = find_nearby_peddlers(location, query)
    vendors = result["peddlers"]
    logger.debug(f"Search '{analysis.vendor_type}' returned {len(vendors)} vendors")

    return {
        "response": {
            "text": search_reply(analysis.vendor_type, vendors),
            "vendors": vendors,
            "hasMore": result["hasMore"],
            "lastVendorId": vendors[-1]["id"] if vendors else None,
        }
    }
