# ai.py
# Gemini-backed helper endpoints for peddlers
#
# Both endpoints always answer 200 once input is valid: when Gemini is not
# reachable the canned text from services/descriptions.py is returned.

# @see: services/descriptions.py - Prompts and fallbacks

from fastapi import APIRouter, Depends

from services.descriptions import FALLBACK_NOTE, generate_description, generate_route_advice

try:
    from errors import BadRequestError, failure_message
    from limiter import rate_limit
    from logging_config import get_logger
    from models import DescriptionInput, RouteAdviceInput
except ImportError:
    from api.errors import BadRequestError, failure_message
    from api.limiter import rate_limit
    from api.logging_config import get_logger
    from api.models import DescriptionInput, RouteAdviceInput


logger = get_logger("ai")

router = APIRouter(tags=["ai"], dependencies=[Depends(rate_limit("default"))])


@router.post("/api/ai/generate-description")
@failure_message("Failed to generate description")
async def generate_peddler_description(payload: DescriptionInput):
    if not payload.peddlerName or not payload.peddlerType:
        raise BadRequestError("Missing peddlerName or peddlerType")

    return {"description": generate_description(payload.peddlerName, payload.peddlerType)}


@failure_message("Failed to generate route advice")
async def _route_advice(payload: RouteAdviceInput):
    if not payload.peddler_type or not payload.planned_areas or not payload.city:
        raise BadRequestError("Peddler type, planned areas, and city are required")

    advice, used_fallback = generate_route_advice(
        payload.peddler_type,
        payload.planned_areas,
        payload.city,
        payload.time_of_day,
    )
    if used_fallback:
        logger.info("Route advice served from fallback text")
        return {"advice": advice, "note": FALLBACK_NOTE}
    return {"advice": advice}


router.add_api_route("/api/peddlers/route-advice", _route_advice, methods=["POST"])
router.add_api_route("/api/vendors/route-advice", _route_advice, methods=["POST"])
