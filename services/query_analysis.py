# query_analysis.py
# Natural-language search intent for the customer search box
#
# Asks Gemini whether a free-text message is looking for street vendors and,
# if so, which vendor type and keywords to search with. Messages that are not
# searches get a direct text reply instead.

# @see: api/find.py - POST /api/find consumes QueryAnalysis
# @see: services/genai_client.py - generate_text()
# @note: When the model is unavailable the whole message is used as a keyword

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from services.genai_client import generate_text

try:
    from logging_config import get_logger
except ImportError:
    from api.logging_config import get_logger


logger = get_logger("query_analysis")


# ============================================================================
# CONFIGURATION
# ============================================================================

UNCLEAR_RESPONSE = (
    "Sorry, I don't understand what you mean. "
    "Could you please explain what you are looking for?"
)

UNPARSEABLE_RESPONSE = (
    "Sorry, I can't process your request at this time. "
    "Could you try rephrasing it?"
)

ANALYSIS_TEMPERATURE = 0.2


# ============================================================================
# RESULT MODEL
# ============================================================================


class QueryAnalysis(BaseModel):
    """What a search message asks for."""

    is_looking_for_vendors: bool = False
    vendor_type: str = ""
    keywords: List[str] = Field(default_factory=list)
    direct_response: str = ""


# ============================================================================
# PROMPT AND PARSING
# ============================================================================


def query_analysis_prompt(message: str) -> str:
    return f"""
Analyze the following user query to find street vendors:
"{message}"

Provide a response in JSON format with the following structure:
{{
  "isLookingForVendors": boolean,
  "vendorType": string,
  "keywords": string[],
  "directResponse": string
}}

- isLookingForVendors: whether the user is looking for street vendors
- vendorType: type of vendor being sought (e.g. "bakso", "siomay"), or empty if not specific
- keywords: important keywords from the query
- directResponse: a natural reply in English if the user is not looking for vendors

Examples of Indonesian street food types: bakso, siomay, batagor, es kelapa, es cincau, martabak.
"""


def _parse_json_object(response_text: str) -> Optional[Dict[str, Any]]:
    """Pull the first {...} block out of a model reply."""
    json_start = response_text.find("{")
    json_end = response_text.rfind("}") + 1
    if json_start < 0 or json_end <= json_start:
        logger.warning("No JSON found in query analysis response")
        return None

    try:
        parsed = json.loads(response_text[json_start:json_end])
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse query analysis JSON: {e}")
        return None

    return parsed if isinstance(parsed, dict) else None


def _keywords(raw: Any) -> List[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return [str(keyword).strip() for keyword in raw if str(keyword).strip()]


# ============================================================================
# PUBLIC API
# ============================================================================


def analyze_user_query(message: str) -> QueryAnalysis:
    """
    Classify a customer's search message.

    Args:
        message: Free text typed by the customer

    Returns:
        QueryAnalysis. If Gemini cannot be reached the message is treated
        as a vendor search with itself as the only keyword; if Gemini
        answers with something that is not JSON, a direct "please rephrase"
        reply is returned.
    """
    response_text = generate_text(
        query_analysis_prompt(message), temperature=ANALYSIS_TEMPERATURE
    )
    if response_text is None:
        logger.info("Query analysis unavailable, searching with the raw message")
        return QueryAnalysis(is_looking_for_vendors=True, keywords=[message])

    parsed = _parse_json_object(response_text)
    if parsed is None:
        return QueryAnalysis(direct_response=UNPARSEABLE_RESPONSE)

    return QueryAnalysis(
        is_looking_for_vendors=parsed.get("isLookingForVendors") is True,
        vendor_type=str(parsed.get("vendorType") or "").strip(),
        keywords=_keywords(parsed.get("keywords")),
        direct_response=str(parsed.get("directResponse") or UNCLEAR_RESPONSE),
    )
