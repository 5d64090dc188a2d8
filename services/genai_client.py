# genai_client.py
# Gemini model access for the AI helper endpoints
#
# Returns None when the model cannot be used (test mode or no API key) so
# callers fall back to canned text instead of failing the request.
#
# @see: services/descriptions.py - Prompt construction and fallbacks
# @note: Configured from GEMINI_API_KEY / GEMINI_MODEL in api/config.py

from typing import Any, Optional

import google.generativeai as genai

try:
    from config import GEMINI_API_KEY, GEMINI_MODEL, KELILINK_TEST_MODE
    from logging_config import get_logger
except ImportError:
    from api.config import GEMINI_API_KEY, GEMINI_MODEL, KELILINK_TEST_MODE
    from api.logging_config import get_logger


logger = get_logger("genai")

_models = {}


def get_genai_model(model_name: Optional[str] = None) -> Optional[Any]:
    """Return a configured GenerativeModel, or None when unavailable."""
    if KELILINK_TEST_MODE or not GEMINI_API_KEY:
        return None

    name = model_name or GEMINI_MODEL
    if name not in _models:
        genai.configure(api_key=GEMINI_API_KEY)
        _models[name] = genai.GenerativeModel(name)
    return _models[name]


def generate_text(prompt: str, temperature: float = 0.7) -> Optional[str]:
    """
    Run a single prompt through Gemini.

    Returns:
        The response text, or None if the model is unavailable, errors, or
        returns nothing usable
    """
    model = get_genai_model()
    if model is None:
        return None

    try:
        response = model.generate_content(
            prompt,
            generation_config={"temperature": temperature},
            request_options={"timeout": 30},
        )
        text = (response.text or "").strip()
    except Exception as e:
        logger.warning(f"Gemini request failed: {e}")
        return None

    return text or None
