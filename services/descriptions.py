# descriptions.py
# Peddler description and route advice text
#
# Builds the Gemini prompts and the canned fallbacks used whenever the model
# is unavailable. Time-of-day keys are Indonesian: pagi, siang, sore, malam.

# @see: services/genai_client.py - generate_text()
# @see: api/ai.py - HTTP endpoints

import datetime
from typing import List, Optional, Tuple

from services.genai_client import generate_text


FALLBACK_NOTE = "Using fallback response due to API error"

DEFAULT_TIME_ADVICE = (
    "Adjust your selling time according to local customs and the type of food you sell."
)

GENERAL_TIME_ADVICE = {
    "pagi": "Morning (6:00-10:00) is suitable for breakfast foods and snacks.",
    "siang": "Noon (11:00-14:00) is a busy lunchtime.",
    "sore": "Afternoon (15:00-18:00) is a busy time when people return from work/school.",
    "malam": "Night (19:00-22:00) is suitable for heavy meals and night snacks.",
}

# English aliases clients send for time_of_day
TIME_OF_DAY_ALIASES = {
    "morning": "pagi",
    "afternoon": "siang",
    "evening": "sore",
    "night": "malam",
}

_TYPE_GROUPS = {
    "bakso": "bakso",
    "siomay": "siomay",
    "batagor": "siomay",
    "siomay/batagor": "siomay",
    "es": "es",
    "es cendol": "es",
    "es kelapa": "es",
    "martabak": "martabak",
}

_DESCRIPTIONS = {
    "bakso": (
        "{name} serves meatballs made from selected beef, hygienically processed. "
        "The rich broth soup with a sprinkle of fried onions and fresh celery. "
        "Various options available such as vein meatballs, egg meatballs, and "
        "special meatballs with minced meat filling."
    ),
    "siomay": (
        "{name} offers mackerel fish dumplings with a soft texture and savory taste. "
        "Served with a rich peanut sauce, a blend of peanuts, garlic, and chili."
    ),
    "es": (
        "{name} presents es cendol with chewy and fresh cendol, made from selected "
        "rice flour. Served with thick coconut milk, authentic palm sugar, and "
        "refreshing shaved ice."
    ),
    "martabak": (
        "{name} specializes in martabak with various flavors. Our sweet martabak "
        "has a soft texture on the inside and crispy on the outside, with abundant "
        "toppings like chocolate, cheese, peanuts, and milk."
    ),
    None: (
        "{name} serves high-quality food/drinks with fresh and selected ingredients. "
        "Hygienically processed and with traditional recipes passed down for "
        "generations."
    ),
}

_TIME_ADVICE = {
    "bakso": {
        "pagi": "Meatballs are less popular in the morning. Consider starting to sell towards noon.",
        "siang": "Noon is the ideal time for meatballs, especially in office and campus areas.",
        "sore": "Afternoon is a good time for meatballs, especially in residential areas when people are coming home from work.",
        "malam": "Meatballs are popular at night in crowded areas or hangouts.",
    },
    "siomay": {
        "pagi": "Siomay/batagor are less popular in the morning. It's better to start selling towards noon.",
        "siang": "Noon is a good time for siomay/batagor, especially in office areas for lunch.",
        "sore": "Afternoon is the best time for siomay/batagor, especially in school and residential areas.",
        "malam": "Siomay/batagor can be popular at night in crowded areas, but demand is usually lower than in the afternoon.",
    },
    "es": {
        "pagi": "Ice drinks are less popular in the morning. Start selling when the sun starts to feel hot.",
        "siang": "Noon is the ideal time for ice drinks, especially when the weather is hot.",
        "sore": "Afternoon is still a good time for ice drinks, although demand starts to decrease towards dusk.",
        "malam": "Ice drinks are less popular at night unless the weather is still hot or in crowded areas.",
    },
    "martabak": {
        "pagi": "Martabak is not popular in the morning. Start selling in the afternoon or evening.",
        "siang": "Martabak is less popular at noon. The best time is from afternoon to evening.",
        "sore": "Late afternoon is a good time to start selling martabak.",
        "malam": "Night is the most ideal time for martabak, especially in crowded and residential areas.",
    },
}

_TIPS = {
    "bakso": (
        "Ensure the meatball soup stays hot. Provide various types of meatballs "
        "(vein, egg, tofu). Maintain the cleanliness of bowls and spoons. Bring "
        "enough water to wash equipment."
    ),
    "siomay": (
        "Prepare enough fresh peanut sauce. Cut siomay/batagor after ordering to "
        "maintain quality. Provide lime wedges to add freshness."
    ),
    "es": (
        "Bring enough ice cubes and ensure they stay frozen. Use fresh ingredients. "
        "Place ice in an insulated container so it doesn't melt quickly. Sell in a "
        "shaded location."
    ),
    "martabak": (
        "Ensure the pan stays hot. Bring various popular toppings (chocolate, "
        "cheese, peanuts). For egg martabak, ensure the meat/egg filling is "
        "plentiful. Cut martabak neatly."
    ),
    None: (
        "Prioritize cleanliness and product quality. Friendly interaction with "
        "customers is important for building loyalty. Maintain consistency in the "
        "taste and portion of your product."
    ),
}

_DEFAULT_ROUTES = ["Residential area", "Office area", "Campus area"]
_ROUTE_SLOTS = ["morning/afternoon", "afternoon/evening", "evening/night"]


def _type_group(peddler_type: str) -> Optional[str]:
    return _TYPE_GROUPS.get(peddler_type.strip().lower())


def current_time_of_day(now: Optional[datetime.datetime] = None) -> str:
    """Map the local hour to pagi (5-11), siang (11-15), sore (15-19) or malam."""
    hour = (now or datetime.datetime.now()).hour
    if 5 <= hour < 11:
        return "pagi"
    if 11 <= hour < 15:
        return "siang"
    if 15 <= hour < 19:
        return "sore"
    return "malam"


def normalize_time_of_day(time_of_day: Optional[str]) -> str:
    if not time_of_day:
        return current_time_of_day()
    key = time_of_day.strip().lower()
    return TIME_OF_DAY_ALIASES.get(key, key)


def fallback_description(peddler_name: str, peddler_type: str) -> str:
    group = _type_group(peddler_type)
    # The ice-drink text is about cendol specifically
    if peddler_type.strip().lower() == "es kelapa":
        group = None
    return _DESCRIPTIONS[group].format(name=peddler_name)


def time_advice(peddler_type: str, time_of_day: str) -> str:
    group = _type_group(peddler_type)
    if group in _TIME_ADVICE:
        return _TIME_ADVICE[group].get(time_of_day, DEFAULT_TIME_ADVICE)
    return GENERAL_TIME_ADVICE.get(time_of_day, DEFAULT_TIME_ADVICE)


def peddler_tips(peddler_type: str) -> str:
    return _TIPS.get(_type_group(peddler_type), _TIPS[None])


def fallback_route_advice(
    peddler_type: str,
    planned_areas: List[str],
    city: str,
    time_of_day: str,
) -> str:
    routes = "\n".join(
        f"{i + 1}. {planned_areas[i] if i < len(planned_areas) else default} ({slot})"
        for i, (default, slot) in enumerate(zip(_DEFAULT_ROUTES, _ROUTE_SLOTS))
    )
    return (
        f"Route advice for {peddler_type} sellers in {city}:\n\n"
        f"{time_advice(peddler_type, time_of_day)}\n\n"
        f"Based on your plan in {', '.join(planned_areas)}, "
        f"I suggest prioritizing the following routes:\n{routes}\n\n"
        f"Specific tips for {peddler_type} sellers:\n{peddler_tips(peddler_type)}\n\n"
        "Remember to always update your location in the KeliLink application "
        "so customers can easily find you!"
    )


def description_prompt(peddler_name: str, peddler_type: str) -> str:
    return f"""
        Generate a short, engaging description for a street food peddler in Indonesia named "{peddler_name}" who sells "{peddler_type}".
        The description should highlight the quality, taste, and specialties of their food.
        Write the description in English.
        Keep it under 100 words.
        """


def route_advice_prompt(
    peddler_type: str,
    planned_areas: List[str],
    city: str,
    time_of_day: str,
) -> str:
    return f"""
        As an assistant for street food peddlers in Indonesia, provide route advice for:

        Peddler type: {peddler_type}
        Location: {city}
        Planned areas: {', '.join(planned_areas)}
        Time: {time_of_day}

        Provide route advice including:
        1. Best time recommendations for selling based on peddler type
        2. Route prioritization in planned areas
        3. Specific tips for {peddler_type} sellers
        4. Specific insights about {city} relevant to peddlers

        Format your response in clear and structured English.
        """


def generate_description(peddler_name: str, peddler_type: str) -> str:
    """Gemini description, or the canned one for the peddler type."""
    text = generate_text(description_prompt(peddler_name, peddler_type))
    return text or fallback_description(peddler_name, peddler_type)


def generate_route_advice(
    peddler_type: str,
    planned_areas: List[str],
    city: str,
    time_of_day: Optional[str] = None,
) -> Tuple[str, bool]:
    """
    Route advice for a peddler's planned selling day.

    Returns:
        (advice, used_fallback)
    """
    slot = normalize_time_of_day(time_of_day)
    text = generate_text(route_advice_prompt(peddler_type, planned_areas, city, slot))
    if text:
        return text, False
    return fallback_route_advice(peddler_type, planned_areas, city, slot), True
