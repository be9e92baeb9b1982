from typing import Dict, List, NamedTuple, Sequence
from urllib.parse import quote, quote_plus

from interfaces.analysisModels import SafetyLevel, UserHealthProfile

# Scoring constants
STARTING_SCORE = 100
RULE_AVOID_PENALTY = 30
RULE_CAUTION_PENALTY = 15
SENSITIVITY_PENALTY = 50
HEURISTIC_PENALTY = 25
ENHANCER_AVOID_PENALTY = 20
ENHANCER_CAUTION_PENALTY = 10

AVOID_BELOW = 50
CAUTION_BELOW = 80

PLACEHOLDER_IMAGE_URL = "https://placehold.co/400x400?text={text}"
BUY_LINK_URL = "https://www.google.com/search?tbm=shop&q={query}"


class HazardFamily(NamedTuple):
    name: str
    markers: Sequence[str]
    reason: str


class HazardMatch(NamedTuple):
    ingredient: str
    family: str
    reason: str


# Families of ingredients with well documented concerns, matched by substring.
# Markers are lowercase because tokens come out of normalize_ingredients.
HAZARD_FAMILIES: List[HazardFamily] = [
    HazardFamily(
        "paraben",
        ("paraben",),
        "Parabens can mimic estrogen and are suspected endocrine disruptors.",
    ),
    HazardFamily(
        "phthalate",
        ("phthalate", "diethylhexyl", "dehp"),
        "Phthalates are linked to hormone disruption and reproductive toxicity.",
    ),
    HazardFamily(
        "bisphenol",
        ("bisphenol", "bpa"),
        "Bisphenols interfere with hormone signaling.",
    ),
    HazardFamily(
        "formaldehyde",
        ("formaldehyde", "formalin", "dmdm hydantoin", "quaternium-15", "imidazolidinyl urea", "diazolidinyl urea"),
        "Formaldehyde and formaldehyde releasers are known carcinogens and skin sensitizers.",
    ),
    HazardFamily(
        "triclosan",
        ("triclosan", "triclocarban"),
        "Triclosan is an antimicrobial linked to thyroid hormone disruption.",
    ),
    HazardFamily(
        "oxybenzone",
        ("oxybenzone", "benzophenone-3"),
        "Oxybenzone is a UV filter with suspected endocrine activity.",
    ),
    HazardFamily(
        "toluene",
        ("toluene",),
        "Toluene is a solvent associated with developmental toxicity.",
    ),
]


def detect_hazard_markers(tokens: Sequence[str]) -> List[HazardMatch]:
    """Scan ingredient tokens for hazardous family markers, one match per distinct token."""
    matches = []
    seen = set()
    for token in tokens:
        key = token.strip().lower()
        if not key or key in seen:
            continue
        for family in HAZARD_FAMILIES:
            if any(marker in key for marker in family.markers):
                matches.append(HazardMatch(ingredient=token, family=family.name, reason=family.reason))
                seen.add(key)
                break
    return matches


def clamp_score(score: int) -> int:
    return max(0, min(STARTING_SCORE, score))


def derive_safety_level(score: int) -> SafetyLevel:
    if score < AVOID_BELOW:
        return "Avoid"
    if score < CAUTION_BELOW:
        return "Caution"
    return "Good"


def generate_summary(safety_level: SafetyLevel, concern_count: int) -> str:
    """Deterministic summary used whenever the AI summary is unavailable."""
    if safety_level == "Good":
        if concern_count == 0:
            return "This product looks great for your profile!"
        return f"This product looks good overall, with {concern_count} minor ingredient note(s)."
    if safety_level == "Caution":
        return f"This product contains {concern_count} ingredients to be cautious of."
    return "Warning: This product contains ingredients you should avoid based on your health profile."


def build_profile_context(profile: UserHealthProfile) -> str:
    """Plain text description of the profile for the LLM prompt."""
    sections: Dict[str, List[str]] = {
        "Conditions": profile.conditions,
        "Symptoms": profile.symptoms,
        "Sensitivities": profile.sensitivities,
        "Goals": profile.goals,
        "Dietary Preferences": profile.dietary_preferences,
    }
    lines = [f"- {label}: {', '.join(values)}" for label, values in sections.items() if values]
    if not profile.conditions and not profile.symptoms and not profile.sensitivities:
        lines.insert(0, "- General health profile, no specific conditions reported")
    return "\n".join(lines)


def build_buy_link(brand: str, product_name: str) -> str:
    return BUY_LINK_URL.format(query=quote_plus(f"{brand} {product_name}".strip()))


def placeholder_image_url(product_name: str) -> str:
    return PLACEHOLDER_IMAGE_URL.format(text=quote(product_name[:20]))
