import json
from typing import Any, List, Optional, Sequence

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langsmith import traceable
from pydantic import ValidationError

from env import LLM_API_KEY, LLM_MODEL_NAME, LLM_TEMPERATURE
from interfaces.analysisModels import EnhancerResult, SuggestedAlternative
from logger_manager import log_debug, log_error, log_info, log_warning

MAX_ALTERNATIVES = 3

ANALYSIS_PROMPT = """
Analyze this list of ingredients for a cosmetic/food product based on the user's health profile.

Ingredients: {ingredients}
User Profile:
{profile_context}

You are a strict toxicologist. Analyze specifically for:
1. Carcinogens
2. Hormone Disruptors (Endocrine Disruptors)
3. Allergens
4. Reproductive Toxicants
5. Developmental Toxicants
6. Banned Ingredients

If an ingredient is a hormone disruptor (e.g. phthalates, parabens, BPA) and the user has a hormonal
condition (PCOS, Endometriosis, Fibroids), explain the mechanism in relation to their condition
instead of only saying "Avoid".

Return a strict JSON object with the following structure:
{{
    "overallSafetyScore": number (0-100),
    "safetyLevel": "Good" | "Caution" | "Avoid",
    "summary": "General summary",
    "riskCategories": {{
        "carcinogens": {{ "status": "Safe" | "Risk", "description": "Details or 'No evidence found'" }},
        "hormone_disruptors": {{ "status": "Safe" | "Risk", "description": "Details" }},
        "allergens": {{ "status": "Safe" | "Risk", "description": "Details" }},
        "reproductive_toxicants": {{ "status": "Safe" | "Risk", "description": "Details" }},
        "developmental_toxicants": {{ "status": "Safe" | "Risk", "description": "Details" }},
        "banned_ingredients": {{ "status": "Safe" | "Risk", "description": "Details" }}
    }},
    "concerns": [{{ "ingredient": "name", "reason": "brief explanation", "severity": "Caution" | "Avoid" }}],
    "positives": ["list of good ingredients"]
}}
Do not include Markdown formatting in the response, just the raw JSON string.
"""

ALTERNATIVES_PROMPT = """
Suggest {count} healthy alternative products for "{product_name}" that DO NOT contain: {avoided}.

Return a strict JSON array:
[
    {{
        "productName": "Name",
        "brand": "Brand Name",
        "reason": "Why it is better"
    }}
]
Do not include Markdown formatting.
"""


def extract_json(text: str) -> Any:
    """Pull the JSON value out of an LLM reply, tolerating code fences and chatter."""
    cleaned = text.replace("```json", "").replace("```", "").strip()
    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i >= 0]
    if not starts:
        raise ValueError("No JSON found in LLM response")
    start_idx = min(starts)
    closing = "}" if cleaned[start_idx] == "{" else "]"
    end_idx = cleaned.rfind(closing) + 1
    if end_idx <= start_idx:
        raise ValueError("Unterminated JSON in LLM response")
    return json.loads(cleaned[start_idx:end_idx])


def _content_text(content: Any) -> str:
    # gemini replies may come back as a list of content parts
    if isinstance(content, list):
        return "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in content)
    return str(content)


class AIService:
    """Semantic enhancer and alternative suggester used by the evaluation engine."""

    enabled = False

    async def analyze_ingredients(self, ingredients: Sequence[str], profile_context: str) -> Optional[EnhancerResult]:
        raise NotImplementedError

    async def suggest_alternatives(self, product_name: str, avoided_ingredients: Sequence[str]) -> List[SuggestedAlternative]:
        raise NotImplementedError


class DisabledAIService(AIService):
    """Used when no LLM key is configured, the engine treats it as unavailable."""

    async def analyze_ingredients(self, ingredients: Sequence[str], profile_context: str) -> Optional[EnhancerResult]:
        log_debug("AI analysis skipped, service disabled")
        return None

    async def suggest_alternatives(self, product_name: str, avoided_ingredients: Sequence[str]) -> List[SuggestedAlternative]:
        return []


class GeminiAIService(AIService):
    enabled = True

    def __init__(self, api_key: Optional[str] = None, model_name: str = LLM_MODEL_NAME, temperature: float = LLM_TEMPERATURE, llm=None):
        # Lower temperature for more factual responses
        self.llm = llm or ChatGoogleGenerativeAI(
            google_api_key=api_key,
            model=model_name,
            temperature=temperature,
        )

    async def _generate(self, prompt: str) -> str:
        response = await self.llm.ainvoke([HumanMessage(content=prompt)])
        text = _content_text(response.content)
        log_debug(f"LLM response: {text[:500]}...(truncated)")
        return text

    @traceable(name="analyze_ingredients")
    async def analyze_ingredients(self, ingredients: Sequence[str], profile_context: str) -> Optional[EnhancerResult]:
        log_info(f"Sending analysis prompt to LLM for {len(ingredients)} ingredients")
        prompt = ANALYSIS_PROMPT.format(ingredients=", ".join(ingredients), profile_context=profile_context)
        try:
            text = await self._generate(prompt)
        except Exception as e:
            log_error(f"AI analysis failed: {e}", e)
            return None

        try:
            data = extract_json(text)
            if not isinstance(data, dict):
                raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
            return EnhancerResult.model_validate(data)
        except (ValueError, ValidationError) as e:
            log_error(f"Could not parse AI analysis: {e}")
            return None

    @traceable(name="suggest_alternatives")
    async def suggest_alternatives(self, product_name: str, avoided_ingredients: Sequence[str]) -> List[SuggestedAlternative]:
        avoided = ", ".join(avoided_ingredients) if avoided_ingredients else "harmful or irritating ingredients"
        prompt = ALTERNATIVES_PROMPT.format(count=MAX_ALTERNATIVES, product_name=product_name, avoided=avoided)
        try:
            text = await self._generate(prompt)
            data = extract_json(text)
        except Exception as e:
            log_error(f"AI alternatives failed: {e}", e)
            return []

        if not isinstance(data, list):
            log_warning("AI alternatives response was not a JSON array")
            return []

        alternatives = []
        for item in data[:MAX_ALTERNATIVES]:
            try:
                alternatives.append(SuggestedAlternative.model_validate(item))
            except ValidationError as e:
                log_warning(f"Skipping malformed alternative {item!r}: {e}")
        return alternatives


def build_ai_service() -> AIService:
    if not LLM_API_KEY:
        log_warning("LLM_API_KEY is not set. AI features will be disabled.")
        return DisabledAIService()
    log_info(f"AI service initialized with model {LLM_MODEL_NAME}")
    return GeminiAIService(api_key=LLM_API_KEY)
