import asyncio
from typing import Dict, List, Optional, Sequence, Set

from db.models import IngredientRule
from db.repositories import IngredientRuleRepository
from interfaces.analysisModels import (
    Alternative,
    Concern,
    EnhancerResult,
    Evaluation,
    SuggestedAlternative,
    UserHealthProfile,
)
from logger_manager import log_debug, log_info, log_warning
from services.ai_service import AIService
from services.product_resolver import ProductResolver
from utils.analysis_utils import (
    ENHANCER_AVOID_PENALTY,
    ENHANCER_CAUTION_PENALTY,
    HEURISTIC_PENALTY,
    RULE_AVOID_PENALTY,
    RULE_CAUTION_PENALTY,
    SENSITIVITY_PENALTY,
    STARTING_SCORE,
    build_buy_link,
    build_profile_context,
    clamp_score,
    derive_safety_level,
    detect_hazard_markers,
    generate_summary,
    placeholder_image_url,
)


class _ConcernSet:
    """Concerns unique by ingredient name, the first writer wins."""

    def __init__(self):
        self.items: List[Concern] = []
        self._keys: Set[str] = set()

    def add(self, concern: Concern) -> bool:
        key = concern.ingredient.strip().lower()
        if not key or key in self._keys:
            return False
        self._keys.add(key)
        self.items.append(concern)
        return True


def _unique_tokens(ingredients: Sequence[str]) -> List[str]:
    tokens = []
    seen = set()
    for ingredient in ingredients:
        token = (ingredient or "").strip().lower()
        if token and token not in seen:
            seen.add(token)
            tokens.append(token)
    return tokens


class EvaluationEngine:
    """
    Scores an ingredient list against a health profile.

    Deterministic rules run first, then the heuristic family markers, then the
    optional AI enhancement. Every deduction subtracts from 100 and the result is
    clamped, so the AI can only lower a score. Failures of the AI collaborator
    degrade the content of the evaluation, never its shape.
    """

    def __init__(self, rules: IngredientRuleRepository, ai_service: AIService, resolver: Optional[ProductResolver] = None):
        self.rules = rules
        self.ai_service = ai_service
        self.resolver = resolver

    async def evaluate(
        self,
        profile: Optional[UserHealthProfile],
        ingredients: Sequence[str],
        product_name: Optional[str] = None,
        enhancement_enabled: bool = True,
    ) -> Evaluation:
        profile = profile or UserHealthProfile.general_health()
        tokens = _unique_tokens(ingredients)
        log_info(f"Evaluating {len(tokens)} ingredients (enhancement={'on' if enhancement_enabled else 'off'})")

        concerns = _ConcernSet()
        score = STARTING_SCORE

        # the rule store is required, errors here propagate
        rules = self.rules.get_rules_for(tokens)
        score -= self._apply_rules(profile, tokens, rules, concerns)
        score -= self._apply_heuristics(tokens, concerns)

        positives: List[str] = []
        enhancement = None
        degraded = False
        if enhancement_enabled and tokens:
            enhancement = await self._enhance(profile, tokens)
            if enhancement is None:
                degraded = True
            else:
                score -= self._merge_enhancement(enhancement, concerns)
                positives.extend(enhancement.positives)

        score = clamp_score(score)
        safety_level = derive_safety_level(score)

        if enhancement is not None and enhancement.summary and enhancement.summary.strip():
            summary = enhancement.summary.strip()
        else:
            summary = generate_summary(safety_level, len(concerns.items))

        alternatives: List[Alternative] = []
        if enhancement_enabled:
            alternatives = await self._suggest_alternatives(product_name, concerns.items)

        return Evaluation(
            overall_safety_score=score,
            safety_level=safety_level,
            summary=summary,
            concerns=concerns.items,
            positives=positives,
            alternatives=alternatives,
            risk_categories=enhancement.risk_categories if enhancement else None,
            degraded=degraded,
        )

    def _apply_rules(self, profile: UserHealthProfile, tokens: List[str], rules: Dict[str, IngredientRule], concerns: _ConcernSet) -> int:
        conditions = {c.strip().casefold() for c in profile.conditions}
        symptoms = {s.strip().casefold() for s in profile.symptoms}
        sensitivities = {s.strip().lower() for s in profile.sensitivities}

        deduction = 0
        for token in tokens:
            rule = rules.get(token)
            if rule is None:
                continue

            explanation = f": {rule.explanation}" if rule.explanation else ""
            reasons = []
            severity = None

            # every matching condition or symptom counts on its own
            avoid_matches = [c for c in (rule.avoid_for or []) if c.strip().casefold() in conditions]
            if avoid_matches:
                reasons.append(f"Avoid for {', '.join(avoid_matches)}{explanation}")
                deduction += RULE_AVOID_PENALTY * len(avoid_matches)
                severity = "Avoid"

            caution_matches = [s for s in (rule.caution_for or []) if s.strip().casefold() in symptoms]
            if caution_matches:
                reasons.append(f"Caution for {', '.join(caution_matches)}{explanation}")
                deduction += RULE_CAUTION_PENALTY * len(caution_matches)
                severity = severity or "Caution"

            if token in sensitivities:
                reasons.append(f"Matches your sensitivity to {rule.ingredient_name}")
                deduction += SENSITIVITY_PENALTY
                severity = "Avoid"

            if reasons:
                concerns.add(Concern(ingredient=rule.ingredient_name, reason="; ".join(reasons), severity=severity))

        return deduction

    def _apply_heuristics(self, tokens: List[str], concerns: _ConcernSet) -> int:
        deduction = 0
        for match in detect_hazard_markers(tokens):
            if concerns.add(Concern(ingredient=match.ingredient, reason=match.reason, severity="Avoid")):
                log_debug(f"Heuristic flagged {match.ingredient} ({match.family})")
                deduction += HEURISTIC_PENALTY
        return deduction

    async def _enhance(self, profile: UserHealthProfile, tokens: List[str]) -> Optional[EnhancerResult]:
        try:
            result = await self.ai_service.analyze_ingredients(tokens, build_profile_context(profile))
        except Exception as e:
            log_warning(f"Semantic enhancement failed, using rule based results only: {e}", e)
            return None
        if result is None:
            log_warning("Semantic enhancement unavailable, using rule based results only")
        return result

    def _merge_enhancement(self, enhancement: EnhancerResult, concerns: _ConcernSet) -> int:
        deduction = 0
        for concern in enhancement.concerns:
            if concerns.add(concern):
                deduction += ENHANCER_AVOID_PENALTY if concern.severity == "Avoid" else ENHANCER_CAUTION_PENALTY
        return deduction

    async def _suggest_alternatives(self, product_name: Optional[str], concerns: List[Concern]) -> List[Alternative]:
        avoided = [concern.ingredient for concern in concerns]
        try:
            suggestions = await self.ai_service.suggest_alternatives(product_name or "this product", avoided)
        except Exception as e:
            log_warning(f"Alternative suggestions failed: {e}", e)
            return []

        if not suggestions:
            return []

        # gather keeps the input order whatever order the lookups finish in
        return list(await asyncio.gather(*(self._enrich_alternative(s) for s in suggestions)))

    async def _enrich_alternative(self, suggestion: SuggestedAlternative) -> Alternative:
        image_url = None
        if self.resolver is not None:
            try:
                image_url = await self.resolver.find_image_by_name(f"{suggestion.brand} {suggestion.product_name}")
            except Exception as e:
                log_warning(f"Image lookup failed for {suggestion.product_name}: {e}")

        return Alternative(
            product_name=suggestion.product_name,
            brand=suggestion.brand,
            reason=suggestion.reason,
            buy_link=build_buy_link(suggestion.brand, suggestion.product_name),
            image_url=image_url or placeholder_image_url(suggestion.product_name),
        )
