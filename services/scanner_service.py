from typing import Callable, List, Optional, Sequence

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from db.database import get_db
from db.repositories import IngredientRuleRepository, ProductCacheRepository, UserProfileRepository
from interfaces.analysisModels import Evaluation, IngredientInsightResponse, UserHealthProfile
from interfaces.productModels import ManualProductCreate, ProductRecord, ProductSourceName, ScanResponse
from logger_manager import log_error, log_info
from services.ai_service import AIService
from services.evaluation_engine import EvaluationEngine
from services.product_resolver import ProductResolver
from services.product_sources import ProductSource
from services.scan_history import record_scan
from utils.ingredient_utils import normalize_ingredients

NO_INGREDIENTS_SUMMARY = "No ingredient list is available for this product yet, so it could not be fully analyzed."


class ScannerService:
    """Barcode scan pipeline: resolve the product, then evaluate it for the user."""

    def __init__(self, db: Session, ai_service: AIService, sources: Sequence[ProductSource]):
        self.db = db
        self.cache = ProductCacheRepository(db)
        self.profiles = UserProfileRepository(db)
        self.resolver = ProductResolver(self.cache, sources)
        self.engine = EvaluationEngine(IngredientRuleRepository(db), ai_service, self.resolver)

    def get_profile(self, user_id: Optional[str]) -> UserHealthProfile:
        profile = self.profiles.get_profile(user_id)
        if profile is None:
            log_info(f"No health profile for user {user_id}, using general health profile")
            return UserHealthProfile.general_health(user_id)
        return profile

    async def resolve_and_evaluate(self, barcode: str, user_id: Optional[str] = None, skip_enhancement: bool = False) -> ScanResponse:
        product = await self.resolver.resolve(barcode)
        if product is None:
            return ScanResponse(found=False)

        record_scan(self.db, user_id, barcode)

        ingredients = normalize_ingredients(product.ingredients_raw)
        cached_analysis = self.cache.get_analysis(barcode)
        if cached_analysis is not None:
            log_info(f"Serving cached analysis for {barcode}")
            return ScanResponse(
                found=True,
                product=product,
                analysis=cached_analysis,
                ingredients_available=bool(ingredients),
                from_cache=True,
            )

        profile = self.get_profile(user_id)
        enhancement_enabled = not skip_enhancement and bool(ingredients)
        analysis = await self.engine.evaluate(profile, ingredients, product.name, enhancement_enabled)

        if not ingredients:
            analysis = analysis.model_copy(update={"summary": NO_INGREDIENTS_SUMMARY, "degraded": True})

        return ScanResponse(
            found=True,
            product=product,
            analysis=analysis,
            ingredients_available=bool(ingredients),
            should_cache=enhancement_enabled,
        )

    async def evaluate_ingredients(
        self,
        ingredients: Sequence[str],
        product_name: Optional[str] = None,
        user_id: Optional[str] = None,
        skip_enhancement: bool = False,
    ) -> Evaluation:
        tokens: List[str] = []
        for item in ingredients:
            tokens.extend(normalize_ingredients(item))

        profile = self.get_profile(user_id)
        return await self.engine.evaluate(profile, tokens, product_name, not skip_enhancement)

    async def ingredient_insight(self, name: str, user_id: Optional[str] = None) -> IngredientInsightResponse:
        tokens = normalize_ingredients(name)
        token = tokens[0] if tokens else name.strip().lower()

        profile = self.get_profile(user_id)
        analysis = await self.engine.evaluate(profile, [token], None, enhancement_enabled=False)
        insight = next((c for c in analysis.concerns if c.ingredient.lower() == token), None)
        return IngredientInsightResponse(name=name, insight=insight, safety_level=analysis.safety_level)

    async def lookup_product(self, barcode: str) -> Optional[ProductRecord]:
        return await self.resolver.resolve(barcode)

    def create_or_overwrite_product(self, product: ManualProductCreate) -> ProductRecord:
        if isinstance(product.ingredients, str):
            ingredients_raw = product.ingredients.strip() or None
        else:
            ingredients_raw = ", ".join(i.strip() for i in product.ingredients if i and i.strip()) or None

        record = ProductRecord(
            barcode=product.barcode.strip(),
            source=ProductSourceName.MANUAL.value,
            name=product.name,
            brand=product.brand,
            category=product.category,
            ingredients_raw=ingredients_raw,
            image_url=product.image_url,
        )
        log_info(f"Manual entry for barcode {record.barcode}")
        return self.cache.overwrite(record)

    def clear_analysis(self, barcode: Optional[str] = None) -> int:
        if barcode:
            return self.cache.clear_analysis(barcode)
        return self.cache.clear_all_analyses()


def persist_analysis(session_factory: Callable[[], Session], barcode: str, evaluation: Evaluation):
    """Background write of a fresh analysis; failures are only logged."""
    try:
        with session_factory() as db:
            ProductCacheRepository(db).set_analysis(barcode, evaluation)
            log_info(f"Cached analysis for {barcode}")
    except Exception as e:
        log_error(f"Error caching analysis for {barcode}: {e}", e)


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def get_product_sources(request: Request) -> List[ProductSource]:
    return request.app.state.product_sources


def get_scanner_service(
    db: Session = Depends(get_db),
    ai_service: AIService = Depends(get_ai_service),
    sources: List[ProductSource] = Depends(get_product_sources),
) -> ScannerService:
    return ScannerService(db, ai_service, sources)
