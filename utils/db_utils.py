import json
from typing import Any, List, Optional

from pydantic import ValidationError

from db.models import ProductCache, UserProfile
from interfaces.analysisModels import Evaluation, UserHealthProfile
from interfaces.productModels import ProductRecord
from logger_manager import log_warning


def product_db_to_pydantic(db_product: ProductCache) -> ProductRecord:
    """Convert a products_cache row to a ProductRecord."""
    return ProductRecord(
        barcode=db_product.barcode,
        source=db_product.source,
        name=db_product.name,
        brand=db_product.brand,
        category=db_product.category,
        ingredients_raw=db_product.ingredients_raw,
        nutrition=db_product.nutrition,
        image_url=db_product.image_url,
        last_fetched=db_product.last_fetched,
    )


def analysis_db_to_pydantic(payload: Any) -> Optional[Evaluation]:
    """Parse a stored analysis, anything unreadable is treated like a missing one."""
    if not payload:
        return None
    try:
        if isinstance(payload, str):
            payload = json.loads(payload)
        return Evaluation.model_validate(payload)
    except (ValidationError, json.JSONDecodeError, TypeError) as e:
        log_warning(f"Discarding unreadable cached analysis: {e}")
        return None


def _as_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item) for item in value]


def profile_db_to_pydantic(db_profile: UserProfile) -> UserHealthProfile:
    """Convert a user_profiles row, tolerating NULL or string encoded list columns."""
    return UserHealthProfile(
        user_id=db_profile.user_id,
        conditions=_as_list(db_profile.conditions),
        symptoms=_as_list(db_profile.symptoms),
        sensitivities=_as_list(db_profile.sensitivities),
        goals=_as_list(db_profile.goals),
        dietary_preferences=_as_list(db_profile.dietary_preferences),
    )
