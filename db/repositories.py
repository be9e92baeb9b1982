from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

import pytz
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from logger_manager import log_debug, log_error, log_info
from . import models
from interfaces.analysisModels import Evaluation, UserHealthProfile
from interfaces.productModels import ProductRecord, ProductSourceName
from utils.db_utils import analysis_db_to_pydantic, product_db_to_pydantic, profile_db_to_pydantic
from utils.ingredient_utils import normalize_ingredients

# fields of a ProductRecord that are merged into the cache row
MERGEABLE_FIELDS = ("source", "name", "brand", "category", "ingredients_raw", "nutrition", "image_url")


@dataclass
class CachedProduct:
    """A products_cache row with its completeness flag spelled out."""
    record: ProductRecord
    # complete entries are served without going back to the catalogs
    is_complete: bool


class ProductCacheRepository:
    def __init__(self, db: Session):
        self.db = db

    def _get_row(self, barcode: str) -> Optional[models.ProductCache]:
        return self.db.query(models.ProductCache).filter(models.ProductCache.barcode == barcode).first()

    def get(self, barcode: str) -> Optional[CachedProduct]:
        db_product = self._get_row(barcode)
        if db_product is None:
            return None

        record = product_db_to_pydantic(db_product)
        # manual entries are authoritative, catalog entries need an image to be shown
        is_complete = bool(record.image_url) or record.source == ProductSourceName.MANUAL.value
        return CachedProduct(record=record, is_complete=is_complete)

    def upsert(self, record: ProductRecord) -> ProductRecord:
        """Insert or merge a product; fields missing from `record` never clear stored data."""
        db_product = self._get_row(record.barcode)
        if db_product is None:
            log_debug(f"Creating cache entry for barcode {record.barcode}")
            db_product = models.ProductCache(barcode=record.barcode)
            self.db.add(db_product)

        # an analysis computed from other ingredients must not be served again
        if record.ingredients_raw is not None and record.ingredients_raw != db_product.ingredients_raw:
            db_product.last_analysis = None

        for field in MERGEABLE_FIELDS:
            value = getattr(record, field)
            if value is not None:
                setattr(db_product, field, value)

        if record.ingredients_raw is not None:
            db_product.ingredients_parsed = normalize_ingredients(record.ingredients_raw)
        db_product.last_fetched = datetime.now(tz=pytz.utc)

        self._commit()
        self.db.refresh(db_product)
        return product_db_to_pydantic(db_product)

    def overwrite(self, record: ProductRecord) -> ProductRecord:
        """Replace the descriptive fields of a product, used by manual entry."""
        db_product = self._get_row(record.barcode)
        if db_product is None:
            db_product = models.ProductCache(barcode=record.barcode)
            self.db.add(db_product)

        db_product.source = record.source
        db_product.name = record.name
        db_product.brand = record.brand
        db_product.category = record.category
        db_product.ingredients_raw = record.ingredients_raw
        db_product.ingredients_parsed = normalize_ingredients(record.ingredients_raw)
        if record.image_url is not None:
            db_product.image_url = record.image_url
        # the stored analysis was computed from the old ingredients
        db_product.last_analysis = None
        db_product.last_fetched = datetime.now(tz=pytz.utc)

        self._commit()
        self.db.refresh(db_product)
        return product_db_to_pydantic(db_product)

    def get_analysis(self, barcode: str) -> Optional[Evaluation]:
        """Return the cached analysis, or None when absent or stale."""
        db_product = self._get_row(barcode)
        if db_product is None:
            return None
        analysis = analysis_db_to_pydantic(db_product.last_analysis)
        if analysis is None or analysis.is_stale:
            return None
        return analysis

    def set_analysis(self, barcode: str, evaluation: Evaluation) -> bool:
        db_product = self._get_row(barcode)
        if db_product is None:
            log_info(f"No cache entry for {barcode}, analysis not stored")
            return False
        db_product.last_analysis = evaluation.model_dump(mode="json")
        self._commit()
        return True

    def clear_analysis(self, barcode: str) -> int:
        updated = self.db.query(models.ProductCache)\
            .filter(models.ProductCache.barcode == barcode, models.ProductCache.last_analysis.isnot(None))\
            .update({models.ProductCache.last_analysis: None}, synchronize_session=False)
        self._commit()
        return updated

    def clear_all_analyses(self) -> int:
        updated = self.db.query(models.ProductCache)\
            .filter(models.ProductCache.last_analysis.isnot(None))\
            .update({models.ProductCache.last_analysis: None}, synchronize_session=False)
        self._commit()
        log_info(f"Cleared {updated} cached analyses")
        return updated

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise


class IngredientRuleRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_rules_for(self, names: Iterable[str]) -> Dict[str, models.IngredientRule]:
        """Fetch the rules for the given ingredient names, keyed by lowercase name."""
        wanted = sorted({name.strip().lower() for name in names if name and name.strip()})
        if not wanted:
            return {}
        rules = self.db.query(models.IngredientRule)\
            .filter(models.IngredientRule.ingredient_name.in_(wanted))\
            .all()
        log_debug(f"Found {len(rules)} rules for {len(wanted)} ingredients")
        return {rule.ingredient_name.lower(): rule for rule in rules}

    def get_rule_by_name(self, name: str) -> Optional[models.IngredientRule]:
        return self.db.query(models.IngredientRule)\
            .filter(models.IngredientRule.ingredient_name == name.strip().lower())\
            .first()

    def upsert_rule(self, rule_data: Dict[str, Any]) -> models.IngredientRule:
        """Insert a rule, or update it when the unique ingredient name already exists."""
        data = dict(rule_data)
        data["ingredient_name"] = data["ingredient_name"].strip().lower()

        try:
            db_rule = models.IngredientRule(**data)
            self.db.add(db_rule)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            db_rule = self.get_rule_by_name(data["ingredient_name"])
            for key, value in data.items():
                setattr(db_rule, key, value)
            try:
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                log_error(f"Error updating rule {data['ingredient_name']}: {e}", e)
                raise
        self.db.refresh(db_rule)
        return db_rule


class UserProfileRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, user_id: Optional[str]) -> Optional[UserHealthProfile]:
        if not user_id:
            return None
        db_profile = self.db.query(models.UserProfile).filter(models.UserProfile.user_id == user_id).first()
        if db_profile is None:
            return None
        return profile_db_to_pydantic(db_profile)
