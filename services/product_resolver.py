from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from db.repositories import CachedProduct, ProductCacheRepository
from interfaces.productModels import ProductRecord
from logger_manager import log_error, log_info, log_warning
from services.product_sources import ProductSource, search_sources_by_name
from utils.ingredient_utils import sanitize_search_query


class ProductResolver:
    """Resolves a barcode through the product cache and the external catalogs."""

    def __init__(self, cache: ProductCacheRepository, sources: Sequence[ProductSource]):
        self.cache = cache
        # priority order, earlier catalogs are more specific
        self.sources = list(sources)

    async def resolve(self, barcode: str) -> Optional[ProductRecord]:
        """
        Resolve a barcode to a product record, or None when nothing knows it.

        A cached entry missing its image is re-fetched, but if every catalog fails
        the cached entry is still returned rather than dropped.
        """
        # cache read failures are fatal and propagate to the caller
        cached = self.cache.get(barcode)
        if cached is not None and cached.is_complete:
            log_info(f"Cache hit for barcode {barcode}")
            return cached.record

        if cached is not None:
            log_info(f"Cached product {barcode} is incomplete, attempting repair")

        fetched = await self._fetch_from_sources(barcode)
        if fetched is None:
            if cached is not None:
                log_info(f"Repair failed for {barcode}, serving cached record")
                return cached.record
            log_info(f"Barcode {barcode} not found in any source")
            return None

        # a cached ingredient list is never replaced by a fuzzy name match
        known_ingredients = cached is not None and cached.record.has_ingredients
        if not fetched.has_ingredients and not known_ingredients and fetched.name:
            fetched = await self._repair_ingredients(fetched)

        return self._persist(fetched, cached)

    async def _fetch_from_sources(self, barcode: str) -> Optional[ProductRecord]:
        for source in self.sources:
            record = await source.lookup_by_barcode(barcode)
            if record is not None:
                log_info(f"Barcode {barcode} resolved by {source.name}")
                return record
            log_info(f"{source.name} has no match for {barcode}")
        return None

    async def _repair_ingredients(self, record: ProductRecord) -> ProductRecord:
        """Look the product up by name to fill in a missing ingredient list."""
        query = sanitize_search_query(record.name)
        if not query:
            return record

        log_info(f"Product {record.barcode} has no ingredients, searching by name '{query}'")
        try:
            match = await search_sources_by_name(self.sources, query, lambda r: r.has_ingredients)
        except Exception as e:
            log_warning(f"Name search repair failed for '{query}': {e}", e)
            return record

        if match is None:
            log_info(f"Name search found no ingredients for '{query}'")
            return record

        updates = {"ingredients_raw": match.ingredients_raw}
        if not record.image_url and match.image_url:
            updates["image_url"] = match.image_url
        if record.nutrition is None and match.nutrition is not None:
            updates["nutrition"] = match.nutrition
        return record.model_copy(update=updates)

    def _persist(self, fetched: ProductRecord, cached: Optional[CachedProduct]) -> ProductRecord:
        try:
            return self.cache.upsert(fetched)
        except SQLAlchemyError as e:
            log_error(f"Error caching product {fetched.barcode}: {e}", e)

        # the write failed, merge in memory so known data is not lost
        if cached is None:
            return fetched
        merged = {k: v for k, v in fetched.model_dump().items() if v is not None}
        return cached.record.model_copy(update=merged)

    async def find_image_by_name(self, query: str) -> Optional[str]:
        """First image URL any searchable catalog reports for `query`."""
        query = sanitize_search_query(query)
        if not query:
            return None
        try:
            match = await search_sources_by_name(self.sources, query, lambda r: bool(r.image_url))
        except Exception as e:
            log_warning(f"Image lookup failed for '{query}': {e}", e)
            return None
        return match.image_url if match else None
