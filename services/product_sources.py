import asyncio
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

import aiohttp

from env import (
    HTTP_USER_AGENT,
    OBF_BASE_URL,
    OFF_BASE_URL,
    SEARCH_TIMEOUT_SECONDS,
    SOURCE_TIMEOUT_SECONDS,
    UPC_TIMEOUT_SECONDS,
    UPCITEMDB_BASE_URL,
)
from interfaces.productModels import ProductRecord, ProductSourceName
from logger_manager import log_debug, log_info, log_warning

_INGREDIENTS_MARKER_RE = re.compile(r"ingredients\s*:", re.IGNORECASE)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


class ProductSource:
    """
    One upstream product catalog.

    Every failure (transport error, timeout, bad status, malformed payload) is
    reported as None so the resolver can move on to the next catalog.
    """

    name: str = "unknown"
    supports_search: bool = False

    def __init__(self, timeout: float = SOURCE_TIMEOUT_SECONDS):
        self.timeout = timeout

    async def lookup_by_barcode(self, barcode: str) -> Optional[ProductRecord]:
        raise NotImplementedError

    async def search_by_name(self, query: str) -> Optional[ProductRecord]:
        return None

    async def _fetch_json(self, url: str, params: Optional[Dict[str, str]] = None, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        client_timeout = aiohttp.ClientTimeout(total=timeout or self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=client_timeout, headers={"User-Agent": HTTP_USER_AGENT}) as session:
                async with session.get(url, params=params) as response:
                    if response.status != 200:
                        log_warning(f"{self.name} returned status: {response.status} for URL: {url}")
                        return None
                    data = await response.json(content_type=None)
        except asyncio.TimeoutError:
            log_warning(f"{self.name} timed out after {client_timeout.total}s for URL: {url}")
            return None
        except (aiohttp.ClientError, ValueError) as e:
            log_warning(f"{self.name} request failed for URL '{url}': {e}")
            return None

        if not isinstance(data, dict):
            log_warning(f"{self.name} returned an unexpected payload for URL: {url}")
            return None
        return data


class OpenFactsSource(ProductSource):
    """Shared client for the Open Food Facts family of catalogs."""

    supports_search = True
    base_url: str = ""

    def __init__(self, timeout: float = SOURCE_TIMEOUT_SECONDS, search_timeout: float = SEARCH_TIMEOUT_SECONDS, base_url: Optional[str] = None):
        super().__init__(timeout)
        self.search_timeout = search_timeout
        if base_url:
            self.base_url = base_url.rstrip("/")

    def _nutrition(self, product: Dict[str, Any]) -> Any:
        return product.get("nutriments")

    def _to_record(self, barcode: str, product: Dict[str, Any]) -> ProductRecord:
        return ProductRecord(
            barcode=barcode,
            source=self.name,
            name=_clean(product.get("product_name")),
            brand=_clean(product.get("brands")),
            category=_clean(product.get("categories")),
            ingredients_raw=_clean(product.get("ingredients_text")),
            nutrition=self._nutrition(product) or None,
            image_url=_clean(product.get("image_url") or product.get("image_front_url") or product.get("image_small_url")),
        )

    async def lookup_by_barcode(self, barcode: str) -> Optional[ProductRecord]:
        log_info(f"Looking up {barcode} in {self.name}")
        data = await self._fetch_json(f"{self.base_url}/api/v2/product/{barcode}.json")
        if not data or data.get("status") != 1:
            return None

        product = data.get("product")
        if not isinstance(product, dict):
            log_warning(f"{self.name} returned status 1 without a product for {barcode}")
            return None
        return self._to_record(barcode, product)

    async def search_by_name(self, query: str) -> Optional[ProductRecord]:
        if not query:
            return None

        log_info(f"Searching {self.name} for '{query}'")
        params = {
            "search_terms": query,
            "search_simple": "1",
            "action": "process",
            "json": "1",
            "page_size": "5",
        }
        data = await self._fetch_json(f"{self.base_url}/cgi/search.pl", params=params, timeout=self.search_timeout)
        products = data.get("products") if data else None
        if not isinstance(products, list):
            return None

        candidates = [p for p in products if isinstance(p, dict)]
        if not candidates:
            return None

        # prefer a product that actually lists its ingredients
        match = next((p for p in candidates if _clean(p.get("ingredients_text"))), candidates[0])
        return self._to_record(_clean(match.get("code")) or "", match)


class OpenFoodFactsSource(OpenFactsSource):
    name = ProductSourceName.OPEN_FOOD_FACTS.value
    base_url = OFF_BASE_URL.rstrip("/")

    def __init__(self, timeout: float = SOURCE_TIMEOUT_SECONDS, search_timeout: float = 6, base_url: Optional[str] = None):
        super().__init__(timeout, search_timeout, base_url)

    def _nutrition(self, product: Dict[str, Any]) -> Any:
        return product.get("nutriscore_data") or product.get("nutriments")


class OpenBeautyFactsSource(OpenFactsSource):
    name = ProductSourceName.OPEN_BEAUTY_FACTS.value
    base_url = OBF_BASE_URL.rstrip("/")


def extract_ingredients_from_description(description: Optional[str]) -> Optional[str]:
    """UPC listings sometimes carry 'Ingredients: ...' inside the free text description."""
    if not description:
        return None
    parts = _INGREDIENTS_MARKER_RE.split(description, maxsplit=1)
    if len(parts) < 2:
        return None
    return _clean(parts[1])


class UpcItemDbSource(ProductSource):
    """Generic UPC catalog, bounded by a hard timeout around the whole lookup."""

    name = ProductSourceName.UPCITEMDB.value

    def __init__(self, timeout: float = UPC_TIMEOUT_SECONDS, base_url: str = UPCITEMDB_BASE_URL):
        super().__init__(timeout)
        self.base_url = base_url

    async def lookup_by_barcode(self, barcode: str) -> Optional[ProductRecord]:
        log_info(f"Looking up {barcode} in {self.name}")
        try:
            return await asyncio.wait_for(self._lookup(barcode), timeout=self.timeout)
        except asyncio.TimeoutError:
            log_warning(f"{self.name} lookup for {barcode} cancelled after {self.timeout}s")
            return None

    async def _lookup(self, barcode: str) -> Optional[ProductRecord]:
        data = await self._fetch_json(self.base_url, params={"upc": barcode})
        items = data.get("items") if data else None
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return None

        item = items[0]
        images = item.get("images")
        image_url = None
        if isinstance(images, list):
            image_url = next((_clean(i) for i in images if isinstance(i, str) and i.startswith("http")), None)

        return ProductRecord(
            barcode=barcode,
            source=self.name,
            name=_clean(item.get("title")),
            brand=_clean(item.get("brand")),
            category=_clean(item.get("category")),
            ingredients_raw=extract_ingredients_from_description(item.get("description")),
            nutrition=None,
            image_url=image_url,
        )


async def search_sources_by_name(
    sources: Sequence[ProductSource],
    query: str,
    accept: Callable[[ProductRecord], bool],
) -> Optional[ProductRecord]:
    """Query the name-searchable sources in order, first accepted record wins."""
    for source in sources:
        if not source.supports_search:
            continue
        record = await source.search_by_name(query)
        if record is not None and accept(record):
            log_debug(f"{source.name} matched '{query}'")
            return record
    return None


def default_product_sources() -> List[ProductSource]:
    # food catalog first, then beauty, then the generic UPC catalog
    return [OpenFoodFactsSource(), OpenBeautyFactsSource(), UpcItemDbSource()]
