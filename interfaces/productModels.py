from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Any, Optional, Union
from datetime import datetime

from interfaces.analysisModels import Evaluation


class ProductSourceName(str, Enum):
    OPEN_FOOD_FACTS = "open_food_facts"
    OPEN_BEAUTY_FACTS = "open_beauty_facts"
    UPCITEMDB = "upcitemdb"
    MANUAL = "manual"


class ProductRecord(BaseModel):
    barcode: str
    source: str
    name: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    ingredients_raw: Optional[str] = None
    nutrition: Optional[Any] = None
    image_url: Optional[str] = None
    last_fetched: Optional[datetime] = None

    class Config:
        from_attributes = True  # This enables ORM mode

    @property
    def has_ingredients(self) -> bool:
        return bool(self.ingredients_raw and self.ingredients_raw.strip())


class ManualProductCreate(BaseModel):
    barcode: str = Field(..., min_length=1)
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    ingredients: Union[List[str], str] = Field(default_factory=list)
    image_url: Optional[str] = None


class ScanResponse(BaseModel):
    """Response of the barcode scan, `product` and `analysis` are only set when found"""
    found: bool = Field(..., description="Whether the barcode resolved to a product")
    product: Optional[ProductRecord] = None
    analysis: Optional[Evaluation] = None
    ingredients_available: bool = True
    from_cache: bool = False
    # internal, tells the router to persist the analysis in the background
    should_cache: bool = Field(False, exclude=True)


class ClearAnalysisResponse(BaseModel):
    cleared: int
    barcode: Optional[str] = None


class ScanHistoryResponse(BaseModel):
    id: int
    user_id: str
    barcode: str
    scan_date: datetime

    class Config:
        from_attributes = True
