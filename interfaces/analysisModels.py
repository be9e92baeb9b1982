from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["Caution", "Avoid"]
SafetyLevel = Literal["Good", "Caution", "Avoid"]


class Concern(BaseModel):
    ingredient: str
    reason: str
    severity: Severity


class RiskCategory(BaseModel):
    status: Literal["Safe", "Risk"]
    description: str = ""


class RiskCategories(BaseModel):
    carcinogens: RiskCategory
    hormone_disruptors: RiskCategory
    allergens: RiskCategory
    reproductive_toxicants: RiskCategory
    developmental_toxicants: RiskCategory
    banned_ingredients: RiskCategory


class Alternative(BaseModel):
    product_name: str
    brand: str
    reason: str
    buy_link: str
    image_url: str


class Evaluation(BaseModel):
    """Personalized safety evaluation, also the payload of the cached analysis."""
    overall_safety_score: int = Field(..., ge=0, le=100)
    safety_level: SafetyLevel
    summary: str
    concerns: List[Concern] = Field(default_factory=list)
    positives: List[str] = Field(default_factory=list)
    alternatives: List[Alternative] = Field(default_factory=list)
    risk_categories: Optional[RiskCategories] = None
    # set when the semantic enhancement was requested but unavailable
    degraded: bool = False

    @property
    def is_stale(self) -> bool:
        # analyses written before the risk breakdown existed must be recomputed
        return self.risk_categories is None


# LLM output models, the model answers in camelCase
class EnhancerResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overall_safety_score: Optional[int] = Field(None, alias="overallSafetyScore")
    safety_level: Optional[SafetyLevel] = Field(None, alias="safetyLevel")
    summary: Optional[str] = None
    risk_categories: Optional[RiskCategories] = Field(None, alias="riskCategories")
    concerns: List[Concern] = Field(default_factory=list)
    positives: List[str] = Field(default_factory=list)


class SuggestedAlternative(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_name: str = Field(..., alias="productName")
    brand: str = "Unknown Brand"
    reason: str = ""


class UserHealthProfile(BaseModel):
    user_id: Optional[str] = None
    conditions: List[str] = Field(default_factory=list)
    symptoms: List[str] = Field(default_factory=list)
    sensitivities: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)
    dietary_preferences: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True  # Enable ORM mode

    @classmethod
    def general_health(cls, user_id: Optional[str] = None) -> "UserHealthProfile":
        return cls(user_id=user_id, goals=["General Health"])


class EvaluateRequest(BaseModel):
    """Accepts the camelCase keys mobile clients send as well as snake_case"""
    model_config = ConfigDict(populate_by_name=True)

    ingredients: List[str]
    product_name: Optional[str] = Field(None, alias="productName")
    user_id: Optional[str] = Field(None, alias="userId")
    skip_enhancement: bool = Field(False, alias="skipEnhancement")


class IngredientInsightResponse(BaseModel):
    name: str
    insight: Optional[Concern] = None
    safety_level: SafetyLevel
