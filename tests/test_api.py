import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db import models
from db.database import Base, get_db, get_session_factory
from db.seed_rules import seed_ingredient_rules
from interfaces.analysisModels import EnhancerResult
from interfaces.productModels import ProductRecord
from main import app
from services.ai_service import AIService
from services.product_sources import ProductSource
from services.scanner_service import get_ai_service, get_product_sources

RISK_CATEGORIES = {
    key: {"status": "Safe", "description": "No evidence found"}
    for key in (
        "carcinogens", "hormone_disruptors", "allergens",
        "reproductive_toxicants", "developmental_toxicants", "banned_ingredients",
    )
}


class FakeAIService(AIService):
    enabled = True

    def __init__(self):
        self.analysis_calls = 0

    async def analyze_ingredients(self, ingredients, profile_context):
        self.analysis_calls += 1
        return EnhancerResult.model_validate({
            "summary": "Checked by the fake enhancer.",
            "riskCategories": RISK_CATEGORIES,
            "concerns": [],
            "positives": ["glycerin"],
        })

    async def suggest_alternatives(self, product_name, avoided_ingredients):
        return []


class FakeSource(ProductSource):
    name = "open_beauty_facts"

    def __init__(self, records):
        super().__init__()
        self.records = records
        self.lookups = []

    async def lookup_by_barcode(self, barcode):
        self.lookups.append(barcode)
        return self.records.get(barcode)


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    with factory() as db:
        seed_ingredient_rules(db)
        db.add(models.UserProfile(user_id="u1", conditions=["PCOS"]))
        db.commit()
    return factory


@pytest.fixture
def ai_service():
    return FakeAIService()


@pytest.fixture
def source():
    return FakeSource({
        "111": ProductRecord(
            barcode="111", source="open_beauty_facts", name="Glow Lotion", brand="Glow",
            ingredients_raw="Aqua (Water), Glycerin, Methylparaben", image_url="https://i/lotion.jpg",
        ),
        "222": ProductRecord(barcode="222", source="open_beauty_facts", name="Mystery Soap", image_url="https://i/soap.jpg"),
    })


@pytest.fixture
def client(session_factory, ai_service, source):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_ai_service] = lambda: ai_service
    app.dependency_overrides[get_product_sources] = lambda: [source]
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_scan_evaluates_then_serves_cache(client, ai_service):
    response = client.get("/api/scanner/barcode/111")
    assert response.status_code == 200
    body = response.json()
    assert body["found"] is True
    assert body["from_cache"] is False
    assert body["ingredients_available"] is True
    assert "should_cache" not in body
    assert body["product"]["name"] == "Glow Lotion"
    assert body["analysis"]["overall_safety_score"] == 75
    assert body["analysis"]["summary"] == "Checked by the fake enhancer."
    assert [c["ingredient"] for c in body["analysis"]["concerns"]] == ["methylparaben"]

    second = client.get("/api/scanner/barcode/111").json()
    assert second["from_cache"] is True
    assert second["analysis"] == body["analysis"]
    assert ai_service.analysis_calls == 1


def test_scan_unknown_barcode(client):
    response = client.get("/api/scanner/barcode/000")
    assert response.status_code == 200
    assert response.json()["found"] is False


def test_skip_enhancement_is_not_cached(client, ai_service):
    body = client.get("/api/scanner/barcode/111", params={"skip_enhancement": True}).json()
    assert body["analysis"]["alternatives"] == []
    assert ai_service.analysis_calls == 0

    again = client.get("/api/scanner/barcode/111", params={"skip_enhancement": True}).json()
    assert again["from_cache"] is False


def test_scan_without_ingredients(client, ai_service, session_factory):
    body = client.get("/api/scanner/barcode/222").json()
    assert body["found"] is True
    assert body["ingredients_available"] is False
    assert body["analysis"]["degraded"] is True
    assert ai_service.analysis_calls == 0

    with session_factory() as db:
        assert db.get(models.ProductCache, "222").last_analysis is None


def test_scan_uses_profile_and_records_history(client):
    body = client.get("/api/scanner/barcode/111", params={"user_id": "u1"}).json()
    assert body["found"] is True

    history = client.get("/api/history/scan/u1")
    assert history.status_code == 200
    assert [h["barcode"] for h in history.json()] == ["111"]
    assert client.get("/api/history/scan/someone-else").json() == []


def test_manual_product_is_served_without_sources(client, source):
    payload = {"barcode": "333", "name": "Home Balm", "ingredients": ["Shea Butter", "Beeswax"]}
    created = client.post("/api/product/manual", json=payload)
    assert created.status_code == 200
    assert created.json()["source"] == "manual"
    assert created.json()["ingredients_raw"] == "Shea Butter, Beeswax"

    fetched = client.get("/api/product/333")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Home Balm"
    assert "333" not in source.lookups


def test_product_not_found(client):
    response = client.get("/api/product/000")
    assert response.status_code == 404


def test_clear_analyses(client):
    client.get("/api/scanner/barcode/111")

    cleared = client.delete("/api/product/111/analysis")
    assert cleared.status_code == 200
    assert cleared.json() == {"cleared": 1, "barcode": "111"}
    assert client.get("/api/scanner/barcode/111").json()["from_cache"] is False

    assert client.delete("/api/product/analysis").json()["cleared"] == 1


def test_evaluate_accepts_camel_case(client):
    response = client.post("/api/analyze/evaluate", json={
        "ingredients": ["Parabens", "Water"],
        "productName": "Cream",
        "userId": "u1",
        "skipEnhancement": True,
    })
    assert response.status_code == 200
    body = response.json()
    # rule for PCOS
    assert body["overall_safety_score"] == 70
    assert body["safety_level"] == "Caution"
    assert body["concerns"][0]["severity"] == "Avoid"


def test_evaluate_requires_ingredients(client):
    response = client.post("/api/analyze/evaluate", json={"ingredients": []})
    assert response.status_code == 400


def test_ingredient_insight(client):
    body = client.get("/api/scanner/ingredient_insight", params={"name": "Parabens", "user_id": "u1"}).json()
    assert body["insight"]["severity"] == "Avoid"
    assert body["safety_level"] == "Caution"

    clean = client.get("/api/scanner/ingredient_insight", params={"name": "Water"}).json()
    assert clean["insight"] is None
    assert clean["safety_level"] == "Good"
