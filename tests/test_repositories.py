import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db import models
from db.database import Base
from db.repositories import IngredientRuleRepository, ProductCacheRepository, UserProfileRepository
from db.seed_rules import DEFAULT_RULES, seed_ingredient_rules
from interfaces.analysisModels import Evaluation
from interfaces.productModels import ProductRecord
from services.scan_history import get_scan_history, record_scan

RISK_CATEGORIES = {
    key: {"status": "Safe", "description": "No evidence found"}
    for key in (
        "carcinogens", "hormone_disruptors", "allergens",
        "reproductive_toxicants", "developmental_toxicants", "banned_ingredients",
    )
}


def make_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


def make_evaluation(**overrides):
    data = {
        "overall_safety_score": 90,
        "safety_level": "Good",
        "summary": "Looks fine.",
        "risk_categories": RISK_CATEGORIES,
    }
    data.update(overrides)
    return Evaluation.model_validate(data)


class TestProductCacheRepository(unittest.TestCase):

    def setUp(self):
        self.db = make_session()
        self.repo = ProductCacheRepository(self.db)

    def tearDown(self):
        self.db.close()

    def test_get_missing(self):
        self.assertIsNone(self.repo.get("nope"))

    def test_upsert_merges_without_clearing(self):
        self.repo.upsert(ProductRecord(
            barcode="111", source="upcitemdb", name="Lotion", brand="Acme", ingredients_raw="Aqua (Water), Glycerin",
        ))
        merged = self.repo.upsert(ProductRecord(
            barcode="111", source="open_beauty_facts", image_url="https://i/lotion.jpg",
        ))

        self.assertEqual(merged.source, "open_beauty_facts")
        self.assertEqual(merged.brand, "Acme")
        self.assertEqual(merged.ingredients_raw, "Aqua (Water), Glycerin")
        self.assertEqual(merged.image_url, "https://i/lotion.jpg")
        self.assertIsNotNone(merged.last_fetched)

        row = self.db.get(models.ProductCache, "111")
        self.assertEqual(row.ingredients_parsed, ["aqua", "glycerin"])

    def test_completeness(self):
        self.repo.upsert(ProductRecord(barcode="1", source="upcitemdb", name="No image"))
        self.repo.upsert(ProductRecord(barcode="2", source="open_food_facts", image_url="https://i/2.jpg"))
        self.repo.upsert(ProductRecord(barcode="3", source="manual", name="Hand entered"))

        self.assertFalse(self.repo.get("1").is_complete)
        self.assertTrue(self.repo.get("2").is_complete)
        self.assertTrue(self.repo.get("3").is_complete)

    def test_analysis_round_trip_and_staleness(self):
        self.repo.upsert(ProductRecord(barcode="111", source="open_food_facts", name="Bar"))

        self.assertTrue(self.repo.set_analysis("111", make_evaluation()))
        cached = self.repo.get_analysis("111")
        self.assertEqual(cached.overall_safety_score, 90)
        self.assertEqual(cached.risk_categories.carcinogens.status, "Safe")

        self.repo.set_analysis("111", make_evaluation(risk_categories=None))
        self.assertIsNone(self.repo.get_analysis("111"))

    def test_ingredient_change_drops_analysis(self):
        self.repo.upsert(ProductRecord(barcode="111", source="open_beauty_facts", name="Lotion", ingredients_raw="Aqua, Glycerin"))
        self.repo.set_analysis("111", make_evaluation())

        # same ingredients or none at all keep the analysis
        self.repo.upsert(ProductRecord(barcode="111", source="open_beauty_facts", ingredients_raw="Aqua, Glycerin"))
        self.repo.upsert(ProductRecord(barcode="111", source="open_beauty_facts", image_url="https://i/lotion.jpg"))
        self.assertIsNotNone(self.repo.get_analysis("111"))

        self.repo.upsert(ProductRecord(barcode="111", source="open_beauty_facts", ingredients_raw="Aqua, Methylparaben"))
        self.assertIsNone(self.repo.get_analysis("111"))

    def test_set_analysis_without_product(self):
        self.assertFalse(self.repo.set_analysis("ghost", make_evaluation()))
        self.assertIsNone(self.repo.get_analysis("ghost"))

    def test_unreadable_analysis_is_ignored(self):
        self.repo.upsert(ProductRecord(barcode="111", source="open_food_facts", name="Bar"))
        row = self.db.get(models.ProductCache, "111")
        row.last_analysis = {"overall_safety_score": "lots"}
        self.db.commit()

        self.assertIsNone(self.repo.get_analysis("111"))

    def test_clear_analyses(self):
        for barcode in ("1", "2", "3"):
            self.repo.upsert(ProductRecord(barcode=barcode, source="open_food_facts", name="x"))
            self.repo.set_analysis(barcode, make_evaluation())

        self.assertEqual(self.repo.clear_analysis("1"), 1)
        self.assertEqual(self.repo.clear_analysis("1"), 0)
        self.assertEqual(self.repo.clear_all_analyses(), 2)
        self.assertEqual(self.repo.clear_all_analyses(), 0)
        self.assertIsNone(self.repo.get_analysis("2"))

    def test_overwrite_replaces_and_clears_analysis(self):
        self.repo.upsert(ProductRecord(barcode="111", source="upcitemdb", name="Old", brand="Acme", ingredients_raw="Aqua"))
        self.repo.set_analysis("111", make_evaluation())

        record = self.repo.overwrite(ProductRecord(barcode="111", source="manual", name="New", ingredients_raw="Oats, Honey"))

        self.assertEqual(record.source, "manual")
        self.assertEqual(record.name, "New")
        self.assertIsNone(record.brand)
        self.assertEqual(record.ingredients_raw, "Oats, Honey")
        self.assertIsNone(self.repo.get_analysis("111"))


class TestIngredientRuleRepository(unittest.TestCase):

    def setUp(self):
        self.db = make_session()
        self.repo = IngredientRuleRepository(self.db)

    def tearDown(self):
        self.db.close()

    def test_seed_and_lookup(self):
        self.assertEqual(seed_ingredient_rules(self.db), len(DEFAULT_RULES))

        rules = self.repo.get_rules_for(["Parabens", "water", "palm oil"])
        self.assertEqual(sorted(rules), ["palm oil", "parabens"])
        self.assertIn("Endometriosis", rules["parabens"].avoid_for)
        self.assertEqual(rules["parabens"].confidence, 1.0)

    def test_upsert_updates_existing(self):
        self.repo.upsert_rule({"ingredient_name": "Red 40", "avoid_for": ["ADHD"], "caution_for": []})
        self.repo.upsert_rule({"ingredient_name": "red 40", "avoid_for": ["ADHD", "Migraine"], "caution_for": []})

        self.assertEqual(self.db.query(models.IngredientRule).count(), 1)
        self.assertEqual(self.repo.get_rule_by_name("RED 40").avoid_for, ["ADHD", "Migraine"])

    def test_empty_names(self):
        self.assertEqual(self.repo.get_rules_for([]), {})


class TestUserProfileRepository(unittest.TestCase):

    def setUp(self):
        self.db = make_session()
        self.repo = UserProfileRepository(self.db)

    def tearDown(self):
        self.db.close()

    def test_profile(self):
        self.db.add(models.UserProfile(user_id="u1", conditions=["PCOS"], symptoms=["Acne"]))
        self.db.commit()

        profile = self.repo.get_profile("u1")
        self.assertEqual(profile.conditions, ["PCOS"])
        self.assertEqual(profile.symptoms, ["Acne"])
        self.assertEqual(profile.sensitivities, [])

    def test_missing_profile(self):
        self.assertIsNone(self.repo.get_profile("nobody"))
        self.assertIsNone(self.repo.get_profile(None))


class TestScanHistory(unittest.TestCase):

    def setUp(self):
        self.db = make_session()

    def tearDown(self):
        self.db.close()

    def test_record_and_read(self):
        record_scan(self.db, "u1", "111")
        record_scan(self.db, "u1", "222")
        record_scan(self.db, "u2", "333")

        history = get_scan_history(self.db, "u1")
        self.assertEqual(len(history), 2)
        self.assertEqual({h.barcode for h in history}, {"111", "222"})

    def test_anonymous_scan_is_not_recorded(self):
        self.assertIsNone(record_scan(self.db, None, "111"))
        self.assertEqual(self.db.query(models.ScanHistory).count(), 0)


if __name__ == '__main__':
    unittest.main()
