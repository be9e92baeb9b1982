import unittest
from unittest.mock import MagicMock, patch

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db.database import Base
from db.repositories import ProductCacheRepository
from interfaces.analysisModels import Evaluation
from interfaces.productModels import ProductRecord
from services.scanner_service import persist_analysis

RISK_CATEGORIES = {
    key: {"status": "Safe", "description": "No evidence found"}
    for key in (
        "carcinogens", "hormone_disruptors", "allergens",
        "reproductive_toxicants", "developmental_toxicants", "banned_ingredients",
    )
}


def make_evaluation():
    return Evaluation.model_validate({
        "overall_safety_score": 90,
        "safety_level": "Good",
        "summary": "Looks fine.",
        "risk_categories": RISK_CATEGORIES,
    })


class TestPersistAnalysis(unittest.TestCase):

    def setUp(self):
        engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
        Base.metadata.create_all(bind=engine)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        with self.session_factory() as db:
            ProductCacheRepository(db).upsert(ProductRecord(barcode="111", source="open_food_facts", name="Bar"))

    def test_writes_analysis(self):
        persist_analysis(self.session_factory, "111", make_evaluation())

        with self.session_factory() as db:
            self.assertEqual(ProductCacheRepository(db).get_analysis("111").overall_safety_score, 90)

    @patch('services.scanner_service.log_error')
    def test_session_failure_is_only_logged(self, mock_log_error):
        failing_factory = MagicMock(side_effect=OperationalError("connect", {}, Exception("db down")))

        persist_analysis(failing_factory, "111", make_evaluation())

        mock_log_error.assert_called_once()
        self.assertIn("111", mock_log_error.call_args.args[0])

    @patch('services.scanner_service.log_error')
    @patch.object(ProductCacheRepository, 'set_analysis', side_effect=OperationalError("UPDATE", {}, Exception("locked")))
    def test_write_failure_is_only_logged(self, mock_set_analysis, mock_log_error):
        persist_analysis(self.session_factory, "111", make_evaluation())

        mock_set_analysis.assert_called_once()
        mock_log_error.assert_called_once()
        with self.session_factory() as db:
            self.assertIsNone(ProductCacheRepository(db).get_analysis("111"))


if __name__ == '__main__':
    unittest.main()
