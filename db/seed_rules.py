from sqlalchemy.orm import Session

from db.database import Base, SessionLocal, engine
from db.repositories import IngredientRuleRepository
from logger_manager import log_info

DEFAULT_RULES = [
    {
        "ingredient_name": "red 40",
        "tags": ["synthetic_color", "potential_carcinogen"],
        "avoid_for": ["ADHD", "Hyperactivity"],
        "caution_for": ["Sensitive Skin"],
        "explanation": "Artificial food dye linked to hyperactivity in children.",
    },
    {
        "ingredient_name": "parabens",
        "tags": ["endocrine_disruptor", "preservative"],
        "avoid_for": ["PCOS", "Endometriosis", "Fibroids"],
        "caution_for": ["Acne"],
        "explanation": "May mimic estrogen and disrupt hormonal balance.",
    },
    {
        "ingredient_name": "sodium laureth sulfate",
        "tags": ["surfactant", "irritant"],
        "avoid_for": [],
        "caution_for": ["Sensitive Skin", "Dry Skin", "Eczema"],
        "explanation": "Can be harsh and irritating to the skin barrier.",
    },
    {
        "ingredient_name": "high fructose corn syrup",
        "tags": ["refined_sugar", "inflammatory"],
        "avoid_for": ["Diabetes", "Inflammation"],
        "caution_for": ["Bloating"],
        "explanation": "Highly processed sugar that can cause blood sugar spikes.",
    },
    {
        "ingredient_name": "palm oil",
        "tags": ["saturated_fat", "environmental_impact"],
        "avoid_for": [],
        "caution_for": ["High Cholesterol"],
        "explanation": "High in saturated fats; significant environmental concerns.",
    },
]


def seed_ingredient_rules(db: Session, rules=DEFAULT_RULES) -> int:
    repo = IngredientRuleRepository(db)
    for rule in rules:
        repo.upsert_rule(rule)
    log_info(f"Seeded {len(rules)} ingredient rules")
    return len(rules)


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        count = seed_ingredient_rules(db)
    print(f"Seeded {count} ingredient rules.")
