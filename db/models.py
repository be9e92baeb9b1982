from sqlalchemy import Column, Integer, String, Text, JSON, DateTime, Float, text, TIMESTAMP
from sqlalchemy.sql import func
from .database import Base


class ProductCache(Base):
    __tablename__ = "products_cache"

    barcode = Column(String(64), primary_key=True, index=True)
    # open_food_facts, open_beauty_facts, upcitemdb or manual
    source = Column(String(64), nullable=False)
    name = Column(String(512), nullable=True)
    brand = Column(String(255), nullable=True)
    category = Column(Text, nullable=True)
    ingredients_raw = Column(Text, nullable=True)
    ingredients_parsed = Column(JSON(none_as_null=True), nullable=True)
    nutrition = Column(JSON(none_as_null=True), nullable=True)
    image_url = Column(Text, nullable=True)
    # full Evaluation payload of the last complete analysis
    last_analysis = Column(JSON(none_as_null=True), nullable=True)
    last_fetched = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class IngredientRule(Base):
    __tablename__ = "ingredient_rules"

    id = Column(Integer, primary_key=True, index=True)
    ingredient_name = Column(String(255), unique=True, index=True, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    # conditions
    avoid_for = Column(JSON, nullable=False, default=list)
    # symptoms
    caution_for = Column(JSON, nullable=False, default=list)
    explanation = Column(Text, nullable=True)
    confidence = Column(Float, nullable=False, default=1.0)


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), unique=True, index=True, nullable=False)
    conditions = Column(JSON, nullable=False, default=list)
    symptoms = Column(JSON, nullable=False, default=list)
    sensitivities = Column(JSON, nullable=False, default=list)
    goals = Column(JSON, nullable=False, default=list)
    dietary_preferences = Column(JSON, nullable=False, default=list)
    created_at = Column(TIMESTAMP, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())


class ScanHistory(Base):
    __tablename__ = "scan_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), index=True, nullable=False)
    barcode = Column(String(64), nullable=False)
    scan_date = Column(DateTime(timezone=True), nullable=False)
