# legal_ml/models/database.py
"""
Tables owned by the scoring engine.

Source tables (search_logs, user_activities, cases, documents, clients,
case_assignments, users) belong to the practice-management application and
are only read through the signal collectors.
"""
from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, Index, Integer, String,
    UniqueConstraint, func,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ModelWeightRecord(Base):
    __tablename__ = "ml_model_weights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_type = Column(String(50), nullable=False)
    feature = Column(String(100), nullable=False)
    weight = Column(Float, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('model_type', 'feature', name='uq_model_weights_type_feature'),
    )


class ModelMetricsRecord(Base):
    __tablename__ = "ml_model_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_type = Column(String(50), nullable=False, unique=True)
    accuracy = Column(Float, nullable=False)
    precision_score = Column(Float, nullable=False)
    recall = Column(Float, nullable=False)
    f1_score = Column(Float, nullable=False)
    training_date = Column(DateTime(timezone=True), server_default=func.now())


class UserBehaviorPatternRecord(Base):
    __tablename__ = "ml_user_behavior_patterns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, unique=True)
    patterns = Column(JSON, nullable=False)  # '<action>_<entity_type>' -> {frequency, avgInterval}
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class DocumentClassificationRecord(Base):
    __tablename__ = "ml_document_classifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(String(64), nullable=False, unique=True)
    predicted_category = Column(String(50), nullable=False)
    confidence = Column(Float, nullable=False)
    tags = Column(JSON, nullable=False)
    metadata_json = Column("metadata", JSON, nullable=False)
    classified_at = Column(DateTime(timezone=True), nullable=False)


class SuspiciousActivityRecord(Base):
    __tablename__ = "ml_suspicious_activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    activity = Column(JSON, nullable=False)
    risk_score = Column(Float, nullable=False)
    risk_factors = Column(JSON, nullable=False)
    reasons = Column(JSON, nullable=False)
    recommendations = Column(JSON, nullable=False)
    is_confirmed_fraud = Column(Boolean)  # set by reviewers, read by training
    detected_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_suspicious_activities_detected', 'detected_at'),
    )


class ClassificationRulesRecord(Base):
    __tablename__ = "ml_classification_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_type = Column(String(50), nullable=False, unique=True)
    rules = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class CaseRecommendationPatternsRecord(Base):
    __tablename__ = "ml_case_recommendation_patterns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_type = Column(String(50), nullable=False, unique=True)
    patterns = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class FraudDetectionRulesRecord(Base):
    __tablename__ = "ml_fraud_detection_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_type = Column(String(50), nullable=False, unique=True)
    risk_weights = Column(JSON, nullable=False)
    threshold = Column(Float, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
