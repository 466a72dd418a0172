# legal_ml/models/schemas.py
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# Enums
class ModelType(str, Enum):
    SEARCH_SUGGESTIONS = "search_suggestions"
    USER_BEHAVIOR = "user_behavior"
    DOCUMENT_CLASSIFICATION = "document_classification"
    CASE_RECOMMENDATIONS = "case_recommendations"
    FRAUD_DETECTION = "fraud_detection"


class DocumentCategory(str, Enum):
    LEGAL_DOCUMENT = "legal_document"
    CONTRACT = "contract"
    DRAFT_DOCUMENT = "draft_document"
    GENERAL_DOCUMENT = "general_document"


class RecommendationType(str, Enum):
    SIMILAR_CASE = "similar_case"
    EXPERT_ASSIGNMENT = "expert_assignment"
    RESOURCE_ALLOCATION = "resource_allocation"


class RecommendationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        match self:
            case RecommendationPriority.HIGH:
                return 3
            case RecommendationPriority.MEDIUM:
                return 2
            case _:
                return 1


class RiskFactor(str, Enum):
    UNUSUAL_LOGIN_TIME = "unusual_login_time"
    HIGH_ACTIVITY_VOLUME = "high_activity_volume"
    MULTIPLE_FAILED_LOGINS = "multiple_failed_logins"


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Scoring results
class SearchSuggestion(CamelModel):
    query: str
    frequency: int = 0
    relevance: float = 0.0
    category: Optional[str] = None
    timestamp: Optional[datetime] = None


class UserBehaviorPrediction(CamelModel):
    user_id: str
    predicted_action: str
    confidence: float = Field(ge=0.0, le=0.9)
    next_best_action: str
    recommendations: List[str] = []
    timestamp: datetime


class DocumentFeatures(CamelModel):
    word_count: int
    has_legal_terms: bool
    file_type: Optional[str] = None
    file_size: Any = None  # passed through unchanged
    upload_date: Any = None
    keywords: List[str] = []


class DocumentMetadata(CamelModel):
    """Caller-supplied document metadata; unknown keys are kept"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    file_type: Optional[str] = None
    file_size: Any = None  # passed through unchanged
    upload_date: Any = None

    @field_validator("upload_date", mode="before")
    @classmethod
    def isoformat_dates(cls, v):
        if isinstance(v, (date, datetime)):
            return v.isoformat()
        return v


class DocumentClassification(CamelModel):
    document_id: str
    predicted_category: DocumentCategory
    confidence: float = Field(ge=0.5, le=0.95)
    tags: List[str] = []
    metadata: Dict[str, Any] = {}
    timestamp: datetime


class CaseRecommendation(CamelModel):
    case_id: str
    user_id: str
    recommendation_type: RecommendationType
    confidence: float
    reasoning: Optional[str] = None
    priority: RecommendationPriority
    timestamp: datetime

    @field_validator("case_id", "user_id", mode="before")
    @classmethod
    def stringify_ids(cls, v):
        return str(v) if v is not None else v


class FraudActivity(BaseModel):
    """Activity payload under assessment; extra keys are persisted verbatim"""
    model_config = ConfigDict(extra="allow")

    action: Optional[str] = None
    type: Optional[str] = None
    timestamp: Optional[datetime] = None

    @property
    def action_name(self) -> Optional[str]:
        return self.action or self.type


class FraudAssessment(CamelModel):
    is_suspicious: bool
    risk_score: float = Field(ge=0.0, le=1.0)
    reasons: List[str] = []
    recommendations: List[str] = []
    risk_factors: List[RiskFactor] = []
    anomaly_score: float = Field(default=0.0, ge=0.0, le=1.0)


# Signals
class BehaviorPattern(CamelModel):
    frequency: int = 0
    avg_interval: float = 0.0  # seconds
    failed_logins: int = 0


# Training artifacts
class ModelWeight(CamelModel):
    model_type: ModelType
    feature: str
    weight: float


class ModelMetrics(CamelModel):
    model_type: str
    accuracy: float
    precision: float
    recall: float
    f1: float
    training_date: Optional[datetime] = None
