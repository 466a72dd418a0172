# legal_ml/services/scoring/document_classifier.py
"""
Rule-based document classification.

Categories are decided by a fixed precedence: legal terms with a long body
first, then file type. Every classification is persisted (upsert on the
document id) before it is returned.
"""
import json
import logging
from collections import Counter
from typing import Any, List, Mapping, Optional, Union

from pydantic import TypeAdapter

from legal_ml.core.logging import log_prediction
from legal_ml.models.schemas import (
    DocumentCategory, DocumentClassification, DocumentFeatures, DocumentMetadata, ModelType,
)
from legal_ml.services.collectors import PersistenceGateway
from legal_ml.services.scoring.base import Clock, ResultPolicy, ScoringModel

logger = logging.getLogger(__name__)

MODEL_VERSION = "document_classifier_v1"

LEGAL_TERMS = (
    "contract", "agreement", "legal", "court", "judgment", "plaintiff", "defendant",
    "attorney", "lawyer", "litigation", "settlement", "damages", "liability",
)

TAG_TERMS = ("contract", "agreement", "legal", "court", "case")

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
})

LEGAL_DOCUMENT_MIN_WORDS = 1000
LONG_DOCUMENT_MIN_WORDS = 500
MAX_CONFIDENCE = 0.95


def contains_legal_terms(content: str) -> bool:
    lower_content = content.lower()
    return any(term in lower_content for term in LEGAL_TERMS)


def extract_keywords(content: str, top_n: int = 10) -> List[str]:
    words = (
        word for word in content.lower().split()
        if len(word) > 3 and word not in STOP_WORDS
    )
    return [word for word, _ in Counter(words).most_common(top_n)]


def extract_features(content: str, metadata: DocumentMetadata) -> DocumentFeatures:
    return DocumentFeatures(
        word_count=len(content.split()),
        has_legal_terms=contains_legal_terms(content),
        file_type=metadata.file_type,
        file_size=metadata.file_size,
        upload_date=metadata.upload_date,
        keywords=extract_keywords(content),
    )


def classify_features(features: DocumentFeatures) -> DocumentCategory:
    if features.has_legal_terms and features.word_count > LEGAL_DOCUMENT_MIN_WORDS:
        return DocumentCategory.LEGAL_DOCUMENT

    match (features.file_type or "").lower().lstrip("."):
        case "pdf":
            return DocumentCategory.CONTRACT
        case "doc" | "docx":
            return DocumentCategory.DRAFT_DOCUMENT
        case _:
            return DocumentCategory.GENERAL_DOCUMENT


def classification_confidence(features: DocumentFeatures, category: DocumentCategory) -> float:
    confidence = 0.5
    if features.has_legal_terms:
        confidence += 0.2
    if features.word_count > LONG_DOCUMENT_MIN_WORDS:
        confidence += 0.1
    if category is DocumentCategory.LEGAL_DOCUMENT:
        confidence += 0.2
    return round(min(MAX_CONFIDENCE, confidence), 4)


def extract_tags(content: str, category: DocumentCategory) -> List[str]:
    lower_content = content.lower()
    tags = [category.value] + [term for term in TAG_TERMS if term in lower_content]
    return list(dict.fromkeys(tags))


class DocumentClassifier(ScoringModel):
    model_type = ModelType.DOCUMENT_CLASSIFICATION
    policy = ResultPolicy.STRICT
    result_adapter = TypeAdapter(DocumentClassification)

    STORE_CLASSIFICATION = """
        INSERT INTO ml_document_classifications
            (document_id, predicted_category, confidence, tags, metadata, classified_at)
        VALUES (:document_id, :predicted_category, :confidence, :tags, :metadata, :classified_at)
        ON CONFLICT (document_id) DO UPDATE SET
            predicted_category = EXCLUDED.predicted_category,
            confidence = EXCLUDED.confidence,
            tags = EXCLUDED.tags,
            metadata = EXCLUDED.metadata,
            classified_at = EXCLUDED.classified_at
    """

    def __init__(self, gateway: PersistenceGateway,
                 cache_ttl: Optional[int] = 86400, clock: Optional[Clock] = None):
        super().__init__(cache_ttl=cache_ttl, clock=clock)
        self.gateway = gateway

    def cache_key(self, document_id: str, content: str = "", metadata: Any = None) -> str:
        return f"document_classification:{document_id}"

    async def score(self, document_id: str, content: str,
                    metadata: Union[Mapping[str, Any], DocumentMetadata, None]) -> DocumentClassification:
        if isinstance(metadata, DocumentMetadata):
            parsed = metadata
            raw_metadata = metadata.model_dump(by_alias=True, exclude_none=True)
        else:
            raw_metadata = dict(metadata or {})
            parsed = DocumentMetadata.model_validate(raw_metadata)

        features = extract_features(content, parsed)
        category = classify_features(features)
        confidence = classification_confidence(features, category)

        classification = DocumentClassification(
            document_id=str(document_id),
            predicted_category=category,
            confidence=confidence,
            tags=extract_tags(content, category),
            metadata={
                **raw_metadata,
                "features": features.model_dump(mode="json", by_alias=True),
                "classificationModel": MODEL_VERSION,
            },
            timestamp=self._clock(),
        )

        await self._store(classification)

        log_prediction(self.model_type.value, confidence, document_id=str(document_id),
                       category=category.value)
        logger.info(f"Classified document {document_id} as {category.value} with confidence {confidence}")
        return classification

    async def _store(self, classification: DocumentClassification):
        await self.gateway.query(self.STORE_CLASSIFICATION, {
            "document_id": classification.document_id,
            "predicted_category": classification.predicted_category.value,
            "confidence": classification.confidence,
            "tags": json.dumps(classification.tags),
            "metadata": json.dumps(classification.metadata, default=str),
            "classified_at": classification.timestamp,
        })
