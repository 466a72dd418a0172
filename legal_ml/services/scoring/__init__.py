from legal_ml.services.scoring.base import ResultPolicy, ScoringModel, local_now
from legal_ml.services.scoring.behavior_predictor import BehaviorPredictor
from legal_ml.services.scoring.case_recommender import CaseRecommender
from legal_ml.services.scoring.document_classifier import DocumentClassifier
from legal_ml.services.scoring.fraud_scorer import FraudScorer
from legal_ml.services.scoring.suggestion_ranker import SuggestionRanker

__all__ = [
    "BehaviorPredictor",
    "CaseRecommender",
    "DocumentClassifier",
    "FraudScorer",
    "ResultPolicy",
    "ScoringModel",
    "SuggestionRanker",
    "local_now",
]
