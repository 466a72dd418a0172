from legal_ml.services.engine import ScoringEngine

__all__ = ["ScoringEngine"]
