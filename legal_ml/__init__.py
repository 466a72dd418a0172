"""Heuristic scoring and recommendation engine for legal practice management"""

__version__ = "1.0.0"
