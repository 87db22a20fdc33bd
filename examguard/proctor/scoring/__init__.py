"""Scoring modules"""

from .similarity import cosine_similarity, match_percentage

__all__ = ["cosine_similarity", "match_percentage"]
