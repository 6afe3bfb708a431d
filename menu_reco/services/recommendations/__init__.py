"""
Recommendations module
Multi-strategy menu ranking with diversity re-ranking and signal caching
"""
from .engine import RecommendationEngine, default_strategies
from .context import build_context, time_of_day_for
from .models import (
    CatalogItem,
    RequestContext,
    BusinessProfile,
    BusinessType,
    Signals,
    AffinityRule,
    ScoredCandidate,
    RecommendationResult,
    get_profile
)
from .data_loader import DataLoader
from .cache import SignalCache, get_cache

__all__ = [
    "RecommendationEngine",
    "default_strategies",
    "build_context",
    "time_of_day_for",
    "CatalogItem",
    "RequestContext",
    "BusinessProfile",
    "BusinessType",
    "Signals",
    "AffinityRule",
    "ScoredCandidate",
    "RecommendationResult",
    "get_profile",
    "DataLoader",
    "SignalCache",
    "get_cache"
]
