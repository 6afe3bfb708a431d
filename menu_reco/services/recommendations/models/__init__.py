"""
Models for recommendations
"""
from .enums import (
    TimeOfDay,
    Weather,
    DeviceType,
    UserSegment,
    BusinessType,
    StrategyName,
    ExperimentGroup,
    coerce_enum
)
from .catalog import CatalogItem, index_by_id
from .context import RequestContext
from .profile import StrategyWeights, BusinessProfile, BUSINESS_PROFILES, get_profile
from .signals import RuleScope, AffinityRule, Signals, DEFAULT_AFFINITY_RULES
from .recommendation import StrategyScores, ScoredCandidate, RecommendationResult, PairingSuggestion

__all__ = [
    "TimeOfDay",
    "Weather",
    "DeviceType",
    "UserSegment",
    "BusinessType",
    "StrategyName",
    "ExperimentGroup",
    "coerce_enum",
    "CatalogItem",
    "index_by_id",
    "RequestContext",
    "StrategyWeights",
    "BusinessProfile",
    "BUSINESS_PROFILES",
    "get_profile",
    "RuleScope",
    "AffinityRule",
    "Signals",
    "DEFAULT_AFFINITY_RULES",
    "StrategyScores",
    "ScoredCandidate",
    "RecommendationResult",
    "PairingSuggestion"
]
