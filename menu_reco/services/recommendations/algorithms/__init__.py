"""
Scoring strategies
"""
from .exploration import ExplorationSampler, beta_parameters, beta_stats, optimal_exploration_rate
from .collaborative import CollaborativeScorer
from .contextual import ContextualScorer
from .trending import TrendingScorer
from .affinity import AffinityMiner, pairing_suggestions, strongest_rules

__all__ = [
    "ExplorationSampler",
    "CollaborativeScorer",
    "ContextualScorer",
    "TrendingScorer",
    "AffinityMiner",
    "pairing_suggestions",
    "strongest_rules",
    "beta_parameters",
    "beta_stats",
    "optimal_exploration_rate"
]
