"""
Exploration sampler - multi-armed bandit scoring
Balances showing proven items against trying under-exposed ones
"""
import math
from typing import List, Dict

from menu_reco.services.recommendations.base import ScoringStrategy, ScoringInput, clip01
from menu_reco.services.recommendations.models import CatalogItem, StrategyName

DEFAULT_RATING = 3.0  # Assumed rating for items without one
RATING_SCALE = 5.0


def beta_parameters(rating: float, rating_count: int) -> tuple:
    """
    Beta distribution parameters from rating aggregates

    Ratings are read as a success rate: an item rated 4/5 by 10 people
    has 8 successes and 2 failures. A Laplace prior (+1/+1) keeps
    unrated items valid.

    Returns:
        Tuple of (alpha, beta)
    """
    count = max(0, rating_count or 0)
    rate = (rating if rating is not None else DEFAULT_RATING) / RATING_SCALE
    successes = count * min(max(rate, 0.0), 1.0)
    failures = count - successes
    return successes + 1.0, failures + 1.0


def beta_stats(alpha: float, beta: float) -> Dict[str, float]:
    """
    Mean, variance and uncertainty (std dev) of Beta(alpha, beta)
    """
    total = alpha + beta
    variance = (alpha * beta) / (total * total * (total + 1))
    return {
        "expected_value": alpha / total,
        "variance": variance,
        "uncertainty": math.sqrt(variance)
    }


def optimal_exploration_rate(catalog_size: int) -> float:
    """
    Exploration rate suited to a catalog size

    Smaller catalogs need more exploration: 1/sqrt(n) bounded to [0.05, 0.30].
    """
    if catalog_size <= 0:
        return 0.30
    return max(0.05, min(0.30, 1.0 / math.sqrt(catalog_size)))


class ExplorationSampler(ScoringStrategy):
    """
    Bandit-style exploration score

    Beta mean from the item's rating history plus a random bonus of up to
    the profile's exploration rate.
    """

    name = StrategyName.EXPLORATION

    def score(self, items: List[CatalogItem], scoring_input: ScoringInput) -> List[float]:
        rate = scoring_input.profile.exploration_rate
        rng = scoring_input.rng

        scores = []
        for item in items:
            alpha, beta = beta_parameters(item.rating, item.rating_count)
            mean = alpha / (alpha + beta)
            exploration = rng.random() * rate
            scores.append(clip01(mean + exploration))
        return scores
