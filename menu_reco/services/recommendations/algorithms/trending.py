"""
Trending-velocity scorer
Baseline popularity nudged by how fast orders are rising or falling
"""
from typing import List

from menu_reco.services.recommendations.base import ScoringStrategy, ScoringInput, clip01
from menu_reco.services.recommendations.models import CatalogItem, StrategyName

VELOCITY_WEIGHT = 0.2  # Max popularity shift from velocity


class TrendingScorer(ScoringStrategy):
    """
    Velocity-adjusted popularity

    Velocity is precomputed upstream (see insights.compute_trend) as the
    relative change between the current and previous trending windows;
    this scorer only consumes it.
    """

    name = StrategyName.TRENDING

    def __init__(self, velocity_weight: float = VELOCITY_WEIGHT):
        self.velocity_weight = velocity_weight

    def score(self, items: List[CatalogItem], scoring_input: ScoringInput) -> List[float]:
        velocities = scoring_input.signals.velocities

        scores = []
        for item in items:
            popularity = item.popularity or 0.0
            velocity = max(-1.0, min(1.0, velocities.get(item.id, 0.0)))
            scores.append(clip01(popularity + self.velocity_weight * velocity))
        return scores

    def get_info(self) -> dict:
        info = super().get_info()
        info.update({"velocity_weight": self.velocity_weight})
        return info
