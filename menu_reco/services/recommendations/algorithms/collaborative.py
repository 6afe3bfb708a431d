"""
Collaborative scorer
Infers preference from the categories of the customer's past orders
"""
import math
from typing import List, Dict, Optional

from menu_reco.services.recommendations.base import ScoringStrategy, ScoringInput, clip01
from menu_reco.services.recommendations.models import CatalogItem, StrategyName, index_by_id

NEUTRAL_SCORE = 0.5
NO_MATCH_SCORE = 0.3
MATCH_RANGE = 0.7  # Full category match lifts the score to 1.0
POSITIONAL_DECAY = 0.15  # Per position in the history list


class CollaborativeScorer(ScoringStrategy):
    """
    Category-overlap collaborative filtering with recency weighting

    Each resolvable history item votes for its category with a recency
    weight; the candidate scores by the weighted share of votes its
    category receives. Cold start (no history) and unresolvable history
    both fall back to a neutral score.
    """

    name = StrategyName.COLLABORATIVE

    def __init__(self, positional_decay: float = POSITIONAL_DECAY):
        self.positional_decay = positional_decay

    def score(self, items: List[CatalogItem], scoring_input: ScoringInput) -> List[float]:
        history = scoring_input.context.user_history
        if not history:
            return [NEUTRAL_SCORE for _ in items]

        category_weights = self._category_weights(items, scoring_input)
        if not category_weights:
            return [NEUTRAL_SCORE for _ in items]

        total_weight = sum(category_weights.values())
        scores = []
        for item in items:
            share = category_weights.get(_norm(item.category), 0.0) / total_weight
            scores.append(clip01(NO_MATCH_SCORE + MATCH_RANGE * share))
        return scores

    def _category_weights(self, items: List[CatalogItem], scoring_input: ScoringInput) -> Dict[str, float]:
        """Accumulate recency weight per history category"""
        pool = index_by_id(items)
        signals = scoring_input.signals

        weights: Dict[str, float] = {}
        for position, item_id in enumerate(scoring_input.context.user_history):
            category = _lookup_category(item_id, pool, signals.item_categories)
            if not category:
                continue
            weight = signals.history_weights.get(item_id)
            if weight is None:
                weight = math.exp(-self.positional_decay * position)
            if weight <= 0:
                continue
            weights[category] = weights.get(category, 0.0) + weight
        return weights

    def get_info(self) -> dict:
        info = super().get_info()
        info.update({"positional_decay": self.positional_decay})
        return info


def _norm(category: Optional[str]) -> str:
    return (category or "").strip().lower()


def _lookup_category(item_id: str, pool: Dict[str, CatalogItem], lookup: Dict[str, str]) -> str:
    item = pool.get(item_id)
    if item is not None and item.category:
        return _norm(item.category)
    return _norm(lookup.get(item_id))
