"""
Ensemble combiner
Blends per-strategy scores with the profile weights and explains the result
"""
from typing import Dict, List

import numpy as np

from menu_reco.services.recommendations.models import (
    StrategyName,
    StrategyWeights,
    StrategyScores,
    ScoredCandidate,
    ExperimentGroup
)

HIGH_SCORE_THRESHOLD = 0.7

REASON_TAGS: Dict[StrategyName, str] = {
    StrategyName.EXPLORATION: "Optimized for discovery",
    StrategyName.COLLABORATIVE: "Based on your preferences",
    StrategyName.CONTEXTUAL: "Perfect for right now",
    StrategyName.TRENDING: "Trending up fast",
    StrategyName.AFFINITY: "Goes great with your cart",
}

# Strategies whose agreement drives the confidence estimate
CONFIDENCE_STRATEGIES = (StrategyName.EXPLORATION, StrategyName.COLLABORATIVE, StrategyName.CONTEXTUAL)


def combine_scores(scores: StrategyScores, weights: StrategyWeights) -> float:
    """Weighted sum of the strategy scores"""
    return float(sum(scores.get(strategy) * weights.get(strategy) for strategy in StrategyName))


def reasons_for(scores: StrategyScores) -> List[str]:
    """Human-readable tags for every strategy scoring above the threshold"""
    return [
        REASON_TAGS[strategy]
        for strategy in StrategyName
        if scores.get(strategy) > HIGH_SCORE_THRESHOLD
    ]


def confidence_for(scores: StrategyScores) -> float:
    """
    Agreement between the primary strategies

    1 - population variance; all-high or all-low scores give high confidence.
    """
    values = np.array([scores.get(strategy) for strategy in CONFIDENCE_STRATEGIES], dtype=float)
    return max(0.0, 1.0 - float(np.var(values)))


def build_candidate(
    item_id: str,
    scores: StrategyScores,
    weights: StrategyWeights,
    experiment_group: ExperimentGroup
) -> ScoredCandidate:
    """Create an unranked ScoredCandidate from raw strategy scores"""
    return ScoredCandidate(
        item_id=item_id,
        strategy_scores=scores,
        score=combine_scores(scores, weights),
        confidence=confidence_for(scores),
        reasons=reasons_for(scores),
        experiment_group=experiment_group
    )
