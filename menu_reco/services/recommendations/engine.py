"""
Main recommendation engine
Runs the scoring strategies, blends them and re-ranks for diversity
"""
import logging
import random
from typing import List, Optional, Dict, Union

from menu_reco.services.recommendations.base import ScoringStrategy, ScoringInput
from menu_reco.services.recommendations.ensemble import build_candidate
from menu_reco.services.recommendations.diversity import mmr_rerank
from menu_reco.services.recommendations.experiments import assign_experiment_group
from menu_reco.services.recommendations.models import (
    CatalogItem,
    RequestContext,
    BusinessProfile,
    BusinessType,
    Signals,
    StrategyName,
    StrategyScores,
    ScoredCandidate,
    get_profile,
    index_by_id
)
from menu_reco.services.recommendations.algorithms import (
    ExplorationSampler,
    CollaborativeScorer,
    ContextualScorer,
    TrendingScorer,
    AffinityMiner
)

logger = logging.getLogger(__name__)


def default_strategies() -> Dict[StrategyName, ScoringStrategy]:
    """One instance of every scoring strategy, keyed by name"""
    strategies = [
        ExplorationSampler(),
        CollaborativeScorer(),
        ContextualScorer(),
        TrendingScorer(),
        AffinityMiner()
    ]
    return {strategy.name: strategy for strategy in strategies}


class RecommendationEngine:
    """
    Main recommendation engine

    Holds one business profile and the five scoring strategies. Each
    recommend() call is an independent pure computation over in-memory
    inputs; the engine keeps no per-request state, so one instance can
    serve concurrent requests.
    """

    def __init__(
        self,
        profile: Union[BusinessProfile, BusinessType, str] = BusinessType.FOOD_DELIVERY,
        seed: Optional[int] = None,
        strategies: Optional[Dict[StrategyName, ScoringStrategy]] = None
    ):
        """
        Initialize recommendation engine

        Args:
            profile: Business profile, or a business type to take defaults for
            seed: Seed for the exploration draws; a fresh generator is
                created from it on every call so results are reproducible
            strategies: Strategy overrides (defaults to all five)
        """
        self._profile = self._resolve_profile(profile)
        self.seed = seed
        self.strategies: Dict[StrategyName, ScoringStrategy] = default_strategies()
        if strategies:
            self.strategies.update(strategies)

        missing = set(StrategyName) - set(self.strategies)
        if missing:
            raise ValueError(f"Missing strategies: {', '.join(sorted(s.value for s in missing))}")

    @staticmethod
    def _resolve_profile(profile) -> BusinessProfile:
        if isinstance(profile, BusinessProfile):
            return profile
        return get_profile(profile)

    @property
    def profile(self) -> BusinessProfile:
        """Active business profile"""
        return self._profile

    def use_profile(self, profile: Union[BusinessProfile, BusinessType, str]) -> None:
        """Swap the active profile"""
        self._profile = self._resolve_profile(profile)
        logger.info(f"Recommendation profile set to {self._profile.business_type.value}")

    def set_business_type(self, business_type: Union[BusinessType, str]) -> None:
        """Switch to the default profile of another business type"""
        self.use_profile(get_profile(business_type))

    def override_profile(self, **overrides) -> BusinessProfile:
        """
        Override individual profile fields on the active profile

        Returns:
            The new active profile
        """
        self._profile = self._profile.with_overrides(**overrides)
        return self._profile

    def recommend(
        self,
        items: List[CatalogItem],
        context: RequestContext,
        limit: int = 10,
        signals: Optional[Signals] = None,
        rng: Optional[random.Random] = None
    ) -> List[ScoredCandidate]:
        """
        Rank catalog items for a request

        Args:
            items: Candidate items (catalog snapshot)
            context: Request context
            limit: Number of results wanted
            signals: Precomputed collaborator inputs
            rng: Random source for exploration (overrides the engine seed)

        Returns:
            min(limit, distinct items) candidates ordered by rank, rank 1 first
        """
        if not items or limit <= 0:
            return []

        # Repeated ids collapse onto their first occurrence
        catalog = index_by_id(items)
        if len(catalog) < len(items):
            logger.debug(f"Dropped {len(items) - len(catalog)} duplicate item ids")
        items = list(catalog.values())

        profile = self._profile
        scoring_input = ScoringInput(
            context=context,
            profile=profile,
            signals=signals or Signals(),
            rng=rng or self._new_rng()
        )

        logger.debug(
            f"Scoring {len(items)} items for session {context.session_id} "
            f"(limit={limit}, profile={profile.business_type.value})"
        )

        per_strategy = {
            name: strategy.score(items, scoring_input)
            for name, strategy in self.strategies.items()
        }

        experiment_group = assign_experiment_group(context.session_id)
        candidates = []
        for index, item in enumerate(items):
            scores = StrategyScores(**{
                name.value: per_strategy[name][index] for name in StrategyName
            })
            candidates.append(build_candidate(item.id, scores, profile.weights, experiment_group))

        # Stable sort: equal scores keep catalog order
        candidates.sort(key=lambda c: c.score, reverse=True)

        ranked = mmr_rerank(
            candidates,
            catalog,
            profile.diversity_factor,
            limit=limit
        )

        for position, candidate in enumerate(ranked, start=1):
            candidate.assign_rank(position)

        return ranked

    def _new_rng(self) -> random.Random:
        return random.Random(self.seed) if self.seed is not None else random.Random()

    def get_strategy_info(self, strategy: Optional[str] = None) -> Dict:
        """
        Get information about strategies

        Args:
            strategy: Specific strategy name (None for all)

        Returns:
            Strategy information with the active weight
        """
        if strategy:
            try:
                name = StrategyName(strategy)
            except ValueError:
                return {"error": f"Strategy '{strategy}' not found"}
            info = self.strategies[name].get_info()
            info["weight"] = self._profile.weights.get(name)
            return info

        return {
            name.value: {**algo.get_info(), "weight": self._profile.weights.get(name)}
            for name, algo in self.strategies.items()
        }

    def get_stats(self) -> Dict:
        """Get engine statistics"""
        return {
            "profile": self._profile.to_dict(),
            "strategies": [name.value for name in self.strategies],
            "seeded": self.seed is not None,
            "weight_total": round(self._profile.weights.total, 4)
        }
