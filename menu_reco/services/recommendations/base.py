"""
Base classes and interfaces for scoring strategies
"""
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List

from menu_reco.services.recommendations.models import (
    CatalogItem,
    RequestContext,
    BusinessProfile,
    Signals,
    StrategyName
)


def clip01(value: float) -> float:
    """Clamp a score into [0, 1]"""
    if value <= 0.0:
        return 0.0
    if value >= 1.0:
        return 1.0
    return float(value)


@dataclass
class ScoringInput:
    """Everything a strategy may read for one request"""
    context: RequestContext
    profile: BusinessProfile
    signals: Signals = field(default_factory=Signals)
    rng: random.Random = field(default_factory=random.Random)


class ScoringStrategy(ABC):
    """
    Abstract base class for scoring strategies

    Strategies are pure: they read the items and the scoring input and
    return one score in [0, 1] per item, in input order. They never
    perform I/O and never keep state between calls.
    """

    name: StrategyName

    @abstractmethod
    def score(self, items: List[CatalogItem], scoring_input: ScoringInput) -> List[float]:
        """
        Score every candidate item

        Args:
            items: Candidate items
            scoring_input: Context, profile, signals and random source

        Returns:
            Scores aligned with items
        """
        pass

    def get_info(self) -> dict:
        """Get information about the strategy"""
        return {
            "name": self.name.value,
            "type": self.__class__.__name__
        }
