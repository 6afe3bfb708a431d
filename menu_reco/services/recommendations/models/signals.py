"""
Collaborator signals consumed by the scoring strategies
Everything here is gathered (database, cache) before the engine runs.
"""
from typing import Optional, List, Dict, Any, FrozenSet, Tuple
from dataclasses import dataclass, field
from enum import Enum


class RuleScope(str, Enum):
    """What the antecedent/consequent of a rule refer to"""
    ITEM = "item"
    CATEGORY = "category"
    TAG = "tag"


@dataclass(frozen=True)
class AffinityRule:
    """Association rule: antecedent in cart => consequent is likely wanted"""
    antecedent: str
    consequent: str
    confidence: float  # P(consequent | antecedent)
    scope: RuleScope = RuleScope.ITEM
    support: float = 0.0  # Share of orders containing both
    lift: float = 1.0  # confidence / P(consequent)
    order_count: int = 0

    @property
    def strength(self) -> float:
        """Score contribution, lift capped at 2"""
        return min(1.0, max(0.0, self.confidence * min(self.lift, 2.0)))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "antecedent": self.antecedent,
            "consequent": self.consequent,
            "scope": self.scope.value,
            "confidence": round(self.confidence, 4),
            "support": round(self.support, 4),
            "lift": round(self.lift, 4),
            "order_count": self.order_count
        }


# Hand-written rules used until mined rules are available
DEFAULT_AFFINITY_RULES: Tuple[AffinityRule, ...] = (
    AffinityRule(antecedent="main", consequent="sides", confidence=0.8, scope=RuleScope.CATEGORY),
    AffinityRule(antecedent="main", consequent="beverage", confidence=0.7, scope=RuleScope.CATEGORY),
    AffinityRule(antecedent="spicy", consequent="cooling", confidence=0.75, scope=RuleScope.TAG),
)


@dataclass
class Signals:
    """
    Precomputed inputs from the surrounding platform

    Attributes:
        velocities: item id -> relative order velocity (recent vs. baseline)
        affinity_rules: Mined rules; None falls back to DEFAULT_AFFINITY_RULES
        item_categories: Category lookup for history/cart items outside the pool
        item_tags: Tag lookup for history/cart items outside the pool
        history_weights: item id -> recency weight from temporal decay
    """
    velocities: Dict[str, float] = field(default_factory=dict)
    affinity_rules: Optional[List[AffinityRule]] = None
    item_categories: Dict[str, str] = field(default_factory=dict)
    item_tags: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    history_weights: Dict[str, float] = field(default_factory=dict)

    @property
    def rules(self) -> Tuple[AffinityRule, ...]:
        if self.affinity_rules is None:
            return DEFAULT_AFFINITY_RULES
        return tuple(self.affinity_rules)
