"""
Data models for recommendations
"""
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field, fields
from datetime import datetime

from .enums import StrategyName, ExperimentGroup
from .signals import AffinityRule


@dataclass(frozen=True)
class StrategyScores:
    """Raw per-strategy scores for one item, each in [0, 1]"""
    exploration: float
    collaborative: float
    contextual: float
    trending: float
    affinity: float

    def get(self, strategy: StrategyName) -> float:
        return getattr(self, StrategyName(strategy).value)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: round(getattr(self, f.name), 4) for f in fields(self)}


@dataclass
class ScoredCandidate:
    """Single recommendation item"""
    item_id: str
    strategy_scores: StrategyScores
    score: float
    confidence: float
    reasons: List[str] = field(default_factory=list)
    experiment_group: Optional[ExperimentGroup] = None
    rank: Optional[int] = None

    def assign_rank(self, rank: int) -> None:
        """
        Set the final rank

        Raises:
            RuntimeError: If a rank was already assigned
        """
        if self.rank is not None:
            raise RuntimeError(f"Rank already assigned for item '{self.item_id}'")
        self.rank = rank

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "item_id": self.item_id,
            "rank": self.rank,
            "score": round(self.score, 4),
            "confidence": round(self.confidence, 4),
            "reasons": list(self.reasons),
            "strategy_scores": self.strategy_scores.to_dict(),
            "experiment_group": self.experiment_group.value if self.experiment_group else None
        }


@dataclass
class RecommendationResult:
    """Result with multiple recommendations"""
    session_id: str
    recommendations: List[ScoredCandidate]
    business_type: str
    customer_id: Optional[str] = None
    execution_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "session_id": self.session_id,
            "customer_id": self.customer_id,
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "business_type": self.business_type,
            "execution_time_ms": round(self.execution_time_ms, 2),
            "timestamp": self.timestamp.isoformat(),
            "count": len(self.recommendations),
            "metadata": self.metadata
        }


@dataclass
class PairingSuggestion:
    """Item that goes well with the cart (or with one item), and the rule behind it"""
    item_id: str
    score: float
    rule: Optional[AffinityRule] = None

    @property
    def reason(self) -> str:
        if self.rule is None:
            return "Popular combination"
        return f"{round(self.rule.confidence * 100)}% of customers add this"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "item_id": self.item_id,
            "score": round(self.score, 4),
            "confidence": round(self.rule.confidence, 4) if self.rule else 0.0,
            "lift": round(self.rule.lift, 4) if self.rule else 0.0,
            "reason": self.reason,
            "rule": self.rule.to_dict() if self.rule else None
        }
