"""
Business profiles - per-vertical tuning of the ensemble
"""
from typing import Dict, Any, Mapping, Union
from dataclasses import dataclass, fields, replace

from .enums import BusinessType, StrategyName, coerce_enum


def _check_unit_interval(name: str, value: float) -> None:
    try:
        in_range = value is not None and 0.0 <= float(value) <= 1.0
    except (TypeError, ValueError):
        in_range = False
    if not in_range:
        raise ValueError(f"{name} must be within [0, 1], got {value!r}")


@dataclass(frozen=True)
class StrategyWeights:
    """Blend weights for the five scoring strategies"""
    exploration: float
    collaborative: float
    contextual: float
    trending: float
    affinity: float

    def __post_init__(self):
        for f in fields(self):
            _check_unit_interval(f"weights.{f.name}", getattr(self, f.name))

    def get(self, strategy: StrategyName) -> float:
        return getattr(self, StrategyName(strategy).value)

    @property
    def total(self) -> float:
        return sum(getattr(self, f.name) for f in fields(self))

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class BusinessProfile:
    """
    Named configuration for a business vertical

    Immutable: overrides produce a new profile via with_overrides().
    """
    business_type: BusinessType
    weights: StrategyWeights
    diversity_factor: float  # 0-1, higher = more diverse
    exploration_rate: float  # 0-1, higher = more exploration
    trending_window_hours: int  # Hours considered for trending velocity
    affinity_threshold: float  # Minimum confidence for an affinity rule to count

    def __post_init__(self):
        object.__setattr__(self, "business_type", coerce_enum(BusinessType, self.business_type))
        _check_unit_interval("diversity_factor", self.diversity_factor)
        _check_unit_interval("exploration_rate", self.exploration_rate)
        _check_unit_interval("affinity_threshold", self.affinity_threshold)
        window = self.trending_window_hours
        if isinstance(window, bool) or not isinstance(window, (int, float)) or window <= 0:
            raise ValueError(f"trending_window_hours must be a positive number, got {window!r}")

    def with_overrides(self, **overrides) -> "BusinessProfile":
        """
        Copy the profile with individual fields replaced

        Strategy weights can be overridden one at a time either through a
        partial mapping (weights={"trending": 0.3}) or by their names
        (trending=0.3).

        Args:
            **overrides: Field values to replace

        Returns:
            New BusinessProfile

        Raises:
            ValueError: On unknown fields or out-of-range values
        """
        weight_names = {f.name for f in fields(StrategyWeights)}
        profile_names = {f.name for f in fields(self)}

        weight_updates = {}
        raw_weights = overrides.pop("weights", None)
        if isinstance(raw_weights, StrategyWeights):
            weight_updates.update(raw_weights.to_dict())
        elif isinstance(raw_weights, Mapping):
            weight_updates.update(raw_weights)
        elif raw_weights is not None:
            raise ValueError(f"weights must be a mapping of strategy names to values, got {raw_weights!r}")

        for name in list(overrides):
            if name in weight_names:
                weight_updates[name] = overrides.pop(name)

        unknown = (set(overrides) - profile_names) | (set(weight_updates) - weight_names)
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        # None means "keep the current value"
        overrides = {k: v for k, v in overrides.items() if v is not None}
        weight_updates = {k: v for k, v in weight_updates.items() if v is not None}

        if weight_updates:
            overrides["weights"] = replace(self.weights, **weight_updates)
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "business_type": self.business_type.value,
            "weights": self.weights.to_dict(),
            "diversity_factor": self.diversity_factor,
            "exploration_rate": self.exploration_rate,
            "trending_window_hours": self.trending_window_hours,
            "affinity_threshold": self.affinity_threshold
        }


def _profile(
    business_type: BusinessType,
    weights: tuple,
    diversity_factor: float,
    exploration_rate: float,
    trending_window_hours: int,
    affinity_threshold: float
) -> BusinessProfile:
    exploration, collaborative, contextual, trending, affinity = weights
    return BusinessProfile(
        business_type=business_type,
        weights=StrategyWeights(
            exploration=exploration,
            collaborative=collaborative,
            contextual=contextual,
            trending=trending,
            affinity=affinity
        ),
        diversity_factor=diversity_factor,
        exploration_rate=exploration_rate,
        trending_window_hours=trending_window_hours,
        affinity_threshold=affinity_threshold
    )


# Weights: (exploration, collaborative, contextual, trending, affinity)
BUSINESS_PROFILES: Dict[BusinessType, BusinessProfile] = {
    BusinessType.FOOD_DELIVERY: _profile(BusinessType.FOOD_DELIVERY, (0.20, 0.25, 0.20, 0.15, 0.15), 0.3, 0.15, 24, 0.10),
    BusinessType.GROCERY: _profile(BusinessType.GROCERY, (0.15, 0.30, 0.15, 0.10, 0.25), 0.4, 0.10, 168, 0.15),
    BusinessType.PHARMACY: _profile(BusinessType.PHARMACY, (0.10, 0.35, 0.10, 0.05, 0.35), 0.2, 0.05, 720, 0.20),
    BusinessType.FASHION: _profile(BusinessType.FASHION, (0.25, 0.20, 0.15, 0.25, 0.10), 0.5, 0.25, 72, 0.08),
    BusinessType.ELECTRONICS: _profile(BusinessType.ELECTRONICS, (0.20, 0.25, 0.10, 0.20, 0.20), 0.4, 0.20, 168, 0.12),
    BusinessType.BOOKS: _profile(BusinessType.BOOKS, (0.15, 0.35, 0.10, 0.15, 0.15), 0.6, 0.15, 336, 0.10),
    BusinessType.GENERAL: _profile(BusinessType.GENERAL, (0.20, 0.25, 0.15, 0.15, 0.15), 0.4, 0.15, 72, 0.10),
}


def get_profile(business_type: Union[BusinessType, str]) -> BusinessProfile:
    """
    Look up the default profile for a business vertical

    Raises:
        ValueError: If the business type is unknown
    """
    return BUSINESS_PROFILES[coerce_enum(BusinessType, business_type)]
