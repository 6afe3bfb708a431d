"""
Signal computations that feed the scoring strategies
Trending velocity, association rules, frequent bundles, customer overlap
and temporal decay.
Pure functions over already-loaded order data; see data_loader for I/O.
"""
import math
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
from dataclasses import dataclass
from datetime import datetime

from menu_reco.services.recommendations.models import AffinityRule, RuleScope

MOMENTUM_THRESHOLD_PCT = 10.0
MAX_VELOCITY = 100.0  # Orders/hour change treated as saturation


@dataclass
class TrendSnapshot:
    """Order momentum of one item across two consecutive windows"""
    item_id: str
    current_orders: float
    previous_orders: float
    window_hours: int
    velocity: float  # Orders per hour change
    relative_velocity: float  # (current - previous) / max(previous, 1)
    percent_change: float
    momentum: str  # rising | stable | falling
    trending_score: float  # 0..1
    rank: int = 0

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return {
            "item_id": self.item_id,
            "current_orders": self.current_orders,
            "previous_orders": self.previous_orders,
            "window_hours": self.window_hours,
            "velocity": round(self.velocity, 4),
            "relative_velocity": round(self.relative_velocity, 4),
            "percent_change": round(self.percent_change, 2),
            "momentum": self.momentum,
            "trending_score": round(self.trending_score, 4),
            "rank": self.rank
        }


def trending_score(current: float, velocity: float, window_hours: int) -> float:
    """
    Hot-ranking style score in [0, 1]

    Log-damped current volume, clamped velocity and a bonus for short
    windows, rescaled into the unit interval.
    """
    popularity = math.log10(max(current, 0) + 1)
    velocity_score = max(-1.0, min(1.0, velocity / MAX_VELOCITY))
    recency = 1 / math.sqrt(window_hours)
    raw = popularity * 0.4 + velocity_score * 0.4 + recency * 0.2
    return max(0.0, min(1.0, (raw + 1) / 3))


def compute_trend(item_id: str, current: float, previous: float, window_hours: int) -> TrendSnapshot:
    """
    Momentum metrics for one item

    Args:
        item_id: Item identifier
        current: Orders in the latest window
        previous: Orders in the window before it
        window_hours: Window length

    Returns:
        TrendSnapshot
    """
    if window_hours <= 0:
        raise ValueError(f"window_hours must be positive, got {window_hours}")

    delta = current - previous
    velocity = delta / window_hours
    percent_change = (delta / previous) * 100 if previous > 0 else current * 100.0

    momentum = "stable"
    if percent_change > MOMENTUM_THRESHOLD_PCT:
        momentum = "rising"
    elif percent_change < -MOMENTUM_THRESHOLD_PCT:
        momentum = "falling"

    return TrendSnapshot(
        item_id=item_id,
        current_orders=current,
        previous_orders=previous,
        window_hours=window_hours,
        velocity=velocity,
        relative_velocity=delta / max(previous, 1),
        percent_change=percent_change,
        momentum=momentum,
        trending_score=trending_score(current, velocity, window_hours)
    )


def rank_trends(
    item_ids: Iterable[str],
    current_counts: Dict[str, float],
    previous_counts: Dict[str, float],
    window_hours: int
) -> List[TrendSnapshot]:
    """Snapshots for every item, sorted by trending score with ranks assigned"""
    snapshots = [
        compute_trend(item_id, current_counts.get(item_id, 0), previous_counts.get(item_id, 0), window_hours)
        for item_id in item_ids
    ]
    snapshots.sort(key=lambda s: s.trending_score, reverse=True)
    for position, snapshot in enumerate(snapshots, start=1):
        snapshot.rank = position
    return snapshots


def breakout_items(
    snapshots: Sequence[TrendSnapshot],
    threshold_pct: float = 200.0,
    min_orders: int = 5
) -> List[TrendSnapshot]:
    """Items with sudden growth above threshold_pct and enough volume"""
    return [
        s for s in snapshots
        if s.percent_change >= threshold_pct and s.current_orders >= min_orders
    ]


def mine_association_rules(
    baskets: Sequence[Set[str]],
    antecedent_ids: Sequence[str],
    min_support: float = 0.01,
    min_confidence: float = 0.1,
    max_rules: int = 50
) -> List[AffinityRule]:
    """
    Single-antecedent association rules from order baskets

    For each antecedent item A and every other item B seen with it:
        support    = |A and B| / |baskets|
        confidence = |A and B| / |A|
        lift       = confidence / P(B)

    Args:
        baskets: Item-id sets, one per order
        antecedent_ids: Items to mine rules from (typically the cart)
        min_support: Minimum support for a rule
        min_confidence: Minimum confidence for a rule
        max_rules: Keep the strongest rules only

    Returns:
        Item-scope rules sorted by confidence * lift (descending)
    """
    total = len(baskets)
    if total == 0 or not antecedent_ids:
        return []

    item_counts: Dict[str, int] = {}
    for basket in baskets:
        for item_id in basket:
            item_counts[item_id] = item_counts.get(item_id, 0) + 1

    antecedents = set(antecedent_ids)
    pair_counts: Dict[Tuple[str, str], int] = {}
    for basket in baskets:
        for antecedent in antecedents & basket:
            for consequent in basket:
                if consequent in antecedents:
                    continue
                key = (antecedent, consequent)
                pair_counts[key] = pair_counts.get(key, 0) + 1

    rules = []
    for (antecedent, consequent), count in pair_counts.items():
        support = count / total
        if support < min_support:
            continue
        confidence = count / item_counts[antecedent]
        if confidence < min_confidence:
            continue
        consequent_prob = item_counts[consequent] / total
        lift = confidence / consequent_prob if consequent_prob > 0 else 0.0
        rules.append(AffinityRule(
            antecedent=antecedent,
            consequent=consequent,
            confidence=confidence,
            scope=RuleScope.ITEM,
            support=support,
            lift=lift,
            order_count=count
        ))

    rules.sort(key=lambda r: (-(r.confidence * r.lift), r.antecedent, r.consequent))
    return rules[:max_rules]


@dataclass
class ItemBundle:
    """Set of items ordered together"""
    items: Tuple[str, ...]
    count: int
    support: float

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return {
            "items": list(self.items),
            "size": len(self.items),
            "count": self.count,
            "support": round(self.support, 4)
        }


def frequent_bundles(
    baskets: Sequence[Set[str]],
    min_size: int = 2,
    max_size: int = 3,
    min_support: float = 0.01,
    min_count: int = 3
) -> List[ItemBundle]:
    """
    Frequent itemsets of min_size..max_size items (Apriori style)

    An itemset is frequent when it appears in at least
    max(min_count, min_support * |baskets|) baskets. Only frequent single
    items are combined into larger sets.

    Args:
        baskets: Item-id sets, one per order
        min_size: Smallest bundle size (at least 2)
        max_size: Largest bundle size
        min_support: Minimum share of baskets
        min_count: Minimum number of baskets

    Returns:
        Bundles sorted by support (descending), then by items
    """
    if min_size < 2 or max_size < min_size:
        raise ValueError(f"Invalid bundle sizes: min_size={min_size}, max_size={max_size}")

    total = len(baskets)
    if total == 0:
        return []
    threshold = max(min_count, min_support * total)

    item_counts: Dict[str, int] = {}
    for basket in baskets:
        for item_id in basket:
            item_counts[item_id] = item_counts.get(item_id, 0) + 1
    frequent = sorted(item_id for item_id, count in item_counts.items() if count >= threshold)

    bundles = []
    for size in range(min_size, max_size + 1):
        for candidate in combinations(frequent, size):
            members = set(candidate)
            count = sum(1 for basket in baskets if members <= basket)
            if count >= threshold:
                bundles.append(ItemBundle(items=candidate, count=count, support=count / total))

    bundles.sort(key=lambda b: (-b.support, b.items))
    return bundles


def co_purchase_similarity(buyers_a: Set[str], buyers_b: Set[str]) -> float:
    """Jaccard overlap of the customers who ordered two items"""
    union = buyers_a | buyers_b
    if not union:
        return 0.0
    return len(buyers_a & buyers_b) / len(union)


def decay_weights(
    rows: Iterable[Tuple[str, float, datetime]],
    now: Optional[datetime] = None,
    decay_rate: float = 0.05
) -> Dict[str, float]:
    """
    Recency-weighted preferences from order lines

    Each line (item_id, quantity, ordered_at) contributes
    quantity * exp(-decay_rate * days_ago); totals are normalised so the
    strongest item has weight 1.

    Args:
        rows: Order lines
        now: Reference time (defaults to now)
        decay_rate: Decay per day

    Returns:
        item id -> weight in (0, 1]
    """
    now = now or datetime.now()
    totals: Dict[str, float] = {}
    for item_id, quantity, ordered_at in rows:
        days_ago = max(0.0, (now - ordered_at).total_seconds() / 86400)
        weight = (quantity or 0) * math.exp(-decay_rate * days_ago)
        totals[item_id] = totals.get(item_id, 0.0) + weight

    peak = max(totals.values(), default=0.0)
    if peak <= 0:
        return {}
    return {item_id: value / peak for item_id, value in totals.items() if value > 0}
