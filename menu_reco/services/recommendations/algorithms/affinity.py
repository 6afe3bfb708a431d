"""
Affinity miner - "frequently bought together"
Applies association rules from the current cart to each candidate
"""
from typing import List, Dict, Optional, Sequence, Set, Tuple

from menu_reco.services.recommendations.base import ScoringStrategy, ScoringInput
from menu_reco.services.recommendations.models import (
    CatalogItem,
    StrategyName,
    RuleScope,
    AffinityRule,
    PairingSuggestion,
    Signals,
    index_by_id
)

NEUTRAL_SCORE = 0.5
IN_CART_SCORE = 0.0


class AffinityMiner(ScoringStrategy):
    """
    Cart-driven association scoring

    A rule fires when its antecedent is present in the cart (as an item
    id, a cart item's category or a cart item's tag, depending on the
    rule scope) and the candidate matches its consequent. Rules below the
    profile's affinity threshold are ignored; the strongest firing rule
    sets the score.
    """

    name = StrategyName.AFFINITY

    def score(self, items: List[CatalogItem], scoring_input: ScoringInput) -> List[float]:
        cart = scoring_input.context.cart_items
        if not cart:
            return [NEUTRAL_SCORE for _ in items]

        threshold = scoring_input.profile.affinity_threshold
        rules = [rule for rule in scoring_input.signals.rules if rule.confidence >= threshold]
        strongest = strongest_rules(items, cart, rules, scoring_input.signals)
        cart_ids = set(cart)

        scores = []
        for item, rule in zip(items, strongest):
            if item.id in cart_ids:
                scores.append(IN_CART_SCORE)
            elif rule is None:
                scores.append(NEUTRAL_SCORE)
            else:
                scores.append(rule.strength)
        return scores


def strongest_rules(
    items: List[CatalogItem],
    cart: Sequence[str],
    rules: Sequence[AffinityRule],
    signals: Signals
) -> List[Optional[AffinityRule]]:
    """Strongest rule firing from the cart for each item (None when none fires)"""
    cart_cues = _cart_cues(tuple(cart), items, signals)
    live = [rule for rule in rules if _fires(rule, cart_cues)]

    strongest = []
    for item in items:
        best = None
        for rule in live:
            if _matches(rule, item) and (best is None or rule.strength > best.strength):
                best = rule
        strongest.append(best)
    return strongest


def pairing_suggestions(
    items: List[CatalogItem],
    cart: Sequence[str],
    rules: Sequence[AffinityRule],
    threshold: float = 0.0,
    signals: Optional[Signals] = None,
    limit: Optional[int] = None
) -> List[PairingSuggestion]:
    """
    Items that complete the cart

    Only items scoring above neutral are kept, so every suggestion
    carries the rule that produced it. Cart items are never suggested.

    Args:
        items: Candidate items
        cart: Item ids in the cart
        rules: Association rules to apply
        threshold: Minimum rule confidence
        signals: Category/tag lookups for cart items outside items
        limit: Maximum number of suggestions

    Returns:
        Suggestions, strongest first (ties keep item order)
    """
    if not cart or not items:
        return []

    active = [rule for rule in rules if rule.confidence >= threshold]
    strongest = strongest_rules(items, cart, active, signals or Signals())
    cart_ids = set(cart)

    suggestions = [
        PairingSuggestion(item_id=item.id, score=rule.strength, rule=rule)
        for item, rule in zip(items, strongest)
        if rule is not None and item.id not in cart_ids and rule.strength > NEUTRAL_SCORE
    ]
    suggestions.sort(key=lambda s: s.score, reverse=True)
    return suggestions if limit is None else suggestions[:limit]

def _cart_cues(cart: Tuple[str, ...], items: List[CatalogItem], signals: Signals) -> Dict[RuleScope, Set[str]]:
    """Collect item ids, categories and tags present in the cart"""
    pool = index_by_id(items)
    categories: Set[str] = set()
    tags: Set[str] = set()

    for item_id in cart:
        item = pool.get(item_id)
        if item is not None:
            if item.category:
                categories.add(item.category.strip().lower())
            tags.update(item.tags)
            continue
        category = signals.item_categories.get(item_id)
        if category:
            categories.add(category.strip().lower())
        tags.update(tag.strip().lower() for tag in signals.item_tags.get(item_id, ()))

    return {
        RuleScope.ITEM: set(cart),
        RuleScope.CATEGORY: categories,
        RuleScope.TAG: tags,
    }


def _fires(rule: AffinityRule, cart_cues: Dict[RuleScope, Set[str]]) -> bool:
    antecedent = rule.antecedent if rule.scope == RuleScope.ITEM else rule.antecedent.strip().lower()
    return antecedent in cart_cues[rule.scope]


def _matches(rule: AffinityRule, item: CatalogItem) -> bool:
    if rule.scope == RuleScope.ITEM:
        return item.id == rule.consequent
    consequent = rule.consequent.strip().lower()
    if rule.scope == RuleScope.CATEGORY:
        return (item.category or "").strip().lower() == consequent
    return consequent in item.tags
