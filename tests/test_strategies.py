import math
import random
from dataclasses import replace

import pytest

from menu_reco.services.recommendations.algorithms import (
    AffinityMiner,
    CollaborativeScorer,
    ContextualScorer,
    ExplorationSampler,
    TrendingScorer,
    beta_parameters,
    beta_stats,
    optimal_exploration_rate,
    pairing_suggestions,
)
from menu_reco.services.recommendations.context import build_context
from menu_reco.services.recommendations.models import (
    AffinityRule,
    CatalogItem,
    DEFAULT_AFFINITY_RULES,
    RuleScope,
    Signals,
)

from conftest import MONDAY_MORNING, SATURDAY_EVENING


def _by_id(items, scores):
    return {item.id: score for item, score in zip(items, scores)}


class TestContextualScorer:
    def test_breakfast_in_the_morning(self, menu, scoring_input):
        scores = _by_id(menu, ContextualScorer().score(menu, scoring_input))
        assert scores["pancakes"] >= 0.8
        assert scores["burger"] == pytest.approx(0.5)

    def test_weather_and_weekend_bonuses(self, menu, scoring_input):
        context = build_context("s", current_time=SATURDAY_EVENING, weather="rainy")
        scores = _by_id(menu, ContextualScorer().score(menu, replace(scoring_input, context=context)))
        assert scores["soup"] == pytest.approx(0.7)
        assert scores["burger"] == pytest.approx(0.95)

    def test_mobile_prefers_quick_items(self, menu, scoring_input):
        context = build_context("s", current_time=MONDAY_MORNING, device_type="mobile")
        scores = _by_id(menu, ContextualScorer().score(menu, replace(scoring_input, context=context)))
        assert scores["pancakes"] == pytest.approx(0.9)
        assert scores["curry"] == pytest.approx(0.5)

    def test_score_is_capped(self):
        item = CatalogItem(id="x", category="c", price=1,
                           tags=frozenset({"breakfast", "soup", "indulgent"}), preparation_time=5)
        context = build_context("s", current_time=SATURDAY_EVENING.replace(hour=8), weather="cold", device_type="mobile")
        assert ContextualScorer.score_item(item, context) == 1.0


class TestCollaborativeScorer:
    def test_cold_start_is_neutral(self, menu, scoring_input):
        assert CollaborativeScorer().score(menu, scoring_input) == [0.5] * len(menu)

    def test_recent_categories_score_higher(self, menu, scoring_input):
        context = build_context("s", current_time=MONDAY_MORNING, user_history=["burger", "fries"])
        scores = _by_id(menu, CollaborativeScorer().score(menu, replace(scoring_input, context=context)))

        main_share = 1 / (1 + math.exp(-0.15))
        assert scores["curry"] == pytest.approx(0.3 + 0.7 * main_share)
        assert scores["curry"] > scores["fries"] > scores["cola"]
        assert scores["cola"] == pytest.approx(0.3)

    def test_unresolvable_history_is_neutral(self, menu, scoring_input):
        context = build_context("s", user_history=["unknown-1", "unknown-2"])
        scores = CollaborativeScorer().score(menu, replace(scoring_input, context=context))
        assert scores == [0.5] * len(menu)

    def test_history_outside_pool_uses_lookup(self, menu, scoring_input):
        context = build_context("s", user_history=["archived"])
        signals = Signals(item_categories={"archived": "main"})
        scores = _by_id(menu, CollaborativeScorer().score(
            menu, replace(scoring_input, context=context, signals=signals)))
        assert scores["burger"] == pytest.approx(1.0)
        assert scores["lassi"] == pytest.approx(0.3)

    def test_decay_weights_override_position(self, menu, scoring_input):
        context = build_context("s", user_history=["burger", "fries"])
        signals = Signals(history_weights={"burger": 0.1, "fries": 1.0})
        scores = _by_id(menu, CollaborativeScorer().score(
            menu, replace(scoring_input, context=context, signals=signals)))
        assert scores["fries"] > scores["burger"]


class TestTrendingScorer:
    def test_velocity_adjusts_popularity(self, menu, scoring_input):
        signals = Signals(velocities={"fries": 2.0, "cola": -0.5})
        scores = _by_id(menu, TrendingScorer().score(menu, replace(scoring_input, signals=signals)))
        assert scores["fries"] == pytest.approx(0.9)
        assert scores["cola"] == pytest.approx(0.5)
        assert scores["pancakes"] == pytest.approx(0.4)

    def test_missing_popularity_is_zero(self, scoring_input):
        item = CatalogItem(id="x", category="c", price=1)
        assert TrendingScorer().score([item], scoring_input) == [0.0]

    def test_score_is_capped(self, scoring_input):
        item = CatalogItem(id="x", category="c", price=1, popularity=0.95)
        signals = Signals(velocities={"x": 1.0})
        assert TrendingScorer().score([item], replace(scoring_input, signals=signals)) == [1.0]


class TestAffinityMiner:
    def _score(self, menu, scoring_input, cart, signals=None, profile=None):
        context = build_context("s", cart_items=cart)
        scoring_input = replace(scoring_input, context=context, signals=signals or Signals())
        if profile is not None:
            scoring_input = replace(scoring_input, profile=profile)
        return _by_id(menu, AffinityMiner().score(menu, scoring_input))

    def test_empty_cart_is_neutral(self, menu, scoring_input):
        assert AffinityMiner().score(menu, scoring_input) == [0.5] * len(menu)

    def test_default_category_rules(self, menu, scoring_input):
        scores = self._score(menu, scoring_input, ["burger"])
        assert scores["fries"] == pytest.approx(0.8)
        assert scores["cola"] == pytest.approx(0.7)
        assert scores["soup"] == pytest.approx(0.5)

    def test_cart_items_score_zero(self, menu, scoring_input):
        scores = self._score(menu, scoring_input, ["burger"])
        assert scores["burger"] == 0.0

    def test_strongest_rule_wins(self, menu, scoring_input):
        scores = self._score(menu, scoring_input, ["curry"])
        assert scores["lassi"] == pytest.approx(0.75)
        assert scores["cola"] == pytest.approx(0.7)

    def test_rules_below_threshold_are_ignored(self, menu, scoring_input):
        profile = scoring_input.profile.with_overrides(affinity_threshold=0.9)
        scores = self._score(menu, scoring_input, ["burger"], profile=profile)
        assert scores["fries"] == pytest.approx(0.5)

    def test_item_rules_with_lift(self, menu, scoring_input):
        rules = [
            AffinityRule(antecedent="burger", consequent="cola", confidence=0.6, lift=1.5),
            AffinityRule(antecedent="burger", consequent="soup", confidence=0.4, lift=3.0),
        ]
        scores = self._score(menu, scoring_input, ["burger"], signals=Signals(affinity_rules=rules))
        assert scores["cola"] == pytest.approx(0.9)
        assert scores["soup"] == pytest.approx(0.8)
        assert scores["fries"] == pytest.approx(0.5)

    def test_cart_outside_pool_uses_lookups(self, menu, scoring_input):
        signals = Signals(
            affinity_rules=[AffinityRule(antecedent="spicy", consequent="cooling",
                                         confidence=0.75, scope=RuleScope.TAG)],
            item_tags={"vindaloo": frozenset({"spicy"})}
        )
        scores = self._score(menu, scoring_input, ["vindaloo"], signals=signals)
        assert scores["lassi"] == pytest.approx(0.75)


class TestPairingSuggestions:
    def test_above_neutral_items_only(self, menu):
        suggestions = pairing_suggestions(menu, ["burger"], DEFAULT_AFFINITY_RULES, threshold=0.1)
        assert [s.item_id for s in suggestions] == ["fries", "cola", "lassi"]
        assert suggestions[0].score == pytest.approx(0.8)
        assert suggestions[0].rule.scope == RuleScope.CATEGORY

    def test_top_rule_confidence_and_lift(self, menu):
        rules = list(DEFAULT_AFFINITY_RULES) + [
            AffinityRule(antecedent="burger", consequent="cola", confidence=0.6, lift=1.5),
        ]
        top = pairing_suggestions(menu, ["burger"], rules)[0].to_dict()
        assert top["item_id"] == "cola"
        assert top["score"] == pytest.approx(0.9)
        assert top["confidence"] == pytest.approx(0.6)
        assert top["lift"] == pytest.approx(1.5)
        assert top["reason"] == "60% of customers add this"

    def test_limit_and_threshold(self, menu):
        assert [s.item_id for s in pairing_suggestions(menu, ["burger"], DEFAULT_AFFINITY_RULES, limit=1)] == ["fries"]
        assert pairing_suggestions(menu, ["burger"], DEFAULT_AFFINITY_RULES, threshold=0.9) == []

    def test_empty_cart(self, menu):
        assert pairing_suggestions(menu, [], DEFAULT_AFFINITY_RULES) == []

    def test_cart_items_are_never_suggested(self, menu):
        suggestions = pairing_suggestions(menu, ["burger", "fries"], DEFAULT_AFFINITY_RULES)
        assert [s.item_id for s in suggestions] == ["cola", "lassi"]


class TestExplorationSampler:
    def test_bounded_by_mean_and_rate(self, menu, scoring_input):
        rate = scoring_input.profile.exploration_rate
        scores = ExplorationSampler().score(menu, scoring_input)
        for item, score in zip(menu, scores):
            alpha, beta = beta_parameters(item.rating, item.rating_count)
            mean = alpha / (alpha + beta)
            assert mean <= score <= min(1.0, mean + rate)

    def test_same_seed_same_scores(self, menu, scoring_input):
        first = ExplorationSampler().score(menu, replace(scoring_input, rng=random.Random(3)))
        second = ExplorationSampler().score(menu, replace(scoring_input, rng=random.Random(3)))
        assert first == second

    def test_beta_helpers(self):
        assert beta_parameters(4.0, 10) == pytest.approx((9.0, 3.0))
        assert beta_parameters(None, None) == (1.0, 1.0)
        stats = beta_stats(1, 1)
        assert stats["expected_value"] == 0.5
        assert stats["variance"] == pytest.approx(1 / 12)

    @pytest.mark.parametrize("size, rate", [(0, 0.3), (4, 0.3), (100, 0.1), (10000, 0.05)])
    def test_optimal_exploration_rate(self, size, rate):
        assert optimal_exploration_rate(size) == pytest.approx(rate)
