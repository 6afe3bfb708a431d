"""
Contextual scorer - situational bonuses
Time of day, weather, weekend and device cues matched against item tags
"""
from typing import List, Dict, Tuple

from menu_reco.services.recommendations.base import ScoringStrategy, ScoringInput, clip01
from menu_reco.services.recommendations.models import (
    CatalogItem,
    RequestContext,
    StrategyName,
    TimeOfDay,
    Weather,
    DeviceType
)

BASE_SCORE = 0.5

TIME_OF_DAY_BONUS = 0.3
TIME_OF_DAY_TAGS: Dict[TimeOfDay, Tuple[str, ...]] = {
    TimeOfDay.MORNING: ("breakfast", "light"),
    TimeOfDay.AFTERNOON: ("lunch", "quick"),
    TimeOfDay.EVENING: ("dinner", "hearty"),
    TimeOfDay.NIGHT: ("dinner", "hearty"),
}

WEATHER_BONUS = 0.2
WEATHER_TAGS: Dict[Weather, Tuple[str, ...]] = {
    Weather.RAINY: ("hot", "comfort", "soup"),
    Weather.COLD: ("hot", "comfort", "soup"),
    Weather.HOT: ("cold", "refreshing", "light"),
}

WEEKEND_BONUS = 0.15
WEEKEND_TAGS = ("indulgent", "special")

QUICK_PREP_BONUS = 0.1
QUICK_PREP_MINUTES = 20


class ContextualScorer(ScoringStrategy):
    """
    Contextual bandit scoring

    Starts every item at 0.5 and adds a bonus for each situational cue
    its tags match.
    """

    name = StrategyName.CONTEXTUAL

    def score(self, items: List[CatalogItem], scoring_input: ScoringInput) -> List[float]:
        context = scoring_input.context
        return [self.score_item(item, context) for item in items]

    @staticmethod
    def score_item(item: CatalogItem, context: RequestContext) -> float:
        score = BASE_SCORE

        if item.has_any_tag(*TIME_OF_DAY_TAGS.get(context.time_of_day, ())):
            score += TIME_OF_DAY_BONUS

        if context.weather is not None and item.has_any_tag(*WEATHER_TAGS.get(context.weather, ())):
            score += WEATHER_BONUS

        if context.is_weekend and item.has_any_tag(*WEEKEND_TAGS):
            score += WEEKEND_BONUS

        # Mobile users prefer quick items
        if (
            context.device_type == DeviceType.MOBILE
            and item.preparation_time is not None
            and item.preparation_time < QUICK_PREP_MINUTES
        ):
            score += QUICK_PREP_BONUS

        return clip01(score)
