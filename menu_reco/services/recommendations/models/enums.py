"""
Closed label sets used across the recommendation core
"""
from enum import Enum


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class Weather(str, Enum):
    SUNNY = "sunny"
    RAINY = "rainy"
    CLOUDY = "cloudy"
    COLD = "cold"
    HOT = "hot"


class DeviceType(str, Enum):
    MOBILE = "mobile"
    DESKTOP = "desktop"
    TABLET = "tablet"


class UserSegment(str, Enum):
    NEW = "new"
    CASUAL = "casual"
    REGULAR = "regular"
    VIP = "vip"


class BusinessType(str, Enum):
    FOOD_DELIVERY = "food-delivery"
    GROCERY = "grocery"
    PHARMACY = "pharmacy"
    FASHION = "fashion"
    ELECTRONICS = "electronics"
    BOOKS = "books"
    GENERAL = "general"


class StrategyName(str, Enum):
    EXPLORATION = "exploration"
    COLLABORATIVE = "collaborative"
    CONTEXTUAL = "contextual"
    TRENDING = "trending"
    AFFINITY = "affinity"


class ExperimentGroup(str, Enum):
    A = "A"
    B = "B"
    C = "C"


def coerce_enum(enum_cls, value):
    """
    Convert a raw label into a member of enum_cls

    Args:
        enum_cls: Target Enum class
        value: Member, label string or None

    Returns:
        Enum member, or None when value is None

    Raises:
        ValueError: If the label is not part of the enumeration
    """
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"Unknown {enum_cls.__name__} '{value}'. Expected one of: {allowed}")
