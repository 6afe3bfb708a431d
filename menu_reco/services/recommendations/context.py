"""
Context builder
Assembles the request-time situation from raw request fields
"""
from typing import Optional, Iterable, Union
from datetime import datetime

from menu_reco.services.recommendations.models import (
    RequestContext,
    TimeOfDay,
    Weather,
    DeviceType,
    UserSegment,
    coerce_enum
)

# Bucket upper bounds (exclusive hour)
MORNING_END_HOUR = 11
AFTERNOON_END_HOUR = 16
EVENING_END_HOUR = 21


def time_of_day_for(moment: datetime) -> TimeOfDay:
    """Map a timestamp to its time-of-day bucket"""
    hour = moment.hour
    if hour < MORNING_END_HOUR:
        return TimeOfDay.MORNING
    if hour < AFTERNOON_END_HOUR:
        return TimeOfDay.AFTERNOON
    if hour < EVENING_END_HOUR:
        return TimeOfDay.EVENING
    return TimeOfDay.NIGHT


def _clean_ids(ids: Optional[Iterable[str]]) -> tuple:
    if not ids:
        return ()
    return tuple(str(i).strip() for i in ids if i is not None and str(i).strip())


def build_context(
    session_id: str,
    current_time: Optional[datetime] = None,
    customer_id: Optional[str] = None,
    weather: Union[Weather, str, None] = None,
    temperature: Optional[float] = None,
    cart_items: Optional[Iterable[str]] = None,
    user_history: Optional[Iterable[str]] = None,
    user_segment: Union[UserSegment, str, None] = None,
    device_type: Union[DeviceType, str, None] = None
) -> RequestContext:
    """
    Build a RequestContext, deriving the time fields

    Args:
        session_id: Session identifier (drives experiment bucketing)
        current_time: Request time, defaults to now (local time)
        customer_id: Optional customer identifier
        weather: Weather label
        temperature: Temperature in degrees Celsius
        cart_items: Item ids currently in the cart
        user_history: Previously ordered item ids, most recent first
        user_segment: Customer segment label
        device_type: Device class label

    Returns:
        RequestContext

    Raises:
        ValueError: On an empty session id or unknown labels
    """
    if not session_id or not str(session_id).strip():
        raise ValueError("session_id is required")

    moment = current_time or datetime.now()
    day_of_week = moment.weekday()

    return RequestContext(
        session_id=str(session_id),
        current_time=moment,
        time_of_day=time_of_day_for(moment),
        day_of_week=day_of_week,
        is_weekend=day_of_week >= 5,
        customer_id=customer_id or None,
        weather=coerce_enum(Weather, weather),
        temperature=temperature,
        cart_items=_clean_ids(cart_items),
        user_history=_clean_ids(user_history),
        user_segment=coerce_enum(UserSegment, user_segment),
        device_type=coerce_enum(DeviceType, device_type)
    )
