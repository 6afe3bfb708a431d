"""
Request-time situation models
"""
from typing import Optional, Tuple, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime

from .enums import TimeOfDay, Weather, DeviceType, UserSegment


@dataclass(frozen=True)
class RequestContext:
    """
    Situation a recommendation request is made in

    Built fresh per request (see context.build_context); time fields are
    derived from current_time by the builder.
    """
    session_id: str
    current_time: datetime
    time_of_day: TimeOfDay
    day_of_week: int  # Monday=0 ... Sunday=6
    is_weekend: bool
    customer_id: Optional[str] = None
    weather: Optional[Weather] = None
    temperature: Optional[float] = None
    cart_items: Tuple[str, ...] = field(default_factory=tuple)
    user_history: Tuple[str, ...] = field(default_factory=tuple)  # Most recent first
    user_segment: Optional[UserSegment] = None
    device_type: Optional[DeviceType] = None

    @property
    def has_cart(self) -> bool:
        return len(self.cart_items) > 0

    @property
    def has_history(self) -> bool:
        return len(self.user_history) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "session_id": self.session_id,
            "customer_id": self.customer_id,
            "current_time": self.current_time.isoformat(),
            "time_of_day": self.time_of_day.value,
            "day_of_week": self.day_of_week,
            "is_weekend": self.is_weekend,
            "weather": self.weather.value if self.weather else None,
            "temperature": self.temperature,
            "cart_items": list(self.cart_items),
            "user_history": list(self.user_history),
            "user_segment": self.user_segment.value if self.user_segment else None,
            "device_type": self.device_type.value if self.device_type else None
        }
