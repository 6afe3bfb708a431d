"""
Request bodies for the recommendations API
"""
from typing import Optional, List, Dict, Any
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CatalogItemIn(BaseModel):
    id: str
    category: str = ""
    price: float = Field(..., ge=0)
    name: str = ""
    rating: Optional[float] = Field(None, ge=0, le=5)
    rating_count: Optional[int] = Field(None, ge=0)
    tags: List[str] = []
    flavor_profile: Optional[List[float]] = None
    preparation_time: Optional[float] = None
    popularity: Optional[float] = Field(None, ge=0, le=1)
    metadata: Dict[str, Any] = {}


class ContextIn(BaseModel):
    session_id: str = Field(..., min_length=1)
    current_time: Optional[datetime] = None
    customer_id: Optional[str] = None
    weather: Optional[str] = None
    temperature: Optional[float] = None
    cart_items: List[str] = []
    user_history: List[str] = []  # Most recent first
    user_segment: Optional[str] = None
    device_type: Optional[str] = None


class AffinityRuleIn(BaseModel):
    antecedent: str
    consequent: str
    confidence: float = Field(..., ge=0, le=1)
    scope: str = "item"  # item | category | tag
    support: float = 0.0
    lift: float = 1.0
    order_count: int = 0


class SignalsIn(BaseModel):
    velocities: Dict[str, float] = {}
    affinity_rules: Optional[List[AffinityRuleIn]] = None
    item_categories: Dict[str, str] = {}
    item_tags: Dict[str, List[str]] = {}
    history_weights: Dict[str, float] = {}


class ProfileOverridesIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    weights: Optional[Dict[str, float]] = None
    diversity_factor: Optional[float] = None
    exploration_rate: Optional[float] = None
    trending_window_hours: Optional[int] = None
    affinity_threshold: Optional[float] = None
    # Single strategy weights
    exploration: Optional[float] = None
    collaborative: Optional[float] = None
    contextual: Optional[float] = None
    trending: Optional[float] = None
    affinity: Optional[float] = None


class ScoreRequest(BaseModel):
    items: List[CatalogItemIn]
    context: ContextIn
    signals: Optional[SignalsIn] = None
    limit: int = Field(10, ge=1, le=50)
    business_type: Optional[str] = None
    profile_overrides: Optional[ProfileOverridesIn] = None
    seed: Optional[int] = None


class FeedbackRequest(BaseModel):
    item_id: str = Field(..., min_length=1)
    action: str = Field(..., description="impression or conversion")
