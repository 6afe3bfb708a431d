"""
Recommendations service - high-level business logic for recommendations
Gathers collaborator signals, runs the engine and records bandit feedback;
also serves the basket-driven views (complete the meal, also bought, bundles)
"""
import time
import logging
import random
import uuid
from typing import List, Dict, Any, Optional
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from menu_reco.core.config import settings
from menu_reco.models.models import MenuItem, ItemStat
from menu_reco.services.recommendations import (
    RecommendationEngine,
    RecommendationResult,
    DataLoader,
    build_context,
    get_cache
)
from menu_reco.services.recommendations.algorithms import beta_stats, pairing_suggestions
from menu_reco.services.recommendations.insights import (
    rank_trends,
    breakout_items,
    mine_association_rules,
    frequent_bundles,
    co_purchase_similarity,
    decay_weights
)
from menu_reco.services.recommendations.models import (
    AffinityRule,
    BusinessProfile,
    BusinessType,
    CatalogItem,
    PairingSuggestion,
    RuleScope,
    Signals,
    BUSINESS_PROFILES,
    DEFAULT_AFFINITY_RULES,
    coerce_enum,
    index_by_id
)
from menu_reco.services.utils.constants import (
    FEEDBACK_ACTIONS,
    FEEDBACK_IMPRESSION,
    FEEDBACK_CONVERSION
)

logger = logging.getLogger(__name__)

_loader = DataLoader()
_engines: Dict[BusinessType, RecommendationEngine] = {}


def get_engine(business_type: Optional[str] = None) -> RecommendationEngine:
    """
    Shared engine for a business type

    Engines keep no per-request state, so one instance per vertical is
    reused across requests.

    Raises:
        ValueError: If the business type is unknown
    """
    key = coerce_enum(BusinessType, business_type or settings.RECOMMENDATION_DEFAULT_BUSINESS_TYPE)
    if key not in _engines:
        _engines[key] = RecommendationEngine(profile=key, seed=settings.RECOMMENDATION_SEED)
        logger.info(f"Created recommendation engine for {key.value}")
    return _engines[key]


async def gather_velocities(
    db: AsyncSession,
    item_ids: List[str],
    window_hours: int,
    now: Optional[datetime] = None
) -> Dict[str, float]:
    """
    Relative order velocity per item: latest window vs. the one before it

    Args:
        db: Database session
        item_ids: Items to measure
        window_hours: Window length from the business profile
        now: Reference time (UTC)

    Returns:
        item id -> relative velocity
    """
    if not item_ids:
        return {}

    cache = get_cache()
    key = cache.make_key("velocity", window_hours, ids=item_ids)
    cached = cache.get(key)
    if cached is not None:
        return cached

    now = now or datetime.utcnow()
    window = timedelta(hours=window_hours)
    current = await _loader.order_counts(db, item_ids, now - window, now)
    previous = await _loader.order_counts(db, item_ids, now - 2 * window, now - window)

    snapshots = rank_trends(item_ids, current, previous, window_hours)
    velocities = {s.item_id: s.relative_velocity for s in snapshots}

    cache.set(key, velocities, ttl=settings.VELOCITY_CACHE_TTL)
    return velocities


async def gather_mined_rules(db: AsyncSession, item_ids: List[str]) -> List[AffinityRule]:
    """
    Item rules mined from recent orders containing any of item_ids

    Returns:
        Rules sorted by confidence * lift (cached per item set)
    """
    if not item_ids:
        return []

    cache = get_cache()
    key = cache.make_key("affinity", ids=item_ids)
    cached = cache.get(key)
    if cached is not None:
        return cached

    baskets = await _loader.load_baskets(db, item_ids)
    mined = mine_association_rules(
        baskets,
        item_ids,
        min_support=settings.AFFINITY_MIN_SUPPORT,
        min_confidence=settings.AFFINITY_MIN_CONFIDENCE,
        max_rules=settings.AFFINITY_MAX_RULES
    )
    logger.debug(f"Mined {len(mined)} affinity rules from {len(baskets)} baskets")

    cache.set(key, mined, ttl=settings.AFFINITY_CACHE_TTL)
    return mined


async def gather_affinity_rules(db: AsyncSession, cart_items: List[str]) -> Optional[List[AffinityRule]]:
    """
    Built-in category/tag rules plus item rules mined from orders
    containing the cart items

    Returns:
        Rules, or None without a cart
    """
    if not cart_items:
        return None
    return list(DEFAULT_AFFINITY_RULES) + await gather_mined_rules(db, cart_items)


async def gather_signals(
    db: AsyncSession,
    profile: BusinessProfile,
    items: List[CatalogItem],
    cart_items: List[str],
    history_ids: List[str],
    history_rows: List[tuple]
) -> Signals:
    """
    Collect every collaborator input the strategies read
    """
    pool = index_by_id(items)
    outside_pool = [i for i in list(cart_items) + list(history_ids) if i not in pool]
    categories, tags = await _loader.load_item_lookups(db, outside_pool)

    return Signals(
        velocities=await gather_velocities(db, list(pool), profile.trending_window_hours),
        affinity_rules=await gather_affinity_rules(db, cart_items),
        item_categories=categories,
        item_tags=tags,
        history_weights=decay_weights(history_rows, datetime.utcnow(), settings.HISTORY_DECAY_RATE)
    )


async def record_impressions(db: AsyncSession, item_ids: List[str]) -> int:
    """
    Count one impression for each recommended item

    Best effort: a failed write is logged and rolled back so the
    recommendation response is still returned.

    Returns:
        Number of counters updated
    """
    if not item_ids:
        return 0
    try:
        await _bump_counters(db, item_ids, FEEDBACK_IMPRESSION)
        await db.commit()
        return len(set(item_ids))
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning(f"Failed to record impressions: {e}")
        return 0


async def _bump_counters(db: AsyncSession, item_ids: List[str], action: str):
    """Increment ItemStats counters, creating missing rows"""
    ids = set(item_ids)
    result = await db.execute(select(ItemStat).where(ItemStat.item_id.in_(sorted(ids))))
    existing = {stat.item_id: stat for stat in result.scalars().all()}

    for item_id in ids:
        stat = existing.get(item_id)
        if stat is None:
            stat = ItemStat(item_id=item_id, impressions=0, conversions=0)
            db.add(stat)
        if action == FEEDBACK_CONVERSION:
            stat.conversions = (stat.conversions or 0) + 1
        else:
            stat.impressions = (stat.impressions or 0) + 1
        stat.updatedAt = datetime.utcnow()


def _item_summary(item: CatalogItem) -> Dict[str, Any]:
    return {
        "name": item.name,
        "category": item.category,
        "price": item.price,
        "tags": sorted(item.tags),
        "image_url": item.metadata.get("image_url")
    }


def _serialize(ranked, pool: Dict[str, CatalogItem]) -> List[Dict[str, Any]]:
    recommendations = []
    for candidate in ranked:
        data = candidate.to_dict()
        item = pool.get(candidate.item_id)
        if item is not None:
            data["item"] = _item_summary(item)
        recommendations.append(data)
    return recommendations


async def get_recommendations(
    db: AsyncSession,
    session_id: Optional[str] = None,
    customer_id: Optional[str] = None,
    cart_items: Optional[List[str]] = None,
    category: Optional[str] = None,
    limit: Optional[int] = None,
    business_type: Optional[str] = None,
    weather: Optional[str] = None,
    temperature: Optional[float] = None,
    device_type: Optional[str] = None,
    user_segment: Optional[str] = None
) -> Dict[str, Any]:
    """
    Personalized recommendations for a session

    Args:
        db: Database session
        session_id: Session identifier (generated when missing)
        customer_id: Customer whose order history personalizes results
        cart_items: Item ids currently in the cart
        category: Restrict candidates to one category
        limit: Number of recommendations
        business_type: Business vertical (defaults from settings)
        weather: Weather label
        temperature: Temperature in degrees Celsius
        device_type: Device class label
        user_segment: Customer segment label

    Returns:
        {"success": True, "recommendations": [...], "metadata": {...}}

    Raises:
        ValueError: On unknown labels
    """
    start_time = time.time()
    session_id = session_id or str(uuid.uuid4())
    limit = limit or settings.RECOMMENDATION_DEFAULT_LIMIT
    cart_items = list(cart_items or [])

    engine = get_engine(business_type)
    profile = engine.profile

    history_ids: List[str] = []
    history_rows: List[tuple] = []
    if customer_id:
        history = await _loader.load_customer_history(db, customer_id)
        history_ids = _loader.history_item_ids(history)
        history_rows = _loader.history_rows(history)

    context = build_context(
        session_id=session_id,
        customer_id=customer_id,
        weather=weather,
        temperature=temperature,
        cart_items=cart_items,
        user_history=history_ids,
        user_segment=user_segment,
        device_type=device_type
    )

    items = await _loader.load_catalog(db, category)
    signals = await gather_signals(db, profile, items, list(context.cart_items), history_ids, history_rows)

    ranked = engine.recommend(items, context, limit=limit, signals=signals)

    if settings.RECOMMENDATION_RECORD_IMPRESSIONS:
        await record_impressions(db, [c.item_id for c in ranked])

    result = RecommendationResult(
        session_id=session_id,
        recommendations=ranked,
        business_type=profile.business_type.value,
        customer_id=customer_id,
        execution_time_ms=(time.time() - start_time) * 1000,
        metadata={
            "candidates": len(items),
            "history_items": len(history_ids),
            "cart_items": len(context.cart_items),
            "affinity_rules": len(signals.rules),
            "time_of_day": context.time_of_day.value,
            "is_weekend": context.is_weekend
        }
    )

    logger.info(
        f"Recommended {len(ranked)} of {len(items)} items for session {session_id} "
        f"in {result.execution_time_ms:.1f}ms"
    )

    data = result.to_dict()
    metadata = {k: v for k, v in data.items() if k not in ("recommendations", "metadata")}
    metadata.update(data["metadata"])
    metadata["experiment_group"] = ranked[0].experiment_group.value if ranked else None
    return {
        "success": True,
        "recommendations": _serialize(ranked, index_by_id(items)),
        "metadata": metadata
    }


def _signals_from_payload(payload: Optional[Dict[str, Any]]) -> Signals:
    if not payload:
        return Signals()

    raw_rules = payload.get("affinity_rules")
    rules = None
    if raw_rules is not None:
        rules = [
            AffinityRule(
                antecedent=str(r["antecedent"]),
                consequent=str(r["consequent"]),
                confidence=float(r["confidence"]),
                scope=coerce_enum(RuleScope, r.get("scope") or RuleScope.ITEM),
                support=float(r.get("support") or 0.0),
                lift=float(r.get("lift") if r.get("lift") is not None else 1.0),
                order_count=int(r.get("order_count") or 0)
            )
            for r in raw_rules
        ]

    return Signals(
        velocities={k: float(v) for k, v in (payload.get("velocities") or {}).items()},
        affinity_rules=rules,
        item_categories=dict(payload.get("item_categories") or {}),
        item_tags={k: frozenset(str(t).lower() for t in v) for k, v in (payload.get("item_tags") or {}).items()},
        history_weights={k: float(v) for k, v in (payload.get("history_weights") or {}).items()}
    )


def score_items(
    items: List[Dict[str, Any]],
    context: Dict[str, Any],
    signals: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    business_type: Optional[str] = None,
    profile_overrides: Optional[Dict[str, Any]] = None,
    seed: Optional[int] = None
) -> Dict[str, Any]:
    """
    Stateless scoring of caller-supplied items

    Nothing is read from or written to the database.

    Raises:
        ValueError: On invalid items, labels or overrides
    """
    start_time = time.time()
    catalog = [CatalogItem.from_dict(item) for item in items]
    request_context = build_context(**context)

    engine = get_engine(business_type)
    profile = engine.profile
    if profile_overrides:
        profile = profile.with_overrides(**profile_overrides)
    scorer = RecommendationEngine(profile=profile, seed=engine.seed, strategies=engine.strategies)

    rng = random.Random(seed) if seed is not None else None
    ranked = scorer.recommend(
        catalog,
        request_context,
        limit=limit or settings.RECOMMENDATION_DEFAULT_LIMIT,
        signals=_signals_from_payload(signals),
        rng=rng
    )

    result = RecommendationResult(
        session_id=request_context.session_id,
        recommendations=ranked,
        business_type=profile.business_type.value,
        customer_id=request_context.customer_id,
        execution_time_ms=(time.time() - start_time) * 1000,
        metadata={"profile": profile.to_dict(), "context": request_context.to_dict()}
    )
    return {"success": True, **result.to_dict()}


async def record_feedback(db: AsyncSession, item_id: str, action: str) -> Dict[str, Any]:
    """
    Record an impression or conversion for a menu item

    Raises:
        ValueError: On an unknown action
        LookupError: If the menu item does not exist
    """
    action = (action or "").strip().lower()
    if action not in FEEDBACK_ACTIONS:
        raise ValueError(f"Unknown action '{action}'. Expected one of: {', '.join(FEEDBACK_ACTIONS)}")

    exists = await db.execute(select(MenuItem.id).where(MenuItem.id == item_id))
    if exists.scalar_one_or_none() is None:
        raise LookupError(f"Menu item '{item_id}' not found")

    await _bump_counters(db, [item_id], action)
    await db.commit()

    result = await db.execute(select(ItemStat).where(ItemStat.item_id == item_id))
    stat = result.scalar_one()
    return {"success": True, **_bandit_entry(stat)}


def _bandit_entry(stat: ItemStat) -> Dict[str, Any]:
    impressions = stat.impressions or 0
    conversions = stat.conversions or 0
    alpha = conversions + 1
    beta = max(impressions - conversions, 0) + 1
    stats = beta_stats(alpha, beta)
    return {
        "item_id": stat.item_id,
        "impressions": impressions,
        "conversions": conversions,
        "alpha": alpha,
        "beta": beta,
        "conversion_rate": round(conversions / impressions, 4) if impressions > 0 else 0.0,
        "expected_value": round(stats["expected_value"], 4),
        "uncertainty": round(stats["uncertainty"], 4)
    }


async def get_bandit_stats(db: AsyncSession, limit: int = 50) -> Dict[str, Any]:
    """
    Beta posterior statistics per item from the impression/conversion counters
    """
    result = await db.execute(select(ItemStat))
    entries = [_bandit_entry(stat) for stat in result.scalars().all()]
    entries.sort(key=lambda e: (-e["expected_value"], e["item_id"]))
    return {
        "success": True,
        "items": entries[:limit],
        "total_items": len(entries),
        "total_impressions": sum(e["impressions"] for e in entries),
        "total_conversions": sum(e["conversions"] for e in entries)
    }


async def get_trending(
    db: AsyncSession,
    window_hours: Optional[int] = None,
    category: Optional[str] = None,
    business_type: Optional[str] = None,
    limit: int = 20
) -> Dict[str, Any]:
    """
    Trending snapshots for the catalog

    Args:
        db: Database session
        window_hours: Window length (defaults to the profile's)
        category: Optional category filter
        business_type: Business vertical for the default window
        limit: Number of snapshots returned

    Raises:
        ValueError: On an unknown business type or a non-positive window
    """
    profile = get_engine(business_type).profile
    window_hours = window_hours or profile.trending_window_hours
    if window_hours <= 0:
        raise ValueError(f"window_hours must be positive, got {window_hours}")

    items = await _loader.load_catalog(db, category)
    item_ids = [item.id for item in items]

    now = datetime.utcnow()
    window = timedelta(hours=window_hours)
    current = await _loader.order_counts(db, item_ids, now - window, now)
    previous = await _loader.order_counts(db, item_ids, now - 2 * window, now - window)

    snapshots = rank_trends(item_ids, current, previous, window_hours)
    return {
        "success": True,
        "window_hours": window_hours,
        "trending": [s.to_dict() for s in snapshots[:limit]],
        "breakouts": [s.to_dict() for s in breakout_items(snapshots)],
        "timestamp": now.isoformat()
    }


async def complete_meal(
    db: AsyncSession,
    cart_items: List[str],
    limit: Optional[int] = None,
    business_type: Optional[str] = None
) -> Dict[str, Any]:
    """
    "Complete the meal" suggestions for a cart

    Applies the built-in pairings plus rules mined for the cart and keeps
    the available items that score above neutral.

    Args:
        db: Database session
        cart_items: Item ids in the cart
        limit: Number of suggestions
        business_type: Business vertical for the rule threshold

    Returns:
        {"success": True, "suggestions": [...], "metadata": {...}}

    Raises:
        ValueError: On an empty cart or an unknown business type
    """
    cart_items = list(dict.fromkeys(cart_items or []))
    if not cart_items:
        raise ValueError("Cart items required")
    limit = limit or settings.COMPLETE_MEAL_DEFAULT_LIMIT
    profile = get_engine(business_type).profile

    items = await _loader.load_catalog(db)
    pool = index_by_id(items)
    categories, tags = await _loader.load_item_lookups(db, [i for i in cart_items if i not in pool])
    rules = await gather_affinity_rules(db, cart_items)

    suggestions = pairing_suggestions(
        items,
        cart_items,
        rules,
        threshold=profile.affinity_threshold,
        signals=Signals(item_categories=categories, item_tags=tags),
        limit=limit
    )
    logger.info(f"Found {len(suggestions)} meal suggestions for {len(cart_items)} cart items")

    return {
        "success": True,
        "suggestions": [{**s.to_dict(), "item": _item_summary(pool[s.item_id])} for s in suggestions],
        "metadata": {
            "cart_item_count": len(cart_items),
            "suggestions_found": len(suggestions),
            "affinity_rules": len(rules),
            "business_type": profile.business_type.value
        }
    }


async def also_bought(db: AsyncSession, item_id: str, limit: int = 5) -> Dict[str, Any]:
    """
    "Customers who bought this also bought"

    Only mined item rules count here; the built-in category pairings are
    left to complete_meal.

    Raises:
        LookupError: If the menu item does not exist
    """
    exists = await db.execute(select(MenuItem.id).where(MenuItem.id == item_id))
    if exists.scalar_one_or_none() is None:
        raise LookupError(f"Menu item '{item_id}' not found")

    rules = await gather_mined_rules(db, [item_id])
    pool = index_by_id(await _loader.load_catalog(db))

    suggestions = [
        PairingSuggestion(item_id=rule.consequent, score=rule.strength, rule=rule)
        for rule in rules
        if rule.antecedent == item_id and rule.consequent in pool
    ][:limit]

    return {
        "success": True,
        "item_id": item_id,
        "suggestions": [{**s.to_dict(), "item": _item_summary(pool[s.item_id])} for s in suggestions]
    }


async def get_frequent_bundles(
    db: AsyncSession,
    min_size: int = 2,
    max_size: int = 3,
    limit: int = 20
) -> Dict[str, Any]:
    """
    Item sets frequently ordered together in recent orders

    Raises:
        ValueError: On invalid bundle sizes
    """
    baskets = await _loader.load_recent_baskets(db)
    bundles = frequent_bundles(
        baskets,
        min_size=min_size,
        max_size=max_size,
        min_support=settings.AFFINITY_MIN_SUPPORT,
        min_count=settings.BUNDLE_MIN_ORDERS
    )
    return {
        "success": True,
        "bundles": [b.to_dict() for b in bundles[:limit]],
        "total_bundles": len(bundles),
        "orders_analyzed": len(baskets)
    }


async def get_item_similarity(db: AsyncSession, item_id: str, other_id: str) -> Dict[str, Any]:
    """
    Customer-overlap similarity between two menu items

    Raises:
        LookupError: If either menu item does not exist
    """
    ids = sorted({item_id, other_id})
    result = await db.execute(select(MenuItem.id).where(MenuItem.id.in_(ids)))
    missing = set(ids) - set(result.scalars().all())
    if missing:
        raise LookupError(f"Menu items not found: {', '.join(sorted(missing))}")

    buyers = await _loader.load_item_buyers(db, ids)
    buyers_a = buyers.get(item_id, set())
    buyers_b = buyers.get(other_id, set())
    similarity = 1.0 if item_id == other_id else co_purchase_similarity(buyers_a, buyers_b)

    return {
        "item_id": item_id,
        "other_id": other_id,
        "similarity": round(similarity, 4),
        "shared_customers": len(buyers_a & buyers_b)
    }


def get_profiles() -> Dict[str, Any]:
    """Default configuration of every business profile"""
    return {
        "default": settings.RECOMMENDATION_DEFAULT_BUSINESS_TYPE,
        "profiles": {bt.value: profile.to_dict() for bt, profile in BUSINESS_PROFILES.items()}
    }


def get_service_stats() -> Dict[str, Any]:
    """Engine, loader and cache statistics"""
    return {
        "engines": {bt.value: engine.get_stats() for bt, engine in _engines.items()},
        "loader": _loader.get_stats(),
        "cache": get_cache().get_stats()
    }
