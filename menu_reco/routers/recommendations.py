"""
Recommendations router - endpoints for menu recommendations and bandit feedback
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from menu_reco.core.config import settings
from menu_reco.core.database import get_db
from menu_reco.models.schemas import ScoreRequest, FeedbackRequest
from menu_reco.services import recommendations_service
from menu_reco.services.utils.parsers import parse_id_list, to_optional_str

router = APIRouter()


@router.get("")
async def get_recommendations(
    session_id: Optional[str] = Query(None, description="Session ID (generated if missing)"),
    customer_id: Optional[str] = Query(None, description="Customer ID for order history"),
    cart_items: Optional[str] = Query(None, description="Comma separated item IDs in the cart"),
    category: Optional[str] = Query(None, description="Restrict to one menu category"),
    limit: int = Query(settings.RECOMMENDATION_DEFAULT_LIMIT, ge=1, le=settings.RECOMMENDATION_MAX_LIMIT),
    business_type: Optional[str] = Query(None, description="food-delivery, grocery, pharmacy, ..."),
    weather: Optional[str] = Query(None, description="sunny, rainy, cloudy, cold, hot"),
    temperature: Optional[float] = Query(None, description="Temperature in Celsius"),
    device_type: Optional[str] = Query(None, description="mobile, desktop, tablet"),
    user_segment: Optional[str] = Query(None, description="new, casual, regular, vip"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get personalized menu recommendations

    Combines five strategies (exploration, collaborative, contextual,
    trending, affinity) with business-profile weights, then re-ranks the
    result for diversity.

    Returns:
    - success: true
    - recommendations: ranked items with scores, reasons and confidence
    - metadata: session, business type, timing and context summary
    """
    try:
        return await recommendations_service.get_recommendations(
            db,
            session_id=to_optional_str(session_id),
            customer_id=to_optional_str(customer_id),
            cart_items=parse_id_list(cart_items),
            category=to_optional_str(category),
            limit=limit,
            business_type=to_optional_str(business_type),
            weather=to_optional_str(weather),
            temperature=temperature,
            device_type=to_optional_str(device_type),
            user_segment=to_optional_str(user_segment)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/score")
async def score_items(request: ScoreRequest):
    """
    Score caller-supplied items without touching the database

    Useful for offline evaluation and for clients that hold their own
    catalog snapshot and signals.
    """
    overrides = request.profile_overrides.model_dump(exclude_none=True) if request.profile_overrides else None
    try:
        return recommendations_service.score_items(
            items=[item.model_dump() for item in request.items],
            context=request.context.model_dump(),
            signals=request.signals.model_dump() if request.signals else None,
            limit=request.limit,
            business_type=request.business_type,
            profile_overrides=overrides,
            seed=request.seed
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/feedback")
async def record_feedback(
    request: FeedbackRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Record an impression or conversion for a menu item

    Updates the Beta counters the bandit statistics are computed from.
    """
    try:
        return await recommendations_service.record_feedback(db, request.item_id, request.action)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/bandit-stats")
async def get_bandit_stats(
    limit: int = Query(50, ge=1, le=500, description="Number of items to return"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get Beta posterior statistics per item

    Items are sorted by expected conversion value.
    """
    return await recommendations_service.get_bandit_stats(db, limit)


@router.get("/trending")
async def get_trending(
    window_hours: Optional[int] = Query(None, ge=1, description="Window length (defaults to the profile's)"),
    category: Optional[str] = Query(None),
    business_type: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """
    Get trending items by order velocity

    Compares order counts in the latest window with the window before it.
    """
    try:
        return await recommendations_service.get_trending(
            db,
            window_hours=window_hours,
            category=to_optional_str(category),
            business_type=to_optional_str(business_type),
            limit=limit
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/complete-meal")
async def complete_meal(
    cart_items: Optional[str] = Query(None, description="Comma separated item IDs in the cart"),
    limit: int = Query(settings.COMPLETE_MEAL_DEFAULT_LIMIT, ge=1, le=settings.RECOMMENDATION_MAX_LIMIT),
    business_type: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """
    Suggest items that go well with the current cart

    Each suggestion carries the confidence and lift of the rule behind it.
    """
    try:
        return await recommendations_service.complete_meal(
            db,
            cart_items=parse_id_list(cart_items),
            limit=limit,
            business_type=to_optional_str(business_type)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/also-bought/{item_id}")
async def also_bought(
    item_id: str,
    limit: int = Query(5, ge=1, le=settings.RECOMMENDATION_MAX_LIMIT),
    db: AsyncSession = Depends(get_db)
):
    """
    Customers who bought this item also bought
    """
    try:
        return await recommendations_service.also_bought(db, item_id, limit)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/bundles")
async def get_bundles(
    min_size: int = Query(2, ge=2, le=3),
    max_size: int = Query(3, ge=2, le=3),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """
    Get item sets frequently ordered together
    """
    try:
        return await recommendations_service.get_frequent_bundles(db, min_size, max_size, limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/similarity")
async def get_item_similarity(
    item_id: str = Query(..., min_length=1),
    other_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the customer-overlap similarity of two menu items
    """
    try:
        return await recommendations_service.get_item_similarity(db, item_id, other_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/profiles")
async def get_profiles():
    """
    Get the default configuration of every business profile
    """
    return recommendations_service.get_profiles()


@router.get("/stats")
async def get_stats():
    """
    Get engine, loader and signal cache statistics
    """
    return recommendations_service.get_service_stats()
