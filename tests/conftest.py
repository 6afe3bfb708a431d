import asyncio
import random
from datetime import datetime, timedelta
from typing import List

import pytest
from fastapi.testclient import TestClient

from menu_reco.services.recommendations.base import ScoringInput
from menu_reco.services.recommendations.context import build_context
from menu_reco.services.recommendations.models import CatalogItem, Signals, get_profile

MONDAY_MORNING = datetime(2024, 1, 1, 9, 0)
SATURDAY_EVENING = datetime(2024, 1, 6, 19, 0)


def make_menu() -> List[CatalogItem]:
    return [
        CatalogItem(id="burger", name="Classic Burger", category="main", price=9.5,
                    rating=4.5, rating_count=120, tags=frozenset({"dinner", "hearty", "indulgent"}),
                    flavor_profile=(0.8, 0.2, 0.1), preparation_time=25, popularity=0.9),
        CatalogItem(id="fries", name="Fries", category="sides", price=3.0,
                    rating=4.0, rating_count=80, tags=frozenset({"quick"}),
                    flavor_profile=(0.6, 0.1, 0.0), preparation_time=8, popularity=0.7),
        CatalogItem(id="cola", name="Cola", category="beverage", price=2.0,
                    rating=3.8, rating_count=40, tags=frozenset({"cold", "refreshing"}),
                    preparation_time=1, popularity=0.6),
        CatalogItem(id="pancakes", name="Pancakes", category="breakfast", price=6.0,
                    rating=4.2, rating_count=30, tags=frozenset({"breakfast", "light"}),
                    flavor_profile=(0.1, 0.9, 0.0), preparation_time=12, popularity=0.4),
        CatalogItem(id="soup", name="Tomato Soup", category="starters", price=5.0,
                    rating=4.1, rating_count=25, tags=frozenset({"hot", "soup", "comfort"}),
                    preparation_time=10, popularity=0.3),
        CatalogItem(id="curry", name="Chicken Curry", category="main", price=11.0,
                    rating=4.6, rating_count=60, tags=frozenset({"spicy", "dinner"}),
                    flavor_profile=(0.7, 0.1, 0.9), preparation_time=30, popularity=0.8),
        CatalogItem(id="lassi", name="Mango Lassi", category="beverage", price=3.5,
                    rating=4.4, rating_count=15, tags=frozenset({"cooling", "refreshing"}),
                    preparation_time=3, popularity=0.2),
        CatalogItem(id="salad", name="Garden Salad", category="main", price=7.0,
                    tags=frozenset({"light", "lunch"}), preparation_time=10, popularity=0.1),
    ]


@pytest.fixture()
def menu() -> List[CatalogItem]:
    return make_menu()


@pytest.fixture()
def morning_context():
    return build_context("session-1", current_time=MONDAY_MORNING)


@pytest.fixture()
def scoring_input(morning_context):
    return ScoringInput(
        context=morning_context,
        profile=get_profile("food-delivery"),
        signals=Signals(),
        rng=random.Random(7)
    )


def _seed_rows(models):
    now = datetime.utcnow()
    rows = []
    for item in make_menu():
        rows.append(models.MenuItem(
            id=item.id,
            name=item.name,
            category=item.category,
            price=item.price,
            rating=item.rating,
            rating_count=item.rating_count,
            tags=sorted(item.tags),
            flavor_profile=list(item.flavor_profile) if item.flavor_profile else None,
            preparation_time=item.preparation_time,
            popularity=item.popularity,
            is_available=True
        ))
    rows.append(models.MenuItem(id="retired", name="Old Special", category="main", price=8.0, is_available=False))

    rows.append(models.Order(id="o1", customer_id="c1", status="delivered", createdAt=now - timedelta(hours=1)))
    rows.append(models.Order(id="o2", customer_id="c1", status="delivered", createdAt=now - timedelta(hours=2)))
    rows.append(models.Order(id="o3", customer_id="c2", status="cancelled", createdAt=now - timedelta(hours=3)))
    rows.append(models.OrderItem(order_id="o1", menu_item_id="burger", quantity=1))
    rows.append(models.OrderItem(order_id="o1", menu_item_id="fries", quantity=1))
    rows.append(models.OrderItem(order_id="o2", menu_item_id="burger", quantity=1))
    rows.append(models.OrderItem(order_id="o2", menu_item_id="cola", quantity=1))
    rows.append(models.OrderItem(order_id="o3", menu_item_id="curry", quantity=2))
    return rows


@pytest.fixture()
def test_client(tmp_path):
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import NullPool

    from main import app
    from menu_reco.core.database import Base, get_db
    from menu_reco.models import models
    from menu_reco.services.recommendations import get_cache

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _setup():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with session_factory() as session:
            session.add_all(_seed_rows(models))
            await session.commit()

    asyncio.run(_setup())
    get_cache().clear()

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db

    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        get_cache().clear()
        asyncio.run(engine.dispose())
