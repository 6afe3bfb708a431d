"""
SQLAlchemy models read by the recommendation service
The ordering platform owns these tables; this service only reads them,
apart from the bandit counters in ItemStats.
"""
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship

from menu_reco.core.database import Base


class MenuItem(Base):
    """
    MenuItem model - orderable catalog entry
    """
    __tablename__ = "MenuItems"

    id = Column(String, primary_key=True, unique=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    category = Column(String, index=True, nullable=False)
    price = Column(Float, nullable=False)
    rating = Column(Float)
    rating_count = Column(Integer)
    tags = Column(JSON)  # List of tag strings
    flavor_profile = Column(JSON)  # Fixed-dimension numeric vector
    preparation_time = Column(Integer)  # Minutes
    popularity = Column(Float)  # 0..1
    is_available = Column(Boolean, default=True, index=True)
    image_url = Column(String)

    createdAt = Column(DateTime, default=datetime.utcnow)
    updatedAt = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    order_items = relationship("OrderItem", back_populates="menu_item")


class Order(Base):
    """
    Order model - one checkout by a customer
    """
    __tablename__ = "Orders"

    id = Column(String, primary_key=True, unique=True)
    customer_id = Column(String, index=True)
    status = Column(String, index=True)

    createdAt = Column(DateTime, default=datetime.utcnow, index=True)
    updatedAt = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    items = relationship("OrderItem", back_populates="order")


class OrderItem(Base):
    """
    Association between orders and menu items with quantities
    """
    __tablename__ = "OrderItems"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(String, ForeignKey("Orders.id"), nullable=False, index=True)
    menu_item_id = Column(String, ForeignKey("MenuItems.id"), nullable=False, index=True)
    quantity = Column(Integer, default=1)

    # Relationships
    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem", back_populates="order_items")


class ItemStat(Base):
    """
    Bandit counters per menu item
    Impressions are recorded when an item is recommended,
    conversions when it is ordered or clicked.
    """
    __tablename__ = "ItemStats"

    item_id = Column(String, ForeignKey("MenuItems.id"), primary_key=True)
    impressions = Column(Integer, default=0, nullable=False)
    conversions = Column(Integer, default=0, nullable=False)

    updatedAt = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
