"""
SQLAlchemy ORM Models for the Store Route Planner Database

Tables:
- stores: Stores with the size of their floor map
- map_cells: Items registered on a store map (shelves, fridges, entrance, ...)
- products: Products sold by a store, with their shelf location
- shopping_lists: A customer's shopping list for one store
- shopping_list_items: Products and quantities on a shopping list
"""

from datetime import datetime

import pytz
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey,
    Index, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


class Store(Base):
    """Physical store with a grid floor map"""
    __tablename__ = 'stores'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(String(500))
    map_width = Column(Integer, nullable=True)  # Unset: planner default (ROUTE_GRID_WIDTH)
    map_height = Column(Integer, nullable=True)  # Unset: planner default (ROUTE_GRID_HEIGHT)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    map_cells = relationship("MapCellRecord", back_populates="store", cascade="all, delete-orphan")
    products = relationship("Product", back_populates="store", cascade="all, delete-orphan")
    shopping_lists = relationship("ShoppingList", back_populates="store", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Store {self.name}>"


class MapCellRecord(Base):
    """One registered cell of a store map"""
    __tablename__ = 'map_cells'
    __table_args__ = (
        UniqueConstraint('store_id', 'x', 'y', name='unique_store_cell'),
        Index('idx_map_cells_store_id', 'store_id'),
    )

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey('stores.id'), nullable=False)
    x = Column(Integer, nullable=False)
    y = Column(Integer, nullable=False)
    cell_type = Column(String(20), nullable=False)  # CellType value, e.g. "shelf", "entrance"

    # Relationships
    store = relationship("Store", back_populates="map_cells")

    def __repr__(self):
        return f"<MapCell ({self.x}, {self.y}) {self.cell_type}>"


class Product(Base):
    """Product sold by a store"""
    __tablename__ = 'products'
    __table_args__ = (
        Index('idx_products_store_id', 'store_id'),
    )

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey('stores.id'), nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(100))  # e.g., "produce", "dairy", "bakery"
    price = Column(Numeric(10, 2))
    stock = Column(Integer, default=0)
    location_x = Column(Integer, nullable=True)  # Shelf location, unset if not placed
    location_y = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    store = relationship("Store", back_populates="products")

    @property
    def has_location(self) -> bool:
        return self.location_x is not None and self.location_y is not None

    def __repr__(self):
        return f"<Product {self.name}>"


class ShoppingList(Base):
    """A customer's shopping list for one store"""
    __tablename__ = 'shopping_lists'
    __table_args__ = (
        Index('idx_shopping_lists_store_creator', 'store_id', 'creator_id'),
    )

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey('stores.id'), nullable=False)
    creator_id = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    store = relationship("Store", back_populates="shopping_lists")
    items = relationship(
        "ShoppingListItem",
        back_populates="shopping_list",
        cascade="all, delete-orphan",
        order_by="ShoppingListItem.id",
    )

    def __repr__(self):
        return f"<ShoppingList {self.id} by {self.creator_id}>"


class ShoppingListItem(Base):
    """Product and quantity on a shopping list"""
    __tablename__ = 'shopping_list_items'
    __table_args__ = (
        UniqueConstraint('shopping_list_id', 'product_id', name='unique_list_product'),
    )

    id = Column(Integer, primary_key=True)
    shopping_list_id = Column(Integer, ForeignKey('shopping_lists.id'), nullable=False)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    # Relationships
    shopping_list = relationship("ShoppingList", back_populates="items")
    product = relationship("Product")

    def __repr__(self):
        return f"<ShoppingListItem {self.product_id} x{self.quantity}>"


if __name__ == "__main__":
    print("SQLAlchemy ORM Models:")
    print(f"- Store: {Store.__tablename__}")
    print(f"- MapCellRecord: {MapCellRecord.__tablename__}")
    print(f"- Product: {Product.__tablename__}")
    print(f"- ShoppingList: {ShoppingList.__tablename__}")
    print(f"- ShoppingListItem: {ShoppingListItem.__tablename__}")
