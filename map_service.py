"""
Store Map Service

Bridges the database and the route planner:
- Load a store's map snapshot
- Resolve a shopping list's products to shelf locations
- Replace a store's map
- Plan the route for a stored shopping list

The planner itself never touches the database; everything it needs is
fetched here first.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy.orm import Session

from planner_errors import InvalidMapError, MapNotFoundError, ShoppingListNotFoundError
from route_planner import (
    PlannerSettings,
    ProductLocation,
    RoutePlan,
    ShoppingListProduct,
    plan_route,
)
from solver import CancelToken
from store_grid import MapCell, StoreMap, build_grid

logger = logging.getLogger(__name__)


class StoreMapService:
    """Service to load map and shopping list snapshots for route planning"""

    @staticmethod
    def load_store_map(
        store_id: int,
        session: Session,
        settings: Optional[PlannerSettings] = None
    ) -> StoreMap:
        """
        Load the map of a store.

        Args:
            store_id: Store primary key
            session: SQLAlchemy database session
            settings: Supplies the map size for stores without one
                (read from the environment when omitted)

        Returns:
            StoreMap with the store's size and registered cells

        Raises:
            MapNotFoundError: If the store does not exist or has no map cells
            InvalidMapError: If a stored cell has an unknown type or a negative coordinate
        """
        from models import MapCellRecord, Store

        settings = settings or PlannerSettings.from_env()

        store = session.get(Store, store_id)
        if store is None:
            raise MapNotFoundError(f"Store {store_id} not found")

        records = session.query(MapCellRecord).filter(
            MapCellRecord.store_id == store_id
        ).order_by(MapCellRecord.id).all()

        if not records:
            raise MapNotFoundError(f"Store {store.name} has no map registered")

        logger.info(f"Loaded map of {store.name}: {len(records)} cells")

        try:
            items = [
                MapCell(x=record.x, y=record.y, type=record.cell_type)
                for record in records
            ]
        except ValidationError as e:
            logger.error(f"✗ Stored map of {store.name} is invalid: {e}")
            raise InvalidMapError(f"Store {store.name} has an invalid map cell: {e}") from e

        return StoreMap(
            store_id=str(store.id),
            width=store.map_width or settings.grid_width,
            height=store.map_height or settings.grid_height,
            items=items,
        )

    @staticmethod
    def resolve_shopping_list(
        shopping_list_id: int,
        session: Session
    ) -> Tuple[int, List[ShoppingListProduct]]:
        """
        Resolve the products of a shopping list to their shelf locations.

        Args:
            shopping_list_id: Shopping list primary key
            session: SQLAlchemy database session

        Returns:
            Tuple of (store_id, list of ShoppingListProduct in list order)

        Raises:
            ShoppingListNotFoundError: If the shopping list does not exist
        """
        from models import ShoppingList

        shopping_list = session.get(ShoppingList, shopping_list_id)
        if shopping_list is None:
            raise ShoppingListNotFoundError(f"Shopping list {shopping_list_id} not found")

        products = []
        for item in shopping_list.items:
            product = item.product
            location = None
            if product.has_location:
                location = ProductLocation(x=product.location_x, y=product.location_y)

            products.append(
                ShoppingListProduct(
                    product_id=str(product.id),
                    quantity=item.quantity,
                    location=location,
                )
            )

        logger.info(f"Resolved shopping list {shopping_list_id}: {len(products)} products")
        return shopping_list.store_id, products

    @staticmethod
    def save_store_map(store_id: int, cells: Iterable[MapCell], session: Session) -> int:
        """
        Replace the map of a store.

        Cells are checked against the store's map size before anything is written.

        Args:
            store_id: Store primary key
            cells: New map cells
            session: SQLAlchemy database session

        Returns:
            Number of cells stored

        Raises:
            MapNotFoundError: If the store does not exist
            InvalidMapError: If a cell is outside the store's map
        """
        from models import MapCellRecord, Store

        store = session.get(Store, store_id)
        if store is None:
            raise MapNotFoundError(f"Store {store_id} not found")

        cells = list(cells)
        settings = PlannerSettings.from_env()
        build_grid(
            store.map_width or settings.grid_width,
            store.map_height or settings.grid_height,
            cells,
        )

        try:
            session.query(MapCellRecord).filter(
                MapCellRecord.store_id == store_id
            ).delete()

            for cell in cells:
                session.add(
                    MapCellRecord(
                        store_id=store_id,
                        x=cell.x,
                        y=cell.y,
                        cell_type=cell.type.value,
                    )
                )

            session.commit()
            logger.info(f"✓ Saved map of {store.name}: {len(cells)} cells")
            return len(cells)

        except Exception as e:
            logger.error(f"Failed to save map of store {store_id}: {e}")
            session.rollback()
            raise

    @staticmethod
    def plan_shopping_list_route(
        shopping_list_id: int,
        session: Session,
        settings: Optional[PlannerSettings] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> RoutePlan:
        """
        Load everything a shopping list needs and plan its route.

        Args:
            shopping_list_id: Shopping list primary key
            session: SQLAlchemy database session
            settings: Planner settings (read from the environment when omitted)
            cancel_token: Optional token to abort planning

        Returns:
            RoutePlan for the shopping list's store
        """
        settings = settings or PlannerSettings.from_env()

        store_id, products = StoreMapService.resolve_shopping_list(shopping_list_id, session)
        store_map = StoreMapService.load_store_map(store_id, session, settings)

        return plan_route(store_map, products, settings=settings, cancel_token=cancel_token)


if __name__ == "__main__":
    import os
    from dotenv import load_dotenv
    from database import DatabaseManager, DEFAULT_DATABASE_URL
    from route_planner import print_route_plan
    from sample_data import SampleDataManager

    logging.basicConfig(level=logging.INFO)

    load_dotenv()
    db = DatabaseManager(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL))
    db.init_db()

    with db.session_scope() as session:
        shopping_list_id = SampleDataManager.seed_default_data(session)
        plan = StoreMapService.plan_shopping_list_route(shopping_list_id, session)
        print_route_plan(plan)

    db.close()
