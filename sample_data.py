"""
Sample Data for the Store Route Planner

Seeds a demo store used by the Streamlit app, the examples and the
integration tests:

    y\\x 0 1 2 3 4 5 6 7 8 9
    0    E . . . . . . . . .
    1    . . . . . . . . C .
    2    . . . . . . . . C .
    3    . . . . . . . . . .
    4    . . . . . . . . . .
    5    S S S S S . S S S S      <- shelf row, single opening at x=5
    6    . . . . . . . . . .
    7    . . . . . . . . . .
    8    . . F F . . . . . .
    9    . . . . . . . . . .

E entrance, S shelf, F fridge, C checkout counter.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from store_grid import CellType, MapCell

logger = logging.getLogger(__name__)

DEMO_STORE_NAME = "Demo Market"
DEMO_CREATOR_ID = "demo-shopper"


def demo_map_cells() -> List[MapCell]:
    """Cells of the demo store map."""
    cells = [MapCell(x=0, y=0, type=CellType.ENTRANCE)]
    cells += [MapCell(x=x, y=5, type=CellType.SHELF) for x in range(10) if x != 5]
    cells += [MapCell(x=x, y=8, type=CellType.FRIDGE) for x in (2, 3)]
    cells += [MapCell(x=8, y=y, type=CellType.CHECKOUT) for y in (1, 2)]
    return cells


# name, category, price, (x, y) shelf location or None
DEMO_PRODUCTS = [
    ("Bread", "bakery", 2.99, (2, 5)),
    ("Apples", "produce", 3.49, (8, 6)),
    ("Milk", "dairy", 3.79, (3, 8)),
    ("Cheese", "dairy", 5.99, (2, 8)),
    ("Coffee", "pantry", 8.99, None),
]

DEMO_SHOPPING_LIST = ["Milk", "Bread", "Apples", "Coffee"]


class SampleDataManager:
    """Creates the demo store, its map, products and a shopping list"""

    @staticmethod
    def seed_default_data(session: Session) -> int:
        """
        Seed the demo store (idempotent).

        Args:
            session: SQLAlchemy database session

        Returns:
            Id of the demo shopping list
        """
        from models import MapCellRecord, Product, ShoppingList, ShoppingListItem, Store

        store = session.query(Store).filter(Store.name == DEMO_STORE_NAME).first()
        if store is not None and store.shopping_lists:
            logger.info(f"Sample data already present ({DEMO_STORE_NAME})")
            return store.shopping_lists[0].id

        store = Store(
            name=DEMO_STORE_NAME,
            description="Single aisle opening between the entrance and the back of the store",
            map_width=10,
            map_height=10,
        )
        session.add(store)
        session.flush()

        for cell in demo_map_cells():
            session.add(
                MapCellRecord(store_id=store.id, x=cell.x, y=cell.y, cell_type=cell.type.value)
            )

        products = {}
        for name, category, price, location in DEMO_PRODUCTS:
            product = Product(
                store_id=store.id,
                name=name,
                category=category,
                price=price,
                stock=20,
                location_x=location[0] if location else None,
                location_y=location[1] if location else None,
            )
            session.add(product)
            products[name] = product
        session.flush()

        shopping_list = ShoppingList(store_id=store.id, creator_id=DEMO_CREATOR_ID)
        for name in DEMO_SHOPPING_LIST:
            shopping_list.items.append(ShoppingListItem(product_id=products[name].id, quantity=1))
        session.add(shopping_list)
        session.commit()

        logger.info(
            f"✓ Seeded {DEMO_STORE_NAME}: {len(demo_map_cells())} map cells, "
            f"{len(products)} products, shopping list {shopping_list.id}"
        )
        return shopping_list.id
