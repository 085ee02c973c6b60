"""
Integration Tests
Database -> store map service -> route planner, end to end on SQLite in-memory
"""

import pytest

import database
from database import DatabaseManager, get_db_manager
from map_service import StoreMapService
from models import MapCellRecord, Product, ShoppingList, Store
from planner_errors import InvalidMapError, MapNotFoundError, ShoppingListNotFoundError
from route_planner import PlannerSettings
from sample_data import DEMO_STORE_NAME, SampleDataManager, demo_map_cells
from store_grid import CellType, Coordinate, MapCell, build_grid


@pytest.fixture
def db_manager():
    manager = DatabaseManager("sqlite:///:memory:")
    manager.init_db()
    yield manager
    manager.close()


@pytest.fixture
def session(db_manager):
    session = db_manager.get_session()
    yield session
    session.close()


@pytest.fixture
def shopping_list_id(session):
    return SampleDataManager.seed_default_data(session)


def product_id(session, name):
    return str(session.query(Product).filter(Product.name == name).one().id)


def test_health_check(db_manager):
    assert db_manager.health_check()


def test_get_db_manager_reuses_one_instance(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setattr(database, "_db_manager", None)

    manager = get_db_manager()
    try:
        assert get_db_manager() is manager
        assert manager.db_url == "sqlite:///:memory:"
        assert manager.health_check()
    finally:
        manager.close()


def test_session_scope_rolls_back_on_error(db_manager):
    with pytest.raises(RuntimeError):
        with db_manager.session_scope() as session:
            session.add(Store(name="Corner Shop"))
            session.flush()
            raise RuntimeError("boom")

    with db_manager.session_scope() as session:
        assert session.query(Store).count() == 0


def test_seeding_is_idempotent(session, shopping_list_id):
    assert SampleDataManager.seed_default_data(session) == shopping_list_id
    assert session.query(Store).count() == 1
    assert session.query(ShoppingList).count() == 1


def test_load_store_map(session, shopping_list_id):
    store = session.query(Store).filter(Store.name == DEMO_STORE_NAME).one()
    store_map = StoreMapService.load_store_map(store.id, session)

    assert store_map.store_id == str(store.id)
    assert (store_map.width, store_map.height) == (10, 10)
    assert len(store_map.items) == len(demo_map_cells())
    assert sum(1 for item in store_map.items if item.type == CellType.ENTRANCE) == 1


def test_resolve_shopping_list(session, shopping_list_id):
    store_id, products = StoreMapService.resolve_shopping_list(shopping_list_id, session)

    assert store_id == session.query(Store).one().id
    assert [p.product_id for p in products] == [
        product_id(session, name) for name in ("Milk", "Bread", "Apples", "Coffee")
    ]
    milk, _, _, coffee = products
    assert (milk.location.x, milk.location.y) == (3, 8)
    assert coffee.location is None


def test_plan_shopping_list_route(session, shopping_list_id):
    plan = StoreMapService.plan_shopping_list_route(
        shopping_list_id, session, settings=PlannerSettings()
    )
    store_map = StoreMapService.load_store_map(int(plan.store_id), session)
    grid = build_grid(store_map.width, store_map.height, store_map.items)

    assert plan.skipped_products == [product_id(session, "Coffee")]
    assert plan.orders_evaluated == 6
    assert len(plan.segments) == 4
    assert plan.segments[-1].product_id is None
    assert plan.segments[-1].path[-1] == Coordinate(0, 0)

    # Bread sits on the shelf row and is picked up from the aisle above it
    bread = next(p for p in plan.visit_order if p.product_id == product_id(session, "Bread"))
    assert bread.coordinate == Coordinate(2, 4)

    for segment in plan.segments:
        for cell in segment.path:
            assert grid.is_walkable(cell.x, cell.y)
            assert cell.y != 5 or cell.x == 5


def test_unknown_shopping_list(session):
    with pytest.raises(ShoppingListNotFoundError):
        StoreMapService.resolve_shopping_list(999, session)


def test_unknown_store(session):
    with pytest.raises(MapNotFoundError):
        StoreMapService.load_store_map(999, session)


def test_store_without_map(session):
    store = Store(name="Empty Store")
    session.add(store)
    session.commit()

    with pytest.raises(MapNotFoundError) as exc_info:
        StoreMapService.load_store_map(store.id, session)
    assert exc_info.value.code == "map_not_found"


def test_save_store_map_replaces_cells(session, shopping_list_id):
    store = session.query(Store).one()
    cells = [MapCell(x=9, y=9, type=CellType.ENTRANCE), MapCell(x=4, y=4, type=CellType.FRIDGE)]

    assert StoreMapService.save_store_map(store.id, cells, session) == 2

    store_map = StoreMapService.load_store_map(store.id, session)
    assert store_map.items == cells


def test_save_store_map_rejects_out_of_bounds_cells(session, shopping_list_id):
    store = session.query(Store).one()
    cells = [MapCell(x=0, y=0, type=CellType.ENTRANCE), MapCell(x=10, y=2, type=CellType.SHELF)]

    with pytest.raises(InvalidMapError):
        StoreMapService.save_store_map(store.id, cells, session)

    count = session.query(MapCellRecord).filter(MapCellRecord.store_id == store.id).count()
    assert count == len(demo_map_cells())


def test_stored_cell_with_unknown_type(session, shopping_list_id):
    store = session.query(Store).one()
    session.add(MapCellRecord(store_id=store.id, x=7, y=7, cell_type="escalator"))
    session.commit()

    with pytest.raises(InvalidMapError) as exc_info:
        StoreMapService.load_store_map(store.id, session)
    assert exc_info.value.code == "invalid_map"
