"""
Route Planner - Shopping Route Through a Single Store

Turns a store map snapshot and a shopping list into an ordered list of
per-product path segments:

1. Locate the entrance and build the walkability grid
2. Resolve every product's shelf location to a walkable access point
3. Ask the solver for the cheapest visiting order
4. Re-run the path finder leg by leg along that order and label each leg
   with the product picked up at its end

Configuration (environment / .env):
- ROUTE_GRID_WIDTH, ROUTE_GRID_HEIGHT: default map size (10 x 10)
- ROUTE_MAX_STOPS: largest shopping list routed in one call (8)
- ROUTE_TIMEOUT_SECONDS: planning deadline, empty to disable (10)
- ROUTE_ALGORITHM: astar | bfs | dfs (astar)
- ROUTE_ALLOW_DIAGONAL: diagonal moves for A* (true)
- ROUTE_INCLUDE_RETURN_TRIP: walk back to the entrance (true)
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import pandas as pd
import pytz
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from path_finders import PathFinder, get_finder
from planner_errors import InvalidMapError, TooManyStopsError
from solver import CancelToken, best_order
from store_grid import (
    DEFAULT_GRID_HEIGHT,
    DEFAULT_GRID_WIDTH,
    AccessPoint,
    Coordinate,
    ShelfTarget,
    StoreGrid,
    StoreMap,
    build_grid,
    find_entrance,
    nearest_accessible_point,
)

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class PlannerSettings:
    """Knobs of a planning request."""
    grid_width: int = DEFAULT_GRID_WIDTH
    grid_height: int = DEFAULT_GRID_HEIGHT
    max_stops: int = 8
    timeout_seconds: Optional[float] = 10.0
    algorithm: str = "astar"
    allow_diagonal: bool = True
    include_return_trip: bool = True

    @classmethod
    def from_env(cls) -> "PlannerSettings":
        """Read settings from environment variables (.env is loaded first)."""
        load_dotenv()

        timeout = os.getenv("ROUTE_TIMEOUT_SECONDS", "10")
        return cls(
            grid_width=int(os.getenv("ROUTE_GRID_WIDTH", str(DEFAULT_GRID_WIDTH))),
            grid_height=int(os.getenv("ROUTE_GRID_HEIGHT", str(DEFAULT_GRID_HEIGHT))),
            max_stops=int(os.getenv("ROUTE_MAX_STOPS", "8")),
            timeout_seconds=float(timeout) if timeout.strip() else None,
            algorithm=os.getenv("ROUTE_ALGORITHM", "astar"),
            allow_diagonal=_env_flag("ROUTE_ALLOW_DIAGONAL", True),
            include_return_trip=_env_flag("ROUTE_INCLUDE_RETURN_TRIP", True),
        )


# --------------------- Pydantic models ---------------------


class ProductLocation(BaseModel):
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)


class ShoppingListProduct(BaseModel):
    """A shopping list entry with its product's shelf location, if known."""
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    quantity: int = Field(1, ge=1)
    location: Optional[ProductLocation] = None


# --------------------- Route output ---------------------


@dataclass
class RouteSegment:
    """One leg of the route. product_id is None for the way back to the entrance."""
    product_id: Optional[str]
    path: List[Coordinate]

    def to_dict(self) -> Dict:
        return {
            "productId": self.product_id,
            "path": [cell.to_dict() for cell in self.path],
        }


@dataclass
class RoutePlan:
    """Complete route for one shopping list."""
    store_id: Optional[str]
    algorithm: str
    entrance: Coordinate
    segments: List[RouteSegment]
    visit_order: List[AccessPoint]
    total_cost: float
    orders_evaluated: int
    include_return_trip: bool
    skipped_products: List[str] = field(default_factory=list)
    computed_at: datetime = field(default_factory=lambda: datetime.now(pytz.utc))

    def segments_as_dicts(self) -> List[Dict]:
        """The route as [{productId, path: [{x, y}]}], ready for the API layer."""
        return [segment.to_dict() for segment in self.segments]

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "storeId": self.store_id,
            "algorithm": self.algorithm,
            "entrance": self.entrance.to_dict(),
            "totalCost": self.total_cost,
            "ordersEvaluated": self.orders_evaluated,
            "includeReturnTrip": self.include_return_trip,
            "visitOrder": [point.to_dict() for point in self.visit_order],
            "skippedProducts": list(self.skipped_products),
            "computedAt": self.computed_at.isoformat(),
            "segments": self.segments_as_dicts(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to formatted JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


# --------------------- Public API ---------------------


def assemble_segments(
    grid: StoreGrid,
    finder: PathFinder,
    entrance: Coordinate,
    order: Sequence[AccessPoint],
    include_return_trip: bool = True,
    cancel_token: Optional[CancelToken] = None,
) -> List[RouteSegment]:
    """Walk the fixed visiting order and label each leg with its destination product."""
    segments = []
    start = entrance

    for point in order:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        path = finder.find_path(grid.clone(), start, point.coordinate)
        segments.append(RouteSegment(product_id=point.product_id, path=path))
        start = point.coordinate

    if include_return_trip:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        path = finder.find_path(grid.clone(), start, entrance)
        segments.append(RouteSegment(product_id=None, path=path))

    return segments


def plan_route(
    store_map: StoreMap,
    products: Sequence[ShoppingListProduct],
    settings: Optional[PlannerSettings] = None,
    cancel_token: Optional[CancelToken] = None,
) -> RoutePlan:
    """
    Plan the shortest walk through a store for a shopping list.

    Products without a shelf location are skipped and listed in
    RoutePlan.skipped_products. An empty list yields an empty route.

    Args:
        store_map: Map snapshot (size and registered cells)
        products: Shopping list entries with resolved locations
        settings: Planner settings (defaults when omitted)
        cancel_token: Token to abort the request; one with
            settings.timeout_seconds is created when omitted

    Returns:
        RoutePlan with one segment per product (plus the return leg)

    Raises:
        NoEntranceError: Map has no entrance (before any path finding)
        InvalidMapError: Map cell or product location outside the grid
        TooManyStopsError: More located products than settings.max_stops
        NoAccessiblePointError: A shelf location is walled in
        NoValidRouteError: No visiting order reaches every stop
        PlanningCancelledError: Token cancelled or deadline passed
    """
    settings = settings or PlannerSettings()

    entrance = find_entrance(store_map.items)
    grid = build_grid(store_map.width, store_map.height, store_map.items)
    finder = get_finder(settings.algorithm, allow_diagonal=settings.allow_diagonal)

    targets = []
    skipped = []
    for product in products:
        if product.location is None:
            logger.warning(f"Product {product.product_id} has no shelf location, skipping")
            skipped.append(product.product_id)
            continue

        if not grid.in_bounds(product.location.x, product.location.y):
            raise InvalidMapError(
                f"Product {product.product_id} is located at "
                f"({product.location.x}, {product.location.y}), outside the "
                f"{grid.width}x{grid.height} map"
            )
        targets.append(
            ShelfTarget(
                product_id=product.product_id,
                coordinate=Coordinate(product.location.x, product.location.y),
            )
        )

    if len(targets) > settings.max_stops:
        raise TooManyStopsError(
            f"Shopping list has {len(targets)} located products, "
            f"the planner routes at most {settings.max_stops}"
        )

    if not targets:
        logger.info("Shopping list has no located products, returning an empty route")
        return RoutePlan(
            store_id=store_map.store_id,
            algorithm=finder.name,
            entrance=entrance,
            segments=[],
            visit_order=[],
            total_cost=0.0,
            orders_evaluated=0,
            include_return_trip=settings.include_return_trip,
            skipped_products=skipped,
        )

    access_points = [
        AccessPoint(
            product_id=target.product_id,
            coordinate=nearest_accessible_point(
                grid, target.coordinate, product_id=target.product_id
            ),
        )
        for target in targets
    ]

    if cancel_token is None:
        cancel_token = CancelToken(settings.timeout_seconds)

    result = best_order(
        grid,
        finder,
        entrance,
        access_points,
        include_return_trip=settings.include_return_trip,
        cancel_token=cancel_token,
    )

    segments = assemble_segments(
        grid,
        finder,
        entrance,
        result.best_order,
        include_return_trip=settings.include_return_trip,
        cancel_token=cancel_token,
    )

    logger.info(
        f"✓ Planned route for store {store_map.store_id}: {len(access_points)} stops, "
        f"{result.total_cost:.0f} cells ({finder.name})"
    )

    return RoutePlan(
        store_id=store_map.store_id,
        algorithm=finder.name,
        entrance=entrance,
        segments=segments,
        visit_order=result.best_order,
        total_cost=result.total_cost,
        orders_evaluated=result.orders_evaluated,
        include_return_trip=settings.include_return_trip,
        skipped_products=skipped,
    )


# ============================================================================
# UTILITY FUNCTIONS: Display routes in a human-readable format
# ============================================================================

def render_route_frame(grid: StoreGrid, plan: RoutePlan) -> pd.DataFrame:
    """
    Draw the route on the store grid.

    '#' blocked, '.' free, '*' walked, 'E' entrance, 1..n pick-up stops.
    """
    frame = pd.DataFrame(
        [
            ["." if grid.is_walkable(x, y) else "#" for x in range(grid.width)]
            for y in range(grid.height)
        ]
    )

    for segment in plan.segments:
        for cell in segment.path:
            frame.loc[cell.y, cell.x] = "*"

    for number, point in enumerate(plan.visit_order, start=1):
        frame.loc[point.coordinate.y, point.coordinate.x] = str(number)

    frame.loc[plan.entrance.y, plan.entrance.x] = "E"
    return frame


def print_route_plan(plan: RoutePlan, grid: Optional[StoreGrid] = None) -> None:
    """Pretty-print a route plan, with the map when a grid is given."""
    print("\n" + "=" * 80)
    print(f"🛒 SHOPPING ROUTE - store {plan.store_id} ({plan.algorithm})")
    print("=" * 80)

    for number, segment in enumerate(plan.segments, start=1):
        label = segment.product_id if segment.product_id is not None else "back to entrance"
        cells = " ".join(f"({c.x},{c.y})" for c in segment.path)
        print(f"  {number}. {label:20} {len(segment.path):3} cells  {cells}")

    if plan.skipped_products:
        print(f"\n⚠️  Skipped (no shelf location): {', '.join(plan.skipped_products)}")

    print(f"\n🚶 Total cells walked: {plan.total_cost:.0f}")
    print(f"Total orders analyzed: {plan.orders_evaluated}")

    if grid is not None:
        print()
        print(render_route_frame(grid, plan).to_string())
    print("=" * 80)
