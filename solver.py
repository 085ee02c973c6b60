"""
Visit-Order Solver - Shortest Shopping Route Through a Store

This module implements the "Brain" that decides in which order the shelves
on a shopping list are visited.

Specifications:
- Cost Formula: Total Cost = sum of leg lengths (cells per path) from the
  entrance through every stop, plus the way back when a return trip is requested
- Logic: Brute force over every permutation of the stops (O(n!), only viable
  for short lists, see PlannerSettings.max_stops)
- Unreachable legs score infinite cost; such orders are never chosen
- Output: best order, its cost and how many orders were analysed
"""

import json
import logging
import math
import threading
import time
from dataclasses import dataclass, field
from itertools import permutations
from typing import Dict, List, Optional, Sequence

import pandas as pd

from path_finders import PathFinder
from planner_errors import NoValidRouteError, PlanningCancelledError
from store_grid import AccessPoint, Coordinate, StoreGrid

logger = logging.getLogger(__name__)


class CancelToken:
    """
    Cooperative cancellation for a planning request.

    Cancelled explicitly through cancel() (from any thread) or implicitly
    once the optional deadline has passed.
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        self._event = threading.Event()
        self.deadline = None if timeout_seconds is None else time.monotonic() + timeout_seconds

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            reason = "cancelled" if self._event.is_set() else "deadline exceeded"
            raise PlanningCancelledError(f"Route planning aborted: {reason}")


class LegMatrix:
    """
    Two-sided leg length matrix: rows are origins, columns are destinations.

    Values are the number of cells of the path between two stops.
    If a destination cannot be reached from an origin, the value is float('inf').
    """

    def __init__(self, stops: Sequence[Coordinate]):
        """
        Initialize the matrix with every leg unreachable.

        Args:
            stops: Coordinates of the entrance and access points (duplicates ignored)
        """
        self.stops = list(dict.fromkeys(stops))
        self.labels = [self.label(stop) for stop in self.stops]

        self.data = pd.DataFrame(
            data=float('inf'),
            index=self.labels,
            columns=self.labels,
            dtype=float
        )

    @staticmethod
    def label(coordinate: Coordinate) -> str:
        return f"{coordinate.x},{coordinate.y}"

    @classmethod
    def build(
        cls,
        grid: StoreGrid,
        finder: PathFinder,
        stops: Sequence[Coordinate],
        cancel_token: Optional[CancelToken] = None,
    ) -> "LegMatrix":
        """Run the finder once for every ordered pair of stops."""
        legs = cls(stops)

        for origin in legs.stops:
            for destination in legs.stops:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                # Every search gets its own copy of the grid
                path = finder.find_path(grid.clone(), origin, destination)
                if path:
                    legs.set_length(origin, destination, len(path))

        return legs

    def set_length(self, origin: Coordinate, destination: Coordinate, length: float) -> None:
        self.data.loc[self.label(origin), self.label(destination)] = length

    def get_length(self, origin: Coordinate, destination: Coordinate) -> float:
        """Leg length in cells (inf if unreachable)."""
        return float(self.data.loc[self.label(origin), self.label(destination)])

    def to_dataframe(self) -> pd.DataFrame:
        return self.data.copy()


@dataclass
class SolverResult:
    """Final result from the solver."""
    best_order: List[AccessPoint]
    total_cost: float
    orders_evaluated: int
    include_return_trip: bool
    input_order_cost: float
    leg_matrix: Optional[LegMatrix] = field(default=None, repr=False)

    @property
    def savings_vs_input_order(self) -> Optional[float]:
        """Cells saved compared to visiting the stops in list order."""
        if math.isinf(self.input_order_cost):
            return None
        return self.input_order_cost - self.total_cost

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "best_order": [point.to_dict() for point in self.best_order],
            "total_cost": self.total_cost,
            "orders_evaluated": self.orders_evaluated,
            "include_return_trip": self.include_return_trip,
            "input_order_cost": None if math.isinf(self.input_order_cost) else self.input_order_cost,
            "savings_vs_input_order": self.savings_vs_input_order,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to formatted JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


def evaluate_order(
    legs: LegMatrix,
    entrance: Coordinate,
    order: Sequence[Coordinate],
    include_return_trip: bool = True,
) -> float:
    """
    Calculate the total length of visiting stops in a fixed order.

    Args:
        legs: LegMatrix covering the entrance and every stop
        entrance: Where the route starts (and ends, with a return trip)
        order: Stops in visiting order
        include_return_trip: Add the leg from the last stop back to the entrance

    Returns:
        Total number of cells walked, or inf if any leg is unreachable
    """
    route = [entrance] + list(order)
    if include_return_trip:
        route.append(entrance)

    total = 0.0
    for origin, destination in zip(route, route[1:]):
        length = legs.get_length(origin, destination)
        if math.isinf(length):
            return math.inf
        total += length

    return total


def best_order(
    grid: StoreGrid,
    finder: PathFinder,
    entrance: Coordinate,
    access_points: Sequence[AccessPoint],
    include_return_trip: bool = True,
    cancel_token: Optional[CancelToken] = None,
) -> SolverResult:
    """
    Find the visiting order that minimizes the total walking distance.

    Every permutation of the access points is generated lazily and scored;
    the first permutation reaching the minimum cost wins.

    Args:
        grid: Store walkability matrix
        finder: Path finder used to measure legs
        entrance: Start of the route
        access_points: Walkable cells to visit
        include_return_trip: Also count the way back to the entrance
        cancel_token: Optional token checked between orders

    Returns:
        SolverResult with the best order and its cost

    Raises:
        NoValidRouteError: If every order contains an unreachable leg
        PlanningCancelledError: If the token is cancelled or expires
    """
    access_points = list(access_points)
    legs = LegMatrix.build(
        grid,
        finder,
        [entrance] + [point.coordinate for point in access_points],
        cancel_token=cancel_token,
    )

    # Positional lookups keep the permutation loop off the DataFrame
    lengths = legs.data.to_numpy()
    position = {label: i for i, label in enumerate(legs.labels)}
    entrance_pos = position[LegMatrix.label(entrance)]
    point_pos = [position[LegMatrix.label(point.coordinate)] for point in access_points]

    best_perm = None
    best_cost = math.inf
    orders_evaluated = 0

    for perm in permutations(range(len(access_points))):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        orders_evaluated += 1

        total = 0.0
        current = entrance_pos
        for i in perm:
            total += lengths[current, point_pos[i]]
            current = point_pos[i]
        if include_return_trip:
            total += lengths[current, entrance_pos]

        if total < best_cost:
            best_cost = total
            best_perm = perm

    if best_perm is None:
        raise NoValidRouteError(
            f"No visiting order reaches all {len(access_points)} stops from the entrance"
        )

    input_cost = evaluate_order(
        legs,
        entrance,
        [point.coordinate for point in access_points],
        include_return_trip,
    )

    logger.info(
        f"✓ Best order found: cost {best_cost:.0f} after {orders_evaluated} orders "
        f"({finder.name})"
    )

    return SolverResult(
        best_order=[access_points[i] for i in best_perm],
        total_cost=float(best_cost),
        orders_evaluated=orders_evaluated,
        include_return_trip=include_return_trip,
        input_order_cost=input_cost,
        leg_matrix=legs,
    )


# ============================================================================
# UTILITY FUNCTION: Display results in a human-readable format
# ============================================================================

def print_solver_result(result: SolverResult) -> None:
    """Pretty-print the solver result."""
    print("\n" + "=" * 80)
    print("🏆 OPTIMAL VISITING ORDER")
    print("=" * 80)

    stops = ["ENTRANCE"] + [
        f"{point.product_id} ({point.coordinate.x},{point.coordinate.y})"
        for point in result.best_order
    ]
    if result.include_return_trip:
        stops.append("ENTRANCE")
    print(f"\n📍 Route: {' → '.join(stops)}")
    print(f"\n🚶 Total cells walked: {result.total_cost:.0f}")

    savings = result.savings_vs_input_order
    if savings:
        print(f"✨ Savings vs shopping list order: {savings:.0f} cells")

    print(f"\nTotal orders analyzed: {result.orders_evaluated}")
    print("=" * 80)
