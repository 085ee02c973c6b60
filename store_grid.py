"""
Store Grid Model

This module defines:
1. Core map objects (CellType, Coordinate, MapCell, StoreMap)
2. The walkability matrix of a store floor (StoreGrid)
3. Shelf targets and access points handed to the route optimizer
4. Functions for building the grid, locating the entrance and resolving
   the nearest walkable cell next to a shelf

Items are placed "in" shelves, fridges and checkout counters, which are not
walkable. A shopper picks them up from an adjacent free cell (the access point).
"""

import copy
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from planner_errors import InvalidMapError, NoAccessiblePointError, NoEntranceError

logger = logging.getLogger(__name__)

DEFAULT_GRID_WIDTH = 10
DEFAULT_GRID_HEIGHT = 10


# ============================================================================
# STEP 1: DATA STRUCTURES
# ============================================================================

class CellType(str, Enum):
    """Kind of item registered on a store map cell."""
    SHELF = "shelf"
    FRIDGE = "fridge"
    CHECKOUT = "checkout"
    OBSTACLE = "obstacle"
    ENTRANCE = "entrance"
    EMPTY = "empty"


@dataclass(frozen=True)
class Coordinate:
    """Integer (x, y) position on the store floor. x is the column, y the row."""
    x: int
    y: int

    def __post_init__(self):
        for value in (self.x, self.y):
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"Coordinate values must be integers, got {value!r}")
            if value < 0:
                raise ValueError(f"Coordinate values must be non-negative, got ({self.x}, {self.y})")

    def distance_to(self, other: "Coordinate") -> float:
        """Straight-line (Euclidean) distance to another coordinate."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y}


class MapCell(BaseModel):
    """One registered cell of a store map."""
    model_config = ConfigDict(frozen=True)

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    type: CellType

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.x, self.y)


class StoreMap(BaseModel):
    """Snapshot of a store map as consumed by the planner."""
    model_config = ConfigDict(populate_by_name=True)

    store_id: Optional[str] = Field(None, alias="storeId")
    width: int = Field(DEFAULT_GRID_WIDTH, gt=0)
    height: int = Field(DEFAULT_GRID_HEIGHT, gt=0)
    items: List[MapCell] = Field(default_factory=list)


@dataclass(frozen=True)
class ShelfTarget:
    """Shelf location of a product on the shopping list (usually not walkable)."""
    product_id: Optional[str]
    coordinate: Coordinate


@dataclass(frozen=True)
class AccessPoint:
    """Walkable cell from which a product is picked up."""
    product_id: Optional[str]
    coordinate: Coordinate

    def to_dict(self) -> Dict:
        return {"productId": self.product_id, **self.coordinate.to_dict()}


# ============================================================================
# STEP 2: WALKABILITY MATRIX
# ============================================================================

# up, down, left, right
ORTHOGONAL_OFFSETS = [(0, -1), (0, 1), (-1, 0), (1, 0)]
DIAGONAL_OFFSETS = [(-1, -1), (1, -1), (-1, 1), (1, 1)]

# Shelf sides checked by the access-point resolver: x-1, x+1, y-1, y+1
ACCESS_OFFSETS = [(-1, 0), (1, 0), (0, -1), (0, 1)]


class StoreGrid:
    """
    Boolean walkability matrix of a store floor.

    Rows are indexed by y and columns by x. All cells start walkable.
    Searches never write to a grid; callers that need a modified copy
    use clone().
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")

        self.width = width
        self.height = height
        self._walkable = [[True] * width for _ in range(height)]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def is_walkable(self, x: int, y: int) -> bool:
        """Check if a cell can be walked on. Out-of-bounds cells are never walkable."""
        if not self.in_bounds(x, y):
            return False
        return self._walkable[y][x]

    def set_walkable(self, x: int, y: int, walkable: bool) -> None:
        if not self.in_bounds(x, y):
            raise ValueError(f"Cell ({x}, {y}) is outside the {self.width}x{self.height} grid")
        self._walkable[y][x] = walkable

    def clone(self) -> "StoreGrid":
        """Deep copy, so changes to the copy never reach this grid."""
        return copy.deepcopy(self)

    def neighbors(self, coordinate: Coordinate, allow_diagonal: bool = False) -> List[Coordinate]:
        """
        Walkable neighbours of a cell.

        Orthogonal neighbours come first in the order up, down, left, right.
        With allow_diagonal, a diagonal step is only offered when both
        orthogonal cells it passes between are walkable (no corner cutting).
        """
        x, y = coordinate.x, coordinate.y
        result = []

        for dx, dy in ORTHOGONAL_OFFSETS:
            if self.is_walkable(x + dx, y + dy):
                result.append(Coordinate(x + dx, y + dy))

        if allow_diagonal:
            for dx, dy in DIAGONAL_OFFSETS:
                if (
                    self.is_walkable(x + dx, y + dy)
                    and self.is_walkable(x + dx, y)
                    and self.is_walkable(x, y + dy)
                ):
                    result.append(Coordinate(x + dx, y + dy))

        return result

    def blocked_cells(self) -> List[Coordinate]:
        return [
            Coordinate(x, y)
            for y in range(self.height)
            for x in range(self.width)
            if not self._walkable[y][x]
        ]

    def to_dataframe(self) -> pd.DataFrame:
        """Walkability as a DataFrame (rows = y, columns = x)."""
        return pd.DataFrame(
            data=self._walkable,
            index=range(self.height),
            columns=range(self.width),
            dtype=bool,
        )

    def __repr__(self):
        return f"<StoreGrid {self.width}x{self.height}, {len(self.blocked_cells())} blocked>"


# ============================================================================
# STEP 3: GRID CONSTRUCTION AND ACCESS POINT RESOLUTION
# ============================================================================

def build_grid(width: int, height: int, cells: Iterable[MapCell]) -> StoreGrid:
    """
    Build the walkability matrix of a store.

    Every registered cell that is not the entrance blocks movement.
    The entrance is always walkable, even if another item shares its cell.

    Raises:
        InvalidMapError: If a cell lies outside the grid
    """
    grid = StoreGrid(width, height)
    entrances = []

    for cell in cells:
        if not grid.in_bounds(cell.x, cell.y):
            raise InvalidMapError(
                f"Map cell ({cell.x}, {cell.y}) is outside the {width}x{height} grid"
            )
        if cell.type == CellType.ENTRANCE:
            entrances.append(cell)
        else:
            grid.set_walkable(cell.x, cell.y, False)

    for cell in entrances:
        grid.set_walkable(cell.x, cell.y, True)

    logger.debug(f"Built {grid!r}")
    return grid


def find_entrance(cells: Iterable[MapCell]) -> Coordinate:
    """
    Locate the single entrance of a store map.

    Raises:
        NoEntranceError: If no cell is tagged as entrance
        InvalidMapError: If more than one cell is tagged as entrance
    """
    entrances = [cell.coordinate for cell in cells if cell.type == CellType.ENTRANCE]

    if not entrances:
        raise NoEntranceError("Store map has no entrance registered")
    if len(set(entrances)) > 1:
        raise InvalidMapError(
            f"Store map has {len(set(entrances))} entrances, expected exactly one"
        )

    return entrances[0]


def nearest_accessible_point(
    grid: StoreGrid,
    target: Coordinate,
    reference: Coordinate = Coordinate(0, 0),
    product_id: Optional[str] = None,
) -> Coordinate:
    """
    Find the walkable cell from which a shelf location can be reached.

    A walkable target is returned unchanged. Otherwise only the four
    orthogonal neighbours are examined, in the order (x-1, y), (x+1, y),
    (x, y-1), (x, y+1), and the one closest to the reference point wins; on
    ties the first one checked wins.
    This is a local check: the returned cell may still be unreachable from
    the entrance.

    Args:
        grid: Store walkability matrix
        target: Shelf location
        reference: Point distances are measured from (the map origin by default)
        product_id: Product being resolved, reported on failure

    Returns:
        Walkable Coordinate next to (or equal to) the target

    Raises:
        NoAccessiblePointError: If the target and its four neighbours are blocked
    """
    if grid.is_walkable(target.x, target.y):
        return target

    nearest = None
    nearest_distance = None

    for dx, dy in ACCESS_OFFSETS:
        x, y = target.x + dx, target.y + dy
        if not grid.is_walkable(x, y):
            continue

        candidate = Coordinate(x, y)
        distance = candidate.distance_to(reference)
        if nearest_distance is None or distance < nearest_distance:
            nearest = candidate
            nearest_distance = distance

    if nearest is None:
        raise NoAccessiblePointError(
            f"Shelf location ({target.x}, {target.y}) has no walkable neighbour",
            product_id=product_id,
        )

    return nearest
