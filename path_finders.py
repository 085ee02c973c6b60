"""
Single-Pair Path Finders

Three interchangeable strategies for walking from one cell of a store grid
to another:

- AStarFinder (production): 8-directional moves without corner cutting,
  straight steps cost 1 and diagonal steps cost sqrt(2), Euclidean heuristic.
  Returns a cheapest path.
- BreadthFirstFinder: 4-directional, shortest path by number of steps.
- DepthFirstFinder: 4-directional, returns A path, not the shortest one.
  Kept as a comparison strategy.

All finders return an empty list when the end cell cannot be reached.
Search bookkeeping (open/closed sets, parents) lives inside each call,
so repeated searches over the same grid are independent.
"""

import heapq
import itertools
import logging
import math
from collections import deque
from typing import Dict, List, Optional

from planner_errors import InvalidEndpointError
from store_grid import Coordinate, StoreGrid

logger = logging.getLogger(__name__)

SQRT2 = math.sqrt(2)


def reconstruct_path(
    came_from: Dict[Coordinate, Optional[Coordinate]],
    end: Coordinate,
) -> List[Coordinate]:
    """Follow parent links back from the end cell and return start -> end."""
    path = [end]
    while came_from.get(path[-1]) is not None:
        path.append(came_from[path[-1]])
    path.reverse()
    return path


class PathFinder:
    """Base class: validates endpoints and handles the trivial start == end case."""

    name = "base"

    def find_path(self, grid: StoreGrid, start: Coordinate, end: Coordinate) -> List[Coordinate]:
        """
        Find a path between two walkable cells.

        Args:
            grid: Store walkability matrix (never modified)
            start: First cell of the path
            end: Last cell of the path

        Returns:
            List of coordinates from start to end inclusive, or [] if unreachable

        Raises:
            InvalidEndpointError: If start or end is out of bounds or blocked
        """
        for label, point in (("start", start), ("end", end)):
            if not grid.is_walkable(point.x, point.y):
                raise InvalidEndpointError(
                    f"{self.name}: {label} cell ({point.x}, {point.y}) is not walkable"
                )

        if start == end:
            return [start]

        path = self._search(grid, start, end)
        if not path:
            logger.debug(f"{self.name}: ({end.x}, {end.y}) unreachable from ({start.x}, {start.y})")
        return path

    def _search(self, grid: StoreGrid, start: Coordinate, end: Coordinate) -> List[Coordinate]:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__}>"


class AStarFinder(PathFinder):
    """Best-first grid search with a straight-line heuristic."""

    name = "astar"

    def __init__(self, allow_diagonal: bool = True):
        self.allow_diagonal = allow_diagonal

    @staticmethod
    def _heuristic(a: Coordinate, b: Coordinate) -> float:
        return a.distance_to(b)

    def _search(self, grid: StoreGrid, start: Coordinate, end: Coordinate) -> List[Coordinate]:
        # Counter breaks f-score ties in insertion order
        counter = itertools.count()
        open_heap = [(self._heuristic(start, end), next(counter), start)]
        g_score = {start: 0.0}
        came_from: Dict[Coordinate, Optional[Coordinate]] = {}
        closed = set()

        while open_heap:
            _, _, current = heapq.heappop(open_heap)

            if current == end:
                return reconstruct_path(came_from, end)
            if current in closed:
                continue
            closed.add(current)

            for neighbor in grid.neighbors(current, allow_diagonal=self.allow_diagonal):
                if neighbor in closed:
                    continue

                is_diagonal = neighbor.x != current.x and neighbor.y != current.y
                tentative = g_score[current] + (SQRT2 if is_diagonal else 1.0)

                if tentative < g_score.get(neighbor, math.inf):
                    g_score[neighbor] = tentative
                    came_from[neighbor] = current
                    f_score = tentative + self._heuristic(neighbor, end)
                    heapq.heappush(open_heap, (f_score, next(counter), neighbor))

        return []

    def __repr__(self):
        return f"<AStarFinder allow_diagonal={self.allow_diagonal}>"


class BreadthFirstFinder(PathFinder):
    """Queue-based search; shortest path by step count."""

    name = "bfs"

    def _search(self, grid: StoreGrid, start: Coordinate, end: Coordinate) -> List[Coordinate]:
        queue = deque([start])
        came_from: Dict[Coordinate, Optional[Coordinate]] = {start: None}

        while queue:
            current = queue.popleft()
            if current == end:
                return reconstruct_path(came_from, end)

            for neighbor in grid.neighbors(current):
                if neighbor not in came_from:
                    came_from[neighbor] = current
                    queue.append(neighbor)

        return []


class DepthFirstFinder(PathFinder):
    """
    Stack-based search.

    Cells are marked visited when pushed, so the first path reaching the end
    cell is returned. It is usually longer than the BFS path.
    """

    name = "dfs"

    def _search(self, grid: StoreGrid, start: Coordinate, end: Coordinate) -> List[Coordinate]:
        stack = [start]
        came_from: Dict[Coordinate, Optional[Coordinate]] = {start: None}

        while stack:
            current = stack.pop()
            if current == end:
                return reconstruct_path(came_from, end)

            for neighbor in grid.neighbors(current):
                if neighbor not in came_from:
                    came_from[neighbor] = current
                    stack.append(neighbor)

        return []


FINDERS = {
    AStarFinder.name: AStarFinder,
    BreadthFirstFinder.name: BreadthFirstFinder,
    DepthFirstFinder.name: DepthFirstFinder,
}


def get_finder(name: str, allow_diagonal: bool = True) -> PathFinder:
    """
    Build a path finder by name ("astar", "bfs" or "dfs").

    allow_diagonal only applies to A*; BFS and DFS are always 4-directional.
    """
    key = name.lower().strip()
    if key not in FINDERS:
        raise ValueError(f"Unknown path finding algorithm '{name}'. Expected one of {sorted(FINDERS)}")

    if key == AStarFinder.name:
        return AStarFinder(allow_diagonal=allow_diagonal)
    return FINDERS[key]()
