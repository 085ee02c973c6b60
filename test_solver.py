"""
Tests for the visit-order solver
"""

import json
import math

import pytest

from path_finders import AStarFinder, BreadthFirstFinder
from planner_errors import NoValidRouteError, PlanningCancelledError
from solver import CancelToken, LegMatrix, best_order, evaluate_order
from store_grid import AccessPoint, CellType, Coordinate, MapCell, StoreGrid, build_grid

ENTRANCE = Coordinate(0, 0)


def points(*coords):
    return [AccessPoint(product_id=f"p{i}", coordinate=Coordinate(x, y)) for i, (x, y) in enumerate(coords)]


@pytest.mark.parametrize("count, expected", [(1, 1), (2, 2), (3, 6), (4, 24), (5, 120)])
def test_every_permutation_is_evaluated(count, expected):
    grid = StoreGrid(10, 10)
    stops = points(*[(i + 1, 2 * i) for i in range(count)])

    result = best_order(grid, BreadthFirstFinder(), ENTRANCE, stops)

    assert result.orders_evaluated == expected
    assert len(result.best_order) == count


def test_best_order_is_never_worse_than_list_order():
    grid = StoreGrid(10, 10)
    stops = points((9, 9), (1, 0), (9, 0), (0, 9))

    result = best_order(grid, AStarFinder(), ENTRANCE, stops)
    list_cost = evaluate_order(result.leg_matrix, ENTRANCE, [p.coordinate for p in stops])

    assert result.total_cost <= list_cost
    assert result.input_order_cost == list_cost
    assert result.savings_vs_input_order >= 0


def test_finds_obvious_order_on_a_line():
    grid = StoreGrid(10, 10)
    stops = [
        AccessPoint("far", Coordinate(6, 0)),
        AccessPoint("near", Coordinate(2, 0)),
        AccessPoint("middle", Coordinate(4, 0)),
    ]

    result = best_order(grid, BreadthFirstFinder(), ENTRANCE, stops, include_return_trip=False)

    assert [p.product_id for p in result.best_order] == ["near", "middle", "far"]
    assert result.total_cost == 9  # three legs of 3 cells


def test_round_trip_cost_for_single_point():
    grid = StoreGrid(10, 10)
    finder = BreadthFirstFinder()
    point = Coordinate(3, 4)

    result = best_order(grid, finder, ENTRANCE, [AccessPoint("milk", point)], include_return_trip=True)

    there = len(finder.find_path(grid, ENTRANCE, point))
    back = len(finder.find_path(grid, point, ENTRANCE))
    assert result.total_cost == there + back == 16


def test_one_way_cost_for_single_point():
    grid = StoreGrid(10, 10)
    result = best_order(
        grid, BreadthFirstFinder(), ENTRANCE, [AccessPoint("milk", Coordinate(3, 4))],
        include_return_trip=False,
    )
    assert result.total_cost == 8


def test_ties_keep_first_generated_order():
    grid = StoreGrid(10, 10)
    entrance = Coordinate(5, 0)
    stops = [AccessPoint("a", Coordinate(4, 0)), AccessPoint("b", Coordinate(6, 0))]

    result = best_order(grid, BreadthFirstFinder(), entrance, stops)

    assert [p.product_id for p in result.best_order] == ["a", "b"]
    assert result.total_cost == 7


def test_products_sharing_an_access_point():
    grid = StoreGrid(10, 10)
    stops = [AccessPoint("bread", Coordinate(2, 2)), AccessPoint("butter", Coordinate(2, 2))]

    result = best_order(grid, BreadthFirstFinder(), ENTRANCE, stops, include_return_trip=False)

    assert result.orders_evaluated == 2
    assert result.total_cost == 5 + 1  # entrance -> shelf, then a single-cell leg


def test_unreachable_stop_means_no_valid_route():
    ring = [(5 + dx, 5 + dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]
    grid = build_grid(10, 10, [MapCell(x=x, y=y, type=CellType.SHELF) for x, y in ring])

    with pytest.raises(NoValidRouteError) as exc_info:
        best_order(grid, AStarFinder(), ENTRANCE, points((2, 2), (5, 5)))

    assert exc_info.value.code == "no_valid_route"


def test_cancelled_token_aborts():
    token = CancelToken()
    token.cancel()

    with pytest.raises(PlanningCancelledError):
        best_order(StoreGrid(10, 10), AStarFinder(), ENTRANCE, points((1, 1), (2, 2)), cancel_token=token)


def test_expired_deadline_aborts():
    token = CancelToken(timeout_seconds=0)
    assert token.cancelled

    with pytest.raises(PlanningCancelledError) as exc_info:
        best_order(StoreGrid(10, 10), AStarFinder(), ENTRANCE, points((1, 1)), cancel_token=token)

    assert "deadline" in exc_info.value.message


def test_token_without_deadline_is_not_cancelled():
    assert not CancelToken().cancelled


def test_leg_matrix():
    ring = [(5 + dx, 5 + dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]
    grid = build_grid(10, 10, [MapCell(x=x, y=y, type=CellType.SHELF) for x, y in ring])
    stops = [ENTRANCE, Coordinate(0, 3), Coordinate(5, 5), Coordinate(0, 3)]

    legs = LegMatrix.build(grid, BreadthFirstFinder(), stops)

    assert legs.to_dataframe().shape == (3, 3)
    assert legs.get_length(ENTRANCE, Coordinate(0, 3)) == 4
    assert legs.get_length(ENTRANCE, ENTRANCE) == 1
    assert math.isinf(legs.get_length(ENTRANCE, Coordinate(5, 5)))
    assert math.isinf(
        evaluate_order(legs, ENTRANCE, [Coordinate(0, 3), Coordinate(5, 5)], include_return_trip=False)
    )


def test_result_serializes_to_json():
    result = best_order(StoreGrid(10, 10), AStarFinder(), ENTRANCE, points((3, 3), (1, 5)))
    payload = json.loads(result.to_json())

    assert payload["orders_evaluated"] == 2
    assert len(payload["best_order"]) == 2
    assert payload["best_order"][0]["productId"] in ("p0", "p1")


def test_interleaved_searches_on_one_grid_stay_independent():
    wall = [(x, 5) for x in range(10) if x != 5]
    grid = build_grid(10, 10, [MapCell(x=x, y=y, type=CellType.SHELF) for x, y in wall])
    before = grid.to_dataframe().copy()
    nested = []

    class InterleavingFinder(BreadthFirstFinder):
        # Runs a second search on the same grid before its own first leg
        def find_path(self, grid_copy, start, end):
            if not nested:
                nested.append(best_order(grid, AStarFinder(), ENTRANCE, points((8, 8), (1, 8))))
            return super().find_path(grid_copy, start, end)

    outer = best_order(grid, InterleavingFinder(), ENTRANCE, points((2, 2), (7, 3), (3, 9)))

    expected_nested = best_order(grid, AStarFinder(), ENTRANCE, points((8, 8), (1, 8)))
    expected_outer = best_order(grid, BreadthFirstFinder(), ENTRANCE, points((2, 2), (7, 3), (3, 9)))

    assert nested[0].best_order == expected_nested.best_order
    assert nested[0].total_cost == expected_nested.total_cost
    assert outer.best_order == expected_outer.best_order
    assert outer.total_cost == expected_outer.total_cost
    assert grid.to_dataframe().equals(before)
