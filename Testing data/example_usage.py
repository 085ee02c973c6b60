"""
Example usage of the Store Route Planner.

Demonstrates:
- Building a store map and its walkability grid
- Resolving shelf locations to access points
- Comparing the A*, BFS and DFS path finders on one leg
- Running the solver over every visiting order
- Planning the full labelled route
"""

from path_finders import get_finder
from route_planner import (
    PlannerSettings,
    ShoppingListProduct,
    plan_route,
    print_route_plan,
)
from sample_data import demo_map_cells
from solver import best_order, print_solver_result
from store_grid import (
    AccessPoint,
    Coordinate,
    StoreMap,
    build_grid,
    find_entrance,
    nearest_accessible_point,
)


def main():
    """Example route planning session."""

    # =========================================================================
    # STEP 1: STORE MAP
    # =========================================================================

    store_map = StoreMap(store_id="demo", width=10, height=10, items=demo_map_cells())
    grid = build_grid(store_map.width, store_map.height, store_map.items)
    entrance = find_entrance(store_map.items)

    print("✓ Walkability grid:")
    print("-" * 60)
    print(grid.to_dataframe().astype(int))

    # =========================================================================
    # STEP 2: ACCESS POINTS
    # =========================================================================

    shelves = {"bread": Coordinate(2, 5), "apples": Coordinate(8, 6), "milk": Coordinate(3, 8)}
    access_points = []
    print("\n✓ Access points:")
    print("-" * 60)
    for product_id, shelf in shelves.items():
        point = nearest_accessible_point(grid, shelf, product_id=product_id)
        access_points.append(AccessPoint(product_id=product_id, coordinate=point))
        print(f"  {product_id:8} shelf ({shelf.x},{shelf.y}) -> walk to ({point.x},{point.y})")

    # =========================================================================
    # STEP 3: COMPARE PATH FINDERS ON ONE LEG
    # =========================================================================

    print("\n✓ Entrance -> milk:")
    print("-" * 60)
    for name in ("astar", "bfs", "dfs"):
        path = get_finder(name).find_path(grid, entrance, access_points[2].coordinate)
        print(f"  {name:6} {len(path):3} cells")

    # =========================================================================
    # STEP 4: SOLVE FOR THE BEST VISITING ORDER
    # =========================================================================

    result = best_order(grid, get_finder("astar"), entrance, access_points)
    print_solver_result(result)

    # =========================================================================
    # STEP 5: FULL ROUTE
    # =========================================================================

    products = [
        ShoppingListProduct(productId=product_id, location={"x": shelf.x, "y": shelf.y})
        for product_id, shelf in shelves.items()
    ]
    products.append(ShoppingListProduct(productId="coffee"))

    plan = plan_route(store_map, products, settings=PlannerSettings())
    print_route_plan(plan, grid)

    print("\n✓ JSON Output:")
    print("-" * 60)
    print(plan.to_json())


if __name__ == "__main__":
    main()
