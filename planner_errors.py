"""
Route Planning Errors

Every failure the planner surfaces to a caller is a PlanningError carrying:
- code: stable machine-readable identifier (e.g. "no_entrance")
- message: human-readable explanation

Unreachable legs are NOT errors: the optimizer scores them as infinite cost.
"""

from typing import Dict, Optional


class PlanningError(Exception):
    """Base class for all route planning failures."""
    code = "planning_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {"error": self.code, "message": self.message}


class InvalidMapError(PlanningError):
    """Raised when a store map has out-of-bounds cells or several entrances"""
    code = "invalid_map"


class NoEntranceError(PlanningError):
    """Raised when a store map has no entrance cell"""
    code = "no_entrance"


class NoAccessiblePointError(PlanningError):
    """Raised when a shelf location has no walkable orthogonal neighbour"""
    code = "no_accessible_point"

    def __init__(self, message: str, product_id: Optional[str] = None):
        super().__init__(message)
        self.product_id = product_id

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data["productId"] = self.product_id
        return data


class InvalidEndpointError(PlanningError):
    """Raised when a path finder gets an out-of-bounds or blocked endpoint"""
    code = "invalid_endpoint"


class NoValidRouteError(PlanningError):
    """Raised when every visit order contains an unreachable leg"""
    code = "no_valid_route"


class TooManyStopsError(PlanningError):
    """Raised when a shopping list exceeds the configured stop limit"""
    code = "too_many_stops"


class PlanningCancelledError(PlanningError):
    """Raised when a planning request is cancelled or its deadline passes"""
    code = "planning_cancelled"


class MapNotFoundError(PlanningError):
    """Raised when a store has no map cells registered"""
    code = "map_not_found"


class ShoppingListNotFoundError(PlanningError):
    """Raised when a shopping list does not exist"""
    code = "shopping_list_not_found"
