"""
Streamlit UI for the Store Route Planner

- Input: Shopping list + path finding strategy
- Compute: Shortest walk visiting every shelf on the list
- Display: Store map with the route, per-product segments and JSON payload
"""

import os

import pandas as pd
import streamlit as st
from dotenv import load_dotenv

from planner_errors import PlanningError
from route_planner import PlannerSettings, print_route_plan, render_route_frame
from store_grid import build_grid

# Load environment variables
load_dotenv()

st.set_page_config(page_title="Store Route Planner", layout="wide")

st.title("Store Route Planner 🛒🗺️")
st.caption("Shortest walk through the store for your shopping list")

# ============================================================================
# DATABASE INITIALIZATION
# ============================================================================


@st.cache_resource
def init_database():
    """
    Initialize database connection.

    Seeds the demo store when SEED_SAMPLE_DATA is enabled (default).
    """
    from database import get_db_manager
    from sample_data import SampleDataManager

    db_manager = get_db_manager()
    db_manager.init_db()

    if not db_manager.health_check():
        raise RuntimeError("Database connection failed")

    if os.getenv("SEED_SAMPLE_DATA", "true").lower() in ("1", "true", "yes", "on"):
        with db_manager.session_scope() as session:
            SampleDataManager.seed_default_data(session)

    print(f"✓ Database connected: {db_manager.db_url.split('@')[-1]}")  # Hide credentials
    return db_manager


try:
    db_manager = init_database()
except Exception as e:
    st.error(f"❌ Failed to initialize database: {e}")
    st.stop()

from map_service import StoreMapService
from models import ShoppingList

defaults = PlannerSettings.from_env()

session = db_manager.get_session()
try:
    shopping_lists = session.query(ShoppingList).all()
    list_labels = {
        f"#{sl.id} - {sl.store.name} ({sl.creator_id}, {len(sl.items)} items)": sl.id
        for sl in shopping_lists
    }
finally:
    session.close()

if not list_labels:
    st.write("No shopping lists found. Enable SEED_SAMPLE_DATA or add one to the database.")
    st.stop()

# User inputs
col_input_1, col_input_2, col_input_3 = st.columns([2, 1, 1])

with col_input_1:
    selected_label = st.selectbox("Shopping list", list(list_labels))

with col_input_2:
    algorithms = ["astar", "bfs", "dfs"]
    algorithm = st.selectbox(
        "Path finding",
        algorithms,
        index=algorithms.index(defaults.algorithm) if defaults.algorithm in algorithms else 0,
        help="A* is the production strategy; DFS finds a path, not the shortest one"
    )

with col_input_3:
    allow_diagonal = st.checkbox("Diagonal moves (A*)", value=defaults.allow_diagonal)
    include_return_trip = st.checkbox("Return to entrance", value=defaults.include_return_trip)

if st.button("🧭 Plan route", type="primary"):
    settings = PlannerSettings(
        grid_width=defaults.grid_width,
        grid_height=defaults.grid_height,
        max_stops=defaults.max_stops,
        timeout_seconds=defaults.timeout_seconds,
        algorithm=algorithm,
        allow_diagonal=allow_diagonal,
        include_return_trip=include_return_trip,
    )

    session = db_manager.get_session()
    try:
        with st.spinner("Searching every visiting order..."):
            plan = StoreMapService.plan_shopping_list_route(
                list_labels[selected_label], session, settings=settings
            )
            store_map = StoreMapService.load_store_map(int(plan.store_id), session, settings)
    except PlanningError as e:
        st.error(f"❌ Route planning failed [{e.code}]: {e.message}")
        st.stop()
    finally:
        session.close()

    grid = build_grid(store_map.width, store_map.height, store_map.items)
    print_route_plan(plan, grid)

    col_map, col_summary = st.columns([3, 2])

    with col_map:
        st.subheader("Store map")
        st.dataframe(render_route_frame(grid, plan), use_container_width=True)
        st.caption("E entrance · # blocked · * route · 1..n pick-up stops")

    with col_summary:
        st.subheader("Route")
        st.metric("🚶 Cells walked", f"{plan.total_cost:.0f}")
        st.metric("🔁 Orders analyzed", plan.orders_evaluated)
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "product": segment.product_id or "back to entrance",
                        "cells": len(segment.path),
                        "from": f"({segment.path[0].x}, {segment.path[0].y})" if segment.path else "",
                        "to": f"({segment.path[-1].x}, {segment.path[-1].y})" if segment.path else "",
                    }
                    for segment in plan.segments
                ]
            ),
            use_container_width=True,
        )
        if plan.skipped_products:
            st.warning(f"⚠️ Products without shelf location: {', '.join(plan.skipped_products)}")

    with st.expander("JSON payload"):
        st.json(plan.to_dict())

else:
    st.write("Pick a shopping list and press 'Plan route' to begin.")

# Footer
st.markdown("---")
st.caption("🛒 Store Route Planner | Exhaustive visiting order search, A* / BFS / DFS legs")
