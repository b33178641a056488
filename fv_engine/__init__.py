"""Schema-driven table engine: header plans, search and navigation."""

from fv_engine.api import (
    FilterNavigator,
    SubRecordNavigator,
    build_header_plan,
    build_index,
    search,
)

__all__ = [
    "FilterNavigator",
    "SubRecordNavigator",
    "build_header_plan",
    "build_index",
    "search",
]
