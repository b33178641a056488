"""Public API surface for fv_engine."""

from fv_engine.cell_format import (
    PLACEHOLDER,
    cell_to_text,
    format_cell_value,
    is_editable_value,
)
from fv_engine.codec import (
    CANONICAL_TYPES,
    canonical_type,
    from_editable,
    to_display,
    to_editable,
    viewer_offset,
)
from fv_engine.filter_navigator import FilterNavigator, NavigatorState
from fv_engine.generation import CommitGuard, SessionEpoch, Ticket
from fv_engine.header_plan import (
    EMPTY_PLAN,
    HeaderGroup,
    HeaderPlan,
    StylesColumnMeta,
    build_header_plan,
)
from fv_engine.interfaces import RemoteDataSource, WireFilter
from fv_engine.models import (
    ColumnDescriptor,
    DisplayedWidget,
    DisplayPayload,
    Filter,
    Row,
    RowView,
    SubSelection,
    SubWidget,
    TableMeta,
    TreeNode,
    column_key,
    primary_key_token,
    synthetic_column_id,
    tree_key,
)
from fv_engine.payloads import parse_display_payload, parse_table_meta, parse_tree_branch
from fv_engine.remote import RemoteGateway
from fv_engine.search import FuzzyOptions, SearchIndex, SearchMode, build_index, search
from fv_engine.sub_navigator import SubRecordNavigator

__all__ = [
    "CANONICAL_TYPES",
    "EMPTY_PLAN",
    "PLACEHOLDER",
    "ColumnDescriptor",
    "CommitGuard",
    "DisplayPayload",
    "DisplayedWidget",
    "Filter",
    "FilterNavigator",
    "FuzzyOptions",
    "HeaderGroup",
    "HeaderPlan",
    "NavigatorState",
    "RemoteDataSource",
    "RemoteGateway",
    "Row",
    "RowView",
    "SearchIndex",
    "SearchMode",
    "SessionEpoch",
    "StylesColumnMeta",
    "SubRecordNavigator",
    "SubSelection",
    "SubWidget",
    "TableMeta",
    "Ticket",
    "TreeNode",
    "WireFilter",
    "build_header_plan",
    "build_index",
    "canonical_type",
    "cell_to_text",
    "column_key",
    "format_cell_value",
    "from_editable",
    "is_editable_value",
    "parse_display_payload",
    "parse_table_meta",
    "parse_tree_branch",
    "primary_key_token",
    "search",
    "synthetic_column_id",
    "to_display",
    "to_editable",
    "tree_key",
    "viewer_offset",
]
