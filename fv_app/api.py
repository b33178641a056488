"""Public API surface for fv_app."""

from fv_app.services import (
    ColumnScaleContext,
    StaticDataSource,
    TableMetaLoader,
    calc_scale,
    scaled,
)
from fv_app.settings import EngineSettings
from fv_app.viewmodels import (
    FormViewModel,
    FormViewSnapshot,
    SearchState,
    SubViewSnapshot,
    build_form_view_model,
)

__all__ = [
    "ColumnScaleContext",
    "EngineSettings",
    "FormViewModel",
    "FormViewSnapshot",
    "SearchState",
    "StaticDataSource",
    "SubViewSnapshot",
    "TableMetaLoader",
    "build_form_view_model",
    "calc_scale",
    "scaled",
]
