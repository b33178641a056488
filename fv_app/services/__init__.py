"""Application services around the engine."""

from fv_app.services.column_scale import ColumnScaleContext, calc_scale, scaled
from fv_app.services.static_source import StaticDataSource
from fv_app.services.table_meta import TableMetaLoader

__all__ = [
    "ColumnScaleContext",
    "StaticDataSource",
    "TableMetaLoader",
    "calc_scale",
    "scaled",
]
