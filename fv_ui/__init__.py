"""Console presentation for form views."""

from fv_ui.render import FormConsole, table_rows

__all__ = ["FormConsole", "table_rows"]
