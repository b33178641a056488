"""UI-agnostic viewmodels for form views."""

from fv_app.viewmodels.form_view import (
    FormViewModel,
    FormViewSnapshot,
    SearchState,
    SubViewSnapshot,
    build_form_view_model,
)

__all__ = [
    "FormViewModel",
    "FormViewSnapshot",
    "SearchState",
    "SubViewSnapshot",
    "build_form_view_model",
]
