"""Public API surface for fv_common."""

from fv_common.errors import (
    ConfigurationError,
    FetchFailure,
    FormViewError,
    MalformedSchemaError,
    StaleResultError,
    error_to_payload,
    wrap_error,
)
from fv_common.logging import configure_logging
from fv_common.observable import Observable

__all__ = [
    "ConfigurationError",
    "FetchFailure",
    "FormViewError",
    "MalformedSchemaError",
    "Observable",
    "StaleResultError",
    "configure_logging",
    "error_to_payload",
    "wrap_error",
]
