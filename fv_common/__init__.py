"""Shared helpers for the form view engine."""

from fv_common.api import FormViewError, Observable, configure_logging

__all__ = ["configure_logging", "FormViewError", "Observable"]
