"""Configuration helpers for fv_common."""

from .env import (
    parse_bool_env,
    parse_choice_env,
    parse_float_env,
    parse_int_env,
    parse_str_env,
)

__all__ = [
    "parse_bool_env",
    "parse_choice_env",
    "parse_float_env",
    "parse_int_env",
    "parse_str_env",
]
