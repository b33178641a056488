"""Engine settings with environment overrides."""

from __future__ import annotations

import os
from datetime import tzinfo
from typing import Any, Callable, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from fv_common.config.env import (
    parse_bool_env,
    parse_choice_env,
    parse_float_env,
    parse_int_env,
    parse_str_env,
)
from fv_common.errors import ConfigurationError
from fv_engine.api import FuzzyOptions, SearchMode

_SEARCH_MODES = tuple(mode.value for mode in SearchMode)


class EngineSettings(BaseModel):
    """Search behaviour and viewer timezone for one view-model."""

    search_enabled: bool = Field(default=True, description="Enable in-memory search")
    search_mode: SearchMode = Field(default=SearchMode.AUTO, description="Default match mode")
    search_threshold: float = Field(
        default=0.35, ge=0.0, le=1.0, description="Fuzzy tolerance, 0 exact to 1 anything"
    )
    search_distance: int = Field(
        default=120, ge=0, description="How far into a row a fuzzy match may start"
    )
    search_ignore_location: bool = Field(
        default=True, description="Ignore match position for fuzzy search"
    )
    viewer_timezone: Optional[str] = Field(
        default=None, description="IANA zone for date/time display; None uses local time"
    )

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("viewer_timezone")
    @classmethod
    def _validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def fuzzy_options(self) -> FuzzyOptions:
        return FuzzyOptions(
            threshold=self.search_threshold,
            distance=self.search_distance,
            ignore_location=self.search_ignore_location,
        )

    def tzinfo(self) -> tzinfo | None:
        return ZoneInfo(self.viewer_timezone) if self.viewer_timezone else None

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "EngineSettings":
        """Build settings from ``FV_SEARCH_*`` and ``FV_VIEWER_TZ``.

        Explicit keyword overrides win over the environment. A variable that is
        set but cannot be parsed raises :class:`ConfigurationError`.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        _read(env, "FV_SEARCH_ENABLED", parse_bool_env, values, "search_enabled")
        _read(
            env,
            "FV_SEARCH_MODE",
            lambda raw: parse_choice_env(raw, _SEARCH_MODES),
            values,
            "search_mode",
        )
        _read(env, "FV_SEARCH_THRESHOLD", parse_float_env, values, "search_threshold")
        _read(env, "FV_SEARCH_DISTANCE", parse_int_env, values, "search_distance")
        _read(
            env,
            "FV_SEARCH_IGNORE_LOCATION",
            parse_bool_env,
            values,
            "search_ignore_location",
        )
        _read(env, "FV_VIEWER_TZ", parse_str_env, values, "viewer_timezone")
        values.update({key: value for key, value in overrides.items() if value is not None})

        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationError(
                "Invalid engine settings",
                context={"errors": [error.get("msg", "") for error in exc.errors()]},
                cause=exc,
            ) from exc


def _read(
    env: Mapping[str, str],
    name: str,
    parser: Callable[[str | None], Any],
    values: dict[str, Any],
    field: str,
) -> None:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return
    parsed = parser(raw)
    if parsed is None:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}",
            context={"variable": name, "value": raw},
        )
    values[field] = parsed
