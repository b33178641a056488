"""Tests for engine settings and their environment overrides."""

from __future__ import annotations

import pytest

from fv_app.settings import EngineSettings
from fv_common.errors import ConfigurationError
from fv_engine.search import FuzzyOptions, SearchMode


pytestmark = pytest.mark.unit_app


def test_defaults_without_environment() -> None:
    settings = EngineSettings.from_env({})

    assert settings.search_enabled is True
    assert settings.search_mode is SearchMode.AUTO
    assert settings.fuzzy_options() == FuzzyOptions(threshold=0.35, distance=120, ignore_location=True)
    assert settings.tzinfo() is None


def test_environment_values_are_parsed() -> None:
    settings = EngineSettings.from_env(
        {
            "FV_SEARCH_ENABLED": "off",
            "FV_SEARCH_MODE": "FUZZY",
            "FV_SEARCH_THRESHOLD": "0.2",
            "FV_SEARCH_DISTANCE": "40",
            "FV_SEARCH_IGNORE_LOCATION": "no",
            "FV_VIEWER_TZ": " Europe/Oslo ",
        }
    )

    assert settings.search_enabled is False
    assert settings.search_mode is SearchMode.FUZZY
    assert settings.fuzzy_options() == FuzzyOptions(threshold=0.2, distance=40, ignore_location=False)
    assert settings.viewer_timezone == "Europe/Oslo"
    assert str(settings.tzinfo()) == "Europe/Oslo"


def test_blank_variables_fall_back_to_defaults() -> None:
    settings = EngineSettings.from_env({"FV_SEARCH_MODE": "  ", "FV_VIEWER_TZ": ""})
    assert settings.search_mode is SearchMode.AUTO
    assert settings.viewer_timezone is None


def test_keyword_overrides_win_and_none_is_skipped() -> None:
    settings = EngineSettings.from_env(
        {"FV_SEARCH_MODE": "exact", "FV_SEARCH_DISTANCE": "10"},
        search_mode=SearchMode.FUZZY,
        search_distance=None,
    )
    assert settings.search_mode is SearchMode.FUZZY
    assert settings.search_distance == 10


@pytest.mark.parametrize(
    ("name", "raw"),
    [
        ("FV_SEARCH_ENABLED", "perhaps"),
        ("FV_SEARCH_MODE", "regex"),
        ("FV_SEARCH_THRESHOLD", "high"),
        ("FV_SEARCH_DISTANCE", "far"),
    ],
)
def test_unparsable_variables_raise(name: str, raw: str) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        EngineSettings.from_env({name: raw})
    assert excinfo.value.context["variable"] == name


def test_out_of_range_values_raise_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Invalid engine settings"):
        EngineSettings.from_env({"FV_SEARCH_THRESHOLD": "1.5"})


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        EngineSettings.from_env({"FV_VIEWER_TZ": "Mars/Olympus_Mons"})


def test_process_environment_is_the_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FV_SEARCH_MODE", "exact")
    assert EngineSettings.from_env().search_mode is SearchMode.EXACT
