"""Application layer between the engine and presentation code."""

from fv_app.api import EngineSettings, FormViewModel, FormViewSnapshot, StaticDataSource

__all__ = ["EngineSettings", "FormViewModel", "FormViewSnapshot", "StaticDataSource"]
