"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (HEADNAV__PANEL__WIDTH=400)
  2. headnav.yaml           (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional and all fields have sensible defaults. Panel
dimensions are never rejected: bad values fall back to defaults and
out-of-range values are clamped.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from headnav.dimensions import (
    DEFAULT_PANEL_HEIGHT_RATIO,
    DEFAULT_PANEL_WIDTH,
    normalize_panel_height_ratio,
    normalize_panel_width,
)
from headnav.models.panel import PanelDimensions


def _find_config_file() -> str | None:
    """Return the path of the first headnav.yaml found, or None."""
    candidates = [
        Path("headnav.yaml"),
        Path(platformdirs.user_config_dir("headnav")) / "headnav.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


def _coerce_number(raw: Any) -> Any:
    # Environment variables always arrive as strings
    if isinstance(raw, str):
        try:
            return float(raw)
        except ValueError:
            return None
    return raw


class PanelSettings(BaseModel):
    width: int = DEFAULT_PANEL_WIDTH
    max_height_ratio: float = DEFAULT_PANEL_HEIGHT_RATIO

    @field_validator("width", mode="before")
    @classmethod
    def clamp_width(cls, v: Any) -> int:
        value, _ = normalize_panel_width(_coerce_number(v))
        return value

    @field_validator("max_height_ratio", mode="before")
    @classmethod
    def clamp_height_ratio(cls, v: Any) -> float:
        value, _ = normalize_panel_height_ratio(_coerce_number(v))
        return value

    def dimensions(self) -> PanelDimensions:
        return PanelDimensions(width=self.width, max_height_ratio=self.max_height_ratio)


class NavigationSettings(BaseModel):
    filter_debounce_ms: float = Field(default=150, ge=0)
    preview_debounce_ms: float = Field(default=30, ge=0)
    copy_feedback_ms: float = Field(default=600, ge=0)


class ScrollSettings(BaseModel):
    """Scroll-convergence policy.

    Headings overshot past the viewport top look worse than headings slightly
    below it, so the negative tolerance is much stricter.
    """

    first_delay_ms: float = Field(default=160, ge=0)
    retry_delay_ms: float = Field(default=260, ge=0)
    tolerance_px: float = Field(default=12, ge=0)
    negative_tolerance_px: float = Field(default=1.5, ge=0)
    max_attempts: int = Field(default=2, ge=0)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: HEADNAV__SCROLL__MAX_ATTEMPTS=3
        env_prefix="HEADNAV__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    panel: PanelSettings = PanelSettings()
    navigation: NavigationSettings = NavigationSettings()
    scroll: ScrollSettings = ScrollSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
