"""
Theme catalog: named themes loaded from YAML, looked up by key or display name.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_THEME_KEY = "default"

DEFAULT_THEMES_YAML = """
themes:
  default:
    name: Default
    vars:
      color-bg: "#0b1120"
      color-surface: "#111827"
      color-text: "#e5e7eb"
      color-accent: "#f97316"
  light:
    name: Light
    vars:
      color-bg: "#f9fafb"
      color-surface: "#ffffff"
      color-text: "#111827"
      color-accent: "#ea580c"
"""


class Theme(BaseModel):
    name: str
    vars: Dict[str, str] = Field(default_factory=dict)


class ThemeCatalog(BaseModel):
    themes: Dict[str, Theme] = Field(default_factory=dict)

    def active_theme(self, name: Optional[str]) -> Theme:
        """
        Find a theme by key (``autumn_mist``), then by display name
        (``Autumn Mist``, case-insensitive). Falls back to the default theme,
        then to an empty one.
        """
        name = name or DEFAULT_THEME_KEY

        if name in self.themes:
            return self.themes[name]

        for theme in self.themes.values():
            if theme.name.lower() == name.lower():
                return theme

        if DEFAULT_THEME_KEY in self.themes:
            logger.info(f"Theme '{name}' not found, using default")
            return self.themes[DEFAULT_THEME_KEY]

        return Theme(name="Default")


def parse_theme_catalog(text: str) -> ThemeCatalog:
    content = yaml.safe_load(text) or {}
    return ThemeCatalog.model_validate(content)


def load_theme_catalog(path: Optional[str | Path] = None) -> ThemeCatalog:
    """Load themes from a YAML file, or the built-in themes when no path is given."""
    if path is None:
        return parse_theme_catalog(DEFAULT_THEMES_YAML)

    path = Path(path)
    with open(path, "r", encoding="utf-8") as fp:
        catalog = parse_theme_catalog(fp.read())
    logger.info(f"Loaded {len(catalog.themes)} themes from {path}")
    return catalog
