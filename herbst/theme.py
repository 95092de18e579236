"""
Theme application: project a flat theme-variable mapping onto the root style
context as CSS custom properties (``--<name>``).
"""

import logging
import re
from typing import Dict, Mapping, Protocol

from herbst.errors import ThemeError

logger = logging.getLogger(__name__)

VAR_PREFIX = "--"

_VAR_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


class StyleRoot(Protocol):
    """The document's root rendering context."""

    def set_property(self, name: str, value: str) -> None: ...

    def remove_property(self, name: str) -> None: ...


class InlineStyleRoot:
    """In-memory style root; renders to a ``:root { ... }`` block."""

    def __init__(self):
        self.properties: Dict[str, str] = {}

    def set_property(self, name: str, value: str) -> None:
        self.properties[name] = value

    def remove_property(self, name: str) -> None:
        self.properties.pop(name, None)

    def get_property(self, name: str) -> str | None:
        return self.properties.get(name)

    def to_css(self) -> str:
        lines = [f"  {name}: {value};" for name, value in sorted(self.properties.items())]
        return ":root {\n" + "\n".join(lines) + "\n}" if lines else ":root {}"


class ThemeApplier:
    """
    Clear-then-set theme application.

    Variables set by a previous ``apply`` that are missing from the new
    mapping are removed before the new values are written, so repeated or
    partial calls always leave exactly the given mapping on the root.
    """

    def __init__(self, root: StyleRoot):
        self._root = root
        self._applied: Dict[str, str] = {}

    @property
    def applied(self) -> Dict[str, str]:
        return dict(self._applied)

    def apply(self, theme_vars: Mapping[str, str]) -> None:
        for key in theme_vars:
            if not _VAR_NAME.match(key):
                raise ThemeError(f"invalid theme variable name {key!r}")

        stale = [key for key in self._applied if key not in theme_vars]
        for key in stale:
            self._root.remove_property(VAR_PREFIX + key)

        for key, value in theme_vars.items():
            self._root.set_property(VAR_PREFIX + key, value)

        self._applied = dict(theme_vars)
        logger.debug(f"Theme applied: {len(theme_vars)} variables, {len(stale)} cleared")

    def clear(self) -> None:
        """Remove every variable this applier has set."""
        for key in self._applied:
            self._root.remove_property(VAR_PREFIX + key)
        self._applied = {}
