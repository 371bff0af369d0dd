"""Viewer options settable with ``:set``."""

from __future__ import annotations

from dataclasses import dataclass


class ConfigError(ValueError):
    """Unknown option or invalid option value."""


@dataclass
class ViewerConfig:
    tabstop: int = 8
    wrapscan: bool = True
    ignorecase: bool = False
    hlsearch: bool = False

    _ALIASES = {
        "ts": "tabstop",
        "ws": "wrapscan",
        "ic": "ignorecase",
        "hls": "hlsearch",
    }
    _FLAGS = ("wrapscan", "ignorecase", "hlsearch")

    @classmethod
    def _canonical(cls, name: str) -> str:
        name = cls._ALIASES.get(name, name)
        if name != "tabstop" and name not in cls._FLAGS:
            raise ConfigError(f"Unknown option: {name}")
        return name

    def set_option(self, expr: str) -> None:
        """Apply one ``:set`` argument: ``ts=4``, ``wrapscan``, ``noic`` ..."""
        expr = expr.strip()
        if not expr:
            raise ConfigError("Missing option name")

        if "=" in expr:
            name, _, value = expr.partition("=")
            name = self._canonical(name.strip())
            if name != "tabstop":
                raise ConfigError(f"Option {name} takes no value")
            try:
                tabstop = int(value.strip())
            except ValueError:
                raise ConfigError(f"Invalid tabstop: {value.strip()!r}") from None
            if tabstop < 1:
                raise ConfigError(f"Invalid tabstop: {tabstop}")
            self.tabstop = tabstop
            return

        enable = True
        if expr.startswith("no") and expr not in self._ALIASES:
            enable = False
            expr = expr[2:]
        name = self._canonical(expr)
        if name == "tabstop":
            raise ConfigError("Option tabstop requires a value")
        setattr(self, name, enable)
