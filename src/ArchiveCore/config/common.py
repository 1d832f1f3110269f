"""Typed access to one section of the YAML configuration.

Every error names the full dotted key (``browser.max_results``) so a bad
override file points straight at the offending line. Wrong types raise
``TypeError``; missing keys and violated constraints raise ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

_REQUIRED = object()


@dataclass(frozen=True, slots=True)
class ConfigSection:
    """A top-level config mapping together with its name."""

    name: str
    values: Mapping[str, Any]

    @classmethod
    def load(cls, raw: Mapping[str, Any], name: str, *, required: bool) -> ConfigSection:
        """Pick section ``name`` out of the root mapping.

        Raises:
            ValueError: If the section is required but missing.
            TypeError: If the section is not a mapping.
        """
        section = raw.get(name)
        if section is None:
            if required:
                raise ValueError(f"Missing required config: {name}")
            return cls(name, {})
        if not isinstance(section, Mapping):
            raise TypeError(f"{name} must be an object")
        return cls(name, section)

    def key(self, field: str) -> str:
        return f"{self.name}.{field}"

    def value(self, field: str, default: Any = _REQUIRED) -> Any:
        if field in self.values:
            return self.values[field]
        if default is _REQUIRED:
            raise ValueError(f"Missing required config: {self.key(field)}")
        return default

    def get_str(self, field: str, default: Any = _REQUIRED) -> str:
        value = self.value(field, default)
        if not isinstance(value, str):
            raise TypeError(f"{self.key(field)} must be a string")
        return value

    def get_optional_str(self, field: str) -> str | None:
        value = self.value(field, None)
        if value is None:
            return None
        if not isinstance(value, str):
            raise TypeError(f"{self.key(field)} must be a string")
        return value

    def get_bool(self, field: str, default: Any = _REQUIRED) -> bool:
        value = self.value(field, default)
        if not isinstance(value, bool):
            raise TypeError(f"{self.key(field)} must be a boolean")
        return value

    def get_int(self, field: str, default: Any = _REQUIRED) -> int:
        value = self.value(field, default)
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{self.key(field)} must be an integer")
        return value

    def get_float(self, field: str, default: Any = _REQUIRED) -> float:
        """Accept ints and floats; YAML ``30`` and ``30.0`` mean the same timeout."""
        value = self.value(field, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"{self.key(field)} must be a number")
        return float(value)


def require(condition: bool, message: str) -> None:
    """Raise ``ValueError(message)`` unless ``condition`` holds."""
    if not condition:
        raise ValueError(message)
