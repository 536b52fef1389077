"""Strict configuration namespace helper for `pipelinekit`."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable

_MISSING = object()


@dataclass
class ConfigNamespace:
    """Typed accessors over a config mapping that remember which keys were read.

    Anything left unread after parsing is reported by `unconsumed_paths()` so
    callers can warn about (or reject) typos in config files.
    """

    data: Mapping[str, Any]
    path: str
    _consumed: set[str] = field(default_factory=set, init=False, repr=False)
    _children: dict[str, "ConfigNamespace"] = field(default_factory=dict, init=False, repr=False)
    _effective: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def key_path(self, key: str) -> str:
        return f"{self.path}.{key}" if self.path else key

    def unconsumed_paths(self) -> tuple[str, ...]:
        paths = [self.key_path(str(key)) for key in self.data if key not in self._consumed]
        for child in self._children.values():
            paths.extend(child.unconsumed_paths())
        return tuple(sorted(paths))

    def assert_consumed(self) -> None:
        unknown = self.unconsumed_paths()
        if unknown:
            raise ValueError(
                f"Unknown config keys under {self.path or '<root>'}: {', '.join(unknown)}"
            )

    def effective_values(self) -> dict[str, Any]:
        """Values actually used (defaults included), nested like the source mapping."""

        out = dict(self._effective)
        for key, child in self._children.items():
            nested = child.effective_values()
            if nested:
                out[key] = nested
        return out

    def _read(self, key: str, default: Any) -> tuple[str, Any]:
        if not isinstance(key, str) or not key.strip():
            raise TypeError("ConfigNamespace key must be a non-empty string")
        key = key.strip()
        if key in self._children:
            raise ValueError(f"{self.key_path(key)} already accessed as a nested namespace")
        if key not in self.data and default is _MISSING:
            raise ValueError(f"Missing required config key: {self.key_path(key)}")
        self._consumed.add(key)
        return key, self.data.get(key, default)

    def namespace(self, key: str) -> "ConfigNamespace":
        """Return the nested mapping under `key`; absent or null yields an empty namespace."""

        key = (key or "").strip()
        if not key:
            raise TypeError("ConfigNamespace key must be a non-empty string")
        if key not in self._children:
            raw = self.data.get(key)
            if raw is not None and not isinstance(raw, Mapping):
                raise TypeError(f"{self.key_path(key)} must be a mapping (type={type(raw).__name__})")
            self._consumed.add(key)
            self._children[key] = ConfigNamespace(dict(raw or {}), path=self.key_path(key))
        return self._children[key]

    def get_bool(self, key: str, *, default: bool | object = _MISSING) -> bool:
        key, value = self._read(key, default)
        if not isinstance(value, bool):
            raise TypeError(f"{self.key_path(key)} must be a boolean (type={type(value).__name__})")
        self._effective[key] = value
        return value

    def get_str(
        self,
        key: str,
        *,
        default: str | None | object = _MISSING,
        allow_empty: bool = False,
        choices: Iterable[str] | None = None,
    ) -> str | None:
        """Stripped string value; `None` passes through when it is the value or default."""

        key, raw = self._read(key, default)
        if raw is None:
            self._effective[key] = None
            return None
        if not isinstance(raw, str):
            raise TypeError(f"{self.key_path(key)} must be a string (type={type(raw).__name__})")

        value = raw.strip()
        if not value and not allow_empty:
            raise ValueError(f"{self.key_path(key)} cannot be empty")
        if choices is not None:
            allowed = sorted(set(choices))
            if value not in allowed:
                raise ValueError(
                    f"{self.key_path(key)} must be one of: {', '.join(allowed)} (got {value!r})"
                )
        self._effective[key] = value
        return value

    def get_list_str(
        self,
        key: str,
        *,
        default: list[str] | tuple[str, ...] | object = _MISSING,
        allow_empty: bool = False,
        allow_scalar: bool = False,
    ) -> list[str]:
        """Parse a list of non-empty strings.

        With `allow_scalar=True` a single string is accepted as a one-item list.
        """

        key, raw = self._read(key, default)
        if raw is None:
            raw = []
        elif allow_scalar and isinstance(raw, str):
            raw = [raw] if raw.strip() else []
        if not isinstance(raw, (list, tuple)):
            raise TypeError(f"{self.key_path(key)} must be a list[str] (type={type(raw).__name__})")

        items: list[str] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, str):
                raise TypeError(
                    f"{self.key_path(key)}[{idx}] must be a string (type={type(item).__name__})"
                )
            if not item.strip():
                raise ValueError(f"{self.key_path(key)}[{idx}] cannot be empty")
            items.append(item.strip())
        if not items and not allow_empty:
            raise ValueError(f"{self.key_path(key)} cannot be empty")

        self._effective[key] = list(items)
        return items

    def get_raw(self, key: str, *, default: Any = None) -> Any:
        """Return the untyped value; the caller owns validation."""

        key, value = self._read(key, default)
        self._effective[key] = value
        return value
