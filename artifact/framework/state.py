from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any, Callable

from artifact.framework.errors import MissingStateError, StateError

CHANGES = "changes"
ENTRYPOINTS = "entrypoints"
DEPENDENCIES = "dependencies"
TARGETS = "targets"
REBUILD_TARGETS = "rebuild targets"
BUILD_LOGS = "build logs"


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _is_str_list_mapping(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(key, str) and _is_str_list(item) for key, item in value.items()
    )


def _is_str_mapping(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(key, str) and isinstance(item, str) for key, item in value.items()
    )


# key -> (human-readable type, validator)
STATE_SCHEMA: Mapping[str, tuple[str, Callable[[Any], bool]]] = {
    CHANGES: ("list[str]", _is_str_list),
    ENTRYPOINTS: ("list[str]", _is_str_list),
    DEPENDENCIES: ("dict[str, list[str]]", _is_str_list_mapping),
    TARGETS: ("list[str]", _is_str_list),
    REBUILD_TARGETS: ("list[str]", _is_str_list),
    BUILD_LOGS: ("dict[str, str]", _is_str_mapping),
}


class PipelineState(MutableMapping[str, Any]):
    """Append-only, type-checked mapping threaded between stages.

    Every key has one declared type for the whole run. Writing an undeclared
    key, a value of the wrong type, or a key that already exists raises
    `StateError`; reading an absent key through `require` raises
    `MissingStateError`.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self[key] = value

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        schema = STATE_SCHEMA.get(key)
        if schema is None:
            raise StateError(f"unknown pipeline state key: {key!r}")
        if key in self._data:
            raise StateError(f"pipeline state key {key!r} is already set")
        type_name, is_valid = schema
        if not is_valid(value):
            raise StateError(
                f"pipeline state key {key!r} must be {type_name} (got {type(value).__name__})"
            )
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        raise StateError(f"pipeline state is append-only; cannot delete {key!r}")

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"PipelineState({self._data!r})"

    def require(
        self,
        key: str,
        *,
        missing: Callable[[], Exception] | None = None,
    ) -> Any:
        if key not in self._data:
            raise missing() if missing is not None else MissingStateError(key)
        return self._data[key]
