from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import Any, Iterable

from pipelinekit.stage_types import StageRef


@dataclass(frozen=True)
class StageRegistry:
    """Stage refs keyed by id, kept in registration order."""

    _by_id: dict[str, StageRef]

    @classmethod
    def from_refs(cls, refs: Iterable[StageRef]) -> "StageRegistry":
        by_id: dict[str, StageRef] = {}
        for ref in refs:
            if ref.id in by_id:
                raise ValueError(f"Duplicate stage kind id: {ref.id}")
            by_id[ref.id] = ref
        return cls(_by_id=by_id)

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_id))

    def ordered(self) -> tuple[StageRef, ...]:
        return tuple(self._by_id.values())

    def describe(self) -> tuple[dict[str, Any], ...]:
        return tuple(
            {
                "stage_id": ref.id,
                "doc": ref.doc,
                "source": ref.source,
                "tags": list(ref.tags),
                "kind": ref.kind,
                "io": {"requires": list(ref.io.requires), "provides": list(ref.io.provides)},
            }
            for ref in self.ordered()
        )

    def resolve(self, stage_id: str) -> StageRef:
        """Look up by full id, or by the part after the first dot when unambiguous."""

        if not isinstance(stage_id, str) or not stage_id.strip():
            raise ValueError("stage_id must be a non-empty string")
        key = stage_id.strip()
        if key in self._by_id:
            return self._by_id[key]

        available = ", ".join(self.available()) or "<none>"
        if "." not in key:
            matches = [full for full in self.available() if full.endswith("." + key)]
            if len(matches) == 1:
                return self._by_id[matches[0]]
            if matches:
                raise ValueError(f"Ambiguous stage kind id: {stage_id} (matches: {', '.join(matches)})")

        suggestions = self.suggest(key)
        hint = f"; did you mean: {', '.join(suggestions)}" if suggestions else ""
        raise ValueError(f"Unknown stage kind id: {stage_id} (available: {available}){hint}")

    def suggest(self, stage_id: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (stage_id or "").strip()
        if not key or not self._by_id:
            return ()

        by_suffix: dict[str, list[str]] = {}
        for full in self.available():
            by_suffix.setdefault(full.split(".", 1)[-1], []).append(full)

        close = difflib.get_close_matches(key, list(by_suffix), n=limit)
        expanded = [full for suffix in close for full in by_suffix[suffix]]
        if expanded:
            return tuple(expanded[:limit])
        return tuple(difflib.get_close_matches(key, list(self.available()), n=limit))

    def validate_io(self) -> None:
        """Check that every required state key is provided by an earlier stage."""

        provided: set[str] = set()
        for ref in self.ordered():
            missing = [key for key in ref.io.requires if key not in provided]
            if missing:
                raise ValueError(
                    f"Stage {ref.id} requires {', '.join(missing)} before any stage provides it"
                )
            provided.update(ref.io.provides)
