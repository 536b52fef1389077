from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from pipelinekit.engine.pipeline import Block

StageKind = Literal["action", "composite"]


@dataclass(frozen=True)
class StageIO:
    """Declared state contract of a stage: keys it reads and keys it writes."""

    requires: tuple[str, ...] = ()
    provides: tuple[str, ...] = ()


class StageBuilder(Protocol):
    def __call__(self, inputs: Any, *, instance_id: str) -> Block:
        ...


def _optional_text(owner: str, value: Any) -> None:
    if value is not None and (not isinstance(value, str) or not value.strip()):
        raise TypeError(f"{owner} must be a non-empty string or None")


@dataclass(frozen=True)
class StageRef:
    """A registered stage kind: its id, builder, documentation and IO contract."""

    id: str
    builder: StageBuilder
    doc: str | None = None
    source: str | None = None
    tags: tuple[str, ...] = ()
    kind: StageKind | None = None
    io: StageIO = field(default_factory=StageIO)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise TypeError("StageRef.id must be a non-empty string")
        object.__setattr__(self, "id", self.id.strip())
        _optional_text("StageRef.doc", self.doc)
        _optional_text("StageRef.source", self.source)
        object.__setattr__(
            self, "tags", tuple(tag.strip() for tag in map(str, self.tags) if tag.strip())
        )
        if self.kind is not None and self.kind not in ("action", "composite"):
            raise ValueError(f"StageRef.kind must be one of: action, composite (got {self.kind!r})")

    def instance(self, instance_id: str | None = None) -> "StageInstance":
        return StageInstance(stage=self, instance_id=instance_id or self.id)

    def build(self, inputs: Any, *, instance_id: str) -> Block:
        """Call the builder and stamp the stage's identity onto the block meta."""

        if not isinstance(instance_id, str) or not instance_id.strip():
            raise ValueError("instance_id must be a non-empty string")
        instance_id = instance_id.strip()

        block = self.builder(inputs, instance_id=instance_id)
        if not isinstance(block, Block):
            raise TypeError(
                f"Stage builder returned non-Block (stage={self.id}, type={type(block).__name__})"
            )
        if block.name != instance_id:
            raise ValueError(
                f"Stage builder returned mismatched Block.name: expected={instance_id} got={block.name}"
            )

        defaults: dict[str, Any] = {"stage_kind": self.id, "stage_instance": instance_id}
        if self.doc:
            defaults["doc"] = self.doc
        if self.source:
            defaults["source"] = self.source
        if self.tags:
            defaults["tags"] = list(self.tags)
        return Block(name=block.name, nodes=list(block.nodes), meta={**defaults, **block.meta})


@dataclass(frozen=True)
class StageInstance:
    stage: StageRef
    instance_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.instance_id, str) or not self.instance_id.strip():
            raise TypeError("StageInstance.instance_id must be a non-empty string")
        object.__setattr__(self, "instance_id", self.instance_id.strip())

    def build(self, inputs: Any) -> Block:
        return self.stage.build(inputs, instance_id=self.instance_id)
