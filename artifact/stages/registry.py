from __future__ import annotations

from functools import lru_cache

from pipelinekit.stage_registry import StageRegistry
from pipelinekit.stage_types import StageInstance


@lru_cache(maxsize=1)
def get_stage_registry() -> StageRegistry:
    # Single import point for stage refs; registration order is execution order.
    from artifact.stages import __all_stages__  # noqa: PLC0415

    registry = StageRegistry.from_refs(__all_stages__)
    registry.validate_io()
    return registry


def default_stage_instances() -> list[StageInstance]:
    return [ref.instance() for ref in get_stage_registry().ordered()]
