from __future__ import annotations

import posixpath
from collections.abc import Iterable, Mapping, Sequence

from artifact.framework.config import BuildConfig
from artifact.framework.errors import (
    ChangesNotIdentified,
    DependenciesNotIdentified,
    NoTargetsToRebuild,
)
from artifact.framework.runtime import BuildContext
from artifact.framework.stage_blocks import make_action_stage_block
from artifact.framework.state import CHANGES, DEPENDENCIES, TARGETS
from pipelinekit.stage_types import StageIO, StageRef

KIND_ID = "impact.compute"


def changed_locations(changes: Iterable[str]) -> set[str]:
    """Coarsen changed files to their containing directories (`.` at the top level)."""

    return {posixpath.dirname(change) or "." for change in changes}


def compute_targets(
    changes: Iterable[str], dependencies: Mapping[str, Sequence[str]]
) -> list[str]:
    """Entrypoints with at least one dependency path equal to a changed location.

    Matching is exact string equality; the result follows the iteration order
    of `dependencies`.
    """

    locations = changed_locations(changes)
    return [
        entrypoint
        for entrypoint, deps in dependencies.items()
        if any(dep in locations for dep in deps)
    ]


def _build(inputs: BuildConfig, *, instance_id: str):
    def _precheck(ctx: BuildContext) -> None:
        ctx.state.require(CHANGES, missing=ChangesNotIdentified)
        ctx.state.require(DEPENDENCIES, missing=DependenciesNotIdentified)

    def _action(ctx: BuildContext) -> list[str]:
        changes: list[str] = ctx.state.require(CHANGES, missing=ChangesNotIdentified)
        dependencies: dict[str, list[str]] = ctx.state.require(
            DEPENDENCIES, missing=DependenciesNotIdentified
        )

        targets = compute_targets(changes, dependencies)
        num_targets = len(targets)
        ctx.logger.info("identified %d target(s) to be rebuilt", num_targets)
        if not targets:
            raise NoTargetsToRebuild()

        for idx, target in enumerate(targets, start=1):
            ctx.logger.info("[%d/%d] target to be rebuilt: %r", idx, num_targets, target)
        return targets

    return make_action_stage_block(
        instance_id, fn=_action, precheck=_precheck, capture_key=TARGETS
    )


STAGE = StageRef(
    id=KIND_ID,
    builder=_build,
    doc="Mark entrypoints whose first-party dependencies live in a changed directory.",
    tags=("impact",),
    kind="action",
    io=StageIO(requires=(CHANGES, DEPENDENCIES), provides=(TARGETS,)),
)
