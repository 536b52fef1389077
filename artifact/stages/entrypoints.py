from __future__ import annotations

import os

from artifact.framework.config import BuildConfig
from artifact.framework.errors import InvalidPrefix, NoChangesFound
from artifact.framework.runtime import BuildContext
from artifact.framework.stage_blocks import make_action_stage_block
from artifact.framework.state import CHANGES, ENTRYPOINTS
from pipelinekit.stage_types import StageIO, StageRef

KIND_ID = "entrypoints.discover"


def discover_entrypoints(prefix: str, *, skip_nested: bool, working_directory: str = "") -> list[str]:
    """Return entrypoint paths relative to the working directory.

    Without nesting the prefix itself is the only entrypoint. With nesting every
    immediate subdirectory of the prefix is one, in sorted order.
    """

    if skip_nested:
        return [os.path.normpath(prefix)]

    root = os.path.join(working_directory, prefix)
    entrypoints: list[str] = []
    for name in sorted(os.listdir(root)):
        if os.path.isdir(os.path.join(root, name)):
            entrypoints.append(os.path.normpath(os.path.join(prefix, name)))
    return entrypoints


def _build(inputs: BuildConfig, *, instance_id: str):
    prefix = inputs.cmd_prefix
    skip_nested = inputs.skip_nested_entrypoints
    working_directory = inputs.working_directory

    def _precheck(ctx: BuildContext) -> None:
        changes = ctx.state.require(CHANGES)
        if not changes:
            raise NoChangesFound()

        path_of_interest = os.path.join(working_directory, prefix)
        if not os.path.exists(path_of_interest):
            raise InvalidPrefix(f"entrypoint prefix does not exist: {path_of_interest}")
        if not os.path.isdir(path_of_interest):
            raise InvalidPrefix(f"entrypoint prefix must point to a directory: {path_of_interest}")

    def _action(ctx: BuildContext) -> list[str]:
        ctx.logger.info("scanning prefix %r (nested=%s)", prefix, not skip_nested)
        entrypoints = discover_entrypoints(
            prefix, skip_nested=skip_nested, working_directory=working_directory
        )
        ctx.logger.info("entrypoints: %s", ", ".join(entrypoints) or "<none>")
        return entrypoints

    return make_action_stage_block(
        instance_id, fn=_action, precheck=_precheck, capture_key=ENTRYPOINTS
    )


STAGE = StageRef(
    id=KIND_ID,
    builder=_build,
    doc="Find buildable entrypoint directories under the configured prefix.",
    tags=("entrypoints",),
    kind="action",
    io=StageIO(requires=(CHANGES,), provides=(ENTRYPOINTS,)),
)
