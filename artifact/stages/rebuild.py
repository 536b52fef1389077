from __future__ import annotations

import os
from collections.abc import Sequence

from artifact.foundation.logging_utils import write_build_log
from artifact.foundation.process import run_command
from artifact.framework.config import ENTRYPOINT_TOKEN, BuildConfig
from artifact.framework.errors import InvalidBuildCommand
from artifact.framework.runtime import BuildContext
from artifact.framework.stage_blocks import make_action_stage_block
from artifact.framework.state import BUILD_LOGS, REBUILD_TARGETS
from artifact.stages.dependencies import substitute_entrypoint
from pipelinekit.stage_types import StageIO, StageRef

KIND_ID = "build.rebuild"


def make_local_path(target: str) -> str:
    """`cmd/foo` -> `./cmd/foo/` using the platform separator."""

    return f".{os.sep}{target}{os.sep}"


def validate_build_command(argv: Sequence[str]) -> None:
    if not argv:
        raise InvalidBuildCommand("must provide build command")
    if not any(ENTRYPOINT_TOKEN in arg for arg in argv):
        raise InvalidBuildCommand(f"must provide build command that uses {ENTRYPOINT_TOKEN}")


def resolve_build_command(argv: Sequence[str], target: str) -> list[str]:
    return substitute_entrypoint(argv, make_local_path(target))


def _build(inputs: BuildConfig, *, instance_id: str):
    command = inputs.build_command
    dry_run = inputs.dry_run
    working_directory = inputs.working_directory or None
    build_log_dir = inputs.build_log_dir

    def _precheck(ctx: BuildContext) -> None:
        validate_build_command(command)

    def _action(ctx: BuildContext) -> dict[str, str] | None:
        # Absent after a terminal json report; the driver's final check reports it.
        if REBUILD_TARGETS not in ctx.state:
            ctx.logger.info("no rebuild targets handed on; skipping builds")
            return None
        rebuilds: list[str] = ctx.state[REBUILD_TARGETS]

        build_logs: dict[str, str] = {}
        for target in rebuilds:
            argv = resolve_build_command(command, target)
            ctx.logger.info("rebuilding target %r with command %r", target, " ".join(argv))
            if dry_run:
                continue

            output = run_command(argv, cwd=working_directory, combine_output=True)
            build_logs[target] = output
            if build_log_dir:
                path = write_build_log(build_log_dir, target, output)
                ctx.logger.debug("wrote build log for %r to %s", target, path)

        if dry_run:
            ctx.logger.warning("dry run: skipped %d build(s)", len(rebuilds))
        return build_logs

    return make_action_stage_block(
        instance_id, fn=_action, precheck=_precheck, capture_key=BUILD_LOGS
    )


STAGE = StageRef(
    id=KIND_ID,
    builder=_build,
    doc="Run the build command once per rebuild target (skipped in dry-run mode).",
    tags=("build",),
    kind="action",
    io=StageIO(requires=(REBUILD_TARGETS,), provides=(BUILD_LOGS,)),
)
