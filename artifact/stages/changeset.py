from __future__ import annotations

from artifact.foundation.process import run_command
from artifact.framework.config import BuildConfig
from artifact.framework.errors import InvalidGitRange
from artifact.framework.runtime import BuildContext
from artifact.framework.stage_blocks import make_action_stage_block
from artifact.framework.state import CHANGES
from pipelinekit.stage_types import StageIO, StageRef

KIND_ID = "changeset.identify"


def diff_tree_argv(start: str, end: str) -> list[str]:
    """Names-only, recursive diff-tree between the two revisions (end..start).

    `-z` keeps paths verbatim (no C-quoting of non-ASCII names) and
    NUL-terminated.
    """

    return ["git", "diff-tree", "--no-commit-id", "--name-only", "-z", "-r", f"{end}..{start}"]


def parse_changes(output: str) -> list[str]:
    return [path.strip() for path in output.split("\0") if path.strip()]


def _build(inputs: BuildConfig, *, instance_id: str):
    start = inputs.git_range_start
    end = inputs.git_range_end
    working_directory = inputs.working_directory or None

    def _precheck(ctx: BuildContext) -> None:
        if not start or not end:
            raise InvalidGitRange(start, end)

    def _action(ctx: BuildContext) -> list[str]:
        argv = diff_tree_argv(start, end)
        ctx.logger.info("running: %s", " ".join(argv))
        changes = parse_changes(run_command(argv, cwd=working_directory))
        ctx.logger.info("identified %d changed file(s)", len(changes))
        for change in changes:
            ctx.logger.debug("changed: %s", change)
        return changes

    return make_action_stage_block(
        instance_id, fn=_action, precheck=_precheck, capture_key=CHANGES
    )


STAGE = StageRef(
    id=KIND_ID,
    builder=_build,
    doc="List the files changed between the configured git revisions.",
    source="git diff-tree --name-only -z -r",
    tags=("changeset",),
    kind="action",
    io=StageIO(provides=(CHANGES,)),
)
