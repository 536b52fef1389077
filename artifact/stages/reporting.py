from __future__ import annotations

import json
from collections.abc import Sequence

from artifact.framework.config import BuildConfig
from artifact.framework.errors import InvalidOutputFormat
from artifact.framework.runtime import BuildContext
from artifact.framework.stage_blocks import make_action_stage_block
from artifact.framework.state import REBUILD_TARGETS, TARGETS
from pipelinekit.stage_types import StageIO, StageRef

KIND_ID = "report.targets"

OUTPUT_FORMATS: tuple[str, ...] = ("txt", "json")


def render_targets(targets: Sequence[str], fmt: str) -> str:
    if fmt == "json":
        return json.dumps(list(targets))
    return "\n".join(targets)


def proceeds_to_build(fmt: str, *, proceed_after_json: bool = False) -> bool:
    """`txt` always hands targets on to the build; `json` only when asked to."""

    return fmt == "txt" or proceed_after_json


def _build(inputs: BuildConfig, *, instance_id: str):
    fmt = inputs.out_format
    proceed_after_json = inputs.proceed_after_json

    def _precheck(ctx: BuildContext) -> None:
        if fmt not in OUTPUT_FORMATS:
            raise InvalidOutputFormat(fmt, OUTPUT_FORMATS)

    def _action(ctx: BuildContext) -> list[str] | None:
        targets: list[str] = ctx.state.require(TARGETS)
        ctx.logger.info("output format is: %s", fmt)
        print(render_targets(targets, fmt), flush=True)

        if not proceeds_to_build(fmt, proceed_after_json=proceed_after_json):
            ctx.logger.info("json output is terminal; no rebuild targets handed on")
            return None

        ctx.logger.info("targets: %s", ", ".join(targets))
        return list(targets)

    return make_action_stage_block(
        instance_id, fn=_action, precheck=_precheck, capture_key=REBUILD_TARGETS
    )


STAGE = StageRef(
    id=KIND_ID,
    builder=_build,
    doc="Print the targets (txt or json) and mark them as the final rebuild set.",
    tags=("report",),
    kind="action",
    io=StageIO(requires=(TARGETS,), provides=(REBUILD_TARGETS,)),
)
