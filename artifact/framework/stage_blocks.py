from __future__ import annotations

from typing import Any, Callable

from pipelinekit.engine.pipeline import ActionStep, Block

from artifact.framework.runtime import BuildContext


def make_action_stage_block(
    stage_id: str,
    *,
    fn: Callable[[BuildContext], Any],
    precheck: Callable[[BuildContext], None] | None = None,
    capture_key: str | None = None,
) -> Block:
    """Wrap one precheck/body pair as the block for stage `stage_id`.

    The body's return value is written to the pipeline state under
    `capture_key`. Doc, source and tags are stamped on by `StageRef.build`.
    """

    if not isinstance(stage_id, str) or not stage_id.strip():
        raise TypeError("stage_id must be a non-empty string")
    step = ActionStep(name="action", fn=fn, precheck=precheck, capture_key=capture_key)
    return Block(name=stage_id.strip(), nodes=[step])
