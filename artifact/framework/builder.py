from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime

from pipelinekit.engine.pipeline import Block, PipelineRunner, StepRecorder, utc_now_iso8601
from pipelinekit.stage_types import StageInstance

from artifact.framework.config import BuildConfig
from artifact.framework.errors import NoValidRebuildTargets
from artifact.framework.runtime import BuildContext
from artifact.framework.state import REBUILD_TARGETS, PipelineState


def generate_run_id() -> str:
    return f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"


class Builder:
    """Runs the decision pipeline for one configuration.

    Stages execute strictly in order; each stage's precheck runs before its
    body and the first failure aborts the run with that stage's error. A run
    succeeds only if the final state holds a `rebuild targets` list.
    """

    def __init__(
        self,
        cfg: BuildConfig,
        *,
        stages: Sequence[StageInstance],
        logger: logging.Logger | None = None,
        recorder: StepRecorder | None = None,
        run_id: str | None = None,
    ):
        self.cfg = cfg
        self.stages = tuple(stages)
        self.logger = logger or logging.getLogger("artifact")
        self.run_id = run_id or generate_run_id()
        self._runner = PipelineRunner(recorder=recorder)
        self.context: BuildContext | None = None

    def pipeline_block(self) -> Block:
        return Block(name="pipeline", nodes=[stage.build(self.cfg) for stage in self.stages])

    def run(self) -> list[str]:
        if self.cfg.dry_run:
            self.logger.warning("this is a dry run, no changes will be made")
        if self.cfg.working_directory:
            self.logger.info("working directory set, will be working in: %s", self.cfg.working_directory)

        ctx = BuildContext(
            run_id=self.run_id,
            cfg=self.cfg,
            logger=self.logger,
            created_at=utc_now_iso8601(),
            outputs=PipelineState(),
        )
        self.context = ctx

        self._runner.run(ctx, self.pipeline_block())

        rebuilds = ctx.state.get(REBUILD_TARGETS)
        if not isinstance(rebuilds, list):
            raise NoValidRebuildTargets()
        return list(rebuilds)
