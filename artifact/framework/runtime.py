from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from artifact.framework.config import BuildConfig
from artifact.framework.state import PipelineState


@dataclass
class BuildContext:
    run_id: str
    cfg: BuildConfig
    logger: logging.Logger
    created_at: str

    # Stage outputs; the engine writes captured results here.
    outputs: PipelineState = field(default_factory=PipelineState)
    steps: list[dict[str, Any]] = field(default_factory=list)

    @property
    def state(self) -> PipelineState:
        return self.outputs
