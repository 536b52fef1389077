"""Reusable pipeline kernel (engine primitives + stage authoring kit).

This package is intentionally independent of `artifact.*`. Project-specific
conventions (state keys, stage ordering, error types) live in the consuming
application.
"""

from pipelinekit.config_namespace import ConfigNamespace
from pipelinekit.engine.pipeline import (
    ActionStep,
    Block,
    DefaultStepRecorder,
    FlowContext,
    Node,
    NullStepRecorder,
    PipelineRunner,
    StepRecorder,
    utc_now_iso8601,
)
from pipelinekit.stage_registry import StageRegistry
from pipelinekit.stage_types import StageBuilder, StageIO, StageInstance, StageKind, StageRef

__all__ = [
    "ActionStep",
    "Block",
    "ConfigNamespace",
    "DefaultStepRecorder",
    "FlowContext",
    "Node",
    "NullStepRecorder",
    "PipelineRunner",
    "StageBuilder",
    "StageIO",
    "StageInstance",
    "StageKind",
    "StageRef",
    "StageRegistry",
    "StepRecorder",
    "utc_now_iso8601",
]
