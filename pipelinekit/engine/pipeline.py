"""Execution engine for Block/ActionStep trees.

This module is intentionally app-agnostic and must not import `artifact.*`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, TypeAlias


def utc_now_iso8601() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class FlowContext(Protocol):
    logger: logging.Logger
    outputs: MutableMapping[str, Any]
    steps: list[dict[str, Any]]


def _clean_name(kind: str, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{kind} name must be a string or None (type={type(value).__name__})")
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{kind} name cannot be empty")
    return cleaned


@dataclass(frozen=True)
class ActionStep:
    """A single unit of work: an optional precondition check, then a body.

    `precheck(ctx)` signals failure by raising. `fn(ctx)` returns the value to
    store under `capture_key`; a `None` result is never captured.
    """

    name: str | None
    fn: Callable[[FlowContext], Any]
    precheck: Callable[[FlowContext], None] | None = None
    capture_key: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _clean_name("Action", self.name))

        if not callable(self.fn):
            raise TypeError(f"Action fn must be callable (type={type(self.fn).__name__})")
        if self.precheck is not None and not callable(self.precheck):
            raise TypeError(
                f"Action precheck must be callable or None (type={type(self.precheck).__name__})"
            )

        if self.capture_key is not None:
            if not isinstance(self.capture_key, str):
                raise TypeError(
                    f"Action capture_key must be a string or None (type={type(self.capture_key).__name__})"
                )
            if not self.capture_key.strip():
                raise ValueError("Action capture_key cannot be empty")
            object.__setattr__(self, "capture_key", self.capture_key.strip())

        if not isinstance(self.meta, dict):
            raise TypeError(f"Action meta must be a dict (type={type(self.meta).__name__})")


@dataclass(frozen=True)
class Block:
    """An ordered group of nodes; its `meta` is inherited by every descendant."""

    name: str | None = None
    nodes: list["Node"] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _clean_name("Block", self.name))
        if not isinstance(self.meta, dict):
            raise TypeError(f"Block meta must be a dict (type={type(self.meta).__name__})")


Node: TypeAlias = Block | ActionStep


class StepRecorder(Protocol):
    def on_step_start(self, ctx: FlowContext, path: str, meta: dict[str, Any]) -> None:
        ...

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        ...

    def on_step_error(self, ctx: FlowContext, path: str, exc: Exception) -> None:
        ...


class DefaultStepRecorder:
    """Logs every action through `ctx.logger` and appends its record to `ctx.steps`."""

    def on_step_start(self, ctx: FlowContext, path: str, meta: dict[str, Any]) -> None:
        details = []
        for key in ("stage_id", "source"):
            value = meta.get(key)
            if isinstance(value, str) and value.strip():
                details.append(f"{key}={value.strip()}")
        doc = meta.get("doc")
        if isinstance(doc, str) and doc.strip():
            details.append(f"doc={json.dumps(doc.strip(), ensure_ascii=False)}")

        if details:
            ctx.logger.info("Step: %s (%s)", path, ", ".join(details))
        else:
            ctx.logger.info("Step: %s", path)

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        ctx.steps.append(record)
        stage_id = record.get("meta", {}).get("stage_id")
        if stage_id:
            ctx.logger.info("Completed action %s (stage_id=%s)", record["path"], stage_id)
        else:
            ctx.logger.info("Completed action %s", record["path"])

    def on_step_error(self, ctx: FlowContext, path: str, exc: Exception) -> None:
        ctx.logger.error("Step failed: %s (%s)", path, exc)


class NullStepRecorder:
    def on_step_start(self, ctx: FlowContext, path: str, meta: dict[str, Any]) -> None:
        return

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        return

    def on_step_error(self, ctx: FlowContext, path: str, exc: Exception) -> None:
        return


def _summarize(value: Any, *, depth: int = 4, limit: int = 25) -> Any:
    """JSON-friendly, size-bounded copy of a step result for the step record."""

    if depth <= 0:
        return "<max_depth>"
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        out: list[Any] = [_summarize(item, depth=depth - 1, limit=limit) for item in value[:limit]]
        if len(value) > limit:
            out.append(f"<{len(value) - limit} more>")
        return out
    if isinstance(value, dict):
        summary: dict[str, Any] = {}
        for idx, (key, item) in enumerate(value.items()):
            if idx == limit:
                summary["<more>"] = f"<{len(value) - limit} more>"
                break
            summary[str(key)] = _summarize(item, depth=depth - 1, limit=limit)
        return summary
    return repr(value)


def _annotate(exc: Exception, *, path: str, node_type: str, node_name: str) -> None:
    # Innermost node wins; outer blocks only fill in what is missing.
    for attr, value in (
        ("pipeline_path", path),
        ("pipeline_node_type", node_type),
        ("pipeline_node_name", node_name),
    ):
        if not hasattr(exc, attr):
            try:
                setattr(exc, attr, value)
            except AttributeError:
                pass


class PipelineRunner:
    """Runs a node tree depth-first, strictly in declaration order.

    For each action the precheck runs before the body and a non-None result is
    written to `ctx.outputs[capture_key]`. The first exception stops the run
    and is re-raised unchanged, annotated with `pipeline_path`,
    `pipeline_node_type` and `pipeline_node_name`.
    """

    def __init__(self, *, recorder: StepRecorder | None = None):
        recorder = recorder or DefaultStepRecorder()
        for method in ("on_step_start", "on_step_end", "on_step_error"):
            if not callable(getattr(recorder, method, None)):
                raise TypeError(f"Step recorder missing required method: {method}")
        self._recorder = recorder

    def run(self, ctx: FlowContext, node: Node) -> None:
        default = "pipeline" if isinstance(node, Block) else "action_01"
        self._visit(ctx, node, [node.name or default], {})

    def _visit(
        self, ctx: FlowContext, node: Node, path: list[str], inherited: dict[str, Any]
    ) -> None:
        if isinstance(node, ActionStep):
            self._run_action(ctx, node, path, inherited)
        else:
            self._run_block(ctx, node, path, inherited)

    def _run_block(
        self, ctx: FlowContext, block: Block, path: list[str], inherited: dict[str, Any]
    ) -> None:
        meta = {**inherited, **block.meta}
        try:
            names = [
                child.name
                or (f"action_{i:02d}" if isinstance(child, ActionStep) else f"block_{i:02d}")
                for i, child in enumerate(block.nodes, start=1)
            ]
            duplicates = sorted({name for name in names if names.count(name) > 1})
            if duplicates:
                raise ValueError(
                    f"Duplicate node name(s) in block {'/'.join(path)}: {', '.join(duplicates)}"
                )
            for child, name in zip(block.nodes, names, strict=True):
                self._visit(ctx, child, [*path, name], meta)
        except Exception as exc:
            _annotate(exc, path="/".join(path), node_type="block", node_name=path[-1])
            raise

    def _run_action(
        self, ctx: FlowContext, action: ActionStep, path: list[str], inherited: dict[str, Any]
    ) -> None:
        step_path = "/".join(path)
        meta = {**inherited, **action.meta}
        if "stage_id" not in meta and len(path) >= 2 and path[0] == "pipeline":
            meta["stage_id"] = path[1]
        if "source" not in meta:
            fn = action.fn
            meta["source"] = f"{getattr(fn, '__module__', '<unknown_module>')}.{getattr(fn, '__qualname__', '<callable>')}"

        try:
            self._recorder.on_step_start(ctx, step_path, meta)
            if action.precheck is not None:
                action.precheck(ctx)
            result = action.fn(ctx)
            if action.capture_key is not None and result is not None:
                ctx.outputs[action.capture_key] = result

            record: dict[str, Any] = {
                "type": "action",
                "name": path[-1],
                "path": step_path,
                "created_at": utc_now_iso8601(),
                "meta": _summarize(meta),
            }
            if result is not None:
                record["result"] = _summarize(result)
            self._recorder.on_step_end(ctx, record)
        except Exception as exc:
            try:
                self._recorder.on_step_error(ctx, step_path, exc)
            except Exception:
                ctx.logger.exception("Step recorder failed during error handling for %s", step_path)
            _annotate(exc, path=step_path, node_type="action", node_name=path[-1])
            raise
