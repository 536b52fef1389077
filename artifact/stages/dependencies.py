from __future__ import annotations

from collections.abc import Iterable, Sequence

from artifact.foundation.process import run_command
from artifact.framework.config import ENTRYPOINT_TOKEN, BuildConfig
from artifact.framework.errors import NoDependenciesFound
from artifact.framework.runtime import BuildContext
from artifact.framework.stage_blocks import make_action_stage_block
from artifact.framework.state import DEPENDENCIES, ENTRYPOINTS
from pipelinekit.stage_types import StageIO, StageRef

KIND_ID = "dependencies.extract"


def substitute_entrypoint(argv: Sequence[str], replacement: str) -> list[str]:
    return [arg.replace(ENTRYPOINT_TOKEN, replacement) for arg in argv]


def filter_first_party(identifiers: Iterable[str], basenames: Sequence[str]) -> list[str]:
    """Keep identifiers rooted under one of `basenames`, with `<basename>/` stripped.

    An empty `basenames` treats every identifier as first-party. Order is kept
    and duplicates are dropped.
    """

    prefixes = tuple(basenames) or ("",)
    seen: set[str] = set()
    kept: list[str] = []
    for identifier in identifiers:
        for basename in prefixes:
            if not identifier.startswith(basename):
                continue
            stripped = identifier.removeprefix(basename + "/")
            if stripped not in seen:
                seen.add(stripped)
                kept.append(stripped)
            break
    return kept


def _build(inputs: BuildConfig, *, instance_id: str):
    basenames = inputs.repo_basenames
    command = inputs.dependency_command
    working_directory = inputs.working_directory or None

    def _precheck(ctx: BuildContext) -> None:
        ctx.state.require(ENTRYPOINTS)
        if not basenames:
            ctx.logger.warning(
                "no repo basename configured; every dependency is treated as first-party"
            )

    def _action(ctx: BuildContext) -> dict[str, list[str]]:
        entrypoints: list[str] = ctx.state.require(ENTRYPOINTS)
        ctx.logger.info(
            "extracting dependencies for %d entrypoint(s), repo basename(s): %s",
            len(entrypoints),
            ", ".join(basenames) or "<none>",
        )

        dependencies: dict[str, list[str]] = {}
        for entrypoint in entrypoints:
            argv = substitute_entrypoint(command, f"./{entrypoint}")
            output = run_command(argv, cwd=working_directory)
            first_party = filter_first_party(
                (line.strip() for line in output.splitlines() if line.strip()), basenames
            )
            for dep in first_party:
                ctx.logger.debug("for entrypoint %r, found dep %r", entrypoint, dep)
            if first_party:
                dependencies[entrypoint] = first_party

        if not dependencies:
            raise NoDependenciesFound()
        return dependencies

    return make_action_stage_block(
        instance_id, fn=_action, precheck=_precheck, capture_key=DEPENDENCIES
    )


STAGE = StageRef(
    id=KIND_ID,
    builder=_build,
    doc="Query each entrypoint's transitive dependencies and keep the first-party ones.",
    source="go list -f '{{ join .Deps \"\\n\" }}'",
    tags=("dependencies",),
    kind="action",
    io=StageIO(requires=(ENTRYPOINTS,), provides=(DEPENDENCIES,)),
)
