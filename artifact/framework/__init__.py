"""Project-specific framework utilities.

This package holds the structural pieces of a build decision run: the
configuration bundle, the typed pipeline state, the run context, the error
taxonomy and the `Builder` that drives the stages. Stage implementations live
in `artifact.stages`.

For reusable, project-agnostic pipeline primitives, use `pipelinekit`.
"""
