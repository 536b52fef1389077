"""Error taxonomy for the build decision pipeline.

Errors are raised by stage prechecks and bodies and propagate unchanged to the
caller; nothing here is retried.
"""

from __future__ import annotations

from artifact.foundation.process import CommandError


class ArtifactError(Exception):
    """Base class for every failure the pipeline reports on purpose."""


# Configuration errors: raised by prechecks before any side effect.


class InvalidGitRange(ArtifactError, ValueError):
    def __init__(self, start: str = "", end: str = ""):
        self.start = start
        self.end = end
        super().__init__(f"invalid git range (start={start!r}, end={end!r})")


class InvalidOutputFormat(ArtifactError, ValueError):
    def __init__(self, fmt: str, allowed: tuple[str, ...]):
        self.format = fmt
        self.allowed = allowed
        super().__init__(f"invalid output format: {fmt!r} (allowed: {', '.join(allowed)})")


class InvalidBuildCommand(ArtifactError, ValueError):
    pass


class InvalidPrefix(ArtifactError, ValueError):
    pass


# State errors: a stage's input key is absent or has the wrong type.


class StateError(ArtifactError):
    pass


class MissingStateError(StateError, KeyError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"pipeline state has no {self.key!r} entry"


class ChangesNotIdentified(MissingStateError):
    def __init__(self) -> None:
        super().__init__("changes")

    def __str__(self) -> str:
        return "no valid changes were identified"


class DependenciesNotIdentified(MissingStateError):
    def __init__(self) -> None:
        super().__init__("dependencies")

    def __str__(self) -> str:
        return "no valid dependencies were identified"


# Empty results: treated as fatal, the tool only runs when work is expected.


class NoChangesFound(ArtifactError):
    def __init__(self) -> None:
        super().__init__("no changes were found")


class NoDependenciesFound(ArtifactError):
    def __init__(self) -> None:
        super().__init__("no first-party dependencies were found for any entrypoint")


class NoTargetsToRebuild(ArtifactError):
    def __init__(self) -> None:
        super().__init__("no targets need to be rebuilt")


class NoValidRebuildTargets(ArtifactError):
    def __init__(self) -> None:
        super().__init__("no valid rebuild targets determined")


__all__ = [
    "ArtifactError",
    "ChangesNotIdentified",
    "CommandError",
    "DependenciesNotIdentified",
    "InvalidBuildCommand",
    "InvalidGitRange",
    "InvalidOutputFormat",
    "InvalidPrefix",
    "MissingStateError",
    "NoChangesFound",
    "NoDependenciesFound",
    "NoTargetsToRebuild",
    "NoValidRebuildTargets",
    "StateError",
]
