from __future__ import annotations

import os
import shlex
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from pipelinekit.config_namespace import ConfigNamespace

ENTRYPOINT_TOKEN = "{{entrypoint}}"

DEFAULT_CMD_PREFIX = "./cmd/"
DEFAULT_OUT_FORMAT = "txt"
DEFAULT_BUILD_COMMAND = f"go build -o build.artifact {ENTRYPOINT_TOKEN}"
DEFAULT_DEPENDENCY_COMMAND: tuple[str, ...] = (
    "go",
    "list",
    "-f",
    '{{ join .Deps "\\n" }}',
    ENTRYPOINT_TOKEN,
)

# CI systems populate different variables; the first one with content wins.
GIT_RANGE_START_ENVVARS: tuple[str, ...] = ("ARTIFACT_GIT_RANGE_START", "GIT_PREVIOUS_COMMIT")
GIT_RANGE_END_ENVVARS: tuple[str, ...] = ("ARTIFACT_GIT_RANGE_END", "GIT_COMMIT")


def parse_bool(value: Any, path: str) -> bool:
    """
    Strict boolean parsing to avoid bool('false') footguns.

    Accepts True/False, 0/1, and the strings true/false/1/0/yes/no
    (case-insensitive). Raises ValueError naming `path` for anything else.
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"Invalid boolean for {path}: {value!r}")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
    raise ValueError(f"Invalid boolean for {path}: {value!r}")


def parse_command(value: Any, path: str) -> tuple[str, ...]:
    """Turn a command template into an argument vector.

    A string is tokenized with shell quoting rules (`shlex.split`); a list is
    taken as the explicit argument vector. An empty command yields `()`.
    """

    if value is None:
        return ()
    if isinstance(value, str):
        try:
            return tuple(shlex.split(value))
        except ValueError as exc:
            raise ValueError(f"Invalid command for {path}: {exc} ({value!r})") from exc
    if isinstance(value, (list, tuple)):
        argv: list[str] = []
        for idx, item in enumerate(value):
            if not isinstance(item, str):
                raise ValueError(
                    f"Invalid command for {path}[{idx}]: expected string, got {type(item).__name__}"
                )
            argv.append(item)
        return tuple(argv)
    raise ValueError(f"Invalid command for {path}: expected string or list, got {type(value).__name__}")


def find_value_from_env(keys: Sequence[str], env: Mapping[str, str] | None = None) -> str | None:
    """Return the first non-empty value among `keys`; a set-but-empty variable is skipped."""

    environ = os.environ if env is None else env
    for key in keys:
        value = environ.get(key, "")
        if value:
            return value
    return None


def resolve_git_range_value(
    explicit: str | None, env_names: Sequence[str], env: Mapping[str, str] | None = None
) -> str:
    if explicit:
        return explicit
    return find_value_from_env(env_names, env) or ""


@dataclass(frozen=True)
class BuildConfig:
    dry_run: bool = True
    working_directory: str = ""
    git_range_start: str = ""
    git_range_end: str = ""
    cmd_prefix: str = DEFAULT_CMD_PREFIX
    skip_nested_entrypoints: bool = True
    repo_basenames: tuple[str, ...] = ()
    out_format: str = DEFAULT_OUT_FORMAT
    proceed_after_json: bool = False
    build_command: tuple[str, ...] = tuple(shlex.split(DEFAULT_BUILD_COMMAND))
    dependency_command: tuple[str, ...] = DEFAULT_DEPENDENCY_COMMAND
    build_log_dir: str | None = None
    log_dir: str | None = None

    @staticmethod
    def from_dict(
        cfg: Mapping[str, Any],
        *,
        env: Mapping[str, str] | None = None,
    ) -> tuple["BuildConfig", list[str]]:
        """
        Parse and validate configuration, returning (BuildConfig, warnings).

        Git range endpoints fall back to the CI environment variables when the
        mapping leaves them empty.

        Raises:
            ValueError/TypeError: if a key holds an invalid value, or if
            `strict: true` and unknown keys are present.
        """

        if not isinstance(cfg, Mapping):
            raise ValueError("Config must be a mapping")

        warnings: list[str] = []
        root = ConfigNamespace(dict(cfg), path="")

        strict_unknown_keys = parse_bool(root.get_raw("strict", default=False), "strict")

        dry_run = root.get_bool("dry_run", default=True)
        working_directory = root.get_str("working_directory", default="", allow_empty=True) or ""

        git = root.namespace("git")
        git_range_start = resolve_git_range_value(
            git.get_str("range_start", default="", allow_empty=True), GIT_RANGE_START_ENVVARS, env
        )
        git_range_end = resolve_git_range_value(
            git.get_str("range_end", default="", allow_empty=True), GIT_RANGE_END_ENVVARS, env
        )

        entrypoints = root.namespace("entrypoints")
        cmd_prefix = entrypoints.get_str("prefix", default=DEFAULT_CMD_PREFIX)
        skip_nested = entrypoints.get_bool("skip_nested", default=True)

        dependencies = root.namespace("dependencies")
        repo_basenames = tuple(
            dependencies.get_list_str(
                "repo_basename", default=(), allow_empty=True, allow_scalar=True
            )
        )
        dependency_command = parse_command(
            dependencies.get_raw("command", default=list(DEFAULT_DEPENDENCY_COMMAND)),
            "dependencies.command",
        )
        if not dependency_command:
            raise ValueError("dependencies.command cannot be empty")

        report = root.namespace("report")
        out_format = report.get_str("format", default=DEFAULT_OUT_FORMAT, allow_empty=True) or ""
        proceed_after_json = report.get_bool("proceed_after_json", default=False)

        build = root.namespace("build")
        build_command = parse_command(
            build.get_raw("command", default=DEFAULT_BUILD_COMMAND), "build.command"
        )
        build_log_dir = build.get_str("log_dir", default=None)

        logging_ns = root.namespace("logging")
        log_dir = logging_ns.get_str("log_dir", default=None)

        unknown = root.unconsumed_paths()
        if unknown:
            if strict_unknown_keys:
                raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
            warnings.append(f"Ignoring unknown config keys: {', '.join(unknown)}")

        return (
            BuildConfig(
                dry_run=dry_run,
                working_directory=working_directory,
                git_range_start=git_range_start,
                git_range_end=git_range_end,
                cmd_prefix=cmd_prefix or DEFAULT_CMD_PREFIX,
                skip_nested_entrypoints=skip_nested,
                repo_basenames=repo_basenames,
                out_format=out_format,
                proceed_after_json=proceed_after_json,
                build_command=build_command,
                dependency_command=dependency_command,
                build_log_dir=build_log_dir,
                log_dir=log_dir,
            ),
            warnings,
        )

    def with_overrides(self, **overrides: Any) -> "BuildConfig":
        """Apply command-line values; `None` means "flag not given"."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if "build_command" in changes:
            changes["build_command"] = parse_command(changes["build_command"], "--build-command")
        if "repo_basenames" in changes:
            changes["repo_basenames"] = tuple(changes["repo_basenames"])
        return replace(self, **changes)
