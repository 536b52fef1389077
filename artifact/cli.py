from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from artifact.foundation.config_io import load_config
from artifact.foundation.logging_utils import setup_operational_logger
from artifact.foundation.process import CommandError
from artifact.framework.builder import Builder, generate_run_id
from artifact.framework.config import BuildConfig
from artifact.framework.errors import ArtifactError
from artifact.stages.registry import default_stage_instances, get_stage_registry


def _add_build_arguments(build: argparse.ArgumentParser) -> None:
    # Every default is None so values from the config file survive unless a flag is given.
    build.add_argument("--config", default=None, help="YAML config file (overrides $ARTIFACT_CONFIG)")
    build.add_argument(
        "--dry-run",
        "--dry",
        dest="dry_run",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Whether or not to do a dry run (default: true)",
    )
    build.add_argument(
        "--working-directory",
        "-C",
        dest="working_directory",
        default=None,
        help="The directory to change to in order to run our actions.",
    )
    build.add_argument(
        "--git-range-start",
        "--start",
        dest="git_range_start",
        default=None,
        help="The git revision to start the diff from.",
    )
    build.add_argument(
        "--git-range-end",
        "--end",
        dest="git_range_end",
        default=None,
        help="The git revision to end the diff at.",
    )
    build.add_argument(
        "--cmd-prefix",
        "--pre",
        dest="cmd_prefix",
        default=None,
        help="The path prefix for identifying artifact entrypoints (default: ./cmd/).",
    )
    build.add_argument(
        "--skip-nested-entrypoints",
        dest="skip_nested_entrypoints",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Whether we're expecting a single entrypoint or nested ones (default: true).",
    )
    build.add_argument(
        "--repo-basename",
        "--repo",
        dest="repo_basenames",
        action="append",
        default=None,
        help="The base name of the repository; repeat for several roots.",
    )
    build.add_argument(
        "--out-format",
        dest="out_format",
        default=None,
        help="The output format (txt or json).",
    )
    build.add_argument(
        "--proceed-after-json",
        dest="proceed_after_json",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also run the builds when the output format is json.",
    )
    build.add_argument(
        "--build-command",
        dest="build_command",
        default=None,
        help="The build command to run for each identified entrypoint; must contain {{entrypoint}}.",
    )
    build.add_argument(
        "--build-log-dir",
        dest="build_log_dir",
        default=None,
        help="Directory to write one log file per rebuilt target.",
    )
    build.add_argument(
        "--log-dir",
        dest="log_dir",
        default=None,
        help="Directory for the operational log file.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="artifact", description="Helps build deployable artifacts.", add_help=True
    )
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", aliases=["b"], help="Build deployable artifact")
    _add_build_arguments(build)

    list_parser = sub.add_parser("list-stages", help="List the pipeline stages in execution order")
    list_parser.add_argument(
        "stage",
        nargs="?",
        default=None,
        help="Show one stage by id or by the part after the dot (e.g. rebuild).",
    )

    return parser


def list_stages(stage: str | None = None) -> None:
    registry = get_stage_registry()
    entries = registry.describe()
    if stage is not None:
        stage_id = registry.resolve(stage).id
        entries = tuple(entry for entry in entries if entry["stage_id"] == stage_id)
    for entry in entries:
        doc = entry.get("doc") or ""
        io = entry["io"]
        requires = ",".join(io["requires"]) or "-"
        provides = ",".join(io["provides"]) or "-"
        print(f"{entry['stage_id']}\t{doc}\trequires={requires}\tprovides={provides}")


def _resolve_config(args: argparse.Namespace) -> tuple[BuildConfig, list[str], dict]:
    cfg_dict, meta = load_config(config_path=args.config)
    cfg, warnings = BuildConfig.from_dict(cfg_dict)
    cfg = cfg.with_overrides(
        dry_run=args.dry_run,
        working_directory=args.working_directory,
        git_range_start=args.git_range_start or None,
        git_range_end=args.git_range_end or None,
        cmd_prefix=args.cmd_prefix,
        skip_nested_entrypoints=args.skip_nested_entrypoints,
        repo_basenames=args.repo_basenames,
        out_format=args.out_format,
        proceed_after_json=args.proceed_after_json,
        build_command=args.build_command,
        build_log_dir=args.build_log_dir,
        log_dir=args.log_dir,
    )
    return cfg, warnings, meta


def run_build(args: argparse.Namespace) -> int:
    try:
        cfg, warnings, meta = _resolve_config(args)
    except (ValueError, TypeError, FileNotFoundError) as exc:
        print(f"artifact: configuration error: {exc}", file=sys.stderr)
        return 2

    run_id = generate_run_id()
    logger, _log_file = setup_operational_logger(run_id, log_dir=cfg.log_dir)
    if meta.get("paths"):
        logger.info("Loaded config (%s): %s", meta.get("mode"), ", ".join(meta["paths"]))
    for warning in warnings:
        logger.warning("%s", warning)

    builder = Builder(cfg, stages=default_stage_instances(), logger=logger, run_id=run_id)
    try:
        targets = builder.run()
    except (ArtifactError, CommandError) as exc:
        where = getattr(exc, "pipeline_path", None)
        if where:
            logger.error("Build failed at %s: %s", where, exc)
        else:
            logger.error("Build failed: %s", exc)
        return 1

    logger.info("Rebuilt %d target(s): %s", len(targets), ", ".join(targets))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    if args.command in ("build", "b"):
        return run_build(args)

    if args.command == "list-stages":
        try:
            list_stages(args.stage)
        except ValueError as exc:
            print(f"artifact: {exc}", file=sys.stderr)
            return 2
        return 0

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
