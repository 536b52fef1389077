import logging
from typing import Any

import pytest

from pipelinekit.engine.pipeline import NullStepRecorder

from artifact.framework.builder import Builder
from artifact.framework.config import BuildConfig
from artifact.framework.errors import InvalidGitRange, NoTargetsToRebuild, NoValidRebuildTargets
from artifact.framework.state import BUILD_LOGS, CHANGES, REBUILD_TARGETS, TARGETS
from artifact.stages import changeset, dependencies, rebuild
from artifact.stages.registry import default_stage_instances

REPO = "github.com/acme/repo"


def _quiet_logger() -> logging.Logger:
    logger = logging.getLogger("test.builder")
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return logger


@pytest.fixture
def go_repo(tmp_path, monkeypatch):
    (tmp_path / "cmd" / "foo").mkdir(parents=True)
    (tmp_path / "cmd" / "bar").mkdir()

    builds: list[list[str]] = []
    deps_output = {
        "./cmd/foo": f"fmt\n{REPO}/pkg/foo\n",
        "./cmd/bar": f"fmt\n{REPO}/pkg/bar\n",
    }

    def fake_git(argv, *, cwd=None, combine_output=False):
        assert argv[:2] == ["git", "diff-tree"]
        return "pkg/foo/util.go\n"

    def fake_go_list(argv, *, cwd=None, combine_output=False):
        return deps_output[argv[-1]]

    def fake_build(argv, *, cwd=None, combine_output=False):
        builds.append(list(argv))
        return "built\n"

    monkeypatch.setattr(changeset, "run_command", fake_git)
    monkeypatch.setattr(dependencies, "run_command", fake_go_list)
    monkeypatch.setattr(rebuild, "run_command", fake_build)
    return tmp_path, builds


def _config(root, **overrides: Any) -> BuildConfig:
    values: dict[str, Any] = {
        "working_directory": str(root),
        "git_range_start": "HEAD",
        "git_range_end": "HEAD~1",
        "skip_nested_entrypoints": False,
        "repo_basenames": (REPO,),
        "dry_run": False,
    }
    values.update(overrides)
    return BuildConfig(**values)


def _builder(cfg: BuildConfig) -> Builder:
    return Builder(
        cfg,
        stages=default_stage_instances(),
        logger=_quiet_logger(),
        recorder=NullStepRecorder(),
        run_id="unit_test",
    )


def test_full_run_rebuilds_only_affected_entrypoint(go_repo, capsys):
    root, builds = go_repo
    builder = _builder(_config(root))

    rebuilt = builder.run()

    assert rebuilt == ["cmd/foo"]
    assert capsys.readouterr().out == "cmd/foo\n"
    assert builds == [["go", "build", "-o", "build.artifact", rebuild.make_local_path("cmd/foo")]]
    assert builder.context is not None
    state = builder.context.state
    assert state[CHANGES] == ["pkg/foo/util.go"]
    assert state[TARGETS] == ["cmd/foo"]
    assert state[BUILD_LOGS] == {"cmd/foo": "built\n"}


def test_dry_run_reports_but_never_builds(go_repo, capsys):
    root, builds = go_repo
    builder = _builder(_config(root, dry_run=True))

    assert builder.run() == ["cmd/foo"]
    assert builds == []
    assert builder.context.state[BUILD_LOGS] == {}
    assert capsys.readouterr().out == "cmd/foo\n"


def test_json_output_stops_before_build_and_fails_success_check(go_repo, capsys):
    root, builds = go_repo
    builder = _builder(_config(root, out_format="json"))

    with pytest.raises(NoValidRebuildTargets) as excinfo:
        builder.run()

    assert not hasattr(excinfo.value, "pipeline_path")
    assert capsys.readouterr().out.strip() == '["cmd/foo"]'
    assert builds == []
    assert REBUILD_TARGETS not in builder.context.state
    assert BUILD_LOGS not in builder.context.state


def test_json_output_with_proceed_builds(go_repo, capsys):
    root, builds = go_repo
    builder = _builder(_config(root, out_format="json", proceed_after_json=True))

    assert builder.run() == ["cmd/foo"]
    assert len(builds) == 1


def test_first_failing_stage_aborts_run(go_repo):
    root, builds = go_repo
    builder = _builder(_config(root, git_range_start=""))

    with pytest.raises(InvalidGitRange) as excinfo:
        builder.run()

    assert excinfo.value.pipeline_path == "pipeline/changeset.identify/action"
    assert builds == []
    assert len(builder.context.state) == 0


def test_no_affected_entrypoint_is_fatal(go_repo, monkeypatch):
    root, builds = go_repo
    monkeypatch.setattr(changeset, "run_command", lambda argv, **kwargs: "docs/README.md\n")
    builder = _builder(_config(root))

    with pytest.raises(NoTargetsToRebuild):
        builder.run()
    assert builds == []


def test_pipeline_block_lists_stages_in_execution_order():
    builder = _builder(BuildConfig())

    block = builder.pipeline_block()

    assert [node.name for node in block.nodes] == [
        "changeset.identify",
        "entrypoints.discover",
        "dependencies.extract",
        "impact.compute",
        "report.targets",
        "build.rebuild",
    ]
    assert block.nodes[0].meta["stage_kind"] == "changeset.identify"
