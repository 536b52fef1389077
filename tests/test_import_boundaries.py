import ast
import subprocess
import sys
import textwrap
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]


def _import_offenders(source_dir: Path, forbidden_prefixes: tuple[str, ...]) -> list[str]:
    offenders: list[str] = []
    for path in sorted(source_dir.rglob("*.py")):
        tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if alias.name.startswith(forbidden_prefixes):
                        offenders.append(f"{path}: import {alias.name}")
            elif isinstance(node, ast.ImportFrom):
                if node.module and node.module.startswith(forbidden_prefixes):
                    offenders.append(f"{path}: from {node.module} import ...")
    return offenders


def test_foundation_does_not_import_framework_or_stages():
    offenders = _import_offenders(
        REPO_ROOT / "artifact" / "foundation",
        ("artifact.framework", "artifact.stages", "artifact.cli", "pipelinekit"),
    )
    assert offenders == []


def test_framework_source_does_not_import_stages_or_cli():
    offenders = _import_offenders(
        REPO_ROOT / "artifact" / "framework", ("artifact.stages", "artifact.cli")
    )
    assert offenders == []


def test_stages_source_does_not_import_cli():
    offenders = _import_offenders(REPO_ROOT / "artifact" / "stages", ("artifact.cli",))
    assert offenders == []


def _assert_import_walk_is_clean(package: str, forbidden: tuple[str, ...]) -> None:
    code = textwrap.dedent(
        f"""\
        import importlib
        import pkgutil
        import sys

        import {package} as pkg

        forbidden = {forbidden!r}

        for module in pkgutil.walk_packages(pkg.__path__, pkg.__name__ + "."):
            before = set(sys.modules)
            importlib.import_module(module.name)
            loaded = sorted(name for name in (set(sys.modules) - before) if name.startswith(forbidden))
            if loaded:
                raise SystemExit(f"Importing {{module.name}} loaded forbidden modules: {{loaded}}")
        """
    )

    proc = subprocess.run(
        [sys.executable, "-c", code],
        capture_output=True,
        text=True,
        cwd=str(REPO_ROOT),
    )
    assert proc.returncode == 0, proc.stderr or proc.stdout


def test_pipelinekit_source_does_not_import_artifact():
    assert _import_offenders(REPO_ROOT / "pipelinekit", ("artifact",)) == []


def test_importing_pipelinekit_modules_does_not_pull_in_artifact():
    _assert_import_walk_is_clean("pipelinekit", ("artifact",))


def test_importing_framework_modules_does_not_pull_in_stages():
    _assert_import_walk_is_clean("artifact.framework", ("artifact.stages", "artifact.cli"))
