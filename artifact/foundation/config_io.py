from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_ENV_VAR = "ARTIFACT_CONFIG"


def find_repo_root(start: str | os.PathLike[str] | None = None) -> str | None:
    """Walk upwards from `start` looking for a `.git` entry or `pyproject.toml`.

    Returns None when neither marker exists; callers decide whether that matters.
    """

    start_path = Path(start or os.getcwd()).resolve()
    if start_path.is_file():
        start_path = start_path.parent

    for candidate in (start_path, *start_path.parents):
        if (candidate / ".git").exists():
            return str(candidate)
        if (candidate / "pyproject.toml").is_file():
            return str(candidate)
    return None


def _read_yaml_file(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        try:
            loaded = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, Mapping):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return dict(loaded)


def _overlay(base: Any, overlay: Any, *, path: str) -> Any:
    """Merge `overlay` onto `base`: mappings merge key by key, anything else is replaced.

    A mapping may only be replaced by a mapping (or null); lists and scalars
    replace each other freely.
    """

    if overlay is None or base is None:
        return overlay
    if isinstance(base, Mapping) != isinstance(overlay, Mapping):
        raise ValueError(
            f"Invalid config overlay merge at {path}: base is {type(base).__name__} "
            f"but overlay is {type(overlay).__name__}"
        )
    if not isinstance(base, Mapping):
        return overlay

    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        key_path = f"{path}.{key}" if path else str(key)
        merged[key] = _overlay(base[key], value, path=key_path) if key in base else value
    return merged


def load_config(
    *,
    config_path: str | None = None,
    env_var: str | None = DEFAULT_CONFIG_ENV_VAR,
    start_dir: str | None = None,
    config_rel_path: str = "config",
    config_name: str = "config.yaml",
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Load the YAML configuration mapping, returning (cfg, meta).

    Resolution order:
      1. `config_path` (explicit) or the `env_var` environment variable: a single file.
      2. `<repo root>/<config_rel_path>/<config_name>`, deep-merged with
         `config.local.yaml` from the same directory when present.
      3. Nothing found: an empty mapping (every setting falls back to defaults).
    """

    explicit_path = None
    if config_path is not None:
        explicit_path = str(config_path).strip() or None
    elif env_var:
        explicit_path = os.environ.get(env_var, "").strip() or None

    if explicit_path:
        expanded = os.path.abspath(os.path.expandvars(os.path.expanduser(explicit_path)))
        if not os.path.exists(expanded):
            raise FileNotFoundError(f"Missing config file: {expanded}")
        cfg = _read_yaml_file(expanded)
        meta = {
            "mode": "explicit" if config_path is not None else "env",
            "paths": [expanded],
            "env_var": env_var,
            "repo_root": None,
        }
        return cfg, meta

    if os.path.isabs(config_rel_path):
        config_directory = config_rel_path
        repo_root = None
    else:
        repo_root = find_repo_root(start_dir)
        if repo_root is None:
            return {}, {"mode": "defaults", "paths": [], "env_var": env_var, "repo_root": None}
        config_directory = os.path.join(repo_root, config_rel_path)
    base_config_path = os.path.join(config_directory, config_name)
    local_overlay_path = os.path.join(config_directory, "config.local.yaml")

    if not os.path.exists(base_config_path):
        return {}, {"mode": "defaults", "paths": [], "env_var": env_var, "repo_root": repo_root}

    cfg = _read_yaml_file(base_config_path)
    loaded_paths = [os.path.abspath(base_config_path)]
    mode = "base"

    if os.path.exists(local_overlay_path):
        overlay = _read_yaml_file(local_overlay_path)
        cfg = _overlay(cfg, overlay, path="")
        loaded_paths.append(os.path.abspath(local_overlay_path))
        mode = "base+local"

    meta = {"mode": mode, "paths": loaded_paths, "env_var": env_var, "repo_root": repo_root}
    return cfg, meta
