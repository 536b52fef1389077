import pytest

from artifact.framework.errors import (
    ChangesNotIdentified,
    MissingStateError,
    NoValidRebuildTargets,
    StateError,
)
from artifact.framework.state import (
    BUILD_LOGS,
    CHANGES,
    DEPENDENCIES,
    REBUILD_TARGETS,
    PipelineState,
)


def test_state_accepts_declared_keys_with_declared_types():
    state = PipelineState()
    state[CHANGES] = ["pkg/foo/util.go"]
    state[DEPENDENCIES] = {"cmd/foo": ["pkg/foo"]}
    state[BUILD_LOGS] = {}

    assert state[CHANGES] == ["pkg/foo/util.go"]
    assert dict(state) == {
        CHANGES: ["pkg/foo/util.go"],
        DEPENDENCIES: {"cmd/foo": ["pkg/foo"]},
        BUILD_LOGS: {},
    }


def test_state_is_append_only():
    state = PipelineState({CHANGES: ["a.go"]})

    with pytest.raises(StateError, match="already set"):
        state[CHANGES] = ["b.go"]
    with pytest.raises(StateError, match="append-only"):
        del state[CHANGES]


def test_state_rejects_wrong_types_and_unknown_keys():
    state = PipelineState()

    with pytest.raises(StateError, match=r"'changes' must be list\[str\]"):
        state[CHANGES] = "a.go"
    with pytest.raises(StateError, match=r"'dependencies' must be dict\[str, list\[str\]\]"):
        state[DEPENDENCIES] = {"cmd/foo": "pkg/foo"}
    with pytest.raises(StateError, match="unknown pipeline state key"):
        state["rebuilds"] = []


def test_require_raises_typed_missing_errors():
    state = PipelineState()

    with pytest.raises(MissingStateError) as excinfo:
        state.require(CHANGES)
    assert excinfo.value.key == CHANGES
    assert "no 'changes' entry" in str(excinfo.value)

    with pytest.raises(ChangesNotIdentified, match="no valid changes were identified"):
        state.require(CHANGES, missing=ChangesNotIdentified)
    with pytest.raises(NoValidRebuildTargets):
        state.require(REBUILD_TARGETS, missing=NoValidRebuildTargets)

