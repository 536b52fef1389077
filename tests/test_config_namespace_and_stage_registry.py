import pytest

from pipelinekit.config_namespace import ConfigNamespace
from pipelinekit.engine.pipeline import ActionStep, Block
from pipelinekit.stage_registry import StageRegistry
from pipelinekit.stage_types import StageIO, StageRef

from artifact.stages.registry import default_stage_instances, get_stage_registry


def test_config_namespace_get_bool_is_strict():
    ns = ConfigNamespace({"skip_nested": "false"}, path="entrypoints")
    with pytest.raises(TypeError, match=r"entrypoints\.skip_nested must be a boolean"):
        ns.get_bool("skip_nested")


def test_config_namespace_get_str_strips_and_validates_choices():
    ns = ConfigNamespace({"format": " json ", "prefix": "  "}, path="report")

    assert ns.get_str("format", choices=("txt", "json")) == "json"
    with pytest.raises(ValueError, match=r"report\.prefix cannot be empty"):
        ns.get_str("prefix")

    other = ConfigNamespace({"format": "xml"}, path="report")
    with pytest.raises(ValueError, match=r"must be one of: json, txt"):
        other.get_str("format", choices=("txt", "json"))


def test_config_namespace_get_list_str_accepts_scalar_when_allowed():
    ns = ConfigNamespace({"repo_basename": "github.com/acme/repo"}, path="dependencies")
    assert ns.get_list_str("repo_basename", allow_scalar=True) == ["github.com/acme/repo"]

    strict = ConfigNamespace({"repo_basename": "github.com/acme/repo"}, path="dependencies")
    with pytest.raises(TypeError, match=r"must be a list\[str\]"):
        strict.get_list_str("repo_basename")


def test_config_namespace_unknown_key_enforcement_includes_nested_paths():
    ns = ConfigNamespace({"dry_run": True, "typo": 1, "build": {"comand": "x"}}, path="")
    assert ns.get_bool("dry_run") is True
    ns.namespace("build").get_raw("command")

    assert ns.unconsumed_paths() == ("build.comand", "typo")
    with pytest.raises(ValueError, match=r"Unknown config keys under <root>: build\.comand, typo"):
        ns.assert_consumed()


def test_config_namespace_effective_values_reflect_defaults():
    ns = ConfigNamespace({"git": {"range_start": "abc"}}, path="")
    git = ns.namespace("git")
    git.get_str("range_start")
    git.get_str("range_end", default="", allow_empty=True)

    assert ns.effective_values() == {"git": {"range_start": "abc", "range_end": ""}}


def test_config_namespace_null_section_is_empty():
    ns = ConfigNamespace({"report": None}, path="")
    report = ns.namespace("report")
    assert report.get_str("format", default="txt") == "txt"
    assert ns.unconsumed_paths() == ()


def _noop_builder(stage_id: str):
    def _build(inputs, *, instance_id: str) -> Block:
        return Block(name=instance_id, nodes=[ActionStep(name="action", fn=lambda ctx: None)])

    return _build


def test_registry_order_matches_execution_and_io_chain_is_valid():
    registry = get_stage_registry()

    assert [ref.id for ref in registry.ordered()] == [
        "changeset.identify",
        "entrypoints.discover",
        "dependencies.extract",
        "impact.compute",
        "report.targets",
        "build.rebuild",
    ]
    registry.validate_io()
    assert [stage.instance_id for stage in default_stage_instances()] == [
        ref.id for ref in registry.ordered()
    ]


def test_registry_validate_io_rejects_out_of_order_requirements():
    registry = StageRegistry.from_refs(
        [
            StageRef(id="b.consume", builder=_noop_builder("b"), io=StageIO(requires=("x",))),
            StageRef(id="a.produce", builder=_noop_builder("a"), io=StageIO(provides=("x",))),
        ]
    )
    with pytest.raises(ValueError, match=r"Stage b\.consume requires x"):
        registry.validate_io()


def test_registry_rejects_duplicates_and_suggests_close_ids():
    ref = StageRef(id="impact.compute", builder=_noop_builder("impact"))
    with pytest.raises(ValueError, match="Duplicate stage kind id: impact.compute"):
        StageRegistry.from_refs([ref, ref])

    registry = get_stage_registry()
    assert registry.resolve("compute").id == "impact.compute"
    with pytest.raises(ValueError, match=r"did you mean: impact\.compute"):
        registry.resolve("compte")


def test_stage_ref_build_fills_stage_meta():
    ref = StageRef(
        id="demo.stage", builder=_noop_builder("demo"), doc="Demo.", tags=("demo",)
    )

    block = ref.build(None, instance_id="demo.stage")

    assert block.meta["stage_kind"] == "demo.stage"
    assert block.meta["stage_instance"] == "demo.stage"
    assert block.meta["doc"] == "Demo."
    assert block.meta["tags"] == ["demo"]


def test_stage_ref_build_rejects_mismatched_block_name():
    def _bad(inputs, *, instance_id: str) -> Block:
        return Block(name="other", nodes=[])

    with pytest.raises(ValueError, match="mismatched Block.name"):
        StageRef(id="demo.bad", builder=_bad).build(None, instance_id="demo.bad")
