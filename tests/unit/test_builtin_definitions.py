import pytest

from koolpresets.core.resolver import Registry, Resolver
from koolpresets.core.steps import CopyStep, MergeStep, iter_steps


@pytest.fixture(scope="module")
def resolver() -> Resolver:
    return Resolver(Registry())


def test_builtins_load_cleanly(resolver: Resolver):
    assert resolver.registry.errors == {}
    assert [c.preset_id for c in resolver.presets()] == ["adonis", "laravel", "nestjs"]
    assert [c.preset_id for c in resolver.recipes()] == ["pick-cache", "pick-db", "pick-node-pkg-mgr"]


def test_builtin_tags(resolver: Resolver):
    assert resolver.resolve("adonis").has_tag("JS")
    assert [c.preset_id for c in resolver.presets(tag="JS")] == ["adonis", "nestjs"]
    assert [c.preset_id for c in resolver.presets(tag="PHP")] == ["laravel"]


@pytest.mark.parametrize("name", ["adonis", "laravel", "nestjs", "pick-db", "pick-cache", "pick-node-pkg-mgr"])
def test_builtin_workflows_resolve_and_reference_existing_templates(resolver: Resolver, name: str):
    cfg = resolver.resolve(name)
    resolver.preflight(cfg.create)
    resolver.preflight(cfg.preset)

    for step in iter_steps(cfg.preset):
        if isinstance(step, CopyStep):
            assert resolver.registry.find_template(step.source, cfg).is_file()
        elif isinstance(step, MergeStep):
            assert resolver.registry.find_template(step.merge, cfg).is_file()


def test_presets_with_create_export_directory(resolver: Resolver):
    for cfg in resolver.presets():
        assert cfg.create
        lines = [line for s in iter_steps(cfg.create) for line in getattr(s, "scripts", [])]
        assert any("$CREATE_DIRECTORY" in line for line in lines)
