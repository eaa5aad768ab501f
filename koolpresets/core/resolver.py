# koolpresets/core/resolver.py
from __future__ import annotations

"""Preset and recipe resolution
--------------------------------
Loads built-in and user definitions into a Registry, resolves names to
PresetConfig objects and guards recursive recipe expansion against cycles.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from koolpresets.core.errors import CyclicRecipeError, DefinitionError, NotFoundError, TemplateNotFoundError
from koolpresets.core.steps import ActionGroup, PresetConfig, RecipeStep, definition_id, iter_steps, load_definition
from koolpresets.utils.config import Settings
from koolpresets.utils.logger import get_logger

PACKAGE_ROOT = Path(__file__).resolve().parent.parent
BUILTIN_PRESETS_DIR = PACKAGE_ROOT / "presets"
BUILTIN_RECIPES_DIR = PACKAGE_ROOT / "recipes"
BUILTIN_TEMPLATES_DIR = PACKAGE_ROOT / "templates"

_YAML_SUFFIXES = (".yml", ".yaml")


# ---------- Cycle guard ----------


class ResolutionPath:
    """Names currently being expanded, outermost first."""

    def __init__(self, names: Iterable[str] = ()):
        self._stack: list[str] = list(names)

    @property
    def names(self) -> list[str]:
        return list(self._stack)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in (n.lower() for n in self._stack)

    def __len__(self) -> int:
        return len(self._stack)

    @contextmanager
    def expanding(self, name: str) -> Iterator["ResolutionPath"]:
        if name in self:
            raise CyclicRecipeError(self._stack + [name])
        self._stack.append(name)
        try:
            yield self
        finally:
            self._stack.pop()


# ---------- Registry ----------


def _definition_files(root: Path, nested: bool) -> list[Path]:
    if not root.is_dir():
        return []
    if nested:
        return sorted(p for s in _YAML_SUFFIXES for p in root.glob(f"*/config{s}"))
    return sorted(p for s in _YAML_SUFFIXES for p in root.glob(f"*{s}"))


class Registry:
    """Presets, recipes and template search paths for one invocation.

    Later directories win: a user definition with the same id replaces the
    built-in one. Files that fail to load are remembered and only reported
    when their name is requested (or by `validate`).
    """

    def __init__(
        self,
        preset_dirs: Sequence[Path] = (BUILTIN_PRESETS_DIR,),
        recipe_dirs: Sequence[Path] = (BUILTIN_RECIPES_DIR,),
        template_dirs: Sequence[Path] = (BUILTIN_TEMPLATES_DIR,),
    ):
        self.log = get_logger(__name__)
        self.presets: dict[str, PresetConfig] = {}
        self.recipes: dict[str, PresetConfig] = {}
        self.errors: dict[str, DefinitionError] = {}
        self._broken: dict[str, dict[str, DefinitionError]] = {"preset": {}, "recipe": {}}
        self.template_dirs: list[Path] = [Path(d) for d in template_dirs]

        for d in preset_dirs:
            self._load_dir(Path(d), nested=True, kind="preset", table=self.presets)
        for d in recipe_dirs:
            self._load_dir(Path(d), nested=False, kind="recipe", table=self.recipes)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Registry":
        preset_dirs = [BUILTIN_PRESETS_DIR] + ([settings.PRESETS_DIR] if settings.PRESETS_DIR else [])
        recipe_dirs = [BUILTIN_RECIPES_DIR] + ([settings.RECIPES_DIR] if settings.RECIPES_DIR else [])
        template_dirs = ([settings.TEMPLATES_DIR] if settings.TEMPLATES_DIR else []) + [BUILTIN_TEMPLATES_DIR]
        return cls(preset_dirs=preset_dirs, recipe_dirs=recipe_dirs, template_dirs=template_dirs)

    def _load_dir(self, root: Path, *, nested: bool, kind: str, table: dict[str, PresetConfig]) -> None:
        for fp in _definition_files(root, nested):
            key = definition_id(fp)
            try:
                cfg = load_definition(fp)
            except DefinitionError as de:
                self.errors[str(fp)] = de
                self._broken[kind][key] = de
                table.pop(key, None)
                continue
            if key in table:
                self.log.debug(f"{kind} '{key}' overridden by {fp}")
            self._broken[kind].pop(key, None)
            table[key] = cfg

    def lookup(self, name: str, kind: str) -> Optional[PresetConfig]:
        table = self.presets if kind == "preset" else self.recipes
        key = name.strip().lower()
        if key in self._broken[kind]:
            raise self._broken[kind][key]
        if key in table:
            return table[key]
        for cfg in table.values():
            if cfg.name.lower() == key:
                return cfg
        return None

    def find_template(self, name: str, origin: Optional[PresetConfig] = None) -> Path:
        """Locate a copy/merge source next to its definition, then in template dirs."""
        candidate = Path(name).expanduser()
        if candidate.is_absolute():
            if candidate.is_file():
                return candidate
            raise TemplateNotFoundError(name, [str(candidate)])
        search: list[Path] = []
        if origin is not None and origin.source_dir is not None:
            search.append(origin.source_dir)
        search.extend(self.template_dirs)
        for base in search:
            p = base / name
            if p.is_file():
                return p
        raise TemplateNotFoundError(name, [str(b) for b in search])


# ---------- Resolver ----------


class Resolver:
    def __init__(self, registry: Registry):
        self.registry = registry

    def resolve(self, name: str, kind: Optional[str] = None) -> PresetConfig:
        """Look a definition up by id or display name, case-insensitively.

        `kind` limits the search to "preset" or "recipe"; by default recipes
        are searched first, then presets.
        """
        kinds = [kind] if kind else ["recipe", "preset"]
        for k in kinds:
            cfg = self.registry.lookup(name, k)
            if cfg is not None:
                return cfg
        available: list[str] = []
        if "preset" in kinds:
            available.extend(self.registry.presets)
        if "recipe" in kinds:
            available.extend(self.registry.recipes)
        raise NotFoundError(name, kind=kind or "preset or recipe", available=available)

    def presets(self, tag: Optional[str] = None) -> list[PresetConfig]:
        items = sorted(self.registry.presets.values(), key=lambda c: c.preset_id)
        if tag is None:
            return items
        return [c for c in items if c.has_tag(tag)]

    def recipes(self) -> list[PresetConfig]:
        return sorted(self.registry.recipes.values(), key=lambda c: c.preset_id)

    def preflight(self, groups: list[ActionGroup], path: Optional[ResolutionPath] = None) -> None:
        """Resolve every recipe reachable from `groups` (all prompt branches
        included) so unknown names and cycles fail before anything runs."""
        self._check(groups, path if path is not None else ResolutionPath(), set())

    def _check(self, groups: list[ActionGroup], path: ResolutionPath, done: set[str]) -> None:
        for step in iter_steps(groups):
            if not isinstance(step, RecipeStep):
                continue
            cfg = self.resolve(step.recipe)
            key = cfg.preset_id
            if key in done and key not in path:
                continue
            with path.expanding(key):
                self._check(cfg.preset, path, done)
            done.add(key)


__all__ = [
    "BUILTIN_PRESETS_DIR",
    "BUILTIN_RECIPES_DIR",
    "BUILTIN_TEMPLATES_DIR",
    "ResolutionPath",
    "Registry",
    "Resolver",
]
