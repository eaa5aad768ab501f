# koolpresets/core/steps.py
from __future__ import annotations

"""Action step schema and definition loader
--------------------------------------------
Pydantic models for presets, action groups and the action step union, plus
the YAML loader that turns a preset/recipe file into a validated, immutable
PresetConfig. Malformed steps are rejected here, before anything runs.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator, model_validator
from pydantic.functional_validators import BeforeValidator

from koolpresets.core.errors import DefinitionError


# ---------- Step kinds ----------


class StepKind(str, Enum):
    scripts = "scripts"
    copy = "copy"
    merge = "merge"
    recipe = "recipe"
    prompt = "prompt"


KIND_KEYS: tuple[str, ...] = tuple(k.value for k in StepKind)


def _is_set(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)) and len(value) == 0:
        return False
    return True


def _tag_kind(value: Any) -> Any:
    """Detect which kind a raw step mapping holds and tag it for the union."""
    if isinstance(value, StepBase):
        return value
    if not isinstance(value, dict):
        raise ValueError(f"action step must be a mapping, got {type(value).__name__}")
    present = [k for k in KIND_KEYS if _is_set(value.get(k))]
    if not present:
        raise ValueError(f"action step must set exactly one of: {', '.join(KIND_KEYS)}")
    if len(present) > 1:
        raise ValueError(f"action step sets more than one kind: {', '.join(present)}")
    return {**value, "kind": present[0]}


# ---------- Step models (discriminated union by 'kind') ----------


class StepBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    kind: str
    name: Optional[str] = Field(default=None, description="Human-friendly step label")

    def describe(self) -> str:
        return self.name or str(self.kind)


class ScriptsStep(StepBase):
    kind: Literal["scripts"] = "scripts"
    scripts: list[str] = Field(..., min_length=1, description="Shell command lines, run in order")

    @field_validator("scripts")
    @classmethod
    def _lines_non_empty(cls, v: list[str]) -> list[str]:
        if any(not line.strip() for line in v):
            raise ValueError("script lines cannot be empty")
        return v

    def describe(self) -> str:
        return self.name or f"scripts ({len(self.scripts)})"


class CopyStep(StepBase):
    kind: Literal["copy"] = "copy"
    source: str = Field(..., alias="copy", description="Template path to copy")
    dst: Optional[str] = Field(default=None, description="Target path; defaults to the source path")

    @property
    def target(self) -> str:
        return self.dst or self.source

    def describe(self) -> str:
        return self.name or f"copy {self.source} -> {self.target}"


class MergeStep(StepBase):
    kind: Literal["merge"] = "merge"
    merge: str = Field(..., description="Template fragment to merge")
    dst: str = Field(..., description="Destination document")

    @field_validator("dst")
    @classmethod
    def _dst_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("merge.dst cannot be empty")
        return v

    def describe(self) -> str:
        return self.name or f"merge {self.merge} -> {self.dst}"


class RecipeStep(StepBase):
    kind: Literal["recipe"] = "recipe"
    recipe: str

    @field_validator("recipe")
    @classmethod
    def _recipe_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("recipe name cannot be empty")
        return v

    def describe(self) -> str:
        return self.name or f"recipe {self.recipe}"


class PromptOption(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    actions: list[ActionStep] = Field(default_factory=list)


class PromptStep(StepBase):
    kind: Literal["prompt"] = "prompt"
    prompt: str
    default: Optional[str] = None
    options: list[PromptOption] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_options(self) -> "PromptStep":
        names = [o.name for o in self.options]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"duplicate prompt option(s): {', '.join(dupes)}")
        if self.default is not None and self.default not in names:
            raise ValueError(f"prompt default '{self.default}' is not one of the options")
        return self

    def option(self, name: str) -> PromptOption:
        for o in self.options:
            if o.name == name:
                return o
        raise KeyError(name)

    def describe(self) -> str:
        return self.name or self.prompt


ActionStep = Annotated[
    Union[ScriptsStep, CopyStep, MergeStep, RecipeStep, PromptStep],
    Field(discriminator="kind"),
    BeforeValidator(_tag_kind),
]

PromptOption.model_rebuild()
PromptStep.model_rebuild()


# ---------- Groups and presets ----------


class ActionGroup(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(default="", description="Label shown while the group runs")
    actions: list[ActionStep] = Field(default_factory=list)


class PresetConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    tags: list[str] = Field(default_factory=list)
    create: list[ActionGroup] = Field(default_factory=list)
    preset: list[ActionGroup] = Field(default_factory=list)

    _preset_id: str = PrivateAttr(default="")
    _source_dir: Optional[Path] = PrivateAttr(default=None)

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @property
    def preset_id(self) -> str:
        return self._preset_id or self.name.lower()

    @property
    def source_dir(self) -> Optional[Path]:
        return self._source_dir

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    @classmethod
    def from_mapping(cls, data: dict, preset_id: str, source_dir: Optional[Path] = None) -> "PresetConfig":
        cfg = cls.model_validate(data)
        cfg._preset_id = preset_id.lower()
        cfg._source_dir = source_dir
        return cfg


# ---------- Execution context ----------


@dataclass(frozen=True)
class ExecutionContext:
    """Variables and runtime flags threaded through one workflow run."""
    working_dir: Path
    interactive: bool = False
    create_directory: Optional[str] = None
    variables: Mapping[str, str] = field(default_factory=dict)

    def environment(self) -> dict[str, str]:
        env = {str(k): str(v) for k, v in self.variables.items()}
        if self.create_directory is not None:
            env["CREATE_DIRECTORY"] = self.create_directory
        return env

    def in_directory(self, path: Path | str) -> "ExecutionContext":
        p = Path(path)
        return replace(self, working_dir=p if p.is_absolute() else self.working_dir / p)

    def creating(self, directory: str) -> "ExecutionContext":
        return replace(self, create_directory=directory)


# ---------- Loader ----------


def _normalize_short_form(data: dict, fallback_name: str) -> dict:
    # Recipes may be written as {title, actions} instead of full preset groups
    if "actions" not in data or "preset" in data or "create" in data:
        return data
    title = data.get("name") or data.get("title") or fallback_name
    return {
        "name": title,
        "tags": data.get("tags") or [],
        "preset": [{"name": str(title), "actions": data.get("actions") or []}],
    }


def _format_validation_error(source: str, ve: ValidationError) -> str:
    lines = [f"Invalid definition '{source}':"]
    for e in ve.errors():
        loc = ".".join(str(p) for p in e.get("loc", []))
        msg = e.get("msg", "invalid value")
        lines.append(f"  - {loc}: {msg}")
    return "\n".join(lines)


def parse_definition(data: Any, preset_id: str, source: str = "<memory>", source_dir: Optional[Path] = None) -> PresetConfig:
    """Validate an already-parsed mapping into a PresetConfig."""
    if not isinstance(data, dict):
        raise DefinitionError(f"Definition '{source}' must be a mapping at the top level.")
    data = _normalize_short_form(dict(data), preset_id)
    data.setdefault("name", preset_id)
    try:
        return PresetConfig.from_mapping(data, preset_id=preset_id, source_dir=source_dir)
    except ValidationError as ve:
        raise DefinitionError(_format_validation_error(source, ve)) from ve


def definition_id(path: Path) -> str:
    """Identity key for a definition file: `<id>/config.yml` or `<id>.yml`."""
    if path.stem.lower() == "config":
        return path.parent.name.lower()
    return path.stem.lower()


def load_definition(path: Path | str, preset_id: Optional[str] = None) -> PresetConfig:
    def_path = Path(path)
    if not def_path.exists():
        raise FileNotFoundError(f"Definition file not found: {def_path}")
    try:
        data = yaml.safe_load(def_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as ye:
        raise DefinitionError(f"YAML parse error in {def_path}: {ye}") from ye
    return parse_definition(
        data,
        preset_id=preset_id or definition_id(def_path),
        source=str(def_path),
        source_dir=def_path.parent,
    )


def iter_steps(groups: list[ActionGroup]):
    """Yield every step of a tree, descending into all prompt options."""
    for group in groups:
        yield from _iter_step_list(group.actions)


def _iter_step_list(steps):
    for step in steps:
        yield step
        if isinstance(step, PromptStep):
            for option in step.options:
                yield from _iter_step_list(option.actions)


__all__ = [
    "StepKind",
    "ScriptsStep",
    "CopyStep",
    "MergeStep",
    "RecipeStep",
    "PromptStep",
    "PromptOption",
    "ActionStep",
    "ActionGroup",
    "PresetConfig",
    "ExecutionContext",
    "parse_definition",
    "load_definition",
    "definition_id",
    "iter_steps",
]
