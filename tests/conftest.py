import textwrap
from pathlib import Path
from typing import Optional

import pytest

from koolpresets.core.errors import UserCancelled
from koolpresets.core.executor import Executor
from koolpresets.core.prompt import PromptEngine
from koolpresets.core.resolver import Registry, Resolver
from koolpresets.core.steps import ExecutionContext
from koolpresets.utils.config import get_settings
from koolpresets.utils.logger import reset_logging


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    for key in ("PRESETS_DIR", "RECIPES_DIR", "TEMPLATES_DIR", "NON_INTERACTIVE", "KOOL_VERBOSE", "SCRIPT_SHELL", "LOG_TO_FILE", "LOG_FILE", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    reset_logging()
    yield
    reset_logging()
    get_settings.cache_clear()


class FakeRunner:
    """Records commands instead of spawning them; `fail_on` makes matching lines exit non-zero."""

    def __init__(self, fail_on: Optional[str] = None, exit_code: int = 1):
        self.fail_on = fail_on
        self.exit_code = exit_code
        self.calls: list[tuple[str, dict, Optional[Path]]] = []
        self.interactive_calls: list[tuple[str, dict, Optional[Path]]] = []

    def run_command(self, cmd, env, cwd=None):
        self.calls.append((cmd, dict(env), cwd))
        if self.fail_on and self.fail_on in cmd:
            return self.exit_code
        return 0

    def interactive(self, cmd, *args, env=None, cwd=None):
        self.interactive_calls.append((cmd, dict(env or {}), cwd))

    @property
    def commands(self) -> list[str]:
        return [c[0] for c in self.calls]


class FakeChooser:
    """Answers prompts from a queue; an answer of None simulates Ctrl-C."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.questions: list[str] = []

    def choose(self, question, names, default):
        self.questions.append(question)
        answer = self.answers.pop(0)
        if answer is None:
            raise UserCancelled()
        return answer


class Workspace:
    """Throwaway preset/recipe/template directories plus a project dir."""

    def __init__(self, root: Path):
        self.presets = root / "presets"
        self.recipes = root / "recipes"
        self.templates = root / "templates"
        self.project = root / "project"
        for d in (self.presets, self.recipes, self.templates, self.project):
            d.mkdir(parents=True, exist_ok=True)

    def preset(self, preset_id: str, text: str) -> Path:
        p = self.presets / preset_id / "config.yml"
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(textwrap.dedent(text), encoding="utf-8")
        return p

    def recipe(self, recipe_id: str, text: str) -> Path:
        p = self.recipes / f"{recipe_id}.yml"
        p.write_text(textwrap.dedent(text), encoding="utf-8")
        return p

    def template(self, name: str, text: str) -> Path:
        p = self.templates / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(textwrap.dedent(text), encoding="utf-8")
        return p

    def registry(self) -> Registry:
        return Registry(preset_dirs=[self.presets], recipe_dirs=[self.recipes], template_dirs=[self.templates])

    def resolver(self) -> Resolver:
        return Resolver(self.registry())

    def executor(self, runner=None, chooser=None) -> Executor:
        prompts = PromptEngine(chooser=chooser)
        return Executor(self.resolver(), prompts=prompts, runner=runner or FakeRunner())

    def context(self, interactive=False, **variables) -> ExecutionContext:
        return ExecutionContext(working_dir=self.project, interactive=interactive, variables=variables)


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(tmp_path)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def runner_factory():
    return FakeRunner


@pytest.fixture
def chooser_factory():
    return FakeChooser
