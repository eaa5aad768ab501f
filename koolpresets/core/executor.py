# koolpresets/core/executor.py
from __future__ import annotations

"""Step executor
----------------
Walks action groups in order and dispatches each step by kind. Execution is
strictly sequential and the first failure aborts the whole run; steps that
already ran are not rolled back.
"""

import shutil
from pathlib import Path
from typing import Optional

from koolpresets.core.errors import DefinitionError, ScriptFailureError
from koolpresets.core.merge import merge_file
from koolpresets.core.prompt import PromptEngine
from koolpresets.core.resolver import ResolutionPath, Resolver
from koolpresets.core.shell import CommandRunner, ShellRunner
from koolpresets.core.steps import (
    ActionGroup,
    CopyStep,
    ExecutionContext,
    MergeStep,
    PresetConfig,
    PromptStep,
    RecipeStep,
    ScriptsStep,
    StepKind,
)
from koolpresets.utils.logger import get_logger, log_with_context
from koolpresets.utils.timing import measure


class Executor:
    """Runs preset/recipe step trees against a working directory."""

    def __init__(
        self,
        resolver: Resolver,
        prompts: Optional[PromptEngine] = None,
        runner: Optional[CommandRunner] = None,
    ):
        self.resolver = resolver
        self.prompts = prompts or PromptEngine()
        self.runner = runner or ShellRunner()
        self.log = get_logger(__name__)

    # ---- Entry points ----

    def run(
        self,
        groups: list[ActionGroup],
        ctx: ExecutionContext,
        *,
        origin: Optional[PresetConfig] = None,
        path: Optional[ResolutionPath] = None,
    ) -> None:
        """Execute `groups` in order; any step failure propagates unchanged."""
        path = path if path is not None else ResolutionPath()
        scope = log_with_context(self.log, definition=origin.preset_id if origin else None, depth=len(path))
        for g_idx, group in enumerate(groups, start=1):
            if group.name:
                scope.info(f"{'  ' * len(path)}{group.name}")
            self._run_steps(group.actions, ctx, origin, path, log=log_with_context(scope, group=g_idx))

    def _run_steps(self, steps, ctx: ExecutionContext, origin: Optional[PresetConfig], path: ResolutionPath,
                   log=None) -> None:
        log = log or self.log
        for s_idx, step in enumerate(steps, start=1):
            step_log = log_with_context(log, step=s_idx, kind=str(step.kind))
            step_log.debug(f"Step {s_idx}/{len(steps)}: {step.describe()}")
            self._dispatch(step, ctx, origin, path)

    def apply_preset(self, config: PresetConfig, ctx: ExecutionContext) -> None:
        """Install `config` into ctx.working_dir (its `preset` workflow)."""
        path = ResolutionPath()
        self.resolver.preflight(config.preset, path)
        self.log.info(f"Applying preset {config.name}")
        self.run(config.preset, ctx, origin=config, path=path)

    def apply_recipe(self, config: PresetConfig, ctx: ExecutionContext) -> None:
        path = ResolutionPath()
        with path.expanding(config.preset_id):
            self.resolver.preflight(config.preset, path)
            self.log.info(f"Applying recipe {config.name}")
            self.run(config.preset, ctx, origin=config, path=path)

    def create_project(self, config: PresetConfig, ctx: ExecutionContext, directory: str) -> Path:
        """Scaffold `directory` with the `create` workflow, then install the preset in it."""
        if not config.create:
            raise DefinitionError(f"preset '{config.preset_id}' does not define a create workflow")
        self.resolver.preflight(config.create, ResolutionPath())
        self.resolver.preflight(config.preset, ResolutionPath())

        create_ctx = ctx.creating(directory)
        self.log.info(f"Creating new {config.name} project in {directory}")
        self.run(config.create, create_ctx, origin=config)

        project_ctx = create_ctx.in_directory(directory)
        project_ctx.working_dir.mkdir(parents=True, exist_ok=True)
        self.run(config.preset, project_ctx, origin=config)
        return project_ctx.working_dir

    # ---- Dispatch ----

    def _dispatch(self, step, ctx: ExecutionContext, origin: Optional[PresetConfig], path: ResolutionPath) -> None:
        kind = step.kind
        if kind == StepKind.scripts:
            self._do_scripts(step, ctx)
        elif kind == StepKind.copy:
            self._do_copy(step, ctx, origin)
        elif kind == StepKind.merge:
            self._do_merge(step, ctx, origin)
        elif kind == StepKind.recipe:
            self._do_recipe(step, ctx, path)
        elif kind == StepKind.prompt:
            self._do_prompt(step, ctx, origin, path)
        else:
            raise NotImplementedError(f"Unsupported step kind: {kind}")

    @measure("scripts")
    def _do_scripts(self, step: ScriptsStep, ctx: ExecutionContext) -> None:
        env = ctx.environment()
        for line in step.scripts:
            self.log.info(f"$ {line}")
            if ctx.interactive:
                self.runner.interactive(line, env=env, cwd=ctx.working_dir)
                continue
            code = self.runner.run_command(line, env, cwd=ctx.working_dir)
            if code != 0:
                raise ScriptFailureError(line, code)

    @measure("copy")
    def _do_copy(self, step: CopyStep, ctx: ExecutionContext, origin: Optional[PresetConfig]) -> None:
        src = self.resolver.registry.find_template(step.source, origin)
        dst = ctx.working_dir / step.target
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dst)
        self.log.info(f"Copied {step.source} -> {step.target}")

    @measure("merge")
    def _do_merge(self, step: MergeStep, ctx: ExecutionContext, origin: Optional[PresetConfig]) -> None:
        src = self.resolver.registry.find_template(step.merge, origin)
        merge_file(src, ctx.working_dir / step.dst)
        self.log.info(f"Merged {step.merge} into {step.dst}")

    def _do_recipe(self, step: RecipeStep, ctx: ExecutionContext, path: ResolutionPath) -> None:
        cfg = self.resolver.resolve(step.recipe)
        with path.expanding(cfg.preset_id):
            self.run(cfg.preset, ctx, origin=cfg, path=path)

    def _do_prompt(self, step: PromptStep, ctx: ExecutionContext, origin: Optional[PresetConfig],
                   path: ResolutionPath) -> None:
        option = self.prompts.ask(step.prompt, step.options, step.default, interactive=ctx.interactive)
        self.log.debug(f"Selected option: {option.name}")
        self._run_steps(option.actions, ctx, origin, path)


__all__ = ["Executor"]
