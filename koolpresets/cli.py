# koolpresets/cli.py
from __future__ import annotations

"""Command-line interface
------------------------
`create`, `preset` and `recipe` map onto the resolver/executor pair; `list`,
`validate` and `config` are conveniences for inspecting definitions.
Thin wrapper: all behavior lives in koolpresets.core.
"""

import functools
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import click

from koolpresets.core.errors import AutomateError, UserCancelled
from koolpresets.core.executor import Executor
from koolpresets.core.prompt import PromptEngine, choose_preset
from koolpresets.core.resolver import Registry, Resolver
from koolpresets.core.shell import ShellRunner
from koolpresets.core.steps import ExecutionContext, definition_id, load_definition
from koolpresets.utils.config import Settings, get_settings
from koolpresets.utils.logger import bind, get_logger, set_log_level, unbind


# -------- session --------


@dataclass
class Session:
    """State owned by one CLI invocation."""
    settings: Settings
    interactive: bool
    variables: dict[str, str] = field(default_factory=dict)
    _resolver: Optional[Resolver] = None

    @property
    def resolver(self) -> Resolver:
        if self._resolver is None:
            self._resolver = Resolver(Registry.from_settings(self.settings))
        return self._resolver

    def prompts(self) -> PromptEngine:
        return PromptEngine(interactive=self.interactive)

    def executor(self) -> Executor:
        return Executor(self.resolver, prompts=self.prompts(), runner=ShellRunner(self.settings.SCRIPT_SHELL))

    def context(self, working_dir: Optional[Path] = None) -> ExecutionContext:
        return ExecutionContext(
            working_dir=(working_dir or Path.cwd()).resolve(),
            interactive=self.interactive,
            variables=dict(self.variables),
        )


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False))


def _engine_command(func):
    """Report engine errors as a one-line message and map them to exit codes."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        log = get_logger(__name__)
        try:
            return func(*args, **kwargs)
        except UserCancelled:
            click.echo("Operation cancelled.")
            sys.exit(0)
        except AutomateError as e:
            log.debug("Engine failure", exc_info=True)
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        finally:
            unbind("command", "definition")
    return wrapper


def _definition_files(targets: List[str]) -> list[Path]:
    paths: list[Path] = []
    for t in targets:
        p = Path(t).resolve()
        if p.is_dir():
            paths.extend(sorted(list(p.rglob("*.yml")) + list(p.rglob("*.yaml"))))
        else:
            paths.append(p)
    return paths


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose output; also exported to scripts as KOOL_VERBOSE")
@click.option("--interactive/--no-interactive", default=None, help="Force prompts on/off (default: ask only on a TTY)")
@click.version_option(package_name="kool-presets")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], verbose: bool, interactive: Optional[bool]):
    settings = get_settings()
    if log_level:
        set_log_level(log_level.upper())
    variables = settings.script_variables()
    if verbose:
        set_log_level("DEBUG")
        variables["KOOL_VERBOSE"] = "true"
    if interactive is None:
        interactive = not settings.NON_INTERACTIVE and sys.stdin.isatty()
    ctx.obj = Session(settings=settings, interactive=bool(interactive), variables=variables)


# -------- commands --------


@cli.command("create")
@click.argument("preset_name", metavar="PRESET")
@click.argument("directory")
@click.pass_obj
@_engine_command
def cmd_create(session: Session, preset_name: str, directory: str):
    """Create a new project in DIRECTORY from PRESET."""
    bind(command="create", definition=preset_name)
    config = session.resolver.resolve(preset_name, kind="preset")
    project_dir = session.executor().create_project(config, session.context(), directory)
    click.echo(f"Project created at {project_dir}")


@cli.command("preset")
@click.argument("preset_name", metavar="[PRESET]", required=False)
@click.pass_obj
@_engine_command
def cmd_preset(session: Session, preset_name: Optional[str]):
    """Install a preset in the current directory (asks which one when omitted)."""
    if preset_name:
        config = session.resolver.resolve(preset_name, kind="preset")
    elif session.interactive:
        config = choose_preset(session.prompts(), session.resolver.presets())
    else:
        raise click.UsageError("PRESET is required when running non-interactively")
    bind(command="preset", definition=config.preset_id)
    session.executor().apply_preset(config, session.context())
    click.echo(f"Preset {config.name} applied.")


@cli.command("recipe")
@click.argument("recipe_name", metavar="RECIPE")
@click.pass_obj
@_engine_command
def cmd_recipe(session: Session, recipe_name: str):
    """Apply a recipe to the current directory."""
    bind(command="recipe", definition=recipe_name)
    config = session.resolver.resolve(recipe_name)
    session.executor().apply_recipe(config, session.context())
    click.echo(f"Recipe {config.name} applied.")


@cli.command("list")
@click.option("--tag", type=str, default=None, help="Only presets carrying this tag (exact match)")
@click.option("--recipes", "show_recipes", is_flag=True, default=False, help="List recipes instead of presets")
@click.pass_obj
def cmd_list(session: Session, tag: Optional[str], show_recipes: bool):
    """List available presets (or recipes)."""
    resolver = session.resolver
    rows = resolver.recipes() if show_recipes else resolver.presets(tag=tag)
    if not rows:
        click.echo("No recipes found." if show_recipes else "No presets found.")
        return
    label = "recipe" if show_recipes else "preset"
    click.echo(f"Found {len(rows)} {label}(s):\n")
    for cfg in rows:
        tags = f"  [{', '.join(cfg.tags)}]" if cfg.tags else ""
        click.echo(f" - {cfg.preset_id:<16} {cfg.name}{tags}")


@cli.command("validate")
@click.argument("targets", nargs=-1, required=False)
@click.pass_obj
def cmd_validate(session: Session, targets: List[str]):
    """Validate definition files, or every registered definition when none are given."""
    resolver = session.resolver
    ok = True
    if targets:
        loaded = []
        for fp in _definition_files(targets):
            try:
                loaded.append((fp, load_definition(fp, preset_id=definition_id(fp))))
            except (AutomateError, FileNotFoundError) as e:
                ok = False
                click.echo(f"ERR {fp}  ->  {e}")
    else:
        for fp, err in resolver.registry.errors.items():
            ok = False
            click.echo(f"ERR {fp}  ->  {err}")
        loaded = [(c.source_dir, c) for c in resolver.presets() + resolver.recipes()]

    for fp, cfg in loaded:
        try:
            resolver.preflight(cfg.create)
            resolver.preflight(cfg.preset)
        except AutomateError as e:
            ok = False
            click.echo(f"ERR {fp}  ->  {e}")
            continue
        click.echo(f"OK  {fp}  ->  [{cfg.preset_id}] {cfg.name} ({len(cfg.create)} create, {len(cfg.preset)} preset groups)")

    sys.exit(0 if ok else 1)


@cli.command("config")
@click.pass_obj
def cmd_config(session: Session):
    """Print effective configuration (after .env & env vars)."""
    data = {k: (str(v) if isinstance(v, Path) else v) for k, v in session.settings.model_dump().items()}
    data["interactive"] = session.interactive
    _echo_json(data)


def main() -> None:
    cli(prog_name="kool-presets")


if __name__ == "__main__":
    main()
