# koolpresets/core/prompt.py
from __future__ import annotations

"""Prompt engine
----------------
Single-choice questions for `prompt` steps and the preset wizard. The engine
never blocks when the run is non-interactive: it answers with the default.
"""

from typing import Optional, Protocol, Sequence

from rich.console import Console
from rich.prompt import Prompt

from koolpresets.core.errors import UserCancelled
from koolpresets.core.steps import PresetConfig, PromptOption
from koolpresets.utils.logger import get_logger


class Chooser(Protocol):
    def choose(self, question: str, names: Sequence[str], default: Optional[str]) -> str: ...


class RichChooser:
    """Numbered menu on the terminal; accepts an option number or name."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def choose(self, question: str, names: Sequence[str], default: Optional[str]) -> str:
        self.console.print(f"[bold]{question}[/bold]")
        for idx, name in enumerate(names, start=1):
            marker = " (default)" if name == default else ""
            self.console.print(f"  {idx}. {name}{marker}")
        choices = [str(i) for i in range(1, len(names) + 1)] + list(names)
        default_choice = str(names.index(default) + 1) if default in names else None
        try:
            answer = Prompt.ask(
                "Select",
                console=self.console,
                choices=choices,
                default=default_choice,
                show_choices=False,
            )
        except (KeyboardInterrupt, EOFError) as e:
            raise UserCancelled() from e
        if answer.isdigit():
            return names[int(answer) - 1]
        return answer


class PromptEngine:
    """Asks single-choice questions.

    `interactive` is the fallback for callers without an execution context
    (the preset wizard); the executor passes the context's flag per question.
    """

    def __init__(self, chooser: Optional[Chooser] = None, interactive: bool = False):
        self.chooser = chooser or RichChooser()
        self.interactive = interactive
        self.log = get_logger(__name__)

    def ask(self, question: str, options: Sequence[PromptOption], default: Optional[str] = None, *,
            interactive: Optional[bool] = None) -> PromptOption:
        by_name = {o.name: o for o in options}
        return by_name[self.ask_name(question, list(by_name), default, interactive=interactive)]

    def ask_name(self, question: str, names: Sequence[str], default: Optional[str] = None, *,
                 interactive: Optional[bool] = None) -> str:
        """Return one of `names`; raises UserCancelled if the user bails out."""
        if not names:
            raise ValueError(f"no options to choose from for: {question}")
        if default is not None and default not in names:
            raise ValueError(f"default '{default}' is not one of the options")
        fallback = default if default is not None else names[0]
        if not (self.interactive if interactive is None else interactive):
            self.log.info(f"{question} -> {fallback} (non-interactive)")
            return fallback
        picked = self.chooser.choose(question, list(names), fallback)
        if picked not in names:
            raise ValueError(f"'{picked}' is not a valid option for: {question}")
        self.log.debug(f"{question} -> {picked}")
        return picked


def choose_preset(engine: PromptEngine, presets: Sequence[PresetConfig]) -> PresetConfig:
    """Preset wizard: pick a tag first, then one of the presets carrying it."""
    if not presets:
        raise ValueError("no presets available")
    tags: list[str] = []
    for p in presets:
        for t in p.tags:
            if t not in tags:
                tags.append(t)
    candidates = list(presets)
    if len(tags) > 1:
        tag = engine.ask_name("What language or framework do you want to use?", tags)
        candidates = [p for p in presets if p.has_tag(tag)]
    names = [p.name for p in candidates]
    picked = engine.ask_name("Which preset do you want to use?", names)
    return candidates[names.index(picked)]


__all__ = ["Chooser", "RichChooser", "PromptEngine", "choose_preset"]
