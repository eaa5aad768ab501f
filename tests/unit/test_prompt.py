import pytest

from koolpresets.core.errors import UserCancelled
from koolpresets.core.prompt import PromptEngine, RichChooser, choose_preset
from koolpresets.core.steps import PromptOption, parse_definition


OPTIONS = [PromptOption(name="npm"), PromptOption(name="yarn")]


def test_non_interactive_answers_with_default(chooser_factory):
    chooser = chooser_factory([])
    engine = PromptEngine(chooser=chooser, interactive=False)

    assert engine.ask("Package manager?", OPTIONS, "yarn").name == "yarn"
    assert engine.ask("Package manager?", OPTIONS, None).name == "npm"
    assert chooser.questions == []


def test_interactive_delegates_to_chooser(chooser_factory):
    chooser = chooser_factory(["yarn"])
    engine = PromptEngine(chooser=chooser, interactive=True)

    assert engine.ask("Package manager?", OPTIONS, "npm").name == "yarn"
    assert chooser.questions == ["Package manager?"]


def test_cancel_raises_user_cancelled(chooser_factory):
    engine = PromptEngine(chooser=chooser_factory([None]), interactive=True)
    with pytest.raises(UserCancelled):
        engine.ask("Package manager?", OPTIONS, "npm")


def test_chooser_answer_outside_options_is_rejected(chooser_factory):
    engine = PromptEngine(chooser=chooser_factory(["pnpm"]), interactive=True)
    with pytest.raises(ValueError):
        engine.ask("Package manager?", OPTIONS, "npm")


def test_rich_chooser_maps_numbers_and_interrupts(monkeypatch):
    answers = iter(["2"])
    monkeypatch.setattr("koolpresets.core.prompt.Prompt.ask", lambda *a, **k: next(answers))
    chooser = RichChooser()
    assert chooser.choose("Pick", ["npm", "yarn"], "npm") == "yarn"

    def interrupted(*a, **k):
        raise KeyboardInterrupt

    monkeypatch.setattr("koolpresets.core.prompt.Prompt.ask", interrupted)
    with pytest.raises(UserCancelled):
        chooser.choose("Pick", ["npm", "yarn"], "npm")


def test_choose_preset_branches_on_tags(chooser_factory):
    presets = [
        parse_definition({"name": "AdonisJS", "tags": ["JS"]}, preset_id="adonis"),
        parse_definition({"name": "Laravel", "tags": ["PHP"]}, preset_id="laravel"),
        parse_definition({"name": "NestJS", "tags": ["JS"]}, preset_id="nestjs"),
    ]
    chooser = chooser_factory(["JS", "NestJS"])
    engine = PromptEngine(chooser=chooser, interactive=True)

    picked = choose_preset(engine, presets)
    assert picked.preset_id == "nestjs"
    assert len(chooser.questions) == 2
