from pathlib import Path
import json
import logging
import sys

import pytest

from koolpresets.core.errors import ScriptFailureError
from koolpresets.core.shell import ShellRunner
from koolpresets.utils.config import LogLevel, get_settings
from koolpresets.utils.logger import bind, get_logger, log_with_context, reset_logging, set_log_level
from koolpresets.utils.timing import humanize_ms, measure


def test_settings_from_env_are_absolutized(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PRESETS_DIR", "my-presets")
    monkeypatch.setenv("KOOL_VERBOSE", "1")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")

    s = get_settings()
    assert s.PRESETS_DIR == tmp_path / "my-presets"
    assert s.RECIPES_DIR is None
    assert s.LOG_LEVEL is LogLevel.WARNING
    assert s.script_variables() == {"KOOL_VERBOSE": "true"}
    assert get_settings() is s


def test_settings_read_dotenv(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("NON_INTERACTIVE=true\nUNRELATED_APP_KEY=x\n", encoding="utf-8")

    s = get_settings()
    assert s.NON_INTERACTIVE is True
    assert s.script_variables() == {}


def test_humanize_ms():
    assert humanize_ms(12) == "12 ms"
    assert humanize_ms(1500) == "1.500 s"


def test_measure_keeps_return_value_and_exceptions():
    @measure("ok")
    def ok(x):
        return x * 2

    @measure()
    def boom():
        raise RuntimeError("x")

    assert ok(21) == 42
    assert ok.__name__ == "ok"
    with pytest.raises(RuntimeError):
        boom()


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell syntax")
def test_shell_runner_exports_env_and_returns_exit_code(tmp_path: Path):
    runner = ShellRunner()
    code = runner.run_command('test "$CREATE_DIRECTORY" = my-app && touch marker', {"CREATE_DIRECTORY": "my-app"}, cwd=tmp_path)
    assert code == 0
    assert (tmp_path / "marker").exists()
    assert runner.run_command("exit 4", {}, cwd=tmp_path) == 4


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell syntax")
def test_shell_runner_interactive_raises_on_failure(tmp_path: Path):
    runner = ShellRunner()
    runner.interactive("true", cwd=tmp_path)
    with pytest.raises(ScriptFailureError) as ei:
        runner.interactive("sh", "-c", "exit 3", cwd=tmp_path)
    assert ei.value.exit_code == 3
    assert ei.value.command == "sh -c exit 3"
    assert str(ei.value) == "command failed with exit code 3: sh -c exit 3"


def test_file_log_is_json_with_bound_context(tmp_path: Path, monkeypatch):
    log_file = tmp_path / "logs" / "run.log"
    monkeypatch.setenv("LOG_TO_FILE", "true")
    monkeypatch.setenv("LOG_FILE", str(log_file))

    bind(command="recipe", definition="pick-db")
    log = log_with_context(get_logger("koolpresets.core.executor"), step=2, kind="merge")
    log.info("Merged cache/redis.yml into docker-compose.yml")
    get_logger("koolpresets.core.executor").debug("hidden at INFO")
    reset_logging()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["level"] == "INFO"
    assert record["logger"] == "koolpresets.core.executor"
    assert record["msg"] == "Merged cache/redis.yml into docker-compose.yml"
    assert (record["command"], record["definition"], record["step"], record["kind"]) == ("recipe", "pick-db", 2, "merge")


def test_verbose_setting_lowers_log_level(monkeypatch):
    monkeypatch.setenv("KOOL_VERBOSE", "true")
    assert get_logger().logger.getEffectiveLevel() == logging.DEBUG

    set_log_level("warning")
    assert get_logger().logger.getEffectiveLevel() == logging.WARNING
