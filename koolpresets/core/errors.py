# koolpresets/core/errors.py
from __future__ import annotations

"""Engine errors
----------------
Every failure the engine raises derives from AutomateError so the CLI can
report it without a traceback. Errors propagate unchanged through nested
recipe/prompt expansion.
"""

from typing import Iterable, Optional


class AutomateError(Exception):
    """Base class for all engine errors."""


class NotFoundError(AutomateError, LookupError):
    def __init__(self, name: str, kind: str = "preset or recipe", available: Iterable[str] = ()):
        self.name = name
        self.kind = kind
        self.available = sorted(available)
        msg = f"no {kind} named '{name}'"
        if self.available:
            msg += f" (available: {', '.join(self.available)})"
        super().__init__(msg)


class TemplateNotFoundError(NotFoundError):
    def __init__(self, name: str, searched: Iterable[str] = ()):
        self.searched = list(searched)
        AutomateError.__init__(self, f"template '{name}' not found (searched: {', '.join(self.searched) or '-'})")
        self.name = name
        self.kind = "template"
        self.available = []


class DefinitionError(AutomateError, ValueError):
    """Malformed preset/recipe definition, raised before any step runs."""


class CyclicRecipeError(AutomateError):
    def __init__(self, path: list[str]):
        self.path = list(path)
        super().__init__(f"recipe cycle detected: {' -> '.join(self.path)}")


class ScriptFailureError(AutomateError):
    def __init__(self, command: str, exit_code: int):
        self.command = command
        self.exit_code = exit_code
        super().__init__(f"command failed with exit code {exit_code}: {command}")


class MergeTypeConflictError(AutomateError, TypeError):
    def __init__(self, base_type: str, overlay_type: str, where: Optional[str] = None):
        self.base_type = base_type
        self.overlay_type = overlay_type
        loc = f" in {where}" if where else ""
        super().__init__(f"cannot merge a {overlay_type} onto a {base_type}{loc}")


class MergeIOError(AutomateError, OSError):
    """Merge source or destination could not be read, parsed or written."""


class UserCancelled(AutomateError):
    """The user interrupted an interactive prompt; the run stops cleanly."""

    def __init__(self, message: str = "operation cancelled by user"):
        super().__init__(message)


__all__ = [
    "AutomateError",
    "NotFoundError",
    "TemplateNotFoundError",
    "DefinitionError",
    "CyclicRecipeError",
    "ScriptFailureError",
    "MergeTypeConflictError",
    "MergeIOError",
    "UserCancelled",
]
