"""
Validate every built-in preset and recipe, including recipe references.
Run: python scripts/validate_presets.py
"""

import sys

from koolpresets.core.errors import AutomateError
from koolpresets.core.resolver import Registry, Resolver
from koolpresets.utils.logger import get_logger


def main() -> int:
    log = get_logger(__name__)
    registry = Registry()
    resolver = Resolver(registry)

    failures = len(registry.errors)
    for path, err in registry.errors.items():
        log.error(f"{path}: {err}")

    definitions = resolver.presets() + resolver.recipes()
    for cfg in definitions:
        try:
            resolver.preflight(cfg.create)
            resolver.preflight(cfg.preset)
        except AutomateError as e:
            failures += 1
            log.error(f"{cfg.preset_id}: {e}")

    log.info(f"Validated {len(definitions)} definition(s), {failures} failure(s).")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
