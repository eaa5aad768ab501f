"""
Core package for kool-presets.
Lightweight package init to avoid import cycles.

Consumers should import submodules directly, e.g.:
  from koolpresets.core.resolver import Registry, Resolver
  from koolpresets.core.executor import Executor
  from koolpresets.core.merge import merge
"""

__all__: list[str] = []
