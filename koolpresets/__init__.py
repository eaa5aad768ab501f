"""
kool-presets: declarative preset/recipe automation for project scaffolding.
"""

__version__ = "0.1.0"
