# koolpresets/core/merge.py
from __future__ import annotations

"""YAML merge engine
--------------------
Deep structural merge of two YAML documents. Mappings merge key by key,
sequences and scalars from the overlay replace the base value. `None`, `{}`
and `[]` are the empty document, the identity on either side.
"""

import copy
from pathlib import Path
from typing import Any

import yaml

from koolpresets.core.errors import MergeIOError, MergeTypeConflictError
from koolpresets.utils.logger import get_logger

Document = Any

__all__ = ["Document", "merge", "load_document", "dump_document", "merge_file"]


def _is_empty(doc: Document) -> bool:
    return doc is None or (isinstance(doc, (dict, list)) and not doc)


def _shape(value: Any) -> str:
    if isinstance(value, dict):
        return "mapping"
    if isinstance(value, list):
        return "sequence"
    return "scalar"


def _merge_mappings(base: dict, overlay: dict) -> dict:
    out: dict = {}
    for key, value in base.items():
        if key in overlay:
            other = overlay[key]
            if isinstance(value, dict) and isinstance(other, dict):
                out[key] = _merge_mappings(value, other)
            else:
                out[key] = copy.deepcopy(other)
        else:
            out[key] = copy.deepcopy(value)
    for key, value in overlay.items():
        if key not in base:
            out[key] = copy.deepcopy(value)
    return out


def merge(base: Document, overlay: Document, *, where: str | None = None) -> Document:
    """Return `overlay` merged onto `base`; neither input is modified.

    Raises MergeTypeConflictError when both documents are non-empty and their
    top-level shapes differ (e.g. a sequence overlay onto a mapping).
    """
    if _is_empty(overlay):
        return copy.deepcopy(overlay if base is None else base)
    if _is_empty(base):
        return copy.deepcopy(overlay)

    base_shape, overlay_shape = _shape(base), _shape(overlay)
    if base_shape != overlay_shape:
        raise MergeTypeConflictError(base_shape, overlay_shape, where=where)
    if base_shape == "mapping":
        return _merge_mappings(base, overlay)
    # sequences are atomic blocks; scalars simply replace
    return copy.deepcopy(overlay)


# ---------- File helpers ----------


def load_document(path: Path) -> Document:
    """Parse a YAML file; a missing or blank file is the empty document."""
    if not path.exists():
        return None
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as ye:
        raise MergeIOError(f"YAML parse error in {path}: {ye}") from ye
    except OSError as oe:
        raise MergeIOError(f"cannot read {path}: {oe}") from oe


def dump_document(doc: Document) -> str:
    return yaml.safe_dump(
        doc,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        indent=2,
    )


def merge_file(source: Path, destination: Path) -> Document:
    """Merge the YAML fragment at `source` into `destination` and write it back.

    When the destination is missing or empty the source text is written
    verbatim, so comments and formatting of the fragment survive. A fragment
    with no content leaves an existing destination untouched.
    """
    log = get_logger(__name__)
    if not source.exists():
        raise MergeIOError(f"merge source not found: {source}")
    overlay = load_document(source)
    base = load_document(destination)

    if _is_empty(overlay) and not _is_empty(base):
        log.debug(f"{source.name} is empty; {destination} left untouched")
        return base

    destination.parent.mkdir(parents=True, exist_ok=True)
    if _is_empty(base):
        try:
            destination.write_text(source.read_text(encoding="utf-8"), encoding="utf-8")
        except OSError as oe:
            raise MergeIOError(f"cannot write {destination}: {oe}") from oe
        log.debug(f"Wrote {source.name} into empty {destination}")
        return overlay

    merged = merge(base, overlay, where=str(destination))
    try:
        destination.write_text(dump_document(merged), encoding="utf-8")
    except OSError as oe:
        raise MergeIOError(f"cannot write {destination}: {oe}") from oe
    log.debug(f"Merged {source} into {destination}")
    return merged
