"""Overlay a user settings file on the defaults."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


def overlay_settings(defaults: Dict[str, Any], user: Dict[str, Any], *, prefix: str = "") -> Dict[str, Any]:
    """Return a copy of ``defaults`` with ``user`` values applied.

    Sections (mappings in the defaults) are merged key by key. A user value
    that would replace a section with a scalar or list is dropped and logged,
    so a typo like ``playback: 100`` cannot wipe the poll intervals.
    """
    merged = copy.deepcopy(defaults)
    for key, value in user.items():
        name = f"{prefix}{key}"
        current = merged.get(key)
        if isinstance(current, dict):
            if isinstance(value, dict):
                merged[key] = overlay_settings(current, value, prefix=f"{name}.")
            else:
                logger.warning("Ignoring setting %s: expected a section, got %r", name, value)
            continue
        merged[key] = copy.deepcopy(value)
    return merged
