from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any

from servicekit.errors import InvalidNameError

logger = logging.getLogger(__name__)


def utc_now_iso8601() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def deep_dup(value: Any) -> Any:
    """Return an independent copy of a default value.

    Falls back to a shallow copy, then to the value itself, for objects that
    refuse to be deep-copied (locks, open handles).
    """

    try:
        return copy.deepcopy(value)
    except (TypeError, copy.Error):
        logger.debug("deepcopy failed for %s; falling back to shallow copy", type(value).__name__)
    try:
        return copy.copy(value)
    except (TypeError, copy.Error):
        return value


def normalize_name(raw: Any, *, what: str, owner: str) -> str:
    if not isinstance(raw, str):
        raise InvalidNameError(
            f"{what.capitalize()} name must be a string in {owner} (type={type(raw).__name__}, value={raw!r})"
        )
    name = raw.strip()
    if not name:
        raise InvalidNameError(f"{what.capitalize()} name cannot be empty in {owner}")
    if not name.isidentifier():
        raise InvalidNameError(f"{what.capitalize()} name must be an identifier in {owner} (got {raw!r})")
    return name
