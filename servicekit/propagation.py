"""Copying a child service's messages into its parent."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from servicekit.service import Service

logger = logging.getLogger(__name__)


def propagate_messages(
    child: "Service",
    parent: "Service",
    *,
    load_errors: bool = True,
    load_warnings: bool = True,
) -> None:
    """Re-add the child's warnings, then errors, under the parent's policies.

    Because the parent's stores apply their own break/raise/rollback settings,
    a propagated error can stop the parent's step loop or raise out of the
    step that ran the child.
    """

    if load_warnings and child.warnings.any():
        logger.debug(
            "Copying %d warning(s) from %s to %s",
            child.warnings.count(),
            type(child).__qualname__,
            type(parent).__qualname__,
        )
        parent.warnings.copy_from(child.warnings)
    if load_errors and child.errors.any():
        logger.debug(
            "Copying %d error(s) from %s to %s",
            child.errors.count(),
            type(child).__qualname__,
            type(parent).__qualname__,
        )
        parent.errors.copy_from(child.errors)
