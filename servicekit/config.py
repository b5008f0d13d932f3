"""Service configuration: global defaults, class overrides, per-call overrides."""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from servicekit.config_namespace import ConfigNamespace

logger = logging.getLogger(__name__)

# Keys that may be set from mappings or YAML files.
BOOLEAN_KEYS: tuple[str, ...] = (
    "require_arg_type",
    "require_output_type",
    "use_transactions",
    "load_errors",
    "break_on_error",
    "raise_on_error",
    "rollback_on_error",
    "load_warnings",
    "break_on_warning",
    "raise_on_warning",
    "rollback_on_warning",
)


@dataclass(frozen=True)
class ServiceConfig:
    require_arg_type: bool = False
    require_output_type: bool = False
    use_transactions: bool = True

    load_errors: bool = True
    break_on_error: bool = True
    raise_on_error: bool = False
    rollback_on_error: bool = True

    load_warnings: bool = True
    break_on_warning: bool = False
    raise_on_warning: bool = False
    rollback_on_warning: bool = False

    transaction_manager: Any = None

    def __post_init__(self) -> None:
        for key in BOOLEAN_KEYS:
            value = getattr(self, key)
            if not isinstance(value, bool):
                raise TypeError(f"ServiceConfig.{key} must be a boolean (type={type(value).__name__})")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, path: str = "servicekit") -> "ServiceConfig":
        return cls().merge(data, path=path)

    def merge(self, overrides: Mapping[str, Any] | None = None, *, path: str = "servicekit", **kwargs: Any) -> "ServiceConfig":
        """Return a copy with `overrides` applied; unknown keys are rejected."""

        combined: dict[str, Any] = dict(overrides or {})
        combined.update(kwargs)
        if not combined:
            return self

        changes: dict[str, Any] = {}
        if "transaction_manager" in combined:
            changes["transaction_manager"] = combined.pop("transaction_manager")

        ns = ConfigNamespace(combined, path=path)
        for key in BOOLEAN_KEYS:
            if ns.has(key):
                changes[key] = ns.get_bool(key)
        ns.assert_consumed()
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name in BOOLEAN_KEYS}


_lock = threading.Lock()
_global_config = ServiceConfig()


def get_config() -> ServiceConfig:
    return _global_config


def configure(overrides: Mapping[str, Any] | None = None, **kwargs: Any) -> ServiceConfig:
    """Update the process-wide defaults used by every service."""

    global _global_config
    with _lock:
        _global_config = _global_config.merge(overrides, **kwargs)
        logger.debug("servicekit config updated: %s", _global_config.to_dict())
        return _global_config


def reset_config() -> ServiceConfig:
    global _global_config
    with _lock:
        _global_config = ServiceConfig()
        return _global_config
