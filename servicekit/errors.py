"""Exception hierarchy for `servicekit`.

Two tiers: configuration/contract failures are caller bugs and always raise;
business messages live in `Messages` stores and only raise when a store is
configured with `raise_on_add`.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for every error raised by `servicekit`."""


class ConfigurationError(ServiceError, ValueError):
    """A service class was declared incorrectly."""


class InvalidNameError(ConfigurationError):
    pass


class ReservedNameError(ConfigurationError):
    pass


class NoStepsError(ConfigurationError):
    pass


class StepNotDefinedError(ConfigurationError):
    pass


class ContractError(ServiceError):
    """Arguments or outputs do not satisfy the declared contract."""


class InvalidRawInputShape(ContractError, TypeError):
    pass


class MissingArgument(ContractError, ValueError):
    def __init__(self, owner: str, field: str, *, collection: str = "arguments") -> None:
        self.owner = owner
        self.field = field
        self.collection = collection
        kind = "argument" if collection == "arguments" else "output"
        super().__init__(f"{owner} {kind} `{field}` is required but was not provided")


class TypeMismatch(ContractError, TypeError):
    def __init__(
        self,
        owner: str,
        field: str,
        expected_type: tuple[type, ...],
        actual_value: Any,
        *,
        collection: str = "arguments",
    ) -> None:
        self.owner = owner
        self.field = field
        self.expected_type = expected_type
        self.actual_value = actual_value
        self.collection = collection
        kind = "argument" if collection == "arguments" else "output"
        expected = " or ".join(t.__name__ for t in expected_type)
        super().__init__(
            f"{owner} {kind} `{field}` must be {expected} "
            f"(type={type(actual_value).__name__}, value={actual_value!r})"
        )


class StopExecution(Exception):
    """Raised by `Service.stop_immediately()`; caught inside the transaction scope."""


class FailExecution(Exception):
    """Raised by `Service.fail_immediately()`; escapes the transaction scope so it rolls back."""
