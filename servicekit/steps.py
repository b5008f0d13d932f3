"""Step declarations and the resolver that turns them into one ordered plan.

Each service class contributes `Step`/`RemoveStep` directives. Directives are
replayed on top of the parent's already-resolved plan when the class is
created, so an unknown anchor fails at import time rather than on first run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

from servicekit.errors import ConfigurationError, StepNotDefinedError

if TYPE_CHECKING:
    from servicekit.service import Service

Guard: TypeAlias = str | Callable[["Service"], Any]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Step:
    name: str
    when: Guard | None = None
    unless: Guard | None = None
    before: str | None = None
    after: str | None = None
    always: bool = False
    fn: Callable[["Service"], Any] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigurationError(f"Step name must be a non-empty string (got {self.name!r})")
        object.__setattr__(self, "name", self.name.strip())
        if self.when is not None and self.unless is not None:
            raise ConfigurationError(
                f"Step {self.name} cannot specify both `when` and `unless`"
            )
        if self.before is not None and self.after is not None:
            raise ConfigurationError(
                f"Step {self.name} cannot specify both `before` and `after`"
            )
        for label, guard in (("when", self.when), ("unless", self.unless)):
            if guard is None:
                continue
            if isinstance(guard, str):
                if not guard.strip():
                    raise ConfigurationError(f"Step {self.name} `{label}` cannot be empty")
            elif not callable(guard):
                raise ConfigurationError(
                    f"Step {self.name} `{label}` must be a name or a callable "
                    f"(type={type(guard).__name__})"
                )
        if self.fn is not None and not callable(self.fn):
            raise ConfigurationError(
                f"Step {self.name} fn must be callable (type={type(self.fn).__name__})"
            )

    @property
    def anchor(self) -> str | None:
        return self.before or self.after

    def should_run(self, service: "Service") -> bool:
        if self.when is not None:
            return bool(_evaluate_guard(self.when, service, step=self.name))
        if self.unless is not None:
            return not _evaluate_guard(self.unless, service, step=self.name)
        return True

    def body(self, service: "Service") -> Callable[[], Any]:
        if self.fn is not None:
            fn = self.fn
            return lambda: fn(service)
        method = getattr(service, self.name, None)
        if method is None or not callable(method):
            available = ", ".join(step.name for step in type(service).plan().steps) or "<none>"
            raise StepNotDefinedError(
                f"Step method `{self.name}` is not defined in {type(service).__qualname__} "
                f"(steps: {available})"
            )
        return method

    def describe(self) -> dict[str, Any]:
        row: dict[str, Any] = {"name": self.name}
        if self.when is not None:
            row["when"] = guard_label(self.when)
        if self.unless is not None:
            row["unless"] = guard_label(self.unless)
        if self.always:
            row["always"] = True
        return row


@dataclass(frozen=True)
class RemoveStep:
    name: str


StepDirective: TypeAlias = Step | RemoveStep


def guard_label(guard: Guard) -> str:
    if isinstance(guard, str):
        return guard
    module = getattr(guard, "__module__", None) or "<unknown_module>"
    qualname = getattr(guard, "__qualname__", None) or getattr(guard, "__name__", None) or "<callable>"
    return f"{module}.{qualname}"


def _evaluate_guard(guard: Guard, service: "Service", *, step: str) -> Any:
    if callable(guard):
        return guard(service)

    name = guard.strip()
    attr = getattr(type(service), name, None)
    if attr is not None:
        value = getattr(service, name)
        return value() if callable(value) else value
    if name in service.arguments:
        return service.arguments[name]
    if name in service.outputs:
        return service.outputs[name]
    if name in type(service).plan().arguments or name in type(service).plan().outputs:
        return None
    raise ConfigurationError(
        f"{type(service).__qualname__} step {step} guard `{name}` is not a method, argument, or output"
    )


def resolve_steps(
    owner: str,
    inherited: Iterable[Step],
    directives: Iterable[StepDirective],
) -> tuple[Step, ...]:
    """Replay `directives` on top of `inherited` and return the resolved order."""

    plan: list[Step] = list(inherited)

    for idx, directive in enumerate(directives):
        if isinstance(directive, RemoveStep):
            before = len(plan)
            plan = [step for step in plan if step.name != directive.name]
            if len(plan) == before:
                logger.debug("%s remove_step %s: not present, ignoring", owner, directive.name)
            continue

        if not isinstance(directive, Step):
            raise ConfigurationError(
                f"{owner} STEPS[{idx}] must be a Step or RemoveStep "
                f"(type={type(directive).__name__}, value={directive!r})"
            )

        anchor = directive.anchor
        if anchor is None:
            existing = _index_of(plan, directive.name)
            if existing is None:
                plan.append(directive)
            else:
                plan[existing] = directive
            continue

        if anchor == directive.name:
            raise ConfigurationError(f"{owner} step {directive.name} cannot be anchored to itself")

        plan = [step for step in plan if step.name != directive.name]
        target = _index_of(plan, anchor)
        if target is None:
            available = ", ".join(step.name for step in plan) or "<none>"
            raise ConfigurationError(
                f"Cannot find target step `{anchor}` in {owner} (available steps: {available})"
            )
        position = target if directive.before is not None else target + 1
        plan.insert(position, directive)

    return tuple(plan)


def _index_of(plan: list[Step], name: str) -> int | None:
    for idx, step in enumerate(plan):
        if step.name == name:
            return idx
    return None
