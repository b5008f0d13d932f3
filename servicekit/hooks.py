"""Service and step lifecycle hooks.

Hooks are declared as `Hook(event, target)` entries in a service's `HOOKS`
tuple. `target` is either the name of a service method or a callable; both
receive the hook arguments (the service for callables, then the event
arguments). Around hooks additionally receive a `proceed` callable as their
last argument and must call it to continue.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TypeAlias

from servicekit.errors import ConfigurationError

if TYPE_CHECKING:
    from servicekit.service import Service

HookEvent: TypeAlias = Literal[
    "before_step_run",
    "after_step_run",
    "around_step_run",
    "on_step_success",
    "on_step_failure",
    "on_step_crash",
    "before_service_run",
    "after_service_run",
    "around_service_run",
    "on_service_success",
    "on_service_failure",
]

HOOK_EVENTS: tuple[str, ...] = (
    "before_step_run",
    "after_step_run",
    "around_step_run",
    "on_step_success",
    "on_step_failure",
    "on_step_crash",
    "before_service_run",
    "after_service_run",
    "around_service_run",
    "on_service_success",
    "on_service_failure",
)


@dataclass(frozen=True)
class Hook:
    event: HookEvent
    target: str | Callable[..., Any]

    def __post_init__(self) -> None:
        if self.event not in HOOK_EVENTS:
            raise ConfigurationError(
                f"Unknown hook event: {self.event!r} (available: {', '.join(HOOK_EVENTS)})"
            )
        if isinstance(self.target, str):
            if not self.target.strip():
                raise ConfigurationError(f"{self.event} hook target cannot be empty")
            object.__setattr__(self, "target", self.target.strip())
        elif not callable(self.target):
            raise ConfigurationError(
                f"{self.event} hook must be a method name or a callable "
                f"(type={type(self.target).__name__})"
            )

    @property
    def is_around(self) -> bool:
        return self.event.startswith("around_")

    def invoke(self, service: "Service", *args: Any) -> Any:
        if isinstance(self.target, str):
            method = getattr(service, self.target, None)
            if method is None or not callable(method):
                raise ConfigurationError(
                    f"{type(service).__qualname__} {self.event} hook `{self.target}` is not a method"
                )
            return method(*args)
        return self.target(service, *args)

    def describe(self) -> dict[str, str]:
        if isinstance(self.target, str):
            label = self.target
        else:
            label = getattr(self.target, "__qualname__", None) or repr(self.target)
        return {"event": self.event, "target": label}


def hooks_for(hooks: Iterable[Hook], event: str) -> tuple[Hook, ...]:
    return tuple(hook for hook in hooks if hook.event == event)


def run_hooks(service: "Service", event: str, *args: Any) -> None:
    for hook in hooks_for(type(service).plan().hooks, event):
        hook.invoke(service, *args)


def run_around_hooks(service: "Service", event: str, body: Callable[[], Any], *args: Any) -> None:
    """Run `body` wrapped by every around hook, outermost first."""

    chain: Callable[[], Any] = body
    for hook in reversed(hooks_for(type(service).plan().hooks, event)):
        chain = _wrap(hook, service, chain, args)
    chain()


def _wrap(hook: Hook, service: "Service", inner: Callable[[], Any], args: tuple[Any, ...]) -> Callable[[], Any]:
    def proceed() -> Any:
        return hook.invoke(service, *args, inner)

    return proceed
