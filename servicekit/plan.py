"""Class-level declarations resolved into immutable, cached plans.

`build_plan` runs once per service class from `Service.__init_subclass__`. It
replays the class's own `ARGS`/`OUTPUTS`/`STEPS`/`HOOKS`/`CONFIG` on top of the
parent's plan, so every declaration error surfaces when the class is created.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from servicekit.config import ServiceConfig, get_config
from servicekit.errors import ConfigurationError, ReservedNameError
from servicekit.fields import FieldKind, FieldSet, FieldSpec, RemoveField
from servicekit.hooks import Hook
from servicekit.steps import Step, resolve_steps
from servicekit.utils import normalize_name

logger = logging.getLogger(__name__)

# Attribute names of `Service` that declarations must not shadow.
RESERVED_NAMES: frozenset[str] = frozenset(
    {
        "arguments",
        "outputs",
        "errors",
        "warnings",
        "config",
        "parent",
        "state",
        "logger",
        "steps",
        "launched_steps",
        "recorder",
        "succeeded",
        "failed",
        "has_errors",
        "has_warnings",
        "stop",
        "stopped",
        "stop_immediately",
        "fail",
        "fail_immediately",
        "done",
        "is_done",
        "call",
        "run",
        "run_or_raise",
        "with_context",
        "plan",
        "describe",
        "result",
        "recorder_class",
        "ARGS",
        "OUTPUTS",
        "STEPS",
        "HOOKS",
        "CONFIG",
    }
)

IMPLICIT_STEP = "perform"


@dataclass(frozen=True)
class ServicePlan:
    owner: str
    arguments: FieldSet = field(default_factory=lambda: FieldSet(kind="argument"))
    outputs: FieldSet = field(default_factory=lambda: FieldSet(kind="output"))
    steps: tuple[Step, ...] = ()
    hooks: tuple[Hook, ...] = ()
    config: Mapping[str, Any] = field(default_factory=dict)

    def step_names(self) -> tuple[str, ...]:
        return tuple(step.name for step in self.steps)

    def describe(self) -> dict[str, Any]:
        return {
            "service": self.owner,
            "arguments": [spec.describe() for spec in self.arguments],
            "outputs": [spec.describe() for spec in self.outputs],
            "steps": [step.describe() for step in self.steps],
            "hooks": [hook.describe() for hook in self.hooks],
            "config": {k: v for k, v in self.config.items() if k != "transaction_manager"},
            "accessors": accessor_signatures(self),
        }


def accessor_signatures(plan: ServicePlan) -> list[str]:
    """Synthesized accessor forms for documentation and editor tooling."""

    rows: list[str] = []
    for collection, specs in (("arguments", plan.arguments), ("outputs", plan.outputs)):
        for spec in specs:
            type_label = " | ".join(t.__name__ for t in spec.type) if spec.type else "Any"
            if spec.optional:
                type_label = f"{type_label} | None"
            rows.append(f'self.{collection}["{spec.name}"] -> {type_label}')
            rows.append(f'bool(self.{collection}.get("{spec.name}")) -> bool')
            rows.append(f'self.{collection}["{spec.name}"] = value  # {type_label}')
    return rows


def _resolve_fields(
    owner: str,
    kind: FieldKind,
    attr: str,
    inherited: FieldSet,
    directives: Any,
    *,
    require_type: bool,
) -> FieldSet:
    if not isinstance(directives, (tuple, list)):
        raise ConfigurationError(f"{owner}.{attr} must be a tuple (type={type(directives).__name__})")

    resolved: dict[str, FieldSpec] = {spec.name: spec for spec in inherited}
    for idx, directive in enumerate(directives):
        if isinstance(directive, RemoveField) and directive.kind == kind:
            resolved.pop(directive.name, None)
            continue
        if not isinstance(directive, FieldSpec) or directive.kind != kind:
            raise ConfigurationError(
                f"{owner}.{attr}[{idx}] has the wrong declaration type "
                f"(type={type(directive).__name__}, value={directive!r})"
            )
        name = normalize_name(directive.name, what=kind, owner=owner)
        if name in RESERVED_NAMES or name.startswith("_"):
            raise ReservedNameError(
                f"Cannot use `{name}` as {kind} name in {owner} - it is reserved by Service"
            )
        if require_type and directive.type is None:
            raise ConfigurationError(f"{owner} {kind} `{name}` must declare a type")
        # Reassigning an existing key keeps the inherited position.
        resolved[name] = directive
    return FieldSet(kind=kind, fields=tuple(resolved.values()))


def _resolve_config(owner: str, inherited: Mapping[str, Any], own: Any) -> dict[str, Any]:
    if own is None:
        return dict(inherited)
    if not isinstance(own, Mapping):
        raise ConfigurationError(f"{owner}.CONFIG must be a mapping (type={type(own).__name__})")
    merged = dict(inherited)
    merged.update(own)
    try:
        ServiceConfig().merge(merged, path=f"{owner}.CONFIG")
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(str(exc)) from exc
    return merged


def _check_conflicts(owner: str, arguments: FieldSet, outputs: FieldSet, steps: tuple[Step, ...]) -> None:
    groups = (
        ("argument", set(arguments.names())),
        ("output", set(outputs.names())),
        ("step", {step.name for step in steps}),
    )
    for i, (label_a, names_a) in enumerate(groups):
        for label_b, names_b in groups[i + 1 :]:
            clash = sorted(names_a & names_b)
            if clash:
                raise ReservedNameError(
                    f"Cannot use `{clash[0]}` as {label_b} name in {owner} - "
                    f"it is already defined as {label_a}"
                )


def build_plan(service_class: type, parent: ServicePlan | None) -> ServicePlan:
    owner = f"{service_class.__module__}.{service_class.__qualname__}"
    own = service_class.__dict__

    config = _resolve_config(owner, parent.config if parent else {}, own.get("CONFIG"))
    effective = get_config().merge(config)

    arguments = _resolve_fields(
        owner,
        "argument",
        "ARGS",
        parent.arguments if parent else FieldSet(kind="argument"),
        own.get("ARGS", ()),
        require_type=effective.require_arg_type,
    )
    outputs = _resolve_fields(
        owner,
        "output",
        "OUTPUTS",
        parent.outputs if parent else FieldSet(kind="output"),
        own.get("OUTPUTS", ()),
        require_type=effective.require_output_type,
    )

    step_directives = own.get("STEPS", ())
    if not isinstance(step_directives, (tuple, list)):
        raise ConfigurationError(f"{owner}.STEPS must be a tuple (type={type(step_directives).__name__})")
    for directive in step_directives:
        if isinstance(directive, Step):
            name = normalize_name(directive.name, what="step", owner=owner)
            if name in RESERVED_NAMES or name.startswith("_"):
                raise ReservedNameError(
                    f"Cannot use `{name}` as step name in {owner} - it is reserved by Service"
                )
    steps = resolve_steps(owner, parent.steps if parent else (), step_directives)
    if not steps and callable(getattr(service_class, IMPLICIT_STEP, None)):
        steps = (Step(IMPLICIT_STEP),)

    hook_directives = own.get("HOOKS", ())
    if not isinstance(hook_directives, (tuple, list)):
        raise ConfigurationError(f"{owner}.HOOKS must be a tuple (type={type(hook_directives).__name__})")
    for idx, hook in enumerate(hook_directives):
        if not isinstance(hook, Hook):
            raise ConfigurationError(
                f"{owner}.HOOKS[{idx}] must be a Hook (type={type(hook).__name__}, value={hook!r})"
            )
    hooks = (*(parent.hooks if parent else ()), *hook_directives)

    _check_conflicts(owner, arguments, outputs, steps)

    plan = ServicePlan(
        owner=owner,
        arguments=arguments,
        outputs=outputs,
        steps=steps,
        hooks=hooks,
        config=config,
    )
    logger.debug("Resolved plan for %s: steps=%s", owner, ", ".join(plan.step_names()) or "<none>")
    return plan
