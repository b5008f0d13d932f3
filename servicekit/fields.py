"""Argument and output declarations."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal, TypeAlias

from servicekit.errors import ConfigurationError, TypeMismatch

FieldKind: TypeAlias = Literal["argument", "output"]

_MISSING: Any = object()


def _normalize_type(raw: Any, *, label: str) -> tuple[type, ...] | None:
    if raw is None:
        return None
    items = raw if isinstance(raw, tuple) else (raw,)
    if not items:
        raise ConfigurationError(f"{label} type cannot be an empty tuple")
    for item in items:
        if not isinstance(item, type):
            raise ConfigurationError(
                f"{label} type must be a class or a tuple of classes (got {item!r})"
            )
    return items


def _matches_type(value: Any, expected: tuple[type, ...]) -> bool:
    # bool is an int subclass; only accept it when bool itself is declared.
    if isinstance(value, bool) and bool not in expected:
        return any(t is object for t in expected)
    return isinstance(value, expected)


@dataclass(frozen=True)
class FieldSpec:
    kind: ClassVar[FieldKind]

    name: str
    type: tuple[type, ...] | None = None
    optional: bool = False
    default: Any = _MISSING
    default_factory: Callable[[Mapping[str, Any]], Any] | None = None
    context: bool = False

    def __post_init__(self) -> None:
        label = f"{self.kind.capitalize()} {self.name}"
        object.__setattr__(self, "type", _normalize_type(self.type, label=label))
        if self.default is not _MISSING and self.default_factory is not None:
            raise ConfigurationError(f"{label} cannot set both default and default_factory")
        if self.default_factory is not None and not callable(self.default_factory):
            raise ConfigurationError(
                f"{label} default_factory must be callable (type={type(self.default_factory).__name__})"
            )
        if self.context and self.kind != "argument":
            raise ConfigurationError(f"{label} context=True is only supported on arguments")

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING or self.default_factory is not None

    @property
    def required(self) -> bool:
        return not self.optional

    def accepts(self, value: Any) -> bool:
        if self.type is None:
            return True
        return _matches_type(value, self.type)

    def check(self, value: Any, *, owner: str) -> None:
        if not self.accepts(value):
            assert self.type is not None
            raise TypeMismatch(owner, self.name, self.type, value, collection=f"{self.kind}s")

    def describe(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "name": self.name,
            "type": [t.__name__ for t in self.type] if self.type else None,
            "optional": self.optional,
        }
        if self.default is not _MISSING:
            row["default"] = repr(self.default)
        if self.default_factory is not None:
            row["default_factory"] = getattr(self.default_factory, "__qualname__", repr(self.default_factory))
        if self.kind == "argument":
            row["context"] = self.context
        return row


@dataclass(frozen=True)
class Arg(FieldSpec):
    """Declare a service argument.

    `default_factory` receives a read-only view of the arguments and outputs
    resolved so far, so it may derive its value from sibling fields.
    """

    kind: ClassVar[FieldKind] = "argument"


@dataclass(frozen=True)
class Output(FieldSpec):
    kind: ClassVar[FieldKind] = "output"


@dataclass(frozen=True)
class RemoveField:
    kind: ClassVar[FieldKind]

    name: str


@dataclass(frozen=True)
class RemoveArg(RemoveField):
    kind: ClassVar[FieldKind] = "argument"


@dataclass(frozen=True)
class RemoveOutput(RemoveField):
    kind: ClassVar[FieldKind] = "output"


FieldDirective: TypeAlias = FieldSpec | RemoveField


@dataclass(frozen=True)
class FieldSet:
    """Resolved, ordered field declarations for one collection."""

    kind: FieldKind
    fields: tuple[FieldSpec, ...] = field(default_factory=tuple)

    def names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def get(self, name: str) -> FieldSpec | None:
        for item in self.fields:
            if item.name == name:
                return item
        return None

    def __contains__(self, name: object) -> bool:
        return any(item.name == name for item in self.fields)

    def __iter__(self):
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)
