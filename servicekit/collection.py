"""Argument/output storage for a single service invocation."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any, Literal, TypeAlias

from servicekit.errors import InvalidRawInputShape, MissingArgument
from servicekit.fields import FieldSet
from servicekit.utils import deep_dup

CollectionKind: TypeAlias = Literal["arguments", "outputs"]
ALLOWED_COLLECTION_KINDS: tuple[str, ...] = ("arguments", "outputs")

logger = logging.getLogger(__name__)


class ContractCollection:
    def __init__(
        self,
        owner: str,
        kind: CollectionKind,
        fields: FieldSet,
        storage: Any = None,
    ) -> None:
        if kind not in ALLOWED_COLLECTION_KINDS:
            raise ValueError(
                f"collection kind must be one of {', '.join(ALLOWED_COLLECTION_KINDS)} (got {kind!r})"
            )
        if storage is None:
            storage = {}
        if not isinstance(storage, Mapping):
            raise InvalidRawInputShape(
                f"{owner} {kind} must be a mapping (type={type(storage).__name__})"
            )
        bad_keys = [key for key in storage.keys() if not isinstance(key, str)]
        if bad_keys:
            raise InvalidRawInputShape(
                f"{owner} {kind} keys must be strings (got {', '.join(repr(k) for k in bad_keys)})"
            )

        self.owner = owner
        self.kind: CollectionKind = kind
        self.fields = fields
        self._storage: dict[str, Any] = dict(storage)

    def __repr__(self) -> str:
        return f"ContractCollection(owner={self.owner!r}, kind={self.kind!r}, values={self._storage!r})"

    def set(self, key: str, value: Any) -> Any:
        self._storage[key] = value
        return value

    def get(self, key: str, default: Any = None) -> Any:
        return self._storage.get(key, default)

    def has_key(self, key: str) -> bool:
        return key in self._storage

    def keys(self) -> list[str]:
        return list(self._storage.keys())

    def to_dict(self) -> dict[str, Any]:
        return dict(self._storage)

    def __getitem__(self, key: str) -> Any:
        return self._storage[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: object) -> bool:
        return key in self._storage

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._storage.keys()))

    def __len__(self) -> int:
        return len(self._storage)

    def check_required(self) -> None:
        """Raise for required fields that have no value and no default to fall back on."""

        for spec in self.fields:
            if spec.optional or spec.has_default or spec.name in self._storage:
                continue
            raise MissingArgument(self.owner, spec.name, collection=self.kind)

    def load_defaults(self, view: Mapping[str, Any]) -> None:
        for spec in self.fields:
            if not spec.has_default or spec.name in self._storage:
                continue
            if spec.default_factory is not None:
                value = spec.default_factory(view)
            else:
                value = deep_dup(spec.default)
            self._storage[spec.name] = value

    def validate(self) -> None:
        for spec in self.fields:
            present = spec.name in self._storage
            value = self._storage.get(spec.name)
            if spec.optional and (not present or value is None):
                continue
            if not present:
                raise MissingArgument(self.owner, spec.name, collection=self.kind)
            spec.check(value, owner=self.owner)

    def extend_with_context(
        self,
        raw: dict[str, Any],
        *,
        accepts: FieldSet | None = None,
    ) -> dict[str, Any]:
        """Copy context-flagged values into `raw` without overwriting explicit keys."""

        if self.kind != "arguments":
            return raw
        for spec in self.fields:
            if not spec.context or spec.name in raw or spec.name not in self._storage:
                continue
            if accepts is not None and spec.name not in accepts:
                continue
            raw[spec.name] = self._storage[spec.name]
            logger.debug("Forwarding context argument %s from %s", spec.name, self.owner)
        return raw


class ContractView(Mapping[str, Any]):
    """Read-only lookup over arguments first, then outputs."""

    def __init__(self, *collections: ContractCollection) -> None:
        self._collections = collections

    def __getitem__(self, key: str) -> Any:
        for collection in self._collections:
            if key in collection:
                return collection[key]
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for collection in self._collections:
            for key in collection:
                if key not in seen:
                    seen.add(key)
                    yield key

    def __len__(self) -> int:
        return sum(1 for _ in self)
