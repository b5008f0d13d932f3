"""Per-service error and warning stores.

A `Messages` instance maps field keys to ordered lists of `Message` entries and
applies its own break/raise/rollback policy every time something is added,
including messages copied in from another store.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from servicekit.errors import ServiceError

MessageKind: TypeAlias = Literal["errors", "warnings"]
ALLOWED_MESSAGE_KINDS: tuple[str, ...] = ("errors", "warnings")

BASE_KEY = "base"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Message:
    key: str
    text: Any
    break_execution: bool | None = None
    rollback: bool | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key.strip():
            raise ServiceError(f"Message key must be a non-empty string (got {self.key!r})")
        object.__setattr__(self, "key", self.key.strip())
        if self.text is None:
            raise ServiceError(f"Message for {self.key} must not be None")
        if isinstance(self.text, str) and not self.text.strip():
            raise ServiceError(f"Message for {self.key} must be a non-empty string")

    def __str__(self) -> str:
        return str(self.text)


class Messages:
    def __init__(
        self,
        kind: MessageKind = "errors",
        *,
        break_on_add: bool = False,
        raise_on_add: bool = False,
        rollback_on_add: bool = False,
    ) -> None:
        if kind not in ALLOWED_MESSAGE_KINDS:
            raise ValueError(f"Invalid message kind: {kind}")
        self.kind: MessageKind = kind
        self.break_on_add = bool(break_on_add)
        self.raise_on_add = bool(raise_on_add)
        self.rollback_on_add = bool(rollback_on_add)
        self._messages: dict[str, list[Message]] = {}
        self._break = False
        self._rollback = False

    def __repr__(self) -> str:
        return f"Messages(kind={self.kind!r}, messages={self.to_dict()!r})"

    def add(
        self,
        key: str,
        texts: Any,
        *,
        break_execution: bool | None = None,
        rollback: bool | None = None,
    ) -> None:
        if texts is None:
            raise ServiceError(f"Cannot add an empty {self.kind[:-1]} to {key!r}")

        items = list(texts) if isinstance(texts, (list, tuple)) else [texts]
        if not items:
            raise ServiceError(f"Cannot add an empty {self.kind[:-1]} to {key!r}")

        message: Message | None = None
        for item in items:
            if isinstance(item, Message):
                message = item
            else:
                message = Message(key, item, break_execution=break_execution, rollback=rollback)
            self._messages.setdefault(message.key, []).append(message)

        assert message is not None
        self._apply_policies(message, break_execution=break_execution, rollback=rollback)

    def add_from_validation(self, source: Any, **opts: Any) -> None:
        """Import messages from an external validator.

        Supports pydantic-style errors (`source.errors()` returning dicts with
        `loc`/`msg`), objects exposing an `errors` mapping, and plain mappings.
        """

        errors_attr = getattr(source, "errors", None)
        if callable(errors_attr):
            entries = errors_attr()
            pairs: list[tuple[str, Any]] = []
            for entry in entries:
                if not isinstance(entry, Mapping):
                    raise ServiceError(f"Unsupported validation entry: {entry!r}")
                loc = entry.get("loc") or ()
                key = ".".join(str(part) for part in loc) if loc else BASE_KEY
                pairs.append((key, entry.get("msg")))
            self._add_pairs(pairs, **opts)
            return
        if isinstance(errors_attr, Mapping):
            self.copy_from(errors_attr, **opts)
            return
        if isinstance(source, Mapping):
            self.copy_from(source, **opts)
            return
        raise ServiceError(f"Don't know how to import {self.kind} from {type(source).__name__}")

    def remove(self, key: str) -> list[Message]:
        return self._messages.pop(key, [])

    def copy_from(
        self,
        source: Any,
        *,
        break_execution: bool | None = None,
        rollback: bool | None = None,
    ) -> None:
        """Re-add every message of `source` under this store's own policies."""

        if isinstance(source, Messages):
            pairs = [(message.key, message.text) for message in source.iter_messages()]
        elif _is_service(source):
            store = source.errors if self.kind == "errors" else source.warnings
            pairs = [(message.key, message.text) for message in store.iter_messages()]
        elif isinstance(source, Mapping):
            pairs = []
            for key, texts in source.items():
                values = texts if isinstance(texts, (list, tuple)) else [texts]
                pairs.extend((str(key), str(text) if isinstance(text, Message) else text) for text in values)
        else:
            raise ServiceError(f"Don't know how to import {self.kind} from {type(source).__name__}")

        self._add_pairs(pairs, break_execution=break_execution, rollback=rollback)

    def copy_to(self, target: Any) -> Any:
        if isinstance(target, Messages):
            target.copy_from(self)
            return target
        if _is_service(target):
            store = target.errors if self.kind == "errors" else target.warnings
            store.copy_from(self)
            return target
        if isinstance(target, MutableMapping):
            for key, messages in self._messages.items():
                target.setdefault(key, []).extend(message.text for message in messages)
            return target
        adder = getattr(getattr(target, self.kind, None), "add", None)
        if callable(adder):
            for message in self.iter_messages():
                adder(message.key, message.text)
            return target
        raise ServiceError(f"Don't know how to export {self.kind} to {type(target).__name__}")

    @property
    def break_requested(self) -> bool:
        return self._break

    @property
    def rollback_requested(self) -> bool:
        return self._rollback

    @property
    def is_empty(self) -> bool:
        return not self._messages

    def any(self) -> bool:
        return bool(self._messages)

    def has_key(self, key: str) -> bool:
        return key in self._messages

    def count(self) -> int:
        return sum(len(items) for items in self._messages.values())

    def keys(self) -> list[str]:
        return list(self._messages.keys())

    def items(self) -> list[tuple[str, list[Message]]]:
        return [(key, list(items)) for key, items in self._messages.items()]

    def iter_messages(self) -> Iterator[Message]:
        for items in self._messages.values():
            yield from items

    def texts(self, key: str) -> list[Any]:
        return [message.text for message in self._messages.get(key, [])]

    def to_dict(self) -> dict[str, list[Any]]:
        return {key: [message.text for message in items] for key, items in self._messages.items()}

    def __contains__(self, key: object) -> bool:
        return key in self._messages

    def __getitem__(self, key: str) -> list[Message]:
        return list(self._messages.get(key, []))

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._messages.keys()))

    def __len__(self) -> int:
        return len(self._messages)

    def __bool__(self) -> bool:
        return bool(self._messages)

    def _add_pairs(
        self,
        pairs: list[tuple[str, Any]],
        *,
        break_execution: bool | None = None,
        rollback: bool | None = None,
    ) -> None:
        for key, text in pairs:
            self.add(key, text, break_execution=break_execution, rollback=rollback)

    def _apply_policies(
        self,
        message: Message,
        *,
        break_execution: bool | None,
        rollback: bool | None,
    ) -> None:
        # Order matters: the message is already stored, so a raise below still
        # leaves it available for inspection.
        wants_rollback = self.rollback_on_add if rollback is None else bool(rollback)
        if wants_rollback:
            self._rollback = True

        if self.raise_on_add:
            raise ServiceError(f"{message.key.capitalize()} {message}")

        wants_break = self.break_on_add if break_execution is None else bool(break_execution)
        if wants_break:
            self._break = True
        logger.debug(
            "Added %s on %s (break=%s, rollback=%s)", self.kind[:-1], message.key, wants_break, wants_rollback
        )


def _is_service(value: Any) -> bool:
    return isinstance(getattr(value, "errors", None), Messages) and isinstance(
        getattr(value, "warnings", None), Messages
    )
