"""Assertion helpers for testing services with pytest.

Each helper raises `AssertionError` with a description of what was expected
and what the service actually holds, so they read well in pytest output:

    service = BuildWord.run(letters=[1, 2, 3])
    assert_error_on(service, "letters", "must be an array of strings")
"""

from __future__ import annotations

import re
from typing import Any, Pattern

from servicekit.fields import FieldSpec
from servicekit.messages import Messages
from servicekit.service import Service


def _text_matches(text: Any, expected: str | Pattern[str]) -> bool:
    if isinstance(expected, re.Pattern):
        return expected.search(str(text)) is not None
    return str(text) == expected


def _assert_message_on(store: Messages, label: str, owner: str, key: str, message: str | Pattern[str] | None) -> None:
    if key not in store:
        present = ", ".join(store.keys()) or "<none>"
        raise AssertionError(f"expected {owner} to have {label} on `{key}`, but it has {label}s on: {present}")
    if message is None:
        return
    texts = store.texts(key)
    if not any(_text_matches(text, message) for text in texts):
        shown = message.pattern if isinstance(message, re.Pattern) else message
        raise AssertionError(
            f"expected {owner} {label} on `{key}` to match {shown!r}, got {texts!r}"
        )


def assert_error_on(service: Service, key: str, message: str | Pattern[str] | None = None) -> None:
    _assert_message_on(service.errors, "error", type(service).__qualname__, key, message)


def assert_warning_on(service: Service, key: str, message: str | Pattern[str] | None = None) -> None:
    _assert_message_on(service.warnings, "warning", type(service).__qualname__, key, message)


def assert_no_errors(service: Service) -> None:
    if service.errors.any():
        raise AssertionError(
            f"expected {type(service).__qualname__} to have no errors, got {service.errors.to_dict()!r}"
        )


def _assert_field(spec: FieldSpec | None, owner: str, label: str, name: str, expected: dict[str, Any]) -> None:
    if spec is None:
        raise AssertionError(f"expected {owner} to define {label} `{name}`")
    for attr, want in expected.items():
        if not hasattr(spec, attr):
            raise AssertionError(f"{label} `{name}` has no attribute `{attr}`")
        got = getattr(spec, attr)
        if attr == "type" and isinstance(want, type):
            want = (want,)
        if got != want:
            raise AssertionError(
                f"expected {owner} {label} `{name}` to have {attr}={want!r}, but it has {attr}={got!r}"
            )


def assert_defines_argument(service_class: type[Service], name: str, **expected: Any) -> None:
    _assert_field(service_class.plan().arguments.get(name), service_class.__qualname__, "argument", name, expected)


def assert_defines_output(service_class: type[Service], name: str, **expected: Any) -> None:
    _assert_field(service_class.plan().outputs.get(name), service_class.__qualname__, "output", name, expected)


def assert_defines_step(
    service_class: type[Service],
    name: str,
    *,
    before: str | None = None,
    after: str | None = None,
    **expected: Any,
) -> None:
    """Check a step exists, optionally its position and its declared attributes."""

    owner = service_class.__qualname__
    names = list(service_class.plan().step_names())
    if name not in names:
        raise AssertionError(f"expected {owner} to define step `{name}` (steps: {', '.join(names) or '<none>'})")

    idx = names.index(name)
    if before is not None:
        if before not in names or names.index(before) != idx + 1:
            raise AssertionError(f"expected {owner} step `{name}` to run right before `{before}` (steps: {names})")
    if after is not None:
        if after not in names or names.index(after) != idx - 1:
            raise AssertionError(f"expected {owner} step `{name}` to run right after `{after}` (steps: {names})")

    step = service_class.plan().steps[idx]
    for attr, want in expected.items():
        got = getattr(step, attr)
        if got != want:
            raise AssertionError(f"expected {owner} step `{name}` to have {attr}={want!r}, but it has {attr}={got!r}")


def executed_steps(service: Service) -> list[str]:
    """Names of the steps whose bodies were entered, in order."""

    return list(service.launched_steps)
