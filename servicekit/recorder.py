"""Step recorders: the logging seam of the execution engine."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from servicekit.service import Service


class StepRecorder(Protocol):
    def on_step_start(self, service: "Service", path: str, **metrics: Any) -> None:
        ...

    def on_step_end(self, service: "Service", record: dict[str, Any]) -> None:
        ...

    def on_step_error(self, service: "Service", path: str, step_name: str, exc: Exception) -> None:
        ...


class DefaultStepRecorder:
    def on_step_start(self, service: "Service", path: str, **metrics: Any) -> None:
        tokens: list[str] = []
        guard = metrics.get("guard")
        if isinstance(guard, str) and guard.strip():
            tokens.append(f"guard={guard.strip()}")
        source = metrics.get("source")
        if isinstance(source, str) and source.strip():
            tokens.append(f"source={source.strip()}")
        doc = metrics.get("doc")
        if isinstance(doc, str) and doc.strip():
            tokens.append(f"doc={json.dumps(doc.strip(), ensure_ascii=False)}")

        if tokens:
            service.logger.info("Step: %s (%s)", path, ", ".join(tokens))
        else:
            service.logger.info("Step: %s", path)

    def on_step_end(self, service: "Service", record: dict[str, Any]) -> None:
        service.steps.append(record)
        path = record.get("path", "<unknown>")
        status = record.get("status") or "ran"
        if status == "skipped":
            service.logger.debug("Skipped step %s", path)
            return

        errors_added = int(record.get("errors_added", 0) or 0)
        if errors_added:
            service.logger.info("Completed step %s (errors_added=%d)", path, errors_added)
        else:
            service.logger.info("Completed step %s", path)

    def on_step_error(self, service: "Service", path: str, step_name: str, exc: Exception) -> None:
        service.logger.error("Step failed: %s (%s)", path, exc)


class NullStepRecorder:
    def on_step_start(self, service: "Service", path: str, **metrics: Any) -> None:
        return

    def on_step_end(self, service: "Service", record: dict[str, Any]) -> None:
        return

    def on_step_error(self, service: "Service", path: str, step_name: str, exc: Exception) -> None:
        return


def validate_recorder(recorder: Any) -> None:
    required = ("on_step_start", "on_step_end", "on_step_error")
    for name in required:
        method = getattr(recorder, name, None)
        if method is None or not callable(method):
            raise TypeError(f"Step recorder missing required method: {name}")
