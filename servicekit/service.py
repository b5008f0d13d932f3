"""The `Service` base class and its execution engine.

A service is declared with class attributes and resolved into a `ServicePlan`
when the class is created:

    class BuildWord(Service):
        ARGS = (Arg("letters", list), Arg("reverse", bool, default=False))
        OUTPUTS = (Output("word", str, default=""),)
        STEPS = (Step("add_letters"), Step("reverse_word", when="reverse"))

`BuildWord.run(letters=["a", "b"])` constructs an instance, executes every step
in plan order and returns the finished instance. Errors and warnings are
collected on the instance rather than raised unless the config says otherwise.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal, TypeAlias

from servicekit.collection import ContractCollection, ContractView
from servicekit.config import ServiceConfig, get_config
from servicekit.errors import (
    FailExecution,
    InvalidRawInputShape,
    NoStepsError,
    ServiceError,
    StopExecution,
)
from servicekit.fields import FieldDirective
from servicekit.hooks import Hook, run_around_hooks, run_hooks
from servicekit.messages import BASE_KEY, Messages
from servicekit.plan import ServicePlan, build_plan
from servicekit.propagation import propagate_messages
from servicekit.recorder import DefaultStepRecorder, StepRecorder, validate_recorder
from servicekit.steps import Step, StepDirective, guard_label
from servicekit.transactions import NullTransactionManager, Transaction, validate_transaction_manager
from servicekit.utils import utc_now_iso8601

ServiceState: TypeAlias = Literal["pending", "running", "succeeded", "failed"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Snapshot of a finished run."""

    service: str
    state: str
    succeeded: bool
    outputs: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, list[Any]] = field(default_factory=dict)
    warnings: dict[str, list[Any]] = field(default_factory=dict)
    launched_steps: tuple[str, ...] = ()
    stopped: bool = False

    @property
    def failed(self) -> bool:
        return not self.succeeded

    def __getitem__(self, key: str) -> Any:
        return self.outputs[key]


def _step_record(path: str, name: str, status: str, errors_added: int = 0) -> dict[str, Any]:
    return {
        "type": "step",
        "name": name,
        "path": path,
        "status": status,
        "errors_added": errors_added,
        "created_at": utc_now_iso8601(),
    }


def _merge_raw(owner: str, raw: Any, kwargs: Mapping[str, Any]) -> dict[str, Any]:
    if raw is None:
        return dict(kwargs)
    if not isinstance(raw, Mapping):
        raise InvalidRawInputShape(
            f"{owner} arguments must be a mapping (type={type(raw).__name__})"
        )
    merged = dict(raw)
    merged.update(kwargs)
    return merged


class Service:
    ARGS: ClassVar[tuple[FieldDirective, ...]] = ()
    OUTPUTS: ClassVar[tuple[FieldDirective, ...]] = ()
    STEPS: ClassVar[tuple[StepDirective, ...]] = ()
    HOOKS: ClassVar[tuple[Hook, ...]] = ()
    CONFIG: ClassVar[Mapping[str, Any] | None] = None

    # Per-class override of the step recorder; `None` means DefaultStepRecorder.
    recorder_class: ClassVar[type | None] = None

    _plan: ClassVar[ServicePlan]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        parent: ServicePlan | None = None
        for base in cls.__mro__[1:]:
            if isinstance(base, type) and issubclass(base, Service):
                parent = base._plan
                break
        cls._plan = build_plan(cls, parent)

    @classmethod
    def plan(cls) -> ServicePlan:
        return cls._plan

    @classmethod
    def describe(cls) -> dict[str, Any]:
        return cls._plan.describe()

    @classmethod
    def run(cls, raw: Mapping[str, Any] | None = None, /, **kwargs: Any) -> "Service":
        """Construct and execute in one call; returns the finished instance."""

        return BoundService(cls).run(raw, **kwargs)

    @classmethod
    def run_or_raise(cls, raw: Mapping[str, Any] | None = None, /, **kwargs: Any) -> "Service":
        """Like `run`, but the first error raises `ServiceError`."""

        return BoundService(cls, config={"raise_on_error": True}).run(raw, **kwargs)

    @classmethod
    def with_context(cls, parent: "Service | None" = None, **overrides: Any) -> "BoundService":
        """Bind a parent service and/or config overrides for the next `run`."""

        return BoundService(cls, parent=parent, config=overrides)

    def __init__(
        self,
        raw: Mapping[str, Any] | None = None,
        *,
        config: Mapping[str, Any] | None = None,
        parent: "Service | None" = None,
    ) -> None:
        cls = type(self)
        plan = cls.plan()
        owner = cls.__qualname__

        if parent is not None and not isinstance(parent, Service):
            raise TypeError(f"{owner} parent must be a Service (type={type(parent).__name__})")
        overrides = dict(config or {})

        self.parent = parent
        self.config: ServiceConfig = get_config().merge(plan.config).merge(overrides, path=f"{owner}.config")
        self.logger = logging.getLogger(f"{cls.__module__}.{cls.__qualname__}")
        self.state: ServiceState = "pending"
        self.steps: list[dict[str, Any]] = []
        self.launched_steps: list[str] = []
        self._stopped = False

        if parent is None:
            self._load_errors = self.config.load_errors
            self._load_warnings = self.config.load_warnings
        else:
            self._load_errors = bool(overrides.get("load_errors", parent.config.load_errors))
            self._load_warnings = bool(overrides.get("load_warnings", parent.config.load_warnings))

        transactional = self.config.use_transactions
        self.errors = Messages(
            "errors",
            break_on_add=self.config.break_on_error,
            raise_on_add=self.config.raise_on_error,
            rollback_on_add=transactional and self.config.rollback_on_error,
        )
        self.warnings = Messages(
            "warnings",
            break_on_add=self.config.break_on_warning,
            raise_on_add=self.config.raise_on_warning,
            rollback_on_add=transactional and self.config.rollback_on_warning,
        )

        recorder_class = cls.recorder_class or DefaultStepRecorder
        self.recorder: StepRecorder = recorder_class()
        validate_recorder(self.recorder)

        self.arguments = ContractCollection(owner, "arguments", plan.arguments, raw)
        self.outputs = ContractCollection(owner, "outputs", plan.outputs)
        # Factories may read required arguments, so those must exist first.
        self.arguments.check_required()
        view = ContractView(self.arguments, self.outputs)
        self.arguments.load_defaults(view)
        self.outputs.load_defaults(view)
        self.arguments.validate()

    def __repr__(self) -> str:
        return f"<{type(self).__qualname__} state={self.state} errors={self.errors.count()}>"

    # Status

    @property
    def succeeded(self) -> bool:
        return self.errors.is_empty

    @property
    def failed(self) -> bool:
        return not self.errors.is_empty

    @property
    def has_errors(self) -> bool:
        return self.errors.any()

    @property
    def has_warnings(self) -> bool:
        return self.warnings.any()

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def is_done(self) -> bool:
        warnings.warn("is_done is deprecated; use stopped", DeprecationWarning, stacklevel=2)
        return self._stopped

    # Flow control available to steps

    def stop(self) -> None:
        """Finish after the current step; later steps are skipped."""

        self._stopped = True

    def done(self) -> None:
        warnings.warn("done() is deprecated; use stop()", DeprecationWarning, stacklevel=2)
        self.stop()

    def stop_immediately(self) -> None:
        """Abort the current step now; the transaction still commits."""

        self._stopped = True
        raise StopExecution(f"{type(self).__qualname__} stopped")

    def fail(self, text: Any, key: str = BASE_KEY) -> None:
        self.errors.add(key, text)

    def fail_immediately(self, text: Any, key: str = BASE_KEY) -> None:
        """Record an error and abort; the transaction is rolled back."""

        self.errors.add(key, text, rollback=True)
        raise FailExecution(str(text))

    # Execution

    def call(self) -> "Service":
        if self.state != "pending":
            raise ServiceError(f"{type(self).__qualname__} has already run (state={self.state})")
        plan = type(self).plan()
        if not plan.steps:
            raise NoStepsError(
                f"{type(self).__qualname__} has no steps to run - declare STEPS or define perform()"
            )

        self.state = "running"
        self.logger.debug("Running %s with arguments %s", type(self).__qualname__, sorted(self.arguments.keys()))
        try:
            run_hooks(self, "before_service_run")
            run_around_hooks(self, "around_service_run", self._run_main_phase)
            if self.succeeded:
                run_hooks(self, "on_service_success")
            else:
                run_hooks(self, "on_service_failure")
            self.state = "succeeded" if self.succeeded else "failed"
        except Exception:
            self.state = "failed"
            raise
        finally:
            run_hooks(self, "after_service_run")
        return self

    def result(self) -> ServiceResult:
        return ServiceResult(
            service=type(self).__qualname__,
            state=self.state,
            succeeded=self.succeeded,
            outputs=self.outputs.to_dict(),
            errors=self.errors.to_dict(),
            warnings=self.warnings.to_dict(),
            launched_steps=tuple(self.launched_steps),
            stopped=self._stopped,
        )

    def _transaction_scope(self):
        if not self.config.use_transactions:
            return nullcontext(None)
        manager = self.config.transaction_manager
        if manager is None:
            manager = NullTransactionManager()
        validate_transaction_manager(manager)
        return manager.begin()

    def _run_main_phase(self) -> None:
        try:
            with self._transaction_scope() as tx:
                try:
                    self._run_steps()
                except StopExecution:
                    self.logger.debug("%s stopped immediately", type(self).__qualname__)
                self._mark_rollback(tx)
        except FailExecution as exc:
            self.logger.info("%s failed immediately: %s", type(self).__qualname__, exc)

        try:
            self._run_always_steps()
        except (StopExecution, FailExecution) as exc:
            self.logger.debug("%s always-steps ended early: %s", type(self).__qualname__, exc)

        if self.succeeded:
            self.outputs.validate()

        if self.parent is not None:
            propagate_messages(
                self,
                self.parent,
                load_errors=self._load_errors,
                load_warnings=self._load_warnings,
            )

    def _mark_rollback(self, tx: Transaction | None) -> None:
        if tx is None:
            return
        if self.errors.rollback_requested or self.warnings.rollback_requested:
            tx.mark_rollback()
            self.logger.info("Rolling back %s", type(self).__qualname__)

    def _break_requested(self) -> bool:
        return self._stopped or self.errors.break_requested or self.warnings.break_requested

    def _run_steps(self) -> None:
        for step in type(self).plan().steps:
            self._run_step(step)
            if self._break_requested():
                break

    def _run_always_steps(self) -> None:
        # Always-steps skipped by a break get their turn here.
        for step in type(self).plan().steps:
            if step.always and step.name not in self.launched_steps:
                self._run_step(step)

    def _run_step(self, step: Step) -> bool:
        if self._stopped:
            return False
        path = f"{type(self).__qualname__}/{step.name}"
        if not step.should_run(self):
            self.recorder.on_step_end(self, _step_record(path, step.name, "skipped"))
            return False

        body = step.body(self)
        guard = step.when if step.when is not None else step.unless
        self.recorder.on_step_start(
            self,
            path,
            guard=guard_label(guard) if guard is not None else None,
            source=f"{type(self).__module__}.{type(self).__qualname__}",
            doc=getattr(step.fn or body, "__doc__", None),
        )
        self.launched_steps.append(step.name)

        errors_before = self.errors.count()
        status = "ran"
        try:
            run_hooks(self, "before_step_run", step.name)
            run_around_hooks(self, "around_step_run", body, step.name)
            run_hooks(self, "after_step_run", step.name)
        except StopExecution:
            status = "stopped"
            raise
        except FailExecution:
            status = "failed"
            raise
        except Exception as exc:
            status = "crashed"
            self.recorder.on_step_error(self, path, step.name, exc)
            run_hooks(self, "on_step_crash", step.name, exc)
            raise
        finally:
            errors_added = self.errors.count() - errors_before
            if status != "crashed":
                self.recorder.on_step_end(self, _step_record(path, step.name, status, errors_added))

        if errors_added:
            run_hooks(self, "on_step_failure", step.name)
        else:
            run_hooks(self, "on_step_success", step.name)
        return True


Service._plan = build_plan(Service, None)


class BoundService:
    """A service class bound to a parent and/or config overrides."""

    def __init__(
        self,
        service_class: type[Service],
        *,
        parent: Service | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> None:
        if not (isinstance(service_class, type) and issubclass(service_class, Service)):
            raise TypeError(f"BoundService needs a Service subclass (type={type(service_class).__name__})")
        if parent is not None and not isinstance(parent, Service):
            raise TypeError(f"{service_class.__qualname__} parent must be a Service (type={type(parent).__name__})")
        self.service_class = service_class
        self.parent = parent
        self.config = dict(config or {})
        # Fail fast on unknown keys instead of at run time.
        ServiceConfig().merge(self.config, path=f"{service_class.__qualname__}.with_context")

    def __repr__(self) -> str:
        parent = type(self.parent).__qualname__ if self.parent is not None else None
        return f"BoundService({self.service_class.__qualname__}, parent={parent}, config={self.config!r})"

    def build(self, raw: Mapping[str, Any] | None = None, /, **kwargs: Any) -> Service:
        """Construct the instance without running it."""

        args = _merge_raw(self.service_class.__qualname__, raw, kwargs)
        if self.parent is not None:
            self.parent.arguments.extend_with_context(args, accepts=self.service_class.plan().arguments)
        return self.service_class(args, config=self.config, parent=self.parent)

    def run(self, raw: Mapping[str, Any] | None = None, /, **kwargs: Any) -> Service:
        return self.build(raw, **kwargs).call()

    def run_or_raise(self, raw: Mapping[str, Any] | None = None, /, **kwargs: Any) -> Service:
        config = dict(self.config)
        config["raise_on_error"] = True
        return BoundService(self.service_class, parent=self.parent, config=config).run(raw, **kwargs)
