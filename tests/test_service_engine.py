import pytest

from example_services.conditions import (
    WithConditions,
    WithDeprecatedDone,
    WithFailImmediately,
    WithPerform,
    WithStopBypassesAlways,
    WithStopImmediately,
)
from example_services.ordering import OrderedSteps, WithDerivedDefault
from servicekit import (
    Arg,
    Hook,
    InvalidRawInputShape,
    MissingArgument,
    NoStepsError,
    Output,
    Service,
    ServiceError,
    Step,
    StepNotDefinedError,
    TypeMismatch,
)
from servicekit.testing import executed_steps


def test_guards_select_steps():
    assert WithConditions.run().outputs["word"] == "ab"
    assert WithConditions.run(add_c=True).outputs["word"] == "abc"
    assert WithConditions.run(do_not_add_d=False).outputs["word"] == "abd"


def test_always_step_runs_after_break():
    service = WithConditions.run(fake_error=True)

    assert service.failed
    assert service.outputs["word"] == "error"
    assert service.warnings.texts("word") == ["was replaced"]
    assert executed_steps(service) == ["letter_a", "letter_b", "add_error", "replace_word"]


def test_break_law_stops_after_failing_step():
    class Pipeline(Service):
        OUTPUTS = (Output("trace", list, default=[]),)
        STEPS = (Step("first"), Step("second"), Step("third"))

        def first(self):
            self.outputs["trace"].append("first")

        def second(self):
            self.errors.add("base", "broken")
            self.outputs["trace"].append("second")

        def third(self):
            self.outputs["trace"].append("third")

    service = Pipeline.run()

    assert service.outputs["trace"] == ["first", "second"]
    assert service.state == "failed"
    assert executed_steps(service) == ["first", "second"]


def test_errors_without_break_keep_running():
    class Lenient(Service):
        CONFIG = {"break_on_error": False}
        OUTPUTS = (Output("trace", list, default=[]),)
        STEPS = (Step("first"), Step("second"))

        def first(self):
            self.errors.add("base", "broken")

        def second(self):
            self.outputs["trace"].append("second")

    service = Lenient.run()
    assert service.outputs["trace"] == ["second"]
    assert service.failed


def test_warning_with_per_call_break():
    class Warned(Service):
        OUTPUTS = (Output("trace", list, default=[]),)
        STEPS = (Step("first"), Step("second"))

        def first(self):
            self.warnings.add("base", "careful", break_execution=True)

        def second(self):
            self.outputs["trace"].append("second")

    service = Warned.run()
    assert service.succeeded
    assert service.has_warnings
    assert service.outputs["trace"] == []


def test_stop_finishes_current_step_and_skips_always_steps():
    service = WithStopBypassesAlways.run()

    assert service.stopped
    assert service.succeeded
    assert service.outputs["trace"] == ["work", "after_stop"]


def test_stop_immediately_aborts_current_step():
    service = WithStopImmediately.run()

    assert service.stopped
    assert service.succeeded
    assert service.outputs["trace"] == ["work"]


def test_fail_immediately_records_error_and_still_runs_always_steps():
    service = WithFailImmediately.run()

    assert service.failed
    assert not service.stopped
    assert service.errors.texts("base") == ["gave up"]
    assert service.outputs["trace"] == ["work", "cleanup"]


def test_deprecated_done_maps_to_stop():
    with pytest.warns(DeprecationWarning, match="use stop"):
        service = WithDeprecatedDone.run()

    assert service.outputs["trace"] == ["work"]
    with pytest.warns(DeprecationWarning, match="use stopped"):
        assert service.is_done


def test_perform_is_the_implicit_step():
    assert WithPerform.plan().step_names() == ("perform",)
    assert WithPerform.run().outputs["value"] == 42


def test_empty_plan_raises_no_steps():
    with pytest.raises(NoStepsError, match="has no steps"):
        OrderedSteps.run()


def test_missing_step_body_raises():
    class Hollow(Service):
        STEPS = (Step("ghost"),)

    with pytest.raises(StepNotDefinedError, match="Step method `ghost` is not defined"):
        Hollow.run()


def test_construction_errors_raise_before_any_step():
    with pytest.raises(MissingArgument, match="`letters` is required"):

        class Needs(Service):
            ARGS = (Arg("letters", list),)
            STEPS = (Step("noop", fn=lambda service: None),)

        Needs.run()

    class Typed(Service):
        ARGS = (Arg("count", int),)
        STEPS = (Step("noop", fn=lambda service: None),)

    with pytest.raises(TypeMismatch):
        Typed.run(count="3")

    with pytest.raises(InvalidRawInputShape):
        Typed.run(["count"])


def test_missing_argument_read_by_default_factory_raises_missing_argument():
    class Greeting(Service):
        ARGS = (
            Arg("name", str),
            Arg("shout", str, default_factory=lambda view: view["name"].upper()),
        )
        STEPS = (Step("noop", fn=lambda service: None),)

    with pytest.raises(MissingArgument, match="`name` is required") as excinfo:
        Greeting.run()
    assert excinfo.value.field == "name"

    assert Greeting.run(name="hi").arguments["shout"] == "HI"


def test_wrong_typed_default_raises_type_mismatch():
    class BadDefault(Service):
        ARGS = (Arg("count", int, default="three"),)
        STEPS = (Step("noop", fn=lambda service: None),)

    with pytest.raises(TypeMismatch, match=r"`count` must be int \(type=str, value='three'\)"):
        BadDefault.run()

    assert BadDefault.run(count=3).arguments["count"] == 3


def test_raw_mapping_and_keyword_arguments_merge():
    class Adder(Service):
        ARGS = (Arg("a", int), Arg("b", int))
        OUTPUTS = (Output("total", int),)

        def perform(self):
            self.outputs["total"] = self.arguments["a"] + self.arguments["b"]

    assert Adder.run({"a": 1, "b": 1}, b=5).outputs["total"] == 6


def test_required_output_missing_on_success_is_fatal():
    class Forgetful(Service):
        OUTPUTS = (Output("value", int),)
        STEPS = (Step("noop", fn=lambda service: None),)

    with pytest.raises(MissingArgument) as excinfo:
        Forgetful.run()
    assert excinfo.value.collection == "outputs"


def test_outputs_are_not_validated_on_failure():
    class Failing(Service):
        OUTPUTS = (Output("value", int),)

        def perform(self):
            self.fail("nope")

    service = Failing.run()
    assert service.failed
    assert "value" not in service.outputs


def test_default_factories_derive_from_siblings():
    service = WithDerivedDefault.run(first="Ada", last="Lovelace")
    assert service.arguments["full"] == "Ada Lovelace"
    assert service.outputs["greeting"] == "Hello, Ada Lovelace"


def test_finally_phase_runs_when_raise_on_error_unwinds():
    calls = []

    class Strict(Service):
        CONFIG = {"raise_on_error": True}
        HOOKS = (
            Hook("after_service_run", lambda service: calls.append(service.state)),
            Hook("on_service_failure", lambda service: calls.append("failure")),
        )

        def perform(self):
            self.errors.add("base", "boom")

    with pytest.raises(ServiceError, match="Base boom"):
        Strict.run()

    assert calls == ["failed"]


def test_run_or_raise_forces_raise_on_error():
    class Soft(Service):
        def perform(self):
            self.fail("nope", key="name")

    assert Soft.run().failed
    with pytest.raises(ServiceError, match="Name nope"):
        Soft.run_or_raise()


def test_finally_phase_cannot_reset_outcome():
    class Sneaky(Service):
        HOOKS = (Hook("after_service_run", lambda service: service.errors.remove("base")),)

        def perform(self):
            self.fail("nope")

    service = Sneaky.run()
    assert service.state == "failed"


def test_service_runs_only_once():
    service = WithPerform()
    service.call()
    with pytest.raises(ServiceError, match="already run"):
        service.call()


def test_state_transitions():
    seen = []

    class Tracked(Service):
        HOOKS = (Hook("before_service_run", lambda service: seen.append(service.state)),)

        def perform(self):
            seen.append(self.state)

    service = Tracked()
    assert service.state == "pending"
    service.call()
    assert seen == ["running", "running"]
    assert service.state == "succeeded"


def test_result_snapshot():
    result = WithConditions.run(add_c=True).result()

    assert result.succeeded
    assert not result.failed
    assert result["word"] == "abc"
    assert result.launched_steps == ("letter_a", "letter_b", "letter_c", "replace_word")
    assert result.errors == {}


def test_unknown_guard_name_raises():
    class Guarded(Service):
        STEPS = (Step("work", when="no_such_thing"),)

        def work(self):
            pass

    with pytest.raises(ServiceError, match="guard `no_such_thing`"):
        Guarded.run()


def test_guard_can_name_a_method():
    class MethodGuard(Service):
        OUTPUTS = (Output("ran", bool, default=False),)
        STEPS = (Step("work", when="ready"),)

        def ready(self):
            return True

        def work(self):
            self.outputs["ran"] = True

    assert MethodGuard.run().outputs["ran"] is True
