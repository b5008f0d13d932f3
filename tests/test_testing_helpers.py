import re

import pytest

from example_services.conditions import WithConditions
from example_services.letters import BuildWord
from example_services.ordering import WithStepInsertion
from servicekit.testing import (
    assert_defines_argument,
    assert_defines_output,
    assert_defines_step,
    assert_error_on,
    assert_no_errors,
    assert_warning_on,
)


def test_assert_error_on_accepts_string_and_pattern():
    service = BuildWord.run(letters=[1])

    assert_error_on(service, "letters")
    assert_error_on(service, "letters", "wrong type of letter: 1")
    assert_error_on(service, "letters", re.compile(r"wrong type"))

    with pytest.raises(AssertionError, match="to have error on `symbol`"):
        assert_error_on(service, "symbol")
    with pytest.raises(AssertionError, match="to match 'nope'"):
        assert_error_on(service, "letters", "nope")


def test_assert_warning_on_and_no_errors():
    failed = WithConditions.run(fake_error=True)
    assert_warning_on(failed, "word", "was replaced")

    with pytest.raises(AssertionError, match="to have no errors"):
        assert_no_errors(failed)

    assert_no_errors(WithConditions.run())


def test_assert_defines_argument_and_output():
    assert_defines_argument(BuildWord, "letters", type=list)
    assert_defines_argument(BuildWord, "symbol", optional=True, context=True)
    assert_defines_argument(BuildWord, "reverse", default=False)
    assert_defines_output(BuildWord, "word", default="")

    with pytest.raises(AssertionError, match="to define argument `missing`"):
        assert_defines_argument(BuildWord, "missing")
    with pytest.raises(AssertionError, match="optional=False"):
        assert_defines_argument(BuildWord, "letters", optional=True)


def test_assert_defines_step():
    assert_defines_step(WithStepInsertion, "step_b", before="step_c")
    assert_defines_step(WithStepInsertion, "step_b", after="step_a")
    assert_defines_step(WithConditions, "replace_word", always=True)
    assert_defines_step(BuildWord, "add_symbol", when="symbol")

    with pytest.raises(AssertionError, match="right before `step_a`"):
        assert_defines_step(WithStepInsertion, "step_b", before="step_a")
    with pytest.raises(AssertionError, match="to define step `nope`"):
        assert_defines_step(WithStepInsertion, "nope")
