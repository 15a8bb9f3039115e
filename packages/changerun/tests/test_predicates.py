"""
Tests for the precondition algebra.

Validates:
- AND / OR / NOT truth tables
- Short-circuit evaluation
- Fresh evaluation on every call
- all_of / any_of folds
"""

import pytest

from changerun.predicates import all_of, always, and_, any_of, never, not_, or_


@pytest.mark.parametrize("left,right,expected", [
    (always, always, True),
    (always, never, False),
    (never, always, False),
    (never, never, False),
])
def test_and(left, right, expected):
    assert and_(left, right)() is expected


@pytest.mark.parametrize("left,right,expected", [
    (always, always, True),
    (always, never, True),
    (never, always, True),
    (never, never, False),
])
def test_or(left, right, expected):
    assert or_(left, right)() is expected


def test_not():
    assert not_(always)() is False
    assert not_(never)() is True


def test_and_does_not_evaluate_right_when_left_is_false():
    def explode():
        raise AssertionError("right-hand guard must not be evaluated")

    assert and_(never, explode)() is False


def test_or_does_not_evaluate_right_when_left_is_true():
    def explode():
        raise AssertionError("right-hand guard must not be evaluated")

    assert or_(always, explode)() is True


def test_predicate_is_evaluated_on_every_call(recorder):
    guard = recorder.guard("g", True)
    combined = not_(guard)

    combined()
    combined()

    assert recorder.calls == ["g", "g"]


def test_fault_in_predicate_propagates():
    def broken():
        raise ValueError("cannot decide")

    with pytest.raises(ValueError):
        and_(always, broken)()


def test_all_of_and_any_of(recorder):
    assert all_of()() is True
    assert any_of()() is False

    assert all_of(always, always, always)() is True
    assert any_of(never, never, always)() is True

    all_of(recorder.guard("a", True), recorder.guard("b", False), recorder.guard("c", True))()
    assert recorder.calls == ["a", "b"]
