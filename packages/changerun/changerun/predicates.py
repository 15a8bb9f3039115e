"""
Precondition algebra.

A predicate is a zero-argument callable returning a bool. It is evaluated
freshly every time it gates a changelog or a changeset. Combinators
short-circuit, so an expensive or side-effecting right-hand guard is never
evaluated when the left-hand side already decides the result.
"""

from __future__ import annotations

from functools import reduce
from typing import Callable

Predicate = Callable[[], bool]


def always() -> bool:
    return True


def never() -> bool:
    return False


def and_(left: Predicate, right: Predicate) -> Predicate:
    """True iff both are true; `right` is skipped when `left` is false."""
    return lambda: left() and right()


def or_(left: Predicate, right: Predicate) -> Predicate:
    """True iff either is true; `right` is skipped when `left` is true."""
    return lambda: left() or right()


def not_(predicate: Predicate) -> Predicate:
    return lambda: not predicate()


def all_of(*predicates: Predicate) -> Predicate:
    """Left fold of `and_`; an empty list is always true."""
    if not predicates:
        return always
    return reduce(and_, predicates)


def any_of(*predicates: Predicate) -> Predicate:
    """Left fold of `or_`; an empty list is never true."""
    if not predicates:
        return never
    return reduce(or_, predicates)
