"""
Pytest configuration for changerun tests.

Provides an in-memory store (which records the order of store calls), a
configuration built on it, and small action/predicate helpers.
"""

from pathlib import Path

import pytest

from changerun import Action, InMemoryPersistEngine, RunConfiguration

RESOURCES = Path(__file__).parent / "resources"


class Recorder:
    """Collects the names of invoked actions and evaluated guards."""

    def __init__(self):
        self.calls = []

    def action(self, name: str) -> Action:
        return Action(body=lambda: self.calls.append(name), name=name)

    def failing_action(self, name: str, message: str = "boom") -> Action:
        def body():
            self.calls.append(name)
            raise RuntimeError(message)
        return Action(body=body, name=name)

    def guard(self, name: str, value: bool):
        def predicate():
            self.calls.append(name)
            return value
        return predicate


@pytest.fixture
def store():
    return InMemoryPersistEngine()


@pytest.fixture
def config(store):
    return RunConfiguration(dry_run=False, fail_fast=True, persist_engine=store)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def resources():
    return RESOURCES
