"""
Changelog Orchestrator - runs a changelog's changesets in order.

Two states per run:

    CONTINUING ──(fail_fast and a changeset failed)──▶ HALTED

HALTED is terminal for the rest of the run: remaining changesets are not
touched at all, not even their preconditions. Without fail_fast the run never
halts and every error is collected. A new `execute` call starts CONTINUING.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import reduce
from typing import Callable, List, Sequence

from .capture import LogCapture
from .config import RunConfiguration
from .models import ChangeSetError, Changelog, ChangelogReport
from .runner import ChangeSetRunner

logger = logging.getLogger(__name__)


@dataclass
class ChangelogExecutionState:
    """Accumulator of one orchestrator run."""
    collected_errors: List[ChangeSetError] = field(default_factory=list)
    continue_execution: bool = True

    def execute(
        self,
        fail_fast: bool,
        block: Callable[[], List[ChangeSetError]]
    ) -> "ChangelogExecutionState":
        """Fold one changeset into the state."""
        if not self.continue_execution:
            return self

        errors = block()
        self.collected_errors.extend(errors)
        if fail_fast and errors:
            self.continue_execution = False
        return self


class ChangelogOrchestrator:
    """Applies the fail-fast / collect-all policy over a changelog."""

    def __init__(self, configuration: RunConfiguration):
        self.configuration = configuration

    def execute(self, changelog: Changelog, tags: Sequence[str] = ()) -> ChangelogReport:
        """
        Execute every matched changeset of `changelog`.

        Raises:
            PersistEngineUnavailableError: Store unreachable, nothing was run
        """
        self.configuration.persist_engine.check_connection()

        if not changelog.precondition():
            logger.info(f"Changelog {changelog.id or '<anonymous>'} is ignored, the precondition return false")
            return ChangelogReport(changelog_id=changelog.id)

        with LogCapture(self.configuration.capture_level) as capture:
            runner = ChangeSetRunner(self.configuration, log_capture=capture)
            fail_fast = self.configuration.fail_fast

            state = reduce(
                lambda state, changeset: state.execute(
                    fail_fast,
                    lambda: runner.execute(changeset, changelog.id)
                ),
                changelog.matched_changesets(tags),
                ChangelogExecutionState(),
            )

        if state.collected_errors:
            logger.error(
                f"Changelog {changelog.id or '<anonymous>'} finished with "
                f"{len(state.collected_errors)} error(s)"
            )
        return ChangelogReport(changelog_id=changelog.id, changeset_errors=state.collected_errors)
