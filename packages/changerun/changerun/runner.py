"""
ChangeSet Runner - executes one changeset exactly once.

Flow:
    1. Compute execution id (changelog id + changeset id)
    2. Precondition false → skip, no store interaction
    3. Store says already executed → skip (idempotent no-op)
    4. Locked span: run actions in order, first fault stops the changeset
    5. Store marks the record OK or KO and releases the lock

Dry run walks the same path but never locks, never writes a status and
never invokes an action.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .capture import LogCapture
from .config import RunConfiguration
from .models import ChangeSet, ChangeSetError

logger = logging.getLogger(__name__)


class ChangeSetRunner:
    """Runs changesets against the configured execution record store."""

    def __init__(
        self,
        configuration: RunConfiguration,
        log_capture: Optional[LogCapture] = None
    ):
        """
        Initialize runner.

        Args:
            configuration: Run options and the store
            log_capture: Capture whose lines are stored with each record
        """
        self.configuration = configuration
        self.log_capture = log_capture

    def execute(self, changeset: ChangeSet, changelog_id: str = "") -> List[ChangeSetError]:
        """
        Execute a changeset.

        Returns:
            Empty list on success or skip, one ChangeSetError on an action fault
        """
        execution_id = changeset.compute_id(changelog_id)

        if not changeset.precondition():
            logger.info(f"{execution_id} is ignored, the precondition return false")
            return []

        persist_engine = self.configuration.persist_engine
        if not persist_engine.not_already_executed(execution_id):
            logger.info(f"{execution_id} already executed")
            return []

        if self.log_capture is not None:
            # The record keeps lines from this notice on
            self.log_capture.drain()
        logger.info(f"{execution_id} will be executed")
        error = persist_engine.run_with_lock(
            execution_id,
            lock=not self.configuration.dry_run,
            body=lambda: self._run_actions(changeset),
            log_capture=self.log_capture,
        )

        if error is None:
            return []
        return [ChangeSetError(changeset=changeset, execution_id=execution_id, error=error)]

    def _run_actions(self, changeset: ChangeSet) -> None:
        for action in changeset.actions:
            if self.configuration.dry_run:
                logger.warning("DryRun => don't run it")
                continue
            logger.info(f"Running action {action.name}")
            action.execute()
