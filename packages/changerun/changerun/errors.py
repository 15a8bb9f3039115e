"""
Errors raised by the changerun engine.

Action faults are never raised out of a changelog run: they are captured,
recorded KO and reported as ChangeSetError values (see models.py).
"""

from __future__ import annotations

from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ChangelogReport


class ChangerunError(Exception):
    """Base class for changerun errors."""

    code: int = 1


class PersistEngineUnavailableError(ChangerunError):
    """Raised when the execution record store cannot be reached."""

    code = 2


class LockAcquisitionError(ChangerunError):
    """Raised when an execution id is already locked or recorded."""

    def __init__(self, execution_id: str, detail: str = "") -> None:
        self.execution_id = execution_id
        self.detail = detail
        super().__init__(
            f"Could not lock {execution_id}" + (f" ({detail})" if detail else "")
        )


class ChangelogLoadError(ChangerunError):
    """Invalid changelog document, predicate or callable reference."""

    code = 2


class ChangelogExecutionError(ChangerunError):
    """One or more changelogs finished with changeset errors."""

    code = 1

    def __init__(self, reports: List["ChangelogReport"]) -> None:
        self.reports = reports
        failed = sum(len(report.changeset_errors) for report in reports)
        super().__init__(f"{failed} changeset(s) failed")
