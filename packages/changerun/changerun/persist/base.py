"""
Execution record store contract.

The store is the sole arbiter of "already executed". A backend implements
the primitives (check_connection, not_already_executed, lock, unlock and the
history queries); the locked span itself is implemented once, here, in
`run_with_lock`, so every backend releases its lock on every exit path.

Record lifecycle:
    (no record) → lock() → locked → unlock(status) → OK | KO
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from ..errors import LockAcquisitionError

if TYPE_CHECKING:
    from ..capture import LogCapture

logger = logging.getLogger(__name__)


class ExecutionStatus(str, Enum):
    """Final status of an execution record."""
    OK = "OK"
    KO = "KO"


@dataclass
class ExecutionRecord:
    """A changeset execution as seen by the store."""
    execution_id: str
    status: Optional[ExecutionStatus] = None
    locked: bool = False
    lock_date: Optional[str] = None     # ISO8601
    unlock_date: Optional[str] = None   # ISO8601
    logs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "status": self.status.value if self.status else None,
            "locked": self.locked,
            "lock_date": self.lock_date,
            "unlock_date": self.unlock_date,
            "logs": list(self.logs),
        }


class PersistEngine(ABC):
    """Base class of every execution record store."""

    @abstractmethod
    def check_connection(self) -> None:
        """Raise PersistEngineUnavailableError if the store is unreachable."""

    @abstractmethod
    def not_already_executed(self, execution_id: str) -> bool:
        """True if no record exists for `execution_id`."""

    @abstractmethod
    def lock(self, execution_id: str) -> None:
        """
        Atomically create a locked record.

        Raises:
            LockAcquisitionError: If a record already exists
        """

    @abstractmethod
    def unlock(self, execution_id: str, status: ExecutionStatus, logs: List[str]) -> None:
        """Write the final status and logs, then release the lock."""

    @abstractmethod
    def get_record(self, execution_id: str) -> Optional[ExecutionRecord]:
        ...

    @abstractmethod
    def list_records(self) -> List[ExecutionRecord]:
        """All records, oldest lock first."""

    def run_with_lock(
        self,
        execution_id: str,
        lock: bool,
        body: Callable[[], None],
        log_capture: Optional["LogCapture"] = None
    ) -> Optional[Exception]:
        """
        Run `body` inside a locked execution span.

        Args:
            execution_id: Idempotency key of the changeset
            lock: False in dry-run mode; nothing is locked or written then
            body: The changeset's actions
            log_capture: Source of the log lines stored with the record;
                the caller drains it when the span's lines start

        Returns:
            The fault raised by `body` (or by lock acquisition), None on success

        Raises:
            Exception: Whatever `unlock` raised, chained to the body's fault;
                the record then stays locked
        """
        if lock:
            try:
                self.lock(execution_id)
            except LockAcquisitionError as e:
                logger.error(f"{execution_id} could not be locked: {e}")
                return e
            logger.debug(f"{execution_id} locked")

        status = ExecutionStatus.KO
        error: Optional[Exception] = None
        try:
            body()
            status = ExecutionStatus.OK
        except Exception as e:
            error = e
            logger.error(f"{execution_id} failed: {e}", exc_info=True)
        finally:
            if lock:
                logs = log_capture.drain() if log_capture is not None else []
                try:
                    self.unlock(execution_id, status, logs)
                except Exception as unlock_error:
                    logger.error(f"{execution_id} could not be unlocked, the record stays locked: {unlock_error}")
                    if error is not None:
                        raise unlock_error from error
                    raise
                logger.debug(f"{execution_id} unlocked with status {status.value}")

        return error
