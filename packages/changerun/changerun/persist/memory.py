"""
In-memory execution record store.

Records live for the lifetime of the instance. Used as the default store
and by the test suite, which inspects `calls` to assert ordering.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ..errors import LockAcquisitionError, PersistEngineUnavailableError
from .base import ExecutionRecord, ExecutionStatus, PersistEngine

logger = logging.getLogger(__name__)


class InMemoryPersistEngine(PersistEngine):
    """Dictionary-backed store guarded by a threading lock."""

    def __init__(self, available: bool = True):
        self.available = available
        self._records: Dict[str, ExecutionRecord] = {}
        self._table_lock = threading.Lock()

        # ("checked" | "locked" | "unlocked", execution_id) in call order
        self.calls: List[Tuple[str, str]] = []

    def check_connection(self) -> None:
        if not self.available:
            raise PersistEngineUnavailableError("In-memory store marked unavailable")

    def not_already_executed(self, execution_id: str) -> bool:
        self.calls.append(("checked", execution_id))
        with self._table_lock:
            record = self._records.get(execution_id)
        if record is None:
            return True
        if record.locked:
            logger.warning(f"{execution_id} is still locked (interrupted run?), not executing it")
        return False

    def lock(self, execution_id: str) -> None:
        with self._table_lock:
            existing = self._records.get(execution_id)
            if existing is not None:
                raise LockAcquisitionError(
                    execution_id,
                    "already locked" if existing.locked else f"already {existing.status.value}"
                )
            self._records[execution_id] = ExecutionRecord(
                execution_id=execution_id,
                locked=True,
                lock_date=datetime.utcnow().isoformat()
            )
        self.calls.append(("locked", execution_id))

    def unlock(self, execution_id: str, status: ExecutionStatus, logs: List[str]) -> None:
        with self._table_lock:
            record = self._records.get(execution_id)
            if record is None:
                record = ExecutionRecord(execution_id=execution_id)
                self._records[execution_id] = record
            record.status = status
            record.locked = False
            record.unlock_date = datetime.utcnow().isoformat()
            record.logs = list(logs)
        self.calls.append(("unlocked", execution_id))

    def get_record(self, execution_id: str) -> Optional[ExecutionRecord]:
        with self._table_lock:
            return self._records.get(execution_id)

    def list_records(self) -> List[ExecutionRecord]:
        with self._table_lock:
            return list(self._records.values())

    # Test helpers

    @property
    def checked_ids(self) -> List[str]:
        return [eid for kind, eid in self.calls if kind == "checked"]

    @property
    def locked_ids(self) -> List[str]:
        return [eid for kind, eid in self.calls if kind == "locked"]

    @property
    def unlocked_ids(self) -> List[str]:
        return [eid for kind, eid in self.calls if kind == "unlocked"]
