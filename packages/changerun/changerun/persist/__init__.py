"""
Execution record stores.

- base: the store contract and the locked execution span
- memory: dictionary-backed store (default, tests)
- sql: SQLAlchemy-backed store
"""

from .base import ExecutionRecord, ExecutionStatus, PersistEngine
from .memory import InMemoryPersistEngine
from .sql import SqlPersistEngine

__all__ = [
    "ExecutionRecord",
    "ExecutionStatus",
    "PersistEngine",
    "InMemoryPersistEngine",
    "SqlPersistEngine",
]
