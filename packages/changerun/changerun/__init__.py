"""
changerun - exactly-once execution of changelogs.

A changelog is an ordered list of changesets; a changeset is an ordered list
of actions (arbitrary Python callables or shell commands). Each changeset
runs at most once per execution id, tracked by an execution record store.

Architecture:
    Engine → load / discover changelogs
        ↓
    ChangelogOrchestrator → tag filter, fail-fast / collect-all fold
        ↓
    ChangeSetRunner → precondition, "already executed?", locked span
        ↓
    PersistEngine → lock, record OK / KO, unlock
"""

from .config import RunConfiguration

from .errors import (
    ChangerunError,
    ChangelogExecutionError,
    ChangelogLoadError,
    LockAcquisitionError,
    PersistEngineUnavailableError
)

from .models import (
    Action,
    ChangeSet,
    Changelog,
    ChangeSetError,
    ChangelogReport
)

from .predicates import (
    Predicate,
    all_of,
    always,
    and_,
    any_of,
    never,
    not_,
    or_
)

from .persist import (
    ExecutionRecord,
    ExecutionStatus,
    PersistEngine,
    InMemoryPersistEngine,
    SqlPersistEngine
)

from .capture import LogCapture
from .runner import ChangeSetRunner
from .orchestrator import ChangelogExecutionState, ChangelogOrchestrator
from .loader import load_changelog
from .engine import Engine

__all__ = [
    # Configuration
    "RunConfiguration",

    # Errors
    "ChangerunError",
    "ChangelogExecutionError",
    "ChangelogLoadError",
    "LockAcquisitionError",
    "PersistEngineUnavailableError",

    # Model
    "Action",
    "ChangeSet",
    "Changelog",
    "ChangeSetError",
    "ChangelogReport",

    # Preconditions
    "Predicate",
    "all_of",
    "always",
    "and_",
    "any_of",
    "never",
    "not_",
    "or_",

    # Execution record stores
    "ExecutionRecord",
    "ExecutionStatus",
    "PersistEngine",
    "InMemoryPersistEngine",
    "SqlPersistEngine",

    # Execution
    "LogCapture",
    "ChangeSetRunner",
    "ChangelogExecutionState",
    "ChangelogOrchestrator",
    "load_changelog",
    "Engine"
]

__version__ = "1.0.0"
