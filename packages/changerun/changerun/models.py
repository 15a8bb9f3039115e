"""
Changelog data model.

    Changelog (id, precondition)
        └── ChangeSet (id, author, tags, precondition)
                └── Action (name, body)

Only changesets have a persisted identity: the execution id derived from the
owning changelog id and the changeset id. Actions are identified by their
position inside the changeset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, TYPE_CHECKING

from .predicates import Predicate, always

if TYPE_CHECKING:
    from .config import RunConfiguration


@dataclass(frozen=True)
class Action:
    """An unnamed (or loosely named) step of a changeset."""
    body: Callable[[], None]
    name: str = "basicAction"

    @property
    def logger(self) -> logging.Logger:
        return logging.getLogger(f"changerun.action.{self.name}")

    def execute(self) -> None:
        self.body()


@dataclass(frozen=True)
class ChangeSet:
    """Immutable, idempotent unit of change."""
    id: str
    author: str
    tags: Tuple[str, ...] = ()
    precondition: Predicate = always
    actions: Tuple[Action, ...] = ()

    def __post_init__(self):
        # Accept lists from callers, keep tuples internally
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "actions", tuple(self.actions))

    def compute_id(self, changelog_id: str) -> str:
        """Execution id: `{changelog_id}_{id}`, or the bare id without a changelog id."""
        if changelog_id:
            return f"{changelog_id}_{self.id}"
        return self.id


@dataclass
class Changelog:
    """Ordered collection of changesets sharing an id prefix and a precondition."""
    id: str = ""
    precondition: Predicate = always
    changesets: List[ChangeSet] = field(default_factory=list)

    def matched_changesets(self, target_tags: Sequence[str] = ()) -> List[ChangeSet]:
        """
        Select the changesets to run.

        An empty `target_tags` selects everything; otherwise a changeset must
        share at least one tag with `target_tags`. Declaration order is kept.
        """
        if not target_tags:
            return list(self.changesets)
        wanted = set(target_tags)
        return [cs for cs in self.changesets if wanted.intersection(cs.tags)]

    def execute(
        self,
        configuration: Optional["RunConfiguration"] = None,
        tags: Sequence[str] = ()
    ) -> "ChangelogReport":
        from .config import RunConfiguration
        from .orchestrator import ChangelogOrchestrator

        return ChangelogOrchestrator(configuration or RunConfiguration()).execute(self, tags)


@dataclass(frozen=True)
class ChangeSetError:
    """An action fault attributed to the changeset that raised it."""
    changeset: ChangeSet
    execution_id: str
    error: Exception

    def __str__(self) -> str:
        return f"{self.execution_id}: {type(self.error).__name__}: {self.error}"


@dataclass
class ChangelogReport:
    """Outcome of one changelog run."""
    changelog_id: str = ""
    changeset_errors: List[ChangeSetError] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.changeset_errors)

    def to_dict(self) -> dict:
        return {
            "changelog_id": self.changelog_id,
            "changeset_errors": [
                {
                    "execution_id": err.execution_id,
                    "changeset_id": err.changeset.id,
                    "author": err.changeset.author,
                    "error_type": type(err.error).__name__,
                    "error_message": str(err.error),
                }
                for err in self.changeset_errors
            ],
        }
