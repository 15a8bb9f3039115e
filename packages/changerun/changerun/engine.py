"""
Engine - entry point running one or many changelogs.

The orchestrator only reports errors. The engine turns a report with errors
into a ChangelogExecutionError so callers (CLI, scripts) can exit nonzero.
Across several changelogs, fail_fast stops at the first failing changelog;
otherwise every changelog runs and the error carries all failing reports.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Sequence, Union

from .config import RunConfiguration
from .errors import ChangelogExecutionError
from .loader import ChangelogSource, load_changelog
from .models import Changelog, ChangelogReport
from .orchestrator import ChangelogOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = r".*\.ya?ml"


class Engine:
    """Loads, discovers and executes changelogs."""

    def __init__(self, configuration: RunConfiguration = None):
        self.configuration = configuration or RunConfiguration()
        self.orchestrator = ChangelogOrchestrator(self.configuration)

    def execute_changelog(
        self,
        source: Union[Changelog, ChangelogSource],
        tags: Sequence[str] = ()
    ) -> ChangelogReport:
        """
        Execute a single changelog.

        Raises:
            ChangelogExecutionError: If any changeset failed
            ChangelogLoadError: If the source cannot be loaded
            PersistEngineUnavailableError: If the store is unreachable
        """
        report = self._run(source, tags)
        if report.has_errors:
            raise ChangelogExecutionError([report])
        return report

    def execute_changelogs(
        self,
        directory: Path,
        pattern: str = DEFAULT_PATTERN,
        tags: Sequence[str] = ()
    ) -> List[ChangelogReport]:
        """
        Execute every changelog file under `directory` matching `pattern`.

        Args:
            directory: Root directory
            pattern: Regex the whole file name must match
            tags: Tag filter applied to each changelog

        Returns:
            One report per changelog, in path order

        Raises:
            ChangelogExecutionError: If any changelog reported errors
        """
        reports: List[ChangelogReport] = []
        failed: List[ChangelogReport] = []

        for path in self.find_changelogs(directory, pattern):
            logger.info(f"Executing changelog {path}")
            report = self._run(path, tags)
            reports.append(report)
            if report.has_errors:
                failed.append(report)
                if self.configuration.fail_fast:
                    logger.error(f"Changelog {path} failed, stopping (fail fast)")
                    raise ChangelogExecutionError(failed)

        if failed:
            raise ChangelogExecutionError(failed)
        return reports

    def find_changelogs(self, directory: Path, pattern: str = DEFAULT_PATTERN) -> List[Path]:
        """Changelog files whose name fully matches `pattern`, sorted by path."""
        directory = Path(directory)
        regex = re.compile(pattern)
        candidates = directory.rglob("*") if self.configuration.list_files_recursively else directory.iterdir()
        return sorted(
            path.resolve()
            for path in candidates
            if path.is_file() and regex.fullmatch(path.name)
        )

    def _run(self, source: Union[Changelog, ChangelogSource], tags: Sequence[str]) -> ChangelogReport:
        changelog = source if isinstance(source, Changelog) else load_changelog(source)
        return self.orchestrator.execute(changelog, tags)
