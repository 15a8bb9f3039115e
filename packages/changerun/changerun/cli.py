"""
changerun command line.

Usage:
    changerun changelog.yaml
    changerun changelogs/ --pattern "changelog.*\\.yaml" --tag hello
    changerun changelogs/ --dry-run --db-url sqlite:///changerun.db

Exit codes: 0 success, 1 a changeset failed, 2 load or store error.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from .config import ENV_PREFIX, RunConfiguration
from .engine import DEFAULT_PATTERN, Engine
from .errors import ChangelogExecutionError, ChangelogLoadError, PersistEngineUnavailableError
from .persist import SqlPersistEngine

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="changerun", description="Run changelogs exactly once")
    parser.add_argument("path", type=Path, help="Changelog file or directory of changelogs")
    parser.add_argument("--pattern", default=DEFAULT_PATTERN, help="File name regex used for directories")
    parser.add_argument("--tag", dest="tags", action="append", default=[], help="Only run changesets with this tag")
    parser.add_argument("--dry-run", action="store_true", default=None, help="Log actions without running them")
    parser.add_argument("--no-fail-fast", dest="fail_fast", action="store_false", default=None,
                        help="Keep running after a failed changeset")
    parser.add_argument("--no-recursive", dest="recursive", action="store_false", default=None,
                        help="Only look at the top level of a directory")
    parser.add_argument("--db-url", help="SQLAlchemy URL of the execution record store")
    parser.add_argument("--config", type=Path, help="YAML configuration file")
    parser.add_argument("--log-level", default=os.getenv("CHANGERUN_LOG_LEVEL", "INFO"), help="Console log level")
    return parser


def build_configuration(args: argparse.Namespace) -> RunConfiguration:
    """Defaults < config file < environment < flags."""
    # Resolve the store first so only the winning database is connected to
    db_url = args.db_url or os.getenv(f"{ENV_PREFIX}DB_URL")
    persist_engine = SqlPersistEngine(db_url) if db_url else None

    configuration = None
    if args.config is not None:
        configuration = RunConfiguration.from_config_file(args.config, persist_engine=persist_engine)
        if configuration is None:
            logger.warning(f"No changerun section in {args.config}, using defaults")
    configuration = RunConfiguration.from_env(configuration, persist_engine=persist_engine)

    overrides = {}
    if args.dry_run is not None:
        overrides["dry_run"] = args.dry_run
    if args.fail_fast is not None:
        overrides["fail_fast"] = args.fail_fast
    if args.recursive is not None:
        overrides["list_files_recursively"] = args.recursive
    return configuration.with_overrides(**overrides)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s - %(message)s")

    try:
        engine = Engine(build_configuration(args))
        if args.path.is_dir():
            engine.execute_changelogs(args.path, args.pattern, args.tags)
        else:
            engine.execute_changelog(args.path, args.tags)
    except ChangelogExecutionError as e:
        for report in e.reports:
            for error in report.changeset_errors:
                print(f"FAILED {error}", file=sys.stderr)
        return e.code
    except (ChangelogLoadError, PersistEngineUnavailableError) as e:
        print(f"ERROR {e}", file=sys.stderr)
        return e.code

    return 0


if __name__ == "__main__":
    sys.exit(main())
