from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .persist import InMemoryPersistEngine, PersistEngine, SqlPersistEngine

ENV_PREFIX = "CHANGERUN_"


def _read_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    return _parse_bool(raw, default)


def _parse_bool(raw: Any, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    normalized = str(raw).strip().lower()
    if normalized in {"0", "false", "off", "no"}:
        return False
    if normalized in {"1", "true", "on", "yes"}:
        return True
    return default


@dataclass(frozen=True)
class RunConfiguration:
    """Options consumed by the runner, the orchestrator and the engine."""

    dry_run: bool = False
    fail_fast: bool = True
    persist_engine: PersistEngine = field(default_factory=InMemoryPersistEngine)
    list_files_recursively: bool = True
    capture_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        base: Optional["RunConfiguration"] = None,
        persist_engine: Optional[PersistEngine] = None
    ) -> "RunConfiguration":
        """
        Read CHANGERUN_* variables on top of `base` (defaults if None).

        A given `persist_engine` wins over CHANGERUN_DB_URL, which is then not
        connected to at all.
        """
        base = base or cls()
        if persist_engine is None:
            db_url = os.getenv(f"{ENV_PREFIX}DB_URL")
            persist_engine = SqlPersistEngine(db_url) if db_url else base.persist_engine
        return cls(
            dry_run=_read_bool_env(f"{ENV_PREFIX}DRY_RUN", base.dry_run),
            fail_fast=_read_bool_env(f"{ENV_PREFIX}FAIL_FAST", base.fail_fast),
            persist_engine=persist_engine,
            list_files_recursively=_read_bool_env(
                f"{ENV_PREFIX}LIST_FILES_RECURSIVELY", base.list_files_recursively
            ),
            capture_level=os.getenv(f"{ENV_PREFIX}CAPTURE_LEVEL", base.capture_level).upper(),
        )

    @classmethod
    def from_config_file(
        cls,
        config_path: str | Path,
        persist_engine: Optional[PersistEngine] = None
    ) -> "RunConfiguration | None":
        """
        Read a YAML file with a top-level `changerun:` mapping.

        A given `persist_engine` wins over the file's `db_url`.
        Returns None when the file does not exist or has no `changerun` section.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            return None

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)

        if not config_data or "changerun" not in config_data:
            return None

        section = config_data["changerun"] or {}
        defaults = cls()
        if persist_engine is None:
            db_url = section.get("db_url")
            persist_engine = SqlPersistEngine(db_url) if db_url else defaults.persist_engine
        return cls(
            dry_run=_parse_bool(section.get("dry_run"), defaults.dry_run),
            fail_fast=_parse_bool(section.get("fail_fast"), defaults.fail_fast),
            persist_engine=persist_engine,
            list_files_recursively=_parse_bool(
                section.get("list_files_recursively"), defaults.list_files_recursively
            ),
            capture_level=str(section.get("capture_level", defaults.capture_level)).upper(),
        )

    def with_overrides(self, **changes: Any) -> "RunConfiguration":
        return dataclasses.replace(self, **changes)
