"""
Changelog loader - builds Changelog objects from YAML documents.

Sources:
- Path: a YAML file; its absolute path is the changelog id unless the
  document declares one
- str: YAML text
- mapping: an already parsed document

Predicate forms:
    true | false
    {call: "package.module:function"}
    {env: NAME}              set and non-empty
    {all: [p, ...]}
    {any: [p, ...]}
    {not: p}
"""

from __future__ import annotations

import importlib
import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from .errors import ChangelogLoadError
from .models import Action, ChangeSet, Changelog
from .predicates import Predicate, all_of, always, any_of, never, not_
from .schemas import ActionDocument, ChangelogDocument, ChangeSetDocument

logger = logging.getLogger(__name__)

ChangelogSource = Union[Path, str, Mapping[str, Any]]


def resolve_callable(reference: str) -> Callable[..., Any]:
    """Import `module:attribute` (attribute may be dotted)."""
    module_name, sep, attr_path = reference.partition(":")
    if not sep or not module_name or not attr_path:
        raise ChangelogLoadError(f"Invalid callable reference '{reference}', expected 'module:attribute'")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ChangelogLoadError(f"Cannot import module '{module_name}': {e}") from e

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ChangelogLoadError(f"'{reference}' not found: {e}") from e

    if not callable(target):
        raise ChangelogLoadError(f"'{reference}' is not callable")
    return target


def build_predicate(document: Any) -> Predicate:
    """Turn a predicate document into a zero-argument predicate."""
    if isinstance(document, bool):
        return always if document else never

    if not isinstance(document, Mapping) or len(document) != 1:
        raise ChangelogLoadError(f"Invalid precondition: {document!r}")

    (kind, value), = document.items()

    if kind == "call":
        fn = resolve_callable(value)
        return lambda: bool(fn())
    if kind == "env":
        name = str(value)
        return lambda: bool(os.environ.get(name))
    if kind in ("all", "any"):
        if not isinstance(value, list):
            raise ChangelogLoadError(f"'{kind}' expects a list, got {value!r}")
        children = [build_predicate(child) for child in value]
        return all_of(*children) if kind == "all" else any_of(*children)
    if kind == "not":
        return not_(build_predicate(value))

    raise ChangelogLoadError(f"Unknown precondition kind '{kind}'")


def _shell_body(name: str, command: str, timeout: Optional[float]) -> Callable[[], None]:
    action_logger = logging.getLogger(f"changerun.action.{name}")

    def run() -> None:
        result = subprocess.run(
            command,
            shell=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        for line in result.stdout.splitlines():
            action_logger.info(line)
        for line in result.stderr.splitlines():
            action_logger.warning(line)
        result.check_returncode()

    return run


def build_action(doc: ActionDocument) -> Action:
    if doc.call is not None:
        fn = resolve_callable(doc.call)
        args, kwargs = tuple(doc.args), dict(doc.kwargs)
        return Action(body=lambda: fn(*args, **kwargs), name=doc.name)

    return Action(body=_shell_body(doc.name, doc.shell, doc.timeout), name=doc.name)


def build_changeset(doc: ChangeSetDocument) -> ChangeSet:
    return ChangeSet(
        id=doc.id,
        author=doc.author,
        tags=tuple(doc.tags),
        precondition=build_predicate(doc.precondition),
        actions=tuple(build_action(action) for action in doc.actions),
    )


def load_changelog(source: ChangelogSource, changelog_id: Optional[str] = None) -> Changelog:
    """
    Load and validate a changelog document.

    Args:
        source: File path, YAML text or parsed mapping
        changelog_id: Forces the changelog id

    Returns:
        Changelog ready for execution

    Raises:
        ChangelogLoadError: Unreadable or invalid document
    """
    default_id = ""
    if isinstance(source, Path):
        try:
            raw = yaml.safe_load(source.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ChangelogLoadError(f"Cannot read changelog {source}: {e}") from e
        default_id = str(source.resolve())
    elif isinstance(source, str):
        try:
            raw = yaml.safe_load(source)
        except yaml.YAMLError as e:
            raise ChangelogLoadError(f"Invalid YAML: {e}") from e
    else:
        raw = source

    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ChangelogLoadError(f"A changelog document must be a mapping, got {type(raw).__name__}")

    try:
        doc = ChangelogDocument.model_validate(dict(raw))
    except ValidationError as e:
        raise ChangelogLoadError(f"Invalid changelog document: {e}") from e

    if changelog_id is None:
        changelog_id = doc.id if doc.id is not None else default_id

    changelog = Changelog(
        id=changelog_id,
        precondition=build_predicate(doc.precondition),
        changesets=[build_changeset(changeset) for changeset in doc.changesets],
    )
    logger.debug(f"Loaded changelog {changelog.id or '<anonymous>'} with {len(changelog.changesets)} changeset(s)")
    return changelog
