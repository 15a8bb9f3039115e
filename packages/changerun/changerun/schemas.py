from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class ActionDocument(BaseModel):
    """One action: a Python callable reference or a shell command."""
    name: str = "basicAction"
    call: Optional[str] = None
    args: List[Any] = Field(default_factory=list)
    kwargs: Dict[str, Any] = Field(default_factory=dict)
    shell: Optional[str] = None
    timeout: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def _exactly_one_target(self) -> "ActionDocument":
        if (self.call is None) == (self.shell is None):
            raise ValueError("an action needs exactly one of 'call' or 'shell'")
        return self


class ChangeSetDocument(BaseModel):
    id: str = Field(..., min_length=1)
    author: str
    tags: List[str] = Field(default_factory=list)
    precondition: Any = True
    actions: List[ActionDocument] = Field(default_factory=list)


class ChangelogDocument(BaseModel):
    id: Optional[str] = None
    precondition: Any = True
    changesets: List[ChangeSetDocument] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_changeset_ids(self) -> "ChangelogDocument":
        seen = set()
        for changeset in self.changesets:
            if changeset.id in seen:
                raise ValueError(f"duplicate changeset id: {changeset.id}")
            seen.add(changeset.id)
        return self
