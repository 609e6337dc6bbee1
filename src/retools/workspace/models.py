"""Change-set models for file operations returned by the generation service."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, RootModel, field_validator, model_validator


class FileAction(str, Enum):
    """Supported file operations."""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


class FileOperation(BaseModel):
    """One file operation.

    ``content`` is the complete post-edit file for create/modify, never a
    diff. It is dropped for delete.

    Example:
        >>> op = FileOperation(path="a/b.txt", action="create", content="hi")
        >>> op.action
        <FileAction.CREATE: 'create'>
    """

    path: str
    action: FileAction
    content: str | None = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Reject empty paths and normalize separators."""
        v = v.strip().replace("\\", "/")
        if not v:
            msg = "path must not be empty"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_content(self) -> FileOperation:
        """Require content for writes, drop it for deletes."""
        if self.action is FileAction.DELETE:
            self.content = None
        elif self.content is None:
            msg = f"content is required for {self.action.value} of {self.path}"
            raise ValueError(msg)
        return self

    @property
    def is_write(self) -> bool:
        return self.action is not FileAction.DELETE


class ChangeSet(RootModel[list[FileOperation]]):
    """Ordered file operations. Duplicate paths are allowed; the last wins."""

    root: list[FileOperation]

    def __iter__(self):  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __getitem__(self, index: int) -> FileOperation:
        return self.root[index]

    @property
    def paths(self) -> list[str]:
        return [op.path for op in self.root]

    @classmethod
    def from_operations(cls, operations: list[dict[str, Any]]) -> ChangeSet:
        """Validate a list of wire-format dicts."""
        return cls.model_validate(operations)

    def summary(self) -> dict[str, int]:
        """Count operations per action."""
        counts = {action.value: 0 for action in FileAction}
        for op in self.root:
            counts[op.action.value] += 1
        return counts
