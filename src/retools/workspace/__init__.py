"""Working-tree mutation: change-set models, guardrails and the applier."""

from retools.workspace.applier import ChangeApplier, apply_changes
from retools.workspace.guardrails import Guardrails, resolve_inside
from retools.workspace.models import ChangeSet, FileAction, FileOperation

__all__ = [
    "ChangeApplier",
    "ChangeSet",
    "FileAction",
    "FileOperation",
    "Guardrails",
    "apply_changes",
    "resolve_inside",
]
