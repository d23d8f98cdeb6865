"""Workflow engine exceptions."""
from __future__ import annotations


class WorkflowError(Exception):
    """Base exception for the workflow engine."""


class ValidationError(WorkflowError, ValueError):
    """A required entity reference is missing or malformed."""


class NotFoundError(WorkflowError, LookupError):
    """A mandatory reference points at an id that does not exist."""


class UsageConflictError(WorkflowError):
    """Removal refused because the entity is still referenced."""


class PersistenceError(WorkflowError):
    """A write or query against the storage gateway failed."""
