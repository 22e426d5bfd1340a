"""Soft-delete lifecycle as a closed sum type.

Persistence stores four redundant columns (``is_active``, ``deleted_at``,
``deleted_by``, ``deletion_reason``).  Domain code works with exactly one
of three immutable variants instead, so the columns can never disagree:

- ``Active``: the record is alive.
- ``Inactive``: the record was switched off without being deleted; it
  is hidden from the active tier but carries no deletion metadata and
  cannot be restored.
- ``Deleted``: the record was logically removed at ``at`` by ``by``.

``to_columns`` / ``from_columns`` are the only translation points and are
used exclusively by ``modules.core.models.SoftDeleteModel``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class Active:
    """Record is alive and visible through the active lookup tier."""


@dataclass(frozen=True)
class Inactive:
    """Record is switched off outside the soft-delete path."""


@dataclass(frozen=True)
class Deleted:
    """Record is logically deleted."""

    at: datetime
    by: Optional[str] = None
    reason: Optional[str] = None


LifecycleState = Union[Active, Inactive, Deleted]

ACTIVE = Active()
INACTIVE = Inactive()


def to_columns(state: LifecycleState) -> Dict[str, Any]:
    """Translate a lifecycle state into the storage column values."""
    if isinstance(state, Deleted):
        return {
            "is_active": False,
            "deleted_at": state.at,
            "deleted_by": state.by,
            "deletion_reason": state.reason,
        }
    return {
        "is_active": isinstance(state, Active),
        "deleted_at": None,
        "deleted_by": None,
        "deletion_reason": None,
    }


def from_columns(
    is_active: bool,
    deleted_at: Optional[datetime],
    deleted_by: Optional[str] = None,
    deletion_reason: Optional[str] = None,
) -> LifecycleState:
    """Rebuild the lifecycle state from storage columns.

    Raises:
        ValueError: if ``is_active`` and ``deleted_at`` contradict each other.
    """
    if is_active and deleted_at is not None:
        raise ValueError("Record cannot be active and deleted at the same time.")
    if deleted_at is not None:
        return Deleted(at=deleted_at, by=deleted_by, reason=deletion_reason)
    return ACTIVE if is_active else INACTIVE
