"""Generic repository interfaces (Dependency Inversion Principle).

Provides:
- ``IRepository[T]``: base contract all domain repositories extend.
- ``ISoftDeleteView[T]``: the two lookup tiers every soft-deletable
  aggregate exposes by public identifier.

Lookup tiers
------------
* **Unfiltered** (``find_by_*`` / ``exists_by_*``): any row, deleted or not.
  Internal flows only (audit, referrer resolution, restore).
* **Active** (``find_active_by_*`` / ``exists_active_by_*``): only rows with
  ``is_active = True AND deleted_at IS NULL``.  Public look-ups and
  uniqueness checks must use this tier.

Service-layer code depends on these abstractions, never on Django ORM.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar
from uuid import UUID

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    Type parameter ``T`` represents the domain entity managed by the
    repository (e.g. ``IndividualCustomer``, ``ContactMethod``).
    """

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[T]:
        """Retrieve an entity by its internal primary key."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        """List entities with optional filters."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an entity."""


class ISoftDeleteView(ABC, Generic[T]):
    """Two-tier look-ups keyed by the public identifier."""

    @abstractmethod
    def find_by_public_id(self, public_id: UUID) -> Optional[T]:
        """Unfiltered: return the row even if soft-deleted."""

    @abstractmethod
    def exists_by_public_id(self, public_id: UUID) -> bool:
        """Unfiltered existence check."""

    @abstractmethod
    def find_active_by_public_id(self, public_id: UUID) -> Optional[T]:
        """Active tier: ``None`` for missing or soft-deleted rows."""

    @abstractmethod
    def exists_active_by_public_id(self, public_id: UUID) -> bool:
        """Active tier existence check."""
