"""Django ORM base for soft-delete-aware repositories.

Both lookup tiers are derived from one private ``_lookup()`` helper:
the active tier only chains ``.alive()`` onto the exact same key filter,
so key matching semantics can never diverge between tiers.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, Type, TypeVar
from uuid import UUID

from django.core.exceptions import ValidationError

from modules.core.models import SoftDeleteModel, SoftDeleteQuerySet

M = TypeVar("M", bound=SoftDeleteModel)


class SoftDeleteDjangoRepository(Generic[M]):
    """Shared tier plumbing for repositories of ``SoftDeleteModel`` subclasses."""

    model: Type[M]

    def _lookup(self, active_only: bool, **key: Any) -> SoftDeleteQuerySet:
        queryset = self.model.objects.filter(**key)
        if active_only:
            queryset = queryset.alive()
        return queryset

    def _find(self, active_only: bool, **key: Any) -> Optional[M]:
        try:
            return self._lookup(active_only, **key).first()
        except (ValueError, ValidationError):
            return None

    def _exists(self, active_only: bool, **key: Any) -> bool:
        try:
            return self._lookup(active_only, **key).exists()
        except (ValueError, ValidationError):
            return False

    # ------------------------------------------------------------------
    # Public identifier tiers
    # ------------------------------------------------------------------

    def find_by_public_id(self, public_id: UUID) -> Optional[M]:
        return self._find(False, public_id=public_id)

    def exists_by_public_id(self, public_id: UUID) -> bool:
        return self._exists(False, public_id=public_id)

    def find_active_by_public_id(self, public_id: UUID) -> Optional[M]:
        return self._find(True, public_id=public_id)

    def exists_active_by_public_id(self, public_id: UUID) -> bool:
        return self._exists(True, public_id=public_id)
