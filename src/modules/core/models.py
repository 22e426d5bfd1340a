"""Base abstract models for the customer registry.

Provides:
- ``TimestampedModel``: ``created_at`` / ``updated_at`` bookkeeping.
- ``SoftDeleteModel``: soft delete through ``is_active`` + ``deleted_at``
  (+ ``deleted_by`` / ``deletion_reason`` audit columns).

Design decisions:
- The four soft-delete columns are always written together from a
  ``shared.domain.lifecycle`` state, never field by field.
- ``objects`` manager returns ALL records (unfiltered).  Use ``.alive()``
  explicitly to restrict to active rows; public paths must do so.
- ``save()`` guard ensures ``updated_at`` is included when ``update_fields``
  is specified (Django skips ``auto_now`` fields otherwise).
"""

from __future__ import annotations

from typing import Optional

from django.db import models
from django.utils import timezone

from shared.domain.lifecycle import (
    ACTIVE,
    Deleted,
    LifecycleState,
    from_columns,
    to_columns,
)

SOFT_DELETE_FIELDS = ["is_active", "deleted_at", "deleted_by", "deletion_reason"]

# ---------------------------------------------------------------------------
# TimestampedModel
# ---------------------------------------------------------------------------


class TimestampedModel(models.Model):
    """Abstract base with timestamp bookkeeping."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Soft Delete infrastructure
# ---------------------------------------------------------------------------


class SoftDeleteQuerySet(models.QuerySet):
    """QuerySet with soft-delete helpers."""

    def alive(self) -> SoftDeleteQuerySet:
        """Return only active, non-deleted records."""
        return self.filter(is_active=True, deleted_at__isnull=True)

    def dead(self) -> SoftDeleteQuerySet:
        """Return only soft-deleted records."""
        return self.filter(deleted_at__isnull=False)

    def delete(self) -> tuple[int, dict[str, int]]:
        """Bulk soft-delete: writes every soft-delete column at once."""
        columns = to_columns(Deleted(at=timezone.now()))
        count = self.alive().update(**columns, updated_at=columns["deleted_at"])
        return count, {self.model._meta.label: count}

    def hard_delete(self) -> tuple[int, dict[str, int]]:
        """Permanently remove all records in the queryset."""
        return super().delete()


class SoftDeleteManager(models.Manager):
    """Manager that exposes ``.alive()`` / ``.dead()`` on the queryset."""

    def get_queryset(self) -> SoftDeleteQuerySet:
        return SoftDeleteQuerySet(self.model, using=self._db)

    def alive(self) -> SoftDeleteQuerySet:
        return self.get_queryset().alive()

    def dead(self) -> SoftDeleteQuerySet:
        return self.get_queryset().dead()


class SoftDeleteModel(TimestampedModel):
    """Abstract model with soft-delete columns.

    - ``objects`` is **unfiltered** (returns all rows).
    - Use ``Model.objects.alive()`` to exclude soft-deleted rows.
    - ``soft_delete()`` marks the row deleted; ``hard_delete()`` removes it.
    """

    is_active = models.BooleanField(default=True)
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        default=None,
        db_index=True,
    )
    deleted_by = models.CharField(max_length=100, null=True, blank=True)  # noqa: DJ01
    deletion_reason = models.CharField(  # noqa: DJ01
        max_length=500, null=True, blank=True
    )

    objects = SoftDeleteManager()

    class Meta:
        abstract = True

    # ------------------------------------------------------------------
    # Lifecycle (sum type <-> columns)
    # ------------------------------------------------------------------

    @property
    def lifecycle(self) -> LifecycleState:
        return from_columns(
            self.is_active,
            self.deleted_at,
            self.deleted_by,
            self.deletion_reason,
        )

    def _apply_lifecycle(self, state: LifecycleState) -> None:
        for field, value in to_columns(state).items():
            setattr(self, field, value)

    @property
    def is_deleted(self) -> bool:
        """``True`` when the record has been soft-deleted."""
        return self.deleted_at is not None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def soft_delete(
        self, reason: Optional[str] = None, actor: Optional[str] = None
    ) -> None:
        """Mark this instance deleted (no-op if already deleted)."""
        if self.is_deleted:
            return
        self._apply_lifecycle(Deleted(at=timezone.now(), by=actor, reason=reason))
        self.save(update_fields=SOFT_DELETE_FIELDS)

    def delete(self, using=None, keep_parents=False) -> tuple[int, dict[str, int]]:
        """Soft-delete this instance; Django's ``delete()`` never removes rows."""
        if self.is_deleted:
            return 0, {}
        self.soft_delete()
        return 1, {self._meta.label: 1}

    def hard_delete(self, using=None, keep_parents=False) -> tuple[int, dict[str, int]]:
        """Permanently remove this record from the database."""
        return super().delete(using=using, keep_parents=keep_parents)

    def restore(self) -> None:
        """Restore a soft-deleted record. No-op for any other state."""
        if not isinstance(self.lifecycle, Deleted):
            return
        self._apply_lifecycle(ACTIVE)
        self.save(update_fields=SOFT_DELETE_FIELDS)
