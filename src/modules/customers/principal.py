"""Principal-uniqueness guard for records owned by a customer.

At most one item may carry ``is_principal = True`` per
``(owner, group_key)``:

============  ==============================
Collection    ``group_key``
============  ==============================
contacts      ``NO_GROUPING`` (whole owner)
addresses     the address type
documents     ``NO_GROUPING`` (whole owner)
============  ==============================

The guard is stateless.  It must run in the same transaction as the
write it gates; the partial unique indexes on each child table are the
storage-level backstop for concurrent writers.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

import structlog

from modules.customers.constants import NO_GROUPING
from modules.customers.exceptions import DuplicatePrincipal

logger = structlog.get_logger(__name__)


class IPrincipalLookup(Protocol):
    """Capability required from the storage collaborator."""

    def exists_other_principal(
        self, owner_id: Any, group_key: str, excluded_item_id: Optional[Any]
    ) -> bool: ...


class PrincipalUniquenessGuard:
    """Decide, before a write, whether promoting an item to principal is legal.

    ``scope`` names the collection in error messages (``"contact"``,
    ``"address"``, ``"document"``).
    """

    def __init__(self, lookup: IPrincipalLookup, scope: str) -> None:
        self._lookup = lookup
        self._scope = scope

    def authorize(
        self,
        owner_id: Any,
        group_key: str,
        item_id: Optional[Any],
        setting_principal_to: Optional[bool],
    ) -> None:
        """Raise ``DuplicatePrincipal`` if another principal exists in scope.

        Demotions and updates that leave the flag untouched (``False`` /
        ``None``) always pass.  ``item_id`` is ``None`` for new items.
        """
        if setting_principal_to is not True:
            return

        if self._lookup.exists_other_principal(owner_id, group_key, item_id):
            group = None if group_key == NO_GROUPING else str(group_key)
            logger.warning(
                "principal.duplicate",
                scope=self._scope,
                group=group,
                owner_id=str(owner_id),
            )
            raise DuplicatePrincipal(self._scope, group)
