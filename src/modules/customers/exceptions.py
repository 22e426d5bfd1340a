"""Customer domain exceptions.

Raised by the Service Layer (and the principal guard) when business
rules are violated.  They carry no transport knowledge: the API layer
(Views) catches them and translates them into HTTP responses.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID


class CustomerDomainError(Exception):
    """Base class for every business-rule violation in this module."""


# ---------------------------------------------------------------------------
# National ID
# ---------------------------------------------------------------------------


class InvalidDocument(CustomerDomainError):
    """CPF/CNPJ failed structural or check-digit validation."""

    def __init__(self, document_type: str) -> None:
        self.document_type = document_type
        super().__init__(f"Invalid {document_type} number.")


class DuplicateDocument(CustomerDomainError):
    """An active customer with the same CPF/CNPJ already exists."""

    def __init__(self, document_type: str) -> None:
        self.document_type = document_type
        super().__init__(f"{document_type} already registered.")


class ImmutableField(CustomerDomainError):
    """A field frozen at creation was about to change."""

    def __init__(self, field: str, reason: Optional[str] = None) -> None:
        self.field = field
        self.reason = reason
        message = f"Field '{field}' is immutable and cannot be changed after creation"
        if reason:
            message = f"{message}. Reason: {reason}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Customer look-ups and lifecycle
# ---------------------------------------------------------------------------


class CustomerNotFound(CustomerDomainError):
    """The requested customer does not exist or has been soft-deleted."""

    def __init__(self, public_id: object) -> None:
        self.public_id = public_id
        super().__init__(f"Customer {public_id} not found.")


class ReferrerNotFound(CustomerDomainError):
    """The referrer public ID supplied at creation does not resolve."""

    def __init__(self, public_id: UUID) -> None:
        self.public_id = public_id
        super().__init__(f"Referrer customer {public_id} not found.")


class CustomerAlreadyDeleted(CustomerDomainError):
    """Soft delete requested for a customer that is already deleted."""

    def __init__(self, public_id: UUID) -> None:
        self.public_id = public_id
        super().__init__(f"Customer {public_id} is already deleted.")


class CustomerAlreadyBlocked(CustomerDomainError):
    """Block requested for a customer that is already blocked."""

    def __init__(self, public_id: UUID) -> None:
        self.public_id = public_id
        super().__init__(f"Customer {public_id} is already blocked.")


# ---------------------------------------------------------------------------
# Owned records (contacts, addresses, identity documents)
# ---------------------------------------------------------------------------


class DuplicatePrincipal(CustomerDomainError):
    """A second principal item was about to be created in the same scope.

    Recoverable: demote the current principal first.
    """

    def __init__(self, scope: str, group: Optional[str] = None) -> None:
        self.scope = scope
        self.group = group
        if group:
            message = (
                f"A principal {scope} of type {group} already exists. "
                f"Remove the principal flag from the other {scope} first."
            )
        else:
            message = (
                f"A principal {scope} already exists for this customer. "
                f"Remove the principal flag from the other {scope} first."
            )
        super().__init__(message)


class ContactNotFound(CustomerDomainError):
    """The contact does not exist."""

    def __init__(self, contact_id: object) -> None:
        super().__init__(f"Contact {contact_id} not found.")


class AddressNotFound(CustomerDomainError):
    """The address does not exist."""

    def __init__(self, address_id: object) -> None:
        super().__init__(f"Address {address_id} not found.")


class IdentityDocumentNotFound(CustomerDomainError):
    """The identity document does not exist."""

    def __init__(self, document_id: object) -> None:
        super().__init__(f"Identity document {document_id} not found.")


class RecordNotOwned(CustomerDomainError):
    """The contact/address/document belongs to a different customer."""

    def __init__(self, record: str) -> None:
        self.record = record
        super().__init__(f"{record} does not belong to the customer being updated.")


class InvalidExpiryDate(CustomerDomainError):
    """Identity document expiry date is implausible or before its issue date."""
