"""Customer aggregate models: individuals (CPF), companies (CNPJ) and the
records they own (contacts, postal addresses, identity documents).

Business rules implemented:
- RN-CLI-001: an active CPF/CNPJ is unique (partial unique constraint on
  ``(document_type, document) WHERE deleted_at IS NULL``).  A soft-deleted
  registration frees its national ID for re-registration.
- RN-CLI-002: national ID (and an individual's birth date, once set) is
  immutable after the first save.
- RN-CLI-004: soft delete via ``is_active`` + ``deleted_at`` (inherited
  from SoftDeleteModel); deleting also blocks the customer.
- RN-CLI-005: sensitive data (CPF/CNPJ) masked in ``__str__`` and logs.
- RN-CLI-006: at most one principal contact / document per customer and
  one principal address per (customer, address type), backed by partial
  unique constraints.
- ``id`` is internal; ``public_id`` (UUID4) is the only identifier
  exposed through the API.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Optional

import structlog
from django.db import models
from django.db.models import DEFERRED, Q
from django.utils import timezone

from modules.core.models import SOFT_DELETE_FIELDS, SoftDeleteModel, TimestampedModel
from modules.customers import tax_ids
from modules.customers.constants import (
    DEFAULT_COUNTRY,
    DEFAULT_NATIONALITY,
    DELETION_BLOCK_PREFIX,
    AddressType,
    BrazilianState,
    ContactType,
    CustomerCategory,
    DocumentStatus,
    DocumentType,
    Gender,
    IdentityDocumentType,
    LeadSource,
)
from modules.customers.exceptions import ImmutableField
from shared.domain.lifecycle import ACTIVE, Deleted

logger = structlog.get_logger(__name__)

BLOCK_FIELDS = ["blocked", "block_reason", "blocked_at", "blocked_by"]

CONTACT_PRINCIPAL_CONSTRAINT = "contacts_one_principal_per_customer"
ADDRESS_PRINCIPAL_CONSTRAINT = "addresses_one_principal_per_type"
DOCUMENT_PRINCIPAL_CONSTRAINT = "documents_one_principal_per_customer"
PRINCIPAL_CONSTRAINTS = (
    CONTACT_PRINCIPAL_CONSTRAINT,
    ADDRESS_PRINCIPAL_CONSTRAINT,
    DOCUMENT_PRINCIPAL_CONSTRAINT,
)


class Customer(SoftDeleteModel):
    """Customer aggregate root (concrete base of a multi-table hierarchy).

    Exactly one of ``IndividualCustomer`` / ``CompanyCustomer`` exists per
    row.  ``document`` stores only digits (sanitised on save) and
    ``document_type`` tells which checksum applies.
    """

    IMMUTABLE_FIELDS: tuple[str, ...] = ("document", "document_type")

    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    document = models.CharField(max_length=14)
    document_type = models.CharField(max_length=4, choices=DocumentType.choices)
    email = models.EmailField(max_length=150, blank=True, default="")

    # Classification / marketing
    category = models.CharField(max_length=20, choices=CustomerCategory.choices)
    lead_source = models.CharField(
        max_length=30, choices=LeadSource.choices, blank=True, default=""
    )
    utm_source = models.CharField(max_length=100, blank=True, default="")
    utm_campaign = models.CharField(max_length=100, blank=True, default="")
    utm_medium = models.CharField(max_length=100, blank=True, default="")

    # Referral
    referrer = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="referrals",
    )
    referred_at = models.DateTimeField(null=True, blank=True, default=None)
    referral_rewarded = models.BooleanField(default=False)

    # Transaction metrics
    total_purchases = models.PositiveIntegerField(default=0)
    total_sales = models.PositiveIntegerField(default=0)
    total_purchased_amount = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal("0.00")
    )
    total_sold_amount = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal("0.00")
    )
    first_transaction_at = models.DateTimeField(null=True, blank=True, default=None)
    last_transaction_at = models.DateTimeField(null=True, blank=True, default=None)

    # Blocking
    blocked = models.BooleanField(default=False)
    block_reason = models.CharField(max_length=500, blank=True, default="")
    blocked_at = models.DateTimeField(null=True, blank=True, default=None)
    blocked_by = models.CharField(max_length=100, blank=True, default="")

    notes = models.TextField(max_length=1000, blank=True, default="")

    class Meta:
        db_table = "customers"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"], name="customers_created_idx"),
            models.Index(fields=["is_active"], name="customers_active_idx"),
            models.Index(
                fields=["document_type", "document"], name="customers_document_idx"
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["document_type", "document"],
                condition=Q(deleted_at__isnull=True),
                name="customers_active_document_uniq",
            ),
        ]

    # ------------------------------------------------------------------
    # Immutable fields
    # ------------------------------------------------------------------

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_values = dict(zip(field_names, values))
        return instance

    def _check_immutable_fields(self) -> None:
        loaded = getattr(self, "_loaded_values", None)
        if not loaded:
            return
        for field in self.IMMUTABLE_FIELDS:
            original = loaded.get(field, DEFERRED)
            if original is DEFERRED or original is None:
                continue
            if getattr(self, field) != original:
                raise ImmutableField(field)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.document:
            self.document = tax_ids.clean(self.document)
        self._check_immutable_fields()
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Soft delete (also blocks)
    # ------------------------------------------------------------------

    def soft_delete(
        self, reason: Optional[str] = None, actor: Optional[str] = None
    ) -> None:
        if self.is_deleted:
            return
        now = timezone.now()
        self.blocked = True
        self.block_reason = f"{DELETION_BLOCK_PREFIX}{reason or ''}"
        self.blocked_at = now
        self.blocked_by = actor or ""
        self._apply_lifecycle(Deleted(at=now, by=actor, reason=reason))
        self.save(update_fields=SOFT_DELETE_FIELDS + BLOCK_FIELDS)

    def restore(self) -> None:
        """Undo a soft delete and the block it introduced (if any)."""
        if not isinstance(self.lifecycle, Deleted):
            return
        self._apply_lifecycle(ACTIVE)
        if self.block_reason.startswith(DELETION_BLOCK_PREFIX):
            self._clear_block()
        self.save(update_fields=SOFT_DELETE_FIELDS + BLOCK_FIELDS)

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------

    def block(self, reason: str, actor: Optional[str] = None) -> None:
        self.blocked = True
        self.block_reason = reason
        self.blocked_at = timezone.now()
        self.blocked_by = actor or ""
        self.save(update_fields=BLOCK_FIELDS)

    def unblock(self) -> None:
        self._clear_block()
        self.save(update_fields=BLOCK_FIELDS)

    def _clear_block(self) -> None:
        self.blocked = False
        self.block_reason = ""
        self.blocked_at = None
        self.blocked_by = ""

    # ------------------------------------------------------------------
    # Display (RN-CLI-005: mask sensitive data)
    # ------------------------------------------------------------------

    @property
    def formatted_document(self) -> str:
        if self.document_type == DocumentType.CNPJ:
            return tax_ids.format_cnpj(self.document)
        return tax_ids.format_cpf(self.document)

    def __str__(self) -> str:
        suffix = self.document[-4:] if self.document else "????"
        return f"{self.public_id} ({self.document_type}: ***{suffix})"


class IndividualCustomer(Customer):
    """Individual (pessoa física) identified by CPF."""

    IMMUTABLE_FIELDS = Customer.IMMUTABLE_FIELDS + ("birth_date",)

    first_name = models.CharField(max_length=100)
    middle_name = models.CharField(max_length=100, blank=True, default="")
    last_name = models.CharField(max_length=100)
    rg = models.CharField(max_length=20, blank=True, default="")
    birth_date = models.DateField(null=True, blank=True, default=None)
    gender = models.CharField(
        max_length=1, choices=Gender.choices, blank=True, default=""
    )
    mother_name = models.CharField(max_length=200, blank=True, default="")
    father_name = models.CharField(max_length=200, blank=True, default="")
    marital_status = models.CharField(max_length=30, blank=True, default="")
    occupation = models.CharField(max_length=100, blank=True, default="")
    nationality = models.CharField(max_length=50, default=DEFAULT_NATIONALITY)
    birthplace = models.CharField(max_length=100, blank=True, default="")

    class Meta:
        db_table = "customers_individual"
        ordering = ["-created_at"]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.document_type = DocumentType.CPF
        super().save(*args, **kwargs)

    @property
    def cpf(self) -> str:
        return self.document

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)

    @property
    def age(self) -> Optional[int]:
        if self.birth_date is None:
            return None
        today = date.today()
        before_birthday = (today.month, today.day) < (
            self.birth_date.month,
            self.birth_date.day,
        )
        return today.year - self.birth_date.year - int(before_birthday)


class CompanyCustomer(Customer):
    """Company (pessoa jurídica) identified by CNPJ."""

    legal_name = models.CharField(max_length=200)
    trade_name = models.CharField(max_length=200, blank=True, default="")
    state_registration = models.CharField(max_length=20, blank=True, default="")
    municipal_registration = models.CharField(max_length=20, blank=True, default="")
    founded_on = models.DateField(null=True, blank=True, default=None)
    company_size = models.CharField(max_length=50, blank=True, default="")
    legal_nature = models.CharField(max_length=100, blank=True, default="")
    main_activity = models.CharField(max_length=200, blank=True, default="")
    share_capital = models.DecimalField(
        max_digits=15, decimal_places=2, null=True, blank=True, default=None
    )
    representative_name = models.CharField(max_length=200, blank=True, default="")
    representative_cpf = models.CharField(max_length=11, blank=True, default="")
    representative_role = models.CharField(max_length=100, blank=True, default="")
    website = models.CharField(max_length=200, blank=True, default="")

    class Meta:
        db_table = "customers_company"
        ordering = ["-created_at"]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.document_type = DocumentType.CNPJ
        if self.representative_cpf:
            self.representative_cpf = tax_ids.clean(self.representative_cpf)
        super().save(*args, **kwargs)

    @property
    def cnpj(self) -> str:
        return self.document

    @property
    def display_name(self) -> str:
        return self.trade_name or self.legal_name


# ---------------------------------------------------------------------------
# Owned records
# ---------------------------------------------------------------------------


class ContactMethod(TimestampedModel):
    """Phone, e-mail or messaging handle owned by a customer."""

    customer = models.ForeignKey(
        Customer, on_delete=models.CASCADE, related_name="contacts"
    )
    contact_type = models.CharField(max_length=20, choices=ContactType.choices)
    value = models.CharField(max_length=100)
    notes = models.CharField(max_length=500, blank=True, default="")
    is_principal = models.BooleanField(default=False)
    verified = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "customer_contacts"
        ordering = ["-is_principal", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer"],
                condition=Q(is_principal=True),
                name=CONTACT_PRINCIPAL_CONSTRAINT,
            ),
        ]

    def change_value(self, value: str) -> None:
        """Set a new value; a changed value must be verified again."""
        if value != self.value:
            self.value = value
            self.verified = False

    def __str__(self) -> str:
        return f"{self.contact_type} #{self.pk}"


class PostalAddress(TimestampedModel):
    """Postal address owned by a customer; one principal per address type."""

    customer = models.ForeignKey(
        Customer, on_delete=models.CASCADE, related_name="addresses"
    )
    address_type = models.CharField(max_length=20, choices=AddressType.choices)
    postal_code = models.CharField(max_length=9)
    street = models.CharField(max_length=200)
    number = models.CharField(max_length=10, blank=True, default="")
    complement = models.CharField(max_length=100, blank=True, default="")
    district = models.CharField(max_length=100)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=2, choices=BrazilianState.choices)
    country = models.CharField(max_length=50, default=DEFAULT_COUNTRY)
    is_principal = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "customer_addresses"
        ordering = ["address_type", "-is_principal", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer", "address_type"],
                condition=Q(is_principal=True),
                name=ADDRESS_PRINCIPAL_CONSTRAINT,
            ),
        ]

    def __str__(self) -> str:
        return f"{self.address_type} #{self.pk} ({self.city}/{self.state})"


class IdentityDocument(TimestampedModel):
    """Identity document (RG, CNH, passport ...) owned by a customer.

    ``number`` and ``document_type`` never change after creation.
    ``status`` becomes ``EXPIRED`` on save once ``expires_on`` has passed.
    """

    customer = models.ForeignKey(
        Customer, on_delete=models.CASCADE, related_name="identity_documents"
    )
    document_type = models.CharField(
        max_length=30, choices=IdentityDocumentType.choices
    )
    number = models.CharField(max_length=50)
    issuing_authority = models.CharField(max_length=50, blank=True, default="")
    issued_on = models.DateField(null=True, blank=True, default=None)
    expires_on = models.DateField(null=True, blank=True, default=None)
    notes = models.CharField(max_length=500, blank=True, default="")
    status = models.CharField(
        max_length=30,
        choices=DocumentStatus.choices,
        default=DocumentStatus.PENDING_VERIFICATION,
    )
    is_principal = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "customer_identity_documents"
        ordering = ["-is_principal", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer"],
                condition=Q(is_principal=True),
                name=DOCUMENT_PRINCIPAL_CONSTRAINT,
            ),
        ]

    @property
    def is_expired(self) -> bool:
        if self.expires_on is None:
            return False
        return timezone.localdate() > self.expires_on

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.is_expired:
            self.status = DocumentStatus.EXPIRED
            update_fields = kwargs.get("update_fields")
            if update_fields is not None and "status" not in update_fields:
                kwargs["update_fields"] = list(update_fields) + ["status"]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        suffix = self.number[-4:] if self.number else "????"
        return f"{self.document_type} ***{suffix}"
