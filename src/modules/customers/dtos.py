"""Customer DTOs for the Service Layer.

Pydantic v2 data transfer objects: the contracts between the API layer
(DRF views) and the Service layer.  DTOs are immutable (``frozen=True``).

- ``Create*DTO``: input for registration (national ID sanitised here;
  the checksum itself runs in the service so it can log the rejection).
- ``Update*DTO``: selective updates; ``None`` means "leave unchanged".
- Owned records: ``Create*`` / ``Update*`` for contacts, addresses and
  identity documents.

Code fields (category, lead source, gender ...) accept the external code
in any letter case.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Any, List
from uuid import UUID

from django.db import models
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from modules.customers import tax_ids
from modules.customers.constants import (
    AddressType,
    BrazilianState,
    ContactType,
    CustomerCategory,
    Gender,
    IdentityDocumentType,
    LeadSource,
    lookup_by_code,
)

POSTAL_CODE_PATTERN = re.compile(r"^\d{5}-?\d{3}$")

_CODE_FIELDS = {
    "category": CustomerCategory,
    "lead_source": LeadSource,
    "gender": Gender,
    "contact_type": ContactType,
    "address_type": AddressType,
    "state": BrazilianState,
    "document_type": IdentityDocumentType,
}


def _normalize_code(field_name: str, value: Any) -> Any:
    choices: type[models.TextChoices] | None = _CODE_FIELDS.get(field_name)
    if choices is None or not isinstance(value, str):
        return value
    member = lookup_by_code(choices, value)
    # Unknown codes fall through so the enum validation reports them.
    return member if member is not None else value


def _sanitize_tax_id(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return tax_ids.clean(value)


def _require_text(value: str | None) -> str | None:
    if value is None:
        return value
    if not value.strip():
        raise ValueError("must not be blank")
    return value.strip()


class _CodeNormalizingDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def normalize_codes(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {key: _normalize_code(key, value) for key, value in data.items()}


# ---------------------------------------------------------------------------
# Owned records
# ---------------------------------------------------------------------------


class CreateContactDTO(_CodeNormalizingDTO):
    contact_type: ContactType
    value: str = Field(max_length=100)
    notes: str = Field(default="", max_length=500)
    is_principal: bool = False

    @field_validator("value")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return _require_text(v)


class UpdateContactDTO(_CodeNormalizingDTO):
    """Update of an existing contact identified by ``id``."""

    id: int
    contact_type: ContactType | None = None
    value: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=500)
    is_principal: bool | None = None

    @field_validator("value")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return _require_text(v)


class _AddressFields(_CodeNormalizingDTO):
    @field_validator("postal_code", check_fields=False)
    @classmethod
    def validate_postal_code(cls, v: str | None) -> str | None:
        if v is not None and not POSTAL_CODE_PATTERN.match(v):
            raise ValueError("postal code must look like 00000-000")
        return v


class CreateAddressDTO(_AddressFields):
    address_type: AddressType
    postal_code: str
    street: str = Field(max_length=200)
    number: str = Field(default="", max_length=10)
    complement: str = Field(default="", max_length=100)
    district: str = Field(max_length=100)
    city: str = Field(max_length=100)
    state: BrazilianState
    country: str = Field(default="Brasil", max_length=50)
    is_principal: bool = False

    @field_validator("street", "district", "city")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return _require_text(v)


class UpdateAddressDTO(_AddressFields):
    """Update of an existing address identified by ``id``."""

    id: int
    address_type: AddressType | None = None
    postal_code: str | None = None
    street: str | None = Field(default=None, max_length=200)
    number: str | None = Field(default=None, max_length=10)
    complement: str | None = Field(default=None, max_length=100)
    district: str | None = Field(default=None, max_length=100)
    city: str | None = Field(default=None, max_length=100)
    state: BrazilianState | None = None
    country: str | None = Field(default=None, max_length=50)
    is_principal: bool | None = None


class CreateIdentityDocumentDTO(_CodeNormalizingDTO):
    document_type: IdentityDocumentType
    number: str = Field(max_length=50)
    issuing_authority: str = Field(default="", max_length=50)
    issued_on: date | None = None
    expires_on: date | None = None
    notes: str = Field(default="", max_length=500)
    is_principal: bool = False

    @field_validator("number")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return _require_text(v)


class UpdateIdentityDocumentDTO(_CodeNormalizingDTO):
    """Number and type are fixed at creation and therefore absent here."""

    id: int
    issuing_authority: str | None = Field(default=None, max_length=50)
    issued_on: date | None = None
    expires_on: date | None = None
    notes: str | None = Field(default=None, max_length=500)
    is_principal: bool | None = None


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


class _CustomerFields(_CodeNormalizingDTO):
    email: EmailStr | None = None
    lead_source: LeadSource | None = None
    utm_source: str | None = Field(default=None, max_length=100)
    utm_campaign: str | None = Field(default=None, max_length=100)
    utm_medium: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=1000)


class CreateIndividualCustomerDTO(_CustomerFields):
    """Registration of an individual.

    Validates:
    - ``cpf`` is sanitised (non-digits stripped); the checksum runs in
      ``CustomerService`` so rejections are logged in one place.
    - ``birth_date`` lies in the past.
    """

    cpf: str
    first_name: str = Field(max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    last_name: str = Field(max_length=100)
    rg: str | None = Field(default=None, max_length=20)
    birth_date: date | None = None
    gender: Gender | None = None
    mother_name: str | None = Field(default=None, max_length=200)
    father_name: str | None = Field(default=None, max_length=200)
    marital_status: str | None = Field(default=None, max_length=30)
    occupation: str | None = Field(default=None, max_length=100)
    nationality: str | None = Field(default=None, max_length=50)
    birthplace: str | None = Field(default=None, max_length=100)
    category: CustomerCategory
    referrer_id: UUID | None = None

    @field_validator("cpf", mode="before")
    @classmethod
    def sanitize_tax_id(cls, v: Any) -> Any:
        return _sanitize_tax_id(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return _require_text(v)

    @field_validator("birth_date")
    @classmethod
    def birth_date_in_past(cls, v: date | None) -> date | None:
        if v is not None and v >= date.today():
            raise ValueError("birth date must be in the past")
        return v


class CreateCompanyCustomerDTO(_CustomerFields):
    """Registration of a company.

    ``representative_cpf`` is optional but, when present, must pass the
    CPF checksum.
    """

    cnpj: str
    legal_name: str = Field(max_length=200)
    trade_name: str | None = Field(default=None, max_length=200)
    state_registration: str | None = Field(default=None, max_length=20)
    municipal_registration: str | None = Field(default=None, max_length=20)
    founded_on: date | None = None
    company_size: str | None = Field(default=None, max_length=50)
    legal_nature: str | None = Field(default=None, max_length=100)
    main_activity: str | None = Field(default=None, max_length=200)
    share_capital: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    representative_name: str | None = Field(default=None, max_length=200)
    representative_cpf: str | None = None
    representative_role: str | None = Field(default=None, max_length=100)
    website: str | None = Field(default=None, max_length=200)
    category: CustomerCategory
    referrer_id: UUID | None = None

    @field_validator("cnpj", "representative_cpf", mode="before")
    @classmethod
    def sanitize_tax_id(cls, v: Any) -> Any:
        return _sanitize_tax_id(v)

    @field_validator("legal_name")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return _require_text(v)

    @field_validator("representative_cpf")
    @classmethod
    def validate_representative_cpf(cls, v: str | None) -> str | None:
        if v and not tax_ids.is_valid_cpf(v):
            raise ValueError("Invalid representative CPF.")
        return v or None


class _CustomerUpdateFields(_CustomerFields):
    category: CustomerCategory | None = None
    contacts: List[UpdateContactDTO] = Field(default_factory=list)
    addresses: List[UpdateAddressDTO] = Field(default_factory=list)
    documents: List[UpdateIdentityDocumentDTO] = Field(default_factory=list)


class UpdateIndividualCustomerDTO(_CustomerUpdateFields):
    """Selective update of an individual.

    ``cpf`` and ``birth_date`` are accepted only so the service can reject
    a change with ``ImmutableField``; resending the stored value is fine.
    """

    cpf: str | None = None
    birth_date: date | None = None
    first_name: str | None = Field(default=None, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    rg: str | None = Field(default=None, max_length=20)
    gender: Gender | None = None
    mother_name: str | None = Field(default=None, max_length=200)
    father_name: str | None = Field(default=None, max_length=200)
    marital_status: str | None = Field(default=None, max_length=30)
    occupation: str | None = Field(default=None, max_length=100)
    nationality: str | None = Field(default=None, max_length=50)
    birthplace: str | None = Field(default=None, max_length=100)

    @field_validator("cpf", mode="before")
    @classmethod
    def sanitize_tax_id(cls, v: Any) -> Any:
        return _sanitize_tax_id(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return _require_text(v)


class UpdateCompanyCustomerDTO(_CustomerUpdateFields):
    cnpj: str | None = None
    legal_name: str | None = Field(default=None, max_length=200)
    trade_name: str | None = Field(default=None, max_length=200)
    state_registration: str | None = Field(default=None, max_length=20)
    municipal_registration: str | None = Field(default=None, max_length=20)
    founded_on: date | None = None
    company_size: str | None = Field(default=None, max_length=50)
    legal_nature: str | None = Field(default=None, max_length=100)
    main_activity: str | None = Field(default=None, max_length=200)
    share_capital: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    representative_name: str | None = Field(default=None, max_length=200)
    representative_cpf: str | None = None
    representative_role: str | None = Field(default=None, max_length=100)
    website: str | None = Field(default=None, max_length=200)

    @field_validator("cnpj", "representative_cpf", mode="before")
    @classmethod
    def sanitize_tax_id(cls, v: Any) -> Any:
        return _sanitize_tax_id(v)

    @field_validator("legal_name")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return _require_text(v)

    @field_validator("representative_cpf")
    @classmethod
    def validate_representative_cpf(cls, v: str | None) -> str | None:
        if v and not tax_ids.is_valid_cpf(v):
            raise ValueError("Invalid representative CPF.")
        return v or None


# ---------------------------------------------------------------------------
# Lifecycle commands
# ---------------------------------------------------------------------------


class BlockCustomerDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str = Field(max_length=450)

    @field_validator("reason")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return _require_text(v)


class DeleteCustomerDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str | None = Field(default=None, max_length=450)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip() or None
