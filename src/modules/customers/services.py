"""Customer service layer (Use Cases).

Orchestrates the business logic of the Customer aggregate, delegating
persistence to injected repositories.  Every command is atomic: the
service defines the unit-of-work boundary.

Business rules enforced here:
- RN-CLI-001: an active CPF/CNPJ is unique.  Checked through the active
  lookup tier and backed by a partial unique constraint whose
  ``IntegrityError`` is translated into ``DuplicateDocument``.
- RN-CLI-002: national ID and birth date are immutable once set.
- RN-CLI-003: a referrer is resolved through the unfiltered tier.
- RN-CLI-004: soft delete (also blocks) / restore.
- RN-CLI-005: documents and emails are masked before being logged.
- RN-CLI-006: one principal contact / document per customer and one
  principal address per address type.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, TypeVar
from uuid import UUID

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.core.masking import mask_cnpj, mask_cpf, mask_email
from modules.customers import tax_ids
from modules.customers.constants import NO_GROUPING, DocumentType
from modules.customers.exceptions import (
    AddressNotFound,
    ContactNotFound,
    CustomerAlreadyBlocked,
    CustomerAlreadyDeleted,
    CustomerNotFound,
    DuplicateDocument,
    DuplicatePrincipal,
    IdentityDocumentNotFound,
    ImmutableField,
    InvalidDocument,
    InvalidExpiryDate,
    RecordNotOwned,
    ReferrerNotFound,
)
from modules.customers.models import (
    PRINCIPAL_CONSTRAINTS,
    CompanyCustomer,
    ContactMethod,
    Customer,
    IdentityDocument,
    IndividualCustomer,
    PostalAddress,
)
from modules.customers.principal import PrincipalUniquenessGuard

if TYPE_CHECKING:
    from modules.customers.dtos import (
        CreateAddressDTO,
        CreateCompanyCustomerDTO,
        CreateContactDTO,
        CreateIdentityDocumentDTO,
        CreateIndividualCustomerDTO,
        UpdateAddressDTO,
        UpdateCompanyCustomerDTO,
        UpdateContactDTO,
        UpdateIdentityDocumentDTO,
        UpdateIndividualCustomerDTO,
    )
    from modules.customers.repositories.interfaces import (
        IAddressRepository,
        ICompanyCustomerRepository,
        IContactRepository,
        ICustomerRepository,
        IIdentityDocumentRepository,
        IIndividualCustomerRepository,
    )

logger = structlog.get_logger(__name__)

C = TypeVar("C", bound=Customer)

DEFAULT_MAX_EXPIRY_YEARS = 50

INDIVIDUAL_PROFILE_FIELDS = (
    "first_name",
    "middle_name",
    "last_name",
    "rg",
    "birth_date",
    "gender",
    "mother_name",
    "father_name",
    "marital_status",
    "occupation",
    "nationality",
    "birthplace",
)

COMPANY_PROFILE_FIELDS = (
    "legal_name",
    "trade_name",
    "state_registration",
    "municipal_registration",
    "founded_on",
    "company_size",
    "legal_nature",
    "main_activity",
    "share_capital",
    "representative_name",
    "representative_cpf",
    "representative_role",
    "website",
)

SHARED_FIELDS = (
    "email",
    "category",
    "lead_source",
    "utm_source",
    "utm_campaign",
    "utm_medium",
    "notes",
)

CONTACT_FIELDS = ("contact_type", "notes")
ADDRESS_FIELDS = (
    "address_type",
    "postal_code",
    "street",
    "number",
    "complement",
    "district",
    "city",
    "state",
    "country",
)
DOCUMENT_FIELDS = ("issuing_authority", "issued_on", "expires_on", "notes")


def _mask(document_type: str, document: Optional[str]) -> Optional[str]:
    if document_type == DocumentType.CNPJ:
        return mask_cnpj(document)
    return mask_cpf(document)


def _apply(entity: Any, dto: Any, fields: tuple[str, ...]) -> None:
    """Copy every supplied (non-``None``) DTO field onto *entity*."""
    for field in fields:
        value = getattr(dto, field, None)
        if value is not None:
            setattr(entity, field, value)


def _is_principal_violation(record: Any, exc: IntegrityError) -> bool:
    """Tell a principal-index violation apart from any other constraint.

    PostgreSQL names the violated constraint.  SQLite only lists the
    indexed columns, and the principal indexes are the only unique ones
    on the contact, address and document tables.
    """
    if not getattr(record, "is_principal", False):
        return False
    message = str(exc)
    if any(name in message for name in PRINCIPAL_CONSTRAINTS):
        return True
    return message.startswith("UNIQUE constraint failed")


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year.
        return day.replace(year=day.year + years, day=28)


class CustomerRecordsService:
    """Contacts, addresses and identity documents owned by a customer.

    Callers resolve the owning customer (active tier) and run these
    methods inside their own transaction; every promotion to principal
    goes through a ``PrincipalUniquenessGuard`` first.
    """

    def __init__(
        self,
        contact_repository: IContactRepository,
        address_repository: IAddressRepository,
        document_repository: IIdentityDocumentRepository,
    ) -> None:
        self._contact_repo = contact_repository
        self._address_repo = address_repository
        self._document_repo = document_repository
        self._contact_guard = PrincipalUniquenessGuard(contact_repository, "contact")
        self._address_guard = PrincipalUniquenessGuard(address_repository, "address")
        self._document_guard = PrincipalUniquenessGuard(
            document_repository, "document"
        )

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    def add_contact(self, customer: Customer, dto: CreateContactDTO) -> ContactMethod:
        self._contact_guard.authorize(customer.pk, NO_GROUPING, None, dto.is_principal)
        contact = ContactMethod(
            customer=customer,
            contact_type=dto.contact_type,
            value=dto.value,
            notes=dto.notes,
            is_principal=dto.is_principal,
        )
        return self._save(self._contact_repo, contact, "contact", NO_GROUPING)

    def update_contact(self, customer: Customer, dto: UpdateContactDTO) -> ContactMethod:
        contact = self._contact_repo.get_by_id(dto.id)
        if contact is None:
            raise ContactNotFound(dto.id)
        self._check_owner(customer, contact, "Contact")
        self._contact_guard.authorize(
            customer.pk, NO_GROUPING, contact.pk, dto.is_principal
        )

        _apply(contact, dto, CONTACT_FIELDS)
        if dto.value is not None:
            contact.change_value(dto.value)
        if dto.is_principal is not None:
            contact.is_principal = dto.is_principal
        return self._save(self._contact_repo, contact, "contact", NO_GROUPING)

    # ------------------------------------------------------------------
    # Addresses
    # ------------------------------------------------------------------

    def add_address(self, customer: Customer, dto: CreateAddressDTO) -> PostalAddress:
        self._address_guard.authorize(
            customer.pk, dto.address_type, None, dto.is_principal
        )
        address = PostalAddress(
            customer=customer,
            address_type=dto.address_type,
            postal_code=dto.postal_code,
            street=dto.street,
            number=dto.number,
            complement=dto.complement,
            district=dto.district,
            city=dto.city,
            state=dto.state,
            country=dto.country,
            is_principal=dto.is_principal,
        )
        return self._save(self._address_repo, address, "address", dto.address_type)

    def update_address(self, customer: Customer, dto: UpdateAddressDTO) -> PostalAddress:
        address = self._address_repo.get_by_id(dto.id)
        if address is None:
            raise AddressNotFound(dto.id)
        self._check_owner(customer, address, "Address")

        address_type = dto.address_type or address.address_type
        self._address_guard.authorize(
            customer.pk, address_type, address.pk, dto.is_principal
        )

        _apply(address, dto, ADDRESS_FIELDS)
        if dto.is_principal is not None:
            address.is_principal = dto.is_principal
        return self._save(self._address_repo, address, "address", address_type)

    # ------------------------------------------------------------------
    # Identity documents
    # ------------------------------------------------------------------

    def add_document(
        self, customer: Customer, dto: CreateIdentityDocumentDTO
    ) -> IdentityDocument:
        self._validate_expiry(dto.issued_on, dto.expires_on)
        self._document_guard.authorize(
            customer.pk, NO_GROUPING, None, dto.is_principal
        )
        document = IdentityDocument(
            customer=customer,
            document_type=dto.document_type,
            number=dto.number,
            issuing_authority=dto.issuing_authority,
            issued_on=dto.issued_on,
            expires_on=dto.expires_on,
            notes=dto.notes,
            is_principal=dto.is_principal,
        )
        return self._save(self._document_repo, document, "document", NO_GROUPING)

    def update_document(
        self, customer: Customer, dto: UpdateIdentityDocumentDTO
    ) -> IdentityDocument:
        document = self._document_repo.get_by_id(dto.id)
        if document is None:
            raise IdentityDocumentNotFound(dto.id)
        self._check_owner(customer, document, "Identity document")

        issued_on = dto.issued_on if dto.issued_on is not None else document.issued_on
        if dto.expires_on is not None:
            self._validate_expiry(issued_on, dto.expires_on)
        self._document_guard.authorize(
            customer.pk, NO_GROUPING, document.pk, dto.is_principal
        )

        _apply(document, dto, DOCUMENT_FIELDS)
        if dto.is_principal is not None:
            document.is_principal = dto.is_principal
        return self._save(self._document_repo, document, "document", NO_GROUPING)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_owner(customer: Customer, record: Any, label: str) -> None:
        if record.customer_id != customer.pk:
            logger.warning(
                "customer_record.not_owned",
                record=label,
                customer_id=str(customer.public_id),
            )
            raise RecordNotOwned(label)

    @staticmethod
    def _validate_expiry(issued_on: Optional[date], expires_on: Optional[date]) -> None:
        if expires_on is None:
            return
        max_years = getattr(
            settings, "CUSTOMER_DOCUMENT_MAX_EXPIRY_YEARS", DEFAULT_MAX_EXPIRY_YEARS
        )
        if expires_on > _add_years(timezone.localdate(), max_years):
            raise InvalidExpiryDate(
                f"Expiry date cannot be more than {max_years} years in the future."
            )
        if issued_on is not None and expires_on < issued_on:
            raise InvalidExpiryDate("Expiry date cannot be before the issue date.")

    @staticmethod
    def _save(repository: Any, record: Any, scope: str, group_key: str) -> Any:
        try:
            return repository.save(record)
        except IntegrityError as exc:
            if not _is_principal_violation(record, exc):
                raise
            # Concurrent promotion slipped past the guard; the partial
            # unique index rejected it.
            logger.warning("principal.constraint_violation", scope=scope)
            group = None if group_key == NO_GROUPING else str(group_key)
            raise DuplicatePrincipal(scope, group) from exc


class CustomerService:
    """Application service for Customer use-cases.

    Receives repositories via constructor injection (DIP):

    - ``customer_repository``: kind-agnostic view (lifecycle, referrers).
    - ``individual_repository`` / ``company_repository``: per-kind tiers.
    - ``records``: owned-record operations (contacts, addresses, documents).
    """

    def __init__(
        self,
        customer_repository: ICustomerRepository,
        individual_repository: IIndividualCustomerRepository,
        company_repository: ICompanyCustomerRepository,
        records: CustomerRecordsService,
    ) -> None:
        self._customer_repo = customer_repository
        self._individual_repo = individual_repository
        self._company_repo = company_repository
        self._records = records

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_individual(self, dto: CreateIndividualCustomerDTO) -> IndividualCustomer:
        """Register an individual.

        Raises:
            InvalidDocument: the CPF fails the checksum.
            DuplicateDocument: an active customer already holds the CPF.
            ReferrerNotFound: ``referrer_id`` does not resolve.
        """
        customer = IndividualCustomer(
            document=tax_ids.clean(dto.cpf),
            document_type=DocumentType.CPF,
            first_name=dto.first_name,
            last_name=dto.last_name,
        )
        _apply(customer, dto, INDIVIDUAL_PROFILE_FIELDS + SHARED_FIELDS)
        return self._register(
            customer,
            validator=tax_ids.is_valid_cpf,
            exists_active=self._individual_repo.exists_active_by_cpf,
            save=self._individual_repo.save,
            referrer_id=dto.referrer_id,
        )

    @transaction.atomic
    def create_company(self, dto: CreateCompanyCustomerDTO) -> CompanyCustomer:
        """Register a company.

        Raises:
            InvalidDocument: the CNPJ fails the checksum.
            DuplicateDocument: an active customer already holds the CNPJ.
            ReferrerNotFound: ``referrer_id`` does not resolve.
        """
        customer = CompanyCustomer(
            document=tax_ids.clean(dto.cnpj),
            document_type=DocumentType.CNPJ,
            legal_name=dto.legal_name,
        )
        _apply(customer, dto, COMPANY_PROFILE_FIELDS + SHARED_FIELDS)
        return self._register(
            customer,
            validator=tax_ids.is_valid_cnpj,
            exists_active=self._company_repo.exists_active_by_cnpj,
            save=self._company_repo.save,
            referrer_id=dto.referrer_id,
        )

    def _register(
        self,
        customer: C,
        validator: Callable[[Optional[str]], bool],
        exists_active: Callable[[str], bool],
        save: Callable[[C], C],
        referrer_id: Optional[UUID],
    ) -> C:
        document_type = customer.document_type
        log = logger.bind(
            document_type=document_type,
            document=_mask(document_type, customer.document),
            email=mask_email(customer.email),
        )

        if not validator(customer.document):
            log.warning("customer.invalid_document")
            raise InvalidDocument(document_type)

        if exists_active(customer.document):
            log.warning("customer.duplicate_document")
            raise DuplicateDocument(document_type)

        if referrer_id is not None:
            customer.referrer = self._resolve_referrer(referrer_id)
            customer.referred_at = timezone.now()
            customer.referral_rewarded = False

        try:
            customer = save(customer)
        except IntegrityError as exc:
            # Lost a race against a concurrent registration.
            log.warning("customer.duplicate_document", backstop=True)
            raise DuplicateDocument(document_type) from exc

        log.info("customer.created", customer_id=str(customer.public_id))
        return customer

    def _resolve_referrer(self, referrer_id: UUID) -> Customer:
        referrer = self._customer_repo.find_by_public_id(referrer_id)
        if referrer is None:
            logger.warning("customer.referrer_not_found", referrer_id=str(referrer_id))
            raise ReferrerNotFound(referrer_id)
        return referrer

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_individual(self, public_id: UUID) -> IndividualCustomer:
        customer = self._individual_repo.find_active_by_public_id(public_id)
        return self._require(customer, public_id)

    def get_company(self, public_id: UUID) -> CompanyCustomer:
        customer = self._company_repo.find_active_by_public_id(public_id)
        return self._require(customer, public_id)

    def get_individual_by_cpf(self, cpf: str) -> IndividualCustomer:
        """Active tier look-up; accepts formatted input."""
        digits = tax_ids.clean(cpf) or ""
        customer = self._individual_repo.find_active_by_cpf(digits)
        return self._require(customer, mask_cpf(digits))

    def get_company_by_cnpj(self, cnpj: str) -> CompanyCustomer:
        """Active tier look-up; accepts formatted input."""
        digits = tax_ids.clean(cnpj) or ""
        customer = self._company_repo.find_active_by_cnpj(digits)
        return self._require(customer, mask_cnpj(digits))

    def list_individuals(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[IndividualCustomer]:
        return self._individual_repo.list(filters)

    def list_companies(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[CompanyCustomer]:
        return self._company_repo.list(filters)

    @staticmethod
    def _require(customer: Optional[C], key: object) -> C:
        if customer is None:
            raise CustomerNotFound(key)
        return customer

    # ------------------------------------------------------------------
    # Aggregate update
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_individual(
        self, public_id: UUID, dto: UpdateIndividualCustomerDTO
    ) -> IndividualCustomer:
        """Selective update of an individual and its owned records.

        Raises:
            CustomerNotFound: no active individual with this public ID.
            ImmutableField: ``cpf`` or a stored ``birth_date`` would change.
        """
        customer = self.get_individual(public_id)

        if dto.cpf is not None and dto.cpf != customer.document:
            raise ImmutableField("cpf", "the CPF identifies the customer")
        if (
            dto.birth_date is not None
            and customer.birth_date is not None
            and dto.birth_date != customer.birth_date
        ):
            raise ImmutableField("birth_date", "birth date cannot be corrected here")

        _apply(customer, dto, INDIVIDUAL_PROFILE_FIELDS + SHARED_FIELDS)
        return self._update(customer, dto, self._individual_repo.save)

    @transaction.atomic
    def update_company(
        self, public_id: UUID, dto: UpdateCompanyCustomerDTO
    ) -> CompanyCustomer:
        """Selective update of a company and its owned records.

        Raises:
            CustomerNotFound: no active company with this public ID.
            ImmutableField: ``cnpj`` would change.
        """
        customer = self.get_company(public_id)

        if dto.cnpj is not None and dto.cnpj != customer.document:
            raise ImmutableField("cnpj", "the CNPJ identifies the customer")

        _apply(customer, dto, COMPANY_PROFILE_FIELDS + SHARED_FIELDS)
        return self._update(customer, dto, self._company_repo.save)

    def _update(self, customer: C, dto: Any, save: Callable[[C], C]) -> C:
        for contact in dto.contacts:
            self._records.update_contact(customer, contact)
        for address in dto.addresses:
            self._records.update_address(customer, address)
        for document in dto.documents:
            self._records.update_document(customer, document)

        customer = save(customer)
        logger.info(
            "customer.updated",
            customer_id=str(customer.public_id),
            contacts=len(dto.contacts),
            addresses=len(dto.addresses),
            documents=len(dto.documents),
        )
        return customer

    # ------------------------------------------------------------------
    # Owned records
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_contact(self, public_id: UUID, dto: CreateContactDTO) -> ContactMethod:
        return self._records.add_contact(self._active_customer(public_id), dto)

    @transaction.atomic
    def add_address(self, public_id: UUID, dto: CreateAddressDTO) -> PostalAddress:
        return self._records.add_address(self._active_customer(public_id), dto)

    @transaction.atomic
    def add_document(
        self, public_id: UUID, dto: CreateIdentityDocumentDTO
    ) -> IdentityDocument:
        return self._records.add_document(self._active_customer(public_id), dto)

    def _active_customer(self, public_id: UUID) -> Customer:
        customer = self._customer_repo.find_active_by_public_id(public_id)
        return self._require(customer, public_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @transaction.atomic
    def delete_customer(
        self, public_id: UUID, reason: Optional[str] = None, actor: Optional[str] = None
    ) -> None:
        """Soft-delete (and block) a customer (RN-CLI-004).

        Raises:
            CustomerNotFound: the public ID never existed.
            CustomerAlreadyDeleted: the customer is already soft-deleted.
        """
        customer = self._customer_repo.find_by_public_id(public_id)
        if customer is None:
            raise CustomerNotFound(public_id)
        if customer.is_deleted:
            raise CustomerAlreadyDeleted(public_id)

        customer.soft_delete(reason=reason, actor=actor)
        logger.info(
            "customer.soft_deleted",
            customer_id=str(public_id),
            actor=actor,
        )

    @transaction.atomic
    def restore_customer(self, public_id: UUID, actor: Optional[str] = None) -> Customer:
        """Undo a soft delete.  Restoring an active customer is a no-op.

        Raises:
            CustomerNotFound: the public ID never existed.
            DuplicateDocument: another active customer registered the same
                national ID while this one was deleted.
        """
        customer = self._customer_repo.find_by_public_id(public_id)
        if customer is None:
            raise CustomerNotFound(public_id)
        if not customer.is_deleted:
            return customer

        if self._customer_repo.exists_active_by_document(
            customer.document_type, customer.document
        ):
            logger.warning(
                "customer.restore_conflict",
                customer_id=str(public_id),
                document=_mask(customer.document_type, customer.document),
            )
            raise DuplicateDocument(customer.document_type)

        try:
            with transaction.atomic():
                customer.restore()
        except IntegrityError as exc:
            raise DuplicateDocument(customer.document_type) from exc

        logger.info("customer.restored", customer_id=str(public_id), actor=actor)
        return customer

    @transaction.atomic
    def block_customer(
        self, public_id: UUID, reason: str, actor: Optional[str] = None
    ) -> Customer:
        """Raises ``CustomerAlreadyBlocked`` if the customer is blocked."""
        customer = self._active_customer(public_id)
        if customer.blocked:
            raise CustomerAlreadyBlocked(public_id)
        customer.block(reason, actor)
        logger.info("customer.blocked", customer_id=str(public_id), actor=actor)
        return customer

    @transaction.atomic
    def unblock_customer(self, public_id: UUID) -> Customer:
        customer = self._active_customer(public_id)
        customer.unblock()
        logger.info("customer.unblocked", customer_id=str(public_id))
        return customer
