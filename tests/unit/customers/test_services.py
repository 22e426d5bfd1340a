"""Unit tests for CustomerService and CustomerRecordsService.

Repositories are MagicMocks; owning customers are real rows (the
lifecycle methods persist through the model).

Covers:
- Registration: invalid checksum, active duplicate, IntegrityError backstop,
  referrer resolution (unfiltered tier).
- Queries through the active tier.
- Immutable national ID / birth date on update.
- Soft delete, restore (conflict, no-op), block / unblock.
- Owned records: principal guard, ownership, expiry window, verified reset.
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest
from django.db import IntegrityError
from django.utils import timezone

from modules.customers.constants import (
    NO_GROUPING,
    AddressType,
    ContactType,
    IdentityDocumentType,
)
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
from modules.customers.exceptions import (
    AddressNotFound,
    ContactNotFound,
    CustomerAlreadyBlocked,
    CustomerAlreadyDeleted,
    CustomerNotFound,
    DuplicateDocument,
    DuplicatePrincipal,
    ImmutableField,
    InvalidDocument,
    InvalidExpiryDate,
    RecordNotOwned,
    ReferrerNotFound,
)
from modules.customers.models import (
    CompanyCustomer,
    ContactMethod,
    IdentityDocument,
    IndividualCustomer,
    PostalAddress,
)
from modules.customers.services import CustomerRecordsService, CustomerService

pytestmark = pytest.mark.unit

VALID_CPF = "52998224725"
OTHER_VALID_CPF = "11144477735"
INVALID_CPF = "52998224700"
VALID_CNPJ = "11222333000181"
INVALID_CNPJ = "11222333000100"


def _repo():
    repo = MagicMock()
    repo.save.side_effect = lambda entity: entity
    repo.exists_other_principal.return_value = False
    return repo


@pytest.fixture()
def customer_repo():
    repo = _repo()
    repo.exists_active_by_document.return_value = False
    return repo


@pytest.fixture()
def individual_repo():
    repo = _repo()
    repo.exists_active_by_cpf.return_value = False
    return repo


@pytest.fixture()
def company_repo():
    repo = _repo()
    repo.exists_active_by_cnpj.return_value = False
    return repo


@pytest.fixture()
def contact_repo():
    return _repo()


@pytest.fixture()
def address_repo():
    return _repo()


@pytest.fixture()
def document_repo():
    return _repo()


@pytest.fixture()
def records(contact_repo, address_repo, document_repo):
    return CustomerRecordsService(
        contact_repository=contact_repo,
        address_repository=address_repo,
        document_repository=document_repo,
    )


@pytest.fixture()
def service(customer_repo, individual_repo, company_repo, records):
    return CustomerService(
        customer_repository=customer_repo,
        individual_repository=individual_repo,
        company_repository=company_repo,
        records=records,
    )


def _individual_dto(**overrides) -> CreateIndividualCustomerDTO:
    data = {
        "cpf": VALID_CPF,
        "first_name": "Maria",
        "last_name": "Silva",
        "email": "maria@example.com",
        "category": "COMPRADOR",
    }
    data.update(overrides)
    return CreateIndividualCustomerDTO(**data)


def _company_dto(**overrides) -> CreateCompanyCustomerDTO:
    data = {"cnpj": VALID_CNPJ, "legal_name": "Mudanças Rápidas Ltda", "category": "PARCEIRO"}
    data.update(overrides)
    return CreateCompanyCustomerDTO(**data)


# ===========================================================================
# Registration
# ===========================================================================


class TestCreateIndividual:
    def test_success(self, service, individual_repo):
        customer = service.create_individual(_individual_dto(cpf="529.982.247-25"))

        assert isinstance(customer, IndividualCustomer)
        assert customer.document == VALID_CPF
        assert customer.document_type == "CPF"
        assert customer.first_name == "Maria"
        assert customer.email == "maria@example.com"
        individual_repo.exists_active_by_cpf.assert_called_once_with(VALID_CPF)
        individual_repo.save.assert_called_once()

    def test_optional_fields_keep_model_defaults(self, service):
        customer = service.create_individual(_individual_dto())

        assert customer.nationality == "Brasileira"
        assert customer.middle_name == ""
        assert customer.referrer is None

    def test_invalid_cpf(self, service, individual_repo):
        with pytest.raises(InvalidDocument) as exc_info:
            service.create_individual(_individual_dto(cpf=INVALID_CPF))

        assert exc_info.value.document_type == "CPF"
        individual_repo.exists_active_by_cpf.assert_not_called()
        individual_repo.save.assert_not_called()

    def test_repeated_digits_are_invalid(self, service):
        with pytest.raises(InvalidDocument):
            service.create_individual(_individual_dto(cpf="111.111.111-11"))

    def test_active_duplicate(self, service, individual_repo):
        individual_repo.exists_active_by_cpf.return_value = True

        with pytest.raises(DuplicateDocument, match="CPF already registered"):
            service.create_individual(_individual_dto())

        individual_repo.save.assert_not_called()

    def test_integrity_error_is_translated(self, service, individual_repo):
        individual_repo.save.side_effect = IntegrityError("customers_active_document_uniq")

        with pytest.raises(DuplicateDocument):
            service.create_individual(_individual_dto())


class TestCreateCompany:
    def test_success(self, service, company_repo):
        customer = service.create_company(
            _company_dto(cnpj="11.222.333/0001-81", representative_cpf=VALID_CPF)
        )

        assert isinstance(customer, CompanyCustomer)
        assert customer.document == VALID_CNPJ
        assert customer.document_type == "CNPJ"
        assert customer.representative_cpf == VALID_CPF
        company_repo.exists_active_by_cnpj.assert_called_once_with(VALID_CNPJ)

    def test_invalid_cnpj(self, service, company_repo):
        with pytest.raises(InvalidDocument, match="CNPJ"):
            service.create_company(_company_dto(cnpj=INVALID_CNPJ))

        company_repo.save.assert_not_called()

    def test_active_duplicate(self, service, company_repo):
        company_repo.exists_active_by_cnpj.return_value = True

        with pytest.raises(DuplicateDocument, match="CNPJ"):
            service.create_company(_company_dto())


class TestReferrer:
    def test_referrer_is_resolved_through_unfiltered_tier(
        self, service, customer_repo, make_company
    ):
        referrer = make_company()
        customer_repo.find_by_public_id.return_value = referrer

        customer = service.create_individual(
            _individual_dto(referrer_id=str(referrer.public_id))
        )

        customer_repo.find_by_public_id.assert_called_once_with(referrer.public_id)
        customer_repo.find_active_by_public_id.assert_not_called()
        assert customer.referrer == referrer
        assert customer.referred_at is not None
        assert customer.referral_rewarded is False

    def test_soft_deleted_referrer_still_resolves(
        self, service, customer_repo, make_company
    ):
        referrer = make_company()
        referrer.soft_delete(reason="closed")
        customer_repo.find_by_public_id.return_value = referrer

        customer = service.create_individual(
            _individual_dto(referrer_id=str(referrer.public_id))
        )

        assert customer.referrer == referrer

    def test_unknown_referrer(self, service, customer_repo, individual_repo):
        customer_repo.find_by_public_id.return_value = None
        missing = uuid.uuid4()

        with pytest.raises(ReferrerNotFound) as exc_info:
            service.create_individual(_individual_dto(referrer_id=str(missing)))

        assert exc_info.value.public_id == missing
        individual_repo.save.assert_not_called()


# ===========================================================================
# Queries
# ===========================================================================


class TestQueries:
    def test_get_individual_uses_active_tier(self, service, individual_repo):
        found = MagicMock()
        individual_repo.find_active_by_public_id.return_value = found
        public_id = uuid.uuid4()

        assert service.get_individual(public_id) is found
        individual_repo.find_active_by_public_id.assert_called_once_with(public_id)

    def test_get_individual_not_found(self, service, individual_repo):
        individual_repo.find_active_by_public_id.return_value = None

        with pytest.raises(CustomerNotFound):
            service.get_individual(uuid.uuid4())

    def test_get_by_cpf_accepts_formatted_input(self, service, individual_repo):
        service.get_individual_by_cpf("529.982.247-25")

        individual_repo.find_active_by_cpf.assert_called_once_with(VALID_CPF)

    def test_get_by_cpf_not_found_masks_the_number(self, service, individual_repo):
        individual_repo.find_active_by_cpf.return_value = None

        with pytest.raises(CustomerNotFound) as exc_info:
            service.get_individual_by_cpf(VALID_CPF)

        assert VALID_CPF not in str(exc_info.value)

    def test_get_company_by_cnpj(self, service, company_repo):
        service.get_company_by_cnpj("11.222.333/0001-81")

        company_repo.find_active_by_cnpj.assert_called_once_with(VALID_CNPJ)

    def test_list_delegates_filters(self, service, individual_repo, company_repo):
        individual_repo.list.return_value = []
        company_repo.list.return_value = []

        assert service.list_individuals({"category": "COMPRADOR"}) == []
        assert service.list_companies() == []
        individual_repo.list.assert_called_once_with({"category": "COMPRADOR"})
        company_repo.list.assert_called_once_with(None)


# ===========================================================================
# Aggregate update
# ===========================================================================


class TestUpdateIndividual:
    @pytest.fixture()
    def stored(self, individual_repo, make_individual):
        customer = make_individual(birth_date=date(1990, 1, 15))
        individual_repo.find_active_by_public_id.return_value = customer
        return customer

    def test_selective_update(self, service, stored):
        updated = service.update_individual(
            stored.public_id, UpdateIndividualCustomerDTO(occupation="Engenheira")
        )

        assert updated.occupation == "Engenheira"
        assert updated.first_name == "Maria"

    def test_resending_same_cpf_is_accepted(self, service, stored):
        service.update_individual(
            stored.public_id, UpdateIndividualCustomerDTO(cpf="529.982.247-25")
        )

    def test_changing_cpf_raises(self, service, stored, individual_repo):
        with pytest.raises(ImmutableField) as exc_info:
            service.update_individual(
                stored.public_id, UpdateIndividualCustomerDTO(cpf=OTHER_VALID_CPF)
            )

        assert exc_info.value.field == "cpf"
        individual_repo.save.assert_not_called()

    def test_changing_stored_birth_date_raises(self, service, stored):
        with pytest.raises(ImmutableField) as exc_info:
            service.update_individual(
                stored.public_id,
                UpdateIndividualCustomerDTO(birth_date=date(1991, 1, 15)),
            )

        assert exc_info.value.field == "birth_date"

    def test_first_birth_date_can_be_set(self, service, individual_repo, make_individual):
        customer = make_individual()
        individual_repo.find_active_by_public_id.return_value = customer

        updated = service.update_individual(
            customer.public_id, UpdateIndividualCustomerDTO(birth_date=date(1990, 1, 15))
        )

        assert updated.birth_date == date(1990, 1, 15)

    def test_missing_customer(self, service, individual_repo):
        individual_repo.find_active_by_public_id.return_value = None

        with pytest.raises(CustomerNotFound):
            service.update_individual(uuid.uuid4(), UpdateIndividualCustomerDTO())

    def test_nested_contacts_are_forwarded(self, service, stored, contact_repo):
        contact = ContactMethod(
            pk=5, customer=stored, contact_type=ContactType.CELL, value="11999990000"
        )
        contact_repo.get_by_id.return_value = contact

        service.update_individual(
            stored.public_id,
            UpdateIndividualCustomerDTO(contacts=[{"id": 5, "value": "11988880000"}]),
        )

        contact_repo.get_by_id.assert_called_once_with(5)
        assert contact.value == "11988880000"


class TestUpdateCompany:
    def test_changing_cnpj_raises(self, service, company_repo, make_company):
        customer = make_company()
        company_repo.find_active_by_public_id.return_value = customer

        with pytest.raises(ImmutableField) as exc_info:
            service.update_company(
                customer.public_id, UpdateCompanyCustomerDTO(cnpj="11444777000161")
            )

        assert exc_info.value.field == "cnpj"

    def test_trade_name_update(self, service, company_repo, make_company):
        customer = make_company()
        company_repo.find_active_by_public_id.return_value = customer

        updated = service.update_company(
            customer.public_id, UpdateCompanyCustomerDTO(trade_name="Nova Marca")
        )

        assert updated.display_name == "Nova Marca"


# ===========================================================================
# Lifecycle
# ===========================================================================


class TestDeleteCustomer:
    def test_soft_deletes_and_blocks(self, service, customer_repo, make_individual):
        customer = make_individual()
        customer_repo.find_by_public_id.return_value = customer

        service.delete_customer(customer.public_id, reason="duplicate", actor="operator")

        customer.refresh_from_db()
        assert customer.is_deleted is True
        assert customer.deletion_reason == "duplicate"
        assert customer.deleted_by == "operator"
        assert customer.blocked is True
        assert customer.block_reason.endswith("duplicate")

    def test_unknown_id(self, service, customer_repo):
        customer_repo.find_by_public_id.return_value = None

        with pytest.raises(CustomerNotFound):
            service.delete_customer(uuid.uuid4())

    def test_second_delete_raises(self, service, customer_repo, make_individual):
        customer = make_individual()
        customer.soft_delete()
        customer_repo.find_by_public_id.return_value = customer

        with pytest.raises(CustomerAlreadyDeleted):
            service.delete_customer(customer.public_id)


class TestRestoreCustomer:
    def test_restores_and_unblocks(self, service, customer_repo, make_individual):
        customer = make_individual()
        customer.soft_delete(reason="mistake")
        customer_repo.find_by_public_id.return_value = customer

        restored = service.restore_customer(customer.public_id)

        restored.refresh_from_db()
        assert restored.is_deleted is False
        assert restored.blocked is False
        customer_repo.exists_active_by_document.assert_called_once_with("CPF", VALID_CPF)

    def test_restoring_active_customer_is_noop(
        self, service, customer_repo, make_individual
    ):
        customer = make_individual()
        customer_repo.find_by_public_id.return_value = customer

        assert service.restore_customer(customer.public_id) is customer
        customer_repo.exists_active_by_document.assert_not_called()

    def test_conflict_with_new_registration(
        self, service, customer_repo, make_individual
    ):
        customer = make_individual()
        customer.soft_delete()
        customer_repo.find_by_public_id.return_value = customer
        customer_repo.exists_active_by_document.return_value = True

        with pytest.raises(DuplicateDocument):
            service.restore_customer(customer.public_id)

        customer.refresh_from_db()
        assert customer.is_deleted is True

    def test_constraint_backstop(self, service, customer_repo, make_individual):
        old = make_individual()
        old.soft_delete()
        make_individual()  # same CPF, active
        customer_repo.find_by_public_id.return_value = old

        # The pre-check is mocked to miss the conflict; the index catches it.
        with pytest.raises(DuplicateDocument):
            service.restore_customer(old.public_id)

    def test_unknown_id(self, service, customer_repo):
        customer_repo.find_by_public_id.return_value = None

        with pytest.raises(CustomerNotFound):
            service.restore_customer(uuid.uuid4())


class TestBlocking:
    def test_block(self, service, customer_repo, make_individual):
        customer = make_individual()
        customer_repo.find_active_by_public_id.return_value = customer

        service.block_customer(customer.public_id, "chargeback", actor="operator")

        customer.refresh_from_db()
        assert customer.blocked is True
        assert customer.block_reason == "chargeback"
        assert customer.blocked_by == "operator"

    def test_block_twice_raises(self, service, customer_repo, make_individual):
        customer = make_individual()
        customer.block("first")
        customer_repo.find_active_by_public_id.return_value = customer

        with pytest.raises(CustomerAlreadyBlocked):
            service.block_customer(customer.public_id, "second")

    def test_unblock(self, service, customer_repo, make_individual):
        customer = make_individual()
        customer.block("first")
        customer_repo.find_active_by_public_id.return_value = customer

        service.unblock_customer(customer.public_id)

        customer.refresh_from_db()
        assert customer.blocked is False
        assert customer.block_reason == ""

    def test_deleted_customer_cannot_be_blocked(self, service, customer_repo):
        customer_repo.find_active_by_public_id.return_value = None

        with pytest.raises(CustomerNotFound):
            service.block_customer(uuid.uuid4(), "reason")


# ===========================================================================
# Owned records
# ===========================================================================


@pytest.fixture()
def owner(make_individual):
    return make_individual()


class TestContacts:
    def test_add_through_customer_service(self, service, customer_repo, contact_repo, owner):
        customer_repo.find_active_by_public_id.return_value = owner

        contact = service.add_contact(
            owner.public_id,
            CreateContactDTO(contact_type="CELULAR", value="11999990000", is_principal=True),
        )

        assert contact.customer == owner
        assert contact.is_principal is True
        contact_repo.exists_other_principal.assert_called_once_with(
            owner.pk, NO_GROUPING, None
        )

    def test_add_to_missing_customer(self, service, customer_repo):
        customer_repo.find_active_by_public_id.return_value = None

        with pytest.raises(CustomerNotFound):
            service.add_contact(
                uuid.uuid4(), CreateContactDTO(contact_type="EMAIL", value="a@b.com")
            )

    def test_second_principal_rejected(self, records, contact_repo, owner):
        contact_repo.exists_other_principal.return_value = True

        with pytest.raises(DuplicatePrincipal) as exc_info:
            records.add_contact(
                owner,
                CreateContactDTO(contact_type="CELULAR", value="1", is_principal=True),
            )

        assert exc_info.value.scope == "contact"
        contact_repo.save.assert_not_called()

    def test_integrity_error_is_translated(self, records, contact_repo, owner):
        contact_repo.save.side_effect = IntegrityError("contacts_one_principal_per_customer")

        with pytest.raises(DuplicatePrincipal):
            records.add_contact(
                owner,
                CreateContactDTO(contact_type="CELULAR", value="1", is_principal=True),
            )

    @pytest.mark.parametrize(
        "message",
        [
            "NOT NULL constraint failed: customer_contacts.value",
            "FOREIGN KEY constraint failed",
            'insert or update on table "customer_contacts" violates foreign key constraint',
        ],
    )
    def test_other_integrity_errors_propagate(self, records, contact_repo, owner, message):
        contact_repo.save.side_effect = IntegrityError(message)

        with pytest.raises(IntegrityError):
            records.add_contact(
                owner,
                CreateContactDTO(contact_type="CELULAR", value="1", is_principal=True),
            )

    def test_unique_error_on_non_principal_propagates(self, records, contact_repo, owner):
        contact_repo.save.side_effect = IntegrityError(
            "UNIQUE constraint failed: customer_contacts.customer_id"
        )

        with pytest.raises(IntegrityError):
            records.add_contact(
                owner, CreateContactDTO(contact_type="CELULAR", value="1")
            )

    def test_postgres_constraint_name_is_translated(self, records, contact_repo, owner):
        contact_repo.save.side_effect = IntegrityError(
            'duplicate key value violates unique constraint '
            '"contacts_one_principal_per_customer"'
        )

        with pytest.raises(DuplicatePrincipal):
            records.add_contact(
                owner,
                CreateContactDTO(contact_type="CELULAR", value="1", is_principal=True),
            )

    def test_update_missing(self, records, contact_repo, owner):
        contact_repo.get_by_id.return_value = None

        with pytest.raises(ContactNotFound):
            records.update_contact(owner, UpdateContactDTO(id=99))

    def test_update_foreign_contact(self, records, contact_repo, owner, make_individual):
        stranger = make_individual(document=OTHER_VALID_CPF)
        contact_repo.get_by_id.return_value = ContactMethod(
            pk=1, customer=stranger, contact_type=ContactType.CELL, value="1"
        )

        with pytest.raises(RecordNotOwned):
            records.update_contact(owner, UpdateContactDTO(id=1, value="2"))

        contact_repo.save.assert_not_called()

    def test_changed_value_resets_verification(self, records, contact_repo, owner):
        contact = ContactMethod(
            pk=1, customer=owner, contact_type=ContactType.CELL, value="1", verified=True
        )
        contact_repo.get_by_id.return_value = contact

        records.update_contact(owner, UpdateContactDTO(id=1, value="2"))

        assert contact.value == "2"
        assert contact.verified is False

    def test_same_value_keeps_verification(self, records, contact_repo, owner):
        contact = ContactMethod(
            pk=1, customer=owner, contact_type=ContactType.CELL, value="1", verified=True
        )
        contact_repo.get_by_id.return_value = contact

        records.update_contact(owner, UpdateContactDTO(id=1, value="1"))

        assert contact.verified is True

    def test_promotion_excludes_itself(self, records, contact_repo, owner):
        contact_repo.get_by_id.return_value = ContactMethod(
            pk=4, customer=owner, contact_type=ContactType.CELL, value="1"
        )

        records.update_contact(owner, UpdateContactDTO(id=4, is_principal=True))

        contact_repo.exists_other_principal.assert_called_once_with(owner.pk, NO_GROUPING, 4)


class TestAddresses:
    def _dto(self, **overrides):
        data = {
            "address_type": "RESIDENCIAL",
            "postal_code": "01310-100",
            "street": "Avenida Paulista",
            "district": "Bela Vista",
            "city": "São Paulo",
            "state": "SP",
            "is_principal": True,
        }
        data.update(overrides)
        return CreateAddressDTO(**data)

    def test_guard_is_scoped_by_address_type(self, records, address_repo, owner):
        records.add_address(owner, self._dto(address_type="ENTREGA"))

        address_repo.exists_other_principal.assert_called_once_with(
            owner.pk, AddressType.DELIVERY, None
        )

    def test_conflict_names_the_type(self, records, address_repo, owner):
        address_repo.exists_other_principal.return_value = True

        with pytest.raises(DuplicatePrincipal) as exc_info:
            records.add_address(owner, self._dto())

        assert exc_info.value.group == "RESIDENCIAL"

    def test_update_uses_stored_type_when_absent(self, records, address_repo, owner):
        address_repo.get_by_id.return_value = PostalAddress(
            pk=2,
            customer=owner,
            address_type=AddressType.BILLING,
            postal_code="01310-100",
            street="Rua A",
            district="Centro",
            city="São Paulo",
            state="SP",
        )

        records.update_address(owner, UpdateAddressDTO(id=2, is_principal=True))

        address_repo.exists_other_principal.assert_called_once_with(
            owner.pk, AddressType.BILLING, 2
        )

    def test_update_missing(self, records, address_repo, owner):
        address_repo.get_by_id.return_value = None

        with pytest.raises(AddressNotFound):
            records.update_address(owner, UpdateAddressDTO(id=1))


class TestIdentityDocuments:
    def _dto(self, **overrides):
        data = {"document_type": "RG", "number": "12.345.678-9"}
        data.update(overrides)
        return CreateIdentityDocumentDTO(**data)

    def test_add(self, records, owner):
        document = records.add_document(owner, self._dto())

        assert isinstance(document, IdentityDocument)
        assert document.document_type == IdentityDocumentType.RG

    def test_expiry_before_issue_rejected(self, records, owner):
        with pytest.raises(InvalidExpiryDate, match="before the issue date"):
            records.add_document(
                owner,
                self._dto(issued_on=date(2020, 1, 1), expires_on=date(2019, 1, 1)),
            )

    def test_expiry_too_far_ahead_rejected(self, records, owner):
        too_far = timezone.localdate() + timedelta(days=366 * 51)

        with pytest.raises(InvalidExpiryDate, match="50 years"):
            records.add_document(owner, self._dto(expires_on=too_far))

    def test_expiry_window_is_configurable(self, records, owner, settings):
        settings.CUSTOMER_DOCUMENT_MAX_EXPIRY_YEARS = 10

        with pytest.raises(InvalidExpiryDate, match="10 years"):
            records.add_document(
                owner, self._dto(expires_on=timezone.localdate() + timedelta(days=366 * 11))
            )

    def test_update_checks_expiry_against_stored_issue_date(
        self, records, document_repo, owner
    ):
        document_repo.get_by_id.return_value = IdentityDocument(
            pk=3,
            customer=owner,
            document_type=IdentityDocumentType.CNH,
            number="987",
            issued_on=date(2022, 5, 1),
        )

        with pytest.raises(InvalidExpiryDate):
            records.update_document(
                owner, UpdateIdentityDocumentDTO(id=3, expires_on=date(2022, 4, 30))
            )

    def test_second_principal_rejected(self, records, document_repo, owner):
        document_repo.exists_other_principal.return_value = True

        with pytest.raises(DuplicatePrincipal) as exc_info:
            records.add_document(owner, self._dto(is_principal=True))

        assert exc_info.value.scope == "document"
