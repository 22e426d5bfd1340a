"""Customer repository interfaces.

Extend ``IRepository`` / ``ISoftDeleteView`` with the national ID tiers
required by RN-CLI-001 (unique active CPF/CNPJ) and the principal look-up
required by RN-CLI-006 (one principal item per scope).

Every ``*_by_cpf`` / ``*_by_cnpj`` method expects digits only; the
Service Layer sanitises raw input before calling.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional

from modules.core.repositories.interfaces import IRepository, ISoftDeleteView

if TYPE_CHECKING:
    from modules.customers.models import (
        CompanyCustomer,
        ContactMethod,
        Customer,
        IdentityDocument,
        IndividualCustomer,
        PostalAddress,
    )


class ICustomerRepository(ISoftDeleteView["Customer"]):
    """Kind-agnostic view used by lifecycle operations (delete, block ...)."""

    @abstractmethod
    def save(self, entity: Customer) -> Customer:
        """Persist a customer of any kind."""

    @abstractmethod
    def exists_active_by_document(self, document_type: str, document: str) -> bool:
        """Active tier: is this national ID held by a live customer?"""


class IIndividualCustomerRepository(
    IRepository["IndividualCustomer"], ISoftDeleteView["IndividualCustomer"]
):
    """Repository contract for individuals.  ``list`` returns active rows."""

    @abstractmethod
    def find_by_cpf(self, cpf: str) -> Optional[IndividualCustomer]:
        """Unfiltered: any individual registered with this CPF."""

    @abstractmethod
    def exists_by_cpf(self, cpf: str) -> bool:
        """Unfiltered existence check."""

    @abstractmethod
    def find_active_by_cpf(self, cpf: str) -> Optional[IndividualCustomer]:
        """Active tier look-up by CPF."""

    @abstractmethod
    def exists_active_by_cpf(self, cpf: str) -> bool:
        """Active tier existence check; gates registration."""


class ICompanyCustomerRepository(
    IRepository["CompanyCustomer"], ISoftDeleteView["CompanyCustomer"]
):
    """Repository contract for companies.  ``list`` returns active rows."""

    @abstractmethod
    def find_by_cnpj(self, cnpj: str) -> Optional[CompanyCustomer]:
        """Unfiltered: any company registered with this CNPJ."""

    @abstractmethod
    def exists_by_cnpj(self, cnpj: str) -> bool:
        """Unfiltered existence check."""

    @abstractmethod
    def find_active_by_cnpj(self, cnpj: str) -> Optional[CompanyCustomer]:
        """Active tier look-up by CNPJ."""

    @abstractmethod
    def exists_active_by_cnpj(self, cnpj: str) -> bool:
        """Active tier existence check; gates registration."""


class IOwnedRecordRepository(IRepository[Any]):
    """Shared contract for records owned by a customer."""

    @abstractmethod
    def list_by_customer(self, customer_id: int) -> List[Any]:
        """Every record of the customer, principal first."""

    @abstractmethod
    def exists_other_principal(
        self, owner_id: int, group_key: str, excluded_item_id: Optional[int]
    ) -> bool:
        """Is there a principal in ``(owner, group_key)`` other than the excluded item?"""


class IContactRepository(IOwnedRecordRepository):
    """Contacts; principal scope is the whole customer."""

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[ContactMethod]:
        """Retrieve a contact by primary key."""


class IAddressRepository(IOwnedRecordRepository):
    """Addresses; principal scope is ``(customer, address_type)``."""

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[PostalAddress]:
        """Retrieve an address by primary key."""


class IIdentityDocumentRepository(IOwnedRecordRepository):
    """Identity documents; principal scope is the whole customer."""

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[IdentityDocument]:
        """Retrieve an identity document by primary key."""

