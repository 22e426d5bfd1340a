"""Customer repositories package."""

from modules.customers.repositories.django_repository import (
    AddressDjangoRepository,
    CompanyCustomerDjangoRepository,
    ContactDjangoRepository,
    CustomerDjangoRepository,
    IdentityDocumentDjangoRepository,
    IndividualCustomerDjangoRepository,
)
from modules.customers.repositories.interfaces import (
    IAddressRepository,
    ICompanyCustomerRepository,
    IContactRepository,
    ICustomerRepository,
    IIdentityDocumentRepository,
    IIndividualCustomerRepository,
)

__all__ = [
    "AddressDjangoRepository",
    "CompanyCustomerDjangoRepository",
    "ContactDjangoRepository",
    "CustomerDjangoRepository",
    "IAddressRepository",
    "ICompanyCustomerRepository",
    "IContactRepository",
    "ICustomerRepository",
    "IIdentityDocumentRepository",
    "IIndividualCustomerRepository",
    "IdentityDocumentDjangoRepository",
    "IndividualCustomerDjangoRepository",
]
