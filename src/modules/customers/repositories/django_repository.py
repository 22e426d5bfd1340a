"""Django ORM implementations of the customer repositories.

Error handling follows the Null Object pattern: look-ups return ``None``
(or ``False``) for missing rows and malformed keys; the Service Layer
decides how to translate a missing entity into a domain exception.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction

from modules.core.repositories.django_repository import SoftDeleteDjangoRepository
from modules.customers.models import (
    CompanyCustomer,
    ContactMethod,
    Customer,
    IdentityDocument,
    IndividualCustomer,
    PostalAddress,
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


class CustomerDjangoRepository(SoftDeleteDjangoRepository[Customer], ICustomerRepository):
    """Kind-agnostic customer repository (lifecycle operations, referrers)."""

    model = Customer

    @transaction.atomic
    def save(self, entity: Customer) -> Customer:
        entity.save()
        logger.info("customer.saved", customer_id=str(entity.public_id))
        return entity

    def exists_active_by_document(self, document_type: str, document: str) -> bool:
        return self._exists(True, document_type=document_type, document=document)


class _ConcreteCustomerRepository(SoftDeleteDjangoRepository):
    """``get_by_id`` / ``list`` / ``save`` shared by individuals and companies."""

    def get_by_id(self, id: int) -> Optional[Any]:
        try:
            return self.model.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Any]:
        """List active customers with optional Django ORM look-ups.

        Examples of valid filters::

            {"category": "COMPRADOR"}
            {"first_name__icontains": "ana"}
        """
        queryset = self.model.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Any) -> Any:
        """Persist inside a savepoint so an ``IntegrityError`` leaves the
        caller's transaction usable."""
        is_new = entity._state.adding
        entity.save()
        logger.info(
            "customer.saved",
            customer_id=str(entity.public_id),
            kind=entity.document_type,
            is_new=is_new,
        )
        return entity


class IndividualCustomerDjangoRepository(
    _ConcreteCustomerRepository, IIndividualCustomerRepository
):
    model = IndividualCustomer

    def find_by_cpf(self, cpf: str) -> Optional[IndividualCustomer]:
        return self._find(False, document=cpf)

    def exists_by_cpf(self, cpf: str) -> bool:
        return self._exists(False, document=cpf)

    def find_active_by_cpf(self, cpf: str) -> Optional[IndividualCustomer]:
        return self._find(True, document=cpf)

    def exists_active_by_cpf(self, cpf: str) -> bool:
        return self._exists(True, document=cpf)


class CompanyCustomerDjangoRepository(
    _ConcreteCustomerRepository, ICompanyCustomerRepository
):
    model = CompanyCustomer

    def find_by_cnpj(self, cnpj: str) -> Optional[CompanyCustomer]:
        return self._find(False, document=cnpj)

    def exists_by_cnpj(self, cnpj: str) -> bool:
        return self._exists(False, document=cnpj)

    def find_active_by_cnpj(self, cnpj: str) -> Optional[CompanyCustomer]:
        return self._find(True, document=cnpj)

    def exists_active_by_cnpj(self, cnpj: str) -> bool:
        return self._exists(True, document=cnpj)


# ---------------------------------------------------------------------------
# Owned records
# ---------------------------------------------------------------------------


class _OwnedRecordDjangoRepository:
    """Shared ORM plumbing for contacts, addresses and identity documents.

    ``group_field`` names the column that partitions the principal scope
    (``None`` when the scope is the whole customer).
    """

    model: Type[models.Model]
    group_field: Optional[str] = None

    def get_by_id(self, id: int) -> Optional[Any]:
        try:
            return self.model.objects.select_related("customer").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Any]:
        queryset = self.model.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def list_by_customer(self, customer_id: int) -> List[Any]:
        return list(self.model.objects.filter(customer_id=customer_id))

    @transaction.atomic
    def save(self, entity: Any) -> Any:
        entity.save()
        logger.info(
            "customer_record.saved",
            record=self.model._meta.model_name,
            record_id=entity.pk,
            customer_id=entity.customer_id,
        )
        return entity

    def exists_other_principal(
        self, owner_id: int, group_key: str, excluded_item_id: Optional[int]
    ) -> bool:
        queryset = self.model.objects.filter(customer_id=owner_id, is_principal=True)
        if self.group_field is not None:
            queryset = queryset.filter(**{self.group_field: group_key})
        if excluded_item_id is not None:
            queryset = queryset.exclude(pk=excluded_item_id)
        return queryset.exists()


class ContactDjangoRepository(_OwnedRecordDjangoRepository, IContactRepository):
    model = ContactMethod


class AddressDjangoRepository(_OwnedRecordDjangoRepository, IAddressRepository):
    model = PostalAddress
    group_field = "address_type"


class IdentityDocumentDjangoRepository(
    _OwnedRecordDjangoRepository, IIdentityDocumentRepository
):
    model = IdentityDocument

