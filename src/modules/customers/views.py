"""Customer API views.

Exposes ``CustomerService`` via HTTP using DRF ViewSets.  Customers are
addressed by their public ID; the internal key is never accepted nor
returned.  Domain exceptions are translated into HTTP status codes by a
single mapping; the view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Any, Dict, Type

import structlog
from django.core.exceptions import ValidationError as DjangoValidationError
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.customers.dtos import (
    BlockCustomerDTO,
    CreateAddressDTO,
    CreateCompanyCustomerDTO,
    CreateContactDTO,
    CreateIdentityDocumentDTO,
    CreateIndividualCustomerDTO,
    DeleteCustomerDTO,
    UpdateCompanyCustomerDTO,
    UpdateIndividualCustomerDTO,
)
from modules.customers.exceptions import (
    AddressNotFound,
    ContactNotFound,
    CustomerAlreadyBlocked,
    CustomerAlreadyDeleted,
    CustomerDomainError,
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
from modules.customers.filters import CompanyCustomerFilter, IndividualCustomerFilter
from modules.customers.models import CompanyCustomer, IndividualCustomer
from modules.customers.repositories import (
    AddressDjangoRepository,
    CompanyCustomerDjangoRepository,
    ContactDjangoRepository,
    CustomerDjangoRepository,
    IdentityDocumentDjangoRepository,
    IndividualCustomerDjangoRepository,
)
from modules.customers.serializers import (
    CompanyCustomerLookupSerializer,
    CompanyCustomerSerializer,
    ContactMethodSerializer,
    IdentityDocumentSerializer,
    IndividualCustomerLookupSerializer,
    IndividualCustomerSerializer,
    PostalAddressSerializer,
)
from modules.customers.services import CustomerRecordsService, CustomerService

logger = structlog.get_logger(__name__)

STATUS_BY_ERROR: Dict[Type[CustomerDomainError], int] = {
    InvalidDocument: status.HTTP_400_BAD_REQUEST,
    ImmutableField: status.HTTP_400_BAD_REQUEST,
    RecordNotOwned: status.HTTP_400_BAD_REQUEST,
    InvalidExpiryDate: status.HTTP_400_BAD_REQUEST,
    CustomerNotFound: status.HTTP_404_NOT_FOUND,
    ReferrerNotFound: status.HTTP_404_NOT_FOUND,
    ContactNotFound: status.HTTP_404_NOT_FOUND,
    AddressNotFound: status.HTTP_404_NOT_FOUND,
    IdentityDocumentNotFound: status.HTTP_404_NOT_FOUND,
    DuplicateDocument: status.HTTP_409_CONFLICT,
    CustomerAlreadyDeleted: status.HTTP_409_CONFLICT,
    CustomerAlreadyBlocked: status.HTTP_409_CONFLICT,
    DuplicatePrincipal: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def status_for(exc: CustomerDomainError) -> int:
    for klass in type(exc).__mro__:
        if klass in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[klass]
    return status.HTTP_400_BAD_REQUEST


def build_customer_service() -> CustomerService:
    """Wire the service with its Django repositories (DIP)."""
    return CustomerService(
        customer_repository=CustomerDjangoRepository(),
        individual_repository=IndividualCustomerDjangoRepository(),
        company_repository=CompanyCustomerDjangoRepository(),
        records=CustomerRecordsService(
            contact_repository=ContactDjangoRepository(),
            address_repository=AddressDjangoRepository(),
            document_repository=IdentityDocumentDjangoRepository(),
        ),
    )


class _CustomerViewSet(ListModelMixin, GenericViewSet):
    """Operations shared by individuals and companies.

    Does **not** extend ``ModelViewSet``: every write goes through the
    service/repository layer.  Subclasses provide the model, DTOs and
    the per-kind service calls.
    """

    lookup_field = "public_id"
    lookup_value_regex = "[0-9a-fA-F-]{36}"
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    ordering_fields = ["created_at"]
    ordering = ["-created_at", "-id"]

    model: Type[Any]
    create_dto: Type[BaseModel]
    update_dto: Type[BaseModel]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_customer_service()

    def get_throttles(self) -> list[BaseThrottle]:
        """Define escopos de throttling por ação."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "customer_registration"
        elif self.action in {"list", "retrieve", "by_cpf", "by_cnpj"}:
            throttle_scope = "customer_lookup"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        # Active tier only.
        return (
            self.model.objects.alive()
            .select_related("referrer")
            .prefetch_related("contacts", "addresses", "identity_documents")
        )

    # ------------------------------------------------------------------
    # Error translation
    # ------------------------------------------------------------------

    def handle_exception(self, exc: Exception) -> Response:
        if isinstance(exc, CustomerDomainError):
            code = status_for(exc)
            logger.info(
                "customer.request_rejected",
                error=type(exc).__name__,
                status_code=code,
            )
            return Response({"detail": str(exc)}, status=code)
        if isinstance(exc, PydanticValidationError):
            return Response(
                {
                    "detail": "Invalid request payload.",
                    "errors": exc.errors(include_url=False, include_context=False),
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        return super().handle_exception(exc)

    @staticmethod
    def _actor(request: Request) -> str:
        return request.user.get_username() if request.user else ""

    def _ensure_kind(self, public_id: str | None) -> None:
        # Unfiltered: deleted customers must still reach the service.
        try:
            found = self.model.objects.filter(public_id=public_id).exists()
        except (ValueError, DjangoValidationError):
            found = False
        if not found:
            raise CustomerNotFound(public_id)

    def _respond(self, instance: Any, code: int = status.HTTP_200_OK) -> Response:
        return Response(self.get_serializer(instance).data, status=code)

    # ------------------------------------------------------------------
    # Per-kind hooks
    # ------------------------------------------------------------------

    def _create(self, dto: Any) -> Any:
        raise NotImplementedError

    def _get(self, public_id: str) -> Any:
        raise NotImplementedError

    def _update(self, public_id: str, dto: Any) -> Any:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        dto = self.create_dto.model_validate(request.data)
        return self._respond(self._create(dto), status.HTTP_201_CREATED)

    def retrieve(self, request: Request, public_id: str | None = None) -> Response:
        return self._respond(self._get(public_id))

    def update(self, request: Request, public_id: str | None = None) -> Response:
        """PUT and PATCH: both are selective updates."""
        dto = self.update_dto.model_validate(request.data)
        return self._respond(self._update(public_id, dto))

    def partial_update(self, request: Request, public_id: str | None = None) -> Response:
        return self.update(request, public_id)

    def destroy(self, request: Request, public_id: str | None = None) -> Response:
        self._ensure_kind(public_id)
        dto = DeleteCustomerDTO.model_validate(request.data or {})
        self._service.delete_customer(public_id, dto.reason, self._actor(request))
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def restore(self, request: Request, public_id: str | None = None) -> Response:
        self._ensure_kind(public_id)
        self._service.restore_customer(public_id, self._actor(request))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def block(self, request: Request, public_id: str | None = None) -> Response:
        dto = BlockCustomerDTO.model_validate(request.data)
        self._get(public_id)
        self._service.block_customer(public_id, dto.reason, self._actor(request))
        return self._respond(self._get(public_id))

    @action(detail=True, methods=["post"])
    def unblock(self, request: Request, public_id: str | None = None) -> Response:
        self._get(public_id)
        self._service.unblock_customer(public_id)
        return self._respond(self._get(public_id))

    # ------------------------------------------------------------------
    # Owned records
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def contacts(self, request: Request, public_id: str | None = None) -> Response:
        self._get(public_id)
        dto = CreateContactDTO.model_validate(request.data)
        contact = self._service.add_contact(public_id, dto)
        return Response(
            ContactMethodSerializer(contact).data, status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=["post"])
    def addresses(self, request: Request, public_id: str | None = None) -> Response:
        self._get(public_id)
        dto = CreateAddressDTO.model_validate(request.data)
        address = self._service.add_address(public_id, dto)
        return Response(
            PostalAddressSerializer(address).data, status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=["post"])
    def documents(self, request: Request, public_id: str | None = None) -> Response:
        self._get(public_id)
        dto = CreateIdentityDocumentDTO.model_validate(request.data)
        document = self._service.add_document(public_id, dto)
        return Response(
            IdentityDocumentSerializer(document).data, status=status.HTTP_201_CREATED
        )


class IndividualCustomerViewSet(_CustomerViewSet):
    """``/api/v1/customers/individuals/``"""

    model = IndividualCustomer
    serializer_class = IndividualCustomerSerializer
    filterset_class = IndividualCustomerFilter
    ordering_fields = ["created_at", "first_name", "last_name"]
    create_dto = CreateIndividualCustomerDTO
    update_dto = UpdateIndividualCustomerDTO

    def _create(self, dto: CreateIndividualCustomerDTO) -> IndividualCustomer:
        return self._service.create_individual(dto)

    def _get(self, public_id: str) -> IndividualCustomer:
        return self._service.get_individual(public_id)

    def _update(
        self, public_id: str, dto: UpdateIndividualCustomerDTO
    ) -> IndividualCustomer:
        return self._service.update_individual(public_id, dto)

    @action(detail=False, methods=["get"], url_path=r"by-cpf/(?P<cpf>[0-9.\-]+)")
    def by_cpf(self, request: Request, cpf: str) -> Response:
        customer = self._service.get_individual_by_cpf(cpf)
        return Response(IndividualCustomerLookupSerializer(customer).data)


class CompanyCustomerViewSet(_CustomerViewSet):
    """``/api/v1/customers/companies/``"""

    model = CompanyCustomer
    serializer_class = CompanyCustomerSerializer
    filterset_class = CompanyCustomerFilter
    ordering_fields = ["created_at", "legal_name", "trade_name"]
    create_dto = CreateCompanyCustomerDTO
    update_dto = UpdateCompanyCustomerDTO

    def _create(self, dto: CreateCompanyCustomerDTO) -> CompanyCustomer:
        return self._service.create_company(dto)

    def _get(self, public_id: str) -> CompanyCustomer:
        return self._service.get_company(public_id)

    def _update(self, public_id: str, dto: UpdateCompanyCustomerDTO) -> CompanyCustomer:
        return self._service.update_company(public_id, dto)

    @action(detail=False, methods=["get"], url_path=r"by-cnpj/(?P<cnpj>[0-9./\-]+)")
    def by_cnpj(self, request: Request, cnpj: str) -> Response:
        customer = self._service.get_company_by_cnpj(cnpj)
        return Response(CompanyCustomerLookupSerializer(customer).data)
