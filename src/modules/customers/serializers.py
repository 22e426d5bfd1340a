"""Customer DRF serializers (output only).

Input is parsed into Pydantic DTOs (``dtos.py``) and handed to the
Service Layer; these serializers only render responses.

The internal primary key of a customer never leaves the server: the
``id`` of every customer representation is its ``public_id``.  National
IDs are rendered in their formatted (not masked) form; the representative
CPF of a company is masked (RN-CLI-005).
"""

from __future__ import annotations

from typing import Optional

from rest_framework import serializers

from modules.core.masking import mask_cpf
from modules.customers import tax_ids
from modules.customers.models import (
    CompanyCustomer,
    ContactMethod,
    Customer,
    IdentityDocument,
    IndividualCustomer,
    PostalAddress,
)


class ContactMethodSerializer(serializers.ModelSerializer):
    class Meta:
        model = ContactMethod
        fields = [
            "id",
            "contact_type",
            "value",
            "notes",
            "is_principal",
            "verified",
            "is_active",
            "created_at",
            "updated_at",
        ]


class PostalAddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = PostalAddress
        fields = [
            "id",
            "address_type",
            "postal_code",
            "street",
            "number",
            "complement",
            "district",
            "city",
            "state",
            "country",
            "is_principal",
            "is_active",
            "created_at",
            "updated_at",
        ]


class IdentityDocumentSerializer(serializers.ModelSerializer):
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = IdentityDocument
        fields = [
            "id",
            "document_type",
            "number",
            "issuing_authority",
            "issued_on",
            "expires_on",
            "status",
            "is_expired",
            "notes",
            "is_principal",
            "is_active",
            "created_at",
            "updated_at",
        ]


class _CustomerSerializer(serializers.ModelSerializer):
    """Fields shared by every customer kind."""

    id = serializers.UUIDField(source="public_id", read_only=True)
    referrer_id = serializers.SerializerMethodField()
    contacts = ContactMethodSerializer(many=True, read_only=True)
    addresses = PostalAddressSerializer(many=True, read_only=True)
    documents = IdentityDocumentSerializer(
        source="identity_documents", many=True, read_only=True
    )

    SHARED_FIELDS = [
        "id",
        "email",
        "category",
        "lead_source",
        "utm_source",
        "utm_campaign",
        "utm_medium",
        "referrer_id",
        "referred_at",
        "referral_rewarded",
        "total_purchases",
        "total_sales",
        "total_purchased_amount",
        "total_sold_amount",
        "first_transaction_at",
        "last_transaction_at",
        "blocked",
        "block_reason",
        "blocked_at",
        "is_active",
        "notes",
        "contacts",
        "addresses",
        "documents",
        "created_at",
        "updated_at",
    ]

    def get_referrer_id(self, obj: Customer) -> Optional[str]:
        if obj.referrer_id is None:
            return None
        return str(obj.referrer.public_id)


class IndividualCustomerSerializer(_CustomerSerializer):
    cpf = serializers.SerializerMethodField()
    full_name = serializers.CharField(read_only=True)
    age = serializers.IntegerField(read_only=True)

    class Meta:
        model = IndividualCustomer
        fields = _CustomerSerializer.SHARED_FIELDS + [
            "cpf",
            "first_name",
            "middle_name",
            "last_name",
            "full_name",
            "rg",
            "birth_date",
            "age",
            "gender",
            "mother_name",
            "father_name",
            "marital_status",
            "occupation",
            "nationality",
            "birthplace",
        ]

    def get_cpf(self, obj: IndividualCustomer) -> Optional[str]:
        return tax_ids.format_cpf(obj.document)


class CompanyCustomerSerializer(_CustomerSerializer):
    cnpj = serializers.SerializerMethodField()
    display_name = serializers.CharField(read_only=True)
    representative_cpf = serializers.SerializerMethodField()

    class Meta:
        model = CompanyCustomer
        fields = _CustomerSerializer.SHARED_FIELDS + [
            "cnpj",
            "legal_name",
            "trade_name",
            "display_name",
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
        ]

    def get_cnpj(self, obj: CompanyCustomer) -> Optional[str]:
        return tax_ids.format_cnpj(obj.document)

    def get_representative_cpf(self, obj: CompanyCustomer) -> Optional[str]:
        return mask_cpf(obj.representative_cpf)


# ---------------------------------------------------------------------------
# National-ID lookups: identification only (LGPD data minimisation).
# The full profile is served by the detail route.
# ---------------------------------------------------------------------------


class IndividualCustomerLookupSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="public_id", read_only=True)

    class Meta:
        model = IndividualCustomer
        fields = ["id", "first_name", "last_name"]


class CompanyCustomerLookupSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="public_id", read_only=True)
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = CompanyCustomer
        fields = ["id", "trade_name", "display_name"]
