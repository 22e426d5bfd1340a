from __future__ import annotations

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.customers.constants import CustomerCategory, DocumentType
from modules.customers.models import CompanyCustomer, IndividualCustomer

# Known-valid national IDs (hand-checked against the check-digit rules).
VALID_CPF = "52998224725"
OTHER_VALID_CPF = "11144477735"
THIRD_VALID_CPF = "12345678909"
VALID_CNPJ = "11222333000181"
OTHER_VALID_CNPJ = "11444777000161"


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _reset_throttling():
    """Throttle counters live in the default cache; isolate tests."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def user():
    return get_user_model().objects.create_user(
        username="operator", password="testpass123"
    )


@pytest.fixture()
def auth_client(user):
    """APIClient with a force-authenticated Django user."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def make_individual():
    """Persist an individual directly (bypasses the service layer)."""

    def _make(**overrides) -> IndividualCustomer:
        defaults = {
            "document": VALID_CPF,
            "document_type": DocumentType.CPF,
            "first_name": "Maria",
            "last_name": "Silva",
            "email": "maria@example.com",
            "category": CustomerCategory.BUYER,
        }
        defaults.update(overrides)
        customer = IndividualCustomer(**defaults)
        customer.save()
        return customer

    return _make


@pytest.fixture()
def make_company():
    """Persist a company directly (bypasses the service layer)."""

    def _make(**overrides) -> CompanyCustomer:
        defaults = {
            "document": VALID_CNPJ,
            "document_type": DocumentType.CNPJ,
            "legal_name": "Mudanças Rápidas Ltda",
            "trade_name": "Mudança Já",
            "email": "contato@mudancaja.com",
            "category": CustomerCategory.PARTNER,
        }
        defaults.update(overrides)
        customer = CompanyCustomer(**defaults)
        customer.save()
        return customer

    return _make
