"""Customer URL configuration.

Individuals and companies are separate resources under ``customers/``.
"""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.customers.views import CompanyCustomerViewSet, IndividualCustomerViewSet

router = DefaultRouter(trailing_slash=True)
router.register(
    "customers/individuals", IndividualCustomerViewSet, basename="individual-customer"
)
router.register(
    "customers/companies", CompanyCustomerViewSet, basename="company-customer"
)

urlpatterns = router.urls
