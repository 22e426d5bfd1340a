import django_filters
from django.db.models import Q

from modules.customers.constants import CustomerCategory
from modules.customers.models import CompanyCustomer, IndividualCustomer


class IndividualCustomerFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(method="filter_name")
    email = django_filters.CharFilter(field_name="email", lookup_expr="iexact")
    category = django_filters.ChoiceFilter(choices=CustomerCategory.choices)
    blocked = django_filters.BooleanFilter(field_name="blocked")

    class Meta:
        model = IndividualCustomer
        fields = ["name", "email", "category", "blocked"]

    def filter_name(self, queryset, name, value):
        return queryset.filter(
            Q(first_name__icontains=value)
            | Q(middle_name__icontains=value)
            | Q(last_name__icontains=value)
        )


class CompanyCustomerFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(method="filter_name")
    email = django_filters.CharFilter(field_name="email", lookup_expr="iexact")
    category = django_filters.ChoiceFilter(choices=CustomerCategory.choices)
    blocked = django_filters.BooleanFilter(field_name="blocked")

    class Meta:
        model = CompanyCustomer
        fields = ["name", "email", "category", "blocked"]

    def filter_name(self, queryset, name, value):
        return queryset.filter(
            Q(legal_name__icontains=value) | Q(trade_name__icontains=value)
        )
