# api/filters.py
from django.db.models import F
from django_filters import rest_framework as filters
from rest_framework.exceptions import ValidationError
from rest_framework.filters import OrderingFilter

from .models import Country


class CountryFilter(filters.FilterSet):
    """
    Filters for the Country list endpoint: ?region=Africa, ?currency=NGN.
    Both are equality matches that ignore case.
    """
    region = filters.CharFilter(field_name='region', lookup_expr='iexact')
    # The URL parameter is `currency`, the column is `currency_code`.
    currency = filters.CharFilter(field_name='currency_code', lookup_expr='iexact')

    class Meta:
        model = Country
        fields = ['region', 'currency']


class GdpSortFilter(OrderingFilter):
    """
    Ordering driven by `?sort=gdp_asc|gdp_desc`.
    Countries without an estimated GDP always come last; ties keep id order.
    """
    ordering_param = "sort"

    SORT_OPTIONS = {
        'gdp_asc': (F('estimated_gdp').asc(nulls_last=True), 'id'),
        'gdp_desc': (F('estimated_gdp').desc(nulls_last=True), 'id'),
    }

    def get_ordering(self, request, queryset, view):
        param = request.query_params.get(self.ordering_param)
        if not param:
            return self.get_default_ordering(view)
        if param not in self.SORT_OPTIONS:
            raise ValidationError({
                "details": {"sort": f"must be one of {', '.join(sorted(self.SORT_OPTIONS))}"}
            })
        return list(self.SORT_OPTIONS[param])
