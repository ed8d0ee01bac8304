# products/filters.py

import django_filters

from products.models import StockBatch


class StockBatchFilter(django_filters.FilterSet):
    """
    ?product=<uuid>        batches of one product
    ?with_stock=true       only batches with quantity_current > 0
    ?expires_before=DATE   batches expiring on or before DATE
    """

    product = django_filters.UUIDFilter(field_name="product_id")
    with_stock = django_filters.BooleanFilter(method="filter_with_stock")
    expires_before = django_filters.DateFilter(field_name="expiration_date", lookup_expr="lte")
    purchase = django_filters.UUIDFilter(field_name="purchase_id")

    class Meta:
        model = StockBatch
        fields = ["product", "with_stock", "expires_before", "purchase"]

    def filter_with_stock(self, queryset, name, value):
        if value is True:
            return queryset.filter(quantity_current__gt=0)
        if value is False:
            return queryset.filter(quantity_current=0)
        return queryset
