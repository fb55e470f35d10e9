import django_filters

from modules.orders.constants import OrderStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    buyer = django_filters.NumberFilter(field_name="buyer_id")
    currency = django_filters.CharFilter(field_name="currency", lookup_expr="iexact")
    is_paid = django_filters.BooleanFilter(field_name="is_paid")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(field_name="total_amount", lookup_expr="gte")
    max_total = django_filters.NumberFilter(field_name="total_amount", lookup_expr="lte")

    class Meta:
        model = Order
        fields = [
            "status",
            "buyer",
            "currency",
            "is_paid",
            "start_date",
            "end_date",
            "min_total",
            "max_total",
        ]
