# orders_core/filters.py
import datetime

import django_filters as df
from django.db.models import Q
from django.utils import timezone

from .models import Result


class VerificationQueueFilter(df.FilterSet):
    """
    Filters for results awaiting verification.

    date_filter: today | last7days | custom (custom uses start_date/end_date)
    """

    DATE_CHOICES = (
        ("today", "Today"),
        ("last7days", "Last 7 days"),
        ("custom", "Custom"),
    )

    date_filter = df.ChoiceFilter(choices=DATE_CHOICES, method="filter_date_window")
    start_date = df.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = df.DateFilter(field_name="created_at", lookup_expr="date__lte")
    critical = df.BooleanFilter(field_name="critical_flag")
    search = df.CharFilter(method="filter_search")
    order = df.NumberFilter(field_name="order_id")

    class Meta:
        model = Result
        fields = ["date_filter", "start_date", "end_date", "critical", "search", "order"]

    def filter_date_window(self, queryset, name, value):
        if value == "today":
            return queryset.filter(created_at__date__gte=timezone.localdate())
        if value == "last7days":
            return queryset.filter(created_at__gte=timezone.now() - datetime.timedelta(days=7))
        return queryset

    def filter_search(self, queryset, name, value):
        term = (value or "").strip()
        if not term:
            return queryset
        q = Q(test_group__name__icontains=term) | Q(order__patient_name__icontains=term)
        if term.isdigit():
            q |= Q(order_id=int(term))
        return queryset.filter(q)
