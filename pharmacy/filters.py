import django_filters

from .models import Medicine


class MedicineFilter(django_filters.FilterSet):
    # "all" is what the stock screen sends when no status tab is selected
    status = django_filters.CharFilter(method='filter_status')
    expiring_before = django_filters.DateFilter(field_name='expiry_date', lookup_expr='lte')

    class Meta:
        model = Medicine
        fields = ['status', 'batch_number', 'expiring_before']

    def filter_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(status=value)
