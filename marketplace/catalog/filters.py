import django_filters
from django.db.models import Q
from .models import Category, Product


class ProductFilter(django_filters.FilterSet):
    """Filter for the product list using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    organization = django_filters.NumberFilter(field_name='organization_id', lookup_expr='exact')
    category = django_filters.NumberFilter(method='filter_category', label='Category (includes children)')
    active = django_filters.BooleanFilter(field_name='is_active')
    min_price = django_filters.NumberFilter(method='filter_min_price', label='Minimum variant price')
    max_price = django_filters.NumberFilter(method='filter_max_price', label='Maximum variant price')

    class Meta:
        model = Product
        fields = ['search', 'organization', 'category', 'active', 'min_price', 'max_price']

    def filter_search(self, queryset, name, value):
        """Every word must appear in the name, description or a variant SKU"""
        value = (value or '').strip()
        if not value:
            return queryset
        for word in value.split():
            queryset = queryset.filter(
                Q(name__icontains=word) |
                Q(description__icontains=word) |
                Q(variants__sku__icontains=word)
            )
        return queryset.distinct()

    def filter_category(self, queryset, name, value):
        child_ids = list(
            Category.objects.filter(parent_id=value).values_list('id', flat=True)
        )
        return queryset.filter(category_id__in=[value, *child_ids])

    def filter_min_price(self, queryset, name, value):
        return queryset.filter(variants__price__gte=value, variants__is_active=True).distinct()

    def filter_max_price(self, queryset, name, value):
        return queryset.filter(variants__price__lte=value, variants__is_active=True).distinct()
