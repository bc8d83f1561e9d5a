from django.contrib import admin

from .models import CacheStatus, Country


@admin.register(Country)
class CountryAdmin(admin.ModelAdmin):
    list_display = ('name', 'region', 'population', 'currency_code', 'estimated_gdp', 'last_refreshed_at')
    list_filter = ('region',)
    search_fields = ('name', 'currency_code')


@admin.register(CacheStatus)
class CacheStatusAdmin(admin.ModelAdmin):
    list_display = ('id', 'last_refreshed_at')

    # The singleton row is managed by the refresh pipeline.
    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
