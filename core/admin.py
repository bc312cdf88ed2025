from django.contrib import admin

from core.models import Address


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'city', 'country', 'postal_code', 'user', 'is_default']
    list_filter = ['country', 'is_default']
    search_fields = ['full_name', 'city', 'postal_code', 'user__email']
