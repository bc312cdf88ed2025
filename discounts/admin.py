from django.contrib import admin

from discounts.cache import invalidate_discount_cache
from discounts.models import DiscountRule, AppliedDiscount, Coupon


@admin.register(DiscountRule)
class DiscountRuleAdmin(admin.ModelAdmin):
    """Admin configuration for DiscountRule model."""
    list_display = [
        'name', 'rule_type', 'priority', 'is_active',
        'current_uses', 'max_uses', 'expires_at'
    ]
    list_filter = ['rule_type', 'is_active']
    search_fields = ['name', 'description']
    ordering = ['-priority', 'id']
    readonly_fields = ['id', 'current_uses', 'created_at', 'updated_at']

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        invalidate_discount_cache()

    def delete_model(self, request, obj):
        super().delete_model(request, obj)
        invalidate_discount_cache()

    def delete_queryset(self, request, queryset):
        super().delete_queryset(request, queryset)
        invalidate_discount_cache()


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ['code', 'discount_percentage', 'is_active', 'current_uses', 'max_uses', 'expires_at']
    list_filter = ['is_active']
    search_fields = ['code', 'description']
    ordering = ['-created_at']
    readonly_fields = ['id', 'current_uses', 'created_at', 'updated_at']


@admin.register(AppliedDiscount)
class AppliedDiscountAdmin(admin.ModelAdmin):
    """Admin configuration for AppliedDiscount model."""
    list_display = [
        'order', 'order_item', 'discount_rule', 'rule_type', 'discount_amount', 'created_at'
    ]
    list_filter = ['rule_type', 'created_at']
    search_fields = ['order__order_number', 'discount_rule__name']
    ordering = ['-created_at']
    readonly_fields = ['id', 'created_at', 'updated_at']
