from django.contrib import admin

from orders.models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['name', 'category', 'quantity', 'unit_price', 'discount_amount', 'amount', 'customization']
    readonly_fields = ['amount']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        'order_number', 'user', 'status', 'total_amount', 'currency',
        'refunded', 'created_at'
    ]
    list_filter = ['status', 'refunded', 'currency', 'created_at']
    search_fields = ['order_number', 'user__email', 'payment_intent_id', 'tracking_code']
    ordering = ['-created_at']
    readonly_fields = [
        'id', 'order_number', 'subtotal_amount', 'discount_amount',
        'coupon_discount_amount', 'shipping_amount', 'total_amount', 'created_at', 'updated_at'
    ]
    inlines = [OrderItemInline]
