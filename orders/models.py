from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models, connection

from core import Currency
from core.models import AbstractBaseModel, Address
from orders import OrderStatus
from products.models import Product


def get_order_number():
    """Generate unique order number. Works with both PostgreSQL and SQLite."""

    # For PostgreSQL, use sequence
    if connection.vendor == 'postgresql':
        with connection.cursor() as cursor:
            cursor.execute("SELECT nextval('order_order_number_seq')")
            result = cursor.fetchone()
            return result[0]

    # For SQLite and others, use max + 1
    max_order = Order.objects.aggregate(models.Max('order_number'))['order_number__max']
    return (max_order or 0) + 1


def get_default_currency():
    return getattr(settings, 'DEFAULT_CURRENCY', Currency.EUR)


class Order(AbstractBaseModel):
    """
    Customer order. Line discounts come from discount rules, then an
    optional coupon takes a percentage off what is left.

    total_amount = subtotal_amount - discount_amount - coupon_discount_amount + shipping_amount
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='orders'
    )
    order_number = models.IntegerField(
        unique=True, default=get_order_number, editable=False)
    status = models.CharField(
        max_length=20, choices=OrderStatus.CHOICES,
        default=OrderStatus.PENDING, db_index=True)

    subtotal_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=0)
    discount_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=0,
        help_text='Sum of line item discounts from discount rules')
    coupon_code = models.CharField(max_length=50, blank=True, default='')
    coupon_discount_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True)
    coupon_discount_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=0)
    shipping_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=0,
        help_text='Highest shipping price among the ordered products; never discounted')
    total_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=0)
    currency = models.CharField(
        max_length=8, choices=Currency.CHOICES,
        default=get_default_currency)

    shipping_address = models.ForeignKey(
        Address, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='orders')
    payment_intent_id = models.CharField(
        max_length=255, unique=True, null=True, blank=True,
        help_text='Reference of the payment at the processor')
    tracking_code = models.CharField(max_length=100, blank=True, default='')

    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='+')
    cancellation_reason = models.TextField(blank=True, default='')

    refunded = models.BooleanField(default=False)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_reference = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='orders_user_created_idx'),
        ]

    def __str__(self):
        return f"#{self.order_number} - {self.user_id}"

    def recalculate_totals(self):
        """Recompute the amounts from the saved order items."""
        items = list(self.order_items.all())
        self.subtotal_amount = sum(
            (item.unit_price * item.quantity for item in items), Decimal('0')
        )
        self.discount_amount = sum(
            (item.discount_amount for item in items), Decimal('0')
        )

        remaining = self.subtotal_amount - self.discount_amount
        if self.coupon_discount_percentage:
            self.coupon_discount_amount = (
                remaining * self.coupon_discount_percentage / Decimal('100')
            ).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        else:
            self.coupon_discount_amount = Decimal('0')

        self.total_amount = (
            max(remaining - self.coupon_discount_amount, Decimal('0'))
            + (self.shipping_amount or Decimal('0'))
        )
        return self.total_amount


class OrderItem(AbstractBaseModel):
    """
    One line of an order. Name, category and unit price are copied from the
    catalog at checkout so later catalog edits do not change history.
    """
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name='order_items')
    product = models.ForeignKey(
        Product, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='order_items')
    name = models.CharField(max_length=250)
    category = models.CharField(max_length=120, blank=True, default='')
    quantity = models.PositiveIntegerField(
        default=1, validators=[MinValueValidator(1)],
        help_text="ordered quantity")
    unit_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=0)
    customization = models.JSONField(
        default=dict, blank=True,
        help_text='Printed name, number, size, selected patches and extras')
    discount_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=0)
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    class Meta:
        ordering = ['created_at']
        verbose_name = 'Order Item'
        verbose_name_plural = 'Order Items'

    def __str__(self):
        return f"{self.quantity} x {self.name}"

    @property
    def subtotal(self):
        return self.unit_price * self.quantity

    def save(self, *args, **kwargs):
        self.amount = (self.quantity * self.unit_price) - self.discount_amount
        super().save(*args, **kwargs)
