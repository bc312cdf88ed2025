from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

from core import Currency
from core.models import Address
from discounts.exceptions import InvalidCoupon, CouponUnavailable
from discounts.models import AppliedDiscount
from discounts.utils import apply_order_discounts, get_valid_coupon, consume_coupon_usage
from orders import OrderStatus
from orders.models import Order, OrderItem
from orders.utils import create_shipping_address
from products import JerseyExtra
from products.utils import get_products_for_checkout, get_line_unit_price, reserve_stock


class CustomizationSerializer(serializers.Serializer):
    """Printing options, patches and extras of a jersey."""
    size = serializers.CharField(max_length=10, required=False, allow_blank=True)
    name = serializers.CharField(max_length=30, required=False, allow_blank=True)
    number = serializers.CharField(max_length=3, required=False, allow_blank=True)
    patch_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, default=list, max_length=10
    )
    player_edition = serializers.BooleanField(required=False, default=False)
    include_shorts = serializers.BooleanField(required=False, default=False)
    include_socks = serializers.BooleanField(required=False, default=False)


class OrderItemInputSerializer(serializers.Serializer):
    """Input serializer for order items during checkout."""
    product_id = serializers.UUIDField(required=True)
    quantity = serializers.IntegerField(required=True, min_value=1)
    customization = CustomizationSerializer(required=False)


class ShippingAddressInputSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=256)
    address_line_1 = serializers.CharField(max_length=256)
    address_line_2 = serializers.CharField(max_length=256, required=False, allow_blank=True, allow_null=True)
    city = serializers.CharField(max_length=256)
    state = serializers.CharField(max_length=128, required=False, allow_blank=True)
    postal_code = serializers.CharField(max_length=20)
    country_code = serializers.CharField(min_length=2, max_length=2)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)


class OrderItemSerializer(serializers.ModelSerializer):
    """Serializer for displaying order items."""
    applied_rule = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = [
            'id', 'product', 'name', 'category', 'customization',
            'quantity', 'unit_price', 'discount_amount', 'amount',
            'applied_rule', 'created_at'
        ]
        read_only_fields = fields

    def get_applied_rule(self, obj):
        try:
            applied = obj.applied_discount
        except AppliedDiscount.DoesNotExist:
            return None
        return {
            'rule_id': str(applied.discount_rule_id) if applied.discount_rule_id else None,
            'rule_name': (applied.metadata or {}).get('rule_name'),
            'rule_type': applied.rule_type,
            'discount_amount': str(applied.discount_amount),
        }


class OrderSerializer(serializers.Serializer):
    """Serializer for creating an order (checkout)."""
    items = OrderItemInputSerializer(many=True, required=True)
    shipping_address_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    shipping_address = ShippingAddressInputSerializer(required=False, allow_null=True)
    coupon_code = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    payment_intent_id = serializers.CharField(max_length=255, required=False, allow_null=True, default=None)
    currency = serializers.ChoiceField(
        choices=Currency.CHOICES, required=False,
        default=getattr(settings, 'DEFAULT_CURRENCY', Currency.EUR)
    )

    def validate_items(self, items):
        """Validate that items exist and products are active."""
        if not items:
            raise serializers.ValidationError("Order must contain at least one item")

        product_ids = {item['product_id'] for item in items}
        products = get_products_for_checkout(product_ids)
        if len(products) != len(product_ids):
            raise serializers.ValidationError("One or more products are invalid or inactive")

        for item in items:
            customization = item.get('customization') or {}
            offered = {patch.id for patch in products[item['product_id']].patches.all()}
            if not set(customization.get('patch_ids') or []) <= offered:
                raise serializers.ValidationError(
                    "One or more patches are not available for this product"
                )

        self._products = products
        return items

    def validate_shipping_address_id(self, shipping_address_id):
        if shipping_address_id is None:
            return None
        user = self.context['user']
        if not Address.objects.filter(id=shipping_address_id, user=user).exists():
            raise serializers.ValidationError("Shipping address does not exist")
        return shipping_address_id

    def validate_coupon_code(self, coupon_code):
        coupon_code = coupon_code.strip().upper()
        if not coupon_code:
            return ''

        user = self.context['user']
        if not user.can_use_coupons:
            raise serializers.ValidationError("Only premium users can apply coupons")
        try:
            self._coupon = get_valid_coupon(coupon_code)
        except (InvalidCoupon, CouponUnavailable) as e:
            raise serializers.ValidationError(str(e))
        return coupon_code

    def validate(self, attrs):
        if not attrs.get('shipping_address_id') and not attrs.get('shipping_address'):
            raise serializers.ValidationError({
                "shipping_address": "Shipping address must not be empty"
            })
        return attrs

    @staticmethod
    def split_customization(product, customization):
        """
        Resolve the selected patches and extras of one line. Returns the
        customization to store on the item, with the patches copied as
        {id, title, price} so later catalog edits leave it unchanged.
        """
        if not customization:
            return {}, [], []

        customization = dict(customization)
        offered = {patch.id: patch for patch in product.patches.all()}
        patch_ids = dict.fromkeys(customization.pop('patch_ids', None) or [])
        patches = [offered[patch_id] for patch_id in patch_ids]
        extras = [extra for extra in JerseyExtra.PRICES if customization.get(extra)]

        customization['patches'] = [
            {'id': str(patch.id), 'title': patch.title, 'price': str(patch.price)}
            for patch in patches
        ]
        return customization, patches, extras

    def save(self):
        """
        Create the order with its items, take the units out of stock, then
        apply discount rules and the coupon. Must run inside a transaction:
        running out of stock or losing a usage race raises OutOfStock,
        DiscountRuleUnavailable or CouponUnavailable, and the caller rolls
        back everything created here.
        """
        user = self.context['user']
        validated_data = self.validated_data
        items = validated_data['items']
        shipping_address_id = validated_data.get('shipping_address_id')

        if shipping_address_id:
            shipping_address = Address.objects.get(id=shipping_address_id, user=user)
        else:
            shipping_address = create_shipping_address(user, validated_data['shipping_address'])

        order = Order.objects.create(
            user=user,
            shipping_address=shipping_address,
            currency=validated_data['currency'],
            payment_intent_id=validated_data.get('payment_intent_id') or None,
        )

        products = self._products
        quantities = {}
        for item in items:
            product = products[item['product_id']]
            customization, patches, extras = self.split_customization(product, item.get('customization'))
            OrderItem.objects.create(
                order=order,
                product=product,
                name=product.title,
                category=product.category_name or '',
                unit_price=get_line_unit_price(product, patches, extras),
                quantity=item['quantity'],
                customization=customization,
            )
            quantities[product.id] = quantities.get(product.id, 0) + item['quantity']

        reserve_stock(quantities)
        order.shipping_amount = max(
            (product.shipping_price for product in products.values()), default=Decimal('0')
        )

        apply_order_discounts(order)

        coupon = getattr(self, '_coupon', None)
        if coupon is not None:
            consume_coupon_usage(coupon)
            order.coupon_code = coupon.code
            order.coupon_discount_percentage = coupon.discount_percentage

        order.recalculate_totals()
        order.save()
        return order


class OrderDetailSerializer(serializers.ModelSerializer):
    """Serializer for displaying order details with discount breakdown."""
    order_items = OrderItemSerializer(many=True, read_only=True)
    user_email = serializers.EmailField(source='user.email', read_only=True)
    shipping_address_details = serializers.SerializerMethodField()
    discount_breakdown = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'user', 'user_email', 'status',
            'shipping_address', 'shipping_address_details',
            'subtotal_amount', 'discount_amount', 'discount_breakdown', 'shipping_amount',
            'coupon_code', 'coupon_discount_percentage', 'coupon_discount_amount',
            'total_amount', 'currency', 'payment_intent_id', 'tracking_code',
            'delivered_at', 'cancelled_at', 'cancellation_reason',
            'refunded', 'refunded_at', 'refund_reference',
            'order_items', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_discount_breakdown(self, obj):
        """Applied discounts grouped by rule type."""
        queryset = AppliedDiscount.objects.filter(
            is_active=True,
            order=obj
        ).order_by('-discount_amount')

        type_totals = {}
        for discount in queryset:
            totals = type_totals.setdefault(discount.rule_type, {
                'rule_type': discount.rule_type,
                'total_amount': 0,
                'discount_count': 0,
                'discounts': [],
            })
            totals['total_amount'] += discount.discount_amount
            totals['discount_count'] += 1
            totals['discounts'].append({
                'rule_name': (discount.metadata or {}).get('rule_name', 'Unknown'),
                'amount': str(discount.discount_amount)
            })

        distribution = []
        for totals in type_totals.values():
            totals['total_amount'] = f"{totals['total_amount']:.2f}"
            distribution.append(totals)

        return {
            'total_discount': str(obj.discount_amount),
            'coupon_discount': str(obj.coupon_discount_amount),
            'applied_count': len(queryset),
            'distribution': distribution
        }

    def get_shipping_address_details(self, obj):
        """Get shipping address details if available."""
        if obj.shipping_address:
            return {
                'id': str(obj.shipping_address.id),
                'full_name': obj.shipping_address.full_name,
                'address_line_1': obj.shipping_address.address_line_1,
                'address_line_2': obj.shipping_address.address_line_2,
                'city': obj.shipping_address.city,
                'state': obj.shipping_address.state,
                'country': str(obj.shipping_address.country),
                'postal_code': obj.shipping_address.postal_code,
                'display': obj.shipping_address.address_string,
            }
        return None


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for listing orders."""
    user_email = serializers.EmailField(source='user.email', read_only=True)
    items_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'user_email', 'status',
            'total_amount', 'currency', 'refunded',
            'items_count', 'created_at'
        ]
        read_only_fields = fields

    def get_items_count(self, obj):
        """Get total number of items in order."""
        return sum(item.quantity for item in obj.order_items.all())


class OrderUpdateSerializer(serializers.Serializer):
    """Admin update of status and tracking code."""
    status = serializers.ChoiceField(choices=OrderStatus.CHOICES, required=False)
    tracking_code = serializers.CharField(max_length=100, required=False, allow_blank=True)
    cancellation_reason = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if 'status' not in attrs and 'tracking_code' not in attrs:
            raise serializers.ValidationError("No valid update fields provided")
        return attrs


class OrderCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class OrderRefundSerializer(serializers.Serializer):
    refund_reference = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
