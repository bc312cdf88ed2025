from django.utils import timezone
from rest_framework import serializers

from discounts import DiscountRuleType, MIN_PRIORITY, MAX_PRIORITY
from discounts.models import DiscountRule, Coupon, AppliedDiscount

MAX_DISCOUNT_AMOUNT = 1000


class DiscountRuleSerializer(serializers.ModelSerializer):
    """
    Serializer for DiscountRule model.

    Optional fields (if not provided, the condition doesn't apply):
    - expires_at: If null, the rule never expires
    - max_uses: If null, the rule can be used without limit
    - min_quantity / max_quantity: quantity window for quantity_based rules
    - applicable_categories / applicable_product_ids: empty means every product
    """
    name = serializers.CharField(min_length=2, max_length=100)
    description = serializers.CharField(min_length=10, max_length=500)
    priority = serializers.IntegerField(
        min_value=MIN_PRIORITY, max_value=MAX_PRIORITY, default=MIN_PRIORITY
    )
    max_uses = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    min_quantity = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    max_quantity = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    discount_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100,
        required=False, allow_null=True
    )
    discount_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, max_value=MAX_DISCOUNT_AMOUNT,
        required=False, allow_null=True
    )
    buy_quantity = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    get_free_quantity = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    applicable_categories = serializers.ListField(
        child=serializers.CharField(), required=False, default=list
    )
    applicable_product_ids = serializers.ListField(
        child=serializers.CharField(), required=False, default=list
    )
    excluded_product_ids = serializers.ListField(
        child=serializers.CharField(), required=False, default=list
    )
    remaining_uses = serializers.IntegerField(read_only=True)

    class Meta:
        model = DiscountRule
        fields = [
            'id', 'name', 'description', 'rule_type', 'is_active',
            'expires_at', 'max_uses', 'current_uses', 'remaining_uses', 'priority',
            'min_quantity', 'max_quantity', 'discount_percentage',
            'discount_amount', 'buy_quantity', 'get_free_quantity',
            'applicable_categories', 'applicable_product_ids', 'excluded_product_ids',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'current_uses', 'created_at', 'updated_at']

    def _current(self, data, name):
        if name in data:
            return data[name]
        if self.instance is not None:
            return getattr(self.instance, name)
        return None

    def validate_expires_at(self, value):
        if value is not None and self.instance is None and value <= timezone.now():
            raise serializers.ValidationError('Expiry date must be in the future')
        return value

    def validate(self, data):
        """Validate the fields required by the rule type."""
        rule_type = self._current(data, 'rule_type')
        errors = {}

        if rule_type == DiscountRuleType.QUANTITY_BASED:
            if self._current(data, 'discount_percentage') is None:
                errors['discount_percentage'] = 'Discount percentage is required for quantity based rules'
            min_quantity = self._current(data, 'min_quantity')
            max_quantity = self._current(data, 'max_quantity')
            if min_quantity is not None and max_quantity is not None and min_quantity > max_quantity:
                errors['max_quantity'] = 'Maximum quantity must be greater than or equal to minimum quantity'

        elif rule_type == DiscountRuleType.BUY_X_GET_Y:
            if self._current(data, 'buy_quantity') is None:
                errors['buy_quantity'] = 'Buy quantity is required for buy X get Y rules'
            if self._current(data, 'get_free_quantity') is None:
                errors['get_free_quantity'] = 'Free quantity is required for buy X get Y rules'

        elif rule_type == DiscountRuleType.PERCENTAGE_OFF:
            if self._current(data, 'discount_percentage') is None:
                errors['discount_percentage'] = 'Discount percentage is required for percentage off rules'

        elif rule_type == DiscountRuleType.FIXED_AMOUNT_OFF:
            if self._current(data, 'discount_amount') is None:
                errors['discount_amount'] = 'Discount amount is required for fixed amount off rules'

        max_uses = self._current(data, 'max_uses')
        if max_uses is not None and self.instance is not None and max_uses < self.instance.current_uses:
            errors['max_uses'] = f'Max uses cannot be lower than current uses ({self.instance.current_uses})'

        if errors:
            raise serializers.ValidationError(errors)
        return data


class DiscountRuleListSerializer(serializers.ModelSerializer):
    """Serializer for listing discount rules with all necessary fields."""

    class Meta:
        model = DiscountRule
        fields = [
            'id', 'name', 'description', 'rule_type', 'is_active', 'priority',
            'expires_at', 'max_uses', 'current_uses',
            'min_quantity', 'max_quantity', 'discount_percentage',
            'discount_amount', 'buy_quantity', 'get_free_quantity',
            'applicable_categories', 'applicable_product_ids', 'excluded_product_ids'
        ]


class AppliedDiscountSerializer(serializers.ModelSerializer):
    """Serializer for viewing applied discounts."""
    rule_name = serializers.SerializerMethodField()
    order_number = serializers.IntegerField(source='order.order_number', read_only=True)
    product_name = serializers.CharField(source='order_item.name', read_only=True)

    class Meta:
        model = AppliedDiscount
        fields = [
            'id', 'order', 'order_number', 'order_item', 'product_name',
            'discount_rule', 'rule_name', 'rule_type', 'discount_amount',
            'metadata', 'created_at'
        ]
        read_only_fields = ['id', 'created_at']

    def get_rule_name(self, obj):
        # The rule may have been deleted since; fall back to the snapshot
        if obj.discount_rule is not None:
            return obj.discount_rule.name
        return (obj.metadata or {}).get('rule_name')


class CouponSerializer(serializers.ModelSerializer):
    code = serializers.CharField(min_length=3, max_length=50)
    discount_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=1, max_value=100
    )
    max_uses = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    class Meta:
        model = Coupon
        fields = [
            'id', 'code', 'description', 'discount_percentage', 'expires_at',
            'is_active', 'max_uses', 'current_uses', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'current_uses', 'created_at', 'updated_at']

    def validate_code(self, value):
        code = value.strip().upper()
        queryset = Coupon.objects.filter(code=code)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('A coupon with this code already exists')
        return code

    def validate_expires_at(self, value):
        if self.instance is None and value <= timezone.now():
            raise serializers.ValidationError('Expiry date must be in the future')
        return value


class CouponValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)


class LineItemSerializer(serializers.Serializer):
    """One cart line sent for evaluation; category and price default to the catalog."""
    product_id = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=1)
    category = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)
    unit_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )

    def validate_category(self, value):
        return value or None


class CartCheckSerializer(serializers.Serializer):
    items = LineItemSerializer(many=True, allow_empty=False)
