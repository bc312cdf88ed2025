from datetime import timedelta

import factory
from django.utils import timezone
from factory.django import DjangoModelFactory

from discounts import DiscountRuleType
from discounts.models import DiscountRule, AppliedDiscount, Coupon


class DiscountRuleFactory(DjangoModelFactory):
    """Factory for DiscountRule model. Defaults to a 10% percentage_off rule."""

    class Meta:
        model = DiscountRule

    name = factory.Sequence(lambda n: f'Discount Rule {n}')
    description = factory.Faker('sentence', nb_words=8)
    rule_type = DiscountRuleType.PERCENTAGE_OFF
    is_active = True
    expires_at = factory.LazyFunction(lambda: timezone.now() + timedelta(days=30))
    max_uses = None
    current_uses = 0
    priority = 1
    discount_percentage = 10
    applicable_categories = factory.LazyFunction(list)
    applicable_product_ids = factory.LazyFunction(list)
    excluded_product_ids = factory.LazyFunction(list)

    class Params:
        quantity_based = factory.Trait(
            rule_type=DiscountRuleType.QUANTITY_BASED,
            min_quantity=3,
            discount_percentage=20,
        )
        buy_x_get_y = factory.Trait(
            rule_type=DiscountRuleType.BUY_X_GET_Y,
            discount_percentage=None,
            buy_quantity=2,
            get_free_quantity=1,
        )
        fixed_amount_off = factory.Trait(
            rule_type=DiscountRuleType.FIXED_AMOUNT_OFF,
            discount_percentage=None,
            discount_amount=5,
        )


class CouponFactory(DjangoModelFactory):

    class Meta:
        model = Coupon

    code = factory.Sequence(lambda n: f'SAVE{n:03d}')
    description = factory.Faker('sentence', nb_words=5)
    discount_percentage = 10
    expires_at = factory.LazyFunction(lambda: timezone.now() + timedelta(days=30))
    is_active = True
    max_uses = None
    current_uses = 0


class AppliedDiscountFactory(DjangoModelFactory):
    """Factory for AppliedDiscount model."""

    class Meta:
        model = AppliedDiscount

    order_item = factory.SubFactory('orders.factories.OrderItemFactory')
    order = factory.SelfAttribute('order_item.order')
    discount_rule = factory.SubFactory(DiscountRuleFactory)
    rule_type = factory.SelfAttribute('discount_rule.rule_type')
    discount_amount = factory.Faker('pydecimal', left_digits=2, right_digits=2, positive=True, max_value=20)
    metadata = None
