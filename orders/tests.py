"""
Tests for checkout, order status changes and order listing.
"""
import uuid
from decimal import Decimal
from unittest import mock

from django.core.cache import cache
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.models import Address
from discounts.exceptions import CouponUnavailable
from discounts.factories import DiscountRuleFactory, CouponFactory
from discounts.models import AppliedDiscount, DiscountRule
from discounts.utils import get_candidate_rules
from orders import OrderStatus
from orders.factories import (
    UserFactory,
    PremiumUserFactory,
    AdminFactory,
    AddressFactory,
    CategoryFactory,
    ProductFactory,
    OrderFactory,
    OrderItemFactory,
    PatchFactory,
)
from orders.models import Order, OrderItem


SHIPPING_ADDRESS = {
    'full_name': 'Mario Rossi',
    'address_line_1': 'Via Roma 1',
    'city': 'Milano',
    'state': 'MI',
    'postal_code': '20121',
    'country_code': 'it',
    'phone': '+390212345678',
}


class OrderCheckoutTest(APITestCase):

    def setUp(self):
        cache.clear()
        self.user = UserFactory()
        self.premium_user = PremiumUserFactory()
        self.serie_a = CategoryFactory(name='Serie A')
        self.retro = CategoryFactory(name='Retro')
        self.product = ProductFactory(category=self.serie_a)
        self.retro_product = ProductFactory(category=self.retro, is_retro=True)
        self.address = AddressFactory(user=self.user)

    def checkout(self, items, user=None, **extra):
        self.client.force_authenticate(user=user or self.user)
        payload = {'items': items, 'shipping_address_id': str(self.address.id)}
        payload.update(extra)
        return self.client.post(reverse('order-checkout'), payload, format='json')

    def test_checkout_requires_authentication(self):
        response = self.client.post(reverse('order-checkout'), {'items': []}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error']['code'], 'NOT_AUTHENTICATED')

    def test_checkout_without_discounts(self):
        response = self.checkout([{
            'product_id': str(self.product.id),
            'quantity': 2,
            'customization': {'size': 'L', 'name': 'LAUTARO', 'number': '10'},
        }])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['status'], OrderStatus.PENDING)
        self.assertEqual(data['subtotal_amount'], '60.00')
        self.assertEqual(data['discount_amount'], '0.00')
        self.assertEqual(data['total_amount'], '60.00')
        self.assertEqual(data['order_items'][0]['customization']['name'], 'LAUTARO')
        self.assertEqual(data['order_items'][0]['category'], 'Serie A')
        self.assertIsNone(data['order_items'][0]['applied_rule'])

    def test_checkout_with_new_shipping_address(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post(reverse('order-checkout'), {
            'items': [{'product_id': str(self.product.id), 'quantity': 1}],
            'shipping_address': SHIPPING_ADDRESS,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Address.objects.filter(user=self.user).count(), 2)
        self.assertEqual(response.data['data']['shipping_address_details']['country'], 'IT')

    def test_checkout_applies_best_rule_per_line(self):
        serie_a_rule = DiscountRuleFactory(
            name='Serie A 20', priority=10, discount_percentage=20,
            applicable_categories=['Serie A'], max_uses=10
        )
        retro_rule = DiscountRuleFactory(
            name='Retro 2+1', priority=20, buy_x_get_y=True, applicable_categories=['Retro']
        )

        response = self.checkout([
            {'product_id': str(self.product.id), 'quantity': 2},
            {'product_id': str(self.retro_product.id), 'quantity': 3},
        ])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['subtotal_amount'], '165.00')
        self.assertEqual(data['discount_amount'], '47.00')
        self.assertEqual(data['total_amount'], '118.00')
        self.assertEqual(data['discount_breakdown']['applied_count'], 2)

        rule_names = {str(item['product']): item['applied_rule']['rule_name'] for item in data['order_items']}
        self.assertEqual(rule_names[str(self.product.id)], 'Serie A 20')
        self.assertEqual(rule_names[str(self.retro_product.id)], 'Retro 2+1')

        serie_a_rule.refresh_from_db()
        retro_rule.refresh_from_db()
        self.assertEqual(serie_a_rule.current_uses, 1)
        self.assertEqual(retro_rule.current_uses, 1)

    def test_saved_address_must_belong_to_user(self):
        foreign_address = AddressFactory(user=UserFactory())
        response = self.checkout(
            [{'product_id': str(self.product.id), 'quantity': 1}],
            shipping_address_id=str(foreign_address.id)
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('shipping_address_id', response.data['error']['fields'])

    def test_shipping_address_required(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post(reverse('order-checkout'), {
            'items': [{'product_id': str(self.product.id), 'quantity': 1}],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('shipping_address', response.data['error']['fields'])

    def test_inactive_or_unknown_products_rejected(self):
        inactive = ProductFactory(is_active=False)
        for product_id in (str(inactive.id), str(uuid.uuid4())):
            with self.subTest(product_id=product_id):
                response = self.checkout([{'product_id': product_id, 'quantity': 1}])
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn('items', response.data['error']['fields'])

        self.assertFalse(Order.objects.exists())

    def test_premium_coupon_applies_after_rule_discounts(self):
        DiscountRuleFactory(discount_percentage=20)
        coupon = CouponFactory(code='FORZA10', discount_percentage=10)

        response = self.checkout(
            [{'product_id': str(self.product.id), 'quantity': 2}],
            user=self.premium_user,
            shipping_address_id=str(AddressFactory(user=self.premium_user).id),
            coupon_code='forza10'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['coupon_code'], 'FORZA10')
        self.assertEqual(data['discount_amount'], '12.00')
        self.assertEqual(data['coupon_discount_amount'], '4.80')
        self.assertEqual(data['total_amount'], '43.20')
        coupon.refresh_from_db()
        self.assertEqual(coupon.current_uses, 1)

    def test_regular_user_cannot_apply_coupon(self):
        CouponFactory(code='FORZA10')
        response = self.checkout(
            [{'product_id': str(self.product.id), 'quantity': 1}], coupon_code='FORZA10'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('coupon_code', response.data['error']['fields'])

    def test_lost_usage_race_rolls_back_the_whole_order(self):
        rule = DiscountRuleFactory(max_uses=1)
        stale_candidates = get_candidate_rules(use_cache=False)
        # Another checkout claims the last use after this one loaded its rules
        DiscountRule.objects.filter(pk=rule.pk).update(current_uses=1)
        addresses_before = Address.objects.count()

        self.client.force_authenticate(user=self.user)
        with mock.patch('discounts.utils.get_candidate_rules', return_value=stale_candidates):
            response = self.client.post(reverse('order-checkout'), {
                'items': [{'product_id': str(self.product.id), 'quantity': 1}],
                'shipping_address': SHIPPING_ADDRESS,
            }, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'DISCOUNT_RULE_UNAVAILABLE')
        self.assertFalse(Order.objects.exists())
        self.assertFalse(OrderItem.objects.exists())
        self.assertEqual(Address.objects.count(), addresses_before)
        rule.refresh_from_db()
        self.assertEqual(rule.current_uses, 1)

    def test_lost_coupon_race_releases_rule_usage(self):
        rule = DiscountRuleFactory(max_uses=5)
        CouponFactory(code='LAST1', max_uses=1)

        with mock.patch(
            'orders.serializers.consume_coupon_usage', side_effect=CouponUnavailable('LAST1')
        ):
            response = self.checkout(
                [{'product_id': str(self.product.id), 'quantity': 1}],
                user=self.premium_user,
                shipping_address_id=str(AddressFactory(user=self.premium_user).id),
                coupon_code='LAST1'
            )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'COUPON_UNAVAILABLE')
        self.assertFalse(Order.objects.exists())
        self.assertFalse(AppliedDiscount.objects.exists())
        rule.refresh_from_db()
        self.assertEqual(rule.current_uses, 0)

    # ==================== Stock ====================

    def test_checkout_takes_units_out_of_stock(self):
        product = ProductFactory(category=self.serie_a, stock_quantity=10)

        response = self.checkout([
            {'product_id': str(product.id), 'quantity': 3, 'customization': {'size': 'M'}},
            {'product_id': str(product.id), 'quantity': 4, 'customization': {'size': 'XL'}},
        ])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product.refresh_from_db()
        self.assertEqual(product.stock_quantity, 3)

    def test_oversell_is_rejected_and_rolled_back(self):
        product = ProductFactory(category=self.serie_a, stock_quantity=5)
        rule = DiscountRuleFactory(max_uses=10)

        response = self.checkout([
            {'product_id': str(self.product.id), 'quantity': 1},
            {'product_id': str(product.id), 'quantity': 7},
        ])

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'OUT_OF_STOCK')
        self.assertFalse(Order.objects.exists())
        product.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(product.stock_quantity, 5)
        self.assertEqual(self.product.stock_quantity, 100)
        rule.refresh_from_db()
        self.assertEqual(rule.current_uses, 0)

    def test_lines_of_the_same_product_share_its_stock(self):
        product = ProductFactory(category=self.serie_a, stock_quantity=5)

        response = self.checkout([
            {'product_id': str(product.id), 'quantity': 3},
            {'product_id': str(product.id), 'quantity': 3},
        ])

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        product.refresh_from_db()
        self.assertEqual(product.stock_quantity, 5)

    # ==================== Patches, extras and shipping ====================

    def test_patches_and_extras_are_priced_per_unit(self):
        serie_a_patch = PatchFactory(title='Serie A', price=Decimal('3.00'))
        scudetto_patch = PatchFactory(title='Scudetto', price=Decimal('5.00'))
        product = ProductFactory(category=self.serie_a, patches=[serie_a_patch, scudetto_patch])

        response = self.checkout([{
            'product_id': str(product.id),
            'quantity': 7,
            'customization': {
                'size': 'L',
                'patch_ids': [str(serie_a_patch.id), str(scudetto_patch.id)],
                'player_edition': True,
                'include_shorts': True,
            },
        }])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        # 30 + 3 + 5 patches + 5 player edition + 11 shorts
        self.assertEqual(data['order_items'][0]['unit_price'], '54.00')
        self.assertEqual(data['subtotal_amount'], '378.00')
        self.assertEqual(data['total_amount'], '378.00')
        stored = data['order_items'][0]['customization']
        self.assertEqual([patch['title'] for patch in stored['patches']], ['Serie A', 'Scudetto'])
        self.assertEqual(stored['patches'][1]['price'], '5.00')
        self.assertNotIn('patch_ids', stored)

    def test_rule_discount_applies_to_customized_price(self):
        patch = PatchFactory(price=Decimal('10.00'))
        product = ProductFactory(category=self.serie_a, patches=[patch])
        DiscountRuleFactory(discount_percentage=10)

        response = self.checkout([{
            'product_id': str(product.id),
            'quantity': 2,
            'customization': {'patch_ids': [str(patch.id)]},
        }])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['subtotal_amount'], '80.00')
        self.assertEqual(data['discount_amount'], '8.00')
        self.assertEqual(data['total_amount'], '72.00')

    def test_patch_must_be_offered_and_active(self):
        offered = PatchFactory()
        retired = PatchFactory(is_active=False)
        product = ProductFactory(category=self.serie_a, patches=[offered, retired])
        not_offered = PatchFactory()

        for patch in (retired, not_offered):
            with self.subTest(patch=patch.title):
                response = self.checkout([{
                    'product_id': str(product.id),
                    'quantity': 1,
                    'customization': {'patch_ids': [str(patch.id)]},
                }])
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn('items', response.data['error']['fields'])

        self.assertFalse(Order.objects.exists())

    def test_shipping_is_charged_once_and_not_discounted(self):
        product = ProductFactory(category=self.serie_a, shipping_price=Decimal('7.50'))
        cheap_shipping = ProductFactory(category=self.serie_a, shipping_price=Decimal('4.00'))
        DiscountRuleFactory(discount_percentage=50)

        response = self.checkout([
            {'product_id': str(product.id), 'quantity': 1},
            {'product_id': str(cheap_shipping.id), 'quantity': 1},
        ])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['subtotal_amount'], '60.00')
        self.assertEqual(data['discount_amount'], '30.00')
        self.assertEqual(data['shipping_amount'], '7.50')
        self.assertEqual(data['total_amount'], '37.50')


class OrderStatusTransitionTest(SimpleTestCase):

    def test_transition_table(self):
        allowed = [
            (OrderStatus.PENDING, OrderStatus.PROCESSING),
            (OrderStatus.PENDING, OrderStatus.CANCELLED),
            (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
            (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
            (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
            (OrderStatus.DELIVERED, OrderStatus.DELIVERED),
        ]
        rejected = [
            (OrderStatus.PENDING, OrderStatus.SHIPPED),
            (OrderStatus.PROCESSING, OrderStatus.PENDING),
            (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
            (OrderStatus.CANCELLED, OrderStatus.PENDING),
        ]
        for current, target in allowed:
            self.assertTrue(OrderStatus.can_transition(current, target), f'{current} -> {target}')
        for current, target in rejected:
            self.assertFalse(OrderStatus.can_transition(current, target), f'{current} -> {target}')


class OrderUpdateTest(APITestCase):

    def setUp(self):
        self.admin = AdminFactory()
        self.customer = UserFactory()
        self.order = OrderFactory(user=self.customer)

    def patch(self, data, user=None):
        self.client.force_authenticate(user=user or self.admin)
        return self.client.patch(reverse('order-detail', args=[self.order.id]), data, format='json')

    def test_admin_walks_order_to_delivered(self):
        for next_status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            response = self.patch({'status': next_status})
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['data']['status'], next_status)

        self.order.refresh_from_db()
        self.assertIsNotNone(self.order.delivered_at)

    def test_terminal_status_cannot_change(self):
        self.order.status = OrderStatus.DELIVERED
        self.order.save()

        response = self.patch({'status': OrderStatus.CANCELLED})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'INVALID_STATUS_TRANSITION')

    def test_cannot_skip_statuses(self):
        response = self.patch({'status': OrderStatus.SHIPPED})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PENDING)

    def test_tracking_code_only(self):
        response = self.patch({'tracking_code': 'BRT123'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['tracking_code'], 'BRT123')

    def test_empty_update_rejected(self):
        response = self.patch({})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')

    def test_admin_cancel_records_reason(self):
        response = self.patch({'status': OrderStatus.CANCELLED, 'cancellation_reason': 'Out of stock'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.cancelled_by, self.admin)
        self.assertEqual(self.order.cancellation_reason, 'Out of stock')
        self.assertIsNotNone(self.order.cancelled_at)

    def test_customer_cannot_update(self):
        response = self.patch({'status': OrderStatus.PROCESSING}, user=self.customer)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error']['code'], 'FORBIDDEN')

    def test_unknown_order(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(
            reverse('order-detail', args=[uuid.uuid4()]), {'status': OrderStatus.PROCESSING}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class OrderCancelTest(APITestCase):

    def setUp(self):
        self.customer = UserFactory()
        self.order = OrderFactory(user=self.customer)

    def cancel(self, user, order=None, reason=''):
        self.client.force_authenticate(user=user)
        order = order or self.order
        return self.client.post(reverse('order-cancel', args=[order.id]), {'reason': reason}, format='json')

    def test_customer_cancels_pending_order(self):
        response = self.cancel(self.customer, reason='Wrong size')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], OrderStatus.CANCELLED)
        self.assertEqual(response.data['data']['cancellation_reason'], 'Wrong size')
        self.order.refresh_from_db()
        self.assertEqual(self.order.cancelled_by, self.customer)

    def test_customer_cannot_cancel_shipped_order(self):
        self.order.status = OrderStatus.SHIPPED
        self.order.save()

        response = self.cancel(self.customer)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'INVALID_STATUS_TRANSITION')

    def test_admin_can_cancel_shipped_order(self):
        self.order.status = OrderStatus.SHIPPED
        self.order.save()

        response = self.cancel(AdminFactory())

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_customer_cannot_cancel_foreign_order(self):
        response = self.cancel(UserFactory())

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PENDING)


class OrderRefundTest(APITestCase):

    def setUp(self):
        self.admin = AdminFactory()
        self.order = OrderFactory(status=OrderStatus.CANCELLED)

    def refund(self, user=None, order=None):
        self.client.force_authenticate(user=user or self.admin)
        order = order or self.order
        return self.client.post(
            reverse('order-refund', args=[order.id]), {'refund_reference': 're_123'}, format='json'
        )

    def test_refund_cancelled_order(self):
        response = self.refund()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['refunded'])
        self.assertEqual(response.data['data']['refund_reference'], 're_123')

    def test_refund_only_once(self):
        self.refund()
        response = self.refund()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'REFUND_NOT_ALLOWED')

    def test_refund_requires_cancelled_order(self):
        response = self.refund(order=OrderFactory())

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'REFUND_NOT_ALLOWED')

    def test_refund_is_admin_only(self):
        response = self.refund(user=self.order.user)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.order.refresh_from_db()
        self.assertFalse(self.order.refunded)


class OrderListAndDetailTest(APITestCase):

    def setUp(self):
        self.admin = AdminFactory()
        self.customer = UserFactory()
        self.other_customer = UserFactory()
        self.own_order = OrderFactory(user=self.customer)
        OrderItemFactory(order=self.own_order, quantity=2)
        OrderItemFactory(order=self.own_order, quantity=1)
        self.foreign_order = OrderFactory(user=self.other_customer, status=OrderStatus.SHIPPED)

    def test_customer_sees_only_own_orders(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get(reverse('order-list'), {'user_id': str(self.other_customer.id)})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        results = response.data['data']['results']
        self.assertEqual([order['id'] for order in results], [str(self.own_order.id)])
        self.assertEqual(results[0]['items_count'], 3)

    def test_admin_sees_all_and_filters(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse('order-list'))
        self.assertEqual(response.data['data']['pagination']['total_count'], 2)

        response = self.client.get(reverse('order-list'), {'status': OrderStatus.SHIPPED})
        self.assertEqual([order['id'] for order in response.data['data']['results']], [str(self.foreign_order.id)])

        response = self.client.get(reverse('order-list'), {'user_id': str(self.customer.id)})
        self.assertEqual([order['id'] for order in response.data['data']['results']], [str(self.own_order.id)])

    def test_admin_invalid_user_filter(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('order-list'), {'user_id': 'nope'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')

    def test_detail_visibility(self):
        self.client.force_authenticate(user=self.customer)
        self.assertEqual(
            self.client.get(reverse('order-detail', args=[self.own_order.id])).status_code,
            status.HTTP_200_OK
        )
        response = self.client.get(reverse('order-detail', args=[self.foreign_order.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'NOT_FOUND')

        self.client.force_authenticate(user=self.admin)
        self.assertEqual(
            self.client.get(reverse('order-detail', args=[self.foreign_order.id])).status_code,
            status.HTTP_200_OK
        )


class OrderModelTest(TestCase):

    def test_item_amount_is_net_of_discount(self):
        item = OrderItemFactory(quantity=3, unit_price=Decimal('30.00'), discount_amount=Decimal('30.00'))
        self.assertEqual(item.amount, Decimal('60.00'))

    def test_recalculate_totals_rounds_coupon_half_up(self):
        order = OrderFactory(coupon_discount_percentage=Decimal('15'))
        OrderItemFactory(order=order, unit_price=Decimal('19.99'))

        total = order.recalculate_totals()

        self.assertEqual(order.subtotal_amount, Decimal('19.99'))
        self.assertEqual(order.coupon_discount_amount, Decimal('3.00'))
        self.assertEqual(total, Decimal('16.99'))

    def test_shipping_is_added_after_discounts(self):
        order = OrderFactory(coupon_discount_percentage=Decimal('100'), shipping_amount=Decimal('6.90'))
        OrderItemFactory(order=order, unit_price=Decimal('30.00'), quantity=2, discount_amount=Decimal('10.00'))

        total = order.recalculate_totals()

        self.assertEqual(order.coupon_discount_amount, Decimal('50.00'))
        self.assertEqual(total, Decimal('6.90'))

    def test_order_numbers_increase(self):
        first = OrderFactory()
        second = OrderFactory()
        self.assertGreater(second.order_number, first.order_number)
