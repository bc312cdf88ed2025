from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.core.cache import cache
from django.db import DatabaseError, IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase, APIClient

from discounts import DiscountRuleType
from discounts.exceptions import DiscountRuleUnavailable, CouponUnavailable, InvalidCoupon
from discounts.factories import DiscountRuleFactory, CouponFactory, AppliedDiscountFactory
from discounts.models import DiscountRule, AppliedDiscount, Coupon
from discounts.rules import (
    QuantityBasedTerms,
    BuyXGetYTerms,
    PercentageOffTerms,
    FixedAmountOffTerms,
)
from discounts.utils import (
    consume_rule_usage,
    consume_coupon_usage,
    get_valid_coupon,
    get_candidate_rules,
    select_discount_rule,
    build_line_context,
    apply_order_discounts,
)
from orders.factories import (
    UserFactory,
    AdminFactory,
    PremiumUserFactory,
    CategoryFactory,
    ProductFactory,
    OrderFactory,
    OrderItemFactory,
)


def valid_rule_payload(**overrides):
    payload = {
        'name': 'Serie A week',
        'description': 'Twenty percent off every Serie A jersey',
        'rule_type': DiscountRuleType.PERCENTAGE_OFF,
        'discount_percentage': '20.00',
        'priority': 10,
        'applicable_categories': ['Serie A'],
    }
    payload.update(overrides)
    return payload


class DiscountRuleAPITest(APITestCase):
    """Test cases for DiscountRule API endpoints."""

    def setUp(self):
        """Set up test data before each test."""
        cache.clear()
        self.client = APIClient()
        self.admin_user = AdminFactory(email='admin@example.com')
        self.regular_user = UserFactory(email='user@example.com')

        self.percentage_rule = DiscountRuleFactory(name='10% everything', priority=1)
        self.quantity_rule = DiscountRuleFactory(name='Buy 3 save 20%', quantity_based=True, priority=5)
        self.free_rule = DiscountRuleFactory(name='2+1', buy_x_get_y=True, priority=3, is_active=False)

    def authenticate_admin(self):
        """Authenticate as admin user."""
        self.client.force_authenticate(user=self.admin_user)

    def authenticate_user(self):
        """Authenticate as regular user."""
        self.client.force_authenticate(user=self.regular_user)

    # ==================== LIST Tests ====================

    def test_list_discount_rules_as_admin(self):
        self.authenticate_admin()
        response = self.client.get(reverse('discount-rule-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertIsNone(response.data['error'])
        self.assertEqual(len(response.data['data']), 3)
        # Highest priority first
        self.assertEqual(response.data['data'][0]['name'], 'Buy 3 save 20%')

    def test_list_discount_rules_as_regular_user(self):
        self.authenticate_user()
        response = self.client.get(reverse('discount-rule-list'))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error']['code'], 'FORBIDDEN')

    def test_list_discount_rules_unauthenticated(self):
        response = self.client.get(reverse('discount-rule-list'))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])

    def test_list_discount_rules_filter_by_rule_type(self):
        self.authenticate_admin()
        response = self.client.get(reverse('discount-rule-list'), {'rule_type': DiscountRuleType.BUY_X_GET_Y})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['data'][0]['name'], '2+1')

    def test_active_action_skips_inactive_expired_and_exhausted(self):
        DiscountRuleFactory(name='expired', expires_at=timezone.now() - timedelta(days=1))
        DiscountRuleFactory(name='used up', max_uses=2, current_uses=2)
        self.authenticate_admin()

        response = self.client.get(reverse('discount-rule-active'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = [rule['name'] for rule in response.data['data']]
        self.assertEqual(names, ['Buy 3 save 20%', '10% everything'])

    # ==================== CREATE Tests ====================

    def test_create_percentage_rule(self):
        self.authenticate_admin()
        response = self.client.post(reverse('discount-rule-list'), valid_rule_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['rule_type'], DiscountRuleType.PERCENTAGE_OFF)
        self.assertEqual(data['current_uses'], 0)
        self.assertEqual(data['applicable_categories'], ['Serie A'])

    def test_create_ignores_current_uses(self):
        self.authenticate_admin()
        response = self.client.post(
            reverse('discount-rule-list'), valid_rule_payload(current_uses=50), format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(DiscountRule.objects.get(pk=response.data['data']['id']).current_uses, 0)

    def test_create_requires_type_fields(self):
        self.authenticate_admin()
        cases = [
            (DiscountRuleType.PERCENTAGE_OFF, {'discount_percentage': None}, 'discount_percentage'),
            (DiscountRuleType.QUANTITY_BASED, {'discount_percentage': None}, 'discount_percentage'),
            (DiscountRuleType.FIXED_AMOUNT_OFF, {'discount_percentage': None}, 'discount_amount'),
            (DiscountRuleType.BUY_X_GET_Y, {'buy_quantity': 2}, 'get_free_quantity'),
        ]
        for rule_type, overrides, missing_field in cases:
            with self.subTest(rule_type=rule_type):
                response = self.client.post(
                    reverse('discount-rule-list'),
                    valid_rule_payload(rule_type=rule_type, **overrides),
                    format='json'
                )
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')
                self.assertIn(missing_field, response.data['error']['fields'])

    def test_create_validates_ranges(self):
        self.authenticate_admin()
        cases = [
            ({'discount_percentage': '120.00'}, 'discount_percentage'),
            ({'priority': 0}, 'priority'),
            ({'priority': 101}, 'priority'),
            ({'max_uses': 0}, 'max_uses'),
            ({'description': 'short'}, 'description'),
            ({'expires_at': (timezone.now() - timedelta(days=1)).isoformat()}, 'expires_at'),
            ({'rule_type': DiscountRuleType.FIXED_AMOUNT_OFF, 'discount_amount': '-1.00'}, 'discount_amount'),
            ({'rule_type': DiscountRuleType.QUANTITY_BASED, 'min_quantity': 5, 'max_quantity': 2}, 'max_quantity'),
        ]
        for overrides, field in cases:
            with self.subTest(field=field, overrides=overrides):
                response = self.client.post(
                    reverse('discount-rule-list'), valid_rule_payload(**overrides), format='json'
                )
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn(field, response.data['error']['fields'])

    def test_create_as_regular_user_forbidden(self):
        self.authenticate_user()
        response = self.client.post(reverse('discount-rule-list'), valid_rule_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(DiscountRule.objects.filter(name='Serie A week').exists())

    # ==================== RETRIEVE / UPDATE / DELETE Tests ====================

    def test_retrieve_rule(self):
        self.authenticate_admin()
        response = self.client.get(reverse('discount-rule-detail', args=[self.quantity_rule.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['min_quantity'], 3)

    def test_retrieve_missing_rule(self):
        self.authenticate_admin()
        response = self.client.get(reverse('discount-rule-detail', args=['not-a-uuid']))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'NOT_FOUND')

    def test_partial_update_rule(self):
        self.authenticate_admin()
        response = self.client.patch(
            reverse('discount-rule-detail', args=[self.percentage_rule.id]),
            {'priority': 99, 'excluded_product_ids': ['abc']},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.percentage_rule.refresh_from_db()
        self.assertEqual(self.percentage_rule.priority, 99)
        self.assertEqual(self.percentage_rule.excluded_product_ids, ['abc'])

    def test_partial_update_keeps_type_requirements(self):
        self.authenticate_admin()
        response = self.client.patch(
            reverse('discount-rule-detail', args=[self.percentage_rule.id]),
            {'rule_type': DiscountRuleType.FIXED_AMOUNT_OFF},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount_amount', response.data['error']['fields'])

    def test_max_uses_cannot_drop_below_current_uses(self):
        rule = DiscountRuleFactory(max_uses=10, current_uses=4)
        self.authenticate_admin()
        response = self.client.patch(
            reverse('discount-rule-detail', args=[rule.id]), {'max_uses': 3}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('max_uses', response.data['error']['fields'])

    def test_delete_rule_keeps_applied_history(self):
        applied = AppliedDiscountFactory(discount_rule=self.percentage_rule, metadata={'rule_name': '10% everything'})
        self.authenticate_admin()

        response = self.client.delete(reverse('discount-rule-detail', args=[self.percentage_rule.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(DiscountRule.objects.filter(pk=self.percentage_rule.pk).exists())
        applied.refresh_from_db()
        self.assertIsNone(applied.discount_rule)


class DiscountRuleModelTest(TestCase):

    def test_definition_round_trip_for_every_type(self):
        expected = {
            DiscountRuleFactory(quantity_based=True, max_quantity=6): QuantityBasedTerms(
                discount_percentage=Decimal('20'), min_quantity=3, max_quantity=6
            ),
            DiscountRuleFactory(buy_x_get_y=True): BuyXGetYTerms(buy_quantity=2, get_free_quantity=1),
            DiscountRuleFactory(discount_percentage=Decimal('15')): PercentageOffTerms(
                discount_percentage=Decimal('15')
            ),
            DiscountRuleFactory(fixed_amount_off=True): FixedAmountOffTerms(discount_amount=Decimal('5')),
        }
        for rule, terms in expected.items():
            with self.subTest(rule_type=rule.rule_type):
                rule.refresh_from_db()
                definition = rule.to_definition()
                self.assertEqual(definition.terms, terms)
                self.assertEqual(definition.rule_type, rule.rule_type)
                self.assertEqual(definition.id, str(rule.id))

    def test_fields_of_other_types_are_ignored(self):
        rule = DiscountRuleFactory(fixed_amount_off=True, discount_percentage=Decimal('50'), buy_quantity=1)
        self.assertEqual(rule.get_terms(), FixedAmountOffTerms(discount_amount=Decimal('5')))

    def test_scope_lists_become_string_sets(self):
        product = ProductFactory()
        rule = DiscountRuleFactory(
            applicable_product_ids=[str(product.id)],
            applicable_categories=['Serie A', 'Retro'],
        )
        definition = rule.to_definition()

        self.assertEqual(definition.applicable_product_ids, frozenset([str(product.id)]))
        self.assertEqual(definition.applicable_categories, frozenset(['Serie A', 'Retro']))
        self.assertEqual(definition.excluded_product_ids, frozenset())

    def test_remaining_uses(self):
        self.assertIsNone(DiscountRuleFactory().remaining_uses)
        self.assertEqual(DiscountRuleFactory(max_uses=5, current_uses=2).remaining_uses, 3)

    def test_uses_cannot_exceed_cap_in_database(self):
        rule = DiscountRuleFactory(max_uses=1, current_uses=1)
        rule.current_uses = 2
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                rule.save()


class RuleUsageTest(TestCase):

    def test_consume_increments_once(self):
        rule = DiscountRuleFactory(max_uses=3)
        consume_rule_usage(rule.id)

        rule.refresh_from_db()
        self.assertEqual(rule.current_uses, 1)

    def test_last_use_goes_to_exactly_one_of_two_stale_checkouts(self):
        """
        Two checkouts both saw one remaining use; the conditional update lets
        exactly one of them claim it.
        """
        rule = DiscountRuleFactory(max_uses=1)
        first_view = DiscountRule.objects.get(pk=rule.pk).to_definition()
        second_view = DiscountRule.objects.get(pk=rule.pk).to_definition()
        self.assertEqual(first_view.current_uses, second_view.current_uses)

        outcomes = []
        for view in (first_view, second_view):
            try:
                consume_rule_usage(view.id, view.name)
                outcomes.append('claimed')
            except DiscountRuleUnavailable:
                outcomes.append('unavailable')

        self.assertEqual(sorted(outcomes), ['claimed', 'unavailable'])
        rule.refresh_from_db()
        self.assertEqual(rule.current_uses, 1)

    def test_disabled_or_expired_rule_cannot_be_claimed(self):
        disabled = DiscountRuleFactory(is_active=False)
        expired = DiscountRuleFactory(expires_at=timezone.now() - timedelta(seconds=1))

        for rule in (disabled, expired):
            with self.assertRaises(DiscountRuleUnavailable):
                consume_rule_usage(rule.id)

    def test_unlimited_rule(self):
        rule = DiscountRuleFactory(max_uses=None)
        for _ in range(5):
            consume_rule_usage(rule.id)

        rule.refresh_from_db()
        self.assertEqual(rule.current_uses, 5)


class ApplyOrderDiscountsTest(TestCase):

    def setUp(self):
        cache.clear()
        self.serie_a = CategoryFactory(name='Serie A')
        self.liga = CategoryFactory(name='Liga')
        self.order = OrderFactory()

    def test_one_use_per_order_per_rule(self):
        rule = DiscountRuleFactory(priority=10, discount_percentage=20, max_uses=5)
        item_a = OrderItemFactory(order=self.order, product=ProductFactory(category=self.serie_a), quantity=2)
        item_b = OrderItemFactory(order=self.order, product=ProductFactory(category=self.liga), quantity=1)

        total = apply_order_discounts(self.order)

        self.assertEqual(total, Decimal('18.00'))
        rule.refresh_from_db()
        self.assertEqual(rule.current_uses, 1)
        item_a.refresh_from_db()
        item_b.refresh_from_db()
        self.assertEqual(item_a.discount_amount, Decimal('12.00'))
        self.assertEqual(item_a.amount, Decimal('48.00'))
        self.assertEqual(item_b.discount_amount, Decimal('6.00'))
        self.assertEqual(AppliedDiscount.objects.filter(order=self.order).count(), 2)

    def test_each_line_gets_its_own_winner(self):
        serie_a_rule = DiscountRuleFactory(priority=10, discount_percentage=20, applicable_categories=['Serie A'])
        flat_rule = DiscountRuleFactory(priority=5, fixed_amount_off=True)
        item_a = OrderItemFactory(order=self.order, product=ProductFactory(category=self.serie_a), quantity=2)
        item_b = OrderItemFactory(order=self.order, product=ProductFactory(category=self.liga), quantity=2)

        apply_order_discounts(self.order)

        self.assertEqual(item_a.applied_discount.discount_rule, serie_a_rule)
        self.assertEqual(item_b.applied_discount.discount_rule, flat_rule)
        self.assertEqual(item_b.applied_discount.discount_amount, Decimal('5.00'))
        self.assertEqual(item_b.applied_discount.metadata['rule_name'], flat_rule.name)

    def test_lost_race_rolls_back_and_raises(self):
        rule = DiscountRuleFactory(max_uses=1)
        item = OrderItemFactory(order=self.order)
        candidates = get_candidate_rules()
        # Another checkout takes the last use after we loaded candidates
        DiscountRule.objects.filter(pk=rule.pk).update(current_uses=1)

        with mock.patch('discounts.utils.get_candidate_rules', return_value=candidates):
            with self.assertRaises(DiscountRuleUnavailable):
                apply_order_discounts(self.order)

        item.refresh_from_db()
        self.assertEqual(item.discount_amount, Decimal('0'))
        self.assertFalse(AppliedDiscount.objects.filter(order=self.order).exists())

    def test_no_rules_no_changes(self):
        item = OrderItemFactory(order=self.order, quantity=3)

        self.assertEqual(apply_order_discounts(self.order), Decimal('0.00'))
        item.refresh_from_db()
        self.assertEqual(item.amount, Decimal('90.00'))


class LineContextTest(TestCase):

    def test_fills_price_and_category_from_catalog(self):
        product = ProductFactory(category=CategoryFactory(name='Retro'), is_retro=True)
        context = build_line_context(product.id, 2)

        self.assertEqual(context.category, 'Retro')
        self.assertEqual(context.unit_price, Decimal('35.00'))
        self.assertEqual(context.subtotal, Decimal('70.00'))

    def test_caller_values_take_precedence(self):
        product = ProductFactory()
        context = build_line_context(product.id, 1, unit_price=Decimal('10'), category='Custom')

        self.assertEqual(context.category, 'Custom')
        self.assertEqual(context.unit_price, Decimal('10.00'))

    def test_unknown_product_without_price_raises(self):
        from discounts.exceptions import ProductLookupError
        with self.assertRaises(ProductLookupError):
            build_line_context('missing', 1)

    def test_unknown_product_with_price_is_evaluated(self):
        DiscountRuleFactory()
        context = build_line_context('external-sku', 1, unit_price=Decimal('20'))
        result = select_discount_rule(get_candidate_rules(use_cache=False), context)

        self.assertEqual(result.discount_amount, Decimal('2.00'))


class PublicDiscountEndpointsTest(APITestCase):

    def setUp(self):
        cache.clear()
        self.serie_a = CategoryFactory(name='Serie A')
        self.product = ProductFactory(category=self.serie_a)
        self.serie_a_rule = DiscountRuleFactory(
            name='Serie A 20', priority=10, discount_percentage=20, applicable_categories=['Serie A']
        )
        self.bundle_rule = DiscountRuleFactory(name='2+1', priority=20, buy_x_get_y=True)

    def test_lookup_by_ids(self):
        hidden = DiscountRuleFactory(is_active=False)
        ids = f'{self.serie_a_rule.id},{hidden.id},garbage'

        response = self.client.get(reverse('discount-rule-lookup'), {'ids': ids})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([rule['id'] for rule in response.data['data']], [str(self.serie_a_rule.id)])

    def test_lookup_without_ids_returns_all_active(self):
        response = self.client.get(reverse('discount-rule-lookup'))

        self.assertEqual(len(response.data['data']), 2)

    def test_evaluate_picks_priority_winner(self):
        response = self.client.post(reverse('discount-evaluate'), {
            'product_id': str(self.product.id), 'quantity': 3,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['rule_id'], str(self.bundle_rule.id))
        self.assertEqual(data['discount_amount'], '30.00')

    def test_evaluate_falls_back_when_bundle_gives_nothing(self):
        response = self.client.post(reverse('discount-evaluate'), {
            'product_id': str(self.product.id), 'quantity': 2,
        }, format='json')

        self.assertEqual(response.data['data']['rule_id'], str(self.serie_a_rule.id))
        self.assertEqual(response.data['data']['discount_amount'], '12.00')

    def test_evaluate_with_no_applicable_rule(self):
        response = self.client.post(reverse('discount-evaluate'), {
            'product_id': 'external', 'quantity': 1, 'category': 'Liga', 'unit_price': '10.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['data']['rule_id'])
        self.assertEqual(response.data['data']['discount_amount'], '0.00')

    def test_evaluate_unknown_product(self):
        response = self.client.post(reverse('discount-evaluate'), {
            'product_id': 'missing', 'quantity': 1,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'PRODUCT_NOT_FOUND')

    def test_evaluate_validation(self):
        response = self.client.post(reverse('discount-evaluate'), {'quantity': 0}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('product_id', response.data['error']['fields'])
        self.assertIn('quantity', response.data['error']['fields'])

    def test_check_cart(self):
        other = ProductFactory(category=CategoryFactory(name='Liga'))
        response = self.client.post(reverse('discount-check-cart'), {
            'items': [
                {'product_id': str(self.product.id), 'quantity': 2},
                {'product_id': str(other.id), 'quantity': 1},
            ]
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['subtotal'], '90.00')
        self.assertEqual(data['total_discount'], '12.00')
        self.assertEqual(data['final_amount'], '78.00')
        self.assertEqual(data['items'][1]['rule_id'], None)

        rules = {rule['rule_name']: rule for rule in data['rules']}
        self.assertTrue(rules['Serie A 20']['is_applicable'])
        self.assertFalse(rules['2+1']['is_applicable'])
        self.assertEqual(rules['2+1']['how_to_qualify'], 'Add 1 more item(s) to get 1 free')

    def test_check_cart_does_not_consume_usage(self):
        self.client.post(reverse('discount-check-cart'), {
            'items': [{'product_id': str(self.product.id), 'quantity': 3}]
        }, format='json')

        self.bundle_rule.refresh_from_db()
        self.assertEqual(self.bundle_rule.current_uses, 0)

    def test_check_cart_requires_items(self):
        response = self.client.post(reverse('discount-check-cart'), {'items': []}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data['error']['fields'])


class AppliedDiscountAPITest(APITestCase):

    def setUp(self):
        self.user = UserFactory()
        self.other_user = UserFactory()
        self.own = AppliedDiscountFactory(order_item__order__user=self.user)
        self.foreign = AppliedDiscountFactory(order_item__order__user=self.other_user)

    def test_user_sees_only_own_applied_discounts(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(reverse('applied-discount-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        results = response.data['data']['results']
        self.assertEqual([item['id'] for item in results], [str(self.own.id)])
        self.assertEqual(response.data['data']['pagination']['total_count'], 1)

    def test_user_cannot_retrieve_foreign_applied_discount(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(reverse('applied-discount-detail', args=[self.foreign.id]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_sees_all(self):
        self.client.force_authenticate(user=AdminFactory())
        response = self.client.get(reverse('applied-discount-list'))

        self.assertEqual(response.data['data']['pagination']['total_count'], 2)


class CouponTest(APITestCase):

    def setUp(self):
        self.admin = AdminFactory()
        self.premium = PremiumUserFactory()
        self.regular = UserFactory()
        self.coupon = CouponFactory(code='FORZA10', discount_percentage=10, max_uses=2)

    def test_admin_creates_coupon_with_normalized_code(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('coupon-list'), {
            'code': ' summer25 ',
            'discount_percentage': '25.00',
            'expires_at': (timezone.now() + timedelta(days=7)).isoformat(),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Coupon.objects.filter(code='SUMMER25').exists())

    def test_duplicate_code_rejected(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('coupon-list'), {
            'code': 'forza10',
            'discount_percentage': '5.00',
            'expires_at': (timezone.now() + timedelta(days=7)).isoformat(),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('code', response.data['error']['fields'])

    def test_premium_user_validates_coupon(self):
        self.client.force_authenticate(user=self.premium)
        response = self.client.post(reverse('coupon-validate'), {'code': 'forza10'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['code'], 'FORZA10')

    def test_regular_user_cannot_use_coupons(self):
        self.client.force_authenticate(user=self.regular)
        response = self.client.post(reverse('coupon-validate'), {'code': 'FORZA10'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_invalid_and_exhausted_codes(self):
        CouponFactory(code='OLD', expires_at=timezone.now() - timedelta(days=1))
        CouponFactory(code='GONE', max_uses=1, current_uses=1)
        self.client.force_authenticate(user=self.premium)

        for code, error_code in (('NOPE', 'INVALID_COUPON'), ('OLD', 'INVALID_COUPON'), ('GONE', 'COUPON_UNAVAILABLE')):
            with self.subTest(code=code):
                response = self.client.post(reverse('coupon-validate'), {'code': code}, format='json')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data['error']['code'], error_code)

    def test_coupon_usage_cap(self):
        coupon = get_valid_coupon('forza10')
        consume_coupon_usage(coupon)
        consume_coupon_usage(coupon)

        with self.assertRaises(CouponUnavailable):
            consume_coupon_usage(coupon)
        with self.assertRaises(CouponUnavailable):
            get_valid_coupon('FORZA10')

    def test_inactive_coupon_is_invalid(self):
        CouponFactory(code='OFF', is_active=False)
        with self.assertRaises(InvalidCoupon):
            get_valid_coupon('OFF')

    def test_update_database_error_returns_503(self):
        self.client.force_authenticate(user=self.admin)
        with mock.patch('discounts.models.Coupon.save', side_effect=DatabaseError('connection lost')):
            response = self.client.patch(
                reverse('coupon-detail', args=[self.coupon.id]),
                {'description': 'Updated during an outage'},
                format='json'
            )

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['error']['code'], 'DATABASE_ERROR')

    def test_update_integrity_error_returns_409(self):
        self.client.force_authenticate(user=self.admin)
        with mock.patch('discounts.models.Coupon.save', side_effect=IntegrityError('duplicate key')):
            response = self.client.patch(
                reverse('coupon-detail', args=[self.coupon.id]),
                {'code': 'FORZA11'},
                format='json'
            )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'INTEGRITY_ERROR')
        self.coupon.refresh_from_db()
        self.assertEqual(self.coupon.code, 'FORZA10')

    def test_delete_database_error_keeps_coupon(self):
        self.client.force_authenticate(user=self.admin)
        with mock.patch('discounts.models.Coupon.delete', side_effect=DatabaseError('connection lost')):
            response = self.client.delete(reverse('coupon-detail', args=[self.coupon.id]))

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['error']['code'], 'DATABASE_ERROR')
        self.assertTrue(Coupon.objects.filter(pk=self.coupon.pk).exists())

    def test_delete_coupon(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('coupon-detail', args=[self.coupon.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Coupon.objects.filter(pk=self.coupon.pk).exists())
