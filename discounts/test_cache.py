"""
Tests for discount rule caching.

One cache entry regardless of traffic: the IDs of active rules.
"""
from datetime import timedelta
from unittest import mock

from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from discounts.cache import (
    ACTIVE_RULES_CACHE_KEY,
    get_cached_active_discount_rule_ids,
    cache_active_discount_rule_ids,
    invalidate_discount_cache,
)
from discounts.factories import DiscountRuleFactory
from discounts.utils import get_candidate_rules
from orders.factories import AdminFactory


# Use in-memory cache for all tests
TEST_CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'test-cache',
        'KEY_PREFIX': 'jerseyshop-test',
    }
}


@override_settings(CACHES=TEST_CACHES)
class DiscountCacheUnitTest(SimpleTestCase):
    """Unit tests for the cache helpers - no database required."""

    def setUp(self):
        cache.clear()

    def tearDown(self):
        cache.clear()

    def test_cache_key_is_constant(self):
        self.assertEqual(ACTIVE_RULES_CACHE_KEY, 'discount_rules:active')

    def test_cache_miss_returns_none(self):
        self.assertIsNone(get_cached_active_discount_rule_ids())

    def test_cache_stores_and_retrieves_active_rule_ids(self):
        rule_ids = ['uuid-1', 'uuid-2', 'uuid-3']

        self.assertTrue(cache_active_discount_rule_ids(rule_ids))
        self.assertEqual(get_cached_active_discount_rule_ids(), rule_ids)

    def test_cache_stores_empty_list(self):
        """Empty list is a hit (no active discounts), not a miss."""
        cache_active_discount_rule_ids([])

        cached = get_cached_active_discount_rule_ids()
        self.assertEqual(cached, [])
        self.assertIsNotNone(cached)

    def test_invalidate_clears_cache(self):
        cache_active_discount_rule_ids(['rule-1', 'rule-2'])

        self.assertTrue(invalidate_discount_cache())
        self.assertIsNone(get_cached_active_discount_rule_ids())

    def test_backend_errors_are_reported_as_miss(self):
        with mock.patch('discounts.cache.cache') as broken_cache:
            broken_cache.get.side_effect = ConnectionError('redis down')
            broken_cache.set.side_effect = ConnectionError('redis down')
            broken_cache.delete.side_effect = ConnectionError('redis down')

            self.assertIsNone(get_cached_active_discount_rule_ids())
            self.assertFalse(cache_active_discount_rule_ids(['rule-1']))
            self.assertFalse(invalidate_discount_cache())


@override_settings(CACHES=TEST_CACHES)
class CandidateRuleCacheTest(TestCase):

    def setUp(self):
        cache.clear()

    def tearDown(self):
        cache.clear()

    def test_first_load_fills_cache(self):
        rule = DiscountRuleFactory()

        candidates = get_candidate_rules()

        self.assertEqual([c.id for c in candidates], [str(rule.id)])
        self.assertEqual(get_cached_active_discount_rule_ids(), [str(rule.id)])

    def test_stale_cache_hides_new_rule_until_invalidated(self):
        get_candidate_rules()
        new_rule = DiscountRuleFactory()

        self.assertEqual(get_candidate_rules(), [])

        invalidate_discount_cache()
        self.assertEqual([c.id for c in get_candidate_rules()], [str(new_rule.id)])

    def test_expiry_and_usage_are_checked_even_on_cache_hit(self):
        rule = DiscountRuleFactory(max_uses=1)
        get_candidate_rules()

        rule.current_uses = 1
        rule.save()
        self.assertEqual(get_candidate_rules(), [])

        rule.current_uses = 0
        rule.expires_at = timezone.now() - timedelta(minutes=1)
        rule.save()
        self.assertEqual(get_candidate_rules(), [])

    def test_bypass_cache(self):
        get_candidate_rules()
        rule = DiscountRuleFactory()

        self.assertEqual([c.id for c in get_candidate_rules(use_cache=False)], [str(rule.id)])

    def test_candidates_sorted_by_priority(self):
        low = DiscountRuleFactory(priority=1)
        high = DiscountRuleFactory(priority=50)

        self.assertEqual([c.id for c in get_candidate_rules()], [str(high.id), str(low.id)])


@override_settings(CACHES=TEST_CACHES)
class AdminWritesInvalidateCacheTest(APITestCase):

    def setUp(self):
        cache.clear()
        self.client.force_authenticate(user=AdminFactory())
        self.rule = DiscountRuleFactory()
        cache_active_discount_rule_ids([str(self.rule.id)])

    def tearDown(self):
        cache.clear()

    def test_create_invalidates(self):
        response = self.client.post(reverse('discount-rule-list'), {
            'name': 'Summer sale',
            'description': 'Ten percent off every jersey',
            'rule_type': 'percentage_off',
            'discount_percentage': '10.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(get_cached_active_discount_rule_ids())

    def test_update_invalidates(self):
        response = self.client.patch(
            reverse('discount-rule-detail', args=[self.rule.id]), {'is_active': False}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(get_cached_active_discount_rule_ids())

    def test_delete_invalidates(self):
        response = self.client.delete(reverse('discount-rule-detail', args=[self.rule.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(get_cached_active_discount_rule_ids())
