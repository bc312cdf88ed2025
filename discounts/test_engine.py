"""
Tests for the matcher, calculator and selector.
These work on plain RuleDefinition objects and need no database.
"""
import itertools
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase

from discounts.helpers import (
    rule_matches,
    calculate_discount,
    describe_eligibility,
    get_free_units,
    round_currency,
)
from discounts.rules import (
    RuleDefinition,
    LineItemContext,
    QuantityBasedTerms,
    BuyXGetYTerms,
    PercentageOffTerms,
    FixedAmountOffTerms,
    build_terms,
)
from discounts.utils import select_discount_rule

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=dt_timezone.utc)


def make_rule(rule_id='rule-a', terms=None, **kwargs):
    kwargs.setdefault('name', f'Rule {rule_id}')
    for list_field in ('applicable_categories', 'applicable_product_ids', 'excluded_product_ids'):
        if list_field in kwargs:
            kwargs[list_field] = frozenset(kwargs[list_field])
    return RuleDefinition(
        id=rule_id,
        terms=terms or PercentageOffTerms(discount_percentage=Decimal('10')),
        **kwargs
    )


def make_line(product_id='p1', category='Serie A', quantity=1, unit_price='30.00', now=NOW):
    return LineItemContext(
        product_id=product_id,
        category=category,
        quantity=quantity,
        unit_price=Decimal(unit_price),
        now=now,
    )


class RuleMatcherTest(SimpleTestCase):

    def test_inactive_rule_never_matches(self):
        self.assertFalse(rule_matches(make_rule(is_active=False), make_line()))

    def test_expired_rule_never_matches(self):
        rule = make_rule(expires_at=NOW - timedelta(seconds=1))
        self.assertFalse(rule_matches(rule, make_line()))

    def test_rule_expiring_now_still_matches(self):
        self.assertTrue(rule_matches(make_rule(expires_at=NOW), make_line()))

    def test_exhausted_rule_never_matches(self):
        rule = make_rule(max_uses=5, current_uses=5)
        self.assertFalse(rule_matches(rule, make_line()))

    def test_rule_with_uses_left_matches(self):
        self.assertTrue(rule_matches(make_rule(max_uses=5, current_uses=4), make_line()))

    def test_exclusion_beats_inclusion(self):
        rule = make_rule(applicable_product_ids=['p1'], excluded_product_ids=['p1'])
        self.assertFalse(rule_matches(rule, make_line(product_id='p1')))

    def test_empty_inclusion_lists_cover_all_products(self):
        self.assertTrue(rule_matches(make_rule(), make_line(product_id='anything', category=None)))

    def test_category_scope(self):
        rule = make_rule(applicable_categories=['Serie A'])
        self.assertTrue(rule_matches(rule, make_line(category='Serie A')))
        self.assertFalse(rule_matches(rule, make_line(category='Premier League')))
        self.assertFalse(rule_matches(rule, make_line(category=None)))

    def test_product_scope(self):
        rule = make_rule(applicable_product_ids=['p1'])
        self.assertTrue(rule_matches(rule, make_line(product_id='p1')))
        self.assertFalse(rule_matches(rule, make_line(product_id='p2')))

    def test_either_inclusion_list_is_enough(self):
        rule = make_rule(applicable_product_ids=['p9'], applicable_categories=['Serie A'])
        self.assertTrue(rule_matches(rule, make_line(product_id='p1', category='Serie A')))
        self.assertTrue(rule_matches(rule, make_line(product_id='p9', category='Liga')))
        self.assertFalse(rule_matches(rule, make_line(product_id='p1', category='Liga')))

    def test_quantity_window(self):
        rule = make_rule(terms=QuantityBasedTerms(
            discount_percentage=Decimal('20'), min_quantity=3, max_quantity=5
        ))
        self.assertFalse(rule_matches(rule, make_line(quantity=2)))
        self.assertTrue(rule_matches(rule, make_line(quantity=3)))
        self.assertTrue(rule_matches(rule, make_line(quantity=5)))
        self.assertFalse(rule_matches(rule, make_line(quantity=6)))

    def test_absent_quantity_bounds_are_unconstrained(self):
        rule = make_rule(terms=QuantityBasedTerms(discount_percentage=Decimal('20')))
        self.assertTrue(rule_matches(rule, make_line(quantity=1)))
        self.assertTrue(rule_matches(rule, make_line(quantity=500)))

    def test_other_types_are_not_quantity_gated(self):
        rule = make_rule(terms=FixedAmountOffTerms(discount_amount=Decimal('5')))
        self.assertTrue(rule_matches(rule, make_line(quantity=1)))


class DiscountCalculatorTest(SimpleTestCase):

    def test_percentage_off(self):
        rule = make_rule(terms=PercentageOffTerms(discount_percentage=Decimal('15')))
        self.assertEqual(calculate_discount(rule, make_line(quantity=2)), Decimal('9.00'))

    def test_quantity_based_uses_percentage(self):
        rule = make_rule(terms=QuantityBasedTerms(discount_percentage=Decimal('20'), min_quantity=3))
        self.assertEqual(calculate_discount(rule, make_line(quantity=3)), Decimal('18.00'))

    def test_fixed_amount_is_capped_at_subtotal(self):
        rule = make_rule(terms=FixedAmountOffTerms(discount_amount=Decimal('50')))
        self.assertEqual(calculate_discount(rule, make_line(quantity=1)), Decimal('30.00'))

        rule = make_rule(terms=FixedAmountOffTerms(discount_amount=Decimal('5')))
        self.assertEqual(calculate_discount(rule, make_line(quantity=3)), Decimal('5.00'))

    def test_buy_two_get_one(self):
        rule = make_rule(terms=BuyXGetYTerms(buy_quantity=2, get_free_quantity=1))
        self.assertEqual(calculate_discount(rule, make_line(quantity=2)), Decimal('0.00'))
        self.assertEqual(calculate_discount(rule, make_line(quantity=3)), Decimal('30.00'))
        self.assertEqual(calculate_discount(rule, make_line(quantity=5)), Decimal('30.00'))
        self.assertEqual(calculate_discount(rule, make_line(quantity=6)), Decimal('60.00'))

    def test_buy_x_get_y_counts_whole_groups_only(self):
        terms = BuyXGetYTerms(buy_quantity=2, get_free_quantity=1)
        self.assertEqual(get_free_units(terms, 5), 1)
        self.assertEqual(get_free_units(BuyXGetYTerms(buy_quantity=3, get_free_quantity=2), 10), 4)

    def test_rounds_half_up_once(self):
        rule = make_rule(terms=PercentageOffTerms(discount_percentage=Decimal('12.5')))
        # 3 x 0.99 = 2.97, 12.5% = 0.37125
        self.assertEqual(calculate_discount(rule, make_line(quantity=3, unit_price='0.99')), Decimal('0.37'))
        self.assertEqual(round_currency(Decimal('0.125')), Decimal('0.13'))

    def test_discount_stays_within_subtotal(self):
        rules = [
            make_rule(terms=PercentageOffTerms(discount_percentage=Decimal('100'))),
            make_rule(terms=FixedAmountOffTerms(discount_amount=Decimal('1000'))),
            make_rule(terms=BuyXGetYTerms(buy_quantity=1, get_free_quantity=5)),
            make_rule(terms=QuantityBasedTerms(discount_percentage=Decimal('0'))),
        ]
        for rule, quantity in itertools.product(rules, [1, 2, 6, 13]):
            line = make_line(quantity=quantity, unit_price='19.99')
            amount = calculate_discount(rule, line)
            self.assertGreaterEqual(amount, Decimal('0'))
            self.assertLessEqual(amount, line.subtotal)

    def test_unknown_terms_raise(self):
        rule = make_rule(terms=object())
        with self.assertRaises(TypeError):
            calculate_discount(rule, make_line())


class RuleSelectorTest(SimpleTestCase):

    def test_no_candidates(self):
        self.assertIsNone(select_discount_rule([], make_line()))

    def test_highest_priority_wins_even_if_smaller(self):
        small_high = make_rule('a', priority=10, terms=FixedAmountOffTerms(discount_amount=Decimal('1')))
        big_low = make_rule('b', priority=1, terms=PercentageOffTerms(discount_percentage=Decimal('50')))

        result = select_discount_rule([big_low, small_high], make_line())
        self.assertEqual(result.rule.id, 'a')
        self.assertEqual(result.discount_amount, Decimal('1.00'))

    def test_tie_breaks_on_lowest_id(self):
        rule_b = make_rule('b', priority=5)
        rule_a = make_rule('a', priority=5)
        self.assertEqual(select_discount_rule([rule_b, rule_a], make_line()).rule.id, 'a')

    def test_result_is_independent_of_input_order(self):
        rules = [
            make_rule('c', priority=3),
            make_rule('a', priority=7, applicable_categories=['Liga']),
            make_rule('d', priority=3, terms=FixedAmountOffTerms(discount_amount=Decimal('2'))),
            make_rule('b', priority=1),
        ]
        line = make_line(category='Serie A')
        winners = {select_discount_rule(list(order), line).rule.id for order in itertools.permutations(rules)}
        self.assertEqual(winners, {'c'})

    def test_zero_amount_rules_are_skipped(self):
        no_free_units = make_rule('a', priority=9, terms=BuyXGetYTerms(buy_quantity=2, get_free_quantity=1))
        fallback = make_rule('b', priority=1)

        result = select_discount_rule([no_free_units, fallback], make_line(quantity=2))
        self.assertEqual(result.rule.id, 'b')
        self.assertEqual(result.discount_amount, Decimal('6.00'))

    def test_non_matching_rules_are_skipped(self):
        exhausted = make_rule('a', priority=9, max_uses=1, current_uses=1)
        self.assertIsNone(select_discount_rule([exhausted], make_line()))

    def test_serie_a_scenario(self):
        twenty_off = make_rule(
            'r1', priority=10, applicable_categories=['Serie A'],
            terms=PercentageOffTerms(discount_percentage=Decimal('20'))
        )
        five_off = make_rule('r2', priority=5, terms=FixedAmountOffTerms(discount_amount=Decimal('5')))

        serie_a = select_discount_rule([five_off, twenty_off], make_line(category='Serie A', quantity=2))
        self.assertEqual(serie_a.rule.id, 'r1')
        self.assertEqual(serie_a.discount_amount, Decimal('12.00'))

        liga = select_discount_rule([five_off, twenty_off], make_line(category='Liga', quantity=2))
        self.assertEqual(liga.rule.id, 'r2')
        self.assertEqual(liga.discount_amount, Decimal('5.00'))


class RuleTermsTest(SimpleTestCase):

    def test_build_terms_keeps_only_type_fields(self):
        values = {
            'discount_percentage': Decimal('10'), 'discount_amount': Decimal('3'),
            'buy_quantity': 2, 'get_free_quantity': 1, 'min_quantity': 2, 'max_quantity': None,
        }
        self.assertEqual(build_terms('fixed_amount_off', values), FixedAmountOffTerms(discount_amount=Decimal('3')))
        self.assertEqual(build_terms('buy_x_get_y', values), BuyXGetYTerms(buy_quantity=2, get_free_quantity=1))
        self.assertEqual(
            build_terms('quantity_based', values),
            QuantityBasedTerms(discount_percentage=Decimal('10'), min_quantity=2, max_quantity=None)
        )

    def test_build_terms_rejects_unknown_type(self):
        with self.assertRaises(ValueError):
            build_terms('bundle', {})


class EligibilityDescriptionTest(SimpleTestCase):

    def test_needs_more_items_for_quantity_rule(self):
        rule = make_rule(terms=QuantityBasedTerms(discount_percentage=Decimal('20'), min_quantity=3))
        is_applicable, reason, how_to_qualify = describe_eligibility(rule, make_line(quantity=1))

        self.assertFalse(is_applicable)
        self.assertEqual(reason, 'Need 2 more item(s)')
        self.assertEqual(how_to_qualify, 'Add 2 more item(s) to your cart')

    def test_needs_more_items_for_free_units(self):
        rule = make_rule(terms=BuyXGetYTerms(buy_quantity=2, get_free_quantity=1))
        is_applicable, reason, how_to_qualify = describe_eligibility(rule, make_line(quantity=2))

        self.assertFalse(is_applicable)
        self.assertEqual(how_to_qualify, 'Add 1 more item(s) to get 1 free')

    def test_excluded_product(self):
        rule = make_rule(excluded_product_ids=['p1'])
        self.assertEqual(
            describe_eligibility(rule, make_line(product_id='p1')),
            (False, 'Product is excluded from this rule', None)
        )

    def test_ready_to_apply(self):
        self.assertEqual(describe_eligibility(make_rule(), make_line()), (True, 'Ready to apply', None))
