import logging

from django.db import transaction
from django.db.models import Q, F
from django.utils import timezone

from discounts.cache import get_cached_active_discount_rule_ids, cache_active_discount_rule_ids
from discounts.exceptions import (
    DiscountRuleUnavailable,
    InvalidCoupon,
    CouponUnavailable,
    ProductLookupError,
)
from discounts.models import DiscountRule, Coupon, AppliedDiscount
from discounts.helpers import (
    rule_matches,
    calculate_discount,
    describe_eligibility,
    round_currency,
    ZERO,
)
from discounts.rules import LineItemContext, DiscountResult
from products.utils import get_product

logger = logging.getLogger(__name__)


def available_rules_filter(now):
    """Q object for rules that are active, unexpired and under their cap."""
    return (
        Q(is_active=True)
        & (Q(expires_at__isnull=True) | Q(expires_at__gte=now))
        & (Q(max_uses__isnull=True) | Q(current_uses__lt=F('max_uses')))
    )


def get_available_rules_queryset(now=None):
    now = now or timezone.now()
    return DiscountRule.objects.filter(available_rules_filter(now))


def get_candidate_rules(now=None, use_cache: bool = True):
    """
    Load every rule that could discount something right now, as engine
    definitions ordered by priority (highest first) then id.

    The IDs of active rules are cached; expiry and usage are always checked
    against the database.
    """
    now = now or timezone.now()
    queryset = get_available_rules_queryset(now)

    if use_cache:
        cached_ids = get_cached_active_discount_rule_ids()
        if cached_ids is not None:
            queryset = queryset.filter(id__in=cached_ids)
        else:
            active_ids = [str(rule_id) for rule_id in DiscountRule.objects.filter(
                is_active=True
            ).values_list('id', flat=True)]
            cache_active_discount_rule_ids(active_ids)

    definitions = []
    for rule in queryset:
        try:
            definitions.append(rule.to_definition())
        except ValueError as e:
            logger.error(f"Skipping discount rule {rule.id}: {str(e)}")

    definitions.sort(key=lambda definition: definition.sort_key)
    logger.debug(f"Loaded {len(definitions)} candidate discount rules")
    return definitions


def select_discount_rule(candidate_rules, context):
    """
    Pick the single rule that discounts this line, or None.

    Rules that do not match, or that would take nothing off, are dropped.
    Among the rest the highest priority wins and equal priorities go to
    the lowest rule id, so the answer does not depend on input order.
    """
    results = []
    for rule in candidate_rules:
        if not rule_matches(rule, context):
            continue
        amount = calculate_discount(rule, context)
        if amount <= ZERO:
            continue
        results.append(DiscountResult(rule=rule, context=context, discount_amount=amount))

    if not results:
        return None

    return min(results, key=lambda result: result.rule.sort_key)


def build_line_context(product_id, quantity, unit_price=None, category=None, now=None):
    """
    Build the engine context for one line, filling category and price from
    the catalog when the caller did not send them.
    """
    if unit_price is None or category is None:
        product = get_product(product_id)
        if product is not None:
            if category is None:
                category = product.category_name
            if unit_price is None:
                unit_price = product.unit_price

    if unit_price is None:
        raise ProductLookupError(product_id)

    return LineItemContext(
        product_id=str(product_id),
        category=category,
        quantity=int(quantity),
        unit_price=round_currency(unit_price),
        now=now or timezone.now(),
    )


def consume_rule_usage(rule_id, rule_name=None, now=None):
    """
    Claim one use of a rule with a single conditional UPDATE.

    Raises DiscountRuleUnavailable when no row was updated, i.e. the rule
    was used up, disabled or expired since it was selected.
    """
    now = now or timezone.now()
    updated = DiscountRule.objects.filter(pk=rule_id).filter(
        available_rules_filter(now)
    ).update(current_uses=F('current_uses') + 1, updated_at=now)

    if updated == 0:
        logger.warning(f"Discount rule {rule_id} could not be claimed (cap reached or disabled)")
        raise DiscountRuleUnavailable(rule_id, rule_name)

    logger.info(f"Claimed one use of discount rule {rule_id}")


def get_valid_coupon(code, now=None):
    """Return the coupon for `code` if it can be redeemed right now."""
    now = now or timezone.now()
    normalized = (code or '').strip().upper()
    try:
        coupon = Coupon.objects.get(code=normalized, is_active=True, expires_at__gt=now)
    except Coupon.DoesNotExist:
        raise InvalidCoupon(normalized)

    if coupon.max_uses is not None and coupon.current_uses >= coupon.max_uses:
        raise CouponUnavailable(normalized)

    return coupon


def consume_coupon_usage(coupon, now=None):
    """Same conditional-increment contract as consume_rule_usage, for coupons."""
    now = now or timezone.now()
    updated = Coupon.objects.filter(
        pk=coupon.pk, is_active=True, expires_at__gt=now
    ).filter(
        Q(max_uses__isnull=True) | Q(current_uses__lt=F('max_uses'))
    ).update(current_uses=F('current_uses') + 1, updated_at=now)

    if updated == 0:
        logger.warning(f"Coupon {coupon.code} could not be claimed")
        raise CouponUnavailable(coupon.code)

    logger.info(f"Claimed one use of coupon {coupon.code}")


def apply_order_discounts(order, use_cache: bool = True):
    """
    Discount every line of a freshly created order.

    One use is claimed per distinct winning rule per order. Runs in its own
    atomic block so a lost usage race leaves no partial discounts behind;
    the DiscountRuleUnavailable propagates to the caller.

    Returns:
        Decimal: Total amount taken off by discount rules
    """
    now = timezone.now()
    candidate_rules = get_candidate_rules(now=now, use_cache=use_cache)
    order_items = list(order.order_items.all())

    winners = {}
    for item in order_items:
        if not candidate_rules:
            break
        context = LineItemContext(
            product_id=str(item.product_id) if item.product_id else '',
            category=item.category or None,
            quantity=item.quantity,
            unit_price=item.unit_price,
            now=now,
        )
        result = select_discount_rule(candidate_rules, context)
        if result is not None:
            winners[item.pk] = result

    total_discount = ZERO
    with transaction.atomic():
        # Fixed order keeps concurrent checkouts from locking rules in opposite order
        claimed_rules = sorted({result.rule.id: result.rule for result in winners.values()}.values(),
                               key=lambda rule: rule.id)
        for rule in claimed_rules:
            consume_rule_usage(rule.id, rule.name, now=now)

        for item in order_items:
            result = winners.get(item.pk)
            if result is None:
                continue

            item.discount_amount = result.discount_amount
            item.save(update_fields=['discount_amount', 'amount', 'updated_at'])
            AppliedDiscount.objects.create(
                order=order,
                order_item=item,
                discount_rule_id=result.rule.id,
                rule_type=result.rule.rule_type,
                discount_amount=result.discount_amount,
                metadata={
                    'rule_name': result.rule.name,
                    'priority': result.rule.priority,
                    'quantity': item.quantity,
                    'unit_price': str(item.unit_price),
                }
            )
            total_discount += result.discount_amount

    if winners:
        logger.info(f"Applied {len(winners)} line discount(s) to order {order.order_number}: {total_discount}")
    return round_currency(total_discount)


def analyze_rule_for_cart(rule, contexts):
    """
    Display summary of one rule against a whole cart: whether it applies to
    any line, why not otherwise, and how much it could take off.
    """
    potential_discount = ZERO
    applied_to_items = []
    first_reason = None
    first_hint = None

    for context in contexts:
        is_applicable, reason, how_to_qualify = describe_eligibility(rule, context)
        if is_applicable and rule_matches(rule, context):
            amount = calculate_discount(rule, context)
            if amount > ZERO:
                potential_discount += amount
                applied_to_items.append(context.product_id)
                continue
        if first_reason is None:
            first_reason, first_hint = reason, how_to_qualify

    is_applicable = bool(applied_to_items)
    return {
        'rule_id': str(rule.id),
        'rule_name': rule.name,
        'rule_type': rule.rule_type,
        'description': rule.description,
        'priority': rule.priority,
        'is_applicable': is_applicable,
        'reason': 'Ready to apply' if is_applicable else (first_reason or 'No items in cart'),
        'how_to_qualify': None if is_applicable else first_hint,
        'potential_discount': str(round_currency(potential_discount)),
        'applied_to_items': applied_to_items,
    }


def preview_cart_discounts(contexts, use_cache: bool = True):
    """
    Work out the discounts a cart would get at checkout, without claiming
    any usage.

    Args:
        contexts: LineItemContext per cart line

    Returns:
        dict with keys: items, rules, subtotal, total_discount, final_amount
    """
    now = contexts[0].now if contexts else timezone.now()
    candidate_rules = get_candidate_rules(now=now, use_cache=use_cache)

    items = []
    subtotal = ZERO
    total_discount = ZERO
    for context in contexts:
        result = select_discount_rule(candidate_rules, context)
        discount_amount = result.discount_amount if result else ZERO
        subtotal += context.subtotal
        total_discount += discount_amount
        items.append({
            'product_id': context.product_id,
            'category': context.category,
            'quantity': context.quantity,
            'unit_price': str(context.unit_price),
            'subtotal': str(round_currency(context.subtotal)),
            'discount_amount': str(discount_amount),
            'rule_id': str(result.rule.id) if result else None,
            'rule_name': result.rule.name if result else None,
        })

    return {
        'items': items,
        'rules': [analyze_rule_for_cart(rule, contexts) for rule in candidate_rules],
        'subtotal': str(round_currency(subtotal)),
        'total_discount': str(round_currency(total_discount)),
        'final_amount': str(round_currency(subtotal - total_discount)),
    }
