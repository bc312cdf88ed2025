"""
Rule matching and discount arithmetic for a single cart line.

Both functions are pure: they take a RuleDefinition and a LineItemContext
and never touch the database.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from discounts.rules import (
    QuantityBasedTerms,
    BuyXGetYTerms,
    PercentageOffTerms,
    FixedAmountOffTerms,
)

CURRENCY_PRECISION = Decimal('0.01')
ZERO = Decimal('0')
HUNDRED = Decimal('100')


def to_decimal(value, default=ZERO):
    """Coerce numbers/strings to Decimal; None or garbage becomes `default`."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def round_currency(amount):
    return to_decimal(amount).quantize(CURRENCY_PRECISION, rounding=ROUND_HALF_UP)


def _positive_int(value):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def is_rule_available(rule, now):
    """Active, not expired, and with uses left."""
    if not rule.is_active:
        return False
    if rule.expires_at is not None and now > rule.expires_at:
        return False
    if rule.max_uses is not None and rule.current_uses >= rule.max_uses:
        return False
    return True


def is_product_in_scope(rule, product_id, category):
    """
    Excluded products never match. Otherwise the product has to satisfy at
    least one non-empty inclusion list; with both lists empty the rule
    covers the whole catalog.
    """
    product_id = str(product_id)
    if product_id in rule.excluded_product_ids:
        return False

    inclusion_checks = []
    if rule.applicable_product_ids:
        inclusion_checks.append(product_id in rule.applicable_product_ids)
    if rule.applicable_categories:
        inclusion_checks.append(category is not None and category in rule.applicable_categories)

    if not inclusion_checks:
        return True
    return any(inclusion_checks)


def is_quantity_in_range(terms, quantity):
    min_quantity = _positive_int(terms.min_quantity)
    max_quantity = _positive_int(terms.max_quantity)
    if min_quantity is not None and quantity < min_quantity:
        return False
    if max_quantity is not None and quantity > max_quantity:
        return False
    return True


def rule_matches(rule, context):
    """Whether `rule` applies to the line described by `context`."""
    if not is_rule_available(rule, context.now):
        return False

    if not is_product_in_scope(rule, context.product_id, context.category):
        return False

    # buy_x_get_y thresholds only change the amount, see calculate_discount
    if isinstance(rule.terms, QuantityBasedTerms):
        return is_quantity_in_range(rule.terms, context.quantity)

    return True


def get_free_units(terms, quantity):
    """Units given away: one `get_free_quantity` batch per full buy+free group."""
    buy_quantity = _positive_int(terms.buy_quantity)
    get_free_quantity = _positive_int(terms.get_free_quantity)
    if buy_quantity is None or get_free_quantity is None:
        return 0

    group_size = buy_quantity + get_free_quantity
    return (quantity // group_size) * get_free_quantity


def calculate_discount(rule, context):
    """
    Discount for one line, rounded half-up to cents once at the end and
    clamped to [0, line subtotal].
    """
    terms = rule.terms
    subtotal = to_decimal(context.unit_price) * context.quantity

    if isinstance(terms, (PercentageOffTerms, QuantityBasedTerms)):
        amount = subtotal * to_decimal(terms.discount_percentage) / HUNDRED
    elif isinstance(terms, FixedAmountOffTerms):
        amount = min(to_decimal(terms.discount_amount), subtotal)
    elif isinstance(terms, BuyXGetYTerms):
        amount = get_free_units(terms, context.quantity) * to_decimal(context.unit_price)
    else:
        raise TypeError(f"Unsupported discount terms: {type(terms).__name__}")

    amount = min(max(amount, ZERO), subtotal)
    return round_currency(amount)


def describe_eligibility(rule, context):
    """
    Human readable reason why a rule does or does not apply to a line.
    Returns (is_applicable, reason, how_to_qualify).
    """
    if not rule.is_active:
        return False, 'Rule is not active', None
    if rule.expires_at is not None and context.now > rule.expires_at:
        return False, 'Rule has expired', None
    if rule.max_uses is not None and rule.current_uses >= rule.max_uses:
        return False, 'Usage limit reached', None

    if str(context.product_id) in rule.excluded_product_ids:
        return False, 'Product is excluded from this rule', None
    if not is_product_in_scope(rule, context.product_id, context.category):
        target = ' or '.join(sorted(rule.applicable_categories)) or 'eligible'
        return False, 'Product is not eligible for this rule', f'Add {target} items to your cart'

    terms = rule.terms
    if isinstance(terms, QuantityBasedTerms):
        min_quantity = _positive_int(terms.min_quantity)
        max_quantity = _positive_int(terms.max_quantity)
        if min_quantity is not None and context.quantity < min_quantity:
            needed = min_quantity - context.quantity
            return False, f'Need {needed} more item(s)', f'Add {needed} more item(s) to your cart'
        if max_quantity is not None and context.quantity > max_quantity:
            excess = context.quantity - max_quantity
            return False, f'Too many items (max: {max_quantity})', f'Remove {excess} item(s) from your cart'

    if isinstance(terms, BuyXGetYTerms) and get_free_units(terms, context.quantity) == 0:
        buy_quantity = _positive_int(terms.buy_quantity)
        get_free_quantity = _positive_int(terms.get_free_quantity)
        if buy_quantity is None or get_free_quantity is None:
            return False, 'Rule is misconfigured', None
        needed = buy_quantity + get_free_quantity - context.quantity
        return (
            False,
            f'Need {needed} more item(s)',
            f'Add {needed} more item(s) to get {get_free_quantity} free',
        )

    return True, 'Ready to apply', None
