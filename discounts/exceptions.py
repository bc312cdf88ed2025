class DiscountError(Exception):
    """Base class for discount failures scoped to a single request."""
    error_code = 'DISCOUNT_ERROR'


class DiscountRuleUnavailable(DiscountError):
    """The usage cap was reached (or the rule was disabled) before we could claim a use."""
    error_code = 'DISCOUNT_RULE_UNAVAILABLE'

    def __init__(self, rule_id, rule_name=None):
        self.rule_id = str(rule_id)
        self.rule_name = rule_name
        super().__init__(f"Discount rule {rule_name or self.rule_id} is no longer available")


class InvalidCoupon(DiscountError):
    """Unknown, inactive or expired coupon code."""
    error_code = 'INVALID_COUPON'

    def __init__(self, code):
        self.code = code
        super().__init__(f"Invalid or expired coupon code: {code}")


class CouponUnavailable(DiscountError):
    """Coupon usage cap reached."""
    error_code = 'COUPON_UNAVAILABLE'

    def __init__(self, code):
        self.code = code
        super().__init__(f"Coupon {code} has reached its maximum usage limit")


class ProductLookupError(DiscountError):
    """Line item references a product we cannot price."""
    error_code = 'PRODUCT_NOT_FOUND'

    def __init__(self, product_id):
        self.product_id = str(product_id)
        super().__init__(f"Product not found: {product_id}")
