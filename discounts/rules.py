"""
Plain value objects the discount engine works on.

A DiscountRule row carries every type-specific column; `RuleDefinition`
keeps only the ones that matter for its type, as one of the four `*Terms`
classes. The matcher and calculator never look at the database model.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import FrozenSet, Optional, Union

from discounts import DiscountRuleType


@dataclass(frozen=True)
class QuantityBasedTerms:
    discount_percentage: Optional[Decimal]
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None

    rule_type = DiscountRuleType.QUANTITY_BASED


@dataclass(frozen=True)
class BuyXGetYTerms:
    buy_quantity: Optional[int]
    get_free_quantity: Optional[int]

    rule_type = DiscountRuleType.BUY_X_GET_Y


@dataclass(frozen=True)
class PercentageOffTerms:
    discount_percentage: Optional[Decimal]

    rule_type = DiscountRuleType.PERCENTAGE_OFF


@dataclass(frozen=True)
class FixedAmountOffTerms:
    discount_amount: Optional[Decimal]

    rule_type = DiscountRuleType.FIXED_AMOUNT_OFF


RuleTerms = Union[QuantityBasedTerms, BuyXGetYTerms, PercentageOffTerms, FixedAmountOffTerms]


def build_terms(rule_type, values):
    """
    Build the terms object for `rule_type` from a mapping of column values.
    Columns that belong to other types are ignored.
    """
    if rule_type == DiscountRuleType.QUANTITY_BASED:
        return QuantityBasedTerms(
            discount_percentage=values.get('discount_percentage'),
            min_quantity=values.get('min_quantity'),
            max_quantity=values.get('max_quantity'),
        )
    if rule_type == DiscountRuleType.BUY_X_GET_Y:
        return BuyXGetYTerms(
            buy_quantity=values.get('buy_quantity'),
            get_free_quantity=values.get('get_free_quantity'),
        )
    if rule_type == DiscountRuleType.PERCENTAGE_OFF:
        return PercentageOffTerms(discount_percentage=values.get('discount_percentage'))
    if rule_type == DiscountRuleType.FIXED_AMOUNT_OFF:
        return FixedAmountOffTerms(discount_amount=values.get('discount_amount'))
    raise ValueError(f"Unknown discount rule type: {rule_type}")


@dataclass(frozen=True)
class RuleDefinition:
    id: str
    name: str
    terms: RuleTerms
    priority: int = 1
    is_active: bool = True
    expires_at: Optional[datetime] = None
    max_uses: Optional[int] = None
    current_uses: int = 0
    applicable_categories: FrozenSet[str] = field(default_factory=frozenset)
    applicable_product_ids: FrozenSet[str] = field(default_factory=frozenset)
    excluded_product_ids: FrozenSet[str] = field(default_factory=frozenset)
    description: str = ''

    @property
    def rule_type(self):
        return self.terms.rule_type

    @property
    def sort_key(self):
        """Highest priority first, then lowest id."""
        return (-self.priority, str(self.id))


@dataclass(frozen=True)
class LineItemContext:
    """One cart line as seen by the matcher and calculator."""
    product_id: str
    category: Optional[str]
    quantity: int
    unit_price: Decimal
    now: datetime

    @property
    def subtotal(self):
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class DiscountResult:
    """The rule that won a line item and what it takes off."""
    rule: RuleDefinition
    context: LineItemContext
    discount_amount: Decimal

    def as_dict(self):
        return {
            'rule_id': str(self.rule.id),
            'rule_name': self.rule.name,
            'rule_type': self.rule.rule_type,
            'priority': self.rule.priority,
            'product_id': self.context.product_id,
            'quantity': self.context.quantity,
            'subtotal': str(self.context.subtotal),
            'discount_amount': str(self.discount_amount),
        }
