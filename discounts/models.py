from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.db.models import Q, F

from core.models import AbstractUUID, AbstractMonitor, AbstractBaseModel
from discounts import DiscountRuleType, MIN_PRIORITY, MAX_PRIORITY
from discounts.rules import RuleDefinition, build_terms


class DiscountRule(AbstractUUID, AbstractMonitor):
    """
    Automatic discount evaluated against each cart line.

    Only the columns listed in DiscountRuleType.FIELDS for `rule_type`
    are meaningful; the others are kept as-is but ignored.
    Empty inclusion lists mean "every product".
    """
    name = models.CharField(max_length=100)
    description = models.TextField(max_length=500)
    rule_type = models.CharField(
        max_length=20, choices=DiscountRuleType.CHOICES, db_index=True
    )
    is_active = models.BooleanField(default=True, db_index=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    max_uses = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1)]
    )
    current_uses = models.PositiveIntegerField(default=0)
    priority = models.PositiveIntegerField(
        default=MIN_PRIORITY,
        validators=[MinValueValidator(MIN_PRIORITY), MaxValueValidator(MAX_PRIORITY)],
        help_text="Higher priority wins when several rules match the same item"
    )

    # quantity_based
    min_quantity = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1)]
    )
    max_quantity = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1)]
    )
    # quantity_based, percentage_off
    discount_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    # fixed_amount_off
    discount_amount = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)]
    )
    # buy_x_get_y
    buy_quantity = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1)]
    )
    get_free_quantity = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1)]
    )

    applicable_categories = models.JSONField(default=list, blank=True)
    applicable_product_ids = models.JSONField(default=list, blank=True)
    excluded_product_ids = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ['-priority', 'id']
        verbose_name = 'Discount Rule'
        verbose_name_plural = 'Discount Rules'
        constraints = [
            models.CheckConstraint(
                condition=Q(max_uses__isnull=True) | Q(current_uses__lte=F('max_uses')),
                name='discount_rule_uses_within_cap',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_rule_type_display()})"

    @property
    def remaining_uses(self):
        if self.max_uses is None:
            return None
        return max(self.max_uses - self.current_uses, 0)

    def get_terms(self):
        return build_terms(self.rule_type, {
            name: getattr(self, name) for name in DiscountRuleType.ALL_TERM_FIELDS
        })

    def to_definition(self):
        """Snapshot of this row for the discount engine."""
        return RuleDefinition(
            id=str(self.id),
            name=self.name,
            description=self.description,
            terms=self.get_terms(),
            priority=self.priority,
            is_active=self.is_active,
            expires_at=self.expires_at,
            max_uses=self.max_uses,
            current_uses=self.current_uses,
            applicable_categories=frozenset(str(c) for c in self.applicable_categories or []),
            applicable_product_ids=frozenset(str(p) for p in self.applicable_product_ids or []),
            excluded_product_ids=frozenset(str(p) for p in self.excluded_product_ids or []),
        )


class Coupon(AbstractUUID, AbstractMonitor):
    """Order-wide percentage coupon redeemed with a code at checkout."""
    code = models.CharField(max_length=50, unique=True)
    description = models.CharField(max_length=255, blank=True)
    discount_percentage = models.DecimalField(
        max_digits=5, decimal_places=2,
        validators=[MinValueValidator(1), MaxValueValidator(100)]
    )
    expires_at = models.DateTimeField()
    is_active = models.BooleanField(default=True, db_index=True)
    max_uses = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1)]
    )
    current_uses = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=Q(max_uses__isnull=True) | Q(current_uses__lte=F('max_uses')),
                name='coupon_uses_within_cap',
            ),
        ]

    def __str__(self):
        return f"{self.code} ({self.discount_percentage}%)"

    def save(self, *args, **kwargs):
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)


class AppliedDiscount(AbstractBaseModel):
    """Record of the rule that discounted one order line."""
    order = models.ForeignKey(
        'orders.Order', on_delete=models.CASCADE, related_name='applied_discounts'
    )
    order_item = models.OneToOneField(
        'orders.OrderItem', on_delete=models.CASCADE, related_name='applied_discount'
    )
    discount_rule = models.ForeignKey(
        DiscountRule, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='applications'
    )
    rule_type = models.CharField(max_length=20, choices=DiscountRuleType.CHOICES)
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2)
    metadata = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ('-created_at',)
        verbose_name = 'Applied Discount'
        verbose_name_plural = 'Applied Discounts'
