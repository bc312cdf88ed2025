from django.core.validators import MinValueValidator
from django.db import models

from core.models import AbstractBaseModel
from products import CategoryType, PatchType


class Category(AbstractBaseModel):
    """
    Shop category. Discount rules scope on `name`, so it is unique.
    """
    name = models.CharField(max_length=120, unique=True)
    slug = models.SlugField(max_length=140, unique=True)
    category_type = models.CharField(
        max_length=20, choices=CategoryType.CHOICES, default=CategoryType.PRODUCT_TYPE
    )
    description = models.TextField(blank=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = "Category"
        verbose_name_plural = "Categories"
        ordering = ['display_order', 'name']

    def __str__(self) -> str:
        return self.name


class Patch(AbstractBaseModel):
    """Sleeve badge that can be added to a jersey for an extra charge."""
    title = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    patch_type = models.CharField(
        max_length=20, choices=PatchType.CHOICES, default=PatchType.OTHER
    )
    price = models.DecimalField(
        max_digits=10, decimal_places=2, default=3,
        validators=[MinValueValidator(0)],
    )
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = "Patch"
        verbose_name_plural = "Patches"
        ordering = ['sort_order', 'title']

    def __str__(self) -> str:
        return f"{self.title} ({self.price})"


class Product(AbstractBaseModel):
    title = models.CharField(max_length=250)
    description = models.TextField(blank=True)
    category = models.ForeignKey(
        Category,
        related_name="products",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    base_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=30,
        validators=[MinValueValidator(0)],
        help_text="Unit price of the plain jersey"
    )
    retro_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=35,
        validators=[MinValueValidator(0)],
    )
    shipping_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=0,
        validators=[MinValueValidator(0)],
        help_text="Charged once per order; the highest price among the ordered products applies"
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    is_retro = models.BooleanField(default=False)
    patches = models.ManyToManyField(
        Patch,
        related_name="products",
        blank=True,
        help_text="Patches customers may add to this jersey"
    )

    class Meta:
        verbose_name = "Product"
        verbose_name_plural = "Products"
        ordering = ['-created_at']

    def __str__(self) -> str:
        return self.title

    @property
    def unit_price(self):
        return self.retro_price if self.is_retro else self.base_price

    @property
    def category_name(self):
        return self.category.name if self.category else None
