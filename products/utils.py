"""
Catalog lookups, line pricing and stock reservation.
"""
import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db.models import F, Prefetch

from products import JerseyExtra
from products.exceptions import OutOfStock
from products.models import Patch, Product

logger = logging.getLogger(__name__)


def get_product(product_id):
    """Return the active product with this id, or None."""
    if not product_id:
        return None
    try:
        return Product.active_objects.select_related('category').get(pk=product_id)
    except (Product.DoesNotExist, ValidationError, ValueError):
        logger.debug(f"Catalog lookup miss for product ID: {product_id}")
        return None


def get_products_for_checkout(product_ids):
    """Active products by id, each with only its active patches prefetched."""
    return Product.active_objects.select_related('category').prefetch_related(
        Prefetch('patches', queryset=Patch.active_objects.all())
    ).in_bulk(list(product_ids))


def get_line_unit_price(product, patches=(), extras=()):
    """
    Price of one customized jersey: the base or retro price, plus every
    selected patch, plus the extras in `JerseyExtra.PRICES`.
    """
    price = product.unit_price
    price += sum((patch.price for patch in patches), Decimal('0'))
    price += sum((Decimal(JerseyExtra.PRICES[extra]) for extra in extras), Decimal('0'))
    return price


def reserve_stock(quantities):
    """
    Take units out of stock, `quantities` being {product_id: units}.

    Each row is updated only while it still holds enough units, in product
    id order. Must run inside the checkout transaction.

    Raises:
        OutOfStock: if a product has fewer units left than requested
    """
    for product_id in sorted(quantities, key=str):
        requested = quantities[product_id]
        updated = Product.objects.filter(
            pk=product_id, stock_quantity__gte=requested
        ).update(stock_quantity=F('stock_quantity') - requested)

        if updated == 0:
            logger.warning(f"Stock too low for product {product_id}: {requested} requested")
            raise OutOfStock(product_id, requested)

        logger.debug(f"Reserved {requested} units of product {product_id}")
