import logging

from django.utils import timezone

from core.models import Address
from orders import OrderStatus
from orders.exceptions import InvalidStatusTransition, RefundNotAllowed

logger = logging.getLogger(__name__)


def create_shipping_address(user, shipping_address_details):
    country_code = shipping_address_details.get('country_code')

    address_data = dict(
        user=user,
        full_name=shipping_address_details['full_name'],
        address_line_1=shipping_address_details['address_line_1'],
        address_line_2=shipping_address_details.get('address_line_2', None),
        city=shipping_address_details['city'],
        state=shipping_address_details.get('state', ''),
        country=country_code.upper(),
        postal_code=shipping_address_details['postal_code'],
        phone=shipping_address_details.get('phone', ''),
    )
    address_obj = Address.objects.create(**address_data)
    return address_obj


def transition_order_status(order, new_status, user=None, reason=''):
    """
    Move an order to `new_status`, recording who cancelled it and when.
    Setting the current status again is a no-op.

    Raises:
        InvalidStatusTransition: if the move is not in the transition table
    """
    current = order.status
    if not OrderStatus.can_transition(current, new_status):
        raise InvalidStatusTransition(current, new_status)
    if current == new_status:
        return order

    order.status = new_status
    update_fields = ['status', 'updated_at']
    now = timezone.now()

    if new_status == OrderStatus.CANCELLED:
        order.cancelled_at = now
        order.cancelled_by = user
        order.cancellation_reason = reason or ''
        update_fields += ['cancelled_at', 'cancelled_by', 'cancellation_reason']
    elif new_status == OrderStatus.DELIVERED:
        order.delivered_at = now
        update_fields.append('delivered_at')

    order.save(update_fields=update_fields)
    logger.info(f"Order {order.order_number} moved from {current} to {new_status}")
    return order


def mark_order_refunded(order, refund_reference=''):
    """
    Record a refund made at the payment processor. The money itself is
    moved by the processor, not here.
    """
    if order.status != OrderStatus.CANCELLED:
        raise RefundNotAllowed(order.order_number, 'only cancelled orders can be refunded')
    if order.refunded:
        raise RefundNotAllowed(order.order_number, 'order has already been refunded')

    order.refunded = True
    order.refunded_at = timezone.now()
    order.refund_reference = refund_reference or ''
    order.save(update_fields=['refunded', 'refunded_at', 'refund_reference', 'updated_at'])
    logger.info(f"Order {order.order_number} marked as refunded")
    return order
