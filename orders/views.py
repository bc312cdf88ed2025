import logging

from django.core.exceptions import ValidationError
from django.db import transaction, IntegrityError, DatabaseError
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from accounts.permissions import IsAdminRole
from core.utils import rest_api_formatter, Pagination
from discounts.exceptions import DiscountRuleUnavailable, CouponUnavailable
from orders import OrderStatus
from orders.exceptions import InvalidStatusTransition, RefundNotAllowed
from orders.models import Order
from orders.serializers import (
    OrderSerializer,
    OrderDetailSerializer,
    OrderListSerializer,
    OrderUpdateSerializer,
    OrderCancelSerializer,
    OrderRefundSerializer,
)
from orders.utils import transition_order_status, mark_order_refunded
from products.exceptions import OutOfStock

logger = logging.getLogger(__name__)


def get_order_for_user(user, order_id):
    """Admins see every order; everyone else only their own."""
    queryset = Order.objects.prefetch_related(
        'order_items__applied_discount'
    ).select_related('user', 'shipping_address')
    if user.is_admin:
        return queryset.get(id=order_id)
    return queryset.get(id=order_id, user=user)


def order_not_found_response():
    return rest_api_formatter(
        data=None,
        status_code=status.HTTP_404_NOT_FOUND,
        success=False,
        message='Order not found',
        error_code='NOT_FOUND',
        error_message='Order does not exist or you do not have permission to view it'
    )


def database_error_response():
    return rest_api_formatter(
        data=None,
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        success=False,
        message='Service temporarily unavailable',
        error_code='DATABASE_ERROR',
        error_message='Please try again later'
    )


class OrderCheckoutView(APIView):
    """
    API view for creating an order (Checkout).

    POST /api/orders/checkout/
    Accepts: { items: [{product_id, quantity, customization}], shipping_address_id | shipping_address,
               coupon_code, payment_intent_id }
    Returns: Complete order details with items and discount breakdown
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        """Create a new order with items."""
        user_id = request.user.id
        logger.info(f"Checkout initiated by user ID: {user_id}")

        serializer = OrderSerializer(
            data=request.data,
            context={'user': request.user}
        )
        if not serializer.is_valid():
            logger.warning(f"Checkout validation failed for user ID: {user_id}: {serializer.errors}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_400_BAD_REQUEST,
                success=False,
                message='Validation failed',
                error_code='VALIDATION_ERROR',
                error_message='Invalid input data',
                error_fields=serializer.errors
            )

        try:
            with transaction.atomic():
                order = serializer.save()

        except (DiscountRuleUnavailable, CouponUnavailable) as e:
            logger.warning(f"Checkout rolled back for user ID: {user_id}: {str(e)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_409_CONFLICT,
                success=False,
                message='A discount is no longer available, please review your cart',
                error_code=e.error_code,
                error_message=str(e)
            )

        except OutOfStock as e:
            logger.warning(f"Checkout rolled back for user ID: {user_id}: {str(e)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_409_CONFLICT,
                success=False,
                message='Not enough stock for one or more items',
                error_code=e.error_code,
                error_message=str(e)
            )

        except IntegrityError as e:
            logger.error(f"Checkout integrity error for user ID: {user_id}: {str(e)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_409_CONFLICT,
                success=False,
                message='Order could not be created due to a conflict',
                error_code='INTEGRITY_ERROR',
                error_message='Please try again'
            )

        except DatabaseError as e:
            logger.critical(f"Database error during checkout for user ID: {user_id}: {str(e)}")
            return database_error_response()

        logger.info(f"Order created successfully: {order.order_number} for user ID: {user_id}")
        return rest_api_formatter(
            data=OrderDetailSerializer(get_order_for_user(request.user, order.id)).data,
            status_code=status.HTTP_201_CREATED,
            success=True,
            message='Order created successfully'
        )


class OrderDetailView(APIView):
    """
    API view for order details.

    GET /api/orders/{id}/    owner or admin
    PATCH /api/orders/{id}/  admin: status and/or tracking code
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, order_id):
        """Retrieve order details (user can only see their own orders, admins can see all)."""
        user_id = request.user.id
        logger.info(f"Order detail requested - Order ID: {order_id}, User ID: {user_id}")

        try:
            order = get_order_for_user(request.user, order_id)
        except Order.DoesNotExist:
            logger.warning(f"Order not found - Order ID: {order_id}, User ID: {user_id}")
            return order_not_found_response()
        except DatabaseError as e:
            logger.critical(f"Database error retrieving order {order_id}: {str(e)}")
            return database_error_response()

        logger.debug(f"Order {order_id} retrieved successfully for user ID: {user_id}")
        return rest_api_formatter(
            data=OrderDetailSerializer(order).data,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Order retrieved successfully'
        )

    def patch(self, request, order_id):
        if not request.user.is_admin:
            logger.warning(f"Order update denied for user ID: {request.user.id}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_403_FORBIDDEN,
                success=False,
                message='Admin access required',
                error_code='FORBIDDEN',
                error_message='Only administrators can update orders'
            )

        serializer = OrderUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_400_BAD_REQUEST,
                success=False,
                message='Validation failed',
                error_code='VALIDATION_ERROR',
                error_message='Invalid input data',
                error_fields=serializer.errors
            )
        data = serializer.validated_data
        logger.info(f"Order update requested - Order ID: {order_id}, changes: {dict(data)}")

        try:
            with transaction.atomic():
                order = Order.objects.select_for_update().get(id=order_id)
                if 'tracking_code' in data:
                    order.tracking_code = data['tracking_code']
                    order.save(update_fields=['tracking_code', 'updated_at'])
                if 'status' in data:
                    transition_order_status(
                        order, data['status'], user=request.user,
                        reason=data.get('cancellation_reason', '')
                    )

        except Order.DoesNotExist:
            logger.warning(f"Order not found for update - Order ID: {order_id}")
            return order_not_found_response()

        except InvalidStatusTransition as e:
            logger.warning(f"Rejected status change for order {order_id}: {str(e)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_400_BAD_REQUEST,
                success=False,
                message='Invalid status transition',
                error_code=e.error_code,
                error_message=str(e)
            )

        except DatabaseError as e:
            logger.critical(f"Database error updating order {order_id}: {str(e)}")
            return database_error_response()

        return rest_api_formatter(
            data=OrderDetailSerializer(get_order_for_user(request.user, order_id)).data,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Order updated successfully'
        )


class OrderCancelView(APIView):
    """
    POST /api/orders/{id}/cancel/

    Customers may cancel their own orders while pending or processing;
    admins may cancel any order the transition table allows.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, order_id):
        user = request.user
        logger.info(f"Order cancel requested - Order ID: {order_id}, User ID: {user.id}")

        serializer = OrderCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            with transaction.atomic():
                order = get_order_for_user(user, order_id)
                order = Order.objects.select_for_update().get(id=order.id)

                if not user.is_admin and order.status not in OrderStatus.CUSTOMER_CANCELLABLE:
                    raise InvalidStatusTransition(order.status, OrderStatus.CANCELLED)

                transition_order_status(
                    order, OrderStatus.CANCELLED, user=user,
                    reason=serializer.validated_data['reason']
                )

        except Order.DoesNotExist:
            logger.warning(f"Order not found for cancel - Order ID: {order_id}, User ID: {user.id}")
            return order_not_found_response()

        except InvalidStatusTransition as e:
            logger.warning(f"Order {order_id} cannot be cancelled: {str(e)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_400_BAD_REQUEST,
                success=False,
                message='Order can no longer be cancelled',
                error_code=e.error_code,
                error_message=str(e)
            )

        return rest_api_formatter(
            data=OrderDetailSerializer(get_order_for_user(user, order_id)).data,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Order cancelled successfully'
        )


class OrderRefundView(APIView):
    """POST /api/orders/{id}/refund/ (admin). Records a processor refund."""
    permission_classes = [IsAuthenticated, IsAdminRole]

    def post(self, request, order_id):
        logger.info(f"Order refund requested - Order ID: {order_id}, by: {request.user.email}")

        serializer = OrderRefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            with transaction.atomic():
                order = Order.objects.select_for_update().get(id=order_id)
                mark_order_refunded(order, serializer.validated_data['refund_reference'])

        except Order.DoesNotExist:
            logger.warning(f"Order not found for refund - Order ID: {order_id}")
            return order_not_found_response()

        except RefundNotAllowed as e:
            logger.warning(str(e))
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_400_BAD_REQUEST,
                success=False,
                message='Order cannot be refunded',
                error_code=e.error_code,
                error_message=str(e)
            )

        return rest_api_formatter(
            data=OrderDetailSerializer(get_order_for_user(request.user, order_id)).data,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Order marked as refunded'
        )


class OrderListView(APIView):
    """
    API view for listing orders.

    GET /api/orders/
    - For regular users: Returns their own orders
    - For admins: Returns all orders (with optional filters)

    Query params (admin only):
    - status: Filter by status
    - user_id: Filter by user ID
    """
    permission_classes = [IsAuthenticated]

    def get_queryset(self, request):
        user = request.user

        if user.is_admin:
            queryset = Order.objects.filter(is_active=True)

            status_filter = request.query_params.get('status')
            if status_filter:
                queryset = queryset.filter(status=status_filter)

            user_filter = request.query_params.get('user_id')
            if user_filter:
                queryset = queryset.filter(user_id=user_filter)
        else:
            queryset = Order.objects.filter(user=user, is_active=True)

        return queryset.select_related('user').prefetch_related('order_items').order_by('-created_at')

    def get(self, request):
        """List orders for the authenticated user."""
        user_id = request.user.id
        logger.info(f"Order list requested by user ID: {user_id}")

        try:
            paginator = Pagination()
            queryset = self.get_queryset(request)
            page = paginator.paginate_queryset(queryset, request, view=self)
            data = OrderListSerializer(page, many=True).data

            logger.debug(f"Retrieved {paginator.page.paginator.count} orders for user ID: {user_id}")
            return paginator.get_paginated_response(data)

        except ValidationError:
            logger.warning(f"Invalid order list filters from user ID: {user_id}: {dict(request.query_params)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_400_BAD_REQUEST,
                success=False,
                message='Invalid filter value',
                error_code='VALIDATION_ERROR',
                error_message='user_id must be a valid UUID'
            )

        except DatabaseError as e:
            logger.critical(f"Database error listing orders for user ID: {user_id}: {str(e)}")
            return database_error_response()
