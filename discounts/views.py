import logging
import uuid

from django.db import IntegrityError, DatabaseError
from django.http import Http404
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.filters import SearchFilter, OrderingFilter
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.views import APIView

from accounts.permissions import IsAdminRole, CanUseCoupons
from core.utils import rest_api_formatter, Pagination
from discounts.cache import invalidate_discount_cache
from discounts.exceptions import ProductLookupError, InvalidCoupon, CouponUnavailable
from discounts.models import DiscountRule, AppliedDiscount, Coupon
from discounts.serializers import (
    DiscountRuleSerializer,
    DiscountRuleListSerializer,
    AppliedDiscountSerializer,
    CouponSerializer,
    CouponValidateSerializer,
    LineItemSerializer,
    CartCheckSerializer,
)
from discounts.utils import (
    get_available_rules_queryset,
    get_candidate_rules,
    select_discount_rule,
    build_line_context,
    preview_cart_discounts,
    get_valid_coupon,
)

logger = logging.getLogger(__name__)


def database_error_response():
    return rest_api_formatter(
        data=None,
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        success=False,
        message='Service temporarily unavailable',
        error_code='DATABASE_ERROR',
        error_message='Please try again later'
    )


def validation_error_response(message, errors):
    return rest_api_formatter(
        data=None,
        status_code=status.HTTP_400_BAD_REQUEST,
        success=False,
        message=message,
        error_code='VALIDATION_ERROR',
        error_message='Please check the submitted data',
        error_fields=errors
    )


def not_found_response(message, error_message):
    return rest_api_formatter(
        data=None,
        status_code=status.HTTP_404_NOT_FOUND,
        success=False,
        message=message,
        error_code='NOT_FOUND',
        error_message=error_message
    )


class DiscountRuleViewSet(viewsets.ModelViewSet):
    """
    ViewSet for managing Discount Rules (admin only).

    Provides CRUD operations for discount rules:
    - list: Get all discount rules (with filtering)
    - create: Create a new discount rule
    - retrieve: Get a specific discount rule
    - update: Update a discount rule
    - partial_update: Partially update a discount rule
    - destroy: Delete a discount rule (applied discounts keep their history)

    Every write drops the cached active rule IDs.
    """
    queryset = DiscountRule.objects.all()
    serializer_class = DiscountRuleSerializer
    permission_classes = [IsAuthenticated, IsAdminRole]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_fields = ['rule_type', 'is_active']
    search_fields = ['name', 'description']
    ordering_fields = ['priority', 'created_at', 'expires_at', 'current_uses']
    ordering = ['-priority', 'id']

    def get_serializer_class(self):
        """Use lightweight serializer for list action."""
        if self.action in ('list', 'active'):
            return DiscountRuleListSerializer
        return DiscountRuleSerializer

    def list(self, request, *args, **kwargs):
        """List all discount rules with optional filtering."""
        logger.info(f"Discount rules list requested by user: {request.user.email}")

        try:
            queryset = self.filter_queryset(self.get_queryset())
            serializer = self.get_serializer(queryset, many=True)

            logger.debug(f"Retrieved {len(serializer.data)} discount rules")
            return rest_api_formatter(
                data=serializer.data,
                status_code=status.HTTP_200_OK,
                success=True,
                message='Discount rules retrieved successfully'
            )

        except DatabaseError as e:
            logger.critical(f"Database error listing discount rules: {str(e)}")
            return database_error_response()

    def create(self, request, *args, **kwargs):
        """Create a new discount rule."""
        logger.info(f"Discount rule creation by user: {request.user.email}")

        try:
            serializer = self.get_serializer(data=request.data)

            if serializer.is_valid():
                discount_rule = serializer.save()
                invalidate_discount_cache()

                logger.info(f"Discount rule created: {discount_rule.name} (ID: {discount_rule.id})")
                return rest_api_formatter(
                    data=DiscountRuleSerializer(discount_rule).data,
                    status_code=status.HTTP_201_CREATED,
                    success=True,
                    message='Discount rule created successfully'
                )

            logger.warning(f"Discount rule validation failed: {serializer.errors}")
            return validation_error_response('Failed to create discount rule', serializer.errors)

        except IntegrityError as e:
            logger.error(f"Integrity error creating discount rule: {str(e)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_409_CONFLICT,
                success=False,
                message='Discount rule could not be created due to a conflict',
                error_code='INTEGRITY_ERROR',
                error_message='A discount rule with similar properties may already exist'
            )

        except DatabaseError as e:
            logger.critical(f"Database error creating discount rule: {str(e)}")
            return database_error_response()

    def retrieve(self, request, *args, **kwargs):
        """Retrieve a specific discount rule."""
        rule_id = kwargs.get('pk')
        logger.info(f"Discount rule retrieve requested - ID: {rule_id}")

        try:
            instance = self.get_object()
        except Http404:
            logger.warning(f"Discount rule not found - ID: {rule_id}")
            return not_found_response('Discount rule not found', 'The requested discount rule does not exist')

        serializer = self.get_serializer(instance)
        logger.debug(f"Discount rule {rule_id} retrieved successfully")
        return rest_api_formatter(
            data=serializer.data,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Discount rule retrieved successfully'
        )

    def update(self, request, *args, **kwargs):
        """Update a discount rule."""
        partial = kwargs.pop('partial', False)
        rule_id = kwargs.get('pk')
        logger.info(f"Discount rule update requested - ID: {rule_id}, Partial: {partial}")

        try:
            instance = self.get_object()
        except Http404:
            logger.warning(f"Discount rule not found for update - ID: {rule_id}")
            return not_found_response('Discount rule not found', 'The requested discount rule does not exist')

        try:
            serializer = self.get_serializer(instance, data=request.data, partial=partial)

            if serializer.is_valid():
                discount_rule = serializer.save()
                invalidate_discount_cache()

                logger.info(f"Discount rule updated: {discount_rule.name} (ID: {discount_rule.id})")
                return rest_api_formatter(
                    data=DiscountRuleSerializer(discount_rule).data,
                    status_code=status.HTTP_200_OK,
                    success=True,
                    message='Discount rule updated successfully'
                )

            logger.warning(f"Discount rule update validation failed - ID: {rule_id}: {serializer.errors}")
            return validation_error_response('Failed to update discount rule', serializer.errors)

        except IntegrityError as e:
            logger.error(f"Integrity error updating discount rule {rule_id}: {str(e)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_409_CONFLICT,
                success=False,
                message='Update failed due to a conflict',
                error_code='INTEGRITY_ERROR',
                error_message='Please check the data and try again'
            )

        except DatabaseError as e:
            logger.critical(f"Database error updating discount rule {rule_id}: {str(e)}")
            return database_error_response()

    def destroy(self, request, *args, **kwargs):
        """Delete a discount rule. Applied discounts keep a null reference."""
        rule_id = kwargs.get('pk')
        logger.info(f"Discount rule delete requested - ID: {rule_id}")

        try:
            instance = self.get_object()
        except Http404:
            logger.warning(f"Discount rule not found for delete - ID: {rule_id}")
            return not_found_response('Discount rule not found', 'The requested discount rule does not exist')

        try:
            rule_name = instance.name
            instance.delete()
            invalidate_discount_cache()

            logger.info(f"Discount rule deleted: {rule_name} (ID: {rule_id})")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_200_OK,
                success=True,
                message='Discount rule deleted successfully'
            )

        except DatabaseError as e:
            logger.critical(f"Database error deleting discount rule {rule_id}: {str(e)}")
            return database_error_response()

    @action(detail=False, methods=['get'])
    def active(self, request):
        """Get only the rules checkout would consider right now."""
        logger.info(f"Active discount rules requested by user: {request.user.email}")

        try:
            queryset = get_available_rules_queryset(timezone.now()).order_by('-priority', 'id')
            serializer = self.get_serializer(queryset, many=True)

            logger.debug(f"Retrieved {len(serializer.data)} active discount rules")
            return rest_api_formatter(
                data=serializer.data,
                status_code=status.HTTP_200_OK,
                success=True,
                message='Active discount rules retrieved successfully'
            )

        except DatabaseError as e:
            logger.critical(f"Database error retrieving active discount rules: {str(e)}")
            return database_error_response()


class DiscountRuleLookupView(APIView):
    """
    Public lookup of rules for display, e.g. ``?ids=<uuid>,<uuid>``.
    Only rules checkout would currently consider are returned; without
    ``ids`` every such rule is returned.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        raw_ids = request.query_params.get('ids', '')
        logger.info(f"Discount rule lookup requested - IDs: {raw_ids or 'all'}")

        rule_ids = []
        for raw_id in filter(None, (part.strip() for part in raw_ids.split(','))):
            try:
                rule_ids.append(uuid.UUID(raw_id))
            except ValueError:
                logger.debug(f"Ignoring malformed discount rule id: {raw_id}")

        try:
            queryset = get_available_rules_queryset(timezone.now())
            if raw_ids:
                queryset = queryset.filter(id__in=rule_ids)
            serializer = DiscountRuleListSerializer(queryset.order_by('-priority', 'id'), many=True)

            return rest_api_formatter(
                data=serializer.data,
                status_code=status.HTTP_200_OK,
                success=True,
                message='Discount rules retrieved successfully'
            )

        except DatabaseError as e:
            logger.critical(f"Database error looking up discount rules: {str(e)}")
            return database_error_response()


class DiscountEvaluateView(APIView):
    """
    Evaluate a single cart line against the active rules.

    Returns the winning rule and the amount it takes off, or ``rule_id: null``
    when nothing applies. Usage is never consumed here.
    """
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = LineItemSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Discount evaluation validation failed: {serializer.errors}")
            return validation_error_response('Invalid line item', serializer.errors)

        data = serializer.validated_data
        logger.info(f"Discount evaluation requested - product: {data['product_id']}, quantity: {data['quantity']}")

        try:
            context = build_line_context(
                product_id=data['product_id'],
                quantity=data['quantity'],
                unit_price=data.get('unit_price'),
                category=data.get('category'),
            )
            result = select_discount_rule(get_candidate_rules(now=context.now), context)

        except ProductLookupError as e:
            logger.warning(str(e))
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_404_NOT_FOUND,
                success=False,
                message='Product not found',
                error_code=e.error_code,
                error_message=str(e)
            )

        except DatabaseError as e:
            logger.critical(f"Database error evaluating discount: {str(e)}")
            return database_error_response()

        if result is None:
            return rest_api_formatter(
                data={
                    'product_id': context.product_id,
                    'quantity': context.quantity,
                    'subtotal': str(context.subtotal),
                    'discount_amount': '0.00',
                    'rule_id': None,
                },
                status_code=status.HTTP_200_OK,
                success=True,
                message='No discount applies to this item'
            )

        logger.debug(f"Rule {result.rule.id} wins product {context.product_id}: {result.discount_amount}")
        return rest_api_formatter(
            data=result.as_dict(),
            status_code=status.HTTP_200_OK,
            success=True,
            message='Discount calculated successfully'
        )


class CartDiscountCheckView(APIView):
    """Preview of every line discount plus a per-rule eligibility breakdown."""
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = CartCheckSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Cart check validation failed: {serializer.errors}")
            return validation_error_response('Invalid cart', serializer.errors)

        items = serializer.validated_data['items']
        logger.info(f"Cart discount check requested for {len(items)} item(s)")

        try:
            now = timezone.now()
            contexts = [
                build_line_context(
                    product_id=item['product_id'],
                    quantity=item['quantity'],
                    unit_price=item.get('unit_price'),
                    category=item.get('category'),
                    now=now,
                )
                for item in items
            ]
            preview = preview_cart_discounts(contexts)

        except ProductLookupError as e:
            logger.warning(str(e))
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_404_NOT_FOUND,
                success=False,
                message='Product not found',
                error_code=e.error_code,
                error_message=str(e)
            )

        except DatabaseError as e:
            logger.critical(f"Database error checking cart discounts: {str(e)}")
            return database_error_response()

        return rest_api_formatter(
            data=preview,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Cart discounts calculated successfully'
        )


class AppliedDiscountViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for viewing Applied Discounts (read-only).
    Applied discounts are created automatically when orders are placed.
    Uses Pagination class from core.utils (20 items per page).
    """
    queryset = AppliedDiscount.objects.all()
    serializer_class = AppliedDiscountSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = Pagination

    def get_queryset(self):
        """Filter applied discounts by user's orders."""
        user = self.request.user
        queryset = AppliedDiscount.objects.select_related(
            'order', 'order_item', 'discount_rule'
        ).filter(is_active=True)
        if not user.is_admin:
            queryset = queryset.filter(order__user=user)
        return queryset.order_by('-created_at')

    def list(self, request, *args, **kwargs):
        """List applied discounts with pagination."""
        logger.info(f"Applied discounts list requested by user: {request.user.email}")

        try:
            queryset = self.filter_queryset(self.get_queryset())

            page = self.paginate_queryset(queryset)
            if page is not None:
                serializer = self.get_serializer(page, many=True)
                return self.get_paginated_response(serializer.data)

            serializer = self.get_serializer(queryset, many=True)
            return rest_api_formatter(
                data=serializer.data,
                status_code=status.HTTP_200_OK,
                success=True,
                message='Applied discounts retrieved successfully'
            )

        except DatabaseError as e:
            logger.critical(f"Database error listing applied discounts: {str(e)}")
            return database_error_response()

    def retrieve(self, request, *args, **kwargs):
        """Retrieve a specific applied discount."""
        discount_id = kwargs.get('pk')
        logger.info(f"Applied discount retrieve requested - ID: {discount_id}")

        try:
            instance = get_object_or_404(self.get_queryset(), pk=discount_id)
        except Http404:
            logger.warning(f"Applied discount not found - ID: {discount_id}")
            return not_found_response('Applied discount not found', 'The requested applied discount does not exist')

        serializer = self.get_serializer(instance)
        return rest_api_formatter(
            data=serializer.data,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Applied discount retrieved successfully'
        )


class CouponViewSet(viewsets.ModelViewSet):
    """Admin management of order-wide coupons."""
    queryset = Coupon.objects.all()
    serializer_class = CouponSerializer
    permission_classes = [IsAuthenticated, IsAdminRole]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_fields = ['is_active']
    search_fields = ['code', 'description']
    ordering_fields = ['created_at', 'expires_at', 'discount_percentage']
    ordering = ['-created_at']

    def list(self, request, *args, **kwargs):
        logger.info(f"Coupon list requested by user: {request.user.email}")
        serializer = self.get_serializer(self.filter_queryset(self.get_queryset()), many=True)
        return rest_api_formatter(
            data=serializer.data,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Coupons retrieved successfully'
        )

    def create(self, request, *args, **kwargs):
        logger.info(f"Coupon creation by user: {request.user.email}")
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Coupon validation failed: {serializer.errors}")
            return validation_error_response('Failed to create coupon', serializer.errors)

        try:
            coupon = serializer.save()
        except IntegrityError as e:
            logger.error(f"Integrity error creating coupon: {str(e)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_409_CONFLICT,
                success=False,
                message='Coupon could not be created due to a conflict',
                error_code='INTEGRITY_ERROR',
                error_message='A coupon with this code may already exist'
            )

        logger.info(f"Coupon created: {coupon.code}")
        return rest_api_formatter(
            data=self.get_serializer(coupon).data,
            status_code=status.HTTP_201_CREATED,
            success=True,
            message='Coupon created successfully'
        )

    def retrieve(self, request, *args, **kwargs):
        try:
            instance = self.get_object()
        except Http404:
            return not_found_response('Coupon not found', 'The requested coupon does not exist')

        return rest_api_formatter(
            data=self.get_serializer(instance).data,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Coupon retrieved successfully'
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        try:
            instance = self.get_object()
        except Http404:
            return not_found_response('Coupon not found', 'The requested coupon does not exist')

        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        if not serializer.is_valid():
            logger.warning(f"Coupon update validation failed - ID: {instance.id}: {serializer.errors}")
            return validation_error_response('Failed to update coupon', serializer.errors)

        try:
            coupon = serializer.save()
        except IntegrityError as e:
            logger.error(f"Integrity error updating coupon {instance.id}: {str(e)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_409_CONFLICT,
                success=False,
                message='Coupon could not be updated due to a conflict',
                error_code='INTEGRITY_ERROR',
                error_message='A coupon with this code may already exist'
            )
        except DatabaseError as e:
            logger.critical(f"Database error updating coupon {instance.id}: {str(e)}")
            return database_error_response()

        logger.info(f"Coupon updated: {coupon.code}")
        return rest_api_formatter(
            data=self.get_serializer(coupon).data,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Coupon updated successfully'
        )

    def destroy(self, request, *args, **kwargs):
        try:
            instance = self.get_object()
        except Http404:
            return not_found_response('Coupon not found', 'The requested coupon does not exist')

        code = instance.code
        try:
            instance.delete()
        except IntegrityError as e:
            logger.error(f"Integrity error deleting coupon {code}: {str(e)}")
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_409_CONFLICT,
                success=False,
                message='Coupon could not be deleted due to a conflict',
                error_code='INTEGRITY_ERROR',
                error_message='The coupon is still referenced by other records'
            )
        except DatabaseError as e:
            logger.critical(f"Database error deleting coupon {code}: {str(e)}")
            return database_error_response()

        logger.info(f"Coupon deleted: {code}")
        return rest_api_formatter(
            data=None,
            status_code=status.HTTP_200_OK,
            success=True,
            message='Coupon deleted successfully'
        )


class CouponValidateView(APIView):
    """Check a coupon code before checkout. Premium and admin users only."""
    permission_classes = [IsAuthenticated, CanUseCoupons]

    def post(self, request):
        serializer = CouponValidateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response('Coupon code is required', serializer.errors)

        code = serializer.validated_data['code']
        logger.info(f"Coupon validation requested by {request.user.email}: {code}")

        try:
            coupon = get_valid_coupon(code)
        except InvalidCoupon as e:
            logger.warning(str(e))
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_400_BAD_REQUEST,
                success=False,
                message='Invalid or expired coupon code',
                error_code=e.error_code,
                error_message=str(e)
            )
        except CouponUnavailable as e:
            logger.warning(str(e))
            return rest_api_formatter(
                data=None,
                status_code=status.HTTP_400_BAD_REQUEST,
                success=False,
                message='This coupon has reached its maximum usage limit',
                error_code=e.error_code,
                error_message=str(e)
            )

        return rest_api_formatter(
            data={
                'code': coupon.code,
                'discount_percentage': str(coupon.discount_percentage),
                'description': coupon.description,
                'expires_at': coupon.expires_at.isoformat(),
            },
            status_code=status.HTTP_200_OK,
            success=True,
            message='Coupon applied successfully'
        )
