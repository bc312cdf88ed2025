"""
ViewSets for the catalog.

Reads are public; writes are restricted to admins. Deletes only
deactivate, so order history keeps pointing at real rows.
"""
import logging

from django.db import DatabaseError, IntegrityError
from django.http import Http404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status, filters
from rest_framework.permissions import AllowAny

from accounts.permissions import IsAdminRole
from core.utils import rest_api_formatter
from products.models import Category, Patch, Product
from products.serializers import (
    CategorySerializer,
    PatchSerializer,
    ProductListSerializer,
    ProductSerializer,
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


class CatalogViewSet(viewsets.ModelViewSet):
    """
    Catalog CRUD wrapped in the API response envelope.

    Subclasses set `label` for log lines and messages, and may set
    `detail_serializer_class` for the body returned after writes.
    """
    label = 'Item'
    detail_serializer_class = None

    def get_permissions(self):
        if self.action in ['list', 'retrieve']:
            return [AllowAny()]
        return [IsAdminRole()]

    def get_detail_serializer(self, instance):
        serializer_class = self.detail_serializer_class or self.get_serializer_class()
        return serializer_class(instance, context=self.get_serializer_context())

    def not_found_response(self):
        return rest_api_formatter(
            data=None,
            status_code=status.HTTP_404_NOT_FOUND,
            success=False,
            message=f'{self.label} not found',
            error_code='NOT_FOUND',
            error_message=f'The requested {self.label.lower()} does not exist'
        )

    def validation_error_response(self, errors):
        return rest_api_formatter(
            data=None,
            status_code=status.HTTP_400_BAD_REQUEST,
            success=False,
            message='Validation failed',
            error_code='VALIDATION_ERROR',
            error_message='Invalid input data',
            error_fields=errors
        )

    def conflict_response(self):
        return rest_api_formatter(
            data=None,
            status_code=status.HTTP_409_CONFLICT,
            success=False,
            message=f'{self.label} could not be saved due to a conflict',
            error_code='INTEGRITY_ERROR',
            error_message='A record with the same unique values may already exist'
        )

    def list(self, request, *args, **kwargs):
        try:
            queryset = self.filter_queryset(self.get_queryset())
            serializer = self.get_serializer(queryset, many=True)
            data = serializer.data
        except DatabaseError as e:
            logger.critical(f"Database error listing {self.label.lower()} records: {str(e)}")
            return database_error_response()

        logger.debug(f"Retrieved {len(data)} {self.label.lower()} records")
        return rest_api_formatter(
            data=data,
            status_code=status.HTTP_200_OK,
            success=True,
            message=f'{self.label} list retrieved successfully'
        )

    def retrieve(self, request, *args, **kwargs):
        try:
            instance = self.get_object()
        except Http404:
            logger.warning(f"{self.label} not found - ID: {kwargs.get('pk')}")
            return self.not_found_response()
        except DatabaseError as e:
            logger.critical(f"Database error retrieving {self.label.lower()} {kwargs.get('pk')}: {str(e)}")
            return database_error_response()

        return rest_api_formatter(
            data=self.get_serializer(instance).data,
            status_code=status.HTTP_200_OK,
            success=True,
            message=f'{self.label} retrieved successfully'
        )

    def create(self, request, *args, **kwargs):
        logger.info(f"Creating {self.label.lower()} by user: {request.user.email}")
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"{self.label} validation failed: {serializer.errors}")
            return self.validation_error_response(serializer.errors)

        try:
            instance = serializer.save()
        except IntegrityError as e:
            logger.error(f"Integrity error creating {self.label.lower()}: {str(e)}")
            return self.conflict_response()
        except DatabaseError as e:
            logger.critical(f"Database error creating {self.label.lower()}: {str(e)}")
            return database_error_response()

        logger.info(f"{self.label} created: {instance.id}")
        return rest_api_formatter(
            data=self.get_detail_serializer(instance).data,
            status_code=status.HTTP_201_CREATED,
            success=True,
            message=f'{self.label} created successfully'
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        try:
            instance = self.get_object()
        except Http404:
            logger.warning(f"{self.label} not found for update - ID: {kwargs.get('pk')}")
            return self.not_found_response()

        logger.info(f"Updating {self.label.lower()}: {instance.id}")
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        if not serializer.is_valid():
            logger.warning(f"{self.label} update validation failed - ID: {instance.id}: {serializer.errors}")
            return self.validation_error_response(serializer.errors)

        try:
            instance = serializer.save()
        except IntegrityError as e:
            logger.error(f"Integrity error updating {self.label.lower()} {instance.id}: {str(e)}")
            return self.conflict_response()
        except DatabaseError as e:
            logger.critical(f"Database error updating {self.label.lower()} {instance.id}: {str(e)}")
            return database_error_response()

        if getattr(instance, '_prefetched_objects_cache', None):
            instance._prefetched_objects_cache = {}

        logger.info(f"{self.label} updated: {instance.id}")
        return rest_api_formatter(
            data=self.get_detail_serializer(instance).data,
            status_code=status.HTTP_200_OK,
            success=True,
            message=f'{self.label} updated successfully'
        )

    def destroy(self, request, *args, **kwargs):
        try:
            instance = self.get_object()
        except Http404:
            return self.not_found_response()

        logger.info(f"Deactivating {self.label.lower()}: {instance.id}")
        try:
            instance.deactivate()
        except DatabaseError as e:
            logger.critical(f"Database error deactivating {self.label.lower()} {instance.id}: {str(e)}")
            return database_error_response()

        return rest_api_formatter(
            data=None,
            status_code=status.HTTP_200_OK,
            success=True,
            message=f'{self.label} deleted successfully'
        )


class CategoryViewSet(CatalogViewSet):
    label = 'Category'
    queryset = Category.active_objects.all()
    serializer_class = CategorySerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['category_type']
    search_fields = ['name', 'slug']
    ordering_fields = ['name', 'display_order']
    ordering = ['display_order', 'name']


class PatchViewSet(CatalogViewSet):
    """Sleeve patches and their prices."""
    label = 'Patch'
    queryset = Patch.active_objects.all()
    serializer_class = PatchSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['patch_type']
    search_fields = ['title']
    ordering_fields = ['sort_order', 'price', 'title']
    ordering = ['sort_order', 'title']


class ProductViewSet(CatalogViewSet):
    label = 'Product'
    queryset = Product.active_objects.select_related('category').prefetch_related('patches')
    detail_serializer_class = ProductSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['category', 'is_retro']
    search_fields = ['title', 'description']
    ordering_fields = ['title', 'base_price', 'created_at']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action == 'list':
            return ProductListSerializer
        return ProductSerializer
