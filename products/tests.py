"""
Tests for Products app ViewSets, catalog lookups, line pricing and stock.
"""
import uuid
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from orders.factories import UserFactory, AdminFactory, CategoryFactory, PatchFactory, ProductFactory
from products import CategoryType, JerseyExtra, PatchType
from products.exceptions import OutOfStock
from products.models import Category, Patch, Product
from products.utils import get_product, get_products_for_checkout, get_line_unit_price, reserve_stock


class CategoryViewSetTest(APITestCase):
    """Tests for CategoryViewSet."""

    def setUp(self):
        self.serie_a = CategoryFactory(name='Serie A', category_type=CategoryType.LEAGUE, display_order=1)
        self.retro = CategoryFactory(name='Retro', category_type=CategoryType.SPECIAL, display_order=2)
        self.hidden = CategoryFactory(name='Hidden', is_active=False)
        self.admin = AdminFactory()

    def test_list_categories_is_public_and_hides_inactive(self):
        response = self.client.get(reverse('category-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = [category['name'] for category in response.data['data']]
        self.assertEqual(names, ['Serie A', 'Retro'])

    def test_filter_by_category_type(self):
        response = self.client.get(reverse('category-list'), {'category_type': CategoryType.LEAGUE})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['data'][0]['name'], 'Serie A')

    def test_regular_user_cannot_create_category(self):
        self.client.force_authenticate(user=UserFactory())
        response = self.client.post(reverse('category-list'), {
            'name': 'Premier League', 'slug': 'premier-league',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error']['code'], 'FORBIDDEN')

    def test_admin_creates_category(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('category-list'), {
            'name': 'Premier League', 'slug': 'premier-league',
            'category_type': CategoryType.LEAGUE,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Category.objects.filter(slug='premier-league').exists())

    def test_delete_deactivates_category(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('category-detail', args=[self.retro.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.retro.refresh_from_db()
        self.assertFalse(self.retro.is_active)


class ProductViewSetTest(APITestCase):
    """Tests for ProductViewSet."""

    def setUp(self):
        self.category = CategoryFactory(name='Serie A')
        self.product = ProductFactory(title='Inter Home 24/25', category=self.category)
        self.retro_product = ProductFactory(
            title='Milan 1989', category=self.category, is_retro=True
        )
        self.admin = AdminFactory()

    def test_list_uses_retro_price_for_retro_products(self):
        response = self.client.get(reverse('product-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        prices = {item['title']: Decimal(item['price']) for item in response.data['data']}
        self.assertEqual(prices['Inter Home 24/25'], Decimal('30.00'))
        self.assertEqual(prices['Milan 1989'], Decimal('35.00'))

    def test_retrieve_product(self):
        response = self.client.get(reverse('product-detail', args=[self.product.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['category_name'], 'Serie A')

    def test_admin_create_product_validation_error(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('product-list'), {
            'description': 'No title', 'base_price': '-1.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')
        self.assertIn('title', response.data['error']['fields'])

    def test_admin_creates_product(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('product-list'), {
            'title': 'Napoli Away', 'category': str(self.category.id),
            'base_price': '32.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['category_name'], 'Serie A')

    def test_delete_deactivates_product(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('product-detail', args=[self.product.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Product.objects.get(pk=self.product.pk).is_active)

    def test_list_and_retrieve_use_envelope(self):
        list_response = self.client.get(reverse('product-list'))
        detail_response = self.client.get(reverse('product-detail', args=[self.product.id]))

        for response in (list_response, detail_response):
            self.assertTrue(response.data['success'])
            self.assertIsNone(response.data['error'])
        self.assertEqual(len(list_response.data['data']), 2)
        self.assertEqual(detail_response.data['data']['title'], 'Inter Home 24/25')

    def test_retrieve_unknown_product_returns_not_found(self):
        response = self.client.get(reverse('product-detail', args=[uuid.uuid4()]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error']['code'], 'NOT_FOUND')

    def test_admin_partial_update_uses_envelope(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(
            reverse('product-detail', args=[self.product.id]),
            {'base_price': '32.50', 'stock_quantity': 40},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['base_price'], '32.50')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 40)

    def test_admin_update_validation_error(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.put(
            reverse('product-detail', args=[self.product.id]),
            {'title': '', 'base_price': '-5.00'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')
        self.assertIn('base_price', response.data['error']['fields'])

    def test_update_database_error_returns_503(self):
        self.client.force_authenticate(user=self.admin)
        with mock.patch('products.models.Product.save', side_effect=DatabaseError('connection lost')):
            response = self.client.patch(
                reverse('product-detail', args=[self.product.id]),
                {'title': 'Inter Home 25/26'},
                format='json'
            )

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['error']['code'], 'DATABASE_ERROR')

    def test_list_database_error_returns_503(self):
        with mock.patch('products.views.ProductViewSet.filter_queryset', side_effect=DatabaseError('connection lost')):
            response = self.client.get(reverse('product-list'))

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['error']['code'], 'DATABASE_ERROR')

    def test_admin_assigns_patches_to_product(self):
        patch = PatchFactory(title='Serie A badge')
        retired = PatchFactory(is_active=False)
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch(
            reverse('product-detail', args=[self.product.id]),
            {'patches': [str(patch.id)]},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        titles = [item['title'] for item in response.data['data']['available_patches']]
        self.assertEqual(titles, ['Serie A badge'])

        response = self.client.patch(
            reverse('product-detail', args=[self.product.id]),
            {'patches': [str(retired.id)]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('patches', response.data['error']['fields'])


class PatchViewSetTest(APITestCase):

    def setUp(self):
        self.admin = AdminFactory()
        self.league_patch = PatchFactory(title='Serie A', patch_type=PatchType.SERIE_A, sort_order=1)
        self.cup_patch = PatchFactory(title='Coppa Italia', patch_type=PatchType.COPPA_ITALIA, sort_order=2)
        PatchFactory(title='Retired', is_active=False)

    def test_list_patches_is_public(self):
        response = self.client.get(reverse('patch-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        titles = [patch['title'] for patch in response.data['data']]
        self.assertEqual(titles, ['Serie A', 'Coppa Italia'])

    def test_filter_by_patch_type(self):
        response = self.client.get(reverse('patch-list'), {'patch_type': PatchType.COPPA_ITALIA})

        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['data'][0]['title'], 'Coppa Italia')

    def test_regular_user_cannot_create_patch(self):
        self.client.force_authenticate(user=UserFactory())
        response = self.client.post(reverse('patch-list'), {'title': 'Scudetto', 'price': '5.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_creates_and_reprices_patch(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('patch-list'), {
            'title': 'Scudetto', 'patch_type': PatchType.OTHER, 'price': '5.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        patch_id = response.data['data']['id']

        response = self.client.patch(reverse('patch-detail', args=[patch_id]), {'price': '6.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Patch.objects.get(pk=patch_id).price, Decimal('6.00'))

    def test_negative_price_rejected(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('patch-list'), {'title': 'Broken', 'price': '-1.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price', response.data['error']['fields'])

    def test_delete_deactivates_patch(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('patch-detail', args=[self.cup_patch.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.cup_patch.refresh_from_db()
        self.assertFalse(self.cup_patch.is_active)


class CatalogLookupTest(TestCase):

    def test_get_product_returns_active_product(self):
        product = ProductFactory()
        self.assertEqual(get_product(product.id), product)
        self.assertEqual(get_product(str(product.id)), product)

    def test_get_product_misses(self):
        inactive = ProductFactory(is_active=False)

        self.assertIsNone(get_product(inactive.id))
        self.assertIsNone(get_product(uuid.uuid4()))
        self.assertIsNone(get_product('not-a-uuid'))
        self.assertIsNone(get_product(None))

    def test_category_name_is_none_without_category(self):
        product = ProductFactory(category=None)
        self.assertIsNone(product.category_name)

    def test_line_unit_price_adds_patches_and_extras(self):
        retro = ProductFactory(is_retro=True)
        patches = [PatchFactory(price=Decimal('3.00')), PatchFactory(price=Decimal('4.50'))]

        self.assertEqual(get_line_unit_price(retro), Decimal('35.00'))
        self.assertEqual(
            get_line_unit_price(retro, patches, [JerseyExtra.SOCKS, JerseyExtra.PLAYER_EDITION]),
            Decimal('64.50')
        )

    def test_checkout_products_prefetch_only_active_patches(self):
        active = PatchFactory()
        product = ProductFactory(patches=[active, PatchFactory(is_active=False)])

        products = get_products_for_checkout([product.id])

        self.assertEqual(list(products[product.id].patches.all()), [active])


class StockReservationTest(TestCase):

    def test_reserve_stock_decrements(self):
        first = ProductFactory(stock_quantity=5)
        second = ProductFactory(stock_quantity=2)

        reserve_stock({first.id: 5, second.id: 1})

        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.stock_quantity, 0)
        self.assertEqual(second.stock_quantity, 1)

    def test_reserve_stock_refuses_oversell(self):
        product = ProductFactory(stock_quantity=5)

        with self.assertRaises(OutOfStock) as ctx:
            reserve_stock({product.id: 7})

        self.assertEqual(ctx.exception.error_code, 'OUT_OF_STOCK')
        self.assertEqual(ctx.exception.requested, 7)
        product.refresh_from_db()
        self.assertEqual(product.stock_quantity, 5)
