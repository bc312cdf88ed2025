from django.contrib.auth import authenticate, get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import AccessToken

from accounts import UserRole
from orders.factories import UserFactory, PremiumUserFactory, AdminFactory

User = get_user_model()


class UserModelTest(TestCase):

    def test_create_user_normalizes_email_and_name(self):
        user = User.objects.create_user('  Tifoso@Example.COM ', name='  Mario   Rossi ')

        self.assertEqual(user.email, 'tifoso@example.com')
        self.assertEqual(user.name, 'Mario Rossi')
        self.assertFalse(user.has_usable_password())

    def test_create_superuser_is_admin(self):
        user = User.objects.create_superuser('root@example.com', password='s3cret-pass')

        self.assertEqual(user.role, UserRole.ADMIN)
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_admin)
        self.assertTrue(user.can_use_coupons)

    def test_roles(self):
        regular = UserFactory()
        premium = PremiumUserFactory()
        admin = AdminFactory()

        self.assertFalse(regular.is_admin)
        self.assertFalse(regular.can_use_coupons)
        self.assertFalse(premium.is_admin)
        self.assertTrue(premium.can_use_coupons)
        self.assertTrue(admin.is_admin)
        self.assertTrue(admin.is_staff)

    def test_email_backend(self):
        User.objects.create_user('staff@example.com', password='s3cret-pass')

        self.assertIsNotNone(authenticate(email='STAFF@example.com', password='s3cret-pass'))
        self.assertIsNotNone(authenticate(username='staff@example.com', password='s3cret-pass'))
        self.assertIsNone(authenticate(email='staff@example.com', password='wrong'))


class BearerTokenTest(APITestCase):
    """Access tokens issued by the identity provider authenticate API calls."""

    def test_valid_token_authenticates(self):
        admin = AdminFactory()
        token = AccessToken.for_user(admin)

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = self.client.get(reverse('discount-rule-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_token_of_regular_user_is_forbidden_for_admin_endpoints(self):
        token = AccessToken.for_user(UserFactory())

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = self.client.get(reverse('discount-rule-list'))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_invalid_token_rejected(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = self.client.get(reverse('order-list'))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error']['code'], 'NOT_AUTHENTICATED')
