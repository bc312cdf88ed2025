from decimal import Decimal

import factory
from django.utils.text import slugify
from factory.django import DjangoModelFactory

from accounts import UserRole
from accounts.models import User
from core.models import Address
from orders.models import Order, OrderItem
from products import PatchType
from products.models import Category, Patch, Product


class UserFactory(DjangoModelFactory):
    """Factory for User model."""

    class Meta:
        model = User
        django_get_or_create = ('email',)

    email = factory.Sequence(lambda n: f'user{n}@example.com')
    name = factory.Faker('name')
    role = UserRole.USER
    is_active = True


class PremiumUserFactory(UserFactory):
    role = UserRole.PREMIUM


class AdminFactory(UserFactory):
    role = UserRole.ADMIN


class CategoryFactory(DjangoModelFactory):
    """Factory for Category model."""

    class Meta:
        model = Category
        django_get_or_create = ('name',)

    name = factory.Sequence(lambda n: f'Category {n}')
    slug = factory.LazyAttribute(lambda obj: slugify(obj.name))
    description = factory.Faker('sentence')
    is_active = True


class PatchFactory(DjangoModelFactory):
    """Factory for Patch model."""

    class Meta:
        model = Patch

    title = factory.Sequence(lambda n: f'Patch {n}')
    description = factory.Faker('sentence')
    patch_type = PatchType.OTHER
    price = Decimal('3.00')
    is_active = True


class ProductFactory(DjangoModelFactory):
    """Factory for Product model."""

    class Meta:
        model = Product
        skip_postgeneration_save = True

    title = factory.Faker('catch_phrase')
    description = factory.Faker('paragraph')
    category = factory.SubFactory(CategoryFactory)
    base_price = Decimal('30.00')
    retro_price = Decimal('35.00')
    stock_quantity = 100
    is_retro = False
    is_active = True

    @factory.post_generation
    def patches(self, create, extracted, **kwargs):
        if create and extracted:
            self.patches.add(*extracted)


class AddressFactory(DjangoModelFactory):
    """Factory for Address model."""

    class Meta:
        model = Address

    user = factory.SubFactory(UserFactory)
    full_name = factory.Faker('name')
    address_line_1 = factory.Faker('street_address')
    address_line_2 = factory.Faker('secondary_address')
    city = factory.Faker('city')
    state = 'MI'
    country = 'IT'
    postal_code = '20121'
    phone = '+390212345678'


class OrderFactory(DjangoModelFactory):

    class Meta:
        model = Order

    user = factory.SubFactory(UserFactory)
    shipping_address = factory.SubFactory(AddressFactory, user=factory.SelfAttribute('..user'))


class OrderItemFactory(DjangoModelFactory):

    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    product = factory.SubFactory(ProductFactory)
    name = factory.SelfAttribute('product.title')
    category = factory.LazyAttribute(lambda obj: obj.product.category_name or '')
    unit_price = factory.SelfAttribute('product.unit_price')
    quantity = 1
