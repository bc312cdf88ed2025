"""
Core models module containing abstract base classes.
All models in the application should inherit from these base classes.

Usage:
    - AbstractUUID: Provides UUID primary key
    - AbstractMonitor: Provides created_at and updated_at timestamps
    - AbstractActive: Provides is_active flag with an active-only manager
    - AbstractBaseModel: Combines all three (UUID + Monitor + Active)
"""
import uuid

from django.conf import settings
from django.db import models
from django_countries.fields import CountryField
from phonenumber_field.modelfields import PhoneNumberField

from .validators import validate_possible_number


class ActiveManager(models.Manager):
    """Manager that returns only active records."""

    def get_queryset(self):
        return super().get_queryset().filter(is_active=True)


class AbstractUUID(models.Model):
    """
    Abstract base model that provides UUID primary key.
    Inherit from this when you need UUID as primary key.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record"
    )

    class Meta:
        abstract = True


class AbstractMonitor(models.Model):
    """
    Abstract base model that provides timestamp fields.
    Inherit from this when you need created_at and updated_at tracking.
    """
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Timestamp when the record was created"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when the record was last updated"
    )

    class Meta:
        abstract = True
        ordering = ['-created_at']


class AbstractActive(models.Model):
    """
    Abstract base model that provides an is_active flag.

    `objects` still returns every row; use `active_objects` when only
    active records are wanted.
    """
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Inactive records are hidden from the storefront."
    )

    objects = models.Manager()
    active_objects = ActiveManager()

    class Meta:
        abstract = True

    def deactivate(self):
        """Set is_active to False without deleting the row."""
        self.is_active = False
        self.save(update_fields=['is_active', 'updated_at'] if hasattr(self, 'updated_at') else ['is_active'])


class AbstractBaseModel(AbstractUUID, AbstractMonitor, AbstractActive):
    """
    Complete abstract base model combining:
    - UUID primary key
    - created_at / updated_at timestamps
    - is_active flag

    Use this as the default base for most models.
    """

    class Meta:
        abstract = True
        ordering = ['-created_at']


class PossiblePhoneNumberField(PhoneNumberField):
    """Less strict field for phone numbers written to database."""

    default_validators = [validate_possible_number]


class Address(AbstractUUID, AbstractMonitor):
    """
    Shipping address saved by a customer and referenced by orders.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
        null=True, blank=True, related_name='addresses'
    )
    full_name = models.CharField(max_length=256)
    address_line_1 = models.CharField(max_length=256)
    address_line_2 = models.CharField(max_length=256, null=True, blank=True)
    city = models.CharField(max_length=256)
    state = models.CharField(max_length=128)
    postal_code = models.CharField(max_length=20)
    country = CountryField()
    phone = PossiblePhoneNumberField(blank=True, default="")
    is_default = models.BooleanField(default=False)

    class Meta:
        verbose_name_plural = 'Addresses'
        verbose_name = 'Address'
        ordering = ['-is_default', '-created_at']

    def __str__(self):
        return f"{self.full_name} - {self.city} - {self.country.name} - {self.postal_code}"

    @property
    def address_string(self):
        address_parts = [
            self.full_name,
            self.address_line_1,
            self.address_line_2,
            self.city,
            self.state,
            self.postal_code,
            self.country.name,
        ]
        return ", ".join(filter(None, address_parts))
