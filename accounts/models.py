from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models

from accounts import UserRole
from core.models import AbstractUUID, AbstractMonitor


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, name='', password=None, **extra_fields):
        if not email:
            raise ValueError('The Email field must be set')

        email = self.normalize_email(email).lower()
        user = self.model(email=email, name=name.strip(), **extra_fields)
        if password:
            user.set_password(password)
        else:
            # Credentials live with the identity provider
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, name='', password=None, **extra_fields):
        extra_fields.setdefault('role', UserRole.ADMIN)
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, name, password, **extra_fields)


class User(AbstractBaseUser, AbstractUUID, AbstractMonitor, PermissionsMixin):
    """
    Store customer or back-office user.

    Inherits from:
    - AbstractUUID: UUID primary key
    - AbstractMonitor: created_at, updated_at timestamps
    """
    email = models.EmailField(unique=True, db_index=True)
    name = models.CharField(max_length=256, blank=True)
    role = models.CharField(
        max_length=20, choices=UserRole.CHOICES, default=UserRole.USER, db_index=True
    )
    language = models.CharField(
        max_length=8, default='it',
        help_text="Preferred language for order notifications"
    )

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(
        default=False,
        help_text="Flag for back-office access",
    )

    objects = UserManager()

    EMAIL_FIELD = 'email'
    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['role', 'created_at'], name='users_role_created_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.email})" if self.name else self.email

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN or self.is_superuser

    @property
    def can_use_coupons(self):
        return self.role in UserRole.COUPON_ROLES or self.is_superuser

    def save(self, *args, **kwargs):
        self.email = self.email.lower().strip()
        self.name = ' '.join(self.name.strip().split())
        if self.role == UserRole.ADMIN:
            self.is_staff = True
        super().save(*args, **kwargs)
