class UserRole:
    ADMIN = 'admin'
    USER = 'user'
    PREMIUM = 'premium'

    CHOICES = (
        (ADMIN, 'Admin'),
        (USER, 'User'),
        (PREMIUM, 'Premium'),
    )

    # Roles allowed to redeem coupon codes at checkout
    COUPON_ROLES = (ADMIN, PREMIUM)
