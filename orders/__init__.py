class OrderStatus:
    PENDING = 'pending'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'

    CHOICES = (
        (PENDING, 'Pending'),
        (PROCESSING, 'Processing'),
        (SHIPPED, 'Shipped'),
        (DELIVERED, 'Delivered'),
        (CANCELLED, 'Cancelled'),
    )

    ALLOWED_TRANSITIONS = {
        PENDING: (PROCESSING, CANCELLED),
        PROCESSING: (SHIPPED, CANCELLED),
        SHIPPED: (DELIVERED, CANCELLED),
        DELIVERED: (),
        CANCELLED: (),
    }

    # Statuses in which the customer may still cancel on their own
    CUSTOMER_CANCELLABLE = (PENDING, PROCESSING)

    @classmethod
    def can_transition(cls, current, target):
        """Same-state updates are allowed as no-ops."""
        if current == target:
            return True
        return target in cls.ALLOWED_TRANSITIONS.get(current, ())
