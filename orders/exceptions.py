class OrderError(Exception):
    error_code = 'ORDER_ERROR'


class InvalidStatusTransition(OrderError):
    error_code = 'INVALID_STATUS_TRANSITION'

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change order status from '{current}' to '{target}'")


class RefundNotAllowed(OrderError):
    """Only cancelled orders can be refunded, and only once."""
    error_code = 'REFUND_NOT_ALLOWED'

    def __init__(self, order_number, reason):
        self.order_number = order_number
        super().__init__(f"Order {order_number} cannot be refunded: {reason}")
