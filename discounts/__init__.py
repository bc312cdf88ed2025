class DiscountRuleType:
    QUANTITY_BASED = 'quantity_based'
    BUY_X_GET_Y = 'buy_x_get_y'
    PERCENTAGE_OFF = 'percentage_off'
    FIXED_AMOUNT_OFF = 'fixed_amount_off'

    CHOICES = (
        (QUANTITY_BASED, 'Quantity Based'),
        (BUY_X_GET_Y, 'Buy X Get Y'),
        (PERCENTAGE_OFF, 'Percentage Off'),
        (FIXED_AMOUNT_OFF, 'Fixed Amount Off'),
    )

    # Fields that carry meaning for each type; everything else is ignored
    FIELDS = {
        QUANTITY_BASED: ('min_quantity', 'max_quantity', 'discount_percentage'),
        BUY_X_GET_Y: ('buy_quantity', 'get_free_quantity'),
        PERCENTAGE_OFF: ('discount_percentage',),
        FIXED_AMOUNT_OFF: ('discount_amount',),
    }

    ALL_TERM_FIELDS = (
        'min_quantity', 'max_quantity', 'discount_percentage',
        'discount_amount', 'buy_quantity', 'get_free_quantity',
    )


MIN_PRIORITY = 1
MAX_PRIORITY = 100
