class Currency:
    EUR = 'EUR'
    USD = 'USD'
    GBP = 'GBP'

    CHOICES = (
        (EUR, '€'),
        (USD, '$'),
        (GBP, '£')
    )

    SYMBOLS = dict(CHOICES)
