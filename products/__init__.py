class CategoryType:
    LEAGUE = 'league'
    PRODUCT_TYPE = 'product-type'
    SPECIAL = 'special'

    CHOICES = (
        (LEAGUE, 'League'),
        (PRODUCT_TYPE, 'Product Type'),
        (SPECIAL, 'Special'),
    )


class PatchType:
    CHAMPIONS_LEAGUE = 'champions-league'
    SERIE_A = 'serie-a'
    COPPA_ITALIA = 'coppa-italia'
    EUROPA_LEAGUE = 'europa-league'
    OTHER = 'other'

    CHOICES = (
        (CHAMPIONS_LEAGUE, 'Champions League'),
        (SERIE_A, 'Serie A'),
        (COPPA_ITALIA, 'Coppa Italia'),
        (EUROPA_LEAGUE, 'Europa League'),
        (OTHER, 'Other'),
    )


class JerseyExtra:
    """Add-ons charged on top of the jersey price, per unit."""
    PLAYER_EDITION = 'player_edition'
    SHORTS = 'include_shorts'
    SOCKS = 'include_socks'

    PRICES = {
        PLAYER_EDITION: 5,
        SHORTS: 11,
        SOCKS: 17,
    }
