class CatalogError(Exception):
    error_code = 'CATALOG_ERROR'


class OutOfStock(CatalogError):
    """Fewer units left than the order asks for."""
    error_code = 'OUT_OF_STOCK'

    def __init__(self, product_id, requested):
        self.product_id = str(product_id)
        self.requested = requested
        super().__init__(f"Not enough stock for product {self.product_id}: {requested} requested")
