"""Fixed product catalog."""
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Product:
    """Catalog entry. Prices are integer cents."""
    sku: str
    name: str
    unit_price: int


PRODUCTS: List[Product] = [
    Product(sku="burger", name="Burger", unit_price=1000),
    Product(sku="fries", name="Fries", unit_price=800),
    Product(sku="coke", name="Coke", unit_price=300),
]

_BY_SKU: Dict[str, Product] = {product.sku: product for product in PRODUCTS}


def get_product(sku: str) -> Optional[Product]:
    """Look up a product by sku, or None if it is not sold here."""
    return _BY_SKU.get(sku)


def list_products() -> List[Product]:
    return list(PRODUCTS)


def skus() -> List[str]:
    return [product.sku for product in PRODUCTS]
