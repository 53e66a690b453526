"""Products API router."""
from fastapi import APIRouter
from opentelemetry import trace

import catalog
from schemas import ProductsResponse
from totals import money
from monitoring import product_views_counter

router = APIRouter(prefix="/api", tags=["products"])


@router.get("/products", response_model=ProductsResponse)
async def get_products():
    """List the fixed product catalog with prices in cents and formatted."""
    products = catalog.list_products()

    span = trace.get_current_span()
    span.set_attribute("product.count", len(products))

    product_views_counter.add(1)

    return {
        "products": [
            {
                "sku": product.sku,
                "name": product.name,
                "price_cents": product.unit_price,
                "price": money(product.unit_price)
            }
            for product in products
        ]
    }
