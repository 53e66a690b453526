"""Session cart management service."""
import logging
from typing import List, Dict, Any, Optional
import redis
from opentelemetry import trace
from pydantic import TypeAdapter

import catalog
from config import MAX_QTY_PER_LINE, SESSION_TTL_SECONDS, TAX_RATE
from errors import UnknownProduct, InvalidQuantity, StoreUnavailable
from schemas import CartLine
from totals import compute_totals, money
from monitoring import cart_additions_counter, cart_clears_counter

logger = logging.getLogger(__name__)

_lines_adapter = TypeAdapter(List[CartLine])


class CartStore:
    """
    Per-session cart storage. Each session id owns an isolated line list.

    Implementations raise StoreUnavailable when the backend cannot be reached.
    """

    def get(self, session_id: str) -> List[CartLine]:
        raise NotImplementedError

    def replace(self, session_id: str, lines: List[CartLine]) -> None:
        raise NotImplementedError


class RedisCartStore(CartStore):
    """Cart store keeping each session's lines as a JSON document in Redis."""

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int = SESSION_TTL_SECONDS):
        """
        Initialize Redis cart store.

        Args:
            redis_client: Redis client
            ttl_seconds: Expiry applied on every write, matching the session lifetime
        """
        self.redis_client = redis_client
        self.ttl_seconds = ttl_seconds
        self.tracer = trace.get_tracer(__name__)

    def _key(self, session_id: str) -> str:
        return f"cart:{session_id}"

    def get(self, session_id: str) -> List[CartLine]:
        key = self._key(session_id)
        with self.tracer.start_as_current_span("cache.get_cart") as span:
            span.set_attribute("cache.system", "redis")
            span.set_attribute("cache.operation", "GET")
            span.set_attribute("cache.key", key)

            try:
                raw = self.redis_client.get(key)
            except redis.RedisError as e:
                span.record_exception(e)
                raise StoreUnavailable(f"Cart store read failed: {e}") from e
            span.set_attribute("cache.hit", raw is not None)

        if raw is None:
            return []
        return _lines_adapter.validate_json(raw)

    def replace(self, session_id: str, lines: List[CartLine]) -> None:
        key = self._key(session_id)
        with self.tracer.start_as_current_span("cache.replace_cart") as span:
            span.set_attribute("cache.system", "redis")
            span.set_attribute("cache.key", key)

            try:
                if not lines:
                    span.set_attribute("cache.operation", "DELETE")
                    self.redis_client.delete(key)
                    return

                span.set_attribute("cache.operation", "SET")
                span.set_attribute("cache.ttl", self.ttl_seconds)
                self.redis_client.set(key, _lines_adapter.dump_json(lines), ex=self.ttl_seconds)
            except redis.RedisError as e:
                span.record_exception(e)
                raise StoreUnavailable(f"Cart store write failed: {e}") from e


class CartService:
    """Service for managing session carts."""

    def __init__(self, store: CartStore):
        """
        Initialize cart service.

        Args:
            store: Session cart store
        """
        self.store = store

    def add(self, session_id: str, sku: str, quantity: int) -> CartLine:
        """
        Add a product to the session's cart.

        Only the requested quantity is bounds-checked; repeated adds may take a
        line past MAX_QTY_PER_LINE.

        Args:
            session_id: Session identifier
            sku: Product sku
            quantity: Quantity to add

        Returns:
            The resulting cart line for the sku

        Raises:
            UnknownProduct: If sku is not in the catalog
            InvalidQuantity: If quantity is not an integer in [1, MAX_QTY_PER_LINE]
            StoreUnavailable: If the cart store cannot be reached; the cart is unchanged
        """
        product = catalog.get_product(sku)
        if product is None:
            raise UnknownProduct(sku)
        if isinstance(quantity, bool) or not isinstance(quantity, int) \
                or not 1 <= quantity <= MAX_QTY_PER_LINE:
            raise InvalidQuantity(quantity, MAX_QTY_PER_LINE)

        span = trace.get_current_span()
        span.set_attribute("product.sku", sku)
        span.set_attribute("quantity", quantity)

        lines = self.store.get(session_id)
        for index, line in enumerate(lines):
            if line.sku == sku:
                updated = line.model_copy(update={"quantity": line.quantity + quantity})
                lines[index] = updated
                break
        else:
            updated = CartLine(
                sku=product.sku,
                name=product.name,
                unit_price=product.unit_price,
                quantity=quantity
            )
            lines.append(updated)

        self.store.replace(session_id, lines)

        cart_additions_counter.add(quantity, {"sku": sku})
        logger.info("Added product to cart", extra={
            "sku": sku,
            "quantity": quantity,
            "line_quantity": updated.quantity
        })
        return updated

    def clear(self, session_id: str, reason: str = "requested") -> None:
        """Reset the session's cart to empty."""
        self.store.replace(session_id, [])
        cart_clears_counter.add(1, {"reason": reason})

    def view(self, session_id: str) -> List[CartLine]:
        """Current cart lines for the session, in insertion order."""
        return self.store.get(session_id)

    def get_cart(self, session_id: Optional[str], tax_rate=TAX_RATE) -> Dict[str, Any]:
        """
        Get cart contents with formatted totals for display.

        Args:
            session_id: Session identifier, None when the visitor has no session yet
            tax_rate: Tax rate applied to the subtotal

        Returns:
            Cart lines and totals
        """
        lines = self.view(session_id) if session_id else []
        totals = compute_totals(lines, tax_rate)

        return {
            "cart": [
                {
                    "sku": line.sku,
                    "name": line.name,
                    "unit_price_cents": line.unit_price,
                    "qty": line.quantity,
                    "unit_price": money(line.unit_price)
                }
                for line in lines
            ],
            "totals": {
                "subtotal": money(totals.subtotal),
                "tax": money(totals.tax),
                "total": money(totals.total),
                "tax_rate": tax_rate
            }
        }
