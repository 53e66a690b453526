"""Order management service."""
import logging
from decimal import Decimal
from typing import Dict, Any
from sqlalchemy.orm import Session
from opentelemetry import trace

from config import TAX_RATE
from database import transaction
from errors import EmptyCart, CheckoutFailed, OrderNotFound
from models import Order, OrderItem
from services.cart_service import CartService
from totals import compute_totals, line_total, money
from monitoring import checkout_counter, checkout_amount_histogram

logger = logging.getLogger(__name__)


class OrderService:
    """Turns a session cart into a persisted order."""

    def __init__(self, cart_service: CartService, tax_rate: Decimal = TAX_RATE):
        """
        Initialize order service.

        Args:
            cart_service: Cart service instance
            tax_rate: Tax rate recorded on every order
        """
        self.cart_service = cart_service
        self.tax_rate = tax_rate
        self.tracer = trace.get_tracer(__name__)

    def checkout(self, db: Session, session_id: str) -> Dict[str, Any]:
        """
        Persist the session's cart as an order and clear the cart.

        The order header and all of its lines are written in one transaction.
        The cart is only cleared after the commit succeeds.

        Args:
            db: Database session
            session_id: Session identifier

        Returns:
            Receipt built from the cart snapshot that was persisted

        Raises:
            EmptyCart: If the cart has no lines
            CheckoutFailed: If the order could not be committed; the cart is unchanged
            StoreUnavailable: If the cart cannot be read; nothing is written
        """
        lines = self.cart_service.view(session_id)
        if not lines:
            raise EmptyCart()

        totals = compute_totals(lines, self.tax_rate)

        span = trace.get_current_span()
        span.set_attribute("order.line_count", len(lines))
        span.set_attribute("order.total_cents", totals.total)

        try:
            with self.tracer.start_as_current_span("db.transaction.create_order") as db_span:
                db_span.set_attribute("db.operation", "INSERT")
                db_span.set_attribute("db.table", "orders")

                with transaction(db):
                    order = Order(
                        subtotal_cents=totals.subtotal,
                        tax_rate=self.tax_rate,
                        tax_cents=totals.tax,
                        total_cents=totals.total
                    )
                    db.add(order)
                    db.flush()
                    order_id = order.id

                    for line in lines:
                        db.add(OrderItem(
                            order_id=order_id,
                            sku=line.sku,
                            name=line.name,
                            unit_price_cents=line.unit_price,
                            quantity=line.quantity,
                            line_total_cents=line_total(line)
                        ))
                        db.flush()

                db_span.set_attribute("order.id", order_id)
        except Exception as e:
            checkout_counter.add(1, {"status": "failed"})
            logger.error("Failed to create order", extra={
                "line_count": len(lines),
                "total_cents": totals.total,
                "error": str(e)
            })
            raise CheckoutFailed("Order could not be saved") from e

        # The order is committed at this point; a stale cart must not undo it.
        try:
            self.cart_service.clear(session_id, reason="checkout")
        except Exception as e:
            logger.error("Failed to clear cart after checkout", extra={
                "order_id": order_id,
                "error": str(e)
            })

        checkout_counter.add(1, {"status": "completed"})
        checkout_amount_histogram.record(totals.total)

        logger.info("Checkout completed", extra={
            "order_id": order_id,
            "subtotal_cents": totals.subtotal,
            "tax_cents": totals.tax,
            "total_cents": totals.total,
            "item_count": len(lines)
        })

        return {
            "order_id": order_id,
            "items": [
                {
                    "sku": line.sku,
                    "name": line.name,
                    "qty": line.quantity,
                    "unit_price": money(line.unit_price),
                    "line_total": money(line_total(line))
                }
                for line in lines
            ],
            "subtotal": money(totals.subtotal),
            "tax_rate": self.tax_rate,
            "tax": money(totals.tax),
            "total": money(totals.total)
        }

    def get_order(self, db: Session, order_id: int) -> Dict[str, Any]:
        """
        Get a persisted order with its lines.

        Raises:
            OrderNotFound: If no order has this id
        """
        with self.tracer.start_as_current_span("db.query.get_order") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")
            db_span.set_attribute("order.id", order_id)

            order = db.get(Order, order_id)
            if order is None:
                db_span.set_attribute("db.rows_returned", 0)
                raise OrderNotFound(order_id)

            db_span.set_attribute("db.rows_returned", 1)

            return {
                "id": order.id,
                "subtotal_cents": order.subtotal_cents,
                "tax_rate": order.tax_rate,
                "tax_cents": order.tax_cents,
                "total_cents": order.total_cents,
                "created_at": order.created_at.isoformat(),
                "items": [
                    {
                        "sku": item.sku,
                        "name": item.name,
                        "unit_price_cents": item.unit_price_cents,
                        "quantity": item.quantity,
                        "line_total_cents": item.line_total_cents
                    }
                    for item in order.items
                ]
            }
