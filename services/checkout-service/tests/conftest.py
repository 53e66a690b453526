"""Pytest fixtures for the checkout service."""
import os

# Must be set before any service module reads its configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TAX_RATE"] = "0.13"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["OTEL_SDK_DISABLED"] = "true"
os.environ["OTEL_LOGS_ENABLED"] = "false"

from decimal import Decimal
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import database
import dependencies
from schemas import CartLine
from services.cart_service import CartService, CartStore
from services.order_service import OrderService


class InMemoryCartStore(CartStore):
    """Dict-backed cart store; hands out copies like a serializing store would."""

    def __init__(self) -> None:
        self.carts: Dict[str, List[CartLine]] = {}

    def get(self, session_id: str) -> List[CartLine]:
        return list(self.carts.get(session_id, []))

    def replace(self, session_id: str, lines: List[CartLine]) -> None:
        if lines:
            self.carts[session_id] = list(lines)
        else:
            self.carts.pop(session_id, None)


@pytest.fixture
def cart_store() -> InMemoryCartStore:
    return InMemoryCartStore()


@pytest.fixture
def cart_service(cart_store) -> CartService:
    return CartService(cart_store)


@pytest.fixture
def order_service(cart_service) -> OrderService:
    return OrderService(cart_service, tax_rate=Decimal("0.13"))


@pytest.fixture
def engine():
    engine = database.build_engine("sqlite://")
    database.init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory, cart_store):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[database.get_db] = override_get_db
    app.dependency_overrides[dependencies.get_cart_store] = lambda: cart_store
    yield TestClient(app)
    app.dependency_overrides.clear()
