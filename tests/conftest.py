"""
Pytest fixtures for stock ledger tests.

Every test gets its own SQLite file, a TenantLedger over it, one actor per
tenant and an HTTP client wired to the same ledger.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from stockledger.api.deps import get_ledger
from stockledger.database import init_db, make_engine
from stockledger.main import app
from stockledger.schemas.identity import Actor
from stockledger.schemas.order import OrderCreate, OrderLineItemCreate
from stockledger.schemas.recipe import IngredientInput, RecipeCreate
from stockledger.schemas.stock import StockItemCreate
from stockledger.services import order_service, recipe_service, stock_service
from stockledger.services.store import SnapshotStore
from stockledger.services.transaction import TenantLedger

TENANT_A = "LIC-AAAA"
TENANT_B = "LIC-BBBB"


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return SnapshotStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


@pytest.fixture
def ledger(store):
    return TenantLedger(store, lock_timeout=5)


@pytest.fixture
def actor_a():
    return Actor(actor_id="chef-a", role="manager", tenant_id=TENANT_A)


@pytest.fixture
def actor_b():
    return Actor(actor_id="chef-b", role="manager", tenant_id=TENANT_B)


@pytest.fixture
def client(ledger):
    app.dependency_overrides[get_ledger] = lambda: ledger
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def headers_a():
    return {"X-Actor-Id": "chef-a", "X-Actor-Role": "manager", "X-Tenant-Id": TENANT_A}


@pytest.fixture
def headers_b():
    return {"X-Actor-Id": "chef-b", "X-Actor-Role": "manager", "X-Tenant-Id": TENANT_B}


@pytest.fixture
def flour(ledger, actor_a):
    """10 kg of flour at 2 per kg for tenant A."""
    return stock_service.add_item(
        ledger, TENANT_A,
        StockItemCreate(name="Flour", quantity=Decimal("10"), unit="kg", cost=Decimal("2")),
        actor_a,
    )


@pytest.fixture
def bread(ledger, actor_a, flour):
    """Recipe using 2 kg of flour, sold at 20."""
    return recipe_service.add_recipe(
        ledger, TENANT_A,
        RecipeCreate(
            name="Bread",
            price=Decimal("20"),
            ingredients=[IngredientInput(stock_item_id=flour.id, quantity=Decimal("2"))],
        ),
        actor_a,
    )


@pytest.fixture
def make_order(ledger):
    """Create a pending order from (name, quantity, unit_price[, unit]) tuples."""

    def _make(actor, *lines, supplier="Metro"):
        line_items = [
            OrderLineItemCreate(
                name=line[0],
                quantity=Decimal(str(line[1])),
                unit_price=Decimal(str(line[2])),
                unit=line[3] if len(line) > 3 else "unit",
            )
            for line in lines
        ]
        return order_service.create_order(
            ledger, actor.tenant_id, OrderCreate(supplier=supplier, line_items=line_items), actor
        )

    return _make
