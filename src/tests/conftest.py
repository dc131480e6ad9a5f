"""Pytest configuration and fixtures for catalog service tests."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

from src.models.base import Base
from src.services.database import get_session_factory


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    # Create in-memory SQLite database for testing
    engine = create_engine("sqlite:///:memory:", echo=False)

    # Create all tables
    Base.metadata.create_all(engine)

    # Create session factory
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import src.services.database as db_module

    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    # Provide database to test
    yield Session

    # Cleanup
    Session.remove()
    Base.metadata.drop_all(engine)

    # Restore original session factory
    db_module.get_session_factory = original_get_session


@pytest.fixture(scope="function")
def make_product(test_db):
    """Factory for catalog products created through the product service.

    SKU segments default to a code derived from the product id so that
    several products can be created in one test without collisions.
    """
    from src.services import product_service

    counter = {"n": 0}

    def _make(product_id, price="10.00", **fields):
        counter["n"] += 1
        data = {
            "id": product_id,
            "name": fields.pop("name", product_id.replace("-", " ").title()),
            "price": price,
            "sku_category": fields.pop("sku_category", "PART"),
            "sku_product_code": fields.pop("sku_product_code", f"P{counter['n']:02d}"),
        }
        data.update(fields)
        return product_service.create_product(data)

    return _make


@pytest.fixture(scope="function")
def pc_build(test_db, make_product):
    """Provide a two-level composition.

    Creates:
    - pc-build ($1500, standalone)
      - pump-a1 ($100, component price $89), quantity 1, included
        - seal-kit ($5), quantity 2, included
      - radiator-360 ($120), quantity 1, optional
    """
    from src.services import component_service

    root = make_product("pc-build", price="1500.00", sku_category="SYST")
    pump = make_product(
        "pump-a1",
        price="100.00",
        component_price="89.00",
        sku_category="PUMP",
        sku_product_code="A01",
        product_type="component",
    )
    seal = make_product("seal-kit", price="5.00", product_type="component")
    radiator = make_product(
        "radiator-360",
        price="120.00",
        sku_category="RADI",
        product_type="component",
    )

    component_service.add_component("pc-build", "pump-a1", quantity=1, sort_order=0)
    component_service.add_component("pump-a1", "seal-kit", quantity=2)
    component_service.add_component(
        "pc-build", "radiator-360", quantity=1, is_included=False, is_required=False, sort_order=1
    )

    return {"root": root, "pump": pump, "seal": seal, "radiator": radiator}
