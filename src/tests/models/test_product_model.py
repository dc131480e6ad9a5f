"""
Unit tests for Product, ProductComponent and OrderItem models.

Tests cover:
- Product defaults and helper properties
- Database constraints on products and component edges
- Cascade of a parent's own component edges
- OrderItem component tree access
"""

import json
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from src.models import OrderItem, Product, ProductComponent, ProductStatus


def _product(product_id, sku, **fields):
    values = {
        "id": product_id,
        "name": product_id.title(),
        "slug": product_id,
        "sku": sku,
        "sku_prefix": sku[0:3],
        "sku_category": sku[4:8],
        "sku_product_code": sku[9:12],
        "sku_version": sku[13:16],
        "price": Decimal("10.00"),
    }
    values.update(fields)
    return Product(**values)


@pytest.fixture
def session(test_db):
    return test_db()


class TestProductModel:
    """Tests for Product defaults and properties."""

    def test_defaults(self, session):
        session.add(_product("pump", "TPC-PUMP-A01-V01"))
        session.commit()

        product = session.get(Product, "pump")
        assert product.status == ProductStatus.ACTIVE.value
        assert product.is_available_for_purchase is True
        assert product.version == 1
        assert product.product_type == "standalone"
        assert product.currency == "USD"
        assert product.features == []
        assert product.specifications == {}
        assert product.created_at is not None

    def test_properties(self, session):
        product = _product("pump_v2", "TPC-PUMP-A01-V02", base_product_id="pump", version=2)

        assert product.lineage_id == "pump"
        assert product.is_replaced is False
        assert _product("pump", "TPC-PUMP-A01-V01").lineage_id == "pump"

    def test_effective_component_price(self):
        assert _product("a", "TPC-PUMP-A01-V01").effective_component_price == Decimal("10.00")
        assert _product(
            "b", "TPC-PUMP-A02-V01", component_price=Decimal("7.50")
        ).effective_component_price == Decimal("7.50")

    def test_to_dict_serializes_decimals(self, session):
        session.add(_product("pump", "TPC-PUMP-A01-V01"))
        session.commit()

        data = session.get(Product, "pump").to_dict()

        assert data["price"] == "10.00"
        assert isinstance(data["created_at"], str)
        json.dumps(data)

    @pytest.mark.parametrize(
        "fields",
        [
            {"status": "archived"},
            {"product_type": "bundle"},
            {"price": Decimal("-1.00")},
            {"version": 0},
        ],
    )
    def test_check_constraints(self, session, fields):
        session.add(_product("pump", "TPC-PUMP-A01-V01", **fields))

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_unique_sku(self, session):
        session.add(_product("a", "TPC-PUMP-A01-V01"))
        session.add(_product("b", "TPC-PUMP-A01-V01"))

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()


class TestProductComponentModel:
    """Tests for ProductComponent constraints and cascades."""

    @pytest.fixture
    def products(self, session):
        session.add(_product("build", "TPC-SYST-B01-V01"))
        session.add(_product("pump", "TPC-PUMP-A01-V01"))
        session.commit()

    def test_relationships_and_label(self, session, products):
        edge = ProductComponent(parent_product_id="build", component_product_id="pump", quantity=2)
        session.add(edge)
        session.commit()

        build = session.get(Product, "build")
        assert [c.component.id for c in build.components] == ["pump"]
        assert edge.label == "Pump"
        edge.display_name = "Main Pump"
        assert edge.label == "Main Pump"

    @pytest.mark.parametrize(
        "fields",
        [
            {"component_product_id": "build"},
            {"quantity": 0},
            {"sort_order": -1},
        ],
    )
    def test_check_constraints(self, session, products, fields):
        values = {"parent_product_id": "build", "component_product_id": "pump", "quantity": 1}
        values.update(fields)
        session.add(ProductComponent(**values))

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_unique_pair(self, session, products):
        session.add(ProductComponent(parent_product_id="build", component_product_id="pump"))
        session.add(ProductComponent(parent_product_id="build", component_product_id="pump"))

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_deleting_parent_deletes_its_edges(self, session, products):
        session.add(ProductComponent(parent_product_id="build", component_product_id="pump"))
        session.commit()

        session.delete(session.get(Product, "build"))
        session.commit()

        assert session.query(ProductComponent).count() == 0
        assert session.get(Product, "pump") is not None


class TestOrderItemModel:
    """Tests for OrderItem."""

    def _order_item(self, component_tree):
        return OrderItem(
            order_id=1,
            product_id="build",
            product_sku="TPC-SYST-B01-V01",
            product_name="Build",
            product_type="standalone",
            component_tree=component_tree,
            quantity=1,
            base_price=Decimal("1.00"),
            price=Decimal("1.00"),
            line_total=Decimal("1.00"),
        )

    def test_component_tree_round_trip(self, session):
        tree = [{"component_id": "pump", "components": []}]
        session.add(self._order_item(tree))
        session.commit()

        stored = session.query(OrderItem).one()
        assert stored.get_component_tree() == tree
        assert stored.snapshot_version == 1

    def test_component_tree_from_string(self):
        assert self._order_item('[{"component_id": "pump"}]').get_component_tree() == [
            {"component_id": "pump"}
        ]
        assert self._order_item(None).get_component_tree() == []
