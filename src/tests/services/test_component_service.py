"""
Tests for Component Service - product composition graph.

Tests cover:
- add_component() validation: missing products, cycles, depth, duplicates
- would_create_cycle() / would_exceed_depth() predicates
- Two-level tree reads, including corrupted deeper data
- remove_component() / update_component()
- get_parent_products() reverse lookup
- check_component_integrity() report
- Retry on serialization failure
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from src.models import ProductComponent
from src.services import component_service
from src.services.component_service import (
    add_component,
    check_component_integrity,
    get_component_tree,
    get_direct_components,
    get_parent_products,
    remove_component,
    update_component,
    would_create_cycle,
    would_exceed_depth,
)
from src.services.exceptions import (
    CircularReferenceError,
    ComponentRelationshipNotFound,
    DatabaseError,
    DepthLimitExceededError,
    DuplicateComponentError,
    ProductNotFound,
    ValidationError,
)

# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def abc(test_db, make_product):
    """Create products a, b, c, d with the chain a -> b -> c."""
    for product_id in ("a", "b", "c", "d"):
        make_product(product_id)
    add_component("a", "b")
    add_component("b", "c")
    return test_db


def _insert_edge_unchecked(test_db, parent_id, component_id):
    """Write an edge directly, bypassing graph validation."""
    session = test_db()
    session.add(
        ProductComponent(parent_product_id=parent_id, component_product_id=component_id, quantity=1)
    )
    session.commit()


# =============================================================================
# Test: add_component
# =============================================================================


class TestAddComponent:
    """Tests for add_component() functionality."""

    def test_add_component_success(self, test_db, make_product):
        """Successfully add a component with relationship attributes."""
        make_product("pc-build")
        make_product("pump-a1")

        relationship = add_component(
            "pc-build",
            "pump-a1",
            quantity=2,
            is_required=False,
            is_included=False,
            price_override="79.50",
            display_name="Primary Pump",
            sort_order=3,
            notes="Upgrade option",
        )

        assert relationship.parent_product_id == "pc-build"
        assert relationship.component_product_id == "pump-a1"
        assert relationship.quantity == 2
        assert relationship.is_required is False
        assert relationship.is_included is False
        assert relationship.price_override == Decimal("79.50")
        assert relationship.display_name == "Primary Pump"
        assert relationship.sort_order == 3
        assert relationship.notes == "Upgrade option"

    def test_add_component_defaults(self, test_db, make_product):
        """Defaults: quantity 1, required, included."""
        make_product("pc-build")
        make_product("pump-a1")

        relationship = add_component("pc-build", "pump-a1")

        assert relationship.quantity == 1
        assert relationship.is_required is True
        assert relationship.is_included is True
        assert relationship.price_override is None

    def test_add_component_rejects_missing_parent(self, test_db, make_product):
        make_product("pump-a1")

        with pytest.raises(ProductNotFound) as excinfo:
            add_component("missing", "pump-a1")
        assert "Parent product not found: missing" in str(excinfo.value)

    def test_add_component_rejects_missing_component(self, test_db, make_product):
        make_product("pc-build")

        with pytest.raises(ProductNotFound) as excinfo:
            add_component("pc-build", "missing")
        assert "Component product not found: missing" in str(excinfo.value)

    def test_add_component_rejects_self_reference(self, test_db, make_product):
        make_product("a")

        with pytest.raises(CircularReferenceError):
            add_component("a", "a")

    def test_add_component_rejects_direct_two_cycle(self, test_db, make_product):
        """If b is a component of a, adding a under b fails with a cycle error."""
        make_product("a")
        make_product("b")
        add_component("a", "b")

        with pytest.raises(CircularReferenceError) as excinfo:
            add_component("b", "a")
        assert "circular reference" in str(excinfo.value)

    def test_add_component_rejects_transitive_cycle(self, abc):
        with pytest.raises(CircularReferenceError):
            add_component("c", "a")

    def test_add_component_rejects_depth_on_leaf(self, abc):
        """a -> b -> c: adding d under c would make a three-level chain."""
        with pytest.raises(DepthLimitExceededError) as excinfo:
            add_component("c", "d")
        assert excinfo.value.max_depth == 2

    def test_add_component_allows_root_sibling(self, abc):
        """a -> b -> c: adding d directly under a stays within two levels."""
        relationship = add_component("a", "d")

        assert relationship.parent_product_id == "a"
        assert relationship.component_product_id == "d"

    def test_add_component_rejects_candidate_with_grandchildren(self, abc):
        """A component that already has grandchildren cannot go under anything."""
        with pytest.raises(DepthLimitExceededError):
            add_component("d", "a")

    def test_add_component_rejects_nested_parent_side(self, test_db, make_product):
        """b sits under a; giving b's child c a child of its own is refused."""
        for product_id in ("a", "b", "c", "e", "f"):
            make_product(product_id)
        add_component("a", "b")
        add_component("e", "f")

        # b is a level-1 component, f has no children: a -> b -> f is allowed
        add_component("b", "f")

        # f is now a level-2 component; it cannot receive children
        with pytest.raises(DepthLimitExceededError):
            add_component("f", "c")

    def test_add_component_rejects_duplicate(self, test_db, make_product):
        make_product("pc-build")
        make_product("pump-a1")
        add_component("pc-build", "pump-a1")

        with pytest.raises(DuplicateComponentError) as excinfo:
            add_component("pc-build", "pump-a1", quantity=3)
        assert "already includes" in str(excinfo.value)

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_add_component_rejects_invalid_quantity(self, test_db, make_product, quantity):
        make_product("pc-build")
        make_product("pump-a1")

        with pytest.raises(ValidationError):
            add_component("pc-build", "pump-a1", quantity=quantity)

    def test_add_component_rejects_negative_price_override(self, test_db, make_product):
        make_product("pc-build")
        make_product("pump-a1")

        with pytest.raises(ValidationError) as excinfo:
            add_component("pc-build", "pump-a1", price_override="-1.00")
        assert "zero or greater" in str(excinfo.value)

    def test_add_component_rejection_writes_nothing(self, abc):
        with pytest.raises(DepthLimitExceededError):
            add_component("c", "d")

        session = abc()
        assert (
            session.query(ProductComponent)
            .filter(ProductComponent.parent_product_id == "c")
            .count()
            == 0
        )

    def test_add_component_with_caller_session(self, test_db, make_product):
        """A caller-supplied session owns the transaction."""
        make_product("pc-build")
        make_product("pump-a1")
        session = test_db()

        add_component("pc-build", "pump-a1", session=session)
        session.rollback()

        assert get_direct_components("pc-build") == []


class TestAddComponentRetry:
    """Tests for the serialization failure retry loop."""

    class _SerializationFailure(Exception):
        pgcode = "40001"

    def _failure(self):
        return OperationalError("INSERT", {}, self._SerializationFailure("could not serialize"))

    def test_retries_then_succeeds(self, test_db, make_product, monkeypatch):
        make_product("pc-build")
        make_product("pump-a1")

        real_impl = component_service._add_component_impl
        calls = {"n": 0}

        def flaky_impl(*args):
            calls["n"] += 1
            if calls["n"] == 1:
                raise self._failure()
            return real_impl(*args)

        monkeypatch.setattr(component_service, "_add_component_impl", flaky_impl)

        relationship = add_component("pc-build", "pump-a1")

        assert calls["n"] == 2
        assert relationship.component_product_id == "pump-a1"

    def test_gives_up_after_max_attempts(self, test_db, make_product, monkeypatch):
        make_product("pc-build")
        make_product("pump-a1")
        calls = {"n": 0}

        def failing_impl(*args):
            calls["n"] += 1
            raise self._failure()

        monkeypatch.setattr(component_service, "_add_component_impl", failing_impl)

        with pytest.raises(DatabaseError):
            add_component("pc-build", "pump-a1")
        assert calls["n"] == component_service.ADD_COMPONENT_MAX_ATTEMPTS


# =============================================================================
# Test: graph predicates
# =============================================================================


class TestGraphPredicates:
    """Tests for would_create_cycle() and would_exceed_depth()."""

    def test_would_create_cycle(self, abc):
        assert would_create_cycle("c", "a") is True
        assert would_create_cycle("b", "a") is True
        assert would_create_cycle("a", "a") is True
        assert would_create_cycle("a", "d") is False
        assert would_create_cycle("d", "c") is False

    def test_would_exceed_depth(self, abc):
        assert would_exceed_depth("c", "d") is True
        assert would_exceed_depth("d", "a") is True
        assert would_exceed_depth("a", "d") is False
        assert would_exceed_depth("b", "d") is False

    def test_cycle_search_terminates_on_corrupted_cycle(self, abc):
        """Malformed cyclic data does not loop forever."""
        _insert_edge_unchecked(abc, "c", "a")

        assert would_create_cycle("d", "a") is False
        assert would_create_cycle("b", "a") is True


# =============================================================================
# Test: tree reads
# =============================================================================


class TestComponentTree:
    """Tests for get_component_tree() and get_direct_components()."""

    def test_chain_has_one_node_with_one_leaf(self, abc):
        tree = get_component_tree("a")

        assert len(tree) == 1
        assert tree[0].component.id == "b"
        assert [leaf.component.id for leaf in tree[0].sub_components] == ["c"]

    def test_tree_never_returns_third_level(self, abc):
        """Data corrupted to a -> b -> c -> d still reads as two levels."""
        _insert_edge_unchecked(abc, "c", "d")

        tree = get_component_tree("a")

        assert len(tree) == 1
        leaf = tree[0].sub_components[0]
        assert leaf.component.id == "c"
        assert not hasattr(leaf, "sub_components")

    def test_tree_for_product_without_components(self, abc):
        assert get_component_tree("d") == []

    def test_tree_orders_by_sort_order(self, test_db, make_product):
        for product_id in ("root", "x", "y", "z"):
            make_product(product_id)
        add_component("root", "x", sort_order=2)
        add_component("root", "y", sort_order=0)
        add_component("root", "z", sort_order=1)

        tree = get_component_tree("root")

        assert [node.component.id for node in tree] == ["y", "z", "x"]

    def test_tree_carries_relationships(self, pc_build):
        tree = get_component_tree("pc-build")

        pump_node, radiator_node = tree
        assert pump_node.relationship.is_included is True
        assert radiator_node.relationship.is_included is False
        assert pump_node.sub_components[0].relationship.quantity == 2

    def test_tree_to_dict(self, pc_build):
        data = get_component_tree("pc-build")[0].to_dict()

        assert data["component"]["id"] == "pump-a1"
        assert data["component"]["component_price"] == "89.00"
        assert data["relationship"]["quantity"] == 1
        assert data["sub_components"][0]["component"]["id"] == "seal-kit"

    def test_direct_components_have_no_sub_components(self, abc):
        direct = get_direct_components("a")

        assert [node.component.id for node in direct] == ["b"]
        assert direct[0].sub_components == []

    def test_remove_then_direct_components(self, abc):
        """Removed component no longer appears among direct components."""
        assert remove_component("a", "b") is True

        assert [node.component.id for node in get_direct_components("a")] == []


# =============================================================================
# Test: remove/update
# =============================================================================


class TestRemoveComponent:
    """Tests for remove_component() functionality."""

    def test_remove_leaves_products(self, abc):
        from src.models import Product

        remove_component("b", "c")

        session = abc()
        assert session.get(Product, "b") is not None
        assert session.get(Product, "c") is not None
        assert get_component_tree("a")[0].sub_components == []

    def test_remove_missing_edge_returns_false(self, abc):
        assert remove_component("a", "d") is False


class TestUpdateComponent:
    """Tests for update_component() functionality."""

    def test_update_fields(self, pc_build):
        relationship = update_component(
            "pc-build", "pump-a1", quantity=3, price_override="80.00", is_included=False
        )

        assert relationship.quantity == 3
        assert relationship.price_override == Decimal("80.00")
        assert relationship.is_included is False

    def test_update_clears_price_override(self, pc_build):
        update_component("pc-build", "pump-a1", price_override="80.00")

        relationship = update_component("pc-build", "pump-a1", price_override=None)

        assert relationship.price_override is None

    def test_update_missing_relationship(self, pc_build):
        with pytest.raises(ComponentRelationshipNotFound):
            update_component("pc-build", "seal-kit", quantity=2)

    def test_update_rejects_endpoint_change(self, pc_build):
        with pytest.raises(ValidationError) as excinfo:
            update_component("pc-build", "pump-a1", component_product_id="seal-kit")
        assert "component_product_id" in str(excinfo.value)

    def test_update_rejects_parent_change(self, pc_build):
        with pytest.raises(ValidationError) as excinfo:
            update_component("pc-build", "pump-a1", parent_product_id="seal-kit")
        assert "parent_product_id" in str(excinfo.value)

    def test_update_rejects_invalid_quantity(self, pc_build):
        with pytest.raises(ValidationError):
            update_component("pc-build", "pump-a1", quantity=0)


# =============================================================================
# Test: reverse lookup and integrity
# =============================================================================


class TestParentProducts:
    """Tests for get_parent_products() functionality."""

    def test_parents_of_shared_component(self, test_db, make_product):
        for product_id in ("build-1", "build-2", "pump-a1"):
            make_product(product_id)
        add_component("build-2", "pump-a1")
        add_component("build-1", "pump-a1")

        parents = get_parent_products("pump-a1")

        assert [product.id for product in parents] == ["build-1", "build-2"]

    def test_parents_of_unused_product(self, abc):
        assert get_parent_products("a") == []


class TestComponentIntegrity:
    """Tests for check_component_integrity() report."""

    def test_valid_composition(self, pc_build):
        report = check_component_integrity("pc-build")

        assert report["is_valid"] is True
        assert report["issues_count"] == 0

    def test_reports_corrupted_depth(self, abc):
        _insert_edge_unchecked(abc, "c", "d")

        report = check_component_integrity("a")

        assert report["is_valid"] is False
        assert any("deeper than 2 levels" in issue for issue in report["issues"])
