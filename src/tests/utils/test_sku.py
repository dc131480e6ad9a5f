"""Tests for SKU utilities."""

import pytest

from src.utils.sku import (
    InvalidSKUError,
    SKUComponents,
    generate_sku,
    get_base_sku,
    get_version_number,
    get_version_string,
    increment_version,
    is_same_product,
    is_valid_sku,
    parse_sku,
)


class TestGenerateSku:
    def test_default_prefix(self):
        assert generate_sku(category="PUMP", product_code="A01") == "TPC-PUMP-A01-V01"

    def test_explicit_prefix_and_version(self):
        assert generate_sku("MOTR", "M01", prefix="ACM", version=12) == "ACM-MOTR-M01-V12"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"category": "PUM", "product_code": "A01"},
            {"category": "PUMP", "product_code": "A1"},
            {"category": "PUMP", "product_code": "A01", "prefix": "TP"},
            {"category": "PUMP", "product_code": "A01", "version": 0},
            {"category": "PUMP", "product_code": "A01", "version": 100},
            {"category": "pump", "product_code": "A01"},
            {"category": "PUMP", "product_code": "a01"},
        ],
    )
    def test_invalid_segments(self, kwargs):
        with pytest.raises(InvalidSKUError):
            generate_sku(**kwargs)


class TestParseSku:
    def test_parse(self):
        components = parse_sku("TPC-RADI-R02-V07")

        assert components == SKUComponents(
            prefix="TPC", category="RADI", product_code="R02", version=7
        )
        assert components.version_string == "V07"
        assert components.base == "TPC-RADI-R02"

    @pytest.mark.parametrize(
        "sku",
        ["", None, "TPC-PUMP-A01", "TPC-PUMP-A01-V1", "TPC-PUMP-A01-01", "tpc-pump-a01-v01"],
    )
    def test_invalid(self, sku):
        with pytest.raises(InvalidSKUError):
            parse_sku(sku)
        assert is_valid_sku(sku) is False


class TestVersionHelpers:
    def test_increment_version(self):
        assert increment_version("TPC-PUMP-A01-V01") == "TPC-PUMP-A01-V02"
        assert increment_version("TPC-PUMP-A01-V09") == "TPC-PUMP-A01-V10"

    def test_increment_past_99(self):
        with pytest.raises(InvalidSKUError):
            increment_version("TPC-PUMP-A01-V99")

    def test_base_and_version_parts(self):
        assert get_base_sku("TPC-PUMP-A01-V07") == "TPC-PUMP-A01"
        assert get_version_string("TPC-PUMP-A01-V07") == "V07"
        assert get_version_number("TPC-PUMP-A01-V07") == 7

    def test_is_same_product(self):
        assert is_same_product("TPC-PUMP-A01-V01", "TPC-PUMP-A01-V04") is True
        assert is_same_product("TPC-PUMP-A01-V01", "TPC-PUMP-A02-V01") is False
        assert is_same_product("TPC-PUMP-A01-V01", "garbage") is False
