"""Tests for catalog queries."""

import pytest
from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError

from catalog import MAX_PAGE, MAX_PAGE_SIZE, CatalogService, parse_positive_int, to_str_id
from errors import ValidationError
from schemas import Product


@pytest.fixture()
def catalog(inventory):
    return CatalogService(inventory)


class TestParsePositiveInt:
    @pytest.mark.parametrize(
        "raw, expected",
        [("5", 5), ("12abc", 12), (None, 10), ("", 10), ("abc", 10), ("0", 10), ("-3", 10), ("\u0663", 10)],
    )
    def test_parsing(self, raw, expected):
        assert parse_positive_int(raw, 10, 100) == expected

    def test_capped_at_maximum(self):
        assert parse_positive_int("150", 10, 100) == 100
        assert parse_positive_int("9" * 20, 10, 100) == 100


def test_to_str_id():
    oid = ObjectId()
    assert to_str_id({"_id": oid, "name": "x"}) == {"id": str(oid), "name": "x"}
    assert to_str_id(None) is None


class TestListByCategory:
    def test_bounded_to_ten(self, catalog, add_product):
        for i in range(12):
            add_product(name=f"Boy {i}", category="boys")
        add_product(name="Girl", category="girls")

        result = catalog.list_by_category("boys")

        assert len(result) == 10
        assert all(p["category"] == "boys" for p in result)


class TestGetProduct:
    def test_found(self, catalog, add_product):
        pid = add_product(name="Cap")
        assert catalog.get_product(str(pid))["id"] == str(pid)

    def test_absent_is_none(self, catalog):
        assert catalog.get_product(str(ObjectId())) is None

    def test_malformed_id(self, catalog):
        with pytest.raises(ValidationError):
            catalog.get_product("nope")


class TestRelated:
    def test_excludes_id_and_bounds_to_four(self, catalog, add_product):
        ids = [add_product(name=f"A{i}", category="A") for i in range(6)]

        result = catalog.related("A", str(ids[0]))

        assert len(result) == 4
        assert str(ids[0]) not in [p["id"] for p in result]

    def test_invalid_id(self, catalog):
        with pytest.raises(ValidationError) as exc:
            catalog.related("A", "not-an-id")
        assert exc.value.message == "Invalid product ID"


class TestSearch:
    def test_case_insensitive_substring(self, catalog, add_product):
        add_product(name="Blue Denim Jacket")
        add_product(name="denim shorts")
        add_product(name="Cotton Tee")

        names = sorted(p["name"] for p in catalog.search("DENIM"))

        assert names == ["Blue Denim Jacket", "denim shorts"]

    def test_pattern_characters_are_literal(self, catalog, add_product):
        add_product(name="Tee (2 pack)")
        add_product(name="Tee 2 pack")

        assert [p["name"] for p in catalog.search("(2")] == ["Tee (2 pack)"]

    @pytest.mark.parametrize("q", [None, ""])
    def test_query_required(self, catalog, q):
        with pytest.raises(ValidationError) as exc:
            catalog.search(q)
        assert exc.value.message == "Query is required"


class TestListPage:
    def test_second_page(self, catalog, add_product):
        for i in range(6):
            add_product(name=f"Girl {i}", category="girls")
        add_product(name="Boy", category="boys")

        result = catalog.list_page("girls", "2", "2")

        assert [p["name"] for p in result] == ["Girl 2", "Girl 3"]

    def test_defaults(self, catalog, add_product):
        for i in range(12):
            add_product(name=f"Item {i}")

        result = catalog.list_page()

        assert len(result) == 10
        assert result[0]["name"] == "Item 0"


class TestProductSchema:
    def test_duplicate_sizes_rejected(self):
        with pytest.raises(PydanticValidationError):
            Product(name="Tee", category="boys", sizes=[{"size": "S", "stock": 1}, {"size": "S", "stock": 2}])

    def test_negative_stock_rejected(self):
        with pytest.raises(PydanticValidationError):
            Product(name="Tee", category="boys", sizes=[{"size": "S", "stock": -1}])

    def test_display_fields_kept(self):
        product = Product(name="Tee", category="boys", price=450, image="tee.jpg")
        assert product.model_dump()["price"] == 450


class TestListPageBounds:
    def test_oversized_limit_is_capped(self, catalog, inventory, monkeypatch):
        seen = {}

        def record(query, skip=0, limit=0):
            seen.update(skip=skip, limit=limit)
            return []

        monkeypatch.setattr(inventory, "query_products", record)

        catalog.list_page(limit="9" * 20, page="9" * 20)

        assert seen["limit"] == MAX_PAGE_SIZE
        assert seen["skip"] == (MAX_PAGE - 1) * MAX_PAGE_SIZE
        assert seen["skip"] < 2 ** 63
