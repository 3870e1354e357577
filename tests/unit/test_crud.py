"""Tests for the dynamic CRUD engine."""

import json
import re

import pytest

from scaffolddb.core.types import CrudOperation, CrudRequest
from scaffolddb.data.crud import parse_body, parse_record_id
from scaffolddb.exceptions import BadRequestError, NotFoundError, ValidationError


def request(db, operation, entity, **kwargs):
    return db.handle(CrudRequest(operation=operation, entity=entity, **kwargs))


class TestList:
    """Tests for listing records."""

    def test_returns_seeded_data(self, categories):
        result = categories.list()
        assert len(result["data"]) == 3
        assert result["meta"] == {"total": 3, "page": 1, "per_page": 25, "last_page": 1}

    def test_pagination(self, categories):
        first = categories.list({"per_page": "2", "page": "1"})
        assert len(first["data"]) == 2
        assert first["meta"]["last_page"] == 2

        second = categories.list({"per_page": "2", "page": "2"})
        assert [r["name"] for r in second["data"]] == ["Gamma"]

    def test_page_past_the_end_is_empty(self, categories):
        result = categories.list({"page": "9"})
        assert result["data"] == []
        assert result["meta"]["total"] == 3

    def test_sort_descending(self, categories):
        result = categories.list({"sort": "-sort_order"})
        assert [r["name"] for r in result["data"]] == ["Gamma", "Beta", "Alpha"]

    def test_sort_is_monotonic(self, make_item, items):
        for quantity in (5, 1, 9, 3):
            make_item(quantity=quantity)

        ascending = [r["quantity"] for r in items.list({"sort": "quantity"})["data"]]
        descending = [r["quantity"] for r in items.list({"sort": "-quantity"})["data"]]
        assert ascending == sorted(ascending)
        assert descending == sorted(descending, reverse=True)

    def test_default_sort_is_id(self, categories):
        ids = [r["id"] for r in categories.list()["data"]]
        assert ids == sorted(ids)

    def test_exact_filter(self, categories):
        result = categories.list({"name": "Beta"})
        assert [r["name"] for r in result["data"]] == ["Beta"]
        assert result["meta"]["total"] == 1

    def test_like_filter(self, categories):
        result = categories.list({"name_like": "%lpha"})
        assert [r["name"] for r in result["data"]] == ["Alpha"]

    def test_comparison_filters(self, categories):
        assert len(categories.list({"sort_order_gt": "0"})["data"]) == 2
        assert len(categories.list({"sort_order_gte": "1"})["data"]) == 2
        assert len(categories.list({"sort_order_lt": "2"})["data"]) == 2
        assert len(categories.list({"sort_order_lte": "0"})["data"]) == 1

    def test_null_filter(self, make_item, items):
        make_item(name="Empty")
        make_item(name="Stocked", quantity=4)

        assert [r["name"] for r in items.list({"quantity_null": "true"})["data"]] == ["Empty"]
        assert [r["name"] for r in items.list({"quantity_null": "false"})["data"]] == ["Stocked"]

    def test_combined_filters(self, categories):
        result = categories.list([("sort_order_gte", "1"), ("name_like", "G%")])
        assert [r["name"] for r in result["data"]] == ["Gamma"]

    def test_unknown_sort_and_filter_have_no_effect(self, categories):
        baseline = categories.list()
        result = categories.list({"sort": "nonexistent", "password": "x", "secret_like": "%"})
        assert result == baseline

    def test_injection_attempt_in_filter_key_is_dropped(self, categories):
        result = categories.list({"name; DROP TABLE categorys; --": "x"})
        assert result["meta"]["total"] == 3
        assert categories.list()["meta"]["total"] == 3

    def test_filter_value_is_bound(self, categories):
        result = categories.list({"name": "Alpha' OR '1'='1"})
        assert result["data"] == []

    def test_booleans_deserialized(self, make_item, items):
        make_item(is_active=False)
        row = items.list()["data"][0]
        assert row["is_active"] is False


class TestGet:
    """Tests for fetching one record."""

    def test_get_existing(self, categories):
        data = categories.get(1)["data"]
        assert data["name"] == "Alpha"
        assert data["id"] == 1

    def test_string_id(self, categories):
        assert categories.get("2")["data"]["name"] == "Beta"

    def test_missing(self, categories):
        with pytest.raises(NotFoundError):
            categories.get(999)

    def test_non_integer_id_is_not_found(self, categories):
        with pytest.raises(NotFoundError):
            categories.get("abc")

    def test_id_beyond_integer_range_is_not_found(self, categories):
        for huge in ("99999999999999999999", 2**63, -(2**63) - 1):
            with pytest.raises(NotFoundError):
                categories.get(huge)


class TestCreate:
    """Tests for creating records."""

    def test_create_returns_stored_row(self, items):
        data = items.create({"name": "New Item", "category_id": 1, "item_type": "access"})["data"]
        assert data["name"] == "New Item"
        assert isinstance(data["id"], int)
        assert re.match(r"^[0-9a-f]{8}-", data["uuid"])
        assert data["is_active"] is True
        assert data["created_at"]
        assert data["updated_at"]
        assert data["quantity"] is None

    def test_round_trip_after_coercion(self, items):
        body = {
            "name": "Configured",
            "category_id": 1,
            "item_type": "consumable",
            "quantity": 3,
            "is_active": "true",
            "price": 2.5,
            "email": "a@b.co",
            "config": '{"nested": {"x": [1, 2]}}',
        }
        created = items.create(body)["data"]
        fetched = items.get(created["id"])["data"]

        expected = {**body, "is_active": True, "config": {"nested": {"x": [1, 2]}}}
        for key, value in expected.items():
            assert fetched[key] == value
        assert fetched == created

    def test_json_object(self, make_item, items):
        created = make_item(config={"foo": "bar"})
        assert items.get(created["id"])["data"]["config"] == {"foo": "bar"}

    def test_boolean_false(self, make_item):
        assert make_item(is_active=False)["is_active"] is False

    def test_supplied_uuid_is_kept(self, make_item):
        assert make_item(uuid="fixed")["uuid"] == "fixed"

    def test_unknown_keys_ignored(self, make_item):
        created = make_item(id=500, colour="red")
        assert created["id"] != 500
        assert "colour" not in created

    def test_required(self, items):
        with pytest.raises(ValidationError, match="is required"):
            items.create({"item_type": "access"})

    def test_enum(self, make_item):
        with pytest.raises(ValidationError, match="must be one of"):
            make_item(item_type="invalid_type")

    def test_email(self, make_item):
        with pytest.raises(ValidationError, match="valid email"):
            make_item(email="not-an-email")

    def test_missing_relation(self, make_item):
        with pytest.raises(ValidationError, match="non-existent"):
            make_item(category_id=999)

    def test_relation_beyond_integer_range(self, make_item):
        with pytest.raises(ValidationError, match="references a non-existent Category"):
            make_item(category_id=99999999999999999999)

    @pytest.mark.parametrize(
        ("field", "value"),
        [("name", ["a"]), ("quantity", {"n": 1}), ("price", [1.5]), ("email", ["a@b.co"])],
    )
    def test_container_for_scalar_property(self, make_item, field, value):
        with pytest.raises(ValidationError, match=f"{field} must be a scalar value"):
            make_item(**{field: value})

    def test_integer_beyond_range(self, make_item):
        with pytest.raises(ValidationError, match="quantity is out of range"):
            make_item(quantity=2**63)

    def test_failed_validation_writes_nothing(self, make_item, items):
        with pytest.raises(ValidationError):
            make_item(category_id=999)
        assert items.list()["meta"]["total"] == 0

    def test_invalid_json_body(self, items):
        with pytest.raises(BadRequestError, match="Invalid JSON body"):
            items.create("not json")

    def test_json_text_body(self, items):
        body = json.dumps({"name": "Text", "category_id": 1, "item_type": "access"})
        assert items.create(body.encode())["data"]["name"] == "Text"


class TestReplace:
    """Tests for replacing records."""

    def test_replace(self, make_item, items):
        created = make_item(name="Original", quantity=3, email="a@b.co", is_active=False)

        data = items.replace(
            created["id"], {"name": "Updated", "category_id": 2, "item_type": "consumable"}
        )["data"]
        assert data["name"] == "Updated"
        assert data["item_type"] == "consumable"
        assert data["category_id"] == 2
        # Absent: nullable -> NULL, declared default -> default, uuid untouched
        assert data["quantity"] is None
        assert data["email"] is None
        assert data["is_active"] is True
        assert data["uuid"] == created["uuid"]
        assert data["created_at"] == created["created_at"]

    def test_replace_missing(self, items):
        with pytest.raises(NotFoundError):
            items.replace(999, {"name": "Nope"})

    def test_replace_validates_present_fields(self, make_item, items):
        created = make_item()
        with pytest.raises(ValidationError):
            items.replace(created["id"], {"item_type": "bogus"})

    def test_replace_rejects_container_for_scalar(self, make_item, items):
        created = make_item()
        with pytest.raises(ValidationError, match="name must be a scalar value"):
            items.replace(created["id"], {"name": {"first": "x"}, "item_type": "access"})
        assert items.get(created["id"])["data"] == created


class TestPatch:
    """Tests for partial updates."""

    def test_patch_only_touches_given_field(self, make_item, items):
        created = make_item(name="Original", quantity=3, config={"a": 1})

        data = items.patch(created["id"], {"name": "Patched"})["data"]
        assert data["name"] == "Patched"
        for key in ("item_type", "quantity", "config", "uuid", "category_id", "created_at"):
            assert data[key] == created[key]

    def test_patch_refreshes_updated_at(self, make_item, items):
        created = make_item()
        data = items.patch(created["id"], {"quantity": 1})["data"]
        assert data["updated_at"] >= created["updated_at"]

    def test_patch_missing(self, items):
        with pytest.raises(NotFoundError):
            items.patch(999, {"name": "Nope"})

    def test_patch_validates_enum(self, make_item, items):
        created = make_item()
        with pytest.raises(ValidationError):
            items.patch(created["id"], {"item_type": "invalid"})

    def test_patch_rejects_container_for_scalar(self, make_item, items):
        created = make_item()
        with pytest.raises(ValidationError, match="quantity must be a scalar value"):
            items.patch(created["id"], {"quantity": [1, 2]})
        assert items.get(created["id"])["data"] == created

    def test_patch_accepts_container_for_json(self, make_item, items):
        created = make_item()
        assert items.patch(created["id"], {"config": [1, 2]})["data"]["config"] == [1, 2]

    def test_empty_patch_is_bad_request(self, make_item, items):
        created = make_item()
        with pytest.raises(BadRequestError, match="No valid fields to update"):
            items.patch(created["id"], {})
        assert items.get(created["id"])["data"] == created

    def test_system_columns_are_not_patchable(self, make_item, items):
        created = make_item()
        with pytest.raises(BadRequestError):
            items.patch(created["id"], {"id": 77, "created_at": "yesterday", "colour": "red"})


class TestDelete:
    """Tests for deleting records."""

    def test_delete(self, make_item, items):
        created = make_item()
        assert items.delete(created["id"]) == {"data": {"id": created["id"]}}
        with pytest.raises(NotFoundError):
            items.get(created["id"])

    def test_delete_missing(self, items):
        with pytest.raises(NotFoundError):
            items.delete(999)


class TestEagerLoading:
    """Tests for with= relation loading."""

    def test_list_with_relation(self, make_item, items, categories):
        make_item(name="Linked", category_id=1)

        row = next(r for r in items.list({"with": "category"})["data"] if r["name"] == "Linked")
        assert row["category"] == categories.get(1)["data"]

    def test_get_with_relation(self, make_item, items):
        created = make_item(category_id=2, item_type="consumable")
        data = items.get(created["id"], {"with": "category"})["data"]
        assert data["category"]["name"] == "Beta"

    def test_one_query_per_relation(self, make_item, items, statements):
        for index in range(6):
            make_item(name=f"Item {index}", category_id=index % 3 + 1)

        statements.clear()
        items.list()
        plain = len(statements)

        statements.clear()
        result = items.list({"with": "category"})
        assert len(statements) == plain + 1
        assert all(row["category"]["id"] == row["category_id"] for row in result["data"])

    def test_unknown_relation_ignored(self, make_item, items, statements):
        make_item()
        statements.clear()
        row = items.list({"with": "owner"})["data"][0]
        assert "owner" not in row
        assert len(statements) == 2

    def test_dangling_foreign_key_attaches_none(self, make_item, items, engine):
        from sqlalchemy import text

        created = make_item()
        with engine.begin() as conn:
            conn.execute(text("UPDATE items SET category_id = 42"))
        data = items.get(created["id"], {"with": "category"})["data"]
        assert data["category"] is None

    def test_pivot_relation(self, memory_db, make_item):
        item = make_item(name="Tagged")
        tags = memory_db.resource("itemtags")
        tags.create({"item_id": item["id"], "tag_id": 7})

        row = tags.list({"with": "item"})["data"][0]
        assert row["item"]["name"] == "Tagged"
        assert "created_at" not in row


class TestPivot:
    """Tests for pivot entities."""

    def test_duplicate_pair_rejected(self, memory_db, make_item):
        item = make_item()
        response = request(
            memory_db, "create", "itemtags", body={"item_id": item["id"], "tag_id": 1}
        )
        assert response.status == 201

        duplicate = request(
            memory_db, "create", "itemtags", body={"item_id": item["id"], "tag_id": 1}
        )
        assert duplicate.status == 400


class TestHandle:
    """Tests for the request/response boundary."""

    def test_list_envelope(self, memory_db):
        response = request(memory_db, "list", "categorys", params={"sort": "-sort_order"})
        assert response.status == 200
        assert [r["name"] for r in response.body["data"]] == ["Gamma", "Beta", "Alpha"]

    def test_create_status(self, memory_db):
        response = request(
            memory_db,
            "create",
            "items",
            body={"name": "New", "category_id": 1, "item_type": "access"},
        )
        assert response.status == 201
        assert response.body["data"]["name"] == "New"

    @pytest.mark.parametrize(
        ("kwargs", "status"),
        [
            ({"operation": "get", "entity": "categorys", "id": 999}, 404),
            ({"operation": "get", "entity": "widgets", "id": 1}, 404),
            ({"operation": "create", "entity": "items", "body": {"item_type": "x"}}, 422),
            ({"operation": "create", "entity": "items", "body": "not json"}, 400),
            ({"operation": "create", "entity": "items", "body": None}, 400),
            ({"operation": "patch", "entity": "categorys", "id": 1, "body": {}}, 400),
            ({"operation": "delete", "entity": "categorys", "id": "x"}, 404),
            ({"operation": "get", "entity": "items", "id": "99999999999999999999"}, 404),
            (
                {
                    "operation": "create",
                    "entity": "items",
                    "body": {"name": "W", "item_type": "access", "category_id": 10**20},
                },
                422,
            ),
            (
                {
                    "operation": "create",
                    "entity": "items",
                    "body": {"name": ["a"], "item_type": "access", "category_id": 1},
                },
                422,
            ),
        ],
    )
    def test_error_envelopes(self, memory_db, kwargs, status):
        response = memory_db.handle(CrudRequest(**kwargs))
        assert response.status == status
        assert response.body["error"]["status"] == status
        assert response.body["error"]["message"]

    def test_not_found_message(self, memory_db):
        response = request(memory_db, "get", "categorys", id=999)
        assert response.body == {"error": {"message": "Not found", "status": 404}}

    def test_huge_page_is_an_empty_page(self, memory_db):
        params = {"page": "99999999999999999999"}
        response = request(memory_db, "list", "categorys", params=params)
        assert response.status == 200
        assert response.body["data"] == []
        assert response.body["meta"]["total"] == 3

    def test_repeated_param_pairs(self, memory_db):
        response = request(
            memory_db,
            "list",
            "categorys",
            params=[("sort_order_gt", "0"), ("sort_order_lt", "2")],
        )
        assert [r["name"] for r in response.body["data"]] == ["Beta"]


class TestRoutes:
    """Tests for the route table."""

    def test_six_routes_per_entity(self, memory_db):
        routes = memory_db.crud.routes()
        assert len(routes) == 18
        item_routes = {(r.method, r.path) for r in routes if r.entity == "items"}
        assert item_routes == {
            ("GET", "/api/items"),
            ("POST", "/api/items"),
            ("GET", "/api/items/{id}"),
            ("PUT", "/api/items/{id}"),
            ("PATCH", "/api/items/{id}"),
            ("DELETE", "/api/items/{id}"),
        }

    def test_operations(self, memory_db):
        ops = {r.operation for r in memory_db.crud.routes() if r.entity == "itemtags"}
        assert ops == set(CrudOperation)


class TestParsing:
    """Tests for id and body parsing."""

    def test_record_id(self):
        assert parse_record_id(5) == 5
        assert parse_record_id(" 12 ") == 12
        for bad in ("1.5", "abc", True, None):
            with pytest.raises(NotFoundError):
                parse_record_id(bad)

    def test_body(self):
        assert parse_body({"a": 1}) == {"a": 1}
        assert parse_body('{"a": 1}') == {"a": 1}
        assert parse_body(b'{"a": 1}') == {"a": 1}
        for bad in ("[1, 2]", "nope", None, 3):
            with pytest.raises(BadRequestError):
                parse_body(bad)
