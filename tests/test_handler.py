"""End-to-end tests through the API Gateway entry point."""

import base64
import json

import pytest

from conftest import make_event
from radiusedge_api import handler
from radiusedge_api.db import store_from_url
from radiusedge_api.endpoints import RecordEndpoints


@pytest.fixture
def call(endpoints):
    def _call(event):
        response = handler.dispatch(event, lambda: endpoints)
        body = json.loads(response["body"]) if response["body"] else None
        return response["statusCode"], body

    return _call


class TestRouting:
    def test_ping(self, call):
        assert call(make_event("GET", "/api/ping")) == (200, {"ok": True})

    def test_preflight(self, call):
        response = handler.dispatch(make_event("OPTIONS", "/api/scenarios"), lambda: None)
        assert response["statusCode"] == 204
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"

    def test_unknown_path(self, call):
        assert call(make_event("GET", "/api/packets"))[0] == 404

    def test_method_not_allowed(self, call):
        status, body = call(make_event("DELETE", "/api/scenarios"))
        assert status == 405
        assert "message" in body

    def test_trailing_slash(self, call):
        assert call(make_event("GET", "/api/scenarios/")) == (200, [])

    def test_http_api_v2_event_shape(self, call):
        event = {
            "rawPath": "/api/scenarios",
            "requestContext": {"http": {"method": "POST"}},
            "body": base64.b64encode(json.dumps({"name": "v2"}).encode()).decode(),
            "isBase64Encoded": True,
        }
        status, body = call(event)
        assert status == 201
        assert body["name"] == "v2"


class TestScenarios:
    def test_create_then_list(self, call):
        status, created = call(make_event("POST", "/api/scenarios", body={"name": "n", "tags": ["a", "b"]}))
        assert status == 201
        assert created["tags"] == ["a", "b"]
        assert created["lastModified"] == "2024-05-01T12:00:00.000Z"

        status, listed = call(make_event("GET", "/api/scenarios"))
        assert status == 200
        assert listed == [created]

    def test_missing_name_is_400_and_writes_nothing(self, call):
        status, body = call(make_event("POST", "/api/scenarios", body={"description": "d"}))
        assert status == 400
        assert body == {"message": "name is required"}
        assert call(make_event("GET", "/api/scenarios")) == (200, [])

    def test_invalid_json_is_400(self, call):
        status, body = call(make_event("POST", "/api/scenarios", raw_body="{name:"))
        assert status == 400
        assert "not valid JSON" in body["message"]

    def test_query_parameters(self, call):
        for name in ["foo one", "bar", "foo two", "baz foo"]:
            call(make_event("POST", "/api/scenarios", body={"name": name}))
        status, body = call(
            make_event("GET", "/api/scenarios", query={"search": "FOO", "sortBy": "lastModified", "limit": "2"})
        )
        assert status == 200
        assert [s["name"] for s in body] == ["baz foo", "foo two"]

    def test_bad_limit_is_400(self, call):
        status, body = call(make_event("GET", "/api/scenarios", query={"limit": "lots"}))
        assert status == 400
        assert "limit" in body["message"]

    def test_get_one(self, call):
        _, created = call(make_event("POST", "/api/scenarios", body={"name": "n"}))
        assert call(make_event("GET", f"/api/scenarios/{created['id']}")) == (200, created)
        status, body = call(make_event("GET", "/api/scenarios/unknown"))
        assert status == 404
        assert body == {"message": "Scenario not found"}

    def test_corrupt_row_is_500(self, call, store):
        with store.cursor() as cursor:
            cursor.execute("INSERT INTO scenarios (id, name, steps) VALUES (?, ?, ?)", ("c-1", "c", "{oops"))
        status, body = call(make_event("GET", "/api/scenarios"))
        assert status == 500
        assert body["message"] == "Failed to fetch scenarios"
        assert "c-1" in body["error"]


class TestUsers:
    def test_duplicate_email_is_409(self, call):
        invite = {"email": "ops@example.com", "name": "Ops", "role": "operator"}
        assert call(make_event("POST", "/api/settings/users", body=invite))[0] == 201
        status, body = call(make_event("POST", "/api/settings/users", body={**invite, "name": "Other"}))
        assert status == 409
        assert body == {"message": "Email already exists."}
        status, users = call(make_event("GET", "/api/settings/users"))
        assert [u["email"] for u in users] == ["ops@example.com"]

    def test_credentials_never_leave(self, call):
        invite = {"email": "a@example.com", "name": "A", "role": "admin", "password": "hunter2"}
        status, created = call(make_event("POST", "/api/settings/users", body=invite))
        assert status == 201
        _, users = call(make_event("GET", "/api/settings/users"))
        _, one = call(make_event("GET", f"/api/settings/users/{created['id']}"))
        for payload in (created, users[0], one):
            assert "password" not in payload
            assert "password_hash" not in payload
            assert "hunter2" not in json.dumps(payload)

    def test_missing_fields(self, call):
        status, body = call(make_event("POST", "/api/settings/users", body={"email": "x@example.com"}))
        assert status == 400
        assert body == {"message": "name and role are required"}


class TestInteractions:
    def test_create_and_filter(self, call):
        for kind in ["generate_packet", "explain_attribute"]:
            body = {"interactionType": kind, "userInput": {"q": kind}, "aiOutput": {"a": 1}}
            assert call(make_event("POST", "/api/ai-interactions", body=body))[0] == 201
        status, body = call(make_event("GET", "/api/ai-interactions", query={"interactionType": "generate_packet"}))
        assert status == 200
        assert [i["userInput"] for i in body] == [{"q": "generate_packet"}]


class TestStoreFailures:
    def test_unreachable_store_is_500(self, tmp_path, clock):
        store = store_from_url(f"sqlite:///{tmp_path / 'nowhere' / 'x.db'}")
        endpoints = RecordEndpoints(store, clock=clock)
        response = handler.dispatch(make_event("GET", "/api/settings/users"), lambda: endpoints)
        body = json.loads(response["body"])
        assert response["statusCode"] == 500
        assert body["message"] == "Failed to fetch users"
        assert body["error"]

    def test_lambda_handler_builds_store_from_environment(self, monkeypatch, database_url):
        monkeypatch.setattr(handler, "_endpoints", None)
        monkeypatch.setenv("DATABASE_URL", database_url)
        monkeypatch.setenv("DB_INIT_SCHEMA", "1")
        response = handler.lambda_handler(make_event("POST", "/api/scenarios", body={"name": "env"}), None)
        assert response["statusCode"] == 201
        response = handler.lambda_handler(make_event("GET", "/api/scenarios"), None)
        assert [s["name"] for s in json.loads(response["body"])] == ["env"]

    def test_lambda_handler_without_configuration(self, monkeypatch):
        monkeypatch.setattr(handler, "_endpoints", None)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        response = handler.lambda_handler(make_event("GET", "/api/scenarios"), None)
        assert response["statusCode"] == 500
        assert "DATABASE_URL" in json.loads(response["body"])["error"]
