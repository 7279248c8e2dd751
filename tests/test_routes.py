"""HTTP-level tests: every JSON-RPC outcome is an HTTP 200 with an envelope."""

import pytest
from fastapi.testclient import TestClient

from schema_gateway.config import settings
from schema_gateway.main import create_app
from schema_gateway.services.registry import SchemaRegistry
from schema_gateway.services.validation import ValidationDispatcher

RPC_PATH = settings.RPC_PATH


@pytest.fixture
def registry():
    return SchemaRegistry()


@pytest.fixture
def client(registry):
    return TestClient(create_app(registry=registry, dispatcher=ValidationDispatcher("draft4")))


def rpc(client, method, params=None, request_id=1):
    body = {"jsonrpc": "2.0", "method": method, "id": request_id}
    if params is not None:
        body["params"] = params
    response = client.post(RPC_PATH, json=body)
    assert response.status_code == 200
    return response.json()


def test_save_and_validate_by_id(client):
    saved = rpc(client, "saveSchema", {"name": "age", "schema": {"type": "integer", "minimum": 0}})
    schema_id = saved["result"]["schemaId"]

    ok = rpc(client, "validateById", {"schemaId": schema_id, "json": 30})
    assert ok == {"jsonrpc": "2.0", "result": {"valid": True, "errors": []}, "id": 1}

    bad = rpc(client, "validateById", {"schemaId": schema_id, "json": -1}, request_id="r2")
    assert bad["id"] == "r2"
    assert bad["result"]["valid"] is False


def test_parse_error_is_http_200(client):
    response = client.post(RPC_PATH, content=b'{"jsonrpc": "2.0", "id": 4, "method":')
    assert response.status_code == 200
    assert response.json() == {"jsonrpc": "2.0", "error": {"code": -32700, "message": "Parse error"}, "id": 4}


def test_domain_error_is_http_200(client):
    payload = rpc(client, "getSchema", {"schemaId": 12})
    assert payload["error"]["code"] == -32801


def test_empty_body(client):
    response = client.post(RPC_PATH, content=b"")
    assert response.status_code == 200
    assert response.json()["error"]["code"] == -32700


def test_health(client, registry):
    registry.save("x", {"type": "integer"})

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "database": "disabled",
        "schemas": 1,
    }


def test_startup_loads_from_store(sql_store):
    sql_store.save(3, "warm", '{"type": "string"}')
    registry = SchemaRegistry(sql_store)

    with TestClient(create_app(registry=registry, dispatcher=ValidationDispatcher("draft4"))) as client:
        payload = rpc(client, "getAllSchemas")
        assert payload["result"]["totalSchemas"] == 1
        assert payload["result"]["schemas"][0]["name"] == "warm"
        assert rpc(client, "saveSchema", {"name": "next", "schema": {}})["result"] == {"schemaId": 4}


def test_nan_id_is_parse_error_over_http(client):
    response = client.post(RPC_PATH, content=b'{"jsonrpc":"2.0","method":"getAllSchemas","id":NaN}')
    assert response.status_code == 200
    assert response.json() == {"jsonrpc": "2.0", "error": {"code": -32700, "message": "Parse error"}, "id": None}


def test_infinity_in_schema_is_rejected_over_http(client, registry):
    body = b'{"jsonrpc":"2.0","method":"saveSchema","id":2,"params":{"name":"n","schema":{"enum":[Infinity]}}}'
    response = client.post(RPC_PATH, content=body)
    assert response.status_code == 200
    assert response.json()["error"]["code"] == -32700
    assert registry.count() == 0

    # Nothing unserializable was stored, so listing keeps working.
    assert rpc(client, "getAllSchemas")["result"] == {"totalSchemas": 0, "schemas": []}


def test_deeply_nested_body_over_http(client):
    depth = 100000
    body = '{"jsonrpc":"2.0","method":"validate","id":1,"params":{"schema":{},"json":' + "[" * depth + "]" * depth + "}}"
    response = client.post(RPC_PATH, content=body.encode())
    assert response.status_code == 200
    assert response.json()["error"]["code"] == -32700
    assert response.json()["id"] == 1
