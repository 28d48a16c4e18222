"""
Tests for the relay HTTP API the worker polls.
"""

import asyncio

import pytest
from starlette.testclient import TestClient

from agentrelay.config import Config
from agentrelay.errors import RelayTransportError
from agentrelay.relay.context import build_context
from agentrelay.relay.http_api import create_app
from agentrelay.relay.models import Result
from agentrelay.relay.remote import SECRET_HEADER
from agentrelay.relay.store import MemoryPendingQueue, MemoryResponseStore

SECRET = "test-secret"
AUTH = {SECRET_HEADER: SECRET}


@pytest.fixture
def context():
    return build_context(Config(secret=SECRET), MemoryPendingQueue(), MemoryResponseStore(), "memory")


@pytest.fixture
def client(context):
    return TestClient(create_app(context, SECRET))


def run(coro):
    return asyncio.run(coro)


class TestAuthorization:
    @pytest.mark.parametrize("method, path", [
        ("GET", "/relay/pending"),
        ("POST", "/relay/response"),
        ("POST", "/relay/pending/remove"),
    ])
    def test_missing_secret_rejected(self, client, method, path):
        response = client.request(method, path, json={})
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_wrong_secret_rejected(self, client):
        response = client.get("/relay/pending", headers={SECRET_HEADER: "guess"})
        assert response.status_code == 401

    def test_empty_server_secret_rejects_everyone(self, context):
        client = TestClient(create_app(context, ""))
        response = client.get("/relay/pending", headers={SECRET_HEADER: ""})
        assert response.status_code == 401

    def test_health_is_public(self, client):
        assert client.get("/health").status_code == 200


class TestHealth:
    def test_reports_backend_and_depth(self, client, context, sample_item):
        run(context.queue.enqueue(sample_item))
        assert client.get("/health").json() == {"healthy": True, "backend": "memory", "pending": 1}

    def test_unhealthy_store(self, context):
        class DownQueue(MemoryPendingQueue):
            async def list_all(self):
                raise RelayTransportError("redis down")

        context.queue = DownQueue()
        response = TestClient(create_app(context, SECRET)).get("/health")
        assert response.status_code == 503
        assert response.json()["healthy"] is False


class TestListPending:
    def test_empty(self, client):
        response = client.get("/relay/pending", headers=AUTH)
        assert response.status_code == 200
        assert response.json() == {"requests": []}

    def test_returns_items_in_order(self, client, context, work_item_generator):
        items = work_item_generator.generate_batch(3)
        for item in items:
            run(context.queue.enqueue(item))

        requests = client.get("/relay/pending", headers=AUTH).json()["requests"]
        assert requests == [item.to_dict() for item in items]

    def test_does_not_remove(self, client, context, sample_item):
        run(context.queue.enqueue(sample_item))
        client.get("/relay/pending", headers=AUTH)
        client.get("/relay/pending", headers=AUTH)
        assert run(context.queue.list_all()) == [sample_item.to_json()]

    def test_skips_unreadable_entries(self, client, context, sample_item):
        context.queue._items.append("garbage{")
        run(context.queue.enqueue(sample_item))
        assert client.get("/relay/pending", headers=AUTH).json()["requests"] == [sample_item.to_dict()]

    def test_skips_entries_with_nan(self, client, context, sample_item):
        context.queue._items.append(
            '{"arguments":{"numResults":NaN},"enqueuedAt":1.0,"id":"old","originChannel":"telegram",'
            '"toolName":"web_search","userId":"1"}'
        )
        run(context.queue.enqueue(sample_item))

        response = client.get("/relay/pending", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["requests"] == [sample_item.to_dict()]

    def test_store_failure_is_503(self, context):
        class DownQueue(MemoryPendingQueue):
            async def list_all(self):
                raise RelayTransportError("redis down")

        context.queue = DownQueue()
        response = TestClient(create_app(context, SECRET)).get("/relay/pending", headers=AUTH)
        assert response.status_code == 503
        assert response.json() == {"error": "Relay store unavailable"}


class TestPostResponse:
    def test_success_result_stored(self, client, context):
        response = client.post("/relay/response", headers=AUTH, json={"requestId": "r1", "value": {"n": 1}})
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert run(context.store.take_if_present("r1")) == Result.success("r1", {"n": 1})

    def test_error_result_stored(self, client, context):
        client.post("/relay/response", headers=AUTH,
                    json={"requestId": "r2", "errorMessage": "Unknown tool: unknown_tool"})
        assert run(context.store.take_if_present("r2")).error_message == "Unknown tool: unknown_tool"

    def test_null_value_is_a_success(self, client, context):
        client.post("/relay/response", headers=AUTH, json={"requestId": "r3", "value": None})
        assert run(context.store.take_if_present("r3")).ok

    @pytest.mark.parametrize("body", [
        {"value": 1},
        {"requestId": "r1"},
        {"requestId": "r1", "value": 1, "errorMessage": "x"},
        {"requestId": "../etc", "value": 1},
        [1, 2, 3],
    ])
    def test_invalid_result_is_400(self, client, body):
        response = client.post("/relay/response", headers=AUTH, json=body)
        assert response.status_code == 400
        assert "error" in response.json()

    def test_invalid_json_is_400(self, client):
        response = client.post(
            "/relay/response",
            headers={**AUTH, "Content-Type": "application/json"},
            content=b"{not json",
        )
        assert response.status_code == 400

    def test_nan_in_body_is_400(self, client, context):
        response = client.post(
            "/relay/response",
            headers={**AUTH, "Content-Type": "application/json"},
            content=b'{"requestId": "r1", "value": {"score": NaN}}',
        )
        assert response.status_code == 400
        assert run(context.store.take_if_present("r1")) is None


class TestRemovePending:
    def test_removes_matching_item(self, client, context, work_item_generator):
        a, b = work_item_generator.generate_batch(2)
        run(context.queue.enqueue(a))
        run(context.queue.enqueue(b))

        response = client.post("/relay/pending/remove", headers=AUTH, json={"item": a.to_dict()})
        assert response.json() == {"success": True}
        assert run(context.queue.list_all()) == [b.to_json()]

    def test_key_order_does_not_matter(self, client, context, sample_item):
        run(context.queue.enqueue(sample_item))
        reordered = dict(reversed(list(sample_item.to_dict().items())))
        client.post("/relay/pending/remove", headers=AUTH, json={"item": reordered})
        assert run(context.queue.list_all()) == []

    def test_missing_item_is_noop(self, client, sample_item):
        response = client.post("/relay/pending/remove", headers=AUTH, json={"item": sample_item.to_dict()})
        assert response.status_code == 200

    def test_item_must_be_object(self, client):
        response = client.post("/relay/pending/remove", headers=AUTH, json={"item": "r1"})
        assert response.status_code == 400
