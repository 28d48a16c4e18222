"""
Tests for relay wire types (WorkItem, Result, TimedOut).
"""

import json

import pytest

from agentrelay.relay.models import Result, TimedOut, WorkItem, canonical_json, strict_loads
from agentrelay.reliability import ValidationError


class TestCanonicalJson:
    def test_sorted_and_compact(self):
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_key_order_does_not_matter(self):
        assert canonical_json({"x": 1, "y": 2}) == canonical_json({"y": 2, "x": 1})

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_rejects_non_finite_numbers(self, value):
        with pytest.raises(ValidationError, match="not valid JSON"):
            canonical_json({"n": value})


class TestStrictLoads:
    def test_plain_json(self):
        assert strict_loads(b'{"a": [1, 2.5]}') == {"a": [1, 2.5]}

    @pytest.mark.parametrize("raw", ["NaN", '{"n": Infinity}', "[-Infinity]"])
    def test_rejects_non_finite_constants(self, raw):
        with pytest.raises(ValueError, match="not allowed"):
            strict_loads(raw)


class TestWorkItem:
    def test_new_assigns_unique_ids(self):
        a = WorkItem.new("1", "telegram", "files_list", {"path": "/tmp"})
        b = WorkItem.new("1", "telegram", "files_list", {"path": "/tmp"})
        assert a.id != b.id
        assert a.enqueued_at > 0

    def test_new_coerces_user_id(self):
        item = WorkItem.new(12345, "telegram", "tasks_list")
        assert item.user_id == "12345"
        assert item.arguments == {}

    def test_new_rejects_bad_arguments(self):
        with pytest.raises(ValidationError):
            WorkItem.new("1", "telegram", "files_list", {"when": object()})

    def test_new_rejects_nan_arguments(self):
        with pytest.raises(ValidationError):
            WorkItem.new("1", "telegram", "web_search", {"query": "x", "numResults": float("nan")})

    def test_wire_keys_are_camel_case(self):
        item = WorkItem("r1", "42", "telegram", "files_list", {"path": "/tmp"}, 1.5)
        assert item.to_dict() == {
            "id": "r1",
            "userId": "42",
            "originChannel": "telegram",
            "toolName": "files_list",
            "arguments": {"path": "/tmp"},
            "enqueuedAt": 1.5,
        }

    def test_to_json_is_canonical(self):
        item = WorkItem("r1", "42", "telegram", "files_list", {"path": "/tmp"}, 1.5)
        assert item.to_json() == canonical_json(item.to_dict())

    def test_from_json_restores_item(self):
        item = WorkItem("r1", "42", "telegram", "files_list", {"path": "/tmp"}, 1.5)
        assert WorkItem.from_json(item.to_json()) == item

    def test_from_dict_defaults(self):
        item = WorkItem.from_dict({"id": "r2", "toolName": "tasks_list"})
        assert item.arguments == {}
        assert item.user_id == ""
        assert item.enqueued_at == 0.0

    @pytest.mark.parametrize("data, match", [
        ([], "must be an object"),
        ({"id": "r1"}, "toolName is required"),
        ({"id": "r1", "toolName": ""}, "toolName is required"),
        ({"toolName": "files_list"}, "required"),
        ({"id": "a/b", "toolName": "files_list"}, "invalid characters"),
        ({"id": "r1", "toolName": "files_list", "arguments": "x"}, "must be an object"),
        ({"id": "r1", "toolName": "files_list", "enqueuedAt": "now"}, "enqueuedAt"),
        ({"id": "r1", "toolName": "files_list", "enqueuedAt": True}, "enqueuedAt"),
    ])
    def test_from_dict_rejects(self, data, match):
        with pytest.raises(ValidationError, match=match):
            WorkItem.from_dict(data)

    def test_from_json_rejects_garbage(self):
        with pytest.raises(ValidationError, match="not valid JSON"):
            WorkItem.from_json("{nope")

    def test_is_immutable(self):
        item = WorkItem.new("1", "telegram", "files_list")
        with pytest.raises(AttributeError):
            item.tool_name = "web_search"


class TestResult:
    def test_success(self):
        result = Result.success("r1", {"items": []})
        assert result.ok
        assert result.to_dict() == {"requestId": "r1", "value": {"items": []}}

    def test_success_with_none_value(self):
        result = Result.success("r1", None)
        assert result.ok
        assert result.to_dict() == {"requestId": "r1", "value": None}

    def test_failure(self):
        result = Result.failure("r2", "Unknown tool: unknown_tool")
        assert not result.ok
        assert result.to_dict() == {"requestId": "r2", "errorMessage": "Unknown tool: unknown_tool"}

    def test_failure_never_empty(self):
        assert Result.failure("r3", "").error_message == "Unknown error"

    def test_both_rejected(self):
        with pytest.raises(ValidationError, match="both"):
            Result("r1", value=1, error_message="bad")

    def test_from_dict_value(self):
        result = Result.from_dict({"requestId": "r1", "value": [1, 2]})
        assert result == Result.success("r1", [1, 2])

    def test_from_dict_null_value(self):
        assert Result.from_dict({"requestId": "r1", "value": None}).ok

    def test_from_dict_error(self):
        result = Result.from_dict({"requestId": "r1", "errorMessage": "boom"})
        assert result.error_message == "boom"

    def test_from_dict_error_with_null_value(self):
        result = Result.from_dict({"requestId": "r1", "value": None, "errorMessage": "boom"})
        assert not result.ok

    @pytest.mark.parametrize("data, match", [
        ("text", "must be an object"),
        ({"value": 1}, "required"),
        ({"requestId": "r1"}, "needs a value"),
        ({"requestId": "r1", "value": 1, "errorMessage": "x"}, "both"),
    ])
    def test_from_dict_rejects(self, data, match):
        with pytest.raises(ValidationError, match=match):
            Result.from_dict(data)

    def test_wire_form_is_json(self):
        result = Result.success("r1", {"n": 1})
        assert json.loads(json.dumps(result.to_dict()))["value"] == {"n": 1}


class TestTimedOut:
    def test_carries_wait(self):
        outcome = TimedOut(request_id="r1", waited=30.2)
        assert outcome.request_id == "r1"
        assert outcome.waited == 30.2
