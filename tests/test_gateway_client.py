"""Tests for the MCP Gateway HTTP client."""

import asyncio
import json

import httpx
import pytest

from llm.exceptions import GatewayUnavailable, ToolNotFound
from mcp_gateway import MCPGatewayClient


def make_client(handler, **kwargs):
    return MCPGatewayClient(
        "https://gateway.test/",
        api_key="secret",
        environment="test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def run(coro):
    return asyncio.run(coro)


class TestDiscovery:
    def test_list_tools_sends_key_and_parses(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            seen["path"] = request.url.path
            return httpx.Response(200, json={"tools": [
                {"name": "get_weather", "description": "Weather", "category": "weather",
                 "parameters": {"type": "object"}},
                {"name": "list_sites"},
                {"description": "nameless entries are dropped"},
            ]})

        tools = run(make_client(handler).list_tools())

        assert seen == {"auth": "Bearer secret", "path": "/tools"}
        assert [t.name for t in tools] == ["get_weather", "list_sites"]
        assert tools[1].category == "general"
        assert tools[0].to_context() == {
            "name": "get_weather", "description": "Weather", "parameters": {"type": "object"},
        }

    def test_list_tools_failure_raises(self):
        client = make_client(lambda request: httpx.Response(500, json={"error": "boom"}))
        with pytest.raises(GatewayUnavailable):
            run(client.list_tools())

    def test_list_tools_connection_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(GatewayUnavailable):
            run(make_client(handler).list_tools())

    def test_categories_are_sorted_and_unique(self):
        client = make_client(lambda request: httpx.Response(200, json={"tools": [
            {"name": "a", "category": "weather"},
            {"name": "b", "category": "calendar"},
            {"name": "c", "category": "weather"},
        ]}))
        assert run(client.list_categories()) == ["calendar", "weather"]

    def test_schema_not_found(self):
        client = make_client(lambda request: httpx.Response(404, json={"error": "missing"}))
        with pytest.raises(ToolNotFound):
            run(client.get_tool_schema("nope"))

    def test_schema(self):
        schema = {"type": "object", "properties": {"city": {"type": "string"}}}

        def handler(request):
            assert request.url.path == "/tools/get_weather/schema"
            return httpx.Response(200, json=schema)

        assert run(make_client(handler).get_tool_schema("get_weather")) == schema

    def test_schema_name_is_escaped(self):
        seen = {}

        def handler(request):
            seen["raw_path"] = request.url.raw_path
            seen["query"] = request.url.query
            return httpx.Response(200, json={})

        run(make_client(handler).get_tool_schema("a?b=1#"))

        assert seen == {"raw_path": b"/tools/a%3Fb%3D1%23/schema", "query": b""}

    def test_non_object_bodies_raise_gateway_errors(self):
        client = make_client(lambda request: httpx.Response(200, json=["x"]))
        with pytest.raises(GatewayUnavailable):
            run(client.list_tools())
        with pytest.raises(GatewayUnavailable):
            run(client.get_execution_history("u1"))

    def test_history_sorted_and_limited(self):
        def handler(request):
            assert request.url.params["userId"] == "u1"
            return httpx.Response(200, json={"history": [
                {"tool": "a", "timestamp": "2024-05-01T10:00:00Z"},
                {"tool": "b", "timestamp": "2024-05-03T10:00:00Z"},
                {"tool": "c", "timestamp": "2024-05-02T10:00:00Z"},
            ]})

        history = run(make_client(handler).get_execution_history("u1", limit=2))
        assert [h["tool"] for h in history] == ["b", "c"]

    def test_health_check(self):
        assert run(make_client(lambda request: httpx.Response(200)).health_check()) is True
        assert run(make_client(lambda request: httpx.Response(503)).health_check()) is False


class TestExecution:
    def test_invoke_success(self):
        def handler(request):
            body = json.loads(request.content)
            assert request.url.path == "/execute"
            assert body == {"tool": "get_weather", "parameters": {"city": "Paris"}, "environment": "test"}
            return httpx.Response(200, json={"result": {"temp_c": 18}, "metadata": {"ms": 12}})

        result = run(make_client(handler).invoke("get_weather", {"city": "Paris"}))

        assert result.success is True
        assert result.result == {"temp_c": 18}
        assert result.to_dict() == {"success": True, "result": {"temp_c": 18}, "metadata": {"ms": 12}}

    def test_invoke_remote_error_is_a_result(self):
        client = make_client(lambda request: httpx.Response(422, json={"error": "City is required"}))

        result = run(client.invoke("get_weather", {}))

        assert result.success is False
        assert result.error == "City is required"
        assert result.status == 422

    def test_invoke_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        result = run(make_client(handler).invoke("get_weather"))

        assert result.to_dict() == {"success": False, "error": "timeout", "status": 408}

    def test_invoke_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = run(make_client(handler).invoke("get_weather"))

        assert result.success is False
        assert result.status == 503

    def test_invoke_non_object_body_is_a_failed_result(self):
        client = make_client(lambda request: httpx.Response(200, json=["x"]))

        result = run(client.invoke("get_weather", {}))

        assert result.to_dict() == {"success": False, "error": "Tool execution failed", "status": 502}

    def test_invoke_requires_name(self):
        with pytest.raises(ValueError):
            run(make_client(lambda request: httpx.Response(200)).invoke(""))

    def test_batch_results_line_up(self):
        def handler(request):
            body = json.loads(request.content)
            assert len(body["executions"]) == 3
            return httpx.Response(200, json={"results": [
                {"success": True, "result": 1},
                {"success": False, "error": "bad input", "status": 400},
            ]})

        executions = [{"tool": "a"}, {"tool": "b"}, {"tool": "c"}]
        results = run(make_client(handler).invoke_batch(executions))

        assert [r.success for r in results] == [True, False, False]
        assert results[1].error == "bad input"
        assert results[2].error == "No result returned"

    def test_batch_failure_fails_every_entry(self):
        client = make_client(lambda request: httpx.Response(500, json={"error": "down"}))

        results = run(client.invoke_batch([{"tool": "a"}, {"tool": "b"}]))

        assert [r.to_dict() for r in results] == [
            {"success": False, "error": "down", "status": 500},
            {"success": False, "error": "down", "status": 500},
        ]

    def test_empty_batch(self):
        assert run(make_client(lambda request: httpx.Response(500)).invoke_batch([])) == []
