"""functions / edge モジュールのユニットテスト。"""
import json

import pytest

from rebooked.backend import edge, functions
from rebooked.backend.models import FunctionResponse
from rebooked.util.errors import FunctionError


def test_invoke_envelope_success(ctx, session):
    session.add("POST", "functions/v1/verify-paystack-payment", {"success": True, "data": {"status": "success"}})
    resp = ctx.invoke("verify-paystack-payment", {"reference": "rb_1"})
    assert resp.success is True
    assert resp.data == {"status": "success"}
    assert session.calls[0].json == {"reference": "rb_1"}


def test_invoke_without_envelope_is_success(ctx, session):
    session.add("POST", "functions/v1/public-config", {"supabaseUrl": "x"})
    resp = ctx.invoke("public-config")
    assert resp.success is True
    assert resp.data == {"supabaseUrl": "x"}


def test_invoke_envelope_failure_keeps_error(ctx, session):
    session.add("POST", "functions/v1/refund-management", {"success": False, "error": {"message": "Already refunded"}})
    resp = ctx.invoke("refund-management", {})
    assert resp.success is False
    assert resp.error == "Already refunded"


def test_non_2xx_is_unavailable(ctx, session):
    session.add("POST", "functions/v1/manage-paystack-subaccount", {"error": "Not found"}, status=404)
    with pytest.raises(FunctionError) as exc:
        ctx.invoke("manage-paystack-subaccount", {})
    assert exc.value.unavailable is True
    assert exc.value.status == 404
    assert exc.value.message == functions.UNAVAILABLE_MESSAGE


def test_body_consumed_error_is_flagged(ctx, session):
    session.add("POST", "functions/v1/initialize-paystack-payment", {"error": "Body already consumed"}, status=500)
    with pytest.raises(FunctionError) as exc:
        ctx.invoke("initialize-paystack-payment", {})
    assert exc.value.body_consumed is True
    assert exc.value.unavailable is False


def test_health_check_uses_query_and_no_body(ctx, session):
    session.add(
        "GET",
        "functions/v1/refund-management",
        {"success": True, "service": "refund-management", "status": "healthy", "timestamp": "2024-01-01T00:00:00Z"},
    )
    result = functions.health_check(ctx, "refund-management")
    assert result["success"] is True
    assert result["status"] == "healthy"
    call = session.calls[0]
    assert call.has("health", "true")
    assert call.json is None


def test_health_check_failure_is_unhealthy(ctx, session):
    session.add("GET", "functions/v1/decrypt-banking-details", None, status=503)
    result = functions.health_check(ctx, "decrypt-banking-details")
    assert result["success"] is False
    assert result["status"] == "unhealthy"


def test_function_response_from_api_flattens_data():
    resp = FunctionResponse.from_api({"success": True, "subaccount_code": "ACCT_1"})
    assert resp.data == {"subaccount_code": "ACCT_1"}


def test_edge_health_short_circuits_before_handler():
    called = []

    @edge.edge_handler("demo")
    def handler(body):
        called.append(body)
        return {"data": body}

    result = handler(json.dumps({"health": True}))
    assert result["success"] is True
    assert result["service"] == "demo"
    assert result["status"] == "healthy"
    assert "timestamp" in result
    assert handler(b"", query={"health": "true"})["status"] == "healthy"
    assert called == []


def test_edge_handler_parses_body_once_and_wraps_errors():
    @edge.edge_handler("demo")
    def handler(body):
        if body.get("fail"):
            raise ValueError("handler exploded")
        return {"data": body["value"]}

    assert handler('{"value": 3}') == {"data": 3, "success": True}
    failed = handler({"fail": True})
    assert failed["success"] is False
    assert failed["error"] == "handler exploded"
    invalid = handler("{not json")
    assert invalid["success"] is False
    assert invalid["error"] == "INVALID_JSON_PAYLOAD"


def test_public_config_handler(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co/")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("PAYSTACK_PUBLIC_KEY", "pk_live_1")
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
    result = edge.public_config({})
    assert result["success"] is True
    assert result["data"]["supabaseUrl"] == "https://demo.supabase.co"
    assert result["data"]["mapsEnabled"] is False
    assert edge.public_config(None, query={"health": "true"})["service"] == "public-config"
