"""query モジュールのユニットテスト。"""
import threading

import pytest
import requests

from rebooked.constants import PGRST_NO_ROWS
from rebooked.util import http
from rebooked.util.errors import NetworkError, StoreError


def test_select_filters_order_limit_params(ctx):
    q = (
        ctx.table("books")
        .select("id,  title")
        .eq("seller_id", "u1")
        .eq("sold", False)
        .in_("status", ["active", "pending"])
        .order("created_at", ascending=False)
        .limit(5)
    )
    assert q.build_params() == [
        ("select", "id, title"),
        ("seller_id", "eq.u1"),
        ("sold", "eq.false"),
        ("status", "in.(active,pending)"),
        ("order", "created_at.desc"),
        ("limit", "5"),
    ]
    assert q.build_headers() == {}


def test_in_quotes_values_with_commas(ctx):
    q = ctx.table("books").select().in_("title", ["a,b", "c"])
    assert ("title", 'in.("a,b",c)') in q.build_params()


def test_upsert_headers(ctx):
    q = ctx.table("banking_subaccounts").upsert({"user_id": "u1"}, on_conflict="user_id").select()
    assert ("on_conflict", "user_id") in q.build_params()
    assert q.build_headers()["Prefer"] == "return=representation,resolution=merge-duplicates"


def test_update_without_select_returns_minimal(ctx):
    q = ctx.table("books").update({"sold": True}).eq("id", "b1")
    assert q.build_headers()["Prefer"] == "return=minimal"
    assert q.build_params() == [("id", "eq.b1")]


def test_execute_sends_auth_headers(ctx, session):
    session.add("GET", "rest/v1/books", [{"id": "b1"}])
    resp = ctx.table("books").select("id").execute()
    assert resp.error is None
    assert resp.rows() == [{"id": "b1"}]
    call = session.calls[0]
    assert call.headers["apikey"] == "anon-key"
    assert call.headers["Authorization"] == "Bearer anon-key"


def test_execute_uses_access_token_when_signed_in(user_ctx, session):
    session.add("GET", "rest/v1/books", [])
    user_ctx.table("books").select().execute()
    assert session.calls[0].headers["Authorization"] == "Bearer access-token"


def test_execute_error_becomes_store_error(ctx, session):
    session.add("GET", "rest/v1/reports", {"code": "42P01", "message": "relation \"reports\" does not exist"}, status=404)
    resp = ctx.table("reports").select().execute()
    assert resp.data is None
    assert isinstance(resp.error, StoreError)
    assert resp.error.code == "42P01"
    with pytest.raises(StoreError):
        resp.raise_for_error()


def test_single_with_multiple_rows_is_error(ctx, session):
    session.add("GET", "rest/v1/books", [{"id": "b1"}, {"id": "b2"}])
    resp = ctx.table("books").select().single().execute()
    assert resp.error.code == PGRST_NO_ROWS


def test_single_sends_object_accept_header(ctx, session):
    session.add("GET", "rest/v1/books", {"id": "b1"})
    resp = ctx.table("books").select().eq("id", "b1").single().execute()
    assert resp.data == {"id": "b1"}
    assert session.calls[0].headers["Accept"] == "application/vnd.pgrst.object+json"


def test_maybe_single_empty_is_none(ctx, session):
    session.add("GET", "rest/v1/books", [])
    resp = ctx.table("books").select().maybe_single().execute()
    assert resp.data is None
    assert resp.error is None


def test_connection_error_becomes_network_error(ctx, session):
    session.add("GET", "rest/v1/books", raises=requests.ConnectionError("down"))
    with pytest.raises(NetworkError):
        ctx.table("books").select().execute()
    assert ctx.connection.snapshot().is_online is False


def test_timeout_becomes_network_error(ctx, session):
    session.add("GET", "rest/v1/books", raises=requests.Timeout("slow"))
    with pytest.raises(NetworkError, match="Request timeout"):
        ctx.table("books").select().execute()


def test_connection_check_records_result(ctx, session):
    session.add("GET", "rest/v1/books", payload=[{"id": "b1"}])
    assert ctx.test_connection() is True
    assert ctx.connection.snapshot().backend_connected is True


def test_connection_check_failure_is_not_raised(ctx, session):
    session.add("GET", "rest/v1/books", raises=requests.ConnectionError("down"))
    assert ctx.test_connection() is False
    assert ctx.connection.snapshot().backend_connected is False


def test_fetch_with_timeout_gives_up():
    gate = threading.Event()
    with pytest.raises(NetworkError, match="Request timeout: slow call"):
        http.fetch_with_timeout(gate.wait, 0.05, "slow call")
    gate.set()


def test_fetch_with_timeout_returns_value():
    assert http.fetch_with_timeout(lambda: 42, 1) == 42


def test_is_filter(ctx):
    params = ctx.table("orders").select("id").is_("declined_at", None).build_params()
    assert ("declined_at", "is.null") in params


@pytest.mark.parametrize(
    "exc",
    [
        requests.exceptions.ChunkedEncodingError("broken"),
        requests.exceptions.TooManyRedirects("loop"),
        requests.exceptions.InvalidURL("bad url"),
    ],
)
def test_other_request_exceptions_become_network_error(ctx, session, exc):
    session.add("GET", "rest/v1/books", raises=exc)
    with pytest.raises(NetworkError, match="Request failed: rest/v1/books"):
        ctx.table("books").select("id").execute()
    # 接続断ではないのでオフライン扱いにしない
    assert ctx.connection.snapshot().is_online is True
