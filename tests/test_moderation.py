"""admin.moderation / admin.contact / admin.books のユニットテスト。"""
import re

import pytest
import requests

from rebooked.admin import books, contact, moderation
from rebooked.backend.models import SuspendedUser, display_name
from rebooked.util.errors import BackendError, ValidationError

REPORT_ROWS = [
    {"id": "r1", "book_title": "Physics", "reason": "Fake listing", "status": "pending", "reporter_user_id": "u1"},
    {"id": "r2", "book_title": "Chemistry", "reason": "Spam", "status": "pending", "reporter_user_id": "u2"},
    {"id": "r3", "book_title": "Biology", "reason": "Spam", "status": "resolved", "reporter_user_id": "u1"},
]

SUSPENDED_ROWS = [
    {"id": "s1", "first_name": "Sipho", "last_name": "Dlamini", "email": "sipho@example.com", "status": "suspended"},
    {"id": "s2", "email": "banned.user@example.com", "status": "banned"},
]


def _embedded(call):
    return "reporter:profiles" in (call.param("select") or "")


def _suspended(call):
    return call.param("status") == "in.(suspended,banned)"


def _selects_name(call):
    # profiles には name 列が無い
    return "name" in re.split(r"[\s,()]+", call.param("select") or "")


UNKNOWN_COLUMN = {"code": "42703", "message": "column profiles_1.name does not exist"}


def test_display_name_fallback_chain():
    assert display_name("Sipho", "Dlamini") == "Sipho Dlamini"
    assert display_name("Sipho", None) == "Sipho"
    assert display_name(None, None, name="Legacy Name") == "Legacy Name"
    assert display_name(None, None, None, "reader@example.com") == "reader"
    assert display_name() == "Anonymous"
    assert display_name("  ", "", "", "") == "Anonymous"


def test_embedded_join_single_round_trip(ctx, session):
    rows = [
        dict(REPORT_ROWS[0], reporter={"id": "u1", "first_name": "Ayanda", "last_name": "Khumalo", "email": "ayanda@example.com"}),
        dict(REPORT_ROWS[1], reporter=None),
    ]
    session.add("GET", "rest/v1/reports", rows, when=_embedded)
    session.add("GET", "rest/v1/profiles", SUSPENDED_ROWS, when=_suspended)
    data = moderation.load_moderation_data(ctx, limit=50)
    assert [r.reporter_name for r in data.reports] == ["Ayanda Khumalo", None]
    assert data.reports[0].reporter_email == "ayanda@example.com"
    assert [u.name for u in data.suspended_users] == ["Sipho Dlamini", "banned.user"]
    reports_call = session.calls_to("GET", "rest/v1/reports")[0]
    assert reports_call.has("limit", "50")
    assert reports_call.has("order", "created_at.desc")
    # 通報者プロフィールの追加問い合わせはしない
    assert len(session.calls_to("GET", "rest/v1/profiles")) == 1


def test_missing_relationship_falls_back_to_manual_join(ctx, session):
    session.add("GET", "rest/v1/reports", {"code": "PGRST200", "message": "Could not find a relationship"}, status=400, when=_embedded)
    session.add("GET", "rest/v1/reports", REPORT_ROWS)
    session.add("GET", "rest/v1/profiles", SUSPENDED_ROWS, when=_suspended)
    session.add(
        "GET",
        "rest/v1/profiles",
        [
            {"id": "u1", "first_name": "Ayanda", "last_name": "Khumalo", "email": "ayanda@example.com"},
            {"id": "u2", "name": "Old Style", "email": "old@example.com"},
        ],
    )
    data = moderation.load_moderation_data(ctx)
    assert [r.reporter_name for r in data.reports] == ["Ayanda Khumalo", "Old Style", "Ayanda Khumalo"]
    profile_lookups = [c for c in session.calls_to("GET", "rest/v1/profiles") if not _suspended(c)]
    assert len(profile_lookups) == 1
    assert profile_lookups[0].has("id", "in.(u1,u2)")


def test_reporter_enrichment_failure_is_swallowed(ctx, session):
    session.add("GET", "rest/v1/reports", {"code": "PGRST200", "message": "no relationship"}, status=400, when=_embedded)
    session.add("GET", "rest/v1/reports", REPORT_ROWS)
    session.add("GET", "rest/v1/profiles", SUSPENDED_ROWS, when=_suspended)
    session.add("GET", "rest/v1/profiles", {"message": "permission denied"}, status=403)
    data = moderation.load_moderation_data(ctx)
    assert len(data.reports) == 3
    assert all(r.reporter_name is None for r in data.reports)
    assert len(data.suspended_users) == 2


def test_reports_failure_is_fatal(ctx, session):
    session.add("GET", "rest/v1/reports", {"message": "reports down"}, status=500)
    session.add("GET", "rest/v1/profiles", SUSPENDED_ROWS)
    with pytest.raises(BackendError, match="Failed to load reports: reports down"):
        moderation.load_moderation_data(ctx)


def test_suspended_users_failure_is_fatal(ctx, session):
    session.add("GET", "rest/v1/reports", [], when=_embedded)
    session.add("GET", "rest/v1/profiles", {"message": "profiles down"}, status=500)
    with pytest.raises(BackendError, match="Failed to load suspended users"):
        moderation.load_moderation_data(ctx)


def test_no_reporters_skips_profile_lookup(ctx, session):
    session.add("GET", "rest/v1/reports", {"code": "PGRST200", "message": "no relationship"}, status=400, when=_embedded)
    session.add("GET", "rest/v1/reports", [])
    session.add("GET", "rest/v1/profiles", [], when=_suspended)
    data = moderation.load_moderation_data(ctx)
    assert data.reports == []
    assert len(session.calls_to("GET", "rest/v1/profiles")) == 1


def test_update_user_status_and_unsuspend(ctx, session):
    session.add("PATCH", "rest/v1/profiles", None, status=204)
    moderation.update_user_status(ctx, "s1", "ban", "Repeated fraud")
    moderation.unsuspend_user(ctx, "s1")
    ban, unsuspend = session.calls_to("PATCH", "rest/v1/profiles")
    assert ban.json["status"] == "banned"
    assert ban.json["suspension_reason"] == "Repeated fraud"
    assert unsuspend.json == {"status": "active", "suspension_reason": None, "suspended_at": None}
    with pytest.raises(BackendError):
        moderation.update_user_status(ctx, "s1", "delete", "")


def test_update_report_status(ctx, session):
    session.add("PATCH", "rest/v1/reports", {"message": "nope"}, status=403)
    with pytest.raises(BackendError, match="Failed to update report: nope"):
        moderation.update_report_status(ctx, "r1", "resolved")
    with pytest.raises(BackendError):
        moderation.update_report_status(ctx, "r1", "pending")


def test_suspended_user_from_api_name():
    assert SuspendedUser.from_api({"id": "x", "email": ""}).name == "Anonymous"


def test_submit_contact_message(ctx, session):
    session.add("POST", "rest/v1/contact_messages", None, status=201)
    message_id = contact.submit_contact_message(ctx, "Naledi", "naledi@example.com", "Order", "Where is my book?")
    body = session.calls[0].json
    assert body["id"] == message_id
    assert body["status"] == "unread"


def test_submit_contact_message_validates(ctx, session):
    with pytest.raises(ValidationError) as exc:
        contact.submit_contact_message(ctx, "", "not-an-email", "Hi", "")
    assert set(exc.value.field_errors) == {"name", "email", "message"}
    assert session.calls == []


def test_contact_messages_list_and_errors(ctx, session):
    session.add("GET", "rest/v1/contact_messages", [{"id": "m1", "name": "N", "email": "n@example.com", "subject": "S", "message": "M"}])
    session.add("PATCH", "rest/v1/contact_messages", {"message": "denied"}, status=403)
    session.add("DELETE", "rest/v1/contact_messages", None, status=204)
    messages = contact.get_all_contact_messages(ctx)
    assert messages[0].status == "unread"
    with pytest.raises(BackendError, match="Failed to mark message as read"):
        contact.mark_message_as_read(ctx, "m1")
    contact.clear_all_messages(ctx)
    assert session.calls_to("DELETE", "rest/v1/contact_messages")[0].has("created_at", "gte.1900-01-01")


def test_delete_books_bulk(ctx, session):
    session.add("DELETE", "rest/v1/books", [{"id": "b1"}, {"id": "b2"}])
    result = books.delete_books_bulk(ctx, ["b2", "b1", "b1", ""])
    assert result.success is True
    assert result.data == {"deleted": 2, "requested": 2}
    call = session.calls[0]
    assert call.has("id", "in.(b1,b2)")
    assert call.headers["Prefer"] == "return=representation"
    assert books.delete_books_bulk(ctx, []).success is False


def test_list_books_filters(ctx, session):
    session.add("GET", "rest/v1/books", [{"id": "b1", "title": "T", "price": "120.50", "sold": False}])
    listed = books.list_books(ctx, seller_id="user-1", include_sold=False)
    assert listed[0].price == 120.5
    call = session.calls[0]
    assert call.has("seller_id", "eq.user-1")
    assert call.has("sold", "eq.false")


def test_profiles_without_name_column(ctx, session):
    session.add("GET", "rest/v1/reports", UNKNOWN_COLUMN, status=400, when=_selects_name)
    session.add(
        "GET", "rest/v1/reports",
        [dict(REPORT_ROWS[0], reporter={"id": "u1", "first_name": "Ayanda", "last_name": "Khumalo", "email": "a@example.com"})],
        when=_embedded,
    )
    session.add("GET", "rest/v1/profiles", UNKNOWN_COLUMN, status=400, when=_selects_name)
    session.add("GET", "rest/v1/profiles", SUSPENDED_ROWS, when=_suspended)
    data = moderation.load_moderation_data(ctx)
    assert [r.reporter_name for r in data.reports] == ["Ayanda Khumalo"]
    assert len(data.suspended_users) == 2
    assert not any(_selects_name(c) for c in session.calls)


def test_embedded_join_error_falls_back_to_manual_join(ctx, session):
    session.add("GET", "rest/v1/reports", UNKNOWN_COLUMN, status=400, when=_embedded)
    session.add("GET", "rest/v1/reports", REPORT_ROWS)
    session.add("GET", "rest/v1/profiles", SUSPENDED_ROWS, when=_suspended)
    session.add("GET", "rest/v1/profiles", [{"id": "u1", "email": "ayanda@example.com"}])
    data = moderation.load_moderation_data(ctx)
    assert [r.reporter_name for r in data.reports] == ["ayanda", None, "ayanda"]
    assert len(session.calls_to("GET", "rest/v1/reports")) == 2


def test_embedded_join_transport_error_falls_back(ctx, session):
    session.add("GET", "rest/v1/reports", when=_embedded, raises=requests.exceptions.ChunkedEncodingError("broken"))
    session.add("GET", "rest/v1/reports", REPORT_ROWS[:1])
    session.add("GET", "rest/v1/profiles", [], when=_suspended)
    session.add("GET", "rest/v1/profiles", [])
    data = moderation.load_moderation_data(ctx)
    assert [r.id for r in data.reports] == ["r1"]
