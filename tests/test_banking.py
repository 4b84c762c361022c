"""banking サービスとワークフローのユニットテスト。"""
import pytest
import requests

from rebooked.backend.models import BankingDetails, BankingSubaccount, SellerRequirements
from rebooked.banking import service
from rebooked.util.errors import AuthRequiredError, BackendError, NetworkError
from rebooked.workflow.banking import BankingWorkflow, SellerRequirementsWorkflow

DETAILS = BankingDetails(
    business_name="Thandi's Books",
    email="thandi@example.com",
    bank_name="Capitec Bank",
    bank_code="470010",
    account_number="1234567890",
)

SUBACCOUNT_ROW = {
    "user_id": "user-1",
    "subaccount_code": "ACCT_abc",
    "business_name": "Thandi's Books",
    "bank_name": "Capitec Bank",
    "account_number": "1234567890",
    "status": "active",
}


def _active_lookup(call):
    return call.param("status") == "in.(active,pending)"


def test_setup_banking_without_user_makes_no_remote_call(ctx, session):
    result = BankingWorkflow(ctx).setup_banking(DETAILS)
    assert result.success is False
    assert result.error == "User not authenticated"
    assert session.calls == []


def test_update_banking_without_user_makes_no_remote_call(ctx, session):
    result = BankingWorkflow(ctx).update_banking(DETAILS)
    assert result.error == "User not authenticated"
    assert session.calls == []


def test_get_user_banking_details_prefers_active(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", [SUBACCOUNT_ROW], when=_active_lookup)
    details = service.get_user_banking_details(user_ctx, "user-1")
    assert details.subaccount_code == "ACCT_abc"
    assert details.masked_account_number() == "****7890"
    assert len(session.calls) == 1


def test_get_user_banking_details_falls_back_to_any_status(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", [], when=_active_lookup)
    session.add("GET", "rest/v1/banking_subaccounts", [dict(SUBACCOUNT_ROW, status="inactive")])
    details = service.get_user_banking_details(user_ctx, "user-1")
    assert details.status == "inactive"


def test_get_user_banking_details_none_when_absent(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", [])
    assert service.get_user_banking_details(user_ctx, "user-1") is None


def test_get_user_banking_details_missing_table_uses_profile(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", {"code": "42P01", "message": "missing"}, status=404)
    session.add("GET", "rest/v1/profiles", [{"subaccount_code": "ACCT_p", "preferences": {"business_name": "Shop"}}])
    details = service.get_user_banking_details(user_ctx, "user-1")
    assert details.subaccount_code == "ACCT_p"
    assert details.business_name == "Shop"
    # 2回目はテーブルを問い合わせない
    service.get_user_banking_details(user_ctx, "user-1")
    assert len(session.calls_to("GET", "rest/v1/banking_subaccounts")) == 1
    assert len(session.calls_to("GET", "rest/v1/profiles")) == 2


def test_get_user_banking_details_database_error_raises(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", {"code": "XX000", "message": "boom"}, status=500)
    with pytest.raises(BackendError, match="Database error: boom"):
        service.get_user_banking_details(user_ctx, "user-1")


def test_create_subaccount_saves_even_if_save_fails(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", [])
    session.add("POST", "functions/v1/manage-paystack-subaccount", {"success": True, "subaccount_code": "ACCT_new"})
    session.add("POST", "rest/v1/banking_subaccounts", {"code": "42501", "message": "denied"}, status=403)
    result = service.create_or_update_subaccount(user_ctx, "user-1", DETAILS)
    assert result.success is True
    assert result.subaccount_code == "ACCT_new"
    create_call = session.calls_to("POST", "functions/v1/manage-paystack-subaccount")[0]
    assert create_call.has("action", "create")
    assert create_call.json["metadata"] == {"user_id": "user-1", "is_update": False}


def test_create_subaccount_refused_when_paystack_not_configured(settings, session):
    from dataclasses import replace

    from rebooked.backend.client import BackendContext
    from rebooked.backend.models import AuthUser

    ctx = BackendContext(replace(settings, paystack_public_key="pk_test_default"), session=session)
    ctx.set_session(AuthUser(id="user-1"), "token")
    session.add("GET", "rest/v1/banking_subaccounts", [])
    result = service.create_or_update_subaccount(ctx, "user-1", DETAILS)
    assert result.success is False
    assert "not configured" in result.error
    assert session.calls_to("POST", "functions/v1/manage-paystack-subaccount") == []


def test_create_subaccount_function_missing(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", [])
    session.add("POST", "functions/v1/manage-paystack-subaccount", None, status=404)
    result = service.create_or_update_subaccount(user_ctx, "user-1", DETAILS)
    assert result.success is False
    assert result.error == "Banking service unavailable. Please contact support."


def test_existing_record_is_updated(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", [SUBACCOUNT_ROW])
    session.add("PUT", "functions/v1/manage-paystack-subaccount", {"success": True, "data": {"subaccount_code": "ACCT_abc"}})
    session.add("PATCH", "rest/v1/banking_subaccounts", None, status=204)
    result = service.create_or_update_subaccount(user_ctx, "user-1", DETAILS)
    assert result.success is True
    assert result.subaccount_code == "ACCT_abc"
    update_call = session.calls_to("PUT", "functions/v1/manage-paystack-subaccount")[0]
    assert update_call.has("subaccount_id", "ACCT_abc")


def test_link_books_failure_raises_friendly_error(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", [SUBACCOUNT_ROW])
    session.add("PATCH", "rest/v1/books", {"message": "denied"}, status=403)
    with pytest.raises(BackendError, match="Failed to link books to payment account"):
        service.link_books_to_subaccount(user_ctx, "user-1")


def test_setup_banking_refreshes_then_links(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", [SUBACCOUNT_ROW])
    session.add("PUT", "functions/v1/manage-paystack-subaccount", {"success": True})
    session.add("PATCH", "rest/v1/banking_subaccounts", None, status=204)
    session.add("PATCH", "rest/v1/books", None, status=204)
    wf = BankingWorkflow(user_ctx)
    result = wf.setup_banking(DETAILS)
    assert result.success is True
    assert wf.has_banking_setup is True
    assert wf.is_active is True
    assert wf.subaccount_code == "ACCT_abc"
    assert wf.masked_account_number == "****7890"
    link_call = session.calls_to("PATCH", "rest/v1/books")[0]
    assert link_call.json == {"seller_subaccount_code": "ACCT_abc"}
    assert link_call.has("seller_id", "eq.user-1")


def test_validate_account_number_exception_is_unavailable(user_ctx, monkeypatch):
    def boom(ctx, account_number, bank_code):
        raise NetworkError("Request timeout: validate")

    monkeypatch.setattr(service, "validate_account_number", boom)
    result = BankingWorkflow(user_ctx).validate_account_number("1234567890", "470010")
    assert result.valid is False
    assert result.error == "Validation service unavailable"


def test_validate_account_number_rejects_bad_format_locally(user_ctx, session):
    result = service.validate_account_number(user_ctx, "12-34", "470010")
    assert result.valid is False
    assert session.calls == []


def test_validate_account_number_remote(user_ctx, session):
    session.add(
        "POST",
        "functions/v1/validate-account-number",
        {"success": True, "data": {"status": True, "data": {"account_name": "T MOKOENA"}}},
    )
    result = service.validate_account_number(user_ctx, "123 456 7890", "470010")
    assert result.valid is True
    assert result.account_name == "T MOKOENA"
    assert session.calls[0].json == {"accountNumber": "1234567890", "bankCode": "470010"}


@pytest.mark.parametrize(
    "flags, percentage",
    [((False, False, False), 0), ((True, False, False), 33), ((True, True, False), 67), ((True, True, True), 100)],
)
def test_seller_requirements_percentage(flags, percentage):
    req = SellerRequirements.from_flags(*flags)
    assert req.setup_completion_percentage == percentage
    assert req.can_receive_payments is all(flags)


def test_get_seller_requirements_checks(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", [SUBACCOUNT_ROW])
    session.add(
        "GET",
        "rest/v1/profiles",
        [{"pickup_address": {"street": "1 Long St", "city": "Cape Town", "province": "Western Cape", "postal_code": "8001"}}],
    )
    session.add("GET", "rest/v1/books", [])
    req = service.get_seller_requirements(user_ctx, "user-1")
    assert req.has_banking_setup is True
    assert req.has_pickup_address is True
    assert req.has_active_books is False
    assert req.can_receive_payments is False
    assert req.setup_completion_percentage == 67


def test_get_seller_requirements_error_degrades_to_all_false(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", {"message": "boom"}, status=500)
    req = service.get_seller_requirements(user_ctx, "user-1")
    assert req == SellerRequirements()


def test_next_required_step_order(user_ctx):
    wf = SellerRequirementsWorkflow(user_ctx)
    wf.requirements = SellerRequirements.from_flags(False, False, False)
    assert wf.next_required_step == "banking"
    wf.requirements = SellerRequirements.from_flags(True, False, True)
    assert wf.next_required_step == "address"
    wf.requirements = SellerRequirements.from_flags(True, True, False)
    assert wf.next_required_step == "books"
    wf.requirements = SellerRequirements.from_flags(True, True, True)
    assert wf.next_required_step is None


def test_subaccount_from_api_code_aliases():
    sub = BankingSubaccount.from_api({"user_id": "u", "paystack_subaccount_code": "ACCT_z"})
    assert sub.subaccount_code == "ACCT_z"
    assert BankingSubaccount.from_api(None) is None


def test_decrypt_banking_details_requires_user(ctx, session):
    with pytest.raises(AuthRequiredError):
        service.decrypt_banking_details(ctx)
    assert session.calls == []


def test_decrypt_banking_details(user_ctx, session):
    session.add(
        "POST", "functions/v1/decrypt-banking-details",
        {"success": True, "data": {"account_number": "1234567890", "bank_name": "Capitec Bank"}},
    )
    result = service.decrypt_banking_details(user_ctx)
    assert result.success is True
    assert result.data["account_number"] == "1234567890"


def test_validate_account_number_broken_transfer_is_unavailable(user_ctx, session):
    session.add(
        "POST", "functions/v1/validate-account-number",
        raises=requests.exceptions.ChunkedEncodingError("broken"),
    )
    result = BankingWorkflow(user_ctx).validate_account_number("1234567890", "470010")
    assert result.valid is False
    assert result.error == "Validation service unavailable"


def test_setup_banking_redirect_loop_returns_failure(user_ctx, session):
    session.add("GET", "rest/v1/banking_subaccounts", raises=requests.exceptions.TooManyRedirects("loop"))
    result = BankingWorkflow(user_ctx).setup_banking(DETAILS)
    assert result.success is False
    assert result.error
    assert session.calls_to("PATCH", "rest/v1/books") == []


def test_banking_workflow_normalizes_unexpected_exceptions(user_ctx, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("bug")

    monkeypatch.setattr(service, "create_or_update_subaccount", boom)
    monkeypatch.setattr(service, "update_subaccount", boom)
    monkeypatch.setattr(service, "validate_account_number", boom)
    wf = BankingWorkflow(user_ctx)
    assert wf.setup_banking(DETAILS).error == "An unexpected error occurred"
    assert wf.update_banking(DETAILS).error == "An unexpected error occurred"
    assert wf.validate_account_number("1234567890", "470010").error == "Validation service unavailable"
