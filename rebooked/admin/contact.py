"""問い合わせフォームのメッセージ（contact_messages）。"""
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from rebooked.backend.models import ContactMessage
from rebooked.constants import MESSAGE_READ, MESSAGE_UNREAD, TABLE_CONTACT_MESSAGES
from rebooked.schemas import ContactMessageIn
from rebooked.util.datetime_utils import utc_now_iso
from rebooked.util.errors import BackendError, RebookedError, ValidationError, error_info

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)


_FIELD_MESSAGES = {
    "name": "Name is required",
    "email": "A valid email address is required",
    "subject": "Subject is required",
    "message": "Message is required",
}


def validate_contact_message(name: str, email: str, subject: str, message: str) -> ContactMessageIn:
    """前後の空白を落として検証。不正なフィールドはまとめて ValidationError。"""
    try:
        return ContactMessageIn(
            name=(name or "").strip(),
            email=(email or "").strip(),
            subject=(subject or "").strip(),
            message=(message or "").strip(),
        )
    except PydanticValidationError as e:
        errors: dict[str, str] = {}
        for err in e.errors():
            field = str(err["loc"][0]) if err.get("loc") else "form"
            errors.setdefault(field, _FIELD_MESSAGES.get(field, err.get("msg", "Invalid input")))
        raise ValidationError(errors) from e


def submit_contact_message(ctx: BackendContext, name: str, email: str, subject: str, message: str) -> str:
    """メッセージを未読で登録し、採番した id を返す。"""
    form = validate_contact_message(name, email, subject, message)
    message_id = str(uuid.uuid4())
    resp = (
        ctx.table(TABLE_CONTACT_MESSAGES)
        .insert({
            "id": message_id,
            "name": form.name,
            "email": str(form.email),
            "subject": form.subject,
            "message": form.message,
            "status": MESSAGE_UNREAD,
            "updated_at": utc_now_iso(),
        })
        .execute()
    )
    if resp.error is not None:
        info = error_info(resp.error)
        logger.error("問い合わせの登録に失敗: code=%s message=%s details=%s", info.code, info.message, info.details)
        raise BackendError(resp.error.message or "Failed to submit contact message")
    logger.info("問い合わせを受け付けました id=%s", message_id)
    return message_id


def get_all_contact_messages(ctx: BackendContext) -> list[ContactMessage]:
    """新しい順にすべて。"""
    resp = (
        ctx.table(TABLE_CONTACT_MESSAGES)
        .select("*")
        .order("created_at", ascending=False)
        .execute()
    )
    if resp.error is not None:
        info = error_info(resp.error)
        logger.error("問い合わせ一覧の取得に失敗: code=%s message=%s", info.code, info.message)
        raise BackendError(f"Contact messages error: {resp.error.message}")
    messages = [ContactMessage.from_api(row) for row in resp.rows()]
    logger.info("問い合わせ %d 件", len(messages))
    return messages


def mark_message_as_read(ctx: BackendContext, message_id: str) -> None:
    try:
        resp = (
            ctx.table(TABLE_CONTACT_MESSAGES)
            .update({"status": MESSAGE_READ, "updated_at": utc_now_iso()})
            .eq("id", message_id)
            .execute()
        )
        resp.raise_for_error()
    except RebookedError as e:
        logger.error("既読化に失敗 id=%s: %s", message_id, e.message)
        raise BackendError("Failed to mark message as read") from e


def clear_all_messages(ctx: BackendContext) -> None:
    """全件削除。PostgREST はフィルタなし DELETE を拒むため created_at で全行にかける。"""
    try:
        resp = (
            ctx.table(TABLE_CONTACT_MESSAGES)
            .delete()
            .gte("created_at", "1900-01-01")
            .execute()
        )
        resp.raise_for_error()
    except RebookedError as e:
        logger.error("問い合わせの全件削除に失敗: %s", e.message)
        raise BackendError("Failed to clear all messages") from e
    logger.info("問い合わせを全件削除しました")
