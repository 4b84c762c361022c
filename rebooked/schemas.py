"""
フォーム入力のスキーマ。
画面から受け取った値はここで検証してからサービス層に渡す。
"""
from pydantic import BaseModel, EmailStr, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError


class ContactMessageIn(BaseModel):
    """問い合わせフォームの入力。"""
    name: str = Field(..., min_length=1, description="Sender name")
    email: EmailStr = Field(..., description="Reply-to address")
    subject: str = Field(..., min_length=1, description="Subject line")
    message: str = Field(..., min_length=1, description="Message body")


_EMAIL = TypeAdapter(EmailStr)


def is_valid_email(email: str) -> bool:
    try:
        _EMAIL.validate_python(email or "")
    except PydanticValidationError:
        return False
    return True
