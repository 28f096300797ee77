"""Telegram webhook payload schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TelegramUser(BaseModel):
    """Sender of a Telegram message."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    is_bot: bool = False
    first_name: str = ""
    username: Optional[str] = None


class TelegramChat(BaseModel):
    """Chat a Telegram message was posted in."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    type: str = "private"
    title: Optional[str] = None


class TelegramMessage(BaseModel):
    """Inbound Telegram message as delivered by the Bot API."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    message_id: int
    from_: Optional[TelegramUser] = Field(default=None, alias="from")
    chat: TelegramChat
    date: int  # unix seconds
    text: Optional[str] = None


class TelegramUpdate(BaseModel):
    """Bot API update envelope."""

    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: Optional[TelegramMessage] = None
    edited_message: Optional[TelegramMessage] = None
