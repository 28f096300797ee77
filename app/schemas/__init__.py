"""Pydantic schemas for API request/response validation."""

from app.schemas.bonus_code import (
    BonusCodeCreate,
    BonusCodeFilters,
    BonusCodeResponse,
    BonusCodeUpdate,
    ParsedBonusCode,
)
from app.schemas.telegram import TelegramMessage, TelegramUpdate

__all__ = [
    "BonusCodeCreate",
    "BonusCodeFilters",
    "BonusCodeResponse",
    "BonusCodeUpdate",
    "ParsedBonusCode",
    "TelegramMessage",
    "TelegramUpdate",
]
