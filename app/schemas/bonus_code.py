"""Bonus code schemas."""

from datetime import datetime, timezone
from enum import Enum
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


NEVER_EXPIRES = "Never expires"

_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?")

MAX_REWARD_AMOUNT = 10_000
MAX_WAGERED_REQUIREMENT = 100_000
MAX_CLAIMS_COUNT = 10_000
MAX_EXPIRY_HOURS = 8_760


class BonusMessageType(str, Enum):
    """Promotion tier announced by a bonus drop."""

    STANDARD = "Rainbet Bonus"
    VIP = "Rainbet Vip Bonus"


class BonusSource(str, Enum):
    """Where a bonus code record came from."""

    TELEGRAM = "telegram"
    MANUAL = "manual"


def extract_numeric_value(value: str) -> float:
    """Return the first number in a display string, or 0 when there is none.

    Thousands separators are ignored, so "$5,000-$72,000" yields 5000.
    """
    match = _NUMBER_PATTERN.search((value or "").replace(",", ""))
    if not match:
        return 0.0
    return float(match.group(0))


def expiry_hours(value: str) -> float:
    """Convert an expiry display string ("24 Hours", "2 days") to hours."""
    hours = extract_numeric_value(value)
    lowered = value.lower()
    if "day" in lowered:
        return hours * 24
    if "week" in lowered:
        return hours * 24 * 7
    if "month" in lowered:
        return hours * 24 * 30
    return hours


def _check_bounds(label: str, number: float, maximum: int) -> None:
    if number <= 0:
        raise ValueError(f"{label} must be a positive number")
    if number > maximum:
        raise ValueError(f"{label} cannot exceed {maximum:,}")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ParsedBonusCode(BaseModel):
    """Structured record extracted from one bonus drop message.

    Immutable once built; persistence owns any later edits.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    reward_amount: str
    wagered_requirement: str
    claims_count: str
    expiry_duration: str
    message_type: BonusMessageType
    original_message: str
    telegram_message_id: int
    chat_id: int
    created_at: str
    expires_at: Optional[str] = None
    is_active: bool = True
    source: BonusSource = BonusSource.TELEGRAM

    @model_validator(mode="after")
    def _expiry_consistent(self) -> "ParsedBonusCode":
        if (self.expires_at is None) != (self.expiry_duration == NEVER_EXPIRES):
            raise ValueError("expires_at must be set exactly when the code can expire")
        return self


class BonusCodeCreate(BaseModel):
    """Schema for an admin-entered bonus code."""

    code: str = Field(min_length=1, max_length=50)
    reward_amount: str = Field(min_length=1)
    wagered_requirement: str = Field(min_length=1)
    claims_count: str = Field(min_length=1)
    expiry_duration: str = Field(min_length=1)
    message_type: BonusMessageType
    expires_at: datetime

    @field_validator("code")
    @classmethod
    def _code_charset(cls, value: str) -> str:
        value = value.strip()
        if not _CODE_PATTERN.match(value):
            raise ValueError("Code can only contain letters, numbers, hyphens, and underscores")
        return value

    @field_validator("reward_amount")
    @classmethod
    def _reward_bounds(cls, value: str) -> str:
        _check_bounds("Reward amount", extract_numeric_value(value), MAX_REWARD_AMOUNT)
        return value.strip()

    @field_validator("wagered_requirement")
    @classmethod
    def _wagered_bounds(cls, value: str) -> str:
        _check_bounds("Wagered requirement", extract_numeric_value(value), MAX_WAGERED_REQUIREMENT)
        return value.strip()

    @field_validator("claims_count")
    @classmethod
    def _claims_bounds(cls, value: str) -> str:
        _check_bounds("Claims count", int(extract_numeric_value(value)), MAX_CLAIMS_COUNT)
        return value.strip()

    @field_validator("expiry_duration")
    @classmethod
    def _expiry_bounds(cls, value: str) -> str:
        _check_bounds("Expiry duration (hours)", expiry_hours(value), MAX_EXPIRY_HOURS)
        return value.strip()

    @field_validator("expires_at")
    @classmethod
    def _expires_in_future(cls, value: datetime) -> datetime:
        value = _as_utc(value)
        if value <= datetime.now(timezone.utc):
            raise ValueError("Expiry date must be a valid future date")
        return value


class BonusCodeUpdate(BaseModel):
    """Schema for partially updating a bonus code."""

    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None
    reward_amount: Optional[str] = None
    wagered_requirement: Optional[str] = None
    claims_count: Optional[str] = None

    @field_validator("expires_at")
    @classmethod
    def _expires_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value) if value is not None else None

    @field_validator("reward_amount")
    @classmethod
    def _reward_bounds(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            _check_bounds("Reward amount", extract_numeric_value(value), MAX_REWARD_AMOUNT)
            value = value.strip()
        return value

    @field_validator("wagered_requirement")
    @classmethod
    def _wagered_bounds(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            _check_bounds("Wagered requirement", extract_numeric_value(value), MAX_WAGERED_REQUIREMENT)
            value = value.strip()
        return value

    @field_validator("claims_count")
    @classmethod
    def _claims_bounds(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            _check_bounds("Claims count", int(extract_numeric_value(value)), MAX_CLAIMS_COUNT)
            value = value.strip()
        return value

    @model_validator(mode="after")
    def _has_changes(self) -> "BonusCodeUpdate":
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one field to update must be provided")
        return self


class BonusCodeFilters(BaseModel):
    """Optional filters for listing bonus codes."""

    is_active: Optional[bool] = None
    message_type: Optional[BonusMessageType] = None
    source: Optional[BonusSource] = None
    expired: Optional[bool] = None


class BonusCodeResponse(BaseModel):
    """Schema for bonus code responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    reward_amount: str
    wagered_requirement: str
    claims_count: str
    expiry_duration: str
    message_type: BonusMessageType
    original_message: str
    telegram_message_id: int
    chat_id: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    is_active: bool
    source: BonusSource
