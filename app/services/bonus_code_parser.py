"""Bonus drop message parsing.

Turns the fixed-template Telegram announcement

    Rainbet Bonus
    Bonus Drop!
    Reward: $2-$30
    Wagered: $5,000-$72,000 past 30 days
    Claims: 200-300
    Claimable for 24 Hours
    Code: RAIN9HLC

into a ParsedBonusCode. Everything here is pure: no I/O, no settings, no
logging. Callers decide what to do with a rejected message.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
import re
from types import MappingProxyType
from typing import Optional

from app.schemas.bonus_code import (
    NEVER_EXPIRES,
    BonusMessageType,
    BonusSource,
    ParsedBonusCode,
)
from app.schemas.telegram import TelegramMessage


# Title, banner, reward, wagered, claims and code lines; expiry is optional.
MIN_MESSAGE_LINES = 6

# ASCII keeps \d to 0-9; other Unicode digits are not part of the template.
_FLAGS = re.IGNORECASE | re.ASCII

_CODE_SEPARATOR = re.compile(r"\s*/\s*")


class LineShape(str, Enum):
    """One line of the bonus drop template."""

    TITLE = "title"
    REWARD = "reward"
    WAGERED = "wagered"
    CLAIMS = "claims"
    EXPIRY = "expiry"
    CODE = "code"

    def match(self, line: str) -> Optional[re.Match]:
        """Return the match if the whole line has this shape."""
        return LINE_PATTERNS[self].match(line)


LINE_PATTERNS = MappingProxyType({
    LineShape.TITLE: re.compile(r"^(Rainbet\s+(?:Vip\s+)?Bonus)\s*$", _FLAGS),
    LineShape.REWARD: re.compile(
        r"^Reward:\s*\$?(\d+(?:\.\d+)?)(?:\s*-\s*\$?(\d+(?:\.\d+)?))?$", _FLAGS
    ),
    LineShape.WAGERED: re.compile(
        r"^Wagered:\s*\$?([\d,]+)(?:\s*-\s*\$?([\d,]+))?\s+past\s+(\d+)\s+days$", _FLAGS
    ),
    LineShape.CLAIMS: re.compile(r"^Claims:\s*(\d+)(?:\s*-\s*(\d+))?$", _FLAGS),
    LineShape.EXPIRY: re.compile(r"^Claimable\s+for\s+(\d+)\s+Hours?$", _FLAGS),
    LineShape.CODE: re.compile(r"^Code:\s*([A-Za-z0-9]+(?:\s*/\s*[A-Za-z0-9]+)*)$", _FLAGS),
})

REQUIRED_SHAPES: tuple[LineShape, ...] = (
    LineShape.TITLE,
    LineShape.REWARD,
    LineShape.WAGERED,
    LineShape.CLAIMS,
    LineShape.CODE,
)


class ParseStatus(str, Enum):
    OK = "ok"
    MISSING = "missing"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class ParseOutcome:
    """Result of parsing one message, with the reason when it was rejected."""

    status: ParseStatus
    bonus_code: Optional[ParsedBonusCode] = None
    field: Optional[str] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ParseStatus.OK


def _split_lines(text: str) -> list[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


def match_lines(lines: list[str]) -> dict[LineShape, re.Match]:
    """Match every line against every shape, keeping the first hit per shape."""
    found: dict[LineShape, re.Match] = {}
    for line in lines:
        for shape in LineShape:
            if shape in found:
                continue
            match = shape.match(line)
            if match:
                found[shape] = match
    return found


def _split_codes(codes: str) -> list[str]:
    return [token.strip() for token in _CODE_SEPARATOR.split(codes)]


def _format_number(value: float) -> str:
    # "2" rather than "2.0", "2.5" stays "2.5"
    if value.is_integer():
        return str(int(value))
    return str(value)


def _format_grouped(value: int) -> str:
    return f"{value:,}"


def format_reward(match: re.Match) -> str:
    low = float(match.group(1))
    high = float(match.group(2)) if match.group(2) else low
    if low == high:
        return f"${_format_number(low)}"
    return f"${_format_number(low)}-${_format_number(high)}"


def format_wagered(match: re.Match) -> str:
    low = int(match.group(1).replace(",", ""))
    high = int(match.group(2).replace(",", "")) if match.group(2) else low
    days = int(match.group(3))
    if low == high:
        return f"${_format_grouped(low)} past {days} days"
    return f"${_format_grouped(low)}-${_format_grouped(high)} past {days} days"


def format_claims(match: re.Match) -> str:
    low = int(match.group(1))
    high = int(match.group(2)) if match.group(2) else low
    if low == high:
        return str(low)
    return f"{low}-{high}"


def format_expiry(hours: int) -> str:
    return f"{hours} Hour" if hours == 1 else f"{hours} Hours"


def to_iso(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing Z."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def build_bonus_code_id(chat_id: int, message_id: int, now: datetime) -> str:
    """Display key for a parsed code. Not a uniqueness guarantee; dedup on (chat_id, message_id)."""
    return f"bonus_{chat_id}_{message_id}_{_epoch_ms(now)}"


def is_valid_bonus_code_message(text: Optional[str]) -> bool:
    """Cheap pre-filter: title, reward and code lines must all be present."""
    if not text:
        return False

    lines = _split_lines(text)
    has_title = any(LineShape.TITLE.match(line) for line in lines)
    has_reward = any(LineShape.REWARD.match(line) for line in lines)
    has_code = any(LineShape.CODE.match(line) for line in lines)
    return has_title and has_reward and has_code


def extract_all_codes(code_line: Optional[str]) -> list[str]:
    """Return every "/"-separated code on a full "Code: ..." line, in order."""
    if not code_line:
        return []
    match = LineShape.CODE.match(code_line.strip())
    if not match:
        return []
    return [code for code in _split_codes(match.group(1)) if code]


def _build(
    message: TelegramMessage,
    matches: dict[LineShape, re.Match],
    now: datetime,
) -> ParseOutcome:
    codes = _split_codes(matches[LineShape.CODE].group(1))
    primary_code = codes[0] if codes else ""
    if not primary_code:
        return ParseOutcome(ParseStatus.MALFORMED, field=LineShape.CODE.value, reason="empty primary code")

    received_at = datetime.fromtimestamp(message.date, tz=timezone.utc)

    expiry_duration = NEVER_EXPIRES
    expires_at: Optional[str] = None
    expiry_match = matches.get(LineShape.EXPIRY)
    if expiry_match:
        hours = int(expiry_match.group(1))
        expiry_duration = format_expiry(hours)
        expires_at = to_iso(received_at + timedelta(hours=hours))

    title = matches[LineShape.TITLE].group(1)
    message_type = BonusMessageType.VIP if "vip" in title.lower() else BonusMessageType.STANDARD

    bonus_code = ParsedBonusCode(
        id=build_bonus_code_id(message.chat.id, message.message_id, now),
        code=primary_code,
        reward_amount=format_reward(matches[LineShape.REWARD]),
        wagered_requirement=format_wagered(matches[LineShape.WAGERED]),
        claims_count=format_claims(matches[LineShape.CLAIMS]),
        expiry_duration=expiry_duration,
        message_type=message_type,
        original_message=message.text or "",
        telegram_message_id=message.message_id,
        chat_id=message.chat.id,
        created_at=to_iso(received_at),
        expires_at=expires_at,
        is_active=True,
        source=BonusSource.TELEGRAM,
    )
    return ParseOutcome(ParseStatus.OK, bonus_code=bonus_code)


def parse_message_detailed(message: TelegramMessage, now: Optional[datetime] = None) -> ParseOutcome:
    """Parse a message and report why it was rejected, if it was.

    Never raises: anything that goes wrong while matching or formatting is
    reported as MALFORMED.
    """
    if not message.text:
        return ParseOutcome(ParseStatus.MISSING, field="text", reason="message has no text")

    lines = _split_lines(message.text)
    if len(lines) < MIN_MESSAGE_LINES:
        return ParseOutcome(
            ParseStatus.MALFORMED,
            reason=f"expected at least {MIN_MESSAGE_LINES} lines, got {len(lines)}",
        )

    try:
        matches = match_lines(lines)
        for shape in REQUIRED_SHAPES:
            if shape not in matches:
                return ParseOutcome(ParseStatus.MISSING, field=shape.value, reason=f"no {shape.value} line")
        return _build(message, matches, now or datetime.now(timezone.utc))
    except Exception as exc:
        return ParseOutcome(ParseStatus.MALFORMED, reason=f"{type(exc).__name__}: {exc}")


def parse_message(message: TelegramMessage, now: Optional[datetime] = None) -> Optional[ParsedBonusCode]:
    """Parse a bonus drop message, returning None for anything that is not one."""
    return parse_message_detailed(message, now=now).bonus_code
