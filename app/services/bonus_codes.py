"""Bonus code storage service.

All queries take the request's AsyncSession; callers own commit/rollback.
Datetimes are stored as naive UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

import structlog
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.bonus_code import BonusCode
from app.schemas.bonus_code import (
    BonusCodeCreate,
    BonusCodeFilters,
    BonusCodeUpdate,
    BonusSource,
    ParsedBonusCode,
)

logger = structlog.get_logger()


class BonusCodeNotFoundError(LookupError):
    """Raised when a bonus code id does not exist."""

    def __init__(self, bonus_code_id: str) -> None:
        super().__init__(f"Bonus code with ID {bonus_code_id} not found")
        self.bonus_code_id = bonus_code_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _parse_iso(value: str) -> datetime:
    return _to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def _expired_clause(now: datetime):
    return and_(BonusCode.expires_at.is_not(None), BonusCode.expires_at < now)


async def create_bonus_code(db: AsyncSession, parsed: ParsedBonusCode) -> BonusCode:
    """Persist a code parsed from a Telegram message."""
    row = BonusCode(
        id=parsed.id,
        code=parsed.code,
        reward_amount=parsed.reward_amount,
        wagered_requirement=parsed.wagered_requirement,
        claims_count=parsed.claims_count,
        expiry_duration=parsed.expiry_duration,
        message_type=parsed.message_type.value,
        original_message=parsed.original_message,
        telegram_message_id=parsed.telegram_message_id,
        chat_id=parsed.chat_id,
        created_at=_parse_iso(parsed.created_at),
        expires_at=_parse_iso(parsed.expires_at) if parsed.expires_at else None,
        is_active=parsed.is_active,
        source=parsed.source.value,
    )
    db.add(row)
    await db.flush()
    logger.info("bonus_code_created", id=row.id, code=row.code, chat_id=row.chat_id, source=row.source)
    return row


async def create_manual_bonus_code(db: AsyncSession, payload: BonusCodeCreate) -> BonusCode:
    """Persist a code entered by an admin."""
    row = BonusCode(
        id=f"manual_{uuid4().hex}",
        code=payload.code,
        reward_amount=payload.reward_amount,
        wagered_requirement=payload.wagered_requirement,
        claims_count=payload.claims_count,
        expiry_duration=payload.expiry_duration,
        message_type=payload.message_type.value,
        original_message=f"Manual entry by admin: {payload.code}",
        telegram_message_id=0,
        chat_id=0,
        created_at=_utcnow(),
        expires_at=_to_naive_utc(payload.expires_at),
        is_active=True,
        source=BonusSource.MANUAL.value,
    )
    db.add(row)
    await db.flush()
    logger.info("bonus_code_created", id=row.id, code=row.code, source=row.source)
    return row


async def list_bonus_codes(
    db: AsyncSession,
    filters: Optional[BonusCodeFilters] = None,
) -> list[BonusCode]:
    """List bonus codes, newest first."""
    filters = filters or BonusCodeFilters()
    query = select(BonusCode).order_by(BonusCode.created_at.desc())

    if filters.is_active is not None:
        query = query.where(BonusCode.is_active == filters.is_active)
    if filters.message_type is not None:
        query = query.where(BonusCode.message_type == filters.message_type.value)
    if filters.source is not None:
        query = query.where(BonusCode.source == filters.source.value)
    if filters.expired is not None:
        now = _utcnow()
        if filters.expired:
            query = query.where(_expired_clause(now))
        else:
            query = query.where(or_(BonusCode.expires_at.is_(None), BonusCode.expires_at >= now))

    result = await db.execute(query)
    return list(result.scalars().all())


async def list_active_bonus_codes(db: AsyncSession) -> list[BonusCode]:
    """Active, unexpired codes for public display."""
    return await list_bonus_codes(db, BonusCodeFilters(is_active=True, expired=False))


async def get_bonus_code(db: AsyncSession, bonus_code_id: str) -> Optional[BonusCode]:
    result = await db.execute(select(BonusCode).where(BonusCode.id == bonus_code_id))
    return result.scalar_one_or_none()


async def update_bonus_code(
    db: AsyncSession,
    bonus_code_id: str,
    update: BonusCodeUpdate,
) -> BonusCode:
    """Apply a partial update. Raises BonusCodeNotFoundError for unknown ids."""
    row = await get_bonus_code(db, bonus_code_id)
    if row is None:
        raise BonusCodeNotFoundError(bonus_code_id)

    changes = update.model_dump(exclude_none=True)
    if "expires_at" in changes:
        changes["expires_at"] = _to_naive_utc(changes["expires_at"])
    for field, value in changes.items():
        setattr(row, field, value)

    await db.flush()
    await db.refresh(row)
    logger.info("bonus_code_updated", id=row.id, fields=sorted(changes))
    return row


async def delete_bonus_code(db: AsyncSession, bonus_code_id: str) -> bool:
    """Delete a code. Returns False when it did not exist."""
    row = await get_bonus_code(db, bonus_code_id)
    if row is None:
        return False
    await db.delete(row)
    await db.flush()
    logger.info("bonus_code_deleted", id=bonus_code_id)
    return True


async def code_exists(db: AsyncSession, code: str, chat_id: int) -> bool:
    """True when the same code was already stored for this chat."""
    result = await db.execute(
        select(BonusCode.id).where(BonusCode.code == code, BonusCode.chat_id == chat_id).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def get_by_telegram_message_id(
    db: AsyncSession,
    chat_id: int,
    message_id: int,
) -> Optional[BonusCode]:
    """Return the code stored for a Telegram message, if any."""
    result = await db.execute(
        select(BonusCode)
        .where(BonusCode.chat_id == chat_id, BonusCode.telegram_message_id == message_id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def deactivate_expired_codes(db: AsyncSession) -> int:
    """Mark active codes past their expiry as inactive. Returns how many changed."""
    now = _utcnow()
    result = await db.execute(
        select(BonusCode).where(BonusCode.is_active.is_(True), _expired_clause(now))
    )
    rows = result.scalars().all()
    for row in rows:
        row.is_active = False
    await db.flush()
    logger.info("expired_bonus_codes_deactivated", count=len(rows))
    return len(rows)


async def bonus_code_counts(db: AsyncSession) -> dict:
    """Totals for the admin status view."""
    now = _utcnow()
    total = int((await db.execute(select(func.count(BonusCode.id)))).scalar() or 0)
    active = int(
        (await db.execute(select(func.count(BonusCode.id)).where(BonusCode.is_active.is_(True)))).scalar() or 0
    )
    expired = int((await db.execute(select(func.count(BonusCode.id)).where(_expired_clause(now)))).scalar() or 0)
    by_source_rows = (
        await db.execute(select(BonusCode.source, func.count(BonusCode.id)).group_by(BonusCode.source))
    ).all()
    return {
        "total": total,
        "active": active,
        "expired": expired,
        "by_source": {row[0]: int(row[1]) for row in by_source_rows},
    }
