"""Telegram bonus drop ingestion.

Order of checks for each inbound message:
1) chat/sender allow-lists
2) cheap template pre-filter
3) message-level dedup on (chat_id, telegram_message_id)
4) full parse
5) content-level dedup on (code, chat_id)
6) persist; a concurrent redelivery that got past 3) hits the unique
   (chat_id, telegram_message_id) index and is reported as a duplicate
"""

from __future__ import annotations

from collections.abc import Collection
from enum import Enum

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.telegram import TelegramMessage
from app.services.bonus_code_parser import is_valid_bonus_code_message, parse_message_detailed
from app.services.bonus_codes import code_exists, create_bonus_code, get_by_telegram_message_id

logger = structlog.get_logger()


class IngestStatus(str, Enum):
    IGNORED_CHAT = "ignored_chat"
    IGNORED_USER = "ignored_user"
    NOT_BONUS = "not_bonus"
    DUPLICATE_MESSAGE = "duplicate_message"
    PARSE_FAILED = "parse_failed"
    DUPLICATE_CODE = "duplicate_code"
    CREATED = "created"


async def ingest_message(
    db: AsyncSession,
    message: TelegramMessage,
    allowed_chat_ids: Collection[int] = (),
    allowed_user_ids: Collection[int] = (),
) -> IngestStatus:
    """Store a bonus drop from one Telegram message, at most once.

    Empty allow-lists accept every chat or sender.
    """
    chat_id = message.chat.id

    if allowed_chat_ids and chat_id not in allowed_chat_ids:
        logger.info("telegram_message_ignored", reason="chat_not_allowed", chat_id=chat_id)
        return IngestStatus.IGNORED_CHAT

    if allowed_user_ids:
        sender_id = message.from_.id if message.from_ else None
        if sender_id not in allowed_user_ids:
            logger.info("telegram_message_ignored", reason="sender_not_allowed", chat_id=chat_id, sender_id=sender_id)
            return IngestStatus.IGNORED_USER

    if not is_valid_bonus_code_message(message.text):
        logger.info("telegram_message_ignored", reason="not_bonus_code", chat_id=chat_id, message_id=message.message_id)
        return IngestStatus.NOT_BONUS

    existing = await get_by_telegram_message_id(db, chat_id, message.message_id)
    if existing is not None:
        logger.info("telegram_message_duplicate", chat_id=chat_id, message_id=message.message_id, id=existing.id)
        return IngestStatus.DUPLICATE_MESSAGE

    outcome = parse_message_detailed(message)
    if not outcome.ok:
        logger.warning(
            "bonus_code_parse_failed",
            chat_id=chat_id,
            message_id=message.message_id,
            status=outcome.status.value,
            field=outcome.field,
            reason=outcome.reason,
        )
        return IngestStatus.PARSE_FAILED

    parsed = outcome.bonus_code
    if await code_exists(db, parsed.code, chat_id):
        logger.info("bonus_code_duplicate", code=parsed.code, chat_id=chat_id)
        return IngestStatus.DUPLICATE_CODE

    try:
        await create_bonus_code(db, parsed)
    except IntegrityError:
        # Nothing else was written in this session, so the rollback loses nothing.
        await db.rollback()
        logger.info(
            "telegram_message_duplicate",
            chat_id=chat_id,
            message_id=message.message_id,
            reason="unique_constraint",
        )
        return IngestStatus.DUPLICATE_MESSAGE
    return IngestStatus.CREATED
