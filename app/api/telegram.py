"""Telegram webhook endpoint."""

import secrets

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.schemas.telegram import TelegramUpdate
from app.services.telegram_ingest import ingest_message

router = APIRouter(prefix="/api/telegram", tags=["telegram"])
logger = structlog.get_logger()

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def _secret_ok(provided: str | None, expected: str) -> bool:
    if not expected:
        return True
    return secrets.compare_digest((provided or "").encode(), expected.encode())


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Receive a Bot API update and store any bonus drop it carries.

    Processing failures are logged and still acknowledged so Telegram does
    not keep redelivering the same update.
    """
    settings = get_settings()
    if not _secret_ok(request.headers.get(SECRET_HEADER), settings.telegram_webhook_secret):
        logger.warning("telegram_webhook_unauthorized")
        return JSONResponse({"ok": False, "error": "Unauthorized"}, status_code=401)

    try:
        update = TelegramUpdate.model_validate(await request.json())
    except (ValueError, ValidationError):
        logger.warning("telegram_webhook_invalid_payload")
        return JSONResponse({"ok": False, "error": "Invalid update payload"}, status_code=400)

    if update.message is None:
        logger.info("telegram_webhook_skipped", update_id=update.update_id)
        return {"ok": True, "status": "skipped"}

    try:
        status = await ingest_message(
            db,
            update.message,
            allowed_chat_ids=settings.allowed_chat_ids,
            allowed_user_ids=settings.allowed_user_ids,
        )
    except Exception:
        await db.rollback()
        logger.exception("telegram_webhook_processing_failed", update_id=update.update_id)
        return {"ok": True, "status": "error"}

    logger.info("telegram_webhook_processed", update_id=update.update_id, status=status.value)
    return {"ok": True, "status": status.value}
