"""Admin maintenance endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.services.bonus_codes import bonus_code_counts, deactivate_expired_codes

router = APIRouter(prefix="/api/admin", tags=["admin"])
settings = get_settings()


@router.get("/status")
async def admin_status(db: AsyncSession = Depends(get_db)):
    """Bonus code totals and webhook configuration."""
    counts = await bonus_code_counts(db)
    return {
        "bonus_codes": counts,
        "telegram": {
            "webhook_secret_configured": bool(settings.telegram_webhook_secret),
            "allowed_chat_ids": sorted(settings.allowed_chat_ids),
            "allowed_user_ids": sorted(settings.allowed_user_ids),
        },
    }


@router.post("/bonus-codes/cleanup")
async def cleanup_expired_bonus_codes(db: AsyncSession = Depends(get_db)):
    """Deactivate every active code whose expiry has passed."""
    count = await deactivate_expired_codes(db)
    return {"status": "success", "deactivated": count}
