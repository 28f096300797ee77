"""Bonus code endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.bonus_code import (
    BonusCodeCreate,
    BonusCodeFilters,
    BonusCodeResponse,
    BonusCodeUpdate,
    BonusMessageType,
    BonusSource,
)
from app.services.bonus_codes import (
    BonusCodeNotFoundError,
    create_manual_bonus_code,
    delete_bonus_code,
    get_bonus_code,
    list_active_bonus_codes,
    list_bonus_codes,
    update_bonus_code,
)

router = APIRouter()


@router.get("/", response_model=list[BonusCodeResponse])
async def list_codes(
    db: AsyncSession = Depends(get_db),
    is_active: Optional[bool] = None,
    message_type: Optional[BonusMessageType] = None,
    source: Optional[BonusSource] = None,
    expired: Optional[bool] = None,
):
    """List bonus codes, newest first, with optional filters."""
    filters = BonusCodeFilters(
        is_active=is_active,
        message_type=message_type,
        source=source,
        expired=expired,
    )
    return await list_bonus_codes(db, filters)


@router.get("/active", response_model=list[BonusCodeResponse])
async def list_active_codes(db: AsyncSession = Depends(get_db)):
    """Active, unexpired codes for the public drops feed."""
    return await list_active_bonus_codes(db)


@router.get("/{bonus_code_id}", response_model=BonusCodeResponse)
async def get_code(
    bonus_code_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get a single bonus code by ID."""
    bonus_code = await get_bonus_code(db, bonus_code_id)
    if not bonus_code:
        raise HTTPException(status_code=404, detail="Bonus code not found")
    return bonus_code


@router.post("/", response_model=BonusCodeResponse)
async def create_code(
    payload: BonusCodeCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a bonus code by hand."""
    bonus_code = await create_manual_bonus_code(db, payload)
    await db.refresh(bonus_code)
    return bonus_code


@router.put("/{bonus_code_id}", response_model=BonusCodeResponse)
async def update_code(
    bonus_code_id: str,
    payload: BonusCodeUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Toggle a code or edit its expiry and numeric fields."""
    try:
        return await update_bonus_code(db, bonus_code_id, payload)
    except BonusCodeNotFoundError:
        raise HTTPException(status_code=404, detail="Bonus code not found")


@router.delete("/{bonus_code_id}")
async def delete_code(
    bonus_code_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a bonus code."""
    deleted = await delete_bonus_code(db, bonus_code_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Bonus code not found")
    return {"status": "deleted", "id": bonus_code_id}
