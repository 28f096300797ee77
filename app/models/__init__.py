"""SQLAlchemy models."""

from app.models.bonus_code import BonusCode

__all__ = [
    "BonusCode",
]
