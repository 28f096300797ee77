"""Bonus code model for drops ingested from Telegram or entered by admins."""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class BonusCode(Base):
    """Persisted bonus code. Datetimes are naive UTC."""

    __tablename__ = "bonus_codes"
    __table_args__ = (
        # Ingestion-time dedup key. Manual rows all carry (0, 0), so only
        # Telegram rows are held unique.
        Index(
            "ix_bonus_codes_chat_message",
            "chat_id",
            "telegram_message_id",
            unique=True,
            sqlite_where=text("source = 'telegram'"),
            postgresql_where=text("source = 'telegram'"),
        ),
        # Content-time dedup key
        Index("ix_bonus_codes_code_chat", "code", "chat_id"),
    )

    # "bonus_<chat>_<message>_<ms>" for Telegram drops, "manual_<hex>" for admin entries
    id: Mapped[str] = mapped_column(String(120), primary_key=True)

    code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    reward_amount: Mapped[str] = mapped_column(String(100), nullable=False)
    wagered_requirement: Mapped[str] = mapped_column(String(200), nullable=False)
    claims_count: Mapped[str] = mapped_column(String(50), nullable=False)
    expiry_duration: Mapped[str] = mapped_column(String(50), nullable=False)
    message_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    original_message: Mapped[str] = mapped_column(Text, nullable=False, default="")

    telegram_message_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    chat_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="telegram")  # telegram, manual

    def __repr__(self) -> str:
        return f"<BonusCode(id='{self.id}', code='{self.code}', active={self.is_active})>"
