from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from trial_extractor.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pmcid: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    doi: Mapped[str | None] = mapped_column(Text, nullable=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    first_author: Mapped[str] = mapped_column(Text, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    reference: Mapped[str | None] = mapped_column(Text, nullable=True)
    report_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    disease_site: Mapped[str | None] = mapped_column(Text, nullable=True)
    histopathology: Mapped[str | None] = mapped_column(Text, nullable=True)
    tnm_stage: Mapped[str | None] = mapped_column(Text, nullable=True)
    overall_stage: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_range: Mapped[str | None] = mapped_column(Text, nullable=True)
    trial_arms: Mapped[str | None] = mapped_column(Text, nullable=True)
    patient_numbers: Mapped[str | None] = mapped_column(Text, nullable=True)
    median_follow_up: Mapped[str | None] = mapped_column(Text, nullable=True)
    primary_outcome: Mapped[str | None] = mapped_column(Text, nullable=True)
    secondary_outcomes: Mapped[str | None] = mapped_column(Text, nullable=True)
    statistics: Mapped[str | None] = mapped_column(Text, nullable=True)
    additional_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
