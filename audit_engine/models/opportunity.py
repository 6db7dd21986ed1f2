from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Integer, String, Table, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from audit_engine.db.base import Base


class OpportunityStatus(str, enum.Enum):
    new = "NEW"
    in_progress = "IN_PROGRESS"
    ignored = "IGNORED"
    resolved = "RESOLVED"


class SuggestionStatus(str, enum.Enum):
    new = "NEW"
    approved = "APPROVED"
    in_progress = "IN_PROGRESS"
    pending_validation = "PENDING_VALIDATION"
    fixed = "FIXED"
    skipped = "SKIPPED"
    outdated = "OUTDATED"
    error = "ERROR"


class FixEntityStatus(str, enum.Enum):
    pending = "PENDING"
    deployed = "DEPLOYED"
    published = "PUBLISHED"
    failed = "FAILED"
    rolled_back = "ROLLED_BACK"


fix_entity_suggestions = Table(
    "fix_entity_suggestions",
    Base.metadata,
    Column("fix_entity_id", UUID(as_uuid=True), ForeignKey("fix_entities.id", ondelete="CASCADE"), primary_key=True),
    Column("suggestion_id", UUID(as_uuid=True), ForeignKey("suggestions.id", ondelete="CASCADE"), primary_key=True),
)


class Opportunity(Base):
    __tablename__ = "opportunities"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    site_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    audit_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    status: Mapped[OpportunityStatus] = mapped_column(
        Enum(OpportunityStatus), nullable=False, default=OpportunityStatus.new, index=True
    )
    data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(80), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    suggestions: Mapped[list["Suggestion"]] = relationship(
        "Suggestion", back_populates="opportunity", cascade="all, delete-orphan", lazy="selectin"
    )
    fix_entities: Mapped[list["FixEntity"]] = relationship(
        "FixEntity", back_populates="opportunity", cascade="all, delete-orphan"
    )


class Suggestion(Base):
    __tablename__ = "suggestions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    opportunity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("opportunities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(80), nullable=False, default="CODE_CHANGE")
    status: Mapped[SuggestionStatus] = mapped_column(
        Enum(SuggestionStatus), nullable=False, default=SuggestionStatus.new, index=True
    )
    rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    updated_by: Mapped[str | None] = mapped_column(String(80), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    opportunity: Mapped[Opportunity] = relationship("Opportunity", back_populates="suggestions")
    fix_entities: Mapped[list["FixEntity"]] = relationship(
        "FixEntity", secondary=fix_entity_suggestions, back_populates="suggestions"
    )


class FixEntity(Base):
    __tablename__ = "fix_entities"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    opportunity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("opportunities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str | None] = mapped_column(String(80), nullable=True)
    status: Mapped[FixEntityStatus] = mapped_column(
        Enum(FixEntityStatus), nullable=False, default=FixEntityStatus.pending, index=True
    )
    change_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    executed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(80), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    opportunity: Mapped[Opportunity] = relationship("Opportunity", back_populates="fix_entities")
    suggestions: Mapped[list[Suggestion]] = relationship(
        "Suggestion", secondary=fix_entity_suggestions, back_populates="fix_entities", lazy="selectin"
    )
