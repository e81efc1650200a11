"""
Glossary Database Models
SQLAlchemy models for glossaries, entries and DeepL glossary mappings.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from sqlalchemy import (
    String, Text, Integer, Boolean, DateTime,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, declarative_base
import uuid

Base = declarative_base()


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Naive UTC timestamp, as stored by SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    FAILED = "failed"


class Glossary(Base):
    """
    Glossary model - a named, scoped collection of entries.

    A glossary is either universal (is_global) or bound to one game
    installation.

    Attributes:
        id: Unique identifier (UUID)
        name: Display name (unique)
        description: Optional description
        is_global: Universal glossary, applies to every game
        game_installation_id: Owning game for game-specific glossaries
        target_language_code: Optional default target language
    """

    __tablename__ = "glossaries"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Scope
    is_global: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    game_installation_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True
    )
    target_language_code: Mapped[Optional[str]] = mapped_column(
        String(16), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        scope = "universal" if self.is_global else f"game {self.game_installation_id}"
        return f"<Glossary {self.name} ({scope})>"

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_global": self.is_global,
            "game_installation_id": self.game_installation_id,
            "target_language_code": self.target_language_code,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class GlossaryEntry(Base):
    """
    GlossaryEntry model - one source/target term pair.

    Attributes:
        id: Unique identifier (UUID)
        glossary_id: Parent glossary ID
        target_language_code: Language of target_term
        source_term: Term as written in source text
        target_term: Mandated translation
        case_sensitive: Whether matching respects case
        notes: Context for translators and LLM prompts
        category: Free-form grouping (character, faction, unit...)
        usage_count: Times the entry was sent to a translator
    """

    __tablename__ = "glossary_entries"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )

    glossary_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("glossaries.id", ondelete="CASCADE"), nullable=False
    )
    target_language_code: Mapped[str] = mapped_column(String(16), nullable=False)

    source_term: Mapped[str] = mapped_column(String(500), nullable=False)
    target_term: Mapped[str] = mapped_column(String(1000), nullable=False)

    case_sensitive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("idx_entries_glossary", "glossary_id"),
        Index("idx_entries_glossary_language", "glossary_id", "target_language_code"),
        UniqueConstraint(
            "glossary_id", "target_language_code", "source_term", "case_sensitive",
            name="uq_entries_term",
        ),
    )

    def __repr__(self):
        return f"<GlossaryEntry {self.source_term} → {self.target_term}>"

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "id": self.id,
            "glossary_id": self.glossary_id,
            "target_language_code": self.target_language_code,
            "source_term": self.source_term,
            "target_term": self.target_term,
            "case_sensitive": self.case_sensitive,
            "notes": self.notes,
            "category": self.category,
            "usage_count": self.usage_count,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class DeepLGlossaryMapping(Base):
    """
    Link between a local glossary and the DeepL glossary created from it.

    One row per (glossary, source language, target language). entry_count
    and content_hash snapshot the entries that were uploaded, so a later
    comparison with the live entries tells whether the remote copy is stale.
    """

    __tablename__ = "deepl_glossary_mappings"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )

    twmt_glossary_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("glossaries.id", ondelete="CASCADE"), nullable=False
    )
    source_language_code: Mapped[str] = mapped_column(String(16), nullable=False)
    target_language_code: Mapped[str] = mapped_column(String(16), nullable=False)

    deepl_glossary_id: Mapped[str] = mapped_column(String(100), nullable=False)
    deepl_glossary_name: Mapped[str] = mapped_column(String(500), nullable=False)

    entry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    sync_status: Mapped[str] = mapped_column(
        String(20), default=SyncStatus.SYNCED.value, nullable=False
    )

    synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint(
            "twmt_glossary_id", "source_language_code", "target_language_code",
            name="uq_deepl_mapping_pair",
        ),
        Index("idx_deepl_mapping_glossary", "twmt_glossary_id"),
    )

    @property
    def is_synced(self) -> bool:
        return self.sync_status == SyncStatus.SYNCED.value

    def __repr__(self):
        return (
            f"<DeepLGlossaryMapping {self.twmt_glossary_id} "
            f"{self.source_language_code}->{self.target_language_code} "
            f"= {self.deepl_glossary_id}>"
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "id": self.id,
            "twmt_glossary_id": self.twmt_glossary_id,
            "source_language_code": self.source_language_code,
            "target_language_code": self.target_language_code,
            "deepl_glossary_id": self.deepl_glossary_id,
            "deepl_glossary_name": self.deepl_glossary_name,
            "entry_count": self.entry_count,
            "sync_status": self.sync_status,
            "synced_at": self.synced_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

