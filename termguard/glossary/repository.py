"""
Glossary Repository
Database access layer for glossaries, entries and DeepL mappings.
"""
import hashlib
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy import create_engine, func, or_
from sqlalchemy.orm import sessionmaker, Session
from pathlib import Path

from .models import (
    Base, Glossary, GlossaryEntry, DeepLGlossaryMapping,
    generate_uuid, utc_now,
)

logger = logging.getLogger(__name__)


def sanitize_term(term: str) -> str:
    """Collapse tabs and newlines so a term fits on one TSV cell."""
    return term.replace("\t", " ").replace("\r", " ").replace("\n", " ").strip()


def entries_to_tsv(entries: Iterable[GlossaryEntry]) -> str:
    """Serialize entries as ``source\\ttarget\\n`` lines."""
    lines = []
    for entry in entries:
        lines.append(f"{sanitize_term(entry.source_term)}\t{sanitize_term(entry.target_term)}\n")
    return "".join(lines)


def compute_content_hash(entries: Iterable[GlossaryEntry]) -> str:
    """SHA-256 of the TSV payload, independent of entry order."""
    ordered = sorted(
        entries,
        key=lambda e: (e.source_term, e.target_term, bool(e.case_sensitive)),
    )
    return hashlib.sha256(entries_to_tsv(ordered).encode("utf-8")).hexdigest()


class GlossaryRepository:
    """
    Repository for glossary database operations.

    Handles CRUD for glossaries and entries, and the bookkeeping rows that
    tie local glossaries to DeepL glossaries.
    """

    def __init__(self, db_path: str = "data/glossary.db"):
        """Initialize repository with database path."""
        self.db_path = db_path
        self._engine = None
        self._session_factory = None

    @property
    def engine(self):
        """Get or create SQLAlchemy engine."""
        if self._engine is None:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False}
            )
            Base.metadata.create_all(self._engine)
        return self._engine

    @property
    def session_factory(self):
        """Get session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.session_factory()

    # ==================== GLOSSARY OPERATIONS ====================

    def create_glossary(
        self,
        name: str,
        description: Optional[str] = None,
        is_global: bool = True,
        game_installation_id: Optional[str] = None,
        target_language_code: Optional[str] = None,
    ) -> Glossary:
        """Create a new glossary."""
        with self.get_session() as session:
            glossary = Glossary(
                id=generate_uuid(),
                name=name,
                description=description,
                is_global=is_global,
                game_installation_id=None if is_global else game_installation_id,
                target_language_code=target_language_code,
            )
            session.add(glossary)
            session.commit()
            logger.info(f"Created glossary: {glossary.name} ({glossary.id})")
            return glossary

    def get_glossary(self, glossary_id: str) -> Optional[Glossary]:
        """Get glossary by ID."""
        with self.get_session() as session:
            return session.get(Glossary, glossary_id)

    def get_glossary_by_name(self, name: str) -> Optional[Glossary]:
        with self.get_session() as session:
            return session.query(Glossary).filter(Glossary.name == name).first()

    def get_glossaries_by_ids(self, glossary_ids: List[str]) -> List[Glossary]:
        """Get glossaries by IDs, keeping the requested order."""
        if not glossary_ids:
            return []
        with self.get_session() as session:
            found = session.query(Glossary).filter(Glossary.id.in_(glossary_ids)).all()
        by_id = {g.id: g for g in found}
        return [by_id[gid] for gid in glossary_ids if gid in by_id]

    def get_all_glossaries(
        self,
        game_installation_id: Optional[str] = None,
        include_universal: bool = True,
    ) -> List[Glossary]:
        """
        List glossaries applicable to a scope.

        With a game: that game's glossaries, plus universal ones when
        include_universal. Without a game: universal glossaries only when
        include_universal, otherwise every game-specific glossary.
        """
        with self.get_session() as session:
            query = session.query(Glossary)

            if game_installation_id is not None:
                if include_universal:
                    query = query.filter(or_(
                        Glossary.is_global == True,
                        Glossary.game_installation_id == game_installation_id,
                    ))
                else:
                    query = query.filter(Glossary.game_installation_id == game_installation_id)
            elif include_universal:
                query = query.filter(Glossary.is_global == True)
            else:
                query = query.filter(Glossary.is_global == False)

            return query.order_by(Glossary.name).all()

    def list_glossaries(self, search: Optional[str] = None) -> List[Glossary]:
        """List every glossary, optionally filtered by name."""
        with self.get_session() as session:
            query = session.query(Glossary)
            if search:
                query = query.filter(Glossary.name.ilike(f"%{search}%"))
            return query.order_by(Glossary.name).all()

    def update_glossary(
        self,
        glossary_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[Glossary]:
        """Update glossary metadata."""
        with self.get_session() as session:
            glossary = session.get(Glossary, glossary_id)
            if not glossary:
                return None

            if name is not None:
                glossary.name = name
            if description is not None:
                glossary.description = description
            glossary.updated_at = utc_now()

            session.commit()
            return glossary

    def delete_glossary(self, glossary_id: str) -> bool:
        """Delete a glossary with its entries and mapping rows."""
        with self.get_session() as session:
            glossary = session.get(Glossary, glossary_id)
            if not glossary:
                return False

            session.query(GlossaryEntry).filter(
                GlossaryEntry.glossary_id == glossary_id
            ).delete(synchronize_session=False)
            session.query(DeepLGlossaryMapping).filter(
                DeepLGlossaryMapping.twmt_glossary_id == glossary_id
            ).delete(synchronize_session=False)
            session.delete(glossary)
            session.commit()
            logger.info(f"Deleted glossary: {glossary_id}")
            return True

    # ==================== ENTRY OPERATIONS ====================

    def add_entry(
        self,
        glossary_id: str,
        source_term: str,
        target_term: str,
        target_language_code: str,
        case_sensitive: bool = False,
        notes: Optional[str] = None,
        category: Optional[str] = None,
    ) -> GlossaryEntry:
        """Add an entry to a glossary."""
        with self.get_session() as session:
            entry = GlossaryEntry(
                id=generate_uuid(),
                glossary_id=glossary_id,
                source_term=source_term,
                target_term=target_term,
                target_language_code=target_language_code,
                case_sensitive=case_sensitive,
                notes=notes,
                category=category,
                usage_count=0,
            )
            session.add(entry)
            session.commit()
            return entry

    def get_entry(self, entry_id: str) -> Optional[GlossaryEntry]:
        with self.get_session() as session:
            return session.get(GlossaryEntry, entry_id)

    def find_duplicate_entry(
        self,
        glossary_id: str,
        target_language_code: str,
        source_term: str,
        case_sensitive: bool = False,
    ) -> Optional[GlossaryEntry]:
        """Find an entry with the same unique key."""
        with self.get_session() as session:
            return session.query(GlossaryEntry).filter(
                GlossaryEntry.glossary_id == glossary_id,
                GlossaryEntry.target_language_code == target_language_code,
                GlossaryEntry.source_term == source_term,
                GlossaryEntry.case_sensitive == case_sensitive,
            ).first()

    def get_entries_by_glossary(
        self,
        glossary_id: str,
        target_language_code: Optional[str] = None,
    ) -> List[GlossaryEntry]:
        """Get entries of a glossary, optionally for one target language."""
        with self.get_session() as session:
            query = session.query(GlossaryEntry).filter(
                GlossaryEntry.glossary_id == glossary_id
            )
            if target_language_code is not None:
                query = query.filter(
                    func.lower(GlossaryEntry.target_language_code) == target_language_code.lower()
                )
            entries = query.order_by(GlossaryEntry.source_term).all()

        logger.debug(
            f"Loaded {len(entries)} entries for glossary {glossary_id} "
            f"(target={target_language_code})"
        )
        return entries

    def list_entries(
        self,
        glossary_id: str,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
        target_language_code: Optional[str] = None,
    ) -> Tuple[List[GlossaryEntry], int]:
        """
        List entries with pagination.

        Returns:
            Tuple of (entries, total_count)
        """
        with self.get_session() as session:
            query = session.query(GlossaryEntry).filter(
                GlossaryEntry.glossary_id == glossary_id
            )
            if target_language_code:
                query = query.filter(
                    func.lower(GlossaryEntry.target_language_code) == target_language_code.lower()
                )
            if search:
                query = query.filter(or_(
                    GlossaryEntry.source_term.ilike(f"%{search}%"),
                    GlossaryEntry.target_term.ilike(f"%{search}%"),
                ))

            total = query.count()
            offset = (page - 1) * limit
            entries = query.order_by(GlossaryEntry.source_term).offset(offset).limit(limit).all()
            return entries, total

    def update_entry(self, entry_id: str, **kwargs) -> Optional[GlossaryEntry]:
        """Update mutable fields of an entry."""
        with self.get_session() as session:
            entry = session.get(GlossaryEntry, entry_id)
            if not entry:
                return None

            for key, value in kwargs.items():
                if value is not None and hasattr(entry, key):
                    setattr(entry, key, value)
            entry.updated_at = utc_now()

            session.commit()
            return entry

    def delete_entry(self, entry_id: str) -> bool:
        with self.get_session() as session:
            entry = session.get(GlossaryEntry, entry_id)
            if not entry:
                return False
            session.delete(entry)
            session.commit()
            return True

    def delete_entries(self, glossary_id: str, entry_ids: List[str]) -> int:
        """Delete several entries of one glossary; returns the number deleted."""
        if not entry_ids:
            return 0
        with self.get_session() as session:
            deleted = session.query(GlossaryEntry).filter(
                GlossaryEntry.glossary_id == glossary_id,
                GlossaryEntry.id.in_(entry_ids),
            ).delete(synchronize_session=False)
            session.commit()
            return deleted

    def get_entry_count(self, glossary_id: str) -> int:
        with self.get_session() as session:
            return session.query(func.count(GlossaryEntry.id)).filter(
                GlossaryEntry.glossary_id == glossary_id
            ).scalar() or 0

    def get_entry_count_for_language(self, glossary_id: str, target_language_code: str) -> int:
        """Count entries of a glossary for one target language (case-insensitive)."""
        with self.get_session() as session:
            return session.query(func.count(GlossaryEntry.id)).filter(
                GlossaryEntry.glossary_id == glossary_id,
                func.lower(GlossaryEntry.target_language_code) == target_language_code.lower(),
            ).scalar() or 0

    def get_language_counts(self, glossary_id: str) -> Dict[str, int]:
        """Entry counts keyed by lowercase target language code."""
        with self.get_session() as session:
            rows = session.query(
                GlossaryEntry.target_language_code, func.count(GlossaryEntry.id)
            ).filter(
                GlossaryEntry.glossary_id == glossary_id
            ).group_by(GlossaryEntry.target_language_code).all()

        counts: Dict[str, int] = defaultdict(int)
        for code, count in rows:
            counts[code.lower()] += count
        return dict(counts)

    def increment_usage_count(self, entry_ids: List[str]):
        """Increment usage count for entries."""
        if not entry_ids:
            return
        with self.get_session() as session:
            session.query(GlossaryEntry).filter(
                GlossaryEntry.id.in_(entry_ids)
            ).update(
                {GlossaryEntry.usage_count: GlossaryEntry.usage_count + 1},
                synchronize_session=False
            )
            session.commit()

    def get_usage_stats(self, glossary_id: str) -> Dict[str, int]:
        """
        Usage statistics for a glossary.

        Returns:
            Dict with used_count, unused_count and total_usage
        """
        with self.get_session() as session:
            entries = session.query(GlossaryEntry.usage_count).filter(
                GlossaryEntry.glossary_id == glossary_id
            ).all()

        used = sum(1 for (count,) in entries if count > 0)
        return {
            "used_count": used,
            "unused_count": len(entries) - used,
            "total_usage": sum(count for (count,) in entries),
        }

    # ==================== DEEPL MAPPING OPERATIONS ====================

    def get_deepl_mapping(
        self,
        twmt_glossary_id: str,
        source_language_code: str,
        target_language_code: str,
    ) -> Optional[DeepLGlossaryMapping]:
        """Get the mapping for a glossary and language pair, if any."""
        with self.get_session() as session:
            return session.query(DeepLGlossaryMapping).filter(
                DeepLGlossaryMapping.twmt_glossary_id == twmt_glossary_id,
                DeepLGlossaryMapping.source_language_code == source_language_code,
                DeepLGlossaryMapping.target_language_code == target_language_code,
            ).first()

    def get_deepl_mappings_for_glossary(self, twmt_glossary_id: str) -> List[DeepLGlossaryMapping]:
        with self.get_session() as session:
            return session.query(DeepLGlossaryMapping).filter(
                DeepLGlossaryMapping.twmt_glossary_id == twmt_glossary_id
            ).order_by(DeepLGlossaryMapping.target_language_code).all()

    def get_all_deepl_mappings(self) -> List[DeepLGlossaryMapping]:
        with self.get_session() as session:
            return session.query(DeepLGlossaryMapping).order_by(
                DeepLGlossaryMapping.synced_at.desc()
            ).all()

    def insert_deepl_mapping(self, mapping: DeepLGlossaryMapping) -> DeepLGlossaryMapping:
        """Insert a mapping, replacing any row for the same language pair."""
        with self.get_session() as session:
            session.query(DeepLGlossaryMapping).filter(
                DeepLGlossaryMapping.twmt_glossary_id == mapping.twmt_glossary_id,
                DeepLGlossaryMapping.source_language_code == mapping.source_language_code,
                DeepLGlossaryMapping.target_language_code == mapping.target_language_code,
            ).delete(synchronize_session=False)
            session.add(mapping)
            session.commit()
            return mapping

    def delete_deepl_mapping(self, mapping_id: str) -> bool:
        with self.get_session() as session:
            deleted = session.query(DeepLGlossaryMapping).filter(
                DeepLGlossaryMapping.id == mapping_id
            ).delete(synchronize_session=False)
            session.commit()
            return deleted > 0

    def delete_deepl_mappings_for_glossary(self, twmt_glossary_id: str) -> int:
        with self.get_session() as session:
            deleted = session.query(DeepLGlossaryMapping).filter(
                DeepLGlossaryMapping.twmt_glossary_id == twmt_glossary_id
            ).delete(synchronize_session=False)
            session.commit()
            return deleted

    def does_mapping_need_resync(
        self,
        twmt_glossary_id: str,
        source_language_code: str,
        target_language_code: str,
    ) -> bool:
        """
        Check whether the remote glossary no longer reflects local entries.

        True when there is no mapping, or when the entry count or content
        hash of the current entries differs from the snapshot taken at sync
        time. Edits that keep the count unchanged are detected by the hash.
        """
        mapping = self.get_deepl_mapping(
            twmt_glossary_id, source_language_code, target_language_code
        )
        if mapping is None:
            return True

        entries = self.get_entries_by_glossary(twmt_glossary_id, target_language_code)
        if len(entries) != mapping.entry_count:
            return True
        return compute_content_hash(entries) != mapping.content_hash


# Global instance
_repository: Optional[GlossaryRepository] = None


def get_repository() -> GlossaryRepository:
    """Get or create the global repository instance."""
    global _repository
    if _repository is None:
        from termguard.config.settings import settings
        _repository = GlossaryRepository(str(settings.glossary_db_path))
    return _repository
