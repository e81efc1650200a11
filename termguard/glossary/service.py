"""
Glossary Service
Business logic layer for glossary operations.
"""
import logging
from typing import Dict, List, Optional

from .exceptions import GlossaryNotFoundError, InvalidGlossaryDataError
from .repository import GlossaryRepository, get_repository
from .schemas import (
    GlossaryCreate, GlossaryUpdate, GlossaryResponse, GlossaryStatistics,
    EntryCreate, EntryUpdate, EntryResponse, EntryListResponse,
)

logger = logging.getLogger(__name__)


class GlossaryService:
    """
    Service layer for glossary operations.

    Handles validation and coordination between the repository and the
    DeepL sync service, whose remote glossaries must go away together with
    the local ones.
    """

    def __init__(
        self,
        repository: Optional[GlossaryRepository] = None,
        sync_service=None,
    ):
        if sync_service is None:
            from termguard.deepl.sync import DeepLGlossarySyncService, get_sync_service
            if repository is None:
                sync_service = get_sync_service()
            else:
                sync_service = DeepLGlossarySyncService(repository=repository)
        self.repository = repository or get_repository()
        self.sync_service = sync_service

    def _require_glossary(self, glossary_id: str):
        glossary = self.repository.get_glossary(glossary_id)
        if not glossary:
            raise GlossaryNotFoundError(glossary_id)
        return glossary

    def _to_response(self, glossary) -> GlossaryResponse:
        data = glossary.to_dict()
        data["entry_count"] = self.repository.get_entry_count(glossary.id)
        return GlossaryResponse.model_validate(data)

    # ==================== GLOSSARY OPERATIONS ====================

    async def create_glossary(self, data: GlossaryCreate) -> GlossaryResponse:
        """Create a new glossary."""
        name = data.name.strip()
        if not name:
            raise InvalidGlossaryDataError(["Glossary name must not be empty"])
        if self.repository.get_glossary_by_name(name):
            raise InvalidGlossaryDataError([f"Glossary already exists: {name}"])

        glossary = self.repository.create_glossary(
            name=name,
            description=data.description,
            is_global=data.is_global,
            game_installation_id=data.game_installation_id,
            target_language_code=data.target_language_code,
        )
        return self._to_response(glossary)

    async def get_glossary(self, glossary_id: str) -> GlossaryResponse:
        return self._to_response(self._require_glossary(glossary_id))

    async def list_glossaries(
        self,
        game_installation_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[GlossaryResponse]:
        """List glossaries, or only those applying to one game."""
        if game_installation_id:
            glossaries = self.repository.get_all_glossaries(
                game_installation_id=game_installation_id,
                include_universal=True,
            )
            if search:
                glossaries = [g for g in glossaries if search.lower() in g.name.lower()]
        else:
            glossaries = self.repository.list_glossaries(search=search)
        return [self._to_response(g) for g in glossaries]

    async def update_glossary(self, glossary_id: str, data: GlossaryUpdate) -> GlossaryResponse:
        """Update glossary name or description."""
        self._require_glossary(glossary_id)

        name = data.name.strip() if data.name is not None else None
        if name is not None:
            if not name:
                raise InvalidGlossaryDataError(["Glossary name must not be empty"])
            existing = self.repository.get_glossary_by_name(name)
            if existing and existing.id != glossary_id:
                raise InvalidGlossaryDataError([f"Glossary already exists: {name}"])

        glossary = self.repository.update_glossary(
            glossary_id=glossary_id,
            name=name,
            description=data.description,
        )
        return self._to_response(glossary)

    async def delete_glossary(self, glossary_id: str) -> None:
        """
        Delete a glossary with its entries.

        Remote DeepL glossaries are removed first; the sync service only
        logs remote failures, so a dead API key never blocks a local delete.
        """
        self._require_glossary(glossary_id)
        await self.sync_service.delete_glossary_mappings(glossary_id)
        self.repository.delete_glossary(glossary_id)

    # ==================== ENTRY OPERATIONS ====================

    async def add_entry(self, glossary_id: str, data: EntryCreate) -> EntryResponse:
        """Add an entry to a glossary."""
        self._require_glossary(glossary_id)

        source_term = data.source_term.strip()
        target_term = data.target_term.strip()
        errors = []
        if not source_term:
            errors.append("Source term must not be empty")
        if not target_term:
            errors.append("Target term must not be empty")
        if errors:
            raise InvalidGlossaryDataError(errors)

        if self.repository.find_duplicate_entry(
            glossary_id, data.target_language_code, source_term, data.case_sensitive
        ):
            raise InvalidGlossaryDataError([
                f'Entry "{source_term}" already exists for {data.target_language_code}'
            ])

        entry = self.repository.add_entry(
            glossary_id=glossary_id,
            source_term=source_term,
            target_term=target_term,
            target_language_code=data.target_language_code,
            case_sensitive=data.case_sensitive,
            notes=data.notes,
            category=data.category,
        )
        return EntryResponse.model_validate(entry.to_dict())

    async def get_entry(self, glossary_id: str, entry_id: str) -> EntryResponse:
        entry = self.repository.get_entry(entry_id)
        if not entry or entry.glossary_id != glossary_id:
            raise GlossaryNotFoundError(entry_id, resource="Glossary entry")
        return EntryResponse.model_validate(entry.to_dict())

    async def update_entry(
        self,
        glossary_id: str,
        entry_id: str,
        data: EntryUpdate,
    ) -> EntryResponse:
        """Update an entry (partial update)."""
        entry = self.repository.get_entry(entry_id)
        if not entry or entry.glossary_id != glossary_id:
            raise GlossaryNotFoundError(entry_id, resource="Glossary entry")

        update_data = {k: v for k, v in data.model_dump().items() if v is not None}
        for field in ("source_term", "target_term"):
            if field in update_data:
                update_data[field] = update_data[field].strip()
                if not update_data[field]:
                    raise InvalidGlossaryDataError([f"{field} must not be empty"])

        source_term = update_data.get("source_term", entry.source_term)
        case_sensitive = update_data.get("case_sensitive", entry.case_sensitive)
        duplicate = self.repository.find_duplicate_entry(
            glossary_id, entry.target_language_code, source_term, case_sensitive
        )
        if duplicate and duplicate.id != entry_id:
            raise InvalidGlossaryDataError([
                f'Entry "{source_term}" already exists for {entry.target_language_code}'
            ])

        updated = self.repository.update_entry(entry_id, **update_data)
        return EntryResponse.model_validate(updated.to_dict())

    async def delete_entry(self, glossary_id: str, entry_id: str) -> None:
        entry = self.repository.get_entry(entry_id)
        if not entry or entry.glossary_id != glossary_id:
            raise GlossaryNotFoundError(entry_id, resource="Glossary entry")
        self.repository.delete_entry(entry_id)

    async def delete_entries(self, glossary_id: str, entry_ids: List[str]) -> int:
        """Delete several entries; IDs of other glossaries are ignored."""
        self._require_glossary(glossary_id)
        deleted = self.repository.delete_entries(glossary_id, entry_ids)
        logger.info(f"Deleted {deleted} entries from glossary {glossary_id}")
        return deleted

    async def list_entries(
        self,
        glossary_id: str,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
        target_language_code: Optional[str] = None,
    ) -> EntryListResponse:
        """List entries with pagination."""
        self._require_glossary(glossary_id)
        entries, total = self.repository.list_entries(
            glossary_id=glossary_id,
            page=page,
            limit=limit,
            search=search,
            target_language_code=target_language_code,
        )

        pages = (total + limit - 1) // limit

        return EntryListResponse(
            entries=[EntryResponse.model_validate(e.to_dict()) for e in entries],
            total=total,
            page=page,
            limit=limit,
            pages=pages,
        )

    # ==================== STATISTICS ====================

    async def validate_glossary(self, glossary_id: str) -> List[str]:
        """
        Report data problems in a glossary.

        Checks for empty terms, source terms repeated within a target
        language (case-insensitive) and repeated source terms with
        different translations.

        Returns:
            Error messages, empty when the glossary is clean
        """
        self._require_glossary(glossary_id)
        entries = self.repository.get_entries_by_glossary(glossary_id)

        errors = []
        for entry in entries:
            if not entry.source_term.strip():
                errors.append(f"Entry {entry.id}: Empty source term")
            if not entry.target_term.strip():
                errors.append(f"Entry {entry.id}: Empty target term")

        groups: Dict[str, List] = {}
        for entry in entries:
            key = f"{entry.target_language_code}:{entry.source_term.lower()}"
            groups.setdefault(key, []).append(entry)

        for key, group in groups.items():
            if len(group) < 2:
                continue
            errors.append("Duplicate term: " + ", ".join(e.source_term for e in group))
            translations = list(dict.fromkeys(e.target_term for e in group))
            if len(translations) > 1:
                errors.append(f"Conflicting translations for {key}: {', '.join(translations)}")

        return errors

    async def get_statistics(self, glossary_id: str) -> GlossaryStatistics:
        self._require_glossary(glossary_id)
        usage = self.repository.get_usage_stats(glossary_id)
        return GlossaryStatistics(
            glossary_id=glossary_id,
            entry_count=self.repository.get_entry_count(glossary_id),
            language_counts=self.repository.get_language_counts(glossary_id),
            **usage,
        )


# Global instance
_service: Optional[GlossaryService] = None


def get_glossary_service() -> GlossaryService:
    """Get or create the global service instance."""
    global _service
    if _service is None:
        _service = GlossaryService()
    return _service
