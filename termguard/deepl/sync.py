"""
DeepL Glossary Sync Service
Keep DeepL-side glossaries in step with local glossaries.

DeepL only applies glossaries that exist on its servers, one per language
pair. Each uploaded glossary is tracked by a DeepLGlossaryMapping row that
snapshots what was sent (entry count and content hash); when the local
entries drift from that snapshot the remote copy is replaced.
"""
import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from enum import Enum
from typing import Dict, List, Optional, Tuple

from termguard.glossary.exceptions import (
    GlossaryNotFoundError,
    GlossarySyncError,
    RemoteGlossaryError,
)
from termguard.glossary.models import (
    DeepLGlossaryMapping, Glossary, GlossaryEntry, SyncStatus, generate_uuid, utc_now,
)
from termguard.glossary.repository import (
    GlossaryRepository, compute_content_hash, entries_to_tsv, get_repository, sanitize_term,
)

from .client import DeepLGlossaryClient
from .language_codes import to_deepl_code, to_deepl_source_code

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    """Remote state of a glossary for one language pair."""
    NO_REMOTE_NEEDED = "no_remote_needed"
    UNSYNCED = "unsynced"
    SYNCED = "synced"
    STALE = "stale"


def _unique_sources(entries: List[GlossaryEntry]) -> List[GlossaryEntry]:
    """DeepL accepts one target per source term; keep the first."""
    seen = set()
    unique = []
    for entry in entries:
        source = sanitize_term(entry.source_term)
        if not source or source in seen:
            continue
        seen.add(source)
        unique.append(entry)
    return unique


class DeepLGlossarySyncService:
    """
    Create, reuse and replace DeepL glossaries for local glossaries.

    Every operation on a (glossary, source language, target language) key
    runs under a per-key asyncio.Lock, so concurrent callers never create
    two remote glossaries for the same key.
    """

    def __init__(
        self,
        repository: Optional[GlossaryRepository] = None,
        client: Optional[DeepLGlossaryClient] = None,
    ):
        self.repository = repository or get_repository()
        self.client = client or DeepLGlossaryClient()
        self._locks: Dict[Tuple[str, str, str], asyncio.Lock] = {}
        # Holders plus waiters per key; a lock is dropped when this reaches 0
        self._lock_users: Dict[Tuple[str, str, str], int] = {}

    @asynccontextmanager
    async def _key_lock(self, glossary_id: str, source: str, target: str):
        key = (glossary_id, source, target)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]

    def _require_glossary(self, glossary_id: str) -> Glossary:
        glossary = self.repository.get_glossary(glossary_id)
        if glossary is None:
            raise GlossaryNotFoundError(glossary_id)
        return glossary

    # ==================== SYNC ====================

    async def ensure_glossary_synced(
        self,
        glossary_id: str,
        source_language_code: str,
        target_language_code: str,
    ) -> Optional[str]:
        """
        Make sure DeepL holds an up-to-date copy of a glossary.

        Returns:
            DeepL glossary ID, or None when the glossary has no entries for
            the target language

        Raises:
            GlossaryNotFoundError: Unknown glossary
            RemoteGlossaryError: DeepL refused to create the glossary
            GlossarySyncError: Unexpected local failure
        """
        source = source_language_code.lower()
        target = target_language_code.lower()

        async with self._key_lock(glossary_id, source, target):
            try:
                return await self._sync(glossary_id, source, target, force=False)
            except (GlossaryNotFoundError, RemoteGlossaryError):
                raise
            except Exception as e:
                logger.error(f"Glossary sync failed for {glossary_id} ({source}->{target}): {e}")
                raise GlossarySyncError(f"Failed to sync glossary {glossary_id}: {e}") from e

    async def force_resync(
        self,
        glossary_id: str,
        source_language_code: str,
        target_language_code: str,
    ) -> Optional[str]:
        """Replace the DeepL glossary even if the local snapshot matches."""
        source = source_language_code.lower()
        target = target_language_code.lower()

        async with self._key_lock(glossary_id, source, target):
            try:
                return await self._sync(glossary_id, source, target, force=True)
            except (GlossaryNotFoundError, RemoteGlossaryError):
                raise
            except Exception as e:
                logger.error(f"Glossary resync failed for {glossary_id} ({source}->{target}): {e}")
                raise GlossarySyncError(f"Failed to resync glossary {glossary_id}: {e}") from e

    async def _sync(self, glossary_id: str, source: str, target: str, force: bool) -> Optional[str]:
        # Caller holds the key's lock
        glossary = self._require_glossary(glossary_id)
        mapping = self.repository.get_deepl_mapping(glossary_id, source, target)

        if force and mapping is not None:
            await self._teardown(mapping)
            mapping = None

        entry_count = self.repository.get_entry_count_for_language(glossary_id, target)
        if entry_count == 0:
            logger.debug(f"No {target} entries in glossary {glossary_id}, nothing to sync")
            return None

        if mapping is not None:
            if not self.repository.does_mapping_need_resync(glossary_id, source, target):
                logger.debug(f"Using synced DeepL glossary {mapping.deepl_glossary_id}")
                return mapping.deepl_glossary_id

            logger.info(f"DeepL glossary {mapping.deepl_glossary_id} is outdated, replacing")
            await self._teardown(mapping)

        return await self._create_remote(glossary, source, target)

    async def _teardown(self, mapping: DeepLGlossaryMapping) -> None:
        """Delete the remote glossary (best effort) and its mapping row."""
        try:
            await self.client.delete_glossary(mapping.deepl_glossary_id)
        except RemoteGlossaryError as e:
            # Already gone on DeepL, or unreachable; the row goes anyway
            logger.warning(
                f"Failed to delete DeepL glossary {mapping.deepl_glossary_id}: {e.message}"
            )
        self.repository.delete_deepl_mapping(mapping.id)

    async def _create_remote(self, glossary: Glossary, source: str, target: str) -> str:
        entries = self.repository.get_entries_by_glossary(glossary.id, target)
        name = f"{glossary.name}_{source}_{target}"
        tsv = entries_to_tsv(_unique_sources(entries))

        logger.info(f"Creating DeepL glossary {name} with {len(entries)} entries")
        remote_id = await self.client.create_glossary(
            name, to_deepl_source_code(source), to_deepl_code(target), tsv
        )

        now = utc_now()
        try:
            self.repository.insert_deepl_mapping(DeepLGlossaryMapping(
                id=generate_uuid(),
                twmt_glossary_id=glossary.id,
                source_language_code=source,
                target_language_code=target,
                deepl_glossary_id=remote_id,
                deepl_glossary_name=name,
                entry_count=len(entries),
                content_hash=compute_content_hash(entries),
                sync_status=SyncStatus.SYNCED.value,
                synced_at=now,
                created_at=now,
                updated_at=now,
            ))
        except Exception:
            # No row will point at the new remote glossary
            try:
                await self.client.delete_glossary(remote_id)
            except RemoteGlossaryError as e:
                logger.warning(f"Orphaned DeepL glossary {remote_id}: {e.message}")
            raise
        return remote_id

    async def sync_glossaries(
        self,
        glossary_ids: List[str],
        source_language_code: str,
        target_language_code: str,
    ) -> Dict[str, str]:
        """
        Sync several glossaries, skipping those that fail or have no entries.

        Returns:
            Mapping of local glossary ID to DeepL glossary ID
        """
        synced: Dict[str, str] = {}
        for glossary_id in glossary_ids:
            try:
                remote_id = await self.ensure_glossary_synced(
                    glossary_id, source_language_code, target_language_code
                )
            except (GlossaryNotFoundError, RemoteGlossaryError, GlossarySyncError) as e:
                logger.warning(f"Skipping glossary {glossary_id}: {e}")
                continue
            if remote_id is not None:
                synced[glossary_id] = remote_id
        return synced

    async def delete_glossary_mappings(self, glossary_id: str) -> int:
        """
        Remove every DeepL glossary created from a local glossary.

        Holds the key locks of the glossary, so a sync already in progress
        finishes (and its mapping row is removed here) before the cleanup
        runs. Remote failures are logged and do not stop the cleanup.

        Returns:
            Number of mapping rows deleted
        """
        keys = {
            (glossary_id, m.source_language_code, m.target_language_code)
            for m in self.repository.get_deepl_mappings_for_glossary(glossary_id)
        }
        keys.update(k for k in self._locks if k[0] == glossary_id)

        async with AsyncExitStack() as stack:
            # Sorted so that two cleanups of one glossary cannot deadlock
            for key in sorted(keys):
                await stack.enter_async_context(self._key_lock(*key))

            mappings = self.repository.get_deepl_mappings_for_glossary(glossary_id)
            for mapping in mappings:
                try:
                    await self.client.delete_glossary(mapping.deepl_glossary_id)
                except RemoteGlossaryError as e:
                    logger.warning(
                        f"Failed to delete DeepL glossary {mapping.deepl_glossary_id}: {e.message}"
                    )
            deleted = self.repository.delete_deepl_mappings_for_glossary(glossary_id)

        if deleted:
            logger.info(f"Deleted {deleted} DeepL mappings for glossary {glossary_id}")
        return deleted

    # ==================== STATE ====================

    def get_sync_state(
        self,
        glossary_id: str,
        source_language_code: str,
        target_language_code: str,
    ) -> SyncState:
        source = source_language_code.lower()
        target = target_language_code.lower()
        self._require_glossary(glossary_id)

        if self.repository.get_entry_count_for_language(glossary_id, target) == 0:
            return SyncState.NO_REMOTE_NEEDED
        if self.repository.get_deepl_mapping(glossary_id, source, target) is None:
            return SyncState.UNSYNCED
        if self.repository.does_mapping_need_resync(glossary_id, source, target):
            return SyncState.STALE
        return SyncState.SYNCED

    def get_deepl_glossary_id(
        self,
        glossary_id: str,
        source_language_code: str,
        target_language_code: str,
    ) -> Optional[str]:
        """Remote ID of the current mapping, synced or not."""
        mapping = self.repository.get_deepl_mapping(
            glossary_id, source_language_code.lower(), target_language_code.lower()
        )
        return mapping.deepl_glossary_id if mapping else None

    def is_glossary_synced(
        self,
        glossary_id: str,
        source_language_code: str,
        target_language_code: str,
    ) -> bool:
        return self.get_sync_state(
            glossary_id, source_language_code, target_language_code
        ) == SyncState.SYNCED

    def get_all_mappings(self) -> List[DeepLGlossaryMapping]:
        return self.repository.get_all_deepl_mappings()


# Global instance
_sync_service: Optional[DeepLGlossarySyncService] = None


def get_sync_service() -> DeepLGlossarySyncService:
    """Get or create the global sync service instance."""
    global _sync_service
    if _sync_service is None:
        _sync_service = DeepLGlossarySyncService()
    return _sync_service
