"""
Unit tests for termguard/deepl/sync.py: DeepLGlossarySyncService.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from termguard.deepl.sync import DeepLGlossarySyncService, SyncState
from termguard.glossary.exceptions import (
    GlossaryNotFoundError,
    GlossarySyncError,
    RemoteErrorKind,
    RemoteGlossaryError,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    """DeepL client double handing out sequential remote IDs."""
    mock = MagicMock()
    counter = {"n": 0}

    async def _create(name, source_lang, target_lang, entries_tsv):
        counter["n"] += 1
        await asyncio.sleep(0)
        return f"remote-{counter['n']}"

    mock.create_glossary = AsyncMock(side_effect=_create)
    mock.delete_glossary = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def glossary(repository):
    glossary = repository.create_glossary("Lore", is_global=True)
    repository.add_entry(glossary.id, "Empire", "Empire", "fr")
    repository.add_entry(glossary.id, "Chaos", "Chaos", "fr")
    return glossary


@pytest.fixture
def service(repository, client):
    return DeepLGlossarySyncService(repository=repository, client=client)


# ---------------------------------------------------------------------------
# ensure_glossary_synced
# ---------------------------------------------------------------------------

class TestEnsureGlossarySynced:
    @pytest.mark.asyncio
    async def test_creates_once_then_reuses(self, service, client, glossary, repository):
        first = await service.ensure_glossary_synced(glossary.id, "en", "fr")
        second = await service.ensure_glossary_synced(glossary.id, "en", "fr")

        assert first == second == "remote-1"
        assert client.create_glossary.await_count == 1
        client.delete_glossary.assert_not_awaited()

        mapping = repository.get_deepl_mapping(glossary.id, "en", "fr")
        assert mapping.entry_count == 2
        assert mapping.deepl_glossary_name == "Lore_en_fr"
        assert mapping.is_synced

    @pytest.mark.asyncio
    async def test_payload(self, service, client, glossary):
        await service.ensure_glossary_synced(glossary.id, "EN", "FR")
        name, source, target, tsv = client.create_glossary.await_args.args
        assert (name, source, target) == ("Lore_en_fr", "EN", "FR")
        assert tsv == "Chaos\tChaos\nEmpire\tEmpire\n"

    @pytest.mark.asyncio
    async def test_no_entries_no_remote(self, service, client, glossary):
        assert await service.ensure_glossary_synced(glossary.id, "en", "de") is None
        client.create_glossary.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_glossary(self, service):
        with pytest.raises(GlossaryNotFoundError):
            await service.ensure_glossary_synced("missing", "en", "fr")

    @pytest.mark.asyncio
    async def test_stale_mapping_replaced(self, service, client, glossary, repository):
        await service.ensure_glossary_synced(glossary.id, "en", "fr")
        entry = repository.get_entries_by_glossary(glossary.id, "fr")[0]
        repository.update_entry(entry.id, target_term="Chaos Absolu")

        assert service.get_sync_state(glossary.id, "en", "fr") == SyncState.STALE
        remote_id = await service.ensure_glossary_synced(glossary.id, "en", "fr")

        assert remote_id == "remote-2"
        client.delete_glossary.assert_awaited_once_with("remote-1")
        assert len(repository.get_deepl_mappings_for_glossary(glossary.id)) == 1
        assert service.get_sync_state(glossary.id, "en", "fr") == SyncState.SYNCED

    @pytest.mark.asyncio
    async def test_remote_delete_failure_not_fatal(self, service, client, glossary, repository):
        await service.ensure_glossary_synced(glossary.id, "en", "fr")
        repository.add_entry(glossary.id, "Dwarf", "Nain", "fr")
        client.delete_glossary.side_effect = RemoteGlossaryError(
            "gone", kind=RemoteErrorKind.NOT_FOUND, status_code=404
        )

        assert await service.ensure_glossary_synced(glossary.id, "en", "fr") == "remote-2"
        assert repository.get_deepl_mapping(glossary.id, "en", "fr").entry_count == 3

    @pytest.mark.asyncio
    async def test_create_failure_writes_no_row(self, service, client, glossary, repository):
        client.create_glossary.side_effect = RemoteGlossaryError(
            "quota", kind=RemoteErrorKind.QUOTA, status_code=456
        )
        with pytest.raises(RemoteGlossaryError) as exc:
            await service.ensure_glossary_synced(glossary.id, "en", "fr")

        assert exc.value.requires_user_action is True
        assert repository.get_deepl_mapping(glossary.id, "en", "fr") is None

    @pytest.mark.asyncio
    async def test_unexpected_failure_wrapped(self, service, client, repository, glossary):
        repository.insert_deepl_mapping = MagicMock(side_effect=RuntimeError("disk full"))
        with pytest.raises(GlossarySyncError):
            await service.ensure_glossary_synced(glossary.id, "en", "fr")
        client.delete_glossary.assert_awaited_once_with("remote-1")

    @pytest.mark.asyncio
    async def test_concurrent_calls_create_once(self, service, client, glossary):
        results = await asyncio.gather(*[
            service.ensure_glossary_synced(glossary.id, "en", "fr") for _ in range(5)
        ])
        assert set(results) == {"remote-1"}
        assert client.create_glossary.await_count == 1

    @pytest.mark.asyncio
    async def test_duplicate_sources_sent_once(self, service, client, glossary, repository):
        repository.add_entry(glossary.id, "Empire", "l'Empire", "fr", case_sensitive=True)
        await service.ensure_glossary_synced(glossary.id, "en", "fr")
        tsv = client.create_glossary.await_args.args[3]
        assert tsv.count("Empire\t") == 1

    @pytest.mark.asyncio
    async def test_regional_source_sent_as_base_language(self, service, client, glossary):
        await service.ensure_glossary_synced(glossary.id, "en-gb", "fr")
        _, source, target, _ = client.create_glossary.await_args.args
        assert (source, target) == ("EN", "FR")

    @pytest.mark.asyncio
    async def test_locks_dropped_when_idle(self, service, glossary):
        await asyncio.gather(*[
            service.ensure_glossary_synced(glossary.id, "en", "fr") for _ in range(3)
        ])
        assert service._locks == {}
        assert service._lock_users == {}


# ---------------------------------------------------------------------------
# force_resync
# ---------------------------------------------------------------------------

class TestForceResync:
    @pytest.mark.asyncio
    async def test_replaces_fresh_mapping(self, service, client, glossary):
        await service.ensure_glossary_synced(glossary.id, "en", "fr")
        remote_id = await service.force_resync(glossary.id, "en", "fr")

        assert remote_id == "remote-2"
        client.delete_glossary.assert_awaited_once_with("remote-1")
        assert client.create_glossary.await_count == 2

    @pytest.mark.asyncio
    async def test_without_mapping(self, service, client, glossary):
        assert await service.force_resync(glossary.id, "en", "fr") == "remote-1"
        client.delete_glossary.assert_not_awaited()


# ---------------------------------------------------------------------------
# Bulk operations and state
# ---------------------------------------------------------------------------

class TestBulkAndState:
    @pytest.mark.asyncio
    async def test_sync_glossaries_skips_failures(self, service, glossary, repository):
        empty = repository.create_glossary("Empty")
        result = await service.sync_glossaries([glossary.id, empty.id, "missing"], "en", "fr")
        assert result == {glossary.id: "remote-1"}

    @pytest.mark.asyncio
    async def test_delete_glossary_mappings(self, service, client, glossary, repository):
        await service.ensure_glossary_synced(glossary.id, "en", "fr")
        repository.add_entry(glossary.id, "Empire", "Reich", "de")
        await service.ensure_glossary_synced(glossary.id, "en", "de")
        client.delete_glossary.side_effect = [
            RemoteGlossaryError("down", kind=RemoteErrorKind.SERVER, status_code=503),
            None,
        ]

        assert await service.delete_glossary_mappings(glossary.id) == 2
        assert client.delete_glossary.await_count == 2
        assert repository.get_deepl_mappings_for_glossary(glossary.id) == []

    @pytest.mark.asyncio
    async def test_cleanup_waits_for_running_sync(self, service, client, glossary, repository):
        started, release = asyncio.Event(), asyncio.Event()

        async def _slow_create(name, source_lang, target_lang, entries_tsv):
            started.set()
            await release.wait()
            return "remote-slow"

        client.create_glossary.side_effect = _slow_create
        sync = asyncio.create_task(service.ensure_glossary_synced(glossary.id, "en", "fr"))
        await started.wait()

        cleanup = asyncio.create_task(service.delete_glossary_mappings(glossary.id))
        await asyncio.sleep(0)
        assert not cleanup.done()
        release.set()

        assert await sync == "remote-slow"
        assert await cleanup == 1
        client.delete_glossary.assert_awaited_once_with("remote-slow")
        assert repository.get_deepl_mappings_for_glossary(glossary.id) == []
        assert service._locks == {}

    @pytest.mark.asyncio
    async def test_states(self, service, glossary):
        assert service.get_sync_state(glossary.id, "en", "de") == SyncState.NO_REMOTE_NEEDED
        assert service.get_sync_state(glossary.id, "en", "fr") == SyncState.UNSYNCED
        assert service.is_glossary_synced(glossary.id, "en", "fr") is False

        await service.ensure_glossary_synced(glossary.id, "en", "fr")
        assert service.is_glossary_synced(glossary.id, "en", "fr") is True
        assert service.get_deepl_glossary_id(glossary.id, "en", "fr") == "remote-1"
        assert len(service.get_all_mappings()) == 1
