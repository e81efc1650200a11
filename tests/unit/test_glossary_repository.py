"""
Unit tests for termguard/glossary/repository.py: persistence and the
DeepL mapping staleness check.
"""

import pytest

from termguard.glossary.models import DeepLGlossaryMapping, generate_uuid
from termguard.glossary.repository import (
    compute_content_hash,
    entries_to_tsv,
    sanitize_term,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def glossary(repository):
    glossary = repository.create_glossary("Lore", is_global=True)
    repository.add_entry(glossary.id, "Empire", "Empire", "fr")
    repository.add_entry(glossary.id, "Chaos", "Chaos", "fr")
    return glossary


def _snapshot_mapping(repository, glossary_id, source="en", target="fr"):
    entries = repository.get_entries_by_glossary(glossary_id, target)
    return repository.insert_deepl_mapping(DeepLGlossaryMapping(
        id=generate_uuid(),
        twmt_glossary_id=glossary_id,
        source_language_code=source,
        target_language_code=target,
        deepl_glossary_id="remote-1",
        deepl_glossary_name="Lore_en_fr",
        entry_count=len(entries),
        content_hash=compute_content_hash(entries),
    ))


# ---------------------------------------------------------------------------
# TSV helpers
# ---------------------------------------------------------------------------

class TestTsv:
    def test_sanitize(self):
        assert sanitize_term(" a\tb\nc ") == "a b c"

    def test_tsv_lines(self, make_entry):
        tsv = entries_to_tsv([make_entry("Empire", "Empire"), make_entry("Orc\tBoy", "Orque")])
        assert tsv == "Empire\tEmpire\nOrc Boy\tOrque\n"

    def test_hash_ignores_order(self, make_entry):
        a, b = make_entry("a", "x"), make_entry("b", "y")
        assert compute_content_hash([a, b]) == compute_content_hash([b, a])

    def test_hash_detects_edit(self, make_entry):
        assert compute_content_hash([make_entry("a", "x")]) != compute_content_hash(
            [make_entry("a", "z")]
        )


# ---------------------------------------------------------------------------
# Glossaries and entries
# ---------------------------------------------------------------------------

class TestGlossaryOperations:
    def test_game_scope(self, repository):
        universal = repository.create_glossary("U", is_global=True)
        game = repository.create_glossary("G", is_global=False, game_installation_id="g1")
        repository.create_glossary("H", is_global=False, game_installation_id="g2")

        ids = {g.id for g in repository.get_all_glossaries(game_installation_id="g1")}
        assert ids == {universal.id, game.id}
        assert [g.id for g in repository.get_all_glossaries()] == [universal.id]

    def test_get_glossaries_by_ids_keeps_order(self, repository):
        a = repository.create_glossary("A")
        b = repository.create_glossary("B")
        assert [g.id for g in repository.get_glossaries_by_ids([b.id, "missing", a.id])] == [
            b.id, a.id,
        ]

    def test_delete_cascades(self, repository, glossary):
        _snapshot_mapping(repository, glossary.id)
        assert repository.delete_glossary(glossary.id) is True
        assert repository.get_entry_count(glossary.id) == 0
        assert repository.get_deepl_mappings_for_glossary(glossary.id) == []
        assert repository.delete_glossary(glossary.id) is False

    def test_language_counts(self, repository, glossary):
        repository.add_entry(glossary.id, "Empire", "Reich", "DE")
        assert repository.get_language_counts(glossary.id) == {"fr": 2, "de": 1}
        assert repository.get_entry_count_for_language(glossary.id, "FR") == 2

    def test_list_entries_pagination(self, repository, glossary):
        entries, total = repository.list_entries(glossary.id, page=2, limit=1)
        assert total == 2
        assert [e.source_term for e in entries] == ["Empire"]

    def test_usage_stats(self, repository, glossary):
        entry = repository.get_entries_by_glossary(glossary.id)[0]
        repository.increment_usage_count([entry.id])
        repository.increment_usage_count([entry.id])
        assert repository.get_usage_stats(glossary.id) == {
            "used_count": 1, "unused_count": 1, "total_usage": 2,
        }


# ---------------------------------------------------------------------------
# Staleness
# ---------------------------------------------------------------------------

class TestMappingNeedsResync:
    def test_no_mapping(self, repository, glossary):
        assert repository.does_mapping_need_resync(glossary.id, "en", "fr") is True

    def test_fresh_mapping(self, repository, glossary):
        _snapshot_mapping(repository, glossary.id)
        assert repository.does_mapping_need_resync(glossary.id, "en", "fr") is False

    def test_added_entry(self, repository, glossary):
        _snapshot_mapping(repository, glossary.id)
        repository.add_entry(glossary.id, "Dwarf", "Nain", "fr")
        assert repository.does_mapping_need_resync(glossary.id, "en", "fr") is True

    def test_edit_with_same_count(self, repository, glossary):
        _snapshot_mapping(repository, glossary.id)
        entry = repository.get_entries_by_glossary(glossary.id, "fr")[0]
        repository.update_entry(entry.id, target_term="Empire Impérial")
        assert repository.does_mapping_need_resync(glossary.id, "en", "fr") is True

    def test_other_language_does_not_matter(self, repository, glossary):
        _snapshot_mapping(repository, glossary.id)
        repository.add_entry(glossary.id, "Empire", "Reich", "de")
        assert repository.does_mapping_need_resync(glossary.id, "en", "fr") is False

    def test_insert_replaces_same_pair(self, repository, glossary):
        _snapshot_mapping(repository, glossary.id)
        _snapshot_mapping(repository, glossary.id)
        assert len(repository.get_deepl_mappings_for_glossary(glossary.id)) == 1
