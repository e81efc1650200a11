"""
Unit tests for termguard/glossary/matching_service.py: consistency checks
and substitutions against stored glossaries.
"""

import pytest
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from termguard.glossary.exceptions import GlossaryRepositoryError
from termguard.glossary.matching_service import GlossaryMatchingService


@pytest.fixture
def glossary(repository):
    glossary = repository.create_glossary("Lore", is_global=True)
    repository.add_entry(glossary.id, "Imperator", "Emperor", "en")
    repository.add_entry(glossary.id, "Legion", "Légion", "fr")
    return glossary


@pytest.fixture
def service(repository, glossary):
    return GlossaryMatchingService(repository=repository)


class TestFindMatchingTerms:
    @pytest.mark.asyncio
    async def test_unique_entries(self, service):
        entries = await service.find_matching_terms("Imperator, hail Imperator!", "en")
        assert [e.source_term for e in entries] == ["Imperator"]

    @pytest.mark.asyncio
    async def test_language_scoped(self, service):
        assert await service.find_matching_terms("The Legion marches", "en") == []
        entries = await service.find_matching_terms("The Legion marches", "fr")
        assert [e.target_term for e in entries] == ["Légion"]

    @pytest.mark.asyncio
    async def test_variants_from_other_glossary(self, service, repository):
        other = repository.create_glossary("Poetic", is_global=True)
        repository.add_entry(other.id, "imperator", "Caesar", "en")
        entries = await service.find_matching_terms("Hail the Imperator", "en")
        assert sorted(e.target_term for e in entries) == ["Caesar", "Emperor"]

    @pytest.mark.asyncio
    async def test_repository_failure_wrapped(self, repository, glossary):
        service = GlossaryMatchingService(repository=repository)
        repository.get_all_glossaries = MagicMock(
            side_effect=OperationalError("SELECT", {}, Exception("db locked"))
        )
        with pytest.raises(GlossaryRepositoryError):
            await service.find_matching_terms("Imperator", "en")


class TestCheckConsistency:
    @pytest.mark.asyncio
    async def test_violation_reported(self, service):
        violations = await service.check_consistency(
            "The Imperator commands.", "The Imperator commands.", "en"
        )
        assert violations == [
            'Term "Imperator" should be translated as "Emperor" but was not found in target'
        ]

    @pytest.mark.asyncio
    async def test_consistent_translation(self, service):
        violations = await service.check_consistency(
            "The Imperator commands.", "The emperor commands.", "en"
        )
        assert violations == []

    @pytest.mark.asyncio
    async def test_any_variant_accepted(self, service, repository):
        other = repository.create_glossary("Poetic", is_global=True)
        repository.add_entry(other.id, "Imperator", "Caesar", "en")

        assert await service.check_consistency(
            "The Imperator commands.", "Caesar commands.", "en"
        ) == []
        assert await service.check_consistency(
            "The Imperator commands.", "The Emperor commands.", "en"
        ) == []

    @pytest.mark.asyncio
    async def test_violation_lists_variants(self, service, repository):
        other = repository.create_glossary("Poetic", is_global=True)
        repository.add_entry(other.id, "Imperator", "Caesar", "en")

        violations = await service.check_consistency(
            "The Imperator commands.", "The king commands.", "en"
        )
        assert len(violations) == 1
        assert '"Emperor"' in violations[0] and '"Caesar"' in violations[0]
        assert "one of" in violations[0]

    @pytest.mark.asyncio
    async def test_no_terms_in_source(self, service):
        assert await service.check_consistency("Nothing here", "Rien ici", "en") == []


class TestApplySubstitutions:
    @pytest.mark.asyncio
    async def test_substitution_then_check_passes(self, service):
        source = "The Imperator commands."
        corrected = await service.apply_substitutions(source, "The Imperator commands.", "en")
        assert corrected == "The Emperor commands."
        assert await service.check_consistency(source, corrected, "en") == []

    @pytest.mark.asyncio
    async def test_unmatched_target_unchanged(self, service):
        result = await service.apply_substitutions("The Imperator", "Der Kaiser", "en")
        assert result == "Der Kaiser"

    @pytest.mark.asyncio
    async def test_substituted_term_not_expanded_twice(self, repository):
        glossary = repository.create_glossary("Chaos", is_global=True)
        repository.add_entry(glossary.id, "Chaos", "Chaos-Götter", "de")
        service = GlossaryMatchingService(repository=repository)
        result = await service.apply_substitutions("Chaos and Chaos", "Chaos und Chaos", "de")
        assert result == "Chaos-Götter und Chaos-Götter"
