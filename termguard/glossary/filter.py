"""
Glossary Filter
Reduce the glossaries of a translation scope to the terms a batch uses.

Sending a whole glossary with every translation request wastes most of
the prompt budget; only terms that occur in the batch's source texts are
kept, grouped by source term so that one term with several translations
becomes a single prompt line.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from .exceptions import GlossaryRepositoryError
from .matcher import GlossaryMatch, find_matches
from .models import GlossaryEntry
from .repository import GlossaryRepository, get_repository

logger = logging.getLogger(__name__)

# Joins batch texts so that a term never spans two texts
TEXT_SEPARATOR = "\n"


@dataclass
class GlossaryVariant:
    """One allowed translation of a term."""
    target_term: str
    entry_id: str
    notes: Optional[str] = None


@dataclass
class GlossaryTermWithVariants:
    """A source term with every translation the glossaries allow for it."""
    source_term: str
    case_sensitive: bool = False
    variants: List[GlossaryVariant] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.source_term.lower()

    @property
    def entry_ids(self) -> List[str]:
        return [v.entry_id for v in self.variants]

    def format_for_prompt(self) -> str:
        """Render as a prompt line (plus context lines for notes)."""
        if len(self.variants) == 1:
            variant = self.variants[0]
            line = f'"{self.source_term}" → "{variant.target_term}"'
            if variant.notes:
                line += f"\n  Context: {variant.notes}"
            return line

        options = []
        for variant in self.variants:
            option = f'"{variant.target_term}"'
            if variant.notes:
                option += f" ({variant.notes})"
            options.append(option)
        return f'"{self.source_term}" → one of: ' + ", ".join(options)

    def to_dict(self) -> dict:
        return {
            "source_term": self.source_term,
            "case_sensitive": self.case_sensitive,
            "variants": [
                {"target_term": v.target_term, "notes": v.notes, "entry_id": v.entry_id}
                for v in self.variants
            ],
        }


def group_entries(entries: Sequence[GlossaryEntry]) -> List[GlossaryTermWithVariants]:
    """
    Group entries by case-folded source term.

    The display form comes from the first entry of each group; the group is
    case-sensitive if any of its entries is.
    """
    groups: Dict[str, GlossaryTermWithVariants] = {}
    for entry in entries:
        key = entry.source_term.lower()
        term = groups.get(key)
        if term is None:
            term = GlossaryTermWithVariants(source_term=entry.source_term)
            groups[key] = term
        term.case_sensitive = term.case_sensitive or bool(entry.case_sensitive)
        term.variants.append(GlossaryVariant(
            target_term=entry.target_term,
            entry_id=entry.id,
            notes=entry.notes,
        ))
    return list(groups.values())


def expand_to_variants(
    entries: Sequence[GlossaryEntry],
    matches: Sequence[GlossaryMatch],
) -> List[GlossaryEntry]:
    """
    Every entry sharing a case-folded source term with one of the matches.

    Entries with the same source term all match at the same span, and
    overlap resolution keeps only one of them; the others are variants of
    the same term and belong with it. Ordered by first match position.
    """
    by_key: Dict[str, List[GlossaryEntry]] = {}
    for entry in entries:
        by_key.setdefault(entry.source_term.lower(), []).append(entry)

    result: List[GlossaryEntry] = []
    seen = set()
    for match in matches:
        key = match.entry.source_term.lower()
        if key in seen:
            continue
        seen.add(key)
        result.extend(by_key.get(key, [match.entry]))
    return result


class GlossaryFilterService:
    """
    Load and filter glossary terms for a translation scope.

    A scope is a target language plus either explicit glossary IDs or a
    game installation (its glossaries and the universal ones).
    """

    def __init__(
        self,
        repository: Optional[GlossaryRepository] = None,
        whole_word_only: Optional[bool] = None,
    ):
        from termguard.config.settings import settings

        self.repository = repository or get_repository()
        self.whole_word_only = (
            settings.glossary_whole_word_only if whole_word_only is None else whole_word_only
        )
        self.header_tokens = settings.glossary_prompt_header_tokens
        self.tokens_per_term = settings.glossary_tokens_per_term
        self.tokens_per_variant = settings.glossary_tokens_per_variant

    def load_entries(
        self,
        target_language_code: str,
        game_installation_id: Optional[str] = None,
        glossary_ids: Optional[List[str]] = None,
    ) -> List[GlossaryEntry]:
        """Load every entry of the scope's glossaries for a target language."""
        try:
            if glossary_ids:
                glossaries = self.repository.get_glossaries_by_ids(glossary_ids)
            else:
                glossaries = self.repository.get_all_glossaries(
                    game_installation_id=game_installation_id,
                    include_universal=True,
                )

            entries: List[GlossaryEntry] = []
            for glossary in glossaries:
                entries.extend(self.repository.get_entries_by_glossary(
                    glossary.id, target_language_code
                ))
        except SQLAlchemyError as e:
            raise GlossaryRepositoryError(f"Failed to load glossary entries: {e}") from e

        return entries

    async def load_all_terms(
        self,
        target_language_code: str,
        game_installation_id: Optional[str] = None,
        glossary_ids: Optional[List[str]] = None,
    ) -> List[GlossaryTermWithVariants]:
        """All terms of the scope, grouped, without filtering."""
        entries = self.load_entries(target_language_code, game_installation_id, glossary_ids)
        return group_entries(entries)

    async def filter_relevant_terms(
        self,
        source_texts: Sequence[str],
        target_language_code: str,
        game_installation_id: Optional[str] = None,
        glossary_ids: Optional[List[str]] = None,
    ) -> List[GlossaryTermWithVariants]:
        """
        Keep only the terms that occur in a batch of source texts.

        Args:
            source_texts: Source texts of the batch
            target_language_code: Target language of the translation
            game_installation_id: Game whose glossaries apply (with universal ones)
            glossary_ids: Explicit glossaries, overrides the game scope

        Returns:
            Grouped terms, in order of first appearance among the entries
        """
        texts = [t for t in source_texts if t]
        if not texts:
            return []

        entries = self.load_entries(target_language_code, game_installation_id, glossary_ids)
        if not entries:
            return []

        combined = TEXT_SEPARATOR.join(texts)
        matches = find_matches(combined, entries, whole_word_only=self.whole_word_only)
        matched_keys = {m.entry.source_term.lower() for m in matches}

        relevant = [e for e in entries if e.source_term.lower() in matched_keys]
        terms = group_entries(relevant)

        if relevant:
            try:
                self.repository.increment_usage_count([e.id for e in relevant])
            except SQLAlchemyError as e:
                logger.warning(f"Failed to update glossary usage counts: {e}")

        logger.info(
            f"Glossary filter kept {len(terms)} of {len(entries)} entries "
            f"for {len(texts)} texts"
        )
        return terms

    def estimate_token_count(self, terms: Sequence[GlossaryTermWithVariants]) -> int:
        """Rough prompt cost of a glossary section built from terms."""
        if not terms:
            return 0
        extra_variants = sum(max(len(t.variants) - 1, 0) for t in terms)
        return (
            self.header_tokens
            + self.tokens_per_term * len(terms)
            + self.tokens_per_variant * extra_variants
        )


# Global instance
_filter_service: Optional[GlossaryFilterService] = None


def get_filter_service() -> GlossaryFilterService:
    """Get or create the global filter service instance."""
    global _filter_service
    if _filter_service is None:
        _filter_service = GlossaryFilterService()
    return _filter_service
