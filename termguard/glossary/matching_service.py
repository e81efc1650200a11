"""
Glossary Matching Service
Glossary checks and corrections for produced translations.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from .exceptions import GlossaryRepositoryError
from .filter import GlossaryFilterService, expand_to_variants, group_entries
from .matcher import GlossaryMatch, apply_substitutions, find_matches
from .models import GlossaryEntry
from .repository import GlossaryRepository, get_repository

logger = logging.getLogger(__name__)


class GlossaryMatchingService:
    """
    Matching-related glossary operations bound to the repository.

    Both the consistency check and the substitution work on the literal
    text of matched terms inside the translation, not on aligned spans:
    translations reorder words, so a source position says nothing about
    where the term ended up.
    """

    def __init__(
        self,
        repository: Optional[GlossaryRepository] = None,
        filter_service: Optional[GlossaryFilterService] = None,
    ):
        self.repository = repository or get_repository()
        self.filter_service = filter_service or GlossaryFilterService(self.repository)

    def _find_source_matches(
        self,
        source_text: str,
        target_language_code: str,
        glossary_ids: Optional[List[str]],
        game_installation_id: Optional[str],
    ) -> Tuple[List[GlossaryEntry], List[GlossaryMatch]]:
        entries = self.filter_service.load_entries(
            target_language_code,
            game_installation_id=game_installation_id,
            glossary_ids=glossary_ids,
        )
        matches = find_matches(
            source_text, entries, whole_word_only=self.filter_service.whole_word_only
        )
        return entries, matches

    async def find_matching_terms(
        self,
        source_text: str,
        target_language_code: str,
        glossary_ids: Optional[List[str]] = None,
        game_installation_id: Optional[str] = None,
    ) -> List[GlossaryEntry]:
        """
        Find glossary entries that occur in a source text.

        Entries sharing a matched source term are all returned, since each
        is an allowed translation of it.

        Returns:
            Unique matched entries, in order of first occurrence
        """
        try:
            entries, matches = self._find_source_matches(
                source_text, target_language_code, glossary_ids, game_installation_id
            )
        except SQLAlchemyError as e:
            raise GlossaryRepositoryError(f"Failed to find matching terms: {e}") from e

        return expand_to_variants(entries, matches)

    async def apply_substitutions(
        self,
        source_text: str,
        target_text: str,
        target_language_code: str,
        glossary_ids: Optional[List[str]] = None,
        game_installation_id: Optional[str] = None,
    ) -> str:
        """
        Replace untranslated source terms in a translation with glossary terms.

        Best effort only: terms that were translated to something else are
        not touched.
        """
        try:
            _, matches = self._find_source_matches(
                source_text, target_language_code, glossary_ids, game_installation_id
            )
        except SQLAlchemyError as e:
            raise GlossaryRepositoryError(f"Failed to apply substitutions: {e}") from e

        return apply_substitutions(source_text, target_text, matches)

    async def check_consistency(
        self,
        source_text: str,
        target_text: str,
        target_language_code: str,
        glossary_ids: Optional[List[str]] = None,
        game_installation_id: Optional[str] = None,
    ) -> List[str]:
        """
        Verify that glossary terms found in the source are honored.

        Only checks that one of the allowed target terms of each matched
        source term appears somewhere in the translation (case-insensitive).

        Returns:
            Violation messages, empty when the translation is consistent
        """
        entries = await self.find_matching_terms(
            source_text,
            target_language_code,
            glossary_ids=glossary_ids,
            game_installation_id=game_installation_id,
        )

        target_lower = (target_text or "").lower()
        violations = []
        for term in group_entries(entries):
            targets = [v.target_term for v in term.variants]
            if any(t.lower() in target_lower for t in targets):
                continue
            if len(targets) == 1:
                expected = f'"{targets[0]}"'
            else:
                expected = "one of " + ", ".join(f'"{t}"' for t in targets)
            violations.append(
                f'Term "{term.source_term}" should be translated as '
                f'{expected} but was not found in target'
            )

        if violations:
            logger.debug(f"Glossary consistency: {len(violations)} violations")
        return violations


# Global instance
_matching_service: Optional[GlossaryMatchingService] = None


def get_matching_service() -> GlossaryMatchingService:
    """Get or create the global matching service instance."""
    global _matching_service
    if _matching_service is None:
        _matching_service = GlossaryMatchingService()
    return _matching_service
