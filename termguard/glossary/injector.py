"""
Glossary Injector
Inject filtered glossary terms into translation prompts.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from .filter import GlossaryFilterService, GlossaryTermWithVariants, get_filter_service

logger = logging.getLogger(__name__)


class GlossaryInjector:
    """
    Inject glossary terms into LLM translation prompts.

    Adds a glossary section that instructs the LLM to use specific
    translations for the terms present in the batch.
    """

    HEADER = "GLOSSARY (must use these translations):"

    FOOTER = (
        "Use the EXACT translations above for these terms. "
        "When several translations are listed, pick the one that fits the context."
    )

    def __init__(self, filter_service: Optional[GlossaryFilterService] = None):
        self.filter_service = filter_service or get_filter_service()

    def create_glossary_section(
        self,
        terms: Sequence[GlossaryTermWithVariants],
        format: str = "bullet",
    ) -> str:
        """
        Create glossary section for prompt injection.

        Args:
            terms: Filtered glossary terms
            format: Format style (bullet, table, inline)

        Returns:
            Formatted glossary section, empty when there are no terms
        """
        if not terms:
            return ""

        if format == "table":
            body = self._format_as_table(terms)
        elif format == "inline":
            body = self._format_as_inline(terms)
        else:
            body = self._format_as_bullets(terms)

        return f"\n{self.HEADER}\n{body}\n\n{self.FOOTER}\n"

    def _format_as_bullets(self, terms: Sequence[GlossaryTermWithVariants]) -> str:
        return "\n".join(f"- {term.format_for_prompt()}" for term in terms)

    def _format_as_table(self, terms: Sequence[GlossaryTermWithVariants]) -> str:
        lines = ["| Source | Target | Notes |", "|--------|--------|-------|"]
        for term in terms:
            targets = " / ".join(v.target_term for v in term.variants)
            notes = "; ".join(v.notes for v in term.variants if v.notes)
            lines.append(f"| {term.source_term} | {targets} | {notes} |")
        return "\n".join(lines)

    def _format_as_inline(self, terms: Sequence[GlossaryTermWithVariants]) -> str:
        pairs = []
        for term in terms:
            targets = "|".join(v.target_term for v in term.variants)
            pairs.append(f'"{term.source_term}"="{targets}"')
        return ", ".join(pairs)

    async def inject_into_prompt(
        self,
        original_prompt: str,
        source_texts: Sequence[str],
        target_language_code: str,
        game_installation_id: Optional[str] = None,
        glossary_ids: Optional[List[str]] = None,
        format: str = "bullet",
    ) -> Tuple[str, List[GlossaryTermWithVariants]]:
        """
        Inject the batch's glossary terms into a translation prompt.

        Returns:
            Tuple of (modified_prompt, terms)
        """
        terms = await self.filter_service.filter_relevant_terms(
            source_texts,
            target_language_code,
            game_installation_id=game_installation_id,
            glossary_ids=glossary_ids,
        )
        if not terms:
            return original_prompt, []

        section = self.create_glossary_section(terms, format)

        # Before the first fenced block, so the texts stay last
        if "```" in original_prompt:
            head, tail = original_prompt.split("```", 1)
            modified_prompt = head + section + "\n```" + tail
        else:
            modified_prompt = original_prompt + "\n" + section

        logger.info(f"Injected {len(terms)} glossary terms into prompt")
        return modified_prompt, terms
