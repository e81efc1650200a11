"""
Term Matcher
Engine for finding glossary terms in text.

Stateless functions only: safe to call from any task or thread.
"""
import re
import logging
import unicodedata
from dataclasses import dataclass
from typing import List, Sequence, Set

from .models import GlossaryEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlossaryMatch:
    """A glossary term located in text (end_index is exclusive)."""
    entry: GlossaryEntry
    start_index: int
    end_index: int
    matched_text: str

    @property
    def length(self) -> int:
        return self.end_index - self.start_index

    def __repr__(self):
        return (
            f'GlossaryMatch(term="{self.entry.source_term}", '
            f'matched="{self.matched_text}", pos={self.start_index}-{self.end_index})'
        )


@dataclass(frozen=True)
class MatchStatistics:
    """Summary of the matches found in a text."""
    total_matches: int
    unique_terms: int
    coverage_percent: float

    def to_dict(self) -> dict:
        return {
            "total_matches": self.total_matches,
            "unique_terms": self.unique_terms,
            "coverage_percent": round(self.coverage_percent, 2),
        }


def is_word_character(char: str) -> bool:
    """ASCII letters, digits, underscore and any Unicode letter or number."""
    if char == "_":
        return True
    if char.isascii():
        return char.isalnum()
    return unicodedata.category(char)[0] in ("L", "N")


def _fold(text: str) -> str:
    """
    Lowercase one code point at a time.

    Characters whose lowercase form has a different length (e.g. "İ") are
    kept as-is so that every index in the folded text is also valid in the
    original text.
    """
    folded = []
    for char in text:
        lower = char.lower()
        folded.append(lower if len(lower) == 1 else char)
    return "".join(folded)


def _is_whole_word(text: str, start: int, end: int) -> bool:
    if start > 0 and is_word_character(text[start - 1]):
        return False
    if end < len(text) and is_word_character(text[end]):
        return False
    return True


def _find_term_matches(
    text: str,
    folded_text: str,
    entry: GlossaryEntry,
    whole_word_only: bool,
) -> List[GlossaryMatch]:
    """Find every occurrence of one entry's source term."""
    term = entry.source_term
    if not term:
        return []

    if entry.case_sensitive:
        haystack, needle = text, term
    else:
        haystack, needle = folded_text, _fold(term)

    matches = []
    cursor = 0
    while True:
        index = haystack.find(needle, cursor)
        if index == -1:
            break
        end = index + len(needle)

        if whole_word_only and not _is_whole_word(text, index, end):
            cursor = index + 1
            continue

        matches.append(GlossaryMatch(
            entry=entry,
            start_index=index,
            end_index=end,
            matched_text=text[index:end],
        ))
        cursor = end

    return matches


def _remove_overlaps(candidates: List[GlossaryMatch]) -> List[GlossaryMatch]:
    """Keep the leftmost match, preferring the longer one at equal start."""
    ordered = sorted(candidates, key=lambda m: (m.start_index, -m.length))

    result = []
    last_end = -1
    for match in ordered:
        if match.start_index < last_end:
            continue
        result.append(match)
        last_end = match.end_index
    return result


def find_matches(
    text: str,
    entries: Sequence[GlossaryEntry],
    whole_word_only: bool = True,
) -> List[GlossaryMatch]:
    """
    Find all glossary terms in the text.

    Longer terms win over shorter ones starting at the same position, and
    the result never contains overlapping matches.

    Args:
        text: Text to search
        entries: Candidate glossary entries
        whole_word_only: Reject occurrences embedded in a larger word

    Returns:
        List of GlossaryMatch sorted by position
    """
    if not text or not entries:
        return []

    by_length = sorted(entries, key=lambda e: len(e.source_term or ""), reverse=True)
    folded_text = _fold(text)

    candidates: List[GlossaryMatch] = []
    for entry in by_length:
        candidates.extend(
            _find_term_matches(text, folded_text, entry, whole_word_only)
        )

    matches = _remove_overlaps(candidates)
    matches.sort(key=lambda m: m.start_index)

    logger.debug(f"Found {len(matches)} matches ({len(candidates)} candidates) in text")
    return matches


def apply_substitutions(
    source_text: str,
    target_text: str,
    matches: Sequence[GlossaryMatch],
) -> str:
    """
    Force glossary translations into a translated text.

    Every literal occurrence of a matched source substring in the target
    text is replaced with the entry's target term, in a single pass so
    that a target term containing its source term is not replaced again.
    This is a lexical
    approximation: positions in the source do not carry over to the
    translation, so only source terms that survive untranslated (names,
    invented words) get corrected.

    Args:
        source_text: Text the matches were computed on
        target_text: Translation to correct
        matches: Matches from find_matches(source_text, ...)

    Returns:
        Corrected target text
    """
    if not matches or not target_text:
        return target_text

    # Longest first so that alternation prefers "Empire of Man" over "Empire"
    replacements = []
    seen = set()
    for match in sorted(matches, key=lambda m: (-m.length, m.start_index)):
        case_sensitive = bool(match.entry.case_sensitive)
        key = (match.matched_text if case_sensitive else match.matched_text.lower(), case_sensitive)
        if key in seen:
            continue
        seen.add(key)
        replacements.append((match.matched_text, case_sensitive, match.entry.target_term))

    alternatives = []
    for text, case_sensitive, _ in replacements:
        escaped = re.escape(text)
        alternatives.append(f"({escaped})" if case_sensitive else f"((?i:{escaped}))")
    pattern = re.compile("|".join(alternatives))

    return pattern.sub(lambda m: replacements[m.lastindex - 1][2], target_text)


def highlight_matches(
    text: str,
    matches: Sequence[GlossaryMatch],
    prefix: str = "**",
    suffix: str = "**",
) -> str:
    """
    Wrap matched terms in text with prefix/suffix markers.

    Args:
        text: Text the matches were computed on
        matches: Matches from find_matches()
        prefix: Inserted before each match (e.g. "<mark>")
        suffix: Inserted after each match (e.g. "</mark>")
    """
    if not matches:
        return text

    result = text
    for match in sorted(matches, key=lambda m: m.start_index, reverse=True):
        result = (
            result[:match.start_index]
            + prefix
            + result[match.start_index:match.end_index]
            + suffix
            + result[match.end_index:]
        )
    return result


def get_match_statistics(text: str, matches: Sequence[GlossaryMatch]) -> MatchStatistics:
    """Count matches, distinct terms and the share of text they cover."""
    if not text:
        return MatchStatistics(total_matches=0, unique_terms=0, coverage_percent=0.0)

    unique_terms: Set[str] = set()
    covered = 0
    for match in matches:
        unique_terms.add(match.entry.source_term)
        covered += match.length

    return MatchStatistics(
        total_matches=len(matches),
        unique_terms=len(unique_terms),
        coverage_percent=covered / len(text) * 100,
    )
